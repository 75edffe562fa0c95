"""Shared fixtures: a throwaway sqlite document store and an authenticated API client."""

import pytest
import yaml
from fastapi.testclient import TestClient

from shopdesk.api.deps import get_cfg, get_email_sender, get_notifier, get_store
from shopdesk.api.server import app
from shopdesk.core.services.notifications import LogNotifier
from shopdesk.infra.db_interface import DB, DocumentStore, run_migrations
from shopdesk.utils.config import load_config
from tests.helpers import FakeEmailSender


@pytest.fixture
def store(tmp_path):
    db = DB(str(tmp_path / "store.db"))
    run_migrations(db)
    return DocumentStore(db)


@pytest.fixture
def cfg(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database_path": str(tmp_path / "api.db"),
        "security": {"secret_key": "test-secret"},
        "paths": {
            "event_log_dir": str(tmp_path / "logs"),
            "snapshots_dir": str(tmp_path / "snapshots"),
        },
    }), encoding="utf-8")
    return load_config(str(path))


@pytest.fixture
def api_store(cfg):
    return get_store(cfg)


@pytest.fixture
def email_sender():
    return FakeEmailSender(fail_for={"bounce@example.com"})


@pytest.fixture
def notifier():
    return LogNotifier()


@pytest.fixture
def anon_client(cfg, email_sender, notifier):
    app.dependency_overrides[get_cfg] = lambda: cfg
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client, api_store):
    resp = anon_client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200, resp.text
    anon_client.headers["Authorization"] = f"Bearer {resp.json()['token']}"
    return anon_client
