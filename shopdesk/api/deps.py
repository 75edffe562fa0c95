# api/deps.py
from __future__ import annotations
import logging
from functools import lru_cache
from fastapi import Depends, Request, HTTPException, status

from shopdesk.core.services.auth import AuthService
from shopdesk.core.services.newsletter import SmtpEmailSender
from shopdesk.core.services.notifications import LogNotifier
from shopdesk.core.services.settings import SettingsService
from shopdesk.infra.db_interface import DB, DocumentStore, run_migrations
from shopdesk.utils.config import AppConfig, load_config
from shopdesk.utils.logging import setup_logger
from shopdesk.utils.security import decode_session_token, extract_token


@lru_cache
def get_cfg() -> AppConfig:
    cfg = load_config()
    setup_logger(level=getattr(logging, str(cfg.logging["level"]).upper(), logging.INFO))
    return cfg


@lru_cache
def open_store(database_path: str, busy_timeout: float, retries: int,
                admin_username: str, admin_password: str) -> DocumentStore:
    # once per database file: schema, then the bootstrap admin account
    db = DB(database_path, busy_timeout=busy_timeout)
    run_migrations(db)
    store = DocumentStore(db, transaction_retries=retries)
    AuthService(store).ensure_default_admin(admin_username, admin_password)
    return store


def get_store(cfg: AppConfig = Depends(get_cfg)) -> DocumentStore:
    sec = cfg.security
    return open_store(
        cfg.database_path,
        float(cfg.store["busy_timeout"]),
        int(cfg.store["transaction_retries"]),
        sec["default_admin_username"],
        sec["default_admin_password"],
    )


def get_settings(store: DocumentStore = Depends(get_store)) -> SettingsService:
    return SettingsService(store.db)


_notifier = LogNotifier()


def get_notifier():
    return _notifier


def get_email_sender(cfg: AppConfig = Depends(get_cfg)):
    smtp = cfg.notifications["smtp"]
    return SmtpEmailSender(smtp["host"], smtp["port"], smtp["username"], smtp["password"],
                           sender_name=cfg.newsletter["sender_name"])


def current_user(request: Request, cfg: AppConfig = Depends(get_cfg)) -> dict:
    sec = cfg.security
    token = extract_token(request.cookies.get(sec["cookie_name"]),
                          request.headers.get("Authorization"))
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    data = decode_session_token(token, sec["secret_key"])
    if not data:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    if not data.get("admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied: Not an admin.")
    return data
