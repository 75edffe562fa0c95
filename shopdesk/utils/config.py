import os
from dataclasses import dataclass, field
from pathlib import Path
import yaml
from typing import Any, Dict, Optional

CONFIG_ENV = "SHOPDESK_CONFIG"


@dataclass
class AppConfig:
    app_name: str
    database_path: str
    security: Dict[str, Any]
    paths: Dict[str, Any]
    store: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    newsletter: Dict[str, Any] = field(default_factory=dict)
    notifications: Dict[str, Any] = field(default_factory=dict)
    logging: Optional[Dict[str, Any]] = None


def _with_defaults(data: dict) -> dict:
    data.setdefault("app_name", "ShopDesk")
    data.setdefault("database_path", "./data/shopdesk.db")

    sec = data.setdefault("security", {})
    sec.setdefault("secret_key", "CHANGE_ME_TO_A_RANDOM_LONG_STRING")
    sec.setdefault("access_token_minutes", 12 * 60)
    sec.setdefault("cookie_name", "sd_session")
    sec.setdefault("default_admin_username", "admin")
    sec.setdefault("default_admin_password", "admin123")

    paths = data.setdefault("paths", {})
    paths.setdefault("event_log_dir", "./logs")
    paths.setdefault("snapshots_dir", "./snapshots")

    store = data.setdefault("store", {})
    store.setdefault("busy_timeout", 5.0)
    store.setdefault("transaction_retries", 5)

    # shipping fee is subtracted from every online order to get product revenue
    stats = data.setdefault("stats", {})
    stats.setdefault("shipping_fee", 8)
    stats.setdefault("low_stock_threshold", 5)

    nl = data.setdefault("newsletter", {})
    nl.setdefault("batch_size", 5)
    nl.setdefault("sender_name", "ASHE™")

    notif = data.setdefault("notifications", {})
    smtp = notif.setdefault("smtp", {})
    smtp.setdefault("host", "ssl0.ovh.net")
    smtp.setdefault("port", 465)
    smtp.setdefault("username", os.environ.get("SMTP_SERVER_USERNAME", ""))
    smtp.setdefault("password", os.environ.get("SMTP_SERVER_PASSWORD", ""))

    log = data.setdefault("logging", {})
    log.setdefault("level", "INFO")

    Path(data["database_path"]).parent.mkdir(parents=True, exist_ok=True)
    Path(paths["event_log_dir"]).mkdir(parents=True, exist_ok=True)
    Path(paths["snapshots_dir"]).mkdir(parents=True, exist_ok=True)

    return data


def load_config(path: str | None = None) -> AppConfig:
    path = path or os.environ.get(CONFIG_ENV, "config.yaml")
    data = {}
    if Path(path).exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    data = _with_defaults(data)
    return AppConfig(**data)
