# core/services/settings.py
from __future__ import annotations

from shopdesk.infra.db_interface import DB

CURSOR_PREFIX = "cursor:"


class SettingsService:
    def __init__(self, db: DB):
        self.db = db

    def get(self, key: str) -> str | None:
        with self.db.connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM settings WHERE key=? LIMIT 1", (key,))
            row = cur.fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str):
        with self.db.transaction() as conn:
            conn.execute("INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                         (key, value))

    # -- persisted cursors (e.g. last order already notified) --
    @staticmethod
    def cursor_key(collaborator: str, name: str) -> str:
        return f"{CURSOR_PREFIX}{collaborator}:{name}"

    def get_cursor(self, collaborator: str, name: str = "last_seen") -> str | None:
        return self.get(self.cursor_key(collaborator, name))

    def set_cursor(self, collaborator: str, value: str, name: str = "last_seen"):
        self.set(self.cursor_key(collaborator, name), value)
