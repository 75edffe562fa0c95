from __future__ import annotations
from datetime import datetime, timedelta

from shopdesk.core.models import USERS
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.dates import to_iso, utcnow

ONLINE_WINDOW = timedelta(minutes=5)


class CustomerService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def online_users(self, now: datetime | None = None) -> list[dict]:
        """Users active within the last five minutes."""
        since = (now or utcnow()) - ONLINE_WINDOW
        docs = self.store.query(USERS, where=[("lastActivity", ">=", since)],
                                order_by="lastActivity", descending=True)
        out = []
        for d in docs:
            d = dict(d)
            d["lastActivity"] = to_iso(d.get("lastActivity"))
            d.pop("password_hash", None)
            out.append(d)
        return out
