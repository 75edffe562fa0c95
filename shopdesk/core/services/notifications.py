# core/services/notifications.py
# New-order push notifications, deduplicated through a persisted cursor
from __future__ import annotations
import json
from datetime import datetime
from typing import Protocol

from shopdesk.core.models import ADMIN_TOKENS, ORDERS, money, round2
from shopdesk.core.services.settings import SettingsService
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.dates import to_datetime
from shopdesk.utils.exceptions import ValidationError
from shopdesk.utils.logging import get_logger

logger = get_logger("notifications")

ADMIN_TOKEN_DOC = "adminUser"
CURSOR_COLLABORATOR = "orders"


class Notifier(Protocol):
    def send(self, destination: str | None, payload: dict) -> None: ...


class LogNotifier:
    """Default push collaborator: records what would have been delivered."""

    def __init__(self):
        self.sent: list[tuple[str | None, dict]] = []

    def send(self, destination: str | None, payload: dict) -> None:
        self.sent.append((destination, payload))
        logger.info(f"push -> {destination or '(no admin token)'}: {payload['title']} | {payload['body']}")


def order_payload(order: dict, currency: str = "TND") -> dict:
    oid = order["id"]
    return {
        "title": "New Order Received",
        "body": f"Order #{oid} - {round2(money(order.get('totalAmount'))):.2f} {currency}",
        "data": {"orderId": oid, "url": f"/admin/orders?id={oid}"},
    }


class OrderNotifier:
    def __init__(self, store: DocumentStore, settings: SettingsService, notifier: Notifier):
        self.store = store
        self.settings = settings
        self.notifier = notifier

    def save_admin_token(self, token: str | None):
        if not token:
            raise ValidationError("FCM token is required")
        self.store.set(ADMIN_TOKENS, ADMIN_TOKEN_DOC, {"fcmToken": token})

    def admin_token(self) -> str | None:
        doc = self.store.get(ADMIN_TOKENS, ADMIN_TOKEN_DOC)
        return doc.get("fcmToken") if doc else None

    # cursor = newest notified createdAt plus the ids already seen at exactly that instant
    def _load_cursor(self) -> tuple[datetime | None, set[str] | None]:
        raw = self.settings.get_cursor(CURSOR_COLLABORATOR)
        if not raw:
            return None, None
        try:
            data = json.loads(raw)
        except ValueError:
            data = None
        if isinstance(data, dict):
            return to_datetime(data.get("createdAt")), set(data.get("ids") or [])
        # bare timestamp: everything at that instant counts as seen
        return to_datetime(raw), None

    def _save_cursor(self, when: datetime, ids: set[str]):
        self.settings.set_cursor(CURSOR_COLLABORATOR, json.dumps(
            {"createdAt": when.isoformat(), "ids": sorted(ids)}
        ))

    def poll(self) -> int:
        """
        Notify once per order not yet covered by the cursor, oldest first, moving
        the cursor after each delivery. Orders sharing the cursor's createdAt are
        told apart by id. The first poll only primes the cursor so historical
        orders are not replayed. Returns the number of notifications.
        """
        orders = []
        for o in self.store.all(ORDERS):
            when = to_datetime(o.get("createdAt"))
            if when is not None:
                orders.append((when, o))
        orders.sort(key=lambda pair: (pair[0], pair[1]["id"]))

        cursor, seen = self._load_cursor()
        if cursor is None:
            if orders:
                newest = orders[-1][0]
                self._save_cursor(newest, {o["id"] for when, o in orders if when == newest})
                logger.info(f"order cursor primed at {newest.isoformat()}")
            return 0

        token = self.admin_token()
        sent = 0
        for when, order in orders:
            if when < cursor:
                continue
            if when == cursor and (seen is None or order["id"] in seen):
                continue
            self.notifier.send(token, order_payload(order))
            if when == cursor:
                seen.add(order["id"])
            else:
                cursor, seen = when, {order["id"]}
            self._save_cursor(cursor, seen)
            sent += 1
        return sent
