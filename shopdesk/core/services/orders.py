from __future__ import annotations

from shopdesk.core.models import ORDER_STATUSES, ORDERS
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.dates import to_iso
from shopdesk.utils.exceptions import NotFoundError, ValidationError
from shopdesk.utils.logging import get_logger

logger = get_logger("orders")


def normalize_order(doc: dict) -> dict:
    out = dict(doc)
    out["createdAt"] = to_iso(doc.get("createdAt"))
    return out


class OrderService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def list_orders(self, status: str | None = None) -> list[dict]:
        where = []
        if status and status != "all":
            if status not in ORDER_STATUSES:
                raise ValidationError(f"Unknown status '{status}'")
            where.append(("status", "==", status))
        docs = self.store.query(ORDERS, where=where, order_by="createdAt", descending=True)
        return [normalize_order(d) for d in docs]

    def set_status(self, order_id: str, status: str | None) -> dict:
        """Admin-driven transition; returns {id, previous, status}."""
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")

        def apply(txn):
            doc = txn.get(ORDERS, order_id)
            if doc is None:
                raise NotFoundError("Order not found")
            txn.update(ORDERS, order_id, {"status": status})
            return doc.get("status")

        previous = self.store.run_transaction(apply)
        logger.info(f"order {order_id} status {previous} -> {status}")
        return {"id": order_id, "previous": previous, "status": status}
