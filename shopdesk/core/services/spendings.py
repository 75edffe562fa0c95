from __future__ import annotations
from datetime import datetime
from typing import Any, Callable

from shopdesk.core.models import (
    DEFAULT_SPENDING_CATEGORY, SPENDING_CATEGORIES, SPENDINGS, Spending, parse_amount, round2,
)
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.dates import parse_query_date, to_iso, utcnow
from shopdesk.utils.exceptions import NotFoundError, ValidationError
from shopdesk.utils.logging import get_logger

logger = get_logger("spendings")


def normalize_spending(doc: dict) -> dict:
    out = dict(doc)
    for key in ("date", "createdAt", "updatedAt"):
        out[key] = to_iso(doc.get(key))
    return out


class SpendingService:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def add(self, description: str | None, amount: Any, category: str | None = None,
            date: Any = None, notes: str | None = None) -> dict:
        value = parse_amount(amount)
        # validated as stored: amounts that round to 0.00 are rejected
        if not description or value is None or round2(value) <= 0:
            raise ValidationError("Description and valid amount are required")
        category = category or DEFAULT_SPENDING_CATEGORY
        if category not in SPENDING_CATEGORIES:
            raise ValidationError(
                f"Unknown category '{category}'. Expected one of: {', '.join(SPENDING_CATEGORIES)}"
            )
        now = self.clock()
        spent_on = parse_query_date(date, "date") if date else now

        spending = Spending(
            description=description,
            amount=round2(value),
            category=category,
            date=spent_on,
            notes=notes or "",
            createdAt=now,
            updatedAt=now,
        )
        spending.id = self.store.add(SPENDINGS, spending.to_doc())
        logger.info(f"spending {spending.id} added: {category} {spending.amount}")
        return normalize_spending({"id": spending.id, **spending.to_doc()})

    def list_spendings(self, start_date: datetime | None = None, end_date: datetime | None = None,
                       category: str | None = None) -> list[dict]:
        where = []
        if start_date:
            where.append(("date", ">=", start_date))
        if end_date:
            where.append(("date", "<=", end_date))
        if category and category != "all":
            where.append(("category", "==", category))
        docs = self.store.query(SPENDINGS, where=where, order_by="date", descending=True)
        return [normalize_spending(d) for d in docs]

    def delete(self, spending_id: str | None) -> None:
        if not spending_id:
            raise ValidationError("Spending ID is required")
        if not self.store.delete(SPENDINGS, spending_id):
            raise NotFoundError("Spending not found")
        logger.info(f"spending {spending_id} deleted")
