# core/services/ledger.py
# Offline (in-store) sales: stock deduction + sale record in one transaction
from __future__ import annotations
import copy
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from shopdesk.core.models import (
    OFFLINE_SALES, PRODUCTS, OfflineSale, money, parse_amount, round2, stock_qty,
)
from shopdesk.infra.db_interface import DocumentStore, Transaction
from shopdesk.utils.dates import to_iso, utcnow
from shopdesk.utils.exceptions import (
    InsufficientStockError, NotFoundError, ValidationError,
)
from shopdesk.utils.logging import get_logger

logger = get_logger("ledger")


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        n = value
    elif isinstance(value, float) and value.is_integer():
        n = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        n = int(value.strip())
    else:
        return None
    return n if n > 0 else None


def _validate_sizes(sizes: Any) -> Dict[str, int]:
    if not isinstance(sizes, dict) or not sizes:
        raise ValidationError("Product ID, color, and sizes are required")
    out = {}
    for size, qty in sizes.items():
        n = _positive_int(qty)
        if n is None:
            raise ValidationError(f"Quantity for size {size} must be a positive integer")
        out[str(size)] = n
    return out


def normalize_sale(doc: dict) -> dict:
    """Stored sale -> response shape with ISO timestamps."""
    out = dict(doc)
    out["saleDate"] = to_iso(doc.get("saleDate"))
    out["createdAt"] = to_iso(doc.get("createdAt"))
    return out


class InventoryLedger:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def record_sale(self, product_id: str | None, color_name: str | None,
                    sizes: Dict[str, Any] | None, customer_info: Optional[dict] = None,
                    total_amount: Any = None, notes: str | None = None) -> dict:
        """
        Deduct `sizes` from the product's `color_name` stock and write an
        immutable sale record. All or nothing: any size short of stock aborts
        the whole sale.

        total_amount defaults to totalQuantity * unitPrice when None.
        """
        if not product_id or not color_name:
            raise ValidationError("Product ID, color, and sizes are required")
        quantities = _validate_sizes(sizes)
        if customer_info is not None and not isinstance(customer_info, dict):
            raise ValidationError("customerInfo must be an object")
        if total_amount is not None:
            total_amount = parse_amount(total_amount)
            if total_amount is None or total_amount < 0:
                raise ValidationError("totalAmount must be a non-negative amount")

        def apply(txn: Transaction) -> dict:
            doc = txn.get(PRODUCTS, product_id)
            if doc is None:
                raise NotFoundError("Product not found")

            colors = copy.deepcopy(doc.get("colors") or [])
            idx = next((i for i, c in enumerate(colors)
                        if isinstance(c, dict) and c.get("name") == color_name), None)
            if idx is None:
                raise NotFoundError("Color not found")

            stock = dict(colors[idx].get("stock") or {})
            total_qty = 0
            for size, qty in quantities.items():
                available = stock_qty(stock.get(size))
                if qty > available:
                    raise InsufficientStockError(size, available, qty)
                stock[size] = available - qty
                total_qty += qty

            colors[idx]["stock"] = stock
            txn.update(PRODUCTS, product_id, {"colors": colors})

            unit_price = money(doc.get("price"))
            amount = total_amount if total_amount is not None else unit_price * total_qty
            now = self.clock()
            sale = OfflineSale(
                productId=product_id,
                productName=doc.get("name", ""),
                colorName=color_name,
                sizes=quantities,
                totalQuantity=total_qty,
                unitPrice=round2(unit_price),
                totalAmount=round2(amount),
                customerInfo=customer_info or {},
                notes=notes or "",
                saleDate=now,
                createdAt=now,
            )
            sale.id = txn.add(OFFLINE_SALES, sale.to_doc())
            return {"id": sale.id, **sale.to_doc()}

        try:
            sale = self.store.run_transaction(apply)
        except InsufficientStockError as e:
            logger.warning(f"offline sale rejected for product {product_id}: {e.message}")
            raise
        logger.info(
            f"offline sale {sale['id']} recorded: product={product_id} color={color_name} "
            f"qty={sale['totalQuantity']} amount={sale['totalAmount']}"
        )
        return normalize_sale(sale)

    def list_sales(self, start_date: datetime | None = None, end_date: datetime | None = None,
                   product_id: str | None = None) -> list[dict]:
        where = []
        if start_date:
            where.append(("saleDate", ">=", start_date))
        if end_date:
            where.append(("saleDate", "<=", end_date))
        if product_id:
            where.append(("productId", "==", product_id))
        docs = self.store.query(OFFLINE_SALES, where=where, order_by="saleDate", descending=True)
        return [normalize_sale(d) for d in docs]
