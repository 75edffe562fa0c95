from __future__ import annotations
from typing import Dict, List

from shopdesk.core.models import PRODUCTS, parse_amount, round2
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.exceptions import ValidationError

SEARCH_LIMIT = 20
# highest BMP private-use char: upper bound of a name prefix range
PREFIX_END = "\uf8ff"


class CatalogService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def add_product(self, name: str, price, colors: List[dict], category: str | None = None) -> str:
        value = parse_amount(price)
        if not name or value is None or value < 0:
            raise ValidationError("Product name and a valid price are required")
        for c in colors:
            if not c.get("name"):
                raise ValidationError("Every color needs a name")
            for size, qty in (c.get("stock") or {}).items():
                if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                    raise ValidationError(f"Stock for size {size} must be a non-negative integer")
        doc = {
            "name": name,
            "price": round2(value),
            "colors": [
                {
                    "name": c["name"],
                    "code": c.get("code", ""),
                    "images": list(c.get("images") or []),
                    "stock": {str(k): int(v) for k, v in (c.get("stock") or {}).items()},
                }
                for c in colors
            ],
        }
        if category:
            doc["category"] = category
        return self.store.add(PRODUCTS, doc)

    def list_products(self) -> list[dict]:
        return self.store.query(PRODUCTS, order_by="name")

    def search(self, q: str | None, limit: int = SEARCH_LIMIT) -> list[dict]:
        """Name prefix search (case-sensitive), projected to what the sale form needs."""
        where = []
        if q:
            where = [("name", ">=", q), ("name", "<=", q + PREFIX_END)]
        docs = self.store.query(PRODUCTS, where=where, limit=limit)
        return [
            {
                "id": d["id"],
                "name": d.get("name"),
                "price": d.get("price"),
                "colors": [
                    {"name": c.get("name"), "stock": c.get("stock")}
                    for c in (d.get("colors") or []) if isinstance(c, dict)
                ],
            }
            for d in docs
        ]

    def stock_rows(self) -> List[Dict]:
        """Flat product/color/size rows, for the stock snapshot export."""
        rows = []
        for d in self.list_products():
            for c in d.get("colors") or []:
                for size, qty in (c.get("stock") or {}).items():
                    rows.append({
                        "product_id": d["id"], "name": d.get("name"), "price": d.get("price"),
                        "color": c.get("name"), "size": size, "qty": qty,
                    })
        return rows
