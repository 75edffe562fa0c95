from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Dict, List

# collections in the document store
PRODUCTS = "products"
OFFLINE_SALES = "offline_sales"
SPENDINGS = "spendings"
ORDERS = "orders"
USERS = "users"
NEWSLETTER_SIGNUPS = "newsletter_signups"
ADMINS = "admins"
ADMIN_TOKENS = "admin_tokens"
EMAIL_JOBS = "email_jobs"

ORDER_STATUSES = ("New", "Pending", "Shipped")

SPENDING_CATEGORIES = (
    "general",
    "inventory",
    "marketing",
    "shipping",
    "equipment",
    "supplies",
    "utilities",
    "other",
)
DEFAULT_SPENDING_CATEGORY = "general"


# request amounts above this are rejected as input errors
MAX_AMOUNT = Decimal("1000000000")


def money(value: Any) -> Decimal:
    """Exact decimal for a stored amount; None/garbage counts as 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        d = Decimal(str(value))
    except ArithmeticError:
        return Decimal("0")
    return d if d.is_finite() else Decimal("0")


def parse_amount(value: Any) -> Decimal | None:
    """Strict variant of money() for request input: None when not a finite number within MAX_AMOUNT."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        d = Decimal(str(value).strip())
    except ArithmeticError:
        return None
    if not d.is_finite() or abs(d) > MAX_AMOUNT:
        return None
    return d


def quantize(value: Decimal, exp: str) -> Decimal:
    """HALF_UP quantize with enough precision for any magnitude."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + len(exp) + 2)
        return value.quantize(Decimal(exp), rounding=ROUND_HALF_UP)


def round2(value: Decimal) -> float:
    return float(quantize(money(value), "0.01"))


def stock_qty(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class ColorVariant:
    name: str
    code: str = ""
    images: List[str] = field(default_factory=list)
    stock: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_doc(cls, data: dict) -> "ColorVariant":
        return cls(
            name=data.get("name", ""),
            code=data.get("code", ""),
            images=list(data.get("images") or []),
            stock={str(k): stock_qty(v) for k, v in (data.get("stock") or {}).items()},
        )


@dataclass
class Product:
    id: str | None
    name: str
    price: Decimal = Decimal("0")
    category: str | None = None
    colors: List[ColorVariant] = field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict) -> "Product":
        colors = doc.get("colors") if isinstance(doc.get("colors"), list) else []
        return cls(
            id=doc.get("id"),
            name=doc.get("name", ""),
            price=money(doc.get("price")),
            category=doc.get("category"),
            colors=[ColorVariant.from_doc(c) for c in colors if isinstance(c, dict)],
        )


@dataclass
class OfflineSale:
    productId: str
    productName: str
    colorName: str
    sizes: Dict[str, int]
    totalQuantity: int
    unitPrice: float
    totalAmount: float
    customerInfo: Dict[str, Any]
    notes: str
    saleDate: datetime
    createdAt: datetime
    id: str | None = None

    def to_doc(self) -> dict:
        doc = asdict(self)
        doc.pop("id")
        return doc


@dataclass
class Spending:
    description: str
    amount: float
    category: str
    date: datetime
    notes: str
    createdAt: datetime
    updatedAt: datetime
    id: str | None = None

    def to_doc(self) -> dict:
        doc = asdict(self)
        doc.pop("id")
        return doc
