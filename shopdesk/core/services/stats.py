# core/services/stats.py
"""
KPI report for the admin dashboard.

Six collections are read independently (in parallel) and folded into one
nested report. A collection that cannot be read contributes nothing and is
flagged False in ``dataQuality``; the report itself still succeeds.

Two different "month" notions are used on purpose:
- calendar months (startOfCurrentMonth / startOfLastMonth..endOfLastMonth)
  drive revenue, orders, expenses and customer growth;
- a rolling 30 days (oneMonthAgo) drives "new customers" and newsletter counts.

Money is summed as Decimal and only rounded to 2 dp while serializing.
"""
from __future__ import annotations
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List

from shopdesk.core.models import (
    NEWSLETTER_SIGNUPS, OFFLINE_SALES, ORDERS, PRODUCTS, SPENDINGS, USERS,
    Product, money, quantize, round2,
)
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.dates import to_datetime, utcnow
from shopdesk.utils.exceptions import UpstreamUnavailable
from shopdesk.utils.logging import get_logger

logger = get_logger("stats")

COLLECTIONS = (ORDERS, PRODUCTS, NEWSLETTER_SIGNUPS, USERS, OFFLINE_SALES, SPENDINGS)
DEFAULT_SHIPPING_FEE = 8
DEFAULT_LOW_STOCK_THRESHOLD = 5

ZERO = Decimal("0")
PERIODS = ("total", "currentMonth", "lastMonth", "lastWeek")


def growth_rate(current, previous) -> float:
    """Percent change, 1 dp. From a zero base: 100 if anything happened, else 0."""
    current, previous = money(current), money(previous)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    pct = (current - previous) / previous * 100
    return float(quantize(pct, "0.1"))


def average_order_value(online_total, online_count: int, offline_total, offline_count: int) -> float:
    count = online_count + offline_count
    if count == 0:
        return 0.0
    return round2((money(online_total) + money(offline_total)) / count)


def conversion_rate(order_count: int, user_count: int) -> float:
    if not user_count:
        return 0.0
    return round2(Decimal(order_count) / Decimal(user_count) * 100)


def classify_stock(qty: int, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> str | None:
    if qty <= 0:
        return "out"
    if qty <= threshold:
        return "low"
    return None


@dataclass
class Windows:
    now: datetime
    start_of_current_month: datetime
    start_of_last_month: datetime
    end_of_last_month: datetime
    seven_days_ago: datetime
    one_month_ago: datetime

    @classmethod
    def at(cls, now: datetime) -> "Windows":
        start_cur = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start_cur.month == 1:
            start_last = start_cur.replace(year=start_cur.year - 1, month=12)
        else:
            start_last = start_cur.replace(month=start_cur.month - 1)
        return cls(
            now=now,
            start_of_current_month=start_cur,
            start_of_last_month=start_last,
            end_of_last_month=start_cur - timedelta(microseconds=1),
            seven_days_ago=now - timedelta(days=7),
            one_month_ago=now - timedelta(days=30),
        )

    def periods(self, when: datetime | None) -> List[str]:
        """Calendar buckets a timestamp falls into; 'total' always applies."""
        keys = ["total"]
        if when is None:
            return keys
        if when >= self.start_of_current_month:
            keys.append("currentMonth")
        if self.start_of_last_month <= when <= self.end_of_last_month:
            keys.append("lastMonth")
        if when >= self.seven_days_ago:
            keys.append("lastWeek")
        return keys

    def to_dict(self) -> dict:
        return {
            "startOfCurrentMonth": self.start_of_current_month.isoformat(),
            "startOfLastMonth": self.start_of_last_month.isoformat(),
            "endOfLastMonth": self.end_of_last_month.isoformat(),
            "sevenDaysAgo": self.seven_days_ago.isoformat(),
            "oneMonthAgo": self.one_month_ago.isoformat(),
        }


@dataclass
class PeriodTotals:
    amount: Dict[str, Decimal] = field(default_factory=lambda: {k: ZERO for k in PERIODS})
    count: Dict[str, int] = field(default_factory=lambda: {k: 0 for k in PERIODS})

    def add(self, value: Decimal, periods: Iterable[str]):
        for key in periods:
            self.amount[key] += value
            self.count[key] += 1

    def money_dict(self) -> dict:
        return {k: round2(v) for k, v in self.amount.items()}

    def count_dict(self) -> dict:
        return dict(self.count)


def _first_date(doc: dict, *fields: str) -> datetime | None:
    for f in fields:
        dt = to_datetime(doc.get(f))
        if dt is not None:
            return dt
    return None


def _location(user: dict) -> str:
    sources = [user]
    if isinstance(user.get("address"), dict):
        sources.append(user["address"])
    for key in ("governorate", "city"):
        for src in sources:
            value = src.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return "Unknown"


class StatsAggregator:
    def __init__(self, store: DocumentStore, shipping_fee=DEFAULT_SHIPPING_FEE,
                 low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        self.store = store
        self.shipping_fee = money(shipping_fee)
        self.low_stock_threshold = int(low_stock_threshold)

    # -- reads --
    def _fetch(self, collection: str) -> list[dict]:
        try:
            return self.store.all(collection)
        except Exception as e:
            raise UpstreamUnavailable(collection, e) from e

    def collect(self) -> tuple[Dict[str, list], Dict[str, bool]]:
        data: Dict[str, list] = {}
        quality: Dict[str, bool] = {}
        with ThreadPoolExecutor(max_workers=len(COLLECTIONS)) as pool:
            futures = {name: pool.submit(self._fetch, name) for name in COLLECTIONS}
            for name, fut in futures.items():
                try:
                    data[name] = fut.result()
                    quality[name] = True
                except UpstreamUnavailable as e:
                    logger.warning(f"stats: {e.message}; section degraded to empty")
                    data[name] = []
                    quality[name] = False
        return data, quality

    # -- per-collection reductions --
    def reduce_orders(self, orders: list[dict], w: Windows) -> dict:
        gross, product, shipping = PeriodTotals(), PeriodTotals(), PeriodTotals()
        statuses: Counter = Counter()
        payments: Counter = Counter()
        for order in orders:
            amount = money(order.get("totalAmount"))
            periods = w.periods(to_datetime(order.get("createdAt")))
            gross.add(amount, periods)
            product.add(max(amount - self.shipping_fee, ZERO), periods)
            # fee only accrues on orders that carry a positive total
            shipping.add(self.shipping_fee if amount > 0 else ZERO, periods)
            statuses[order.get("status") or "Unknown"] += 1
            if order.get("paymentMethod"):
                payments[str(order["paymentMethod"])] += 1
        return {"gross": gross, "product": product, "shipping": shipping,
                "statuses": dict(statuses), "payments": dict(payments)}

    def reduce_offline_sales(self, sales: list[dict], w: Windows) -> PeriodTotals:
        totals = PeriodTotals()
        for sale in sales:
            when = _first_date(sale, "saleDate", "createdAt")
            totals.add(money(sale.get("totalAmount")), w.periods(when))
        return totals

    def reduce_spendings(self, spendings: list[dict], w: Windows) -> dict:
        totals = PeriodTotals()
        by_category: Dict[str, Decimal] = {}
        for sp in spendings:
            amount = money(sp.get("amount"))
            totals.add(amount, w.periods(_first_date(sp, "date", "createdAt")))
            cat = sp.get("category") or "general"
            by_category[cat] = by_category.get(cat, ZERO) + amount
        return {"totals": totals, "by_category": by_category}

    def reduce_products(self, products: list[dict]) -> dict:
        total_stock = 0
        value = ZERO
        by_category: Counter = Counter()
        out_list, low_list = [], []
        out_sizes = low_sizes = 0
        for doc in products:
            p = Product.from_doc(doc)
            units = 0
            out_details, low_details = [], []
            for color in p.colors:
                out_c, low_c = {}, {}
                for size, qty in color.stock.items():
                    units += max(qty, 0)
                    kind = classify_stock(qty, self.low_stock_threshold)
                    if kind == "out":
                        out_c[size] = qty
                    elif kind == "low":
                        low_c[size] = qty
                if out_c:
                    out_details.append({"color": color.name, "outOfStockSizes": out_c})
                    out_sizes += len(out_c)
                if low_c:
                    low_details.append({"color": color.name, "lowStockSizes": low_c})
                    low_sizes += len(low_c)
            total_stock += units
            value += p.price * units
            by_category[p.category or "Uncategorized"] += 1
            if out_details:
                out_list.append({"id": p.id, "name": p.name, "outOfStockDetails": out_details})
            if low_details:
                low_list.append({"id": p.id, "name": p.name, "lowStockDetails": low_details})
        return {
            "total": len(products),
            "totalStock": total_stock,
            "inventoryValue": round2(value),
            "outOfStockCount": len(out_list),
            "lowStockCount": len(low_list),
            "outOfStockSizes": out_sizes,
            "lowStockSizes": low_sizes,
            "lowStockThreshold": self.low_stock_threshold,
            "byCategory": dict(by_category),
            "outOfStock": out_list,
            "lowStock": low_list,
        }

    def reduce_users(self, users: list[dict], w: Windows) -> dict:
        counts = {"last30Days": 0, "last7Days": 0, "currentMonth": 0, "lastMonth": 0}
        locations: Counter = Counter()
        for user in users:
            when = to_datetime(user.get("createdAt"))
            if when is not None:
                if when >= w.one_month_ago:
                    counts["last30Days"] += 1
                if when >= w.seven_days_ago:
                    counts["last7Days"] += 1
                if when >= w.start_of_current_month:
                    counts["currentMonth"] += 1
                if w.start_of_last_month <= when <= w.end_of_last_month:
                    counts["lastMonth"] += 1
            locations[_location(user)] += 1
        return {"total": len(users), **counts, "byLocation": dict(locations)}

    def reduce_newsletter(self, signups: list[dict], w: Windows) -> dict:
        last30 = last7 = 0
        for s in signups:
            when = _first_date(s, "createdAt", "subscribedAt", "subscriptionDate", "timestamp")
            if when is None:
                continue
            if when >= w.one_month_ago:
                last30 += 1
            if when >= w.seven_days_ago:
                last7 += 1
        return {"total": len(signups), "newLast30Days": last30, "newLast7Days": last7}

    # -- report --
    def build(self, now: datetime | None = None) -> dict:
        now = to_datetime(now) if now else utcnow()
        w = Windows.at(now)
        data, quality = self.collect()

        orders = self.reduce_orders(data[ORDERS], w)
        offline = self.reduce_offline_sales(data[OFFLINE_SALES], w)
        spend = self.reduce_spendings(data[SPENDINGS], w)
        products = self.reduce_products(data[PRODUCTS])
        users = self.reduce_users(data[USERS], w)
        newsletter = self.reduce_newsletter(data[NEWSLETTER_SIGNUPS], w)

        gross, product_rev, shipping = orders["gross"], orders["product"], orders["shipping"]
        expenses = spend["totals"]

        revenue = {k: gross.amount[k] + offline.amount[k] for k in PERIODS}
        product_revenue = {k: product_rev.amount[k] + offline.amount[k] for k in PERIODS}
        order_count = {k: gross.count[k] + offline.count[k] for k in PERIODS}
        net = {k: revenue[k] - expenses.amount[k] for k in PERIODS}

        def revenue_period(k: str) -> dict:
            return {
                "total": round2(revenue[k]),
                "online": round2(gross.amount[k]),
                "offline": round2(offline.amount[k]),
                "product": round2(product_revenue[k]),
                "onlineProduct": round2(product_rev.amount[k]),
                "shipping": round2(shipping.amount[k]),
            }

        growth = {
            "productRevenue": growth_rate(product_revenue["currentMonth"], product_revenue["lastMonth"]),
            "totalRevenue": growth_rate(revenue["currentMonth"], revenue["lastMonth"]),
            "orders": growth_rate(order_count["currentMonth"], order_count["lastMonth"]),
            "expenses": growth_rate(expenses.amount["currentMonth"], expenses.amount["lastMonth"]),
            "customers": growth_rate(users["currentMonth"], users["lastMonth"]),
        }
        aov = average_order_value(gross.amount["total"], gross.count["total"],
                                  offline.amount["total"], offline.count["total"])
        conversion = conversion_rate(order_count["total"], users["total"])

        report = {
            # headline fields consumed by the dashboard cards
            "totalOrders": gross.count["total"],
            "totalOfflineSales": offline.count["total"],
            "totalRevenue": round2(revenue["total"]),
            "orderStatusBreakdown": orders["statuses"],
            "totalCustomers": users["total"],
            "newCustomers": users["last30Days"],
            "totalProducts": products["total"],
            "outOfStockProducts": products["outOfStock"],
            "lowStockProducts": products["lowStock"],
            "outOfStock": products["outOfStockCount"],
            "lowStock": products["lowStockCount"],
            "totalSubscribers": newsletter["total"],
            "averageOrderValue": aov,

            "revenue": {
                **revenue_period("total"),
                "currentMonth": revenue_period("currentMonth"),
                "lastMonth": revenue_period("lastMonth"),
                "lastWeek": revenue_period("lastWeek"),
                "growth": {"product": growth["productRevenue"], "total": growth["totalRevenue"]},
            },
            "orders": {
                **order_count,
                "online": gross.count_dict(),
                "offline": offline.count_dict(),
                "growth": growth["orders"],
                "statusBreakdown": orders["statuses"],
                "paymentMethods": orders["payments"],
                "averageOrderValue": aov,
                "conversionRate": conversion,
            },
            "expenses": {
                **expenses.money_dict(),
                "growth": growth["expenses"],
                "byCategory": {k: round2(v) for k, v in spend["by_category"].items()},
            },
            "profit": {k if k != "total" else "net": round2(v) for k, v in net.items()},
            "customers": {
                "total": users["total"],
                "newLast30Days": users["last30Days"],
                "newLast7Days": users["last7Days"],
                "currentMonth": users["currentMonth"],
                "lastMonth": users["lastMonth"],
                "growth": growth["customers"],
                "byLocation": users["byLocation"],
            },
            "products": products,
            "newsletter": newsletter,
            "kpis": {
                "totalRevenue": round2(revenue["total"]),
                "totalExpenses": round2(expenses.amount["total"]),
                "netProfit": round2(net["total"]),
                "totalOrders": order_count["total"],
                "averageOrderValue": aov,
                "conversionRate": conversion,
                "totalCustomers": users["total"],
                "totalProducts": products["total"],
                "totalSubscribers": newsletter["total"],
                "revenueGrowth": growth["totalRevenue"],
                "productRevenueGrowth": growth["productRevenue"],
                "orderGrowth": growth["orders"],
                "expenseGrowth": growth["expenses"],
                "customerGrowth": growth["customers"],
            },
            "periods": w.to_dict(),
            "lastUpdated": now.isoformat(),
            "dataQuality": quality,
        }
        logger.info(
            f"stats built: orders={gross.count['total']} offline={offline.count['total']} "
            f"degraded={[k for k, ok in quality.items() if not ok]}"
        )
        return report
