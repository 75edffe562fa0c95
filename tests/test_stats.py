import sqlite3

import pytest

from shopdesk.core.models import (
    NEWSLETTER_SIGNUPS, OFFLINE_SALES, ORDERS, SPENDINGS, USERS,
)
from shopdesk.core.services.stats import (
    StatsAggregator, Windows, average_order_value, classify_stock, conversion_rate,
    growth_rate,
)
from tests.helpers import add_product, utc

NOW = utc(2026, 3, 15, 12, 0)


@pytest.mark.parametrize("current, previous, expected", [
    (50, 0, 100.0),
    (0, 0, 0.0),
    (150, 200, -25.0),
    (152, 82, 85.4),
    (2, 3, -33.3),
])
def test_growth_rate(current, previous, expected):
    assert growth_rate(current, previous) == expected


def test_average_order_value_combines_channels():
    assert average_order_value(100, 2, 50, 1) == 50.0
    assert average_order_value(0, 0, 0, 0) == 0.0


def test_conversion_rate_without_users_is_zero():
    assert conversion_rate(5, 0) == 0.0
    assert conversion_rate(1, 3) == 33.33


@pytest.mark.parametrize("qty, expected", [(0, "out"), (-2, "out"), (5, "low"), (1, "low"), (6, None)])
def test_classify_stock(qty, expected):
    assert classify_stock(qty, 5) == expected


def test_windows_roll_back_across_year_boundary():
    w = Windows.at(utc(2026, 1, 10, 8, 0))
    assert w.start_of_current_month == utc(2026, 1, 1)
    assert w.start_of_last_month == utc(2025, 12, 1)
    assert w.end_of_last_month == utc(2025, 12, 31, 23, 59, 59, 999999)
    assert w.one_month_ago == utc(2025, 12, 11, 8, 0)


def test_windows_periods():
    w = Windows.at(NOW)
    assert w.periods(None) == ["total"]
    assert w.periods(utc(2026, 3, 10)) == ["total", "currentMonth", "lastWeek"]
    assert w.periods(utc(2026, 3, 2)) == ["total", "currentMonth"]
    assert w.periods(utc(2026, 2, 28, 23, 59)) == ["total", "lastMonth"]
    assert w.periods(utc(2026, 1, 31)) == ["total"]


@pytest.fixture
def seeded(store):
    add(store, ORDERS, totalAmount=100, status="Shipped", paymentMethod="cash",
        createdAt=utc(2026, 3, 10))
    add(store, ORDERS, totalAmount=50, status="Pending", paymentMethod="card",
        createdAt=utc(2026, 2, 20))
    add(store, ORDERS, totalAmount=0, status="New", createdAt=utc(2026, 1, 5))

    add(store, OFFLINE_SALES, totalAmount=60, saleDate=utc(2026, 3, 14))
    add(store, OFFLINE_SALES, totalAmount=40, saleDate=utc(2026, 2, 10))

    add(store, SPENDINGS, amount=30, category="marketing", date=utc(2026, 3, 2))
    add(store, SPENDINGS, amount=20, category="general", date=utc(2026, 2, 15))
    add(store, SPENDINGS, amount=10, category="marketing", date=utc(2025, 12, 1))

    add(store, USERS, createdAt=utc(2026, 3, 12), governorate="Tunis")
    add(store, USERS, createdAt=utc(2026, 2, 20), city="Sfax")
    add(store, USERS, createdAt=utc(2026, 1, 1), governorate="Sousse", city="X")
    add(store, USERS, email="legacy@example.com")

    add(store, NEWSLETTER_SIGNUPS, email="a@example.com", createdAt=utc(2026, 3, 14))
    add(store, NEWSLETTER_SIGNUPS, email="b@example.com", subscribedAt=utc(2026, 2, 20))
    add(store, NEWSLETTER_SIGNUPS, email="c@example.com", createdAt=utc(2025, 1, 1))

    add_product(store, category="tops", colors=[
        {"name": "Blue", "stock": {"S": 10, "M": 3}},
        {"name": "Red", "stock": {"S": 0, "L": 6}},
    ])
    add_product(store, name="Cap", price=15.5, colors=[{"name": "Black", "stock": {"One": 5}}])
    return store


def add(store, collection, **fields):
    return store.add(collection, fields)


def test_revenue_splits_shipping_and_channels(seeded):
    report = StatsAggregator(seeded).build(NOW)
    rev = report["revenue"]

    assert rev["total"] == 250.0
    assert rev["online"] == 150.0
    assert rev["offline"] == 100.0
    assert rev["onlineProduct"] == 134.0
    assert rev["product"] == 234.0
    # the zero-total order accrues no shipping
    assert rev["shipping"] == 16.0
    assert rev["currentMonth"] == {
        "total": 160.0, "online": 100.0, "offline": 60.0,
        "product": 152.0, "onlineProduct": 92.0, "shipping": 8.0,
    }
    assert rev["lastMonth"]["total"] == 90.0
    assert rev["lastWeek"]["total"] == 160.0
    assert rev["growth"] == {"product": 85.4, "total": 77.8}
    assert report["totalRevenue"] == 250.0


def test_orders_section(seeded):
    orders = StatsAggregator(seeded).build(NOW)["orders"]

    assert orders["total"] == 5
    assert orders["currentMonth"] == 2
    assert orders["lastMonth"] == 2
    assert orders["growth"] == 0.0
    assert orders["online"]["total"] == 3
    assert orders["offline"]["total"] == 2
    assert orders["statusBreakdown"] == {"Shipped": 1, "Pending": 1, "New": 1}
    assert orders["paymentMethods"] == {"cash": 1, "card": 1}
    assert orders["averageOrderValue"] == 50.0
    assert orders["conversionRate"] == 125.0


def test_expenses_and_profit(seeded):
    report = StatsAggregator(seeded).build(NOW)

    assert report["expenses"]["total"] == 60.0
    assert report["expenses"]["currentMonth"] == 30.0
    assert report["expenses"]["lastMonth"] == 20.0
    assert report["expenses"]["growth"] == 50.0
    assert report["expenses"]["byCategory"] == {"marketing": 40.0, "general": 20.0}
    assert report["profit"]["net"] == 190.0
    assert report["profit"]["currentMonth"] == 130.0
    assert report["profit"]["lastMonth"] == 70.0


def test_customers_and_newsletter(seeded):
    report = StatsAggregator(seeded).build(NOW)
    customers = report["customers"]

    assert customers["total"] == 4
    assert customers["newLast30Days"] == 2
    assert customers["newLast7Days"] == 1
    assert customers["currentMonth"] == 1
    assert customers["lastMonth"] == 1
    assert customers["growth"] == 0.0
    assert customers["byLocation"] == {"Tunis": 1, "Sfax": 1, "Sousse": 1, "Unknown": 1}
    assert report["newCustomers"] == 2

    assert report["newsletter"] == {"total": 3, "newLast30Days": 2, "newLast7Days": 1}


def test_product_stock_alerts(seeded):
    report = StatsAggregator(seeded, low_stock_threshold=5).build(NOW)
    products = report["products"]

    assert products["total"] == 2
    assert products["totalStock"] == 24
    assert products["inventoryValue"] == 457.5
    assert products["byCategory"] == {"tops": 1, "Uncategorized": 1}
    assert report["outOfStock"] == 1
    assert report["lowStock"] == 2

    out = report["outOfStockProducts"][0]
    assert out["name"] == "T-Shirt"
    assert out["outOfStockDetails"] == [{"color": "Red", "outOfStockSizes": {"S": 0}}]
    low_names = sorted(p["name"] for p in report["lowStockProducts"])
    assert low_names == ["Cap", "T-Shirt"]


def test_report_metadata(seeded):
    report = StatsAggregator(seeded).build(NOW)

    assert report["lastUpdated"] == "2026-03-15T12:00:00+00:00"
    assert report["periods"]["startOfCurrentMonth"] == "2026-03-01T00:00:00+00:00"
    assert report["periods"]["oneMonthAgo"] == "2026-02-13T12:00:00+00:00"
    assert all(report["dataQuality"].values())
    assert report["kpis"]["netProfit"] == 190.0
    assert report["kpis"]["totalOrders"] == 5


def test_empty_store_reports_zeros(store):
    report = StatsAggregator(store).build(NOW)

    assert report["totalRevenue"] == 0.0
    assert report["averageOrderValue"] == 0.0
    assert report["revenue"]["growth"] == {"product": 0.0, "total": 0.0}
    assert report["orders"]["conversionRate"] == 0.0
    assert report["outOfStockProducts"] == []


def test_failing_collection_degrades_only_its_section(seeded, monkeypatch):
    real_all = seeded.all

    def flaky_all(collection):
        if collection == SPENDINGS:
            raise sqlite3.OperationalError("disk I/O error")
        return real_all(collection)

    monkeypatch.setattr(seeded, "all", flaky_all)
    report = StatsAggregator(seeded).build(NOW)

    assert report["dataQuality"][SPENDINGS] is False
    assert report["dataQuality"][ORDERS] is True
    assert report["expenses"]["total"] == 0.0
    assert report["expenses"]["byCategory"] == {}
    assert report["profit"]["net"] == 250.0
    assert report["totalRevenue"] == 250.0


def test_shipping_fee_is_configurable(store):
    add(store, ORDERS, totalAmount=5, createdAt=utc(2026, 3, 10))
    rev = StatsAggregator(store, shipping_fee=10).build(NOW)["revenue"]

    assert rev["onlineProduct"] == 0.0
    assert rev["shipping"] == 10.0


def test_fractional_amounts_sum_without_float_drift(store):
    for day in range(1, 11):
        add(store, ORDERS, totalAmount=0.1, createdAt=utc(2026, 3, day))
        add(store, OFFLINE_SALES, totalAmount=19.99, saleDate=utc(2026, 3, day))
        add(store, SPENDINGS, amount=0.1, category="supplies", date=utc(2026, 3, day))

    report = StatsAggregator(store).build(NOW)

    assert report["revenue"]["total"] == 200.9
    assert report["revenue"]["online"] == 1.0
    assert report["revenue"]["offline"] == 199.9
    assert report["revenue"]["shipping"] == 80.0
    assert report["expenses"]["total"] == 1.0
    assert report["profit"]["net"] == 199.9
    assert report["profit"]["currentMonth"] == 199.9
    # 200.9 / 20 = 10.045, rounded half up
    assert report["averageOrderValue"] == 10.05


def test_huge_stored_amount_does_not_break_report(store):
    add(store, ORDERS, totalAmount=1e30, status="New", createdAt=utc(2026, 3, 10))
    add(store, SPENDINGS, amount=1e30, date=utc(2026, 3, 11))

    report = StatsAggregator(store).build(NOW)

    assert report["totalRevenue"] == 1e30
    assert report["averageOrderValue"] == 1e30
    assert report["expenses"]["total"] == 1e30
    assert report["revenue"]["growth"]["total"] == 100.0
    assert all(report["dataQuality"].values())
