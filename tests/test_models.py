from decimal import Decimal

import pytest

from shopdesk.core.models import MAX_AMOUNT, money, parse_amount, quantize, round2
from shopdesk.core.services.stats import growth_rate


def test_round2_handles_amounts_past_default_precision():
    assert round2(Decimal("1e30")) == 1e30
    assert round2(1e30) == 1e30
    assert quantize(Decimal("123456789012345678901234567890.125"), "0.01") == \
        Decimal("123456789012345678901234567890.13")


@pytest.mark.parametrize("value, expected", [
    ("0.005", 0.01), ("2.675", 2.68), ("-0.005", -0.01), (None, 0.0), ("junk", 0.0),
])
def test_round2_is_half_up(value, expected):
    assert round2(money(value)) == expected


def test_growth_rate_on_huge_values():
    assert growth_rate(Decimal("1e30"), 1) == 1e32
    assert growth_rate(1, Decimal("1e30")) == -100.0


@pytest.mark.parametrize("value", ["1e30", 1e30, "-1000000000.01", "NaN", "Infinity", True, [1]])
def test_parse_amount_rejects(value):
    assert parse_amount(value) is None


def test_parse_amount_accepts_up_to_ceiling():
    assert parse_amount("1000000000") == MAX_AMOUNT
    assert parse_amount(" 12.50 ") == Decimal("12.50")
    assert parse_amount(0) == Decimal("0")
