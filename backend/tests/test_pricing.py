from decimal import Decimal

import pytest

from carrental.services.pricing import RateCard, calculate_price
from carrental.services.validators import Duration

RATES = RateCard(hourly=Decimal("10"), daily=Decimal("100"), weekly=Decimal("600"))


def test_one_week_uses_weekly_rate():
    price = calculate_price(RATES, Duration(hours=168, days=7), "basic")
    assert price.base_price == Decimal("600.00")
    assert price.insurance_cost == Decimal("30.00")
    assert price.taxes == Decimal("63.00")
    assert price.fees == Decimal("25.00")
    assert price.total_price == Decimal("718.00")
    assert price.discount == Decimal("0.00")


def test_sub_day_is_priced_hourly():
    price = calculate_price(RATES, Duration(hours=3, days=0), "basic")
    assert price.base_price == Decimal("30.00")
    assert price.insurance_cost == Decimal("1.50")
    assert price.taxes == Decimal("3.15")
    assert price.fees == Decimal("10.00")
    assert price.total_price == Decimal("44.65")


def test_days_plus_leftover_hours():
    price = calculate_price(RATES, Duration(hours=25, days=2))
    # 2 days plus the one hour past a whole day
    assert price.base_price == Decimal("210.00")


def test_missing_weekly_rate_falls_back_to_seven_days():
    rates = RateCard(hourly=Decimal("10"), daily=Decimal("100"))
    price = calculate_price(rates, Duration(hours=200, days=9))
    # ceil(9 / 7) = 2 weeks
    assert price.base_price == Decimal("1400.00")


@pytest.mark.parametrize(
    "tier, cost",
    [("basic", "10.00"), ("comprehensive", "20.00"), ("premium", "30.00")],
)
def test_insurance_tiers(tier, cost):
    price = calculate_price(RATES, Duration(hours=48, days=2), tier)
    assert price.insurance_type == tier
    assert price.insurance_cost == Decimal(cost)


def test_unknown_tier_defaults_to_basic():
    price = calculate_price(RATES, Duration(hours=48, days=2), "gold")
    assert price.insurance_type == "basic"


def test_fields_are_rounded_independently():
    rates = RateCard(hourly=Decimal("10.05"), daily=Decimal("100"))
    price = calculate_price(rates, Duration(hours=3, days=0))
    assert price.base_price == Decimal("30.15")
    assert price.insurance_cost == Decimal("1.51")
    assert price.taxes == Decimal("3.17")
    # 44.82325 rounded once, not the sum of the rounded parts (44.83)
    assert price.total_price == Decimal("44.82")


def test_currency_passes_through():
    rates = RateCard(hourly=Decimal("5"), daily=Decimal("50"), currency="EUR")
    price = calculate_price(rates, Duration(hours=24, days=1))
    assert price.currency == "EUR"
    assert price.breakdown["rate"] == "50 EUR/day"
