# carrental/services/pricing.py
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from carrental.services.validators import Duration

INSURANCE_RATES: Dict[str, Decimal] = {
    "basic": Decimal("0.05"),
    "comprehensive": Decimal("0.10"),
    "premium": Decimal("0.15"),
}
DEFAULT_INSURANCE = "basic"

TAX_RATE = Decimal("0.10")
DAILY_FEE = Decimal("25")
HOURLY_FEE = Decimal("10")

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class RateCard:
    hourly: Decimal
    daily: Decimal
    weekly: Optional[Decimal] = None
    monthly: Optional[Decimal] = None
    currency: str = "USD"

    @classmethod
    def from_car(cls, car) -> "RateCard":
        return cls(
            hourly=Decimal(car.hourly_rate),
            daily=Decimal(car.daily_rate),
            weekly=Decimal(car.weekly_rate) if car.weekly_rate is not None else None,
            monthly=Decimal(car.monthly_rate) if car.monthly_rate is not None else None,
            currency=car.currency,
        )


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    insurance_cost: Decimal
    taxes: Decimal
    fees: Decimal
    total_price: Decimal
    currency: str
    insurance_type: str
    discount: Decimal = Decimal("0.00")
    breakdown: Dict[str, str] = field(default_factory=dict)


def money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _base_price(rates: RateCard, duration: Duration) -> Decimal:
    hours, days = duration.hours, duration.days

    if days >= 7:
        weeks = math.ceil(days / 7)
        weekly = rates.weekly if rates.weekly is not None else rates.daily * 7
        return weekly * weeks

    if days >= 1:
        base = rates.daily * days
        extra_hours = hours % 24
        if extra_hours > 0:
            base += rates.hourly * extra_hours
        return base

    return rates.hourly * hours


def calculate_price(
    rates: RateCard,
    duration: Duration,
    insurance_type: str = DEFAULT_INSURANCE,
) -> PriceBreakdown:
    """
    Price a validated duration against a rate card.

    Every monetary field is rounded on its own from the unrounded amounts,
    so e.g. taxes are 10% of (base + insurance) before either is rounded.
    """
    if insurance_type not in INSURANCE_RATES:
        insurance_type = DEFAULT_INSURANCE
    insurance_rate = INSURANCE_RATES[insurance_type]

    base = _base_price(rates, duration)
    insurance = base * insurance_rate
    taxes = (base + insurance) * TAX_RATE
    fees = DAILY_FEE if duration.days >= 1 else HOURLY_FEE
    total = base + insurance + taxes + fees

    if duration.days >= 1:
        rate_text = f"{rates.daily} {rates.currency}/day"
    else:
        rate_text = f"{rates.hourly} {rates.currency}/hour"

    return PriceBreakdown(
        base_price=money(base),
        insurance_cost=money(insurance),
        taxes=money(taxes),
        fees=money(fees),
        total_price=money(total),
        currency=rates.currency,
        insurance_type=insurance_type,
        breakdown={
            "duration": f"{duration.days} days, {duration.hours % 24} hours",
            "rate": rate_text,
            "insurance": f"{insurance_type} ({int(insurance_rate * 100)}%)",
            "taxRate": f"{int(TAX_RATE * 100)}%",
        },
    )
