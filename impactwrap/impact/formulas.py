"""
Impact formula engine.

Converts a donor's total giving into impact metrics using Feeding
America style conversion factors, optionally overridden per
organization.

Algorithm (fixed order):
1. meals       = total_giving / dollars_per_meal
2. people      = ceil(meals / meals_per_person)
3. pounds      = meals * pounds_per_meal
4. co2_saved   = pounds * co2_per_pound
5. water_saved = pounds * water_per_pound
6. meals, pounds, co2_saved and water_saved are rounded half up;
   people is the ceiling taken before any rounding.

Arithmetic runs on Decimal built from str(value), so $10 at $0.10 per
meal is exactly 100 meals.
"""

import math
from dataclasses import dataclass, fields
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Optional, Union

from ..core.models import DonorRecord, OrganizationProfile


Number = Union[int, float, Decimal, str]

_ONE = Decimal(1)

# Digits kept while computing; wide enough that quantize never overflows
# for any amount and coefficient the store accepts.
PRECISION = 60


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ImpactCoefficients:
    """Conversion factors used by the engine."""
    dollars_per_meal: Decimal = Decimal("0.10")   # $1 = 10 meals
    meals_per_person: Decimal = Decimal("12")     # meals to help one person for a month
    pounds_per_meal: Decimal = Decimal("1.2")
    co2_per_pound: Decimal = Decimal("2.5")       # lbs CO2 per lb of food rescued
    water_per_pound: Decimal = Decimal("108")     # gallons per lb of food rescued


DEFAULT_COEFFICIENTS = ImpactCoefficients()


@dataclass(frozen=True)
class CoefficientOverrides:
    """Per-organization overrides; None keeps the default."""
    dollars_per_meal: Optional[Number] = None
    meals_per_person: Optional[Number] = None
    pounds_per_meal: Optional[Number] = None
    co2_per_pound: Optional[Number] = None
    water_per_pound: Optional[Number] = None

    @classmethod
    def from_organization(cls, organization: OrganizationProfile) -> "CoefficientOverrides":
        return cls(**organization.coefficient_values())

    def resolve(self, base: ImpactCoefficients = DEFAULT_COEFFICIENTS) -> ImpactCoefficients:
        values = {}
        for f in fields(ImpactCoefficients):
            override = getattr(self, f.name)
            values[f.name] = _dec(override) if override is not None else getattr(base, f.name)
        return ImpactCoefficients(**values)


@dataclass(frozen=True)
class ImpactMetrics:
    """Derived impact figures; recomputed on every read."""
    meals: int
    people: int
    pounds: int
    co2_saved: int
    water_saved: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "meals": self.meals,
            "people": self.people,
            "pounds": self.pounds,
            "co2Saved": self.co2_saved,
            "waterSaved": self.water_saved,
        }


def compute_impact(
    total_giving: Number,
    overrides: Optional[CoefficientOverrides] = None,
) -> ImpactMetrics:
    """
    Compute impact metrics for a giving total.

    The caller guarantees total_giving is finite and >= 0.

    Args:
        total_giving: Total giving in dollars
        overrides: Optional per-organization coefficient overrides

    Returns:
        ImpactMetrics

    Example:
        >>> compute_impact(10)
        ImpactMetrics(meals=100, people=9, pounds=120, co2_saved=300, water_saved=12960)
    """
    coeffs = overrides.resolve() if overrides is not None else DEFAULT_COEFFICIENTS

    with localcontext() as ctx:
        ctx.prec = PRECISION
        meals = _dec(total_giving) / coeffs.dollars_per_meal
        people = int((meals / coeffs.meals_per_person).to_integral_value(rounding=ROUND_CEILING))
        pounds = meals * coeffs.pounds_per_meal
        co2_saved = pounds * coeffs.co2_per_pound
        water_saved = pounds * coeffs.water_per_pound

        return ImpactMetrics(
            meals=_round_half_up(meals),
            people=people,
            pounds=_round_half_up(pounds),
            co2_saved=_round_half_up(co2_saved),
            water_saved=_round_half_up(water_saved),
        )


def impact_for_donor(donor: DonorRecord, organization: OrganizationProfile) -> ImpactMetrics:
    """Compute a donor's impact with their organization's coefficients."""
    return compute_impact(
        donor.total_giving,
        CoefficientOverrides.from_organization(organization),
    )


def meals_per_dollar(overrides: Optional[CoefficientOverrides] = None) -> int:
    """Meals provided by one dollar, rounded for display."""
    coeffs = overrides.resolve() if overrides is not None else DEFAULT_COEFFICIENTS
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return _round_half_up(_ONE / coeffs.dollars_per_meal)


def is_finite_amount(value: Any) -> bool:
    """True when value is a finite, non-negative number."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0
