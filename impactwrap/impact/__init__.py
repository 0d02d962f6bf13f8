"""
Impact formula engine: giving totals to meals, people and savings.
"""

from .formulas import (
    DEFAULT_COEFFICIENTS,
    CoefficientOverrides,
    ImpactCoefficients,
    ImpactMetrics,
    compute_impact,
    impact_for_donor,
    meals_per_dollar,
)

__all__ = [
    "DEFAULT_COEFFICIENTS",
    "CoefficientOverrides",
    "ImpactCoefficients",
    "ImpactMetrics",
    "compute_impact",
    "impact_for_donor",
    "meals_per_dollar",
]
