"""
Market package - curves, quotes and the keyed market store.

Provides:
- YieldCurve, SurvivalCurve, InflationCurve: term structures
- CurveHandle: relinkable curve reference
- Quote, VolatilitySurface: versioned market quotes
- Market: (kind, name, configuration) keyed store
"""

from .interpolation import (
    Interpolator,
    LinearInterpolator,
    LogLinearInterpolator,
    create_interpolator
)
from .curves import (
    YieldCurve,
    SurvivalCurve,
    InflationCurve,
    CurveHandle,
    flat_yield_curve,
    flat_survival_curve,
    flat_inflation_curve
)
from .quotes import Quote, VolatilitySurface, as_quote
from .market import Market, DEFAULT_CONFIGURATION, fx_pair

__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
    "YieldCurve",
    "SurvivalCurve",
    "InflationCurve",
    "CurveHandle",
    "flat_yield_curve",
    "flat_survival_curve",
    "flat_inflation_curve",
    "Quote",
    "VolatilitySurface",
    "as_quote",
    "Market",
    "DEFAULT_CONFIGURATION",
    "fx_pair",
]
