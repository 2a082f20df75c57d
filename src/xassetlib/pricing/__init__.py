"""
Pricing package - option formulas, calibration helpers and analytic
engines bound to the cross-asset model.
"""

from .black import (
    bachelier_call,
    bachelier_put,
    black_formula,
    black76_call,
    black76_put,
    garman_kohlhagen
)
from .helpers import (
    CalibrationHelper,
    SwaptionHelper,
    FxOptionHelper,
    EqOptionHelper,
    CpiCapFloorHelper
)
from .engines import (
    AnalyticLgmSwaptionEngine,
    AnalyticXAssetLgmFxOptionEngine,
    AnalyticXAssetEqOptionEngine,
    AnalyticDkCpiCapFloorEngine
)

__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black_formula",
    "black76_call",
    "black76_put",
    "garman_kohlhagen",
    "CalibrationHelper",
    "SwaptionHelper",
    "FxOptionHelper",
    "EqOptionHelper",
    "CpiCapFloorHelper",
    "AnalyticLgmSwaptionEngine",
    "AnalyticXAssetLgmFxOptionEngine",
    "AnalyticXAssetEqOptionEngine",
    "AnalyticDkCpiCapFloorEngine",
]
