"""
Common behaviour of the per-asset-class model builders.

A sub-model builder reads its market inputs for one market configuration,
builds a parametrization seeded from configuration plus a calibration
basket, and records the versions of everything it read so that
``requires_recalibration`` can tell when those inputs moved.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Hashable, List, Optional, Sequence

from ..errors import ConfigurationError, PreconditionViolation
from ..market.curves import CurveHandle
from ..market.market import Market
from ..models.calibration import (
    CalibrationResult,
    EndCriteria,
    calibration_errors,
    rmse,
)
from ..models.parametrization import AssetType, ParameterCurve, make_parameter
from .config import CalibrationType, ParamType
from .observer import MarketObserver

logger = logging.getLogger(__name__)


class CalibrationMode(Enum):
    """What gets calibrated for one factor, and how."""
    VOLATILITY_ITERATIVE = "VolatilityIterative"
    VOLATILITY_GLOBAL = "VolatilityGlobal"
    REVERSION_ITERATIVE = "ReversionIterative"
    REVERSION_GLOBAL = "ReversionGlobal"
    JOINT_GLOBAL = "JointGlobal"
    
    @property
    def is_iterative(self) -> bool:
        return self in (CalibrationMode.VOLATILITY_ITERATIVE, CalibrationMode.REVERSION_ITERATIVE)


def choose_calibration(
    calibration_type: CalibrationType,
    calibrate_volatility: bool,
    volatility_type: ParamType,
    calibrate_reversion: bool = False,
    reversion_type: ParamType = ParamType.CONSTANT,
    label: str = ""
) -> Optional[CalibrationMode]:
    """
    Pick the calibration mode of a factor from its configuration.
    
    Iterative modes need a piecewise parameter; for a constant one the
    global optimizer is used instead and the fallback is logged.
    Calibrating volatility and reversion together is always global.
    
    Returns:
        The mode, or None when nothing is calibrated
    """
    if calibration_type == CalibrationType.NONE:
        return None
    if not (calibrate_volatility or calibrate_reversion):
        return None
    if calibrate_volatility and calibrate_reversion:
        return CalibrationMode.JOINT_GLOBAL
    
    if calibrate_volatility:
        piecewise = volatility_type == ParamType.PIECEWISE
        iterative, fallback = CalibrationMode.VOLATILITY_ITERATIVE, CalibrationMode.VOLATILITY_GLOBAL
    else:
        piecewise = reversion_type == ParamType.PIECEWISE
        iterative, fallback = CalibrationMode.REVERSION_ITERATIVE, CalibrationMode.REVERSION_GLOBAL
    
    if calibration_type == CalibrationType.BOOTSTRAP:
        if piecewise:
            return iterative
        logger.warning("%s: bootstrap needs a piecewise parameter, "
                       "falling back to global calibration", label)
    return fallback


def build_parameter(
    name: str,
    param_type: ParamType,
    times: Sequence[float],
    values: Sequence[float],
    bootstrap: bool = False,
    expiries: Sequence[float] = ()
) -> ParameterCurve:
    """
    Initial parameter curve.
    
    A bootstrapped piecewise parameter gets one segment per basket expiry
    (breakpoints at all expiries but the last). Unless one value per
    expiry is configured, every segment starts at the first value.
    
    Raises:
        PreconditionViolation: if a bootstrap basket has repeated expiries
    """
    piecewise = param_type == ParamType.PIECEWISE
    if piecewise and bootstrap:
        expiries = list(expiries)
        if any(b <= a for a, b in zip(expiries, expiries[1:])):
            raise PreconditionViolation(
                f"bootstrap of {name} needs strictly increasing basket expiries, got {expiries}"
            )
        times = expiries[:-1]
        if len(values) != len(expiries):
            values = [values[0]] * len(expiries)
    return make_parameter(piecewise, times, values, name)


def run_calibration(
    model,
    asset_type: AssetType,
    i: int,
    mode: CalibrationMode,
    helpers: Sequence,
    end_criteria: Optional[EndCriteria] = None,
    strict: bool = False
) -> CalibrationResult:
    """Dispatch a calibration mode to the model's calibration routines."""
    if mode == CalibrationMode.JOINT_GLOBAL:
        return model.calibrate(asset_type, i, ["alpha", "kappa"], helpers, end_criteria, strict)
    
    if asset_type == AssetType.IR:
        if mode == CalibrationMode.VOLATILITY_ITERATIVE:
            return model.calibrate_ir_lgm1f_volatilities_iterative(i, helpers, end_criteria)
        if mode == CalibrationMode.REVERSION_ITERATIVE:
            return model.calibrate_ir_lgm1f_reversions_iterative(i, helpers, end_criteria)
        return model.calibrate_ir_lgm1f_global(
            i, helpers, end_criteria,
            calibrate_alpha=mode == CalibrationMode.VOLATILITY_GLOBAL,
            calibrate_kappa=mode == CalibrationMode.REVERSION_GLOBAL,
            strict=strict,
        )
    
    if asset_type in (AssetType.FX, AssetType.EQ):
        if mode == CalibrationMode.VOLATILITY_ITERATIVE:
            return model.calibrate_bs_volatilities_iterative(asset_type, i, helpers, end_criteria)
        if mode == CalibrationMode.VOLATILITY_GLOBAL:
            return model.calibrate_bs_volatilities_global(asset_type, i, helpers, end_criteria,
                                                          strict)
    
    if asset_type == AssetType.INF:
        if mode == CalibrationMode.VOLATILITY_ITERATIVE:
            return model.calibrate_inf_dk_volatilities_iterative(i, helpers, end_criteria)
        if mode == CalibrationMode.VOLATILITY_GLOBAL:
            return model.calibrate_inf_dk_volatilities_global(i, helpers, end_criteria, strict)
        if mode == CalibrationMode.REVERSION_ITERATIVE:
            return model.calibrate_inf_dk_reversions_iterative(i, helpers, end_criteria)
        if mode == CalibrationMode.REVERSION_GLOBAL:
            return model.calibrate_inf_dk_reversions_global(i, helpers, end_criteria, strict)
    
    raise ConfigurationError(f"{mode.value} calibration is not available for "
                             f"{asset_type.value} factors")


def log_basket(label: str, helpers: Sequence) -> None:
    """Log model value, market value and difference per instrument."""
    for n, helper in enumerate(helpers):
        model_value = helper.model_value()
        market_value = helper.market_value()
        logger.debug("%s #%d expiry %.4f: model %.8f market %.8f diff %.3e", label, n,
                     helper.expiry, model_value, market_value, model_value - market_value)


class SubModelBuilder:
    """
    Base class for the IR, FX, EQ, INF and CR sub-model builders.
    
    Attributes:
        market: Market the inputs are read from
        configuration: Market configuration tag used for every read
        calibration_mode: Calibration chosen from the configuration (None if
            the factor is not calibrated)
    """
    
    asset_type: AssetType = None
    
    def __init__(self, market: Market, configuration: str):
        self.market = market
        self.configuration = configuration
        self.calibration_mode: Optional[CalibrationMode] = None
        self._observer = MarketObserver(market)
        self._parametrization = None
        self._basket: List = []
        self._discount_curve = CurveHandle()
        self._error: Optional[float] = None
        self._result: Optional[CalibrationResult] = None
    
    def _read(self, kind: str, name: str, getter: Callable):
        """Look up a market entry under this builder's configuration and watch it."""
        value = getter(name, self.configuration)
        self._observer.watch(kind, name, self.configuration)
        return value
    
    def _option_rows(self, label: str, expiries: Sequence[float],
                     *columns: Optional[Sequence]) -> List[tuple]:
        """Basket rows (expiry, *columns) sorted by expiry; None columns mean default strikes."""
        if self.calibration_mode is not None and not expiries:
            raise ConfigurationError(f"{label}: calibration requested without option expiries")
        filled = [c if c is not None else [None] * len(expiries) for c in columns]
        return sorted(zip(expiries, *filled), key=lambda row: row[0])
    
    def _finish(self) -> None:
        self._observer.snapshot()
        logger.info("built %s parametrization %s (%s, configuration %s, %d instruments)",
                    self.asset_type.value, self.name,
                    self.calibration_mode.value if self.calibration_mode else "no calibration",
                    self.configuration, len(self._basket))
    
    @property
    def name(self) -> str:
        return self._parametrization.name
    
    @property
    def parametrization(self):
        return self._parametrization
    
    @property
    def basket(self) -> List:
        return list(self._basket)
    
    @property
    def discount_curve(self) -> CurveHandle:
        return self._discount_curve
    
    @property
    def calibration_result(self) -> Optional[CalibrationResult]:
        return self._result
    
    def error(self) -> float:
        """Latest calibration RMSE of model minus market values over the basket."""
        if self._error is not None:
            return self._error
        if self._basket and all(h.engine is not None for h in self._basket):
            return rmse(calibration_errors(self._basket))
        return 0.0
    
    def set_calibration(self, result: Optional[CalibrationResult], error: float) -> None:
        """Record the outcome of a calibration run against this builder's basket."""
        self._result = result
        self._error = float(error)
        if result is not None and result.parametrization is not None:
            self._parametrization = result.parametrization
    
    def observed_versions(self) -> Dict[Hashable, int]:
        return self._observer.versions()
    
    def requires_recalibration(self) -> bool:
        return self._observer.has_changed()
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, configuration={self.configuration!r})"


__all__ = [
    "CalibrationMode",
    "SubModelBuilder",
    "build_parameter",
    "choose_calibration",
    "run_calibration",
    "log_basket",
]
