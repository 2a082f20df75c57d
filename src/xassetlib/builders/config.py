"""
Configuration objects for the cross-asset model builder.

Per asset class a list of per-factor configs is given. Each one selects
a calibration type (none, bootstrap, global), the parameter shape
(constant or piecewise) with initial values, which parameters are
calibrated and the option basket to calibrate to.

Option expiries and terms accept tenor strings ("1Y", "6M") or year
fractions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..errors import ConfigurationError
from ..market.market import DEFAULT_CONFIGURATION
from ..market.quotes import Quote
from ..models.calibration import EndCriteria
from ..models.correlation import SalvagingAlgorithm
from ..models.parametrization import AssetType
from ..tenors import tenors_to_years

Tenor = Union[str, float]


class CalibrationType(Enum):
    NONE = "None"
    BOOTSTRAP = "Bootstrap"
    GLOBAL = "BestFit"


class ParamType(Enum):
    CONSTANT = "Constant"
    PIECEWISE = "Piecewise"


class CalibrationStage(Enum):
    """Calibration stages, in execution order."""
    IR = "IR"
    FX = "FX"
    EQ = "EQ"
    INF = "INF"
    FINAL = "Final"


def _check_parameter(label: str, param_type: ParamType, times: Sequence[float],
                     values: Sequence[float]) -> None:
    if not values:
        raise ConfigurationError(f"{label}: at least one initial value is required")
    if param_type == ParamType.PIECEWISE and times and len(values) != len(times) + 1:
        raise ConfigurationError(
            f"{label}: piecewise parameter needs len(times) + 1 values "
            f"({len(times)} times, {len(values)} values)"
        )


@dataclass
class IrLgmData:
    """
    LGM configuration for one currency.
    
    Attributes:
        currency: Currency code
        calibration_type: NONE, BOOTSTRAP or GLOBAL
        calibrate_alpha: Calibrate the volatility
        alpha_type / alpha_times / alpha_values: Volatility shape and initial values
        calibrate_kappa: Calibrate the mean reversion
        kappa_type / kappa_times / kappa_values: Reversion shape and initial values
        shift_horizon: If positive, shift H so that H(shift_horizon) = 0
        scaling: Scaling of H
        option_expiries / option_terms / option_strikes: Swaption basket
            (strike None means ATM)
    """
    currency: str
    calibration_type: CalibrationType = CalibrationType.BOOTSTRAP
    calibrate_alpha: bool = True
    alpha_type: ParamType = ParamType.PIECEWISE
    alpha_times: List[float] = field(default_factory=list)
    alpha_values: List[float] = field(default_factory=lambda: [0.01])
    calibrate_kappa: bool = False
    kappa_type: ParamType = ParamType.CONSTANT
    kappa_times: List[float] = field(default_factory=list)
    kappa_values: List[float] = field(default_factory=lambda: [0.0])
    shift_horizon: float = 0.0
    scaling: float = 1.0
    option_expiries: List[Tenor] = field(default_factory=list)
    option_terms: List[Tenor] = field(default_factory=list)
    option_strikes: Optional[List[Optional[float]]] = None
    
    def __post_init__(self):
        label = f"IR config {self.currency}"
        _check_parameter(label + " alpha", self.alpha_type, self.alpha_times, self.alpha_values)
        _check_parameter(label + " kappa", self.kappa_type, self.kappa_times, self.kappa_values)
        if len(self.option_expiries) != len(self.option_terms):
            raise ConfigurationError(f"{label}: option expiries and terms differ in length")
        if self.option_strikes is not None and len(self.option_strikes) != len(self.option_expiries):
            raise ConfigurationError(f"{label}: option strikes and expiries differ in length")
        if self.scaling == 0:
            raise ConfigurationError(f"{label}: scaling must be non-zero")
        if self.shift_horizon < 0:
            raise ConfigurationError(f"{label}: shift horizon must be non-negative")
    
    @property
    def expiry_times(self) -> List[float]:
        return tenors_to_years(self.option_expiries)
    
    @property
    def term_times(self) -> List[float]:
        return tenors_to_years(self.option_terms)


@dataclass
class FxBsData:
    """
    Black-Scholes FX configuration for one foreign currency.
    
    Attributes:
        foreign_ccy: Foreign currency (must match the IR config at the same position + 1)
        domestic_ccy: Domestic currency (must match the first IR config)
        sigma_type / sigma_times / sigma_values: Volatility shape and initial values
        option_expiries / option_strikes: FX option basket (strike None means ATMF)
    """
    foreign_ccy: str
    domestic_ccy: str
    calibration_type: CalibrationType = CalibrationType.BOOTSTRAP
    calibrate_sigma: bool = True
    sigma_type: ParamType = ParamType.PIECEWISE
    sigma_times: List[float] = field(default_factory=list)
    sigma_values: List[float] = field(default_factory=lambda: [0.1])
    option_expiries: List[Tenor] = field(default_factory=list)
    option_strikes: Optional[List[Optional[float]]] = None
    
    def __post_init__(self):
        label = f"FX config {self.pair}"
        _check_parameter(label + " sigma", self.sigma_type, self.sigma_times, self.sigma_values)
        if self.option_strikes is not None and len(self.option_strikes) != len(self.option_expiries):
            raise ConfigurationError(f"{label}: option strikes and expiries differ in length")
    
    @property
    def pair(self) -> str:
        return self.foreign_ccy + self.domestic_ccy
    
    @property
    def expiry_times(self) -> List[float]:
        return tenors_to_years(self.option_expiries)


@dataclass
class EqBsData:
    """Black-Scholes equity configuration (same fields as FX, plus name and currency)."""
    name: str
    currency: str
    calibration_type: CalibrationType = CalibrationType.BOOTSTRAP
    calibrate_sigma: bool = True
    sigma_type: ParamType = ParamType.PIECEWISE
    sigma_times: List[float] = field(default_factory=list)
    sigma_values: List[float] = field(default_factory=lambda: [0.2])
    option_expiries: List[Tenor] = field(default_factory=list)
    option_strikes: Optional[List[Optional[float]]] = None
    
    def __post_init__(self):
        label = f"EQ config {self.name}"
        _check_parameter(label + " sigma", self.sigma_type, self.sigma_times, self.sigma_values)
        if self.option_strikes is not None and len(self.option_strikes) != len(self.option_expiries):
            raise ConfigurationError(f"{label}: option strikes and expiries differ in length")
    
    @property
    def expiry_times(self) -> List[float]:
        return tenors_to_years(self.option_expiries)


@dataclass
class InfDkData:
    """
    Dodgson-Kainth configuration for one inflation index.
    
    Attributes:
        index: Inflation index name
        currency: Currency of the index
        calibrate_alpha / calibrate_kappa: Which parameters to calibrate
        cap_floor: "Floor" or "Cap" for the basket instruments
        option_expiries / option_strikes: CPI basket (strike rate None means ATM)
    """
    index: str
    currency: str
    calibration_type: CalibrationType = CalibrationType.BOOTSTRAP
    calibrate_alpha: bool = True
    alpha_type: ParamType = ParamType.PIECEWISE
    alpha_times: List[float] = field(default_factory=list)
    alpha_values: List[float] = field(default_factory=lambda: [0.01])
    calibrate_kappa: bool = False
    kappa_type: ParamType = ParamType.CONSTANT
    kappa_times: List[float] = field(default_factory=list)
    kappa_values: List[float] = field(default_factory=lambda: [0.0])
    cap_floor: str = "Floor"
    option_expiries: List[Tenor] = field(default_factory=list)
    option_strikes: Optional[List[Optional[float]]] = None
    
    def __post_init__(self):
        label = f"INF config {self.index}"
        _check_parameter(label + " alpha", self.alpha_type, self.alpha_times, self.alpha_values)
        _check_parameter(label + " kappa", self.kappa_type, self.kappa_times, self.kappa_values)
        if self.cap_floor not in ("Cap", "Floor"):
            raise ConfigurationError(f"{label}: cap_floor must be 'Cap' or 'Floor'")
        if self.option_strikes is not None and len(self.option_strikes) != len(self.option_expiries):
            raise ConfigurationError(f"{label}: option strikes and expiries differ in length")
    
    @property
    def name(self) -> str:
        return self.index
    
    @property
    def expiry_times(self) -> List[float]:
        return tenors_to_years(self.option_expiries)


@dataclass
class CrLgmData:
    """LGM-type credit configuration; credit factors are not calibrated."""
    name: str
    currency: str
    alpha_type: ParamType = ParamType.CONSTANT
    alpha_times: List[float] = field(default_factory=list)
    alpha_values: List[float] = field(default_factory=lambda: [0.01])
    kappa_type: ParamType = ParamType.CONSTANT
    kappa_times: List[float] = field(default_factory=list)
    kappa_values: List[float] = field(default_factory=lambda: [0.0])
    
    def __post_init__(self):
        label = f"CR config {self.name}"
        _check_parameter(label + " alpha", self.alpha_type, self.alpha_times, self.alpha_values)
        _check_parameter(label + " kappa", self.kappa_type, self.kappa_times, self.kappa_values)


@dataclass
class MarketConfigurations:
    """Market configuration tag used by each calibration stage."""
    lgm_calibration: str = DEFAULT_CONFIGURATION
    fx_calibration: str = DEFAULT_CONFIGURATION
    eq_calibration: str = DEFAULT_CONFIGURATION
    inf_calibration: str = DEFAULT_CONFIGURATION
    final_model: str = DEFAULT_CONFIGURATION
    
    def for_stage(self, stage: CalibrationStage) -> str:
        return {
            CalibrationStage.IR: self.lgm_calibration,
            CalibrationStage.FX: self.fx_calibration,
            CalibrationStage.EQ: self.eq_calibration,
            # inflation engines are attached against the final model curves
            CalibrationStage.INF: self.final_model,
            CalibrationStage.FINAL: self.final_model,
        }[stage]


@dataclass
class CrossAssetModelData:
    """
    Full cross-asset model configuration.
    
    Attributes:
        domestic_currency: Measure currency, must be the first IR config's
        ir_configs, fx_configs, eq_configs, inf_configs, cr_configs: Per-factor configs
        correlations: Pairwise correlations keyed by factor names,
            e.g. ("IR:EUR", "FX:USDEUR") -> -0.2
        bootstrap_tolerance: Max RMSE accepted after bootstrap calibration
        salvaging: Treatment of a non PSD correlation matrix
        end_criteria: Optimizer stopping criteria
    """
    domestic_currency: str
    ir_configs: List[IrLgmData] = field(default_factory=list)
    fx_configs: List[FxBsData] = field(default_factory=list)
    eq_configs: List[EqBsData] = field(default_factory=list)
    inf_configs: List[InfDkData] = field(default_factory=list)
    cr_configs: List[CrLgmData] = field(default_factory=list)
    correlations: Dict[Tuple[str, str], Union[float, Quote]] = field(default_factory=dict)
    bootstrap_tolerance: float = 1e-4
    salvaging: SalvagingAlgorithm = SalvagingAlgorithm.NONE
    end_criteria: EndCriteria = field(default_factory=EndCriteria)
    
    def __post_init__(self):
        if self.bootstrap_tolerance <= 0:
            raise ConfigurationError("bootstrap tolerance must be positive")
    
    @property
    def currencies(self) -> List[str]:
        return [c.currency for c in self.ir_configs]


__all__ = [
    "AssetType",
    "CalibrationType",
    "ParamType",
    "CalibrationStage",
    "IrLgmData",
    "FxBsData",
    "EqBsData",
    "InfDkData",
    "CrLgmData",
    "MarketConfigurations",
    "CrossAssetModelData",
    "EndCriteria",
    "SalvagingAlgorithm",
]
