"""
XAssetLib: Cross-Asset Model Builder and Calibrator

A modular library for:
- Building a joint Gaussian cross-asset model from per-factor
  parametrizations (IR LGM, FX and EQ Black-Scholes, INF Dodgson-Kainth,
  CR LGM-type intensity) and a factor correlation matrix
- Calibrating it stage by stage (IR, FX, EQ, INF) against swaption,
  FX option, equity option and CPI cap/floor baskets
- Analytic moments, exact and Euler state processes and Monte Carlo
  validation of the joint state

All times are year fractions from the market as-of date.
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    CrossAssetError,
    ConfigurationError,
    ConfigurationMismatchError,
    MissingMarketDataError,
    MarketDataNotFoundError,
    CalibrationToleranceExceeded,
    OptimizerNonConvergence,
    PreconditionViolation,
)
from .tenors import tenor_to_years

# Market
from .market import (
    YieldCurve,
    SurvivalCurve,
    InflationCurve,
    CurveHandle,
    flat_yield_curve,
    flat_survival_curve,
    flat_inflation_curve,
    Quote,
    VolatilitySurface,
    Market,
    DEFAULT_CONFIGURATION,
)

# Models
from .models import (
    AssetType,
    ParameterCurve,
    IrLgm1fParametrization,
    FxBsParametrization,
    EqBsParametrization,
    InfDkParametrization,
    CrLgm1fParametrization,
    SalvagingAlgorithm,
    CorrelationMatrixBuilder,
    EndCriteria,
    CalibrationResult,
    CrossAssetModel,
    Discretization,
    StateProcess,
    generate_paths,
)

# Pricing
from .pricing import (
    SwaptionHelper,
    FxOptionHelper,
    EqOptionHelper,
    CpiCapFloorHelper,
    AnalyticLgmSwaptionEngine,
    AnalyticXAssetLgmFxOptionEngine,
    AnalyticXAssetEqOptionEngine,
    AnalyticDkCpiCapFloorEngine,
    garman_kohlhagen,
)

# Builders
from .builders import (
    CalibrationType,
    ParamType,
    CalibrationStage,
    IrLgmData,
    FxBsData,
    EqBsData,
    InfDkData,
    CrLgmData,
    MarketConfigurations,
    CrossAssetModelData,
    LgmBuilder,
    FxBsBuilder,
    EqBsBuilder,
    InfDkBuilder,
    CrLgmBuilder,
    CrossAssetModelBuilder,
    BuilderState,
)

# Validation
from .validation import moment_check, sample_covariance, martingale_check

__all__ = [
    # Errors
    "CrossAssetError",
    "ConfigurationError",
    "ConfigurationMismatchError",
    "MissingMarketDataError",
    "MarketDataNotFoundError",
    "CalibrationToleranceExceeded",
    "OptimizerNonConvergence",
    "PreconditionViolation",
    "tenor_to_years",
    # Market
    "YieldCurve",
    "SurvivalCurve",
    "InflationCurve",
    "CurveHandle",
    "flat_yield_curve",
    "flat_survival_curve",
    "flat_inflation_curve",
    "Quote",
    "VolatilitySurface",
    "Market",
    "DEFAULT_CONFIGURATION",
    # Models
    "AssetType",
    "ParameterCurve",
    "IrLgm1fParametrization",
    "FxBsParametrization",
    "EqBsParametrization",
    "InfDkParametrization",
    "CrLgm1fParametrization",
    "SalvagingAlgorithm",
    "CorrelationMatrixBuilder",
    "EndCriteria",
    "CalibrationResult",
    "CrossAssetModel",
    "Discretization",
    "StateProcess",
    "generate_paths",
    # Pricing
    "SwaptionHelper",
    "FxOptionHelper",
    "EqOptionHelper",
    "CpiCapFloorHelper",
    "AnalyticLgmSwaptionEngine",
    "AnalyticXAssetLgmFxOptionEngine",
    "AnalyticXAssetEqOptionEngine",
    "AnalyticDkCpiCapFloorEngine",
    "garman_kohlhagen",
    # Builders
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
    "LgmBuilder",
    "FxBsBuilder",
    "EqBsBuilder",
    "InfDkBuilder",
    "CrLgmBuilder",
    "CrossAssetModelBuilder",
    "BuilderState",
    # Validation
    "moment_check",
    "sample_covariance",
    "martingale_check",
]
