"""
Models package - parametrizations, correlation, the cross-asset model,
its moments, state process and calibration drivers.
"""

from .parametrization import (
    AssetType,
    ParameterCurve,
    make_parameter,
    Parametrization,
    IrLgm1fParametrization,
    FxBsParametrization,
    EqBsParametrization,
    InfDkParametrization,
    CrLgm1fParametrization
)
from .correlation import (
    SalvagingAlgorithm,
    CorrelationMatrixBuilder,
    factor_name,
    factor_names,
    salvage_correlation,
    matrix_sqrt
)
from .calibration import EndCriteria, CalibrationResult
from .crossasset import CrossAssetModel
from .process import Discretization, StateProcess, generate_paths

__all__ = [
    "AssetType",
    "ParameterCurve",
    "make_parameter",
    "Parametrization",
    "IrLgm1fParametrization",
    "FxBsParametrization",
    "EqBsParametrization",
    "InfDkParametrization",
    "CrLgm1fParametrization",
    "SalvagingAlgorithm",
    "CorrelationMatrixBuilder",
    "factor_name",
    "factor_names",
    "salvage_correlation",
    "matrix_sqrt",
    "EndCriteria",
    "CalibrationResult",
    "CrossAssetModel",
    "Discretization",
    "StateProcess",
    "generate_paths",
]
