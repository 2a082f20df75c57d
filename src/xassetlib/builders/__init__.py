"""
Builders package - configuration, sub-model builders and the cross-asset
model builder that calibrates the joint model stage by stage.
"""

from .config import (
    CalibrationType,
    ParamType,
    CalibrationStage,
    IrLgmData,
    FxBsData,
    EqBsData,
    InfDkData,
    CrLgmData,
    MarketConfigurations,
    CrossAssetModelData
)
from .observer import MarketObserver, is_stale
from .base import CalibrationMode, SubModelBuilder, choose_calibration
from .irlgm import LgmBuilder
from .fxbs import FxBsBuilder
from .eqbs import EqBsBuilder
from .infdk import InfDkBuilder
from .crlgm import CrLgmBuilder
from .crossasset import CrossAssetModelBuilder, BuilderState, SUB_BUILDERS

__all__ = [
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
    "MarketObserver",
    "is_stale",
    "CalibrationMode",
    "SubModelBuilder",
    "choose_calibration",
    "LgmBuilder",
    "FxBsBuilder",
    "EqBsBuilder",
    "InfDkBuilder",
    "CrLgmBuilder",
    "CrossAssetModelBuilder",
    "BuilderState",
    "SUB_BUILDERS",
]
