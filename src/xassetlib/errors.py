"""
Error taxonomy for cross-asset model building and calibration.

- ConfigurationError: structural mismatches in model configuration
- MissingMarketDataError: a required curve/quote is absent from the market
- CalibrationToleranceExceeded: bootstrap residual above the configured tolerance
- OptimizerNonConvergence: global optimizer ran out of budget (opt-in only)
- PreconditionViolation: calibration invoked with an inconsistent basket/curve shape
"""

from typing import Optional


class CrossAssetError(Exception):
    """Base class for all errors raised by xassetlib."""


class ConfigurationError(CrossAssetError, ValueError):
    """Structural problem in the model configuration (sizes, names, correlation ranges)."""


class ConfigurationMismatchError(ConfigurationError):
    """Per-asset configuration inconsistent with the overall model (e.g. currency order)."""


class MissingMarketDataError(CrossAssetError, KeyError):
    """A curve or quote needed to build a sub-model is not available."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class MarketDataNotFoundError(MissingMarketDataError):
    """Raised by Market lookups for an unknown (kind, name, configuration) key."""

    def __init__(self, kind: str, name: str, configuration: str):
        super().__init__(f"no {kind} '{name}' in market configuration '{configuration}'")
        self.kind = kind
        self.name = name
        self.configuration = configuration


class CalibrationToleranceExceeded(CrossAssetError):
    """Bootstrap calibration finished with a residual above the tolerance."""

    def __init__(self, label: str, error: float, tolerance: float):
        super().__init__(
            f"{label}: calibration error {error:.6e} exceeds tolerance {tolerance:.6e}"
        )
        self.label = label
        self.error = error
        self.tolerance = tolerance


class OptimizerNonConvergence(CrossAssetError):
    """Global optimizer stopped without meeting its end criteria."""

    def __init__(self, message: str, residual: Optional[float] = None):
        super().__init__(message)
        self.residual = residual


class PreconditionViolation(CrossAssetError, ValueError):
    """Calibration or stage entry called with arguments violating its contract."""


__all__ = [
    "CrossAssetError",
    "ConfigurationError",
    "ConfigurationMismatchError",
    "MissingMarketDataError",
    "MarketDataNotFoundError",
    "CalibrationToleranceExceeded",
    "OptimizerNonConvergence",
    "PreconditionViolation",
]
