"""
Term structures used by the cross-asset model.

The curve classes provide:
- YieldCurve: discount factors P(0,t) (also used for dividend yields)
- SurvivalCurve: survival probabilities S(0,t) from hazard rates
- InflationCurve: zero-coupon inflation index growth G(0,t)
- CurveHandle: relinkable indirection to any of the above

Conventions:
    - Times are year fractions from the market as-of date
    - Zero rates and hazard rates are continuously compounded
    - Zero inflation rates are annually compounded
    - All evaluation methods accept scalars or numpy arrays
"""

from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .interpolation import create_interpolator, Interpolator

ArrayLike = Union[float, np.ndarray]


def _scalar_or_array(values: np.ndarray) -> ArrayLike:
    return float(values) if np.ndim(values) == 0 else values


class _NodeCurve:
    """
    Curve defined by (time, rate) nodes with interpolation on the rate.
    
    Attributes:
        name: Currency, credit name or index name the curve belongs to
        interpolation_method: Name of interpolation method
    """
    
    def __init__(
        self,
        times: Sequence[float],
        rates: Sequence[float],
        name: str = "",
        interpolation_method: str = "linear"
    ):
        times = np.asarray(times, dtype=float)
        rates = np.asarray(rates, dtype=float)
        if times.shape != rates.shape or times.ndim != 1 or len(times) == 0:
            raise ValueError("Times and rates must be non-empty 1d arrays of same length")
        if np.any(times < 0):
            raise ValueError("Time must be non-negative")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Curve times must be strictly increasing")
        
        self.name = name
        self.interpolation_method = interpolation_method
        self._times = times
        self._rates = rates
        self._interpolator: Interpolator = create_interpolator(interpolation_method)
        self._interpolator.fit(times, rates)
    
    def rate(self, t: ArrayLike) -> ArrayLike:
        """Interpolated node rate at t."""
        return self._interpolator(np.asarray(t, dtype=float))
    
    def get_nodes(self) -> List[Tuple[float, float]]:
        return list(zip(self._times.tolist(), self._rates.tolist()))
    
    def __repr__(self) -> str:
        return (f"{type(self).__name__}(name={self.name!r}, nodes={len(self._times)}, "
                f"method={self.interpolation_method})")


class YieldCurve(_NodeCurve):
    """
    Discount curve on continuously compounded zero rates.
    
    P(0,t) = exp(-z(t) * t), with P(0,0) = 1.
    """
    
    def discount(self, t: ArrayLike) -> ArrayLike:
        """Discount factor P(0,t)."""
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _scalar_or_array(np.exp(-np.asarray(self.rate(t)) * t))
    
    def log_discount(self, t: ArrayLike) -> ArrayLike:
        """log P(0,t); cheaper than log(discount(t)) and exact at t = 0."""
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _scalar_or_array(-np.asarray(self.rate(t)) * t)
    
    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        return self.rate(t)
    
    def forward_rate(self, t1: float, t2: float) -> float:
        """Continuously compounded forward rate between t1 and t2."""
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")
        return (self.log_discount(t1) - self.log_discount(t2)) / (t2 - t1)


class SurvivalCurve(_NodeCurve):
    """
    Default probability curve on average hazard rates.
    
    S(0,t) = exp(-h(t) * t).
    """
    
    def survival_probability(self, t: ArrayLike) -> ArrayLike:
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _scalar_or_array(np.exp(-np.asarray(self.rate(t)) * t))
    
    def hazard_rate(self, t: ArrayLike) -> ArrayLike:
        return self.rate(t)


class InflationCurve(_NodeCurve):
    """
    Zero-coupon inflation curve.
    
    Index growth G(0,t) = I(t) / I(0) = (1 + pi(t))^t with pi the
    annually compounded zero inflation rate.
    """
    
    def growth(self, t: ArrayLike) -> ArrayLike:
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _scalar_or_array((1.0 + np.asarray(self.rate(t))) ** t)
    
    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        return self.rate(t)


class CurveHandle:
    """
    Relinkable reference to a curve.
    
    Engines and parametrizations hold the handle, never the curve, so a
    relink is seen by every holder at once. The handle records the market
    configuration it was last linked from.
    """
    
    def __init__(self, curve=None, configuration: Optional[str] = None):
        self._curve = curve
        self._configuration = configuration
        self._version = 0
    
    def link_to(self, curve, configuration: Optional[str] = None) -> None:
        self._curve = curve
        self._configuration = configuration
        self._version += 1
    
    @property
    def current(self):
        if self._curve is None:
            raise RuntimeError("empty curve handle")
        return self._curve
    
    @property
    def configuration(self) -> Optional[str]:
        return self._configuration
    
    @property
    def version(self) -> int:
        return self._version
    
    def empty(self) -> bool:
        return self._curve is None
    
    def __getattr__(self, item):
        # forward curve methods (discount, growth, ...) to the linked curve
        if item.startswith("_"):
            raise AttributeError(item)
        return getattr(self.current, item)
    
    def __repr__(self) -> str:
        return f"CurveHandle({self._curve!r}, configuration={self._configuration!r})"


_FLAT_TENORS = [0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 50.0]


def flat_yield_curve(rate: float, name: str = "") -> YieldCurve:
    """
    Create a flat yield curve.
    
    Args:
        rate: Flat continuously compounded rate
        name: Currency code
    """
    return YieldCurve(_FLAT_TENORS, [rate] * len(_FLAT_TENORS), name=name)


def flat_survival_curve(hazard_rate: float, name: str = "") -> SurvivalCurve:
    """Create a flat hazard rate curve."""
    return SurvivalCurve(_FLAT_TENORS, [hazard_rate] * len(_FLAT_TENORS), name=name)


def flat_inflation_curve(zero_rate: float, name: str = "") -> InflationCurve:
    """Create a flat zero inflation curve."""
    return InflationCurve(_FLAT_TENORS, [zero_rate] * len(_FLAT_TENORS), name=name)


__all__ = [
    "YieldCurve",
    "SurvivalCurve",
    "InflationCurve",
    "CurveHandle",
    "flat_yield_curve",
    "flat_survival_curve",
    "flat_inflation_curve",
]
