"""
Interpolation methods for term structures.

Provides:
- LinearInterpolator: linear interpolation with flat extrapolation
- LogLinearInterpolator: linear interpolation of log values (piecewise flat forwards)

Both are vectorised: they accept scalars or numpy arrays of year fractions
and return the same shape.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]


class Interpolator(ABC):
    """Abstract base class for term structure interpolation."""
    
    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None
    
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.
        
        Args:
            times: Array of year fractions
            values: Array of node values
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if times.shape != values.shape:
            raise ValueError("Times and values must have same length")
        if len(times) < 1:
            raise ValueError("Need at least 1 point for interpolation")
        
        idx = np.argsort(times)
        self.times = times[idx]
        self.values = self._transform(values[idx])
    
    def _transform(self, values: np.ndarray) -> np.ndarray:
        return values
    
    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
    
    @abstractmethod
    def interpolate(self, t: ArrayLike) -> ArrayLike:
        """Interpolate at t (scalar or array)."""
    
    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.interpolate(t)


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.
    
    Extrapolates flat beyond boundaries.
    """
    
    def interpolate(self, t: ArrayLike) -> ArrayLike:
        self._check_fitted()
        result = np.interp(t, self.times, self.values)
        return float(result) if np.ndim(result) == 0 else result


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation on positive values.
    
    Extrapolates flat in log space, i.e. the last node value is held.
    """
    
    def _transform(self, values: np.ndarray) -> np.ndarray:
        if np.any(values <= 0):
            raise ValueError("Log-linear interpolation needs positive values")
        return np.log(values)
    
    def interpolate(self, t: ArrayLike) -> ArrayLike:
        self._check_fitted()
        result = np.exp(np.interp(t, self.times, self.values))
        return float(result) if np.ndim(result) == 0 else result


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create an interpolator by name.
    
    Args:
        method: One of "linear", "log_linear"
        
    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")
    
    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator()
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
