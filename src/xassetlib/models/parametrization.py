"""
Per-factor parametrizations of the cross-asset model.

A parametrization bundles the time-dependent parameter curves of one
stochastic factor together with its currency/name tag and the market
term structure it is anchored to:

- IrLgm1fParametrization: LGM one-factor rates (alpha, kappa, shift, scaling)
- FxBsParametrization: Black-Scholes log FX spot (sigma)
- EqBsParametrization: Black-Scholes log equity spot (sigma)
- InfDkParametrization: Dodgson-Kainth inflation (alpha, kappa)
- CrLgm1fParametrization: LGM-type credit intensity (alpha, kappa)

Parametrizations are treated as values. Calibration never mutates one in
place; ``with_values`` returns an updated copy that the model installs.
"""

import copy
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..market.curves import CurveHandle
from ..market.quotes import Quote

ArrayLike = Union[float, np.ndarray]

# Gauss-Legendre rule for H with non piecewise-constant reversion
_GL_X, _GL_W = np.polynomial.legendre.leggauss(32)


class AssetType(Enum):
    """Asset class of a factor; the order is the state layout order."""
    IR = "IR"
    FX = "FX"
    EQ = "EQ"
    INF = "INF"
    CR = "CR"


ASSET_ORDER = [AssetType.IR, AssetType.FX, AssetType.EQ, AssetType.INF, AssetType.CR]


def _out(values: np.ndarray, t) -> ArrayLike:
    return float(values) if np.ndim(t) == 0 else values


class ParameterCurve:
    """
    Piecewise function of time used for model parameters.
    
    Three families are supported:
        - constant: one value, no breakpoints
        - piecewise constant: values[i] on [times[i-1], times[i]), the last
          value extends to infinity; len(values) == len(times) + 1
        - piecewise linear: linear between (times[i], values[i]) nodes,
          flat before the first and after the last node
    
    Evaluation, integral and integral of the square are closed form and
    vectorised over t.
    """
    
    CONSTANT = "constant"
    PIECEWISE_CONSTANT = "piecewise_constant"
    PIECEWISE_LINEAR = "piecewise_linear"
    
    def __init__(self, kind: str, times: Sequence[float], values: Sequence[float], name: str = ""):
        times = np.asarray(times, dtype=float).ravel()
        values = np.asarray(values, dtype=float).ravel()
        if np.any(np.diff(times) <= 0):
            raise ValueError(f"parameter {name}: times must be strictly increasing")
        if np.any(times < 0):
            raise ValueError(f"parameter {name}: times must be non-negative")
        
        if kind == self.CONSTANT:
            if len(times) != 0 or len(values) != 1:
                raise ValueError(f"parameter {name}: constant curve takes one value and no times")
            grid, start, slope = np.zeros(1), values.copy(), np.zeros(1)
        elif kind == self.PIECEWISE_CONSTANT:
            if len(values) != len(times) + 1:
                raise ValueError(
                    f"parameter {name}: piecewise constant curve needs len(times) + 1 values, "
                    f"got {len(values)} values for {len(times)} times"
                )
            if len(times) and times[0] <= 0:
                raise ValueError(f"parameter {name}: first breakpoint must be positive")
            grid = np.concatenate([[0.0], times])
            start, slope = values.copy(), np.zeros(len(values))
        elif kind == self.PIECEWISE_LINEAR:
            if len(values) != len(times) or len(values) == 0:
                raise ValueError(f"parameter {name}: piecewise linear curve needs one value per time")
            if times[0] > 0:
                grid = np.concatenate([[0.0], times])
                start = np.concatenate([[values[0]], values])
            else:
                grid, start = times.copy(), values.copy()
            slope = np.zeros(len(grid))
            slope[:-1] = np.diff(start) / np.diff(grid)
        else:
            raise ValueError(f"Unknown parameter curve kind: {kind}")
        
        self.kind = kind
        self.name = name
        self._times = times
        self._values = values
        self._grid = grid
        self._start = start
        self._slope = slope
        
        lengths = np.diff(grid)
        v, s = start[:-1], slope[:-1]
        self._cum = np.concatenate([[0.0], np.cumsum(v * lengths + 0.5 * s * lengths**2)])
        self._cum_sq = np.concatenate([[0.0], np.cumsum(
            v**2 * lengths + v * s * lengths**2 + s**2 * lengths**3 / 3.0
        )])
    
    @classmethod
    def constant(cls, value: float, name: str = "") -> "ParameterCurve":
        return cls(cls.CONSTANT, [], [value], name)
    
    @classmethod
    def piecewise_constant(cls, times: Sequence[float], values: Sequence[float],
                           name: str = "") -> "ParameterCurve":
        return cls(cls.PIECEWISE_CONSTANT, times, values, name)
    
    @classmethod
    def piecewise_linear(cls, times: Sequence[float], values: Sequence[float],
                         name: str = "") -> "ParameterCurve":
        return cls(cls.PIECEWISE_LINEAR, times, values, name)
    
    @property
    def times(self) -> np.ndarray:
        return self._times.copy()
    
    @property
    def values(self) -> np.ndarray:
        return self._values.copy()
    
    @property
    def size(self) -> int:
        return len(self._values)
    
    @property
    def is_piecewise(self) -> bool:
        return self.kind != self.CONSTANT
    
    def _locate(self, t):
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        k = np.searchsorted(self._grid, t, side="right") - 1
        k = np.clip(k, 0, len(self._grid) - 1)
        return t, k, t - self._grid[k]
    
    def __call__(self, t: ArrayLike) -> ArrayLike:
        _, k, h = self._locate(t)
        return _out(self._start[k] + self._slope[k] * h, t)
    
    def integral(self, t: ArrayLike) -> ArrayLike:
        """Integral of the curve over [0, t]."""
        _, k, h = self._locate(t)
        v, s = self._start[k], self._slope[k]
        return _out(self._cum[k] + v * h + 0.5 * s * h**2, t)
    
    def integral_of_square(self, t: ArrayLike) -> ArrayLike:
        """Integral of the squared curve over [0, t]."""
        _, k, h = self._locate(t)
        v, s = self._start[k], self._slope[k]
        return _out(self._cum_sq[k] + v**2 * h + v * s * h**2 + s**2 * h**3 / 3.0, t)
    
    def segment_start(self, t: ArrayLike):
        """Start of the linear piece containing t and the piece index."""
        _, k, _ = self._locate(t)
        return self._grid[k], k
    
    def with_values(self, values: Sequence[float]) -> "ParameterCurve":
        """Same breakpoints, new values."""
        values = np.asarray(values, dtype=float).ravel()
        if len(values) != len(self._values):
            raise ValueError(
                f"parameter {self.name}: expected {len(self._values)} values, got {len(values)}"
            )
        return ParameterCurve(self.kind, self._times, values, self.name)
    
    def __repr__(self) -> str:
        return (f"ParameterCurve({self.kind}, name={self.name!r}, times={self._times.tolist()}, "
                f"values={self._values.tolist()})")


def make_parameter(
    piecewise: bool,
    times: Sequence[float],
    values: Sequence[float],
    name: str = ""
) -> ParameterCurve:
    """Constant curve from the first value, or piecewise constant curve."""
    if piecewise:
        return ParameterCurve.piecewise_constant(times, values, name)
    return ParameterCurve.constant(values[0], name)


class Parametrization:
    """
    Base class for factor parametrizations.
    
    Attributes:
        name: Currency (IR), pair (FX), equity, index or credit name
        currency: Currency the factor is denominated in
    """
    
    asset_type: AssetType = None
    parameter_names: Tuple[str, ...] = ()
    
    def __init__(self, name: str, currency: str):
        self.name = name
        self.currency = currency
        self._parameters: Dict[str, ParameterCurve] = {}
    
    def _reset(self) -> None:
        """Recompute derived quantities after a parameter change."""
    
    def parameter(self, name: str) -> ParameterCurve:
        if name not in self._parameters:
            raise KeyError(f"{type(self).__name__} has no parameter '{name}'")
        return self._parameters[name]
    
    def with_parameter(self, name: str, curve: ParameterCurve) -> "Parametrization":
        self.parameter(name)
        new = copy.copy(self)
        new._parameters = dict(self._parameters)
        new._parameters[name] = curve
        new._reset()
        return new
    
    def with_values(self, name: str, values: Sequence[float]) -> "Parametrization":
        return self.with_parameter(name, self.parameter(name).with_values(values))
    
    def breakpoints(self) -> List[float]:
        """Union of all parameter breakpoint times."""
        times = set()
        for curve in self._parameters.values():
            times.update(curve.times.tolist())
        return sorted(times)
    
    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v.values.tolist()}" for k, v in self._parameters.items())
        return f"{type(self).__name__}({self.name}, {params})"


class _LgmTypeParametrization(Parametrization):
    """
    Gaussian factor with volatility alpha and mean reversion kappa.
    
    H(t) = int_0^t exp(-int_0^s kappa) ds, H'(t) = exp(-int_0^t kappa),
    zeta(t) = int_0^t alpha^2.
    """
    
    parameter_names = ("alpha", "kappa")
    
    def __init__(self, name: str, currency: str, alpha: ParameterCurve, kappa: ParameterCurve):
        super().__init__(name, currency)
        self._parameters = {"alpha": alpha, "kappa": kappa}
        self._reset()
    
    def _reset(self) -> None:
        kappa = self._parameters["kappa"]
        self._kappa_linear = kappa.kind == ParameterCurve.PIECEWISE_LINEAR
        grid = kappa._grid
        # H at the start of each reversion piece
        cum = np.zeros(len(grid))
        for k in range(1, len(grid)):
            cum[k] = cum[k - 1] + self._h_piece(k - 1, grid[k] - grid[k - 1])
        self._h_cum = cum
    
    def _h_piece(self, k, h):
        """int of exp(-K(s)) over [grid[k], grid[k] + h], vectorised over (k, h)."""
        kappa = self._parameters["kappa"]
        g0 = kappa._grid[k]
        if not self._kappa_linear:
            kap = kappa._start[k]
            decay = np.exp(-kappa.integral(g0))
            small = np.abs(kap) < 1e-12
            safe = np.where(small, 1.0, kap)
            piece = np.where(small, h, -np.expm1(-safe * h) / safe)
            return decay * piece
        h = np.asarray(h, dtype=float)
        g0 = np.asarray(g0, dtype=float)
        nodes = g0[..., None] + 0.5 * h[..., None] * (_GL_X + 1.0)
        return 0.5 * h * np.sum(_GL_W * np.exp(-kappa.integral(nodes)), axis=-1)
    
    @property
    def alpha_curve(self) -> ParameterCurve:
        return self._parameters["alpha"]
    
    @property
    def kappa_curve(self) -> ParameterCurve:
        return self._parameters["kappa"]
    
    def raw_alpha(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["alpha"](t)
    
    def raw_zeta(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["alpha"].integral_of_square(t)
    
    def raw_H(self, t: ArrayLike) -> ArrayLike:
        start, k = self._parameters["kappa"].segment_start(t)
        tt = np.maximum(np.asarray(t, dtype=float), 0.0)
        return _out(self._h_cum[k] + self._h_piece(k, tt - start), t)
    
    def raw_Hprime(self, t: ArrayLike) -> ArrayLike:
        return _out(np.exp(-np.asarray(self._parameters["kappa"].integral(t))), t)
    
    def kappa(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["kappa"](t)
    
    # LGM-type factors without reparametrization expose the raw functions
    def alpha(self, t: ArrayLike) -> ArrayLike:
        return self.raw_alpha(t)
    
    def zeta(self, t: ArrayLike) -> ArrayLike:
        return self.raw_zeta(t)
    
    def H(self, t: ArrayLike) -> ArrayLike:
        return self.raw_H(t)
    
    def Hprime(self, t: ArrayLike) -> ArrayLike:
        return self.raw_Hprime(t)


class IrLgm1fParametrization(_LgmTypeParametrization):
    """
    LGM one-factor interest rate parametrization.
    
    The model functions are reparametrized as
        H(t) = scaling * (H_raw(t) + shift), H'(t) = scaling * H_raw'(t),
        alpha(t) = alpha_raw(t) / scaling, zeta(t) = zeta_raw(t) / scaling^2,
    which leaves all prices unchanged.
    
    Attributes:
        discount_curve: Relinkable handle to the currency's discount curve
        shift: Additive shift of H
        scaling: Multiplicative scaling of H
    """
    
    asset_type = AssetType.IR
    
    def __init__(
        self,
        currency: str,
        discount_curve: CurveHandle,
        alpha: ParameterCurve,
        kappa: ParameterCurve,
        shift: float = 0.0,
        scaling: float = 1.0
    ):
        if scaling == 0:
            raise ValueError("LGM scaling must be non-zero")
        self.discount_curve = discount_curve
        self.shift = float(shift)
        self.scaling = float(scaling)
        super().__init__(currency, currency, alpha, kappa)
    
    def with_reparametrization(self, shift: float, scaling: float) -> "IrLgm1fParametrization":
        if scaling == 0:
            raise ValueError("LGM scaling must be non-zero")
        new = copy.copy(self)
        new.shift = float(shift)
        new.scaling = float(scaling)
        return new
    
    def alpha(self, t: ArrayLike) -> ArrayLike:
        return self.raw_alpha(t) / self.scaling
    
    def zeta(self, t: ArrayLike) -> ArrayLike:
        return self.raw_zeta(t) / self.scaling**2
    
    def H(self, t: ArrayLike) -> ArrayLike:
        return self.scaling * (self.raw_H(t) + self.shift)
    
    def Hprime(self, t: ArrayLike) -> ArrayLike:
        return self.scaling * self.raw_Hprime(t)


class FxBsParametrization(Parametrization):
    """
    Black-Scholes FX factor for one foreign currency against the domestic one.
    
    The state variable is the log of the FX spot in FORDOM convention
    (units of domestic currency per unit of foreign currency).
    """
    
    asset_type = AssetType.FX
    parameter_names = ("sigma",)
    
    def __init__(self, foreign: str, domestic: str, spot: Quote, sigma: ParameterCurve):
        super().__init__(foreign + domestic, foreign)
        self.foreign = foreign
        self.domestic = domestic
        self.spot_quote = spot
        self._parameters = {"sigma": sigma}
    
    @property
    def spot(self) -> float:
        return self.spot_quote.value
    
    def sigma(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["sigma"](t)
    
    def variance(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["sigma"].integral_of_square(t)


class EqBsParametrization(Parametrization):
    """
    Black-Scholes equity factor; the state variable is the log spot.
    
    Attributes:
        spot_quote: Equity spot in the equity currency
        dividend_curve: Handle to the dividend yield curve (as discount factors)
    """
    
    asset_type = AssetType.EQ
    parameter_names = ("sigma",)
    
    def __init__(self, name: str, currency: str, spot: Quote, dividend_curve: CurveHandle,
                 sigma: ParameterCurve):
        super().__init__(name, currency)
        self.spot_quote = spot
        self.dividend_curve = dividend_curve
        self._parameters = {"sigma": sigma}
    
    @property
    def spot(self) -> float:
        return self.spot_quote.value
    
    def sigma(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["sigma"](t)
    
    def variance(self, t: ArrayLike) -> ArrayLike:
        return self._parameters["sigma"].integral_of_square(t)


class InfDkParametrization(_LgmTypeParametrization):
    """
    Dodgson-Kainth inflation factor.
    
    Two states (z, y) where y integrates H'(t) z(t); the index ratio
    I(t)/I(0) is lognormal around the zero inflation curve growth.
    """
    
    asset_type = AssetType.INF
    
    def __init__(self, index: str, currency: str, inflation_curve: CurveHandle,
                 alpha: ParameterCurve, kappa: ParameterCurve):
        self.inflation_curve = inflation_curve
        super().__init__(index, currency, alpha, kappa)


class CrLgm1fParametrization(_LgmTypeParametrization):
    """
    LGM-type credit factor.
    
    Two states (z, y) where y integrates H'(t) z(t); survival probabilities
    are lognormal around the market survival curve.
    """
    
    asset_type = AssetType.CR
    
    def __init__(self, name: str, currency: str, survival_curve: CurveHandle,
                 alpha: ParameterCurve, kappa: ParameterCurve):
        self.survival_curve = survival_curve
        super().__init__(name, currency, alpha, kappa)


STATE_SIZE = {
    AssetType.IR: 1,
    AssetType.FX: 1,
    AssetType.EQ: 1,
    AssetType.INF: 2,
    AssetType.CR: 2,
}


__all__ = [
    "AssetType",
    "ASSET_ORDER",
    "STATE_SIZE",
    "ParameterCurve",
    "make_parameter",
    "Parametrization",
    "IrLgm1fParametrization",
    "FxBsParametrization",
    "EqBsParametrization",
    "InfDkParametrization",
    "CrLgm1fParametrization",
]
