"""
Cross-asset model.

Joins IR (LGM), FX and EQ (Black-Scholes), INF (Dodgson-Kainth) and CR
(LGM-type intensity) factors into one Gaussian state under the domestic
LGM measure.

State layout, in parametrization order:
    IR:  z_i                      one per currency, domestic first
    FX:  x_i = log FX spot         one per foreign currency
    EQ:  log equity spot           one per equity
    INF: (z, y)                   y = int H'(s) z(s) ds
    CR:  (z, y)                   y = int H'(s) z(s) ds

There is one Brownian driver per parametrization; the correlation matrix
is indexed by drivers. The auxiliary y states carry no driver.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import ConfigurationError, ConfigurationMismatchError
from . import moments
from .calibration import (
    CalibrationResult,
    EndCriteria,
    calibrate_bootstrap,
    calibrate_global,
)
from .correlation import (
    SalvagingAlgorithm,
    check_correlation_matrix,
    factor_name,
    salvage_correlation,
)
from .parametrization import ASSET_ORDER, STATE_SIZE, AssetType, Parametrization

logger = logging.getLogger(__name__)

# Parameters optimised through a positivity transformation
_POSITIVE_PARAMETERS = ("alpha", "sigma")

_CACHE_LIMIT = 4096


class CrossAssetModel:
    """
    Multi-factor cross-asset model.
    
    Attributes:
        salvaging: Treatment of a non positive semi-definite correlation
    """
    
    def __init__(
        self,
        parametrizations: Sequence[Parametrization],
        correlation: Optional[np.ndarray] = None,
        salvaging: SalvagingAlgorithm = SalvagingAlgorithm.NONE
    ):
        """
        Args:
            parametrizations: Ordered IR, FX, EQ, INF, CR parametrizations
            correlation: Driver correlation matrix (identity if None)
            salvaging: Algorithm used if the matrix is not PSD
        """
        self._parametrizations: List[Parametrization] = list(parametrizations)
        self.salvaging = salvaging
        self._validate()
        self._build_layout()
        if correlation is None:
            correlation = np.eye(self.n_brownians)
        correlation = check_correlation_matrix(np.array(correlation, dtype=float))
        if correlation.shape != (self.n_brownians, self.n_brownians):
            raise ConfigurationError(
                f"correlation matrix is {correlation.shape}, model has "
                f"{self.n_brownians} Brownian drivers"
            )
        self._correlation = correlation
        self._cache: Dict = {}
    
    # ------------------------------------------------------------------
    # structure
    # ------------------------------------------------------------------
    
    def _validate(self) -> None:
        order = [ASSET_ORDER.index(p.asset_type) for p in self._parametrizations]
        if any(b < a for a, b in zip(order, order[1:])):
            raise ConfigurationError("parametrizations must be ordered IR, FX, EQ, INF, CR")
        by_type = {at: [p for p in self._parametrizations if p.asset_type == at]
                   for at in ASSET_ORDER}
        ir, fx = by_type[AssetType.IR], by_type[AssetType.FX]
        if not ir:
            raise ConfigurationError("at least one IR parametrization is required")
        if len(fx) != len(ir) - 1:
            raise ConfigurationError(
                f"{len(ir)} IR parametrizations need {len(ir) - 1} FX parametrizations, "
                f"got {len(fx)}"
            )
        currencies = [p.currency for p in ir]
        for at, params in by_type.items():
            names = [p.name for p in params]
            if len(set(names)) != len(names):
                raise ConfigurationError(f"duplicate {at.value} parametrization names {names}")
        for i, p in enumerate(fx):
            if p.foreign != currencies[i + 1] or p.domestic != currencies[0]:
                raise ConfigurationMismatchError(
                    f"FX parametrization {i} ({p.name}) does not match currencies "
                    f"{currencies[i + 1]}/{currencies[0]}"
                )
        for at in (AssetType.EQ, AssetType.INF, AssetType.CR):
            for p in by_type[at]:
                if p.currency not in currencies:
                    raise ConfigurationMismatchError(
                        f"{at.value} parametrization {p.name} has currency {p.currency} "
                        f"not among model currencies {currencies}"
                    )
    
    def _build_layout(self) -> None:
        self._positions: Dict[AssetType, List[int]] = {at: [] for at in ASSET_ORDER}
        self._state_start: List[int] = []
        n = 0
        for pos, p in enumerate(self._parametrizations):
            self._positions[p.asset_type].append(pos)
            self._state_start.append(n)
            n += STATE_SIZE[p.asset_type]
        self.n_states = n
        self.n_brownians = len(self._parametrizations)
        self._currencies = [self._parametrizations[pos].currency
                            for pos in self._positions[AssetType.IR]]
        
        ir = self._positions[AssetType.IR]
        # (target state, source z state, source position, coefficient of H'(t) z)
        links: List[Tuple[int, int, int, float]] = []
        for j, pos in enumerate(self._positions[AssetType.FX]):
            s = self._state_start[pos]
            links.append((s, self._state_start[ir[0]], ir[0], 1.0))
            links.append((s, self._state_start[ir[j + 1]], ir[j + 1], -1.0))
        for pos in self._positions[AssetType.EQ]:
            c = self.ccy_index(self._parametrizations[pos].currency)
            links.append((self._state_start[pos], self._state_start[ir[c]], ir[c], 1.0))
        for at in (AssetType.INF, AssetType.CR):
            for pos in self._positions[at]:
                s = self._state_start[pos]
                links.append((s + 1, s, pos, 1.0))
        self.links = links
    
    @property
    def parametrizations(self) -> List[Parametrization]:
        return list(self._parametrizations)
    
    @property
    def currencies(self) -> List[str]:
        return list(self._currencies)
    
    @property
    def domestic_currency(self) -> str:
        return self._currencies[0]
    
    def components(self, asset_type: AssetType) -> int:
        return len(self._positions[asset_type])
    
    def _position(self, asset_type: AssetType, i: int) -> int:
        positions = self._positions[asset_type]
        if not 0 <= i < len(positions):
            raise IndexError(f"{asset_type.value} index {i} out of range ({len(positions)} factors)")
        return positions[i]
    
    def parametrization(self, asset_type: AssetType, i: int) -> Parametrization:
        return self._parametrizations[self._position(asset_type, i)]
    
    def ir_lgm(self, i: int):
        return self.parametrization(AssetType.IR, i)
    
    def fxbs(self, i: int):
        return self.parametrization(AssetType.FX, i)
    
    def eqbs(self, i: int):
        return self.parametrization(AssetType.EQ, i)
    
    def infdk(self, i: int):
        return self.parametrization(AssetType.INF, i)
    
    def crlgm(self, i: int):
        return self.parametrization(AssetType.CR, i)
    
    def _name_index(self, asset_type: AssetType, name: str) -> int:
        for i, pos in enumerate(self._positions[asset_type]):
            if self._parametrizations[pos].name == name:
                return i
        raise ConfigurationError(f"no {asset_type.value} factor named '{name}'")
    
    def ccy_index(self, ccy: str) -> int:
        return self._name_index(AssetType.IR, ccy)
    
    def eq_index(self, name: str) -> int:
        return self._name_index(AssetType.EQ, name)
    
    def infdk_index(self, index: str) -> int:
        return self._name_index(AssetType.INF, index)
    
    def crlgm_index(self, name: str) -> int:
        return self._name_index(AssetType.CR, name)
    
    def state_index(self, asset_type: AssetType, i: int, aux: int = 0) -> int:
        """State vector index; aux=1 selects the y state of INF/CR factors."""
        if aux >= STATE_SIZE[asset_type]:
            raise IndexError(f"{asset_type.value} factors have no auxiliary state {aux}")
        return self._state_start[self._position(asset_type, i)] + aux
    
    def brownian_index(self, asset_type: AssetType, i: int) -> int:
        return self._position(asset_type, i)
    
    def factor_names(self) -> List[str]:
        return [factor_name(p.asset_type, p.name) for p in self._parametrizations]
    
    def state_labels(self) -> List[str]:
        labels = []
        for p in self._parametrizations:
            label = factor_name(p.asset_type, p.name)
            labels.append(label if STATE_SIZE[p.asset_type] == 1 else label + ":z")
            if STATE_SIZE[p.asset_type] == 2:
                labels.append(label + ":y")
        return labels
    
    def lgm_H(self, pos: int):
        return self._parametrizations[pos].H
    
    def breakpoints(self) -> List[float]:
        if "breakpoints" not in self._cache:
            times = set()
            for p in self._parametrizations:
                times.update(p.breakpoints())
            self._cache["breakpoints"] = sorted(times)
        return self._cache["breakpoints"]
    
    def initial_state(self) -> np.ndarray:
        """z, y = 0; FX and EQ states at today's log spots."""
        x0 = np.zeros(self.n_states)
        for at in (AssetType.FX, AssetType.EQ):
            for pos in self._positions[at]:
                x0[self._state_start[pos]] = np.log(self._parametrizations[pos].spot)
        return x0
    
    # ------------------------------------------------------------------
    # parameters and correlation
    # ------------------------------------------------------------------
    
    def set_parametrization(self, asset_type: AssetType, i: int,
                            parametrization: Parametrization) -> None:
        """Install an updated parametrization for an existing factor."""
        pos = self._position(asset_type, i)
        old = self._parametrizations[pos]
        if parametrization.asset_type != asset_type or parametrization.name != old.name:
            raise ConfigurationError(
                f"cannot replace {factor_name(asset_type, old.name)} with "
                f"{factor_name(parametrization.asset_type, parametrization.name)}"
            )
        self._parametrizations[pos] = parametrization
        self.update()
    
    @property
    def correlation_matrix(self) -> np.ndarray:
        return self._correlation.copy()
    
    def correlation(
        self,
        asset_type1: AssetType,
        i1: int,
        asset_type2: AssetType,
        i2: int,
        value: Optional[float] = None
    ) -> float:
        """
        Get or set the correlation between two factor drivers.
        
        Setting does not check positive semi-definiteness of the whole
        matrix; that happens when the dynamics are next evaluated.
        """
        b1 = self.brownian_index(asset_type1, i1)
        b2 = self.brownian_index(asset_type2, i2)
        if value is None:
            return float(self._correlation[b1, b2])
        if b1 == b2:
            if value != 1.0:
                raise ConfigurationError("self correlation is fixed at 1")
            return 1.0
        if not -1.0 <= value <= 1.0:
            raise ConfigurationError(f"correlation {value} outside [-1, 1]")
        self._correlation[b1, b2] = self._correlation[b2, b1] = value
        self.update()
        return float(value)
    
    def effective_correlation(self) -> np.ndarray:
        """Correlation used by the dynamics, salvaged if configured."""
        if "rho" not in self._cache:
            self._cache["rho"] = salvage_correlation(self._correlation, self.salvaging)
        return self._cache["rho"]
    
    def update(self) -> None:
        """Drop all cached quantities (parameters, correlation or curves changed)."""
        self._cache.clear()
    
    # ------------------------------------------------------------------
    # dynamics
    # ------------------------------------------------------------------
    
    def drift_diffusion(self, u) -> Tuple[np.ndarray, np.ndarray]:
        """
        Deterministic drift a(u) and diffusion C(u) at the times u.
        
        Returns:
            a with shape (len(u), n_states), C with shape
            (len(u), n_states, n_brownians)
        """
        u = np.atleast_1d(np.asarray(u, dtype=float))
        q = len(u)
        a = np.zeros((q, self.n_states))
        C = np.zeros((q, self.n_states, self.n_brownians))
        rho = self.effective_correlation()
        params = self._parametrizations
        ir = self._positions[AssetType.IR]
        fx = self._positions[AssetType.FX]
        
        p0 = params[ir[0]]
        H0, alpha0 = p0.H(u), p0.alpha(u)
        fx_sigma = [params[pos].sigma(u) for pos in fx]
        # H H' zeta of each currency, drift part of the short rate
        hhz = [params[pos].H(u) * params[pos].Hprime(u) * params[pos].zeta(u) for pos in ir]
        
        for i, pos in enumerate(ir):
            p = params[pos]
            s = self._state_start[pos]
            alpha = p.alpha(u)
            C[:, s, pos] = alpha
            if i > 0:
                a[:, s] = (-p.H(u) * alpha**2
                           + H0 * alpha0 * alpha * rho[ir[0], pos]
                           - fx_sigma[i - 1] * alpha * rho[pos, fx[i - 1]])
        
        for j, pos in enumerate(fx):
            s = self._state_start[pos]
            sigma = fx_sigma[j]
            C[:, s, pos] = sigma
            a[:, s] = (hhz[0] - hhz[j + 1] - 0.5 * sigma**2
                       + H0 * alpha0 * sigma * rho[ir[0], pos])
        
        for pos in self._positions[AssetType.EQ]:
            p = params[pos]
            s = self._state_start[pos]
            c = self.ccy_index(p.currency)
            sigma = p.sigma(u)
            C[:, s, pos] = sigma
            a[:, s] = hhz[c] - 0.5 * sigma**2 + sigma * H0 * alpha0 * rho[ir[0], pos]
            if c > 0:
                a[:, s] -= sigma * fx_sigma[c - 1] * rho[pos, fx[c - 1]]
        
        for at in (AssetType.INF, AssetType.CR):
            for pos in self._positions[at]:
                C[:, self._state_start[pos], pos] = params[pos].alpha(u)
        
        return a, C
    
    def drift_matrix(self, t: float) -> np.ndarray:
        """B(t), the state-dependent part of the drift."""
        B = np.zeros((self.n_states, self.n_states))
        for target, src_state, src_pos, coef in self.links:
            B[target, src_state] += coef * self._parametrizations[src_pos].Hprime(t)
        return B
    
    def curve_drift(self, t0: float, T: float) -> np.ndarray:
        """Integrated initial-curve forward rates entering FX and EQ states on [t0, T]."""
        drift = np.zeros(self.n_states)
        params = self._parametrizations
        ir = self._positions[AssetType.IR]
        
        def log_growth(curve):
            return curve.log_discount(t0) - curve.log_discount(T)
        
        dom = log_growth(params[ir[0]].discount_curve)
        for j, pos in enumerate(self._positions[AssetType.FX]):
            drift[self._state_start[pos]] = dom - log_growth(params[ir[j + 1]].discount_curve)
        for pos in self._positions[AssetType.EQ]:
            p = params[pos]
            c = self.ccy_index(p.currency)
            drift[self._state_start[pos]] = (log_growth(params[ir[c]].discount_curve)
                                             - log_growth(p.dividend_curve))
        return drift
    
    def transition(self, t0: float, T: float):
        """Cached (Phi, m, V) of the exact transition from t0 to T."""
        key = ("transition", float(t0), float(T))
        if key not in self._cache:
            if len(self._cache) > _CACHE_LIMIT:
                self.update()
            self._cache[key] = moments.transition(self, t0, T)
        return self._cache[key]
    
    def expectation(self, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
        """Analytic E[Y(t0 + dt) | Y(t0) = x0]."""
        return moments.expectation(self, t0, x0, dt)
    
    def covariance(self, t0: float, x0: Optional[np.ndarray], dt: float) -> np.ndarray:
        """Analytic Cov[Y(t0 + dt) | Y(t0) = x0]."""
        return moments.covariance(self, t0, x0, dt)
    
    def component_variance(self, asset_type: AssetType, i: int, T: float,
                           aux: int = 0, t0: float = 0.0) -> float:
        """Variance of one state component between t0 and T."""
        row = self.state_index(asset_type, i, aux)
        return float(moments.component_covariance(self, [row], t0, T)[0, 0])
    
    def state_process(self, discretization=None):
        from .process import Discretization, StateProcess
        return StateProcess(self, discretization or Discretization.EXACT)
    
    # ------------------------------------------------------------------
    # closed-form functions of the state
    # ------------------------------------------------------------------
    
    def numeraire(self, t: float, z):
        """N(t) = exp(H z + H^2 zeta / 2) / P(0, t) of the domestic LGM."""
        p = self.ir_lgm(0)
        H, zeta = p.H(t), p.zeta(t)
        return np.exp(H * np.asarray(z) + 0.5 * H**2 * zeta) / p.discount_curve.discount(t)
    
    def discount_bond(self, ccy: int, t: float, T: float, z):
        """Zero bond P(t, T) in currency ``ccy`` given its LGM state z."""
        p = self.ir_lgm(ccy)
        Ht, HT, zeta = p.H(t), p.H(T), p.zeta(t)
        curve = p.discount_curve
        return (curve.discount(T) / curve.discount(t)
                * np.exp(-(HT - Ht) * np.asarray(z) - 0.5 * (HT**2 - Ht**2) * zeta))
    
    def fx_rate(self, ccy: int, state: np.ndarray):
        """FX rate (domestic per unit of ``ccy``) from a state vector (or paths)."""
        state = np.asarray(state)
        if ccy == 0:
            return np.ones(state.shape[:-1]) if state.ndim > 1 else 1.0
        return np.exp(state[..., self.state_index(AssetType.FX, ccy - 1)])
    
    def discount_bond_domestic(self, ccy: int, t: float, T: float, state: np.ndarray):
        """Foreign zero bond converted into domestic currency at the state's FX rate."""
        state = np.asarray(state)
        z = state[..., self.state_index(AssetType.IR, ccy)]
        return self.fx_rate(ccy, state) * self.discount_bond(ccy, t, T, z)
    
    def _compensator(self, asset_type: AssetType, i: int, sign: float,
                     t: float, T: float, ccy: int) -> float:
        """
        K(t, T) making currency-``ccy`` bonds times the survival / index
        factor martingales under the domestic measure.
        """
        if t <= 0:
            return 0.0
        key = ("compensator", asset_type, i, float(t), float(T), ccy)
        if key in self._cache:
            return self._cache[key]
        pos = self._position(asset_type, i)
        p = self._parametrizations[pos]
        ir = self._positions[AssetType.IR]
        fx = self._positions[AssetType.FX]
        rho = self.effective_correlation()[pos]
        pj, p0 = self._parametrizations[ir[ccy]], self._parametrizations[ir[0]]
        
        s, w = moments.quadrature_grid(0.0, t, self.breakpoints() + [T])
        dH = p.H(T) - p.H(s)
        alpha = p.alpha(s)
        # instantaneous covolatility of log(FX * bond / numeraire) with the factor
        cov_m = -(pj.H(T) - pj.H(s)) * pj.alpha(s) * rho[ir[ccy]]
        cov_m = cov_m - p0.H(s) * p0.alpha(s) * rho[ir[0]]
        if ccy > 0:
            cov_m = cov_m + self._parametrizations[fx[ccy - 1]].sigma(s) * rho[fx[ccy - 1]]
        value = float(w @ (0.5 * dH**2 * alpha**2 + sign * dH * alpha * cov_m))
        self._cache[key] = value
        return value
    
    def _lgm_type_pair(self, asset_type, i, sign, t, T, z, y, ccy, curve_value):
        p = self.parametrization(asset_type, i)
        if ccy is None:
            ccy = self.ccy_index(p.currency)
        z, y = np.asarray(z), np.asarray(y)
        k_tt = self._compensator(asset_type, i, sign, t, t, ccy)
        k_tT = self._compensator(asset_type, i, sign, t, T, ccy)
        m_t, m_T = curve_value(t), curve_value(T)
        first = m_t * np.exp(sign * y - k_tt)
        second = m_T / m_t * np.exp(sign * (p.H(T) - p.H(t)) * z - (k_tT - k_tt))
        return first, second
    
    def cr_survival(self, i: int, t: float, T: float, z, y, ccy: Optional[int] = None):
        """
        Survival probabilities of credit name i.
        
        Returns:
            (S(t), S(t, T)): survival up to t and conditional survival from
            t to T, both consistent with bonds paid in currency ``ccy``
            (the name's currency by default)
        """
        p = self.crlgm(i)
        return self._lgm_type_pair(AssetType.CR, i, -1.0, t, T, z, y, ccy,
                                   p.survival_curve.survival_probability)
    
    def inf_index_ratio(self, i: int, t: float, T: float, z, y, ccy: Optional[int] = None):
        """
        Inflation index ratios of index i.
        
        Returns:
            (I(t)/I(0), forward I(T)/I(t) seen at t) for payments in
            currency ``ccy`` (the index currency by default)
        """
        p = self.infdk(i)
        return self._lgm_type_pair(AssetType.INF, i, 1.0, t, T, z, y, ccy,
                                   p.inflation_curve.growth)
    
    # ------------------------------------------------------------------
    # calibration
    # ------------------------------------------------------------------
    
    def _label(self, asset_type: AssetType, i: int) -> str:
        return factor_name(asset_type, self.parametrization(asset_type, i).name)
    
    def _installer(self, asset_type: AssetType, i: int, names: Sequence[str]):
        base = self.parametrization(asset_type, i)
        sizes = [base.parameter(n).size for n in names]
        
        def install(values: np.ndarray) -> None:
            p = self.parametrization(asset_type, i)
            offset = 0
            for name, size in zip(names, sizes):
                p = p.with_values(name, values[offset:offset + size])
                offset += size
            self.set_parametrization(asset_type, i, p)
        return install
    
    def _calibrate_iterative(self, asset_type, i, name, helpers, end_criteria):
        curve = self.parametrization(asset_type, i).parameter(name)
        lower = 0.0 if name in _POSITIVE_PARAMETERS else -np.inf
        label = f"{self._label(asset_type, i)} {name}"
        result = calibrate_bootstrap(curve.values, self._installer(asset_type, i, [name]),
                                     helpers, end_criteria, lower=lower, label=label)
        result.parametrization = self.parametrization(asset_type, i)
        logger.info("%s: bootstrap rmse %.3e", label, result.rmse)
        return result
    
    def calibrate(
        self,
        asset_type: AssetType,
        i: int,
        parameters: Sequence[str],
        helpers: Sequence,
        end_criteria: Optional[EndCriteria] = None,
        strict: bool = False
    ) -> CalibrationResult:
        """
        Global calibration of one or more parameters of factor i jointly.
        
        Args:
            asset_type: Asset class of the factor
            i: Factor index within the asset class
            parameters: Parameter names, e.g. ["alpha", "kappa"]
            helpers: Basket with engines bound to this model
            end_criteria: Optimizer stopping criteria
            strict: Raise OptimizerNonConvergence instead of only logging
        """
        p = self.parametrization(asset_type, i)
        values, positive = [], []
        for name in parameters:
            v = p.parameter(name).values
            values.append(v)
            positive.append(np.full(len(v), name in _POSITIVE_PARAMETERS))
        label = f"{self._label(asset_type, i)} {'/'.join(parameters)}"
        result = calibrate_global(np.concatenate(values), self._installer(asset_type, i, parameters),
                                  helpers, end_criteria, np.concatenate(positive), strict, label)
        result.parametrization = self.parametrization(asset_type, i)
        logger.info("%s: global rmse %.3e", label, result.rmse)
        return result
    
    def calibrate_ir_lgm1f_volatilities_iterative(self, ccy: int, helpers: Sequence,
                                                  end_criteria: Optional[EndCriteria] = None):
        return self._calibrate_iterative(AssetType.IR, ccy, "alpha", helpers, end_criteria)
    
    def calibrate_ir_lgm1f_reversions_iterative(self, ccy: int, helpers: Sequence,
                                                end_criteria: Optional[EndCriteria] = None):
        return self._calibrate_iterative(AssetType.IR, ccy, "kappa", helpers, end_criteria)
    
    def calibrate_ir_lgm1f_global(self, ccy: int, helpers: Sequence,
                                  end_criteria: Optional[EndCriteria] = None,
                                  calibrate_alpha: bool = True, calibrate_kappa: bool = False,
                                  strict: bool = False):
        names = [n for n, flag in (("alpha", calibrate_alpha), ("kappa", calibrate_kappa)) if flag]
        return self.calibrate(AssetType.IR, ccy, names, helpers, end_criteria, strict)
    
    def calibrate_bs_volatilities_iterative(self, asset_type: AssetType, i: int,
                                            helpers: Sequence,
                                            end_criteria: Optional[EndCriteria] = None):
        if asset_type not in (AssetType.FX, AssetType.EQ):
            raise ConfigurationError(f"no Black-Scholes factors of type {asset_type.value}")
        return self._calibrate_iterative(asset_type, i, "sigma", helpers, end_criteria)
    
    def calibrate_bs_volatilities_global(self, asset_type: AssetType, i: int,
                                         helpers: Sequence,
                                         end_criteria: Optional[EndCriteria] = None,
                                         strict: bool = False):
        if asset_type not in (AssetType.FX, AssetType.EQ):
            raise ConfigurationError(f"no Black-Scholes factors of type {asset_type.value}")
        return self.calibrate(asset_type, i, ["sigma"], helpers, end_criteria, strict)
    
    def calibrate_inf_dk_volatilities_iterative(self, index: int, helpers: Sequence,
                                                end_criteria: Optional[EndCriteria] = None):
        return self._calibrate_iterative(AssetType.INF, index, "alpha", helpers, end_criteria)
    
    def calibrate_inf_dk_volatilities_global(self, index: int, helpers: Sequence,
                                             end_criteria: Optional[EndCriteria] = None,
                                             strict: bool = False):
        return self.calibrate(AssetType.INF, index, ["alpha"], helpers, end_criteria, strict)
    
    def calibrate_inf_dk_reversions_iterative(self, index: int, helpers: Sequence,
                                              end_criteria: Optional[EndCriteria] = None):
        return self._calibrate_iterative(AssetType.INF, index, "kappa", helpers, end_criteria)
    
    def calibrate_inf_dk_reversions_global(self, index: int, helpers: Sequence,
                                           end_criteria: Optional[EndCriteria] = None,
                                           strict: bool = False):
        return self.calibrate(AssetType.INF, index, ["kappa"], helpers, end_criteria, strict)
    
    def __repr__(self) -> str:
        return (f"CrossAssetModel(currencies={self._currencies}, factors={self.n_brownians}, "
                f"states={self.n_states})")


__all__ = ["CrossAssetModel"]
