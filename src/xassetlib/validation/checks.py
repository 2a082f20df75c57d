"""
Monte Carlo validation of the cross-asset model.

Two checks compare simulated paths with closed-form results:

1. Moment check: sample mean and variance of every state component
   against the analytic expectation and covariance
2. Martingale check: numeraire-deflated, domestic-currency values of zero
   bonds, defaultable zero bonds and inflation-indexed zero bonds must
   average to today's prices

Both return DataFrames with the estimate, its standard error and the
analytic value so that callers (and tests) can judge agreement in units
of Monte Carlo error.
"""

from typing import List, Optional

import numpy as np
import pandas as pd

from ..models.parametrization import AssetType
from ..models.process import Discretization, generate_paths


def _simulate(model, horizon: float, num_paths: int, steps: int,
              discretization: Discretization, seed: int, sequence: str,
              antithetic: bool) -> np.ndarray:
    if horizon <= 0:
        raise ValueError("Horizon must be positive")
    if steps < 1:
        raise ValueError("Need at least one time step")
    times = np.linspace(horizon / steps, horizon, steps)
    process = model.state_process(discretization)
    return generate_paths(process, times, num_paths, seed, sequence, antithetic)[:, -1, :]


def moment_check(
    model,
    horizon: float,
    num_paths: int = 10000,
    steps: int = 1,
    discretization: Discretization = Discretization.EXACT,
    seed: int = 42,
    sequence: str = "pseudo",
    antithetic: bool = False
) -> pd.DataFrame:
    """
    Compare simulated and analytic moments of the state at ``horizon``.
    
    Args:
        model: CrossAssetModel
        horizon: Time at which moments are compared
        num_paths: Number of Monte Carlo paths
        steps: Number of equal simulation steps up to the horizon
        discretization: EXACT or EULER
        seed: Random seed
        sequence: "pseudo" or "sobol"
        antithetic: Use antithetic draws
        
    Returns:
        DataFrame indexed by state label with columns analytic_mean,
        sample_mean, mean_std_error, analytic_variance, sample_variance
        and variance_std_error
    """
    x_T = _simulate(model, horizon, num_paths, steps, discretization, seed, sequence, antithetic)
    x0 = model.initial_state()
    analytic_mean = model.expectation(0.0, x0, horizon)
    analytic_cov = model.covariance(0.0, x0, horizon)
    analytic_var = np.diag(analytic_cov)
    
    sample_mean = x_T.mean(axis=0)
    sample_var = x_T.var(axis=0, ddof=1)
    n = x_T.shape[0]
    
    return pd.DataFrame({
        "analytic_mean": analytic_mean,
        "sample_mean": sample_mean,
        "mean_std_error": np.sqrt(sample_var / n),
        "analytic_variance": analytic_var,
        "sample_variance": sample_var,
        # Gaussian approximation of the sampling error of the variance
        "variance_std_error": sample_var * np.sqrt(2.0 / (n - 1)),
    }, index=model.state_labels())


def sample_covariance(
    model,
    horizon: float,
    num_paths: int = 10000,
    steps: int = 1,
    discretization: Discretization = Discretization.EXACT,
    seed: int = 42,
    sequence: str = "pseudo",
    antithetic: bool = False
) -> pd.DataFrame:
    """Sample covariance matrix of the simulated state at ``horizon``, labelled by state."""
    x_T = _simulate(model, horizon, num_paths, steps, discretization, seed, sequence, antithetic)
    labels = model.state_labels()
    return pd.DataFrame(np.cov(x_T, rowvar=False, ddof=1).reshape(len(labels), len(labels)),
                        index=labels, columns=labels)


def _row(instrument: str, values: np.ndarray, analytic: float) -> dict:
    estimate = float(values.mean())
    std_error = float(values.std(ddof=1) / np.sqrt(len(values)))
    return {
        "instrument": instrument,
        "estimate": estimate,
        "std_error": std_error,
        "analytic": float(analytic),
        "z_score": (estimate - analytic) / std_error if std_error > 0 else 0.0,
    }


def martingale_check(
    model,
    horizon: float,
    maturity: Optional[float] = None,
    num_paths: int = 10000,
    steps: int = 1,
    discretization: Discretization = Discretization.EXACT,
    seed: int = 42,
    sequence: str = "pseudo",
    antithetic: bool = False
) -> pd.DataFrame:
    """
    Deflated bond values at ``horizon`` against today's prices.
    
    For every currency j, the domestic value FX_j(T) P_j(T, M) / N(T) of
    a zero bond maturing at M must average to FX_j(0) P_j(0, M). Credit
    names add the survival factor S(T) S(T, M), inflation indices the
    index ratio I(T)/I(0) times its forward to M. Estimates are reported
    per unit of today's FX rate.
    
    Args:
        model: CrossAssetModel
        horizon: Observation time T
        maturity: Bond maturity M >= T (defaults to T)
        num_paths, steps, discretization, seed, sequence, antithetic:
            Simulation settings as in ``moment_check``
        
    Returns:
        DataFrame with columns instrument, estimate, std_error, analytic, z_score
    """
    maturity = horizon if maturity is None else maturity
    if maturity < horizon:
        raise ValueError("Bond maturity must not be before the horizon")
    x_T = _simulate(model, horizon, num_paths, steps, discretization, seed, sequence, antithetic)
    x0 = model.initial_state()
    
    deflator = 1.0 / model.numeraire(horizon, x_T[:, model.state_index(AssetType.IR, 0)])
    
    def domestic_bond(j: int) -> np.ndarray:
        fx0 = model.fx_rate(j, x0)
        return model.discount_bond_domestic(j, horizon, maturity, x_T) * deflator / fx0
    
    rows: List[dict] = []
    for j, ccy in enumerate(model.currencies):
        curve = model.ir_lgm(j).discount_curve
        rows.append(_row(f"ZCB:{ccy}", domestic_bond(j), curve.discount(maturity)))
    
    for asset_type in (AssetType.CR, AssetType.INF):
        for i in range(model.components(asset_type)):
            p = model.parametrization(asset_type, i)
            j = model.ccy_index(p.currency)
            z = x_T[:, model.state_index(asset_type, i)]
            y = x_T[:, model.state_index(asset_type, i, aux=1)]
            discount = model.ir_lgm(j).discount_curve.discount(maturity)
            if asset_type == AssetType.CR:
                first, second = model.cr_survival(i, horizon, maturity, z, y, j)
                analytic = discount * p.survival_curve.survival_probability(maturity)
                label = f"DefaultableZCB:{p.name}"
            else:
                first, second = model.inf_index_ratio(i, horizon, maturity, z, y, j)
                analytic = discount * p.inflation_curve.growth(maturity)
                label = f"InflationZCB:{p.name}"
            rows.append(_row(label, domestic_bond(j) * first * second, analytic))
    
    return pd.DataFrame(rows)


__all__ = ["moment_check", "sample_covariance", "martingale_check"]
