"""
State process and path generation for the cross-asset model.

Two discretizations of the joint state are offered:

- EXACT: the closed-form Gaussian transition over each step (mean
  Phi x + m, covariance V); uses one normal draw per state component
- EULER: first-order scheme x + (a + B x) dt + C L dW sqrt(dt) with the
  initial curve contribution integrated exactly over the step; uses one
  normal draw per Brownian driver
"""

import logging
from enum import Enum
from typing import Optional, Sequence

import numpy as np
from scipy.stats import norm, qmc

from .correlation import matrix_sqrt

logger = logging.getLogger(__name__)


class Discretization(Enum):
    EXACT = "Exact"
    EULER = "Euler"


class StateProcess:
    """
    Simulation view of a CrossAssetModel.
    
    Construction checks the model correlation matrix (positive
    semi-definiteness, salvaging if configured). The correlation root
    is cached on the model, so it follows later correlation changes.
    
    Attributes:
        model: The cross-asset model
        discretization: EXACT or EULER
    """
    
    def __init__(self, model, discretization: Discretization = Discretization.EXACT):
        self.model = model
        self.discretization = discretization
        self.sqrt_correlation()
    
    def sqrt_correlation(self) -> np.ndarray:
        """L with L L^T the effective driver correlation of the model."""
        cache = self.model._cache
        if "sqrt_rho" not in cache:
            cache["sqrt_rho"] = matrix_sqrt(self.model.effective_correlation())
        return cache["sqrt_rho"]
    
    @property
    def size(self) -> int:
        return self.model.n_states
    
    @property
    def factors(self) -> int:
        """Number of normal draws consumed per step."""
        if self.discretization == Discretization.EXACT:
            return self.model.n_states
        return self.model.n_brownians
    
    def initial_values(self) -> np.ndarray:
        return self.model.initial_state()
    
    def drift(self, t: float, x: np.ndarray) -> np.ndarray:
        """Euler drift a(t) + B(t) x, without the initial curve contribution."""
        a, _ = self.model.drift_diffusion([t])
        return a[0] + np.asarray(x) @ self.model.drift_matrix(t).T
    
    def diffusion(self, t: float) -> np.ndarray:
        """C(t) L with L L^T the driver correlation; shape (states, drivers)."""
        _, C = self.model.drift_diffusion([t])
        return C[0] @ self.sqrt_correlation()
    
    def expectation(self, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
        if self.discretization == Discretization.EXACT:
            return self.model.expectation(t0, x0, dt)
        return x0 + self.drift(t0, x0) * dt + self.model.curve_drift(t0, t0 + dt)
    
    def covariance(self, t0: float, x0: Optional[np.ndarray], dt: float) -> np.ndarray:
        if self.discretization == Discretization.EXACT:
            return self.model.covariance(t0, x0, dt)
        sigma = self.diffusion(t0)
        return sigma @ sigma.T * dt
    
    def std_deviation(self, t0: float, x0: Optional[np.ndarray], dt: float) -> np.ndarray:
        """Matrix S with S S^T = covariance; shape (states, factors)."""
        if self.discretization == Discretization.EXACT:
            key = ("std_deviation", float(t0), float(dt))
            cache = self.model._cache
            if key not in cache:
                cache[key] = matrix_sqrt(self.model.covariance(t0, x0, dt))
            return cache[key]
        return self.diffusion(t0) * np.sqrt(dt)
    
    def evolve(self, t0: float, x0: np.ndarray, dt: float, dw: np.ndarray) -> np.ndarray:
        """
        Advance states by one step.
        
        Args:
            t0: Step start time
            x0: States at t0, shape (states,) or (paths, states)
            dt: Step length
            dw: Standard normals, shape (factors,) or (paths, factors)
            
        Returns:
            States at t0 + dt with the shape of x0
        """
        return self.expectation(t0, x0, dt) + np.asarray(dw) @ self.std_deviation(t0, x0, dt).T


def standard_normals(
    num_paths: int,
    dimension: int,
    seed: int = 42,
    sequence: str = "pseudo",
    antithetic: bool = False
) -> np.ndarray:
    """
    Draw a (num_paths, dimension) block of standard normals.
    
    Args:
        num_paths: Number of rows; must be even with antithetic sampling
        dimension: Number of columns (steps x factors)
        seed: Generator seed
        sequence: "pseudo" (numpy PCG64) or "sobol" (scrambled Sobol)
        antithetic: Append the mirrored draws
    """
    if antithetic and num_paths % 2:
        raise ValueError("antithetic sampling needs an even number of paths")
    n = num_paths // 2 if antithetic else num_paths
    sequence = sequence.lower()
    if sequence == "pseudo":
        draws = np.random.default_rng(seed).standard_normal((n, dimension))
    elif sequence == "sobol":
        sampler = qmc.Sobol(d=dimension, scramble=True, seed=seed)
        uniforms = sampler.random(n)
        draws = norm.ppf(np.clip(uniforms, 1e-12, 1.0 - 1e-12))
    else:
        raise ValueError(f"Unknown sequence type: {sequence}")
    if antithetic:
        draws = np.concatenate([draws, -draws])
    return draws


def generate_paths(
    process: StateProcess,
    times: Sequence[float],
    num_paths: int,
    seed: int = 42,
    sequence: str = "pseudo",
    antithetic: bool = False
) -> np.ndarray:
    """
    Simulate state paths on a time grid.
    
    Args:
        process: State process to simulate
        times: Strictly increasing positive simulation times
        num_paths: Number of paths
        seed: Random seed for reproducibility
        sequence: "pseudo" or "sobol"
        antithetic: Use antithetic draws
        
    Returns:
        Array of shape (num_paths, len(times) + 1, states); index 0 along
        the time axis holds the initial state at t = 0
    """
    times = np.asarray(times, dtype=float)
    if len(times) == 0 or times[0] <= 0 or np.any(np.diff(times) <= 0):
        raise ValueError("times must be positive and strictly increasing")
    grid = np.concatenate([[0.0], times])
    steps, factors = len(times), process.factors
    
    draws = standard_normals(num_paths, steps * factors, seed, sequence, antithetic)
    draws = draws.reshape(num_paths, steps, factors)
    
    paths = np.empty((num_paths, steps + 1, process.size))
    paths[:, 0, :] = process.initial_values()
    for k in range(steps):
        paths[:, k + 1, :] = process.evolve(grid[k], paths[:, k, :], grid[k + 1] - grid[k],
                                            draws[:, k, :])
    logger.debug("generated %d paths on %d steps (%s, %s)", num_paths, steps,
                 process.discretization.value, sequence)
    return paths


__all__ = ["Discretization", "StateProcess", "standard_normals", "generate_paths"]
