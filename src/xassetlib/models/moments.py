"""
Analytic moments of the cross-asset state.

Between t0 and T the state Y follows the linear Gaussian SDE

    dY = (a(u) + B(u) Y) du + curve terms + C(u) dW,   d<W> = rho du

where B only couples auxiliary/FX/equity states to LGM-type z states
through H'(u). Solving it gives

    Y(T) = Phi(T, t0) Y(t0) + int D(u) du + curve terms + int G(u) dW(u)

with Phi = I + sum_links coef (H(T) - H(t0)) and the drift/diffusion
kernels D, G obtained by adding coef (H(T) - H(u)) times the source row.
The integrals are evaluated with Gauss-Legendre quadrature on every
interval between parameter breakpoints, where all integrands are smooth.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

GAUSS_LEGENDRE_ORDER = 16

_GL_CACHE = {}


def _legendre(order: int) -> Tuple[np.ndarray, np.ndarray]:
    if order not in _GL_CACHE:
        _GL_CACHE[order] = np.polynomial.legendre.leggauss(order)
    return _GL_CACHE[order]


def quadrature_grid(
    t0: float,
    T: float,
    breakpoints: Sequence[float] = (),
    order: int = GAUSS_LEGENDRE_ORDER
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Nodes and weights for int_{t0}^{T} f(u) du.
    
    Args:
        t0: Lower integration bound
        T: Upper integration bound
        breakpoints: Times where the integrand may have kinks
        order: Gauss-Legendre nodes per sub-interval
        
    Returns:
        (nodes, weights); empty arrays if T <= t0
    """
    if T <= t0:
        return np.zeros(0), np.zeros(0)
    edges = np.array([t0] + [b for b in sorted(breakpoints) if t0 < b < T] + [T])
    x, w = _legendre(order)
    lo, hi = edges[:-1, None], edges[1:, None]
    half = 0.5 * (hi - lo)
    nodes = lo + half * (x + 1.0)
    weights = half * w
    return nodes.ravel(), weights.ravel()


def _kernels(model, t0: float, T: float):
    """Quadrature weights plus drift and diffusion kernels D(u), G(u)."""
    u, w = quadrature_grid(t0, T, model.breakpoints())
    a, C = model.drift_diffusion(u)
    D = a.copy()
    G = C.copy()
    for target, src_state, src_pos, coef in model.links:
        H = model.lgm_H(src_pos)
        b = coef * (H(T) - H(u))
        D[:, target] += b * a[:, src_state]
        G[:, target, :] += b[:, None] * C[:, src_state, :]
    return w, D, G


def transition_matrix(model, t0: float, T: float) -> np.ndarray:
    """Phi(T, t0), the propagator of the state between t0 and T."""
    phi = np.eye(model.n_states)
    for target, src_state, src_pos, coef in model.links:
        H = model.lgm_H(src_pos)
        phi[target, src_state] += coef * (H(T) - H(t0))
    return phi


def transition(model, t0: float, T: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Exact transition of the state from t0 to T.
    
    Returns:
        (Phi, m, V) such that Y(T) | Y(t0) ~ N(Phi Y(t0) + m, V)
    """
    phi = transition_matrix(model, t0, T)
    n = model.n_states
    if T <= t0:
        return phi, np.zeros(n), np.zeros((n, n))
    w, D, G = _kernels(model, t0, T)
    rho = model.effective_correlation()
    shift = w @ D + model.curve_drift(t0, T)
    GR = G @ rho
    cov = np.einsum("q,qim,qjm->ij", w, GR, G)
    cov = 0.5 * (cov + cov.T)
    return phi, shift, cov


def component_covariance(model, rows: Sequence[int], t0: float, T: float) -> np.ndarray:
    """Covariance block of the given state rows, computed without the full matrix."""
    rows = list(rows)
    if T <= t0:
        return np.zeros((len(rows), len(rows)))
    u, w = quadrature_grid(t0, T, model.breakpoints())
    _, C = model.drift_diffusion(u)
    G = C[:, rows, :].copy()
    for r, target in enumerate(rows):
        for link_target, src_state, src_pos, coef in model.links:
            if link_target != target:
                continue
            H = model.lgm_H(src_pos)
            b = coef * (H(T) - H(u))
            G[:, r, :] += b[:, None] * C[:, src_state, :]
    rho = model.effective_correlation()
    return np.einsum("q,qim,mn,qjn->ij", w, G, rho, G)


def expectation(model, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
    """E[Y(t0 + dt) | Y(t0) = x0]; x0 may carry a leading path axis."""
    phi, shift, _ = model.transition(t0, t0 + dt)
    return np.asarray(x0) @ phi.T + shift


def covariance(model, t0: float, x0: Optional[np.ndarray], dt: float) -> np.ndarray:
    """Cov[Y(t0 + dt) | Y(t0) = x0]; independent of x0."""
    return model.transition(t0, t0 + dt)[2]


__all__ = [
    "GAUSS_LEGENDRE_ORDER",
    "quadrature_grid",
    "transition_matrix",
    "transition",
    "component_covariance",
    "expectation",
    "covariance",
]
