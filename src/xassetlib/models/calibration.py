"""
Calibration drivers.

Two strategies operate on one parameter vector of one parametrization:

- bootstrap: one basket instrument per parameter segment, solved in
  increasing expiry order with Brent's method so that each instrument is
  matched (up to root finding precision) before the next segment is touched
- global: Levenberg-Marquardt least squares over the whole basket

The drivers never touch the model directly. They receive an ``install``
callback that puts a candidate value vector into the model; the helpers'
pricing engines then see the candidate through their model handle.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.optimize import brentq, least_squares

from ..errors import OptimizerNonConvergence, PreconditionViolation

logger = logging.getLogger(__name__)

# Root tolerances of the bootstrap; independent of EndCriteria.root_epsilon
BOOTSTRAP_XTOL = 1e-14
BOOTSTRAP_RTOL = 1e-12


@dataclass
class EndCriteria:
    """
    Stopping criteria for the optimizers.
    
    Attributes:
        max_iterations: Iteration budget (Brent) / outer iteration budget (LM)
        max_stationary_iterations: Kept for configuration compatibility;
            MINPACK's LM has no stationary-state counter
        root_epsilon: Tolerance on the parameter step of the global (LM)
            optimizer. Bootstrap roots are always solved to BOOTSTRAP_XTOL /
            BOOTSTRAP_RTOL, since each segment must match its instrument exactly
        function_epsilon: Relative tolerance on the objective
        gradient_norm_epsilon: Tolerance on the gradient norm
    """
    max_iterations: int = 1000
    max_stationary_iterations: int = 500
    root_epsilon: float = 1e-8
    function_epsilon: float = 1e-8
    gradient_norm_epsilon: float = 1e-8


@dataclass
class CalibrationResult:
    """Result of one calibration call."""
    method: str
    values: np.ndarray
    errors: np.ndarray
    rmse: float
    success: bool
    message: str = ""
    evaluations: int = 0
    parametrization: object = None
    
    def to_dict(self):
        return {
            "method": self.method,
            "values": self.values.tolist(),
            "errors": self.errors.tolist(),
            "rmse": self.rmse,
            "success": self.success,
            "message": self.message,
            "evaluations": self.evaluations,
        }


def calibration_errors(helpers: Sequence) -> np.ndarray:
    """Signed model - market value per helper."""
    return np.array([h.calibration_error() for h in helpers], dtype=float)


def rmse(errors: np.ndarray) -> float:
    errors = np.asarray(errors, dtype=float)
    return float(np.sqrt(np.mean(errors**2))) if len(errors) else 0.0


def check_bootstrap_basket(helpers: Sequence, n_values: int, label: str = "") -> None:
    """
    Bootstrap precondition: one parameter segment per instrument, basket
    sorted by strictly increasing expiry.
    """
    if len(helpers) != n_values:
        raise PreconditionViolation(
            f"{label}: bootstrap needs one parameter value per basket instrument "
            f"({n_values} values, {len(helpers)} instruments)"
        )
    expiries = [h.expiry for h in helpers]
    if any(b <= a for a, b in zip(expiries, expiries[1:])):
        raise PreconditionViolation(
            f"{label}: basket must be sorted by strictly increasing expiry, got {expiries}"
        )


def _find_bracket(f, x0: float, lower: float, upper: float, max_expansions: int = 60):
    """Expand an interval around x0 until f changes sign; None if it never does."""
    step = max(abs(x0), 1e-2) * 0.5
    a, b = max(x0 - step, lower), min(x0 + step, upper)
    fa, fb = f(a), f(b)
    for _ in range(max_expansions):
        if fa * fb <= 0:
            return a, b, fa, fb
        step *= 2.0
        new_a, new_b = max(x0 - step, lower), min(x0 + step, upper)
        if new_a == a and new_b == b:
            break
        if new_a != a:
            a, fa = new_a, f(new_a)
        if new_b != b:
            b, fb = new_b, f(new_b)
    return None


def calibrate_bootstrap(
    values: Sequence[float],
    install: Callable[[np.ndarray], None],
    helpers: Sequence,
    end_criteria: Optional[EndCriteria] = None,
    lower: float = -np.inf,
    upper: float = np.inf,
    label: str = ""
) -> CalibrationResult:
    """
    Bootstrap a piecewise parameter against a basket.
    
    Segment i is solved so that helper i is matched; the solved value is
    also used for all later segments as the starting point of the next step.
    
    Args:
        values: Initial parameter values, one per helper
        install: Callback installing a candidate value vector into the model
        helpers: Calibration instruments sorted by expiry
        end_criteria: Stopping criteria (iteration budget only)
        lower: Lower bound of the parameter (0 for volatilities)
        upper: Upper bound of the parameter
        label: Name used in log messages and errors
        
    Returns:
        CalibrationResult with the final values and per-instrument errors
    """
    end_criteria = end_criteria or EndCriteria()
    values = np.array(values, dtype=float)
    check_bootstrap_basket(helpers, len(values), label)
    
    evaluations = 0
    success = True
    messages = []
    for i, helper in enumerate(helpers):
        def objective(x, i=i, helper=helper):
            nonlocal evaluations
            evaluations += 1
            values[i:] = x
            install(values)
            return helper.calibration_error()
        
        x0 = values[i]
        bracket = _find_bracket(objective, x0, lower, upper)
        if bracket is None:
            # best effort; the caller checks the residual against its tolerance
            success = False
            messages.append(f"no sign change for instrument {i} (expiry {helper.expiry})")
            logger.warning("%s: bootstrap found no bracket for instrument %d", label, i)
            objective(x0)
            continue
        a, b, fa, fb = bracket
        if fa == 0.0:
            root = a
        elif fb == 0.0:
            root = b
        else:
            root = brentq(objective, a, b, xtol=BOOTSTRAP_XTOL, rtol=BOOTSTRAP_RTOL,
                          maxiter=end_criteria.max_iterations)
        objective(root)
        logger.debug("%s: segment %d solved, value %.10g", label, i, root)
    
    install(values)
    errors = calibration_errors(helpers)
    return CalibrationResult(
        method="bootstrap",
        values=values.copy(),
        errors=errors,
        rmse=rmse(errors),
        success=success,
        message="; ".join(messages) or "converged",
        evaluations=evaluations,
    )


def calibrate_global(
    values: Sequence[float],
    install: Callable[[np.ndarray], None],
    helpers: Sequence,
    end_criteria: Optional[EndCriteria] = None,
    positive: Optional[Sequence[bool]] = None,
    strict: bool = False,
    label: str = ""
) -> CalibrationResult:
    """
    Levenberg-Marquardt fit of a parameter vector to a basket.
    
    Positive parameters (volatilities) are optimised through x = u^2 so the
    unconstrained LM algorithm cannot make them negative.
    
    Args:
        values: Initial parameter values
        install: Callback installing a candidate value vector into the model
        helpers: Calibration instruments
        end_criteria: Stopping criteria
        positive: Per-value flag for the square transformation
        strict: Raise OptimizerNonConvergence if the budget is exhausted
        label: Name used in log messages
        
    Returns:
        CalibrationResult; the fitted values are installed in all cases
    """
    end_criteria = end_criteria or EndCriteria()
    values = np.array(values, dtype=float)
    if positive is None:
        positive = np.zeros(len(values), dtype=bool)
    positive = np.asarray(positive, dtype=bool)
    
    def to_values(u: np.ndarray) -> np.ndarray:
        return np.where(positive, u**2, u)
    
    u0 = np.where(positive, np.sqrt(np.maximum(np.abs(values), 1e-8)), values)
    n_params = len(u0)
    
    def residuals(u: np.ndarray) -> np.ndarray:
        install(to_values(u))
        r = calibration_errors(helpers)
        if len(r) < n_params:
            # MINPACK needs at least as many residuals as parameters
            r = np.concatenate([r, np.zeros(n_params - len(r))])
        return r
    
    result = least_squares(
        residuals,
        u0,
        method="lm",
        xtol=end_criteria.root_epsilon,
        ftol=end_criteria.function_epsilon,
        gtol=end_criteria.gradient_norm_epsilon,
        max_nfev=end_criteria.max_iterations * (n_params + 1),
    )
    
    fitted = to_values(result.x)
    install(fitted)
    errors = calibration_errors(helpers)
    # status 0: evaluation budget exhausted
    converged = result.status > 0
    if not converged:
        logger.warning("%s: global calibration stopped without convergence: %s",
                       label, result.message)
        if strict:
            raise OptimizerNonConvergence(f"{label}: {result.message}", residual=rmse(errors))
    
    return CalibrationResult(
        method="global",
        values=fitted,
        errors=errors,
        rmse=rmse(errors),
        success=converged,
        message=str(result.message),
        evaluations=int(result.nfev),
    )


__all__ = [
    "EndCriteria",
    "CalibrationResult",
    "calibration_errors",
    "rmse",
    "check_bootstrap_basket",
    "calibrate_bootstrap",
    "calibrate_global",
]
