"""
Validation package - Monte Carlo checks of the cross-asset model against
its analytic moments and the martingale property of deflated assets.
"""

from .checks import moment_check, sample_covariance, martingale_check

__all__ = ["moment_check", "sample_covariance", "martingale_check"]
