"""
Closed-form option formulas.

Implements:
- Bachelier (normal) model, used for swaption market quotes
- Black'76 model, used for FX, equity and CPI option market quotes
- black_formula: Black'76 in terms of total standard deviation, used by
  the model engines where the log-variance comes from the model

These are the "base models" that turn a volatility into a price; the
calibration helpers use them to translate quoted vols into target prices.
"""

import numpy as np
from scipy.stats import norm


# Standard normal CDF and PDF
N = norm.cdf
n = norm.pdf


def bachelier_call(
    F: float,
    K: float,
    T: float,
    sigma_n: float,
    df: float = 1.0
) -> float:
    """
    Bachelier (normal) model call option price.
    
    Assumes forward follows arithmetic Brownian motion:
    dF = sigma_n * dW
    
    Args:
        F: Forward rate
        K: Strike
        T: Time to expiry (years)
        sigma_n: Normal volatility
        df: Discount factor (or annuity) to payment
        
    Returns:
        Call option price
    """
    if T <= 0 or sigma_n <= 0:
        return max(F - K, 0.0) * df
    
    sqrt_t = np.sqrt(T)
    d = (F - K) / (sigma_n * sqrt_t)
    return float(df * ((F - K) * N(d) + sigma_n * sqrt_t * n(d)))


def bachelier_put(
    F: float,
    K: float,
    T: float,
    sigma_n: float,
    df: float = 1.0
) -> float:
    """Bachelier (normal) model put option price."""
    if T <= 0 or sigma_n <= 0:
        return max(K - F, 0.0) * df
    
    sqrt_t = np.sqrt(T)
    d = (F - K) / (sigma_n * sqrt_t)
    return float(df * ((K - F) * N(-d) + sigma_n * sqrt_t * n(d)))


def black_formula(
    F: float,
    K: float,
    std_dev: float,
    df: float = 1.0,
    is_call: bool = True
) -> float:
    """
    Black'76 price from the total standard deviation of log(F).
    
    Args:
        F: Forward
        K: Strike
        std_dev: sqrt of the variance of log(F) up to expiry
        df: Discount factor
        is_call: True for call, False for put
        
    Returns:
        Option price
    """
    if F <= 0 or K <= 0:
        raise ValueError("Forward and strike must be positive for Black model")
    
    omega = 1.0 if is_call else -1.0
    if std_dev <= 0:
        return max(omega * (F - K), 0.0) * df
    
    d1 = np.log(F / K) / std_dev + 0.5 * std_dev
    d2 = d1 - std_dev
    return float(df * omega * (F * N(omega * d1) - K * N(omega * d2)))


def black76_call(
    F: float,
    K: float,
    T: float,
    sigma_b: float,
    df: float = 1.0
) -> float:
    """
    Black'76 model call option price.
    
    Assumes forward follows geometric Brownian motion:
    dF = sigma_b * F * dW
    
    Args:
        F: Forward
        K: Strike
        T: Time to expiry
        sigma_b: Black (lognormal) volatility
        df: Discount factor
        
    Returns:
        Call option price
    """
    return black_formula(F, K, sigma_b * np.sqrt(max(T, 0.0)), df, is_call=True)


def black76_put(
    F: float,
    K: float,
    T: float,
    sigma_b: float,
    df: float = 1.0
) -> float:
    """Black'76 model put option price."""
    return black_formula(F, K, sigma_b * np.sqrt(max(T, 0.0)), df, is_call=False)


def garman_kohlhagen(
    spot: float,
    K: float,
    T: float,
    sigma: float,
    r_domestic: float,
    r_foreign: float,
    is_call: bool = True
) -> float:
    """
    Garman-Kohlhagen FX option price with flat continuously compounded rates.
    
    Args:
        spot: Units of domestic currency per unit of foreign
        K: Strike
        T: Time to expiry
        sigma: Lognormal FX volatility
        r_domestic: Domestic rate
        r_foreign: Foreign rate
        is_call: True for call on the foreign currency
    """
    if T <= 0:
        omega = 1.0 if is_call else -1.0
        return max(omega * (spot - K), 0.0)
    sqrt_t = np.sqrt(T)
    d1 = (np.log(spot / K) + (r_domestic - r_foreign + 0.5 * sigma**2) * T) / (sigma * sqrt_t)
    d2 = d1 - sigma * sqrt_t
    if is_call:
        return float(spot * np.exp(-r_foreign * T) * N(d1) - K * np.exp(-r_domestic * T) * N(d2))
    return float(K * np.exp(-r_domestic * T) * N(-d2) - spot * np.exp(-r_foreign * T) * N(-d1))


__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black_formula",
    "black76_call",
    "black76_put",
    "garman_kohlhagen",
]
