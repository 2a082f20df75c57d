"""
Analytic pricing engines bound to a cross-asset model.

Each engine holds the model and a factor index, never a parametrization,
so it always prices with the parameters currently installed in the model.
This is what lets the calibration drivers work through the helpers.
"""

import numpy as np
from scipy.optimize import brentq
from scipy.stats import norm

from ..models.parametrization import AssetType
from .black import black_formula


class AnalyticLgmSwaptionEngine:
    """
    Jamshidian decomposition for European swaptions in the LGM model.
    
    With z ~ N(0, zeta(T_e)) under the LGM measure, the deflated bonds are
    P(0, T_i) exp(-H_i z - H_i^2 zeta / 2); the exercise boundary z* is
    found with Brent's method.
    """
    
    def __init__(self, model, ccy: int = 0):
        self.model = model
        self.ccy = ccy
    
    def calculate(self, helper) -> float:
        p = self.model.ir_lgm(self.ccy)
        curve = p.discount_curve
        expiry = helper.expiry
        times, amounts = helper.cashflows()
        
        zeta = p.zeta(expiry)
        H_e, H_i = p.H(expiry), np.asarray(p.H(times))
        P_e, P_i = curve.discount(expiry), np.asarray(curve.discount(times))
        omega = 1.0 if helper.is_payer else -1.0
        
        if zeta < 1e-20:
            return max(omega * (P_e - np.sum(amounts * P_i)), 0.0)
        std_dev = np.sqrt(zeta)
        
        def boundary(z):
            return np.sum(amounts * P_i / P_e * np.exp(
                -(H_i - H_e) * z - 0.5 * (H_i**2 - H_e**2) * zeta)) - 1.0
        
        width = 8.0 * std_dev
        lo, hi = -width, width
        for _ in range(60):
            if boundary(lo) * boundary(hi) <= 0:
                break
            lo, hi = 2.0 * lo, 2.0 * hi
        else:
            raise RuntimeError(f"no exercise boundary for swaption expiring {expiry}")
        z_star = brentq(boundary, lo, hi, xtol=1e-14, maxiter=200)
        
        # payer exercise region is z > z* when bond prices fall with z
        region = omega * (1.0 if H_i[-1] > H_e else -1.0)
        
        def leg(H):
            return norm.cdf(region * (-z_star - H * zeta) / std_dev)
        
        value = P_e * leg(H_e) - np.sum(amounts * P_i * leg(H_i))
        return float(omega * value)


class AnalyticXAssetLgmFxOptionEngine:
    """
    FX option under the cross-asset model.
    
    log FX(T) is Gaussian under the domestic T-forward measure with mean
    given by the market forward and variance from the joint dynamics, which
    includes both currencies' rates volatility and their correlations.
    """
    
    def __init__(self, model, fx: int):
        self.model = model
        self.fx = fx
    
    def calculate(self, helper) -> float:
        expiry = helper.expiry
        variance = self.model.component_variance(AssetType.FX, self.fx, expiry)
        p_dom = self.model.ir_lgm(0).discount_curve.discount(expiry)
        p_for = self.model.ir_lgm(self.fx + 1).discount_curve.discount(expiry)
        forward = self.model.fxbs(self.fx).spot * p_for / p_dom
        return black_formula(forward, helper.strike, np.sqrt(max(variance, 0.0)),
                             p_dom, helper.is_call)


class AnalyticXAssetEqOptionEngine:
    """Equity option under the cross-asset model, in the equity currency."""
    
    def __init__(self, model, eq: int):
        self.model = model
        self.eq = eq
    
    def calculate(self, helper) -> float:
        expiry = helper.expiry
        p = self.model.eqbs(self.eq)
        ccy = self.model.ccy_index(p.currency)
        variance = self.model.component_variance(AssetType.EQ, self.eq, expiry)
        p_ccy = self.model.ir_lgm(ccy).discount_curve.discount(expiry)
        forward = p.spot * p.dividend_curve.discount(expiry) / p_ccy
        return black_formula(forward, helper.strike, np.sqrt(max(variance, 0.0)),
                             p_ccy, helper.is_call)


class AnalyticDkCpiCapFloorEngine:
    """
    Zero coupon CPI cap/floor under the Dodgson-Kainth factor.
    
    The index ratio is lognormal around the zero inflation curve growth
    with log-variance Var(y(T)) = int (H(T) - H(u))^2 alpha(u)^2 du.
    """
    
    def __init__(self, model, index: int):
        self.model = model
        self.index = index
    
    def calculate(self, helper) -> float:
        expiry = helper.expiry
        p = self.model.infdk(self.index)
        ccy = self.model.ccy_index(p.currency)
        variance = self.model.component_variance(AssetType.INF, self.index, expiry, aux=1)
        discount = self.model.ir_lgm(ccy).discount_curve.discount(expiry)
        forward = float(p.inflation_curve.growth(expiry))
        return black_formula(forward, helper.strike, np.sqrt(max(variance, 0.0)),
                             discount, helper.is_cap)


__all__ = [
    "AnalyticLgmSwaptionEngine",
    "AnalyticXAssetLgmFxOptionEngine",
    "AnalyticXAssetEqOptionEngine",
    "AnalyticDkCpiCapFloorEngine",
]
