"""
Calibration instruments.

A helper couples a market volatility quote with enough contract terms to
compute both a market value (quoted vol plugged into Bachelier/Black) and
a model value (through a pricing engine bound to the model). The
calibration drivers only use ``expiry``, ``market_value``,
``model_value`` and ``calibration_error``.

Conventions:
    - Notional 1
    - Swaptions: annual fixed leg starting at expiry, normal vols by default
    - FX options: strike in domestic per foreign, Black vols
    - CPI cap/floors: zero coupon, strike K = (1 + k)^T on the index ratio
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from ..market.curves import CurveHandle
from ..market.quotes import Quote
from .black import bachelier_call, bachelier_put, black_formula


class CalibrationHelper(ABC):
    """
    Base class for calibration instruments.
    
    Attributes:
        expiry: Option expiry in years
        volatility: Market vol quote (read on every market_value call)
    """
    
    def __init__(self, expiry: float, volatility: Quote):
        if expiry <= 0:
            raise ValueError(f"Option expiry must be positive, got {expiry}")
        self.expiry = float(expiry)
        self.volatility = volatility
        self._engine = None
    
    def set_pricing_engine(self, engine) -> None:
        self._engine = engine
    
    @property
    def engine(self):
        return self._engine
    
    @abstractmethod
    def market_value(self) -> float:
        """Value implied by the quoted volatility."""
    
    def model_value(self) -> float:
        if self._engine is None:
            raise RuntimeError(f"{type(self).__name__} has no pricing engine")
        return self._engine.calculate(self)
    
    def calibration_error(self) -> float:
        """Signed model minus market value."""
        return self.model_value() - self.market_value()
    
    def describe(self) -> dict:
        return {"instrument": type(self).__name__, "expiry": self.expiry,
                "volatility": self.volatility.value}


class SwaptionHelper(CalibrationHelper):
    """
    European swaption into a spot-starting (at expiry) fixed-vs-float swap.
    
    The floating leg is valued as P(0, T_e) - P(0, T_n) on the discount
    curve (single curve).
    """
    
    def __init__(
        self,
        expiry: float,
        term: float,
        volatility: Quote,
        discount_curve: CurveHandle,
        strike: Optional[float] = None,
        vol_type: str = "NORMAL",
        fixed_frequency: int = 1,
        is_payer: bool = True
    ):
        super().__init__(expiry, volatility)
        n_periods = int(round(term * fixed_frequency))
        if n_periods < 1:
            raise ValueError(f"Swap term {term} too short for frequency {fixed_frequency}")
        self.term = float(term)
        self.discount_curve = discount_curve
        self.vol_type = vol_type.upper()
        self.fixed_frequency = fixed_frequency
        self.is_payer = is_payer
        self.accrual = 1.0 / fixed_frequency
        self.payment_times = self.expiry + self.accrual * np.arange(1, n_periods + 1)
        # ATM strike is fixed when the helper is created
        self.strike = float(strike) if strike is not None else self.forward_rate()
    
    def annuity(self) -> float:
        return float(np.sum(self.accrual * self.discount_curve.discount(self.payment_times)))
    
    def forward_rate(self) -> float:
        p_start = self.discount_curve.discount(self.expiry)
        p_end = self.discount_curve.discount(self.payment_times[-1])
        return (p_start - p_end) / self.annuity()
    
    def cashflows(self) -> Tuple[np.ndarray, np.ndarray]:
        """Fixed leg coupons plus notional at the end, as (times, amounts)."""
        amounts = np.full(len(self.payment_times), self.strike * self.accrual)
        amounts[-1] += 1.0
        return self.payment_times.copy(), amounts
    
    def market_value(self) -> float:
        forward = self.forward_rate()
        annuity = self.annuity()
        vol = self.volatility.value
        if self.vol_type == "NORMAL":
            pricer = bachelier_call if self.is_payer else bachelier_put
            return pricer(forward, self.strike, self.expiry, vol, annuity)
        return black_formula(forward, self.strike, vol * np.sqrt(self.expiry), annuity,
                             is_call=self.is_payer)
    
    def describe(self) -> dict:
        info = super().describe()
        info.update({"term": self.term, "strike": self.strike})
        return info


class FxOptionHelper(CalibrationHelper):
    """European FX option on the foreign currency, paid in domestic currency."""
    
    def __init__(
        self,
        expiry: float,
        volatility: Quote,
        spot: Quote,
        domestic_curve: CurveHandle,
        foreign_curve: CurveHandle,
        strike: Optional[float] = None,
        is_call: bool = True
    ):
        super().__init__(expiry, volatility)
        self.spot = spot
        self.domestic_curve = domestic_curve
        self.foreign_curve = foreign_curve
        self.is_call = is_call
        # ATM forward strike is fixed when the helper is created
        self.strike = float(strike) if strike is not None else self.forward()
    
    def forward(self) -> float:
        return (self.spot.value * self.foreign_curve.discount(self.expiry)
                / self.domestic_curve.discount(self.expiry))
    
    def market_value(self) -> float:
        std_dev = self.volatility.value * np.sqrt(self.expiry)
        return black_formula(self.forward(), self.strike, std_dev,
                             self.domestic_curve.discount(self.expiry), self.is_call)
    
    def describe(self) -> dict:
        info = super().describe()
        info["strike"] = self.strike
        return info


class EqOptionHelper(CalibrationHelper):
    """European equity option paid in the equity currency."""
    
    def __init__(
        self,
        expiry: float,
        volatility: Quote,
        spot: Quote,
        discount_curve: CurveHandle,
        dividend_curve: CurveHandle,
        strike: Optional[float] = None,
        is_call: bool = True
    ):
        super().__init__(expiry, volatility)
        self.spot = spot
        self.discount_curve = discount_curve
        self.dividend_curve = dividend_curve
        self.is_call = is_call
        self.strike = float(strike) if strike is not None else self.forward()
    
    def forward(self) -> float:
        return (self.spot.value * self.dividend_curve.discount(self.expiry)
                / self.discount_curve.discount(self.expiry))
    
    def market_value(self) -> float:
        std_dev = self.volatility.value * np.sqrt(self.expiry)
        return black_formula(self.forward(), self.strike, std_dev,
                             self.discount_curve.discount(self.expiry), self.is_call)
    
    def describe(self) -> dict:
        info = super().describe()
        info["strike"] = self.strike
        return info


class CpiCapFloorHelper(CalibrationHelper):
    """
    Zero coupon CPI cap or floor.
    
    Pays max(w * (I(T)/I(0) - (1 + k)^T), 0) at expiry in the index currency.
    """
    
    def __init__(
        self,
        expiry: float,
        volatility: Quote,
        inflation_curve: CurveHandle,
        discount_curve: CurveHandle,
        strike_rate: Optional[float] = None,
        is_cap: bool = False
    ):
        super().__init__(expiry, volatility)
        self.inflation_curve = inflation_curve
        self.discount_curve = discount_curve
        self.is_cap = is_cap
        if strike_rate is None:
            strike_rate = float(self.inflation_curve.zero_rate(self.expiry))
        self.strike_rate = float(strike_rate)
    
    @property
    def strike(self) -> float:
        """Strike on the index ratio."""
        return (1.0 + self.strike_rate) ** self.expiry
    
    def forward(self) -> float:
        return float(self.inflation_curve.growth(self.expiry))
    
    def market_value(self) -> float:
        std_dev = self.volatility.value * np.sqrt(self.expiry)
        return black_formula(self.forward(), self.strike, std_dev,
                             self.discount_curve.discount(self.expiry), self.is_cap)
    
    def describe(self) -> dict:
        info = super().describe()
        info["strike"] = self.strike_rate
        return info


__all__ = [
    "CalibrationHelper",
    "SwaptionHelper",
    "FxOptionHelper",
    "EqOptionHelper",
    "CpiCapFloorHelper",
]
