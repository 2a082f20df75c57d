"""Black-Scholes equity sub-model builder."""

from ..market.curves import CurveHandle
from ..market.market import (
    DEFAULT_CONFIGURATION,
    DISCOUNT,
    DIVIDEND,
    EQUITY_SPOT,
    EQUITY_VOL,
    Market,
)
from ..models.parametrization import AssetType, EqBsParametrization
from ..pricing.helpers import EqOptionHelper
from .base import CalibrationMode, SubModelBuilder, build_parameter, choose_calibration
from .config import EqBsData


class EqBsBuilder(SubModelBuilder):
    """
    Builds the parametrization and option basket of one equity.
    
    Attributes:
        data: Equity configuration
        dividend_curve: Handle to the equity's dividend yield curve
    """
    
    asset_type = AssetType.EQ
    
    def __init__(self, market: Market, data: EqBsData,
                 configuration: str = DEFAULT_CONFIGURATION):
        super().__init__(market, configuration)
        self.data = data
        self.dividend_curve = CurveHandle()
        self._build()
    
    @property
    def name(self) -> str:
        return self.data.name
    
    def _build(self) -> None:
        data = self.data
        label = f"EQ:{data.name}"
        spot = self._read(EQUITY_SPOT, data.name, self.market.equity_spot)
        self._discount_curve.link_to(
            self._read(DISCOUNT, data.currency, self.market.discount_curve), self.configuration)
        self.dividend_curve.link_to(
            self._read(DIVIDEND, data.name, self.market.dividend_curve), self.configuration)
        
        self.calibration_mode = choose_calibration(
            data.calibration_type, data.calibrate_sigma, data.sigma_type, label=label)
        rows = self._option_rows(label, data.expiry_times, data.option_strikes)
        if rows:
            surface = self._read(EQUITY_VOL, data.name, self.market.equity_vol)
            self._basket = [
                EqOptionHelper(expiry, surface.quote(expiry), spot, self._discount_curve,
                               self.dividend_curve, strike=strike)
                for expiry, strike in rows
            ]
        
        sigma = build_parameter(
            "sigma", data.sigma_type, data.sigma_times, data.sigma_values,
            self.calibration_mode == CalibrationMode.VOLATILITY_ITERATIVE,
            [h.expiry for h in self._basket]
        )
        self._parametrization = EqBsParametrization(data.name, data.currency, spot,
                                                    self.dividend_curve, sigma)
        self._finish()


__all__ = ["EqBsBuilder"]
