"""
Black-Scholes FX sub-model builder.

The FX volatility is calibrated later by the cross-asset builder against
the joint model; this builder only prepares the parametrization and the
FX option basket.
"""

from ..market.curves import CurveHandle
from ..market.market import DEFAULT_CONFIGURATION, DISCOUNT, FX_SPOT, FX_VOL, Market
from ..models.parametrization import AssetType, FxBsParametrization
from ..pricing.helpers import FxOptionHelper
from .base import CalibrationMode, SubModelBuilder, build_parameter, choose_calibration
from .config import FxBsData


class FxBsBuilder(SubModelBuilder):
    """
    Builds the FX parametrization of one foreign currency.
    
    Attributes:
        data: FX configuration
        foreign_curve: Handle to the foreign discount curve used by the basket
    """
    
    asset_type = AssetType.FX
    
    def __init__(self, market: Market, data: FxBsData,
                 configuration: str = DEFAULT_CONFIGURATION):
        super().__init__(market, configuration)
        self.data = data
        self.foreign_curve = CurveHandle()
        self._build()
    
    @property
    def name(self) -> str:
        return self.data.pair
    
    def _build(self) -> None:
        data = self.data
        label = f"FX:{data.pair}"
        spot = self._read(FX_SPOT, data.pair, self.market.fx_spot)
        self._discount_curve.link_to(
            self._read(DISCOUNT, data.domestic_ccy, self.market.discount_curve), self.configuration)
        self.foreign_curve.link_to(
            self._read(DISCOUNT, data.foreign_ccy, self.market.discount_curve), self.configuration)
        
        self.calibration_mode = choose_calibration(
            data.calibration_type, data.calibrate_sigma, data.sigma_type, label=label)
        rows = self._option_rows(label, data.expiry_times, data.option_strikes)
        if rows:
            surface = self._read(FX_VOL, data.pair, self.market.fx_vol)
            self._basket = [
                FxOptionHelper(expiry, surface.quote(expiry), spot, self._discount_curve,
                               self.foreign_curve, strike=strike)
                for expiry, strike in rows
            ]
        
        sigma = build_parameter(
            "sigma", data.sigma_type, data.sigma_times, data.sigma_values,
            self.calibration_mode == CalibrationMode.VOLATILITY_ITERATIVE,
            [h.expiry for h in self._basket]
        )
        self._parametrization = FxBsParametrization(data.foreign_ccy, data.domestic_ccy,
                                                    spot, sigma)
        self._finish()


__all__ = ["FxBsBuilder"]
