"""
Dodgson-Kainth inflation sub-model builder.

Prepares the parametrization and the zero coupon CPI cap/floor basket of
one inflation index. Calibration runs in the cross-asset builder's
inflation stage.
"""

from ..market.curves import CurveHandle
from ..market.market import CPI_VOL, DEFAULT_CONFIGURATION, DISCOUNT, INFLATION, Market
from ..models.parametrization import AssetType, InfDkParametrization
from ..pricing.helpers import CpiCapFloorHelper
from .base import CalibrationMode, SubModelBuilder, build_parameter, choose_calibration
from .config import InfDkData


class InfDkBuilder(SubModelBuilder):
    """
    Builds the DK parametrization of one inflation index.
    
    Attributes:
        data: Inflation configuration
        inflation_curve: Handle to the zero inflation curve
    """
    
    asset_type = AssetType.INF
    
    def __init__(self, market: Market, data: InfDkData,
                 configuration: str = DEFAULT_CONFIGURATION):
        super().__init__(market, configuration)
        self.data = data
        self.inflation_curve = CurveHandle()
        self._build()
    
    @property
    def name(self) -> str:
        return self.data.index
    
    def _build(self) -> None:
        data = self.data
        label = f"INF:{data.index}"
        self.inflation_curve.link_to(
            self._read(INFLATION, data.index, self.market.inflation_curve), self.configuration)
        self._discount_curve.link_to(
            self._read(DISCOUNT, data.currency, self.market.discount_curve), self.configuration)
        
        self.calibration_mode = choose_calibration(
            data.calibration_type, data.calibrate_alpha, data.alpha_type,
            data.calibrate_kappa, data.kappa_type, label
        )
        rows = self._option_rows(label, data.expiry_times, data.option_strikes)
        if rows:
            surface = self._read(CPI_VOL, data.index, self.market.cpi_vol)
            is_cap = data.cap_floor == "Cap"
            self._basket = [
                CpiCapFloorHelper(expiry, surface.quote(expiry), self.inflation_curve,
                                  self._discount_curve, strike_rate=strike, is_cap=is_cap)
                for expiry, strike in rows
            ]
        
        expiries = [h.expiry for h in self._basket]
        mode = self.calibration_mode
        alpha = build_parameter("alpha", data.alpha_type, data.alpha_times, data.alpha_values,
                                mode == CalibrationMode.VOLATILITY_ITERATIVE, expiries)
        kappa = build_parameter("kappa", data.kappa_type, data.kappa_times, data.kappa_values,
                                mode == CalibrationMode.REVERSION_ITERATIVE, expiries)
        self._parametrization = InfDkParametrization(data.index, data.currency,
                                                     self.inflation_curve, alpha, kappa)
        self._finish()


__all__ = ["InfDkBuilder"]
