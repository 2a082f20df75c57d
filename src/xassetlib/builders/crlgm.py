"""LGM-type credit sub-model builder. Credit factors are not calibrated."""

from ..market.curves import CurveHandle
from ..market.market import DEFAULT_CONFIGURATION, DEFAULT_CURVE, DISCOUNT, Market
from ..models.parametrization import AssetType, CrLgm1fParametrization
from .base import SubModelBuilder, build_parameter
from .config import CrLgmData


class CrLgmBuilder(SubModelBuilder):
    """
    Builds the credit parametrization of one name from its default curve.
    
    Attributes:
        data: Credit configuration
        survival_curve: Handle to the name's survival probability curve
    """
    
    asset_type = AssetType.CR
    
    def __init__(self, market: Market, data: CrLgmData,
                 configuration: str = DEFAULT_CONFIGURATION):
        super().__init__(market, configuration)
        self.data = data
        self.survival_curve = CurveHandle()
        self._build()
    
    @property
    def name(self) -> str:
        return self.data.name
    
    def _build(self) -> None:
        data = self.data
        self.survival_curve.link_to(
            self._read(DEFAULT_CURVE, data.name, self.market.default_curve), self.configuration)
        self._discount_curve.link_to(
            self._read(DISCOUNT, data.currency, self.market.discount_curve), self.configuration)
        alpha = build_parameter("alpha", data.alpha_type, data.alpha_times, data.alpha_values)
        kappa = build_parameter("kappa", data.kappa_type, data.kappa_times, data.kappa_values)
        self._parametrization = CrLgm1fParametrization(data.name, data.currency,
                                                       self.survival_curve, alpha, kappa)
        self._finish()


__all__ = ["CrLgmBuilder"]
