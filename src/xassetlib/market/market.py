"""
Market data container.

The Market is a keyed store of curves, spots and volatility surfaces.
Every entry lives under (kind, name, configuration). A lookup for a
configuration that has no entry of its own falls back to the
``"default"`` configuration, so a market only has to carry the data that
actually differs between calibration stages.

Each key carries a version counter bumped on every ``set_*`` call.
Spots and volatility surfaces are made of Quotes and add their own
quote versions, so mutating a quote in place is visible in
``version(...)`` as well.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple, Union

from ..errors import MarketDataNotFoundError
from .curves import InflationCurve, SurvivalCurve, YieldCurve
from .quotes import Quote, VolatilitySurface, as_quote

logger = logging.getLogger(__name__)

DEFAULT_CONFIGURATION = "default"

# Entry kinds
DISCOUNT = "discount"
DIVIDEND = "dividend"
DEFAULT_CURVE = "default_curve"
INFLATION = "inflation"
FX_SPOT = "fx_spot"
EQUITY_SPOT = "equity_spot"
SWAPTION_VOL = "swaption_vol"
FX_VOL = "fx_vol"
EQUITY_VOL = "equity_vol"
CPI_VOL = "cpi_vol"

Key = Tuple[str, str, str]


def fx_pair(foreign: str, domestic: str) -> str:
    """Pair name in FORDOM convention: units of domestic per unit of foreign."""
    return f"{foreign}{domestic}"


@dataclass
class Market:
    """
    Keyed market data store.
    
    Attributes:
        asof: Free-form as-of label (used in logs and reports only)
        entries: Mapping (kind, name, configuration) -> object
    """
    asof: str = ""
    entries: Dict[Key, object] = field(default_factory=dict)
    _versions: Dict[Key, int] = field(default_factory=dict, repr=False)
    
    # ------------------------------------------------------------------
    # generic store
    # ------------------------------------------------------------------
    
    def _set(self, kind: str, name: str, value, configuration: str) -> None:
        key = (kind, name, configuration)
        self.entries[key] = value
        self._versions[key] = self._versions.get(key, 0) + 1
        logger.debug("market set %s/%s/%s (version %d)", kind, name, configuration,
                     self._versions[key])
    
    def _resolve(self, kind: str, name: str, configuration: str) -> Key:
        key = (kind, name, configuration)
        if key in self.entries:
            return key
        fallback = (kind, name, DEFAULT_CONFIGURATION)
        if fallback in self.entries:
            return fallback
        raise MarketDataNotFoundError(kind, name, configuration)
    
    def _get(self, kind: str, name: str, configuration: str):
        return self.entries[self._resolve(kind, name, configuration)]
    
    def has(self, kind: str, name: str, configuration: str = DEFAULT_CONFIGURATION) -> bool:
        try:
            self._resolve(kind, name, configuration)
        except MarketDataNotFoundError:
            return False
        return True
    
    def version(self, kind: str, name: str, configuration: str = DEFAULT_CONFIGURATION) -> int:
        """
        Generation counter of the entry a lookup would resolve to.
        
        Includes the versions of any Quotes inside the entry.
        """
        key = self._resolve(kind, name, configuration)
        value = self.entries[key]
        inner = 0
        if isinstance(value, (Quote, VolatilitySurface)):
            inner = value.version
        return self._versions[key] + inner
    
    # ------------------------------------------------------------------
    # setters
    # ------------------------------------------------------------------
    
    def set_discount_curve(self, ccy: str, curve: YieldCurve,
                           configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(DISCOUNT, ccy, curve, configuration)
    
    def set_dividend_curve(self, equity: str, curve: YieldCurve,
                           configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(DIVIDEND, equity, curve, configuration)
    
    def set_default_curve(self, name: str, curve: SurvivalCurve,
                          configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(DEFAULT_CURVE, name, curve, configuration)
    
    def set_inflation_curve(self, index: str, curve: InflationCurve,
                            configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(INFLATION, index, curve, configuration)
    
    def set_fx_spot(self, pair: str, spot: Union[float, Quote],
                    configuration: str = DEFAULT_CONFIGURATION) -> Quote:
        quote = as_quote(spot)
        self._set(FX_SPOT, pair, quote, configuration)
        return quote
    
    def set_equity_spot(self, equity: str, spot: Union[float, Quote],
                        configuration: str = DEFAULT_CONFIGURATION) -> Quote:
        quote = as_quote(spot)
        self._set(EQUITY_SPOT, equity, quote, configuration)
        return quote
    
    def set_swaption_vol(self, ccy: str, surface: VolatilitySurface,
                         configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(SWAPTION_VOL, ccy, surface, configuration)
    
    def set_fx_vol(self, pair: str, surface: VolatilitySurface,
                   configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(FX_VOL, pair, surface, configuration)
    
    def set_equity_vol(self, equity: str, surface: VolatilitySurface,
                       configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(EQUITY_VOL, equity, surface, configuration)
    
    def set_cpi_vol(self, index: str, surface: VolatilitySurface,
                    configuration: str = DEFAULT_CONFIGURATION) -> None:
        self._set(CPI_VOL, index, surface, configuration)
    
    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    
    def discount_curve(self, ccy: str,
                       configuration: str = DEFAULT_CONFIGURATION) -> YieldCurve:
        return self._get(DISCOUNT, ccy, configuration)
    
    def dividend_curve(self, equity: str,
                       configuration: str = DEFAULT_CONFIGURATION) -> YieldCurve:
        return self._get(DIVIDEND, equity, configuration)
    
    def default_curve(self, name: str,
                      configuration: str = DEFAULT_CONFIGURATION) -> SurvivalCurve:
        return self._get(DEFAULT_CURVE, name, configuration)
    
    def inflation_curve(self, index: str,
                        configuration: str = DEFAULT_CONFIGURATION) -> InflationCurve:
        return self._get(INFLATION, index, configuration)
    
    def fx_spot(self, pair: str, configuration: str = DEFAULT_CONFIGURATION) -> Quote:
        """
        FX spot quote for a FORDOM pair.
        
        If only the inverse pair is stored, a fresh Quote holding the
        reciprocal is returned; it does not track later changes, but the
        inverse key's version still does.
        """
        if not self.has(FX_SPOT, pair, configuration) and len(pair) == 6:
            inverse = pair[3:] + pair[:3]
            if self.has(FX_SPOT, inverse, configuration):
                return Quote(1.0 / self._get(FX_SPOT, inverse, configuration).value)
        return self._get(FX_SPOT, pair, configuration)
    
    def fx_spot_version(self, pair: str, configuration: str = DEFAULT_CONFIGURATION) -> int:
        if not self.has(FX_SPOT, pair, configuration) and len(pair) == 6:
            inverse = pair[3:] + pair[:3]
            if self.has(FX_SPOT, inverse, configuration):
                return self.version(FX_SPOT, inverse, configuration)
        return self.version(FX_SPOT, pair, configuration)
    
    def equity_spot(self, equity: str, configuration: str = DEFAULT_CONFIGURATION) -> Quote:
        return self._get(EQUITY_SPOT, equity, configuration)
    
    def swaption_vol(self, ccy: str,
                     configuration: str = DEFAULT_CONFIGURATION) -> VolatilitySurface:
        return self._get(SWAPTION_VOL, ccy, configuration)
    
    def fx_vol(self, pair: str,
               configuration: str = DEFAULT_CONFIGURATION) -> VolatilitySurface:
        return self._get(FX_VOL, pair, configuration)
    
    def equity_vol(self, equity: str,
                   configuration: str = DEFAULT_CONFIGURATION) -> VolatilitySurface:
        return self._get(EQUITY_VOL, equity, configuration)
    
    def cpi_vol(self, index: str,
                configuration: str = DEFAULT_CONFIGURATION) -> VolatilitySurface:
        return self._get(CPI_VOL, index, configuration)


__all__ = [
    "Market",
    "DEFAULT_CONFIGURATION",
    "fx_pair",
    "DISCOUNT",
    "DIVIDEND",
    "DEFAULT_CURVE",
    "INFLATION",
    "FX_SPOT",
    "EQUITY_SPOT",
    "SWAPTION_VOL",
    "FX_VOL",
    "EQUITY_VOL",
    "CPI_VOL",
]
