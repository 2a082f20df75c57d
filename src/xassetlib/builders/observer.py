"""
Staleness detection by version counters.

Every market entry and quote carries a monotone version. An observer
records the versions it has read; comparing that snapshot with the
current versions tells whether anything it depends on has changed.
"""

from typing import Dict, Hashable, Mapping, Tuple

from ..market.market import FX_SPOT, Market
from ..market.quotes import Quote

MISSING = -1


def is_stale(snapshot: Mapping[Hashable, int], current: Mapping[Hashable, int]) -> bool:
    """True if any observed version differs (or the observed set changed)."""
    return dict(snapshot) != dict(current)


class MarketObserver:
    """
    Watches market keys and individual quotes.
    
    Attributes:
        market: The market whose entries are watched
    """
    
    def __init__(self, market: Market):
        self.market = market
        self._keys: Dict[Tuple[str, str, str], None] = {}
        self._quotes: Dict[str, Quote] = {}
        self._snapshot: Dict[Hashable, int] = {}
    
    def watch(self, kind: str, name: str, configuration: str) -> None:
        self._keys[(kind, name, configuration)] = None
    
    def watch_quote(self, label: str, quote: Quote) -> None:
        self._quotes[label] = quote
    
    def _version(self, kind: str, name: str, configuration: str) -> int:
        if kind == FX_SPOT:
            if not (self.market.has(FX_SPOT, name, configuration)
                    or self.market.has(FX_SPOT, name[3:] + name[:3], configuration)):
                return MISSING
            return self.market.fx_spot_version(name, configuration)
        if not self.market.has(kind, name, configuration):
            return MISSING
        return self.market.version(kind, name, configuration)
    
    def versions(self) -> Dict[Hashable, int]:
        """Current versions of everything watched."""
        current: Dict[Hashable, int] = {}
        for key in self._keys:
            current[key] = self._version(*key)
            # an entry of its own replacing the default fallback is a change too
            current[key + ("own",)] = int(key in self.market.entries)
        for label, quote in self._quotes.items():
            current[("quote", label)] = quote.version
        return current
    
    def snapshot(self) -> Dict[Hashable, int]:
        """Record the current versions as the last seen state."""
        self._snapshot = self.versions()
        return dict(self._snapshot)
    
    @property
    def last_snapshot(self) -> Dict[Hashable, int]:
        return dict(self._snapshot)
    
    def has_changed(self) -> bool:
        return is_stale(self._snapshot, self.versions())


__all__ = ["is_stale", "MarketObserver", "MISSING"]
