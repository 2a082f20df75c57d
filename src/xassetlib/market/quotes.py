"""
Versioned market quotes and volatility surfaces.

Every observable market value carries a generation counter. Consumers keep
a snapshot of the versions they read and compare it later to find out
whether anything they depend on has moved.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..tenors import tenor_to_years


class Quote:
    """
    A single mutable market value with a version counter.
    
    The version is bumped on every assignment to ``value``, also when the
    new value equals the old one (a re-publication is still an update).
    """
    
    def __init__(self, value: float):
        self._value = float(value)
        self._version = 0
    
    @property
    def value(self) -> float:
        return self._value
    
    @value.setter
    def value(self, new_value: float) -> None:
        self._value = float(new_value)
        self._version += 1
    
    @property
    def version(self) -> int:
        return self._version
    
    def __float__(self) -> float:
        return self._value
    
    def __repr__(self) -> str:
        return f"Quote({self._value!r}, version={self._version})"


def as_quote(value: Union[float, Quote]) -> Quote:
    """Wrap plain numbers into a Quote, pass quotes through."""
    return value if isinstance(value, Quote) else Quote(value)


@dataclass
class VolatilitySurface:
    """
    Grid of implied volatility quotes.
    
    Keys are (expiry, term) in year fractions; surfaces without an
    underlying term (FX, equity, CPI) use term 0.0. Lookups snap to the
    nearest grid point, which is all calibration baskets need since they
    are configured on the quoted grid.
    
    Attributes:
        name: Identifier (currency, pair, equity or index name)
        quotes: Mapping of (expiry, term) -> Quote
        vol_type: "NORMAL" (swaptions) or "LOGNORMAL"
    """
    name: str
    quotes: Dict[Tuple[float, float], Quote] = field(default_factory=dict)
    vol_type: str = "LOGNORMAL"
    
    @classmethod
    def from_grid(
        cls,
        name: str,
        expiries: Sequence[Union[str, float]],
        vols: Union[Sequence[float], Sequence[Sequence[float]]],
        terms: Optional[Sequence[Union[str, float]]] = None,
        vol_type: str = "LOGNORMAL"
    ) -> "VolatilitySurface":
        """
        Build a surface from an expiry (x term) grid.
        
        Args:
            name: Surface identifier
            expiries: Expiry tenors or year fractions
            vols: 1d vols per expiry, or 2d [expiry][term] when terms are given
            terms: Optional underlying terms (swaptions)
            vol_type: Quoting convention
        """
        surface = cls(name=name, vol_type=vol_type)
        vols = np.asarray(vols, dtype=float)
        for i, expiry in enumerate(expiries):
            t_exp = tenor_to_years(expiry)
            if terms is None:
                surface.quotes[(t_exp, 0.0)] = Quote(float(np.ravel(vols)[i]))
            else:
                for j, term in enumerate(terms):
                    value = vols[i, j] if vols.ndim == 2 else vols[i]
                    surface.quotes[(t_exp, tenor_to_years(term))] = Quote(float(value))
        return surface
    
    @classmethod
    def flat(
        cls,
        name: str,
        vol: float,
        vol_type: str = "LOGNORMAL"
    ) -> "VolatilitySurface":
        """Single-quote surface returning ``vol`` everywhere."""
        return cls(name=name, quotes={(1.0, 0.0): Quote(vol)}, vol_type=vol_type)
    
    def quote(self, expiry: Union[str, float], term: Union[str, float] = 0.0) -> Quote:
        """Quote at the grid point nearest to (expiry, term)."""
        if not self.quotes:
            raise ValueError(f"Volatility surface {self.name} has no quotes")
        t_exp = tenor_to_years(expiry)
        t_term = tenor_to_years(term)
        key = min(
            self.quotes,
            key=lambda k: (abs(k[0] - t_exp), abs(k[1] - t_term))
        )
        return self.quotes[key]
    
    def volatility(self, expiry: Union[str, float], term: Union[str, float] = 0.0) -> float:
        return self.quote(expiry, term).value
    
    @property
    def version(self) -> int:
        return sum(q.version for q in self.quotes.values())


__all__ = ["Quote", "as_quote", "VolatilitySurface"]
