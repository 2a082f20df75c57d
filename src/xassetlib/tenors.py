"""
Tenor parsing.

Calibration baskets are configured with tenor strings ("6M", "2Y", "10Y").
Everything downstream works in year fractions from the market as-of date.
"""

import numbers
import re
from typing import List, Sequence, Tuple, Union

_TENOR_RE = re.compile(r"^(\d+)([DWMY])$")


def parse_tenor(tenor: str) -> Tuple[int, str]:
    """
    Parse tenor string into (amount, unit).
    
    Args:
        tenor: Tenor string like "3M", "5Y", "2W", "1D"
        
    Returns:
        Tuple of (amount, unit) where unit is D, W, M, or Y
    """
    match = _TENOR_RE.match(str(tenor).upper().strip())
    if not match:
        raise ValueError(f"Invalid tenor format: {tenor}")
    return int(match.group(1)), match.group(2)


def tenor_to_years(tenor: Union[str, float, int]) -> float:
    """
    Convert a tenor to a year fraction.
    
    Numbers are taken to be year fractions already.
    """
    if isinstance(tenor, numbers.Real):
        return float(tenor)
    
    amount, unit = parse_tenor(tenor)
    if unit == "D":
        return amount / 365.0
    if unit == "W":
        return amount * 7 / 365.0
    if unit == "M":
        return amount / 12.0
    return float(amount)


def tenors_to_years(tenors: Sequence[Union[str, float, int]]) -> List[float]:
    """Vector version of tenor_to_years."""
    return [tenor_to_years(t) for t in tenors]


__all__ = ["parse_tenor", "tenor_to_years", "tenors_to_years"]
