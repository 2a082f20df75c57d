"""
Correlation matrix assembly for the cross-asset model.

Factors are named "<ASSET>:<name>":
    IR:EUR, FX:USDEUR (foreign + domestic), EQ:SP5, INF:EUHICPXT, CR:ACME

The matrix is indexed by Brownian drivers, one per factor, in the model's
layout order IR, FX, EQ, INF, CR. Unspecified pairs are uncorrelated.

Positive semi-definiteness is not checked here; it is checked when the
model dynamics are first used, where a salvaging algorithm can be chosen.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError
from ..market.quotes import Quote, as_quote
from .parametrization import AssetType

logger = logging.getLogger(__name__)


class SalvagingAlgorithm(Enum):
    """Treatment of a correlation matrix that is not positive semi-definite."""
    NONE = "None"
    SPECTRAL = "Spectral"


def factor_name(asset_type: AssetType, name: str) -> str:
    return f"{asset_type.value}:{name}"


def parse_factor(label: str) -> Tuple[AssetType, str]:
    """Split "IR:EUR" into (AssetType.IR, "EUR")."""
    asset, sep, name = label.partition(":")
    if not sep or not name:
        raise ConfigurationError(f"invalid factor name '{label}', expected '<ASSET>:<name>'")
    try:
        return AssetType(asset.upper()), name
    except ValueError:
        raise ConfigurationError(f"invalid asset type in factor name '{label}'") from None


def factor_names(
    currencies: Sequence[str],
    equities: Sequence[str] = (),
    inflation_indices: Sequence[str] = (),
    credit_names: Sequence[str] = ()
) -> List[str]:
    """Ordered driver names; the first currency is the domestic one."""
    if not currencies:
        raise ConfigurationError("at least one currency is required")
    domestic = currencies[0]
    names = [factor_name(AssetType.IR, c) for c in currencies]
    names += [factor_name(AssetType.FX, c + domestic) for c in currencies[1:]]
    names += [factor_name(AssetType.EQ, e) for e in equities]
    names += [factor_name(AssetType.INF, i) for i in inflation_indices]
    names += [factor_name(AssetType.CR, c) for c in credit_names]
    return names


class CorrelationMatrixBuilder:
    """
    Collects pairwise correlations keyed by factor names.
    
    Quotes are resolved when ``correlation_matrix`` is called, so a later
    change of a quote is picked up by the next build.
    """
    
    def __init__(self):
        self._correlations: Dict[Tuple[str, str], Quote] = {}
    
    @staticmethod
    def _key(factor1: str, factor2: str) -> Tuple[str, str]:
        return tuple(sorted((factor1, factor2)))
    
    def add_correlation(self, factor1: str, factor2: str,
                        correlation: Union[float, Quote]) -> None:
        """
        Register a correlation between two named factors.
        
        Args:
            factor1: Factor name, e.g. "IR:EUR"
            factor2: Factor name, e.g. "FX:USDEUR"
            correlation: Value or Quote in [-1, 1]
        
        Raises:
            ConfigurationError: for a self-correlation, a bad factor name,
                an out-of-range value or a conflicting duplicate
        """
        parse_factor(factor1)
        parse_factor(factor2)
        if factor1 == factor2:
            raise ConfigurationError(f"self correlation for {factor1} is fixed at 1")
        quote = as_quote(correlation)
        self._check_range(factor1, factor2, quote.value)
        key = self._key(factor1, factor2)
        existing = self._correlations.get(key)
        if existing is not None and existing is not quote and existing.value != quote.value:
            raise ConfigurationError(
                f"conflicting correlations for ({factor1}, {factor2}): "
                f"{existing.value} and {quote.value}"
            )
        self._correlations[key] = quote
        logger.debug("added correlation %s/%s = %s", factor1, factor2, quote.value)
    
    @staticmethod
    def _check_range(factor1: str, factor2: str, value: float) -> None:
        if not -1.0 <= value <= 1.0:
            raise ConfigurationError(
                f"correlation {value} for ({factor1}, {factor2}) outside [-1, 1]"
            )
    
    @property
    def correlations(self) -> Dict[Tuple[str, str], Quote]:
        return dict(self._correlations)
    
    def quotes(self) -> List[Quote]:
        return list(self._correlations.values())
    
    def correlation(self, factor1: str, factor2: str) -> float:
        if factor1 == factor2:
            return 1.0
        quote = self._correlations.get(self._key(factor1, factor2))
        return 0.0 if quote is None else quote.value
    
    def correlation_matrix(
        self,
        currencies: Sequence[str],
        equities: Sequence[str] = (),
        inflation_indices: Sequence[str] = (),
        credit_names: Sequence[str] = ()
    ) -> np.ndarray:
        """
        Assemble the driver correlation matrix.
        
        Raises:
            ConfigurationError: if a registered correlation references a
                factor outside the requested universe or is out of range
        """
        names = factor_names(currencies, equities, inflation_indices, credit_names)
        position = {n: i for i, n in enumerate(names)}
        if len(position) != len(names):
            raise ConfigurationError(f"duplicate factor names in {names}")
        
        matrix = np.eye(len(names))
        for (f1, f2), quote in self._correlations.items():
            for f in (f1, f2):
                if f not in position:
                    raise ConfigurationError(
                        f"correlation references unknown factor '{f}' (factors: {names})"
                    )
            self._check_range(f1, f2, quote.value)
            i, j = position[f1], position[f2]
            matrix[i, j] = matrix[j, i] = quote.value
        return matrix


def check_correlation_matrix(matrix: np.ndarray) -> np.ndarray:
    """Validate shape, symmetry, unit diagonal and range."""
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ConfigurationError(f"correlation matrix must be square, got shape {matrix.shape}")
    if not np.allclose(matrix, matrix.T, atol=1e-14):
        raise ConfigurationError("correlation matrix is not symmetric")
    if not np.allclose(np.diag(matrix), 1.0, atol=1e-14):
        raise ConfigurationError("correlation matrix must have unit diagonal")
    if np.any(np.abs(matrix) > 1.0 + 1e-14):
        raise ConfigurationError("correlation matrix entries must be in [-1, 1]")
    return matrix


def is_positive_semidefinite(matrix: np.ndarray, tolerance: float = 1e-12) -> bool:
    return bool(np.linalg.eigvalsh(matrix).min() >= -tolerance)


def salvage_correlation(
    matrix: np.ndarray,
    algorithm: SalvagingAlgorithm = SalvagingAlgorithm.NONE
) -> np.ndarray:
    """
    Return a positive semi-definite correlation matrix.
    
    With SPECTRAL, negative eigenvalues are clipped to zero and the result
    is rescaled to unit diagonal. With NONE a non PSD matrix is an error.
    """
    if is_positive_semidefinite(matrix):
        return matrix
    if algorithm == SalvagingAlgorithm.NONE:
        raise ConfigurationError(
            f"correlation matrix is not positive semi-definite "
            f"(min eigenvalue {np.linalg.eigvalsh(matrix).min():.3e})"
        )
    eigenvalues, eigenvectors = np.linalg.eigh(matrix)
    logger.warning("salvaging correlation matrix, min eigenvalue %.3e", eigenvalues.min())
    eigenvalues = np.maximum(eigenvalues, 0.0)
    fixed = eigenvectors @ np.diag(eigenvalues) @ eigenvectors.T
    scale = 1.0 / np.sqrt(np.diag(fixed))
    fixed = fixed * np.outer(scale, scale)
    return 0.5 * (fixed + fixed.T)


def matrix_sqrt(matrix: np.ndarray) -> np.ndarray:
    """
    Square root L with L @ L.T == matrix.
    
    Cholesky for positive definite input, symmetric eigen-decomposition
    with clipped eigenvalues for singular input.
    """
    try:
        return np.linalg.cholesky(matrix)
    except np.linalg.LinAlgError:
        eigenvalues, eigenvectors = np.linalg.eigh(matrix)
        return eigenvectors * np.sqrt(np.maximum(eigenvalues, 0.0))


__all__ = [
    "SalvagingAlgorithm",
    "CorrelationMatrixBuilder",
    "factor_name",
    "parse_factor",
    "factor_names",
    "check_correlation_matrix",
    "is_positive_semidefinite",
    "salvage_correlation",
    "matrix_sqrt",
]
