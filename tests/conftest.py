"""
Shared fixtures: a EUR-domestic market with USD, an equity, an inflation
index and a credit name, plus factories for directly assembled models.
"""

import numpy as np
import pytest

from xassetlib.builders import (
    CalibrationType,
    CrLgmData,
    CrossAssetModelData,
    EqBsData,
    FxBsData,
    InfDkData,
    IrLgmData,
    ParamType,
)
from xassetlib.market import (
    CurveHandle,
    Market,
    Quote,
    VolatilitySurface,
    flat_inflation_curve,
    flat_survival_curve,
    flat_yield_curve,
)
from xassetlib.models import (
    CrLgm1fParametrization,
    CrossAssetModel,
    EqBsParametrization,
    FxBsParametrization,
    InfDkParametrization,
    IrLgm1fParametrization,
    ParameterCurve,
)

SWAPTION_EXPIRIES = ["1Y", "2Y", "3Y", "4Y", "5Y"]
SWAPTION_TERMS = ["1Y", "2Y", "3Y", "4Y", "5Y"]
COTERMINAL_TERMS = ["5Y", "4Y", "3Y", "2Y", "1Y"]
OPTION_EXPIRIES = ["1Y", "2Y", "3Y"]
CPI_EXPIRIES = ["1Y", "2Y", "3Y", "5Y"]

RATES = {"EUR": 0.02, "USD": 0.05, "GBP": 0.04}
SPOTS = {"USDEUR": 0.90, "GBPEUR": 1.15}


def swaption_surface(ccy: str, level: float) -> VolatilitySurface:
    """Normal vol grid decreasing slightly with expiry."""
    vols = [[level - 0.0003 * i + 0.0001 * j for j in range(len(SWAPTION_TERMS))]
            for i in range(len(SWAPTION_EXPIRIES))]
    return VolatilitySurface.from_grid(ccy, SWAPTION_EXPIRIES, vols, terms=SWAPTION_TERMS,
                                       vol_type="NORMAL")


def make_market() -> Market:
    """Market with flat curves and term structures of vols."""
    market = Market(asof="2024-01-15")
    for ccy, rate in RATES.items():
        market.set_discount_curve(ccy, flat_yield_curve(rate, ccy))
    market.set_swaption_vol("EUR", swaption_surface("EUR", 0.0080))
    market.set_swaption_vol("USD", swaption_surface("USD", 0.0100))
    market.set_swaption_vol("GBP", swaption_surface("GBP", 0.0090))
    for pair, spot in SPOTS.items():
        market.set_fx_spot(pair, spot)
    market.set_fx_vol("USDEUR", VolatilitySurface.from_grid("USDEUR", OPTION_EXPIRIES,
                                                            [0.10, 0.11, 0.12]))
    market.set_fx_vol("GBPEUR", VolatilitySurface.from_grid("GBPEUR", OPTION_EXPIRIES,
                                                            [0.08, 0.085, 0.09]))
    market.set_equity_spot("SP5", 4500.0)
    market.set_dividend_curve("SP5", flat_yield_curve(0.01, "SP5"))
    market.set_equity_vol("SP5", VolatilitySurface.from_grid("SP5", OPTION_EXPIRIES,
                                                             [0.20, 0.21, 0.22]))
    market.set_inflation_curve("EUHICP", flat_inflation_curve(0.02, "EUHICP"))
    # roughly sqrt(3)-scaled linear growth, consistent with a flat DK volatility
    market.set_cpi_vol("EUHICP", VolatilitySurface.from_grid("EUHICP", CPI_EXPIRIES,
                                                             [0.0058, 0.0116, 0.0175, 0.0290]))
    market.set_default_curve("ACME", flat_survival_curve(0.02, "ACME"))
    return market


def ir_config(ccy: str, **kwargs) -> IrLgmData:
    defaults = dict(
        currency=ccy,
        calibration_type=CalibrationType.BOOTSTRAP,
        calibrate_alpha=True,
        alpha_type=ParamType.PIECEWISE,
        alpha_values=[0.01],
        kappa_values=[0.01],
        option_expiries=list(SWAPTION_EXPIRIES),
        option_terms=list(COTERMINAL_TERMS),
    )
    defaults.update(kwargs)
    return IrLgmData(**defaults)


def fx_config(foreign: str, domestic: str = "EUR", **kwargs) -> FxBsData:
    defaults = dict(
        foreign_ccy=foreign,
        domestic_ccy=domestic,
        calibration_type=CalibrationType.BOOTSTRAP,
        sigma_type=ParamType.PIECEWISE,
        option_expiries=list(OPTION_EXPIRIES),
    )
    defaults.update(kwargs)
    return FxBsData(**defaults)


def make_config(**kwargs) -> CrossAssetModelData:
    """EUR domestic, USD foreign, SP5 in USD, EUHICP in EUR, ACME in EUR."""
    defaults = dict(
        domestic_currency="EUR",
        ir_configs=[ir_config("EUR"), ir_config("USD")],
        fx_configs=[fx_config("USD")],
        eq_configs=[EqBsData(name="SP5", currency="USD", option_expiries=list(OPTION_EXPIRIES))],
        inf_configs=[InfDkData(index="EUHICP", currency="EUR", alpha_values=[0.01],
                               option_expiries=list(CPI_EXPIRIES))],
        cr_configs=[CrLgmData(name="ACME", currency="EUR", alpha_values=[0.01],
                              kappa_values=[0.05])],
        correlations={
            ("IR:EUR", "IR:USD"): 0.4,
            ("IR:EUR", "FX:USDEUR"): -0.2,
            ("IR:USD", "FX:USDEUR"): 0.2,
            ("IR:USD", "EQ:SP5"): 0.1,
            ("FX:USDEUR", "EQ:SP5"): 0.2,
            ("IR:EUR", "INF:EUHICP"): 0.2,
            ("IR:EUR", "CR:ACME"): 0.1,
        },
    )
    defaults.update(kwargs)
    return CrossAssetModelData(**defaults)


@pytest.fixture
def market():
    return make_market()


@pytest.fixture
def config():
    return make_config()


# ----------------------------------------------------------------------
# directly assembled models
# ----------------------------------------------------------------------

def lgm(ccy: str, rate: float = 0.02, alpha: float = 0.01, kappa: float = 0.01,
        **kwargs) -> IrLgm1fParametrization:
    return IrLgm1fParametrization(
        ccy, CurveHandle(flat_yield_curve(rate, ccy)),
        ParameterCurve.constant(alpha, "alpha"), ParameterCurve.constant(kappa, "kappa"),
        **kwargs
    )


def random_correlation(n: int, seed: int = 1) -> np.ndarray:
    """Random positive definite correlation matrix."""
    rng = np.random.default_rng(seed)
    a = rng.standard_normal((n, n + 2))
    cov = a @ a.T / (n + 2) + 0.05 * np.eye(n)
    scale = 1.0 / np.sqrt(np.diag(cov))
    return cov * np.outer(scale, scale)


def build_model(n_ccy: int = 2, n_eq: int = 0, n_inf: int = 0, n_cr: int = 0,
                correlation=None, seed: int = 1) -> CrossAssetModel:
    """
    Model with piecewise volatilities, built without market or builder.
    
    Currencies are C0 (domestic), C1, ...; equities, indices and names are
    spread over the currencies round-robin.
    """
    rng = np.random.default_rng(seed)
    currencies = [f"C{i}" for i in range(n_ccy)]
    params = []
    for i, ccy in enumerate(currencies):
        alpha = ParameterCurve.piecewise_constant([1.0, 2.0], rng.uniform(0.005, 0.015, 3), "alpha")
        kappa = ParameterCurve.constant(rng.uniform(-0.01, 0.05), "kappa")
        params.append(IrLgm1fParametrization(
            ccy, CurveHandle(flat_yield_curve(0.01 + 0.005 * i, ccy)), alpha, kappa))
    for ccy in currencies[1:]:
        sigma = ParameterCurve.piecewise_constant([1.5], rng.uniform(0.05, 0.2, 2), "sigma")
        params.append(FxBsParametrization(ccy, currencies[0], Quote(rng.uniform(0.5, 2.0)), sigma))
    for k in range(n_eq):
        sigma = ParameterCurve.constant(rng.uniform(0.1, 0.3), "sigma")
        params.append(EqBsParametrization(
            f"EQ{k}", currencies[k % n_ccy], Quote(100.0),
            CurveHandle(flat_yield_curve(0.01, f"EQ{k}")), sigma))
    for k in range(n_inf):
        params.append(InfDkParametrization(
            f"CPI{k}", currencies[k % n_ccy], CurveHandle(flat_inflation_curve(0.02)),
            ParameterCurve.constant(rng.uniform(0.005, 0.015), "alpha"),
            ParameterCurve.constant(rng.uniform(0.0, 0.5), "kappa")))
    for k in range(n_cr):
        params.append(CrLgm1fParametrization(
            f"NAME{k}", currencies[k % n_ccy], CurveHandle(flat_survival_curve(0.02)),
            ParameterCurve.constant(rng.uniform(0.005, 0.02), "alpha"),
            ParameterCurve.constant(rng.uniform(0.0, 0.1), "kappa")))
    n = len(params)
    if correlation is None:
        correlation = random_correlation(n, seed)
    return CrossAssetModel(params, correlation)
