#!/usr/bin/env python
"""
Cross-Asset Model Demo Script

This script demonstrates the full workflow of the cross-asset library:
1. Set up a EUR/USD market with an equity, an inflation index and a credit name
2. Build and calibrate the cross-asset model stage by stage
3. Print the calibration report
4. Validate the model by Monte Carlo (moments and martingale tests)
5. Bump a market quote and show the lazy rebuild

Usage:
    python run_demo.py [--output-dir OUTPUT_DIR] [--paths N] [--verbose]
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from xassetlib import (
    CrLgmData,
    CrossAssetModelBuilder,
    CrossAssetModelData,
    Discretization,
    EqBsData,
    FxBsData,
    InfDkData,
    IrLgmData,
    Market,
    VolatilitySurface,
    flat_inflation_curve,
    flat_survival_curve,
    flat_yield_curve,
    martingale_check,
    moment_check,
)

EXPIRIES = ["1Y", "2Y", "3Y", "4Y", "5Y"]
COTERMINAL = ["5Y", "4Y", "3Y", "2Y", "1Y"]


def build_market() -> Market:
    """Flat curves, ATM vol term structures and spots."""
    print("\n" + "="*60)
    print("Building Market")
    print("="*60)

    market = Market(asof="demo")
    for ccy, rate in (("EUR", 0.02), ("USD", 0.045)):
        market.set_discount_curve(ccy, flat_yield_curve(rate, ccy))
        print(f"  {ccy} discount curve: flat {rate*100:.2f}%")

    for ccy, level in (("EUR", 0.0080), ("USD", 0.0095)):
        vols = [[level - 0.0002 * i] * len(EXPIRIES) for i in range(len(EXPIRIES))]
        market.set_swaption_vol(ccy, VolatilitySurface.from_grid(
            ccy, EXPIRIES, vols, terms=EXPIRIES, vol_type="NORMAL"))
        print(f"  {ccy} swaption vols: {level*10000:.0f}bp normal")

    market.set_fx_spot("USDEUR", 0.92)
    market.set_fx_vol("USDEUR", VolatilitySurface.from_grid("USDEUR", ["1Y", "2Y", "3Y"],
                                                            [0.085, 0.09, 0.095]))
    market.set_equity_spot("SPX", 5000.0)
    market.set_dividend_curve("SPX", flat_yield_curve(0.015, "SPX"))
    market.set_equity_vol("SPX", VolatilitySurface.from_grid("SPX", ["1Y", "2Y", "3Y"],
                                                             [0.18, 0.19, 0.20]))
    market.set_inflation_curve("EUHICP", flat_inflation_curve(0.022, "EUHICP"))
    market.set_cpi_vol("EUHICP", VolatilitySurface.from_grid("EUHICP", ["1Y", "2Y", "3Y", "5Y"],
                                                             [0.0058, 0.0116, 0.0175, 0.0290]))
    market.set_default_curve("CORP", flat_survival_curve(0.015, "CORP"))
    print("  USDEUR spot 0.92, SPX spot 5000, EUHICP 2.2% zero inflation, CORP 150bp hazard")
    return market


def build_config() -> CrossAssetModelData:
    """EUR domestic model with one factor of every asset class."""
    return CrossAssetModelData(
        domestic_currency="EUR",
        ir_configs=[
            IrLgmData(currency=ccy, kappa_values=[0.01], option_expiries=list(EXPIRIES),
                      option_terms=list(COTERMINAL), shift_horizon=10.0)
            for ccy in ("EUR", "USD")
        ],
        fx_configs=[FxBsData(foreign_ccy="USD", domestic_ccy="EUR",
                             option_expiries=["1Y", "2Y", "3Y"])],
        eq_configs=[EqBsData(name="SPX", currency="USD", option_expiries=["1Y", "2Y", "3Y"])],
        inf_configs=[InfDkData(index="EUHICP", currency="EUR",
                               option_expiries=["1Y", "2Y", "3Y", "5Y"])],
        cr_configs=[CrLgmData(name="CORP", currency="EUR", alpha_values=[0.005],
                              kappa_values=[0.05])],
        correlations={
            ("IR:EUR", "IR:USD"): 0.6,
            ("IR:EUR", "FX:USDEUR"): -0.1,
            ("IR:USD", "FX:USDEUR"): 0.1,
            ("FX:USDEUR", "EQ:SPX"): 0.25,
            ("IR:EUR", "INF:EUHICP"): 0.3,
            ("IR:EUR", "CR:CORP"): 0.2,
        },
    )


def calibrate(builder: CrossAssetModelBuilder) -> pd.DataFrame:
    """Build the model and print the calibration summary."""
    print("\n" + "="*60)
    print("Calibrating Cross-Asset Model")
    print("="*60)

    model = builder.model()
    print(f"  Factors: {', '.join(model.factor_names())}")
    print(f"  State dimension: {model.n_states}, Brownian drivers: {model.n_brownians}")
    print(f"  Builder state: {builder.state.value}")

    print("\nCalibration RMSE per factor:")
    for label, errors in (("Swaptions", builder.swaption_calibration_errors()),
                          ("FX options", builder.fx_option_calibration_errors()),
                          ("EQ options", builder.eq_option_calibration_errors()),
                          ("CPI floors", builder.inf_cap_floor_calibration_errors())):
        print(f"  {label:<11s}: " + ", ".join(f"{e:.2e}" for e in errors))

    report = builder.calibration_report()
    print("\nCalibration report:")
    print(report[["factor", "instrument", "expiry", "volatility", "market_value",
                  "model_value", "error"]].to_string(index=False))
    return report


def validate(builder: CrossAssetModelBuilder, num_paths: int) -> pd.DataFrame:
    """Compare Monte Carlo moments and deflated bond prices with analytic values."""
    print("\n" + "="*60)
    print("Monte Carlo Validation")
    print("="*60)

    model = builder.model()
    moments = moment_check(model, 5.0, num_paths=num_paths)
    print("\nState moments at 5Y (exact discretization):")
    print(moments.to_string(float_format=lambda v: f"{v:.6f}"))

    frames = []
    for discretization, steps in ((Discretization.EXACT, 1), (Discretization.EULER, 50)):
        result = martingale_check(model, 5.0, maturity=10.0, num_paths=num_paths,
                                  steps=steps, discretization=discretization)
        result.insert(0, "discretization", discretization.value)
        frames.append(result)
    martingales = pd.concat(frames, ignore_index=True)
    print("\nDeflated bonds at 5Y maturing at 10Y:")
    print(martingales.to_string(index=False, float_format=lambda v: f"{v:.6f}"))
    return martingales


def show_rebuild(builder: CrossAssetModelBuilder, market: Market) -> None:
    """Bump the FX spot and let the next model() call rebuild."""
    print("\n" + "="*60)
    print("Market Update")
    print("="*60)

    before = builder.build_count
    market.fx_spot("USDEUR").value = 0.93
    print(f"  USDEUR spot bumped to 0.93, builder state: {builder.state.value}")
    builder.model()
    print(f"  Builds: {before} -> {builder.build_count}, state: {builder.state.value}")
    print(f"  FX option RMSE after rebuild: {builder.fx_option_calibration_errors()[0]:.2e}")


def main():
    parser = argparse.ArgumentParser(description="Cross-asset model demo")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="Directory for the CSV reports")
    parser.add_argument("--paths", type=int, default=20000, help="Monte Carlo paths")
    parser.add_argument("--verbose", action="store_true", help="Show builder logs")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    print("="*60)
    print("CROSS-ASSET MODEL DEMO")
    print("="*60)

    market = build_market()
    builder = CrossAssetModelBuilder(market, build_config())
    report = calibrate(builder)
    martingales = validate(builder, args.paths)
    show_rebuild(builder, market)

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        report.to_csv(args.output_dir / "calibration_report.csv", index=False)
        martingales.to_csv(args.output_dir / "martingale_check.csv", index=False)
        print(f"\nReports written to {args.output_dir}")

    print("\n" + "="*60)
    print("DEMO COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
