"""
Tests for the sub-model builders and the cross-asset model builder:
staged calibration, curve relinking, staleness and error handling.
"""

import logging

import numpy as np
import pytest

from xassetlib.builders import (
    BuilderState,
    CalibrationStage,
    CalibrationType,
    CrossAssetModelBuilder,
    CrossAssetModelData,
    EqBsData,
    FxBsBuilder,
    IrLgmData,
    LgmBuilder,
    MarketConfigurations,
    MarketObserver,
    ParamType,
    is_stale,
)
from xassetlib.builders.observer import MISSING
from xassetlib.errors import (
    CalibrationToleranceExceeded,
    ConfigurationError,
    ConfigurationMismatchError,
    MarketDataNotFoundError,
    OptimizerNonConvergence,
)
from xassetlib.market import Quote, VolatilitySurface, flat_yield_curve
from xassetlib.market.market import DISCOUNT, FX_SPOT
from xassetlib.models import AssetType, EndCriteria
from xassetlib.pricing import garman_kohlhagen

from conftest import fx_config, ir_config, make_config


def deterministic_rates_config(**kwargs):
    """EUR/USD with zero rates volatility and a one-option FX basket."""
    flat = dict(calibration_type=CalibrationType.NONE, alpha_type=ParamType.CONSTANT,
                alpha_values=[0.0], option_expiries=[], option_terms=[])
    defaults = dict(
        ir_configs=[ir_config("EUR", **flat), ir_config("USD", **flat)],
        fx_configs=[fx_config("USD", option_expiries=["1Y"])],
        eq_configs=[],
        inf_configs=[],
        cr_configs=[],
        correlations={},
    )
    defaults.update(kwargs)
    return make_config(**defaults)


class TestSubModelBuilders:
    """Tests for builders of single factors."""
    
    def test_lgm_bootstrap(self, market):
        """Test the LGM builder calibrates its co-terminal basket on its own."""
        builder = LgmBuilder(market, ir_config("EUR"))
        assert builder.name == "EUR"
        assert len(builder.basket) == 5
        assert builder.error() < 1e-8
        assert builder.parametrization.alpha_curve.size == 5
        assert not builder.requires_recalibration()
    
    def test_lgm_watches_vols(self, market):
        """Test a swaption vol change marks the builder for recalibration."""
        builder = LgmBuilder(market, ir_config("EUR"))
        market.swaption_vol("EUR").quote("3Y", "3Y").value = 0.0079
        assert builder.requires_recalibration()
    
    def test_lgm_shift_and_scaling(self, market):
        """Test reparametrization sets H(horizon) = 0 and keeps prices."""
        builder = LgmBuilder(market, ir_config("EUR", shift_horizon=5.0, scaling=2.0))
        p = builder.parametrization
        assert p.H(5.0) == pytest.approx(0.0, abs=1e-12)
        assert p.scaling == 2.0
        assert builder.error() < 1e-8
    
    def test_lgm_missing_vols(self, market):
        """Test a missing swaption surface raises MarketDataNotFoundError."""
        with pytest.raises(MarketDataNotFoundError):
            LgmBuilder(market, ir_config("JPY"))
    
    def test_lgm_calibration_without_basket(self, market):
        """Test calibration without option expiries is a configuration error."""
        with pytest.raises(ConfigurationError):
            LgmBuilder(market, ir_config("EUR", option_expiries=[], option_terms=[]))
    
    def test_fx_builder(self, market):
        """Test the FX builder prepares an uncalibrated basket."""
        builder = FxBsBuilder(market, fx_config("USD"))
        assert builder.name == "USDEUR"
        assert [h.expiry for h in builder.basket] == [1.0, 2.0, 3.0]
        assert builder.parametrization.parameter("sigma").size == 3
        assert builder.error() == 0.0


class TestCrossAssetModelBuilder:
    """End-to-end tests of the staged build."""
    
    @pytest.fixture
    def builder(self, market, config):
        return CrossAssetModelBuilder(market, config)
    
    def test_lazy(self, builder):
        """Test nothing is built before the first request."""
        assert builder.build_count == 0
        assert builder.state == BuilderState.UNINITIALIZED
        assert builder.requires_recalibration()
    
    def test_build(self, builder):
        """Test the joint model layout and calibration state."""
        model = builder.model()
        assert model.factor_names() == ["IR:EUR", "IR:USD", "FX:USDEUR", "EQ:SP5",
                                        "INF:EUHICP", "CR:ACME"]
        assert builder.state == BuilderState.CALIBRATED
        assert builder.build_count == 1
        assert builder.model() is model
        assert builder.build_count == 1
    
    def test_correlations_installed(self, builder):
        """Test configured correlations end up in the driver matrix."""
        model = builder.model()
        assert model.correlation(AssetType.IR, 0, AssetType.FX, 0) == -0.2
        assert model.correlation(AssetType.FX, 0, AssetType.EQ, 0) == 0.2
        assert model.correlation(AssetType.EQ, 0, AssetType.CR, 0) == 0.0
        assert builder.correlation_builder.correlation("IR:USD", "IR:EUR") == 0.4
    
    def test_calibration_errors(self, builder):
        """Test every bootstrapped basket is matched within tolerance."""
        assert len(builder.swaption_calibration_errors()) == 2
        assert max(builder.swaption_calibration_errors()) < 1e-8
        assert builder.fx_option_calibration_errors()[0] < 1e-8
        assert builder.eq_option_calibration_errors()[0] < 1e-8
        assert builder.inf_cap_floor_calibration_errors()[0] < 1e-8
        assert builder.calibration_errors(AssetType.CR) == []
    
    def test_joint_fx_calibration(self, builder):
        """Test the FX basket reprices against the joint model."""
        for helper in builder.basket(AssetType.FX, 0):
            assert abs(helper.calibration_error()) < 1e-8
        assert builder.basket_expiries(AssetType.FX, 0) == [1.0, 2.0, 3.0]
    
    def test_calibration_report(self, builder):
        """Test one report row per basket instrument."""
        report = builder.calibration_report()
        assert len(report) == 5 + 5 + 3 + 3 + 4
        assert set(report["factor"]) == {"IR:EUR", "IR:USD", "FX:USDEUR", "EQ:SP5", "INF:EUHICP"}
        assert {"market_value", "model_value", "error", "expiry"} <= set(report.columns)
        assert report["error"].abs().max() < 1e-4
    
    def test_sub_builders(self, builder):
        """Test sub-model builders are exposed per asset class."""
        assert [b.name for b in builder.sub_builders(AssetType.IR)] == ["EUR", "USD"]
        assert builder.sub_builders(AssetType.CR)[0].calibration_mode is None
    
    def test_without_calibration(self, market, config):
        """Test calibrate=False keeps initial parameters."""
        builder = CrossAssetModelBuilder(market, config, calibrate=False)
        model = builder.model()
        assert builder.state == BuilderState.BUILT
        np.testing.assert_array_equal(model.ir_lgm(0).alpha_curve.values, [0.01] * 5)
        assert builder.fx_option_calibration_errors() == []
    
    def test_global_ir_calibration(self, market):
        """Test a best-fit IR calibration is not held to the bootstrap tolerance."""
        config = make_config(ir_configs=[
            ir_config("EUR", calibration_type=CalibrationType.GLOBAL, alpha_type=ParamType.CONSTANT),
            ir_config("USD"),
        ])
        builder = CrossAssetModelBuilder(market, config)
        builder.model()
        assert builder.state == BuilderState.CALIBRATED
        assert builder.sub_builders(AssetType.IR)[0].calibration_result.method == "global"


class TestDeterministicRates:
    """Tests of the FX stage when the rates are deterministic."""
    
    def test_garman_kohlhagen(self, market):
        """Test the calibrated FX option is the Garman-Kohlhagen price."""
        market.set_fx_vol("USDEUR", VolatilitySurface.from_grid("USDEUR", ["1Y"], [0.20]))
        builder = CrossAssetModelBuilder(market, deterministic_rates_config())
        model = builder.model()
        assert model.fxbs(0).sigma(0.5) == pytest.approx(0.20, rel=1e-8)
        assert builder.fx_option_calibration_errors()[0] < 1e-8
        helper = builder.basket(AssetType.FX, 0)[0]
        expected = garman_kohlhagen(0.9, helper.strike, 1.0, 0.20, 0.02, 0.05)
        assert helper.model_value() == pytest.approx(expected, abs=1e-6)
        assert helper.market_value() == pytest.approx(expected, abs=1e-8)
        assert builder.swaption_calibration_errors() == [0.0, 0.0]


class TestStaleness:
    """Tests for rebuilds triggered by market changes."""
    
    @pytest.fixture
    def builder(self, market, config):
        builder = CrossAssetModelBuilder(market, config)
        builder.model()
        return builder
    
    def test_unchanged(self, builder):
        """Test repeated requests do not rebuild."""
        builder.model()
        assert builder.build_count == 1
        assert not builder.requires_recalibration()
    
    def test_fx_spot(self, builder, market):
        """Test an FX spot change triggers a rebuild."""
        market.fx_spot("USDEUR").value = 0.91
        assert builder.state == BuilderState.STALE
        model = builder.model()
        assert builder.build_count == 2
        assert model.fxbs(0).spot == 0.91
        assert builder.state == BuilderState.CALIBRATED
    
    def test_vol_quote(self, builder, market):
        """Test a vol quote change triggers a rebuild."""
        market.equity_vol("SP5").quote("2Y").value = 0.215
        assert builder.requires_recalibration()
        builder.model()
        assert builder.build_count == 2
    
    def test_curve_replaced(self, builder, market):
        """Test replacing a curve triggers a rebuild."""
        market.set_discount_curve("USD", flat_yield_curve(0.051, "USD"))
        builder.model()
        assert builder.build_count == 2
    
    def test_correlation_quote(self, market):
        """Test a correlation quote change triggers a rebuild."""
        rho = Quote(0.4)
        config = make_config()
        config.correlations[("IR:EUR", "IR:USD")] = rho
        builder = CrossAssetModelBuilder(market, config)
        builder.model()
        rho.value = 0.5
        model = builder.model()
        assert builder.build_count == 2
        assert model.correlation(AssetType.IR, 0, AssetType.IR, 1) == 0.5
    
    def test_unrelated_change(self, builder, market):
        """Test data no factor reads does not trigger a rebuild."""
        market.set_discount_curve("GBP", flat_yield_curve(0.045, "GBP"))
        market.fx_spot("GBPEUR").value = 1.2
        builder.model()
        assert builder.build_count == 1
    
    def test_configuration_entry_added(self, market, config):
        """Test a configuration-specific entry shadowing the default triggers a rebuild."""
        configurations = MarketConfigurations(fx_calibration="fxcal")
        builder = CrossAssetModelBuilder(market, config, configurations)
        builder.model()
        before = market.fx_spot_version("USDEUR", "fxcal")
        market.set_fx_spot("USDEUR", 0.9, configuration="fxcal")
        assert market.fx_spot_version("USDEUR", "fxcal") == before
        assert builder.requires_recalibration()
        builder.model()
        assert builder.build_count == 2
    
    def test_force_recalculate(self, builder):
        """Test forcing a rebuild without market changes."""
        builder.force_recalculate()
        assert builder.build_count == 2
        assert builder.state == BuilderState.CALIBRATED
    
    def test_failed_rebuild_keeps_model(self, market):
        """Test a failed rebuild leaves the previous model in place."""
        rho = Quote(0.4)
        config = make_config()
        config.correlations[("IR:EUR", "IR:USD")] = rho
        builder = CrossAssetModelBuilder(market, config)
        model = builder.model()
        errors = builder.fx_option_calibration_errors()
        
        rho.value = 2.0
        with pytest.raises(ConfigurationError):
            builder.model()
        assert builder.build_count == 1
        assert builder.state == BuilderState.STALE
        assert builder._model is model
        assert builder._errors[AssetType.FX] == errors
        
        rho.value = 0.3
        builder.model()
        assert builder.build_count == 2


class TestMarketConfigurations:
    """Tests for per-stage market configurations and curve relinking."""
    
    def test_final_relink(self, market, config):
        """Test the model ends up on the final configuration's curves."""
        final_eur = flat_yield_curve(0.025, "EUR")
        market.set_discount_curve("EUR", final_eur, configuration="final")
        builder = CrossAssetModelBuilder(market, config, MarketConfigurations(final_model="final"))
        model = builder.model()
        eur, usd = model.ir_lgm(0).discount_curve, model.ir_lgm(1).discount_curve
        assert eur.configuration == "final"
        assert eur.current is final_eur
        assert usd.configuration == "final"
        assert usd.current is market.discount_curve("USD")
        assert builder.stage_curve("EUR", CalibrationStage.IR) is market.discount_curve("EUR")
    
    def test_final_curve_change(self, market, config):
        """Test a change of the final configuration's curve triggers a rebuild."""
        market.set_discount_curve("EUR", flat_yield_curve(0.025), configuration="final")
        builder = CrossAssetModelBuilder(market, config, MarketConfigurations(final_model="final"))
        builder.model()
        market.set_discount_curve("EUR", flat_yield_curve(0.026), configuration="final")
        builder.model()
        assert builder.build_count == 2
    
    def test_stage_mapping(self):
        """Test inflation calibrates on the final model configuration."""
        tags = MarketConfigurations("lgm", "fx", "eq", "inf", "final")
        assert tags.for_stage(CalibrationStage.IR) == "lgm"
        assert tags.for_stage(CalibrationStage.FX) == "fx"
        assert tags.for_stage(CalibrationStage.INF) == "final"


class TestBuildErrors:
    """Tests for configuration, market data and tolerance errors."""
    
    def test_tolerance_exceeded(self, market, caplog):
        """Test a bootstrap falling back to global is held to the tolerance."""
        market.set_fx_vol("USDEUR", VolatilitySurface.from_grid("USDEUR", ["1Y", "2Y"],
                                                                [0.10, 0.30]))
        config = make_config(fx_configs=[fx_config("USD", sigma_type=ParamType.CONSTANT,
                                                   option_expiries=["1Y", "2Y"])])
        builder = CrossAssetModelBuilder(market, config)
        with caplog.at_level(logging.WARNING, logger="xassetlib.builders.base"):
            with pytest.raises(CalibrationToleranceExceeded) as info:
                builder.model()
        assert "falling back to global" in caplog.text
        assert info.value.label == "FX:USDEUR"
        assert info.value.error > info.value.tolerance
        assert builder.state == BuilderState.UNINITIALIZED
    
    def test_strict_non_convergence(self, market):
        """Test strict builds raise when the optimizer budget runs out."""
        config = make_config(
            ir_configs=[ir_config("EUR", calibration_type=CalibrationType.GLOBAL,
                                  alpha_type=ParamType.CONSTANT), ir_config("USD")],
            end_criteria=EndCriteria(max_iterations=1),
        )
        with pytest.raises(OptimizerNonConvergence):
            CrossAssetModelBuilder(market, config, strict=True).model()
    
    def test_missing_market_data(self, market):
        """Test a factor without market data raises MarketDataNotFoundError."""
        config = make_config(eq_configs=[EqBsData(name="DAX", currency="EUR",
                                                  option_expiries=["1Y"])])
        with pytest.raises(MarketDataNotFoundError) as info:
            CrossAssetModelBuilder(market, config).model()
        assert "DAX" in str(info.value)
    
    def test_fx_currency_mismatch(self, market):
        """Test FX configs must follow the IR currency order."""
        config = make_config(fx_configs=[fx_config("GBP")])
        with pytest.raises(ConfigurationMismatchError):
            CrossAssetModelBuilder(market, config).model()
    
    def test_equity_currency_mismatch(self, market):
        """Test an equity in a currency without IR factor is rejected."""
        config = make_config(eq_configs=[EqBsData(name="SP5", currency="JPY")])
        with pytest.raises(ConfigurationMismatchError):
            CrossAssetModelBuilder(market, config).model()
    
    def test_domestic_first(self, market):
        """Test the first IR config must be the domestic currency."""
        config = make_config(ir_configs=[ir_config("USD"), ir_config("EUR")])
        with pytest.raises(ConfigurationError):
            CrossAssetModelBuilder(market, config).model()
    
    def test_fx_count(self, market):
        """Test n IR configs need n - 1 FX configs."""
        config = make_config(fx_configs=[])
        with pytest.raises(ConfigurationError):
            CrossAssetModelBuilder(market, config).model()
    
    def test_unknown_correlation_factor(self, market):
        """Test correlations naming a factor outside the model are rejected."""
        config = make_config(correlations={("IR:EUR", "IR:GBP"): 0.3})
        with pytest.raises(ConfigurationError):
            CrossAssetModelBuilder(market, config).model()
    
    def test_config_validation(self):
        """Test malformed factor configs raise at construction."""
        with pytest.raises(ConfigurationError):
            IrLgmData(currency="EUR", option_expiries=["1Y"], option_terms=[])
        with pytest.raises(ConfigurationError):
            IrLgmData(currency="EUR", scaling=0.0)
        with pytest.raises(ConfigurationError):
            IrLgmData(currency="EUR", alpha_type=ParamType.PIECEWISE, alpha_times=[1.0],
                      alpha_values=[0.01])
        with pytest.raises(ConfigurationError):
            CrossAssetModelData(domestic_currency="EUR", bootstrap_tolerance=0.0)


class TestMarketObserver:
    """Tests for version based staleness detection."""
    
    def test_snapshot_and_change(self, market):
        """Test a watched entry change is detected after a snapshot."""
        observer = MarketObserver(market)
        observer.watch(DISCOUNT, "EUR", "default")
        observer.snapshot()
        assert not observer.has_changed()
        market.set_discount_curve("EUR", flat_yield_curve(0.03))
        assert observer.has_changed()
        observer.snapshot()
        assert not observer.has_changed()
    
    def test_missing_entry(self, market):
        """Test a missing entry is recorded and its later arrival detected."""
        observer = MarketObserver(market)
        observer.watch(DISCOUNT, "JPY", "default")
        assert observer.snapshot()[(DISCOUNT, "JPY", "default")] == MISSING
        market.set_discount_curve("JPY", flat_yield_curve(0.001))
        assert observer.has_changed()
    
    def test_inverse_fx_pair(self, market):
        """Test an inverse pair is tracked through the stored quote."""
        observer = MarketObserver(market)
        observer.watch(FX_SPOT, "EURUSD", "default")
        observer.snapshot()
        market.fx_spot("USDEUR").value = 0.8
        assert observer.has_changed()
    
    def test_quotes(self, market):
        """Test individually watched quotes."""
        observer = MarketObserver(market)
        quote = Quote(0.1)
        observer.watch_quote("IR:EUR/IR:USD", quote)
        observer.snapshot()
        quote.value = 0.1
        assert observer.has_changed()
    
    def test_is_stale(self):
        """Test snapshot comparison."""
        assert not is_stale({"a": 1}, {"a": 1})
        assert is_stale({"a": 1}, {"a": 2})
        assert is_stale({"a": 1}, {"a": 1, "b": 0})
