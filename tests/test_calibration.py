"""
Tests for the bootstrap and global calibration drivers and the
calibration mode selection of the builders.
"""

import logging

import numpy as np
import pytest
from scipy.optimize import brentq

from xassetlib.builders import CalibrationType, ParamType
from xassetlib.builders.base import (
    CalibrationMode,
    build_parameter,
    choose_calibration,
    run_calibration,
)
from xassetlib.errors import (
    ConfigurationError,
    OptimizerNonConvergence,
    PreconditionViolation,
)
from xassetlib.market import CurveHandle, Quote, flat_inflation_curve, flat_yield_curve
from xassetlib.models import (
    AssetType,
    CrossAssetModel,
    EndCriteria,
    FxBsParametrization,
    InfDkParametrization,
    IrLgm1fParametrization,
    ParameterCurve,
)
from xassetlib.pricing import (
    AnalyticDkCpiCapFloorEngine,
    AnalyticLgmSwaptionEngine,
    AnalyticXAssetLgmFxOptionEngine,
    CpiCapFloorHelper,
    FxOptionHelper,
    SwaptionHelper,
    bachelier_call,
)

from conftest import lgm

COTERMINAL_VOLS = [0.0084, 0.0080, 0.0076, 0.0072, 0.0068]
CPI_VOLS = [0.0058, 0.0116, 0.0175, 0.0290]


def piecewise_lgm(breaks, alpha=0.01, kappa=0.01):
    return IrLgm1fParametrization(
        "EUR", CurveHandle(flat_yield_curve(0.02, "EUR")),
        ParameterCurve.piecewise_constant(breaks, [alpha] * (len(breaks) + 1), "alpha"),
        ParameterCurve.constant(kappa, "kappa"),
    )


def coterminal_basket(model, vols=COTERMINAL_VOLS):
    helpers = []
    for i, vol in enumerate(vols):
        helper = SwaptionHelper(i + 1.0, 5.0 - i, Quote(vol), model.ir_lgm(0).discount_curve)
        helper.set_pricing_engine(AnalyticLgmSwaptionEngine(model, 0))
        helpers.append(helper)
    return helpers


def fx_model(sigma):
    params = [
        lgm("EUR", rate=0.02, alpha=0.0),
        lgm("USD", rate=0.05, alpha=0.0),
        FxBsParametrization("USD", "EUR", Quote(0.9), sigma),
    ]
    return CrossAssetModel(params)


def fx_basket(model, vols):
    helpers = []
    for i, vol in enumerate(vols):
        helper = FxOptionHelper(i + 1.0, Quote(vol), Quote(0.9), model.ir_lgm(0).discount_curve,
                                model.ir_lgm(1).discount_curve)
        helper.set_pricing_engine(AnalyticXAssetLgmFxOptionEngine(model, 0))
        helpers.append(helper)
    return helpers


class TestBootstrap:
    """Tests for the iterative calibration of piecewise parameters."""
    
    @pytest.fixture
    def model(self):
        return CrossAssetModel([piecewise_lgm([1.0, 2.0, 3.0, 4.0])])
    
    def test_swaptions_matched(self, model):
        """Test every co-terminal swaption is repriced exactly."""
        helpers = coterminal_basket(model)
        result = model.calibrate_ir_lgm1f_volatilities_iterative(0, helpers)
        assert result.method == "bootstrap"
        assert result.success
        assert np.max(np.abs(result.errors)) < 1e-8
        assert np.all(result.values > 0)
        # the model holds the calibrated parametrization
        np.testing.assert_array_equal(model.ir_lgm(0).alpha_curve.values, result.values)
        assert result.parametrization is model.ir_lgm(0)
    
    def test_idempotent(self, model):
        """Test a second bootstrap from the solution does not move it."""
        helpers = coterminal_basket(model)
        first = model.calibrate_ir_lgm1f_volatilities_iterative(0, helpers).values
        second = model.calibrate_ir_lgm1f_volatilities_iterative(0, helpers).values
        np.testing.assert_allclose(second, first, rtol=0, atol=1e-10)
    
    def test_exact_with_loose_root_epsilon(self, model):
        """Test the global step tolerance does not loosen the bootstrap."""
        helpers = coterminal_basket(model)
        result = model.calibrate_ir_lgm1f_volatilities_iterative(
            0, helpers, EndCriteria(root_epsilon=1e-2))
        assert np.max(np.abs(result.errors)) < 1e-8
    
    def test_helper_count_mismatch(self, model):
        """Test bootstrap needs one instrument per parameter segment."""
        helpers = coterminal_basket(model)[:4]
        with pytest.raises(PreconditionViolation):
            model.calibrate_ir_lgm1f_volatilities_iterative(0, helpers)
    
    def test_unsorted_basket(self, model):
        """Test bootstrap needs strictly increasing expiries."""
        helpers = coterminal_basket(model)
        helpers[1], helpers[2] = helpers[2], helpers[1]
        with pytest.raises(PreconditionViolation):
            model.calibrate_ir_lgm1f_volatilities_iterative(0, helpers)
    
    def test_fx_volatilities(self):
        """Test the FX sigma bootstrap against a rising term structure."""
        model = fx_model(ParameterCurve.piecewise_constant([1.0, 2.0], [0.2, 0.2, 0.2], "sigma"))
        helpers = fx_basket(model, [0.10, 0.11, 0.12])
        result = model.calibrate_bs_volatilities_iterative(AssetType.FX, 0, helpers)
        assert np.max(np.abs(result.errors)) < 1e-10
        # deterministic rates: sigma_1 = 0.10, then sqrt(2 * 0.11^2 - 0.10^2), ...
        expected = [0.10, np.sqrt(2 * 0.0121 - 0.01), np.sqrt(3 * 0.0144 - 2 * 0.0121)]
        np.testing.assert_allclose(result.values, expected, rtol=1e-8)
    
    def test_inflation_volatilities(self):
        """Test the Dodgson-Kainth alpha bootstrap against zero coupon floors."""
        params = [
            lgm("EUR", alpha=0.01),
            InfDkParametrization(
                "EUHICP", "EUR", CurveHandle(flat_inflation_curve(0.02)),
                ParameterCurve.piecewise_constant([1.0, 2.0, 3.0], [0.01] * 4, "alpha"),
                ParameterCurve.constant(0.0, "kappa")),
        ]
        model = CrossAssetModel(params)
        helpers = []
        for expiry, vol in zip([1.0, 2.0, 3.0, 5.0], CPI_VOLS):
            helper = CpiCapFloorHelper(expiry, Quote(vol), model.infdk(0).inflation_curve,
                                       model.ir_lgm(0).discount_curve)
            helper.set_pricing_engine(AnalyticDkCpiCapFloorEngine(model, 0))
            helpers.append(helper)
        result = model.calibrate_inf_dk_volatilities_iterative(0, helpers)
        assert np.max(np.abs(result.errors)) < 1e-10
        assert np.all(result.values > 0)


class TestGlobal:
    """Tests for the Levenberg-Marquardt calibration."""
    
    def test_recovers_constant_sigma(self):
        """Test a flat vol term structure gives back its level."""
        model = fx_model(ParameterCurve.constant(0.2, "sigma"))
        helpers = fx_basket(model, [0.11, 0.11, 0.11])
        result = model.calibrate_bs_volatilities_global(AssetType.FX, 0, helpers)
        assert result.method == "global"
        assert result.success
        assert result.values[0] == pytest.approx(0.11, abs=1e-6)
        assert model.fxbs(0).sigma(1.0) == result.values[0]
        assert set(result.to_dict()) >= {"values", "errors", "rmse", "success"}
    
    def test_joint_alpha_kappa(self):
        """Test alpha and kappa are recovered from prices of a known model."""
        truth = CrossAssetModel([lgm("EUR", alpha=0.012, kappa=0.03)])
        model = CrossAssetModel([lgm("EUR", alpha=0.01, kappa=0.0)])
        helpers = []
        for expiry, term in [(1, 1), (1, 10), (3, 2), (3, 10), (5, 1), (5, 10), (10, 10)]:
            priced = SwaptionHelper(float(expiry), float(term), Quote(0.01),
                                    truth.ir_lgm(0).discount_curve)
            priced.set_pricing_engine(AnalyticLgmSwaptionEngine(truth, 0))
            target = priced.model_value()
            vol = brentq(lambda v: bachelier_call(priced.forward_rate(), priced.strike, expiry, v,
                                                  priced.annuity()) - target, 1e-5, 0.1,
                         xtol=1e-16)
            helper = SwaptionHelper(float(expiry), float(term), Quote(vol),
                                    model.ir_lgm(0).discount_curve)
            helper.set_pricing_engine(AnalyticLgmSwaptionEngine(model, 0))
            helpers.append(helper)
        result = run_calibration(model, AssetType.IR, 0, CalibrationMode.JOINT_GLOBAL, helpers)
        assert result.rmse < 1e-7
        assert model.ir_lgm(0).alpha(1.0) == pytest.approx(0.012, rel=1e-3)
        assert model.ir_lgm(0).kappa(1.0) == pytest.approx(0.03, abs=2e-3)
    
    def test_non_convergence_logged(self, caplog):
        """Test an exhausted budget is logged and flagged, not raised."""
        model = fx_model(ParameterCurve.constant(0.3, "sigma"))
        helpers = fx_basket(model, [0.10, 0.10, 0.10])
        with caplog.at_level(logging.WARNING, logger="xassetlib.models.calibration"):
            result = model.calibrate_bs_volatilities_global(
                AssetType.FX, 0, helpers, EndCriteria(max_iterations=1))
        assert not result.success
        assert "without convergence" in caplog.text
    
    def test_non_convergence_strict(self):
        """Test strict mode raises OptimizerNonConvergence."""
        model = fx_model(ParameterCurve.constant(0.3, "sigma"))
        helpers = fx_basket(model, [0.10, 0.10, 0.10])
        with pytest.raises(OptimizerNonConvergence) as info:
            model.calibrate_bs_volatilities_global(AssetType.FX, 0, helpers,
                                                   EndCriteria(max_iterations=1), strict=True)
        assert info.value.residual > 0


class TestCalibrationMode:
    """Tests for choosing and dispatching calibration modes."""
    
    @pytest.mark.parametrize("args,expected", [
        ((CalibrationType.NONE, True, ParamType.PIECEWISE), None),
        ((CalibrationType.BOOTSTRAP, False, ParamType.PIECEWISE), None),
        ((CalibrationType.BOOTSTRAP, True, ParamType.PIECEWISE),
         CalibrationMode.VOLATILITY_ITERATIVE),
        ((CalibrationType.GLOBAL, True, ParamType.PIECEWISE), CalibrationMode.VOLATILITY_GLOBAL),
        ((CalibrationType.GLOBAL, True, ParamType.CONSTANT), CalibrationMode.VOLATILITY_GLOBAL),
        ((CalibrationType.BOOTSTRAP, False, ParamType.CONSTANT, True, ParamType.PIECEWISE),
         CalibrationMode.REVERSION_ITERATIVE),
        ((CalibrationType.GLOBAL, False, ParamType.CONSTANT, True, ParamType.PIECEWISE),
         CalibrationMode.REVERSION_GLOBAL),
        ((CalibrationType.BOOTSTRAP, True, ParamType.PIECEWISE, True, ParamType.PIECEWISE),
         CalibrationMode.JOINT_GLOBAL),
    ])
    def test_choose(self, args, expected):
        """Test the mode table."""
        assert choose_calibration(*args) == expected
    
    def test_bootstrap_fallback_logged(self, caplog):
        """Test bootstrap of a constant parameter falls back to global with a warning."""
        with caplog.at_level(logging.WARNING, logger="xassetlib.builders.base"):
            mode = choose_calibration(CalibrationType.BOOTSTRAP, True, ParamType.CONSTANT,
                                      label="FX:USDEUR")
        assert mode == CalibrationMode.VOLATILITY_GLOBAL
        assert "FX:USDEUR" in caplog.text
        assert mode.is_iterative is False
    
    def test_unsupported_dispatch(self):
        """Test reversion calibration of an FX factor is rejected."""
        model = fx_model(ParameterCurve.constant(0.1, "sigma"))
        with pytest.raises(ConfigurationError):
            run_calibration(model, AssetType.FX, 0, CalibrationMode.REVERSION_GLOBAL, [])


class TestBuildParameter:
    """Tests for initial parameter curves."""
    
    def test_bootstrap_segments(self):
        """Test one segment per expiry with breakpoints at all but the last."""
        curve = build_parameter("alpha", ParamType.PIECEWISE, [], [0.01], bootstrap=True,
                                expiries=[1.0, 2.0, 5.0])
        np.testing.assert_array_equal(curve.times, [1.0, 2.0])
        np.testing.assert_array_equal(curve.values, [0.01, 0.01, 0.01])
    
    def test_bootstrap_keeps_full_seed(self):
        """Test one configured value per expiry is used as given."""
        curve = build_parameter("sigma", ParamType.PIECEWISE, [], [0.1, 0.2], bootstrap=True,
                                expiries=[1.0, 2.0])
        np.testing.assert_array_equal(curve.values, [0.1, 0.2])
    
    def test_repeated_expiries(self):
        """Test a bootstrap basket with repeated expiries is rejected."""
        with pytest.raises(PreconditionViolation):
            build_parameter("alpha", ParamType.PIECEWISE, [], [0.01], bootstrap=True,
                            expiries=[1.0, 1.0, 2.0])
    
    def test_configured_times(self):
        """Test non bootstrapped parameters use the configured grid."""
        curve = build_parameter("kappa", ParamType.PIECEWISE, [2.0], [0.01, 0.02])
        np.testing.assert_array_equal(curve.times, [2.0])
        assert build_parameter("kappa", ParamType.CONSTANT, [], [0.03]).kind == ParameterCurve.CONSTANT
