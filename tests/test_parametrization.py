"""
Unit tests for parameter curves and factor parametrizations.
"""

import numpy as np
import pytest
from scipy.integrate import quad

from xassetlib.market import CurveHandle, Quote, flat_yield_curve
from xassetlib.models import (
    AssetType,
    FxBsParametrization,
    IrLgm1fParametrization,
    ParameterCurve,
    make_parameter,
)


class TestParameterCurve:
    """Tests for piecewise parameter curves."""
    
    def test_constant(self):
        """Test value, integral and integral of square of a constant."""
        curve = ParameterCurve.constant(0.5, "alpha")
        assert curve(3.0) == 0.5
        assert curve.integral(3.0) == pytest.approx(1.5)
        assert curve.integral_of_square(3.0) == pytest.approx(0.75)
        assert not curve.is_piecewise
    
    def test_piecewise_constant(self):
        """Test right-continuous pieces and closed-form integrals."""
        curve = ParameterCurve.piecewise_constant([1.0, 2.0], [1.0, 2.0, 3.0])
        assert curve(0.5) == 1.0
        assert curve(1.0) == 2.0
        assert curve(10.0) == 3.0
        assert curve.integral(2.5) == pytest.approx(4.5)
        assert curve.integral_of_square(2.5) == pytest.approx(9.5)
    
    def test_piecewise_linear(self):
        """Test linear pieces between nodes and flat extrapolation."""
        curve = ParameterCurve.piecewise_linear([1.0, 2.0], [1.0, 3.0])
        assert curve(0.5) == pytest.approx(1.0)
        assert curve(1.5) == pytest.approx(2.0)
        assert curve(5.0) == pytest.approx(3.0)
        assert curve.integral(3.0) == pytest.approx(6.0)
        assert curve.integral_of_square(2.0) == pytest.approx(1.0 + 13.0 / 3.0)
    
    def test_vectorised(self):
        """Test evaluation over arrays."""
        curve = ParameterCurve.piecewise_constant([1.0], [0.1, 0.2])
        t = np.array([0.5, 1.5, 2.5])
        np.testing.assert_allclose(curve(t), [0.1, 0.2, 0.2])
        np.testing.assert_allclose(curve.integral(t), [0.05, 0.2, 0.4])
    
    def test_integrals_against_quadrature(self):
        """Test the closed forms against numerical integration."""
        curve = ParameterCurve.piecewise_linear([0.5, 1.0, 3.0], [0.01, 0.03, 0.02])
        for t in (0.3, 0.75, 2.0, 4.0):
            assert curve.integral(t) == pytest.approx(quad(curve, 0, t, limit=200)[0], abs=1e-10)
            expected = quad(lambda s: curve(s)**2, 0, t, limit=200)[0]
            assert curve.integral_of_square(t) == pytest.approx(expected, abs=1e-10)
    
    def test_invalid_shapes(self):
        """Test malformed curves raise ValueError."""
        with pytest.raises(ValueError):
            ParameterCurve.piecewise_constant([1.0, 2.0], [0.1, 0.2])
        with pytest.raises(ValueError):
            ParameterCurve.piecewise_constant([2.0, 1.0], [0.1, 0.2, 0.3])
        with pytest.raises(ValueError):
            ParameterCurve.piecewise_constant([0.0], [0.1, 0.2])
        with pytest.raises(ValueError):
            ParameterCurve("spline", [], [1.0])
    
    def test_with_values_is_a_copy(self):
        """Test with_values leaves the original untouched."""
        curve = ParameterCurve.piecewise_constant([1.0], [0.1, 0.2], "sigma")
        updated = curve.with_values([0.3, 0.4])
        np.testing.assert_allclose(curve.values, [0.1, 0.2])
        np.testing.assert_allclose(updated.values, [0.3, 0.4])
        np.testing.assert_allclose(updated.times, [1.0])
        with pytest.raises(ValueError):
            curve.with_values([0.3])
    
    def test_make_parameter(self):
        """Test constant curves use the first value only."""
        assert make_parameter(False, [1.0], [0.2, 0.3]).kind == ParameterCurve.CONSTANT
        assert make_parameter(True, [1.0], [0.2, 0.3]).size == 2


class TestLgmParametrization:
    """Tests for H, H' and zeta of the LGM parametrization."""
    
    @staticmethod
    def lgm(kappa: ParameterCurve, alpha: ParameterCurve = None, **kwargs):
        alpha = alpha or ParameterCurve.constant(0.01, "alpha")
        return IrLgm1fParametrization("EUR", CurveHandle(flat_yield_curve(0.02)), alpha, kappa,
                                      **kwargs)
    
    def test_constant_reversion(self):
        """Test H(t) = (1 - exp(-kappa t)) / kappa."""
        p = self.lgm(ParameterCurve.constant(0.05))
        assert p.H(4.0) == pytest.approx((1 - np.exp(-0.2)) / 0.05, rel=1e-14)
        assert p.Hprime(4.0) == pytest.approx(np.exp(-0.2), rel=1e-14)
        assert p.zeta(4.0) == pytest.approx(4e-4, rel=1e-14)
    
    def test_zero_reversion(self):
        """Test H(t) = t without mean reversion."""
        p = self.lgm(ParameterCurve.constant(0.0))
        np.testing.assert_allclose(p.H(np.array([0.0, 1.0, 7.5])), [0.0, 1.0, 7.5], rtol=1e-14)
    
    def test_negative_reversion(self):
        """Test H grows faster than t for negative reversion."""
        p = self.lgm(ParameterCurve.constant(-0.02))
        assert p.H(5.0) == pytest.approx((np.exp(0.1) - 1) / 0.02, rel=1e-13)
    
    @pytest.mark.parametrize("kappa", [
        ParameterCurve.piecewise_constant([1.0, 3.0], [0.1, -0.02, 0.05]),
        ParameterCurve.piecewise_linear([0.5, 2.0, 4.0], [0.0, 0.08, 0.03]),
    ])
    def test_time_dependent_reversion(self, kappa):
        """Test H against numerical integration of H'."""
        p = self.lgm(kappa)
        for t in (0.4, 1.0, 2.5, 6.0):
            expected = quad(lambda s: np.exp(-kappa.integral(s)), 0, t, limit=200)[0]
            assert p.H(t) == pytest.approx(expected, rel=1e-10)
            assert p.Hprime(t) == pytest.approx(np.exp(-kappa.integral(t)), rel=1e-14)
    
    def test_reparametrization(self):
        """Test shift and scaling of H, alpha and zeta."""
        p = self.lgm(ParameterCurve.constant(0.03))
        q = p.with_reparametrization(shift=-2.0, scaling=3.0)
        t = 1.7
        assert q.H(t) == pytest.approx(3.0 * (p.H(t) - 2.0), rel=1e-14)
        assert q.Hprime(t) == pytest.approx(3.0 * p.Hprime(t), rel=1e-14)
        assert q.alpha(t) == pytest.approx(p.alpha(t) / 3.0, rel=1e-14)
        assert q.zeta(t) == pytest.approx(p.zeta(t) / 9.0, rel=1e-14)
        # original unchanged
        assert p.shift == 0.0 and p.scaling == 1.0
    
    def test_zero_scaling_rejected(self):
        """Test a zero scaling raises ValueError."""
        with pytest.raises(ValueError):
            self.lgm(ParameterCurve.constant(0.0), scaling=0.0)
    
    def test_with_values_keeps_reparametrization(self):
        """Test parameter updates keep shift, scaling and the curve handle."""
        p = self.lgm(ParameterCurve.constant(0.0)).with_reparametrization(1.0, 2.0)
        q = p.with_values("alpha", [0.02])
        assert q.shift == 1.0 and q.scaling == 2.0
        assert q.discount_curve is p.discount_curve
        assert q.raw_alpha(1.0) == 0.02
        assert p.raw_alpha(1.0) == 0.01
    
    def test_unknown_parameter(self):
        """Test access to an unknown parameter raises KeyError."""
        p = self.lgm(ParameterCurve.constant(0.0))
        with pytest.raises(KeyError):
            p.parameter("sigma")
    
    def test_breakpoints(self):
        """Test the union of parameter breakpoints."""
        alpha = ParameterCurve.piecewise_constant([1.0, 2.0], [0.01, 0.01, 0.01])
        kappa = ParameterCurve.piecewise_constant([2.0, 5.0], [0.0, 0.0, 0.0])
        assert self.lgm(kappa, alpha).breakpoints() == [1.0, 2.0, 5.0]


class TestFxBsParametrization:
    """Tests for the Black-Scholes FX parametrization."""
    
    def test_names_and_spot(self):
        """Test pair name, currency and live spot quote."""
        spot = Quote(0.9)
        p = FxBsParametrization("USD", "EUR", spot, ParameterCurve.constant(0.1, "sigma"))
        assert p.name == "USDEUR"
        assert p.currency == "USD"
        assert p.asset_type == AssetType.FX
        spot.value = 0.95
        assert p.spot == 0.95
    
    def test_variance(self):
        """Test integrated variance of a piecewise sigma."""
        p = FxBsParametrization("USD", "EUR", Quote(1.0),
                                ParameterCurve.piecewise_constant([1.0], [0.1, 0.2], "sigma"))
        assert p.variance(2.0) == pytest.approx(0.01 + 0.04)
