"""
LGM sub-model builder.

Reads the currency's discount curve and swaption volatilities, builds the
swaption basket and calibrates the LGM parametrization on a one-factor
model. IR factors are calibrated here, inside the builder: every
cross-asset model has at least one of them and each currency calibrates
independently of the others.
"""

import logging
from typing import Optional

from ..errors import CalibrationToleranceExceeded
from ..market.market import DEFAULT_CONFIGURATION, DISCOUNT, SWAPTION_VOL, Market
from ..models.calibration import EndCriteria, calibration_errors, rmse
from ..models.crossasset import CrossAssetModel
from ..models.parametrization import AssetType, IrLgm1fParametrization
from ..pricing.engines import AnalyticLgmSwaptionEngine
from ..pricing.helpers import SwaptionHelper
from .base import (
    CalibrationMode,
    SubModelBuilder,
    build_parameter,
    choose_calibration,
    log_basket,
    run_calibration,
)
from .config import CalibrationType, IrLgmData

logger = logging.getLogger(__name__)


class LgmBuilder(SubModelBuilder):
    """
    Builds and calibrates the LGM parametrization of one currency.
    
    After calibration the parametrization is reparametrized with the
    configured shift horizon and scaling, which leaves prices unchanged.
    
    Attributes:
        data: IR configuration of the currency
        bootstrap_tolerance: Max RMSE accepted after a bootstrap calibration
        end_criteria: Optimizer stopping criteria
    """
    
    asset_type = AssetType.IR
    
    def __init__(
        self,
        market: Market,
        data: IrLgmData,
        configuration: str = DEFAULT_CONFIGURATION,
        bootstrap_tolerance: float = 1e-4,
        end_criteria: Optional[EndCriteria] = None,
        calibrate: bool = True,
        strict: bool = False
    ):
        """
        Args:
            market: Market data
            data: IR configuration
            configuration: Market configuration for curves and vols
            bootstrap_tolerance: Max RMSE after bootstrap calibration
            end_criteria: Optimizer stopping criteria
            calibrate: Run the calibration (otherwise keep initial values)
            strict: Raise on global optimizer non-convergence
        
        Raises:
            MarketDataNotFoundError: if the curve or vol surface is missing
            CalibrationToleranceExceeded: if a bootstrap misses the tolerance
        """
        super().__init__(market, configuration)
        self.data = data
        self.bootstrap_tolerance = bootstrap_tolerance
        self.end_criteria = end_criteria or EndCriteria()
        self.strict = strict
        self._model: Optional[CrossAssetModel] = None
        self._build(calibrate)
    
    @property
    def currency(self) -> str:
        return self.data.currency
    
    @property
    def name(self) -> str:
        return self.data.currency
    
    def _build(self, calibrate: bool) -> None:
        data = self.data
        label = f"IR:{data.currency}"
        curve = self._read(DISCOUNT, data.currency, self.market.discount_curve)
        self._discount_curve.link_to(curve, self.configuration)
        
        self.calibration_mode = choose_calibration(
            data.calibration_type, data.calibrate_alpha, data.alpha_type,
            data.calibrate_kappa, data.kappa_type, label
        )
        rows = self._option_rows(label, data.expiry_times, data.term_times, data.option_strikes)
        if rows:
            surface = self._read(SWAPTION_VOL, data.currency, self.market.swaption_vol)
            self._basket = [
                SwaptionHelper(expiry, term, surface.quote(expiry, term), self._discount_curve,
                               strike=strike, vol_type=surface.vol_type)
                for expiry, term, strike in rows
            ]
        
        expiries = [h.expiry for h in self._basket]
        mode = self.calibration_mode
        alpha = build_parameter("alpha", data.alpha_type, data.alpha_times, data.alpha_values,
                                mode == CalibrationMode.VOLATILITY_ITERATIVE, expiries)
        kappa = build_parameter("kappa", data.kappa_type, data.kappa_times, data.kappa_values,
                                mode == CalibrationMode.REVERSION_ITERATIVE, expiries)
        self._parametrization = IrLgm1fParametrization(data.currency, self._discount_curve,
                                                       alpha, kappa)
        
        self._model = CrossAssetModel([self._parametrization])
        for helper in self._basket:
            helper.set_pricing_engine(AnalyticLgmSwaptionEngine(self._model, 0))
        
        if calibrate and mode is not None:
            self._calibrate(label)
        else:
            logger.info("%s: calibration skipped", label)
        self._reparametrize(label)
        self._finish()
    
    def _calibrate(self, label: str) -> None:
        result = run_calibration(self._model, AssetType.IR, 0, self.calibration_mode,
                                 self._basket, self.end_criteria, self.strict)
        log_basket(label, self._basket)
        error = rmse(calibration_errors(self._basket))
        self.set_calibration(result, error)
        logger.info("%s: calibrated (%s), rmse %.3e", label, self.calibration_mode.value, error)
        if (self.data.calibration_type == CalibrationType.BOOTSTRAP
                and error > self.bootstrap_tolerance):
            raise CalibrationToleranceExceeded(label, error, self.bootstrap_tolerance)
    
    def _reparametrize(self, label: str) -> None:
        horizon, scaling = self.data.shift_horizon, self.data.scaling
        if horizon <= 0 and scaling == 1.0:
            return
        p = self._model.ir_lgm(0)
        shift = -float(p.raw_H(horizon)) if horizon > 0 else 0.0
        p = p.with_reparametrization(shift, scaling)
        self._model.set_parametrization(AssetType.IR, 0, p)
        self._parametrization = p
        logger.info("%s: reparametrized with shift %.6f, scaling %.6f", label, shift, scaling)


__all__ = ["LgmBuilder"]
