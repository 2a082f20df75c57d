"""
Cross-asset model builder.

Wires market data to the sub-model builders, assembles the joint model
and calibrates it stage by stage:
    
    IR     calibrated inside each LGM builder (LGM calibration configuration)
    FX     FX option baskets against the joint model (FX calibration configuration)
    EQ     equity option baskets (EQ calibration configuration)
    INF    CPI cap/floor baskets (final model configuration)
    Final  curves relinked to the final model configuration, caches dropped

Every stage first relinks the IR discount curve handles to the curves the
market holds for the stage's configuration and checks the links before
any engine is attached.

The model is built lazily on the first ``model()`` call and rebuilt when
any observed market input has changed since the last successful build.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

from ..errors import (
    CalibrationToleranceExceeded,
    ConfigurationError,
    ConfigurationMismatchError,
    PreconditionViolation,
)
from ..market.market import DISCOUNT, Market
from ..models.calibration import calibration_errors, rmse
from ..models.correlation import CorrelationMatrixBuilder, factor_name
from ..models.crossasset import CrossAssetModel
from ..models.parametrization import ASSET_ORDER, AssetType
from ..pricing.engines import (
    AnalyticDkCpiCapFloorEngine,
    AnalyticLgmSwaptionEngine,
    AnalyticXAssetEqOptionEngine,
    AnalyticXAssetLgmFxOptionEngine,
)
from .base import SubModelBuilder, log_basket, run_calibration
from .config import (
    CalibrationStage,
    CalibrationType,
    CrossAssetModelData,
    MarketConfigurations,
)
from .crlgm import CrLgmBuilder
from .eqbs import EqBsBuilder
from .fxbs import FxBsBuilder
from .infdk import InfDkBuilder
from .irlgm import LgmBuilder
from .observer import MarketObserver

logger = logging.getLogger(__name__)


class BuilderState(Enum):
    UNINITIALIZED = "Uninitialized"
    BUILT = "Built"
    CALIBRATED = "Calibrated"
    STALE = "Stale"


# Sub-model builder per asset class
SUB_BUILDERS = {
    AssetType.IR: LgmBuilder,
    AssetType.FX: FxBsBuilder,
    AssetType.EQ: EqBsBuilder,
    AssetType.INF: InfDkBuilder,
    AssetType.CR: CrLgmBuilder,
}

# Analytic engine used to price each asset class's basket against the joint model
STAGE_ENGINES = {
    AssetType.IR: AnalyticLgmSwaptionEngine,
    AssetType.FX: AnalyticXAssetLgmFxOptionEngine,
    AssetType.EQ: AnalyticXAssetEqOptionEngine,
    AssetType.INF: AnalyticDkCpiCapFloorEngine,
}

_STAGE_ASSETS = {
    CalibrationStage.FX: AssetType.FX,
    CalibrationStage.EQ: AssetType.EQ,
    CalibrationStage.INF: AssetType.INF,
}


class CrossAssetModelBuilder:
    """
    Builds and calibrates a CrossAssetModel from market data and configuration.
    
    Example:
        >>> builder = CrossAssetModelBuilder(market, config)
        >>> model = builder.model()
        >>> builder.fx_option_calibration_errors()
        [3.1e-13]
    
    Attributes:
        market: Market data
        config: Cross-asset model configuration
        configurations: Market configuration tags per calibration stage
        calibrate_model: If False, the model keeps the configured initial parameters
        strict: Raise OptimizerNonConvergence from global calibrations
        build_count: Number of successful builds
    """
    
    def __init__(
        self,
        market: Market,
        config: CrossAssetModelData,
        configurations: Optional[MarketConfigurations] = None,
        calibrate: bool = True,
        strict: bool = False
    ):
        self.market = market
        self.config = config
        self.configurations = configurations or MarketConfigurations()
        self.calibrate_model = calibrate
        self.strict = strict
        self.build_count = 0
    
        self._model: Optional[CrossAssetModel] = None
        self._state = BuilderState.UNINITIALIZED
        self._builders: Dict[AssetType, List[SubModelBuilder]] = {at: [] for at in ASSET_ORDER}
        self._errors: Dict[AssetType, List[float]] = {at: [] for at in ASSET_ORDER}
        self._correlations = CorrelationMatrixBuilder()
        self._observer = MarketObserver(market)
    
    # ------------------------------------------------------------------
    # lazy evaluation
    # ------------------------------------------------------------------
    
    def model(self) -> CrossAssetModel:
        """The calibrated model, rebuilt first if any observed input has changed."""
        self._perform_calculations()
        return self._model
    
    def requires_recalibration(self) -> bool:
        if self._model is None:
            return True
        if self._observer.has_changed():
            return True
        return any(b.requires_recalibration()
                   for builders in self._builders.values() for b in builders)
    
    @property
    def state(self) -> BuilderState:
        if self._model is None:
            return BuilderState.UNINITIALIZED
        if self.requires_recalibration():
            return BuilderState.STALE
        return self._state
    
    def force_recalculate(self) -> None:
        """Rebuild and recalibrate now, whatever the observers say."""
        logger.info("forced recalculation")
        self._build_model()
    
    def _perform_calculations(self) -> None:
        if self.requires_recalibration():
            if self._model is not None:
                logger.info("market inputs changed, rebuilding cross-asset model")
            self._build_model()
    
    # ------------------------------------------------------------------
    # build
    # ------------------------------------------------------------------
    
    def _validate(self) -> None:
        config = self.config
        n_ir, n_fx = len(config.ir_configs), len(config.fx_configs)
        if n_ir < 1:
            raise ConfigurationError("at least one IR configuration is required")
        if n_fx != n_ir - 1:
            raise ConfigurationError(
                f"{n_ir} IR configurations need {n_ir - 1} FX configurations, got {n_fx}"
            )
        if config.ir_configs[0].currency != config.domestic_currency:
            raise ConfigurationError(
                f"first IR configuration ({config.ir_configs[0].currency}) must be the "
                f"domestic currency {config.domestic_currency}"
            )
    
    def _build_sub_models(self) -> Dict[AssetType, List[SubModelBuilder]]:
        config, tags = self.config, self.configurations
        builders: Dict[AssetType, List[SubModelBuilder]] = {at: [] for at in ASSET_ORDER}
    
        for data in config.ir_configs:
            builders[AssetType.IR].append(SUB_BUILDERS[AssetType.IR](
                self.market, data, tags.lgm_calibration, config.bootstrap_tolerance,
                config.end_criteria, self.calibrate_model, self.strict
            ))
        currencies = [b.currency for b in builders[AssetType.IR]]
    
        for i, data in enumerate(config.fx_configs):
            if data.foreign_ccy != currencies[i + 1] or data.domestic_ccy != currencies[0]:
                raise ConfigurationMismatchError(
                    f"FX configuration {i} ({data.pair}) does not match IR currencies "
                    f"{currencies[i + 1]}/{currencies[0]}"
                )
            builders[AssetType.FX].append(
                SUB_BUILDERS[AssetType.FX](self.market, data, tags.fx_calibration))
    
        others = (
            (AssetType.EQ, config.eq_configs, tags.eq_calibration),
            (AssetType.INF, config.inf_configs, tags.inf_calibration),
            (AssetType.CR, config.cr_configs, tags.final_model),
        )
        for asset_type, datas, tag in others:
            for data in datas:
                if data.currency not in currencies:
                    raise ConfigurationMismatchError(
                        f"{asset_type.value} configuration {factor_name(asset_type, data.name)} "
                        f"has currency {data.currency}, not among IR currencies {currencies}"
                    )
                builders[asset_type].append(SUB_BUILDERS[asset_type](self.market, data, tag))
        return builders
    
    def _build_correlations(self, builders, observer: MarketObserver):
        """Correlation builder and driver correlation matrix over the built factors."""
        correlations = CorrelationMatrixBuilder()
        for (factor1, factor2), value in self.config.correlations.items():
            correlations.add_correlation(factor1, factor2, value)
        for (factor1, factor2), quote in correlations.correlations.items():
            observer.watch_quote(f"{factor1}/{factor2}", quote)
            logger.debug("correlation %s/%s = %.4f", factor1, factor2, quote.value)
        matrix = correlations.correlation_matrix(
            [b.name for b in builders[AssetType.IR]],
            [b.name for b in builders[AssetType.EQ]],
            [b.name for b in builders[AssetType.INF]],
            [b.name for b in builders[AssetType.CR]],
        )
        return correlations, matrix
    
    def _build_model(self) -> None:
        tags = self.configurations
        logger.info(
            "building cross-asset model (%s) with configurations lgm=%s fx=%s eq=%s inf=%s final=%s",
            self.market.asof or "no asof", tags.lgm_calibration, tags.fx_calibration,
            tags.eq_calibration, tags.inf_calibration, tags.final_model
        )
        self._validate()
        builders = self._build_sub_models()
    
        observer = MarketObserver(self.market)
        correlations, matrix = self._build_correlations(builders, observer)
        parametrizations = [b.parametrization for at in ASSET_ORDER for b in builders[at]]
        model = CrossAssetModel(parametrizations, matrix, self.config.salvaging)
    
        currencies = [b.name for b in builders[AssetType.IR]]
        for stage in CalibrationStage:
            tag = tags.for_stage(stage)
            for ccy in currencies:
                observer.watch(DISCOUNT, ccy, tag)
    
        errors: Dict[AssetType, List[float]] = {at: [] for at in ASSET_ORDER}
        if self.calibrate_model:
            errors[AssetType.IR] = [b.error() for b in builders[AssetType.IR]]
            for stage in (CalibrationStage.IR, CalibrationStage.FX, CalibrationStage.EQ,
                          CalibrationStage.INF):
                self._run_stage(stage, model, builders, errors)
        self._final_stage(model, builders)
    
        # commit only once everything succeeded
        observer.snapshot()
        self._model = model
        self._builders = builders
        self._errors = errors
        self._correlations = correlations
        self._observer = observer
        self._state = BuilderState.CALIBRATED if self.calibrate_model else BuilderState.BUILT
        self.build_count += 1
        logger.info("cross-asset model built (%d factors, %d states, build %d)",
                    model.n_brownians, model.n_states, self.build_count)
    
    # ------------------------------------------------------------------
    # calibration stages
    # ------------------------------------------------------------------
    
    def stage_curve(self, ccy: str, stage: CalibrationStage):
        """Discount curve of ``ccy`` for a calibration stage, resolved from the market."""
        return self.market.discount_curve(ccy, self.configurations.for_stage(stage))
    
    def _relink(self, stage: CalibrationStage, model: CrossAssetModel, builders) -> None:
        tag = self.configurations.for_stage(stage)
        expected = {}
        for b in builders[AssetType.IR]:
            curve = self.stage_curve(b.name, stage)
            b.discount_curve.link_to(curve, tag)
            expected[b.name] = curve
            logger.debug("stage %s: relinked %s discount curve to configuration %s",
                         stage.value, b.name, tag)
        model.update()
    
        for i in range(model.components(AssetType.IR)):
            p = model.ir_lgm(i)
            handle = p.discount_curve
            if handle.configuration != tag or handle.current is not expected[p.currency]:
                raise PreconditionViolation(
                    f"stage {stage.value}: {p.currency} discount curve is linked to "
                    f"configuration {handle.configuration}, expected {tag}"
                )
    
    def _run_stage(self, stage: CalibrationStage, model: CrossAssetModel, builders,
                   errors: Dict[AssetType, List[float]]) -> None:
        self._relink(stage, model, builders)
        asset_type = _STAGE_ASSETS.get(stage)
        if asset_type is None:
            return
        if not builders[asset_type]:
            logger.info("stage %s: no factors, skipped", stage.value)
            return
        logger.info("stage %s: calibrating %d factors", stage.value, len(builders[asset_type]))
        for i, builder in enumerate(builders[asset_type]):
            errors[asset_type].append(self._calibrate_factor(model, builder, asset_type, i))
    
    def _calibrate_factor(self, model: CrossAssetModel, builder: SubModelBuilder,
                          asset_type: AssetType, i: int) -> float:
        label = factor_name(asset_type, builder.name)
        basket = builder.basket
        engine = STAGE_ENGINES[asset_type](model, i)
        for helper in basket:
            helper.set_pricing_engine(engine)
    
        mode = builder.calibration_mode
        if mode is None:
            error = rmse(calibration_errors(basket))
            builder.set_calibration(None, error)
            logger.info("%s: not calibrated (rmse %.3e)", label, error)
            return error
    
        result = run_calibration(model, asset_type, i, mode, basket,
                                 self.config.end_criteria, self.strict)
        log_basket(label, basket)
        error = rmse(calibration_errors(basket))
        builder.set_calibration(result, error)
        logger.info("%s: calibrated (%s), rmse %.3e", label, mode.value, error)
    
        tolerance = self.config.bootstrap_tolerance
        if builder.data.calibration_type == CalibrationType.BOOTSTRAP and error > tolerance:
            raise CalibrationToleranceExceeded(label, error, tolerance)
        return error
    
    def _final_stage(self, model: CrossAssetModel, builders) -> None:
        self._relink(CalibrationStage.FINAL, model, builders)
        for i, builder in enumerate(builders[AssetType.IR]):
            engine = STAGE_ENGINES[AssetType.IR](model, i)
            for helper in builder.basket:
                helper.set_pricing_engine(engine)
        model.update()
        logger.info("stage %s: model relinked to configuration %s", CalibrationStage.FINAL.value,
                    self.configurations.final_model)
    
    # ------------------------------------------------------------------
    # results
    # ------------------------------------------------------------------
    
    def sub_builders(self, asset_type: AssetType) -> List[SubModelBuilder]:
        self._perform_calculations()
        return list(self._builders[asset_type])
    
    @property
    def correlation_builder(self) -> CorrelationMatrixBuilder:
        self._perform_calculations()
        return self._correlations
    
    def basket(self, asset_type: AssetType, i: int) -> List:
        """Calibration basket of factor i, in expiry order."""
        return self.sub_builders(asset_type)[i].basket
    
    def basket_expiries(self, asset_type: AssetType, i: int) -> List[float]:
        return [h.expiry for h in self.basket(asset_type, i)]
    
    def calibration_errors(self, asset_type: AssetType) -> List[float]:
        """Calibration RMSE per factor of an asset class, as recorded at its stage."""
        self._perform_calculations()
        return list(self._errors[asset_type])
    
    def swaption_calibration_errors(self) -> List[float]:
        return self.calibration_errors(AssetType.IR)
    
    def fx_option_calibration_errors(self) -> List[float]:
        return self.calibration_errors(AssetType.FX)
    
    def eq_option_calibration_errors(self) -> List[float]:
        return self.calibration_errors(AssetType.EQ)
    
    def inf_cap_floor_calibration_errors(self) -> List[float]:
        return self.calibration_errors(AssetType.INF)
    
    def calibration_report(self) -> pd.DataFrame:
        """
        Market and model value of every basket instrument under the final model.
    
        Returns:
            DataFrame with one row per instrument
        """
        self._perform_calculations()
        rows = []
        for asset_type in ASSET_ORDER:
            for builder in self._builders[asset_type]:
                for n, helper in enumerate(builder.basket):
                    if helper.engine is None:
                        continue
                    row = {"factor": factor_name(asset_type, builder.name), "position": n}
                    row.update(helper.describe())
                    row["market_value"] = helper.market_value()
                    row["model_value"] = helper.model_value()
                    row["error"] = row["model_value"] - row["market_value"]
                    rows.append(row)
        return pd.DataFrame(rows)
    
    def __repr__(self) -> str:
        return (f"CrossAssetModelBuilder(domestic={self.config.domestic_currency}, "
                f"state={self._state.value}, builds={self.build_count})")


__all__ = ["CrossAssetModelBuilder", "BuilderState", "SUB_BUILDERS"]
