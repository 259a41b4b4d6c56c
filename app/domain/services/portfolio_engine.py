"""
PORTFOLIO ENGINE (ENGINE-5)
Compare a holdings book against engine and layer target bands

RESPONSIBILITIES:
- Classify each holding into exactly one engine
- Aggregate weights by engine, account and portfolio layer
- Compute deltas vs target bands and the risk exposure summary
- Validate and normalize holding weights

RULES:
❌ No prices, no market data
❌ No persistence
✅ Unknown tickers are classified, never rejected (tagged as heuristic)
✅ Decimal arithmetic throughout
"""

from collections import OrderedDict
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.domain.models import (
    AccountType,
    ConfidentClassification,
    ClassificationConfidence,
    DeltaStatus,
    EngineAllocation,
    EngineClassification,
    EngineDelta,
    EngineId,
    HeuristicClassification,
    Holding,
    HoldingClassification,
    LayerDelta,
    Portfolio,
    PortfolioLayer,
    PortfolioSummary,
    RiskSummary,
    TargetBand,
    ValidationReport,
)
from app.domain.services.config_engine import PortfolioConfig
from app.domain.services.engine_catalog import EngineCatalog

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _q(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _status(current: Decimal, band: TargetBand) -> DeltaStatus:
    if current < band.min_pct:
        return DeltaStatus.UNDER
    if current > band.max_pct:
        return DeltaStatus.OVER
    return DeltaStatus.IN_RANGE


class PortfolioEngine:
    """
    Portfolio Engine
    Pure delta calculator over the configured classification tables
    """

    def __init__(self, config: PortfolioConfig, catalog: EngineCatalog):
        self.config = config
        self.catalog = catalog
        self._ticker_layers = config.ticker_layers()

    # ------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------

    def classify_holding(self, holding: Holding) -> EngineClassification:
        """
        Map a holding to an engine

        Order: explicit override, static ticker table, asset type,
        sector keywords, then the default engine.
        """
        if holding.engine_override is not None:
            return ConfidentClassification(
                engine=holding.engine_override,
                reason="Engine set manually on the holding",
            )

        engine = self.config.ticker_engines.get(holding.ticker)
        if engine is not None:
            return ConfidentClassification(
                engine=engine,
                reason=f"{holding.ticker} is in the ticker classification table",
            )

        if holding.asset_type is not None and holding.asset_type in self.config.asset_type_engines:
            return HeuristicClassification(
                suggested_engine=self.config.asset_type_engines[holding.asset_type],
                reason=f"Inferred from asset type {holding.asset_type.value}",
                confidence=ClassificationConfidence.MEDIUM,
            )

        if holding.sector:
            sector = holding.sector.lower()
            for keywords, engine in self.config.sector_engines:
                if any(k in sector for k in keywords):
                    return HeuristicClassification(
                        suggested_engine=engine,
                        reason=f"Inferred from sector '{holding.sector}'",
                        confidence=ClassificationConfidence.MEDIUM,
                    )

        return HeuristicClassification(
            suggested_engine=self.config.default_engine,
            reason=f"No classification data for {holding.ticker}; using default engine",
        )

    # ------------------------------------------------------------
    # Engine view
    # ------------------------------------------------------------

    def effective_targets(
        self,
        custom_targets: Optional[Mapping[EngineId, TargetBand]] = None,
    ) -> Dict[EngineId, TargetBand]:
        """Catalog default bands with per-engine custom overrides applied"""
        targets = self.catalog.default_targets()
        if custom_targets:
            targets.update(custom_targets)
        return targets

    def compute_summary(
        self,
        portfolio: Portfolio,
        targets: Optional[Mapping[EngineId, TargetBand]] = None,
    ) -> PortfolioSummary:
        """
        Build the full engine-level summary

        Args:
            portfolio: Holdings book
            targets: Engine bands; defaults to catalog bands plus the
                portfolio's custom targets
        """
        if targets is None:
            targets = self.effective_targets(portfolio.custom_targets)

        classifications = tuple(
            HoldingClassification(
                holding_id=h.id,
                ticker=h.ticker,
                classification=self.classify_holding(h),
            )
            for h in portfolio.holdings
        )

        allocations = self._allocations(portfolio.holdings, classifications)
        engine_weights = {a.engine: a.total_pct for a in allocations}

        deltas = tuple(
            self._engine_delta(engine.id, engine_weights.get(engine.id, Decimal("0")), targets[engine.id])
            for engine in self.catalog.list_engines()
        )

        top = self.config.top_movers
        over = sorted(
            (d for d in deltas if d.status == DeltaStatus.OVER),
            key=lambda d: d.delta_pct,
            reverse=True,
        )[:top]
        under = sorted(
            (d for d in deltas if d.status == DeltaStatus.UNDER),
            key=lambda d: d.delta_pct,
        )[:top]

        warnings: List[str] = []
        for c in classifications:
            if not c.classification.classified:
                warnings.append(
                    f"{c.ticker}: {c.classification.reason} "
                    f"({c.classification.confidence.value} confidence)"
                )

        total = portfolio.total_weight
        return PortfolioSummary(
            total_weight=_q(total),
            is_valid=portfolio.is_valid(self.config.weight_tolerance_pct),
            total_by_engine=allocations,
            total_by_account=self._by_account(portfolio.holdings),
            engine_deltas=deltas,
            top_overweights=tuple(over),
            top_underweights=tuple(under),
            risk_summary=self.compute_risk_summary(engine_weights),
            classifications=classifications,
            warnings=tuple(warnings),
        )

    def _allocations(
        self,
        holdings: Sequence[Holding],
        classifications: Sequence[HoldingClassification],
    ) -> Tuple[EngineAllocation, ...]:
        totals: Dict[EngineId, Decimal] = {}
        accounts: Dict[EngineId, Dict[AccountType, Decimal]] = {}
        tickers: Dict[EngineId, List[str]] = {}

        for holding, c in zip(holdings, classifications):
            engine = c.classification.engine
            totals[engine] = totals.get(engine, Decimal("0")) + holding.weight_pct
            by_account = accounts.setdefault(engine, {})
            by_account[holding.account] = by_account.get(holding.account, Decimal("0")) + holding.weight_pct
            names = tickers.setdefault(engine, [])
            if holding.ticker not in names:
                names.append(holding.ticker)

        return tuple(
            EngineAllocation(
                engine=engine.id,
                total_pct=_q(totals[engine.id]),
                by_account={k: _q(v) for k, v in accounts[engine.id].items()},
                tickers=tuple(tickers[engine.id]),
            )
            for engine in self.catalog.list_engines()
            if engine.id in totals
        )

    @staticmethod
    def _by_account(holdings: Iterable[Holding]) -> Dict[AccountType, Decimal]:
        totals: Dict[AccountType, Decimal] = {}
        for h in holdings:
            totals[h.account] = totals.get(h.account, Decimal("0")) + h.weight_pct
        return {k: _q(v) for k, v in totals.items()}

    @staticmethod
    def _engine_delta(engine: EngineId, current: Decimal, band: TargetBand) -> EngineDelta:
        current = _q(current)
        return EngineDelta(
            engine=engine,
            current_pct=current,
            target_pct=band.target_pct,
            min_pct=band.min_pct,
            max_pct=band.max_pct,
            delta_pct=_q(current - band.target_pct),
            status=_status(current, band),
        )

    def compute_risk_summary(self, engine_weights: Mapping[EngineId, Decimal]) -> RiskSummary:
        """Weighted exposure to high-beta, defensive and cyclical engines"""
        def exposure(bucket: str) -> Decimal:
            weights = self.config.risk_weights.get(bucket, {})
            return _q(sum(
                (engine_weights.get(engine, Decimal("0")) * w for engine, w in weights.items()),
                Decimal("0"),
            ))

        return RiskSummary(
            high_beta_pct=exposure("high_beta"),
            defensive_pct=exposure("defensive"),
            cyclical_pct=exposure("cyclical"),
        )

    # ------------------------------------------------------------
    # Layer view
    # ------------------------------------------------------------

    def layer_for_holding(self, holding: Holding) -> PortfolioLayer:
        """Ticker layer table first, else the layer of the classified engine"""
        if holding.engine_override is None:
            layer = self._ticker_layers.get(holding.ticker)
            if layer is not None:
                return layer
        return self.catalog.layer_for(self.classify_holding(holding).engine)

    def compute_layer_weights(self, holdings: Iterable[Holding]) -> Dict[PortfolioLayer, Decimal]:
        """Weight per layer; every layer is present, zero when empty"""
        weights: Dict[PortfolioLayer, Decimal] = OrderedDict((layer, Decimal("0")) for layer in PortfolioLayer)
        for h in holdings:
            layer = self.layer_for_holding(h)
            weights[layer] += h.weight_pct
        return {layer: _q(w) for layer, w in weights.items()}

    @staticmethod
    def compute_layer_deltas(
        weights: Mapping[PortfolioLayer, Decimal],
        layer_targets: Mapping[PortfolioLayer, TargetBand],
    ) -> Tuple[LayerDelta, ...]:
        deltas = []
        for layer in PortfolioLayer:
            band = layer_targets[layer]
            current = _q(weights.get(layer, Decimal("0")))
            deltas.append(LayerDelta(
                layer=layer,
                current_pct=current,
                target_pct=band.target_pct,
                min_pct=band.min_pct,
                max_pct=band.max_pct,
                delta_pct=_q(current - band.target_pct),
                status=_status(current, band),
            ))
        return tuple(deltas)

    # ------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------

    def validate_holdings(self, holdings: Sequence[Holding]) -> ValidationReport:
        """
        Errors block a valid book; warnings are informational.
        Negative weights cannot reach here (Holding rejects them).
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not holdings:
            warnings.append("Portfolio has no holdings")
            return ValidationReport(is_valid=False, errors=(), warnings=tuple(warnings))

        total = sum((h.weight_pct for h in holdings), Decimal("0"))
        if abs(total - HUNDRED) > self.config.weight_tolerance_pct:
            errors.append(f"Weights sum to {_q(total)}%, expected 100%")

        seen = set()
        for h in holdings:
            if h.asset_type is None:
                warnings.append(f"{h.ticker}: missing asset type")
            key = (h.ticker, h.account)
            if key in seen:
                warnings.append(f"{h.ticker}: duplicate holding in {h.account.value} account")
            seen.add(key)

        return ValidationReport(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    @staticmethod
    def normalize_weights(holdings: Sequence[Holding]) -> Tuple[Holding, ...]:
        """Scale weights to sum to 100; the last holding absorbs rounding"""
        total = sum((h.weight_pct for h in holdings), Decimal("0"))
        if not holdings or total == 0:
            return tuple(holdings)

        scaled = [replace(h, weight_pct=_q(h.weight_pct * HUNDRED / total)) for h in holdings]
        drift = HUNDRED - sum((h.weight_pct for h in scaled), Decimal("0"))
        if drift:
            last = scaled[-1]
            scaled[-1] = replace(last, weight_pct=max(Decimal("0"), last.weight_pct + drift))
        return tuple(scaled)
