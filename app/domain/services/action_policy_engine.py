"""
ACTION POLICY ENGINE (ENGINE-6)
Weekly deploy / avoid guidance from macro state, engine scores and confirmations

RESPONSIBILITIES:
- Resolve which portfolio layers may receive new money (shared gate resolver)
- Raise the stability floor with stress
- Rebalance triggers and example tickers for the deployed layers

RULES:
❌ Later rules never re-allow a layer an earlier rule avoided
❌ A missing confirmation never fails the policy (its rule is skipped)
✅ stability_minimum only moves up with stress
✅ Deterministic output
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from app.domain.models import (
    ActionPolicy,
    AlertLevel,
    BreadthSignal,
    ConfirmationKind,
    Confirmations,
    EngineScore,
    EngineStatus,
    LayerGates,
    MacroState,
    PortfolioLayer,
    Regime,
)
from app.domain.services.config_engine import PortfolioConfig
from app.domain.services.engine_catalog import EngineCatalog

logger = logging.getLogger(__name__)


def _dedup(layers: Iterable[PortfolioLayer]) -> List[PortfolioLayer]:
    out: List[PortfolioLayer] = []
    for layer in layers:
        if layer not in out:
            out.append(layer)
    return out


def _bias_label(deploy: Sequence[PortfolioLayer]) -> str:
    if PortfolioLayer.VOLATILITY_ASYMMETRY in deploy:
        return "Aggressive: Growth + Asymmetry"
    if PortfolioLayer.GROWTH_EQUITY in deploy:
        return "Moderate: Growth + Cashflow"
    if PortfolioLayer.HARD_ASSET_HEDGE in deploy:
        return "Defensive + Inflation Hedge"
    return "Defensive: Stability + Quality"


class ActionPolicyEngine:
    """
    Action Policy Engine
    Fixed-order decision table; gating rules only restrict
    """

    def __init__(
        self,
        settings: Mapping[str, Any],
        portfolio_config: PortfolioConfig,
        catalog: EngineCatalog,
    ):
        self._floors = {k: Decimal(str(v)) for k, v in settings["stability_minimum"].items()}
        self._inflation_hedge_at = float(settings["inflation_hedge_composite"])
        self._tickers_per_layer = int(settings["example_tickers_per_layer"])
        self._rebalance = settings["rebalance"]
        self._portfolio_config = portfolio_config
        self._catalog = catalog

    def resolve_layer_gates(
        self,
        macro_state: MacroState,
        engine_scores: Sequence[EngineScore] = (),
        confirmations: Optional[Confirmations] = None,
    ) -> LayerGates:
        """
        Deploy / avoid resolution shared by the policy and suggested moves

        Rule order:
            1. RED alert avoids the high-beta layers
            2. Bitcoin not GREEN avoids the asymmetry layer
            3. Each gated engine avoids its own layer
            4. Microstress not GREEN raises the stability floor
            5. Breadth divergence keeps growth out of deploy
            6. Base regime policy picks the deploy candidates
        """
        confirmations = confirmations or Confirmations()
        avoid: List[PortfolioLayer] = []
        deploy: List[PortfolioLayer] = []
        suppressed: List[PortfolioLayer] = []
        reasoning: List[str] = []
        floors = [self._floors["base"]]
        missing: List[ConfirmationKind] = []

        alert = macro_state.alert_level
        if alert == AlertLevel.RED:
            avoid += [PortfolioLayer.VOLATILITY_ASYMMETRY, PortfolioLayer.GROWTH_EQUITY]
            floors.append(self._floors["alert_red"])
            reasoning.append("🔴 Alert RED: blocking high-beta adds (MSTR, growth)")
        elif alert == AlertLevel.YELLOW:
            floors.append(self._floors["alert_yellow"])

        btc = confirmations.bitcoin
        btc_green = btc is not None and btc.trend_level == AlertLevel.GREEN
        if btc is None:
            missing.append(ConfirmationKind.BITCOIN)
        elif not btc_green:
            avoid.append(PortfolioLayer.VOLATILITY_ASYMMETRY)
            marker = "🔴" if btc.trend_level == AlertLevel.RED else "🟡"
            reasoning.append(f"{marker} Bitcoin trend {btc.trend_level.value}: blocking MSTR/crypto adds")

        for score in engine_scores:
            if score.status == EngineStatus.GATED:
                layer = self._catalog.layer_for(score.engine)
                avoid.append(layer)
                reasoning.append(f"⛔ {score.engine.value} gated: no new adds to {layer.value}")

        micro = confirmations.microstress
        if micro is None:
            missing.append(ConfirmationKind.MICROSTRESS)
        elif micro.level != AlertLevel.GREEN:
            floors.append(self._floors[f"microstress_{micro.level.value.lower()}"])
            marker = "🔴" if micro.level == AlertLevel.RED else "🟡"
            reasoning.append(f"{marker} Credit microstress {micro.level.value}: prefer stability + cashflow")

        breadth = confirmations.breadth
        if breadth is None:
            missing.append(ConfirmationKind.BREADTH)
        elif breadth.signal == BreadthSignal.DIVERGES:
            suppressed.append(PortfolioLayer.GROWTH_EQUITY)
            reasoning.append("🟡 Breadth divergence: cap growth, prefer quality cashflow")

        is_risk_on = macro_state.regime == Regime.RISK_ON
        if is_risk_on and alert == AlertLevel.GREEN:
            deploy += [PortfolioLayer.GROWTH_EQUITY, PortfolioLayer.CASHFLOW_EQUITY]
            if btc_green:
                deploy.append(PortfolioLayer.VOLATILITY_ASYMMETRY)
                reasoning.append("✅ Bitcoin above 200D MA: crypto adds allowed")
            reasoning.append("✅ Macro: Risk-On, Alert: GREEN")
        else:
            deploy += [PortfolioLayer.CASHFLOW_EQUITY, PortfolioLayer.STABILITY_DRY_POWDER]
            if macro_state.composites.inflation > self._inflation_hedge_at:
                deploy.append(PortfolioLayer.HARD_ASSET_HEDGE)
                reasoning.append("📈 Inflation elevated: hard assets (energy, gold) allowed")
            if not is_risk_on:
                reasoning.append(f"⚠️ Macro: {macro_state.regime.value} - defensive posture")
            if alert == AlertLevel.YELLOW:
                reasoning.append("🟡 Alert YELLOW: caution on new risk")

        avoid = _dedup(avoid)
        deploy = [layer for layer in _dedup(deploy) if layer not in avoid and layer not in suppressed]

        if missing:
            logger.debug(f"Policy computed without confirmations: {[m.value for m in missing]}")

        return LayerGates(
            deploy=tuple(deploy),
            avoid=tuple(avoid),
            reasoning=tuple(reasoning),
            stability_minimum=max(floors),
            missing_confirmations=tuple(missing),
            this_week_bias=_bias_label(deploy),
        )

    def build_action_policy(
        self,
        macro_state: MacroState,
        engine_scores: Sequence[EngineScore] = (),
        confirmations: Optional[Confirmations] = None,
    ) -> ActionPolicy:
        """
        Build this week's action policy

        Args:
            macro_state: Regime, alert level and composites
            engine_scores: Scores for the same snapshot (gated engines avoid their layer)
            confirmations: Optional bitcoin / breadth / microstress signals

        Returns:
            ActionPolicy with deduplicated deploy and avoid layers
        """
        confirmations = confirmations or Confirmations()
        gates = self.resolve_layer_gates(macro_state, engine_scores, confirmations)

        return ActionPolicy(
            this_week_bias=gates.this_week_bias,
            deploy_layers=gates.deploy,
            avoid_layers=gates.avoid,
            stability_minimum=gates.stability_minimum,
            reasoning_bullets=gates.reasoning,
            rebalance_triggers=tuple(self._rebalance_triggers(macro_state, confirmations)),
            example_tickers=tuple(self._example_tickers(gates.deploy)),
            missing_confirmations=gates.missing_confirmations,
        )

    def _rebalance_triggers(
        self,
        macro_state: MacroState,
        confirmations: Confirmations,
    ) -> List[str]:
        triggers: List[str] = []
        if macro_state.hy_oas is not None:
            triggers.append(
                f"If HY OAS > {self._rebalance['hy_oas_stability_shift_bp']}bp, "
                f"shift +{self._rebalance['stability_shift_pct']}% to Stability"
            )
        btc = confirmations.bitcoin
        if btc is not None and btc.trend_level != AlertLevel.GREEN:
            triggers.append("If Bitcoin crosses above 200D MA, allow MSTR/crypto adds")
        micro = confirmations.microstress
        if micro is not None and micro.level == AlertLevel.GREEN:
            triggers.append("If Microstress turns YELLOW, reduce risk adds")
        return triggers

    def _example_tickers(self, deploy: Sequence[PortfolioLayer]) -> List[str]:
        tickers: List[str] = []
        for layer in deploy:
            examples = self._portfolio_config.get_layer(layer).example_tickers
            for ticker in examples[: self._tickers_per_layer]:
                if ticker not in tickers:
                    tickers.append(ticker)
        return tickers
