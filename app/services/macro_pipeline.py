"""
Macro Pipeline
Orchestrates: inputs -> scores -> macro state -> confirmations -> policy -> moves.
Engines stay pure; this service owns fallbacks and provenance.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Mapping, Optional, Sequence, Tuple

from app.domain.errors import MacroInputsValidationError, UpstreamFetchError
from app.domain.models import (
    ActionPolicy,
    Confirmations,
    Holding,
    LayerDelta,
    MacroInputs,
    MacroState,
    MicrostressMetrics,
    PortfolioLayer,
    ScoringResult,
    SuggestedMoves,
    TargetBand,
)
from app.domain.schemas.policy import BreadthInput, MicrostressInput
from app.domain.services.action_policy_engine import ActionPolicyEngine
from app.domain.services.confirmation_engine import ConfirmationEngine
from app.domain.services.macro_state_engine import MacroStateEngine
from app.domain.services.portfolio_engine import PortfolioEngine
from app.domain.services.scoring_engine import ScoringEngine
from app.domain.services.suggested_moves_engine import SuggestedMovesEngine
from app.services.macro_input_provider import MacroInputProvider, MacroInputsSnapshot
from app.utils.time import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MacroAssessment:
    """Everything derived from one macro snapshot"""
    snapshot: MacroInputsSnapshot
    scoring: ScoringResult
    macro_state: MacroState
    confirmations: Confirmations
    fallback_error: Optional[str] = None


@dataclass(frozen=True)
class PolicyOutcome:
    policy: ActionPolicy
    suggested_moves: SuggestedMoves
    layer_weights: Dict[PortfolioLayer, Decimal]
    layer_deltas: Tuple[LayerDelta, ...]


class MacroPipeline:
    def __init__(
        self,
        provider: MacroInputProvider,
        scoring_engine: ScoringEngine,
        macro_state_engine: MacroStateEngine,
        confirmation_engine: ConfirmationEngine,
        policy_engine: ActionPolicyEngine,
        moves_engine: SuggestedMovesEngine,
        portfolio_engine: PortfolioEngine,
        layer_targets: Mapping[PortfolioLayer, TargetBand],
    ):
        self.provider = provider
        self.scoring_engine = scoring_engine
        self.macro_state_engine = macro_state_engine
        self.confirmation_engine = confirmation_engine
        self.policy_engine = policy_engine
        self.moves_engine = moves_engine
        self.portfolio_engine = portfolio_engine
        self.layer_targets = dict(layer_targets)

    async def load_snapshot(self, use_mock: bool = False) -> Tuple[MacroInputsSnapshot, Optional[str]]:
        """
        Live snapshot, else last known good, else the mock fixture.

        Returns:
            (snapshot, error message when a fallback was used)
        """
        if use_mock:
            return self.provider.mock_snapshot(), None
        try:
            return await self.provider.fetch_macro_inputs(), None
        except (UpstreamFetchError, MacroInputsValidationError) as exc:
            last_good = self.provider.last_known_good
            if last_good is not None:
                logger.warning(f"⚠️ Using last known good macro snapshot: {exc}")
                return last_good, str(exc)
            logger.warning(f"⚠️ Falling back to mock macro inputs: {exc}")
            return self.provider.mock_snapshot(), str(exc)

    def snapshot_from_inputs(self, inputs: MacroInputs) -> MacroInputsSnapshot:
        """Wrap client-supplied inputs"""
        return MacroInputsSnapshot(
            inputs=inputs,
            used_mock_data=False,
            sources={name: "client" for name in inputs.to_wire()},
            fetched_at=utc_now(),
        )

    def build_confirmations(
        self,
        inputs: MacroInputs,
        bitcoin_prices: Optional[Sequence[float]] = None,
        breadth: Optional[BreadthInput] = None,
        microstress: Optional[MicrostressInput] = None,
    ) -> Confirmations:
        """Bitcoin always resolves (from history or the snapshot); the rest only when supplied"""
        if bitcoin_prices:
            bitcoin = self.confirmation_engine.analyze_bitcoin_trend(bitcoin_prices)
        else:
            bitcoin = self.confirmation_engine.bitcoin_from_inputs(inputs)

        breadth_result = None
        if breadth is not None:
            breadth_result = self.confirmation_engine.analyze_breadth(
                ad_line=breadth.ad_line,
                pct_above_200d=breadth.pct_above_200d,
                new_highs_lows=breadth.new_highs_lows,
                vix=breadth.vix if breadth.vix is not None else inputs.vix,
            )

        micro_result = None
        if microstress is not None:
            micro_result = self.confirmation_engine.analyze_microstress(
                MicrostressMetrics(**microstress.model_dump())
            )

        return Confirmations(bitcoin=bitcoin, breadth=breadth_result, microstress=micro_result)

    def assess(
        self,
        snapshot: MacroInputsSnapshot,
        confirmations: Optional[Confirmations] = None,
        fallback_error: Optional[str] = None,
    ) -> MacroAssessment:
        inputs = snapshot.inputs
        confirmations = confirmations or self.build_confirmations(inputs)
        scoring = self.scoring_engine.score_all_engines(inputs)
        macro_state = self.macro_state_engine.build_state(
            inputs, scoring.macro_case, confirmations.microstress,
        )
        return MacroAssessment(
            snapshot=snapshot,
            scoring=scoring,
            macro_state=macro_state,
            confirmations=confirmations,
            fallback_error=fallback_error,
        )

    def score_mock(self, error: str) -> MacroAssessment:
        """Last-resort path for the scoring endpoint"""
        return self.assess(self.provider.mock_snapshot(), fallback_error=error)

    def policy_for(
        self,
        assessment: MacroAssessment,
        holdings: Sequence[Holding],
    ) -> PolicyOutcome:
        policy = self.policy_engine.build_action_policy(
            assessment.macro_state,
            assessment.scoring.engine_scores,
            assessment.confirmations,
        )
        weights = self.portfolio_engine.compute_layer_weights(holdings)
        deltas = self.portfolio_engine.compute_layer_deltas(weights, self.layer_targets)
        moves = self.moves_engine.compute_suggested_moves(
            weights,
            deltas,
            assessment.macro_state,
            assessment.confirmations,
            assessment.scoring.engine_scores,
        )
        logger.info(
            f"🧭 Policy: {policy.this_week_bias} | deploy={[l.value for l in policy.deploy_layers]} "
            f"avoid={[l.value for l in policy.avoid_layers]}"
        )
        return PolicyOutcome(
            policy=policy,
            suggested_moves=moves,
            layer_weights=weights,
            layer_deltas=deltas,
        )
