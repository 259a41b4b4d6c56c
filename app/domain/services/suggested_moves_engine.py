"""
SUGGESTED MOVES ENGINE (ENGINE-7)
Sparse per-layer bias adjustments

RULES:
❌ Never INCREASE a layer the action policy does not deploy
✅ Single-step magnitude capped (max_step_pct)
✅ In-range layers get no entry
"""

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from app.domain.models import (
    BiasAdjustment,
    Confirmations,
    DeltaStatus,
    Direction,
    EngineScore,
    LayerDelta,
    MacroState,
    PortfolioLayer,
    SuggestedMoves,
)
from app.domain.services.action_policy_engine import ActionPolicyEngine


class SuggestedMovesEngine:
    """Turns layer deltas into bias adjustments under the policy gates"""

    def __init__(self, settings: Mapping[str, Any], policy_engine: ActionPolicyEngine):
        self._max_step = Decimal(str(settings["max_step_pct"]))
        self._policy_engine = policy_engine

    def compute_suggested_moves(
        self,
        layer_weights: Mapping[PortfolioLayer, Decimal],
        deltas: Sequence[LayerDelta],
        macro_state: MacroState,
        confirmations: Optional[Confirmations] = None,
        engine_scores: Optional[Sequence[EngineScore]] = None,
    ) -> SuggestedMoves:
        """
        OVER -> DECREASE, UNDER -> INCREASE when the layer is allowed,
        otherwise MAINTAIN with the gate as rationale.
        """
        gates = self._policy_engine.resolve_layer_gates(
            macro_state, engine_scores or (), confirmations,
        )
        allowed = gates.deploy

        adjustments: List[BiasAdjustment] = []
        for delta in deltas:
            gap = abs(delta.delta_pct)
            step = min(self._max_step, gap)
            current = layer_weights.get(delta.layer, delta.current_pct)

            if delta.status == DeltaStatus.OVER:
                adjustments.append(BiasAdjustment(
                    layer=delta.layer,
                    direction=Direction.DECREASE,
                    magnitude_pct=step,
                    rationale=f"{gap:.1f}% above target ({current:.1f}% vs {delta.target_pct:.1f}%)",
                ))
            elif delta.status == DeltaStatus.UNDER:
                if delta.layer in allowed:
                    adjustments.append(BiasAdjustment(
                        layer=delta.layer,
                        direction=Direction.INCREASE,
                        magnitude_pct=step,
                        rationale=f"{gap:.1f}% below target ({current:.1f}% vs {delta.target_pct:.1f}%)",
                    ))
                else:
                    adjustments.append(BiasAdjustment(
                        layer=delta.layer,
                        direction=Direction.MAINTAIN,
                        magnitude_pct=Decimal("0"),
                        rationale=f"{gap:.1f}% below target, but adds are gated this week",
                    ))

        return SuggestedMoves(
            recommended_bias_adjustments=tuple(adjustments),
            allowed_adds=allowed,
            avoid_adds=gates.avoid,
            reasoning=gates.reasoning,
        )
