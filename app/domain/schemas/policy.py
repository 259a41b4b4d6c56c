from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field

from app.domain.models import (
    ActionPolicy,
    BitcoinConfirmation,
    BreadthConfirmation,
    Confirmations,
    LayerDelta,
    MacroState,
    MicrostressConfirmation,
    PortfolioLayer,
    SuggestedMoves,
)
from app.domain.schemas.base import CamelModel, FiniteFloat, PositivePrice
from app.domain.schemas.engines import MacroCaseSchema


# ======================
# Requests
# ======================

class BreadthInput(CamelModel):
    ad_line: List[FiniteFloat] = []
    pct_above_200d: List[FiniteFloat] = []
    new_highs_lows: List[FiniteFloat] = []
    vix: Optional[FiniteFloat] = None


class MicrostressInput(CamelModel):
    sofr_effr_spread: Optional[FiniteFloat] = None
    sofr_8w_change: Optional[FiniteFloat] = Field(default=None, alias="sofr8wChange")
    cp_8w_change: Optional[FiniteFloat] = Field(default=None, alias="cp8wChange")
    ted_spread: Optional[FiniteFloat] = None
    nfci: Optional[FiniteFloat] = None


class PolicyRequest(CamelModel):
    """Optional overrides; anything omitted is taken from live / stored state"""
    macro_inputs: Optional[Dict[str, Any]] = None
    use_mock: bool = False
    bitcoin_prices: Optional[List[PositivePrice]] = None
    breadth: Optional[BreadthInput] = None
    microstress: Optional[MicrostressInput] = None


# ======================
# Responses
# ======================

class CompositesSchema(CamelModel):
    growth: float
    inflation: float
    credit_stress: float
    liquidity_impulse: float


class BitcoinConfirmationSchema(CamelModel):
    trend_level: str
    reasons: List[str]
    distance_from_200d_pct: Optional[float] = None
    ma_20: Optional[float] = None
    ma_50: Optional[float] = None
    ma_200: Optional[float] = None
    realized_vol_30d: Optional[float] = None
    momentum_90d: Optional[float] = None
    drawdown_365d: Optional[float] = None

    @classmethod
    def from_domain(cls, c: BitcoinConfirmation) -> "BitcoinConfirmationSchema":
        return cls(
            trend_level=c.trend_level.value,
            reasons=list(c.reasons),
            distance_from_200d_pct=c.distance_from_200d_pct,
            ma_20=c.ma_20,
            ma_50=c.ma_50,
            ma_200=c.ma_200,
            realized_vol_30d=c.realized_vol_30d,
            momentum_90d=c.momentum_90d,
            drawdown_365d=c.drawdown_365d,
        )


class BreadthConfirmationSchema(CamelModel):
    signal: str
    level: str
    score: float
    reasons: List[str]

    @classmethod
    def from_domain(cls, c: BreadthConfirmation) -> "BreadthConfirmationSchema":
        return cls(signal=c.signal.value, level=c.level.value, score=c.score, reasons=list(c.reasons))


class MicrostressConfirmationSchema(CamelModel):
    level: str
    reasons: List[str]

    @classmethod
    def from_domain(cls, c: MicrostressConfirmation) -> "MicrostressConfirmationSchema":
        return cls(level=c.level.value, reasons=list(c.reasons))


class ConfirmationsSchema(CamelModel):
    bitcoin: Optional[BitcoinConfirmationSchema] = None
    breadth: Optional[BreadthConfirmationSchema] = None
    microstress: Optional[MicrostressConfirmationSchema] = None

    @classmethod
    def from_domain(cls, c: Confirmations) -> "ConfirmationsSchema":
        return cls(
            bitcoin=BitcoinConfirmationSchema.from_domain(c.bitcoin) if c.bitcoin else None,
            breadth=BreadthConfirmationSchema.from_domain(c.breadth) if c.breadth else None,
            microstress=MicrostressConfirmationSchema.from_domain(c.microstress) if c.microstress else None,
        )


class MacroStateSchema(CamelModel):
    regime: str
    alert_level: str
    alert_reasons: List[str]
    composites: CompositesSchema

    @classmethod
    def from_domain(cls, state: MacroState) -> "MacroStateSchema":
        return cls(
            regime=state.regime.value,
            alert_level=state.alert_level.value,
            alert_reasons=list(state.alert_reasons),
            composites=CompositesSchema(
                growth=state.composites.growth,
                inflation=state.composites.inflation,
                credit_stress=state.composites.credit_stress,
                liquidity_impulse=state.composites.liquidity_impulse,
            ),
        )


class MacroStateResponse(CamelModel):
    macro_state: MacroStateSchema
    macro_case: MacroCaseSchema
    confirmations: ConfirmationsSchema
    macro_inputs: Dict[str, Any]
    used_mock_data: bool
    fallback: Optional[bool] = None
    error: Optional[str] = None


class ActionPolicySchema(CamelModel):
    this_week_bias: str
    deploy_layers: List[str]
    avoid_layers: List[str]
    stability_minimum: float
    reasoning_bullets: List[str]
    rebalance_triggers: List[str]
    example_tickers: List[str]
    missing_confirmations: List[str]

    @classmethod
    def from_domain(cls, policy: ActionPolicy) -> "ActionPolicySchema":
        return cls(
            this_week_bias=policy.this_week_bias,
            deploy_layers=[layer.value for layer in policy.deploy_layers],
            avoid_layers=[layer.value for layer in policy.avoid_layers],
            stability_minimum=float(policy.stability_minimum),
            reasoning_bullets=list(policy.reasoning_bullets),
            rebalance_triggers=list(policy.rebalance_triggers),
            example_tickers=list(policy.example_tickers),
            missing_confirmations=[m.value for m in policy.missing_confirmations],
        )


class BiasAdjustmentSchema(CamelModel):
    layer: str
    direction: str
    magnitude_pct: float
    rationale: str


class SuggestedMovesSchema(CamelModel):
    recommended_bias_adjustments: List[BiasAdjustmentSchema]
    allowed_adds: List[str]
    avoid_adds: List[str]
    reasoning: List[str]

    @classmethod
    def from_domain(cls, moves: SuggestedMoves) -> "SuggestedMovesSchema":
        return cls(
            recommended_bias_adjustments=[
                BiasAdjustmentSchema(
                    layer=a.layer.value,
                    direction=a.direction.value,
                    magnitude_pct=float(a.magnitude_pct),
                    rationale=a.rationale,
                )
                for a in moves.recommended_bias_adjustments
            ],
            allowed_adds=[layer.value for layer in moves.allowed_adds],
            avoid_adds=[layer.value for layer in moves.avoid_adds],
            reasoning=list(moves.reasoning),
        )


class LayerDeltaSchema(CamelModel):
    layer: str
    current_pct: float
    target_pct: float
    min_pct: float
    max_pct: float
    delta_pct: float
    status: str

    @classmethod
    def from_domain(cls, d: LayerDelta) -> "LayerDeltaSchema":
        return cls(
            layer=d.layer.value,
            current_pct=float(d.current_pct),
            target_pct=float(d.target_pct),
            min_pct=float(d.min_pct),
            max_pct=float(d.max_pct),
            delta_pct=float(d.delta_pct),
            status=d.status.value,
        )


def layer_weights_to_wire(weights: Mapping[PortfolioLayer, Decimal]) -> Dict[str, float]:
    return {layer.value: float(w) for layer, w in weights.items()}


class PolicyResponse(CamelModel):
    policy: ActionPolicySchema
    suggested_moves: SuggestedMovesSchema
    layer_weights: Dict[str, float]
    layer_deltas: List[LayerDeltaSchema]
    macro_state: MacroStateSchema
    confirmations: ConfirmationsSchema
    used_mock_data: bool
    fallback: Optional[bool] = None
    error: Optional[str] = None
