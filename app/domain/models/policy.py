"""
Domain Models - Macro State, Confirmations, Policy
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from app.domain.models.entities import PortfolioLayer, Regime


class AlertLevel(str, Enum):
    """Traffic-light level shared by macro alerts and confirmations"""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class BreadthSignal(str, Enum):
    CONFIRMS = "CONFIRMS"
    NEUTRAL = "NEUTRAL"
    DIVERGES = "DIVERGES"


class Direction(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    MAINTAIN = "MAINTAIN"


class ConfirmationKind(str, Enum):
    BITCOIN = "bitcoin"
    BREADTH = "breadth"
    MICROSTRESS = "microstress"


@dataclass(frozen=True)
class MacroComposites:
    """Normalized (z-like) macro composites, 0 is neutral"""
    growth: float
    inflation: float
    credit_stress: float
    liquidity_impulse: float


@dataclass(frozen=True)
class MacroState:
    regime: Regime
    alert_level: AlertLevel
    composites: MacroComposites
    alert_reasons: Tuple[str, ...] = ()
    hy_oas: Optional[float] = None


@dataclass(frozen=True)
class BitcoinConfirmation:
    trend_level: AlertLevel
    reasons: Tuple[str, ...]
    distance_from_200d_pct: Optional[float] = None
    ma_20: Optional[float] = None
    ma_50: Optional[float] = None
    ma_200: Optional[float] = None
    realized_vol_30d: Optional[float] = None
    momentum_90d: Optional[float] = None
    drawdown_365d: Optional[float] = None


@dataclass(frozen=True)
class BreadthConfirmation:
    signal: BreadthSignal
    level: AlertLevel
    score: float
    reasons: Tuple[str, ...]
    ad_line_momentum: Optional[float] = None
    pct_above_200d: Optional[float] = None
    new_highs_minus_lows: Optional[float] = None


@dataclass(frozen=True)
class MicrostressMetrics:
    """Funding-market stress readings; None when unavailable"""
    sofr_effr_spread: Optional[float] = None
    sofr_8w_change: Optional[float] = None
    cp_8w_change: Optional[float] = None
    ted_spread: Optional[float] = None
    nfci: Optional[float] = None


@dataclass(frozen=True)
class MicrostressConfirmation:
    level: AlertLevel
    reasons: Tuple[str, ...]
    metrics: MicrostressMetrics


@dataclass(frozen=True)
class Confirmations:
    """Optional secondary signals; a None member means not supplied"""
    bitcoin: Optional[BitcoinConfirmation] = None
    breadth: Optional[BreadthConfirmation] = None
    microstress: Optional[MicrostressConfirmation] = None


@dataclass(frozen=True)
class LayerGates:
    """Resolved deploy/avoid sets shared by the policy and suggested moves"""
    deploy: Tuple[PortfolioLayer, ...]
    avoid: Tuple[PortfolioLayer, ...]
    reasoning: Tuple[str, ...]
    stability_minimum: Decimal
    missing_confirmations: Tuple[ConfirmationKind, ...]
    this_week_bias: str


@dataclass(frozen=True)
class ActionPolicy:
    this_week_bias: str
    deploy_layers: Tuple[PortfolioLayer, ...]
    avoid_layers: Tuple[PortfolioLayer, ...]
    stability_minimum: Decimal
    reasoning_bullets: Tuple[str, ...]
    rebalance_triggers: Tuple[str, ...]
    example_tickers: Tuple[str, ...]
    missing_confirmations: Tuple[ConfirmationKind, ...] = ()


@dataclass(frozen=True)
class BiasAdjustment:
    layer: PortfolioLayer
    direction: Direction
    magnitude_pct: Decimal
    rationale: str


@dataclass(frozen=True)
class SuggestedMoves:
    recommended_bias_adjustments: Tuple[BiasAdjustment, ...]
    allowed_adds: Tuple[PortfolioLayer, ...]
    avoid_adds: Tuple[PortfolioLayer, ...]
    reasoning: Tuple[str, ...]
