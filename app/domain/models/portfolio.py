"""
Domain Models - Portfolio
Holdings, classification results and delta summaries
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from app.domain.models.entities import EngineId, PortfolioLayer, TargetBand


class AccountType(str, Enum):
    TAXABLE = "TAXABLE"
    ROTH = "ROTH"
    K401 = "401K"
    OTHER = "OTHER"


class AssetType(str, Enum):
    EQUITY = "EQUITY"
    ETF = "ETF"
    CRYPTO = "CRYPTO"
    BOND = "BOND"
    CASH = "CASH"
    COMMODITY = "COMMODITY"
    REIT = "REIT"
    OTHER = "OTHER"


class ClassificationConfidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DeltaStatus(str, Enum):
    UNDER = "UNDER"
    IN_RANGE = "IN_RANGE"
    OVER = "OVER"


@dataclass(frozen=True)
class Holding:
    """Single position as a share of the whole portfolio - Immutable"""
    id: str
    ticker: str
    account: AccountType
    weight_pct: Decimal
    notes: Optional[str] = None
    name: Optional[str] = None
    asset_type: Optional[AssetType] = None
    sector: Optional[str] = None
    engine_override: Optional[EngineId] = None

    def __post_init__(self):
        ticker = (self.ticker or "").strip().upper()
        if not ticker:
            raise ValueError("Holding ticker cannot be empty")
        object.__setattr__(self, "ticker", ticker)
        if not Decimal("0") <= self.weight_pct <= Decimal("100"):
            raise ValueError(f"Holding weight must be within 0-100: {self.weight_pct}")


@dataclass(frozen=True)
class Portfolio:
    """Stored portfolio record - Immutable"""
    holdings: Tuple[Holding, ...]
    updated_at: datetime
    use_demo_holdings: bool = False
    custom_targets: Optional[Dict[EngineId, TargetBand]] = None

    @property
    def total_weight(self) -> Decimal:
        return sum((h.weight_pct for h in self.holdings), Decimal("0"))

    def is_valid(self, tolerance_pct: Decimal) -> bool:
        return abs(self.total_weight - Decimal("100")) <= tolerance_pct


@dataclass(frozen=True)
class ConfidentClassification:
    """Holding mapped by override or the static ticker table"""
    engine: EngineId
    reason: str
    confidence: ClassificationConfidence = ClassificationConfidence.HIGH
    classified: bool = field(default=True, init=False)


@dataclass(frozen=True)
class HeuristicClassification:
    """Best-effort guess; callers should surface it as uncertain"""
    suggested_engine: EngineId
    reason: str
    confidence: ClassificationConfidence = ClassificationConfidence.LOW
    classified: bool = field(default=False, init=False)

    @property
    def engine(self) -> EngineId:
        return self.suggested_engine


EngineClassification = Union[ConfidentClassification, HeuristicClassification]


@dataclass(frozen=True)
class HoldingClassification:
    holding_id: str
    ticker: str
    classification: EngineClassification


@dataclass(frozen=True)
class EngineDelta:
    engine: EngineId
    current_pct: Decimal
    target_pct: Decimal
    min_pct: Decimal
    max_pct: Decimal
    delta_pct: Decimal
    status: DeltaStatus


@dataclass(frozen=True)
class LayerDelta:
    layer: PortfolioLayer
    current_pct: Decimal
    target_pct: Decimal
    min_pct: Decimal
    max_pct: Decimal
    delta_pct: Decimal
    status: DeltaStatus


@dataclass(frozen=True)
class EngineAllocation:
    engine: EngineId
    total_pct: Decimal
    by_account: Dict[AccountType, Decimal]
    tickers: Tuple[str, ...]


@dataclass(frozen=True)
class RiskSummary:
    high_beta_pct: Decimal
    defensive_pct: Decimal
    cyclical_pct: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    total_weight: Decimal
    is_valid: bool
    total_by_engine: Tuple[EngineAllocation, ...]
    total_by_account: Dict[AccountType, Decimal]
    engine_deltas: Tuple[EngineDelta, ...]
    top_overweights: Tuple[EngineDelta, ...]
    top_underweights: Tuple[EngineDelta, ...]
    risk_summary: RiskSummary
    classifications: Tuple[HoldingClassification, ...]
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
