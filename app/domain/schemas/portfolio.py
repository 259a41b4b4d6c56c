from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from app.domain.models import (
    AccountType,
    AssetType,
    EngineId,
    Holding,
    Portfolio,
    PortfolioSummary,
    TargetBand,
    ValidationReport,
)
from app.domain.schemas.base import CamelModel
from app.domain.schemas.engines import TargetBandSchema


# ======================
# Requests
# ======================

class HoldingInput(CamelModel):
    id: Optional[str] = None
    ticker: str = Field(min_length=1)
    account: AccountType
    weight_pct: Decimal = Field(ge=0, le=100)
    notes: Optional[str] = None
    name: Optional[str] = None
    asset_type: Optional[AssetType] = None
    sector: Optional[str] = None
    engine_override: Optional[EngineId] = None


class HoldingUpdate(CamelModel):
    ticker: Optional[str] = Field(default=None, min_length=1)
    account: Optional[AccountType] = None
    weight_pct: Optional[Decimal] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    name: Optional[str] = None
    asset_type: Optional[AssetType] = None
    sector: Optional[str] = None
    engine_override: Optional[EngineId] = None

    @field_validator("ticker", "account", "weight_pct")
    @classmethod
    def required_fields_not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class HoldingsReplaceRequest(CamelModel):
    holdings: List[HoldingInput]


class TargetBandInput(CamelModel):
    min_pct: Decimal = Field(ge=0, le=100)
    target_pct: Decimal = Field(ge=0, le=100)
    max_pct: Decimal = Field(ge=0, le=100)

    def to_domain(self) -> TargetBand:
        return TargetBand(min_pct=self.min_pct, target_pct=self.target_pct, max_pct=self.max_pct)


class TargetsRequest(CamelModel):
    """None clears custom targets"""
    custom_targets: Optional[Dict[EngineId, TargetBandInput]] = None


class DemoModeRequest(CamelModel):
    enabled: bool


# ======================
# Responses
# ======================

class HoldingSchema(CamelModel):
    id: str
    ticker: str
    account: str
    weight_pct: float
    notes: Optional[str] = None
    name: Optional[str] = None
    asset_type: Optional[str] = None
    sector: Optional[str] = None
    engine_override: Optional[str] = None

    @classmethod
    def from_domain(cls, h: Holding) -> "HoldingSchema":
        return cls(
            id=h.id,
            ticker=h.ticker,
            account=h.account.value,
            weight_pct=float(h.weight_pct),
            notes=h.notes,
            name=h.name,
            asset_type=h.asset_type.value if h.asset_type else None,
            sector=h.sector,
            engine_override=h.engine_override.value if h.engine_override else None,
        )


class PortfolioSchema(CamelModel):
    holdings: List[HoldingSchema]
    custom_targets: Optional[Dict[str, TargetBandSchema]] = None
    use_demo_holdings: bool
    updated_at: datetime

    @classmethod
    def from_domain(cls, p: Portfolio) -> "PortfolioSchema":
        return cls(
            holdings=[HoldingSchema.from_domain(h) for h in p.holdings],
            custom_targets=(
                {e.value: TargetBandSchema.from_domain(b) for e, b in p.custom_targets.items()}
                if p.custom_targets is not None else None
            ),
            use_demo_holdings=p.use_demo_holdings,
            updated_at=p.updated_at,
        )


class EngineAllocationSchema(CamelModel):
    engine: str
    total_pct: float
    by_account: Dict[str, float]
    tickers: List[str]


class EngineDeltaSchema(CamelModel):
    engine: str
    current_pct: float
    target_pct: float
    min_pct: float
    max_pct: float
    delta_pct: float
    status: str


class RiskSummarySchema(CamelModel):
    high_beta_pct: float
    defensive_pct: float
    cyclical_pct: float


class ClassificationSchema(CamelModel):
    holding_id: str
    ticker: str
    classified: bool
    engine: str
    confidence: str
    reason: str


class PortfolioSummarySchema(CamelModel):
    total_weight: float
    is_valid: bool
    total_by_engine: List[EngineAllocationSchema]
    total_by_account: Dict[str, float]
    engine_deltas: List[EngineDeltaSchema]
    top_overweights: List[EngineDeltaSchema]
    top_underweights: List[EngineDeltaSchema]
    risk_summary: RiskSummarySchema
    classifications: List[ClassificationSchema]
    warnings: List[str]

    @classmethod
    def from_domain(cls, s: PortfolioSummary) -> "PortfolioSummarySchema":
        def delta(d) -> EngineDeltaSchema:
            return EngineDeltaSchema(
                engine=d.engine.value,
                current_pct=float(d.current_pct),
                target_pct=float(d.target_pct),
                min_pct=float(d.min_pct),
                max_pct=float(d.max_pct),
                delta_pct=float(d.delta_pct),
                status=d.status.value,
            )

        return cls(
            total_weight=float(s.total_weight),
            is_valid=s.is_valid,
            total_by_engine=[
                EngineAllocationSchema(
                    engine=a.engine.value,
                    total_pct=float(a.total_pct),
                    by_account={k.value: float(v) for k, v in a.by_account.items()},
                    tickers=list(a.tickers),
                )
                for a in s.total_by_engine
            ],
            total_by_account={k.value: float(v) for k, v in s.total_by_account.items()},
            engine_deltas=[delta(d) for d in s.engine_deltas],
            top_overweights=[delta(d) for d in s.top_overweights],
            top_underweights=[delta(d) for d in s.top_underweights],
            risk_summary=RiskSummarySchema(
                high_beta_pct=float(s.risk_summary.high_beta_pct),
                defensive_pct=float(s.risk_summary.defensive_pct),
                cyclical_pct=float(s.risk_summary.cyclical_pct),
            ),
            classifications=[
                ClassificationSchema(
                    holding_id=c.holding_id,
                    ticker=c.ticker,
                    classified=c.classification.classified,
                    engine=c.classification.engine.value,
                    confidence=c.classification.confidence.value,
                    reason=c.classification.reason,
                )
                for c in s.classifications
            ],
            warnings=list(s.warnings),
        )


class ValidationReportSchema(CamelModel):
    is_valid: bool
    errors: List[str]
    warnings: List[str]

    @classmethod
    def from_domain(cls, r: ValidationReport) -> "ValidationReportSchema":
        return cls(is_valid=r.is_valid, errors=list(r.errors), warnings=list(r.warnings))


class PortfolioResponse(CamelModel):
    portfolio: PortfolioSchema
    active_holdings: List[HoldingSchema]
    summary: PortfolioSummarySchema
    validation: ValidationReportSchema
