from datetime import datetime
from typing import Any, Dict, List, Optional

from app.domain.models import Engine, EngineScore, MacroCase, ScoringResult, TargetBand
from app.domain.schemas.base import CamelModel


class TargetBandSchema(CamelModel):
    min_pct: float
    target_pct: float
    max_pct: float

    @classmethod
    def from_domain(cls, band: TargetBand) -> "TargetBandSchema":
        return cls(
            min_pct=float(band.min_pct),
            target_pct=float(band.target_pct),
            max_pct=float(band.max_pct),
        )


class DriversSchema(CamelModel):
    helps: List[str]
    hurts: List[str]


class EngineSchema(CamelModel):
    id: str
    label: str
    short_definition: str
    description: str
    layer: str
    examples: List[str]
    what_wins: List[str]
    macro_drivers: DriversSchema
    default_target: TargetBandSchema

    @classmethod
    def from_domain(cls, engine: Engine) -> "EngineSchema":
        return cls(
            id=engine.id.value,
            label=engine.label,
            short_definition=engine.short_definition,
            description=engine.description,
            layer=engine.layer.value,
            examples=list(engine.examples),
            what_wins=list(engine.what_wins),
            macro_drivers=DriversSchema(
                helps=list(engine.macro_drivers.helps),
                hurts=list(engine.macro_drivers.hurts),
            ),
            default_target=TargetBandSchema.from_domain(engine.default_target),
        )


class EngineScoreSchema(CamelModel):
    engine: str
    score: int
    stance: str
    status: str
    confidence: int
    reasons: List[str]
    drivers: DriversSchema
    cautions: List[str]

    @classmethod
    def from_domain(cls, score: EngineScore) -> "EngineScoreSchema":
        return cls(
            engine=score.engine.value,
            score=score.score,
            stance=score.stance.value,
            status=score.status.value,
            confidence=score.confidence,
            reasons=list(score.reasons),
            drivers=DriversSchema(helps=list(score.drivers.helps), hurts=list(score.drivers.hurts)),
            cautions=list(score.cautions),
        )


class WatchTriggerSchema(CamelModel):
    condition: str
    impact: str
    threshold: Optional[str] = None


class MacroCaseSchema(CamelModel):
    regime: str
    title: str
    description: str
    primary_drivers: List[str]
    watch_triggers: List[WatchTriggerSchema]

    @classmethod
    def from_domain(cls, case: MacroCase) -> "MacroCaseSchema":
        return cls(
            regime=case.regime.value,
            title=case.title,
            description=case.description,
            primary_drivers=list(case.primary_drivers),
            watch_triggers=[
                WatchTriggerSchema(condition=t.condition, impact=t.impact, threshold=t.threshold)
                for t in case.watch_triggers
            ],
        )


class ScoringDataSchema(CamelModel):
    macro_case: MacroCaseSchema
    engine_scores: List[EngineScoreSchema]
    generated_at: datetime

    @classmethod
    def from_domain(cls, result: ScoringResult) -> "ScoringDataSchema":
        return cls(
            macro_case=MacroCaseSchema.from_domain(result.macro_case),
            engine_scores=[EngineScoreSchema.from_domain(s) for s in result.engine_scores],
            generated_at=result.generated_at,
        )


class ScoreResponse(CamelModel):
    success: bool
    data: ScoringDataSchema
    # MacroInputs wire form (btc200DMA, hyOAS, ...), passed through as-is
    macro_inputs: Dict[str, Any]
    used_mock_data: bool
    sources: Dict[str, str] = {}
    fallback: Optional[bool] = None
    error: Optional[str] = None
