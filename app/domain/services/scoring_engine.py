"""
SCORING ENGINE (ENGINE-2)
Score the 12 economic engines against one macro snapshot

RESPONSIBILITIES:
- Evaluate each engine's rule table (baseline + condition deltas)
- Clamp scores, derive stance, apply hard gates
- Classify the macro regime from the ordered regime table
- Explain every point of score movement (helps / hurts)

RULES:
❌ No I/O, no clock reads unless the caller omits generated_at
❌ No thresholds in code (scoring.yml owns them)
✅ Same inputs -> same scores
✅ GATED engine is never OVERWEIGHT
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.domain.models import (
    EngineDrivers,
    EngineId,
    EngineScore,
    EngineStatus,
    MacroCase,
    MacroInputs,
    Regime,
    ScoringResult,
    Stance,
    WatchTrigger,
)
from app.domain.services.engine_catalog import EngineCatalog
from app.domain.strategy.rule_interpreter import (
    AppliedRule,
    apply_rules,
    build_facts,
    first_match,
    matching_reasons,
    render,
)
from app.utils.time import utc_now


class ScoringEngine:
    """
    Scoring Engine
    Interprets the declarative rule tables; holds no per-engine logic itself
    """

    def __init__(self, scoring_rules: Dict[str, Any], catalog: EngineCatalog):
        self._rules = scoring_rules
        self._catalog = catalog
        self._overweight_at = int(scoring_rules["stance"]["overweight_at"])
        self._underweight_at = int(scoring_rules["stance"]["underweight_at"])
        self._min_score = int(scoring_rules["score_bounds"]["min"])
        self._max_score = int(scoring_rules["score_bounds"]["max"])
        self._agreement_floor = float(scoring_rules["confidence"]["agreement_floor"])

    def score_all_engines(
        self,
        inputs: MacroInputs,
        generated_at: Optional[datetime] = None,
    ) -> ScoringResult:
        """
        Score every catalog engine and classify the regime

        Args:
            inputs: Validated macro snapshot
            generated_at: Timestamp to stamp on the result (now if omitted)

        Returns:
            ScoringResult with one EngineScore per engine, in catalog order
        """
        facts = build_facts(inputs)
        scores = tuple(
            self._score(engine.id, facts) for engine in self._catalog.list_engines()
        )
        return ScoringResult(
            macro_case=self._macro_case(facts),
            engine_scores=scores,
            generated_at=generated_at or utc_now(),
        )

    def score_engine(self, engine_id: EngineId, inputs: MacroInputs) -> EngineScore:
        """Score a single engine"""
        return self._score(engine_id, build_facts(inputs))

    def classify_regime(self, inputs: MacroInputs) -> MacroCase:
        return self._macro_case(build_facts(inputs))

    def _score(self, engine_id: EngineId, facts: Mapping[str, Any]) -> EngineScore:
        spec = self._rules["engines"][engine_id.value]
        applied = apply_rules(spec.get("rules", []), facts)

        raw = int(spec.get("baseline", 50)) + sum(rule.delta for rule in applied)
        score = self._clamp(raw, self._min_score, self._max_score)
        stance = self._stance(score)

        gate_reasons = matching_reasons(spec.get("gates", []), facts)
        status = EngineStatus.GATED if gate_reasons else EngineStatus.ACTIVE
        if status == EngineStatus.GATED and stance == Stance.OVERWEIGHT:
            stance = Stance.NEUTRAL

        return EngineScore(
            engine=engine_id,
            score=score,
            stance=stance,
            status=status,
            confidence=self._confidence(spec, facts, applied),
            reasons=tuple(rule.reason for rule in applied) + tuple(gate_reasons),
            drivers=EngineDrivers(
                helps=tuple(r.reason for r in applied if r.bucket == "helps"),
                hurts=tuple(r.reason for r in applied if r.bucket == "hurts"),
            ),
            cautions=tuple(matching_reasons(spec.get("cautions", []), facts)),
        )

    def _stance(self, score: int) -> Stance:
        if score >= self._overweight_at:
            return Stance.OVERWEIGHT
        if score <= self._underweight_at:
            return Stance.UNDERWEIGHT
        return Stance.NEUTRAL

    def _confidence(
        self,
        spec: Mapping[str, Any],
        facts: Mapping[str, Any],
        applied: Sequence[AppliedRule],
    ) -> int:
        """
        Base confidence (or the first matching boost), scaled by how much
        the fired deltas agree in direction
        """
        base = float(spec.get("confidence", 50))
        boost = first_match(spec.get("confidence_boosts", []), facts)
        if boost is not None:
            base = float(boost["confidence"])

        total = sum(abs(rule.delta) for rule in applied)
        agreement = abs(sum(rule.delta for rule in applied)) / total if total else 1.0
        scaled = base * (self._agreement_floor + (1 - self._agreement_floor) * agreement)
        return self._clamp(int(round(scaled)), 0, 100)

    def _macro_case(self, facts: Mapping[str, Any]) -> MacroCase:
        row = first_match(self._rules["regimes"], facts)
        return MacroCase(
            regime=Regime(row["regime"]),
            title=row["title"],
            description=row["description"],
            primary_drivers=tuple(render(t, facts) for t in row.get("primary_drivers", [])),
            watch_triggers=self._watch_triggers(row.get("watch_triggers", []), facts),
        )

    @staticmethod
    def _watch_triggers(rows: List[Mapping[str, Any]], facts: Mapping[str, Any]) -> tuple:
        return tuple(
            WatchTrigger(
                condition=render(r["condition"], facts),
                impact=render(r["impact"], facts),
                threshold=render(r["threshold"], facts) if r.get("threshold") else None,
            )
            for r in rows
        )

    @staticmethod
    def _clamp(value: int, low: int, high: int) -> int:
        return max(low, min(high, value))
