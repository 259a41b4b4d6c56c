"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

import math
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from app.domain.errors import MacroInputsValidationError


class EngineId(str, Enum):
    """The 12 economic engines"""
    VOLATILITY_OPTIONALITY = "VOLATILITY_OPTIONALITY"
    GROWTH_DURATION = "GROWTH_DURATION"
    CASHFLOW_COMPOUNDERS = "CASHFLOW_COMPOUNDERS"
    CREDIT_CARRY = "CREDIT_CARRY"
    ENERGY_COMMODITIES = "ENERGY_COMMODITIES"
    GOLD_SCARCITY = "GOLD_SCARCITY"
    REAL_ESTATE_RENT = "REAL_ESTATE_RENT"
    DEFENSE_GEOPOLITICS = "DEFENSE_GEOPOLITICS"
    INFRASTRUCTURE_CAPEX = "INFRASTRUCTURE_CAPEX"
    SMALL_CAPS_DOMESTIC = "SMALL_CAPS_DOMESTIC"
    INTERNATIONAL_FX_EM = "INTERNATIONAL_FX_EM"
    SPECIAL_SITUATIONS = "SPECIAL_SITUATIONS"


class PortfolioLayer(str, Enum):
    """Coarse portfolio buckets the action policy works on"""
    VOLATILITY_ASYMMETRY = "VOLATILITY_ASYMMETRY"
    GROWTH_EQUITY = "GROWTH_EQUITY"
    CASHFLOW_EQUITY = "CASHFLOW_EQUITY"
    HARD_ASSET_HEDGE = "HARD_ASSET_HEDGE"
    STABILITY_DRY_POWDER = "STABILITY_DRY_POWDER"


class BtcTrend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"


class InflationTrend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class CreditTrend(str, Enum):
    WIDENING = "widening"
    TIGHTENING = "tightening"
    STABLE = "stable"


class Stance(str, Enum):
    OVERWEIGHT = "OVERWEIGHT"
    NEUTRAL = "NEUTRAL"
    UNDERWEIGHT = "UNDERWEIGHT"


class EngineStatus(str, Enum):
    ACTIVE = "ACTIVE"
    GATED = "GATED"


class Regime(str, Enum):
    RISK_OFF = "Risk-Off"
    INFLATIONARY = "Inflationary"
    DEFLATIONARY = "Deflationary"
    RISK_ON = "Risk-On"
    MIXED = "Mixed"


# snake_case attribute -> wire name
MACRO_INPUT_ALIASES: Dict[str, str] = {
    "btc_price": "btcPrice",
    "btc_200dma": "btc200DMA",
    "btc_trend": "btcTrend",
    "nominal_rate_10y": "nominalRate10Y",
    "real_rate_10y": "realRate10Y",
    "inflation": "inflation",
    "inflation_trend": "inflationTrend",
    "hy_oas": "hyOAS",
    "ig_oas": "igOAS",
    "credit_trend": "creditTrend",
    "gdp_growth": "gdpGrowth",
    "pmi": "pmi",
    "unemployment_rate": "unemploymentRate",
    "liquidity_score": "liquidityScore",
    "oil_price": "oilPrice",
    "gold_price": "goldPrice",
    "usd_strength": "usdStrength",
    "vix": "vix",
    "equity_momentum": "equityMomentum",
}

_ENUM_FIELDS = {
    "btc_trend": BtcTrend,
    "inflation_trend": InflationTrend,
    "credit_trend": CreditTrend,
}

_POSITIVE_FIELDS = ("btc_price", "btc_200dma")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    return math.isfinite(float(value))


@dataclass(frozen=True)
class MacroInputs:
    """Snapshot of macro observations - Immutable, every field required"""
    btc_price: float
    btc_200dma: float
    btc_trend: BtcTrend
    nominal_rate_10y: float
    real_rate_10y: float
    inflation: float
    inflation_trend: InflationTrend
    hy_oas: float
    ig_oas: float
    credit_trend: CreditTrend
    gdp_growth: float
    pmi: float
    unemployment_rate: float
    liquidity_score: float
    oil_price: float
    gold_price: float
    usd_strength: float
    vix: float
    equity_momentum: float

    def __post_init__(self):
        problems: Dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _ENUM_FIELDS:
                if not isinstance(value, _ENUM_FIELDS[f.name]):
                    problems[f.name] = f"expected {_ENUM_FIELDS[f.name].__name__}"
            elif not _is_number(value):
                problems[f.name] = "must be a finite number"
            elif f.name in _POSITIVE_FIELDS and value <= 0:
                problems[f.name] = "must be positive"
        if problems:
            raise MacroInputsValidationError(problems)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MacroInputs":
        """
        Build from a wire (camelCase) or attribute (snake_case) mapping.

        Collects every problem before raising so callers see the full list.
        """
        problems: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        for name, alias in MACRO_INPUT_ALIASES.items():
            if alias in data:
                raw = data[alias]
            elif name in data:
                raw = data[name]
            else:
                problems[name] = "missing"
                continue

            if name in _ENUM_FIELDS:
                try:
                    values[name] = _ENUM_FIELDS[name](raw)
                except ValueError:
                    allowed = ", ".join(m.value for m in _ENUM_FIELDS[name])
                    problems[name] = f"expected one of {allowed}"
            elif not _is_number(raw):
                problems[name] = "must be a finite number"
            else:
                values[name] = float(raw)

        if problems:
            raise MacroInputsValidationError(problems)
        return cls(**values)

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict with enum values flattened"""
        out: Dict[str, Any] = {}
        for name, alias in MACRO_INPUT_ALIASES.items():
            value = getattr(self, name)
            out[alias] = value.value if isinstance(value, Enum) else value
        return out

    @property
    def btc_distance_pct(self) -> float:
        """BTC distance from its 200-day average, percent"""
        return (self.btc_price - self.btc_200dma) / self.btc_200dma * 100


@dataclass(frozen=True)
class TargetBand:
    """Allocation band in percent of portfolio - Immutable"""
    min_pct: Decimal
    target_pct: Decimal
    max_pct: Decimal

    def __post_init__(self):
        if not (Decimal("0") <= self.min_pct <= self.target_pct <= self.max_pct <= Decimal("100")):
            raise ValueError(
                f"Invalid target band: need 0 <= min ({self.min_pct}) <= target "
                f"({self.target_pct}) <= max ({self.max_pct}) <= 100"
            )


@dataclass(frozen=True)
class EngineDrivers:
    helps: Tuple[str, ...] = ()
    hurts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Engine:
    """Static catalog entry - Immutable"""
    id: EngineId
    label: str
    short_definition: str
    description: str
    layer: PortfolioLayer
    examples: Tuple[str, ...]
    what_wins: Tuple[str, ...]
    macro_drivers: EngineDrivers
    default_target: TargetBand


@dataclass(frozen=True)
class EngineScore:
    """Scored engine for one MacroInputs snapshot - Immutable"""
    engine: EngineId
    score: int
    stance: Stance
    status: EngineStatus
    confidence: int
    reasons: Tuple[str, ...]
    drivers: EngineDrivers
    cautions: Tuple[str, ...] = ()

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Score out of range: {self.score}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence out of range: {self.confidence}")
        if self.status == EngineStatus.GATED and self.stance == Stance.OVERWEIGHT:
            raise ValueError(f"Gated engine cannot be OVERWEIGHT: {self.engine.value}")


@dataclass(frozen=True)
class WatchTrigger:
    condition: str
    impact: str
    threshold: Optional[str] = None


@dataclass(frozen=True)
class MacroCase:
    """Regime classification with narrative - Immutable"""
    regime: Regime
    title: str
    description: str
    primary_drivers: Tuple[str, ...]
    watch_triggers: Tuple[WatchTrigger, ...]


@dataclass(frozen=True)
class ScoringResult:
    """Output of one scoring pass"""
    macro_case: MacroCase
    engine_scores: Tuple[EngineScore, ...]
    generated_at: datetime

    def score_for(self, engine_id: EngineId) -> Optional[EngineScore]:
        for score in self.engine_scores:
            if score.engine == engine_id:
                return score
        return None
