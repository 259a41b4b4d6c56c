"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    BtcTrend,
    CreditTrend,
    EngineId,
    EngineStatus,
    InflationTrend,
    PortfolioLayer,
    Regime,
    Stance,

    # Entities
    Engine,
    EngineDrivers,
    EngineScore,
    MacroCase,
    MacroInputs,
    MACRO_INPUT_ALIASES,
    ScoringResult,
    TargetBand,
    WatchTrigger,
)
from .portfolio import (
    AccountType,
    AssetType,
    ClassificationConfidence,
    ConfidentClassification,
    DeltaStatus,
    EngineAllocation,
    EngineClassification,
    EngineDelta,
    HeuristicClassification,
    Holding,
    HoldingClassification,
    LayerDelta,
    Portfolio,
    PortfolioSummary,
    RiskSummary,
    ValidationReport,
)
from .policy import (
    ActionPolicy,
    AlertLevel,
    BiasAdjustment,
    BitcoinConfirmation,
    BreadthConfirmation,
    BreadthSignal,
    ConfirmationKind,
    Confirmations,
    Direction,
    LayerGates,
    MacroComposites,
    MacroState,
    MicrostressConfirmation,
    MicrostressMetrics,
    SuggestedMoves,
)

__all__ = [
    # Enums
    "AccountType",
    "AlertLevel",
    "AssetType",
    "BreadthSignal",
    "BtcTrend",
    "ClassificationConfidence",
    "ConfirmationKind",
    "CreditTrend",
    "DeltaStatus",
    "Direction",
    "EngineId",
    "EngineStatus",
    "InflationTrend",
    "PortfolioLayer",
    "Regime",
    "Stance",

    # Entities
    "ActionPolicy",
    "BiasAdjustment",
    "BitcoinConfirmation",
    "BreadthConfirmation",
    "ConfidentClassification",
    "Confirmations",
    "Engine",
    "EngineAllocation",
    "EngineClassification",
    "EngineDelta",
    "EngineDrivers",
    "EngineScore",
    "HeuristicClassification",
    "Holding",
    "HoldingClassification",
    "LayerDelta",
    "LayerGates",
    "MacroCase",
    "MacroComposites",
    "MacroInputs",
    "MACRO_INPUT_ALIASES",
    "MacroState",
    "MicrostressConfirmation",
    "MicrostressMetrics",
    "Portfolio",
    "PortfolioSummary",
    "RiskSummary",
    "ScoringResult",
    "SuggestedMoves",
    "TargetBand",
    "ValidationReport",
    "WatchTrigger",
]
