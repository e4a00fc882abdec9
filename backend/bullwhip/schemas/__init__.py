from .game import (
    BullwhipMetric,
    ExternalRoleAssignment,
    FinalResults,
    GameCreate,
    GameReport,
    Insight,
    OrderSuggestion,
    PerformanceAnalysis,
    PerformanceReport,
    RankingEntry,
    RoundResult,
    RoundState,
    TurnRequest,
)
