"""
Service layer: orchestrates validation, scoring and persistence.
aggregation is the only writer of gameweek scores and team totals.
"""
from .aggregation import (
    AggregationError,
    AggregationSummary,
    GameweekNotFoundError,
    ScoreAggregator,
    TeamNotFoundError,
    compute_team_points,
)
from .gameweek_service import (
    GameweekService,
    GameweekStateError,
    NoActiveGameweekError,
    PerformanceEntry,
    UnknownPlayerError,
)
from .league_service import LeagueCodeTakenError, LeagueNotFoundError, LeagueService
from .squad_service import (
    ChipUnavailableError,
    SquadRejectedError,
    SquadService,
    TransferRejectedError,
)

__all__ = [
    "AggregationError",
    "AggregationSummary",
    "GameweekNotFoundError",
    "ScoreAggregator",
    "compute_team_points",
    "GameweekService",
    "GameweekStateError",
    "NoActiveGameweekError",
    "PerformanceEntry",
    "UnknownPlayerError",
    "LeagueCodeTakenError",
    "LeagueNotFoundError",
    "LeagueService",
    "ChipUnavailableError",
    "SquadRejectedError",
    "SquadService",
    "TeamNotFoundError",
    "TransferRejectedError",
]
