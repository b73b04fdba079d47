"""
Persistence layer for fantasy data.
Connections, schema setup and the repositories.
"""
from .db import get_connection, init_db, set_db_path, get_db_path
from .repositories import (
    UserRepository,
    PlayerRepository,
    TeamRepository,
    GameweekRepository,
    PerformanceRepository,
    GameweekScoreRepository,
    ChipRepository,
    TransferRepository,
    LeagueRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "get_db_path",
    "UserRepository",
    "PlayerRepository",
    "TeamRepository",
    "GameweekRepository",
    "PerformanceRepository",
    "GameweekScoreRepository",
    "ChipRepository",
    "TransferRepository",
    "LeagueRepository",
]
