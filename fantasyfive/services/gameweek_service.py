"""
Gameweek lifecycle: create, activate, record performances, complete.
Performance submission scores every entry and re-aggregates the gameweek straight away.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from fantasyfive.config import FREE_TRANSFERS_PER_GAMEWEEK
from fantasyfive.models import Gameweek, PlayerPerformance
from fantasyfive.persistence.repositories import (
    GameweekRepository,
    PerformanceRepository,
    PlayerRepository,
    TeamRepository,
)
from fantasyfive.scoring import PerformanceStats, score_performance
from fantasyfive.services.aggregation import (
    AggregationSummary,
    GameweekNotFoundError,
    ScoreAggregator,
)

logger = logging.getLogger(__name__)


# ---------- Exceptions ----------


class NoActiveGameweekError(ValueError):
    """The operation needs an active gameweek and none is set."""


class GameweekStateError(ValueError):
    """Gameweek cannot make the requested transition (e.g. activating a completed gameweek)."""


class UnknownPlayerError(ValueError):
    """A performance entry names a player that is not in the catalog."""


@dataclass
class PerformanceEntry:
    player_id: str
    stats: PerformanceStats = field(default_factory=PerformanceStats)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PerformanceEntry":
        player_id = data.get("player_id") or data.get("playerId")
        if not player_id:
            raise ValueError("Performance entry is missing player_id")
        return cls(player_id=str(player_id), stats=PerformanceStats.from_mapping(data))


@dataclass
class SubmissionResult:
    performances: list[PlayerPerformance]
    aggregation: AggregationSummary


# ---------- GameweekService ----------


class GameweekService:
    """
    Admin-side gameweek operations.
    Only one gameweek is active at a time; activation also hands every team its free transfers.
    """

    def __init__(self, aggregator: ScoreAggregator | None = None) -> None:
        self._gameweek_repo = GameweekRepository()
        self._team_repo = TeamRepository()
        self._player_repo = PlayerRepository()
        self._performance_repo = PerformanceRepository()
        self._aggregator = aggregator or ScoreAggregator()

    def get_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> Gameweek:
        gameweek = self._gameweek_repo.get(conn, gameweek_id)
        if gameweek is None:
            raise GameweekNotFoundError(f"Gameweek not found: {gameweek_id}")
        return gameweek

    def get_active_gameweek(self, conn: sqlite3.Connection) -> Gameweek:
        gameweek = self._gameweek_repo.get_active(conn)
        if gameweek is None:
            raise NoActiveGameweekError("No active gameweek")
        return gameweek

    def create_gameweek(self, conn: sqlite3.Connection, number: int) -> Gameweek:
        if number < 1:
            raise ValueError(f"Gameweek number must be positive (got {number})")
        if self._gameweek_repo.get_by_number(conn, number) is not None:
            raise GameweekStateError(f"Gameweek {number} already exists")
        gameweek = self._gameweek_repo.create(conn, number)
        logger.info("Created gameweek %d (%s)", number, gameweek.id)
        return gameweek

    def set_active_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> Gameweek:
        """
        Activate gameweek_id and deactivate every other gameweek in one statement.
        Free transfers are reset (not accumulated) when the active gameweek changes.
        """
        gameweek = self.get_gameweek(conn, gameweek_id)
        if gameweek.is_completed:
            raise GameweekStateError(f"Gameweek {gameweek.number} is already completed")
        if gameweek.is_active:
            return gameweek
        try:
            self._gameweek_repo.set_active(conn, gameweek_id, commit=False)
            self._team_repo.reset_free_transfers(conn, FREE_TRANSFERS_PER_GAMEWEEK, commit=False)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("Gameweek %d is now active", gameweek.number)
        return self.get_gameweek(conn, gameweek_id)

    def submit_performances(
        self,
        conn: sqlite3.Connection,
        gameweek_id: str,
        entries: Iterable[PerformanceEntry | Mapping[str, Any]],
    ) -> SubmissionResult:
        """
        Score and store each entry (re-submitting a player replaces the earlier record),
        then recompute every team's score for the gameweek.
        All entries are checked before anything is written.
        """
        self.get_gameweek(conn, gameweek_id)
        parsed = [e if isinstance(e, PerformanceEntry) else PerformanceEntry.from_mapping(e) for e in entries]
        players = self._player_repo.get_many(conn, (e.player_id for e in parsed))
        missing = [e.player_id for e in parsed if e.player_id not in players]
        if missing:
            raise UnknownPlayerError(f"Unknown player(s): {', '.join(missing)}")

        performances: list[PlayerPerformance] = []
        try:
            for entry in parsed:
                result = score_performance(players[entry.player_id].position, entry.stats)
                perf = self._performance_repo.upsert(
                    conn, entry.player_id, gameweek_id, entry.stats, result.points, commit=False
                )
                if perf is not None:
                    performances.append(perf)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("Stored %d performance(s) for gameweek %s", len(performances), gameweek_id)
        summary = self._aggregator.aggregate_gameweek(conn, gameweek_id)
        return SubmissionResult(performances=performances, aggregation=summary)

    def complete_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> AggregationSummary:
        """Final aggregation, then mark completed (which also deactivates it)."""
        gameweek = self.get_gameweek(conn, gameweek_id)
        summary = self._aggregator.aggregate_gameweek(conn, gameweek_id)
        self._gameweek_repo.mark_completed(conn, gameweek_id)
        logger.info("Gameweek %d completed", gameweek.number)
        return summary

    def list_gameweeks(self, conn: sqlite3.Connection) -> list[Gameweek]:
        return self._gameweek_repo.list_all(conn)

    def list_performances(self, conn: sqlite3.Connection, gameweek_id: str) -> list[PlayerPerformance]:
        self.get_gameweek(conn, gameweek_id)
        return self._performance_repo.list_by_gameweek(conn, gameweek_id)
