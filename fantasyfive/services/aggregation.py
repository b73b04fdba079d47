"""
Gameweek score aggregation.

Recomputes every team's score for one gameweek from the stored performance points,
then rewrites each team's all-time total as the sum of its gameweek scores.
Re-running for the same gameweek replaces rows instead of adding to them.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from fantasyfive.chips import ChipType
from fantasyfive.config import CAPTAIN_MULTIPLIER, TRIPLE_CAPTAIN_MULTIPLIER
from fantasyfive.models import GameweekScore, TeamPlayer
from fantasyfive.persistence.repositories import (
    ChipRepository,
    GameweekRepository,
    GameweekScoreRepository,
    PerformanceRepository,
    TeamRepository,
    TransferRepository,
)

logger = logging.getLogger(__name__)


class GameweekNotFoundError(ValueError):
    """No gameweek with the given id or number."""


class TeamNotFoundError(ValueError):
    """No team with the given id (or for the given user)."""


class AggregationError(RuntimeError):
    """One or more teams could not be persisted; the rest of the gameweek was written."""

    def __init__(self, gameweek_id: str, failed_team_ids: list[str]) -> None:
        super().__init__(
            f"Aggregation for gameweek {gameweek_id} failed for {len(failed_team_ids)} team(s): "
            + ", ".join(failed_team_ids)
        )
        self.gameweek_id = gameweek_id
        self.failed_team_ids = failed_team_ids


@dataclass
class AggregationSummary:
    gameweek_id: str
    scores: list[GameweekScore] = field(default_factory=list)
    totals: dict[str, int] = field(default_factory=dict)  # team_id -> all-time total after this run


def captain_multiplier(triple_captain: bool) -> int:
    return TRIPLE_CAPTAIN_MULTIPLIER if triple_captain else CAPTAIN_MULTIPLIER


def compute_team_points(
    roster: Iterable[TeamPlayer],
    points_by_player: Mapping[str, int],
    bench_boost: bool = False,
    triple_captain: bool = False,
) -> int:
    """
    Lineup points for one team.
    Starters count; the bench player counts only with bench boost.
    The captain is counted once at x2 (x3 with triple captain), not base + bonus.
    Players with no performance record contribute 0.
    """
    total = 0
    for member in roster:
        if member.is_on_bench and not bench_boost:
            continue
        points = points_by_player.get(member.player_id, 0)
        if member.is_captain:
            points *= captain_multiplier(triple_captain)
        total += points
    return total


class ScoreAggregator:
    """
    Batch recomputation of one gameweek over all teams.
    Every team is computed in memory first; each team's writes are then committed
    separately so a failing team cannot corrupt or block the others.
    """

    def __init__(self) -> None:
        self._gameweek_repo = GameweekRepository()
        self._team_repo = TeamRepository()
        self._performance_repo = PerformanceRepository()
        self._score_repo = GameweekScoreRepository()
        self._chip_repo = ChipRepository()
        self._transfer_repo = TransferRepository()

    def compute_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> list[GameweekScore]:
        """Scores for every team in gameweek_id, without writing anything."""
        if self._gameweek_repo.get(conn, gameweek_id) is None:
            raise GameweekNotFoundError(f"Gameweek not found: {gameweek_id}")
        teams = self._team_repo.list_all(conn)
        points_by_player = {
            p.player_id: p.points for p in self._performance_repo.list_by_gameweek(conn, gameweek_id)
        }
        chips_by_team = self._chip_repo.active_by_team(conn, gameweek_id)
        costs_by_team = self._transfer_repo.cost_by_team(conn, gameweek_id)

        scores: list[GameweekScore] = []
        for team in teams:
            chips = chips_by_team.get(team.id, set())
            bench_boost = ChipType.BENCH_BOOST.value in chips
            triple_captain = ChipType.TRIPLE_CAPTAIN.value in chips
            roster = self._team_repo.get_roster(conn, team.id)
            lineup_points = compute_team_points(roster, points_by_player, bench_boost, triple_captain)
            cost = costs_by_team.get(team.id, 0)
            scores.append(
                GameweekScore(
                    team_id=team.id,
                    gameweek_id=gameweek_id,
                    points=lineup_points - cost,
                    bench_boost_used=bench_boost,
                    triple_captain_used=triple_captain,
                    transfer_cost=cost,
                )
            )
        return scores

    def aggregate_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> AggregationSummary:
        """
        Upsert every team's gameweek score and recompute its total.
        Raises AggregationError after the loop if any team failed to persist.
        """
        scores = self.compute_gameweek(conn, gameweek_id)
        summary = AggregationSummary(gameweek_id=gameweek_id)
        failed: list[str] = []
        for score in scores:
            try:
                self._score_repo.upsert(conn, score, commit=False)
                total = self._score_repo.sum_for_team(conn, score.team_id)
                self._team_repo.update_total_points(conn, score.team_id, total, commit=False)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                logger.exception("Failed to persist gameweek %s score for team %s", gameweek_id, score.team_id)
                failed.append(score.team_id)
                continue
            summary.scores.append(score)
            summary.totals[score.team_id] = total
        logger.info(
            "Aggregated gameweek %s: %d team(s) written, %d failed",
            gameweek_id, len(summary.scores), len(failed),
        )
        if failed:
            raise AggregationError(gameweek_id, failed)
        return summary
