"""
Leagues, leaderboards and the weekly highlights (player of the week, team of the week, most owned).
Join codes are supplied by the caller; every team is also a member of the overall league.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from fantasyfive.models import League, Player, Team
from fantasyfive.persistence.repositories import (
    GameweekRepository,
    GameweekScoreRepository,
    LeagueRepository,
    PerformanceRepository,
    PlayerRepository,
    TeamRepository,
)
from fantasyfive.services.aggregation import TeamNotFoundError

OVERALL_LEAGUE_NAME = "Overall"
OVERALL_LEAGUE_CODE = "OVERALL"
SYSTEM_CREATOR = "system"


# ---------- Exceptions ----------


class LeagueNotFoundError(ValueError):
    """No league with the given id or join code."""


class LeagueCodeTakenError(ValueError):
    """Join codes are unique across leagues."""


# ---------- Result rows ----------


@dataclass
class LeaderboardEntry:
    rank: int
    team_id: str
    team_name: str
    user_id: str
    total_points: int
    gameweek_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "user_id": self.user_id,
            "total_points": self.total_points,
            "gameweek_points": self.gameweek_points,
        }


@dataclass
class PlayerOfTheWeek:
    player: Player
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"player": self.player.to_dict(), "points": self.points}


@dataclass
class TeamOfTheWeek:
    team: Team
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"team": self.team.to_dict(), "points": self.points}


@dataclass
class MostOwnedPlayer:
    player: Player
    owner_count: int
    ownership_percent: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "owner_count": self.owner_count,
            "ownership_percent": self.ownership_percent,
        }


# ---------- LeagueService ----------


class LeagueService:
    """League membership and read-side rankings. Scores are read, never computed, here."""

    def __init__(self) -> None:
        self._league_repo = LeagueRepository()
        self._team_repo = TeamRepository()
        self._gameweek_repo = GameweekRepository()
        self._score_repo = GameweekScoreRepository()
        self._performance_repo = PerformanceRepository()
        self._player_repo = PlayerRepository()

    def get_league(self, conn: sqlite3.Connection, league_id: str) -> League:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise LeagueNotFoundError(f"League not found: {league_id}")
        return league

    def create_league(self, conn: sqlite3.Connection, name: str, created_by: str, join_code: str) -> League:
        """Create a private league; the creator's team (if any) joins it."""
        code = join_code.strip().upper()
        if not name.strip() or not code:
            raise ValueError("League name and join code are required")
        if self._league_repo.get_by_code(conn, code) is not None:
            raise LeagueCodeTakenError(f"Join code already in use: {code}")
        try:
            league = self._league_repo.create(conn, name.strip(), code, created_by, commit=False)
            team = self._team_repo.get_by_user(conn, created_by)
            if team is not None:
                self._league_repo.add_member(conn, league.id, team.id, commit=False)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return league

    def join_league(self, conn: sqlite3.Connection, team_id: str, join_code: str) -> League:
        """Joining twice is a no-op."""
        if self._team_repo.get(conn, team_id) is None:
            raise TeamNotFoundError(f"Team not found: {team_id}")
        league = self._league_repo.get_by_code(conn, join_code.strip().upper())
        if league is None:
            raise LeagueNotFoundError(f"No league with join code {join_code!r}")
        self._league_repo.add_member(conn, league.id, team_id)
        return league

    def get_or_create_overall_league(self, conn: sqlite3.Connection, commit: bool = True) -> League:
        league = self._league_repo.get_overall(conn)
        if league is None:
            league = self._league_repo.create(
                conn, OVERALL_LEAGUE_NAME, OVERALL_LEAGUE_CODE, SYSTEM_CREATOR, is_overall=True, commit=commit
            )
        return league

    def join_overall_league(self, conn: sqlite3.Connection, team_id: str, commit: bool = True) -> League:
        league = self.get_or_create_overall_league(conn, commit=commit)
        self._league_repo.add_member(conn, league.id, team_id, commit=commit)
        return league

    def leagues_for_team(self, conn: sqlite3.Connection, team_id: str) -> list[League]:
        return self._league_repo.list_by_team(conn, team_id)

    def leaderboard(
        self, conn: sqlite3.Connection, league_id: str, gameweek_id: str | None = None
    ) -> list[LeaderboardEntry]:
        """
        Members ranked by total points, then gameweek points, then team name.
        gameweek_id defaults to the active gameweek; with none active, gameweek points are 0.
        Tied teams share a rank (1, 1, 3).
        """
        self.get_league(conn, league_id)
        if gameweek_id is None:
            active = self._gameweek_repo.get_active(conn)
            gameweek_id = active.id if active is not None else None
        week_points: dict[str, int] = {}
        if gameweek_id is not None:
            week_points = {s.team_id: s.points for s in self._score_repo.list_by_gameweek(conn, gameweek_id)}

        teams = [
            t for t in (self._team_repo.get(conn, tid) for tid in self._league_repo.list_member_team_ids(conn, league_id))
            if t is not None
        ]
        teams.sort(key=lambda t: (-t.total_points, -week_points.get(t.id, 0), t.name.lower()))

        entries: list[LeaderboardEntry] = []
        previous: tuple[int, int] | None = None
        rank = 0
        for position, team in enumerate(teams, start=1):
            key = (team.total_points, week_points.get(team.id, 0))
            if key != previous:
                rank = position
                previous = key
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    team_id=team.id,
                    team_name=team.name,
                    user_id=team.user_id,
                    total_points=team.total_points,
                    gameweek_points=week_points.get(team.id, 0),
                )
            )
        return entries

    # ---------- Weekly highlights ----------

    def player_of_the_week(self, conn: sqlite3.Connection, gameweek_id: str) -> PlayerOfTheWeek | None:
        """Highest-scoring performance of the gameweek (ties broken by player name)."""
        performances = self._performance_repo.list_by_gameweek(conn, gameweek_id)
        if not performances:
            return None
        players = self._player_repo.get_many(conn, (p.player_id for p in performances))
        ranked = sorted(
            (p for p in performances if p.player_id in players),
            key=lambda p: (-p.points, players[p.player_id].name.lower()),
        )
        if not ranked:
            return None
        best = ranked[0]
        return PlayerOfTheWeek(player=players[best.player_id], points=best.points)

    def team_of_the_week(self, conn: sqlite3.Connection, gameweek_id: str) -> TeamOfTheWeek | None:
        scores = self._score_repo.list_by_gameweek(conn, gameweek_id)
        best: TeamOfTheWeek | None = None
        for score in scores:
            team = self._team_repo.get(conn, score.team_id)
            if team is None:
                continue
            if best is None or score.points > best.points or (
                score.points == best.points and team.name.lower() < best.team.name.lower()
            ):
                best = TeamOfTheWeek(team=team, points=score.points)
        return best

    def most_owned_player(self, conn: sqlite3.Connection) -> MostOwnedPlayer | None:
        counts = self._team_repo.ownership_counts(conn)
        if not counts:
            return None
        players = self._player_repo.get_many(conn, counts.keys())
        candidates = [pid for pid in counts if pid in players]
        if not candidates:
            return None
        top = min(candidates, key=lambda pid: (-counts[pid], players[pid].name.lower()))
        team_count = len(self._team_repo.list_all(conn))
        percent = round(100.0 * counts[top] / team_count, 1) if team_count else 0.0
        return MostOwnedPlayer(player=players[top], owner_count=counts[top], ownership_percent=percent)
