"""
Data models for the fantasy backend.
Dataclasses only; storage lives in fantasyfive.persistence and rules in the validators.

One team per user; a team owns a 6-player roster (5 starters + 1 bench).
Gameweeks are numbered and at most one is active at a time.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from fantasyfive.positions import Position


# ---------- User ----------
@dataclass
class User:
    """Identity only; credentials live with the auth layer."""
    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "created_at": self.created_at.isoformat()}


# ---------- Player (catalog) ----------
@dataclass
class Player:
    """
    Catalog entry. Referenced, never owned, by team rosters.
    price and is_in_form are the only fields an admin changes after creation.
    """
    id: str
    name: str
    position: Position
    price: Decimal  # millions, one decimal place
    is_in_form: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.value,
            "price": float(self.price),
            "is_in_form": self.is_in_form,
        }


# ---------- Team (squad) ----------
@dataclass
class Team:
    """A user's squad. total_points is rewritten by aggregation, never incremented."""
    id: str
    user_id: str
    name: str
    budget: Decimal
    free_transfers: int
    total_points: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "budget": float(self.budget),
            "free_transfers": self.free_transfers,
            "total_points": self.total_points,
            "created_at": self.created_at.isoformat(),
        }


# ---------- TeamPlayer (roster membership) ----------
@dataclass
class TeamPlayer:
    """
    Links a team to a player. slot 1-6 orders the roster.
    Exactly one member per team is on the bench; at most one is captain and never the bench player.
    player is filled when read with a catalog join.
    """
    team_id: str
    player_id: str
    slot: int
    is_captain: bool = False
    is_on_bench: bool = False
    player: Player | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "team_id": self.team_id,
            "player_id": self.player_id,
            "slot": self.slot,
            "is_captain": self.is_captain,
            "is_on_bench": self.is_on_bench,
        }
        if self.player is not None:
            d["player"] = self.player.to_dict()
        return d


# ---------- Gameweek ----------
@dataclass
class Gameweek:
    """Scoring period. Only one gameweek may be active; completed once scores are final."""
    id: str
    number: int
    is_active: bool
    is_completed: bool
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "is_active": self.is_active,
            "is_completed": self.is_completed,
            "created_at": self.created_at.isoformat(),
        }


# ---------- PlayerPerformance ----------
@dataclass
class PlayerPerformance:
    """Raw stats for one (player, gameweek); points is written by the scorer."""
    id: str
    player_id: str
    gameweek_id: str
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    straight_red: bool = False
    is_motm: bool = False
    days_played: int = 0
    goals_conceded: int = 0
    penalties_missed: int = 0
    points: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "gameweek_id": self.gameweek_id,
            "goals": self.goals,
            "assists": self.assists,
            "yellow_cards": self.yellow_cards,
            "red_cards": self.red_cards,
            "straight_red": self.straight_red,
            "is_motm": self.is_motm,
            "days_played": self.days_played,
            "goals_conceded": self.goals_conceded,
            "penalties_missed": self.penalties_missed,
            "points": self.points,
        }


# ---------- GameweekScore ----------
@dataclass
class GameweekScore:
    """A team's aggregated points for one gameweek. Written only by the aggregator."""
    team_id: str
    gameweek_id: str
    points: int
    bench_boost_used: bool = False
    triple_captain_used: bool = False
    transfer_cost: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "gameweek_id": self.gameweek_id,
            "points": self.points,
            "bench_boost_used": self.bench_boost_used,
            "triple_captain_used": self.triple_captain_used,
            "transfer_cost": self.transfer_cost,
        }


# ---------- ChipUsage ----------
@dataclass
class ChipUsage:
    """Append-only. Unique per (team, chip_type, gameweek)."""
    id: str
    team_id: str
    chip_type: str
    gameweek_id: str
    used_at: datetime


# ---------- Transfer ----------
@dataclass
class Transfer:
    """Append-only log of an executed transfer. cost is the point hit taken."""
    id: str
    team_id: str
    gameweek_id: str
    player_out_id: str
    player_in_id: str
    cost: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "gameweek_id": self.gameweek_id,
            "player_out_id": self.player_out_id,
            "player_in_id": self.player_in_id,
            "cost": self.cost,
            "created_at": self.created_at.isoformat(),
        }


# ---------- League ----------
@dataclass
class League:
    """Leaderboard container. join_code is supplied by the caller. is_overall marks the league every team joins."""
    id: str
    name: str
    join_code: str
    created_by: str
    is_overall: bool
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "join_code": self.join_code,
            "created_by": self.created_by,
            "is_overall": self.is_overall,
            "created_at": self.created_at.isoformat(),
        }


# ---------- LeagueMember ----------
@dataclass
class LeagueMember:
    league_id: str
    team_id: str
    joined_at: datetime
