"""
Fantasy scoring for one player's gameweek performance.
This is the only place point values live; aggregation, the API and any display
breakdown all go through score_performance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from fantasyfive.positions import GOAL_POINTS, Position, parse_position

# ---------- Per-event points ----------
ASSIST_POINTS = 3
YELLOW_CARD_POINTS = -1
RED_CARD_POINTS = -3  # per red card
STRAIGHT_RED_POINTS = -3  # separate flag, stacks with red cards
MOTM_POINTS = 3

# ---------- Days-played milestone bonus ----------
# Step function: 0 days -> 0, 1-3 days -> +1, 4+ days -> +2.
DAYS_PLAYED_SHORT_MIN = 1
DAYS_PLAYED_LONG_MIN = 4
DAYS_PLAYED_SHORT_BONUS = 1
DAYS_PLAYED_LONG_BONUS = 2

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no", ""})


def _as_flag(value: Any) -> bool:
    """Accepts real bools and ints, or the strings true/false, 1/0, yes/no."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"Not a boolean flag: {value!r}")
    return bool(value)


@dataclass
class PerformanceStats:
    """Raw stats entered by an admin for one player in one gameweek."""
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    straight_red: bool = False
    is_motm: bool = False
    days_played: int = 0
    # Informational only; neither affects points.
    goals_conceded: int = 0
    penalties_missed: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PerformanceStats":
        """Build from a dict; accepts snake_case or camelCase keys, missing/None values are zero."""
        def pick(snake: str, camel: str) -> Any:
            value = data.get(snake)
            if value is None:
                value = data.get(camel)
            return value

        return cls(
            goals=int(pick("goals", "goals") or 0),
            assists=int(pick("assists", "assists") or 0),
            yellow_cards=int(pick("yellow_cards", "yellowCards") or 0),
            red_cards=int(pick("red_cards", "redCards") or 0),
            straight_red=_as_flag(pick("straight_red", "straightRed")),
            is_motm=_as_flag(pick("is_motm", "isMotm")),
            days_played=int(pick("days_played", "daysPlayed") or 0),
            goals_conceded=int(pick("goals_conceded", "goalsConceded") or 0),
            penalties_missed=int(pick("penalties_missed", "penaltiesMissed") or 0),
        )


@dataclass
class ScoreResult:
    """Total points plus the signed contribution of each category."""
    points: int
    breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"points": self.points, "breakdown": dict(self.breakdown)}


def days_played_bonus(days_played: int) -> int:
    if days_played >= DAYS_PLAYED_LONG_MIN:
        return DAYS_PLAYED_LONG_BONUS
    if days_played >= DAYS_PLAYED_SHORT_MIN:
        return DAYS_PLAYED_SHORT_BONUS
    return 0


def score_performance(
    position: str | Position | None,
    stats: PerformanceStats | Mapping[str, Any],
) -> ScoreResult:
    """
    Compute a player's points for one gameweek.
    position may be any string; it is normalised with parse_position (unknown -> midfielder values).
    """
    if not isinstance(stats, PerformanceStats):
        stats = PerformanceStats.from_mapping(stats)
    pos = parse_position(position)
    breakdown = {
        "goals": stats.goals * GOAL_POINTS[pos],
        "assists": stats.assists * ASSIST_POINTS,
        "yellow_cards": stats.yellow_cards * YELLOW_CARD_POINTS,
        "red_cards": stats.red_cards * RED_CARD_POINTS,
        "straight_red": STRAIGHT_RED_POINTS if stats.straight_red else 0,
        "motm": MOTM_POINTS if stats.is_motm else 0,
        "days_played": days_played_bonus(stats.days_played),
    }
    return ScoreResult(points=sum(breakdown.values()), breakdown=breakdown)
