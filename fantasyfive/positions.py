"""
Player positions and the per-position scoring values.
Untrusted position strings are normalised here once; the rest of the engine works with Position.
"""
from __future__ import annotations

from enum import Enum


class Position(str, Enum):
    DEFENDER = "Defender"
    MIDFIELDER = "Midfielder"
    FORWARD = "Forward"


# Formation order: validators report counts and errors in this order.
POSITION_ORDER: tuple[Position, ...] = (Position.DEFENDER, Position.MIDFIELDER, Position.FORWARD)

GOAL_POINTS: dict[Position, int] = {
    Position.DEFENDER: 6,
    Position.MIDFIELDER: 5,
    Position.FORWARD: 5,
}

# Unrecognised strings score like a midfielder (5 per goal, same as forward).
DEFAULT_POSITION = Position.MIDFIELDER


def parse_position(value: str | Position | None, strict: bool = False) -> Position:
    """
    Normalise a position string to Position.
    Matching is case-insensitive on substrings: "def", "mid", "for"/"fwd"
    (so "DEF", "defender" and "Centre Defender" are all Defender).
    strict=True raises ValueError instead of falling back to DEFAULT_POSITION.
    """
    if isinstance(value, Position):
        return value
    key = (value or "").strip().lower()
    if "def" in key:
        return Position.DEFENDER
    if "mid" in key:
        return Position.MIDFIELDER
    if "for" in key or "fwd" in key:
        return Position.FORWARD
    if strict:
        raise ValueError(f"Unknown position: {value!r}")
    return DEFAULT_POSITION


def empty_position_counts() -> dict[Position, int]:
    return {p: 0 for p in POSITION_ORDER}
