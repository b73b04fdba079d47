"""
Chips: one-off boosts for a single gameweek, each with a cooldown.
Bench boost counts the bench player; triple captain makes the captain score x3 instead of x2.
"""
from __future__ import annotations

import sqlite3
from enum import Enum

from fantasyfive.config import CHIP_COOLDOWN_GAMEWEEKS
from fantasyfive.persistence.repositories import ChipRepository


class ChipType(str, Enum):
    BENCH_BOOST = "bench_boost"
    TRIPLE_CAPTAIN = "triple_captain"


def parse_chip_type(value: str | ChipType) -> ChipType:
    """Accepts enum values plus the display forms "benchBoost" / "Triple Captain"."""
    if isinstance(value, ChipType):
        return value
    key = (value or "").strip().lower().replace(" ", "_").replace("-", "_")
    aliases = {"benchboost": ChipType.BENCH_BOOST, "triplecaptain": ChipType.TRIPLE_CAPTAIN}
    if key in aliases:
        return aliases[key]
    try:
        return ChipType(key)
    except ValueError:
        raise ValueError(f"Unknown chip type: {value!r}") from None


def is_chip_available(last_used_number: int | None, target_number: int) -> bool:
    """Usable if never used, or at least CHIP_COOLDOWN_GAMEWEEKS after the last use (3 -> 10)."""
    if last_used_number is None:
        return True
    return target_number - last_used_number >= CHIP_COOLDOWN_GAMEWEEKS


def can_use_chip(
    conn: sqlite3.Connection,
    team_id: str,
    chip_type: str | ChipType,
    target_number: int,
) -> bool:
    """
    Pre-flight cooldown check against the team's chip history.
    A second use in the same gameweek is rejected by the storage unique constraint, not here.
    """
    chip = parse_chip_type(chip_type)
    last = ChipRepository().latest_use_number(conn, team_id, chip.value)
    return is_chip_available(last, target_number)
