"""
Default player catalog.
Loading is idempotent: players are matched by name and existing rows are left untouched.
"""
from __future__ import annotations

import logging
import sqlite3

from fantasyfive.models import Player
from fantasyfive.persistence.repositories import PlayerRepository

logger = logging.getLogger(__name__)

# (name, position, price in millions)
PLAYERS_DATA: list[tuple[str, str, str]] = [
    ("Sohan", "Midfielder", "12.5"),
    ("Aarav", "Midfielder", "12.0"),
    ("Tyler", "Defender", "11.5"),
    ("Lawrence", "Midfielder", "11.5"),
    ("Lasik", "Forward", "10.5"),
    ("Alex", "Forward", "10.5"),
    ("Adam", "Forward", "9.5"),
    ("Dominick", "Defender", "9.0"),
    ("Harry", "Forward", "8.0"),
    ("Chase", "Midfielder", "8.0"),
    ("Dustin", "Midfielder", "7.5"),
    ("Ava", "Midfielder", "7.5"),
    ("Matthew", "Midfielder", "7.5"),
    ("Nicholas", "Midfielder", "7.0"),
    ("Carsen", "Forward", "7.0"),
    ("Jackson", "Forward", "7.0"),
    ("Alfred", "Midfielder", "6.5"),
    ("Elliott", "Defender", "6.5"),
    ("Maya", "Defender", "6.5"),
    ("Christian", "Defender", "5.5"),
    ("Declan", "Defender", "5.5"),
    ("Brody", "Defender", "5.5"),
    ("Dean", "Forward", "5.0"),
    ("Mason", "Defender", "4.5"),
]


def load_default_players(conn: sqlite3.Connection) -> list[Player]:
    """Insert any PLAYERS_DATA entries missing from the catalog. Returns the newly created players."""
    repo = PlayerRepository()
    created: list[Player] = []
    for name, position, price in PLAYERS_DATA:
        if repo.get_by_name(conn, name) is not None:
            continue
        created.append(repo.create(conn, name, position, price))
    if created:
        logger.info("Seeded %d player(s)", len(created))
    return created
