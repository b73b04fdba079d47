"""
Database connection and initialization.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path

from fantasyfive import config
from .schema import all_schema_sql


# Default DB path (project root / data / fantasyfive.db), overridden by FANTASYFIVE_DB_PATH
def _default_db_path() -> Path:
    if config.DB_PATH:
        return Path(config.DB_PATH)
    return Path(__file__).resolve().parent.parent.parent / "data" / "fantasyfive.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str | Path | None = None, seed_players: bool = False) -> None:
    """
    Create or ensure all tables exist.
    If seed_players is True, also load the default player catalog (fantasyfive.seed).
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        conn.executescript(all_schema_sql())
        conn.commit()
        if seed_players:
            from fantasyfive.seed import load_default_players
            load_default_players(conn)
    finally:
        conn.close()
