"""
SQLite schema for fantasy entities.
Migration-friendly: each table created with IF NOT EXISTS.
Uniqueness rules the engine relies on (one score per team+gameweek, one chip use per
team+chip+gameweek, one performance per player+gameweek) are enforced here.
"""
from __future__ import annotations


def users_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """


def players_schema() -> str:
    """price is stored as TEXT to keep exact decimal values (e.g. '12.5')."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        position TEXT NOT NULL,
        price TEXT NOT NULL,
        is_in_form INTEGER NOT NULL DEFAULT 0
    );
    CREATE INDEX IF NOT EXISTS ix_players_position ON players(position);
    """


def teams_schema() -> str:
    """One team per user."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        budget TEXT NOT NULL,
        free_transfers INTEGER NOT NULL DEFAULT 1,
        total_points INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    """


def team_players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS team_players (
        team_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        slot INTEGER NOT NULL,
        is_captain INTEGER NOT NULL DEFAULT 0,
        is_on_bench INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (team_id, player_id),
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_team_players_player_id ON team_players(player_id);
    """


def gameweeks_schema() -> str:
    """At most one row has is_active = 1 (maintained by GameweekRepository.set_active)."""
    return """
    CREATE TABLE IF NOT EXISTS gameweeks (
        id TEXT PRIMARY KEY,
        number INTEGER NOT NULL UNIQUE,
        is_active INTEGER NOT NULL DEFAULT 0,
        is_completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    """


def player_performances_schema() -> str:
    """goals_conceded and penalties_missed are informational; they do not score."""
    return """
    CREATE TABLE IF NOT EXISTS player_performances (
        id TEXT PRIMARY KEY,
        player_id TEXT NOT NULL,
        gameweek_id TEXT NOT NULL,
        goals INTEGER NOT NULL DEFAULT 0,
        assists INTEGER NOT NULL DEFAULT 0,
        yellow_cards INTEGER NOT NULL DEFAULT 0,
        red_cards INTEGER NOT NULL DEFAULT 0,
        straight_red INTEGER NOT NULL DEFAULT 0,
        is_motm INTEGER NOT NULL DEFAULT 0,
        days_played INTEGER NOT NULL DEFAULT 0,
        goals_conceded INTEGER NOT NULL DEFAULT 0,
        penalties_missed INTEGER NOT NULL DEFAULT 0,
        points INTEGER NOT NULL DEFAULT 0,
        UNIQUE (player_id, gameweek_id),
        FOREIGN KEY (player_id) REFERENCES players(id),
        FOREIGN KEY (gameweek_id) REFERENCES gameweeks(id)
    );
    CREATE INDEX IF NOT EXISTS ix_player_performances_gameweek ON player_performances(gameweek_id);
    """


def gameweek_scores_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS gameweek_scores (
        team_id TEXT NOT NULL,
        gameweek_id TEXT NOT NULL,
        points INTEGER NOT NULL DEFAULT 0,
        bench_boost_used INTEGER NOT NULL DEFAULT 0,
        triple_captain_used INTEGER NOT NULL DEFAULT 0,
        transfer_cost INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (team_id, gameweek_id),
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (gameweek_id) REFERENCES gameweeks(id)
    );
    CREATE INDEX IF NOT EXISTS ix_gameweek_scores_gameweek ON gameweek_scores(gameweek_id);
    """


def chips_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS chips (
        id TEXT PRIMARY KEY,
        team_id TEXT NOT NULL,
        chip_type TEXT NOT NULL,
        gameweek_id TEXT NOT NULL,
        used_at TEXT NOT NULL,
        UNIQUE (team_id, chip_type, gameweek_id),
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (gameweek_id) REFERENCES gameweeks(id)
    );
    CREATE INDEX IF NOT EXISTS ix_chips_gameweek ON chips(gameweek_id);
    """


def transfers_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS transfers (
        id TEXT PRIMARY KEY,
        team_id TEXT NOT NULL,
        gameweek_id TEXT NOT NULL,
        player_out_id TEXT NOT NULL,
        player_in_id TEXT NOT NULL,
        cost INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (gameweek_id) REFERENCES gameweeks(id),
        FOREIGN KEY (player_out_id) REFERENCES players(id),
        FOREIGN KEY (player_in_id) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_transfers_team_gameweek ON transfers(team_id, gameweek_id);
    """


def leagues_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        join_code TEXT NOT NULL UNIQUE,
        created_by TEXT NOT NULL,
        is_overall INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS league_members (
        league_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (league_id, team_id),
        FOREIGN KEY (league_id) REFERENCES leagues(id),
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_league_members_team ON league_members(team_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Referenced tables come first."""
    return "\n".join([
        users_schema(),
        players_schema(),
        teams_schema(),
        team_players_schema(),
        gameweeks_schema(),
        player_performances_schema(),
        gameweek_scores_schema(),
        chips_schema(),
        transfers_schema(),
        leagues_schema(),
    ])
