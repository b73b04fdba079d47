"""
Repository interfaces for fantasy data.
Plain reads and writes; rules live in the validators and services.

Methods commit by default. Writes that belong to a larger unit of work take
commit=False so the service can commit (or roll back) once.
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from fantasyfive.models import (
    ChipUsage,
    Gameweek,
    GameweekScore,
    League,
    LeagueMember,
    Player,
    PlayerPerformance,
    Team,
    TeamPlayer,
    Transfer,
    User,
)
from fantasyfive.positions import parse_position
from fantasyfive.scoring import PerformanceStats


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _new_id(id: str | None) -> str:
    return id or str(uuid.uuid4())


# ---------- UserRepository ----------


class UserRepository:
    """CRUD for users (identity only)."""

    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> User:
        uid = _new_id(id)
        now = _now()
        conn.execute("INSERT INTO users (id, name, created_at) VALUES (?, ?, ?)", (uid, name, now))
        conn.commit()
        return User(id=uid, name=name, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute("SELECT id, name, created_at FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return User(id=row["id"], name=row["name"], created_at=_parse_datetime(row["created_at"]))


# ---------- PlayerRepository ----------


def _row_to_player(row: sqlite3.Row) -> Player:
    return Player(
        id=row["id"],
        name=row["name"],
        position=parse_position(row["position"]),
        price=Decimal(row["price"]),
        is_in_form=bool(row["is_in_form"]),
    )


class PlayerRepository:
    """Player catalog. Position is stored as the Position value ('Defender', ...)."""

    _COLS = "id, name, position, price, is_in_form"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        position: str,
        price: Decimal | str | float,
        is_in_form: bool = False,
        id: str | None = None,
    ) -> Player:
        pid = _new_id(id)
        pos = parse_position(position, strict=True)
        price_dec = Decimal(str(price))
        conn.execute(
            "INSERT INTO players (id, name, position, price, is_in_form) VALUES (?, ?, ?, ?, ?)",
            (pid, name, pos.value, str(price_dec), 1 if is_in_form else 0),
        )
        conn.commit()
        return Player(id=pid, name=name, position=pos, price=price_dec, is_in_form=is_in_form)

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(f"SELECT {self._COLS} FROM players WHERE id = ?", (player_id,)).fetchone()
        return _row_to_player(row) if row is not None else None

    def get_by_name(self, conn: sqlite3.Connection, name: str) -> Player | None:
        row = conn.execute(f"SELECT {self._COLS} FROM players WHERE name = ?", (name,)).fetchone()
        return _row_to_player(row) if row is not None else None

    def get_many(self, conn: sqlite3.Connection, player_ids: Iterable[str]) -> dict[str, Player]:
        ids = list(dict.fromkeys(player_ids))
        if not ids:
            return {}
        marks = ", ".join("?" for _ in ids)
        rows = conn.execute(f"SELECT {self._COLS} FROM players WHERE id IN ({marks})", ids).fetchall()
        return {r["id"]: _row_to_player(r) for r in rows}

    def list_all(self, conn: sqlite3.Connection, position: str | None = None) -> list[Player]:
        if position:
            rows = conn.execute(
                f"SELECT {self._COLS} FROM players WHERE position = ? ORDER BY CAST(price AS REAL) DESC, name",
                (parse_position(position, strict=True).value,),
            ).fetchall()
        else:
            rows = conn.execute(
                f"SELECT {self._COLS} FROM players ORDER BY CAST(price AS REAL) DESC, name"
            ).fetchall()
        return [_row_to_player(r) for r in rows]

    def update_price(self, conn: sqlite3.Connection, player_id: str, price: Decimal | str) -> None:
        conn.execute("UPDATE players SET price = ? WHERE id = ?", (str(Decimal(str(price))), player_id))
        conn.commit()

    def update_form(self, conn: sqlite3.Connection, player_id: str, is_in_form: bool) -> None:
        conn.execute("UPDATE players SET is_in_form = ? WHERE id = ?", (1 if is_in_form else 0, player_id))
        conn.commit()


# ---------- TeamRepository ----------


def _row_to_team(row: sqlite3.Row) -> Team:
    return Team(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        budget=Decimal(row["budget"]),
        free_transfers=row["free_transfers"],
        total_points=row["total_points"],
        created_at=_parse_datetime(row["created_at"]),
    )


class TeamRepository:
    """CRUD for teams and team_players (roster)."""

    _COLS = "id, user_id, name, budget, free_transfers, total_points, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        name: str,
        budget: Decimal,
        free_transfers: int,
        id: str | None = None,
        commit: bool = True,
    ) -> Team:
        tid = _new_id(id)
        now = _now()
        conn.execute(
            "INSERT INTO teams (id, user_id, name, budget, free_transfers, total_points, created_at) VALUES (?, ?, ?, ?, ?, 0, ?)",
            (tid, user_id, name, str(budget), free_transfers, now),
        )
        if commit:
            conn.commit()
        return Team(
            id=tid, user_id=user_id, name=name, budget=budget, free_transfers=free_transfers,
            total_points=0, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(f"SELECT {self._COLS} FROM teams WHERE id = ?", (team_id,)).fetchone()
        return _row_to_team(row) if row is not None else None

    def get_by_user(self, conn: sqlite3.Connection, user_id: str) -> Team | None:
        row = conn.execute(f"SELECT {self._COLS} FROM teams WHERE user_id = ?", (user_id,)).fetchone()
        return _row_to_team(row) if row is not None else None

    def list_all(self, conn: sqlite3.Connection) -> list[Team]:
        rows = conn.execute(f"SELECT {self._COLS} FROM teams ORDER BY created_at").fetchall()
        return [_row_to_team(r) for r in rows]

    def update_name(self, conn: sqlite3.Connection, team_id: str, name: str, commit: bool = True) -> None:
        conn.execute("UPDATE teams SET name = ? WHERE id = ?", (name, team_id))
        if commit:
            conn.commit()

    def update_total_points(self, conn: sqlite3.Connection, team_id: str, total_points: int, commit: bool = True) -> None:
        conn.execute("UPDATE teams SET total_points = ? WHERE id = ?", (total_points, team_id))
        if commit:
            conn.commit()

    def update_free_transfers(self, conn: sqlite3.Connection, team_id: str, free_transfers: int, commit: bool = True) -> None:
        conn.execute("UPDATE teams SET free_transfers = ? WHERE id = ?", (free_transfers, team_id))
        if commit:
            conn.commit()

    def use_free_transfer(self, conn: sqlite3.Connection, team_id: str, commit: bool = True) -> bool:
        """Spend one free transfer if the team has any left. Returns False when none were left."""
        cursor = conn.execute(
            "UPDATE teams SET free_transfers = free_transfers - 1 WHERE id = ? AND free_transfers > 0",
            (team_id,),
        )
        if commit:
            conn.commit()
        return cursor.rowcount == 1

    def reset_free_transfers(self, conn: sqlite3.Connection, free_transfers: int, commit: bool = True) -> None:
        """Set every team's free transfers (no rollover)."""
        conn.execute("UPDATE teams SET free_transfers = ?", (free_transfers,))
        if commit:
            conn.commit()

    # ---------- Roster ----------

    def get_roster(self, conn: sqlite3.Connection, team_id: str) -> list[TeamPlayer]:
        """Roster ordered by slot, with the catalog player attached."""
        rows = conn.execute(
            """SELECT tp.team_id, tp.player_id, tp.slot, tp.is_captain, tp.is_on_bench,
                      p.id, p.name, p.position, p.price, p.is_in_form
               FROM team_players tp JOIN players p ON p.id = tp.player_id
               WHERE tp.team_id = ? ORDER BY tp.slot""",
            (team_id,),
        ).fetchall()
        return [
            TeamPlayer(
                team_id=r["team_id"],
                player_id=r["player_id"],
                slot=r["slot"],
                is_captain=bool(r["is_captain"]),
                is_on_bench=bool(r["is_on_bench"]),
                player=_row_to_player(r),
            )
            for r in rows
        ]

    def replace_roster(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        members: list[tuple[str, int, bool, bool]],  # (player_id, slot, is_captain, is_on_bench)
        commit: bool = True,
    ) -> None:
        conn.execute("DELETE FROM team_players WHERE team_id = ?", (team_id,))
        conn.executemany(
            "INSERT INTO team_players (team_id, player_id, slot, is_captain, is_on_bench) VALUES (?, ?, ?, ?, ?)",
            [(team_id, pid, slot, 1 if cap else 0, 1 if bench else 0) for pid, slot, cap, bench in members],
        )
        if commit:
            conn.commit()

    def swap_player(
        self, conn: sqlite3.Connection, team_id: str, player_out_id: str, player_in_id: str, commit: bool = True
    ) -> bool:
        """
        Incoming player takes the outgoing player's slot, captaincy and bench flag.
        Returns False, writing nothing, when the outgoing player is no longer on the roster.
        """
        cursor = conn.execute(
            "UPDATE team_players SET player_id = ? WHERE team_id = ? AND player_id = ?",
            (player_in_id, team_id, player_out_id),
        )
        if cursor.rowcount != 1:
            return False
        if commit:
            conn.commit()
        return True

    def swap_bench(
        self, conn: sqlite3.Connection, team_id: str, starter_id: str, bench_id: str, commit: bool = True
    ) -> None:
        conn.execute(
            "UPDATE team_players SET is_on_bench = CASE WHEN player_id = ? THEN 1 ELSE 0 END "
            "WHERE team_id = ? AND player_id IN (?, ?)",
            (starter_id, team_id, starter_id, bench_id),
        )
        if commit:
            conn.commit()

    def set_captain(self, conn: sqlite3.Connection, team_id: str, player_id: str, commit: bool = True) -> None:
        conn.execute(
            "UPDATE team_players SET is_captain = CASE WHEN player_id = ? THEN 1 ELSE 0 END WHERE team_id = ?",
            (player_id, team_id),
        )
        if commit:
            conn.commit()

    def ownership_counts(self, conn: sqlite3.Connection) -> dict[str, int]:
        """player_id -> number of teams that roster the player."""
        rows = conn.execute(
            "SELECT player_id, COUNT(*) AS n FROM team_players GROUP BY player_id"
        ).fetchall()
        return {r["player_id"]: r["n"] for r in rows}


# ---------- GameweekRepository ----------


def _row_to_gameweek(row: sqlite3.Row) -> Gameweek:
    return Gameweek(
        id=row["id"],
        number=row["number"],
        is_active=bool(row["is_active"]),
        is_completed=bool(row["is_completed"]),
        created_at=_parse_datetime(row["created_at"]),
    )


class GameweekRepository:
    """CRUD for gameweeks. set_active is the only writer of is_active."""

    _COLS = "id, number, is_active, is_completed, created_at"

    def create(self, conn: sqlite3.Connection, number: int, id: str | None = None) -> Gameweek:
        gid = _new_id(id)
        now = _now()
        conn.execute(
            "INSERT INTO gameweeks (id, number, is_active, is_completed, created_at) VALUES (?, ?, 0, 0, ?)",
            (gid, number, now),
        )
        conn.commit()
        return Gameweek(id=gid, number=number, is_active=False, is_completed=False, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, gameweek_id: str) -> Gameweek | None:
        row = conn.execute(f"SELECT {self._COLS} FROM gameweeks WHERE id = ?", (gameweek_id,)).fetchone()
        return _row_to_gameweek(row) if row is not None else None

    def get_by_number(self, conn: sqlite3.Connection, number: int) -> Gameweek | None:
        row = conn.execute(f"SELECT {self._COLS} FROM gameweeks WHERE number = ?", (number,)).fetchone()
        return _row_to_gameweek(row) if row is not None else None

    def get_active(self, conn: sqlite3.Connection) -> Gameweek | None:
        row = conn.execute(f"SELECT {self._COLS} FROM gameweeks WHERE is_active = 1 LIMIT 1").fetchone()
        return _row_to_gameweek(row) if row is not None else None

    def list_all(self, conn: sqlite3.Connection) -> list[Gameweek]:
        rows = conn.execute(f"SELECT {self._COLS} FROM gameweeks ORDER BY number").fetchall()
        return [_row_to_gameweek(r) for r in rows]

    def set_active(self, conn: sqlite3.Connection, gameweek_id: str | None, commit: bool = True) -> None:
        """Single statement: activates gameweek_id and deactivates every other row (None deactivates all)."""
        conn.execute(
            "UPDATE gameweeks SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END",
            (gameweek_id,),
        )
        if commit:
            conn.commit()

    def mark_completed(self, conn: sqlite3.Connection, gameweek_id: str, commit: bool = True) -> None:
        conn.execute("UPDATE gameweeks SET is_completed = 1, is_active = 0 WHERE id = ?", (gameweek_id,))
        if commit:
            conn.commit()


# ---------- PerformanceRepository ----------


def _row_to_performance(row: sqlite3.Row) -> PlayerPerformance:
    return PlayerPerformance(
        id=row["id"],
        player_id=row["player_id"],
        gameweek_id=row["gameweek_id"],
        goals=row["goals"],
        assists=row["assists"],
        yellow_cards=row["yellow_cards"],
        red_cards=row["red_cards"],
        straight_red=bool(row["straight_red"]),
        is_motm=bool(row["is_motm"]),
        days_played=row["days_played"],
        goals_conceded=row["goals_conceded"],
        penalties_missed=row["penalties_missed"],
        points=row["points"],
    )


class PerformanceRepository:
    """player_performances: one row per (player, gameweek)."""

    _COLS = (
        "id, player_id, gameweek_id, goals, assists, yellow_cards, red_cards, straight_red, "
        "is_motm, days_played, goals_conceded, penalties_missed, points"
    )

    def upsert(
        self,
        conn: sqlite3.Connection,
        player_id: str,
        gameweek_id: str,
        stats: PerformanceStats,
        points: int,
        commit: bool = True,
    ) -> PlayerPerformance | None:
        conn.execute(
            """INSERT INTO player_performances (
                id, player_id, gameweek_id, goals, assists, yellow_cards, red_cards,
                straight_red, is_motm, days_played, goals_conceded, penalties_missed, points
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (player_id, gameweek_id) DO UPDATE SET
                goals = excluded.goals,
                assists = excluded.assists,
                yellow_cards = excluded.yellow_cards,
                red_cards = excluded.red_cards,
                straight_red = excluded.straight_red,
                is_motm = excluded.is_motm,
                days_played = excluded.days_played,
                goals_conceded = excluded.goals_conceded,
                penalties_missed = excluded.penalties_missed,
                points = excluded.points""",
            (
                str(uuid.uuid4()),
                player_id,
                gameweek_id,
                stats.goals,
                stats.assists,
                stats.yellow_cards,
                stats.red_cards,
                1 if stats.straight_red else 0,
                1 if stats.is_motm else 0,
                stats.days_played,
                stats.goals_conceded,
                stats.penalties_missed,
                points,
            ),
        )
        if commit:
            conn.commit()
        return self.get(conn, player_id, gameweek_id)

    def get(self, conn: sqlite3.Connection, player_id: str, gameweek_id: str) -> PlayerPerformance | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM player_performances WHERE player_id = ? AND gameweek_id = ?",
            (player_id, gameweek_id),
        ).fetchone()
        return _row_to_performance(row) if row is not None else None

    def list_by_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> list[PlayerPerformance]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM player_performances WHERE gameweek_id = ? ORDER BY points DESC, player_id",
            (gameweek_id,),
        ).fetchall()
        return [_row_to_performance(r) for r in rows]


# ---------- GameweekScoreRepository ----------


def _row_to_score(row: sqlite3.Row) -> GameweekScore:
    return GameweekScore(
        team_id=row["team_id"],
        gameweek_id=row["gameweek_id"],
        points=row["points"],
        bench_boost_used=bool(row["bench_boost_used"]),
        triple_captain_used=bool(row["triple_captain_used"]),
        transfer_cost=row["transfer_cost"],
    )


class GameweekScoreRepository:
    """gameweek_scores: written only by aggregation, keyed by (team, gameweek)."""

    _COLS = "team_id, gameweek_id, points, bench_boost_used, triple_captain_used, transfer_cost"

    def upsert(self, conn: sqlite3.Connection, score: GameweekScore, commit: bool = True) -> None:
        conn.execute(
            """INSERT INTO gameweek_scores (team_id, gameweek_id, points, bench_boost_used, triple_captain_used, transfer_cost)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT (team_id, gameweek_id) DO UPDATE SET
                   points = excluded.points,
                   bench_boost_used = excluded.bench_boost_used,
                   triple_captain_used = excluded.triple_captain_used,
                   transfer_cost = excluded.transfer_cost""",
            (
                score.team_id,
                score.gameweek_id,
                score.points,
                1 if score.bench_boost_used else 0,
                1 if score.triple_captain_used else 0,
                score.transfer_cost,
            ),
        )
        if commit:
            conn.commit()

    def get(self, conn: sqlite3.Connection, team_id: str, gameweek_id: str) -> GameweekScore | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM gameweek_scores WHERE team_id = ? AND gameweek_id = ?",
            (team_id, gameweek_id),
        ).fetchone()
        return _row_to_score(row) if row is not None else None

    def list_by_gameweek(self, conn: sqlite3.Connection, gameweek_id: str) -> list[GameweekScore]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM gameweek_scores WHERE gameweek_id = ? ORDER BY points DESC, team_id",
            (gameweek_id,),
        ).fetchall()
        return [_row_to_score(r) for r in rows]

    def sum_for_team(self, conn: sqlite3.Connection, team_id: str) -> int:
        row = conn.execute(
            "SELECT COALESCE(SUM(points), 0) AS total FROM gameweek_scores WHERE team_id = ?",
            (team_id,),
        ).fetchone()
        return int(row["total"])


# ---------- ChipRepository ----------


class ChipRepository:
    """Append-only chip usage log."""

    def create(
        self, conn: sqlite3.Connection, team_id: str, chip_type: str, gameweek_id: str, id: str | None = None
    ) -> ChipUsage:
        """Raises sqlite3.IntegrityError if the chip was already used by this team in this gameweek."""
        cid = _new_id(id)
        now = _now()
        conn.execute(
            "INSERT INTO chips (id, team_id, chip_type, gameweek_id, used_at) VALUES (?, ?, ?, ?, ?)",
            (cid, team_id, chip_type, gameweek_id, now),
        )
        conn.commit()
        return ChipUsage(id=cid, team_id=team_id, chip_type=chip_type, gameweek_id=gameweek_id, used_at=_parse_datetime(now))

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[ChipUsage]:
        rows = conn.execute(
            """SELECT c.id, c.team_id, c.chip_type, c.gameweek_id, c.used_at
               FROM chips c JOIN gameweeks g ON g.id = c.gameweek_id
               WHERE c.team_id = ? ORDER BY g.number""",
            (team_id,),
        ).fetchall()
        return [
            ChipUsage(
                id=r["id"], team_id=r["team_id"], chip_type=r["chip_type"],
                gameweek_id=r["gameweek_id"], used_at=_parse_datetime(r["used_at"]),
            )
            for r in rows
        ]

    def latest_use_number(self, conn: sqlite3.Connection, team_id: str, chip_type: str) -> int | None:
        """Gameweek number of the team's most recent use of chip_type, or None if never used."""
        row = conn.execute(
            """SELECT MAX(g.number) AS last_number
               FROM chips c JOIN gameweeks g ON g.id = c.gameweek_id
               WHERE c.team_id = ? AND c.chip_type = ?""",
            (team_id, chip_type),
        ).fetchone()
        return row["last_number"] if row is not None else None

    def active_by_team(self, conn: sqlite3.Connection, gameweek_id: str) -> dict[str, set[str]]:
        """team_id -> chip types used in gameweek_id."""
        rows = conn.execute(
            "SELECT team_id, chip_type FROM chips WHERE gameweek_id = ?",
            (gameweek_id,),
        ).fetchall()
        result: dict[str, set[str]] = {}
        for r in rows:
            result.setdefault(r["team_id"], set()).add(r["chip_type"])
        return result


# ---------- TransferRepository ----------


def _row_to_transfer(row: sqlite3.Row) -> Transfer:
    return Transfer(
        id=row["id"],
        team_id=row["team_id"],
        gameweek_id=row["gameweek_id"],
        player_out_id=row["player_out_id"],
        player_in_id=row["player_in_id"],
        cost=row["cost"],
        created_at=_parse_datetime(row["created_at"]),
    )


class TransferRepository:
    """Append-only transfer log."""

    _COLS = "id, team_id, gameweek_id, player_out_id, player_in_id, cost, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        gameweek_id: str,
        player_out_id: str,
        player_in_id: str,
        cost: int,
        id: str | None = None,
        commit: bool = True,
    ) -> Transfer:
        tid = _new_id(id)
        now = _now()
        conn.execute(
            f"INSERT INTO transfers ({self._COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (tid, team_id, gameweek_id, player_out_id, player_in_id, cost, now),
        )
        if commit:
            conn.commit()
        return Transfer(
            id=tid, team_id=team_id, gameweek_id=gameweek_id, player_out_id=player_out_id,
            player_in_id=player_in_id, cost=cost, created_at=_parse_datetime(now),
        )

    def list_by_team(self, conn: sqlite3.Connection, team_id: str, gameweek_id: str | None = None) -> list[Transfer]:
        if gameweek_id is None:
            rows = conn.execute(
                f"SELECT {self._COLS} FROM transfers WHERE team_id = ? ORDER BY created_at",
                (team_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                f"SELECT {self._COLS} FROM transfers WHERE team_id = ? AND gameweek_id = ? ORDER BY created_at",
                (team_id, gameweek_id),
            ).fetchall()
        return [_row_to_transfer(r) for r in rows]

    def cost_by_team(self, conn: sqlite3.Connection, gameweek_id: str) -> dict[str, int]:
        """team_id -> total transfer point cost in gameweek_id."""
        rows = conn.execute(
            "SELECT team_id, SUM(cost) AS total FROM transfers WHERE gameweek_id = ? GROUP BY team_id",
            (gameweek_id,),
        ).fetchall()
        return {r["team_id"]: int(r["total"] or 0) for r in rows}


# ---------- LeagueRepository ----------


def _row_to_league(row: sqlite3.Row) -> League:
    return League(
        id=row["id"],
        name=row["name"],
        join_code=row["join_code"],
        created_by=row["created_by"],
        is_overall=bool(row["is_overall"]),
        created_at=_parse_datetime(row["created_at"]),
    )


class LeagueRepository:
    """CRUD for leagues and league_members."""

    _COLS = "id, name, join_code, created_by, is_overall, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        join_code: str,
        created_by: str,
        is_overall: bool = False,
        id: str | None = None,
        commit: bool = True,
    ) -> League:
        lid = _new_id(id)
        now = _now()
        conn.execute(
            f"INSERT INTO leagues ({self._COLS}) VALUES (?, ?, ?, ?, ?, ?)",
            (lid, name, join_code, created_by, 1 if is_overall else 0, now),
        )
        if commit:
            conn.commit()
        return League(
            id=lid, name=name, join_code=join_code, created_by=created_by,
            is_overall=is_overall, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(f"SELECT {self._COLS} FROM leagues WHERE id = ?", (league_id,)).fetchone()
        return _row_to_league(row) if row is not None else None

    def get_by_code(self, conn: sqlite3.Connection, join_code: str) -> League | None:
        row = conn.execute(f"SELECT {self._COLS} FROM leagues WHERE join_code = ?", (join_code,)).fetchone()
        return _row_to_league(row) if row is not None else None

    def get_overall(self, conn: sqlite3.Connection) -> League | None:
        row = conn.execute(f"SELECT {self._COLS} FROM leagues WHERE is_overall = 1 LIMIT 1").fetchone()
        return _row_to_league(row) if row is not None else None

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[League]:
        rows = conn.execute(
            """SELECT l.id, l.name, l.join_code, l.created_by, l.is_overall, l.created_at
               FROM leagues l JOIN league_members m ON m.league_id = l.id
               WHERE m.team_id = ? ORDER BY l.is_overall DESC, l.created_at""",
            (team_id,),
        ).fetchall()
        return [_row_to_league(r) for r in rows]

    def add_member(self, conn: sqlite3.Connection, league_id: str, team_id: str, commit: bool = True) -> LeagueMember:
        now = _now()
        conn.execute(
            "INSERT OR IGNORE INTO league_members (league_id, team_id, joined_at) VALUES (?, ?, ?)",
            (league_id, team_id, now),
        )
        if commit:
            conn.commit()
        return LeagueMember(league_id=league_id, team_id=team_id, joined_at=_parse_datetime(now))

    def is_member(self, conn: sqlite3.Connection, league_id: str, team_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM league_members WHERE league_id = ? AND team_id = ?",
            (league_id, team_id),
        ).fetchone()
        return row is not None

    def list_member_team_ids(self, conn: sqlite3.Connection, league_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT team_id FROM league_members WHERE league_id = ? ORDER BY joined_at",
            (league_id,),
        ).fetchall()
        return [r["team_id"] for r in rows]
