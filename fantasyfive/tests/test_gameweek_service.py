"""
Tests for the gameweek lifecycle: activation, free-transfer reset, performance submission, completion.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from fantasyfive.config import FREE_TRANSFERS_PER_GAMEWEEK
from fantasyfive.persistence.db import get_connection, init_db, set_db_path
from fantasyfive.persistence.repositories import (
    GameweekRepository,
    PerformanceRepository,
    PlayerRepository,
    TeamRepository,
    UserRepository,
)
from fantasyfive.scoring import PerformanceStats
from fantasyfive.services.aggregation import GameweekNotFoundError
from fantasyfive.services.gameweek_service import (
    GameweekService,
    GameweekStateError,
    NoActiveGameweekError,
    PerformanceEntry,
    UnknownPlayerError,
)


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "gameweek_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path, seed_players=True)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def svc():
    return GameweekService()


def _player_id(conn, name: str) -> str:
    return PlayerRepository().get_by_name(conn, name).id


class TestActivation:
    def test_only_one_active(self, db_conn, svc):
        gw1 = svc.create_gameweek(db_conn, 1)
        gw2 = svc.create_gameweek(db_conn, 2)
        svc.set_active_gameweek(db_conn, gw1.id)
        svc.set_active_gameweek(db_conn, gw2.id)
        active = [g for g in svc.list_gameweeks(db_conn) if g.is_active]
        assert [g.id for g in active] == [gw2.id]
        assert svc.get_active_gameweek(db_conn).number == 2

    def test_no_active_gameweek(self, db_conn, svc):
        with pytest.raises(NoActiveGameweekError):
            svc.get_active_gameweek(db_conn)

    def test_unknown_gameweek(self, db_conn, svc):
        with pytest.raises(GameweekNotFoundError):
            svc.set_active_gameweek(db_conn, "missing")

    def test_duplicate_number_rejected(self, db_conn, svc):
        svc.create_gameweek(db_conn, 1)
        with pytest.raises(GameweekStateError):
            svc.create_gameweek(db_conn, 1)

    def test_completed_gameweek_cannot_be_reactivated(self, db_conn, svc):
        gw = svc.create_gameweek(db_conn, 1)
        svc.set_active_gameweek(db_conn, gw.id)
        svc.complete_gameweek(db_conn, gw.id)
        with pytest.raises(GameweekStateError):
            svc.set_active_gameweek(db_conn, gw.id)

    def test_activation_resets_free_transfers(self, db_conn, svc):
        user = UserRepository().create(db_conn, "u")
        team_repo = TeamRepository()
        team = team_repo.create(db_conn, user.id, "U FC", budget=50, free_transfers=0)
        gw = svc.create_gameweek(db_conn, 1)
        svc.set_active_gameweek(db_conn, gw.id)
        assert team_repo.get(db_conn, team.id).free_transfers == FREE_TRANSFERS_PER_GAMEWEEK

    def test_reactivating_active_gameweek_does_not_refill(self, db_conn, svc):
        user = UserRepository().create(db_conn, "u")
        team_repo = TeamRepository()
        team = team_repo.create(db_conn, user.id, "U FC", budget=50, free_transfers=1)
        gw = svc.create_gameweek(db_conn, 1)
        svc.set_active_gameweek(db_conn, gw.id)
        team_repo.update_free_transfers(db_conn, team.id, 0)
        svc.set_active_gameweek(db_conn, gw.id)
        assert team_repo.get(db_conn, team.id).free_transfers == 0


class TestSubmitPerformances:
    def test_points_written_on_each_record(self, db_conn, svc):
        gw = svc.create_gameweek(db_conn, 1)
        tyler = _player_id(db_conn, "Tyler")
        lasik = _player_id(db_conn, "Lasik")
        result = svc.submit_performances(
            db_conn,
            gw.id,
            [
                PerformanceEntry(tyler, PerformanceStats(goals=1, days_played=4)),
                {"playerId": lasik, "goals": 2, "isMotm": True},
            ],
        )
        by_player = {p.player_id: p.points for p in result.performances}
        assert by_player == {tyler: 6 + 2, lasik: 10 + 3}
        stored = PerformanceRepository().get(db_conn, tyler, gw.id)
        assert stored is not None and stored.points == 8 and stored.days_played == 4

    def test_resubmission_replaces_record(self, db_conn, svc):
        gw = svc.create_gameweek(db_conn, 1)
        pid = _player_id(db_conn, "Adam")
        svc.submit_performances(db_conn, gw.id, [PerformanceEntry(pid, PerformanceStats(goals=1))])
        svc.submit_performances(db_conn, gw.id, [PerformanceEntry(pid, PerformanceStats(assists=1))])
        records = svc.list_performances(db_conn, gw.id)
        assert len(records) == 1
        assert records[0].points == 3 and records[0].goals == 0

    def test_unknown_player_writes_nothing(self, db_conn, svc):
        gw = svc.create_gameweek(db_conn, 1)
        pid = _player_id(db_conn, "Adam")
        with pytest.raises(UnknownPlayerError):
            svc.submit_performances(
                db_conn, gw.id, [PerformanceEntry(pid, PerformanceStats(goals=1)), PerformanceEntry("ghost")]
            )
        assert svc.list_performances(db_conn, gw.id) == []

    def test_entry_without_player_id(self):
        with pytest.raises(ValueError):
            PerformanceEntry.from_mapping({"goals": 1})


class TestComplete:
    def test_complete_marks_and_deactivates(self, db_conn, svc):
        gw = svc.create_gameweek(db_conn, 1)
        svc.set_active_gameweek(db_conn, gw.id)
        svc.complete_gameweek(db_conn, gw.id)
        stored = GameweekRepository().get(db_conn, gw.id)
        assert stored.is_completed and not stored.is_active
