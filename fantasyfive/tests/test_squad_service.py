"""
Tests for squad management: saving squads, transfers and their point cost, bench swaps, captaincy.
"""
from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from fantasyfive.config import TRANSFER_POINT_COST
from fantasyfive.persistence.db import get_connection, init_db, set_db_path
from fantasyfive.persistence.repositories import (
    LeagueRepository,
    PlayerRepository,
    TeamRepository,
    TransferRepository,
    UserRepository,
)
from fantasyfive.services.gameweek_service import GameweekService, NoActiveGameweekError
from fantasyfive.services.squad_service import (
    SquadRejectedError,
    SquadService,
    TeamNotFoundError,
    TransferRejectedError,
)

# 44.0 total: Dominick D, Elliott D, Chase M, Dustin M, Harry F, bench Dean F
SQUAD = ["Dominick", "Elliott", "Chase", "Dustin", "Harry", "Dean"]


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "squad_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path, seed_players=True)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def svc():
    return SquadService()


def _ids(conn, *names: str) -> list[str]:
    repo = PlayerRepository()
    return [repo.get_by_name(conn, n).id for n in names]


def _save(conn, svc, user_name: str = "alice", names: list[str] = SQUAD, captain: str = "Chase", bench: str = "Dean"):
    user = UserRepository().create(conn, user_name)
    ids = _ids(conn, *names)
    captain_id, bench_id = _ids(conn, captain, bench)
    return svc.save_squad(conn, user.id, f"{user_name} FC", ids, captain_id, bench_id)


def _activate(conn, number: int = 1):
    gw_svc = GameweekService()
    gw = gw_svc.create_gameweek(conn, number)
    return gw_svc.set_active_gameweek(conn, gw.id)


class TestSaveSquad:
    def test_creates_team_with_roster(self, db_conn, svc):
        team = _save(db_conn, svc)
        roster = svc.get_roster(db_conn, team.id)
        assert len(roster) == 6
        assert team.budget == Decimal("50.0")
        assert [m.slot for m in roster] == [1, 2, 3, 4, 5, 6]
        assert roster[-1].is_on_bench and roster[-1].player.name == "Dean"
        assert [m.player.name for m in roster if m.is_captain] == ["Chase"]

    def test_joins_overall_league(self, db_conn, svc):
        team = _save(db_conn, svc)
        overall = LeagueRepository().get_overall(db_conn)
        assert overall is not None
        assert LeagueRepository().is_member(db_conn, overall.id, team.id)

    def test_invalid_formation_writes_nothing(self, db_conn, svc):
        # No defender among the starters.
        with pytest.raises(SquadRejectedError) as excinfo:
            _save(db_conn, svc, names=["Chase", "Dustin", "Harry", "Dean", "Carsen", "Mason"], captain="Chase", bench="Mason")
        assert "At least 1 Defender required in starters" in excinfo.value.errors
        assert TeamRepository().list_all(db_conn) == []

    def test_over_budget_rejected(self, db_conn, svc):
        with pytest.raises(SquadRejectedError) as excinfo:
            _save(db_conn, svc, names=["Tyler", "Sohan", "Aarav", "Lasik", "Alex", "Dominick"], captain="Sohan", bench="Dominick")
        assert any("exceeds budget" in e for e in excinfo.value.errors)

    def test_unknown_player_rejected(self, db_conn, svc):
        user = UserRepository().create(db_conn, "alice")
        ids = _ids(db_conn, *SQUAD[:5]) + ["ghost"]
        with pytest.raises(SquadRejectedError):
            svc.save_squad(db_conn, user.id, "A", ids, ids[2], "ghost")

    def test_rebuild_locked_during_active_gameweek(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        ids = _ids(db_conn, *SQUAD)
        with pytest.raises(SquadRejectedError):
            svc.save_squad(db_conn, team.user_id, "Again", ids, ids[2], ids[5])

    def test_squad_status_reports_locked_players(self, db_conn, svc):
        team = _save(db_conn, svc)
        status = svc.squad_status(db_conn, team.id)
        assert status.is_valid
        assert status.locked_player_ids == _ids(db_conn, "Harry")


class TestTransfer:
    def test_requires_active_gameweek(self, db_conn, svc):
        team = _save(db_conn, svc)
        out_id, in_id = _ids(db_conn, "Dustin", "Nicholas")
        with pytest.raises(NoActiveGameweekError):
            svc.transfer(db_conn, team.id, out_id, in_id)

    def test_first_transfer_free_then_costs(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        dustin, nicholas, alfred = _ids(db_conn, "Dustin", "Nicholas", "Alfred")
        first = svc.transfer(db_conn, team.id, dustin, nicholas)
        assert first.cost == 0
        assert svc.get_team(db_conn, team.id).free_transfers == 0
        second = svc.transfer(db_conn, team.id, nicholas, alfred)
        assert second.cost == TRANSFER_POINT_COST
        assert len(TransferRepository().list_by_team(db_conn, team.id)) == 2

    def test_incoming_player_inherits_slot_and_flags(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        chase, ava = _ids(db_conn, "Chase", "Ava")
        svc.transfer(db_conn, team.id, chase, ava)
        member = next(m for m in svc.get_roster(db_conn, team.id) if m.player_id == ava)
        assert member.is_captain and member.slot == 3

    def test_locked_position_rejected(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        harry, nicholas = _ids(db_conn, "Harry", "Nicholas")
        with pytest.raises(TransferRejectedError) as excinfo:
            svc.transfer(db_conn, team.id, harry, nicholas)
        assert excinfo.value.is_position_locked
        assert "only Forward" in excinfo.value.reason
        assert svc.get_team(db_conn, team.id).free_transfers == 1

    def test_over_budget_rejected(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        elliott, tyler = _ids(db_conn, "Elliott", "Tyler")
        # 44.0 - 6.5 + 11.5 = 49.0 fits; then Dustin (7.5) -> Sohan (12.5) would be 54.0.
        svc.transfer(db_conn, team.id, elliott, tyler)
        dustin, sohan = _ids(db_conn, "Dustin", "Sohan")
        with pytest.raises(TransferRejectedError) as excinfo:
            svc.transfer(db_conn, team.id, dustin, sohan)
        assert "exceeds budget" in excinfo.value.reason

    def test_incoming_already_owned(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        dustin, chase = _ids(db_conn, "Dustin", "Chase")
        with pytest.raises(TransferRejectedError):
            svc.transfer(db_conn, team.id, dustin, chase)

    def test_bench_player_can_change_position(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        dean, mason = _ids(db_conn, "Dean", "Mason")
        svc.transfer(db_conn, team.id, dean, mason)
        bench = [m for m in svc.get_roster(db_conn, team.id) if m.is_on_bench]
        assert [m.player.name for m in bench] == ["Mason"]

    def test_stale_validation_writes_nothing(self, db_conn, svc, monkeypatch):
        team = _save(db_conn, svc)
        _activate(db_conn)
        elliott, brody, mason = _ids(db_conn, "Elliott", "Brody", "Mason")
        other = get_connection()
        try:
            # Validated on a second connection before a competing transfer commits.
            stale = svc.check_transfer(other, team.id, elliott, mason)
            assert stale.can_transfer
            svc.transfer(db_conn, team.id, elliott, brody)
            monkeypatch.setattr(svc, "check_transfer", lambda *args: stale)
            with pytest.raises(TransferRejectedError) as excinfo:
                svc.transfer(other, team.id, elliott, mason)
        finally:
            other.close()
        assert "not in the squad" in excinfo.value.reason
        names = [m.player.name for m in svc.get_roster(db_conn, team.id)]
        assert names == ["Dominick", "Brody", "Chase", "Dustin", "Harry", "Dean"]
        transfers = TransferRepository().list_by_team(db_conn, team.id)
        assert [t.cost for t in transfers] == [0]
        assert svc.get_team(db_conn, team.id).free_transfers == 0

    def test_free_transfer_spent_once(self, db_conn, svc):
        team = _save(db_conn, svc)
        _activate(db_conn)
        repo = TeamRepository()
        assert repo.use_free_transfer(db_conn, team.id)
        assert not repo.use_free_transfer(db_conn, team.id)
        assert repo.get(db_conn, team.id).free_transfers == 0

    def test_unknown_team(self, db_conn, svc):
        _activate(db_conn)
        with pytest.raises(TeamNotFoundError):
            svc.transfer(db_conn, "nope", "a", "b")


class TestLineup:
    def test_swap_bench(self, db_conn, svc):
        team = _save(db_conn, svc)
        harry = _ids(db_conn, "Harry")[0]
        roster = svc.swap_bench(db_conn, team.id, harry)
        bench = [m.player.name for m in roster if m.is_on_bench]
        assert bench == ["Harry"]

    def test_swap_bench_rejects_sole_defender_for_forward(self, db_conn, svc):
        team = _save(db_conn, svc, names=["Dominick", "Chase", "Dustin", "Harry", "Carsen", "Dean"], bench="Dean")
        dominick = _ids(db_conn, "Dominick")[0]
        with pytest.raises(TransferRejectedError):
            svc.swap_bench(db_conn, team.id, dominick)

    def test_captain_cannot_be_benched(self, db_conn, svc):
        team = _save(db_conn, svc)
        chase = _ids(db_conn, "Chase")[0]
        with pytest.raises(TransferRejectedError):
            svc.swap_bench(db_conn, team.id, chase)

    def test_set_captain(self, db_conn, svc):
        team = _save(db_conn, svc)
        harry = _ids(db_conn, "Harry")[0]
        roster = svc.set_captain(db_conn, team.id, harry)
        assert [m.player_id for m in roster if m.is_captain] == [harry]

    def test_bench_player_cannot_captain(self, db_conn, svc):
        team = _save(db_conn, svc)
        dean = _ids(db_conn, "Dean")[0]
        with pytest.raises(TransferRejectedError):
            svc.set_captain(db_conn, team.id, dean)
