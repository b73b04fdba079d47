"""
API integration tests.
Uses TestClient to avoid starting a server.
Requires: pip install httpx (for TestClient)
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
    HAS_HTTPX = True
except (ImportError, RuntimeError):
    HAS_HTTPX = False

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

pytestmark = pytest.mark.skipif(not HAS_HTTPX, reason="httpx required for TestClient")

from fantasyfive.api import app
from fantasyfive.persistence.db import init_db, set_db_path

SQUAD = ["Dominick", "Elliott", "Chase", "Dustin", "Harry", "Dean"]


@pytest.fixture(autouse=True)
def isolated_db(tmp_path):
    """Use a temporary, seeded DB for each test."""
    db_path = tmp_path / "test.db"
    set_db_path(db_path)
    init_db(db_path=db_path, seed_players=True)
    yield db_path


@pytest.fixture
def client():
    return TestClient(app)


def _player_ids(client) -> dict[str, str]:
    return {p["name"]: p["id"] for p in client.get("/players").json()["players"]}


def _create_team(client, user_name: str = "alice") -> dict:
    ids = _player_ids(client)
    user = client.post("/users", json={"name": user_name}).json()
    resp = client.post(
        "/teams",
        json={
            "user_id": user["id"],
            "name": f"{user_name} FC",
            "player_ids": [ids[n] for n in SQUAD],
            "captain_id": ids["Chase"],
            "bench_id": ids["Dean"],
        },
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_get_players(client):
    resp = client.get("/players")
    assert resp.status_code == 200
    players = resp.json()["players"]
    assert len(players) == 24
    assert {"id", "name", "position", "price", "is_in_form"} <= set(players[0])


def test_get_players_by_position(client):
    resp = client.get("/players?position=def")
    assert resp.status_code == 200
    assert all(p["position"] == "Defender" for p in resp.json()["players"])


def test_get_players_bad_position(client):
    assert client.get("/players?position=keeper").status_code == 400


def test_score_performance(client):
    resp = client.post("/performances/score", json={"position": "Defender", "goals": 1, "days_played": 4})
    assert resp.status_code == 200
    data = resp.json()
    assert data["points"] == 8
    assert data["breakdown"]["days_played"] == 2


def test_validate_squad(client):
    roster = [
        {"player_id": "a", "position": "Defender"},
        {"player_id": "b", "position": "Midfielder"},
        {"player_id": "c", "position": "Midfielder"},
        {"player_id": "d", "position": "Midfielder"},
        {"player_id": "e", "position": "Midfielder"},
        {"player_id": "f", "position": "Forward", "is_on_bench": True},
    ]
    data = client.post("/squad/validate", json={"roster": roster}).json()
    assert data["is_valid"] is False
    assert data["errors"] == ["At least 1 Forward required in starters"]


def test_validate_transfer(client):
    roster = [
        {"player_id": "a", "position": "Defender"},
        {"player_id": "b", "position": "Midfielder"},
        {"player_id": "c", "position": "Forward"},
        {"player_id": "d", "position": "Forward"},
        {"player_id": "e", "position": "Midfielder"},
        {"player_id": "f", "position": "Defender", "is_on_bench": True},
    ]
    data = client.post(
        "/transfers/validate", json={"out_position": "Defender", "in_position": "Forward", "roster": roster}
    ).json()
    assert data["can_transfer"] is False
    assert data["is_position_locked"] is True


def test_create_team_and_get(client):
    team = _create_team(client)
    assert len(team["roster"]) == 6
    resp = client.get(f"/teams/{team['id']}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "alice FC"


def test_create_team_invalid(client):
    ids = _player_ids(client)
    user = client.post("/users", json={"name": "bob"}).json()
    resp = client.post(
        "/teams",
        json={
            "user_id": user["id"],
            "name": "Bad",
            "player_ids": [ids[n] for n in ["Chase", "Dustin", "Harry", "Dean", "Carsen", "Mason"]],
            "captain_id": ids["Chase"],
            "bench_id": ids["Mason"],
        },
    )
    assert resp.status_code == 400
    assert "At least 1 Defender required in starters" in resp.json()["detail"]["errors"]


def test_get_team_not_found(client):
    assert client.get("/teams/missing").status_code == 404


def test_gameweek_flow(client):
    team = _create_team(client)
    ids = _player_ids(client)
    gw = client.post("/gameweeks", json={"number": 1}).json()
    assert client.post(f"/gameweeks/{gw['id']}/activate").json()["is_active"] is True
    assert client.get("/gameweeks/active").json()["id"] == gw["id"]

    resp = client.post(f"/teams/{team['id']}/chips", json={"chip_type": "triple_captain"})
    assert resp.status_code == 200
    assert client.post(f"/teams/{team['id']}/chips", json={"chip_type": "triple_captain"}).status_code == 400

    resp = client.post(
        f"/gameweeks/{gw['id']}/performances",
        json={"performances": [{"player_id": ids["Chase"], "goals": 1}]},
    )
    assert resp.status_code == 200
    assert resp.json()["scores"][0]["points"] == 15

    overall = client.get("/leagues/overall").json()
    board = client.get(f"/leagues/{overall['id']}/leaderboard").json()["entries"]
    assert board[0]["total_points"] == 15

    highlights = client.get(f"/gameweeks/{gw['id']}/highlights").json()
    assert highlights["player_of_the_week"]["player"]["name"] == "Chase"

    done = client.post(f"/gameweeks/{gw['id']}/complete").json()
    assert done["is_completed"] is True


def test_transfer_endpoint(client):
    team = _create_team(client)
    ids = _player_ids(client)
    gw = client.post("/gameweeks", json={"number": 1}).json()
    client.post(f"/gameweeks/{gw['id']}/activate")
    resp = client.post(
        f"/teams/{team['id']}/transfers",
        json={"player_out_id": ids["Harry"], "player_in_id": ids["Nicholas"]},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["is_position_locked"] is True
    resp = client.post(
        f"/teams/{team['id']}/transfers",
        json={"player_out_id": ids["Dustin"], "player_in_id": ids["Nicholas"]},
    )
    assert resp.status_code == 200
    assert resp.json()["transfer"]["cost"] == 0
    assert resp.json()["free_transfers"] == 0


def test_transfer_without_active_gameweek(client):
    team = _create_team(client)
    ids = _player_ids(client)
    resp = client.post(
        f"/teams/{team['id']}/transfers",
        json={"player_out_id": ids["Dustin"], "player_in_id": ids["Nicholas"]},
    )
    assert resp.status_code == 400


def test_leagues(client):
    team = _create_team(client)
    league = client.post("/leagues", json={"name": "Mates", "created_by": team["user_id"], "join_code": "mates1"}).json()
    assert league["join_code"] == "MATES1"
    board = client.get(f"/leagues/{league['id']}/leaderboard").json()["entries"]
    assert [e["team_id"] for e in board] == [team["id"]]
    assert client.post("/leagues/join", json={"team_id": team["id"], "join_code": "nope"}).status_code == 404
    assert client.post("/leagues/join", json={"team_id": "missing", "join_code": "MATES1"}).status_code == 404
