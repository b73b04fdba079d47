"""
REST API for the FantasyFive roster engine.
Thin wrappers around the validators, the scorer and the services.
No authentication: callers pass user and team ids explicitly.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from decimal import Decimal
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from fantasyfive import config
from fantasyfive.persistence import (
    PlayerRepository,
    TeamRepository,
    UserRepository,
    get_connection,
    get_db_path,
    init_db,
)
from fantasyfive.positions import parse_position
from fantasyfive.scoring import PerformanceStats, score_performance
from fantasyfive.services import (
    AggregationError,
    GameweekNotFoundError,
    GameweekService,
    LeagueNotFoundError,
    LeagueService,
    PerformanceEntry,
    ScoreAggregator,
    SquadRejectedError,
    SquadService,
    TeamNotFoundError,
    TransferRejectedError,
)
from fantasyfive.validation import RosterEntry, validate_squad, validate_transfer

_NOT_FOUND_ERRORS = (GameweekNotFoundError, TeamNotFoundError, LeagueNotFoundError)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def _http_error(e: ValueError) -> HTTPException:
    """Domain errors: missing entities are 404, everything else the caller got wrong is 400."""
    if isinstance(e, SquadRejectedError):
        return HTTPException(status_code=400, detail={"errors": e.errors})
    if isinstance(e, TransferRejectedError):
        return HTTPException(status_code=400, detail={"reason": e.reason, "is_position_locked": e.is_position_locked})
    if isinstance(e, _NOT_FOUND_ERRORS):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(level=config.LOG_LEVEL)
    init_db(db_path=get_db_path(), seed_players=config.SEED_PLAYERS)
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="FantasyFive API",
    description="Squad rules, scoring and leaderboards for a five-a-side fantasy league",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Request/Response models ----------


class RosterEntryIn(BaseModel):
    player_id: str
    position: str = Field(..., description="Defender, Midfielder or Forward (loosely matched)")
    is_on_bench: bool = False

    def to_entry(self) -> RosterEntry:
        return RosterEntry(player_id=self.player_id, position=parse_position(self.position), is_on_bench=self.is_on_bench)


class ValidateSquadRequest(BaseModel):
    roster: list[RosterEntryIn]


class ValidateTransferRequest(BaseModel):
    out_position: str
    in_position: str
    roster: list[RosterEntryIn]
    out_player_id: str | None = None


class StatsIn(BaseModel):
    goals: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    yellow_cards: int = Field(0, ge=0)
    red_cards: int = Field(0, ge=0)
    straight_red: bool = False
    is_motm: bool = False
    days_played: int = Field(0, ge=0)
    goals_conceded: int = Field(0, ge=0)
    penalties_missed: int = Field(0, ge=0)

    def to_stats(self) -> PerformanceStats:
        return PerformanceStats(
            goals=self.goals,
            assists=self.assists,
            yellow_cards=self.yellow_cards,
            red_cards=self.red_cards,
            straight_red=self.straight_red,
            is_motm=self.is_motm,
            days_played=self.days_played,
            goals_conceded=self.goals_conceded,
            penalties_missed=self.penalties_missed,
        )


class ScorePerformanceRequest(StatsIn):
    position: str


class PerformanceEntryIn(StatsIn):
    player_id: str


class SubmitPerformancesRequest(BaseModel):
    performances: list[PerformanceEntryIn] = Field(..., min_length=1)


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CreatePlayerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    position: str
    price: Decimal = Field(..., gt=0)
    is_in_form: bool = False


class UpdatePlayerRequest(BaseModel):
    price: Decimal | None = Field(None, gt=0)
    is_in_form: bool | None = None


class SaveSquadRequest(BaseModel):
    user_id: str
    name: str = Field(..., min_length=1, max_length=100)
    player_ids: list[str]
    captain_id: str
    bench_id: str


class TransferRequest(BaseModel):
    player_out_id: str
    player_in_id: str


class BenchSwapRequest(BaseModel):
    starter_id: str


class CaptainRequest(BaseModel):
    player_id: str


class ChipRequest(BaseModel):
    chip_type: str = Field(..., description="bench_boost or triple_captain")


class CreateGameweekRequest(BaseModel):
    number: int = Field(..., ge=1)


class CreateLeagueRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    created_by: str
    join_code: str = Field(..., min_length=3, max_length=20)


class JoinLeagueRequest(BaseModel):
    team_id: str
    join_code: str


def _team_payload(conn: Any, svc: SquadService, team_id: str) -> dict[str, Any]:
    team = svc.get_team(conn, team_id)
    roster = svc.get_roster(conn, team_id)
    status = svc.squad_status(conn, team_id)
    return {
        **team.to_dict(),
        "roster": [m.to_dict() for m in roster],
        "locked_player_ids": status.locked_player_ids,
        "position_counts": {p.value: n for p, n in status.position_counts.items()},
    }


# ---------- Rule endpoints (pure) ----------


@app.post("/squad/validate")
def squad_validate(req: ValidateSquadRequest) -> dict[str, Any]:
    """Formation check only; does not touch storage."""
    return validate_squad([e.to_entry() for e in req.roster]).to_dict()


@app.post("/transfers/validate")
def transfers_validate(req: ValidateTransferRequest) -> dict[str, Any]:
    result = validate_transfer(
        req.out_position, req.in_position, [e.to_entry() for e in req.roster], out_player_id=req.out_player_id
    )
    return result.to_dict()


@app.post("/performances/score")
def performances_score(req: ScorePerformanceRequest) -> dict[str, Any]:
    """Points preview for one stat line."""
    return score_performance(req.position, req.to_stats()).to_dict()


# ---------- Users and players ----------


@app.post("/users")
def create_user(req: CreateUserRequest) -> dict[str, Any]:
    with db_conn() as conn:
        return UserRepository().create(conn, req.name).to_dict()


@app.get("/players")
def list_players(position: str | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            players = PlayerRepository().list_all(conn, position=position)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"players": [p.to_dict() for p in players]}


@app.post("/players")
def create_player(req: CreatePlayerRequest) -> dict[str, Any]:
    """Admin: add a catalog player."""
    with db_conn() as conn:
        repo = PlayerRepository()
        if repo.get_by_name(conn, req.name) is not None:
            raise HTTPException(status_code=400, detail=f"Player already exists: {req.name}")
        try:
            return repo.create(conn, req.name, req.position, req.price, is_in_form=req.is_in_form).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))


@app.patch("/players/{player_id}")
def update_player(player_id: str, req: UpdatePlayerRequest) -> dict[str, Any]:
    """Admin: change price and/or form."""
    with db_conn() as conn:
        repo = PlayerRepository()
        if repo.get(conn, player_id) is None:
            raise HTTPException(status_code=404, detail="Player not found")
        if req.price is not None:
            repo.update_price(conn, player_id, req.price)
        if req.is_in_form is not None:
            repo.update_form(conn, player_id, req.is_in_form)
        player = repo.get(conn, player_id)
        return player.to_dict() if player else {}


# ---------- Teams ----------


@app.post("/teams")
def save_team(req: SaveSquadRequest) -> dict[str, Any]:
    """Create the user's squad (or rebuild it between gameweeks)."""
    svc = SquadService()
    with db_conn() as conn:
        try:
            team = svc.save_squad(conn, req.user_id, req.name, req.player_ids, req.captain_id, req.bench_id)
            return _team_payload(conn, svc, team.id)
        except ValueError as e:
            raise _http_error(e)


@app.get("/teams")
def list_teams(user_id: str | None = None) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        if user_id:
            try:
                return {"teams": [svc.get_team_for_user(conn, user_id).to_dict()]}
            except ValueError as e:
                raise _http_error(e)
        return {"teams": [t.to_dict() for t in TeamRepository().list_all(conn)]}


@app.get("/teams/{team_id}")
def get_team(team_id: str) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            return _team_payload(conn, svc, team_id)
        except ValueError as e:
            raise _http_error(e)


@app.post("/teams/{team_id}/transfers")
def make_transfer(team_id: str, req: TransferRequest) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            record = svc.transfer(conn, team_id, req.player_out_id, req.player_in_id)
            team = svc.get_team(conn, team_id)
        except ValueError as e:
            raise _http_error(e)
        return {"transfer": record.to_dict(), "free_transfers": team.free_transfers}


@app.get("/teams/{team_id}/transfers")
def list_transfers(team_id: str, gameweek_id: str | None = None) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            return {"transfers": [t.to_dict() for t in svc.list_transfers(conn, team_id, gameweek_id)]}
        except ValueError as e:
            raise _http_error(e)


@app.post("/teams/{team_id}/bench-swap")
def bench_swap(team_id: str, req: BenchSwapRequest) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            roster = svc.swap_bench(conn, team_id, req.starter_id)
        except ValueError as e:
            raise _http_error(e)
        return {"roster": [m.to_dict() for m in roster]}


@app.post("/teams/{team_id}/captain")
def set_captain(team_id: str, req: CaptainRequest) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            roster = svc.set_captain(conn, team_id, req.player_id)
        except ValueError as e:
            raise _http_error(e)
        return {"roster": [m.to_dict() for m in roster]}


@app.post("/teams/{team_id}/chips")
def play_chip(team_id: str, req: ChipRequest) -> dict[str, Any]:
    svc = SquadService()
    with db_conn() as conn:
        try:
            usage = svc.activate_chip(conn, team_id, req.chip_type)
        except ValueError as e:
            raise _http_error(e)
        return {
            "team_id": usage.team_id,
            "chip_type": usage.chip_type,
            "gameweek_id": usage.gameweek_id,
            "used_at": usage.used_at.isoformat(),
        }


@app.get("/teams/{team_id}/chips")
def chip_status(team_id: str, gameweek_number: int | None = Query(None, ge=1)) -> dict[str, Any]:
    """Chip history plus availability for gameweek_number (default: the active gameweek)."""
    svc = SquadService()
    gw_svc = GameweekService()
    with db_conn() as conn:
        try:
            if gameweek_number is None:
                gameweek_number = gw_svc.get_active_gameweek(conn).number
            history = svc.chip_history(conn, team_id)
            available = svc.chip_availability(conn, team_id, gameweek_number)
        except ValueError as e:
            raise _http_error(e)
        return {
            "gameweek_number": gameweek_number,
            "available": available,
            "history": [{"chip_type": c.chip_type, "gameweek_id": c.gameweek_id} for c in history],
        }


# ---------- Gameweeks (admin) ----------


@app.get("/gameweeks")
def list_gameweeks() -> dict[str, Any]:
    with db_conn() as conn:
        return {"gameweeks": [g.to_dict() for g in GameweekService().list_gameweeks(conn)]}


@app.get("/gameweeks/active")
def active_gameweek() -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return GameweekService().get_active_gameweek(conn).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))


@app.post("/gameweeks")
def create_gameweek(req: CreateGameweekRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return GameweekService().create_gameweek(conn, req.number).to_dict()
        except ValueError as e:
            raise _http_error(e)


@app.post("/gameweeks/{gameweek_id}/activate")
def activate_gameweek(gameweek_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return GameweekService().set_active_gameweek(conn, gameweek_id).to_dict()
        except ValueError as e:
            raise _http_error(e)


@app.post("/gameweeks/{gameweek_id}/performances")
def submit_performances(gameweek_id: str, req: SubmitPerformancesRequest) -> dict[str, Any]:
    """Store stats, score them and re-aggregate every team for the gameweek."""
    entries = [PerformanceEntry(player_id=p.player_id, stats=p.to_stats()) for p in req.performances]
    with db_conn() as conn:
        try:
            result = GameweekService().submit_performances(conn, gameweek_id, entries)
        except AggregationError as e:
            raise HTTPException(status_code=500, detail=str(e))
        except ValueError as e:
            raise _http_error(e)
        return {
            "performances": [p.to_dict() for p in result.performances],
            "scores": [s.to_dict() for s in result.aggregation.scores],
        }


@app.get("/gameweeks/{gameweek_id}/performances")
def list_performances(gameweek_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            performances = GameweekService().list_performances(conn, gameweek_id)
        except ValueError as e:
            raise _http_error(e)
        return {"performances": [p.to_dict() for p in performances]}


@app.post("/gameweeks/{gameweek_id}/aggregate")
def aggregate_gameweek(gameweek_id: str) -> dict[str, Any]:
    """Re-run aggregation; safe to call repeatedly."""
    with db_conn() as conn:
        try:
            summary = ScoreAggregator().aggregate_gameweek(conn, gameweek_id)
        except AggregationError as e:
            raise HTTPException(status_code=500, detail=str(e))
        except ValueError as e:
            raise _http_error(e)
        return {"scores": [s.to_dict() for s in summary.scores], "totals": summary.totals}


@app.post("/gameweeks/{gameweek_id}/complete")
def complete_gameweek(gameweek_id: str) -> dict[str, Any]:
    svc = GameweekService()
    with db_conn() as conn:
        try:
            summary = svc.complete_gameweek(conn, gameweek_id)
        except AggregationError as e:
            raise HTTPException(status_code=500, detail=str(e))
        except ValueError as e:
            raise _http_error(e)
        return {**svc.get_gameweek(conn, gameweek_id).to_dict(), "scores": [s.to_dict() for s in summary.scores]}


@app.get("/gameweeks/{gameweek_id}/highlights")
def gameweek_highlights(gameweek_id: str) -> dict[str, Any]:
    """Player of the week, team of the week and the most-owned player."""
    svc = LeagueService()
    with db_conn() as conn:
        try:
            GameweekService().get_gameweek(conn, gameweek_id)
        except ValueError as e:
            raise _http_error(e)
        potw = svc.player_of_the_week(conn, gameweek_id)
        totw = svc.team_of_the_week(conn, gameweek_id)
        most_owned = svc.most_owned_player(conn)
        return {
            "player_of_the_week": potw.to_dict() if potw else None,
            "team_of_the_week": totw.to_dict() if totw else None,
            "most_owned_player": most_owned.to_dict() if most_owned else None,
        }


# ---------- Leagues ----------


@app.post("/leagues")
def create_league(req: CreateLeagueRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return LeagueService().create_league(conn, req.name, req.created_by, req.join_code).to_dict()
        except ValueError as e:
            raise _http_error(e)


@app.post("/leagues/join")
def join_league(req: JoinLeagueRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return LeagueService().join_league(conn, req.team_id, req.join_code).to_dict()
        except ValueError as e:
            raise _http_error(e)


@app.get("/leagues/overall")
def overall_league() -> dict[str, Any]:
    with db_conn() as conn:
        return LeagueService().get_or_create_overall_league(conn).to_dict()


@app.get("/teams/{team_id}/leagues")
def team_leagues(team_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        return {"leagues": [l.to_dict() for l in LeagueService().leagues_for_team(conn, team_id)]}


@app.get("/leagues/{league_id}/leaderboard")
def leaderboard(league_id: str, gameweek_id: str | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            entries = LeagueService().leaderboard(conn, league_id, gameweek_id)
        except ValueError as e:
            raise _http_error(e)
        return {"league_id": league_id, "entries": [e.to_dict() for e in entries]}
