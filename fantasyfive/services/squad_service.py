"""
Squad management: build a squad, make transfers, swap the bench, pick a captain, play chips.
Every write is validated first and then committed in a single transaction.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Iterable

from fantasyfive.chips import ChipType, can_use_chip, parse_chip_type
from fantasyfive.config import DEFAULT_BUDGET, FREE_TRANSFERS_PER_GAMEWEEK, TRANSFER_POINT_COST
from fantasyfive.models import ChipUsage, Team, TeamPlayer, Transfer
from fantasyfive.persistence.repositories import (
    ChipRepository,
    GameweekRepository,
    PlayerRepository,
    TeamRepository,
    TransferRepository,
    UserRepository,
)
from fantasyfive.services.aggregation import TeamNotFoundError
from fantasyfive.services.gameweek_service import NoActiveGameweekError
from fantasyfive.services.league_service import LeagueService
from fantasyfive.validation import (
    RosterEntry,
    SquadValidation,
    TransferValidation,
    check_budget,
    roster_spend,
    validate_bench_swap,
    validate_squad,
    validate_squad_submission,
    validate_transfer,
)

logger = logging.getLogger(__name__)


# ---------- Exceptions ----------


class SquadRejectedError(ValueError):
    """Squad failed validation; errors lists every reason."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class TransferRejectedError(ValueError):
    """Transfer, bench swap or captain change is not allowed."""

    def __init__(self, reason: str, is_position_locked: bool = False) -> None:
        super().__init__(reason)
        self.reason = reason
        self.is_position_locked = is_position_locked


class ChipUnavailableError(ValueError):
    """Chip is on cooldown or already played this gameweek."""


def roster_entries(roster: Iterable[TeamPlayer]) -> list[RosterEntry]:
    """Validator snapshot of a stored roster (players must be attached)."""
    entries = []
    for member in roster:
        if member.player is None:
            raise ValueError(f"Roster member {member.player_id} has no catalog player attached")
        entries.append(
            RosterEntry(
                player_id=member.player_id,
                position=member.player.position,
                is_on_bench=member.is_on_bench,
                price=member.player.price,
            )
        )
    return entries


def captain_of(roster: Iterable[TeamPlayer]) -> str | None:
    return next((m.player_id for m in roster if m.is_captain), None)


# ---------- SquadService ----------


class SquadService:
    """
    User-side squad operations.
    Roster reads come from TeamRepository.get_roster; validation is delegated to fantasyfive.validation.
    """

    def __init__(self) -> None:
        self._user_repo = UserRepository()
        self._player_repo = PlayerRepository()
        self._team_repo = TeamRepository()
        self._gameweek_repo = GameweekRepository()
        self._transfer_repo = TransferRepository()
        self._chip_repo = ChipRepository()
        self._league_service = LeagueService()

    def get_team(self, conn: sqlite3.Connection, team_id: str) -> Team:
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise TeamNotFoundError(f"Team not found: {team_id}")
        return team

    def get_team_for_user(self, conn: sqlite3.Connection, user_id: str) -> Team:
        team = self._team_repo.get_by_user(conn, user_id)
        if team is None:
            raise TeamNotFoundError(f"User {user_id} has no team")
        return team

    def get_roster(self, conn: sqlite3.Connection, team_id: str) -> list[TeamPlayer]:
        self.get_team(conn, team_id)
        return self._team_repo.get_roster(conn, team_id)

    def squad_status(self, conn: sqlite3.Connection, team_id: str) -> SquadValidation:
        """Formation check of the stored roster, including which players are locked."""
        return validate_squad(roster_entries(self.get_roster(conn, team_id)))

    # ---------- Squad save ----------

    def save_squad(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        name: str,
        player_ids: list[str],
        captain_id: str | None,
        bench_id: str | None,
    ) -> Team:
        """
        Create the user's team, or replace its roster while no gameweek is active.
        Once a gameweek is running an existing squad only changes through transfers.
        New teams join the overall league.
        Raises SquadRejectedError with every validation error; nothing is written on rejection.
        """
        if self._user_repo.get(conn, user_id) is None:
            raise SquadRejectedError([f"Unknown user: {user_id}"])
        team = self._team_repo.get_by_user(conn, user_id)
        if team is not None and self._gameweek_repo.get_active(conn) is not None:
            raise SquadRejectedError(["Squad cannot be rebuilt while a gameweek is active; use transfers"])

        players = self._player_repo.get_many(conn, player_ids)
        unknown = [pid for pid in player_ids if pid not in players]
        if unknown:
            raise SquadRejectedError([f"Unknown player: {pid}" for pid in unknown])
        entries = [
            RosterEntry(
                player_id=pid,
                position=players[pid].position,
                is_on_bench=pid == bench_id,
                price=players[pid].price,
            )
            for pid in player_ids
        ]
        budget = team.budget if team is not None else DEFAULT_BUDGET
        validation = validate_squad_submission(entries, captain_id, budget)
        if not validation.is_valid:
            logger.warning("Rejected squad for user %s: %s", user_id, "; ".join(validation.errors))
            raise SquadRejectedError(validation.errors)

        # Starters keep their submitted order; the bench player takes the last slot.
        ordered = [e for e in entries if not e.is_on_bench] + [e for e in entries if e.is_on_bench]
        members = [(e.player_id, slot, e.player_id == captain_id, e.is_on_bench) for slot, e in enumerate(ordered, start=1)]
        created = team is None
        try:
            if team is None:
                team = self._team_repo.create(
                    conn, user_id, name, DEFAULT_BUDGET, FREE_TRANSFERS_PER_GAMEWEEK, commit=False
                )
            elif name and name != team.name:
                self._team_repo.update_name(conn, team.id, name, commit=False)
            self._team_repo.replace_roster(conn, team.id, members, commit=False)
            if created:
                self._league_service.join_overall_league(conn, team.id, commit=False)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("%s squad %s for user %s (spend %s)", "Created" if created else "Replaced", team.id, user_id, validation.total_spend)
        return self.get_team(conn, team.id)

    # ---------- Transfers ----------

    def check_transfer(
        self, conn: sqlite3.Connection, team_id: str, player_out_id: str, player_in_id: str
    ) -> TransferValidation:
        """Everything transfer() checks apart from the active gameweek, without writing."""
        team = self.get_team(conn, team_id)
        roster = self._team_repo.get_roster(conn, team_id)
        out_member = next((m for m in roster if m.player_id == player_out_id), None)
        if out_member is None or out_member.player is None:
            return TransferValidation(can_transfer=False, reason="Outgoing player is not in the squad")
        incoming = self._player_repo.get(conn, player_in_id)
        if incoming is None:
            return TransferValidation(can_transfer=False, reason=f"Unknown player: {player_in_id}")
        if any(m.player_id == player_in_id for m in roster):
            return TransferValidation(can_transfer=False, reason="Incoming player is already in the squad")

        entries = roster_entries(roster)
        validation = validate_transfer(out_member.player.position, incoming.position, entries, out_player_id=player_out_id)
        if not validation.can_transfer:
            return validation
        spend = roster_spend(entries) - out_member.player.price + incoming.price
        over = check_budget(spend, team.budget)
        if over:
            return TransferValidation(can_transfer=False, reason=over[0])
        return validation

    def transfer(self, conn: sqlite3.Connection, team_id: str, player_out_id: str, player_in_id: str) -> Transfer:
        """
        Swap one squad member for a catalog player during the active gameweek.
        Free while the team has free transfers left, otherwise TRANSFER_POINT_COST points,
        deducted from this gameweek's score by the aggregator.
        """
        gameweek = self._gameweek_repo.get_active(conn)
        if gameweek is None:
            raise NoActiveGameweekError("Transfers need an active gameweek")
        validation = self.check_transfer(conn, team_id, player_out_id, player_in_id)
        if not validation.can_transfer:
            reason = validation.reason or "Transfer not allowed"
            logger.warning("Rejected transfer for team %s (%s -> %s): %s", team_id, player_out_id, player_in_id, reason)
            raise TransferRejectedError(reason, validation.is_position_locked)

        try:
            if not self._team_repo.swap_player(conn, team_id, player_out_id, player_in_id, commit=False):
                conn.rollback()
                logger.warning("Transfer for team %s lost a race: %s already left the squad", team_id, player_out_id)
                raise TransferRejectedError("Outgoing player is not in the squad")
            # Cost follows the stored free-transfer count at write time.
            used_free = self._team_repo.use_free_transfer(conn, team_id, commit=False)
            cost = 0 if used_free else TRANSFER_POINT_COST
            record = self._transfer_repo.create(
                conn, team_id, gameweek.id, player_out_id, player_in_id, cost, commit=False
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("Team %s transferred %s -> %s (cost %d)", team_id, player_out_id, player_in_id, cost)
        return record

    def list_transfers(self, conn: sqlite3.Connection, team_id: str, gameweek_id: str | None = None) -> list[Transfer]:
        self.get_team(conn, team_id)
        return self._transfer_repo.list_by_team(conn, team_id, gameweek_id)

    # ---------- Lineup ----------

    def swap_bench(self, conn: sqlite3.Connection, team_id: str, starter_id: str) -> list[TeamPlayer]:
        """Move starter_id to the bench and bring the bench player into the starting lineup."""
        roster = self.get_roster(conn, team_id)
        validation = validate_bench_swap(starter_id, roster_entries(roster), captain_of(roster))
        if not validation.can_transfer:
            raise TransferRejectedError(validation.reason or "Bench swap not allowed", validation.is_position_locked)
        bench = next(m for m in roster if m.is_on_bench)
        self._team_repo.swap_bench(conn, team_id, starter_id, bench.player_id)
        return self._team_repo.get_roster(conn, team_id)

    def set_captain(self, conn: sqlite3.Connection, team_id: str, player_id: str) -> list[TeamPlayer]:
        roster = self.get_roster(conn, team_id)
        member = next((m for m in roster if m.player_id == player_id), None)
        if member is None:
            raise TransferRejectedError("Captain must be a member of the squad")
        if member.is_on_bench:
            raise TransferRejectedError("Captain cannot be the bench player")
        self._team_repo.set_captain(conn, team_id, player_id)
        return self._team_repo.get_roster(conn, team_id)

    # ---------- Chips ----------

    def activate_chip(self, conn: sqlite3.Connection, team_id: str, chip_type: str | ChipType) -> ChipUsage:
        """Play a chip for the active gameweek, subject to the cooldown."""
        chip = parse_chip_type(chip_type)
        self.get_team(conn, team_id)
        gameweek = self._gameweek_repo.get_active(conn)
        if gameweek is None:
            raise NoActiveGameweekError("Chips can only be played during an active gameweek")
        if not can_use_chip(conn, team_id, chip, gameweek.number):
            raise ChipUnavailableError(f"{chip.value} is not available in gameweek {gameweek.number}")
        try:
            usage = self._chip_repo.create(conn, team_id, chip.value, gameweek.id)
        except sqlite3.IntegrityError:
            conn.rollback()
            raise ChipUnavailableError(f"{chip.value} already played in gameweek {gameweek.number}") from None
        logger.info("Team %s played %s in gameweek %d", team_id, chip.value, gameweek.number)
        return usage

    def chip_history(self, conn: sqlite3.Connection, team_id: str) -> list[ChipUsage]:
        self.get_team(conn, team_id)
        return self._chip_repo.list_by_team(conn, team_id)

    def chip_availability(self, conn: sqlite3.Connection, team_id: str, target_number: int) -> dict[str, bool]:
        self.get_team(conn, team_id)
        return {c.value: can_use_chip(conn, team_id, c, target_number) for c in ChipType}
