"""
Squad and transfer legality.
Pure functions over roster snapshots: nothing here reads or writes storage.
Failures come back as structured results; callers decide whether to reject.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from fantasyfive.config import BENCH_SIZE, SQUAD_SIZE
from fantasyfive.positions import POSITION_ORDER, Position, empty_position_counts, parse_position

TRANSFER_GENERIC_REASON = "Transfer would violate squad position requirements"


@dataclass(frozen=True)
class RosterEntry:
    """One member of an intended or current roster. price is only used by budget checks."""
    player_id: str
    position: Position
    is_on_bench: bool = False
    price: Decimal = Decimal("0")


@dataclass
class SquadValidation:
    is_valid: bool
    errors: list[str]
    position_counts: dict[Position, int]
    locked_player_ids: list[str]
    total_spend: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "position_counts": {p.value: n for p, n in self.position_counts.items()},
            "locked_player_ids": list(self.locked_player_ids),
        }
        if self.total_spend is not None:
            d["total_spend"] = float(self.total_spend)
        return d


@dataclass
class TransferValidation:
    can_transfer: bool
    is_position_locked: bool = False
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "can_transfer": self.can_transfer,
            "is_position_locked": self.is_position_locked,
        }
        if self.reason is not None:
            d["reason"] = self.reason
        return d


# ---------- Position counting ----------


def starters_of(roster: Iterable[RosterEntry]) -> list[RosterEntry]:
    return [e for e in roster if not e.is_on_bench]


def count_starters(roster: Iterable[RosterEntry]) -> dict[Position, int]:
    """Starters per position; bench members are not counted."""
    counts = empty_position_counts()
    for entry in starters_of(roster):
        counts[parse_position(entry.position)] += 1
    return counts


# ---------- Squad validation ----------


def validate_squad(roster: Iterable[RosterEntry]) -> SquadValidation:
    """
    Core formation check: at least one starter per position.
    Starters who are the only one at their position are reported as locked.
    Size, bench, captain and budget are separate checks (see validate_squad_submission).
    """
    entries = list(roster)
    starters = starters_of(entries)
    counts = count_starters(entries)
    errors: list[str] = []
    locked: list[str] = []
    for pos in POSITION_ORDER:
        if counts[pos] == 0:
            errors.append(f"At least 1 {pos.value} required in starters")
        elif counts[pos] == 1:
            only = next(e for e in starters if parse_position(e.position) is pos)
            locked.append(only.player_id)
    return SquadValidation(
        is_valid=not errors,
        errors=errors,
        position_counts=counts,
        locked_player_ids=locked,
    )


def check_roster_shape(roster: Iterable[RosterEntry], captain_id: str | None) -> list[str]:
    """Exactly SQUAD_SIZE distinct players, BENCH_SIZE on the bench, one captain among the starters."""
    entries = list(roster)
    errors: list[str] = []
    if len(entries) != SQUAD_SIZE:
        errors.append(f"Squad must have exactly {SQUAD_SIZE} players (got {len(entries)})")
    ids = [e.player_id for e in entries]
    if len(set(ids)) != len(ids):
        errors.append("The same player cannot be selected twice")
    bench = [e for e in entries if e.is_on_bench]
    if len(bench) != BENCH_SIZE:
        errors.append(f"Exactly {BENCH_SIZE} bench player required (got {len(bench)})")
    if captain_id is None:
        errors.append("A captain must be selected")
    elif captain_id not in ids:
        errors.append("Captain must be a member of the squad")
    elif any(e.player_id == captain_id for e in bench):
        errors.append("Captain cannot be the bench player")
    return errors


def roster_spend(roster: Iterable[RosterEntry]) -> Decimal:
    return sum((e.price for e in roster), Decimal("0"))


def check_budget(total_spend: Decimal, budget: Decimal) -> list[str]:
    if total_spend > budget:
        return [f"Total spend {total_spend} exceeds budget {budget}"]
    return []


def validate_squad_submission(
    roster: Iterable[RosterEntry],
    captain_id: str | None,
    budget: Decimal,
) -> SquadValidation:
    """Everything a roster must pass to be saved: shape, budget and formation."""
    entries = list(roster)
    spend = roster_spend(entries)
    formation = validate_squad(entries)
    errors = check_roster_shape(entries, captain_id) + check_budget(spend, budget) + formation.errors
    return SquadValidation(
        is_valid=not errors,
        errors=errors,
        position_counts=formation.position_counts,
        locked_player_ids=formation.locked_player_ids,
        total_spend=spend,
    )


# ---------- Transfer validation ----------


def validate_transfer(
    out_position: str | Position,
    in_position: str | Position,
    roster: Iterable[RosterEntry],
    out_player_id: str | None = None,
) -> TransferValidation:
    """
    Decide whether swapping a player of out_position for one of in_position keeps
    the starting lineup legal. Like-for-like swaps are always allowed.
    When out_player_id is given and that player is on the bench, the starting
    lineup does not change and the swap is allowed.
    """
    entries = list(roster)
    out_pos = parse_position(out_position)
    in_pos = parse_position(in_position)
    if out_pos is in_pos:
        return TransferValidation(can_transfer=True, is_position_locked=False)
    if out_player_id is not None and any(e.player_id == out_player_id and e.is_on_bench for e in entries):
        return TransferValidation(can_transfer=True, is_position_locked=False)

    counts = count_starters(entries)
    if counts[out_pos] == 1:
        return TransferValidation(
            can_transfer=False,
            is_position_locked=True,
            reason=(
                f"Cannot transfer your only {out_pos.value}. "
                f"You must have at least 1 {out_pos.value} in your starting lineup."
            ),
        )

    after = dict(counts)
    after[out_pos] -= 1
    after[in_pos] += 1
    if any(after[p] < 1 for p in POSITION_ORDER):
        return TransferValidation(can_transfer=False, is_position_locked=True, reason=TRANSFER_GENERIC_REASON)
    return TransferValidation(can_transfer=True, is_position_locked=False)


def validate_bench_swap(
    starter_id: str,
    roster: Iterable[RosterEntry],
    captain_id: str | None,
) -> TransferValidation:
    """Swap a starter with the bench player: same position rules as a transfer, and the captain stays on the pitch."""
    entries = list(roster)
    starter = next((e for e in entries if e.player_id == starter_id), None)
    bench = next((e for e in entries if e.is_on_bench), None)
    if starter is None:
        return TransferValidation(can_transfer=False, reason="Player is not in the squad")
    if starter.is_on_bench:
        return TransferValidation(can_transfer=False, reason="Player is already on the bench")
    if bench is None:
        return TransferValidation(can_transfer=False, reason="Squad has no bench player")
    if starter_id == captain_id:
        return TransferValidation(can_transfer=False, reason="Captain cannot be moved to the bench")
    return validate_transfer(starter.position, bench.position, entries, out_player_id=starter_id)
