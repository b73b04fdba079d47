"""
Game rules and runtime settings.
Environment overrides use the FANTASYFIVE_ prefix; rule constants are fixed per season.
"""
from __future__ import annotations

import os
from decimal import Decimal

# ---------- Runtime ----------
DB_PATH = os.environ.get("FANTASYFIVE_DB_PATH")  # None = persistence default (data/fantasyfive.db)
LOG_LEVEL = os.environ.get("FANTASYFIVE_LOG_LEVEL", "INFO")
SEED_PLAYERS = os.environ.get("FANTASYFIVE_SEED_PLAYERS", "1") not in ("0", "false", "no")

# ---------- Squad rules ----------
DEFAULT_BUDGET = Decimal(os.environ.get("FANTASYFIVE_DEFAULT_BUDGET", "50.0"))
STARTERS = 5
BENCH_SIZE = 1
SQUAD_SIZE = STARTERS + BENCH_SIZE

# ---------- Transfers ----------
FREE_TRANSFERS_PER_GAMEWEEK = int(os.environ.get("FANTASYFIVE_FREE_TRANSFERS", "1"))
TRANSFER_POINT_COST = 2  # per transfer beyond the free allotment

# ---------- Chips ----------
CHIP_COOLDOWN_GAMEWEEKS = 7
CAPTAIN_MULTIPLIER = 2
TRIPLE_CAPTAIN_MULTIPLIER = 3
