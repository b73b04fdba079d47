#!/usr/bin/env python3
"""
Vertical slice: Seed players -> Build squad -> Activate gameweek -> Score -> Leaderboard.
Run from project root: python3 scripts/vertical_slice.py
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fantasyfive import config
from fantasyfive.persistence import PlayerRepository, UserRepository, get_connection, init_db
from fantasyfive.persistence.db import set_db_path
from fantasyfive.scoring import PerformanceStats
from fantasyfive.services import GameweekService, LeagueService, PerformanceEntry, SquadService

SQUAD = ["Dominick", "Elliott", "Chase", "Dustin", "Harry", "Dean"]


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    # Use data/vertical_slice.db for demo (distinct from the app database); start fresh each run
    db_path = PROJECT_ROOT / "data" / "vertical_slice.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path, seed_players=True)

    conn = get_connection()
    try:
        players = {p.name: p for p in PlayerRepository().list_all(conn)}
        squad_svc = SquadService()
        gw_svc = GameweekService()
        league_svc = LeagueService()

        # 1. User and squad
        user = UserRepository().create(conn, "Slice Demo User")
        ids = [players[n].id for n in SQUAD]
        team = squad_svc.save_squad(conn, user.id, "Champions", ids, players["Chase"].id, players["Dean"].id)
        print(f"Created team: {team.name} (id={team.id}, budget={team.budget})")

        # 2. Gameweek 1 with triple captain
        gw = gw_svc.create_gameweek(conn, 1)
        gw_svc.set_active_gameweek(conn, gw.id)
        squad_svc.activate_chip(conn, team.id, "triple_captain")

        # 3. One free transfer: Dustin -> Nicholas
        transfer = squad_svc.transfer(conn, team.id, players["Dustin"].id, players["Nicholas"].id)
        print(f"Transfer Dustin -> Nicholas (cost {transfer.cost})")

        # 4. Performances and aggregation
        result = gw_svc.submit_performances(
            conn,
            gw.id,
            [
                PerformanceEntry(players["Chase"].id, PerformanceStats(goals=1, assists=1, days_played=2)),
                PerformanceEntry(players["Harry"].id, PerformanceStats(goals=2, is_motm=True, days_played=4)),
                PerformanceEntry(players["Dominick"].id, PerformanceStats(yellow_cards=1, days_played=1)),
            ],
        )
        for perf in result.performances:
            print(f"  {perf.player_id[:8]}: {perf.points} pts")
        gw_svc.complete_gameweek(conn, gw.id)

        # 5. Leaderboard
        overall = league_svc.get_or_create_overall_league(conn)
        for entry in league_svc.leaderboard(conn, overall.id, gw.id):
            print(f"#{entry.rank} {entry.team_name}: {entry.total_points} total ({entry.gameweek_points} this week)")

        print("\nVertical slice complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
