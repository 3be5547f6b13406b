#!/usr/bin/env python3
"""
Season demo: seed a small league, then for each week open the transfer window,
save a roster, close the window, record random game stats and print scores
and prices. Run from project root: python3 scripts/season_demo.py
"""
from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fantasy_league.config import configure_logging
from fantasy_league.models import PlayerGameStat, Position
from fantasy_league.persistence import (
    FantasyTeamRepository,
    GameRepository,
    PlayerRepository,
    RealTeamRepository,
    SeasonPlayerRepository,
    SeasonRepository,
    WeekRepository,
    WeekScoreRepository,
    get_connection,
    init_db,
    set_db_path,
)
from fantasy_league.roster import RosterEntryInput
from fantasy_league.services import PriceService, SnapshotService, StatsService, TransferService

# (name, position, starting value), assigned alternately to the two real teams
ROSTER_POOL = [
    ("Ada Hucks", Position.HANDLER, 60), ("Bo Resets", Position.HANDLER, 55), ("Cy Swing", Position.HANDLER, 45),
    ("Di Hammer", Position.HANDLER, 30),
    ("Ed Deep", Position.CUTTER, 65), ("Fay Under", Position.CUTTER, 55), ("Gus Break", Position.CUTTER, 50),
    ("Hal Layout", Position.CUTTER, 45), ("Ivy Reset", Position.CUTTER, 30),
    ("Jo Sky", Position.RECEIVER, 60), ("Kit Grab", Position.RECEIVER, 50), ("Lu Toe", Position.RECEIVER, 40),
    ("Mo Catch", Position.RECEIVER, 30),
]


def _stat_line(rng: random.Random, player_id: str, game_id: str) -> PlayerGameStat:
    if rng.random() < 0.15:
        return PlayerGameStat(player_id=player_id, game_id=game_id, played=False)
    return PlayerGameStat(
        player_id=player_id,
        game_id=game_id,
        goals=rng.randint(0, 4),
        assists=rng.randint(0, 3),
        blocks=rng.randint(0, 2),
        drops=rng.randint(0, 1),
        throwaways=rng.randint(0, 2),
        played=True,
    )


def _pick_roster(players: list, captain_index: int = 0) -> list[RosterEntryInput]:
    """First 2+1 handlers, 3+1 cutters, 2+1 receivers from players (already ordered)."""
    quotas = {Position.HANDLER: (2, 1), Position.CUTTER: (3, 1), Position.RECEIVER: (2, 1)}
    entries: list[RosterEntryInput] = []
    for position, (start, bench) in quotas.items():
        group = [p for p in players if p.position == position.value][: start + bench]
        for i, p in enumerate(group):
            entries.append(RosterEntryInput(player_id=p.id, position=position, is_benched=i >= start))
    starters = [e for e in entries if not e.is_benched]
    starters[captain_index].is_captain = True
    return entries


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a seeded fantasy ultimate season end to end.")
    parser.add_argument("--db", type=Path, default=PROJECT_ROOT / "data" / "season_demo.db", help="SQLite file (recreated)")
    parser.add_argument("--weeks", type=int, default=4, help="Number of weeks in the season")
    parser.add_argument("--seed", type=int, default=7, help="RNG seed for generated stats")
    parser.add_argument("--log-level", default=None, help="Logging level (default from FANTASY_LOG_LEVEL)")
    args = parser.parse_args()

    configure_logging(args.log_level)
    rng = random.Random(args.seed)
    if args.db.exists():
        args.db.unlink()
    set_db_path(args.db)
    init_db(db_path=args.db)

    conn = get_connection()
    try:
        season = SeasonRepository().create(conn, "Demo Season")
        real_repo = RealTeamRepository()
        real_teams = [real_repo.create(conn, "Harbour Hawks"), real_repo.create(conn, "Valley Flyers")]
        player_repo = PlayerRepository()
        season_players = SeasonPlayerRepository()
        players = []
        for i, (name, position, value) in enumerate(ROSTER_POOL):
            p = player_repo.create(conn, name, real_teams[i % 2].id, position.value, value)
            season_players.add(conn, season.id, p.id, value)
            players.append(p)

        week_repo = WeekRepository()
        game_repo = GameRepository()
        weeks = []
        games = {}
        for n in range(1, args.weeks + 1):
            week = week_repo.create(conn, season.id, n)
            weeks.append(week)
            games[week.id] = game_repo.create(conn, week.id, real_teams[0].id, real_teams[1].id)

        team = FantasyTeamRepository().create(conn, "demo-owner", season.id, "Demo Disc Club")
        transfers = TransferService()
        snapshots = SnapshotService(enforce_transfer_window=True)
        stats = StatsService()
        prices = PriceService()

        # Pool ordered by value; rotating it by one changes a single roster slot
        ordered = sorted(players, key=lambda p: -p.starting_value)
        for week in weeks:
            transfers.open_transfer_window(conn, week.id)
            roster = _pick_roster(ordered, captain_index=(week.week_number - 1) % 7)
            snap = snapshots.save_snapshot(conn, team.id, week.id, roster)
            transfers.close_transfer_window(conn, week.id)
            print(f"Week {week.week_number}: roster value {snap.total_value:.2f}, budget {snap.budget_remaining:.2f}")

            game = games[week.id]
            lines = [_stat_line(rng, p.id, game.id) for p in players]
            result = stats.record_game_stats(conn, game.id, lines, rng.randint(11, 15), rng.randint(5, 14))
            score = WeekScoreRepository().get(conn, team.id, week.id)
            if score is not None:
                subs = json.loads(score.substitutions_json or "[]")
                print(
                    f"  score {score.combined_points} (captain {score.captain_points}, others {score.total_points}),"
                    f" {len(subs)} substitutions, windows repriced {result.windows_updated}"
                )
            # rotate after odd weeks so every other week has one transfer
            ordered = ordered[1:] + ordered[:1] if week.week_number % 2 else ordered

        print("Window status:")
        for status in prices.get_window_statuses(conn, season.id):
            print(f"  {json.dumps(status.to_dict())}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
