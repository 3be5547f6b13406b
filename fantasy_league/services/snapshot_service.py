"""
Snapshot save gate. A weekly roster is persisted only after the transfer
window, lineup, transfer count and budget checks all pass; any failure leaves
stored snapshots, transfers and the team budget untouched.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Sequence

from fantasy_league.models import FantasyRosterSnapshot
from fantasy_league.persistence.repositories import (
    FantasyTeamRepository,
    SnapshotRepository,
    TransferRepository,
    WeekRepository,
)
from fantasy_league.roster import RosterEntryInput, validate_lineup
from fantasy_league.services.budget_service import BudgetService
from fantasy_league.services.errors import (
    InvalidBudget,
    InvalidLineup,
    NotFoundError,
    SnapshotLocked,
    TransferLimitExceeded,
)
from fantasy_league.services.locks import season_locks, team_locks
from fantasy_league.services.price_service import PriceService
from fantasy_league.services.transfer_service import MAX_TRANSFERS_PER_WEEK, TransferService

logger = logging.getLogger(__name__)


class SnapshotService:
    """
    Saves weekly roster snapshots. With enforce_transfer_window=True a save is
    only accepted while the week's transfer window is open.
    """

    def __init__(
        self,
        enforce_transfer_window: bool = False,
        price_service: PriceService | None = None,
    ) -> None:
        self.enforce_transfer_window = enforce_transfer_window
        self._price_service = price_service or PriceService()
        self._transfer_service = TransferService()
        self._budget_service = BudgetService(self._price_service)
        self._team_repo = FantasyTeamRepository()
        self._week_repo = WeekRepository()
        self._snapshot_repo = SnapshotRepository()
        self._transfer_repo = TransferRepository()

    def save_snapshot(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        week_id: str,
        roster: Sequence[RosterEntryInput | dict],
        now: datetime | None = None,
    ) -> FantasyRosterSnapshot:
        entries = [e if isinstance(e, RosterEntryInput) else RosterEntryInput(**e) for e in roster]
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Fantasy team not found: {team_id}")
        week = self._week_repo.get(conn, week_id)
        if week is None or week.season_id != team.season_id:
            raise NotFoundError(f"Week {week_id} not found in season {team.season_id}")

        with season_locks.hold(team.season_id), team_locks.hold((team_id, team.season_id)):
            if self.enforce_transfer_window:
                self._transfer_service.assert_can_make_transfer(conn, week_id, now)

            lineup = validate_lineup(entries)
            if not lineup.valid:
                raise InvalidLineup(lineup.errors)

            if self._snapshot_repo.count_after(conn, team_id, week.week_number) > 0:
                raise SnapshotLocked(
                    f"Team {team_id} already has a roster after week {week.week_number}; week is locked"
                )

            player_ids = [e.player_id for e in entries]
            remaining = self._transfer_service.get_remaining_transfers(conn, team_id, week_id, player_ids)
            if remaining < 0:
                raise TransferLimitExceeded(int(MAX_TRANSFERS_PER_WEEK - remaining), MAX_TRANSFERS_PER_WEEK)

            budget = self._budget_service.compute_budget(conn, team_id, week_id, entries)
            if not budget.is_valid:
                raise InvalidBudget(budget.budget)

            values = self._price_service.get_player_values(conn, team.season_id, player_ids, week.week_number)
            captain = next((e.player_id for e in entries if e.is_captain and not e.is_benched), None)
            # Snapshot, audit rows and team budget commit together or not at all
            with conn:
                snapshot = self._snapshot_repo.create(
                    conn,
                    fantasy_team_id=team_id,
                    week_id=week_id,
                    captain_player_id=captain,
                    total_value=budget.team_value,
                    budget_remaining=budget.budget,
                    entries=[
                        (e.player_id, e.position.value, e.is_benched, e.is_captain, values[e.player_id])
                        for e in entries
                    ],
                    commit=False,
                )
                self._transfer_repo.replace_for_week(
                    conn,
                    team_id,
                    week_id,
                    [(d.player_out_id, d.player_in_id, d.out_value, d.in_value) for d in budget.transfer_deltas],
                    commit=False,
                )
                self._team_repo.update_budget(conn, team_id, budget.budget, commit=False)

        logger.info(
            "Saved snapshot for team %s week %s: value=%.2f budget=%.2f transfers=%s",
            team_id, week.week_number, budget.team_value, budget.budget, len(budget.transfer_deltas),
        )
        return snapshot
