"""
Salary-cap budget.

Week 1: budget = SALARY_CAP - value of the ten selected players.
Later weeks: budget carries forward from the preceding snapshot and moves only
through transfers, each adding (sell value - buy value) at current prices.
Price changes on players already held never move the budget.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from fantasy_league.persistence.repositories import (
    FantasyTeamRepository,
    SnapshotRepository,
    WeekRepository,
)
from fantasy_league.services.errors import InvalidBudget, NotFoundError
from fantasy_league.services.price_service import PriceService
from fantasy_league.services.transfer_service import (
    MAX_TRANSFERS_PER_WEEK,
    TransferPair,
    compute_transfers_from_snapshots,
)

logger = logging.getLogger(__name__)

SALARY_CAP = 550

__all__ = [
    "SALARY_CAP",
    "MAX_TRANSFERS_PER_WEEK",
    "TransferDelta",
    "BudgetCalculation",
    "BudgetService",
]


@dataclass
class TransferDelta:
    player_out_id: str
    player_in_id: str
    out_value: float
    in_value: float

    @property
    def delta(self) -> float:
        """Positive when the team sells for more than it buys."""
        return self.out_value - self.in_value

    def to_dict(self) -> dict[str, float | str]:
        return {
            "player_out_id": self.player_out_id,
            "player_in_id": self.player_in_id,
            "out_value": self.out_value,
            "in_value": self.in_value,
            "delta": self.delta,
        }


@dataclass
class BudgetCalculation:
    budget: float
    team_value: float
    transfer_deltas: list[TransferDelta] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.budget >= 0

    @property
    def error(self) -> str | None:
        if self.is_valid:
            return None
        return f"Budget exceeded by {abs(self.budget):.2f}"


class BudgetService:
    """Budget arithmetic plus the lookup of the previous snapshot's stored budget."""

    def __init__(self, price_service: PriceService | None = None) -> None:
        self._price_service = price_service or PriceService()
        self._team_repo = FantasyTeamRepository()
        self._week_repo = WeekRepository()
        self._snapshot_repo = SnapshotRepository()

    # ---------- Pure calculations ----------

    @staticmethod
    def calculate_initial_budget(player_values: Iterable[float]) -> BudgetCalculation:
        team_value = sum(player_values)
        return BudgetCalculation(budget=SALARY_CAP - team_value, team_value=team_value)

    @staticmethod
    def calculate_budget_after_transfers(
        previous_budget: float,
        transfers: Sequence[TransferPair],
        values: dict[str, float],
        team_value: float = 0.0,
    ) -> BudgetCalculation:
        """previous_budget + sum(out - in) with values taken from `values` (missing -> 0)."""
        deltas = [
            TransferDelta(
                player_out_id=t.player_out,
                player_in_id=t.player_in,
                out_value=values.get(t.player_out, 0.0),
                in_value=values.get(t.player_in, 0.0),
            )
            for t in transfers
        ]
        budget = previous_budget + sum(d.delta for d in deltas)
        return BudgetCalculation(budget=budget, team_value=team_value, transfer_deltas=deltas)

    @staticmethod
    def validate_budget(budget: float) -> bool:
        return budget >= 0

    @staticmethod
    def assert_valid_budget(budget: float) -> None:
        if budget < 0:
            raise InvalidBudget(budget)

    @staticmethod
    def validate_transfer_count(transfer_count: int, is_first_week: bool) -> bool:
        return is_first_week or transfer_count <= MAX_TRANSFERS_PER_WEEK

    # ---------- Budget for a roster save ----------

    def compute_budget(self, conn: sqlite3.Connection, team_id: str, week_id: str, roster_entries: Sequence) -> BudgetCalculation:
        """
        Budget the team would have after saving roster_entries for week_id.
        roster_entries need player_id and position (RosterEntryInput or snapshot entries).
        """
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Fantasy team not found: {team_id}")
        week = self._week_repo.get(conn, week_id)
        if week is None:
            raise NotFoundError(f"Week not found: {week_id}")

        roster_ids = [e.player_id for e in roster_entries]
        previous = self._snapshot_repo.get_previous(conn, team_id, week.week_number)
        involved = roster_ids + (previous.player_ids() if previous is not None else [])
        values = self._price_service.get_player_values(conn, team.season_id, involved, week.week_number)
        team_value = sum(values[pid] for pid in roster_ids)

        if previous is None:
            result = self.calculate_initial_budget(values[pid] for pid in roster_ids)
            logger.debug("Initial budget for team %s week %s: %.2f", team_id, week.week_number, result.budget)
            return result

        transfers = compute_transfers_from_snapshots(roster_entries, previous.entries)
        result = self.calculate_budget_after_transfers(previous.budget_remaining, transfers, values, team_value)
        logger.debug(
            "Budget for team %s week %s: %.2f -> %.2f over %s transfers",
            team_id, week.week_number, previous.budget_remaining, result.budget, len(transfers),
        )
        return result
