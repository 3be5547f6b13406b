"""
Player price calculation over price windows.

Window 0 is each player's season starting value. Window N (N >= 1) is the
price after week N's stats and is what rosters for week N+1 are valued at.

    new_price = previous + (10 * avg_points - previous) / 4

where avg_points is week 1's points for window 1 and the mean of weeks N-1
and N for later windows. A week the player did not play counts as 0.
Correcting stats for week K recomputes windows K..last in order.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Iterable

from fantasy_league.models import PlayerGameStat, PriceWindowStatus, Week, WindowState
from fantasy_league.persistence.repositories import (
    GameRepository,
    PlayerPriceRepository,
    PlayerRepository,
    PlayerStatRepository,
    SeasonPlayerRepository,
    SeasonRepository,
    WeekRepository,
)
from fantasy_league.scoring import week_points
from fantasy_league.services.errors import NotFoundError, StatsNotReady
from fantasy_league.services.locks import season_locks
from fantasy_league.services.transfer_service import get_window_state

logger = logging.getLogger(__name__)

PRICE_MULTIPLIER = 10
PRICE_DAMPING = 4


class PriceService:
    """Computes, stores and looks up per-window player prices for a season."""

    def __init__(self) -> None:
        self._season_repo = SeasonRepository()
        self._week_repo = WeekRepository()
        self._game_repo = GameRepository()
        self._stat_repo = PlayerStatRepository()
        self._player_repo = PlayerRepository()
        self._season_player_repo = SeasonPlayerRepository()
        self._price_repo = PlayerPriceRepository()

    # ---------- Pure rules ----------

    @staticmethod
    def calculate_new_price(previous_price: float, avg_points: float) -> float:
        """Move a quarter of the way from previous_price toward 10 * avg_points. Stored unrounded."""
        return previous_price + (PRICE_MULTIPLIER * avg_points - previous_price) / PRICE_DAMPING

    @staticmethod
    def average_points(points_by_week: dict[int, float], window_number: int) -> float:
        if window_number < 1:
            raise ValueError(f"Window must be >= 1, got {window_number}")
        current = points_by_week.get(window_number, 0)
        if window_number == 1:
            return float(current)
        return (points_by_week.get(window_number - 1, 0) + current) / 2

    # ---------- Stats readiness ----------

    def has_required_stats(self, conn: sqlite3.Connection, week_id: str) -> bool:
        """At least one game, every game completed, and every game has a stat row."""
        games = self._game_repo.list_by_week(conn, week_id)
        if not games:
            return False
        for game in games:
            if not game.is_completed:
                return False
            if self._stat_repo.count_by_game(conn, game.id) == 0:
                return False
        return True

    def weekly_points(
        self, conn: sqlite3.Connection, week_id: str, player_ids: Iterable[str] | None = None
    ) -> dict[str, int]:
        """Fantasy points per player over the week's completed games (no captain bonus)."""
        game_ids = [g.id for g in self._game_repo.list_by_week(conn, week_id) if g.is_completed]
        stats = self._stat_repo.list_by_games(conn, game_ids, player_ids)
        by_player: dict[str, list[PlayerGameStat]] = {}
        for s in stats:
            by_player.setdefault(s.player_id, []).append(s)
        return {pid: week_points(rows) for pid, rows in by_player.items()}

    # ---------- Window calculation ----------

    def _weeks_by_number(self, conn: sqlite3.Connection, season_id: str) -> dict[int, Week]:
        return {w.week_number: w for w in self._week_repo.list_by_season(conn, season_id)}

    def _previous_prices(
        self, conn: sqlite3.Connection, season_id: str, window_number: int
    ) -> dict[str, float]:
        """Window N-1 price per season player; falls back to the latest earlier window, then starting value."""
        season_players = self._season_player_repo.list_by_season(conn, season_id)
        prices = {sp.player_id: sp.starting_value for sp in season_players}
        stored = self._price_repo.latest_at_or_before(conn, season_id, prices.keys(), window_number - 1)
        for pid, price in stored.items():
            prices[pid] = price.price
        return prices

    def calculate_window(self, conn: sqlite3.Connection, season_id: str, window_number: int) -> dict[str, float]:
        """
        Compute and store prices for one window from the window before it.
        Marks the week's prices_calculated flag; transfer window fields are left alone.
        """
        if window_number < 1:
            raise ValueError(f"Window must be >= 1, got {window_number}")
        weeks = self._weeks_by_number(conn, season_id)
        week = weeks.get(window_number)
        if week is None:
            raise NotFoundError(f"Week {window_number} not found in season {season_id}")
        if not self.has_required_stats(conn, week.id):
            raise StatsNotReady(f"Week {window_number} does not have completed games with stats")

        previous = self._previous_prices(conn, season_id, window_number)
        points_by_week: dict[int, dict[str, int]] = {window_number: self.weekly_points(conn, week.id, previous.keys())}
        prior_week = weeks.get(window_number - 1)
        if window_number > 1 and prior_week is not None:
            points_by_week[window_number - 1] = self.weekly_points(conn, prior_week.id, previous.keys())

        new_prices: dict[str, float] = {}
        for pid, prev_price in previous.items():
            player_points = {n: pts.get(pid, 0) for n, pts in points_by_week.items()}
            avg = self.average_points(player_points, window_number)
            new_prices[pid] = self.calculate_new_price(prev_price, avg)

        self._price_repo.upsert_many(conn, season_id, window_number, new_prices)
        self._week_repo.set_prices_calculated(conn, week.id, True)
        logger.info("Calculated window %s prices for %s players (season %s)", window_number, len(new_prices), season_id)
        return new_prices

    def calculate_from_window(self, conn: sqlite3.Connection, season_id: str, start_window: int) -> list[int]:
        """
        Recompute windows start_window..last window with stats, strictly ascending,
        under the season lock. Halts at the first failure; windows already written
        stay written. Player market values follow the latest calculated window.
        """
        if start_window < 1:
            raise ValueError(f"Start window must be >= 1, got {start_window}")
        if self._season_repo.get(conn, season_id) is None:
            raise NotFoundError(f"Season not found: {season_id}")

        updated: list[int] = []
        with season_locks.hold(season_id):
            windows = self.preview_cascade(conn, season_id, start_window)
            if not windows:
                raise StatsNotReady(f"Week {start_window} does not have completed games with stats")
            try:
                for window_number in windows:
                    self.calculate_window(conn, season_id, window_number)
                    updated.append(window_number)
            finally:
                if updated:
                    self._sync_market_values(conn, season_id)
        logger.info("Price cascade for season %s updated windows %s", season_id, updated)
        return updated

    def preview_cascade(self, conn: sqlite3.Connection, season_id: str, from_window: int) -> list[int]:
        """Windows a correction at from_window would recompute: from_window..last week with stats."""
        weeks = self._weeks_by_number(conn, season_id)
        with_stats = [n for n, w in weeks.items() if n >= from_window and self.has_required_stats(conn, w.id)]
        if not with_stats:
            return []
        return list(range(from_window, max(with_stats) + 1))

    def _sync_market_values(self, conn: sqlite3.Connection, season_id: str) -> None:
        calculated = [w.week_number for w in self._week_repo.list_by_season(conn, season_id) if w.prices_calculated]
        if not calculated:
            return
        latest = max(calculated)
        prices = self._price_repo.list_by_window(conn, season_id, latest)
        self._player_repo.update_market_values(conn, {pid: p.price for pid, p in prices.items()})

    # ---------- Value lookup ----------

    def get_player_values(
        self, conn: sqlite3.Connection, season_id: str, player_ids: Iterable[str], week_number: int
    ) -> dict[str, float]:
        """
        Value of each player for a roster in week_number: the latest calculated
        window at or before week_number - 1, else the season starting value.
        """
        ids = list(dict.fromkeys(player_ids))
        values: dict[str, float] = {}
        for pid in ids:
            sp = self._season_player_repo.get(conn, season_id, pid)
            if sp is not None:
                values[pid] = sp.starting_value
            else:
                player = self._player_repo.get(conn, pid)
                if player is None:
                    raise NotFoundError(f"Player not found: {pid}")
                values[pid] = player.starting_value
        stored = self._price_repo.latest_at_or_before(conn, season_id, ids, week_number - 1)
        for pid, price in stored.items():
            values[pid] = price.price
        return values

    def get_player_value(self, conn: sqlite3.Connection, season_id: str, player_id: str, week_number: int) -> float:
        return self.get_player_values(conn, season_id, [player_id], week_number)[player_id]

    # ---------- Window status ----------

    def get_window_statuses(
        self, conn: sqlite3.Connection, season_id: str, now: datetime | None = None
    ) -> list[PriceWindowStatus]:
        """
        One row per window 0..N. Row N's state is that of the transfer window
        priced by it, i.e. week N+1's (last window has no following week).
        """
        weeks = self._weeks_by_number(conn, season_id)
        statuses: list[PriceWindowStatus] = []
        last = max(weeks) if weeks else 0
        for n in range(0, last + 1):
            week = weeks.get(n)
            priced = True if n == 0 else bool(week and week.prices_calculated)
            next_week = weeks.get(n + 1)
            if next_week is not None:
                state = get_window_state(next_week, priced, now)
            else:
                state = WindowState.COMPLETED if priced else WindowState.UPCOMING
            statuses.append(PriceWindowStatus(
                window_number=n,
                week_id=week.id if week else None,
                prices_calculated=priced,
                has_required_stats=bool(week and self.has_required_stats(conn, week.id)),
                state=state.value,
            ))
        return statuses
