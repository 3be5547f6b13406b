"""
Transfer rules: roster diffs between snapshots, the weekly transfer cap and
the transfer window lifecycle (upcoming -> ready -> open -> completed).

Transfers are never counted from stored rows; they are always recomputed by
diffing a roster against the team's immediately preceding snapshot.
"""
from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from fantasy_league.models import Week, WindowState
from fantasy_league.persistence.repositories import (
    SnapshotRepository,
    WeekRepository,
)
from fantasy_league.services.errors import (
    NotFoundError,
    TransferWindowClosed,
    UnpairedRosterChange,
    WindowTransitionError,
)

logger = logging.getLogger(__name__)

MAX_TRANSFERS_PER_WEEK = 2
UNLIMITED = math.inf


@dataclass
class TransferPair:
    player_out: str
    player_in: str
    position: str | None = None  # set when both sides share a position


# Anything with .player_id (and optionally .position), or a bare player id.
RosterItem = Any


def _player_id(item: RosterItem) -> str:
    return item if isinstance(item, str) else getattr(item, "player_id")


def _position(item: RosterItem) -> str | None:
    if isinstance(item, str):
        return None
    pos = getattr(item, "position", None)
    return pos.value if hasattr(pos, "value") else pos


def compute_transfers_from_snapshots(
    after: Sequence[RosterItem], before: Sequence[RosterItem]
) -> list[TransferPair]:
    """
    Pair players removed from `before` with players added in `after`.
    Same-position pairs are made first, then leftovers in input order.
    """
    before_ids = {_player_id(x) for x in before}
    after_ids = {_player_id(x) for x in after}
    removed = [x for x in before if _player_id(x) not in after_ids]
    added = [x for x in after if _player_id(x) not in before_ids]
    if len(removed) != len(added):
        raise UnpairedRosterChange(
            f"{len(removed)} players removed but {len(added)} added; each removal needs a replacement"
        )

    pairs: list[TransferPair] = []
    unmatched_in = list(added)
    unmatched_out: list[RosterItem] = []
    for out in removed:
        out_pos = _position(out)
        match = None
        if out_pos is not None:
            match = next((x for x in unmatched_in if _position(x) == out_pos), None)
        if match is None:
            unmatched_out.append(out)
            continue
        unmatched_in.remove(match)
        pairs.append(TransferPair(_player_id(out), _player_id(match), out_pos))
    for out, inn in zip(unmatched_out, unmatched_in):
        pairs.append(TransferPair(_player_id(out), _player_id(inn)))
    return pairs


def get_window_state(week: Week, previous_prices_calculated: bool, now: datetime | None = None) -> WindowState:
    """
    Transfer window state for a week. previous_prices_calculated is whether
    window week_number - 1 has prices (always true for week 1).
    """
    now = now or datetime.now(timezone.utc)
    if week.transfer_window_closed_at is not None:
        return WindowState.COMPLETED
    cutoff_passed = week.transfer_cutoff_time is not None and week.transfer_cutoff_time <= now
    if week.transfer_window_open:
        return WindowState.COMPLETED if cutoff_passed else WindowState.OPEN
    if not previous_prices_calculated:
        return WindowState.UPCOMING
    return WindowState.COMPLETED if cutoff_passed else WindowState.READY


# ---------- TransferService ----------


class TransferService:
    """Transfer counting and transfer window transitions."""

    def __init__(self) -> None:
        self._week_repo = WeekRepository()
        self._snapshot_repo = SnapshotRepository()

    def _require_week(self, conn: sqlite3.Connection, week_id: str) -> Week:
        week = self._week_repo.get(conn, week_id)
        if week is None:
            raise NotFoundError(f"Week not found: {week_id}")
        return week

    # ---------- Transfer counting ----------

    def is_first_week(self, conn: sqlite3.Connection, team_id: str, week_id: str) -> bool:
        """True iff the team has no snapshot at an earlier week."""
        week = self._require_week(conn, week_id)
        return self._snapshot_repo.count_before(conn, team_id, week.week_number) == 0

    def get_remaining_transfers(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        week_id: str,
        current_player_ids: Iterable[str] | None = None,
    ) -> float:
        """
        UNLIMITED in the team's first week. Otherwise MAX_TRANSFERS_PER_WEEK minus
        the changes between the current roster and the preceding snapshot. Not
        clamped: a negative result means the roster is over the limit.
        The current roster is current_player_ids when given, else the stored
        snapshot for this week.
        """
        week = self._require_week(conn, week_id)
        previous = self._snapshot_repo.get_previous(conn, team_id, week.week_number)
        if previous is None:
            return UNLIMITED
        if current_player_ids is not None:
            current: list[str] = list(current_player_ids)
        else:
            snapshot = self._snapshot_repo.get_by_team_and_week(conn, team_id, week_id)
            if snapshot is None:
                return MAX_TRANSFERS_PER_WEEK
            current = snapshot.player_ids()
        used = len(compute_transfers_from_snapshots(current, previous.player_ids()))
        return MAX_TRANSFERS_PER_WEEK - used

    # ---------- Transfer window ----------

    def _previous_prices_calculated(self, conn: sqlite3.Connection, week: Week) -> bool:
        if week.week_number <= 1:
            return True
        prev = self._week_repo.get_by_season_and_number(conn, week.season_id, week.week_number - 1)
        return bool(prev and prev.prices_calculated)

    def get_week_window_state(self, conn: sqlite3.Connection, week_id: str, now: datetime | None = None) -> WindowState:
        week = self._require_week(conn, week_id)
        return get_window_state(week, self._previous_prices_calculated(conn, week), now)

    def can_make_transfer(
        self, conn: sqlite3.Connection, week_id: str, now: datetime | None = None
    ) -> tuple[bool, str | None]:
        week = self._week_repo.get(conn, week_id)
        if week is None:
            return False, "Week not found"
        if not week.transfer_window_open:
            return False, "Transfer window is closed for this week"
        now = now or datetime.now(timezone.utc)
        if week.transfer_cutoff_time is not None and now >= week.transfer_cutoff_time:
            return False, "Transfer cutoff time has passed"
        return True, None

    def assert_can_make_transfer(self, conn: sqlite3.Connection, week_id: str, now: datetime | None = None) -> None:
        ok, reason = self.can_make_transfer(conn, week_id, now)
        if not ok:
            raise TransferWindowClosed(reason)

    def get_open_window(self, conn: sqlite3.Connection, season_id: str) -> Week | None:
        open_weeks = self._week_repo.list_open_windows(conn, season_id)
        return open_weeks[0] if open_weeks else None

    def open_transfer_window(self, conn: sqlite3.Connection, week_id: str, now: datetime | None = None) -> Week:
        """
        Open week's window. Requires state ready (window week_number - 1 priced,
        never opened) and no other open window in the season. No-op if already open.
        """
        week = self._require_week(conn, week_id)
        state = get_window_state(week, self._previous_prices_calculated(conn, week), now)
        if state == WindowState.OPEN:
            return week
        if state == WindowState.UPCOMING:
            raise WindowTransitionError(
                f"Week {week.week_number - 1} prices not yet calculated; cannot open week {week.week_number}"
            )
        if state == WindowState.COMPLETED:
            raise WindowTransitionError(f"Transfer window for week {week.week_number} is already completed")
        other = self.get_open_window(conn, week.season_id)
        if other is not None and other.id != week.id:
            raise WindowTransitionError(f"Transfer window for week {other.week_number} is already open; close it first")
        self._week_repo.update_transfer_window(conn, week.id, True, None)
        logger.info("Opened transfer window for week %s (season %s)", week.week_number, week.season_id)
        week.transfer_window_open = True
        return week

    def close_transfer_window(self, conn: sqlite3.Connection, week_id: str, now: datetime | None = None) -> Week:
        """Close an open window, recording closed_at. No-op if not open."""
        week = self._require_week(conn, week_id)
        if not week.transfer_window_open:
            return week
        closed_at = now or datetime.now(timezone.utc)
        self._week_repo.update_transfer_window(conn, week.id, False, closed_at)
        logger.info("Closed transfer window for week %s (season %s)", week.week_number, week.season_id)
        week.transfer_window_open = False
        week.transfer_window_closed_at = closed_at
        return week

    def set_transfer_cutoff(self, conn: sqlite3.Connection, week_id: str, cutoff: datetime | None) -> None:
        self._require_week(conn, week_id)
        self._week_repo.update_cutoff_time(conn, week_id, cutoff)
