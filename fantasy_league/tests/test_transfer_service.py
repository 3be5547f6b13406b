"""
Tests for transfer counting and the transfer window lifecycle.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from fantasy_league.models import Week, WindowState
from fantasy_league.persistence.repositories import WeekRepository
from fantasy_league.roster import RosterEntryInput
from fantasy_league.services.errors import (
    TransferWindowClosed,
    UnpairedRosterChange,
    WindowTransitionError,
)
from fantasy_league.services.snapshot_service import SnapshotService
from fantasy_league.services.transfer_service import (
    MAX_TRANSFERS_PER_WEEK,
    UNLIMITED,
    TransferService,
    compute_transfers_from_snapshots,
    get_window_state,
)
from fantasy_league.tests.seed import BASE_BENCH, BASE_STARTERS, lineup, swap

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def transfer_service():
    return TransferService()


def _ids(entries):
    return [e.player_id for e in entries]


class TestComputeTransfers:
    def test_no_changes(self):
        assert compute_transfers_from_snapshots(lineup(), lineup()) == []

    def test_single_swap(self):
        after = lineup(starters=swap(BASE_STARTERS, "c1", "c5"))
        pairs = compute_transfers_from_snapshots(after, lineup())
        assert len(pairs) == 1
        assert (pairs[0].player_out, pairs[0].player_in, pairs[0].position) == ("c1", "c5", "cutter")

    def test_pairs_same_position_first(self):
        before = lineup()
        starters = swap(swap(BASE_STARTERS, "h1", "h4"), "r1", "r4")
        # list the new receiver before the new handler
        after = [e for e in lineup(starters=starters, captain="h2") if e.player_id == "r4"]
        after += [e for e in lineup(starters=starters, captain="h2") if e.player_id != "r4"]
        pairs = compute_transfers_from_snapshots(after, before)
        assert {(p.player_out, p.player_in) for p in pairs} == {("h1", "h4"), ("r1", "r4")}

    def test_cross_position_leftovers_pair_in_order(self):
        before = [RosterEntryInput(player_id="h1", position="handler")]
        after = [RosterEntryInput(player_id="c5", position="cutter")]
        pairs = compute_transfers_from_snapshots(after, before)
        assert [(p.player_out, p.player_in, p.position) for p in pairs] == [("h1", "c5", None)]

    def test_plain_ids(self):
        pairs = compute_transfers_from_snapshots(["a", "b", "x"], ["a", "b", "c"])
        assert [(p.player_out, p.player_in) for p in pairs] == [("c", "x")]

    def test_unequal_counts_raise(self):
        with pytest.raises(UnpairedRosterChange):
            compute_transfers_from_snapshots(["a", "b", "x", "y"], ["a", "b", "c"])


class TestRemainingTransfers:
    def test_first_week_is_unlimited(self, league, transfer_service):
        remaining = transfer_service.get_remaining_transfers(league.conn, league.team.id, league.week(1).id)
        assert remaining == UNLIMITED
        assert math.isinf(remaining)
        assert transfer_service.is_first_week(league.conn, league.team.id, league.week(1).id)

    def test_first_active_week_can_be_later_than_week_one(self, league, transfer_service):
        assert transfer_service.is_first_week(league.conn, league.team.id, league.week(2).id)

    def test_counts_against_preceding_snapshot(self, league, transfer_service):
        SnapshotService().save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
        week2 = league.week(2).id
        assert not transfer_service.is_first_week(league.conn, league.team.id, week2)

        base = BASE_STARTERS + BASE_BENCH
        assert transfer_service.get_remaining_transfers(league.conn, league.team.id, week2, base) == 2
        one = swap(base, "c1", "c5")
        assert transfer_service.get_remaining_transfers(league.conn, league.team.id, week2, one) == 1
        two = swap(one, "r1", "r4")
        assert transfer_service.get_remaining_transfers(league.conn, league.team.id, week2, two) == 0
        three = swap(two, "h2", "h4")
        assert transfer_service.get_remaining_transfers(league.conn, league.team.id, week2, three) == -1

    def test_uses_stored_snapshot_when_no_ids_given(self, league, transfer_service):
        svc = SnapshotService()
        svc.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
        svc.save_snapshot(
            league.conn, league.team.id, league.week(2).id,
            lineup(starters=swap(BASE_STARTERS, "c1", "c5")),
        )
        assert transfer_service.get_remaining_transfers(league.conn, league.team.id, league.week(2).id) == 1

    def test_skipped_week_compares_with_latest_earlier_snapshot(self, league, transfer_service):
        SnapshotService().save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
        ids = swap(BASE_STARTERS + BASE_BENCH, "c1", "c5")
        remaining = transfer_service.get_remaining_transfers(league.conn, league.team.id, league.week(3).id, ids)
        assert remaining == MAX_TRANSFERS_PER_WEEK - 1


def _week(**kwargs) -> Week:
    return Week(id="w", season_id="s", week_number=2, created_at=NOW, **kwargs)


class TestWindowState:
    def test_upcoming_until_previous_window_priced(self):
        assert get_window_state(_week(), previous_prices_calculated=False, now=NOW) == WindowState.UPCOMING

    def test_ready_once_priced(self):
        assert get_window_state(_week(), True, NOW) == WindowState.READY

    def test_open(self):
        week = _week(transfer_window_open=True, transfer_cutoff_time=NOW + timedelta(hours=1))
        assert get_window_state(week, True, NOW) == WindowState.OPEN

    def test_cutoff_passed_is_completed(self):
        week = _week(transfer_window_open=True, transfer_cutoff_time=NOW - timedelta(minutes=1))
        assert get_window_state(week, True, NOW) == WindowState.COMPLETED

    def test_closed_is_completed_even_if_prices_recalculated(self):
        week = _week(transfer_window_closed_at=NOW)
        assert get_window_state(week, True, NOW) == WindowState.COMPLETED
        assert get_window_state(week, False, NOW) == WindowState.COMPLETED


class TestWindowTransitions:
    def test_week_one_can_open_without_prices(self, league, transfer_service):
        week = transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)
        assert week.transfer_window_open
        assert transfer_service.get_week_window_state(league.conn, league.week(1).id, NOW) == WindowState.OPEN
        assert transfer_service.get_open_window(league.conn, league.season.id).id == league.week(1).id

    def test_later_week_needs_previous_prices(self, league, transfer_service):
        with pytest.raises(WindowTransitionError):
            transfer_service.open_transfer_window(league.conn, league.week(2).id, now=NOW)
        WeekRepository().set_prices_calculated(league.conn, league.week(1).id)
        assert transfer_service.get_week_window_state(league.conn, league.week(2).id, NOW) == WindowState.READY
        transfer_service.open_transfer_window(league.conn, league.week(2).id, now=NOW)

    def test_only_one_open_window_per_season(self, league, transfer_service):
        WeekRepository().set_prices_calculated(league.conn, league.week(1).id)
        transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)
        with pytest.raises(WindowTransitionError):
            transfer_service.open_transfer_window(league.conn, league.week(2).id, now=NOW)

    def test_open_is_idempotent(self, league, transfer_service):
        transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)
        transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)
        assert WeekRepository().get(league.conn, league.week(1).id).transfer_window_open

    def test_close_then_reopen_rejected(self, league, transfer_service):
        transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)
        closed = transfer_service.close_transfer_window(league.conn, league.week(1).id, now=NOW)
        assert not closed.transfer_window_open
        stored = WeekRepository().get(league.conn, league.week(1).id)
        assert stored.transfer_window_closed_at == NOW
        assert transfer_service.get_week_window_state(league.conn, league.week(1).id, NOW) == WindowState.COMPLETED
        with pytest.raises(WindowTransitionError):
            transfer_service.open_transfer_window(league.conn, league.week(1).id, now=NOW)

    def test_close_when_not_open_is_noop(self, league, transfer_service):
        week = transfer_service.close_transfer_window(league.conn, league.week(1).id, now=NOW)
        assert week.transfer_window_closed_at is None

    def test_can_make_transfer(self, league, transfer_service):
        week_id = league.week(1).id
        ok, reason = transfer_service.can_make_transfer(league.conn, week_id, NOW)
        assert not ok and "closed" in reason
        transfer_service.set_transfer_cutoff(league.conn, week_id, NOW + timedelta(hours=2))
        transfer_service.open_transfer_window(league.conn, week_id, now=NOW)
        assert transfer_service.can_make_transfer(league.conn, week_id, NOW) == (True, None)
        ok, reason = transfer_service.can_make_transfer(league.conn, week_id, NOW + timedelta(hours=3))
        assert not ok and "cutoff" in reason
        with pytest.raises(TransferWindowClosed):
            transfer_service.assert_can_make_transfer(league.conn, week_id, NOW + timedelta(hours=3))
