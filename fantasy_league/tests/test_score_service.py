"""
Tests for weekly team scoring: captain doubling, substitution, persistence, cascades.
"""
from __future__ import annotations

import json

import pytest

from fantasy_league.persistence.repositories import SnapshotRepository, WeekScoreRepository
from fantasy_league.services.errors import NoCaptainFound, NotFoundError, SnapshotNotFound
from fantasy_league.services.score_service import ScoreService
from fantasy_league.services.snapshot_service import SnapshotService
from fantasy_league.tests.seed import lineup


@pytest.fixture
def score_service():
    return ScoreService()


@pytest.fixture
def snapshots():
    return SnapshotService()


def test_captain_points_doubled_and_reported_separately(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h1"))
    league.record_stats(1, {
        "h1": {"goals": 2, "assists": 1},  # 4
        "h2": {"goals": 1},                # 1
        "c1": {"blocks": 1},               # 3
    })
    result = score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)
    assert result.captain_points == 8
    assert result.total_points == 4
    assert result.combined_points == 12
    assert result.substitutions == []


def test_auto_substitution_uses_bench_points(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h1"))
    league.record_stats(1, {
        "h1": {"goals": 1},
        "r3": {"assists": 2},  # bench receiver covers r1
        "c4": {"goals": 3},    # bench cutter covers c1
    })
    result = score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)
    assert result.captain_points == 2
    assert result.total_points == 4 + 3
    assert {(s.player_out, s.player_in) for s in result.substitutions} == {("r1", "r3"), ("c1", "c4")}


def test_substituted_captain_slot_is_still_doubled(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h1"))
    league.record_stats(1, {"h3": {"goals": 3}})
    result = score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)
    assert result.captain_points == 6
    assert result.total_points == 0


def test_save_persists_both_components_and_substitutions(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h2"))
    league.record_stats(1, {"h2": {"goals": 1}, "c4": {"blocks": 1}})
    saved = score_service.calculate_and_save_week_score(league.conn, league.team.id, league.week(1).id)
    stored = WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id)
    assert stored is not None
    assert stored.captain_points == saved.captain_points == 2
    assert stored.total_points == 3
    assert stored.combined_points == 5
    subs = json.loads(stored.substitutions_json)
    assert subs[0]["player_out"] == "c1" and subs[0]["player_in"] == "c4"


def test_save_twice_upserts(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
    league.record_stats(1, {"h1": {"goals": 1}})
    score_service.calculate_and_save_week_score(league.conn, league.team.id, league.week(1).id)
    league.record_stats(1, {"h1": {"goals": 4}})
    score_service.calculate_and_save_week_score(league.conn, league.team.id, league.week(1).id)
    stored = WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id)
    assert stored.captain_points == 8


def test_missing_snapshot_raises(league, score_service):
    with pytest.raises(SnapshotNotFound):
        score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)


def test_no_captain_raises_at_score_time(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain=None))
    league.record_stats(1, {"h1": {"goals": 1}})
    with pytest.raises(NoCaptainFound):
        score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)


def test_benched_captain_does_not_count(league, score_service, snapshots):
    entries = lineup(captain=None)
    entries[-1] = entries[-1].model_copy(update={"is_captain": True})
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, entries)
    with pytest.raises(NoCaptainFound):
        score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)


def test_only_completed_games_count(league, score_service, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
    league.record_stats(1, {"h1": {"goals": 5}, "h2": {"goals": 5}}, complete=False)
    result = score_service.calculate_week_score(league.conn, league.team.id, league.week(1).id)
    assert result.combined_points == 0


class TestRecalculateSubsequentWeeks:
    def test_correction_increases_score_and_reaches_later_weeks(self, league, score_service, snapshots):
        team_id = league.team.id
        snapshots.save_snapshot(league.conn, team_id, league.week(1).id, lineup(captain="h1"))
        snapshots.save_snapshot(league.conn, team_id, league.week(2).id, lineup(captain="h1"))
        league.record_stats(1, {"h1": {"goals": 1}})
        league.record_stats(2, {"h1": {"goals": 2}})
        before = score_service.calculate_and_save_week_score(league.conn, team_id, league.week(1).id)

        league.record_stats(1, {"h1": {"goals": 3}})
        rescored = score_service.recalculate_all_subsequent_weeks(league.conn, team_id, league.week(1).id)

        assert rescored == [league.week(1).id, league.week(2).id]
        repo = WeekScoreRepository()
        after = repo.get(league.conn, team_id, league.week(1).id)
        assert after.combined_points > before.combined_points
        assert repo.get(league.conn, team_id, league.week(2).id).captain_points == 4

    def test_idempotent(self, league, score_service, snapshots):
        snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
        league.record_stats(1, {"h1": {"goals": 1}, "c2": {"assists": 1}})
        score_service.recalculate_all_subsequent_weeks(league.conn, league.team.id, league.week(1).id)
        first = WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id)
        score_service.recalculate_all_subsequent_weeks(league.conn, league.team.id, league.week(1).id)
        second = WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id)
        assert (first.captain_points, first.total_points) == (second.captain_points, second.total_points)

    def test_starts_from_given_week(self, league, score_service, snapshots):
        for n in (1, 2, 3):
            snapshots.save_snapshot(league.conn, league.team.id, league.week(n).id, lineup())
        rescored = score_service.recalculate_all_subsequent_weeks(league.conn, league.team.id, league.week(2).id)
        assert rescored == [league.week(2).id, league.week(3).id]
        assert WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id) is None

    def test_halts_at_first_failure_keeping_earlier_weeks(self, league, score_service, snapshots):
        team_id = league.team.id
        snapshots.save_snapshot(league.conn, team_id, league.week(1).id, lineup(captain="h1"))
        snapshots.save_snapshot(league.conn, team_id, league.week(2).id, lineup(captain=None))
        snapshots.save_snapshot(league.conn, team_id, league.week(3).id, lineup(captain="h1"))
        with pytest.raises(NoCaptainFound):
            score_service.recalculate_all_subsequent_weeks(league.conn, team_id, league.week(1).id)
        repo = WeekScoreRepository()
        assert repo.get(league.conn, team_id, league.week(1).id) is not None
        assert repo.get(league.conn, team_id, league.week(3).id) is None

    def test_unknown_team(self, league, score_service):
        with pytest.raises(NotFoundError):
            score_service.recalculate_all_subsequent_weeks(league.conn, "nope", league.week(1).id)


def test_snapshot_entries_keep_submission_order(league, snapshots):
    snapshots.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup())
    snap = SnapshotRepository().get_by_team_and_week(league.conn, league.team.id, league.week(1).id)
    assert snap.player_ids()[:2] == ["h1", "h2"]
    assert [e.player_id for e in snap.bench] == ["h3", "c4", "r3"]
