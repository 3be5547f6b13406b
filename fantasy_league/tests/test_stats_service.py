"""
Tests for stats entry and the price/score cascades it triggers.
"""
from __future__ import annotations

import pytest

from fantasy_league.models import PlayerGameStat
from fantasy_league.persistence.repositories import (
    GameRepository,
    PlayerPriceRepository,
    PlayerStatRepository,
    WeekRepository,
    WeekScoreRepository,
)
from fantasy_league.services.errors import InvalidStatLine, NotFoundError
from fantasy_league.services.snapshot_service import SnapshotService
from fantasy_league.services.stats_service import StatsService, validate_stat_line
from fantasy_league.tests.seed import lineup


@pytest.fixture
def stats_service():
    return StatsService()


class TestValidateStatLine:
    def test_played_line_ok(self):
        validate_stat_line(PlayerGameStat("h1", "g1", goals=2, played=True))

    def test_unplayed_with_counters_rejected(self):
        with pytest.raises(InvalidStatLine):
            validate_stat_line(PlayerGameStat("h1", "g1", blocks=1, played=False))

    def test_negative_rejected(self):
        with pytest.raises(InvalidStatLine):
            validate_stat_line(PlayerGameStat("h1", "g1", goals=-1, played=True))


def test_rejected_line_writes_nothing(league, stats_service):
    game = league.games[1]
    with pytest.raises(InvalidStatLine):
        stats_service.record_game_stats(
            league.conn, game.id,
            [{"player_id": "h1", "goals": 1, "played": True}, {"player_id": "h2", "assists": 1, "played": False}],
            15, 10,
        )
    assert PlayerStatRepository().list_by_game(league.conn, game.id) == []
    assert not GameRepository().get(league.conn, game.id).is_completed


def test_unknown_game(league, stats_service):
    with pytest.raises(NotFoundError):
        stats_service.record_game_stats(league.conn, "nope", [], 0, 0)


def test_records_stats_and_completes_game(league, stats_service):
    game = league.games[1]
    result = stats_service.record_game_stats(
        league.conn, game.id, [{"player_id": "h1", "goals": 3, "played": True}], 15, 13
    )
    stored = GameRepository().get(league.conn, game.id)
    assert stored.is_completed and (stored.home_score, stored.away_score) == (15, 13)
    assert result.stats_recorded == 1
    assert result.windows_updated == [1]


def test_stats_entry_prices_and_scores_week(league, stats_service):
    SnapshotService().save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h1"))
    result = stats_service.record_game_stats(
        league.conn, league.games[1].id,
        [
            {"player_id": "h1", "goals": 2, "played": True},
            {"player_id": "c1", "played": False},
            {"player_id": "c4", "blocks": 1, "played": True},
        ],
        15, 11,
    )
    assert result.teams_rescored == [league.team.id]
    assert result.teams_failed == {}
    score = WeekScoreRepository().get(league.conn, league.team.id, league.week(1).id)
    assert score.captain_points == 4
    assert score.total_points == 3
    assert PlayerPriceRepository().get(league.conn, league.season.id, "h1", 1).price == 54 + (20 - 54) / 4


def test_correction_cascades_prices_and_scores(league, stats_service):
    snaps = SnapshotService()
    snaps.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain="h1"))
    stats_service.record_game_stats(league.conn, league.games[1].id, [{"player_id": "h1", "goals": 1, "played": True}], 15, 9)
    snaps.save_snapshot(league.conn, league.team.id, league.week(2).id, lineup(captain="h1"))
    stats_service.record_game_stats(league.conn, league.games[2].id, [{"player_id": "h1", "goals": 1, "played": True}], 15, 9)

    prices = PlayerPriceRepository()
    scores = WeekScoreRepository()
    week1_before = scores.get(league.conn, league.team.id, league.week(1).id).combined_points
    window2_before = prices.get(league.conn, league.season.id, "h1", 2).price

    result = stats_service.record_game_stats(
        league.conn, league.games[1].id, [{"player_id": "h1", "goals": 6, "played": True}], 15, 9
    )
    assert result.windows_updated == [1, 2]
    assert scores.get(league.conn, league.team.id, league.week(1).id).combined_points > week1_before
    assert prices.get(league.conn, league.season.id, "h1", 2).price > window2_before
    assert prices.get(league.conn, league.season.id, "h1", 2).version == 2


def test_team_without_captain_reported_not_blocking(league, stats_service):
    snaps = SnapshotService()
    snaps.save_snapshot(league.conn, league.team.id, league.week(1).id, lineup(captain=None))
    snaps.save_snapshot(league.conn, league.other_team.id, league.week(1).id, lineup(captain="h1"))
    result = stats_service.record_game_stats(
        league.conn, league.games[1].id, [{"player_id": "h1", "goals": 1, "played": True}], 15, 9
    )
    assert list(result.teams_failed) == [league.team.id]
    assert result.teams_rescored == [league.other_team.id]
    assert WeekScoreRepository().get(league.conn, league.other_team.id, league.week(1).id).captain_points == 2


def test_first_of_two_games_scores_without_pricing(league, stats_service):
    week1 = league.week(1)
    second = GameRepository().create(league.conn, week1.id, *league.real_team_ids)
    SnapshotService().save_snapshot(league.conn, league.team.id, week1.id, lineup(captain="h1"))

    result = stats_service.record_game_stats(
        league.conn, league.games[1].id, [{"player_id": "h1", "goals": 2, "played": True}], 15, 11
    )
    assert result.teams_rescored == [league.team.id]
    assert result.windows_updated == []
    assert result.price_error is None
    assert WeekScoreRepository().get(league.conn, league.team.id, week1.id).captain_points == 4
    assert not WeekRepository().get(league.conn, week1.id).prices_calculated

    result = stats_service.record_game_stats(
        league.conn, second.id, [{"player_id": "h2", "goals": 1, "played": True}], 15, 14
    )
    assert result.windows_updated == [1]
    assert WeekScoreRepository().get(league.conn, league.team.id, week1.id).total_points == 1


def test_correction_rescored_when_price_cascade_halts(league, stats_service):
    week1 = league.week(1)
    SnapshotService().save_snapshot(league.conn, league.team.id, week1.id, lineup(captain="h1"))
    stats_service.record_game_stats(league.conn, league.games[1].id, [{"player_id": "h1", "goals": 1, "played": True}], 15, 9)
    stats_service.record_game_stats(league.conn, league.games[3].id, [{"player_id": "h1", "goals": 1, "played": True}], 15, 9)
    assert WeekScoreRepository().get(league.conn, league.team.id, week1.id).captain_points == 2

    result = stats_service.record_game_stats(
        league.conn, league.games[1].id, [{"player_id": "h1", "goals": 5, "played": True}], 15, 9
    )
    assert result.teams_rescored == [league.team.id]
    assert result.price_error is not None
    assert result.windows_updated == []
    assert WeekScoreRepository().get(league.conn, league.team.id, week1.id).captain_points == 10
    # window 1 is written before the cascade halts at week 2
    assert PlayerPriceRepository().get(league.conn, league.season.id, "h1", 1).price == 54 + (50 - 54) / 4
