"""
Stats entry: record a completed game's stat lines, then cascade prices and
team scores forward from that week.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Iterable

from fantasy_league.models import PlayerGameStat
from fantasy_league.persistence.repositories import (
    GameRepository,
    PlayerStatRepository,
    SnapshotRepository,
    WeekRepository,
)
from fantasy_league.services.errors import FantasyLeagueError, InvalidStatLine, NotFoundError
from fantasy_league.services.price_service import PriceService
from fantasy_league.services.score_service import ScoreService

logger = logging.getLogger(__name__)

_COUNTERS = ("goals", "assists", "blocks", "drops", "throwaways")


@dataclass
class StatsEntryResult:
    game_id: str
    week_number: int
    stats_recorded: int
    windows_updated: list[int] = field(default_factory=list)
    teams_rescored: list[str] = field(default_factory=list)
    teams_failed: dict[str, str] = field(default_factory=dict)  # team_id -> error
    price_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "week_number": self.week_number,
            "stats_recorded": self.stats_recorded,
            "windows_updated": self.windows_updated,
            "teams_rescored": self.teams_rescored,
            "teams_failed": self.teams_failed,
            "price_error": self.price_error,
        }


def validate_stat_line(stat: PlayerGameStat) -> None:
    """Counters are non-negative, and all zero when the player did not play."""
    for name in _COUNTERS:
        if getattr(stat, name) < 0:
            raise InvalidStatLine(f"{name} cannot be negative for player {stat.player_id}")
    if not stat.played and any(getattr(stat, name) for name in _COUNTERS):
        raise InvalidStatLine(f"Player {stat.player_id} did not play but has non-zero stats")


class StatsService:
    def __init__(
        self,
        price_service: PriceService | None = None,
        score_service: ScoreService | None = None,
    ) -> None:
        self._price_service = price_service or PriceService()
        self._score_service = score_service or ScoreService()
        self._game_repo = GameRepository()
        self._week_repo = WeekRepository()
        self._stat_repo = PlayerStatRepository()
        self._snapshot_repo = SnapshotRepository()

    def record_game_stats(
        self,
        conn: sqlite3.Connection,
        game_id: str,
        stat_lines: Iterable[PlayerGameStat | dict],
        home_score: int,
        away_score: int,
    ) -> StatsEntryResult:
        """
        Store stat lines for a game and mark it completed. Re-recording a game
        replaces the matching lines (a correction). Every team with a roster in
        that week or later is rescored straight away from the completed games.
        Once every game of the week has stats, prices are recalculated from that
        window; a cascade that halts is reported in price_error.
        """
        game = self._game_repo.get(conn, game_id)
        if game is None:
            raise NotFoundError(f"Game not found: {game_id}")
        week = self._week_repo.get(conn, game.week_id)
        if week is None:
            raise NotFoundError(f"Week not found: {game.week_id}")

        lines: list[PlayerGameStat] = []
        for raw in stat_lines:
            stat = raw if isinstance(raw, PlayerGameStat) else PlayerGameStat(**{"game_id": game_id, **raw})
            if stat.game_id != game_id:
                raise InvalidStatLine(f"Stat line for game {stat.game_id} submitted with game {game_id}")
            validate_stat_line(stat)
            lines.append(stat)

        self._stat_repo.upsert_many(conn, lines)
        self._game_repo.complete(conn, game_id, home_score, away_score)
        logger.info("Recorded %s stat lines for game %s (week %s)", len(lines), game_id, week.week_number)

        result = StatsEntryResult(game_id=game_id, week_number=week.week_number, stats_recorded=len(lines))
        for team_id in self._snapshot_repo.list_team_ids_from_week(conn, week.season_id, week.week_number):
            try:
                self._score_service.recalculate_all_subsequent_weeks(conn, team_id, week.id)
            except FantasyLeagueError as exc:
                # Reported per team; the remaining teams are still rescored
                logger.warning("Rescoring team %s from week %s failed: %s", team_id, week.week_number, exc)
                result.teams_failed[team_id] = str(exc)
                continue
            result.teams_rescored.append(team_id)

        if not self._price_service.has_required_stats(conn, week.id):
            logger.info("Week %s still has games without stats; prices not recalculated", week.week_number)
            return result
        try:
            result.windows_updated = self._price_service.calculate_from_window(
                conn, week.season_id, week.week_number
            )
        except FantasyLeagueError as exc:
            logger.warning("Price cascade from window %s halted: %s", week.week_number, exc)
            result.price_error = str(exc)
        return result
