"""
Weekly fantasy score for a team: load the week's snapshot, apply
auto-substitution, double the captain slot, persist.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field

from fantasy_league.models import FantasyRosterSnapshot, PlayerGameStat, Week, WeekScore
from fantasy_league.persistence.repositories import (
    FantasyTeamRepository,
    GameRepository,
    PlayerRepository,
    PlayerStatRepository,
    SnapshotRepository,
    WeekRepository,
    WeekScoreRepository,
)
from fantasy_league.scoring import CAPTAIN_MULTIPLIER, Substitution, resolve_lineup
from fantasy_league.services.errors import NoCaptainFound, NotFoundError, SnapshotNotFound
from fantasy_league.services.locks import team_locks

logger = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    captain_points: float
    total_points: float  # every starting slot except the captain's
    substitutions: list[Substitution] = field(default_factory=list)

    @property
    def combined_points(self) -> float:
        return self.captain_points + self.total_points

    def substitutions_json(self) -> str:
        return json.dumps([s.to_dict() for s in self.substitutions])


class ScoreService:
    def __init__(self) -> None:
        self._team_repo = FantasyTeamRepository()
        self._week_repo = WeekRepository()
        self._game_repo = GameRepository()
        self._player_repo = PlayerRepository()
        self._stat_repo = PlayerStatRepository()
        self._snapshot_repo = SnapshotRepository()
        self._score_repo = WeekScoreRepository()

    def _stats_for_snapshot(
        self, conn: sqlite3.Connection, week_id: str, snapshot: FantasyRosterSnapshot
    ) -> dict[str, list[PlayerGameStat]]:
        """Stat rows per rostered player from completed games involving that player's real team."""
        games = {g.id: g for g in self._game_repo.list_by_week(conn, week_id) if g.is_completed}
        player_ids = snapshot.player_ids()
        players = self._player_repo.list_by_ids(conn, player_ids)
        by_player: dict[str, list[PlayerGameStat]] = {pid: [] for pid in player_ids}
        for stat in self._stat_repo.list_by_games(conn, games.keys(), player_ids):
            player = players.get(stat.player_id)
            if player is not None and games[stat.game_id].involves(player.team_id):
                by_player[stat.player_id].append(stat)
        return by_player

    def calculate_week_score(self, conn: sqlite3.Connection, team_id: str, week_id: str) -> ScoreResult:
        """
        Score a team's week without persisting it.
        Raises SnapshotNotFound when the team has no roster for the week and
        NoCaptainFound unless exactly one starter is captain.
        """
        snapshot = self._snapshot_repo.get_by_team_and_week(conn, team_id, week_id)
        if snapshot is None:
            raise SnapshotNotFound(f"No snapshot for team {team_id} in week {week_id}")
        captains = [e for e in snapshot.starters if e.is_captain]
        if len(captains) != 1:
            raise NoCaptainFound(
                f"Snapshot {snapshot.id} has {len(captains)} starting captains; exactly one is required"
            )

        slots, subs = resolve_lineup(snapshot.entries, self._stats_for_snapshot(conn, week_id, snapshot))
        captain_points = 0
        total_points = 0
        for slot in slots:
            if slot.is_captain:
                captain_points += slot.points * CAPTAIN_MULTIPLIER
            else:
                total_points += slot.points
        return ScoreResult(captain_points=captain_points, total_points=total_points, substitutions=subs)

    def calculate_and_save_week_score(self, conn: sqlite3.Connection, team_id: str, week_id: str) -> WeekScore:
        result = self.calculate_week_score(conn, team_id, week_id)
        score = self._score_repo.upsert(
            conn, team_id, week_id, result.captain_points, result.total_points, result.substitutions_json()
        )
        logger.info(
            "Saved score for team %s week %s: captain=%s others=%s subs=%s",
            team_id, week_id, result.captain_points, result.total_points, len(result.substitutions),
        )
        return score

    def recalculate_all_subsequent_weeks(self, conn: sqlite3.Connection, team_id: str, from_week_id: str) -> list[str]:
        """
        Re-score from_week_id and every later week the team has a snapshot for,
        in week order, under the team's lock. Stops at the first failure; weeks
        already saved stay saved. Returns the week ids that were rescored.
        """
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Fantasy team not found: {team_id}")
        from_week = self._week_repo.get(conn, from_week_id)
        if from_week is None:
            raise NotFoundError(f"Week not found: {from_week_id}")

        rescored: list[str] = []
        with team_locks.hold((team_id, team.season_id)):
            weeks: list[Week] = [
                w for w in self._week_repo.list_by_season(conn, team.season_id)
                if w.week_number >= from_week.week_number
            ]
            for week in weeks:
                if self._snapshot_repo.get_by_team_and_week(conn, team_id, week.id) is None:
                    continue
                try:
                    self.calculate_and_save_week_score(conn, team_id, week.id)
                except Exception:
                    logger.exception("Score cascade for team %s halted at week %s", team_id, week.week_number)
                    raise
                rescored.append(week.id)
        return rescored
