"""
Repository interfaces for fantasy league data.
No business logic, only read/write operations.
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Iterable

from fantasy_league.models import (
    FantasyRosterSnapshot,
    FantasyTeam,
    Game,
    GameStatus,
    Player,
    PlayerGameStat,
    PlayerPrice,
    RealTeam,
    Season,
    SeasonPlayer,
    SnapshotPlayerEntry,
    Transfer,
    Week,
    WeekScore,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _parse_optional_datetime(s: str | None) -> datetime | None:
    return _parse_datetime(s) if s else None


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


# ---------- SeasonRepository ----------


class SeasonRepository:
    """CRUD for seasons. No business logic."""

    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> Season:
        sid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO seasons (id, name, created_at) VALUES (?, ?, ?)",
            (sid, name, now.isoformat()),
        )
        conn.commit()
        return Season(id=sid, name=name, created_at=now)

    def get(self, conn: sqlite3.Connection, season_id: str) -> Season | None:
        row = conn.execute(
            "SELECT id, name, created_at FROM seasons WHERE id = ?", (season_id,)
        ).fetchone()
        if row is None:
            return None
        return Season(id=row["id"], name=row["name"], created_at=_parse_datetime(row["created_at"]))


# ---------- WeekRepository ----------

_WEEK_COLS = (
    "id, season_id, week_number, transfer_window_open, transfer_cutoff_time, "
    "transfer_window_closed_at, prices_calculated, created_at"
)


def _row_to_week(row: sqlite3.Row) -> Week:
    return Week(
        id=row["id"],
        season_id=row["season_id"],
        week_number=row["week_number"],
        created_at=_parse_datetime(row["created_at"]),
        transfer_window_open=bool(row["transfer_window_open"]),
        transfer_cutoff_time=_parse_optional_datetime(row["transfer_cutoff_time"]),
        transfer_window_closed_at=_parse_optional_datetime(row["transfer_window_closed_at"]),
        prices_calculated=bool(row["prices_calculated"]),
    )


class WeekRepository:
    """CRUD for weeks and their transfer window flags."""

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        week_number: int,
        transfer_cutoff_time: datetime | None = None,
        id: str | None = None,
    ) -> Week:
        wid = id or str(uuid.uuid4())
        now = _now()
        cutoff = transfer_cutoff_time.isoformat() if transfer_cutoff_time else None
        conn.execute(
            f"INSERT INTO weeks ({_WEEK_COLS}) VALUES (?, ?, ?, 0, ?, NULL, 0, ?)",
            (wid, season_id, week_number, cutoff, now.isoformat()),
        )
        conn.commit()
        return Week(
            id=wid, season_id=season_id, week_number=week_number, created_at=now,
            transfer_cutoff_time=transfer_cutoff_time,
        )

    def get(self, conn: sqlite3.Connection, week_id: str) -> Week | None:
        row = conn.execute(f"SELECT {_WEEK_COLS} FROM weeks WHERE id = ?", (week_id,)).fetchone()
        return _row_to_week(row) if row is not None else None

    def get_by_season_and_number(self, conn: sqlite3.Connection, season_id: str, week_number: int) -> Week | None:
        row = conn.execute(
            f"SELECT {_WEEK_COLS} FROM weeks WHERE season_id = ? AND week_number = ?",
            (season_id, week_number),
        ).fetchone()
        return _row_to_week(row) if row is not None else None

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[Week]:
        """Weeks ordered by week_number ascending."""
        rows = conn.execute(
            f"SELECT {_WEEK_COLS} FROM weeks WHERE season_id = ? ORDER BY week_number",
            (season_id,),
        ).fetchall()
        return [_row_to_week(r) for r in rows]

    def list_open_windows(self, conn: sqlite3.Connection, season_id: str) -> list[Week]:
        rows = conn.execute(
            f"SELECT {_WEEK_COLS} FROM weeks WHERE season_id = ? AND transfer_window_open = 1 ORDER BY week_number",
            (season_id,),
        ).fetchall()
        return [_row_to_week(r) for r in rows]

    def update_transfer_window(
        self,
        conn: sqlite3.Connection,
        week_id: str,
        is_open: bool,
        closed_at: datetime | None,
    ) -> None:
        conn.execute(
            "UPDATE weeks SET transfer_window_open = ?, transfer_window_closed_at = ? WHERE id = ?",
            (1 if is_open else 0, closed_at.isoformat() if closed_at else None, week_id),
        )
        conn.commit()

    def update_cutoff_time(self, conn: sqlite3.Connection, week_id: str, cutoff: datetime | None) -> None:
        conn.execute(
            "UPDATE weeks SET transfer_cutoff_time = ? WHERE id = ?",
            (cutoff.isoformat() if cutoff else None, week_id),
        )
        conn.commit()

    def set_prices_calculated(self, conn: sqlite3.Connection, week_id: str, calculated: bool = True) -> None:
        conn.execute(
            "UPDATE weeks SET prices_calculated = ? WHERE id = ?", (1 if calculated else 0, week_id)
        )
        conn.commit()


# ---------- RealTeamRepository ----------


class RealTeamRepository:
    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> RealTeam:
        tid = id or str(uuid.uuid4())
        conn.execute("INSERT INTO real_teams (id, name) VALUES (?, ?)", (tid, name))
        conn.commit()
        return RealTeam(id=tid, name=name)

    def get(self, conn: sqlite3.Connection, team_id: str) -> RealTeam | None:
        row = conn.execute("SELECT id, name FROM real_teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            return None
        return RealTeam(id=row["id"], name=row["name"])


# ---------- GameRepository ----------

_GAME_COLS = "id, week_id, home_team_id, away_team_id, status, home_score, away_score"


def _row_to_game(row: sqlite3.Row) -> Game:
    return Game(
        id=row["id"],
        week_id=row["week_id"],
        home_team_id=row["home_team_id"],
        away_team_id=row["away_team_id"],
        status=row["status"],
        home_score=row["home_score"],
        away_score=row["away_score"],
    )


class GameRepository:
    """CRUD for games (fixtures between real teams)."""

    def create(
        self,
        conn: sqlite3.Connection,
        week_id: str,
        home_team_id: str,
        away_team_id: str,
        id: str | None = None,
    ) -> Game:
        gid = id or str(uuid.uuid4())
        conn.execute(
            f"INSERT INTO games ({_GAME_COLS}) VALUES (?, ?, ?, ?, ?, NULL, NULL)",
            (gid, week_id, home_team_id, away_team_id, GameStatus.SCHEDULED.value),
        )
        conn.commit()
        return Game(
            id=gid, week_id=week_id, home_team_id=home_team_id, away_team_id=away_team_id,
            status=GameStatus.SCHEDULED.value,
        )

    def get(self, conn: sqlite3.Connection, game_id: str) -> Game | None:
        row = conn.execute(f"SELECT {_GAME_COLS} FROM games WHERE id = ?", (game_id,)).fetchone()
        return _row_to_game(row) if row is not None else None

    def list_by_week(self, conn: sqlite3.Connection, week_id: str) -> list[Game]:
        rows = conn.execute(
            f"SELECT {_GAME_COLS} FROM games WHERE week_id = ? ORDER BY id", (week_id,)
        ).fetchall()
        return [_row_to_game(r) for r in rows]

    def complete(self, conn: sqlite3.Connection, game_id: str, home_score: int, away_score: int) -> None:
        conn.execute(
            "UPDATE games SET status = ?, home_score = ?, away_score = ? WHERE id = ?",
            (GameStatus.COMPLETED.value, home_score, away_score, game_id),
        )
        conn.commit()


# ---------- PlayerRepository ----------

_PLAYER_COLS = "id, name, team_id, position, starting_value, market_value"


def _row_to_player(row: sqlite3.Row) -> Player:
    return Player(
        id=row["id"],
        name=row["name"],
        team_id=row["team_id"],
        position=row["position"],
        starting_value=row["starting_value"],
        market_value=row["market_value"],
    )


class PlayerRepository:
    """CRUD for players. market_value is updated by price calculation."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        team_id: str,
        position: str,
        starting_value: float,
        id: str | None = None,
    ) -> Player:
        pid = id or str(uuid.uuid4())
        conn.execute(
            f"INSERT INTO players ({_PLAYER_COLS}) VALUES (?, ?, ?, ?, ?, ?)",
            (pid, name, team_id, position, starting_value, starting_value),
        )
        conn.commit()
        return Player(
            id=pid, name=name, team_id=team_id, position=position,
            starting_value=starting_value, market_value=starting_value,
        )

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(f"SELECT {_PLAYER_COLS} FROM players WHERE id = ?", (player_id,)).fetchone()
        return _row_to_player(row) if row is not None else None

    def list_by_ids(self, conn: sqlite3.Connection, player_ids: Iterable[str]) -> dict[str, Player]:
        ids = list(dict.fromkeys(player_ids))
        if not ids:
            return {}
        rows = conn.execute(
            f"SELECT {_PLAYER_COLS} FROM players WHERE id IN ({_placeholders(len(ids))})", ids
        ).fetchall()
        return {r["id"]: _row_to_player(r) for r in rows}

    def update_market_values(self, conn: sqlite3.Connection, values: dict[str, float]) -> None:
        conn.executemany(
            "UPDATE players SET market_value = ? WHERE id = ?",
            [(v, pid) for pid, v in values.items()],
        )
        conn.commit()


# ---------- SeasonPlayerRepository ----------


class SeasonPlayerRepository:
    """Which players take part in a season, and their window 0 price."""

    def add(self, conn: sqlite3.Connection, season_id: str, player_id: str, starting_value: float) -> SeasonPlayer:
        conn.execute(
            "INSERT INTO season_players (season_id, player_id, starting_value) VALUES (?, ?, ?)",
            (season_id, player_id, starting_value),
        )
        conn.commit()
        return SeasonPlayer(season_id=season_id, player_id=player_id, starting_value=starting_value)

    def get(self, conn: sqlite3.Connection, season_id: str, player_id: str) -> SeasonPlayer | None:
        row = conn.execute(
            "SELECT season_id, player_id, starting_value FROM season_players WHERE season_id = ? AND player_id = ?",
            (season_id, player_id),
        ).fetchone()
        if row is None:
            return None
        return SeasonPlayer(row["season_id"], row["player_id"], row["starting_value"])

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[SeasonPlayer]:
        rows = conn.execute(
            "SELECT season_id, player_id, starting_value FROM season_players WHERE season_id = ? ORDER BY player_id",
            (season_id,),
        ).fetchall()
        return [SeasonPlayer(r["season_id"], r["player_id"], r["starting_value"]) for r in rows]


# ---------- PlayerStatRepository ----------

_STAT_COLS = "player_id, game_id, goals, assists, blocks, drops, throwaways, played"


def _row_to_stat(row: sqlite3.Row) -> PlayerGameStat:
    return PlayerGameStat(
        player_id=row["player_id"],
        game_id=row["game_id"],
        goals=row["goals"],
        assists=row["assists"],
        blocks=row["blocks"],
        drops=row["drops"],
        throwaways=row["throwaways"],
        played=bool(row["played"]),
    )


class PlayerStatRepository:
    """Per-(player, game) stat lines. Upsert replaces a corrected line."""

    def upsert(self, conn: sqlite3.Connection, stat: PlayerGameStat) -> None:
        self.upsert_many(conn, [stat])

    def upsert_many(self, conn: sqlite3.Connection, stats: Iterable[PlayerGameStat]) -> None:
        conn.executemany(
            f"""
            INSERT INTO player_game_stats ({_STAT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(player_id, game_id) DO UPDATE SET
                goals = excluded.goals, assists = excluded.assists, blocks = excluded.blocks,
                drops = excluded.drops, throwaways = excluded.throwaways, played = excluded.played
            """,
            [
                (s.player_id, s.game_id, s.goals, s.assists, s.blocks, s.drops, s.throwaways, 1 if s.played else 0)
                for s in stats
            ],
        )
        conn.commit()

    def get(self, conn: sqlite3.Connection, player_id: str, game_id: str) -> PlayerGameStat | None:
        row = conn.execute(
            f"SELECT {_STAT_COLS} FROM player_game_stats WHERE player_id = ? AND game_id = ?",
            (player_id, game_id),
        ).fetchone()
        return _row_to_stat(row) if row is not None else None

    def list_by_game(self, conn: sqlite3.Connection, game_id: str) -> list[PlayerGameStat]:
        rows = conn.execute(
            f"SELECT {_STAT_COLS} FROM player_game_stats WHERE game_id = ? ORDER BY player_id", (game_id,)
        ).fetchall()
        return [_row_to_stat(r) for r in rows]

    def list_by_games(
        self, conn: sqlite3.Connection, game_ids: Iterable[str], player_ids: Iterable[str] | None = None
    ) -> list[PlayerGameStat]:
        gids = list(game_ids)
        if not gids:
            return []
        sql = f"SELECT {_STAT_COLS} FROM player_game_stats WHERE game_id IN ({_placeholders(len(gids))})"
        args: list[str] = list(gids)
        if player_ids is not None:
            pids = list(player_ids)
            if not pids:
                return []
            sql += f" AND player_id IN ({_placeholders(len(pids))})"
            args.extend(pids)
        rows = conn.execute(sql + " ORDER BY game_id, player_id", args).fetchall()
        return [_row_to_stat(r) for r in rows]

    def count_by_game(self, conn: sqlite3.Connection, game_id: str) -> int:
        row = conn.execute("SELECT COUNT(*) AS n FROM player_game_stats WHERE game_id = ?", (game_id,)).fetchone()
        return row["n"]


# ---------- FantasyTeamRepository ----------

_FANTASY_TEAM_COLS = "id, owner_id, season_id, name, budget, created_at"


def _row_to_fantasy_team(row: sqlite3.Row) -> FantasyTeam:
    return FantasyTeam(
        id=row["id"],
        owner_id=row["owner_id"],
        season_id=row["season_id"],
        name=row["name"],
        created_at=_parse_datetime(row["created_at"]),
        budget=row["budget"],
    )


class FantasyTeamRepository:
    """CRUD for fantasy teams. budget mirrors the latest saved snapshot."""

    def create(
        self, conn: sqlite3.Connection, owner_id: str, season_id: str, name: str, id: str | None = None
    ) -> FantasyTeam:
        tid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            f"INSERT INTO fantasy_teams ({_FANTASY_TEAM_COLS}) VALUES (?, ?, ?, ?, NULL, ?)",
            (tid, owner_id, season_id, name, now.isoformat()),
        )
        conn.commit()
        return FantasyTeam(id=tid, owner_id=owner_id, season_id=season_id, name=name, created_at=now)

    def get(self, conn: sqlite3.Connection, team_id: str) -> FantasyTeam | None:
        row = conn.execute(
            f"SELECT {_FANTASY_TEAM_COLS} FROM fantasy_teams WHERE id = ?", (team_id,)
        ).fetchone()
        return _row_to_fantasy_team(row) if row is not None else None

    def update_budget(self, conn: sqlite3.Connection, team_id: str, budget: float, commit: bool = True) -> None:
        conn.execute("UPDATE fantasy_teams SET budget = ? WHERE id = ?", (budget, team_id))
        if commit:
            conn.commit()


# ---------- SnapshotRepository ----------

_SNAPSHOT_COLS = "s.id, s.fantasy_team_id, s.week_id, s.captain_player_id, s.total_value, s.budget_remaining, s.created_at"


class SnapshotRepository:
    """
    Roster snapshots and their player entries. Saving a snapshot for a
    (team, week) that already has one replaces it as a whole; rows are never
    edited in place.
    """

    def create(
        self,
        conn: sqlite3.Connection,
        fantasy_team_id: str,
        week_id: str,
        captain_player_id: str | None,
        total_value: float,
        budget_remaining: float,
        entries: list[tuple[str, str, bool, bool, float]],  # (player_id, position, is_benched, is_captain, value)
        id: str | None = None,
        commit: bool = True,
    ) -> FantasyRosterSnapshot:
        sid = id or str(uuid.uuid4())
        now = _now()
        existing = self.get_by_team_and_week(conn, fantasy_team_id, week_id)
        if existing is not None:
            conn.execute("DELETE FROM snapshot_players WHERE snapshot_id = ?", (existing.id,))
            conn.execute("DELETE FROM fantasy_snapshots WHERE id = ?", (existing.id,))
        conn.execute(
            "INSERT INTO fantasy_snapshots (id, fantasy_team_id, week_id, captain_player_id, total_value, budget_remaining, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (sid, fantasy_team_id, week_id, captain_player_id, total_value, budget_remaining, now.isoformat()),
        )
        conn.executemany(
            "INSERT INTO snapshot_players (snapshot_id, player_id, slot_order, position, is_benched, is_captain, player_value) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [
                (sid, pid, order, pos, 1 if benched else 0, 1 if captain else 0, value)
                for order, (pid, pos, benched, captain, value) in enumerate(entries, start=1)
            ],
        )
        if commit:
            conn.commit()
        return FantasyRosterSnapshot(
            id=sid,
            fantasy_team_id=fantasy_team_id,
            week_id=week_id,
            captain_player_id=captain_player_id,
            total_value=total_value,
            budget_remaining=budget_remaining,
            created_at=now,
            entries=[
                SnapshotPlayerEntry(sid, pid, pos, benched, captain, value)
                for pid, pos, benched, captain, value in entries
            ],
        )

    def _hydrate(self, conn: sqlite3.Connection, row: sqlite3.Row) -> FantasyRosterSnapshot:
        return FantasyRosterSnapshot(
            id=row["id"],
            fantasy_team_id=row["fantasy_team_id"],
            week_id=row["week_id"],
            captain_player_id=row["captain_player_id"],
            total_value=row["total_value"],
            budget_remaining=row["budget_remaining"],
            created_at=_parse_datetime(row["created_at"]),
            entries=self.get_entries(conn, row["id"]),
        )

    def get(self, conn: sqlite3.Connection, snapshot_id: str) -> FantasyRosterSnapshot | None:
        row = conn.execute(f"SELECT {_SNAPSHOT_COLS} FROM fantasy_snapshots s WHERE s.id = ?", (snapshot_id,)).fetchone()
        return self._hydrate(conn, row) if row is not None else None

    def get_entries(self, conn: sqlite3.Connection, snapshot_id: str) -> list[SnapshotPlayerEntry]:
        """Entries in the order they were submitted."""
        rows = conn.execute(
            "SELECT snapshot_id, player_id, position, is_benched, is_captain, player_value "
            "FROM snapshot_players WHERE snapshot_id = ? ORDER BY slot_order",
            (snapshot_id,),
        ).fetchall()
        return [
            SnapshotPlayerEntry(
                snapshot_id=r["snapshot_id"],
                player_id=r["player_id"],
                position=r["position"],
                is_benched=bool(r["is_benched"]),
                is_captain=bool(r["is_captain"]),
                player_value=r["player_value"],
            )
            for r in rows
        ]

    def get_by_team_and_week(
        self, conn: sqlite3.Connection, fantasy_team_id: str, week_id: str
    ) -> FantasyRosterSnapshot | None:
        row = conn.execute(
            f"SELECT {_SNAPSHOT_COLS} FROM fantasy_snapshots s WHERE s.fantasy_team_id = ? AND s.week_id = ?",
            (fantasy_team_id, week_id),
        ).fetchone()
        return self._hydrate(conn, row) if row is not None else None

    def get_previous(
        self, conn: sqlite3.Connection, fantasy_team_id: str, week_number: int
    ) -> FantasyRosterSnapshot | None:
        """Latest snapshot for the team at a week_number strictly before week_number."""
        row = conn.execute(
            f"SELECT {_SNAPSHOT_COLS} FROM fantasy_snapshots s JOIN weeks w ON w.id = s.week_id "
            "WHERE s.fantasy_team_id = ? AND w.week_number < ? ORDER BY w.week_number DESC LIMIT 1",
            (fantasy_team_id, week_number),
        ).fetchone()
        return self._hydrate(conn, row) if row is not None else None

    def count_before(self, conn: sqlite3.Connection, fantasy_team_id: str, week_number: int) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM fantasy_snapshots s JOIN weeks w ON w.id = s.week_id "
            "WHERE s.fantasy_team_id = ? AND w.week_number < ?",
            (fantasy_team_id, week_number),
        ).fetchone()
        return row["n"]

    def count_after(self, conn: sqlite3.Connection, fantasy_team_id: str, week_number: int) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM fantasy_snapshots s JOIN weeks w ON w.id = s.week_id "
            "WHERE s.fantasy_team_id = ? AND w.week_number > ?",
            (fantasy_team_id, week_number),
        ).fetchone()
        return row["n"]

    def list_team_ids_from_week(self, conn: sqlite3.Connection, season_id: str, week_number: int) -> list[str]:
        """Fantasy teams holding a snapshot at week_number or later in the season."""
        rows = conn.execute(
            "SELECT DISTINCT s.fantasy_team_id FROM fantasy_snapshots s JOIN weeks w ON w.id = s.week_id "
            "WHERE w.season_id = ? AND w.week_number >= ? ORDER BY s.fantasy_team_id",
            (season_id, week_number),
        ).fetchall()
        return [r["fantasy_team_id"] for r in rows]


# ---------- TransferRepository ----------

_TRANSFER_COLS = "id, fantasy_team_id, week_id, player_out_id, player_in_id, out_value, in_value, net_delta, created_at"


class TransferRepository:
    """Audit rows for computed transfers. Replaced whenever the week's snapshot is."""

    def replace_for_week(
        self,
        conn: sqlite3.Connection,
        fantasy_team_id: str,
        week_id: str,
        transfers: list[tuple[str, str, float, float]],  # (out_id, in_id, out_value, in_value)
        commit: bool = True,
    ) -> list[Transfer]:
        now = _now()
        conn.execute(
            "DELETE FROM transfers WHERE fantasy_team_id = ? AND week_id = ?", (fantasy_team_id, week_id)
        )
        created: list[Transfer] = []
        for out_id, in_id, out_value, in_value in transfers:
            t = Transfer(
                id=str(uuid.uuid4()),
                fantasy_team_id=fantasy_team_id,
                week_id=week_id,
                player_out_id=out_id,
                player_in_id=in_id,
                out_value=out_value,
                in_value=in_value,
                net_delta=out_value - in_value,
                created_at=now,
            )
            conn.execute(
                f"INSERT INTO transfers ({_TRANSFER_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (t.id, t.fantasy_team_id, t.week_id, t.player_out_id, t.player_in_id,
                 t.out_value, t.in_value, t.net_delta, now.isoformat()),
            )
            created.append(t)
        if commit:
            conn.commit()
        return created

    def list_by_team_and_week(self, conn: sqlite3.Connection, fantasy_team_id: str, week_id: str) -> list[Transfer]:
        rows = conn.execute(
            f"SELECT {_TRANSFER_COLS} FROM transfers WHERE fantasy_team_id = ? AND week_id = ? ORDER BY created_at, id",
            (fantasy_team_id, week_id),
        ).fetchall()
        return [
            Transfer(
                id=r["id"],
                fantasy_team_id=r["fantasy_team_id"],
                week_id=r["week_id"],
                player_out_id=r["player_out_id"],
                player_in_id=r["player_in_id"],
                out_value=r["out_value"],
                in_value=r["in_value"],
                net_delta=r["net_delta"],
                created_at=_parse_datetime(r["created_at"]),
            )
            for r in rows
        ]


# ---------- WeekScoreRepository ----------


class WeekScoreRepository:
    """Upserts keyed by (fantasy_team_id, week_id)."""

    def upsert(
        self,
        conn: sqlite3.Connection,
        fantasy_team_id: str,
        week_id: str,
        captain_points: float,
        total_points: float,
        substitutions_json: str | None = None,
    ) -> WeekScore:
        now = _now()
        conn.execute(
            """
            INSERT INTO week_scores (fantasy_team_id, week_id, captain_points, total_points, substitutions_json, calculated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(fantasy_team_id, week_id) DO UPDATE SET
                captain_points = excluded.captain_points,
                total_points = excluded.total_points,
                substitutions_json = excluded.substitutions_json,
                calculated_at = excluded.calculated_at
            """,
            (fantasy_team_id, week_id, captain_points, total_points, substitutions_json, now.isoformat()),
        )
        conn.commit()
        return WeekScore(
            fantasy_team_id=fantasy_team_id, week_id=week_id, captain_points=captain_points,
            total_points=total_points, substitutions_json=substitutions_json, calculated_at=now,
        )

    def get(self, conn: sqlite3.Connection, fantasy_team_id: str, week_id: str) -> WeekScore | None:
        row = conn.execute(
            "SELECT fantasy_team_id, week_id, captain_points, total_points, substitutions_json, calculated_at "
            "FROM week_scores WHERE fantasy_team_id = ? AND week_id = ?",
            (fantasy_team_id, week_id),
        ).fetchone()
        if row is None:
            return None
        return WeekScore(
            fantasy_team_id=row["fantasy_team_id"],
            week_id=row["week_id"],
            captain_points=row["captain_points"],
            total_points=row["total_points"],
            substitutions_json=row["substitutions_json"],
            calculated_at=_parse_datetime(row["calculated_at"]),
        )


# ---------- PlayerPriceRepository ----------

_PRICE_COLS = "season_id, player_id, window_number, price, version, calculated_at"


def _row_to_price(row: sqlite3.Row) -> PlayerPrice:
    return PlayerPrice(
        season_id=row["season_id"],
        player_id=row["player_id"],
        window_number=row["window_number"],
        price=row["price"],
        version=row["version"],
        calculated_at=_parse_datetime(row["calculated_at"]),
    )


class PlayerPriceRepository:
    """Versioned price records keyed by (season, player, window)."""

    def upsert_many(
        self, conn: sqlite3.Connection, season_id: str, window_number: int, prices: dict[str, float]
    ) -> None:
        now = _now().isoformat()
        conn.executemany(
            f"""
            INSERT INTO player_prices ({_PRICE_COLS}) VALUES (?, ?, ?, ?, 1, ?)
            ON CONFLICT(season_id, player_id, window_number) DO UPDATE SET
                price = excluded.price,
                version = player_prices.version + 1,
                calculated_at = excluded.calculated_at
            """,
            [(season_id, pid, window_number, price, now) for pid, price in prices.items()],
        )
        conn.commit()

    def get(self, conn: sqlite3.Connection, season_id: str, player_id: str, window_number: int) -> PlayerPrice | None:
        row = conn.execute(
            f"SELECT {_PRICE_COLS} FROM player_prices WHERE season_id = ? AND player_id = ? AND window_number = ?",
            (season_id, player_id, window_number),
        ).fetchone()
        return _row_to_price(row) if row is not None else None

    def list_by_window(self, conn: sqlite3.Connection, season_id: str, window_number: int) -> dict[str, PlayerPrice]:
        rows = conn.execute(
            f"SELECT {_PRICE_COLS} FROM player_prices WHERE season_id = ? AND window_number = ?",
            (season_id, window_number),
        ).fetchall()
        return {r["player_id"]: _row_to_price(r) for r in rows}

    def latest_at_or_before(
        self, conn: sqlite3.Connection, season_id: str, player_ids: Iterable[str], window_number: int
    ) -> dict[str, PlayerPrice]:
        """Most recent stored price per player with window_number <= the given window."""
        ids = list(dict.fromkeys(player_ids))
        if not ids or window_number < 1:
            return {}
        rows = conn.execute(
            f"SELECT {_PRICE_COLS} FROM player_prices WHERE season_id = ? AND window_number <= ? "
            f"AND player_id IN ({_placeholders(len(ids))}) ORDER BY window_number",
            [season_id, window_number, *ids],
        ).fetchall()
        latest: dict[str, PlayerPrice] = {}
        for r in rows:
            latest[r["player_id"]] = _row_to_price(r)
        return latest
