"""
Data models for the fantasy league engine.
Domain objects only; no persistence or service logic.

A season owns weeks; weeks own games between real teams. Fantasy teams save one
immutable roster snapshot per week; scores and prices are derived from player
game stats.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# ---------- Fantasy position ----------
class Position(str, Enum):
    HANDLER = "handler"
    CUTTER = "cutter"
    RECEIVER = "receiver"


# ---------- Game status ----------
class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


# ---------- Transfer window state (derived, never stored) ----------
class WindowState(str, Enum):
    """Transfer window lifecycle: upcoming -> ready -> open -> completed."""
    UPCOMING = "upcoming"    # No prices for this window yet
    READY = "ready"          # Prices calculated, window not opened
    OPEN = "open"            # Opened and cutoff not passed
    COMPLETED = "completed"  # Closed, or cutoff passed


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------- Season ----------
@dataclass
class Season:
    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "created_at": self.created_at.isoformat()}


# ---------- Week ----------
@dataclass
class Week:
    """
    Ordered unit (1..N) within a season. Carries its transfer window flags and
    whether prices for window week_number have been calculated.
    """
    id: str
    season_id: str
    week_number: int
    created_at: datetime
    transfer_window_open: bool = False
    transfer_cutoff_time: datetime | None = None
    transfer_window_closed_at: datetime | None = None
    prices_calculated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "week_number": self.week_number,
            "transfer_window_open": self.transfer_window_open,
            "transfer_cutoff_time": _iso(self.transfer_cutoff_time),
            "transfer_window_closed_at": _iso(self.transfer_window_closed_at),
            "prices_calculated": self.prices_calculated,
            "created_at": self.created_at.isoformat(),
        }


# ---------- RealTeam ----------
@dataclass
class RealTeam:
    """A real-world club whose players are picked by fantasy managers."""
    id: str
    name: str


# ---------- Game ----------
@dataclass
class Game:
    """A match between two real teams within a week. Stats count once completed."""
    id: str
    week_id: str
    home_team_id: str
    away_team_id: str
    status: str  # GameStatus value
    home_score: int | None = None
    away_score: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == GameStatus.COMPLETED

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "week_id": self.week_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


# ---------- Player ----------
@dataclass
class Player:
    """
    A real athlete. Position is fixed; market_value mirrors the latest
    calculated price window.
    """
    id: str
    name: str
    team_id: str
    position: str  # Position value
    starting_value: float
    market_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "team_id": self.team_id,
            "position": self.position,
            "starting_value": self.starting_value,
            "market_value": self.market_value,
        }


# ---------- SeasonPlayer ----------
@dataclass
class SeasonPlayer:
    """A player's participation in a season. starting_value is the window 0 price."""
    season_id: str
    player_id: str
    starting_value: float


# ---------- PlayerGameStat ----------
@dataclass
class PlayerGameStat:
    """One row per (player, game). When played is False every counter is zero."""
    player_id: str
    game_id: str
    goals: int = 0
    assists: int = 0
    blocks: int = 0
    drops: int = 0
    throwaways: int = 0
    played: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "game_id": self.game_id,
            "goals": self.goals,
            "assists": self.assists,
            "blocks": self.blocks,
            "drops": self.drops,
            "throwaways": self.throwaways,
            "played": self.played,
        }


# ---------- FantasyTeam ----------
@dataclass
class FantasyTeam:
    """A manager's team for one season. budget mirrors the latest snapshot."""
    id: str
    owner_id: str
    season_id: str
    name: str
    created_at: datetime
    budget: float | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "owner_id": self.owner_id,
            "season_id": self.season_id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }
        if self.budget is not None:
            d["budget"] = self.budget
        return d


# ---------- SnapshotPlayerEntry ----------
@dataclass
class SnapshotPlayerEntry:
    """One roster slot in a snapshot. player_value is pinned at save time."""
    snapshot_id: str
    player_id: str
    position: str  # Position value
    is_benched: bool
    is_captain: bool
    player_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "player_id": self.player_id,
            "position": self.position,
            "is_benched": self.is_benched,
            "is_captain": self.is_captain,
            "player_value": self.player_value,
        }


# ---------- FantasyRosterSnapshot ----------
@dataclass
class FantasyRosterSnapshot:
    """
    Immutable per-(team, week) roster. New weeks get new snapshots; a prior
    snapshot is never edited.
    """
    id: str
    fantasy_team_id: str
    week_id: str
    captain_player_id: str | None
    total_value: float
    budget_remaining: float
    created_at: datetime
    entries: list[SnapshotPlayerEntry] = field(default_factory=list)

    @property
    def starters(self) -> list[SnapshotPlayerEntry]:
        return [e for e in self.entries if not e.is_benched]

    @property
    def bench(self) -> list[SnapshotPlayerEntry]:
        return [e for e in self.entries if e.is_benched]

    def player_ids(self) -> list[str]:
        return [e.player_id for e in self.entries]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fantasy_team_id": self.fantasy_team_id,
            "week_id": self.week_id,
            "captain_player_id": self.captain_player_id,
            "total_value": self.total_value,
            "budget_remaining": self.budget_remaining,
            "created_at": self.created_at.isoformat(),
            "entries": [e.to_dict() for e in self.entries],
        }


# ---------- Transfer (audit trail) ----------
@dataclass
class Transfer:
    """
    One player-out/player-in pair between consecutive snapshots.
    Derived from snapshot diffs; stored for audit only, never counted.
    """
    id: str
    fantasy_team_id: str
    week_id: str
    player_out_id: str
    player_in_id: str
    out_value: float
    in_value: float
    net_delta: float  # out_value - in_value
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fantasy_team_id": self.fantasy_team_id,
            "week_id": self.week_id,
            "player_out_id": self.player_out_id,
            "player_in_id": self.player_in_id,
            "out_value": self.out_value,
            "in_value": self.in_value,
            "net_delta": self.net_delta,
            "created_at": self.created_at.isoformat(),
        }


# ---------- WeekScore ----------
@dataclass
class WeekScore:
    """
    Persisted weekly score. Both components are stored; the combined figure is
    derived here rather than stored.
    """
    fantasy_team_id: str
    week_id: str
    captain_points: float
    total_points: float  # non-captain starters
    substitutions_json: str | None
    calculated_at: datetime

    @property
    def combined_points(self) -> float:
        return self.captain_points + self.total_points

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "fantasy_team_id": self.fantasy_team_id,
            "week_id": self.week_id,
            "captain_points": self.captain_points,
            "total_points": self.total_points,
            "combined_points": self.combined_points,
            "calculated_at": self.calculated_at.isoformat(),
        }
        if self.substitutions_json is not None:
            d["substitutions_json"] = self.substitutions_json
        return d


# ---------- PlayerPrice ----------
@dataclass
class PlayerPrice:
    """
    Price of a player after window_number's stats. Keyed by (season, player,
    window); recalculation overwrites and bumps version.
    """
    season_id: str
    player_id: str
    window_number: int
    price: float
    version: int
    calculated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "player_id": self.player_id,
            "window_number": self.window_number,
            "price": self.price,
            "version": self.version,
            "calculated_at": self.calculated_at.isoformat(),
        }


# ---------- PriceWindowStatus (derived view) ----------
@dataclass
class PriceWindowStatus:
    window_number: int
    week_id: str | None
    prices_calculated: bool
    has_required_stats: bool
    state: str  # WindowState value of the transfer window priced by this window

    def to_dict(self) -> dict[str, Any]:
        return {
            "window_number": self.window_number,
            "week_id": self.week_id,
            "prices_calculated": self.prices_calculated,
            "has_required_stats": self.has_required_stats,
            "state": self.state,
        }
