"""
Fantasy scoring for ultimate games.
Raw per-game points plus the auto-substitution rules applied to a weekly lineup.
Pure functions only; ScoreService does the loading and persisting.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from fantasy_league.models import PlayerGameStat, Position, SnapshotPlayerEntry

# ---------- Per-stat points ----------
GOAL_POINTS = 1
ASSIST_POINTS = 2
BLOCK_POINTS = 3
DROP_POINTS = -1
THROWAWAY_POINTS = -1

CAPTAIN_MULTIPLIER = 2


@dataclass
class Substitution:
    player_out: str
    player_in: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"player_out": self.player_out, "player_in": self.player_in, "reason": self.reason}


@dataclass
class SlotScore:
    """Points produced by one starting slot after substitution."""
    starter_id: str
    scorer_id: str | None  # None when neither starter nor bench played
    points: int
    is_captain: bool
    substituted: bool = False


def compute_stat_points(stat: PlayerGameStat) -> int:
    """points = goals + 2*assists + 3*blocks - drops - throwaways."""
    return (
        stat.goals * GOAL_POINTS
        + stat.assists * ASSIST_POINTS
        + stat.blocks * BLOCK_POINTS
        + stat.drops * DROP_POINTS
        + stat.throwaways * THROWAWAY_POINTS
    )


def played_any(stats: Iterable[PlayerGameStat]) -> bool:
    return any(s.played for s in stats)


def week_points(stats: Iterable[PlayerGameStat]) -> int:
    """Sum of points over a player's stat rows for the week; unplayed rows count 0."""
    return sum(compute_stat_points(s) for s in stats if s.played)


def bench_by_position(entries: Iterable[SnapshotPlayerEntry]) -> dict[Position, SnapshotPlayerEntry]:
    """First bench entry per position (the roster quota allows exactly one)."""
    bench: dict[Position, SnapshotPlayerEntry] = {}
    for e in entries:
        if e.is_benched:
            bench.setdefault(Position(e.position), e)
    return bench


def resolve_lineup(
    entries: list[SnapshotPlayerEntry],
    stats_by_player: dict[str, list[PlayerGameStat]],
) -> tuple[list[SlotScore], list[Substitution]]:
    """
    Score every starting slot. A starter who did not play is replaced by the
    same-position bench player if that player played. Each bench player can
    come on once, for the first non-playing starter of that position in roster
    order. Bench players who are not substituted in never score.
    """
    bench = bench_by_position(entries)
    used_bench: set[str] = set()
    slots: list[SlotScore] = []
    subs: list[Substitution] = []
    for entry in entries:
        if entry.is_benched:
            continue
        own = stats_by_player.get(entry.player_id, [])
        if played_any(own):
            slots.append(SlotScore(entry.player_id, entry.player_id, week_points(own), entry.is_captain))
            continue
        candidate = bench.get(Position(entry.position))
        if candidate is not None and candidate.player_id not in used_bench:
            bench_stats = stats_by_player.get(candidate.player_id, [])
            if played_any(bench_stats):
                used_bench.add(candidate.player_id)
                subs.append(Substitution(
                    player_out=entry.player_id,
                    player_in=candidate.player_id,
                    reason=f"{entry.position} did not play, substituted with benched {entry.position}",
                ))
                slots.append(SlotScore(
                    entry.player_id, candidate.player_id, week_points(bench_stats),
                    entry.is_captain, substituted=True,
                ))
                continue
        slots.append(SlotScore(entry.player_id, None, 0, entry.is_captain))
    return slots, subs


def group_stats_by_player(stats: Iterable[PlayerGameStat]) -> dict[str, list[PlayerGameStat]]:
    grouped: dict[str, list[PlayerGameStat]] = defaultdict(list)
    for s in stats:
        grouped[s.player_id].append(s)
    return dict(grouped)
