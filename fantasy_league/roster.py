"""
Roster rules: position quotas, roster input model, lineup validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from pydantic import BaseModel, Field

from fantasy_league.models import Position

ROSTER_SIZE = 10
STARTERS = 7
BENCH = 3

# position -> (starting, bench)
POSITION_QUOTAS: dict[Position, tuple[int, int]] = {
    Position.HANDLER: (2, 1),
    Position.CUTTER: (3, 1),
    Position.RECEIVER: (2, 1),
}


class RosterEntryInput(BaseModel):
    """One player in a roster submitted for a week."""
    player_id: str = Field(..., min_length=1)
    position: Position
    is_benched: bool = False
    is_captain: bool = Field(False, description="At most one; must be a starter to score")


class RosterSlot(Protocol):
    player_id: str
    position: str
    is_benched: bool


@dataclass
class LineupValidationResult:
    valid: bool
    errors: list[str]


def lineup_counts(entries: Iterable[RosterSlot]) -> dict[Position, list[int]]:
    """[starting, bench] count per position. Unknown positions are skipped."""
    counts: dict[Position, list[int]] = {p: [0, 0] for p in Position}
    for e in entries:
        try:
            pos = Position(e.position)
        except ValueError:
            continue
        counts[pos][1 if e.is_benched else 0] += 1
    return counts


def validate_lineup(entries: list[RosterSlot]) -> LineupValidationResult:
    """
    Exactly 10 distinct players: 2+1 handlers, 3+1 cutters, 2+1 receivers
    (starting + bench). Captain presence is checked at scoring time, not here.
    """
    errors: list[str] = []
    if len(entries) != ROSTER_SIZE:
        errors.append(f"Must have exactly {ROSTER_SIZE} players, found {len(entries)}")
    ids = [e.player_id for e in entries]
    dupes = sorted({pid for pid in ids if ids.count(pid) > 1})
    if dupes:
        errors.append(f"Players listed more than once: {', '.join(dupes)}")
    valid_positions = {p.value for p in Position}
    for e in entries:
        pos = e.position.value if isinstance(e.position, Position) else e.position
        if pos not in valid_positions:
            errors.append(f"Invalid position '{e.position}' for player {e.player_id}")
    counts = lineup_counts(entries)
    for pos, (need_start, need_bench) in POSITION_QUOTAS.items():
        starting, bench = counts[pos]
        if starting != need_start:
            errors.append(f"Must have exactly {need_start} {pos.value}s in starting lineup, found {starting}")
        if bench != need_bench:
            errors.append(f"Must have exactly {need_bench} {pos.value} on bench, found {bench}")
    return LineupValidationResult(valid=not errors, errors=errors)
