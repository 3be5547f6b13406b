"""
Domain errors raised by the services. Repositories never raise these.
"""
from __future__ import annotations


class FantasyLeagueError(Exception):
    """Base class for every engine error."""


class NotFoundError(FantasyLeagueError, LookupError):
    """Season, week, team or game does not exist."""


class SnapshotNotFound(FantasyLeagueError, LookupError):
    """No roster snapshot for the (team, week) being scored."""


class NoCaptainFound(FantasyLeagueError, ValueError):
    """Snapshot does not have exactly one starting captain."""


class InvalidBudget(FantasyLeagueError, ValueError):
    """Budget would go below zero."""

    def __init__(self, budget: float) -> None:
        super().__init__(f"Budget cannot be negative: {budget:.2f}")
        self.budget = budget


class TransferLimitExceeded(FantasyLeagueError, ValueError):
    """More roster changes than allowed for the week."""

    def __init__(self, used: int, allowed: int) -> None:
        super().__init__(f"Transfer limit exceeded: {used} changes, {allowed} allowed")
        self.used = used
        self.allowed = allowed


class StatsNotReady(FantasyLeagueError):
    """Week games are not all completed with stats recorded."""


class UnpairedRosterChange(FantasyLeagueError, ValueError):
    """Players added and removed between snapshots do not pair up."""


class InvalidLineup(FantasyLeagueError, ValueError):
    """Roster breaks size, uniqueness or position quotas."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class SnapshotLocked(FantasyLeagueError, ValueError):
    """A later week already has a snapshot, so this week can no longer change."""


class TransferWindowClosed(FantasyLeagueError, ValueError):
    """Roster changes attempted outside an open transfer window."""


class WindowTransitionError(FantasyLeagueError, ValueError):
    """Invalid transfer window transition (e.g. upcoming -> open)."""


class InvalidStatLine(FantasyLeagueError, ValueError):
    """Stat line is inconsistent (negative counters, or counters without playing)."""
