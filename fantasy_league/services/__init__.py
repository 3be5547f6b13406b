"""
Service layer: scoring, transfers, budget, prices and the flows that tie them
together (snapshot saves, stats entry). Persistence goes through repositories.
"""
from .budget_service import SALARY_CAP, BudgetCalculation, BudgetService, TransferDelta
from .errors import (
    FantasyLeagueError,
    InvalidBudget,
    InvalidLineup,
    InvalidStatLine,
    NoCaptainFound,
    NotFoundError,
    SnapshotLocked,
    SnapshotNotFound,
    StatsNotReady,
    TransferLimitExceeded,
    TransferWindowClosed,
    UnpairedRosterChange,
    WindowTransitionError,
)
from .price_service import PriceService
from .score_service import ScoreResult, ScoreService
from .snapshot_service import SnapshotService
from .stats_service import StatsEntryResult, StatsService
from .transfer_service import (
    MAX_TRANSFERS_PER_WEEK,
    UNLIMITED,
    TransferPair,
    TransferService,
    compute_transfers_from_snapshots,
    get_window_state,
)

__all__ = [
    "SALARY_CAP",
    "MAX_TRANSFERS_PER_WEEK",
    "UNLIMITED",
    "BudgetCalculation",
    "BudgetService",
    "TransferDelta",
    "PriceService",
    "ScoreResult",
    "ScoreService",
    "SnapshotService",
    "StatsEntryResult",
    "StatsService",
    "TransferPair",
    "TransferService",
    "compute_transfers_from_snapshots",
    "get_window_state",
    "FantasyLeagueError",
    "InvalidBudget",
    "InvalidLineup",
    "InvalidStatLine",
    "NoCaptainFound",
    "NotFoundError",
    "SnapshotLocked",
    "SnapshotNotFound",
    "StatsNotReady",
    "TransferLimitExceeded",
    "TransferWindowClosed",
    "UnpairedRosterChange",
    "WindowTransitionError",
]
