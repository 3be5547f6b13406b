"""
Persistence layer for fantasy league data.
No business logic, only read/write interfaces.
"""
from .db import get_connection, init_db, set_db_path
from .repositories import (
    FantasyTeamRepository,
    GameRepository,
    PlayerPriceRepository,
    PlayerRepository,
    PlayerStatRepository,
    RealTeamRepository,
    SeasonPlayerRepository,
    SeasonRepository,
    SnapshotRepository,
    TransferRepository,
    WeekRepository,
    WeekScoreRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "FantasyTeamRepository",
    "GameRepository",
    "PlayerPriceRepository",
    "PlayerRepository",
    "PlayerStatRepository",
    "RealTeamRepository",
    "SeasonPlayerRepository",
    "SeasonRepository",
    "SnapshotRepository",
    "TransferRepository",
    "WeekRepository",
    "WeekScoreRepository",
]
