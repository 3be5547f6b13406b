"""
Runtime configuration, read from the environment (and a local .env if present).
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# SQLite file used when no explicit path is passed to persistence.db
DB_PATH = Path(os.environ.get("FANTASY_DB_PATH", str(PROJECT_ROOT / "data" / "fantasy.db")))

LOG_LEVEL: str = os.environ.get("FANTASY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for scripts and jobs. Library code only uses getLogger."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
