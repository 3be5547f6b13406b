"""
Shared fixtures: a temporary database per test and a small seeded season.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from fantasy_league.persistence.db import get_connection, init_db, set_db_path
from fantasy_league.tests.seed import seed_league


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with the full schema."""
    db_path = tmp_path / "fantasy_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def league(db_conn):
    """Three-week season, one game per week, two fantasy teams, no rosters yet."""
    return seed_league(db_conn)
