"""
SQLite schema for fantasy league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def seasons_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS seasons (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """


def weeks_schema() -> str:
    """Weeks 1..N per season. Transfer window flags live here; prices_calculated covers window week_number."""
    return """
    CREATE TABLE IF NOT EXISTS weeks (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week_number INTEGER NOT NULL,
        transfer_window_open INTEGER NOT NULL DEFAULT 0,
        transfer_cutoff_time TEXT,
        transfer_window_closed_at TEXT,
        prices_calculated INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_weeks_season_number ON weeks(season_id, week_number);
    CREATE UNIQUE INDEX IF NOT EXISTS ix_weeks_single_open_window ON weeks(season_id) WHERE transfer_window_open = 1;
    """


def real_teams_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS real_teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL
    );
    """


def games_schema() -> str:
    """status: scheduled | completed. Stats are authoritative once completed."""
    return """
    CREATE TABLE IF NOT EXISTS games (
        id TEXT PRIMARY KEY,
        week_id TEXT NOT NULL,
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'scheduled',
        home_score INTEGER,
        away_score INTEGER,
        FOREIGN KEY (week_id) REFERENCES weeks(id),
        FOREIGN KEY (home_team_id) REFERENCES real_teams(id),
        FOREIGN KEY (away_team_id) REFERENCES real_teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_games_week ON games(week_id);
    """


def players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        team_id TEXT NOT NULL,
        position TEXT NOT NULL,
        starting_value REAL NOT NULL,
        market_value REAL NOT NULL,
        FOREIGN KEY (team_id) REFERENCES real_teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_players_team ON players(team_id);
    """


def season_players_schema() -> str:
    """Season participation; starting_value is the window 0 price."""
    return """
    CREATE TABLE IF NOT EXISTS season_players (
        season_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        starting_value REAL NOT NULL,
        PRIMARY KEY (season_id, player_id),
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    """


def player_game_stats_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS player_game_stats (
        player_id TEXT NOT NULL,
        game_id TEXT NOT NULL,
        goals INTEGER NOT NULL DEFAULT 0,
        assists INTEGER NOT NULL DEFAULT 0,
        blocks INTEGER NOT NULL DEFAULT 0,
        drops INTEGER NOT NULL DEFAULT 0,
        throwaways INTEGER NOT NULL DEFAULT 0,
        played INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (player_id, game_id),
        FOREIGN KEY (player_id) REFERENCES players(id),
        FOREIGN KEY (game_id) REFERENCES games(id)
    );
    CREATE INDEX IF NOT EXISTS ix_player_game_stats_game ON player_game_stats(game_id);
    """


def fantasy_teams_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS fantasy_teams (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        season_id TEXT NOT NULL,
        name TEXT NOT NULL,
        budget REAL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE INDEX IF NOT EXISTS ix_fantasy_teams_season ON fantasy_teams(season_id);
    """


def fantasy_snapshots_schema() -> str:
    """One snapshot per (team, week). Entries keep the order they were submitted in."""
    return """
    CREATE TABLE IF NOT EXISTS fantasy_snapshots (
        id TEXT PRIMARY KEY,
        fantasy_team_id TEXT NOT NULL,
        week_id TEXT NOT NULL,
        captain_player_id TEXT,
        total_value REAL NOT NULL,
        budget_remaining REAL NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (fantasy_team_id) REFERENCES fantasy_teams(id),
        FOREIGN KEY (week_id) REFERENCES weeks(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_fantasy_snapshots_team_week ON fantasy_snapshots(fantasy_team_id, week_id);

    CREATE TABLE IF NOT EXISTS snapshot_players (
        snapshot_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        slot_order INTEGER NOT NULL,
        position TEXT NOT NULL,
        is_benched INTEGER NOT NULL DEFAULT 0,
        is_captain INTEGER NOT NULL DEFAULT 0,
        player_value REAL NOT NULL,
        PRIMARY KEY (snapshot_id, player_id),
        FOREIGN KEY (snapshot_id) REFERENCES fantasy_snapshots(id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    """


def transfers_schema() -> str:
    """Audit trail of snapshot diffs. Never used to count transfers."""
    return """
    CREATE TABLE IF NOT EXISTS transfers (
        id TEXT PRIMARY KEY,
        fantasy_team_id TEXT NOT NULL,
        week_id TEXT NOT NULL,
        player_out_id TEXT NOT NULL,
        player_in_id TEXT NOT NULL,
        out_value REAL NOT NULL,
        in_value REAL NOT NULL,
        net_delta REAL NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (fantasy_team_id) REFERENCES fantasy_teams(id),
        FOREIGN KEY (week_id) REFERENCES weeks(id)
    );
    CREATE INDEX IF NOT EXISTS ix_transfers_team_week ON transfers(fantasy_team_id, week_id);
    """


def week_scores_schema() -> str:
    """captain_points and total_points (other starters) stored separately."""
    return """
    CREATE TABLE IF NOT EXISTS week_scores (
        fantasy_team_id TEXT NOT NULL,
        week_id TEXT NOT NULL,
        captain_points REAL NOT NULL DEFAULT 0,
        total_points REAL NOT NULL DEFAULT 0,
        substitutions_json TEXT,
        calculated_at TEXT NOT NULL,
        PRIMARY KEY (fantasy_team_id, week_id),
        FOREIGN KEY (fantasy_team_id) REFERENCES fantasy_teams(id),
        FOREIGN KEY (week_id) REFERENCES weeks(id)
    );
    """


def player_prices_schema() -> str:
    """Price after window_number's stats. Window 0 lives in season_players."""
    return """
    CREATE TABLE IF NOT EXISTS player_prices (
        season_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        window_number INTEGER NOT NULL,
        price REAL NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        calculated_at TEXT NOT NULL,
        PRIMARY KEY (season_id, player_id, window_number),
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_player_prices_window ON player_prices(season_id, window_number);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution, referenced tables first."""
    return "\n".join([
        seasons_schema(),
        weeks_schema(),
        real_teams_schema(),
        games_schema(),
        players_schema(),
        season_players_schema(),
        player_game_stats_schema(),
        fantasy_teams_schema(),
        fantasy_snapshots_schema(),
        transfers_schema(),
        week_scores_schema(),
        player_prices_schema(),
    ])
