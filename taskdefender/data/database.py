"""
SQLite database initialization and connection management.

Single responsibility: own the connection and create tables.
All actual queries live in Repository.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default DB lives at the repo root
DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "taskdefender.db"

SCHEMA_SQL = """
-- Activity events (pruned to the retention window on every write) ------------
CREATE TABLE IF NOT EXISTS activity_events (
    id          TEXT    PRIMARY KEY,
    user_id     TEXT    NOT NULL,
    timestamp   TEXT    NOT NULL,
    source_type TEXT    NOT NULL,
    category    TEXT    NOT NULL,
    duration    REAL    NOT NULL DEFAULT 0 CHECK (duration >= 0),
    application TEXT,
    website     TEXT,
    title       TEXT,
    url         TEXT
);

-- Monitoring permissions (single row) ----------------------------------------
CREATE TABLE IF NOT EXISTS monitoring_permissions (
    id                      INTEGER PRIMARY KEY CHECK (id = 1),
    browser_tracking        INTEGER NOT NULL DEFAULT 0,
    application_tracking    INTEGER NOT NULL DEFAULT 0,
    calendar_integration    INTEGER NOT NULL DEFAULT 0,
    communication_analysis  INTEGER NOT NULL DEFAULT 0,
    system_monitoring       INTEGER NOT NULL DEFAULT 0,
    last_updated            TEXT
);

-- Action ledger ----------------------------------------------------------------
CREATE TABLE IF NOT EXISTS user_actions (
    seq              INTEGER PRIMARY KEY AUTOINCREMENT,
    id               TEXT    NOT NULL UNIQUE,
    user_id          TEXT    NOT NULL,
    action           TEXT    NOT NULL,
    timestamp        TEXT    NOT NULL,
    task_id          TEXT,
    metadata_json    TEXT,
    integrity_impact REAL
);

CREATE TABLE IF NOT EXISTS user_profiles (
    user_id          TEXT    PRIMARY KEY,
    integrity_score  REAL    NOT NULL DEFAULT 100,
    updated_at       TEXT
);

-- Insight engine output --------------------------------------------------------
CREATE TABLE IF NOT EXISTS ai_insights (
    id                    TEXT    PRIMARY KEY,
    type                  TEXT    NOT NULL,
    severity              TEXT    NOT NULL,
    title                 TEXT    NOT NULL,
    description           TEXT,
    recommendation        TEXT,
    confidence            INTEGER NOT NULL,
    timeframe             TEXT,
    related_task_ids_json TEXT,
    created_at            TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS ai_recommendations (
    id                 TEXT    PRIMARY KEY,
    type               TEXT    NOT NULL,
    priority           TEXT    NOT NULL,
    title              TEXT    NOT NULL,
    description        TEXT,
    action_items_json  TEXT,
    estimated_impact   INTEGER,
    time_to_implement  INTEGER,
    valid_until        TEXT    NOT NULL,
    created_at         TEXT
);

-- Focus session summaries ------------------------------------------------------
CREATE TABLE IF NOT EXISTS focus_sessions (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id        TEXT    NOT NULL,
    user_id           TEXT,
    task_id           TEXT,
    start_time        TEXT    NOT NULL,
    end_time          TEXT    NOT NULL,
    total_duration    INTEGER NOT NULL,
    focus_time        INTEGER NOT NULL,
    distraction_time  INTEGER NOT NULL,
    distraction_count INTEGER NOT NULL DEFAULT 0
);

-- Indexes for common queries -------------------------------------------------
CREATE INDEX IF NOT EXISTS idx_activity_timestamp ON activity_events(timestamp);
CREATE INDEX IF NOT EXISTS idx_actions_user       ON user_actions(user_id, seq);
CREATE INDEX IF NOT EXISTS idx_focus_end          ON focus_sessions(end_time);
"""


class Database:
    """Thin wrapper around a SQLite connection."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    # -- lifecycle -----------------------------------------------------------

    def connect(self) -> sqlite3.Connection:
        """Open (or return existing) connection and ensure schema exists."""
        if self.conn is not None:
            return self.conn
        logger.info("Connecting to SQLite at %s", self.db_path)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        if str(self.db_path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed.")

    # -- internal ------------------------------------------------------------

    def _create_tables(self) -> None:
        assert self.conn is not None
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()
        logger.info("Database schema ensured.")


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   Opens the SQLite file and makes sure every engine table exists.
#
# Tables:
#   - activity_events: sampled activity, pruned to 7 days by the collector.
#   - monitoring_permissions: exactly one row (id = 1) of grants.
#   - user_actions + user_profiles: the action ledger and integrity scores.
#   - ai_insights / ai_recommendations: insight engine output, replaced
#     wholesale after every analysis tick.
#   - focus_sessions: summaries written when a focus session stops.
#
# Data flow:
#   main.py → Database.connect() → tables created → Repository uses conn
