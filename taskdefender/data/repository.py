"""
Repository — the single place where SQL lives.

Every other module talks to Repository, never to raw SQL. Any sqlite3 failure
is re-raised as PersistenceError so services can catch one exception type at
their store boundary and fall back to defaults.
"""

from __future__ import annotations

import functools
import json
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional

from .models import (
    ActivityEvent,
    FocusSessionRecord,
    MonitoringPermissions,
    PersonalizedRecommendation,
    PredictiveInsight,
    UserAction,
)

logger = logging.getLogger(__name__)

DEFAULT_INTEGRITY_SCORE = 100.0


class PersistenceError(RuntimeError):
    """Raised when the backing store cannot be read or written."""


def _fmt(dt: Optional[datetime]) -> Optional[str]:
    # fixed width so text comparison in SQL matches chronological order
    return dt.isoformat(timespec="microseconds") if dt else None


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(s) if s else None


def _guarded(method):
    """Translate sqlite failures and unparseable stored values into PersistenceError."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (sqlite3.Error, ValueError) as exc:
            raise PersistenceError(f"{method.__name__} failed: {exc}") from exc
    return wrapper


class Repository:
    """Data-access layer wrapping a sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ── Activity events ─────────────────────────────────────────────────────

    @_guarded
    def add_activity(self, event: ActivityEvent) -> None:
        self.conn.execute(
            """INSERT INTO activity_events
               (id, user_id, timestamp, source_type, category, duration,
                application, website, title, url)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.id, event.user_id, _fmt(event.timestamp),
                event.source_type, event.category, event.duration,
                event.application, event.website, event.title, event.url,
            ),
        )
        self.conn.commit()

    @_guarded
    def prune_activities(self, before: datetime) -> int:
        """Delete events older than `before`. Returns count deleted."""
        cur = self.conn.execute(
            "DELETE FROM activity_events WHERE timestamp < ?", (_fmt(before),)
        )
        self.conn.commit()
        return cur.rowcount

    @_guarded
    def list_activities(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ActivityEvent]:
        """Events with start <= timestamp <= end, newest first."""
        query = "SELECT * FROM activity_events"
        conditions: List[str] = []
        params: list = []
        if start is not None:
            conditions.append("timestamp >= ?")
            params.append(_fmt(start))
        if end is not None:
            conditions.append("timestamp <= ?")
            params.append(_fmt(end))
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY timestamp DESC"
        rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_activity(r) for r in rows]

    @_guarded
    def clear_activities(self) -> None:
        self.conn.execute("DELETE FROM activity_events")
        self.conn.commit()

    # ── Monitoring permissions ──────────────────────────────────────────────

    @_guarded
    def load_permissions(self) -> Optional[MonitoringPermissions]:
        row = self.conn.execute(
            "SELECT * FROM monitoring_permissions WHERE id = 1"
        ).fetchone()
        if not row:
            return None
        return MonitoringPermissions(
            browser_tracking=bool(row["browser_tracking"]),
            application_tracking=bool(row["application_tracking"]),
            calendar_integration=bool(row["calendar_integration"]),
            communication_analysis=bool(row["communication_analysis"]),
            system_monitoring=bool(row["system_monitoring"]),
            last_updated=_parse_dt(row["last_updated"]),
        )

    @_guarded
    def save_permissions(self, perms: MonitoringPermissions) -> None:
        self.conn.execute(
            """INSERT OR REPLACE INTO monitoring_permissions
               (id, browser_tracking, application_tracking, calendar_integration,
                communication_analysis, system_monitoring, last_updated)
               VALUES (1, ?, ?, ?, ?, ?, ?)""",
            (
                int(perms.browser_tracking), int(perms.application_tracking),
                int(perms.calendar_integration), int(perms.communication_analysis),
                int(perms.system_monitoring), _fmt(perms.last_updated),
            ),
        )
        self.conn.commit()

    # ── Action ledger ───────────────────────────────────────────────────────

    @_guarded
    def record_action(
        self,
        action: UserAction,
        history_cap: int,
        integrity_delta: Optional[float] = None,
    ) -> Optional[float]:
        """
        Append an action, trim the user's history to `history_cap`, and apply
        `integrity_delta` (clamped to [0, 100]) in one transaction.

        Returns the new integrity score, or None when no delta was given.
        """
        new_score: Optional[float] = None
        with self.conn:
            self.conn.execute(
                """INSERT INTO user_actions
                   (id, user_id, action, timestamp, task_id, metadata_json, integrity_impact)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    action.id, action.user_id, action.action, _fmt(action.timestamp),
                    action.task_id,
                    json.dumps(action.metadata) if action.metadata is not None else None,
                    action.integrity_impact,
                ),
            )
            # keep only the newest `history_cap` rows for this user
            self.conn.execute(
                """DELETE FROM user_actions
                   WHERE user_id = ? AND seq NOT IN (
                       SELECT seq FROM user_actions WHERE user_id = ?
                       ORDER BY seq DESC LIMIT ?
                   )""",
                (action.user_id, action.user_id, history_cap),
            )
            if integrity_delta is not None:
                current = self._integrity_score(action.user_id)
                new_score = max(0.0, min(100.0, current + integrity_delta))
                self.conn.execute(
                    """INSERT INTO user_profiles (user_id, integrity_score, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT(user_id) DO UPDATE SET
                           integrity_score = excluded.integrity_score,
                           updated_at = excluded.updated_at""",
                    (action.user_id, new_score, _fmt(action.timestamp)),
                )
        return new_score

    @_guarded
    def list_actions(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[UserAction]:
        """A user's actions, oldest first."""
        if since is not None:
            rows = self.conn.execute(
                "SELECT * FROM user_actions WHERE user_id = ? AND timestamp >= ? ORDER BY seq",
                (user_id, _fmt(since)),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM user_actions WHERE user_id = ? ORDER BY seq",
                (user_id,),
            ).fetchall()
        return [self._row_to_action(r) for r in rows]

    @_guarded
    def count_actions(self, user_id: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM user_actions WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row[0]

    @_guarded
    def get_integrity_score(self, user_id: str) -> float:
        return self._integrity_score(user_id)

    def _integrity_score(self, user_id: str) -> float:
        row = self.conn.execute(
            "SELECT integrity_score FROM user_profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        return float(row[0]) if row else DEFAULT_INTEGRITY_SCORE

    # ── Insights / recommendations ──────────────────────────────────────────

    @_guarded
    def load_insights(self) -> List[PredictiveInsight]:
        rows = self.conn.execute(
            "SELECT * FROM ai_insights ORDER BY created_at"
        ).fetchall()
        return [self._row_to_insight(r) for r in rows]

    @_guarded
    def load_recommendations(self) -> List[PersonalizedRecommendation]:
        rows = self.conn.execute(
            "SELECT * FROM ai_recommendations ORDER BY created_at"
        ).fetchall()
        return [self._row_to_recommendation(r) for r in rows]

    @_guarded
    def replace_analysis_output(
        self,
        insights: Iterable[PredictiveInsight],
        recommendations: Iterable[PersonalizedRecommendation],
    ) -> None:
        """Swap the stored insight and recommendation sets in one transaction."""
        with self.conn:
            self.conn.execute("DELETE FROM ai_insights")
            self.conn.executemany(
                """INSERT INTO ai_insights
                   (id, type, severity, title, description, recommendation,
                    confidence, timeframe, related_task_ids_json, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        i.id, i.type, i.severity, i.title, i.description,
                        i.recommendation, i.confidence, i.timeframe,
                        json.dumps(i.related_task_ids), _fmt(i.created_at),
                    )
                    for i in insights
                ],
            )
            self.conn.execute("DELETE FROM ai_recommendations")
            self.conn.executemany(
                """INSERT INTO ai_recommendations
                   (id, type, priority, title, description, action_items_json,
                    estimated_impact, time_to_implement, valid_until, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        r.id, r.type, r.priority, r.title, r.description,
                        json.dumps(r.action_items), r.estimated_impact,
                        r.time_to_implement, _fmt(r.valid_until), _fmt(r.created_at),
                    )
                    for r in recommendations
                ],
            )

    # ── Focus sessions ──────────────────────────────────────────────────────

    @_guarded
    def save_focus_session(self, record: FocusSessionRecord, keep: int) -> FocusSessionRecord:
        """Insert a session summary and keep only the `keep` most recent."""
        with self.conn:
            cur = self.conn.execute(
                """INSERT INTO focus_sessions
                   (session_id, user_id, task_id, start_time, end_time,
                    total_duration, focus_time, distraction_time, distraction_count)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.session_id, record.user_id, record.task_id,
                    _fmt(record.start_time), _fmt(record.end_time),
                    record.total_duration, record.focus_time,
                    record.distraction_time, record.distraction_count,
                ),
            )
            record.id = cur.lastrowid
            self.conn.execute(
                """DELETE FROM focus_sessions WHERE id NOT IN (
                       SELECT id FROM focus_sessions ORDER BY id DESC LIMIT ?
                   )""",
                (keep,),
            )
        return record

    @_guarded
    def list_focus_sessions(self, since: Optional[datetime] = None) -> List[FocusSessionRecord]:
        if since is not None:
            rows = self.conn.execute(
                "SELECT * FROM focus_sessions WHERE end_time > ? ORDER BY id",
                (_fmt(since),),
            ).fetchall()
        else:
            rows = self.conn.execute("SELECT * FROM focus_sessions ORDER BY id").fetchall()
        return [self._row_to_focus_session(r) for r in rows]

    # ── Maintenance ─────────────────────────────────────────────────────────

    @_guarded
    def reset_all_data(self) -> None:
        """Delete all data."""
        for table in ["activity_events", "monitoring_permissions", "user_actions",
                      "user_profiles", "ai_insights", "ai_recommendations",
                      "focus_sessions"]:
            self.conn.execute(f"DELETE FROM {table}")
        self.conn.commit()
        logger.warning("All data has been reset.")

    # ── Row mappers ─────────────────────────────────────────────────────────

    @staticmethod
    def _row_to_activity(row: sqlite3.Row) -> ActivityEvent:
        return ActivityEvent(
            id=row["id"], user_id=row["user_id"],
            timestamp=_parse_dt(row["timestamp"]),
            source_type=row["source_type"], category=row["category"],
            duration=row["duration"], application=row["application"],
            website=row["website"], title=row["title"], url=row["url"],
        )

    @staticmethod
    def _row_to_action(row: sqlite3.Row) -> UserAction:
        return UserAction(
            id=row["id"], user_id=row["user_id"], action=row["action"],
            timestamp=_parse_dt(row["timestamp"]), task_id=row["task_id"],
            metadata=json.loads(row["metadata_json"]) if row["metadata_json"] else None,
            integrity_impact=row["integrity_impact"],
        )

    @staticmethod
    def _row_to_insight(row: sqlite3.Row) -> PredictiveInsight:
        return PredictiveInsight(
            id=row["id"], type=row["type"], severity=row["severity"],
            title=row["title"], description=row["description"] or "",
            recommendation=row["recommendation"] or "",
            confidence=row["confidence"], timeframe=row["timeframe"] or "",
            related_task_ids=json.loads(row["related_task_ids_json"] or "[]"),
            created_at=_parse_dt(row["created_at"]),
        )

    @staticmethod
    def _row_to_recommendation(row: sqlite3.Row) -> PersonalizedRecommendation:
        return PersonalizedRecommendation(
            id=row["id"], type=row["type"], priority=row["priority"],
            title=row["title"], description=row["description"] or "",
            action_items=json.loads(row["action_items_json"] or "[]"),
            estimated_impact=row["estimated_impact"] or 0,
            time_to_implement=row["time_to_implement"] or 0,
            valid_until=_parse_dt(row["valid_until"]),
            created_at=_parse_dt(row["created_at"]),
        )

    @staticmethod
    def _row_to_focus_session(row: sqlite3.Row) -> FocusSessionRecord:
        return FocusSessionRecord(
            id=row["id"], session_id=row["session_id"],
            user_id=row["user_id"], task_id=row["task_id"],
            start_time=_parse_dt(row["start_time"]),
            end_time=_parse_dt(row["end_time"]),
            total_duration=row["total_duration"], focus_time=row["focus_time"],
            distraction_time=row["distraction_time"],
            distraction_count=row["distraction_count"],
        )


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------
# What this file does:
#   The Repository is the ONLY place raw SQL lives. Services call
#   repo.add_activity(), repo.record_action(), ... and get dataclasses back.
#
# Key methods:
#   - record_action(): ledger append + per-user cap + integrity update in a
#     single transaction, so the delta is applied exactly once.
#   - replace_analysis_output(): the insight engine owns its tables and swaps
#     their contents wholesale after each tick.
#   - save_focus_session(): insert + keep the 100 most recent.
#
# Data flow:
#   Service → Repository.method() → SQL → sqlite3.Row → dataclass model
#   sqlite3.Error anywhere → PersistenceError → caught and logged by service
