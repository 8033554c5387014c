"""
Action Ledger — append-only history of user actions plus the integrity score.

Every significant user action (task created/completed, focus session started,
procrastination detected...) is appended here. The ledger is capped per user
and an optional integrity delta is applied atomically with the append.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from taskdefender.data.models import ActionKind, UserAction
from taskdefender.data.repository import DEFAULT_INTEGRITY_SCORE, PersistenceError, Repository

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAP = 1000


def _new_id() -> str:
    return uuid.uuid4().hex


class ActionLedger:
    """Per-user action log backed by the user_actions table."""

    def __init__(
        self,
        repo: Repository,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
        history_cap: int = DEFAULT_HISTORY_CAP,
    ) -> None:
        self.repo = repo
        self.clock = clock
        self.id_factory = id_factory
        self.history_cap = history_cap

    # ── Writing ─────────────────────────────────────────────────────────────

    def log_action(
        self,
        user_id: str,
        action: str,
        task_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        integrity_impact: Optional[float] = None,
    ) -> Optional[UserAction]:
        """Append an action. Returns the stored record, or None if it was not stored."""
        if action not in ActionKind.ALL:
            logger.warning("Ignoring unknown action kind %r", action)
            return None

        record = UserAction(
            id=self.id_factory(),
            user_id=user_id,
            action=action,
            timestamp=self.clock(),
            task_id=task_id,
            metadata=metadata,
            integrity_impact=integrity_impact,
        )
        try:
            new_score = self.repo.record_action(record, self.history_cap, integrity_impact)
        except PersistenceError:
            logger.exception("Failed to log user action %s", action)
            return None

        logger.debug("User action logged: %s (task=%s)", action, task_id)
        if new_score is not None:
            logger.info("Integrity score for %s now %.0f", user_id, new_score)
        return record

    # ── Reading ─────────────────────────────────────────────────────────────

    def get_actions(self, user_id: str, since: Optional[datetime] = None) -> List[UserAction]:
        try:
            return self.repo.list_actions(user_id, since)
        except PersistenceError:
            logger.exception("Failed to load user actions")
            return []

    def get_integrity_score(self, user_id: str) -> float:
        try:
            return self.repo.get_integrity_score(user_id)
        except PersistenceError:
            logger.exception("Failed to load integrity score")
            return DEFAULT_INTEGRITY_SCORE

    def get_analytics_data(self, user_id: str, days: int = 30) -> Dict[str, int]:
        """Aggregate counts over the last `days` days."""
        cutoff = self.clock() - timedelta(days=days)
        actions = self.get_actions(user_id, since=cutoff)
        counts = Counter(a.action for a in actions)

        completions = [a for a in actions if a.action == ActionKind.TASK_COMPLETED]
        focus_seconds = sum(
            (a.metadata or {}).get("duration", 0)
            for a in actions if a.action == ActionKind.FOCUS_COMPLETED
        )
        avg_completion = (
            sum((a.metadata or {}).get("completionTime", 0) for a in completions) / len(completions)
            if completions else 0
        )

        honest = counts[ActionKind.HONEST_COMPLETION]
        dishonest = counts[ActionKind.DISHONEST_COMPLETION]
        integrity = honest / (honest + dishonest) * 100 if honest + dishonest else 100

        return {
            "total_actions": len(actions),
            "tasks_completed": len(completions),
            "focus_sessions_completed": counts[ActionKind.FOCUS_COMPLETED],
            "total_focus_minutes": round(focus_seconds / 60),
            "procrastination_events": counts[ActionKind.PROCRASTINATION_DETECTED],
            "average_task_completion_time": round(avg_completion),
            "integrity_score": round(integrity),
            "honest_completions": honest,
            "dishonest_completions": dishonest,
        }

    def get_daily_completion_counts(self, user_id: str) -> Dict[date, int]:
        """Number of task_completed actions per calendar day."""
        return dict(Counter(
            a.timestamp.date()
            for a in self.get_actions(user_id)
            if a.action == ActionKind.TASK_COMPLETED
        ))

    def get_streak_data(self, user_id: str) -> Dict[str, int]:
        """
        Current and longest run of consecutive days with at least one
        completion. The current streak is 0 unless today has a completion.
        """
        days = sorted(self.get_daily_completion_counts(user_id))
        if not days:
            return {"current_streak": 0, "longest_streak": 0}

        longest = run = 1
        for prev, cur in zip(days, days[1:]):
            if cur.toordinal() - prev.toordinal() == 1:
                run += 1
            else:
                run = 1
            longest = max(longest, run)

        current = 0
        today = self.clock().date()
        if days[-1] == today:
            current = 1
            for i in range(len(days) - 1, 0, -1):
                if days[i].toordinal() - days[i - 1].toordinal() != 1:
                    break
                current += 1

        return {"current_streak": current, "longest_streak": longest}
