"""
Task Pattern Analyzer — per-task urgency, risk, progress and scheduling.

Every method is a pure function of (task, now): nothing is stored and nothing
is read from the database. Malformed tasks never raise; a missing or
non-positive estimate is treated as 60 minutes, and anything else that cannot
be analysed yields the default TaskAnalysis.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import uuid
from datetime import datetime, time, timedelta
from typing import Callable, List, Optional, Sequence

from taskdefender.data.models import (
    Task,
    TaskAnalysis,
    TaskPriority,
    TaskStatus,
    TimeBlock,
    Urgency,
    WorkPattern,
)

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATE_MIN = 60.0
DEFAULT_PRODUCTIVE_HOURS = (9, 10, 14, 15)
SCHEDULING_HORIZON_DAYS = 7

SESSION_LENGTH_BY_PRIORITY = {
    TaskPriority.URGENT: 90,
    TaskPriority.HIGH: 60,
    TaskPriority.MEDIUM: 45,
    TaskPriority.LOW: 30,
}

ACTION_CRITICAL = "CRITICAL: Drop everything and focus on this task NOW!"
ACTION_HIGH_RISK = "HIGH RISK: This task needs immediate attention to avoid missing the deadline."
ACTION_CHUNK = "FOCUS MODE: Break this task into smaller chunks and start with just 15 minutes."
ACTION_ON_TRACK = "ON TRACK: Continue with your current approach."


def _new_id() -> str:
    return uuid.uuid4().hex


def estimate_minutes(task: Task) -> float:
    est = task.estimated_time
    if est is None or not isinstance(est, (int, float)) or est <= 0 or math.isnan(est):
        return DEFAULT_ESTIMATE_MIN
    return float(est)


class TaskPatternAnalyzer:
    """Stateless analyzer. `clock` only supplies `now` when a caller omits it."""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.clock = clock
        self.id_factory = id_factory

    # ── Full analysis ───────────────────────────────────────────────────────

    def analyze_task(self, task: Task, now: Optional[datetime] = None) -> TaskAnalysis:
        now = now or self.clock()
        try:
            urgency = self.urgency_level(task, now)
            risk = self.procrastination_risk(task, now)
            return TaskAnalysis(
                urgency_level=urgency,
                time_utilization=self.time_utilization(task),
                procrastination_risk=risk,
                progress_rate=self.progress_rate(task),
                time_remaining=self.time_remaining(task, now),
                recommended_action=self.recommended_action(urgency, risk),
            )
        except (TypeError, ValueError, AttributeError):
            logger.warning("Could not analyse task %r, using defaults", getattr(task, "id", None))
            return TaskAnalysis(recommended_action=ACTION_ON_TRACK)

    # ── Individual metrics ──────────────────────────────────────────────────

    @staticmethod
    def time_remaining(task: Task, now: datetime) -> float:
        """Minutes until the due date (never negative), inf without one."""
        if task.due_date is None:
            return math.inf
        return max(0.0, (task.due_date - now).total_seconds() / 60)

    def urgency_level(self, task: Task, now: datetime) -> str:
        if task.due_date is None:
            return Urgency.LOW
        hours_left = self.time_remaining(task, now) / 60
        est_hours = estimate_minutes(task) / 60
        if hours_left < est_hours * 0.5:
            return Urgency.CRITICAL
        if hours_left < est_hours * 1.2:
            return Urgency.HIGH
        if hours_left < est_hours * 2:
            return Urgency.MEDIUM
        return Urgency.LOW

    def procrastination_risk(self, task: Task, now: datetime) -> int:
        risk = 0.0

        if task.created_at is not None and task.status == TaskStatus.TODO:
            if (now - task.created_at) > timedelta(days=3):
                risk += 30

        if task.due_date is not None:
            hours_left = self.time_remaining(task, now) / 60
            est_hours = estimate_minutes(task) / 60
            if hours_left < est_hours:
                risk += 40
            elif hours_left < est_hours * 2:
                risk += 20

        wp = task.work_pattern
        if wp is not None:
            if wp.procrastination_score > 70:
                risk += 20
            if wp.consistency_score < 30:
                risk += 10
            if wp.last_worked_on is not None:
                idle_days = (now - wp.last_worked_on).total_seconds() / 86400
                if idle_days > 2:
                    risk += min(20.0, idle_days * 5)

        return int(max(0, min(100, round(risk))))

    @staticmethod
    def progress_rate(task: Task) -> float:
        if task.status == TaskStatus.DONE:
            return 100.0
        if task.status != TaskStatus.IN_PROGRESS:
            return 0.0
        spent = task.work_pattern.total_time_spent if task.work_pattern else 0.0
        return min(90.0, spent / estimate_minutes(task) * 100)

    @staticmethod
    def time_utilization(task: Task) -> float:
        """Time spent as a percentage of the minutes allocated in time blocks."""
        allocated = sum(b.duration for b in task.time_blocks)
        if allocated <= 0:
            return 0.0
        spent = task.work_pattern.total_time_spent if task.work_pattern else 0.0
        return spent / allocated * 100

    @staticmethod
    def recommended_action(urgency: str, risk: int) -> str:
        if urgency == Urgency.CRITICAL:
            return ACTION_CRITICAL
        if urgency == Urgency.HIGH and risk > 60:
            return ACTION_HIGH_RISK
        if risk > 80:
            return ACTION_CHUNK
        return ACTION_ON_TRACK

    # ── Scheduling ──────────────────────────────────────────────────────────

    @staticmethod
    def optimal_session_length(task: Task) -> int:
        """Minutes per work session, clamped to 15-120."""
        length = SESSION_LENGTH_BY_PRIORITY.get(task.priority, 45)
        est = estimate_minutes(task)
        if est < 30:
            length = min(length, 25)
        if est > 180:
            length = max(length, 60)
        if task.work_pattern and task.work_pattern.average_session_length:
            length = round((length + task.work_pattern.average_session_length) / 2)
        return int(max(15, min(120, length)))

    def generate_scheduling_suggestions(
        self,
        task: Task,
        productive_hours: Optional[Sequence[int]] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeBlock]:
        """
        Propose up to ceil(estimate / session length) blocks over today and the
        following six days. Weekends and slots already in the past are
        skipped. Existing bookings are not consulted.
        """
        now = now or self.clock()
        hours = [h for h in (productive_hours or ()) if isinstance(h, int) and 0 <= h <= 23]
        if productive_hours and len(hours) != len(productive_hours):
            logger.warning("Ignoring invalid productive hours in %r", list(productive_hours))
        if not hours:
            hours = list(DEFAULT_PRODUCTIVE_HOURS)
        length = self.optimal_session_length(task)
        needed = math.ceil(estimate_minutes(task) / length)

        blocks: List[TimeBlock] = []
        for offset in range(SCHEDULING_HORIZON_DAYS):
            day = now.date() + timedelta(days=offset)
            if day.weekday() >= 5:  # Saturday / Sunday
                continue
            for hour in hours:
                if len(blocks) >= needed:
                    break
                start = datetime.combine(day, time(hour=hour))
                if start < now:
                    continue
                blocks.append(TimeBlock(
                    id=self.id_factory(),
                    start_time=start,
                    end_time=start + timedelta(minutes=length),
                    duration=length,
                    notes=f"Suggested {length}min session",
                ))
            if len(blocks) >= needed:
                break
        return blocks[:needed]

    # ── Work-pattern bookkeeping ────────────────────────────────────────────

    @staticmethod
    def update_work_pattern(
        task: Task,
        session_minutes: float,
        was_productive: bool,
        now: datetime,
    ) -> WorkPattern:
        """Fold a finished session into a copy of the task's WorkPattern."""
        current = task.work_pattern or WorkPattern()

        total = current.total_time_spent + session_minutes
        count = current.sessions_count + 1

        productive_hours = list(current.productive_hours)
        if was_productive and now.hour not in productive_hours:
            productive_hours.append(now.hour)

        if was_productive:
            procrastination = max(0.0, current.procrastination_score - 5)
        else:
            procrastination = min(100.0, current.procrastination_score + 10)

        days_idle = 0.0
        if current.last_worked_on is not None:
            days_idle = (now - current.last_worked_on).total_seconds() / 86400
        consistency = current.consistency_score
        if days_idle <= 1:
            consistency = min(100.0, consistency + 5)
        elif days_idle > 3:
            consistency = max(0.0, consistency - 10)

        return dataclasses.replace(
            current,
            total_time_spent=total,
            sessions_count=count,
            average_session_length=total / count,
            productive_hours=productive_hours,
            procrastination_score=procrastination,
            consistency_score=consistency,
            last_worked_on=now,
        )
