"""
Activity Collector — samples passive activity and derives productivity metrics.

Sampling is gated on monitoring permissions: while at least one grant is true
a ticker polls every granted source, stores the events, and prunes anything
older than the retention window. Metrics are computed on demand from the
stored events (numpy for the hourly variance).
"""

from __future__ import annotations

import dataclasses
import json
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PySide6.QtCore import QObject, Signal

from taskdefender.data.models import (
    ActivityCategory,
    ActivityEvent,
    ActivitySummary,
    MetricsPeriod,
    MonitoringPermissions,
    Permission,
    ProductivityMetrics,
    TimeRange,
)
from taskdefender.data.repository import PersistenceError, Repository
from taskdefender.services.activity_sources import ActivitySource
from taskdefender.services.ticker import QtTicker, Ticker

logger = logging.getLogger(__name__)

DEFAULT_SAMPLING_INTERVAL_S = 30
DEFAULT_RETENTION_DAYS = 7
FULL_FOCUS_SECONDS = 1800  # a 30-minute average productive stretch scores 100
TOP_N = 10


def _new_id() -> str:
    return uuid.uuid4().hex


class ActivityCollector(QObject):
    """Owns monitoring permissions, the sampling timer, and activity metrics."""

    permissions_changed = Signal(object)  # MonitoringPermissions snapshot

    def __init__(
        self,
        repo: Repository,
        sources: Sequence[ActivitySource] = (),
        ticker: Optional[Ticker] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
        user_id: str = "current-user",
        sampling_interval_s: float = DEFAULT_SAMPLING_INTERVAL_S,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        super().__init__()
        self.repo = repo
        self.sources = list(sources)
        self.ticker = ticker or QtTicker()
        self.clock = clock
        self.id_factory = id_factory
        self.user_id = user_id
        self.sampling_interval_s = sampling_interval_s
        self.retention_days = retention_days

        self._monitoring = False
        self.permissions = self._load_permissions()

    # ── Permissions ─────────────────────────────────────────────────────────

    def get_permissions(self) -> MonitoringPermissions:
        return dataclasses.replace(self.permissions)

    def update_permissions(self, changes: Dict[str, bool]) -> MonitoringPermissions:
        """
        Merge `changes` into the current grants. Grants not named keep their
        value. permissions_changed fires before this returns, then sampling is
        started or stopped to match.
        """
        for name, value in changes.items():
            if name not in Permission.ALL:
                logger.warning("Ignoring unknown monitoring permission %r", name)
                continue
            setattr(self.permissions, name, bool(value))
        self.permissions.last_updated = self.clock()

        try:
            self.repo.save_permissions(self.permissions)
        except PersistenceError:
            logger.exception("Failed to save monitoring permissions")

        snapshot = self.get_permissions()
        self.permissions_changed.emit(snapshot)

        if self.permissions.any_granted():
            self.start_monitoring()
        else:
            self.stop_monitoring()
        return snapshot

    # ── Monitoring lifecycle ────────────────────────────────────────────────

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    def start_monitoring(self) -> None:
        if self._monitoring or not self.permissions.any_granted():
            return
        self._monitoring = True
        self.ticker.start(self.sampling_interval_s, self.collect_activity_data)
        logger.info("Monitoring started (every %ss).", self.sampling_interval_s)

    def stop_monitoring(self) -> None:
        if not self._monitoring:
            return
        self._monitoring = False
        self.ticker.stop()
        logger.info("Monitoring stopped.")

    def destroy(self) -> None:
        self.stop_monitoring()

    # ── Sampling ────────────────────────────────────────────────────────────

    def collect_activity_data(self) -> List[ActivityEvent]:
        """One sampling tick: poll every granted source."""
        now = self.clock()
        collected: List[ActivityEvent] = []
        for source in self.sources:
            if not self.permissions.is_granted(source.permission):
                continue
            try:
                event = source.sample(now, self.user_id)
            except Exception:
                logger.exception("Activity source %s failed", source.name)
                continue
            if event is None:
                continue
            stored = self.add_activity(event)
            if stored is not None:
                collected.append(stored)
        return collected

    def add_activity(self, event: ActivityEvent) -> Optional[ActivityEvent]:
        """Validate, store, and prune. Returns the stored event or None."""
        if event.duration is None or event.duration < 0:
            logger.warning("Rejecting activity with negative duration: %r", event.duration)
            return None
        if event.category not in ActivityCategory.ALL:
            logger.warning("Rejecting activity with unknown category %r", event.category)
            return None

        if not event.id:
            event.id = self.id_factory()
        if event.timestamp is None:
            event.timestamp = self.clock()
        if not event.user_id:
            event.user_id = self.user_id

        try:
            self.repo.add_activity(event)
            cutoff = self.clock() - timedelta(days=self.retention_days)
            pruned = self.repo.prune_activities(cutoff)
        except PersistenceError:
            logger.exception("Failed to store activity %s", event.id)
            return None
        if pruned:
            logger.debug("Pruned %d activities older than %s", pruned, cutoff)
        return event

    # ── Queries ─────────────────────────────────────────────────────────────

    def get_activities(self, time_range: Optional[TimeRange] = None) -> List[ActivityEvent]:
        """Stored events inside the inclusive range, newest first."""
        try:
            if time_range is None:
                return self.repo.list_activities()
            return self.repo.list_activities(time_range.start, time_range.end)
        except PersistenceError:
            logger.exception("Failed to load activities")
            return []

    def get_activity_summary(self, time_range: Optional[TimeRange] = None) -> ActivitySummary:
        return self._summarize(self.get_activities(time_range))

    def calculate_productivity_metrics(
        self, time_range: Optional[TimeRange] = None
    ) -> ProductivityMetrics:
        activities = self.get_activities(time_range)
        period = self._period_for(time_range)
        now = self.clock()
        if not activities:
            return ProductivityMetrics(calculated_at=now, period=period)

        summary = self._summarize(activities)
        productive = [a.duration for a in activities if a.category == ActivityCategory.PRODUCTIVE]
        avg_productive = float(np.mean(productive)) if productive else 0.0
        focus = min(100, round(avg_productive / FULL_FOCUS_SECONDS * 100))

        ratio = summary.productive_time / summary.total_time if summary.total_time > 0 else 0.0
        productivity = round(ratio * 100)
        time_management = round(ratio * 100)

        hourly: Dict[int, float] = defaultdict(float)
        for a in activities:
            hourly[a.timestamp.hour] += a.duration
        variance = float(np.var(list(hourly.values())))
        consistency = max(0, min(100, 100 - round(variance / 1000)))

        overall = round(
            focus * 0.3 + productivity * 0.3 + time_management * 0.2 + consistency * 0.2
        )
        return ProductivityMetrics(
            focus_score=focus,
            productivity_score=productivity,
            time_management_score=time_management,
            consistency_score=consistency,
            overall_score=overall,
            calculated_at=now,
            period=period,
        )

    # ── Maintenance ─────────────────────────────────────────────────────────

    def clear_activities(self) -> None:
        try:
            self.repo.clear_activities()
            logger.info("Activity history cleared.")
        except PersistenceError:
            logger.exception("Failed to clear activities")

    def export_activities(self, time_range: Optional[TimeRange] = None) -> str:
        """JSON dump of the stored events (ISO timestamps)."""
        rows = []
        for a in self.get_activities(time_range):
            row = dataclasses.asdict(a)
            row["timestamp"] = a.timestamp.isoformat() if a.timestamp else None
            rows.append(row)
        return json.dumps(rows, indent=2)

    # ── Internal ────────────────────────────────────────────────────────────

    def _load_permissions(self) -> MonitoringPermissions:
        try:
            stored = self.repo.load_permissions()
        except PersistenceError:
            logger.exception("Failed to load monitoring permissions, using defaults")
            stored = None
        return stored or MonitoringPermissions(last_updated=self.clock())

    @staticmethod
    def _period_for(time_range: Optional[TimeRange]) -> str:
        if time_range is None:
            return MetricsPeriod.DAILY
        span = time_range.end - time_range.start
        if span <= timedelta(days=1):
            return MetricsPeriod.DAILY
        if span <= timedelta(days=7):
            return MetricsPeriod.WEEKLY
        return MetricsPeriod.MONTHLY

    @staticmethod
    def _summarize(activities: List[ActivityEvent]) -> ActivitySummary:
        summary = ActivitySummary()
        per_category = {
            ActivityCategory.PRODUCTIVE: "productive_time",
            ActivityCategory.DISTRACTING: "distracting_time",
            ActivityCategory.NEUTRAL: "neutral_time",
            ActivityCategory.BREAK: "break_time",
        }
        apps: Dict[str, List] = {}
        sites: Dict[str, List] = {}

        for a in activities:
            summary.total_time += a.duration
            attr = per_category[a.category]
            setattr(summary, attr, getattr(summary, attr) + a.duration)
            # activities are newest first, so the first category seen wins
            if a.application:
                apps.setdefault(a.application, [0.0, a.category])[0] += a.duration
            if a.website:
                sites.setdefault(a.website, [0.0, a.category])[0] += a.duration

        summary.top_applications = _top(apps)
        summary.top_websites = _top(sites)
        return summary


def _top(totals: Dict[str, List]) -> List[Tuple[str, float, str]]:
    ranked = sorted(totals.items(), key=lambda kv: kv[1][0], reverse=True)
    return [(name, secs, cat) for name, (secs, cat) in ranked[:TOP_N]]
