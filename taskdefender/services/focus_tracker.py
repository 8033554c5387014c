"""
Focus Session Tracker — measures focused vs. distracted time in a session.

The tracker listens to a FocusSignals hub (page hidden/visible, window
blur/focus, before-unload). Losing visibility or focus pauses the session and
counts a distraction; regaining it resumes. Stopping flushes any open pause,
persists a FocusSessionRecord, and reports integer-second totals for which
duration == focus_time + distraction_time always holds.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from PySide6.QtCore import QObject, Qt, Signal

from taskdefender.data.models import ActionKind, FocusSessionRecord, FocusStats
from taskdefender.data.repository import PersistenceError, Repository

logger = logging.getLogger(__name__)

DEFAULT_SESSION_CAP = 100


# ── Signal hub ──────────────────────────────────────────────────────────────

class FocusSignals(QObject):
    """The five attention signals a focus session reacts to."""

    page_hidden = Signal()
    page_visible = Signal()
    window_blur = Signal()
    window_focus = Signal()
    before_unload = Signal()


class QtFocusSignals(FocusSignals):
    """Drives the hub from QGuiApplication state changes."""

    def __init__(self, app) -> None:
        super().__init__()
        self.app = app
        app.applicationStateChanged.connect(self._on_state_changed)
        app.aboutToQuit.connect(self.before_unload.emit)

    def _on_state_changed(self, state) -> None:
        if state == Qt.ApplicationState.ApplicationActive:
            self.page_visible.emit()
            self.window_focus.emit()
        elif state == Qt.ApplicationState.ApplicationInactive:
            self.window_blur.emit()
        else:  # hidden / suspended
            self.page_hidden.emit()


# ── Tracker ─────────────────────────────────────────────────────────────────

class FocusState:
    IDLE = "idle"
    TRACKING = "tracking"
    PAUSED = "paused"
    STOPPED = "stopped"


class FocusTracker:
    """
    State machine:
        idle → tracking → (paused ⇄ tracking) → stopped → tracking ...

    The optional ledger receives focus_started / procrastination_detected /
    focus_completed actions when the session is bound to a user.
    """

    def __init__(
        self,
        repo: Repository,
        signals: FocusSignals,
        ledger=None,
        clock: Callable[[], datetime] = datetime.now,
        session_cap: int = DEFAULT_SESSION_CAP,
    ) -> None:
        self.repo = repo
        self.signals = signals
        self.ledger = ledger
        self.clock = clock
        self.session_cap = session_cap

        self.state: str = FocusState.IDLE
        self.session_id: Optional[str] = None
        self.user_id: Optional[str] = None
        self.task_id: Optional[str] = None
        self._start: Optional[datetime] = None
        self._pause_start: Optional[datetime] = None
        self._paused = timedelta(0)
        self._distractions = 0
        self._page_hidden = False

    @property
    def is_tracking(self) -> bool:
        return self.state in (FocusState.TRACKING, FocusState.PAUSED)

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def start_tracking(
        self,
        session_id: str,
        user_id: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> bool:
        if self.is_tracking:
            logger.warning(
                "Focus session %s already running; ignoring start of %s",
                self.session_id, session_id,
            )
            return False

        self.session_id = session_id
        self.user_id = user_id
        self.task_id = task_id
        self._start = self.clock()
        self._pause_start = None
        self._paused = timedelta(0)
        self._distractions = 0
        self._page_hidden = False
        self._connect()
        self.state = FocusState.TRACKING

        self._log(ActionKind.FOCUS_STARTED)
        logger.info("Focus tracking started for session %s", session_id)
        return True

    def stop_tracking(self) -> FocusStats:
        if not self.is_tracking:
            return FocusStats()

        now = self.clock()
        if self._pause_start is not None:
            self._paused += now - self._pause_start
            self._pause_start = None

        stats = self._stats_at(now, include_open_pause=False)
        self._disconnect()
        self.state = FocusState.STOPPED

        record = FocusSessionRecord(
            session_id=self.session_id or "",
            user_id=self.user_id,
            task_id=self.task_id,
            start_time=self._start,
            end_time=now,
            total_duration=stats.duration,
            focus_time=stats.focus_time,
            distraction_time=stats.distraction_time,
            distraction_count=stats.distractions,
        )
        try:
            self.repo.save_focus_session(record, self.session_cap)
        except PersistenceError:
            logger.exception("Failed to save focus session %s", self.session_id)

        self._log(ActionKind.FOCUS_COMPLETED, {"duration": stats.duration})
        logger.info(
            "Focus tracking stopped: %ds total, %ds focused, %d distractions",
            stats.duration, stats.focus_time, stats.distractions,
        )
        return stats

    def get_current_stats(self) -> FocusStats:
        if not self.is_tracking:
            return FocusStats()
        return self._stats_at(self.clock(), include_open_pause=True)

    # ── Signal handlers ─────────────────────────────────────────────────────

    def _on_page_hidden(self) -> None:
        self._page_hidden = True
        if self.state == FocusState.TRACKING:
            self._pause("page hidden")

    def _on_page_visible(self) -> None:
        self._page_hidden = False
        if self.state == FocusState.PAUSED:
            self._resume("page visible")

    def _on_window_blur(self) -> None:
        if self.state == FocusState.TRACKING and not self._page_hidden:
            self._pause("window blur")

    def _on_window_focus(self) -> None:
        if self.state == FocusState.PAUSED and not self._page_hidden:
            self._resume("window focus")

    def _on_before_unload(self) -> None:
        self.stop_tracking()

    def _pause(self, reason: str) -> None:
        self._pause_start = self.clock()
        self._distractions += 1
        self.state = FocusState.PAUSED
        logger.debug("Distraction detected: %s", reason)
        self._log(ActionKind.PROCRASTINATION_DETECTED, {"reason": reason})

    def _resume(self, reason: str) -> None:
        if self._pause_start is not None:
            self._paused += self.clock() - self._pause_start
            self._pause_start = None
        self.state = FocusState.TRACKING
        logger.debug("Focus resumed: %s", reason)

    # ── Analytics ───────────────────────────────────────────────────────────

    def get_focus_analytics(self, days: int = 30) -> Dict[str, int]:
        since = self.clock() - timedelta(days=days)
        try:
            sessions = self.repo.list_focus_sessions(since)
        except PersistenceError:
            logger.exception("Failed to load focus sessions")
            sessions = []

        n = len(sessions)
        ratios = [s.focus_time / s.total_duration for s in sessions if s.total_duration > 0]
        return {
            "total_sessions": n,
            "total_focus_minutes": round(sum(s.focus_time for s in sessions) / 60),
            "total_distractions": sum(s.distraction_count for s in sessions),
            "average_focus_ratio": round(sum(ratios) / len(ratios) * 100) if ratios else 0,
            "average_session_length": round(sum(s.total_duration for s in sessions) / n / 60) if n else 0,
        }

    # ── Internal ────────────────────────────────────────────────────────────

    def _stats_at(self, now: datetime, include_open_pause: bool) -> FocusStats:
        paused = self._paused
        if include_open_pause and self._pause_start is not None:
            paused += now - self._pause_start
        duration = round((now - self._start).total_seconds())
        distraction = min(duration, round(paused.total_seconds()))
        return FocusStats(
            duration=duration,
            distractions=self._distractions,
            focus_time=duration - distraction,
            distraction_time=distraction,
            is_paused=self._pause_start is not None,
        )

    def _handlers(self):
        return (
            (self.signals.page_hidden, self._on_page_hidden),
            (self.signals.page_visible, self._on_page_visible),
            (self.signals.window_blur, self._on_window_blur),
            (self.signals.window_focus, self._on_window_focus),
            (self.signals.before_unload, self._on_before_unload),
        )

    def _connect(self) -> None:
        for signal, slot in self._handlers():
            signal.connect(slot)

    def _disconnect(self) -> None:
        for signal, slot in self._handlers():
            signal.disconnect(slot)

    def _log(self, action: str, metadata: Optional[dict] = None) -> None:
        if self.ledger is None or not self.user_id:
            return
        self.ledger.log_action(self.user_id, action, self.task_id, metadata)
