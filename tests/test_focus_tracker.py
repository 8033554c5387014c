"""Tests for the focus session state machine."""

from datetime import timedelta

import pytest
from PySide6.QtCore import SIGNAL

from taskdefender.data.models import ActionKind
from taskdefender.services.action_ledger import ActionLedger
from taskdefender.services.focus_tracker import FocusSignals, FocusState, FocusTracker


@pytest.fixture
def signals():
    return FocusSignals()


@pytest.fixture
def ledger(repo, clock, ids):
    return ActionLedger(repo, clock=clock, id_factory=ids)


@pytest.fixture
def tracker(repo, signals, ledger, clock):
    return FocusTracker(repo, signals, ledger=ledger, clock=clock)


def _assert_invariant(stats):
    assert stats.duration == stats.focus_time + stats.distraction_time


class TestLifecycle:
    def test_start_from_idle(self, tracker):
        assert tracker.start_tracking("s1")
        assert tracker.state == FocusState.TRACKING

    def test_start_while_tracking_ignored(self, tracker, clock):
        tracker.start_tracking("s1")
        clock.advance(seconds=30)
        assert tracker.start_tracking("s2") is False
        assert tracker.session_id == "s1"
        assert tracker.get_current_stats().duration == 30

    def test_stop_twice_returns_zero(self, tracker, clock):
        tracker.start_tracking("s1")
        clock.advance(seconds=10)
        first = tracker.stop_tracking()
        second = tracker.stop_tracking()
        assert first.duration == 10
        assert (second.duration, second.distractions, second.focus_time) == (0, 0, 0)
        assert tracker.state == FocusState.STOPPED

    def test_restart_after_stop(self, tracker, clock):
        tracker.start_tracking("s1")
        tracker.stop_tracking()
        assert tracker.start_tracking("s2")
        assert tracker.get_current_stats().distractions == 0

    def test_listeners_removed_on_stop(self, tracker, signals):
        tracker.start_tracking("s1")
        assert signals.receivers(SIGNAL("page_hidden()")) == 1
        tracker.stop_tracking()
        assert signals.receivers(SIGNAL("page_hidden()")) == 0
        signals.page_hidden.emit()
        assert tracker.state == FocusState.STOPPED


class TestSuspendResume:
    def test_hide_show_scenario(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        clock.advance(seconds=10)
        signals.page_hidden.emit()
        clock.advance(seconds=5)
        signals.page_visible.emit()
        stats = tracker.stop_tracking()
        assert stats.distraction_time == 5
        assert stats.distractions == 1
        assert stats.focus_time == 10
        _assert_invariant(stats)

    def test_blur_focus_pauses(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        signals.window_blur.emit()
        assert tracker.state == FocusState.PAUSED
        clock.advance(seconds=3)
        signals.window_focus.emit()
        assert tracker.state == FocusState.TRACKING
        assert tracker.get_current_stats().distraction_time == 3

    def test_blur_while_hidden_not_double_counted(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        signals.page_hidden.emit()
        signals.window_blur.emit()
        signals.window_focus.emit()  # still hidden: no resume
        assert tracker.state == FocusState.PAUSED
        assert tracker.get_current_stats().distractions == 1

    def test_snapshot_mid_pause(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        clock.advance(seconds=20)
        signals.page_hidden.emit()
        clock.advance(seconds=7)
        stats = tracker.get_current_stats()
        assert stats.is_paused
        assert stats.distraction_time == 7
        _assert_invariant(stats)
        # snapshot does not mutate
        assert tracker.get_current_stats() == stats

    def test_stop_flushes_open_pause(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        clock.advance(seconds=4)
        signals.window_blur.emit()
        clock.advance(seconds=6)
        stats = tracker.stop_tracking()
        assert stats.distraction_time == 6
        assert stats.focus_time == 4
        assert not stats.is_paused

    def test_invariant_with_sub_second_intervals(self, tracker, signals, clock):
        tracker.start_tracking("s1")
        for _ in range(5):
            clock.advance(milliseconds=700)
            signals.window_blur.emit()
            clock.advance(milliseconds=600)
            signals.window_focus.emit()
            _assert_invariant(tracker.get_current_stats())
        _assert_invariant(tracker.stop_tracking())

    def test_unload_stops(self, tracker, signals, clock, repo):
        tracker.start_tracking("s1")
        clock.advance(seconds=2)
        signals.before_unload.emit()
        assert tracker.state == FocusState.STOPPED
        assert len(repo.list_focus_sessions()) == 1


class TestPersistenceAndLedger:
    def test_session_record_saved(self, tracker, signals, clock, repo):
        tracker.start_tracking("s1", task_id="t1")
        clock.advance(seconds=30)
        signals.page_hidden.emit()
        clock.advance(seconds=10)
        tracker.stop_tracking()
        rec = repo.list_focus_sessions()[0]
        assert (rec.session_id, rec.task_id) == ("s1", "t1")
        assert (rec.total_duration, rec.focus_time, rec.distraction_time) == (40, 30, 10)
        assert rec.distraction_count == 1

    def test_actions_logged_for_bound_user(self, tracker, signals, clock, repo):
        tracker.start_tracking("s1", user_id="u1", task_id="t1")
        signals.window_blur.emit()
        signals.window_focus.emit()
        clock.advance(seconds=90)
        tracker.stop_tracking()
        kinds = [a.action for a in repo.list_actions("u1")]
        assert kinds == [
            ActionKind.FOCUS_STARTED,
            ActionKind.PROCRASTINATION_DETECTED,
            ActionKind.FOCUS_COMPLETED,
        ]
        assert repo.list_actions("u1")[-1].metadata == {"duration": 90}

    def test_no_actions_without_user(self, tracker, signals, repo):
        tracker.start_tracking("s1")
        signals.page_hidden.emit()
        tracker.stop_tracking()
        assert repo.count_actions("") == 0

    def test_persistence_failure_still_returns_stats(self, broken_repo, signals, clock):
        t = FocusTracker(broken_repo, signals, clock=clock)
        t.start_tracking("s1")
        clock.advance(seconds=12)
        assert t.stop_tracking().duration == 12
        assert t.get_focus_analytics()["total_sessions"] == 0

    def test_focus_analytics(self, tracker, signals, clock):
        for _ in range(2):
            tracker.start_tracking("s")
            clock.advance(minutes=8)
            signals.page_hidden.emit()
            clock.advance(minutes=2)
            signals.page_visible.emit()
            tracker.stop_tracking()
        a = tracker.get_focus_analytics()
        assert a["total_sessions"] == 2
        assert a["total_focus_minutes"] == 16
        assert a["total_distractions"] == 2
        assert a["average_focus_ratio"] == 80
        assert a["average_session_length"] == 10

    def test_zero_length_sessions_ignored_in_focus_ratio(self, tracker, signals, clock):
        tracker.start_tracking("empty")
        tracker.stop_tracking()
        tracker.start_tracking("real")
        clock.advance(minutes=8)
        signals.window_blur.emit()
        clock.advance(minutes=2)
        tracker.stop_tracking()
        a = tracker.get_focus_analytics()
        assert a["total_sessions"] == 2
        assert a["average_focus_ratio"] == 80
