"""Tests for the action ledger: logging, integrity, analytics and streaks."""

from datetime import timedelta

import pytest

from taskdefender.data.models import ActionKind
from taskdefender.services.action_ledger import ActionLedger


@pytest.fixture
def ledger(repo, clock, ids):
    return ActionLedger(repo, clock=clock, id_factory=ids)


def _complete_on(ledger, clock, days_ago):
    saved = clock.now
    clock.now = saved - timedelta(days=days_ago)
    ledger.log_action("u1", ActionKind.TASK_COMPLETED)
    clock.now = saved


class TestLogging:
    def test_returns_record(self, ledger, clock):
        rec = ledger.log_action("u1", ActionKind.TASK_CREATED, task_id="t1",
                                metadata={"title": "Write report"})
        assert rec.id == "id-1"
        assert rec.timestamp == clock()
        assert ledger.get_actions("u1")[0].metadata == {"title": "Write report"}

    def test_dishonest_completion_lowers_integrity(self, ledger):
        ledger.log_action("u1", ActionKind.DISHONEST_COMPLETION, integrity_impact=-5)
        assert ledger.get_integrity_score("u1") == 95

    def test_integrity_clamped(self, ledger):
        ledger.log_action("u1", ActionKind.HONEST_COMPLETION, integrity_impact=10)
        assert ledger.get_integrity_score("u1") == 100
        for _ in range(30):
            ledger.log_action("u1", ActionKind.DISHONEST_COMPLETION, integrity_impact=-5)
        assert ledger.get_integrity_score("u1") == 0

    def test_history_cap(self, repo, clock, ids):
        ledger = ActionLedger(repo, clock=clock, id_factory=ids, history_cap=10)
        for _ in range(15):
            ledger.log_action("u1", ActionKind.TASK_CREATED)
        actions = ledger.get_actions("u1")
        assert len(actions) == 10
        assert actions[0].id == "id-6"

    def test_unknown_action_rejected(self, ledger):
        assert ledger.log_action("u1", "took_a_nap") is None
        assert ledger.get_actions("u1") == []

    def test_persistence_failure_returns_none(self, broken_repo, clock):
        ledger = ActionLedger(broken_repo, clock=clock)
        assert ledger.log_action("u1", ActionKind.TASK_CREATED, integrity_impact=-5) is None
        assert ledger.get_integrity_score("u1") == 100
        assert ledger.get_streak_data("u1") == {"current_streak": 0, "longest_streak": 0}


class TestAnalytics:
    def test_counts_and_focus_minutes(self, ledger):
        ledger.log_action("u1", ActionKind.TASK_COMPLETED, metadata={"completionTime": 30})
        ledger.log_action("u1", ActionKind.TASK_COMPLETED, metadata={"completionTime": 50})
        ledger.log_action("u1", ActionKind.FOCUS_COMPLETED, metadata={"duration": 1500})
        ledger.log_action("u1", ActionKind.FOCUS_COMPLETED, metadata={"duration": 900})
        ledger.log_action("u1", ActionKind.PROCRASTINATION_DETECTED)
        ledger.log_action("u1", ActionKind.HONEST_COMPLETION)
        ledger.log_action("u1", ActionKind.HONEST_COMPLETION)
        ledger.log_action("u1", ActionKind.HONEST_COMPLETION)
        ledger.log_action("u1", ActionKind.DISHONEST_COMPLETION)

        data = ledger.get_analytics_data("u1")
        assert data["tasks_completed"] == 2
        assert data["focus_sessions_completed"] == 2
        assert data["total_focus_minutes"] == 40
        assert data["procrastination_events"] == 1
        assert data["average_task_completion_time"] == 40
        assert data["integrity_score"] == 75
        assert data["total_actions"] == 9

    def test_integrity_100_without_completions(self, ledger):
        ledger.log_action("u1", ActionKind.TASK_CREATED)
        assert ledger.get_analytics_data("u1")["integrity_score"] == 100

    def test_window_excludes_old_actions(self, ledger, clock):
        _complete_on(ledger, clock, days_ago=40)
        ledger.log_action("u1", ActionKind.TASK_COMPLETED)
        assert ledger.get_analytics_data("u1", days=30)["tasks_completed"] == 1


class TestStreaks:
    def test_three_consecutive_days(self, ledger, clock):
        for d in (2, 1, 0):
            _complete_on(ledger, clock, d)
        assert ledger.get_streak_data("u1") == {"current_streak": 3, "longest_streak": 3}

    def test_gap_resets_current(self, ledger, clock):
        _complete_on(ledger, clock, 2)
        _complete_on(ledger, clock, 0)
        assert ledger.get_streak_data("u1") == {"current_streak": 1, "longest_streak": 1}

    def test_no_completion_today_means_zero_current(self, ledger, clock):
        for d in (5, 4, 3, 1):
            _complete_on(ledger, clock, d)
        assert ledger.get_streak_data("u1") == {"current_streak": 0, "longest_streak": 3}

    def test_multiple_completions_same_day(self, ledger, clock):
        _complete_on(ledger, clock, 1)
        _complete_on(ledger, clock, 0)
        _complete_on(ledger, clock, 0)
        assert ledger.get_streak_data("u1")["current_streak"] == 2
        counts = ledger.get_daily_completion_counts("u1")
        assert counts[clock().date()] == 2

    def test_no_completions(self, ledger):
        assert ledger.get_streak_data("u1") == {"current_streak": 0, "longest_streak": 0}
