"""Unit tests for the data layer (database, repository, models)."""

from datetime import timedelta

import pytest

from conftest import START
from taskdefender.data.database import Database
from taskdefender.data.models import (
    ActivityEvent,
    FocusSessionRecord,
    MonitoringPermissions,
    PersonalizedRecommendation,
    PredictiveInsight,
    UserAction,
)
from taskdefender.data.repository import PersistenceError, Repository


def _event(id, ts, category="productive", duration=60.0, **kw):
    return ActivityEvent(id=id, timestamp=ts, category=category, duration=duration,
                         user_id="u1", **kw)


def _action(id, action="task_created", ts=START, user_id="u1"):
    return UserAction(id=id, user_id=user_id, action=action, timestamp=ts)


class TestDatabase:
    def test_connect_creates_schema(self):
        db = Database(db_path=":memory:")
        conn = db.connect()
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"activity_events", "user_actions", "focus_sessions", "ai_insights"} <= tables
        assert db.connect() is conn
        db.close()
        assert db.conn is None

    def test_reset_all_data(self, repo: Repository):
        repo.add_activity(_event("a", START))
        repo.record_action(_action("x"), 10, integrity_delta=-5)
        repo.reset_all_data()
        assert repo.list_activities() == []
        assert repo.count_actions("u1") == 0
        assert repo.get_integrity_score("u1") == 100


class TestActivities:
    def test_list_is_newest_first(self, repo: Repository):
        repo.add_activity(_event("a", START))
        repo.add_activity(_event("b", START + timedelta(minutes=5)))
        repo.add_activity(_event("c", START + timedelta(minutes=2)))
        assert [e.id for e in repo.list_activities()] == ["b", "c", "a"]

    def test_range_bounds_are_inclusive(self, repo: Repository):
        repo.add_activity(_event("before", START - timedelta(seconds=1)))
        repo.add_activity(_event("start", START))
        repo.add_activity(_event("end", START + timedelta(minutes=10)))
        repo.add_activity(_event("after", START + timedelta(minutes=10, microseconds=1)))
        got = repo.list_activities(START, START + timedelta(minutes=10))
        assert [e.id for e in got] == ["end", "start"]

    def test_prune_before(self, repo: Repository):
        repo.add_activity(_event("old", START - timedelta(days=8)))
        repo.add_activity(_event("new", START))
        assert repo.prune_activities(START - timedelta(days=7)) == 1
        assert [e.id for e in repo.list_activities()] == ["new"]

    def test_round_trip_fields(self, repo: Repository):
        repo.add_activity(_event("w", START, category="distracting", duration=42.5,
                                 website="youtube.com", url="https://youtube.com",
                                 source_type="passive-device"))
        e = repo.list_activities()[0]
        assert e.timestamp == START
        assert e.website == "youtube.com"
        assert e.duration == 42.5
        assert e.source_type == "passive-device"

    def test_negative_duration_rejected_by_schema(self, repo: Repository):
        with pytest.raises(PersistenceError):
            repo.add_activity(_event("neg", START, duration=-1))


class TestPermissions:
    def test_none_until_saved(self, repo: Repository):
        assert repo.load_permissions() is None

    def test_save_overwrites_single_row(self, repo: Repository):
        repo.save_permissions(MonitoringPermissions(browser_tracking=True, last_updated=START))
        repo.save_permissions(MonitoringPermissions(system_monitoring=True, last_updated=START))
        p = repo.load_permissions()
        assert p.system_monitoring and not p.browser_tracking
        assert p.last_updated == START


class TestActions:
    def test_history_capped_per_user(self, repo: Repository):
        for i in range(5):
            repo.record_action(_action(f"a{i}"), history_cap=3)
        repo.record_action(_action("other", user_id="u2"), history_cap=3)
        assert [a.id for a in repo.list_actions("u1")] == ["a2", "a3", "a4"]
        assert repo.count_actions("u2") == 1

    def test_integrity_defaults_to_100_and_clamps(self, repo: Repository):
        assert repo.get_integrity_score("u1") == 100
        assert repo.record_action(_action("x"), 10, integrity_delta=-5) == 95
        assert repo.record_action(_action("y"), 10, integrity_delta=50) == 100
        assert repo.record_action(_action("z"), 10, integrity_delta=-500) == 0
        assert repo.get_integrity_score("u1") == 0

    def test_no_delta_leaves_score(self, repo: Repository):
        assert repo.record_action(_action("x"), 10) is None
        assert repo.get_integrity_score("u1") == 100

    def test_metadata_round_trip(self, repo: Repository):
        a = _action("m", action="focus_completed")
        a.metadata = {"duration": 1500}
        repo.record_action(a, 10)
        assert repo.list_actions("u1")[0].metadata == {"duration": 1500}

    def test_failed_insert_does_not_touch_score(self, repo: Repository):
        repo.record_action(_action("dup"), 10)
        with pytest.raises(PersistenceError):
            repo.record_action(_action("dup"), 10, integrity_delta=-10)
        assert repo.get_integrity_score("u1") == 100


class TestAnalysisOutput:
    def test_replace_swaps_both_sets(self, repo: Repository):
        ins = PredictiveInsight(id="i1", type="focus_opportunity", severity="low",
                                title="t", confidence=90, related_task_ids=["t1"],
                                created_at=START)
        rec = PersonalizedRecommendation(id="r1", type="task_scheduling", priority="medium",
                                         title="r", action_items=["a", "b"],
                                         valid_until=START + timedelta(hours=1),
                                         created_at=START)
        repo.replace_analysis_output([ins], [rec])
        assert repo.load_insights()[0].related_task_ids == ["t1"]
        assert repo.load_recommendations()[0].action_items == ["a", "b"]

        repo.replace_analysis_output([], [])
        assert repo.load_insights() == []
        assert repo.load_recommendations() == []


class TestFocusSessions:
    def test_keeps_most_recent(self, repo: Repository):
        for i in range(4):
            repo.save_focus_session(FocusSessionRecord(
                session_id=f"s{i}", start_time=START, end_time=START + timedelta(minutes=i),
                total_duration=60, focus_time=50, distraction_time=10,
            ), keep=2)
        assert [s.session_id for s in repo.list_focus_sessions()] == ["s2", "s3"]

    def test_since_filter(self, repo: Repository):
        repo.save_focus_session(FocusSessionRecord(
            session_id="old", start_time=START - timedelta(days=40),
            end_time=START - timedelta(days=40), total_duration=1,
            focus_time=1, distraction_time=0), keep=100)
        repo.save_focus_session(FocusSessionRecord(
            session_id="new", start_time=START, end_time=START, total_duration=1,
            focus_time=1, distraction_time=0), keep=100)
        got = repo.list_focus_sessions(START - timedelta(days=30))
        assert [s.session_id for s in got] == ["new"]


class TestFailures:
    def test_closed_connection_raises_persistence_error(self, broken_repo: Repository):
        with pytest.raises(PersistenceError):
            broken_repo.list_activities()
        with pytest.raises(PersistenceError):
            broken_repo.record_action(_action("x"), 10, integrity_delta=-5)

    def test_persistence_error_is_runtime_error(self):
        assert issubclass(PersistenceError, RuntimeError)

    def test_unparseable_timestamp_raises_persistence_error(self, repo: Repository):
        repo.conn.execute(
            "INSERT INTO activity_events (id, user_id, timestamp, source_type, category, duration)"
            " VALUES ('bad', 'u1', 'not-a-date', 'system', 'neutral', 1)"
        )
        with pytest.raises(PersistenceError):
            repo.list_activities()

    def test_corrupt_metadata_raises_persistence_error(self, repo: Repository):
        repo.record_action(_action("m"), 10)
        repo.conn.execute("UPDATE user_actions SET metadata_json = '{oops' WHERE id = 'm'")
        with pytest.raises(PersistenceError):
            repo.list_actions("u1")
