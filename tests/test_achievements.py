"""Tests for badge evaluation."""

from datetime import timedelta

from conftest import START
from taskdefender.data.models import Task
from taskdefender.services.achievements import earned_badges, evaluate_badges


def _done(n, **kw):
    return [
        Task(id=f"t{i}", status="done", created_at=START - timedelta(days=1),
             completed_at=START, due_date=START + timedelta(minutes=30), **kw)
        for i in range(n)
    ]


def _by_id(badges):
    return {b.id: b for b in badges}


def test_nothing_earned_for_new_user():
    badges = evaluate_badges([], 0, 100, {}, START)
    assert len(badges) == 9
    earned = earned_badges(badges)
    assert set(earned) == {"perfectionist"}


def test_royalty_needs_ten_on_one_day():
    today = START.date()
    spread = {today - timedelta(days=i): 5 for i in range(4)}
    assert not _by_id(evaluate_badges([], 0, 100, spread, START))["productivity_king"].earned

    spread[today] = 10
    royalty = _by_id(evaluate_badges([], 0, 100, spread, START))["productivity_king"]
    assert royalty.earned
    assert royalty.progress == 10


def test_counts_and_progress():
    tasks = _done(4) + [Task(id="x", honestly_completed=False, status="done",
                             completed_at=START - timedelta(days=3))]
    b = _by_id(evaluate_badges(tasks, 7, 80, {START.date(): 4}, START))
    assert b["i_did_a_thing"].earned
    assert b["streak_warrior"].earned
    assert not b["consistency_champion"].earned
    assert b["last_minute_larry"].progress == 4
    assert not b["last_minute_larry"].earned
    assert b["captain_excuse"].progress == 1
    assert not b["perfectionist"].earned
    assert b["task_terminator"].progress == 5


def test_legend_requires_every_other_badge():
    tasks = _done(47) + _done(3, honestly_completed=False)
    daily = {START.date(): 50}
    badges = evaluate_badges(tasks, 30, 96, daily, START)
    legend = _by_id(badges)["legend"]
    assert legend.earned
    assert legend.progress == legend.max_progress == 8

    badges = evaluate_badges(tasks, 30, 90, daily, START)
    legend = _by_id(badges)["legend"]
    assert not legend.earned
    assert legend.progress == 7
