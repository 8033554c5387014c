"""Badge evaluation from task history, streak and integrity figures."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Mapping, Sequence

from taskdefender.data.models import Badge, Task, TaskStatus


def evaluate_badges(
    tasks: Sequence[Task],
    streak: int,
    integrity_score: float,
    daily_completions: Mapping[date, int],
    now: datetime,
) -> List[Badge]:
    """
    Compute every badge's progress and earned flag.

    `daily_completions` comes from ActionLedger.get_daily_completion_counts and
    drives "Productivity Royalty" (10 completions on any single day).
    "TaskDefender Legend" is earned once every other badge is.
    """
    today = now.date()
    completed = [t for t in tasks if t.status == TaskStatus.DONE]
    completed_today = [
        t for t in completed
        if (t.completed_at or t.created_at) is not None
        and (t.completed_at or t.created_at).date() == today
    ]
    dishonest = sum(1 for t in tasks if t.honestly_completed is False)
    last_minute = sum(
        1 for t in completed
        if t.due_date is not None and t.completed_at is not None
        and t.due_date - t.completed_at < timedelta(hours=1)
    )
    best_day = max(daily_completions.values(), default=0)

    badges = [
        Badge("captain_excuse", "Captain Excuse",
              "Master of creative procrastination (ironic achievement)",
              earned=dishonest >= 3, progress=dishonest, max_progress=3),
        Badge("i_did_a_thing", "I Did a Thing Today",
              "Completed at least one task today",
              earned=len(completed_today) > 0, progress=len(completed_today), max_progress=1),
        Badge("streak_warrior", "Streak Warrior",
              "Maintained a 7-day productivity streak",
              earned=streak >= 7, progress=streak, max_progress=7),
        Badge("last_minute_larry", "Last Minute Larry",
              "Completed 5 tasks within 1 hour of deadline",
              earned=last_minute >= 5, progress=last_minute, max_progress=5),
        Badge("perfectionist", "Perfectionist",
              "Maintained 95%+ integrity score",
              earned=integrity_score >= 95, progress=integrity_score, max_progress=95),
        Badge("task_terminator", "Task Terminator",
              "Completed 50 tasks total",
              earned=len(completed) >= 50, progress=len(completed), max_progress=50),
        Badge("productivity_king", "Productivity Royalty",
              "Completed 10 tasks in a single day",
              earned=best_day >= 10, progress=best_day, max_progress=10),
        Badge("consistency_champion", "Consistency Champion",
              "Worked on tasks for 30 consecutive days",
              earned=streak >= 30, progress=streak, max_progress=30),
    ]

    others_earned = sum(1 for b in badges if b.earned)
    badges.append(Badge(
        "legend", "TaskDefender Legend",
        "Achieved all other badges - Your Last Line of Defense!",
        earned=others_earned == len(badges), progress=others_earned, max_progress=len(badges),
    ))
    return badges


def earned_badges(badges: Sequence[Badge]) -> Dict[str, Badge]:
    return {b.id: b for b in badges if b.earned}
