"""
Seed Data Generator — fills a database with a week of fake history.

Creates activity events, a ledger of user actions with integrity adjustments,
and focus-session summaries so the analytics have something to chew on.

Run: python scripts/seed_data.py
"""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from taskdefender.data.database import Database
from taskdefender.data.models import ActionKind, FocusSessionRecord, MonitoringPermissions
from taskdefender.data.repository import Repository
from taskdefender.services.action_ledger import ActionLedger
from taskdefender.services.activity_collector import ActivityCollector
from taskdefender.services.activity_sources import default_sources
from taskdefender.services.ticker import ManualTicker

USER_ID = "current-user"


def seed(days: int = 7, samples_per_day: int = 40) -> None:
    db = Database()
    repo = Repository(db.connect())
    rng = random.Random()
    now = datetime.now()

    # ── Activity ────────────────────────────────────────────────────────
    clock_time = [now]
    collector = ActivityCollector(
        repo,
        sources=default_sources(rng),
        ticker=ManualTicker(),
        clock=lambda: clock_time[0],
        user_id=USER_ID,
    )
    repo.save_permissions(MonitoringPermissions(
        browser_tracking=True, application_tracking=True,
        system_monitoring=True, last_updated=now,
    ))
    collector.permissions = repo.load_permissions()

    for day in range(days, 0, -1):
        start = (now - timedelta(days=day - 1)).replace(hour=9, minute=0, second=0, microsecond=0)
        for i in range(samples_per_day):
            clock_time[0] = start + timedelta(minutes=i * 12 + rng.randint(0, 5))
            if clock_time[0] > now:
                break
            collector.collect_activity_data()

    # ── Ledger ──────────────────────────────────────────────────────────
    for day in range(days, 0, -1):
        day_start = (now - timedelta(days=day - 1)).replace(hour=8, minute=0)
        ledger = ActionLedger(repo, clock=lambda t=day_start: t + timedelta(hours=rng.randint(0, 10)))
        for _ in range(rng.randint(1, 5)):
            ledger.log_action(USER_ID, ActionKind.TASK_CREATED)
            ledger.log_action(USER_ID, ActionKind.TASK_COMPLETED,
                              metadata={"completionTime": rng.randint(15, 120)})
            if rng.random() < 0.85:
                ledger.log_action(USER_ID, ActionKind.HONEST_COMPLETION, integrity_impact=1)
            else:
                ledger.log_action(USER_ID, ActionKind.DISHONEST_COMPLETION, integrity_impact=-5)

        # ── Focus sessions ──────────────────────────────────────────────
        for n in range(rng.randint(1, 3)):
            start = day_start + timedelta(hours=1 + n * 3)
            total = rng.randint(15, 90) * 60
            distraction = rng.randint(0, total // 4)
            repo.save_focus_session(FocusSessionRecord(
                session_id=f"seed-{day}-{n}",
                user_id=USER_ID,
                start_time=start,
                end_time=start + timedelta(seconds=total),
                total_duration=total,
                focus_time=total - distraction,
                distraction_time=distraction,
                distraction_count=rng.randint(0, 6),
            ), keep=100)

    print(f"Seeded {days} days of history for {USER_ID}.")
    db.close()


if __name__ == "__main__":
    seed()
