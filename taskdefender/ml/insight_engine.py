"""
Contextual Insight Engine — periodic heuristics over recent activity.

Every analysis tick (5 minutes by default) the engine:
  1. Builds a ContextualState from the last 30 minutes of collector data
     plus the time of day.
  2. Runs a fixed, independent rule set that emits PredictiveInsights and
     PersonalizedRecommendations. Confidence values are per-rule constants.
  3. Prunes insights older than the retention window and expired
     recommendations, then replaces the stored sets.

No exception escapes a tick; failures are logged and the next tick runs
normally.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, time, timedelta
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from taskdefender.data.models import (
    ActivityCategory,
    ActivityEvent,
    ContextualState,
    InsightType,
    PersonalizedRecommendation,
    PredictiveInsight,
    Priority,
    RecommendationType,
    Task,
    TaskStatus,
    TimeRange,
    Urgency,
)
from taskdefender.data.repository import PersistenceError, Repository
from taskdefender.ml.task_analyzer import TaskPatternAnalyzer
from taskdefender.services.activity_collector import ActivityCollector
from taskdefender.services.ticker import QtTicker, Ticker

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_INTERVAL_S = 300
DEFAULT_INSIGHT_RETENTION_DAYS = 3
CONTEXT_WINDOW = timedelta(minutes=30)
BREAK_AFTER_SECONDS = 45 * 60
TREND_THRESHOLD = 5

AnalysisCallback = Callable[[List[PredictiveInsight], List[PersonalizedRecommendation]], None]


def _new_id() -> str:
    return uuid.uuid4().hex


class ContextualInsightEngine:
    def __init__(
        self,
        collector: ActivityCollector,
        repo: Repository,
        ticker: Optional[Ticker] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
        analyzer: Optional[TaskPatternAnalyzer] = None,
        task_provider: Optional[Callable[[], List[Task]]] = None,
        analysis_interval_s: float = DEFAULT_ANALYSIS_INTERVAL_S,
        insight_retention_days: int = DEFAULT_INSIGHT_RETENTION_DAYS,
        on_analysis: Optional[AnalysisCallback] = None,
    ) -> None:
        self.collector = collector
        self.repo = repo
        self.ticker = ticker or QtTicker()
        self.clock = clock
        self.id_factory = id_factory
        self.analyzer = analyzer or TaskPatternAnalyzer(clock=clock)
        self.task_provider = task_provider
        self.analysis_interval_s = analysis_interval_s
        self.insight_retention_days = insight_retention_days
        self.on_analysis = on_analysis

        self._running = False
        self.insights: List[PredictiveInsight] = []
        self.recommendations: List[PersonalizedRecommendation] = []
        self._load_stored_data()

    # ── Lifecycle ───────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    def start_continuous_analysis(self) -> None:
        if self._running:
            return
        self._running = True
        self.ticker.start(self.analysis_interval_s, self.perform_analysis)
        logger.info("Continuous analysis started (every %ss).", self.analysis_interval_s)

    def stop_continuous_analysis(self) -> None:
        if not self._running:
            return
        self._running = False
        self.ticker.stop()
        logger.info("Continuous analysis stopped.")

    def destroy(self) -> None:
        self.stop_continuous_analysis()

    # ── Analysis tick ───────────────────────────────────────────────────────

    def perform_analysis(self) -> Tuple[List[PredictiveInsight], List[PersonalizedRecommendation]]:
        """Run one tick. Returns the records created by it."""
        try:
            now = self.clock()
            context = self.get_current_context()
            new_insights = self.generate_predictive_insights(context, now)
            new_recs = self.generate_recommendations(context, now)
        except Exception:
            logger.exception("Analysis tick failed")
            return [], []

        self.insights.extend(new_insights)
        self.recommendations.extend(new_recs)
        self._cleanup_old_data(now)
        try:
            self.repo.replace_analysis_output(self.insights, self.recommendations)
        except PersistenceError:
            logger.exception("Failed to persist analysis output")

        logger.info(
            "Analysis produced %d insight(s), %d recommendation(s)",
            len(new_insights), len(new_recs),
        )
        if self.on_analysis:
            try:
                self.on_analysis(new_insights, new_recs)
            except Exception:
                logger.exception("on_analysis callback failed")
        return new_insights, new_recs

    # ── Context ─────────────────────────────────────────────────────────────

    def get_current_context(self) -> ContextualState:
        now = self.clock()
        recent = self.collector.get_activities(TimeRange(now - CONTEXT_WINDOW, now))

        total = sum(a.duration for a in recent)
        productive = _seconds_in(recent, ActivityCategory.PRODUCTIVE)
        distracting = _seconds_in(recent, ActivityCategory.DISTRACTING)

        if not recent or recent[0].category == ActivityCategory.BREAK:
            current = "idle"
        else:
            current = recent[0].category

        focus = round(productive / total * 100) if total > 0 else 50
        distraction = round(distracting / total * 100) if total > 0 else 30
        break_in, last_break = self._break_timing(recent)

        return ContextualState(
            current_activity=current,
            focus_level=focus,
            energy_level=self._energy_level(now, productive),
            distraction_risk=distraction,
            optimal_task_type=self._optimal_task_type(now),
            recommended_break_in=break_in,
            last_break=last_break,
        )

    @staticmethod
    def _energy_level(now: datetime, productive_seconds: float) -> int:
        hour = now.hour
        if 9 <= hour <= 11:
            base = 80
        elif 14 <= hour <= 16:
            base = 70
        elif hour >= 20 or hour <= 6:
            base = 30
        else:
            base = 50
        fatigue = max(0.0, 100 - productive_seconds / 60)  # one point per productive minute
        return max(10, min(100, round(base * fatigue / 100)))

    @staticmethod
    def _optimal_task_type(now: datetime) -> str:
        hour = now.hour
        if 9 <= hour <= 11:
            return "creative"
        if 14 <= hour <= 16:
            return "analytical"
        if 12 <= hour <= 13:
            return "communication"
        return "administrative"

    @staticmethod
    def _break_timing(recent: List[ActivityEvent]) -> Tuple[int, Optional[datetime]]:
        """Minutes until a break is due, and when the last break happened."""
        # recent is newest first
        last_break = next(
            (a.timestamp for a in recent if a.category == ActivityCategory.BREAK), None
        )
        worked = sum(
            a.duration for a in recent
            if a.category == ActivityCategory.PRODUCTIVE
            and (last_break is None or a.timestamp > last_break)
        )
        return round(max(0, BREAK_AFTER_SECONDS - worked) / 60), last_break

    # ── Rules ───────────────────────────────────────────────────────────────

    def generate_predictive_insights(
        self, context: ContextualState, now: datetime
    ) -> List[PredictiveInsight]:
        insights: List[PredictiveInsight] = []

        if context.energy_level < 40 and context.focus_level < 50:
            insights.append(self._insight(
                InsightType.PRODUCTIVITY_DIP, "medium", now,
                title="Productivity Dip Detected",
                description="Your energy and focus levels are declining. Consider taking "
                            "a break or switching to lighter tasks.",
                recommendation="Take a 10-15 minute break or switch to administrative tasks.",
                confidence=75, timeframe="Next 30 minutes",
            ))

        if context.recommended_break_in <= 5:
            insights.append(self._insight(
                InsightType.BREAK_RECOMMENDATION, "low", now,
                title="Break Time Approaching",
                description="You've been working continuously. A short break will help "
                            "maintain your productivity.",
                recommendation="Take a 5-10 minute break to recharge.",
                confidence=85, timeframe="Now",
            ))

        if context.energy_level > 70 and context.distraction_risk < 30:
            insights.append(self._insight(
                InsightType.FOCUS_OPPORTUNITY, "low", now,
                title="Optimal Focus Window",
                description="Your energy is high and distraction risk is low. Perfect "
                            "time for deep work.",
                recommendation=f"Focus on {context.optimal_task_type} tasks for maximum productivity.",
                confidence=90, timeframe="Next 60 minutes",
            ))

        insights.extend(self._deadline_risk_insights(now))
        return insights

    def _deadline_risk_insights(self, now: datetime) -> List[PredictiveInsight]:
        if self.task_provider is None:
            return []
        insights = []
        for task in self.task_provider():
            if task.status == TaskStatus.DONE:
                continue
            analysis = self.analyzer.analyze_task(task, now)
            critical = analysis.urgency_level == Urgency.CRITICAL
            risky = analysis.urgency_level == Urgency.HIGH and analysis.procrastination_risk > 60
            if not (critical or risky):
                continue
            insights.append(self._insight(
                InsightType.DEADLINE_RISK, "critical" if critical else "high", now,
                title=f"Deadline at Risk: {task.title}",
                description=f"'{task.title}' is {analysis.urgency_level} with a "
                            f"{analysis.procrastination_risk}% procrastination risk.",
                recommendation=analysis.recommended_action,
                confidence=80, timeframe="Before the due date",
                related_task_ids=[task.id],
            ))
        return insights

    def generate_recommendations(
        self, context: ContextualState, now: datetime
    ) -> List[PersonalizedRecommendation]:
        recs: List[PersonalizedRecommendation] = []

        if context.energy_level > 60:
            recs.append(PersonalizedRecommendation(
                id=self.id_factory(),
                type=RecommendationType.TASK_SCHEDULING,
                priority=Priority.MEDIUM,
                title="Optimize Your Task Schedule",
                description="Based on your current energy level, now is a great time for "
                            "challenging tasks.",
                action_items=[
                    f"Work on {context.optimal_task_type} tasks",
                    "Tackle your most important task first",
                    "Set a 45-minute focus timer",
                ],
                estimated_impact=80,
                time_to_implement=2,
                valid_until=now + timedelta(hours=1),
                created_at=now,
            ))

        if context.distraction_risk > 50:
            recs.append(PersonalizedRecommendation(
                id=self.id_factory(),
                type=RecommendationType.FOCUS_ENHANCEMENT,
                priority=Priority.HIGH,
                title="Reduce Distractions",
                description="High distraction risk detected. Take steps to improve your "
                            "focus environment.",
                action_items=[
                    "Close unnecessary browser tabs",
                    "Put phone in another room",
                    "Use website blocker for social media",
                    "Enable focus mode",
                ],
                estimated_impact=70,
                time_to_implement=5,
                valid_until=now + timedelta(hours=2),
                created_at=now,
            ))
        return recs

    def _insight(self, type_: str, severity: str, now: datetime, **fields) -> PredictiveInsight:
        return PredictiveInsight(id=self.id_factory(), type=type_, severity=severity,
                                 created_at=now, **fields)

    # ── Queries ─────────────────────────────────────────────────────────────

    def get_latest_insights(self, limit: int = 10) -> List[PredictiveInsight]:
        ranked = sorted(self.insights, key=lambda i: i.created_at, reverse=True)
        return ranked[:limit]

    def get_active_recommendations(self) -> List[PersonalizedRecommendation]:
        now = self.clock()
        active = [r for r in self.recommendations if r.valid_until > now]
        return sorted(active, key=lambda r: Priority.ORDER.get(r.priority, 0), reverse=True)

    def get_productivity_trends(self, days: int = 7) -> Dict:
        """Per-day scores for the last `days` days and a first-vs-second-half trend."""
        today = self.clock().date()
        daily = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            window = TimeRange(
                datetime.combine(day, time.min),
                datetime.combine(day, time.max),
            )
            metrics = self.collector.calculate_productivity_metrics(window)
            summary = self.collector.get_activity_summary(window)
            productive_min = round(summary.productive_time / 60)
            daily.append({
                "date": day.isoformat(),
                "score": metrics.overall_score,
                "focus_time": productive_min,
                "productive_time": productive_min,
            })

        scores = [d["score"] for d in daily]
        half = len(scores) // 2
        first, second = scores[:half], scores[half:]
        trend = "stable"
        if first and second:
            first_avg, second_avg = float(np.mean(first)), float(np.mean(second))
            if second_avg > first_avg + TREND_THRESHOLD:
                trend = "improving"
            elif second_avg < first_avg - TREND_THRESHOLD:
                trend = "declining"

        return {
            "daily": daily,
            "weekly": {
                "average_score": round(float(np.mean(scores))) if scores else 0,
                "trend": trend,
            },
        }

    # ── Storage ─────────────────────────────────────────────────────────────

    def _cleanup_old_data(self, now: datetime) -> None:
        cutoff = now - timedelta(days=self.insight_retention_days)
        self.insights = [i for i in self.insights if i.created_at >= cutoff]
        self.recommendations = [r for r in self.recommendations if r.valid_until >= now]

    def _load_stored_data(self) -> None:
        try:
            self.insights = self.repo.load_insights()
            self.recommendations = self.repo.load_recommendations()
        except PersistenceError:
            logger.exception("Failed to load stored insights, starting empty")
            self.insights, self.recommendations = [], []


def _seconds_in(events: List[ActivityEvent], category: str) -> float:
    return sum(a.duration for a in events if a.category == category)
