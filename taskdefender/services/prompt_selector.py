"""
Intervention Prompt Selector — picks one canned message for a context.

Selection is stateless: filter the catalog by persona and trigger predicate,
choose uniformly at random among the survivors, and return an interpolated
copy. Catalog entries are never modified.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import random
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from taskdefender.data.models import (
    PromptContext,
    SarcasticPrompt,
    Severity,
    Task,
    TaskAnalysis,
    TaskStatus,
    Urgency,
)
from taskdefender.ml.task_analyzer import TaskPatternAnalyzer, estimate_minutes
from taskdefender.services.prompt_catalog import PERSONAS, PROMPT_CATALOG, PromptType

logger = logging.getLogger(__name__)

EARLY_COMPLETION_MIN = 24 * 60
LAST_MINUTE_COMPLETION_MIN = 60

# Conditions that hold when at least one open task's analysis satisfies them.
# The first such task is also the one a chosen prompt talks about.
_TASK_CONDITIONS: Dict[str, Callable[[TaskAnalysis], bool]] = {
    "high_procrastination_risk": lambda a: a.procrastination_risk > 70,
    "low_time_utilization": lambda a: a.time_utilization < 30,
    "insufficient_time_remaining": lambda a: a.time_remaining < 60 and a.progress_rate < 50,
    "deadline_approaching": lambda a: a.urgency_level in (Urgency.HIGH, Urgency.CRITICAL),
}


def format_time_remaining(minutes: float) -> str:
    if math.isinf(minutes):
        return "all the time in the world"
    if minutes < 60:
        return f"{round(minutes)} minutes"
    if minutes < 1440:
        return f"{round(minutes / 60)} hours"
    return f"{round(minutes / 1440)} days"


def time_of_day(now: datetime) -> str:
    if now.hour < 12:
        return "morning"
    if now.hour < 17:
        return "afternoon"
    if now.hour < 21:
        return "evening"
    return "night"


def day_of_week(now: datetime) -> str:
    return "weekend" if now.weekday() >= 5 else "weekday"


def build_prompt_context(
    tasks: Sequence[Task],
    now: datetime,
    last_activity: Optional[datetime] = None,
    current_streak: int = 0,
    integrity_score: float = 100.0,
    analyzer: Optional[TaskPatternAnalyzer] = None,
) -> PromptContext:
    """Assemble a PromptContext by analysing every open task."""
    analyzer = analyzer or TaskPatternAnalyzer()
    today = now.date()

    completed_today = 0
    overdue = 0
    analyses: Dict[str, TaskAnalysis] = {}
    critical: List[Task] = []
    procrastinating: List[Task] = []
    open_tasks: List[Task] = []

    for task in tasks:
        if task.status == TaskStatus.DONE:
            done_at = task.completed_at or task.created_at
            if done_at is not None and done_at.date() == today:
                completed_today += 1
            continue
        open_tasks.append(task)
        if task.due_date is not None and task.due_date < now:
            overdue += 1
        analysis = analyzer.analyze_task(task, now)
        analyses[task.id] = analysis
        if analysis.urgency_level == Urgency.CRITICAL:
            critical.append(task)
        if analysis.procrastination_risk > 60:
            procrastinating.append(task)

    return PromptContext(
        task_count=len(tasks),
        completed_today=completed_today,
        overdue_tasks=overdue,
        last_activity=last_activity,
        current_streak=current_streak,
        integrity_score=integrity_score,
        time_of_day=time_of_day(now),
        day_of_week=day_of_week(now),
        critical_tasks=critical,
        procrastinating_tasks=procrastinating,
        open_tasks=open_tasks,
        task_analyses=analyses,
        now=now,
    )


class PromptSelector:
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        catalog: Iterable[SarcasticPrompt] = PROMPT_CATALOG,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.rng = rng or random.Random()
        self.catalog = tuple(catalog)
        self.clock = clock

    @staticmethod
    def available_personas() -> List[str]:
        return list(PERSONAS)

    # ── Selection ───────────────────────────────────────────────────────────

    def generate_contextual_prompt(
        self, context: PromptContext, persona: str = "default"
    ) -> Optional[SarcasticPrompt]:
        """Uniform pick among this persona's prompts whose triggers hold."""
        eligible = [
            p for p in self.catalog
            if p.persona == persona and self._triggers_hold(p, context)
        ]
        return self._pick(eligible, context)

    def generate_prompt(
        self,
        context: PromptContext,
        type: str = PromptType.NUDGE,
        persona: str = "default",
        severity: str = Severity.MEDIUM,
    ) -> Optional[SarcasticPrompt]:
        """Like generate_contextual_prompt, restricted to one type and at most `severity`."""
        ceiling = Severity.LEVELS.get(severity, Severity.LEVELS[Severity.MEDIUM])
        eligible = [
            p for p in self.catalog
            if p.type == type
            and p.persona == persona
            and Severity.LEVELS[p.severity] <= ceiling
            and self._triggers_hold(p, context)
        ]
        return self._pick(eligible, context)

    def generate_completion_prompt(
        self, context: PromptContext, task: Task, persona: str = "default"
    ) -> Optional[SarcasticPrompt]:
        """Celebrate (or mock) a completion, keyed on how close to the deadline it was."""
        analysis = context.task_analyses.get(task.id)
        timing = None
        if analysis is not None and task.due_date is not None:
            if analysis.time_remaining > EARLY_COMPLETION_MIN:
                timing = "early"
            elif analysis.time_remaining < LAST_MINUTE_COMPLETION_MIN:
                timing = "last_minute"

        completions = [
            p for p in self.catalog
            if p.type == PromptType.COMPLETION and p.persona == persona
        ]
        untimed = [p for p in completions if not _timing_conditions(p)]
        if timing is None:
            eligible = untimed
        else:
            eligible = [p for p in completions if f"completed_{timing}" in p.triggers.conditions]
            eligible = eligible or untimed
        return self._pick(eligible, context, task)

    # ── Predicate ───────────────────────────────────────────────────────────

    def _triggers_hold(self, prompt: SarcasticPrompt, context: PromptContext) -> bool:
        triggers = prompt.triggers
        if triggers.min_idle_time and context.last_activity is not None:
            now = context.now or self.clock()
            idle_minutes = (now - context.last_activity).total_seconds() / 60
            if idle_minutes < triggers.min_idle_time:
                return False
        if not set(triggers.task_states) <= set(context.task_states):
            return False
        return all(self._condition(c, context) for c in triggers.conditions)

    def _condition(self, name: str, ctx: PromptContext) -> bool:
        analyses = list(ctx.task_analyses.values())
        if name == "has_pending_tasks":
            return ctx.task_count > ctx.completed_today
        if name == "has_overdue_tasks":
            return ctx.overdue_tasks > 0
        if name == "has_critical_tasks":
            return len(ctx.critical_tasks) > 0
        if name in ("low_consistency", "low_integrity"):
            return ctx.integrity_score < 70
        if name == "deadline_approaching" and ctx.critical_tasks:
            return True
        if name in _TASK_CONDITIONS:
            return any(_TASK_CONDITIONS[name](a) for a in analyses)
        if name == "completed_early":
            return ctx.completion_timing == "early"
        if name == "completed_last_minute":
            return ctx.completion_timing == "last_minute"
        if name == "high_streak":
            return ctx.current_streak > 5
        if name == "morning":
            return ctx.time_of_day == "morning"
        if name == "weekend":
            return ctx.day_of_week == "weekend"
        if name == "working_unproductive_hours":
            task = self._focal_task(ctx)
            if task is None or task.work_pattern is None or not task.work_pattern.productive_hours:
                return False
            now = ctx.now or self.clock()
            return now.hour not in task.work_pattern.productive_hours
        logger.debug("Unknown prompt condition %r treated as false", name)
        return False

    # ── Output ──────────────────────────────────────────────────────────────

    @staticmethod
    def _focal_task(context: PromptContext) -> Optional[Task]:
        if context.critical_tasks:
            return context.critical_tasks[0]
        if context.procrastinating_tasks:
            return context.procrastinating_tasks[0]
        return None

    def _subject_task(self, prompt: SarcasticPrompt, context: PromptContext) -> Optional[Task]:
        """The open task a prompt is about: one its task conditions matched, else the focal one."""
        wanted = [_TASK_CONDITIONS[c] for c in prompt.triggers.conditions if c in _TASK_CONDITIONS]
        if wanted:
            for task in context.open_tasks:
                analysis = context.task_analyses.get(task.id)
                if analysis is not None and all(check(analysis) for check in wanted):
                    return task
        focal = self._focal_task(context)
        if focal is not None:
            return focal
        return next(
            (t for t in context.open_tasks if t.id in context.task_analyses), None
        )

    def _pick(
        self,
        eligible: List[SarcasticPrompt],
        context: PromptContext,
        task: Optional[Task] = None,
    ) -> Optional[SarcasticPrompt]:
        if not eligible:
            return None
        chosen = self.rng.choice(eligible)
        if task is None:
            task = self._subject_task(chosen, context)
        analysis = context.task_analyses.get(task.id) if task else None
        task_context = None
        if task is not None and analysis is not None:
            task_context = {
                "task_id": task.id,
                "urgency": analysis.urgency_level,
                "time_remaining": analysis.time_remaining,
                "procrastination_risk": analysis.procrastination_risk,
            }
        return dataclasses.replace(
            chosen,
            message=interpolate_message(chosen.message, analysis, task),
            task_context=task_context,
        )


def interpolate_message(
    message: str,
    analysis: Optional[TaskAnalysis] = None,
    task: Optional[Task] = None,
) -> str:
    if analysis is not None:
        message = message.replace("{timeRemaining}", format_time_remaining(analysis.time_remaining))
        message = message.replace("{timeUtilization}", str(round(analysis.time_utilization)))
        message = message.replace("{procrastinationRisk}", str(round(analysis.procrastination_risk)))
    if task is not None:
        message = message.replace("{taskTitle}", task.title)
        message = message.replace("{estimatedTime}", format_time_remaining(estimate_minutes(task)))
        if task.work_pattern is not None:
            wp = task.work_pattern
            message = message.replace("{avgSession}", str(round(wp.average_session_length)))
            message = message.replace(
                "{productiveHours}", ", ".join(f"{h}:00" for h in wp.productive_hours)
            )
    return message


def _timing_conditions(prompt: SarcasticPrompt) -> bool:
    return any(c.startswith("completed_") for c in prompt.triggers.conditions)
