"""
Data models for TaskDefender.

Plain dataclasses for everything the engine stores or hands to the UI layer.
Closed sets (categories, actions, urgency levels...) are classes of string
constants so the values go into SQLite and come back out unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple


# ── Closed value sets ───────────────────────────────────────────────────────

class SourceType:
    PASSIVE_DEVICE = "passive-device"
    APPLICATION = "application"
    SYSTEM = "system"
    ALL = (PASSIVE_DEVICE, APPLICATION, SYSTEM)


class ActivityCategory:
    PRODUCTIVE = "productive"
    NEUTRAL = "neutral"
    DISTRACTING = "distracting"
    BREAK = "break"
    ALL = (PRODUCTIVE, NEUTRAL, DISTRACTING, BREAK)


class Permission:
    """Names of the five monitoring grants."""
    BROWSER_TRACKING = "browser_tracking"
    APPLICATION_TRACKING = "application_tracking"
    CALENDAR_INTEGRATION = "calendar_integration"
    COMMUNICATION_ANALYSIS = "communication_analysis"
    SYSTEM_MONITORING = "system_monitoring"
    ALL = (
        BROWSER_TRACKING,
        APPLICATION_TRACKING,
        CALENDAR_INTEGRATION,
        COMMUNICATION_ANALYSIS,
        SYSTEM_MONITORING,
    )


class ActionKind:
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    TASK_DELETED = "task_deleted"
    FOCUS_STARTED = "focus_started"
    FOCUS_COMPLETED = "focus_completed"
    PROCRASTINATION_DETECTED = "procrastination_detected"
    HONEST_COMPLETION = "honest_completion"
    DISHONEST_COMPLETION = "dishonest_completion"
    ALL = (
        TASK_CREATED, TASK_COMPLETED, TASK_DELETED,
        FOCUS_STARTED, FOCUS_COMPLETED, PROCRASTINATION_DETECTED,
        HONEST_COMPLETION, DISHONEST_COMPLETION,
    )


class TaskStatus:
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Urgency:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MetricsPeriod:
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class InsightType:
    PRODUCTIVITY_DIP = "productivity_dip"
    DEADLINE_RISK = "deadline_risk"
    OPTIMAL_TIMING = "optimal_timing"
    BREAK_RECOMMENDATION = "break_recommendation"
    FOCUS_OPPORTUNITY = "focus_opportunity"


class RecommendationType:
    TASK_SCHEDULING = "task_scheduling"
    BREAK_TIMING = "break_timing"
    FOCUS_ENHANCEMENT = "focus_enhancement"
    PRODUCTIVITY_BOOST = "productivity_boost"


class Priority:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ORDER = {HIGH: 3, MEDIUM: 2, LOW: 1}


class Severity:
    """Prompt severities, ordered from softest to harshest."""
    GENTLE = "gentle"
    MEDIUM = "medium"
    SAVAGE = "savage"
    LEVELS = {GENTLE: 1, MEDIUM: 2, SAVAGE: 3}


# ── Activity monitoring ─────────────────────────────────────────────────────

@dataclass
class TimeRange:
    """Inclusive [start, end] window."""
    start: datetime
    end: datetime


@dataclass
class ActivityEvent:
    """One sampled slice of user activity."""
    id: str = ""
    timestamp: Optional[datetime] = None
    source_type: str = SourceType.SYSTEM
    category: str = ActivityCategory.NEUTRAL
    duration: float = 0.0  # seconds
    application: Optional[str] = None
    website: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    user_id: str = ""


@dataclass
class MonitoringPermissions:
    browser_tracking: bool = False
    application_tracking: bool = False
    calendar_integration: bool = False
    communication_analysis: bool = False
    system_monitoring: bool = False
    last_updated: Optional[datetime] = None

    def any_granted(self) -> bool:
        return any(getattr(self, name) for name in Permission.ALL)

    def is_granted(self, permission: str) -> bool:
        return bool(getattr(self, permission, False))


@dataclass
class ActivitySummary:
    """Per-category totals (seconds) and top apps / sites for a window."""
    total_time: float = 0.0
    productive_time: float = 0.0
    distracting_time: float = 0.0
    neutral_time: float = 0.0
    break_time: float = 0.0
    # (name, seconds, category)
    top_applications: List[Tuple[str, float, str]] = field(default_factory=list)
    top_websites: List[Tuple[str, float, str]] = field(default_factory=list)


@dataclass
class ProductivityMetrics:
    focus_score: int = 0
    productivity_score: int = 0
    time_management_score: int = 0
    consistency_score: int = 0
    overall_score: int = 0
    calculated_at: Optional[datetime] = None
    period: str = MetricsPeriod.DAILY


# ── Tasks ───────────────────────────────────────────────────────────────────

@dataclass
class WorkPattern:
    """Historical work statistics for a single task."""
    total_time_spent: float = 0.0       # minutes
    sessions_count: int = 0
    average_session_length: float = 0.0  # minutes
    productive_hours: List[int] = field(default_factory=list)
    procrastination_score: float = 0.0   # 0-100, lower is better
    consistency_score: float = 100.0     # 0-100
    last_worked_on: Optional[datetime] = None


@dataclass
class TimeBlock:
    """A proposed (or scheduled) work slot for a task."""
    id: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = 0  # minutes
    is_scheduled: bool = False
    is_completed: bool = False
    notes: str = ""


@dataclass
class Task:
    """The slice of a task record the engine reads from the task layer."""
    id: str = ""
    title: str = ""
    status: str = TaskStatus.TODO
    priority: str = TaskPriority.MEDIUM
    created_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    estimated_time: Optional[float] = None  # minutes
    work_pattern: Optional[WorkPattern] = None
    time_blocks: List[TimeBlock] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    honestly_completed: Optional[bool] = None
    user_id: str = ""


@dataclass
class TaskAnalysis:
    urgency_level: str = Urgency.LOW
    time_utilization: float = 0.0      # % of allocated time-block minutes used
    procrastination_risk: int = 0      # 0-100
    progress_rate: float = 0.0         # 0-100
    time_remaining: float = math.inf   # minutes until due date
    recommended_action: str = ""


# ── Insight engine ──────────────────────────────────────────────────────────

@dataclass
class ContextualState:
    current_activity: str = "idle"
    focus_level: int = 50
    energy_level: int = 50
    distraction_risk: int = 30
    optimal_task_type: str = "administrative"
    recommended_break_in: int = 45  # minutes
    last_break: Optional[datetime] = None


@dataclass
class PredictiveInsight:
    id: str = ""
    type: str = InsightType.PRODUCTIVITY_DIP
    severity: str = "low"
    title: str = ""
    description: str = ""
    recommendation: str = ""
    confidence: int = 0
    timeframe: str = ""
    related_task_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None


@dataclass
class PersonalizedRecommendation:
    id: str = ""
    type: str = RecommendationType.TASK_SCHEDULING
    priority: str = Priority.MEDIUM
    title: str = ""
    description: str = ""
    action_items: List[str] = field(default_factory=list)
    estimated_impact: int = 0
    time_to_implement: int = 0  # minutes
    valid_until: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ── Ledger / focus sessions ─────────────────────────────────────────────────

@dataclass
class UserAction:
    id: str = ""
    user_id: str = ""
    action: str = ""
    timestamp: Optional[datetime] = None
    task_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    integrity_impact: Optional[float] = None


@dataclass
class FocusSessionRecord:
    """Summary persisted when a focus session stops."""
    id: Optional[int] = None
    session_id: str = ""
    user_id: Optional[str] = None
    task_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_duration: int = 0    # seconds
    focus_time: int = 0        # seconds
    distraction_time: int = 0  # seconds
    distraction_count: int = 0


@dataclass
class FocusStats:
    """Snapshot returned by the focus tracker (all values in seconds)."""
    duration: int = 0
    distractions: int = 0
    focus_time: int = 0
    distraction_time: int = 0
    is_paused: bool = False


# ── Prompts / achievements ──────────────────────────────────────────────────

@dataclass
class PromptTriggers:
    min_idle_time: Optional[float] = None  # minutes
    task_states: Tuple[str, ...] = ()
    conditions: Tuple[str, ...] = ()


@dataclass
class SarcasticPrompt:
    id: str
    message: str
    type: str
    severity: str
    persona: str
    triggers: PromptTriggers = field(default_factory=PromptTriggers)
    task_context: Optional[Dict[str, Any]] = None


@dataclass
class PromptContext:
    """Everything the prompt selector needs, assembled by the caller."""
    task_count: int = 0
    completed_today: int = 0
    overdue_tasks: int = 0
    last_activity: Optional[datetime] = None
    current_streak: int = 0
    integrity_score: float = 100.0
    time_of_day: str = "morning"
    day_of_week: str = "weekday"
    critical_tasks: List[Task] = field(default_factory=list)
    procrastinating_tasks: List[Task] = field(default_factory=list)
    open_tasks: List[Task] = field(default_factory=list)
    task_analyses: Dict[str, TaskAnalysis] = field(default_factory=dict)
    task_states: Set[str] = field(default_factory=set)
    completion_timing: Optional[str] = None  # 'early' | 'last_minute' | None
    now: Optional[datetime] = None


@dataclass
class Badge:
    id: str
    title: str
    description: str
    earned: bool = False
    progress: float = 0
    max_progress: float = 1
