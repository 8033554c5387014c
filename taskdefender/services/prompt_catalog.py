"""Static catalog of intervention prompts, grouped by persona."""

from __future__ import annotations

from typing import Tuple

from taskdefender.data.models import PromptTriggers, SarcasticPrompt, Severity

PERSONAS = ("default", "gordon", "mom", "hr", "passive-aggressive")


class PromptType:
    NUDGE = "nudge"
    ROAST = "roast"
    MOTIVATION = "motivation"
    COMPLETION = "completion"
    DEADLINE_WARNING = "deadline-warning"
    PATTERN_ANALYSIS = "pattern-analysis"


def _p(id, message, type, severity, persona="default", min_idle=None, states=(), conditions=()):
    return SarcasticPrompt(
        id=id,
        message=message,
        type=type,
        severity=severity,
        persona=persona,
        triggers=PromptTriggers(
            min_idle_time=min_idle,
            task_states=tuple(states),
            conditions=tuple(conditions),
        ),
    )


PROMPT_CATALOG: Tuple[SarcasticPrompt, ...] = (
    # ── idle nudges ──
    _p("idle_gentle_1",
       "Those tasks aren't going to complete themselves... unless you've invented "
       "self-doing work. Have you?",
       PromptType.NUDGE, Severity.GENTLE, min_idle=30, conditions=["has_pending_tasks"]),
    _p("idle_medium_1",
       "I see you're practicing the ancient art of 'productive procrastination.' "
       "How's that working out for you?",
       PromptType.NUDGE, Severity.MEDIUM, min_idle=60, conditions=["has_pending_tasks"]),
    _p("idle_savage_1",
       "At this rate, your tasks will be completed sometime around the heat death of "
       "the universe. But hey, no pressure.",
       PromptType.NUDGE, Severity.SAVAGE, min_idle=120, conditions=["has_pending_tasks"]),
    _p("gordon_idle_1",
       "WHAT ARE YOU DOING?! Those tasks are RAW! Absolutely RAW! Get back in there "
       "and FINISH THEM!",
       PromptType.NUDGE, Severity.SAVAGE, "gordon", min_idle=45, conditions=["has_pending_tasks"]),
    _p("mom_idle_1",
       "Sweetie, I'm not angry, I'm just disappointed. Your tasks are waiting for you, "
       "and so am I.",
       PromptType.NUDGE, Severity.GENTLE, "mom", min_idle=40, conditions=["has_pending_tasks"]),
    _p("hr_idle_1",
       "Per our previous conversation regarding task completion, we need to circle back "
       "on your deliverables. Let's touch base ASAP.",
       PromptType.NUDGE, Severity.MEDIUM, "hr", min_idle=50, conditions=["has_pending_tasks"]),
    _p("passive_idle_1",
       "Oh, don't mind me. I'll just be here... waiting... while your tasks collect "
       "dust. Take your time.",
       PromptType.NUDGE, Severity.MEDIUM, "passive-aggressive", min_idle=35,
       conditions=["has_pending_tasks"]),

    # ── deadline warnings ──
    _p("deadline_critical_1",
       "ALERT: Your deadline is breathing down your neck like a hungry dragon. Time to MOVE!",
       PromptType.DEADLINE_WARNING, Severity.SAVAGE, conditions=["has_critical_tasks"]),
    _p("deadline_critical_gordon",
       "WHAT ARE YOU DOING?! Your deadline is in {timeRemaining} and you're sitting there "
       "like a muppet! GET MOVING!",
       PromptType.DEADLINE_WARNING, Severity.SAVAGE, "gordon", conditions=["has_critical_tasks"]),
    _p("deadline_approaching_hr",
       "Per our timeline analysis, we're seeing some concerning KPIs around your "
       "deliverable completion rate. Let's circle back on this ASAP.",
       PromptType.DEADLINE_WARNING, Severity.MEDIUM, "hr", conditions=["deadline_approaching"]),
    _p("time_remaining_reality_check",
       "Reality check: You have {timeRemaining} left and {estimatedTime} of work "
       "remaining. Math isn't your strong suit, is it?",
       PromptType.DEADLINE_WARNING, Severity.SAVAGE, conditions=["insufficient_time_remaining"]),

    # ── pattern analysis ──
    _p("procrastination_pattern_1",
       "I've been watching your work patterns, and honestly? A sloth would be "
       "embarrassed by your productivity rate.",
       PromptType.PATTERN_ANALYSIS, Severity.MEDIUM, conditions=["high_procrastination_risk"]),
    _p("procrastination_pattern_mom",
       "Sweetie, I've noticed you keep putting off '{taskTitle}'. Remember what I always "
       "said about procrastination? It's like dirty laundry - it just piles up.",
       PromptType.PATTERN_ANALYSIS, Severity.GENTLE, "mom",
       conditions=["high_procrastination_risk"]),
    _p("time_utilization_low",
       "You've used {timeUtilization}% of your allocated time for this task. At this "
       "rate, you'll finish sometime next century.",
       PromptType.PATTERN_ANALYSIS, Severity.MEDIUM, conditions=["low_time_utilization"]),
    _p("productive_hours_suggestion",
       "Based on your work patterns, you're most productive at {productiveHours}. Maybe "
       "try working then instead of... whatever this is?",
       PromptType.PATTERN_ANALYSIS, Severity.GENTLE, conditions=["working_unproductive_hours"]),

    # ── roasts ──
    _p("consistency_roast",
       "Your work consistency is more unpredictable than the weather. Maybe try showing "
       "up more than once a week?",
       PromptType.ROAST, Severity.MEDIUM, "passive-aggressive", conditions=["low_consistency"]),
    _p("overdue_gentle_1",
       "Your overdue tasks called. They're feeling a bit neglected. Maybe show them some love?",
       PromptType.ROAST, Severity.GENTLE, conditions=["has_overdue_tasks"]),
    _p("overdue_savage_1",
       "Your overdue tasks have formed a support group. They meet every day to discuss "
       "their abandonment issues.",
       PromptType.ROAST, Severity.SAVAGE, conditions=["has_overdue_tasks"]),

    # ── completions ──
    _p("completion_early_celebration",
       "Wow! You finished with {timeRemaining} to spare! I'm genuinely impressed. Did "
       "someone replace you with a productive clone?",
       PromptType.COMPLETION, Severity.GENTLE, states=["completed"],
       conditions=["completed_early"]),
    _p("completion_last_minute",
       "Cutting it close there, speed racer! Finished with {timeRemaining} left. Next "
       "time, maybe don't wait until the last possible moment?",
       PromptType.COMPLETION, Severity.MEDIUM, states=["completed"],
       conditions=["completed_last_minute"]),
    _p("completion_gentle_1",
       "Look who decided to be productive today! I'm genuinely impressed... and "
       "slightly suspicious.",
       PromptType.COMPLETION, Severity.GENTLE, states=["completed"]),
    _p("completion_medium_1",
       "Well, well, well... someone actually finished something. Mark your calendars, folks!",
       PromptType.COMPLETION, Severity.MEDIUM, states=["completed"]),
    _p("gordon_completion_1",
       "Finally! Some good f***ing productivity! You've redeemed yourself... barely.",
       PromptType.COMPLETION, Severity.MEDIUM, "gordon", states=["completed"]),
    _p("mom_completion_1",
       "I'm so proud of you! I knew you could do it. Now, don't you feel better about yourself?",
       PromptType.COMPLETION, Severity.GENTLE, "mom", states=["completed"]),
    _p("hr_completion_1",
       "Excellent work! This really moves the needle on our KPIs. Let's leverage this "
       "momentum going forward.",
       PromptType.COMPLETION, Severity.GENTLE, "hr", states=["completed"]),
    _p("passive_completion_1",
       "Wow, you actually finished something. I mean, it only took forever, but who's counting?",
       PromptType.COMPLETION, Severity.MEDIUM, "passive-aggressive", states=["completed"]),
)
