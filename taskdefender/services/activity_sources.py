"""
Activity sources polled by the ActivityCollector.

A source declares which monitoring grant it needs and returns one
ActivityEvent per sample (or None when there is nothing to report). The
simulated sources below draw from fixed catalogs and stand in for real
browser/application/system hooks during development.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import List, Optional

from taskdefender.data.models import ActivityCategory, ActivityEvent, Permission, SourceType


class ActivitySource:
    """Base class. Subclasses set `permission` and `source_type`."""

    name = "source"
    permission = ""
    source_type = SourceType.SYSTEM

    def sample(self, now: datetime, user_id: str) -> Optional[ActivityEvent]:
        raise NotImplementedError


# (site, category, title)
WEBSITES = [
    ("github.com", ActivityCategory.PRODUCTIVE, "GitHub - Code Repository"),
    ("stackoverflow.com", ActivityCategory.PRODUCTIVE, "Stack Overflow - Programming Q&A"),
    ("youtube.com", ActivityCategory.DISTRACTING, "YouTube - Video Platform"),
    ("twitter.com", ActivityCategory.DISTRACTING, "Twitter - Social Media"),
    ("docs.google.com", ActivityCategory.PRODUCTIVE, "Google Docs - Document"),
]

# (application, category, title)
APPLICATIONS = [
    ("VS Code", ActivityCategory.PRODUCTIVE, "Visual Studio Code"),
    ("Slack", ActivityCategory.NEUTRAL, "Slack - Team Communication"),
    ("Spotify", ActivityCategory.NEUTRAL, "Spotify - Music"),
    ("Discord", ActivityCategory.DISTRACTING, "Discord - Gaming Chat"),
    ("Figma", ActivityCategory.PRODUCTIVE, "Figma - Design Tool"),
]

SYSTEM_STATES = [
    ("idle", ActivityCategory.BREAK, "System Idle"),
    ("active", ActivityCategory.NEUTRAL, "System Active"),
]


class SimulatedBrowserSource(ActivitySource):
    name = "browser"
    permission = Permission.BROWSER_TRACKING
    source_type = SourceType.PASSIVE_DEVICE

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def sample(self, now: datetime, user_id: str) -> Optional[ActivityEvent]:
        site, category, title = self.rng.choice(WEBSITES)
        return ActivityEvent(
            timestamp=now,
            source_type=self.source_type,
            category=category,
            website=site,
            title=title,
            url=f"https://{site}",
            duration=self.rng.randint(30, 329),
            user_id=user_id,
        )


class SimulatedApplicationSource(ActivitySource):
    name = "application"
    permission = Permission.APPLICATION_TRACKING
    source_type = SourceType.APPLICATION

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def sample(self, now: datetime, user_id: str) -> Optional[ActivityEvent]:
        app, category, title = self.rng.choice(APPLICATIONS)
        return ActivityEvent(
            timestamp=now,
            source_type=self.source_type,
            category=category,
            application=app,
            title=title,
            duration=self.rng.randint(60, 659),
            user_id=user_id,
        )


class SimulatedSystemSource(ActivitySource):
    name = "system"
    permission = Permission.SYSTEM_MONITORING
    source_type = SourceType.SYSTEM

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def sample(self, now: datetime, user_id: str) -> Optional[ActivityEvent]:
        _state, category, title = self.rng.choice(SYSTEM_STATES)
        return ActivityEvent(
            timestamp=now,
            source_type=self.source_type,
            category=category,
            title=title,
            duration=self.rng.randint(30, 209),
            user_id=user_id,
        )


def default_sources(rng: Optional[random.Random] = None, enabled: Optional[dict] = None) -> List[ActivitySource]:
    """Build the simulated sources, optionally filtered by an `enabled` name map."""
    rng = rng or random.Random()
    sources: List[ActivitySource] = [
        SimulatedBrowserSource(rng),
        SimulatedApplicationSource(rng),
        SimulatedSystemSource(rng),
    ]
    if enabled is not None:
        sources = [s for s in sources if enabled.get(s.name, True)]
    return sources
