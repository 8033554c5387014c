"""
Engine configuration: a JSON file merged over built-in defaults.

Services never read this module directly; main.py loads the config once and
passes the values into constructors.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "engine.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "database_path": "taskdefender.db",
    "user_id": "current-user",
    "persona": "default",
    "sampling_interval_s": 30,
    "analysis_interval_s": 300,
    "activity_retention_days": 7,
    "insight_retention_days": 3,
    "action_history_cap": 1000,
    "focus_session_cap": 100,
    "productive_hours": [9, 10, 14, 15],
    "enabled_sources": {
        "browser": True,
        "application": True,
        "system": True,
    },
}


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the config file, filling any missing keys from DEFAULT_CONFIG."""
    path = path or CONFIG_PATH
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                cfg = json.load(f)
            merged.update(cfg)
            merged["enabled_sources"] = {
                **DEFAULT_CONFIG["enabled_sources"],
                **cfg.get("enabled_sources", {}),
            }
        except (ValueError, AttributeError, TypeError):
            logger.warning("Bad engine config at %s, using defaults.", path)
            return copy.deepcopy(DEFAULT_CONFIG)
    return merged


def save_config(config: Dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
