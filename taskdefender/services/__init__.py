from .action_ledger import ActionLedger
from .activity_collector import ActivityCollector
from .focus_tracker import FocusSignals, FocusTracker, QtFocusSignals
from .prompt_selector import PromptSelector, build_prompt_context
from .ticker import ManualTicker, QtTicker

__all__ = [
    "ActionLedger", "ActivityCollector", "FocusSignals", "FocusTracker",
    "QtFocusSignals", "PromptSelector", "build_prompt_context",
    "ManualTicker", "QtTicker",
]
