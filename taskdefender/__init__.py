"""TaskDefender behavioral analytics and intervention engine."""

__version__ = "0.1.0"
