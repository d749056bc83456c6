"""Models package exports."""

from invitegate.models.identity import LogEntry, SweepResult, User

__all__ = [
    "LogEntry",
    "SweepResult",
    "User",
]
