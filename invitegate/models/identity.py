"""Identity record models."""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """A registered account. The password hash never leaves the credential store."""

    username: str
    is_admin: bool = False
    created_at: datetime


class LogEntry(BaseModel):
    """An audit trail entry."""

    message: str
    timestamp: datetime


class SweepResult(BaseModel):
    """Outcome of one housekeeping sweep.

    Attributes:
        invites_removed: Expired invites deleted
        sessions_removed: Idle sessions deleted
        logs_removed: Aged-out audit entries deleted
        failed: Names of evictions that raised and were skipped
    """

    invites_removed: int = 0
    sessions_removed: int = 0
    logs_removed: int = 0
    failed: list[str] = Field(default_factory=list)
