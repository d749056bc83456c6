"""Append-only audit trail of security-relevant actions."""

from datetime import datetime, timezone
from typing import Optional

import structlog

from invitegate.database import Database
from invitegate.models.identity import LogEntry

logger = structlog.get_logger(__name__)


class AuditLog:
    """Writes timestamped audit entries. Read only by operators."""

    def __init__(self, db: Database):
        self.db = db

    async def append(self, message: Optional[str]) -> None:
        """Record an audit entry. Empty or missing messages are ignored."""
        if not message:
            return

        await self.db.execute(
            "INSERT INTO logs (message, timestamp) VALUES ($1, $2)",
            message,
            datetime.now(timezone.utc),
        )
        # Entry text may carry invite codes and stays in the store only
        logger.info("audit_entry_appended")

    async def recent(self, limit: int = 100) -> list[LogEntry]:
        """Return the newest entries, oldest first.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of LogEntry ordered by insertion
        """
        rows = await self.db.get_many(
            """
            SELECT message, timestamp FROM (
                SELECT id, message, timestamp FROM logs ORDER BY id DESC LIMIT $1
            ) newest
            ORDER BY id ASC
            """,
            limit,
        )
        return [LogEntry(message=row["message"], timestamp=row["timestamp"]) for row in rows]
