"""Session manager: bearer token issue, validation and revocation."""

import secrets
from datetime import datetime, timezone
from typing import Optional

import structlog

from invitegate.database import Database
from invitegate.services.audit_log import AuditLog

logger = structlog.get_logger(__name__)

# 256 bits of randomness, rendered as 64 hex characters
SESSION_TOKEN_BYTES = 32


class SessionManager:
    """Service for session token lifecycle.

    A session is either absent or active. validate() keeps it active by
    refreshing last_active; destroy() or the housekeeping sweep removes it.
    """

    def __init__(self, db: Database, audit_log: Optional[AuditLog] = None):
        self.db = db
        self.audit_log = audit_log or AuditLog(db)

    async def create(self, username: str) -> str:
        """Open a session for an already-authenticated user.

        Args:
            username: Owner of the session

        Returns:
            The session token
        """
        token = secrets.token_hex(SESSION_TOKEN_BYTES)

        await self.db.execute(
            "INSERT INTO sessions (token, username, last_active) VALUES ($1, $2, $3)",
            token,
            username,
            datetime.now(timezone.utc),
        )

        await self.audit_log.append(f"Created new session for '{username}'.")
        logger.info("session_created", username=username)

        return token

    async def validate(self, token: Optional[str]) -> Optional[str]:
        """Resolve a token to its owner and refresh its recency.

        Lookup and refresh are one statement. GREATEST keeps last_active
        from moving backwards when concurrent validations race.

        Args:
            token: Session token presented by the caller

        Returns:
            The owning username, or None if the token is unknown
        """
        if not token:
            return None

        row = await self.db.get_one(
            """
            UPDATE sessions
            SET last_active = GREATEST(last_active, $2)
            WHERE token = $1
            RETURNING username
            """,
            token,
            datetime.now(timezone.utc),
        )

        if row is None:
            logger.debug("session_not_found")
            return None

        return row["username"]

    async def destroy(self, token: Optional[str]) -> bool:
        """Revoke a session. Unknown tokens are ignored.

        Returns:
            True if a session was removed, False otherwise
        """
        if not token:
            return False

        row = await self.db.get_one(
            "DELETE FROM sessions WHERE token = $1 RETURNING username",
            token,
        )

        if row is None:
            logger.info("session_destroy_not_found")
            return False

        username = row["username"]
        await self.audit_log.append(f"Deleted session for '{username}'.")
        logger.info("session_destroyed", username=username)

        return True
