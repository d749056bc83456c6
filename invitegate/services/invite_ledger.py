"""Invite ledger: single-use, time-bounded registration codes."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from invitegate.config import get_settings
from invitegate.database import Database
from invitegate.exceptions import ConflictError, PersistenceError
from invitegate.services.audit_log import AuditLog

logger = structlog.get_logger(__name__)

# Codes are handed out manually by an admin, so a small space (6 hex chars)
# is an accepted, bounded risk. Collisions are retried against the primary key.
INVITE_CODE_BYTES = 3
MAX_ISSUE_ATTEMPTS = 5


class InviteLedger:
    """Issues and redeems invite codes."""

    def __init__(self, db: Database, audit_log: Optional[AuditLog] = None):
        self.db = db
        self.audit_log = audit_log or AuditLog(db)
        self.settings = get_settings()

    async def issue(self) -> str:
        """Generate and store a new invite code.

        Returns:
            The invite code

        Raises:
            PersistenceError: If no unused code could be allocated
        """
        expiration = datetime.now(timezone.utc) + timedelta(days=self.settings.invite_ttl_days)

        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            code = secrets.token_hex(INVITE_CODE_BYTES)
            try:
                await self.db.execute(
                    "INSERT INTO invites (code, expiration) VALUES ($1, $2)",
                    code,
                    expiration,
                )
            except ConflictError:
                logger.warning("invite_code_collision", attempt=attempt)
                continue

            await self.audit_log.append(f"Created new invite code '{code}'.")
            logger.info("invite_issued", expiration=expiration.isoformat())
            return code

        logger.error("invite_issue_exhausted", attempts=MAX_ISSUE_ATTEMPTS)
        raise PersistenceError("Could not allocate an invite code.")

    async def is_valid(self, code: str) -> bool:
        """True iff an unexpired invite with this code exists."""
        row = await self.db.get_one(
            "SELECT 1 FROM invites WHERE code = $1 AND expiration > $2",
            code,
            datetime.now(timezone.utc),
        )
        return row is not None

    async def redeem(self, code: str) -> bool:
        """Consume an invite code.

        A single conditional delete: only one caller can remove the row, so
        concurrent redemptions of the same code yield exactly one success.

        Returns:
            True if the code was valid and is now consumed, False otherwise
        """
        removed = await self.db.execute_count(
            "DELETE FROM invites WHERE code = $1 AND expiration > $2",
            code,
            datetime.now(timezone.utc),
        )

        if removed:
            logger.info("invite_redeemed")
        else:
            logger.info("invite_redeem_rejected")

        return removed == 1
