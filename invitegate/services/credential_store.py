"""Credential store: user identity and password verification."""

from typing import Optional

import bcrypt
import structlog

from invitegate.config import get_settings
from invitegate.database import Database
from invitegate.exceptions import ConflictError
from invitegate.models.identity import User
from invitegate.services.audit_log import AuditLog

logger = structlog.get_logger(__name__)


class CredentialStore:
    """Service for user records and bcrypt password checks."""

    def __init__(self, db: Database, audit_log: Optional[AuditLog] = None):
        self.db = db
        self.audit_log = audit_log or AuditLog(db)
        self.settings = get_settings()

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def check_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Returns False, rather than raising, for hashes bcrypt cannot parse
        (such as the seeded admin placeholder).
        """
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            return False

    async def exists(self, username: str) -> bool:
        row = await self.db.get_one(
            "SELECT 1 FROM users WHERE username = $1",
            username,
        )
        return row is not None

    async def verify_password(self, username: str, candidate: str) -> bool:
        """Check a candidate password. Unknown usernames fail closed."""
        row = await self.db.get_one(
            "SELECT password_hash FROM users WHERE username = $1",
            username,
        )
        if row is None:
            return False
        return self.check_password(candidate, row["password_hash"])

    async def is_admin(self, username: str) -> bool:
        row = await self.db.get_one(
            "SELECT is_admin FROM users WHERE username = $1",
            username,
        )
        return row is not None and bool(row["is_admin"])

    async def create_user(
        self,
        username: str,
        raw_password: str,
        is_admin: bool = False,
        invite_code: Optional[str] = None,
    ) -> User:
        """Create a new user with a hashed password.

        Shape validation and invite redemption are the caller's job; the
        username primary key is the final uniqueness check.

        Args:
            username: Unique username
            raw_password: Plain-text password (will be hashed)
            is_admin: Whether the user has admin privileges
            invite_code: Invite redeemed for this account, recorded in the audit entry

        Returns:
            Created User model

        Raises:
            ConflictError: If the username already exists
        """
        password_hash = self.hash_password(raw_password)

        try:
            row = await self.db.get_one(
                """
                INSERT INTO users (username, password_hash, is_admin)
                VALUES ($1, $2, $3)
                RETURNING username, is_admin, created_at
                """,
                username,
                password_hash,
                is_admin,
            )
        except ConflictError as e:
            logger.warning("user_create_conflict", username=username)
            raise ConflictError("Username already exists.") from e

        if invite_code:
            await self.audit_log.append(
                f"Created new user '{username}', used invite code '{invite_code}'."
            )
        else:
            await self.audit_log.append(f"Created new user '{username}'.")

        logger.info("user_created", username=username, is_admin=is_admin)

        return User(
            username=row["username"],
            is_admin=row["is_admin"],
            created_at=row["created_at"],
        )

    async def delete_user(self, username: str) -> bool:
        """Hard-delete a user; their sessions go with it (ON DELETE CASCADE).

        Refusing to delete the reserved admin is the caller's policy.

        Returns:
            True if the user was deleted, False if not found
        """
        deleted = await self.db.execute_count(
            "DELETE FROM users WHERE username = $1",
            username,
        )

        if deleted:
            await self.audit_log.append(f"Deleted user '{username}'.")
            logger.info("user_deleted", username=username)
        else:
            logger.warning("user_delete_not_found", username=username)

        return deleted > 0
