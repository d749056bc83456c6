"""Account operations called by the HTTP layer.

Sequences the credential store, invite ledger and session manager into the
sign-in / sign-up / sign-out / admin flows and raises the error taxonomy for
negative outcomes.
"""

from typing import Optional

import structlog

from invitegate.config import get_settings
from invitegate.database import Database
from invitegate.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from invitegate.models.identity import LogEntry
from invitegate.services.audit_log import AuditLog
from invitegate.services.credential_store import CredentialStore
from invitegate.services.invite_ledger import InviteLedger
from invitegate.services.session_manager import SessionManager

logger = structlog.get_logger(__name__)


class AccountService:
    """Boundary operations over a single injected database handle."""

    def __init__(self, db: Database):
        self.db = db
        self.settings = get_settings()
        self.audit_log = AuditLog(db)
        self.credentials = CredentialStore(db, self.audit_log)
        self.invites = InviteLedger(db, self.audit_log)
        self.sessions = SessionManager(db, self.audit_log)

    async def sign_in(self, username: str, password: str) -> str:
        """Open a session for valid credentials.

        Raises:
            NotFoundError: If the username does not exist
            UnauthorizedError: If the password does not match
        """
        if not await self.credentials.exists(username):
            raise NotFoundError("Username does not exist.")

        if not await self.credentials.verify_password(username, password):
            logger.warning("sign_in_password_mismatch", username=username)
            raise UnauthorizedError("Incorrect password.")

        return await self.sessions.create(username)

    async def sign_up(self, username: str, password: str, invite_code: str) -> str:
        """Register a new account with an invite code and open a session.

        Invite redemption and user creation share one transaction, so a
        username conflict puts the invite back.

        Raises:
            ConflictError: If the username is taken or the invite is invalid
        """
        if await self.credentials.exists(username):
            raise ConflictError("Username already exists.")

        async with self.db.transaction() as tx:
            audit_log = AuditLog(tx)
            if not await InviteLedger(tx, audit_log).redeem(invite_code):
                raise ConflictError("Invalid invite code.")
            await CredentialStore(tx, audit_log).create_user(
                username, password, invite_code=invite_code
            )

        return await self.sessions.create(username)

    async def sign_out(self, token: Optional[str]) -> bool:
        return await self.sessions.destroy(token)

    async def authenticate(self, token: Optional[str]) -> str:
        """Resolve a bearer token to a username.

        Missing, malformed and unknown tokens are all reported the same way.

        Raises:
            UnauthorizedError: If the token does not resolve
        """
        username = await self.sessions.validate(token)
        if username is None:
            raise UnauthorizedError("Invalid authentication token.")
        return username

    async def require_admin(self, username: str) -> str:
        """Pass through an admin username.

        Raises:
            ForbiddenError: If the user is not an admin
        """
        if not await self.credentials.is_admin(username):
            logger.warning("admin_access_denied", username=username)
            raise ForbiddenError("Insufficient permissions.")
        return username

    async def issue_invite(self) -> str:
        return await self.invites.issue()

    async def delete_user(self, username: str) -> None:
        """Remove an account and its sessions.

        Raises:
            ForbiddenError: If the target is the reserved admin identity
            NotFoundError: If the user does not exist
        """
        if username == self.settings.admin_username:
            raise ForbiddenError("Cannot delete admin account.")

        if not await self.credentials.delete_user(username):
            raise NotFoundError("User does not exist.")

    async def recent_logs(self, limit: int = 100) -> list[LogEntry]:
        return await self.audit_log.recent(limit)
