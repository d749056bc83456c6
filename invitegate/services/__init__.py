"""Services package exports."""

from invitegate.services.account_service import AccountService
from invitegate.services.audit_log import AuditLog
from invitegate.services.credential_store import CredentialStore
from invitegate.services.housekeeping import HousekeepingScheduler
from invitegate.services.invite_ledger import InviteLedger
from invitegate.services.logging_service import configure_logging, get_logger
from invitegate.services.session_manager import SessionManager

__all__ = [
    "AccountService",
    "AuditLog",
    "CredentialStore",
    "HousekeepingScheduler",
    "InviteLedger",
    "SessionManager",
    "configure_logging",
    "get_logger",
]
