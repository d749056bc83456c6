"""Admin API endpoints for invites and user management."""

from fastapi import APIRouter, Depends, Query
import structlog

from invitegate.api.dependencies import get_account_service, require_admin
from invitegate.models.auth import DeleteUserRequest, InviteResponse, MessageResponse
from invitegate.models.identity import LogEntry
from invitegate.services.account_service import AccountService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Admin"])


@router.post("/create-invite-code")
async def create_invite_code(
    admin: str = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> InviteResponse:
    """Issue a single-use invite code (admin only)."""
    code = await service.issue_invite()
    logger.info("admin_issued_invite", admin=admin)
    return InviteResponse(message="Created invite code successfully.", invite_code=code)


@router.post("/delete-user")
async def delete_user(
    request: DeleteUserRequest,
    admin: str = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Delete a user account and its sessions (admin only).

    Raises:
        ForbiddenError: Target is the reserved admin account (403)
        NotFoundError: Target does not exist (404)
    """
    await service.delete_user(request.username)
    logger.info("admin_deleted_user", admin=admin, target=request.username)
    return MessageResponse(message="Deleted user successfully.")


@router.get("/logs")
async def list_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    admin: str = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> list[LogEntry]:
    """Return the most recent audit entries (admin only)."""
    return await service.recent_logs(limit)
