"""Authentication API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
import structlog

from invitegate.api.dependencies import (
    get_account_service,
    get_bearer_token,
    get_current_username,
)
from invitegate.models.auth import (
    MessageResponse,
    SignInRequest,
    SignUpRequest,
    TokenResponse,
)
from invitegate.services.account_service import AccountService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/signin")
async def sign_in(
    request: SignInRequest,
    service: AccountService = Depends(get_account_service),
) -> TokenResponse:
    """Create a new session.

    Raises:
        NotFoundError: Username does not exist (404)
        UnauthorizedError: Incorrect password (401)
    """
    token = await service.sign_in(request.username, request.password)
    logger.info("user_signed_in", username=request.username)
    return TokenResponse(message="Signed in successfully.", auth_token=token)


@router.post("/signup")
async def sign_up(
    request: SignUpRequest,
    service: AccountService = Depends(get_account_service),
) -> TokenResponse:
    """Create a new account with an invite code and sign it in.

    Raises:
        ConflictError: Username already exists or invite code invalid (400)
    """
    token = await service.sign_up(request.username, request.password, request.invite_code)
    logger.info("user_signed_up", username=request.username)
    return TokenResponse(message="Signed up successfully.", auth_token=token)


@router.post("/signout")
async def sign_out(
    username: str = Depends(get_current_username),
    token: Optional[str] = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Delete the caller's session."""
    await service.sign_out(token)
    logger.info("user_signed_out", username=username)
    return MessageResponse(message="Signed out successfully.")
