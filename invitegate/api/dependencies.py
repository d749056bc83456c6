"""FastAPI dependencies for authentication and authorization."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from invitegate.database import get_database
from invitegate.services.account_service import AccountService

# auto_error=False so a missing header is reported as 401 like any bad token
bearer_scheme = HTTPBearer(auto_error=False)


def get_account_service() -> AccountService:
    """Build an AccountService over the process-wide database handle."""
    return AccountService(get_database())


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Extract the raw session token from the Authorization header, if any."""
    if credentials is None:
        return None
    return credentials.credentials


async def get_current_username(
    token: Optional[str] = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> str:
    """Validate the session token and return its owner.

    Raises:
        UnauthorizedError: If the token is missing, malformed or unknown
    """
    return await service.authenticate(token)


async def require_admin(
    username: str = Depends(get_current_username),
    service: AccountService = Depends(get_account_service),
) -> str:
    """Require the current user to have admin privileges.

    Raises:
        ForbiddenError: If the user is not an admin
    """
    return await service.require_admin(username)
