"""Auth request and response models with validation."""

import re
from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9]+")
USERNAME_MAX_LENGTH = 32
USERNAME_RULE = "Username must be alphanumeric with a maximum length of 32 characters."

# bcrypt only considers the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72


def _check_password(v: str) -> str:
    if not v.strip():
        raise ValueError("Password cannot be empty or whitespace only")
    if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes")
    return v


class SignInRequest(BaseModel):
    """Credentials for opening a session."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_valid(cls, v: str) -> str:
        """Reject blank or over-long passwords."""
        return _check_password(v)


class SignUpRequest(BaseModel):
    """New account registration gated by an invite code.

    Attributes:
        username: Alphanumeric, 1-32 chars
        password: Non-blank, at most 72 bytes
        invite_code: Code issued by an administrator
    """

    username: str
    password: str = Field(..., min_length=1)
    invite_code: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def username_valid_shape(cls, v: str) -> str:
        """Ensure username is alphanumeric and at most 32 characters."""
        if len(v) > USERNAME_MAX_LENGTH or not USERNAME_PATTERN.fullmatch(v):
            raise ValueError(USERNAME_RULE)
        return v

    @field_validator("password")
    @classmethod
    def password_valid(cls, v: str) -> str:
        """Reject blank or over-long passwords."""
        return _check_password(v)


class DeleteUserRequest(BaseModel):
    """Admin request to remove an account."""

    username: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    """Every response carries a human-readable status message."""

    message: str


class TokenResponse(MessageResponse):
    """Successful sign-in or sign-up."""

    auth_token: str


class InviteResponse(MessageResponse):
    """Newly issued invite code."""

    invite_code: str
