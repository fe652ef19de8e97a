"""
Pydantic schemas for registration and authentication.

Registration validates its input strictly (EmailStr, non-empty password and
name). Authentication deliberately does not: a malformed email simply fails
to match a user and produces the same uniform failure as a wrong password.
"""

from pydantic import BaseModel, EmailStr, Field


class UserInput(BaseModel):
    """Request body for POST /mutations/register."""
    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)


class AuthenticateRequest(BaseModel):
    """Request body for POST /mutations/authenticate."""
    email: str
    password: str


class UserResponse(BaseModel):
    """A registered user. The password hash is never exposed."""
    email: str
    name: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """
    Result of an authentication attempt.

    Failures come back as success=False with a message that doesn't reveal
    whether the email exists. expires_at is epoch nanoseconds.
    """
    success: bool
    message: str
    token: str | None = None
    expires_at: int | None = None

    model_config = {"from_attributes": True}
