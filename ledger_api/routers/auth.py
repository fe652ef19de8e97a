"""
Auth router — registration and login.

Endpoints:
    POST /mutations/register      — Create a user (open)
    POST /mutations/authenticate  — Exchange credentials for a bearer token (open)

These are the only two operations that don't require an Authorization
header. A failed login is not an HTTP error: it returns 200 with
success=false and a message that doesn't say which credential was wrong.
"""

from fastapi import APIRouter, Depends, status

from ledger_api.dependencies import get_gateway
from ledger_api.gateway import QueryGateway
from ledger_api.schemas.auth import AuthenticateRequest, AuthResponse, UserInput, UserResponse

router = APIRouter()


@router.post(
    "/mutations/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: UserInput,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Register a user with an email, password and display name.

    The password is stored as an argon2 hash. Registering an email that
    already exists returns 409.
    """
    return await gateway.register(request)


@router.post(
    "/mutations/authenticate",
    response_model=AuthResponse,
    summary="Log in and receive a bearer token",
)
async def authenticate(
    request: AuthenticateRequest,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Verify email and password. On success the response carries a signed
    token and its expiry in epoch nanoseconds.
    """
    return await gateway.authenticate(request.email, request.password)
