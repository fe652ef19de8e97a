"""
Authentication service — registration and login business logic.

Register flow:
  1. Reject an email that is already registered
  2. Hash the password with Argon2id
  3. Store the User and return it

Login flow (authenticate):
  1. Look up the user by email
  2. Verify the password against the stored hash
  3. Issue a bearer token and report its expiry

authenticate() does not raise for bad credentials. It answers with an
AuthResult whose success flag is False and whose token is empty, the same
shape the caller gets on success. Unknown email and wrong password produce
the same message so the endpoint can't be used to enumerate accounts.
Store failures still propagate as PersistenceError.

Plaintext passwords and issued tokens are never logged.
"""

import logging
from dataclasses import dataclass

from ledger_api.exceptions import DuplicateEmailError
from ledger_api.models.user import User
from ledger_api.security import TokenAuthority, hash_password, verify_password
from ledger_api.store import AccountStore


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


@dataclass
class AuthResult:
    """Outcome of a login attempt. Never persisted."""
    success: bool
    message: str
    token: str | None = None
    expires_at: int | None = None   # epoch nanoseconds


async def register(
    store: AccountStore,
    email: str,
    password: str,
    name: str,
) -> User:
    """
    Register a new user.

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    if await store.get_user(email) is not None:
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        name=name,
    )
    await store.put_user(user)
    logger.info("User registered", extra={"email": email})
    return user


async def authenticate(
    store: AccountStore,
    tokens: TokenAuthority,
    email: str,
    password: str,
) -> AuthResult:
    """
    Check credentials and issue a bearer token.

    Returns:
        AuthResult with success=True, token and expires_at on a match;
        success=False and no token otherwise.
    """
    user = await store.get_user(email)

    # Same answer for both cases — prevents user enumeration
    if user is None or not verify_password(password, user.hashed_password):
        logger.info("Login rejected", extra={"email": email})
        return AuthResult(success=False, message=INVALID_CREDENTIALS_MESSAGE)

    token, expires_at = tokens.issue_token(user.email, user.name)
    return AuthResult(
        success=True,
        message="Success",
        token=token,
        expires_at=expires_at,
    )
