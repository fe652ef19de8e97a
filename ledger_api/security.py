"""
Security utilities: password hashing, bearer tokens, and Fernet encryption.

All cryptographic operations live here so they are easy to audit and swap.
Three concerns are handled:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - Argon2id is memory-hard and time-hard; passlib's CryptContext handles
     salting, cost parameters and future scheme migration

2. BEARER TOKENS (JWT, HS256)
   - authenticate() hands the caller a signed JWT carrying the user's email
     and display name
   - Tokens expire ACCESS_TOKEN_EXPIRE_MINUTES (default 60) after issue
   - Validation is stateless: no session store, only the signing secret is
     shared between instances

3. FERNET ENCRYPTION (AES-128-CBC + HMAC-SHA256)
   - Card CVVs are encrypted before they reach the store
   - The key comes from CARD_ENCRYPTION_KEY, never from source code

TokenAuthority and CardCipher are built once by build_context() from the
startup Settings and then passed to the components that need them.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet
from jose import JWTError, jwt
from passlib.context import CryptContext

from ledger_api.exceptions import AuthError


BEARER_PREFIX = "Bearer "

_NANOS_PER_SECOND = 1_000_000_000


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# "deprecated='auto'" lets passlib verify hashes made by a retired scheme
# while new hashes always use the active one.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored Argon2 hash.

    Constant-time comparison. Returns False on mismatch; raises ValueError
    only when the stored hash itself is malformed.
    """
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. Bearer Tokens
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenClaims:
    """Identity recovered from a validated bearer token."""
    email: str
    name: str | None
    expires_at: datetime


class TokenAuthority:
    """
    Issues and validates HS256 bearer tokens.

    The signing secret is fixed for the lifetime of the instance.

    Args:
        secret: HMAC signing secret (AUTH_SECRET).
        algorithm: JWT algorithm; the only one accepted on validation.
        ttl_minutes: Token lifetime.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 60):
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=ttl_minutes)

    def issue_token(
        self,
        email: str,
        name: str,
        expires_delta: timedelta | None = None,
    ) -> tuple[str, int]:
        """
        Create a signed token for a user.

        The payload carries:
          - "sub" / "email": the user's email (the identity)
          - "name": the display name
          - "exp": expiry, after which validation fails

        Args:
            email: Subject email.
            name: Subject display name.
            expires_delta: Override the configured lifetime (tests use a
                negative delta to mint an already-expired token).

        Returns:
            Tuple of (encoded token, expiry as epoch nanoseconds).
        """
        issued_ns = time.time_ns()
        lifetime = expires_delta if expires_delta is not None else self._ttl
        expires_ns = issued_ns + int(lifetime.total_seconds() * _NANOS_PER_SECOND)

        claims = {
            "sub": email,
            "email": email,
            "name": name,
            "exp": expires_ns // _NANOS_PER_SECOND,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        return token, expires_ns

    def validate_token(self, header_value: str | None) -> TokenClaims:
        """
        Validate an Authorization header value of the form "Bearer <token>".

        Raises:
            AuthError: If the header is missing or empty, does not use the
                Bearer scheme, or the token is badly signed, signed with a
                different algorithm, expired, or carries no email.
        """
        if not header_value:
            raise AuthError("No valid Authorization token in request")
        if not header_value.startswith(BEARER_PREFIX):
            raise AuthError("Authorization token is not a valid Bearer token")

        token = header_value[len(BEARER_PREFIX):].strip()
        if not token:
            raise AuthError("No valid Authorization token in request")

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise AuthError(f"Invalid authorization token: {exc}") from exc

        email = payload.get("email") or payload.get("sub")
        if not email:
            raise AuthError("Authorization token carries no subject")
        if "exp" not in payload:
            raise AuthError("Authorization token carries no expiry")

        return TokenClaims(
            email=email,
            name=payload.get("name"),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


# ---------------------------------------------------------------------------
# 3. Fernet Encryption (card data at rest)
# ---------------------------------------------------------------------------

class CardCipher:
    """
    Fernet wrapper for card secrets.

    Args:
        key: URL-safe base64-encoded 32-byte Fernet key.
    """

    def __init__(self, key: str):
        self._fernet = Fernet(key.encode())

    def encrypt(self, plaintext: str) -> bytes:
        """Encrypt a value (e.g. a CVV) for a LargeBinary column."""
        return self._fernet.encrypt(plaintext.encode())

    def decrypt(self, ciphertext: bytes) -> str:
        """
        Decrypt a Fernet-encrypted value back to plaintext.

        Raises:
            cryptography.fernet.InvalidToken: If the data is corrupted or
                the key doesn't match.
        """
        return self._fernet.decrypt(ciphertext).decode()
