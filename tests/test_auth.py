"""
Tests for registration, authentication and the token authority.

These tests verify:
  - Registration stores a hashed password and rejects duplicate emails
  - Authentication issues a token whose expiry is reported in nanoseconds
  - Wrong password and unknown email fail with the same message
  - Tokens round-trip, and expired / forged / wrong-algorithm tokens fail
  - Malformed Authorization headers are rejected before any decoding
"""

import time
from datetime import timedelta

import pytest
from cryptography.fernet import Fernet
from jose import jwt

from ledger_api.exceptions import AuthError
from ledger_api.security import CardCipher, TokenAuthority, hash_password, verify_password
from ledger_api.services import auth_service


SECRET = "unit-test-secret"


class TestRegister:
    """Tests for POST /mutations/register."""

    async def test_register_success(self, client):
        response = await client.post(
            "/mutations/register",
            json={"email": "a@example.com", "password": "p", "name": "A"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data == {"email": "a@example.com", "name": "A"}

    async def test_register_never_returns_password(self, client):
        response = await client.post(
            "/mutations/register",
            json={"email": "a@example.com", "password": "p", "name": "A"},
        )
        data = response.json()
        assert "password" not in data
        assert "hashed_password" not in data

    async def test_register_duplicate_email(self, client):
        body = {"email": "a@example.com", "password": "p", "name": "A"}
        first = await client.post("/mutations/register", json=body)
        assert first.status_code == 201

        second = await client.post("/mutations/register", json=body)
        assert second.status_code == 409
        assert second.json()["error_type"] == "duplicate_email"

    async def test_register_invalid_email(self, client):
        response = await client.post(
            "/mutations/register",
            json={"email": "not-an-email", "password": "p", "name": "A"},
        )
        assert response.status_code == 422

    async def test_register_stores_hash(self, store):
        user = await auth_service.register(store, "a@example.com", "p", "A")
        assert user.hashed_password != "p"
        assert user.hashed_password.startswith("$argon2")


class TestAuthenticate:
    """Tests for POST /mutations/authenticate."""

    async def _register(self, client):
        response = await client.post(
            "/mutations/register",
            json={"email": "a@example.com", "password": "p", "name": "A"},
        )
        assert response.status_code == 201

    async def test_authenticate_success(self, client):
        await self._register(client)
        before = time.time_ns()

        response = await client.post(
            "/mutations/authenticate",
            json={"email": "a@example.com", "password": "p"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]

        # Expiry is epoch nanoseconds, 60 minutes out
        expected = before + 60 * 60 * 1_000_000_000
        assert abs(data["expires_at"] - expected) < 10 * 1_000_000_000

    async def test_issued_token_opens_gated_operations(self, client):
        await self._register(client)
        login = await client.post(
            "/mutations/authenticate",
            json={"email": "a@example.com", "password": "p"},
        )
        token = login.json()["token"]

        response = await client.get(
            "/queries/bank-accounts",
            params={"bank_id": "6f1d8c3e-2a4b-4c5d-9e8f-0a1b2c3d4e5f"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        assert response.json() == []

    async def test_wrong_password(self, client):
        await self._register(client)
        response = await client.post(
            "/mutations/authenticate",
            json={"email": "a@example.com", "password": "wrong"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["token"] is None
        assert data["expires_at"] is None

    async def test_unknown_email_same_message_as_wrong_password(self, client):
        await self._register(client)
        wrong_password = await client.post(
            "/mutations/authenticate",
            json={"email": "a@example.com", "password": "wrong"},
        )
        unknown_email = await client.post(
            "/mutations/authenticate",
            json={"email": "nobody@example.com", "password": "p"},
        )
        assert wrong_password.json()["message"] == unknown_email.json()["message"]
        assert unknown_email.json()["message"] == auth_service.INVALID_CREDENTIALS_MESSAGE


class TestTokenAuthority:
    """Unit tests for issuing and validating bearer tokens."""

    def test_round_trip(self):
        tokens = TokenAuthority(SECRET)
        token, _ = tokens.issue_token("a@example.com", "A")

        claims = tokens.validate_token(f"Bearer {token}")
        assert claims.email == "a@example.com"
        assert claims.name == "A"

    def test_expiry_is_nanoseconds(self):
        tokens = TokenAuthority(SECRET, ttl_minutes=60)
        before = time.time_ns()
        _, expires_at = tokens.issue_token("a@example.com", "A")
        after = time.time_ns()

        ttl_ns = 60 * 60 * 1_000_000_000
        assert before + ttl_ns <= expires_at <= after + ttl_ns

    def test_expired_token_rejected(self):
        tokens = TokenAuthority(SECRET)
        token, _ = tokens.issue_token("a@example.com", "A", expires_delta=timedelta(minutes=-5))
        with pytest.raises(AuthError):
            tokens.validate_token(f"Bearer {token}")

    def test_wrong_secret_rejected(self):
        token, _ = TokenAuthority("someone-else").issue_token("a@example.com", "A")
        with pytest.raises(AuthError):
            TokenAuthority(SECRET).validate_token(f"Bearer {token}")

    def test_unexpected_algorithm_rejected(self):
        token = jwt.encode(
            {"sub": "a@example.com", "email": "a@example.com", "exp": int(time.time()) + 600},
            SECRET,
            algorithm="HS512",
        )
        with pytest.raises(AuthError):
            TokenAuthority(SECRET, algorithm="HS256").validate_token(f"Bearer {token}")

    def test_token_without_expiry_rejected(self):
        token = jwt.encode({"sub": "a@example.com", "email": "a@example.com"}, SECRET, algorithm="HS256")
        with pytest.raises(AuthError):
            TokenAuthority(SECRET).validate_token(f"Bearer {token}")

    @pytest.mark.parametrize(
        "header",
        [None, "", "Bearer ", "Bearer    ", "Token abc", "bearer abc", "abc"],
    )
    def test_malformed_header_rejected(self, header):
        with pytest.raises(AuthError):
            TokenAuthority(SECRET).validate_token(header)

    def test_tampered_token_rejected(self):
        tokens = TokenAuthority(SECRET)
        token, _ = tokens.issue_token("a@example.com", "A")
        tampered = token[:-2] + ("AA" if token[-2:] != "AA" else "BB")
        with pytest.raises(AuthError):
            tokens.validate_token(f"Bearer {tampered}")


class TestPasswordsAndCipher:

    def test_hash_and_verify(self):
        hashed = hash_password("SecurePass123!")
        assert hashed != "SecurePass123!"
        assert verify_password("SecurePass123!", hashed)
        assert not verify_password("wrong", hashed)

    def test_cipher_round_trip(self):
        cipher = CardCipher(Fernet.generate_key().decode())
        encrypted = cipher.encrypt("123")
        assert encrypted != b"123"
        assert cipher.decrypt(encrypted) == "123"
