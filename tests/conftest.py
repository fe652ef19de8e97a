"""
Test fixtures for the Ledger API test suite.

This module provides shared fixtures used across all test files:

  - settings / context: Fresh in-memory SQLite database and service handles
    for each test, with the bank service replaced by an httpx MockTransport
  - store / gateway: Direct access below the HTTP layer
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a registered user and bearer token
  - create_account / create_card / post_transaction: helpers that go through
    the real HTTP endpoints

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - The app is built with create_app(context=...), so the application code
    runs exactly as in production, only against the test handles.
  - Tests use either the HTTP client or the store/gateway fixtures, not both:
    the in-memory database lives on a single shared connection.
"""

import os
import uuid

from cryptography.fernet import Fernet

# Required settings must exist before ledger_api.main is imported
TEST_AUTH_SECRET = "test-secret-do-not-use-in-production"
TEST_CARD_KEY = Fernet.generate_key().decode()
os.environ.setdefault("AUTH_SECRET", TEST_AUTH_SECRET)
os.environ.setdefault("CARD_ENCRYPTION_KEY", TEST_CARD_KEY)

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from ledger_api.app_context import build_context  # noqa: E402
from ledger_api.config import Settings  # noqa: E402
from ledger_api.database import Base  # noqa: E402
from ledger_api.gateway import QueryGateway  # noqa: E402
from ledger_api.main import create_app  # noqa: E402
from ledger_api.store import AccountStore  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"

BANK_ID = "6f1d8c3e-2a4b-4c5d-9e8f-0a1b2c3d4e5f"
UNKNOWN_BANK_ID = "00000000-0000-4000-8000-000000000000"


class BankServiceStub:
    """Stands in for the external bank service and records what it was sent."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        bank_id = request.url.path.rsplit("/", 1)[-1]
        if bank_id == UNKNOWN_BANK_ID:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(
            200,
            json={
                "bankId": bank_id,
                "owningUserId": "owner@example.com",
                "bankName": "First Test Bank",
                "accountNumber": "000123456789",
            },
        )


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        AUTH_SECRET=TEST_AUTH_SECRET,
        CARD_ENCRYPTION_KEY=TEST_CARD_KEY,
        BANK_SERVICE_URL="http://banks.test/api/v1/banks/{bank_id}",
    )


@pytest.fixture
def bank_service():
    return BankServiceStub()


@pytest_asyncio.fixture
async def context(settings, bank_service):
    """Service handles on a fresh in-memory database with all tables."""
    context = build_context(settings, bank_transport=httpx.MockTransport(bank_service))
    async with context.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield context
    await context.close()


@pytest_asyncio.fixture
async def db_session(context):
    async with context.session_factory() as session:
        yield session


@pytest.fixture
def store(db_session):
    return AccountStore(db_session)


@pytest.fixture
def bearer(context):
    """Authorization header value carrying a valid token."""
    token, _ = context.tokens.issue_token("owner@example.com", "Owner")
    return f"Bearer {token}"


@pytest.fixture
def gateway(store, context, bearer):
    """Gateway for an authenticated caller, bound to the test session."""
    return QueryGateway.from_context(store, context, bearer)


@pytest_asyncio.fixture
async def client(context):
    """Async HTTP test client for an app wired to the test context."""
    app = create_app(context=context)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(client):
    """
    Test client with a registered user and bearer token.

    Registers and logs in through the real endpoints, then sets the
    Authorization header on the client for all subsequent requests.
    """
    response = await client.post(
        "/mutations/register",
        json={"email": "testuser@example.com", "password": "SecurePass123!", "name": "Test User"},
    )
    assert response.status_code == 201, f"Register failed: {response.text}"

    response = await client.post(
        "/mutations/authenticate",
        json={"email": "testuser@example.com", "password": "SecurePass123!"},
    )
    data = response.json()
    assert data["success"] is True, f"Authenticate failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {data['token']}"
    return client


@pytest.fixture
def create_account(authenticated_client):
    """Create a bank account through the API and return its JSON."""

    async def _create(balance=None, name="Checking", bank_id=BANK_ID):
        body = {
            "bank_id": bank_id,
            "account_name": name,
            "account_type": "CHECKING",
            "last4": "4321",
        }
        if balance is not None:
            body["current_balance"] = balance
        response = await authenticated_client.post("/mutations/save-bank-account", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_card(authenticated_client):
    """Issue a card through the API and return its JSON."""

    async def _create(account_id, active=True, last4="1111"):
        response = await authenticated_client.post(
            "/mutations/save-account-card",
            json={
                "account_id": account_id,
                "last4": last4,
                "expiry_month": "09",
                "expiry_year": "2030",
                "cvv": "123",
                "active": active,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def post_transaction(authenticated_client):
    """Post a transaction through the API and return the raw response."""

    async def _post(
        account_id,
        amount,
        transaction_type="DEBIT",
        transaction_date="2024-03-01T12:00:00Z",
        card_id=None,
        bank_id=BANK_ID,
        description="",
    ):
        body = {
            "account_id": account_id,
            "transaction_date": transaction_date,
            "amount": str(amount),
            "transaction_type": transaction_type,
            "description": description,
        }
        if card_id is not None:
            body["card_id"] = card_id
        return await authenticated_client.post(
            "/mutations/save-transaction",
            params={"bank_id": bank_id},
            json=body,
        )

    return _post
