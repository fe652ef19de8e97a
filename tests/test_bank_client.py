"""
Tests for the bank service client.

These tests verify:
  - A bank payload is parsed into a Bank
  - The caller's Authorization header is forwarded unchanged
  - 404 becomes NotFoundError; other failures become PersistenceError
"""

import uuid

import httpx
import pytest

from ledger_api.bank_client import Bank, BankClient
from ledger_api.exceptions import NotFoundError, PersistenceError


URL = "http://banks.test/api/v1/banks/{bank_id}"
BANK_ID = uuid.UUID("6f1d8c3e-2a4b-4c5d-9e8f-0a1b2c3d4e5f")

BANK_PAYLOAD = {
    "bankId": str(BANK_ID),
    "owningUserId": "owner@example.com",
    "bankName": "First Test Bank",
    "accountNumber": "000123456789",
}


def _client(handler):
    return BankClient(URL, timeout=1.0, transport=httpx.MockTransport(handler))


class TestGetBank:

    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=BANK_PAYLOAD)

        client = _client(handler)
        bank = await client.get_bank(BANK_ID, authorization="Bearer abc")
        await client.aclose()

        assert bank == Bank(
            bank_id=str(BANK_ID),
            owning_user_id="owner@example.com",
            bank_name="First Test Bank",
            account_number="000123456789",
        )
        assert seen[0].url.path == f"/api/v1/banks/{BANK_ID}"
        assert seen[0].headers["Authorization"] == "Bearer abc"

    async def test_no_authorization_header_when_absent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=BANK_PAYLOAD)

        client = _client(handler)
        await client.get_bank(BANK_ID)
        await client.aclose()

        assert "Authorization" not in seen[0].headers

    async def test_not_found(self):
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(NotFoundError):
            await client.get_bank(BANK_ID)
        await client.aclose()

    async def test_server_error(self):
        client = _client(lambda request: httpx.Response(500))
        with pytest.raises(PersistenceError):
            await client.get_bank(BANK_ID)
        await client.aclose()

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        client = _client(handler)
        with pytest.raises(PersistenceError, match="timeout"):
            await client.get_bank(BANK_ID)
        await client.aclose()

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(PersistenceError, match="unreachable"):
            await client.get_bank(BANK_ID)
        await client.aclose()

    async def test_malformed_payload(self):
        client = _client(lambda request: httpx.Response(200, json={"bankId": "x"}))
        with pytest.raises(PersistenceError):
            await client.get_bank(BANK_ID)
        await client.aclose()
