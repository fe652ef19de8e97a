"""HTTP client for the external bank service that owns Bank records"""

import logging
import uuid

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ledger_api.exceptions import NotFoundError, PersistenceError


logger = logging.getLogger(__name__)


class Bank(BaseModel):
    """A bank as described by the bank service. Read-only here."""
    bank_id: str
    owning_user_id: str
    bank_name: str
    account_number: str


class BankClient:
    """
    Client for the bank service.

    Args:
        url_template: Bank lookup URL containing a "{bank_id}" placeholder.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        url_template: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def get_bank(self, bank_id: uuid.UUID, authorization: str | None = None) -> Bank:
        """
        Fetch one Bank by its id.

        The caller's Authorization header is forwarded unchanged.

        Raises:
            NotFoundError: If the bank service answers 404.
            PersistenceError: On timeout, transport errors, other HTTP
                errors, or a payload that doesn't describe a bank.
        """
        url = self.url_template.format(bank_id=bank_id)
        headers = {"Authorization": authorization} if authorization else {}
        try:
            response = await self._client.get(url, headers=headers)
            if response.status_code == 404:
                raise NotFoundError("Bank", bank_id)
            response.raise_for_status()
            data = response.json()
            return Bank(
                bank_id=data["bankId"],
                owning_user_id=data["owningUserId"],
                bank_name=data["bankName"],
                account_number=data["accountNumber"],
            )
        except httpx.TimeoutException as e:
            raise PersistenceError(f"Bank service timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise PersistenceError(f"Bank service error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Bank service unreachable", extra={"url": url, "error": str(e)})
            raise PersistenceError(f"Bank service unreachable: {e}") from e
        except (KeyError, ValueError, TypeError, PydanticValidationError) as e:
            raise PersistenceError(f"Invalid bank data from bank service: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
