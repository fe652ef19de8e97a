"""
Query resolution gateway — the operation surface of the ledger core.

The transport layer (routers) calls into a QueryGateway with raw, typed
arguments; the gateway:

  1. Applies the bearer-token gate (every operation except register and
     authenticate)
  2. Parses identifier arguments as canonical UUIDs
  3. Calls the account, card, ledger and auth services
  4. Resolves nested fields lazily, through per-request batch loaders

Steps 1 and 2 always run before any store access, so a request with a bad
token or a malformed id never reaches the database.

Authorization gap:
  The gate establishes WHO is calling (self.identity) but does not check
  that the caller owns the bank or account being addressed. Bank ownership
  lives in the external bank service.

One gateway is built per request by dependencies.get_gateway(), holding that
request's store (and session), its Authorization header, and the long-lived
handles from AppContext.
"""

import asyncio
import uuid
from datetime import timezone
from typing import Any, Iterable

from ledger_api.app_context import AppContext
from ledger_api.bank_client import Bank, BankClient
from ledger_api.exceptions import ValidationError
from ledger_api.loaders import BatchLoader
from ledger_api.models.bank_account import BankAccount
from ledger_api.models.card import Card
from ledger_api.models.transaction import Transaction, TransactionType
from ledger_api.models.user import User
from ledger_api.pagination import Connection, connection_from_list
from ledger_api.schemas.account import BankAccountInput
from ledger_api.schemas.auth import UserInput
from ledger_api.schemas.card import CardInput, CardRef
from ledger_api.schemas.transaction import TransactionInput
from ledger_api.security import CardCipher, TokenAuthority, TokenClaims
from ledger_api.services import account_service, auth_service, card_service, ledger_service
from ledger_api.services.account_service import AccountDetails
from ledger_api.services.auth_service import AuthResult
from ledger_api.services.card_service import CardDetails
from ledger_api.services.ledger_service import NewTransaction
from ledger_api.store import AccountStore


def parse_identifier(value: Any, field: str) -> uuid.UUID:
    """
    Parse a canonical UUID string ("xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx").

    Raises:
        ValidationError: If the value is missing or not a canonical UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a UUID string", field=field)
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid UUID: {value!r}", field=field)
    if str(parsed) != value.lower():
        raise ValidationError(f"{field} is not a canonical UUID: {value!r}", field=field)
    return parsed


class QueryGateway:
    """
    Per-request entry point for every ledger operation.

    Args:
        store: Store adapter bound to the request's session.
        tokens: Token authority used for the bearer gate.
        cipher: Card cipher for CVV encryption.
        bank_client: Client for the external bank service.
        authorization: Raw Authorization header of the request, if any.
        max_retries: Compare-and-swap attempts for balance updates.
    """

    def __init__(
        self,
        store: AccountStore,
        tokens: TokenAuthority,
        cipher: CardCipher,
        bank_client: BankClient,
        authorization: str | None = None,
        max_retries: int = ledger_service.DEFAULT_MAX_RETRIES,
    ):
        self._store = store
        self._tokens = tokens
        self._cipher = cipher
        self._bank_client = bank_client
        self._authorization = authorization
        self._max_retries = max_retries
        self._identity: TokenClaims | None = None

        self._active_cards = BatchLoader(store.active_cards_for)
        self._account_transactions = BatchLoader(store.transactions_for)
        self._cards_by_key = BatchLoader(store.cards_for_keys)
        self._banks = BatchLoader(self._fetch_banks)

    @classmethod
    def from_context(
        cls,
        store: AccountStore,
        context: AppContext,
        authorization: str | None = None,
    ) -> "QueryGateway":
        return cls(
            store=store,
            tokens=context.tokens,
            cipher=context.cipher,
            bank_client=context.bank_client,
            authorization=authorization,
            max_retries=context.settings.LEDGER_MAX_RETRIES,
        )

    # -----------------------------------------------------------------------
    # Bearer gate
    # -----------------------------------------------------------------------

    @property
    def identity(self) -> TokenClaims | None:
        """Claims of the authenticated caller, once the gate has run."""
        return self._identity

    def _authorize(self) -> TokenClaims:
        """Validate the request's bearer token (once per request)."""
        if self._identity is None:
            self._identity = self._tokens.validate_token(self._authorization)
        return self._identity

    def check_expand(self, expand: Iterable[str], allowed: Iterable[str]) -> set[str]:
        """
        Validate requested nested fields, after the bearer gate.

        Raises:
            AuthError: If the request carries no valid token.
            ValidationError: If a name is not one of allowed.
        """
        self._authorize()
        requested = set(expand)
        unknown = requested - set(allowed)
        if unknown:
            raise ValidationError(
                f"Unknown expand value(s): {', '.join(sorted(unknown))}",
                field="expand",
            )
        return requested

    # -----------------------------------------------------------------------
    # Registration and login (ungated)
    # -----------------------------------------------------------------------

    async def register(self, user: UserInput) -> User:
        return await auth_service.register(
            self._store,
            email=user.email,
            password=user.password,
            name=user.name,
        )

    async def authenticate(self, email: str, password: str) -> AuthResult:
        return await auth_service.authenticate(self._store, self._tokens, email, password)

    # -----------------------------------------------------------------------
    # Bank accounts
    # -----------------------------------------------------------------------

    async def list_accounts_for_bank(self, bank_id: str) -> list[BankAccount]:
        self._authorize()
        bank_uuid = parse_identifier(bank_id, "bank_id")
        return await account_service.list_accounts_for_bank(self._store, bank_uuid)

    async def get_account(self, bank_id: str, account_id: str) -> BankAccount:
        self._authorize()
        bank_uuid = parse_identifier(bank_id, "bank_id")
        account_uuid = parse_identifier(account_id, "account_id")
        return await account_service.get_account(self._store, bank_uuid, account_uuid)

    async def save_account(self, account: BankAccountInput) -> BankAccount:
        self._authorize()
        details = AccountDetails(
            bank_id=parse_identifier(account.bank_id, "bank_id"),
            account_name=account.account_name,
            account_type=account.account_type,
            last4=account.last4,
            current_balance=account.current_balance,
        )
        return await account_service.save_account(self._store, details)

    async def update_account(self, account: BankAccountInput) -> BankAccount:
        self._authorize()
        details = AccountDetails(
            bank_id=parse_identifier(account.bank_id, "bank_id"),
            account_id=parse_identifier(account.account_id, "account_id"),
            account_name=account.account_name,
            account_type=account.account_type,
            last4=account.last4,
            current_balance=account.current_balance,
        )
        return await account_service.update_account(self._store, details)

    async def check_balance(self, bank_id: str, account_id: str) -> dict:
        self._authorize()
        bank_uuid = parse_identifier(bank_id, "bank_id")
        account_uuid = parse_identifier(account_id, "account_id")
        return await ledger_service.compute_balance(self._store, bank_uuid, account_uuid)

    # -----------------------------------------------------------------------
    # Cards
    # -----------------------------------------------------------------------

    async def list_cards(self, account_id: str) -> list[Card]:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        return await card_service.list_cards(self._store, account_uuid)

    async def get_card(self, account_id: str, card_id: str) -> Card:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        card_uuid = parse_identifier(card_id, "card_id")
        return await card_service.get_card(self._store, account_uuid, card_uuid)

    async def get_active_card(self, account_id: str) -> Card | None:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        return await card_service.get_active_card(self._store, account_uuid)

    async def save_card(self, card: CardInput) -> Card:
        self._authorize()
        details = CardDetails(
            account_id=parse_identifier(card.account_id, "account_id"),
            last4=card.last4,
            expiry_month=card.expiry_month,
            expiry_year=card.expiry_year,
            cvv=card.cvv,
            active=card.active,
        )
        saved = await card_service.save_card(self._store, self._cipher, details)
        self._active_cards.clear(saved.account_id)
        self._cards_by_key.prime((saved.account_id, saved.card_id), saved)
        return saved

    async def inactivate_card(self, card: CardRef) -> Card:
        self._authorize()
        account_uuid = parse_identifier(card.account_id, "account_id")
        card_uuid = parse_identifier(card.card_id, "card_id")
        updated = await card_service.inactivate_card(self._store, account_uuid, card_uuid)
        self._active_cards.clear(account_uuid)
        return updated

    async def activate_card(self, account_id: str, card_id: str) -> Card:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        card_uuid = parse_identifier(card_id, "card_id")
        updated = await card_service.activate_card(self._store, account_uuid, card_uuid)
        self._active_cards.clear(account_uuid)
        return updated

    # -----------------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------------

    async def get_transaction(self, account_id: str, transaction_id: str) -> Transaction:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        transaction_uuid = parse_identifier(transaction_id, "transaction_id")
        return await ledger_service.get_transaction(self._store, account_uuid, transaction_uuid)

    async def list_transactions(self, account_id: str) -> list[Transaction]:
        self._authorize()
        account_uuid = parse_identifier(account_id, "account_id")
        return await ledger_service.list_transactions(self._store, account_uuid)

    async def transactions_connection(
        self,
        account_id: str,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
    ) -> Connection[Transaction]:
        """Window of an account's transactions; the full list is read first."""
        transactions = await self.list_transactions(account_id)
        return connection_from_list(transactions, first=first, after=after, last=last, before=before)

    async def post_transaction(self, bank_id: str, txn: TransactionInput) -> Transaction:
        self._authorize()
        bank_uuid = parse_identifier(bank_id, "bank_id")
        account_uuid = parse_identifier(txn.account_id, "account_id")
        card_uuid = parse_identifier(txn.card_id, "card_id") if txn.card_id else None
        try:
            txn_type = TransactionType(txn.transaction_type)
        except ValueError:
            raise ValidationError(
                f"transaction_type must be DEBIT or CREDIT, got {txn.transaction_type!r}",
                field="transaction_type",
            )

        posted = await ledger_service.post_transaction(
            self._store,
            bank_uuid,
            NewTransaction(
                account_id=account_uuid,
                transaction_date=txn.transaction_date.astimezone(timezone.utc),
                amount=txn.amount,
                transaction_type=txn_type,
                description=txn.description,
                card_id=card_uuid,
            ),
            max_retries=self._max_retries,
        )
        self._account_transactions.clear(account_uuid)
        return posted

    # -----------------------------------------------------------------------
    # Nested fields
    # -----------------------------------------------------------------------

    async def active_card(self, account: BankAccount) -> Card | None:
        return await self._active_cards.load(account.account_id)

    async def active_cards(self, accounts: Iterable[BankAccount]) -> list[Card | None]:
        return await self._active_cards.load_many(a.account_id for a in accounts)

    async def transactions(self, account: BankAccount) -> list[Transaction]:
        return await self._account_transactions.load(account.account_id)

    async def transactions_for(self, accounts: Iterable[BankAccount]) -> list[list[Transaction]]:
        return await self._account_transactions.load_many(a.account_id for a in accounts)

    async def transaction_card(self, txn: Transaction) -> Card | None:
        if txn.card_id is None:
            return None
        return await self._cards_by_key.load((txn.account_id, txn.card_id))

    async def transaction_cards(self, txns: Iterable[Transaction]) -> list[Card | None]:
        txns = list(txns)
        keys = [(t.account_id, t.card_id) for t in txns if t.card_id is not None]
        cards = iter(await self._cards_by_key.load_many(keys))
        return [next(cards) if t.card_id is not None else None for t in txns]

    async def bank(self, account: BankAccount) -> Bank:
        """The Bank an account belongs to, from the bank service (gated)."""
        self._authorize()
        return await self._banks.load(account.bank_id)

    async def banks(self, accounts: Iterable[BankAccount]) -> list[Bank]:
        self._authorize()
        return await self._banks.load_many(a.bank_id for a in accounts)

    async def _fetch_banks(self, bank_ids: list[uuid.UUID]) -> dict[uuid.UUID, Bank]:
        banks = await asyncio.gather(
            *(self._bank_client.get_bank(bank_id, self._authorization) for bank_id in bank_ids)
        )
        return dict(zip(bank_ids, banks))
