"""
Account store adapter — key-based reads and writes against the database.

Every entity lives in its own table under a composite key:

    users          email
    bank_accounts  (bank_id, account_id)
    cards          (account_id, card_id)
    transactions   (account_id, transaction_id)

The adapter only speaks in keys: exact-key get/put/update, partial-key
queries that return the whole matching set (all accounts of a bank, all
cards or transactions of an account), and batch reads used by the gateway's
loaders. It holds no business rules. Absent records come back as None;
deciding whether that is an error is the caller's job.

Error handling:
  Any SQLAlchemyError is re-raised as PersistenceError with the driver's
  message. Nothing is retried here.

Bulk UPDATE statements run with synchronize_session=False; every read that
follows a write asks for populate_existing so the identity map never hands
back a stale object.
"""

import functools
import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.exceptions import PersistenceError
from ledger_api.models.bank_account import BankAccount
from ledger_api.models.card import Card
from ledger_api.models.transaction import Transaction
from ledger_api.models.user import User


logger = logging.getLogger(__name__)


def _store_call(method):
    """Translate SQLAlchemy failures raised by a store method into PersistenceError."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error(
                "Store call failed",
                extra={"operation": method.__name__, "error": str(exc)},
            )
            raise PersistenceError(f"Store request failed: {exc}") from exc

    return wrapper


class AccountStore:
    """
    Store adapter bound to one AsyncSession (one request, one unit of work).

    Args:
        db: The request's database session.
    """

    def __init__(self, db: AsyncSession):
        self._db = db

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    @_store_call
    async def get_user(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @_store_call
    async def put_user(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        return user

    # -----------------------------------------------------------------------
    # Bank accounts
    # -----------------------------------------------------------------------

    @_store_call
    async def query_accounts(self, bank_id: uuid.UUID) -> list[BankAccount]:
        result = await self._db.execute(
            select(BankAccount)
            .where(BankAccount.bank_id == bank_id)
            .order_by(BankAccount.created_at, BankAccount.account_id)
        )
        return list(result.scalars().all())

    @_store_call
    async def get_account(
        self,
        bank_id: uuid.UUID,
        account_id: uuid.UUID,
    ) -> BankAccount | None:
        result = await self._db.execute(
            select(BankAccount)
            .where(BankAccount.bank_id == bank_id)
            .where(BankAccount.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_store_call
    async def put_account(self, account: BankAccount) -> BankAccount:
        self._db.add(account)
        await self._db.flush()
        return account

    @_store_call
    async def update_account(
        self,
        bank_id: uuid.UUID,
        account_id: uuid.UUID,
        values: dict,
    ) -> bool:
        """
        Overwrite the given columns of one account.

        Returns:
            True if a row matched the key.
        """
        result = await self._db.execute(
            update(BankAccount)
            .where(BankAccount.bank_id == bank_id)
            .where(BankAccount.account_id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @_store_call
    async def compare_and_set_balance(
        self,
        bank_id: uuid.UUID,
        account_id: uuid.UUID,
        expected_version: int,
        new_balance: Decimal,
    ) -> bool:
        """
        Write a new balance only if nobody else wrote since we read.

        The UPDATE is conditional on the version read by the caller and
        bumps it on success.

        Returns:
            True if the write applied, False if the version moved on.
        """
        result = await self._db.execute(
            update(BankAccount)
            .where(BankAccount.bank_id == bank_id)
            .where(BankAccount.account_id == account_id)
            .where(BankAccount.version == expected_version)
            .values(current_balance=new_balance, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # -----------------------------------------------------------------------
    # Cards
    # -----------------------------------------------------------------------

    @_store_call
    async def query_cards(self, account_id: uuid.UUID) -> list[Card]:
        result = await self._db.execute(
            select(Card)
            .where(Card.account_id == account_id)
            .order_by(Card.created_at, Card.card_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @_store_call
    async def get_card(self, account_id: uuid.UUID, card_id: uuid.UUID) -> Card | None:
        result = await self._db.execute(
            select(Card)
            .where(Card.account_id == account_id)
            .where(Card.card_id == card_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_store_call
    async def find_active_card(self, account_id: uuid.UUID) -> Card | None:
        """Return one active card of the account, or None. Which one is unspecified."""
        result = await self._db.execute(
            select(Card)
            .where(Card.account_id == account_id)
            .where(Card.active.is_(True))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @_store_call
    async def put_card(self, card: Card) -> Card:
        self._db.add(card)
        await self._db.flush()
        return card

    @_store_call
    async def set_card_active(
        self,
        account_id: uuid.UUID,
        card_id: uuid.UUID,
        active: bool,
    ) -> bool:
        """Set the flag on exactly one card. Returns True if the card exists."""
        result = await self._db.execute(
            update(Card)
            .where(Card.account_id == account_id)
            .where(Card.card_id == card_id)
            .values(active=active)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @_store_call
    async def activate_exclusively(self, account_id: uuid.UUID, card_id: uuid.UUID) -> None:
        """
        Make card_id the only active card of the account.

        One statement flips every card of the account: the target to true,
        all siblings to false.
        """
        await self._db.execute(
            update(Card)
            .where(Card.account_id == account_id)
            .values(active=(Card.card_id == card_id))
            .execution_options(synchronize_session=False)
        )

    # -----------------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------------

    @_store_call
    async def query_transactions(self, account_id: uuid.UUID) -> list[Transaction]:
        result = await self._db.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.transaction_date, Transaction.transaction_id)
        )
        return list(result.scalars().all())

    @_store_call
    async def get_transaction(
        self,
        account_id: uuid.UUID,
        transaction_id: uuid.UUID,
    ) -> Transaction | None:
        result = await self._db.execute(
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .where(Transaction.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    @_store_call
    async def put_transaction(self, txn: Transaction) -> Transaction:
        self._db.add(txn)
        await self._db.flush()
        return txn

    # -----------------------------------------------------------------------
    # Batch reads (one round trip for many parents)
    # -----------------------------------------------------------------------

    @_store_call
    async def active_cards_for(
        self,
        account_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Card | None]:
        ids = list(account_ids)
        found: dict[uuid.UUID, Card | None] = {account_id: None for account_id in ids}
        if not ids:
            return found
        result = await self._db.execute(
            select(Card)
            .where(Card.account_id.in_(ids))
            .where(Card.active.is_(True))
            .execution_options(populate_existing=True)
        )
        for card in result.scalars().all():
            if found.get(card.account_id) is None:
                found[card.account_id] = card
        return found

    @_store_call
    async def transactions_for(
        self,
        account_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, list[Transaction]]:
        ids = list(account_ids)
        grouped: dict[uuid.UUID, list[Transaction]] = defaultdict(list)
        if ids:
            result = await self._db.execute(
                select(Transaction)
                .where(Transaction.account_id.in_(ids))
                .order_by(Transaction.transaction_date, Transaction.transaction_id)
            )
            for txn in result.scalars().all():
                grouped[txn.account_id].append(txn)
        return {account_id: grouped.get(account_id, []) for account_id in ids}

    @_store_call
    async def cards_for_keys(
        self,
        keys: Iterable[tuple[uuid.UUID, uuid.UUID]],
    ) -> dict[tuple[uuid.UUID, uuid.UUID], Card | None]:
        wanted = list(keys)
        found: dict[tuple[uuid.UUID, uuid.UUID], Card | None] = {key: None for key in wanted}
        if not wanted:
            return found
        result = await self._db.execute(
            select(Card)
            .where(Card.account_id.in_(list({account_id for account_id, _ in wanted})))
            .where(Card.card_id.in_(list({card_id for _, card_id in wanted})))
            .execution_options(populate_existing=True)
        )
        for card in result.scalars().all():
            key = (card.account_id, card.card_id)
            if key in found:
                found[key] = card
        return found
