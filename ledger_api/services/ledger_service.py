"""
Ledger service — posting transactions and keeping balances in step.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It owns the invariant:

    current_balance == opening balance + Σ sign(t) * amount(t)

where sign is +1 for DEBIT and −1 for CREDIT, applied in posting order.

Posting sequence:
  1. Assign a new transaction_id and insert the transaction row
  2. Read the owning BankAccount by (bank_id, account_id)
  3. Apply the signed amount as a delta to the stored balance

The balance is never recomputed from history on the write path; each post
is an O(1) delta against the previously stored value. compute_balance() is
the read-side integrity check that does fold the whole history.

Lost updates:
  Two concurrent posts against one account would each read the same balance
  and the second write would silently discard the first. Step 3 therefore
  uses compare-and-swap: the UPDATE only applies if the account's version is
  the one we read, and on a miss we re-read and try again, up to
  max_retries times before giving up with ConflictError.

Atomicity:
  The insert and the balance write share the request's session. If the
  balance write fails (account missing, conflict, store error) the error
  propagates, get_db() rolls back, and the transaction row is discarded with
  it.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ledger_api.exceptions import ConflictError, NotFoundError, ValidationError
from ledger_api.models.bank_account import BankAccount
from ledger_api.models.transaction import Transaction, TransactionType
from ledger_api.store import AccountStore


logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


@dataclass
class NewTransaction:
    """Validated input for post_transaction()."""
    account_id: uuid.UUID
    transaction_date: datetime
    amount: Decimal
    transaction_type: TransactionType
    description: str = ""
    card_id: uuid.UUID | None = None


def signed_amount(amount: Decimal, transaction_type: str) -> Decimal:
    """
    Balance delta for a posting: CREDIT subtracts, DEBIT adds.

    The magnitude is taken as absolute so a stray negative amount can never
    flip the direction implied by the type.
    """
    magnitude = abs(Decimal(amount))
    if transaction_type == TransactionType.CREDIT:
        return -magnitude
    return magnitude


async def post_transaction(
    store: AccountStore,
    bank_id: uuid.UUID,
    new_txn: NewTransaction,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> Transaction:
    """
    Record a transaction and apply it to the owning account's balance.

    Args:
        store: Store adapter for this unit of work.
        bank_id: Bank half of the owning account's key.
        new_txn: The validated posting.
        max_retries: Compare-and-swap attempts before ConflictError.

    Returns:
        The stored Transaction with its generated transaction_id.

    Raises:
        ValidationError: If the amount is not positive or the card is inactive.
        NotFoundError: If the card or the owning account doesn't exist.
        ConflictError: If the balance kept changing underneath us.
        PersistenceError: If the store fails.
    """
    if new_txn.amount <= 0:
        raise ValidationError("Transaction amount must be positive", field="amount")

    if new_txn.card_id is not None:
        card = await store.get_card(new_txn.account_id, new_txn.card_id)
        if card is None:
            raise NotFoundError("Card", new_txn.account_id, new_txn.card_id)
        if not card.active:
            raise ValidationError("Card is not active", field="card_id")

    txn = Transaction(
        account_id=new_txn.account_id,
        transaction_id=uuid.uuid4(),
        transaction_date=new_txn.transaction_date,
        amount=new_txn.amount,
        transaction_type=new_txn.transaction_type.value,
        description=new_txn.description,
        card_id=new_txn.card_id,
    )
    await store.put_transaction(txn)

    await apply_balance_delta(
        store,
        bank_id,
        new_txn.account_id,
        signed_amount(new_txn.amount, new_txn.transaction_type),
        max_retries=max_retries,
    )

    logger.info(
        "Transaction posted",
        extra={
            "bank_id": str(bank_id),
            "account_id": str(txn.account_id),
            "transaction_id": str(txn.transaction_id),
            "transaction_type": txn.transaction_type,
        },
    )
    return txn


async def apply_balance_delta(
    store: AccountStore,
    bank_id: uuid.UUID,
    account_id: uuid.UUID,
    delta: Decimal,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> BankAccount:
    """
    Add delta to the account's stored balance with compare-and-swap.

    Returns:
        The account as re-read after the successful write.

    Raises:
        NotFoundError: If the account doesn't exist.
        ConflictError: If every attempt lost the race.
    """
    for attempt in range(1, max_retries + 1):
        account = await store.get_account(bank_id, account_id)
        if account is None:
            raise NotFoundError("BankAccount", bank_id, account_id)

        new_balance = account.current_balance + delta
        if await store.compare_and_set_balance(
            bank_id, account_id, account.version, new_balance
        ):
            return await store.get_account(bank_id, account_id)

        logger.warning(
            "Balance update lost a concurrent write, retrying",
            extra={"account_id": str(account_id), "attempt": attempt},
        )

    raise ConflictError(
        f"Balance of account {account_id} changed concurrently "
        f"{max_retries} times; giving up"
    )


async def list_transactions(
    store: AccountStore,
    account_id: uuid.UUID,
) -> list[Transaction]:
    """All transactions of an account, oldest transaction_date first."""
    return await store.query_transactions(account_id)


async def get_transaction(
    store: AccountStore,
    account_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> Transaction:
    """
    Get a single transaction by its composite key.

    Raises:
        NotFoundError: If no transaction exists at that key.
    """
    txn = await store.get_transaction(account_id, transaction_id)
    if txn is None:
        raise NotFoundError("Transaction", account_id, transaction_id)
    return txn


async def compute_balance(
    store: AccountStore,
    bank_id: uuid.UUID,
    account_id: uuid.UUID,
) -> dict:
    """
    Compare the stored balance with the fold of the account's history.

    A mismatch means a delta was lost or applied twice (or the balance was
    overridden by update_account), which needs investigation.

    Returns:
        Dict with stored_balance, computed_balance and match.
    """
    account = await store.get_account(bank_id, account_id)
    if account is None:
        raise NotFoundError("BankAccount", bank_id, account_id)

    computed = account.opening_balance
    for txn in await store.query_transactions(account_id):
        computed += signed_amount(txn.amount, txn.transaction_type)

    return {
        "bank_id": account.bank_id,
        "account_id": account.account_id,
        "stored_balance": account.current_balance,
        "computed_balance": computed,
        "match": account.current_balance == computed,
    }
