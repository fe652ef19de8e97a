"""
Account service — business logic for bank account records.

This module handles:
  - Account creation (generated account_id, opening balance)
  - Account edits (name, type, last4, and an explicit balance override)
  - Account retrieval (one by key, or every account of a bank)

Balance changes caused by transactions do NOT go through here; they belong
to ledger_service.apply_balance_delta(). The override in update_account()
is a manual correction: it replaces the stored balance outright and bumps
the version so any in-flight compare-and-swap from a concurrent post
retries against the corrected value.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from ledger_api.exceptions import NotFoundError
from ledger_api.models.bank_account import BankAccount
from ledger_api.store import AccountStore


logger = logging.getLogger(__name__)


@dataclass
class AccountDetails:
    """Validated input for save_account() / update_account()."""
    bank_id: uuid.UUID
    account_name: str
    account_type: str
    last4: str
    current_balance: Decimal | None = None
    account_id: uuid.UUID | None = None


async def save_account(store: AccountStore, details: AccountDetails) -> BankAccount:
    """
    Create a new bank account under a bank.

    A fresh account_id is always generated; any id on the input is ignored.
    The balance starts at the given value, or 0.

    Returns:
        The newly created BankAccount.
    """
    opening = details.current_balance if details.current_balance is not None else Decimal("0.00")
    account = BankAccount(
        bank_id=details.bank_id,
        account_id=uuid.uuid4(),
        account_name=details.account_name,
        account_type=details.account_type,
        last4=details.last4,
        current_balance=opening,
        opening_balance=opening,
        version=0,
    )
    await store.put_account(account)
    logger.info(
        "Bank account created",
        extra={"bank_id": str(account.bank_id), "account_id": str(account.account_id)},
    )
    return account


async def update_account(store: AccountStore, details: AccountDetails) -> BankAccount:
    """
    Overwrite an existing account's editable fields.

    Args:
        store: Store adapter.
        details: Must carry account_id. current_balance=None leaves the
                 balance untouched.

    Returns:
        The account as stored after the update.

    Raises:
        NotFoundError: If no account exists at (bank_id, account_id).
    """
    current = await get_account(store, details.bank_id, details.account_id)

    values = {
        "account_name": details.account_name,
        "account_type": details.account_type,
        "last4": details.last4,
    }
    if details.current_balance is not None:
        values["current_balance"] = details.current_balance
        # Bumped relative to the row, not to the version read above
        values["version"] = BankAccount.version + 1
        logger.warning(
            "Balance overridden by account update",
            extra={
                "account_id": str(details.account_id),
                "previous_balance": str(current.current_balance),
                "new_balance": str(details.current_balance),
            },
        )

    if not await store.update_account(details.bank_id, details.account_id, values):
        raise NotFoundError("BankAccount", details.bank_id, details.account_id)

    return await get_account(store, details.bank_id, details.account_id)


async def list_accounts_for_bank(
    store: AccountStore,
    bank_id: uuid.UUID,
) -> list[BankAccount]:
    """List every account held under a bank. An unknown bank yields []."""
    return await store.query_accounts(bank_id)


async def get_account(
    store: AccountStore,
    bank_id: uuid.UUID,
    account_id: uuid.UUID,
) -> BankAccount:
    """
    Get a single account by its composite key.

    Raises:
        NotFoundError: If the account doesn't exist.
    """
    account = await store.get_account(bank_id, account_id)
    if account is None:
        raise NotFoundError("BankAccount", bank_id, account_id)
    return account
