"""
Pydantic schemas for bank account endpoints.

The same input shape serves save and update. On save, account_id is ignored
and a fresh one is generated. On update, account_id is required and
current_balance, when present, overrides the stored balance.
"""

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

from ledger_api.bank_client import Bank
from ledger_api.schemas.card import CardResponse
from ledger_api.schemas.transaction import TransactionResponse


class BankAccountInput(BaseModel):
    """Request body for save-bank-account and update-bank-account."""
    bank_id: str
    account_id: str | None = None
    account_name: str = Field(min_length=1, max_length=255)
    account_type: str = Field(min_length=1, max_length=50)
    last4: str = Field(pattern=r"^\d{4}$")
    current_balance: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)


class BankAccountResponse(BaseModel):
    """
    A bank account, with optional nested fields.

    active_card, transactions and bank stay null unless requested through
    the expand query parameter.
    """
    bank_id: uuid.UUID
    account_id: uuid.UUID
    account_name: str
    account_type: str
    last4: str
    current_balance: Decimal
    active_card: CardResponse | None = None
    transactions: list[TransactionResponse] | None = None
    bank: Bank | None = None

    model_config = {"from_attributes": True}


class BalanceCheckResponse(BaseModel):
    """Stored balance next to the balance recomputed from history."""
    bank_id: uuid.UUID
    account_id: uuid.UUID
    stored_balance: Decimal
    computed_balance: Decimal
    match: bool
