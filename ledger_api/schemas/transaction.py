"""
Pydantic schemas for transaction endpoints.

Amounts are Decimal end to end and always positive; direction is carried by
transaction_type (DEBIT adds to the balance, CREDIT subtracts). Decimal
fields serialize as JSON strings so no precision is lost in transit.

transaction_date must carry a UTC offset; it is stored and returned in UTC.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import AwareDatetime, BaseModel, Field

from ledger_api.schemas.card import CardResponse


class TransactionInput(BaseModel):
    """Request body for POST /mutations/save-transaction."""
    account_id: str
    transaction_date: AwareDatetime
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    transaction_type: Literal["DEBIT", "CREDIT"]
    description: str = Field(default="", max_length=500)
    card_id: str | None = None


class TransactionResponse(BaseModel):
    account_id: uuid.UUID
    transaction_id: uuid.UUID
    transaction_date: datetime
    amount: Decimal
    transaction_type: str
    description: str
    card_id: uuid.UUID | None = None
    card: CardResponse | None = None

    model_config = {"from_attributes": True}


class PageInfoResponse(BaseModel):
    start_cursor: str | None = None
    end_cursor: str | None = None
    has_previous_page: bool
    has_next_page: bool

    model_config = {"from_attributes": True}


class TransactionEdgeResponse(BaseModel):
    node: TransactionResponse
    cursor: str

    model_config = {"from_attributes": True}


class TransactionConnectionResponse(BaseModel):
    """A window of an account's transactions with relay-style cursors."""
    edges: list[TransactionEdgeResponse]
    page_info: PageInfoResponse
    total_count: int

    model_config = {"from_attributes": True}
