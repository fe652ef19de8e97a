"""
Pydantic schemas for card endpoints.

The CVV is accepted on input only. It is encrypted at rest and never
returned in any response.
"""

import uuid

from pydantic import BaseModel, Field


class CardInput(BaseModel):
    """Request body for POST /mutations/save-account-card."""
    account_id: str
    last4: str = Field(pattern=r"^\d{4}$")
    expiry_month: str = Field(pattern=r"^(0[1-9]|1[0-2])$")
    expiry_year: str = Field(pattern=r"^\d{4}$")
    cvv: str = Field(pattern=r"^\d{3,4}$")
    active: bool = True


class CardRef(BaseModel):
    """Identifies one card of one account."""
    account_id: str
    card_id: str


class CardResponse(BaseModel):
    account_id: uuid.UUID
    card_id: uuid.UUID
    last4: str
    expiry_month: str
    expiry_year: str
    active: bool

    model_config = {"from_attributes": True}
