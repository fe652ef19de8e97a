"""
Card model — a debit/credit card attached to a bank account.

Cards are keyed by (account_id, card_id). The account owns its cards by
key prefix; there is no foreign key because a BankAccount's own key also
includes bank_id.

Active flag:
  At most one card per account is meant to be active. save_card() stores
  the flag as given and never touches sibling cards; activate_card() is the
  operation that enforces exclusivity, in a single UPDATE over the account's
  cards.

The CVV is Fernet-encrypted at rest and never leaves the service. last4 and
the expiry are stored in plaintext for display.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from ledger_api.database import Base


class Card(Base):
    __tablename__ = "cards"

    account_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    card_id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    last4: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
    )

    # Kept as strings ("03", "2027") the way they are printed on the card
    expiry_month: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
    )
    expiry_year: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
    )

    # CVV, Fernet-encrypted
    cvv_encrypted: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
