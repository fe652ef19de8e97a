"""
Transaction model — one posting against a bank account.

Transactions are keyed by (account_id, transaction_id) and are immutable
once stored: there is no update or delete path.

Key fields:
  - transaction_type: "DEBIT" adds to the account balance, "CREDIT"
    subtracts from it
  - amount: always positive, the direction comes from transaction_type
  - transaction_date: business date of the posting; lists are ordered by
    it, not by insertion order or key
    (stored as UTC so postings with different offsets sort by instant)
  - card_id: the card used, when the posting was a card payment
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_api.database import Base, UTCDateTime


class TransactionType(str, enum.Enum):
    """
    Direction of a posting.

    Inherits from str so values serialize naturally to JSON and compare
    equal to their plain string form.
    """
    DEBIT = "DEBIT"     # adds to current_balance
    CREDIT = "CREDIT"   # subtracts from current_balance


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
    )

    account_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Indexed: every list read sorts on it
    transaction_date: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )

    transaction_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    card_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
