"""
BankAccount model — an account held at a Bank, keyed by (bank_id, account_id).

The Bank itself lives in a separate service; bank_id is only a back
reference used for lookups, so there is no foreign key to it.

Balance management:
  current_balance is the running total of every transaction posted against
  the account, starting from the balance the account was saved with (0 by
  default). DEBIT transactions add their amount, CREDIT transactions subtract
  it. The ledger never recomputes the total from history; it applies each
  posting as a delta to the stored value.

  Concurrent postings against the same account are reconciled with the
  version column: a balance write is a conditional UPDATE that only applies
  when the version is still the one that was read (compare-and-swap), and
  every successful write bumps it.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ledger_api.database import Base


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    # Composite key: all accounts of a bank share the bank_id partition
    bank_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # Free-form, e.g. "CHECKING" or "SAVINGS"
    account_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    last4: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
    )

    # Signed: CREDIT postings may take the account below zero
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Balance the account was saved with; the start of the ledger fold
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Compare-and-swap guard for balance writes
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
