"""
User model — the authentication identity.

A User is a login credential: the email is the primary key, the password is
stored as an Argon2id hash, and the display name is carried into the bearer
token so downstream code can greet the caller without another lookup.

Users are created by registration and are otherwise immutable here.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ledger_api.database import Base


class User(Base):
    __tablename__ = "users"

    # Email is the login identifier and the table key
    email: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
