"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table when
create_all runs at startup, and so other modules can import from
ledger_api.models directly.
"""

from ledger_api.models.user import User  # noqa: F401
from ledger_api.models.bank_account import BankAccount  # noqa: F401
from ledger_api.models.card import Card  # noqa: F401
from ledger_api.models.transaction import Transaction, TransactionType  # noqa: F401
