"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all runs
  2. String relationship targets ("User", "BankCard") resolve
"""

from bankcards.models.user import User, Role  # noqa: F401
from bankcards.models.card import BankCard, CardStatus  # noqa: F401
from bankcards.models.transaction import Transaction, TransactionStatus  # noqa: F401
