from .card import CardRepository
from .transaction import TransactionRepository
from .user import UserRepository

__all__ = ["CardRepository", "TransactionRepository", "UserRepository"]
