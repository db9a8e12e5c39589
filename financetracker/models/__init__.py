from financetracker.models.transaction import TransactionType, TransactionCreate, TransactionUpdate
from financetracker.models.budget import BudgetStatus, BudgetCreate, BudgetUpdate
from financetracker.models.user_profile import UserProfile

__all__ = [
    "TransactionType",
    "TransactionCreate",
    "TransactionUpdate",
    "BudgetStatus",
    "BudgetCreate",
    "BudgetUpdate",
    "UserProfile",
]
