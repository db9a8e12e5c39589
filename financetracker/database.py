import logging

from fastapi import Depends, HTTPException, status
from supabase import Client

from financetracker.auth import AuthContext, get_auth_context
from financetracker.services.budget_service import BudgetService
from financetracker.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)


def get_db(ctx: AuthContext = Depends(get_auth_context)) -> Client:
    """FastAPI dependency — the Supabase client bound to the caller's session."""
    if ctx.client is None:
        logger.warning(f"No database session for user {ctx.user_id}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Your session is still being set up. Please try again.",
        )
    return ctx.client


def get_transaction_service(db: Client = Depends(get_db)) -> TransactionService:
    return TransactionService(db)


def get_budget_service(db: Client = Depends(get_db)) -> BudgetService:
    return BudgetService(db)
