# ---------- routes/dashboard_routes.py ----------
from fastapi import APIRouter, Depends

from financetracker.auth import AuthContext, get_auth_context
from financetracker.database import get_budget_service, get_transaction_service
from financetracker.services.budget_service import BudgetService
from financetracker.services.dashboard_service import load_sections
from financetracker.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])

TOP_ALERTS = 5


@router.get("/executive")
async def executive_dashboard(
    ctx: AuthContext = Depends(get_auth_context),
    transactions: TransactionService = Depends(get_transaction_service),
    budgets: BudgetService = Depends(get_budget_service),
):
    """Everything the executive overview shows, one section per independent read."""
    data, errors = await load_sections({
        "financial_summary": lambda: transactions.get_financial_summary("current_month"),
        "budget_summary": budgets.get_budget_performance_summary,
        "cash_flow": lambda: transactions.get_cash_flow_data(6),
        "expense_breakdown": lambda: transactions.get_expense_breakdown("current_month"),
        "budget_alerts": lambda: budgets.get_budget_alerts()[:TOP_ALERTS],
    })
    return {**data, "errors": errors}
