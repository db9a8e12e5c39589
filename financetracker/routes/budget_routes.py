# ---------- routes/budget_routes.py ----------
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from financetracker.auth import AuthContext, get_auth_context, require_capability
from financetracker.database import get_budget_service
from financetracker.models.budget import BudgetCreate, BudgetStatus, BudgetUpdate
from financetracker.roles import Capability
from financetracker.services.budget_service import BudgetService

router = APIRouter(prefix="/api/v1/budgets", tags=["Budgets"])


# ── Roll-ups ──────────────────────────────────────────────────────
@router.get("/performance")
def budget_performance(
    ctx: AuthContext = Depends(get_auth_context),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        return service.get_budget_performance_summary()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/departments")
def department_breakdown(
    ctx: AuthContext = Depends(get_auth_context),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        return service.get_department_budget_breakdown()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/alerts")
def budget_alerts(
    limit: Optional[int] = Query(None, ge=1),
    ctx: AuthContext = Depends(get_auth_context),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        alerts = service.get_budget_alerts()
        return alerts[:limit] if limit else alerts
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/trends")
def budget_trends(
    months: int = Query(6, ge=1, le=36),
    ctx: AuthContext = Depends(get_auth_context),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        return service.get_budget_trends(months)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


# ── CRUD ──────────────────────────────────────────────────────────
@router.get("")
def list_budgets(
    department: Optional[str] = None,
    status: Optional[BudgetStatus] = None,
    period: Optional[Literal["current", "upcoming", "past"]] = None,
    ctx: AuthContext = Depends(get_auth_context),
    service: BudgetService = Depends(get_budget_service),
):
    filters = {
        "department": department,
        "status": status.value if status else None,
        "period": period,
    }
    try:
        return service.get_budgets(filters)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("")
def create_budget(
    budget: BudgetCreate,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_BUDGETS)),
    service: BudgetService = Depends(get_budget_service),
):
    if budget.period_end < budget.period_start:
        raise HTTPException(status_code=422, detail="period_end must not be before period_start")
    try:
        result = service.create_budget(budget.model_dump(exclude_none=True, mode="json"))
        return {"status": "success", "data": result}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/{budget_id}")
def update_budget(
    budget_id: str,
    updates: BudgetUpdate,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_BUDGETS)),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        existing = service.get_budget(budget_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Budget not found")

        data = updates.model_dump(exclude_unset=True, mode="json")
        if not data:
            return {"status": "success", "data": existing}

        result = service.update_budget(budget_id, data)
        return {"status": "success", "data": result}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_BUDGETS)),
    service: BudgetService = Depends(get_budget_service),
):
    try:
        if not service.get_budget(budget_id):
            raise HTTPException(status_code=404, detail="Budget not found")

        service.delete_budget(budget_id)
        return {"status": "success"}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
