# ---------- routes/transaction_routes.py ----------
import asyncio
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from financetracker.auth import AuthContext, get_auth_context, require_capability
from financetracker.database import get_transaction_service
from financetracker.models.transaction import TransactionCreate, TransactionType, TransactionUpdate
from financetracker.roles import Capability
from financetracker.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/v1/transactions", tags=["Transactions"])

Period = Literal["current_month", "current_quarter", "current_year"]


# ── Aggregates ────────────────────────────────────────────────────
@router.get("/summary")
def financial_summary(
    period: Period = "current_month",
    ctx: AuthContext = Depends(get_auth_context),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        return service.get_financial_summary(period)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/expense-breakdown")
def expense_breakdown(
    period: Period = "current_month",
    ctx: AuthContext = Depends(get_auth_context),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        return service.get_expense_breakdown(period)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/cash-flow")
def cash_flow(
    months: int = Query(6, ge=1, le=36),
    ctx: AuthContext = Depends(get_auth_context),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        return service.get_cash_flow_data(months)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/recent")
def recent_transactions(
    limit: int = Query(10, ge=1, le=100),
    ctx: AuthContext = Depends(get_auth_context),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        return service.get_recent_transactions(limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


# ── CRUD ──────────────────────────────────────────────────────────
@router.get("")
def list_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    type: Optional[TransactionType] = None,
    category_id: Optional[str] = None,
    vendor_id: Optional[str] = None,
    project_id: Optional[str] = None,
    ctx: AuthContext = Depends(get_auth_context),
    service: TransactionService = Depends(get_transaction_service),
):
    filters = {
        "start_date": start_date,
        "end_date": end_date,
        "type": type.value if type else None,
        "category_id": category_id,
        "vendor_id": vendor_id,
        "project_id": project_id,
    }
    try:
        return service.get_transactions(filters)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("")
def create_transaction(
    tx_data: TransactionCreate,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_TRANSACTIONS)),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        data = tx_data.model_dump(exclude_unset=True, mode="json")
        result = service.create_transaction(data)
        return {"status": "success", "data": result}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/{tx_id}")
def update_transaction(
    tx_id: str,
    tx_data: TransactionUpdate,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_TRANSACTIONS)),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        existing = service.get_transaction(tx_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Transaction not found")

        data = tx_data.model_dump(exclude_unset=True, mode="json")
        if not data:
            return {"status": "success", "data": existing}

        result = service.update_transaction(tx_id, data)
        return {"status": "success", "data": result}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{tx_id}")
def delete_transaction(
    tx_id: str,
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_TRANSACTIONS)),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        if not service.get_transaction(tx_id):
            raise HTTPException(status_code=404, detail="Transaction not found")

        service.delete_transaction(tx_id)
        return {"status": "success"}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{tx_id}/invoice")
async def upload_invoice(
    tx_id: str,
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(require_capability(Capability.MANAGE_TRANSACTIONS)),
    service: TransactionService = Depends(get_transaction_service),
):
    try:
        if not await asyncio.to_thread(service.get_transaction, tx_id):
            raise HTTPException(status_code=404, detail="Transaction not found")

        content = await file.read()
        url = await asyncio.to_thread(service.upload_invoice, content, file.filename, tx_id, file.content_type)
        return {"status": "success", "data": {"url": url}}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
