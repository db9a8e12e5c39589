# ---------- routes/ai_routes.py ----------
import asyncio
import uuid
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from financetracker.auth import AuthContext, get_auth_context, require_capability
from financetracker.database import get_budget_service, get_transaction_service
from financetracker.roles import Capability
from financetracker.services.ai_service import AIInsightsService, AIServiceError, get_ai_service
from financetracker.services.budget_service import BudgetService
from financetracker.services.dashboard_service import load_sections
from financetracker.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/v1/ai", tags=["AI"])

CONTEXT_TRANSACTIONS = 20
HISTORY_TRANSACTIONS = 50
MAX_INVOICE_BYTES = 10 * 1024 * 1024


# ── Pydantic schemas ──────────────────────────────────────────────
class InsightRequest(BaseModel):
    query: str = Field(min_length=1)


class ForecastRequest(BaseModel):
    period: Literal["3months", "6months", "12months"] = "6months"


def _require_data(data: dict, errors: list):
    if errors:
        raise HTTPException(status_code=500, detail=errors[0]["error"])
    return data


# ── Routes ────────────────────────────────────────────────────────
@router.post("/insights")
async def ask_insights(
    body: InsightRequest,
    ctx: AuthContext = Depends(require_capability(Capability.VIEW_AI_INSIGHTS)),
    transactions: TransactionService = Depends(get_transaction_service),
    ai: AIInsightsService = Depends(get_ai_service),
):
    """Answer a natural-language question with the current quarter as context."""
    if not body.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be blank")

    data = _require_data(*await load_sections({
        "financial_summary": lambda: transactions.get_financial_summary("current_quarter"),
        "recent_transactions": lambda: transactions.get_recent_transactions(100),
    }))
    context = {
        "financial_summary": data["financial_summary"],
        "recent_transactions": data["recent_transactions"][:CONTEXT_TRANSACTIONS],
    }
    try:
        response = await ai.generate_financial_insights(body.query, context)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "id": str(uuid.uuid4()),
        "query": body.query,
        "response": response,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/invoice")
async def analyze_invoice(
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(require_capability(Capability.VIEW_AI_INSIGHTS)),
    ai: AIInsightsService = Depends(get_ai_service),
):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=415, detail="Invoice must be an image")
    content = await file.read()
    if len(content) > MAX_INVOICE_BYTES:
        raise HTTPException(status_code=413, detail="Invoice image is too large")

    try:
        result = await ai.analyze_invoice_image(content, file.content_type)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "success", "filename": file.filename, "data": result}


@router.post("/forecast")
async def forecast(
    body: ForecastRequest,
    ctx: AuthContext = Depends(require_capability(Capability.VIEW_AI_INSIGHTS)),
    transactions: TransactionService = Depends(get_transaction_service),
    ai: AIInsightsService = Depends(get_ai_service),
):
    try:
        history = await asyncio.to_thread(transactions.get_recent_transactions, HISTORY_TRANSACTIONS)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    try:
        return await ai.generate_financial_forecast(history, body.period)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/anomalies")
async def anomalies(
    ctx: AuthContext = Depends(require_capability(Capability.VIEW_AI_INSIGHTS)),
    transactions: TransactionService = Depends(get_transaction_service),
    ai: AIInsightsService = Depends(get_ai_service),
):
    try:
        recent = await asyncio.to_thread(transactions.get_recent_transactions, HISTORY_TRANSACTIONS)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return await ai.detect_financial_anomalies(recent)


@router.post("/tax-tips")
async def tax_tips(
    ctx: AuthContext = Depends(require_capability(Capability.VIEW_TAX_ANALYTICS)),
    transactions: TransactionService = Depends(get_transaction_service),
    ai: AIInsightsService = Depends(get_ai_service),
):
    try:
        summary = await asyncio.to_thread(transactions.get_financial_summary, "current_quarter")
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return await ai.get_tax_optimization_tips(summary)


@router.get("/overview")
async def overview(
    ctx: AuthContext = Depends(get_auth_context),
    transactions: TransactionService = Depends(get_transaction_service),
    budgets: BudgetService = Depends(get_budget_service),
    ai: AIInsightsService = Depends(get_ai_service),
):
    """Forecast, anomalies and (for tax roles) tax tips over the current data."""
    if not ctx.has_capability(Capability.VIEW_AI_INSIGHTS):
        raise HTTPException(status_code=403, detail="Your role does not allow view_ai_insights")

    data = _require_data(*await load_sections({
        "financial_summary": lambda: transactions.get_financial_summary("current_quarter"),
        "recent_transactions": lambda: transactions.get_recent_transactions(HISTORY_TRANSACTIONS),
        "budgets": lambda: budgets.get_budgets({"status": "active"}),
    }))

    async def no_tips():
        return []

    tips_call = (
        ai.get_tax_optimization_tips(data["financial_summary"])
        if ctx.has_capability(Capability.VIEW_TAX_ANALYTICS)
        else no_tips()
    )
    forecast_result, anomaly_result, tips_result = await asyncio.gather(
        ai.generate_financial_forecast(data["recent_transactions"], "6months"),
        ai.detect_financial_anomalies(data["recent_transactions"]),
        tips_call,
        return_exceptions=True,
    )

    errors = []
    if isinstance(forecast_result, Exception):
        errors.append({"section": "forecast", "error": str(forecast_result)})
        forecast_result = None
    return {
        "forecast": forecast_result,
        "anomalies": anomaly_result if not isinstance(anomaly_result, Exception) else [],
        "tax_tips": tips_result if not isinstance(tips_result, Exception) else [],
        "active_budgets": len(data["budgets"]),
        "errors": errors,
    }
