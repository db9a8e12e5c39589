"""
transaction_service.py — Transactions & Cash Flow
CRUD pass-through to the `transactions` table plus the in-memory
aggregations behind the dashboards: period summaries, expense breakdown
by category and a gap-free monthly cash-flow series.
"""

import logging
import os
import time
from datetime import date, timedelta

from supabase import Client

from financetracker.config import INVOICE_BUCKET
from financetracker.formatting import parse_amount

logger = logging.getLogger(__name__)

PERIODS = ("current_month", "current_quarter", "current_year")
UNCATEGORIZED = "Uncategorized"
DEFAULT_CATEGORY_COLOR = "#6B7280"

_FULL_SELECT = (
    "*, vendor:vendors(name, category), "
    "category:transaction_categories(name, color_code, is_gst_applicable), "
    "project:projects(name)"
)


# ── Date helpers ──────────────────────────────────────────────────
def month_start(year: int, month: int) -> date:
    """First day of a month, normalising month overflow in either direction."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    nxt = month_start(year, month + 1)
    return nxt - timedelta(days=1)


def period_window(period: str, today: date | None = None) -> tuple[date, date]:
    """Inclusive (start, end) dates for a period keyword; unknown keywords mean current_month."""
    today = today or date.today()
    if period == "current_quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        return month_start(today.year, first_month), month_end(today.year, first_month + 2)
    if period == "current_year":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return month_start(today.year, today.month), month_end(today.year, today.month)


def month_key(value) -> str:
    """'2026-10-19' / date(2026, 10, 19) -> '2026-10'"""
    return str(value)[:7]


def trailing_month_keys(months: int, today: date | None = None) -> list[str]:
    """The last `months` month keys, oldest first, ending with today's month."""
    today = today or date.today()
    return [
        month_start(today.year, today.month - offset).strftime("%Y-%m")
        for offset in range(months - 1, -1, -1)
    ]


# ── Aggregations ──────────────────────────────────────────────────
def summarize_transactions(rows: list[dict]) -> dict:
    """Reduce transaction rows into a FinancialSummary dict."""
    summary = {
        "total_income": 0.0,
        "total_expenses": 0.0,
        "total_gst": 0.0,
        "total_tds": 0.0,
        "net_cash_flow": 0.0,
        "transaction_count": len(rows),
    }
    for t in rows:
        amount = parse_amount(t.get("amount"))
        if t.get("transaction_type") == "income":
            summary["total_income"] += amount
        elif t.get("transaction_type") == "expense":
            summary["total_expenses"] += amount
        # GST/TDS are carried on every row, whatever its type
        summary["total_gst"] += parse_amount(t.get("gst_amount"))
        summary["total_tds"] += parse_amount(t.get("tds_amount"))

    summary["net_cash_flow"] = summary["total_income"] - summary["total_expenses"]
    return summary


def build_expense_breakdown(rows: list[dict]) -> list[dict]:
    """Group expense rows by category name, in first-seen order."""
    breakdown: dict[str, dict] = {}
    for t in rows:
        category = t.get("category") or {}
        name = category.get("name") or UNCATEGORIZED
        if name not in breakdown:
            breakdown[name] = {
                "name": name,
                "amount": 0.0,
                "color": category.get("color_code") or DEFAULT_CATEGORY_COLOR,
            }
        breakdown[name]["amount"] += parse_amount(t.get("amount"))
    return list(breakdown.values())


def build_cash_flow_series(rows: list[dict], months: int = 6, today: date | None = None) -> list[dict]:
    """
    Monthly income/expense totals for the trailing window.
    Always exactly `months` entries, oldest first; months without rows are zero.
    Rows outside the window are ignored.
    """
    series = {key: {"month": key, "income": 0.0, "expense": 0.0} for key in trailing_month_keys(months, today)}
    for t in rows:
        bucket = series.get(month_key(t.get("transaction_date")))
        if bucket is None:
            continue
        if t.get("transaction_type") == "income":
            bucket["income"] += parse_amount(t.get("amount"))
        elif t.get("transaction_type") == "expense":
            bucket["expense"] += parse_amount(t.get("amount"))
    return list(series.values())


def invoice_object_key(transaction_id, filename: str, now_ms: int | None = None) -> str:
    """Storage key `{transaction_id}/{epoch_ms}.{ext}` for an invoice upload."""
    ext = os.path.splitext(filename or "")[1].lstrip(".") or "bin"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{transaction_id}/{stamp}.{ext}"


# ── Service ───────────────────────────────────────────────────────
class TransactionService:
    """Transaction reads, writes and aggregations against a Supabase client."""

    def __init__(self, client: Client):
        self.client = client

    def get_transactions(self, filters: dict | None = None) -> list:
        filters = filters or {}
        try:
            query = (
                self.client.table("transactions")
                .select(_FULL_SELECT)
                .order("transaction_date", desc=True)
            )
            if filters.get("start_date"):
                query = query.gte("transaction_date", str(filters["start_date"]))
            if filters.get("end_date"):
                query = query.lte("transaction_date", str(filters["end_date"]))
            if filters.get("type"):
                query = query.eq("transaction_type", filters["type"])
            if filters.get("category_id"):
                query = query.eq("category_id", filters["category_id"])
            if filters.get("vendor_id"):
                query = query.eq("vendor_id", filters["vendor_id"])
            if filters.get("project_id"):
                query = query.eq("project_id", filters["project_id"])
            return query.execute().data or []
        except Exception as e:
            logger.error(f"Error fetching transactions: {e}")
            raise

    def get_transaction(self, transaction_id) -> dict | None:
        try:
            rows = self.client.table("transactions").select(_FULL_SELECT).eq("id", transaction_id).execute().data
            return rows[0] if rows else None
        except Exception as e:
            logger.error(f"Error fetching transaction {transaction_id}: {e}")
            raise

    def create_transaction(self, data: dict) -> dict:
        try:
            rows = self.client.table("transactions").insert(data).execute().data
            return rows[0] if rows else {}
        except Exception as e:
            logger.error(f"Error creating transaction: {e}")
            raise

    def update_transaction(self, transaction_id, updates: dict) -> dict:
        try:
            rows = self.client.table("transactions").update(updates).eq("id", transaction_id).execute().data
            return rows[0] if rows else {}
        except Exception as e:
            logger.error(f"Error updating transaction {transaction_id}: {e}")
            raise

    def delete_transaction(self, transaction_id) -> bool:
        try:
            self.client.table("transactions").delete().eq("id", transaction_id).execute()
            return True
        except Exception as e:
            logger.error(f"Error deleting transaction {transaction_id}: {e}")
            raise

    def get_financial_summary(self, period: str = "current_month", today: date | None = None) -> dict:
        start, end = period_window(period, today)
        try:
            rows = (
                self.client.table("transactions")
                .select("transaction_type, amount, gst_amount, tds_amount")
                .gte("transaction_date", start.isoformat())
                .lte("transaction_date", end.isoformat())
                .execute()
                .data
            ) or []
        except Exception as e:
            logger.error(f"Error getting financial summary: {e}")
            raise
        return summarize_transactions(rows)

    def get_expense_breakdown(self, period: str = "current_month", today: date | None = None) -> list:
        start, end = period_window(period, today)
        try:
            rows = (
                self.client.table("transactions")
                .select("amount, category:transaction_categories(name, color_code)")
                .eq("transaction_type", "expense")
                .gte("transaction_date", start.isoformat())
                .lte("transaction_date", end.isoformat())
                .execute()
                .data
            ) or []
        except Exception as e:
            logger.error(f"Error getting expense breakdown: {e}")
            raise
        return build_expense_breakdown(rows)

    def get_cash_flow_data(self, months: int = 6, today: date | None = None) -> list:
        today = today or date.today()
        start = month_start(today.year, today.month - (months - 1))
        try:
            rows = (
                self.client.table("transactions")
                .select("transaction_type, amount, transaction_date")
                .gte("transaction_date", start.isoformat())
                .lte("transaction_date", today.isoformat())
                .order("transaction_date")
                .execute()
                .data
            ) or []
        except Exception as e:
            logger.error(f"Error getting cash flow data: {e}")
            raise
        return build_cash_flow_series(rows, months, today)

    def get_recent_transactions(self, limit: int = 10) -> list:
        try:
            return (
                self.client.table("transactions")
                .select("*, vendor:vendors(name), category:transaction_categories(name, color_code)")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
                .data
            ) or []
        except Exception as e:
            logger.error(f"Error fetching recent transactions: {e}")
            raise

    def upload_invoice(self, content: bytes, filename: str, transaction_id, content_type: str | None = None) -> str:
        """Store an invoice scan and return its public URL."""
        key = invoice_object_key(transaction_id, filename)
        file_options = {"upsert": "true"}
        if content_type:
            file_options["content-type"] = content_type
        try:
            bucket = self.client.storage.from_(INVOICE_BUCKET)
            bucket.upload(key, content, file_options=file_options)
            return bucket.get_public_url(key)
        except Exception as e:
            logger.error(f"Error uploading invoice for transaction {transaction_id}: {e}")
            raise
