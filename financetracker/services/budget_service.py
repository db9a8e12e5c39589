"""
budget_service.py — Budgets & Alerts
Utilization, remaining amount and health classification per budget,
portfolio and department roll-ups, and priority-ordered budget alerts.
Derived figures are recomputed on every call and never written back.
"""

import logging
from datetime import date

from supabase import Client

from financetracker.config import DEFAULT_ALERT_THRESHOLD
from financetracker.formatting import format_number_en_in, parse_amount, RUPEE
from financetracker.services.transaction_service import month_start, month_key

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"
PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}
EXPIRY_WINDOW_DAYS = 7
HIGH_PRIORITY_UTILIZATION = 90.0

HEALTH_OVERRUN = "overrun"
HEALTH_AT_RISK = "at_risk"
HEALTH_ON_TRACK = "on_track"


# ── Derived figures ───────────────────────────────────────────────
def utilization(allocated, spent) -> float:
    """spent / allocated as a percentage; 0 when nothing is allocated."""
    allocated = parse_amount(allocated)
    return parse_amount(spent) / allocated * 100 if allocated > 0 else 0.0


def alert_threshold(budget: dict) -> float:
    return parse_amount(budget.get("alert_threshold")) or DEFAULT_ALERT_THRESHOLD


def calculate_days_remaining(period_end, today: date | None = None) -> int | None:
    """Whole days from today until the period end; None without a readable end date."""
    if not period_end:
        return None
    if not isinstance(period_end, date):
        try:
            period_end = date.fromisoformat(str(period_end)[:10])
        except ValueError:
            logger.warning(f"Ignoring unreadable budget period_end {period_end!r}")
            return None
    return (period_end - (today or date.today())).days


def classify(utilization_pct: float, threshold: float) -> str:
    if utilization_pct >= 100:
        return HEALTH_OVERRUN
    if utilization_pct >= threshold:
        return HEALTH_AT_RISK
    return HEALTH_ON_TRACK


def enrich_budget(budget: dict, today: date | None = None) -> dict:
    allocated = parse_amount(budget.get("allocated_amount"))
    spent = parse_amount(budget.get("spent_amount"))
    pct = utilization(allocated, spent)
    return {
        **budget,
        "utilization_percentage": pct,
        "remaining_amount": allocated - spent,
        "days_remaining": calculate_days_remaining(budget.get("period_end"), today),
        "health": classify(pct, alert_threshold(budget)),
    }


# ── Roll-ups ──────────────────────────────────────────────────────
def summarize_performance(budgets: list[dict]) -> dict:
    summary = {
        "total_budgets": len(budgets),
        "total_allocated": 0.0,
        "total_spent": 0.0,
        "total_remaining": 0.0,
        "overrun_count": 0,
        "on_track_count": 0,
        "at_risk_count": 0,
    }
    for b in budgets:
        allocated = parse_amount(b.get("allocated_amount"))
        spent = parse_amount(b.get("spent_amount"))
        summary["total_allocated"] += allocated
        summary["total_spent"] += spent
        summary["total_remaining"] += allocated - spent
        health = classify(utilization(allocated, spent), alert_threshold(b))
        summary[f"{health}_count"] += 1

    summary["average_utilization"] = utilization(summary["total_allocated"], summary["total_spent"])
    return summary


def department_breakdown(budgets: list[dict]) -> list[dict]:
    departments: dict[str, dict] = {}
    for b in budgets:
        name = b.get("department") or UNASSIGNED
        dept = departments.setdefault(name, {"department": name, "allocated": 0.0, "spent": 0.0, "budgets_count": 0})
        dept["allocated"] += parse_amount(b.get("allocated_amount"))
        dept["spent"] += parse_amount(b.get("spent_amount"))
        dept["budgets_count"] += 1

    return [
        {**d, "utilization": utilization(d["allocated"], d["spent"]), "remaining": d["allocated"] - d["spent"]}
        for d in departments.values()
    ]


def build_budget_alerts(budgets: list[dict], today: date | None = None) -> list[dict]:
    """
    Alerts for a set of budgets, most urgent first.

    Each budget yields at most one of overrun/threshold, plus an independent
    expiring alert when it ends within the next week. Equal priorities keep
    the order in which they were produced.
    """
    alerts = []
    for b in budgets:
        allocated = parse_amount(b.get("allocated_amount"))
        spent = parse_amount(b.get("spent_amount"))
        pct = utilization(allocated, spent)

        if pct >= 100:
            alerts.append({
                "type": "overrun",
                "priority": "critical",
                "budget_id": b.get("id"),
                "budget_name": b.get("name"),
                "message": f"Budget exceeded by {RUPEE}{format_number_en_in(spent - allocated)}",
                "utilization": pct,
            })
        elif pct >= alert_threshold(b):
            alerts.append({
                "type": "threshold",
                "priority": "high" if pct >= HIGH_PRIORITY_UTILIZATION else "medium",
                "budget_id": b.get("id"),
                "budget_name": b.get("name"),
                "message": f"Budget utilization at {pct:.1f}%",
                "utilization": pct,
            })

        days = calculate_days_remaining(b.get("period_end"), today)
        if days is not None and 0 < days <= EXPIRY_WINDOW_DAYS:
            alerts.append({
                "type": "expiring",
                "priority": "medium",
                "budget_id": b.get("id"),
                "budget_name": b.get("name"),
                "message": f"Budget expires in {days} day{'s' if days != 1 else ''}",
                "days_remaining": days,
            })

    # sorted() is stable, so ties stay in encounter order
    return sorted(alerts, key=lambda a: PRIORITY_RANK[a["priority"]])


def build_budget_trends(budgets: list[dict]) -> list[dict]:
    trends: dict[str, dict] = {}
    for b in budgets:
        key = month_key(b.get("period_start"))
        t = trends.setdefault(key, {"month": key, "total_allocated": 0.0, "total_spent": 0.0, "budget_count": 0})
        t["total_allocated"] += parse_amount(b.get("allocated_amount"))
        t["total_spent"] += parse_amount(b.get("spent_amount"))
        t["budget_count"] += 1

    return sorted(
        ({**t, "utilization": utilization(t["total_allocated"], t["total_spent"])} for t in trends.values()),
        key=lambda t: t["month"],
    )


# ── Service ───────────────────────────────────────────────────────
class BudgetService:
    """Budget reads, writes and roll-ups against a Supabase client."""

    def __init__(self, client: Client):
        self.client = client

    def _active_budgets(self, columns: str = "*") -> list:
        return self.client.table("budgets").select(columns).eq("status", "active").execute().data or []

    def get_budgets(self, filters: dict | None = None, today: date | None = None) -> list:
        filters = filters or {}
        today = today or date.today()
        try:
            query = (
                self.client.table("budgets")
                .select("*, category:transaction_categories(name, color_code)")
                .order("created_at", desc=True)
            )
            if filters.get("department"):
                query = query.eq("department", filters["department"])
            if filters.get("status"):
                query = query.eq("status", filters["status"])

            period = filters.get("period")
            if period == "current":
                query = query.lte("period_start", today.isoformat()).gte("period_end", today.isoformat())
            elif period == "upcoming":
                query = query.gt("period_start", today.isoformat())
            elif period == "past":
                query = query.lt("period_end", today.isoformat())

            rows = query.execute().data or []
        except Exception as e:
            logger.error(f"Error fetching budgets: {e}")
            raise
        return [enrich_budget(b, today) for b in rows]

    def get_budget(self, budget_id) -> dict | None:
        try:
            rows = self.client.table("budgets").select("*").eq("id", budget_id).execute().data
            return rows[0] if rows else None
        except Exception as e:
            logger.error(f"Error fetching budget {budget_id}: {e}")
            raise

    def create_budget(self, data: dict) -> dict:
        try:
            rows = self.client.table("budgets").insert(data).execute().data
            return rows[0] if rows else {}
        except Exception as e:
            logger.error(f"Error creating budget: {e}")
            raise

    def update_budget(self, budget_id, updates: dict) -> dict:
        try:
            rows = self.client.table("budgets").update(updates).eq("id", budget_id).execute().data
            return rows[0] if rows else {}
        except Exception as e:
            logger.error(f"Error updating budget {budget_id}: {e}")
            raise

    def delete_budget(self, budget_id) -> bool:
        try:
            self.client.table("budgets").delete().eq("id", budget_id).execute()
            return True
        except Exception as e:
            logger.error(f"Error deleting budget {budget_id}: {e}")
            raise

    def get_budget_performance_summary(self) -> dict:
        try:
            budgets = self._active_budgets()
        except Exception as e:
            logger.error(f"Error getting budget performance summary: {e}")
            raise
        return summarize_performance(budgets)

    def get_department_budget_breakdown(self) -> list:
        try:
            budgets = self._active_budgets("department, allocated_amount, spent_amount")
        except Exception as e:
            logger.error(f"Error getting department budget breakdown: {e}")
            raise
        return department_breakdown(budgets)

    def get_budget_alerts(self, today: date | None = None) -> list:
        try:
            budgets = self._active_budgets()
        except Exception as e:
            logger.error(f"Error getting budget alerts: {e}")
            raise
        return build_budget_alerts(budgets, today)

    def get_budget_trends(self, months: int = 6, today: date | None = None) -> list:
        today = today or date.today()
        start = month_start(today.year, today.month - (months - 1))
        try:
            budgets = (
                self.client.table("budgets")
                .select("name, department, allocated_amount, spent_amount, period_start, period_end")
                .gte("period_start", start.isoformat())
                .lte("period_end", today.isoformat())
                .order("period_start")
                .execute()
                .data
            ) or []
        except Exception as e:
            logger.error(f"Error getting budget trends: {e}")
            raise
        return build_budget_trends(budgets)
