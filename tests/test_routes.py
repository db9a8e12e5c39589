import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from conftest import FakeProvider, FakeSupabase
from financetracker.auth import AuthContext, get_auth_context
from financetracker.main import app
from financetracker.models.user_profile import UserProfile
from financetracker.services.ai_service import AIInsightsService, get_ai_service


@pytest.fixture
def db():
    return FakeSupabase({
        "transactions": [],
        "budgets": [],
        "user_profiles": [],
    })


@pytest.fixture
def login(db):
    """Sign the test client in as a user with the given profile role."""
    def _login(role="accountant", client=db):
        ctx = AuthContext(
            user_id="user_123",
            email="asha@example.com",
            client=client,
            profile=UserProfile(id="user_123", email="asha@example.com", role=role),
        )
        app.dependency_overrides[get_auth_context] = lambda: ctx
        return ctx
    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health_check_is_public(client) -> None:
    resp = client.get("/api/v1/health-check")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_missing_bearer_token_is_401(client) -> None:
    resp = client.get("/api/v1/auth/me")
    assert resp.status_code == 401


def test_me_reports_role_and_menu(client, login) -> None:
    login("viewer")
    body = client.get("/api/v1/auth/me").json()
    assert body["role"] == "viewer"
    assert body["profile_ready"] is True
    assert "manage_transactions" not in body["capabilities"]
    assert [m["href"] for m in body["menu"]] == [
        "/dashboard",
        "/dashboard/budget-analytics",
        "/dashboard/cash-flow",
        "/dashboard/ai-insights",
    ]


def test_viewer_cannot_create_transactions(client, login, db) -> None:
    login("viewer")
    resp = client.post("/api/v1/transactions", json={"transaction_type": "expense", "amount": 100, "transaction_date": "2026-10-19"})
    assert resp.status_code == 403
    assert db.tables["transactions"] == []


def test_accountant_creates_transaction(client, login, db) -> None:
    login("accountant")
    resp = client.post("/api/v1/transactions", json={"transaction_type": "expense", "amount": 100, "transaction_date": "2026-10-19"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "success"
    assert db.tables["transactions"][0]["amount"] == 100


def test_update_unknown_transaction_is_404(client, login) -> None:
    login("admin")
    resp = client.patch("/api/v1/transactions/nope", json={"amount": 5})
    assert resp.status_code == 404


def test_session_without_database_client_is_503(client, login) -> None:
    login("accountant", client=None)
    resp = client.get("/api/v1/transactions/summary")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Your session is still being set up. Please try again."


def test_summary_route(client, login, db) -> None:
    login("viewer")
    resp = client.get("/api/v1/transactions/summary", params={"period": "current_year"})
    assert resp.status_code == 200
    assert resp.json()["transaction_count"] == 0


def test_summary_rejects_unknown_period(client, login) -> None:
    login("viewer")
    assert client.get("/api/v1/transactions/summary", params={"period": "forever"}).status_code == 422


def test_cash_flow_route_always_returns_requested_months(client, login) -> None:
    login("viewer")
    resp = client.get("/api/v1/transactions/cash-flow", params={"months": 3})
    assert resp.status_code == 200
    assert len(resp.json()) == 3


def test_budget_with_inverted_period_is_422(client, login) -> None:
    login("accountant")
    resp = client.post("/api/v1/budgets", json={
        "name": "Q4 Marketing",
        "allocated_amount": 50000,
        "period_start": "2026-12-31",
        "period_end": "2026-10-01",
    })
    assert resp.status_code == 422


def test_executive_dashboard_survives_a_failed_section(client, login, db) -> None:
    login("viewer")
    db.errors["budgets"] = RuntimeError("budgets table unavailable")

    resp = client.get("/api/v1/dashboard/executive")
    assert resp.status_code == 200
    body = resp.json()

    assert body["budget_summary"] is None
    assert body["budget_alerts"] is None
    assert body["financial_summary"]["net_cash_flow"] == 0
    assert len(body["cash_flow"]) == 6
    assert body["expense_breakdown"] == []
    assert {e["section"] for e in body["errors"]} == {"budget_summary", "budget_alerts"}


def test_executive_dashboard_caps_alerts(client, login, db) -> None:
    login("viewer")
    db.tables["budgets"] = [
        {"id": f"b{i}", "name": f"B{i}", "allocated_amount": 100, "spent_amount": 150, "status": "active"}
        for i in range(8)
    ]
    body = client.get("/api/v1/dashboard/executive").json()
    assert len(body["budget_alerts"]) == 5
    assert body["errors"] == []


def test_ai_insights_route(client, login) -> None:
    login("viewer")
    provider = FakeProvider(text="Spend less on travel.")
    app.dependency_overrides[get_ai_service] = lambda: AIInsightsService(provider)

    resp = client.post("/api/v1/ai/insights", json={"query": "Where can I save?"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["response"] == "Spend less on travel."
    assert body["query"] == "Where can I save?"
    assert "financial_summary" in provider.calls[0]["prompt"]


def test_ai_provider_failure_is_502(client, login) -> None:
    login("viewer")
    app.dependency_overrides[get_ai_service] = lambda: AIInsightsService(FakeProvider(status="failed"))
    resp = client.post("/api/v1/ai/insights", json={"query": "Hi"})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to generate AI insights. Please try again."


def test_invoice_analysis_rejects_non_images(client, login) -> None:
    login("viewer")
    app.dependency_overrides[get_ai_service] = lambda: AIInsightsService(FakeProvider(text="{}"))
    resp = client.post("/api/v1/ai/invoice", files={"file": ("bill.pdf", b"%PDF", "application/pdf")})
    assert resp.status_code == 415


def test_tax_tips_need_tax_analytics(client, login) -> None:
    login("viewer")
    app.dependency_overrides[get_ai_service] = lambda: AIInsightsService(FakeProvider(text="[]"))
    assert client.post("/api/v1/ai/tax-tips").status_code == 403


def test_database_handlers_do_not_block_the_event_loop() -> None:
    # plain `def` endpoints run in FastAPI's threadpool
    blocking = [
        route.path
        for route in app.routes
        if isinstance(route, APIRoute)
        and route.path.startswith(("/api/v1/transactions", "/api/v1/budgets"))
        and not route.path.endswith("/invoice")
        and inspect.iscoroutinefunction(route.endpoint)
    ]
    assert blocking == []


def test_invoice_upload_route(client, login, db) -> None:
    login("accountant")
    db.tables["transactions"] = [{"id": "tx-1", "transaction_type": "expense", "amount": 10}]
    resp = client.post("/api/v1/transactions/tx-1/invoice", files={"file": ("bill.pdf", b"%PDF", "application/pdf")})
    assert resp.status_code == 200
    assert resp.json()["data"]["url"].endswith(".pdf")
    assert db.storage.uploads[0]["path"].startswith("tx-1/")
