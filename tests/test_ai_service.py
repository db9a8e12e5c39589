import asyncio
import base64
import logging

import pytest

from conftest import FakeProvider
from financetracker.services.ai_service import (
    AIInsightsService,
    AIServiceError,
    Parsed,
    RawText,
    extract_json,
)


def run(coro):
    return asyncio.run(coro)


# ── extract_json ──────────────────────────────────────────────────
def test_extract_object_from_chatty_reply() -> None:
    reply = 'Sure! Here is the data:\n```json\n{"amount": 1180, "vendor_name": "Acme"}\n```\nAnything else?'
    assert extract_json(reply, "object") == Parsed({"amount": 1180, "vendor_name": "Acme"})


def test_extract_array_is_greedy() -> None:
    reply = 'Found: [{"type": "duplicate"}, {"type": "spike"}] hope that helps'
    result = extract_json(reply, "array")
    assert isinstance(result, Parsed)
    assert [a["type"] for a in result.value] == ["duplicate", "spike"]


def test_extract_falls_back_to_raw_text(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert extract_json("{not json at all}", "object") == RawText("{not json at all}")
    assert "Failed to parse JSON" in caplog.text
    assert extract_json("no brackets here", "array") == RawText("no brackets here")
    assert extract_json(None, "object") == RawText("")


def test_extract_requires_requested_kind() -> None:
    assert extract_json('[{"a": 1}]', "object") == Parsed({"a": 1})
    assert extract_json("[1, 2]", "object") == RawText("[1, 2]")
    assert extract_json('{"a": [1, 2]}', "array") == Parsed([1, 2])


# ── Insights ──────────────────────────────────────────────────────
def test_insights_embed_context_data() -> None:
    provider = FakeProvider(text="Cash flow is healthy.")
    service = AIInsightsService(provider, fast_model="flash", deep_model="pro")
    answer = run(service.generate_financial_insights("How are we doing?", {"net_cash_flow": 600}))

    assert answer == "Cash flow is healthy."
    call = provider.calls[0]
    assert call["model"] == "flash"
    assert '"net_cash_flow": 600' in call["prompt"]
    assert "Query: How are we doing?" in call["prompt"]
    assert "Indian Rupees" in call["prompt"]


def test_insights_without_context_send_prompt_verbatim() -> None:
    provider = FakeProvider(text="ok")
    run(AIInsightsService(provider).generate_financial_insights("Hello"))
    assert provider.calls[0]["prompt"] == "Hello"


def test_insights_failure_raises_user_facing_error() -> None:
    provider = FakeProvider(status="failed", error="503 upstream")
    with pytest.raises(AIServiceError, match="Failed to generate AI insights. Please try again."):
        run(AIInsightsService(provider).generate_financial_insights("Hi"))


# ── Invoice ───────────────────────────────────────────────────────
def test_invoice_image_sent_base64_inline() -> None:
    provider = FakeProvider(text='{"vendor_name": "Acme", "gst_amount": 180}')
    service = AIInsightsService(provider, deep_model="pro")
    result = run(service.analyze_invoice_image(b"\x89PNG-bytes", "image/png"))

    assert result == {"vendor_name": "Acme", "gst_amount": 180}
    part = provider.calls[0]["attachments"][0]
    assert part["mime_type"] == "image/png"
    assert base64.b64decode(part["data"]) == b"\x89PNG-bytes"
    assert provider.calls[0]["model"] == "pro"


def test_invoice_fallback_keeps_raw_text() -> None:
    provider = FakeProvider(text="I could not read this receipt.")
    result = run(AIInsightsService(provider).analyze_invoice_image(b"x", "image/jpeg"))
    assert result == {"description": "Invoice analysis completed", "extracted_text": "I could not read this receipt."}


def test_invoice_failure_raises() -> None:
    provider = FakeProvider(status="failed", error="Timeout")
    with pytest.raises(AIServiceError, match="Failed to analyze invoice"):
        run(AIInsightsService(provider).analyze_invoice_image(b"x", "image/jpeg"))


# ── Forecast ──────────────────────────────────────────────────────
def test_forecast_parsed() -> None:
    provider = FakeProvider(text='Forecast: {"forecast_period": "3months", "predicted_income": 120000}')
    result = run(AIInsightsService(provider).generate_financial_forecast([{"amount": 1}], "3months"))
    assert result["predicted_income"] == 120000
    assert "3months forecast" in provider.calls[0]["prompt"]


def test_forecast_fallback() -> None:
    provider = FakeProvider(text="Revenue should stay flat.")
    result = run(AIInsightsService(provider).generate_financial_forecast([], "6months"))
    assert result == {"forecast_period": "6months", "analysis": "Revenue should stay flat.", "confidence_level": "medium"}


def test_forecast_failure_raises() -> None:
    with pytest.raises(AIServiceError, match="Failed to generate forecast"):
        run(AIInsightsService(FakeProvider(status="failed")).generate_financial_forecast([]))


# ── Anomalies & tax tips ──────────────────────────────────────────
def test_anomalies_without_json_are_empty() -> None:
    provider = FakeProvider(text="Everything looks normal to me.")
    assert run(AIInsightsService(provider).detect_financial_anomalies([{"id": 1}])) == []


def test_anomalies_parsed_list() -> None:
    provider = FakeProvider(text='[{"type": "duplicate", "severity": "high", "transaction_id": "t1"}]')
    anomalies = run(AIInsightsService(provider).detect_financial_anomalies([{"id": "t1"}]))
    assert anomalies[0]["severity"] == "high"


def test_anomalies_provider_failure_is_empty() -> None:
    assert run(AIInsightsService(FakeProvider(status="failed")).detect_financial_anomalies([])) == []


def test_tax_tips_fallback_single_element() -> None:
    provider = FakeProvider(text="Claim input tax credit on all purchases.")
    tips = run(AIInsightsService(provider).get_tax_optimization_tips({"total_gst": 270}))
    assert tips == [{
        "category": "general",
        "tip": "Review your financial data for tax optimization opportunities",
        "potential_savings": "Varies",
        "implementation": "Claim input tax credit on all purchases.",
    }]


def test_tax_tips_parsed_and_failure() -> None:
    provider = FakeProvider(text='[{"category": "gst", "tip": "File GSTR-3B on time"}]')
    assert run(AIInsightsService(provider).get_tax_optimization_tips({}))[0]["category"] == "gst"
    assert run(AIInsightsService(FakeProvider(status="failed")).get_tax_optimization_tips({})) == []
