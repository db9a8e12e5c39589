"""
ai_service.py — Generative-AI Financial Commentary
Builds prompts around the company's financial data, sends them to the
configured provider and recovers JSON from the free-text reply.

Nothing in a "structured" result is guaranteed: the model is asked for a
shape, not held to one. Callers must treat every field as optional.
"""

import base64
import json
import logging
import re
from dataclasses import dataclass

from financetracker.config import GEMINI_API_KEY, GEMINI_FLASH_MODEL, GEMINI_PRO_MODEL
from financetracker.providers.base import BaseProvider
from financetracker.providers.gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)

# Greedy on purpose: first opening bracket to the last closing one
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)


class AIServiceError(Exception):
    """A provider call failed; the message is safe to show to users."""


# ── Reply parsing ─────────────────────────────────────────────────
@dataclass(frozen=True)
class Parsed:
    value: dict | list


@dataclass(frozen=True)
class RawText:
    text: str


def extract_json(text: str | None, kind: str = "object") -> Parsed | RawText:
    """
    Pull the first `{...}` (kind="object") or `[...]` (kind="array") span out
    of a model reply and decode it. Anything that does not decode to the
    requested kind comes back as RawText.
    """
    text = text or ""
    pattern, expected = (_ARRAY_RE, list) if kind == "array" else (_OBJECT_RE, dict)
    match = pattern.search(text)
    if match:
        try:
            value = json.loads(match.group(0))
            if isinstance(value, expected):
                return Parsed(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse JSON from AI response: {e}")
    return RawText(text)


def _dump(data) -> str:
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


# ── Service ───────────────────────────────────────────────────────
class AIInsightsService:
    """Financial insights, forecasts, anomaly checks and invoice reading."""

    def __init__(self, provider: BaseProvider, fast_model: str = GEMINI_FLASH_MODEL, deep_model: str = GEMINI_PRO_MODEL):
        self.provider = provider
        self.fast_model = fast_model
        self.deep_model = deep_model

    async def _complete(self, prompt: str, model: str, failure_message: str, attachments: list[dict] | None = None) -> str:
        result = await self.provider.generate(prompt, attachments=attachments, model=model)
        if result.get("status") != "success":
            logger.error(f"{self.provider.name} call failed: {result.get('error')}")
            raise AIServiceError(failure_message)
        return result.get("text") or ""

    async def generate_financial_insights(self, prompt: str, financial_data=None) -> str:
        """Free-text answer to a user query, optionally grounded in financial data."""
        context_prompt = prompt
        if financial_data:
            context_prompt = (
                f"Based on the following financial data: {_dump(financial_data)}\n\n"
                f"Query: {prompt}\n\n"
                "Please provide insights in Indian Rupees (₹) format and consider Indian business context.\n"
                "Keep the response concise and actionable."
            )
        return await self._complete(
            context_prompt, self.fast_model,
            "Failed to generate AI insights. Please try again.",
        )

    async def analyze_invoice_image(self, content: bytes, mime_type: str) -> dict:
        """Extract vendor, amount, GST and friends from an invoice or receipt image."""
        image_part = {
            "mime_type": mime_type,
            "data": base64.b64encode(content).decode("ascii"),
        }
        prompt = (
            "Analyze this invoice/receipt image and extract the following information in JSON format:\n"
            "{\n"
            '  "vendor_name": "string",\n'
            '  "amount": "number (without currency symbol)",\n'
            '  "invoice_number": "string",\n'
            '  "date": "YYYY-MM-DD format",\n'
            '  "gst_amount": "number (if mentioned)",\n'
            '  "description": "string (brief description of items/services)",\n'
            '  "payment_mode": "string (if mentioned)",\n'
            '  "category": "string (suggested category like office supplies, travel, etc.)"\n'
            "}\n\n"
            "Focus on Indian invoice formats and GST details. If any field is not found, use null."
        )
        text = await self._complete(
            prompt, self.deep_model,
            "Failed to analyze invoice. Please try again.",
            attachments=[image_part],
        )
        parsed = extract_json(text, "object")
        if isinstance(parsed, Parsed):
            return parsed.value
        return {"description": "Invoice analysis completed", "extracted_text": parsed.text}

    async def generate_financial_forecast(self, historical_data, period: str = "6months") -> dict:
        prompt = (
            f"Analyze the following financial transaction data and provide a {period} forecast:\n"
            f"{_dump(historical_data)}\n\n"
            "Please provide a forecast in the following JSON format:\n"
            "{\n"
            f'  "forecast_period": "{period}",\n'
            '  "predicted_income": number,\n'
            '  "predicted_expenses": number,\n'
            '  "predicted_cash_flow": number,\n'
            '  "key_trends": ["trend1", "trend2", "trend3"],\n'
            '  "recommendations": ["rec1", "rec2", "rec3"],\n'
            '  "risk_factors": ["risk1", "risk2"],\n'
            '  "confidence_level": "high/medium/low"\n'
            "}\n\n"
            "Use Indian Rupees context and consider seasonal business patterns in India."
        )
        text = await self._complete(
            prompt, self.deep_model,
            "Failed to generate forecast. Please try again.",
        )
        parsed = extract_json(text, "object")
        if isinstance(parsed, Parsed):
            return parsed.value
        return {"forecast_period": period, "analysis": parsed.text, "confidence_level": "medium"}

    async def detect_financial_anomalies(self, transactions: list) -> list:
        """Model-flagged anomalies; [] whenever the reply or the call is unusable."""
        prompt = (
            "Analyze these financial transactions for anomalies or unusual patterns:\n"
            f"{_dump(transactions)}\n\n"
            "Look for:\n"
            "1. Unusual spending spikes\n"
            "2. Duplicate transactions\n"
            "3. Irregular payment patterns\n"
            "4. Budget threshold breaches\n"
            "5. Unusual vendor activity\n\n"
            "Return results as JSON array:\n"
            "[\n"
            "  {\n"
            '    "type": "anomaly_type",\n'
            '    "severity": "high/medium/low",\n'
            '    "description": "description of anomaly",\n'
            '    "transaction_id": "id if applicable",\n'
            '    "suggestion": "recommended action"\n'
            "  }\n"
            "]"
        )
        try:
            text = await self._complete(prompt, self.fast_model, "Failed to detect anomalies.")
        except AIServiceError:
            return []
        parsed = extract_json(text, "array")
        return parsed.value if isinstance(parsed, Parsed) else []

    async def get_tax_optimization_tips(self, financial_summary) -> list:
        prompt = (
            "Based on this financial summary, provide Indian tax optimization suggestions:\n"
            f"{_dump(financial_summary)}\n\n"
            "Focus on:\n"
            "1. GST optimization\n"
            "2. TDS savings\n"
            "3. Business expense deductions\n"
            "4. Investment opportunities\n"
            "5. Compliance improvements\n\n"
            "Return as JSON array of actionable tips:\n"
            "[\n"
            "  {\n"
            '    "category": "gst/tds/deductions/investment",\n'
            '    "tip": "specific actionable advice",\n'
            '    "potential_savings": "estimated savings amount in INR",\n'
            '    "implementation": "how to implement this tip"\n'
            "  }\n"
            "]\n\n"
            "Consider current Indian tax laws and rates."
        )
        try:
            text = await self._complete(prompt, self.deep_model, "Failed to get tax optimization tips.")
        except AIServiceError:
            return []
        parsed = extract_json(text, "array")
        if isinstance(parsed, Parsed):
            return parsed.value
        return [{
            "category": "general",
            "tip": "Review your financial data for tax optimization opportunities",
            "potential_savings": "Varies",
            "implementation": parsed.text,
        }]


_service_instance = None


def get_ai_service() -> AIInsightsService:
    global _service_instance
    if _service_instance is None:
        _service_instance = AIInsightsService(GeminiProvider(api_key=GEMINI_API_KEY))
    return _service_instance
