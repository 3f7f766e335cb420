from __future__ import annotations

import json
import logging
from typing import Any

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)


class AnalysisUnavailable(RuntimeError):
    """No API key configured."""


class AnalysisError(RuntimeError):
    """The model call failed or returned something unusable."""


DEFAULT_POINTS = """Then analyze:
1. Quotation performance and conversion trends
2. New vs Renewal business comparison
3. Premium distribution between new and renewal business
4. Key product types and their performance
5. Recommendations for business growth"""


def build_prompt(
    stats: dict[str, Any],
    department_name: str,
    start_date: str | None = None,
    end_date: str | None = None,
    instructions: str | None = None,
) -> str:
    period = f"for the period {start_date} to {end_date}" if start_date and end_date else "for all time"
    q = stats["quotations"]
    o = stats["orders"]
    ccy = stats["primary_currency"]
    product_lines = "\n".join(
        f"{p['product_type']}: {p['count']} quotations, Estimated Premium: {p['premium']:.2f} {ccy}"
        for p in stats["products"]
    ) or "No quotations in period"

    if instructions and instructions.strip():
        points = (
            f"CUSTOM ANALYSIS INSTRUCTIONS: {instructions.strip()}\n\n"
            "Please focus your analysis according to these specific instructions "
            "while still using the data provided above."
        )
    else:
        points = DEFAULT_POINTS

    return f"""You are a professional {department_name} insurance analyst. Analyze ONLY the following data {period} and provide detailed insights in clear, professional language without using any markdown formatting or special characters:

IMPORTANT - Use EXACTLY these statistics in your analysis - do not modify, recalculate, or invent any numbers. The data provided is ALREADY filtered for the requested date range:

1. Quotation Statistics:
- Total Open Quotations: {q['open']}
- Total Confirmed Quotations: {q['confirmed']}
- Total Declined Quotations: {q['declined']}
- Total Quotations in Period: {q['total']}
- Active Quotations (excluding declined): {q['active']}
- Conversion Rate: {q['conversion_rate']:.2f}%

2. Business Performance:
- New Business Orders: {o['new_business']}
- Renewal Orders: {o['renewal']}
- New Business Premium: {o['new_business_premium']:.2f} {ccy}
- Renewal Premium: {o['renewal_premium']:.2f} {ccy}
- Total Premium: {o['total_premium']:.2f} {ccy}
- Primary Currency: {ccy}

3. Product Type Performance:
{product_lines}

{points}

Your analysis should be based SOLELY on the actual numbers provided above, not on general industry knowledge or assumptions.

Format the response as a JSON object with a single 'analysis' field containing the analysis text."""


def _parse_reply(raw: str | None) -> str:
    if not raw:
        raise AnalysisError("empty response from model")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        start, end = raw.find("{"), raw.rfind("}")
        if start == -1 or end <= start:
            raise AnalysisError("model response was not JSON")
        try:
            data = json.loads(raw[start:end + 1])
        except json.JSONDecodeError as exc:
            raise AnalysisError("model response was not JSON") from exc
    analysis = data.get("analysis") if isinstance(data, dict) else None
    if not isinstance(analysis, str) or not analysis.strip():
        raise AnalysisError("model response had no 'analysis' field")
    return analysis.strip()


class AnalysisClient:
    def __init__(self, api_key: str, model: str = "gpt-4o", client: Any | None = None) -> None:
        if client is None and not api_key:
            raise AnalysisUnavailable("OPENAI_API_KEY is not configured")
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def analyze(self, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            logger.error("Analysis request failed: %s", exc)
            raise AnalysisError(str(exc)) from exc
        if not response.choices:
            raise AnalysisError("model returned no choices")
        return _parse_reply(response.choices[0].message.content)
