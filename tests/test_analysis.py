from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest import mock

import httpx
from openai import APIConnectionError

from underwriting.analysis import AnalysisClient, AnalysisError, AnalysisUnavailable, build_prompt

STATS = {
    "quotations": {"open": 2, "confirmed": 3, "declined": 1, "total": 6, "active": 5, "conversion_rate": 60.0},
    "orders": {
        "total": 3,
        "new_business": 2,
        "renewal": 1,
        "total_premium": 9000.0,
        "new_business_premium": 6000.0,
        "renewal_premium": 3000.0,
    },
    "primary_currency": "AED",
    "products": [{"product_type": "Jetski", "count": 6, "premium": 12000.0}],
}


def fake_openai(content: str | None) -> mock.Mock:
    client = mock.Mock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


class PromptTests(unittest.TestCase):
    def test_prompt_carries_statistics(self) -> None:
        prompt = build_prompt(STATS, "Marine", "2025-01-01", "2025-03-31")
        self.assertIn("professional Marine insurance analyst", prompt)
        self.assertIn("for the period 2025-01-01 to 2025-03-31", prompt)
        self.assertIn("Conversion Rate: 60.00%", prompt)
        self.assertIn("Jetski: 6 quotations, Estimated Premium: 12000.00 AED", prompt)
        self.assertIn("Recommendations for business growth", prompt)

    def test_custom_instructions_replace_default_points(self) -> None:
        prompt = build_prompt(STATS, "Liability & Financial", instructions="  Focus on brokers ")
        self.assertIn("for all time", prompt)
        self.assertIn("CUSTOM ANALYSIS INSTRUCTIONS: Focus on brokers", prompt)
        self.assertNotIn("Recommendations for business growth", prompt)


class AnalysisClientTests(unittest.TestCase):
    def test_requires_api_key(self) -> None:
        with self.assertRaises(AnalysisUnavailable):
            AnalysisClient("")

    def test_returns_analysis_text(self) -> None:
        client = fake_openai('{"analysis": "Renewals are steady."}')
        result = AnalysisClient("", model="gpt-4o-mini", client=client).analyze("prompt")
        self.assertEqual(result, "Renewals are steady.")
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})

    def test_extracts_json_from_wrapped_reply(self) -> None:
        client = fake_openai('Here you go:\n{"analysis": "Growth in cargo."}\nThanks')
        self.assertEqual(AnalysisClient("", client=client).analyze("prompt"), "Growth in cargo.")

    def test_rejects_unusable_replies(self) -> None:
        for content in (None, "no json here", '{"summary": "x"}', '{"analysis": "  "}'):
            with self.subTest(content=content):
                with self.assertRaises(AnalysisError):
                    AnalysisClient("", client=fake_openai(content)).analyze("prompt")

    def test_empty_choices_is_an_analysis_error(self) -> None:
        client = mock.Mock()
        client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with self.assertRaises(AnalysisError):
            AnalysisClient("", client=client).analyze("prompt")

    def test_wraps_upstream_errors(self) -> None:
        client = mock.Mock()
        client.chat.completions.create.side_effect = APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )
        with self.assertLogs("underwriting.analysis", level="ERROR"):
            with self.assertRaises(AnalysisError):
                AnalysisClient("", client=client).analyze("prompt")


if __name__ == "__main__":
    unittest.main()
