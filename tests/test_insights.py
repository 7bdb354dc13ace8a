import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

from ta_monitor.config import Settings
from ta_monitor.insights import (
    EMPTY_RESPONSE_MESSAGE,
    ERROR_MESSAGE,
    MISSING_KEY_MESSAGE,
    NO_RECORDS_MESSAGE,
    SYSTEM_INSTRUCTION,
    build_prompt,
    generate_insights,
    split_insight_lines,
)
from ta_monitor.mapper import parse_records
from ta_monitor.stats import category_totals, compute_stats, top_divisions

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def text_response(*texts: str) -> SimpleNamespace:
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text) for text in texts])


class InsightTests(unittest.TestCase):
    def setUp(self):
        self.records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))
        self.settings = Settings(api_key="test-key", model="test-model", max_tokens=256)

    def test_prompt_carries_only_aggregates(self):
        prompt = build_prompt(compute_stats(self.records), top_divisions(self.records), category_totals(self.records))

        self.assertIn("Total TA Interventions: 3", prompt)
        self.assertIn("Resolution Rate: 60.0%", prompt)
        self.assertIn('"name": "Central School", "count": 2', prompt)
        self.assertIn('"name": "Access", "count": 3', prompt)
        self.assertNotIn("Maria Cruz", prompt)
        self.assertNotIn("Teacher shortage", prompt)

    def test_lines_are_split_and_blank_lines_dropped(self):
        client = mock.Mock()
        client.messages.create.return_value = text_response("1. Support quality is uneven.\n\n2. Close gaps in access.\n")

        lines = generate_insights(self.records, settings=self.settings, client=client)

        self.assertEqual(lines, ["1. Support quality is uneven.", "2. Close gaps in access."])
        kwargs = client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["max_tokens"], 256)
        self.assertEqual(kwargs["system"], SYSTEM_INSTRUCTION)
        self.assertEqual(kwargs["messages"][0]["role"], "user")

    def test_non_text_blocks_are_ignored(self):
        client = mock.Mock()
        client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="thinking", text="hidden"), SimpleNamespace(type="text", text="Visible")]
        )
        self.assertEqual(generate_insights(self.records, settings=self.settings, client=client), ["Visible"])

    def test_empty_response(self):
        client = mock.Mock()
        client.messages.create.return_value = text_response("   \n")
        self.assertEqual(generate_insights(self.records, settings=self.settings, client=client), [EMPTY_RESPONSE_MESSAGE])

    def test_client_failure_becomes_fixed_message(self):
        client = mock.Mock()
        client.messages.create.side_effect = RuntimeError("connection reset")

        with self.assertLogs("ta_monitor.insights", level="WARNING"):
            lines = generate_insights(self.records, settings=self.settings, client=client)

        self.assertEqual(lines, [ERROR_MESSAGE])

    def test_missing_key_skips_the_call(self):
        with mock.patch("ta_monitor.insights.anthropic.Anthropic") as factory:
            lines = generate_insights(self.records, settings=Settings(api_key=None))
        self.assertEqual(lines, [MISSING_KEY_MESSAGE])
        factory.assert_not_called()

    def test_no_records_skips_the_call(self):
        client = mock.Mock()
        self.assertEqual(generate_insights([], settings=self.settings, client=client), [NO_RECORDS_MESSAGE])
        client.messages.create.assert_not_called()

    def test_client_built_from_settings(self):
        with mock.patch("ta_monitor.insights.anthropic.Anthropic") as factory:
            factory.return_value.messages.create.return_value = text_response("Insight")
            lines = generate_insights(self.records, settings=self.settings)
        self.assertEqual(lines, ["Insight"])
        self.assertEqual(factory.call_args.kwargs["api_key"], "test-key")

    def test_split_insight_lines_handles_none(self):
        self.assertEqual(split_insight_lines(None), [])


if __name__ == "__main__":
    unittest.main()
