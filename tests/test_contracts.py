from __future__ import annotations

import re
import unittest

from ta_monitor import __version__
from ta_monitor.contracts import (
    CONTRACT_VERSIONS,
    build_contract,
    build_envelope,
    build_run_summary,
    utc_now_iso,
)


class ContractTests(unittest.TestCase):
    def test_every_json_command_has_a_versioned_contract(self):
        for name in ["ta_monitor.summary", "ta_monitor.records", "ta_monitor.insights", "ta_monitor.accounts"]:
            contract = build_contract(name)
            self.assertEqual(contract["name"], name)
            self.assertEqual(contract["version"], CONTRACT_VERSIONS[name])

    def test_unknown_contract_raises(self):
        with self.assertRaises(KeyError):
            build_contract("ta_monitor.unknown")

    def test_envelope_wraps_body(self):
        envelope = build_envelope("ta_monitor.accounts", accounts=[], count=0)
        self.assertEqual(envelope["contract"]["name"], "ta_monitor.accounts")
        self.assertEqual(envelope["schema_version"], envelope["contract"]["version"])
        self.assertEqual(envelope["tool_version"], __version__)
        self.assertEqual(envelope["count"], 0)

    def test_run_summary_shape(self):
        summary = build_run_summary(
            command="summary",
            source="tests/fixtures/ftad_export.csv",
            metrics={"records": 3},
            warnings=["Dropped 4 malformed row(s).", None],
        )
        self.assertEqual(summary["tool"], "ta-monitor")
        self.assertEqual(summary["status"], "ok")
        self.assertIsNone(summary["output_file"])
        self.assertEqual(summary["warnings"], ["Dropped 4 malformed row(s)."])
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"records": 3})

    def test_timestamp_is_utc_seconds(self):
        self.assertRegex(utc_now_iso(), re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$"))


if __name__ == "__main__":
    unittest.main()
