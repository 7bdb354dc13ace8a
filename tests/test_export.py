from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import pandas as pd

from ta_monitor.export import load_notes_frame, matatag_frame, signatory_frame, write_workbook
from ta_monitor.source import records_from_text

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class ExportTests(unittest.TestCase):
    def setUp(self):
        text = (FIXTURES / "ftad_export.csv").read_text(encoding="utf-8")
        self.result = records_from_text(text, source="ftad_export.csv")

    def test_matatag_frame_is_one_row_per_item(self):
        frame = matatag_frame(self.result.records)
        self.assertEqual(len(frame), 5)
        self.assertEqual(sorted(frame["category"].unique()), ["Access", "Quality"])

    def test_matatag_frame_for_no_items_keeps_columns(self):
        self.assertIn("status", matatag_frame([]).columns)

    def test_signatory_roles(self):
        frame = signatory_frame(self.result.records)
        self.assertEqual(frame["role"].tolist(), ["Receiver"])
        self.assertEqual(frame["name"].tolist(), ["Maria Cruz"])

    def test_load_notes_list_drop_reasons(self):
        notes = dict(zip(load_notes_frame(self.result)["field"], load_notes_frame(self.result)["value"]))
        self.assertEqual(notes["header_row"], 3)
        self.assertEqual(notes["rows_dropped"], 4)
        self.assertEqual(notes["dropped_bullet_artifact"], 1)

    def test_write_workbook_round_trips_through_pandas(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "nested" / "ftad.xlsx"
            counts = write_workbook(self.result, output)

            self.assertEqual(counts["Records"], 3)
            self.assertEqual(counts["Targets"], 2)
            targets = pd.read_excel(output, sheet_name="Targets", engine="openpyxl")
            self.assertEqual(targets["objective"].tolist()[1], 'Build "reading corner"')


if __name__ == "__main__":
    unittest.main()
