import unittest
from pathlib import Path

from ta_monitor.mapper import parse_records
from ta_monitor.models import FTADStats, MatatagItem, Target, TARecord
from ta_monitor.stats import (
    ALL,
    category_totals,
    compute_stats,
    filter_options,
    filter_records,
    is_resolved,
    record_at,
    record_summary_frame,
    status_tone,
    top_divisions,
)

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def record(rid: str, office: str = "SDO", division: str = "School", **fields) -> TARecord:
    return TARecord(id=rid, office=office, division_school=division, **fields)


class ResolutionTests(unittest.TestCase):
    def test_markers_are_case_insensitive_substrings(self):
        for status in ["Met", "COMPLETE", "done already", "Yes", "completed"]:
            self.assertTrue(is_resolved(status), status)
        for status in ["", "Pending", "Ongoing", "In progress"]:
            self.assertFalse(is_resolved(status), status)

    def test_negated_statuses_are_not_resolved(self):
        for status in ["Not Met", "NOT MET", "unmet", "Not done", "Not complete", "Incomplete"]:
            self.assertFalse(is_resolved(status), status)

    def test_status_tone(self):
        self.assertEqual(status_tone(""), "empty")
        self.assertEqual(status_tone("Done"), "resolved")
        self.assertEqual(status_tone("Not Met"), "blocked")
        self.assertEqual(status_tone("Open issue"), "blocked")
        self.assertEqual(status_tone("No"), "blocked")
        self.assertEqual(status_tone("Ongoing"), "pending")

    def test_no_only_blocks_as_a_whole_word(self):
        for status in ["Unknown", "November review", "annotated"]:
            self.assertEqual(status_tone(status), "pending", status)


class ComputeStatsTests(unittest.TestCase):
    def test_empty_input_gives_zeroed_stats(self):
        self.assertEqual(compute_stats([]), FTADStats(0, 0.0, 0, 0))

    def test_three_not_met_of_ten_gives_seventy(self):
        not_met = [MatatagItem("Not Met")] * 3
        records = [
            record("row-1", access=not_met + [MatatagItem("Met"), MatatagItem("met")]),
            record(
                "row-2",
                quality=[MatatagItem("MET"), MatatagItem("Met")],
                equity=[MatatagItem("Complete"), MatatagItem("done")],
                enabling=[MatatagItem("YES")],
            ),
        ]
        self.assertAlmostEqual(compute_stats(records).resolution_rate, 70.0)

    def test_pending_items_also_lower_the_rate(self):
        records = [record("row-1", access=[MatatagItem("Met")], resilience=[MatatagItem("Pending")])]
        self.assertAlmostEqual(compute_stats(records).resolution_rate, 50.0)

    def test_no_matatag_items_gives_zero_rate(self):
        self.assertEqual(compute_stats([record("row-1")]).resolution_rate, 0.0)

    def test_entities_are_trimmed_before_counting(self):
        records = [
            record("row-1", division="Central School"),
            record("row-2", division=" Central School "),
            record("row-3", division="   "),
        ]
        self.assertEqual(compute_stats(records).unique_entities, 1)

    def test_objectives_count_only_non_empty(self):
        records = [record("row-1", targets=[Target("Read"), Target("")]), record("row-2", targets=[Target("Write")])]
        self.assertEqual(compute_stats(records).total_objectives, 2)

    def test_fixture_figures(self):
        records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))
        stats = compute_stats(records)

        self.assertEqual(stats.total_interventions, 3)
        self.assertAlmostEqual(stats.resolution_rate, 60.0)
        self.assertEqual(stats.total_objectives, 2)
        self.assertEqual(stats.unique_entities, 2)


class BreakdownTests(unittest.TestCase):
    def setUp(self):
        self.records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))

    def test_top_divisions(self):
        self.assertEqual(
            top_divisions(self.records),
            [{"name": "Central School", "count": 2}, {"name": "North High", "count": 1}],
        )

    def test_top_divisions_respects_limit(self):
        many = [record(f"row-{i}", division=f"School {i}") for i in range(8)]
        self.assertEqual(len(top_divisions(many)), 5)
        self.assertEqual(len(top_divisions(many, limit=2)), 2)

    def test_category_totals(self):
        totals = {item["name"]: item["count"] for item in category_totals(self.records)}
        self.assertEqual(totals, {"Access": 3, "Equity": 0, "Quality": 2, "Resilience": 0, "Enabling": 0})

    def test_filter_options_are_sorted_and_distinct(self):
        options = filter_options(self.records)
        self.assertEqual(options["periods"], ["Q1", "Q2"])
        self.assertEqual(options["offices"], ["SDO Caloocan", "SDO Malabon"])
        self.assertEqual(options["districts"], ["District 1", "District 2", "District 3"])


class FilterTests(unittest.TestCase):
    def setUp(self):
        self.records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))

    def test_no_filters_returns_everything(self):
        self.assertEqual(len(filter_records(self.records)), 3)

    def test_search_is_case_insensitive_across_fields(self):
        self.assertEqual([r.id for r in filter_records(self.records, search="north")], ["row-9"])
        self.assertEqual([r.id for r in filter_records(self.records, search="team b")], ["row-4"])
        self.assertEqual([r.id for r in filter_records(self.records, search="santos")], ["row-9"])

    def test_exact_filters_combine(self):
        matches = filter_records(self.records, period="Q1", office="SDO Caloocan", district="District 2")
        self.assertEqual([r.id for r in matches], ["row-4"])

    def test_all_sentinel_disables_a_filter(self):
        self.assertEqual(len(filter_records(self.records, period=ALL, district=ALL, office=ALL)), 3)

    def test_filters_do_not_partially_match(self):
        self.assertEqual(filter_records(self.records, office="SDO"), [])


class SelectionTests(unittest.TestCase):
    def setUp(self):
        self.records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))

    def test_selected_row_maps_to_record(self):
        self.assertEqual(record_at(self.records, [2]).id, "row-9")

    def test_no_selection(self):
        self.assertIsNone(record_at(self.records, []))

    def test_stale_index_after_filter_shrinks_list(self):
        narrowed = filter_records(self.records, office="SDO Malabon")
        self.assertEqual(len(narrowed), 1)
        self.assertIsNone(record_at(narrowed, [2]))
        self.assertIsNone(record_at(narrowed, [-1]))


class SummaryFrameTests(unittest.TestCase):
    def test_frame_columns_and_counts(self):
        records = parse_records((FIXTURES / "ftad_export.csv").read_text(encoding="utf-8"))
        frame = record_summary_frame(records)

        self.assertEqual(list(frame.columns)[:3], ["ID", "Office", "District"])
        self.assertEqual(frame["ID"].tolist(), ["row-3", "row-4", "row-9"])
        self.assertEqual(frame["Objectives"].tolist(), [1, 0, 1])
        self.assertEqual(frame["MATATAG Items"].tolist(), [2, 1, 2])

    def test_empty_frame_keeps_columns(self):
        frame = record_summary_frame([])
        self.assertTrue(frame.empty)
        self.assertIn("Division/School", frame.columns)


if __name__ == "__main__":
    unittest.main()
