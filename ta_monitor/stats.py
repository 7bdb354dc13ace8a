"""Aggregates, filters and table frames derived from the current record set. Nothing here is cached."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Sequence

import pandas as pd

from ta_monitor.models import MATATAG_CATEGORIES, FTADStats, TARecord

RESOLVED_MARKERS = ("met", "complete", "done", "yes")
# Checked before RESOLVED_MARKERS; each of these contains a resolved marker.
NEGATED_MARKERS = ("not met", "unmet", "not done", "not complete", "incomplete")
BLOCKED_RE = re.compile(r"\b(?:not met|unmet|issues?|no)\b")
ALL = "all"
SEARCH_FIELDS = ("office", "district", "division_school", "ta_receiver", "ta_provider")

TABLE_COLUMNS = {
    "id": "ID",
    "office": "Office",
    "district": "District",
    "division_school": "Division/School",
    "period": "Period",
    "ta_receiver": "TA Receiver",
    "ta_provider": "TA Provider",
    "targets": "Objectives",
    "matatag_items": "MATATAG Items",
    "agreements": "Agreements",
}


def is_resolved(status: str) -> bool:
    lowered = (status or "").lower()
    if any(marker in lowered for marker in NEGATED_MARKERS):
        return False
    return any(marker in lowered for marker in RESOLVED_MARKERS)


def status_tone(status: str) -> str:
    """Bucket a free-text status for colouring: resolved, blocked, pending or empty."""
    if not status:
        return "empty"
    if is_resolved(status):
        return "resolved"
    if BLOCKED_RE.search(status.lower()):
        return "blocked"
    return "pending"


def compute_stats(records: Sequence[TARecord]) -> FTADStats:
    if not records:
        return FTADStats()

    items = [item for record in records for item in record.matatag_items()]
    resolved = sum(1 for item in items if is_resolved(item.status))
    rate = (resolved / len(items)) * 100 if items else 0.0
    objectives = sum(1 for record in records for target in record.targets if target.objective)
    entities = {record.division_school.strip() for record in records if record.division_school.strip()}
    return FTADStats(
        total_interventions=len(records),
        resolution_rate=rate,
        total_objectives=objectives,
        unique_entities=len(entities),
    )


def top_divisions(records: Iterable[TARecord], limit: int = 5) -> list[dict[str, object]]:
    counts = Counter(record.division_school.strip() for record in records if record.division_school.strip())
    return [{"name": name, "count": count} for name, count in counts.most_common(limit)]


def category_totals(records: Sequence[TARecord]) -> list[dict[str, object]]:
    return [
        {"name": category.title(), "count": sum(len(getattr(record, category)) for record in records)}
        for category in MATATAG_CATEGORIES
    ]


def filter_options(records: Iterable[TARecord]) -> dict[str, list[str]]:
    records = list(records)
    return {
        "periods": sorted({record.period for record in records if record.period}),
        "districts": sorted({record.district for record in records if record.district}),
        "offices": sorted({record.office for record in records if record.office}),
    }


def filter_records(
    records: Iterable[TARecord],
    search: str = "",
    period: str = ALL,
    district: str = ALL,
    office: str = ALL,
) -> list[TARecord]:
    needle = (search or "").lower()
    matches: list[TARecord] = []
    for record in records:
        if needle and not any(needle in str(getattr(record, name)).lower() for name in SEARCH_FIELDS):
            continue
        if period != ALL and record.period != period:
            continue
        if district != ALL and record.district != district:
            continue
        if office != ALL and record.office != office:
            continue
        matches.append(record)
    return matches


def record_at(records: Sequence[TARecord], rows: Sequence[int]) -> TARecord | None:
    """Record for the first selected table row; a stale index past the end selects nothing."""
    if not rows:
        return None
    idx = rows[0]
    if not 0 <= idx < len(records):
        return None
    return records[idx]


def record_summary_frame(records: Sequence[TARecord]) -> pd.DataFrame:
    rows = [
        {
            "id": record.id,
            "office": record.office,
            "district": record.district,
            "division_school": record.division_school,
            "period": record.period,
            "ta_receiver": record.ta_receiver,
            "ta_provider": record.ta_provider,
            "targets": len(record.targets),
            "matatag_items": len(record.matatag_items()),
            "agreements": len(record.agreements),
        }
        for record in records
    ]
    frame = pd.DataFrame(rows, columns=list(TABLE_COLUMNS))
    return frame.rename(columns=TABLE_COLUMNS)
