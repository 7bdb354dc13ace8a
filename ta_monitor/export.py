from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from ta_monitor.models import MATATAG_CATEGORIES, TARecord
from ta_monitor.source import LoadResult
from ta_monitor.stats import compute_stats, record_summary_frame


def _child_frame(records: Sequence[TARecord], attribute: str, extra: dict | None = None) -> pd.DataFrame:
    rows = []
    for record in records:
        for slot, item in enumerate(getattr(record, attribute), start=1):
            row = {"record_id": record.id, "office": record.office, "slot": slot}
            row.update(extra or {})
            row.update(vars(item))
            rows.append(row)
    return pd.DataFrame(rows)


def matatag_frame(records: Sequence[TARecord]) -> pd.DataFrame:
    frames = [_child_frame(records, category, {"category": category.title()}) for category in MATATAG_CATEGORIES]
    frames = [frame for frame in frames if not frame.empty]
    if not frames:
        return pd.DataFrame(columns=["record_id", "office", "slot", "category", "status", "issue"])
    return pd.concat(frames, ignore_index=True)


def signatory_frame(records: Sequence[TARecord]) -> pd.DataFrame:
    receivers = _child_frame(records, "receiver_signatories", {"role": "Receiver"})
    providers = _child_frame(records, "provider_signatories", {"role": "Provider"})
    return pd.concat([receivers, providers], ignore_index=True)


def load_notes_frame(result: LoadResult) -> pd.DataFrame:
    stats = compute_stats(result.records)
    notes = [
        {"field": "source", "value": result.source},
        {"field": "status", "value": result.status},
        {"field": "header_row", "value": "" if result.header_row_index is None else result.header_row_index + 1},
        {"field": "rows_total", "value": result.rows_total},
        {"field": "rows_dropped", "value": result.rows_dropped},
        {"field": "records", "value": stats.total_interventions},
        {"field": "resolution_rate", "value": round(stats.resolution_rate, 1)},
        {"field": "total_objectives", "value": stats.total_objectives},
        {"field": "unique_entities", "value": stats.unique_entities},
        {"field": "warnings", "value": " | ".join(result.warnings)},
    ]
    for reason, count in sorted(result.drop_reason_counts.items()):
        notes.append({"field": f"dropped_{reason.lower()}", "value": count})
    return pd.DataFrame(notes)


def write_workbook(result: LoadResult, output_path: Path) -> dict[str, int]:
    """Write the loaded records as a multi-sheet workbook; returns row counts per sheet."""
    records = result.records
    sheets = {
        "Records": record_summary_frame(records),
        "MATATAG": matatag_frame(records),
        "Targets": _child_frame(records, "targets"),
        "Agreements": _child_frame(records, "agreements"),
        "Signatories": signatory_frame(records),
        "Load Notes": load_notes_frame(result),
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, index=False, sheet_name=name)
    return {name: int(frame.shape[0]) for name, frame in sheets.items()}
