"""
mapper.py — fold tokenized export rows into TARecord / Account objects

The monitoring sheet flattens fixed-width groups into numbered columns
(OBJECTIVE1..5, ACCESSSTATUS1..5, NAMER1..5 ...). Each group slot is read on
its own: a slot exists when its key column is non-empty, whatever happened to
the slots before it.

Public API:
    outcome  = map_records(rows)      # MappingOutcome with drop accounting
    records  = parse_records(text)    # just the records
    accounts = parse_accounts(text)   # account registry sheet
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from ta_monitor.headers import HEADER_SCAN_WINDOW, RECORD_ANCHORS, HeaderIndex, find_header_row
from ta_monitor.models import (
    MATATAG_CATEGORIES,
    Account,
    Agreement,
    MatatagItem,
    MiscFields,
    Signatory,
    Target,
    TARecord,
)
from ta_monitor.tokenizer import tokenize

SLOT_COUNT = 5
REASON_COUNT = 3
MIN_ROW_CELLS = 5
MAX_OFFICE_LENGTH = 60
# "●" as exported, plus how it reads after a latin-1/cp1252 mis-decode.
BULLET_PREFIXES = ("●", "â—", "â\x97")

RECEIVER_ROLE = "R"
PROVIDER_ROLE = "P"

ACCOUNT_SCAN_WINDOW = 25
MIN_ACCOUNT_CELLS = 2

DROP_REASONS = {
    "SHORT_ROW": f"Fewer than {MIN_ROW_CELLS} cells",
    "EMPTY_OFFICE": "Office cell is empty",
    "OVERLONG_OFFICE": f"Office cell longer than {MAX_OFFICE_LENGTH} characters",
    "BULLET_ARTIFACT": "Office cell starts with a bullet glyph",
}


@dataclass
class MappingOutcome:
    records: list[TARecord] = field(default_factory=list)
    header_row_index: int | None = None
    rows_total: int = 0
    drop_reason_counts: dict[str, int] = field(default_factory=dict)

    @property
    def header_found(self) -> bool:
        return self.header_row_index is not None

    @property
    def rows_dropped(self) -> int:
        return sum(self.drop_reason_counts.values())


# ══════════════════════════════════════════════════════════════════════════
# REPEATED GROUPS
# ══════════════════════════════════════════════════════════════════════════

def extract_matatag(index: HeaderIndex, row: Sequence[str], prefix: str) -> list[MatatagItem]:
    items: list[MatatagItem] = []
    for slot in range(1, SLOT_COUNT + 1):
        status = index.value(row, f"{prefix}STATUS{slot}")
        if not status:
            continue
        items.append(MatatagItem(status=status, issue=index.value(row, f"{prefix}ISSUE{slot}")))
    return items


def extract_targets(index: HeaderIndex, row: Sequence[str]) -> list[Target]:
    targets: list[Target] = []
    for slot in range(1, SLOT_COUNT + 1):
        objective = index.value(row, f"OBJECTIVE{slot}")
        if not objective:
            continue
        targets.append(
            Target(
                objective=objective,
                planned_action=index.value(row, f"PLANNED ACTION{slot}"),
                due_date=index.value(row, f"DUE DATE{slot}"),
                status=index.value(row, f"STATUS{slot}"),
                help_needed=index.value(row, f"HELP NEEDED{slot}"),
            )
        )
    return targets


def extract_agreements(index: HeaderIndex, row: Sequence[str]) -> list[Agreement]:
    agreements: list[Agreement] = []
    for slot in range(1, SLOT_COUNT + 1):
        agree = index.value(row, f"AGREE{slot}")
        if not agree:
            continue
        agreements.append(
            Agreement(
                agree=agree,
                specific_office=index.value(row, f"SPECIFIC OFFICE{slot}"),
                due_date=index.value(row, f"DUE DATE_A{slot}", f"DUE DATE {slot}"),
                status=index.value(row, f"STATUS_A{slot}", f"STATUS {slot}"),
            )
        )
    return agreements


def extract_signatories(index: HeaderIndex, row: Sequence[str], role: str) -> list[Signatory]:
    signatories: list[Signatory] = []
    for slot in range(1, SLOT_COUNT + 1):
        name = index.value(row, f"NAME{role}{slot}")
        if not name:
            continue
        signatories.append(Signatory(name=name, position=index.value(row, f"POSITION{role}{slot}")))
    return signatories


def extract_reasons(index: HeaderIndex, row: Sequence[str]) -> list[str]:
    reasons = (index.value(row, f"REASON{slot}") for slot in range(1, REASON_COUNT + 1))
    return [reason for reason in reasons if reason]


def extract_misc(index: HeaderIndex, row: Sequence[str]) -> MiscFields:
    # Signature columns hold drawn images in the form, never text in the export.
    return MiscFields(
        ta_name4=index.value(row, "TA NAME4"),
        ta_position4=index.value(row, "TA POSITION4"),
        dept_name5=index.value(row, "DEPT NAME5"),
        dept_position5=index.value(row, "DEPT POSITION5"),
        ta_name5=index.value(row, "TA NAME5"),
        ta_position5=index.value(row, "TA POSITION5"),
        dept_team_date=index.value(row, "DEPT TEAM DATE"),
        ta_team_date=index.value(row, "TA TEAM DATE"),
    )


# ══════════════════════════════════════════════════════════════════════════
# ROW ASSEMBLY
# ══════════════════════════════════════════════════════════════════════════

def classify_data_row(index: HeaderIndex, row: Sequence[str]) -> str:
    if len(row) < MIN_ROW_CELLS:
        return "SHORT_ROW"
    office = index.cell(row, "OFFICE")
    if office.startswith(BULLET_PREFIXES):
        return "BULLET_ARTIFACT"
    if len(office) > MAX_OFFICE_LENGTH:
        return "OVERLONG_OFFICE"
    if not office.strip():
        return "EMPTY_OFFICE"
    return "NORMAL"


def build_record(index: HeaderIndex, row: Sequence[str], position: int) -> TARecord:
    values = {
        category: extract_matatag(index, row, category.upper())
        for category in MATATAG_CATEGORIES
    }
    return TARecord(
        id=f"row-{position}",
        office=index.cell(row, "OFFICE"),
        district=index.value(row, "DISTRICT"),
        division_school=index.value(row, "DIVISION/SCHOOL"),
        period=index.value(row, "PERIOD"),
        ta_receiver=index.value(row, "TA RECEIVER", "TA RECIEVER"),
        ta_provider=index.value(row, "TA PROVIDER", "TRA PROVIDER"),
        reasons=extract_reasons(index, row),
        targets=extract_targets(index, row),
        agreements=extract_agreements(index, row),
        receiver_signatories=extract_signatories(index, row, RECEIVER_ROLE),
        provider_signatories=extract_signatories(index, row, PROVIDER_ROLE),
        misc=extract_misc(index, row),
        raw=list(row),
        **values,
    )


def map_records(rows: Sequence[Sequence[str]], window: int = HEADER_SCAN_WINDOW) -> MappingOutcome:
    outcome = MappingOutcome(rows_total=len(rows))
    header_idx = find_header_row(rows, RECORD_ANCHORS, window=window)
    if header_idx is None:
        return outcome

    outcome.header_row_index = header_idx
    index = HeaderIndex.from_row(rows[header_idx])
    drops: Counter[str] = Counter()
    for position in range(header_idx + 1, len(rows)):
        row = rows[position]
        verdict = classify_data_row(index, row)
        if verdict != "NORMAL":
            drops[verdict] += 1
            continue
        outcome.records.append(build_record(index, row, position))
    outcome.drop_reason_counts = dict(drops)
    return outcome


def parse_records(text: str) -> list[TARecord]:
    return map_records(tokenize(text)).records


# ══════════════════════════════════════════════════════════════════════════
# ACCOUNT REGISTRY
# ══════════════════════════════════════════════════════════════════════════

def find_account_header_row(rows: Sequence[Sequence[str]], window: int = ACCOUNT_SCAN_WINDOW) -> int | None:
    for idx, row in enumerate(rows[:window]):
        cells = {(cell or "").strip().upper() for cell in row}
        if "USERNAME" in cells and ("PASSWORDHASH" in cells or "PASSWORD" in cells):
            return idx
    return None


def map_accounts(rows: Sequence[Sequence[str]]) -> list[Account]:
    header_idx = find_account_header_row(rows)
    if header_idx is None:
        return []

    index = HeaderIndex.from_row(rows[header_idx])
    if "USERNAME" not in index:
        return []
    password_column = "PASSWORDHASH" if "PASSWORDHASH" in index else "PASSWORD"

    accounts: list[Account] = []
    for row in rows[header_idx + 1:]:
        if len(row) < MIN_ACCOUNT_CELLS:
            continue
        username = index.cell(row, "USERNAME")
        if not username:
            continue
        accounts.append(
            Account(
                username=username,
                password_hash=index.cell(row, password_column),
                sdo=index.value(row, "SDO"),
                school_name=index.value(row, "SCHOOLNAME", "SCHOOL NAME"),
                email=index.value(row, "EMAIL"),
            )
        )
    return accounts


def parse_accounts(text: str) -> list[Account]:
    return map_accounts(tokenize(text))
