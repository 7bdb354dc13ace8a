from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

MATATAG_CATEGORIES = ("access", "equity", "quality", "resilience", "enabling")


@dataclass
class MatatagItem:
    status: str
    issue:  str = ""


@dataclass
class Target:
    objective:      str
    planned_action: str = ""
    due_date:       str = ""
    status:         str = ""
    help_needed:    str = ""


@dataclass
class Agreement:
    agree:           str
    specific_office: str = ""
    due_date:        str = ""
    status:          str = ""


@dataclass
class Signatory:
    name:     str
    position: str = ""


@dataclass
class MiscFields:
    ta_name4:        str = ""
    ta_position4:    str = ""
    ta_signature4:   str = ""
    dept_name5:      str = ""
    dept_position5:  str = ""
    dept_signature5: str = ""
    ta_name5:        str = ""
    ta_position5:    str = ""
    ta_signature5:   str = ""
    dept_team_date:  str = ""
    ta_team_date:    str = ""


@dataclass
class TARecord:
    id:                   str
    office:               str
    district:             str = ""
    division_school:      str = ""
    period:               str = ""
    ta_receiver:          str = ""
    ta_provider:          str = ""
    access:               list[MatatagItem] = field(default_factory=list)
    equity:               list[MatatagItem] = field(default_factory=list)
    quality:              list[MatatagItem] = field(default_factory=list)
    resilience:           list[MatatagItem] = field(default_factory=list)
    enabling:             list[MatatagItem] = field(default_factory=list)
    reasons:              list[str] = field(default_factory=list)
    targets:              list[Target] = field(default_factory=list)
    agreements:           list[Agreement] = field(default_factory=list)
    receiver_signatories: list[Signatory] = field(default_factory=list)
    provider_signatories: list[Signatory] = field(default_factory=list)
    misc:                 MiscFields = field(default_factory=MiscFields)
    raw:                  list[str] = field(default_factory=list)

    def matatag_items(self) -> list[MatatagItem]:
        items: list[MatatagItem] = []
        for category in MATATAG_CATEGORIES:
            items.extend(getattr(self, category))
        return items

    def to_dict(self, include_raw: bool = True) -> dict[str, Any]:
        payload = asdict(self)
        if not include_raw:
            payload.pop("raw", None)
        return payload


@dataclass
class Account:
    username:      str
    password_hash: str = ""
    sdo:           str = ""
    school_name:   str = ""
    email:         str = ""


@dataclass
class FTADStats:
    total_interventions: int = 0
    resolution_rate:     float = 0.0
    total_objectives:    int = 0
    unique_entities:     int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
