"""
source.py — fetch the published export and turn it into a classified LoadResult

Every fetch starts from scratch; nothing is cached between loads. Failures are
reported through LoadResult.status instead of being raised:

    ok                 records parsed (possibly zero after garbage filtering)
    transport_failure  the HTTP request failed or returned a non-2xx status
    header_not_found   no header row inside the scan window
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import chardet
import requests

from ta_monitor.config import Settings, load_settings
from ta_monitor.mapper import map_accounts, map_records
from ta_monitor.models import Account, TARecord
from ta_monitor.tokenizer import tokenize

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_TRANSPORT_FAILURE = "transport_failure"
STATUS_HEADER_NOT_FOUND = "header_not_found"

SYNC_FAILED_MESSAGE = "Failed to sync with FTAD database."


class TransportFailure(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class LoadResult:
    status: str
    source: str = ""
    records: list[TARecord] = field(default_factory=list)
    header_row_index: int | None = None
    rows_total: int = 0
    drop_reason_counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def rows_dropped(self) -> int:
        return sum(self.drop_reason_counts.values())


# ══════════════════════════════════════════════════════════════════════════
# DECODING
# ══════════════════════════════════════════════════════════════════════════

def decode_body(raw: bytes) -> tuple[str, str]:
    """
    Decode a response body, returning (text, encoding).

    UTF-8 (with or without BOM) is expected. Anything else is decoded line by
    line with the chardet guess, then latin-1, so a single bad byte does not
    lose the whole export.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw).get("encoding") or "latin-1"
    lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", detected, "latin-1"):
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        lines.append(decoded)
    return "\n".join(lines), detected


# ══════════════════════════════════════════════════════════════════════════
# TRANSPORT
# ══════════════════════════════════════════════════════════════════════════

def fetch_text(url: str, timeout: float) -> tuple[str, str]:
    try:
        response = requests.get(url, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        raise TransportFailure(f"Request to {url} failed: {exc}") from exc
    try:
        if not response.ok:
            raise TransportFailure(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return decode_body(response.content)
    finally:
        response.close()


# ══════════════════════════════════════════════════════════════════════════
# LOADING
# ══════════════════════════════════════════════════════════════════════════

def records_from_text(text: str, source: str = "") -> LoadResult:
    outcome = map_records(tokenize(text))
    result = LoadResult(
        status=STATUS_OK if outcome.header_found else STATUS_HEADER_NOT_FOUND,
        source=source,
        records=outcome.records,
        header_row_index=outcome.header_row_index,
        rows_total=outcome.rows_total,
        drop_reason_counts=outcome.drop_reason_counts,
    )
    if not outcome.header_found:
        result.warnings.append("No header row with OFFICE, DISTRICT and DIVISION/SCHOOL in the first rows.")
    elif outcome.rows_dropped:
        result.warnings.append(f"Dropped {outcome.rows_dropped} malformed row(s).")
    return result


def load_records(settings: Settings | None = None) -> LoadResult:
    settings = settings or load_settings()
    try:
        text, encoding = fetch_text(settings.csv_url, settings.timeout)
    except TransportFailure as exc:
        logger.warning("FTAD fetch failed: %s", exc)
        return LoadResult(status=STATUS_TRANSPORT_FAILURE, source=settings.csv_url, error=str(exc))

    result = records_from_text(text, source=settings.csv_url)
    if encoding != "utf-8":
        result.warnings.append(f"Export was not UTF-8; decoded as {encoding}.")
    return result


def load_accounts(settings: Settings | None = None) -> tuple[list[Account], str | None]:
    settings = settings or load_settings()
    url = settings.resolved_accounts_url
    try:
        text, _ = fetch_text(url, settings.timeout)
    except TransportFailure as exc:
        logger.warning("Account registry fetch failed: %s", exc)
        return [], str(exc)
    return map_accounts(tokenize(text)), None
