"""Runtime settings, read from the environment so tests and deployments can point at their own sheets."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

DEFAULT_CSV_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vRGRxkahPOc_CiaRX6ZjXNPsREBUxUsJnhDwtTo8Z55gys2UikNMq4KPCmccnjUPyP_yj0d1AQzepFI"
    "/pub?output=csv"
)
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 1024


@dataclass(frozen=True)
class Settings:
    csv_url: str = DEFAULT_CSV_URL
    accounts_url: str = DEFAULT_CSV_URL
    accounts_gid: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS

    @property
    def resolved_accounts_url(self) -> str:
        return with_sheet_selector(self.accounts_url, self.accounts_gid)


def with_sheet_selector(url: str, gid: str | None) -> str:
    """Pin a published-sheet URL to one tab by setting its gid query parameter."""
    if not gid:
        return url
    parsed = urlparse(url)
    query = parse_qs(parsed.query, keep_blank_values=True)
    query["gid"] = [str(gid)]
    return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))


def _float_setting(raw: str | None, default: float) -> float:
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"Expected a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"Timeout must be positive, got {raw!r}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    csv_url = env.get("TA_MONITOR_CSV_URL") or DEFAULT_CSV_URL
    return Settings(
        csv_url=csv_url,
        accounts_url=env.get("TA_MONITOR_ACCOUNTS_URL") or csv_url,
        accounts_gid=env.get("TA_MONITOR_ACCOUNTS_GID") or None,
        timeout=_float_setting(env.get("TA_MONITOR_TIMEOUT"), DEFAULT_TIMEOUT_SECONDS),
        api_key=env.get("ANTHROPIC_API_KEY") or None,
        model=env.get("TA_MONITOR_MODEL") or DEFAULT_MODEL,
    )
