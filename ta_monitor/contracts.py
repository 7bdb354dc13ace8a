"""Versioned envelopes for every JSON document the CLI prints or writes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ta_monitor import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "ta_monitor.summary": "1.0.0",
    "ta_monitor.records": "1.0.0",
    "ta_monitor.insights": "1.0.0",
    "ta_monitor.accounts": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def build_envelope(name: str, **body: Any) -> dict[str, Any]:
    """Wrap a command payload with its contract, schema version and tool version."""
    contract = build_contract(name)
    envelope: dict[str, Any] = {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
    }
    envelope.update(body)
    return envelope


def build_run_summary(
    *,
    command: str,
    source: str,
    status: str = "ok",
    output_path: str | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str | None] | None = None,
) -> dict[str, Any]:
    warnings = [w for w in (warnings or []) if w]
    return {
        "tool": "ta-monitor",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "source": source,
        "output_file": output_path,
        "warnings_count": len(warnings),
        "warnings": warnings,
        "metrics": metrics or {},
    }
