from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from ta_monitor import __version__ as TOOL_VERSION
from ta_monitor.config import load_settings
from ta_monitor.contracts import build_envelope, build_run_summary
from ta_monitor.export import write_workbook
from ta_monitor.insights import generate_insights
from ta_monitor.mapper import DROP_REASONS, parse_accounts
from ta_monitor.source import (
    STATUS_HEADER_NOT_FOUND,
    STATUS_TRANSPORT_FAILURE,
    LoadResult,
    decode_body,
    load_accounts,
    load_records,
    records_from_text,
)
from ta_monitor.stats import category_totals, compute_stats, filter_records, top_divisions

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_TRANSPORT_FAILED = 2
EXIT_NO_RECORDS = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class TaMonitorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def safe_output_path(path: Path, *, force: bool = False) -> Path:
    if path.exists() and not force:
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


# ══════════════════════════════════════════════════════════════════════════
# LOADING
# ══════════════════════════════════════════════════════════════════════════

def load_from_args(args: argparse.Namespace) -> LoadResult:
    if getattr(args, "input", None):
        input_path = Path(args.input)
        if not input_path.exists():
            raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
        text, encoding = decode_body(input_path.read_bytes())
        result = records_from_text(text, source=str(input_path))
        if encoding != "utf-8":
            result.warnings.append(f"Input was not UTF-8; decoded as {encoding}.")
        return result
    settings = load_settings()
    if getattr(args, "url", None):
        settings = replace(settings, csv_url=args.url)
    return load_records(settings)


def exit_code_for_load(result: LoadResult) -> int:
    if result.status == STATUS_TRANSPORT_FAILURE:
        return EXIT_TRANSPORT_FAILED
    if result.status == STATUS_HEADER_NOT_FOUND or not result.records:
        return EXIT_NO_RECORDS
    return EXIT_SUCCESS


def apply_filters(result: LoadResult, args: argparse.Namespace) -> list:
    return filter_records(
        result.records,
        search=getattr(args, "search", "") or "",
        period=getattr(args, "period", None) or "all",
        district=getattr(args, "district", None) or "all",
        office=getattr(args, "office", None) or "all",
    )


def load_metrics(result: LoadResult) -> dict[str, Any]:
    return {
        "status": result.status,
        "header_row": None if result.header_row_index is None else result.header_row_index + 1,
        "rows_total": result.rows_total,
        "rows_dropped": result.rows_dropped,
        "drop_reason_counts": dict(sorted(result.drop_reason_counts.items())),
        "records": len(result.records),
    }


# ══════════════════════════════════════════════════════════════════════════
# RENDERING
# ══════════════════════════════════════════════════════════════════════════

def render_summary_text(result: LoadResult, records: list) -> str:
    stats = compute_stats(records)
    lines = [
        "ta-monitor summary",
        f"Source: {result.source or '[unknown]'}",
        f"Status: {result.status}",
        f"Rows scanned: {result.rows_total}",
        f"Rows dropped: {result.rows_dropped}",
        f"Registry volume: {stats.total_interventions}",
        f"Strategic resolution: {stats.resolution_rate:.1f}%",
        f"Support objectives: {stats.total_objectives}",
        f"Institutional reach: {stats.unique_entities}",
    ]
    for reason, count in sorted(result.drop_reason_counts.items()):
        lines.append(f"- {DROP_REASONS.get(reason, reason)}: {count}")
    divisions = top_divisions(records)
    if divisions:
        lines.append("Top divisions:")
        lines.extend(f"- {item['name']}: {item['count']}" for item in divisions)
    if result.error:
        lines.append(f"Error: {result.error}")
    return "\n".join(lines) + "\n"


def summary_payload(result: LoadResult, records: list) -> dict[str, Any]:
    return build_envelope(
        "ta_monitor.summary",
        stats=compute_stats(records).to_dict(),
        top_divisions=top_divisions(records),
        category_totals=category_totals(records),
        run_summary=build_run_summary(
            command="summary",
            source=result.source,
            status=result.status,
            metrics=load_metrics(result),
            warnings=result.warnings + [result.error],
        ),
    )


# ══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════

def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", help="Read a local CSV export instead of fetching")
    parser.add_argument("--url", help="Published CSV URL (overrides TA_MONITOR_CSV_URL)")
    parser.add_argument("--search", default="", help="Case-insensitive search over office, district, division and TA parties")
    parser.add_argument("--period", help="Exact period filter")
    parser.add_argument("--district", help="Exact district filter")
    parser.add_argument("--office", help="Exact office filter")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = TaMonitorArgumentParser(prog="ta-monitor", description="Field technical-assistance monitoring from a published sheet.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    summary = subparsers.add_parser("summary", help="Print headline statistics.")
    add_source_arguments(summary)
    summary.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    records = subparsers.add_parser("records", help="Dump parsed records as JSON.")
    add_source_arguments(records)
    records.add_argument("--output", help="Write JSON to this path instead of stdout")
    records.add_argument("--no-raw", dest="include_raw", action="store_false", help="Omit the raw source row")
    records.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    export = subparsers.add_parser("export", help="Write parsed records to an .xlsx workbook.")
    add_source_arguments(export)
    export.add_argument("--output", required=True, help="Workbook output path (.xlsx)")
    export.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    insights = subparsers.add_parser("insights", help="Ask the text-generation model for strategic insights.")
    add_source_arguments(insights)
    insights.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    accounts = subparsers.add_parser("accounts", help="List usernames from the account registry sheet.")
    accounts.add_argument("--input", help="Read a local CSV export instead of fetching")
    accounts.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_summary(args: argparse.Namespace) -> int:
    result = load_from_args(args)
    records = apply_filters(result, args)
    if args.json:
        print(json_dumps(summary_payload(result, records)))
    else:
        emit_human(render_summary_text(result, records).rstrip(), quiet=args.quiet)
    return exit_code_for_load(result)


def run_records(args: argparse.Namespace) -> int:
    result = load_from_args(args)
    records = apply_filters(result, args)
    payload = build_envelope(
        "ta_monitor.records",
        records=[record.to_dict(include_raw=args.include_raw) for record in records],
        run_summary=build_run_summary(
            command="records",
            source=result.source,
            status=result.status,
            output_path=args.output,
            metrics=load_metrics(result),
            warnings=result.warnings + [result.error],
        ),
    )
    if args.output:
        output_path = safe_output_path(Path(args.output), force=args.force)
        write_text(output_path, json_dumps(payload))
        emit_human(f"Records written: {output_path}", quiet=args.quiet)
    else:
        print(json_dumps(payload))
    return exit_code_for_load(result)


def run_export(args: argparse.Namespace) -> int:
    output_path = Path(args.output)
    if output_path.suffix.lower() != ".xlsx":
        raise CliError("Export output must end in .xlsx", EXIT_COMMAND_ERROR)
    safe_output_path(output_path, force=args.force)
    result = load_from_args(args)
    if result.status == STATUS_TRANSPORT_FAILURE:
        eprint(result.error or "Transport failure")
        return EXIT_TRANSPORT_FAILED
    result.records = apply_filters(result, args)
    counts = write_workbook(result, output_path)
    emit_human(f"Workbook written: {output_path}", quiet=args.quiet)
    for sheet, count in counts.items():
        emit_human(f"- {sheet}: {count} row(s)", quiet=args.quiet)
    return exit_code_for_load(result)


def run_insights(args: argparse.Namespace) -> int:
    result = load_from_args(args)
    records = apply_filters(result, args)
    lines = generate_insights(records, settings=load_settings())
    if args.json:
        payload = build_envelope(
            "ta_monitor.insights",
            insights=lines,
            run_summary=build_run_summary(
                command="insights",
                source=result.source,
                status=result.status,
                metrics=load_metrics(result),
            ),
        )
        print(json_dumps(payload))
    else:
        print("\n".join(lines))
    return exit_code_for_load(result)


def run_accounts(args: argparse.Namespace) -> int:
    if args.input:
        input_path = Path(args.input)
        if not input_path.exists():
            raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
        source = str(input_path)
        accounts, error = parse_accounts(decode_body(input_path.read_bytes())[0]), None
    else:
        source = load_settings().resolved_accounts_url
        accounts, error = load_accounts()
    if error:
        eprint(error)
        return EXIT_TRANSPORT_FAILED
    listing = [{"username": a.username, "sdo": a.sdo, "school_name": a.school_name, "email": a.email} for a in accounts]
    if args.json:
        payload = build_envelope(
            "ta_monitor.accounts",
            accounts=listing,
            count=len(listing),
            run_summary=build_run_summary(
                command="accounts",
                source=source,
                status="ok" if accounts else "empty",
                metrics={"accounts": len(listing)},
            ),
        )
        print(json_dumps(payload))
    else:
        print("\n".join(f"{item['username']}\t{item['sdo']}\t{item['school_name']}" for item in listing))
    return EXIT_SUCCESS if accounts else EXIT_NO_RECORDS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "summary":
            return run_summary(args)
        if args.command == "records":
            return run_records(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "insights":
            return run_insights(args)
        if args.command == "accounts":
            return run_accounts(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
