# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from scanledger.app import (
    RemoteContext,
    add_scan,
    classify_and_add,
    list_history,
    mark_recycled,
    sync_remote_history,
)
from scanledger.config import configure_logging
from scanledger.domain.ingest import Added
from scanledger.domain.model import ClassificationResult, RecycleStatus, ScanSource
from scanledger.domain.ports import ParseFailed

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from scanledger.domain.ingest import IngestResult
    from scanledger.domain.model import Entry

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep a deduplicated history of recycling scans")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    history = subparsers.add_parser("history", help="Show the local scan history")
    history.add_argument("--limit", type=int, help="Show at most this many entries")

    add = subparsers.add_parser("add", help="Record a classification result")
    add.add_argument("--item", required=True, help="Item label")
    add.add_argument("--material", default="unknown", help="Material label")
    add.add_argument("--bin", required=True, help="Disposal instruction")
    add.add_argument("--notes", default="", help="Free-text preparation notes")
    add.add_argument(
        "--recyclable",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Whether the item is recyclable (default: %(default)s)",
    )
    add.add_argument("--carbon-kg", type=float, default=0.0, help="Estimated kg CO2e saved")
    add.add_argument("--recycled", action="store_true", help="Record the item as already recycled")
    _add_capture_arguments(add)

    classify = subparsers.add_parser(
        "classify", help="Decode raw classifier output and record the result"
    )
    classify.add_argument(
        "--file",
        type=Path,
        help="Read the classifier response from a file instead of stdin",
    )
    _add_capture_arguments(classify)

    recycled = subparsers.add_parser("mark-recycled", help="Mark an entry as recycled")
    recycled.add_argument("entry_id", type=str, help="Entry identifier")

    sync = subparsers.add_parser("sync", help="Reconcile with the remote impact log")
    sync.add_argument(
        "--no-push",
        action="store_true",
        help="Only fetch and reconcile; do not upload local entries",
    )

    return parser.parse_args(list(argv))


def _add_capture_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--source",
        choices=[source.value for source in ScanSource],
        default=ScanSource.PHOTO.value,
        help="How the item was captured (default: %(default)s)",
    )
    parser.add_argument("--image", type=Path, help="Local image of the capture")
    parser.add_argument("--at", type=str, help="ISO-8601 capture timestamp (default: now)")
    parser.add_argument("--push", action="store_true", help="Push the entry to the remote log")


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _format_entry(entry: Entry) -> str:
    return (
        f"{entry.id}  {entry.date.astimezone():%Y-%m-%d %H:%M}  {entry.item} "
        f"({entry.material}) -> {entry.bin}  [{entry.recycle_status}] "
        f"scans={entry.scan_count} co2={entry.carbon_saved_kg:.3f}kg"
    )


def _report_ingest(outcome: IngestResult) -> None:
    verb = "Added" if isinstance(outcome, Added) else "Merged into"
    print(f"{verb} {_format_entry(outcome.entry)}")


def _run(args: argparse.Namespace) -> int:
    if args.command == "history":
        entries = list_history()
        shown = entries[: args.limit] if args.limit is not None else entries
        for entry in shown:
            print(_format_entry(entry))
        return 0

    if args.command in {"add", "classify"}:
        at = _parse_iso_datetime(args.at) if args.at else None
        remote = RemoteContext.from_config() if args.push else None
        source = ScanSource(args.source)
        if args.command == "add":
            result = ClassificationResult(
                item=args.item,
                material=args.material,
                recyclable=args.recyclable,
                bin=args.bin,
                notes=args.notes,
                carbon_saved_kg=args.carbon_kg,
            )
            outcome = add_scan(
                result,
                source=source,
                image=args.image,
                status=RecycleStatus.RECYCLED if args.recycled else None,
                at=at,
                remote=remote,
            )
        else:
            raw = args.file.read_text() if args.file else sys.stdin.read()
            classified = classify_and_add(
                raw, source=source, image=args.image, at=at, remote=remote
            )
            if isinstance(classified, ParseFailed):
                print(f"Could not decode classifier response: {classified.reason}", file=sys.stderr)
                return 1
            outcome = classified
        _report_ingest(outcome)
        return 0

    if args.command == "mark-recycled":
        entry = mark_recycled(_parse_uuid(args.entry_id))
        if entry is None:
            print("No recyclable entry with that id", file=sys.stderr)
            return 1
        print(_format_entry(entry))
        return 0

    if args.command == "sync":
        report = sync_remote_history(push=not args.no_push)
        for warning in report.warnings:
            print(f"warning: {warning.operation}: {warning.message}", file=sys.stderr)
        print(
            f"Fetched {report.fetched} rows; {report.entries_before} -> "
            f"{report.entries_after} entries; pushed {report.submitted}"
        )
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    if getattr(parsed_args, "at", None):
        try:
            _parse_iso_datetime(parsed_args.at)
        except ValueError:
            log.exception("CLI validation error")
            sys.exit(2)
    if parsed_args.command == "mark-recycled":
        try:
            _parse_uuid(parsed_args.entry_id)
        except ValueError:
            log.exception("CLI validation error")
            sys.exit(2)

    try:
        code = _run(parsed_args)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
