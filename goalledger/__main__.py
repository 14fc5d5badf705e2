"""CLI entry point for goalledger."""

from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
import logging
from pathlib import Path
import sys

from .report import build_report, render_json, render_text, write_report
from .schema import Ledger, SchemaError, load_ledger
from .validate import validate_ledger


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not valid; expected YYYY-MM-DD") from None


def _parse_amount(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid amount") from None
    if not amount.is_finite() or amount < 0:
        raise argparse.ArgumentTypeError(f"'{value}' must be a non-negative amount")
    return amount


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Goal allocation and planning engine")
    parser.add_argument("ledger", help="Path to ledger snapshot JSON file")
    parser.add_argument("-o", "--output", default="report.json", help="Output JSON path")
    parser.add_argument("--today", type=_parse_date, help="Evaluate as of this date (default: the system date)")
    parser.add_argument("--year", type=int, help="Projection year (default: the year of --today)")
    parser.add_argument("--coverage-limit", type=_parse_amount, help="Override the per-institution coverage limit")
    parser.add_argument("--validate", action="store_true", help="Validate JSON only")
    parser.add_argument("--summary", action="store_true", help="Print text summary to stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log derivation details")
    return parser


def _print_validation(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}", file=sys.stderr)


def _apply_overrides(ledger: Ledger, args: argparse.Namespace) -> Ledger:
    if args.coverage_limit is None:
        return ledger
    return replace(ledger, settings=replace(ledger.settings, coverage_limit=args.coverage_limit))


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        ledger = load_ledger(args.ledger)
    except (SchemaError, OSError, ValueError) as exc:
        print(f"Failed to load ledger: {exc}", file=sys.stderr)
        return 2
    ledger = _apply_overrides(ledger, args)

    validation = validate_ledger(ledger)
    _print_validation(validation.errors, validation.warnings)
    if not validation.is_valid:
        return 1

    if args.validate:
        print("Ledger is valid.")
        return 0

    today = args.today or date.today()
    report = build_report(ledger, today=today, year=args.year)
    write_report(args.output, render_json(report))

    if args.summary:
        print(render_text(report))
        for warning in report.warnings:
            print(f"WARNING: {warning}")

    print(f"Wrote report to {Path(args.output)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
