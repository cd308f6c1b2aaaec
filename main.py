"""CLI entrypoint for the run completion pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.table import Table

from config import Settings
from pipeline import CompletionSummary, Pipeline
from utils import ConfigurationError, RemoteCallError, console, setup_logger


logger = logging.getLogger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def _render_summary(summary: CompletionSummary, ledger_path: str) -> None:
    table = Table(title="Completion Summary")
    table.add_column("Outcome")
    table.add_column("Runs", justify="right")
    table.add_row("Completed", str(summary.completed_count), style="green")
    table.add_row("Failed", str(summary.failed_count), style="red" if summary.failed_count else None)
    console.print(table)
    if summary.failed_count:
        console.print(f"Check {ledger_path} for details on failed runs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Complete test runs whose latest results all passed")
    parser.add_argument("--env-file", default=None, help="Path of a .env file to load")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="fetch, select, validate and complete")
    run.add_argument("--skip-fetch", action="store_true", help="Reuse the existing result log")
    run.add_argument("--append", action="store_true", help="Append to the result log instead of starting afresh")

    fetch = sub.add_parser("fetch", help="pull all results into the result log")
    fetch.add_argument("--append", action="store_true")

    sub.add_parser("select", help="write run IDs eligible from the result log alone")
    sub.add_parser("validate", help="confirm selected runs against the service")
    sub.add_parser("complete", help="complete confirmed runs")
    sub.add_parser("complete-all", help="complete every in-progress run")
    return parser


async def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    async with Pipeline(settings) as pipeline:
        if args.command == "run":
            report = await pipeline.run(fetch=not args.skip_fetch, append=args.append)
            if report.summary is not None:
                _render_summary(report.summary, settings.paths.error_ledger)
            _print_json(
                {
                    "fetched": report.fetched,
                    "selected": len(report.selected),
                    "confirmed": len(report.confirmed),
                    "completed": report.summary.completed_count if report.summary else 0,
                    "failed": report.summary.failed_count if report.summary else 0,
                    "aborted_stage": report.aborted_stage,
                }
            )
            return 1 if report.aborted_stage else 0

        if args.command == "fetch":
            _print_json({"fetched": await pipeline.fetch(append=args.append)})
            return 0

        if args.command == "select":
            _print_json({"selected": pipeline.select()})
            return 0

        if args.command == "validate":
            _print_json({"confirmed": await pipeline.validate()})
            return 0

        if args.command in {"complete", "complete-all"}:
            if args.command == "complete":
                summary = await pipeline.complete()
            else:
                summary = await pipeline.complete_all()
            _render_summary(summary, settings.paths.error_ledger)
            _print_json({"completed": summary.completed, "failed": summary.failed})
            return 0

    return 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    settings = Settings.load_from_env_file(Path(args.env_file) if args.env_file else None)

    try:
        return asyncio.run(_dispatch(args, settings))
    except (ConfigurationError, RemoteCallError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
