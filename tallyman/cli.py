"""Command-line entry point: ``tallyman sync`` and ``tallyman query``."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import typing as typ
from pathlib import Path

import msgspec
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tallyman.activity import ActivityKind
from tallyman.common import (
    ActivityWindow,
    InvalidWindowError,
    TimeExpressionError,
    TimezoneAwareRequiredError,
    parse_time_expression,
)
from tallyman.common.time import isoformat_seconds
from tallyman.connectors import GitLogConnector, JsonLinesConnector
from tallyman.logging import configure_logging, get_logger, log_exception
from tallyman.storage import (
    DEFAULT_QUERY_LIMIT,
    ActivityQuery,
    ActivityRepository,
    ActivityUpsertWriter,
    NegativePaginationError,
    init_activity_storage,
)
from tallyman.sync import ConnectorOrchestrator, SyncConfig, SyncConfigError
from tallyman.worktime import CalendarConfigError, WorkingCalendar

if typ.TYPE_CHECKING:
    from tallyman.activity import ActivityRecord
    from tallyman.connectors import SourceConnector
    from tallyman.sync import SyncSummary

EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_SETUP_ERROR = 2

_TABLE_TITLE_WIDTH = 60

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tallyman", description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async URL; defaults to TALLYMAN_DATABASE_URL",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Collect and store activity")
    sync.add_argument("--from", dest="start", default="15 minutes ago")
    sync.add_argument("--to", dest="end", default="now")
    sync.add_argument(
        "--events",
        type=Path,
        action="append",
        default=[],
        help="JSON-lines event file; may be repeated",
    )
    sync.add_argument(
        "--git-repo",
        type=Path,
        action="append",
        default=[],
        help="Local git repository to read commits from; may be repeated",
    )
    sync.add_argument(
        "--all-branches",
        action="store_true",
        help="Read commits from every ref instead of HEAD only",
    )

    query = commands.add_parser("query", help="List stored activity")
    query.add_argument("--author")
    query.add_argument("--repository")
    query.add_argument("--kind", choices=[kind.value for kind in ActivityKind])
    query.add_argument("--from", dest="start")
    query.add_argument("--to", dest="end")
    query.add_argument("--limit", type=int, default=DEFAULT_QUERY_LIMIT)
    query.add_argument("--offset", type=int, default=None)
    query.add_argument("--format", choices=("json", "table"), default="table")
    query.add_argument(
        "--count-only",
        action="store_true",
        help="Print only the number of matching records",
    )
    return parser


def _connectors(args: argparse.Namespace) -> list[SourceConnector]:
    connectors: list[SourceConnector] = [
        JsonLinesConnector(path) for path in args.events
    ]
    connectors.extend(
        GitLogConnector(path, all_branches=args.all_branches)
        for path in args.git_repo
    )
    return connectors


def format_summary(summary: SyncSummary) -> str:
    """Render a run summary as plain text."""
    lines = [
        f"window {isoformat_seconds(summary.window.start)} -> "
        f"{isoformat_seconds(summary.window.end)}",
    ]
    for source in summary.sources:
        status = "ok" if source.succeeded else f"failed ({source.error_category})"
        lines.append(
            f"  {source.name}: {status} fetched={source.events_fetched} "
            f"collected={source.collected} persisted={source.persisted}"
        )
    lines.append(
        f"activities collected={summary.collected} persisted={summary.persisted} "
        f"dropped={summary.dropped.total} errors={len(summary.errors)}"
    )
    lines.extend(f"  error: {message}" for message in summary.errors)
    return "\n".join(lines)


def format_table(records: typ.Sequence[ActivityRecord]) -> str:
    """Render records as a fixed-width text table."""
    header = f"{'occurred_at':<20}  {'kind':<19}  {'author':<16}  repository / title"
    rows = [header, "-" * len(header)]
    for record in records:
        title = record.title or record.description
        if len(title) > _TABLE_TITLE_WIDTH:
            title = f"{title[: _TABLE_TITLE_WIDTH - 3]}..."
        rows.append(
            f"{isoformat_seconds(record.occurred_at):<20}  {record.kind.value:<19}  "
            f"{record.author:<16}  {record.repository} / {title}"
        )
    return "\n".join(rows)


def format_json(records: typ.Sequence[ActivityRecord]) -> str:
    """Render records as a JSON array."""
    return msgspec.json.encode(list(records)).decode("utf-8")


async def _run_sync(
    args: argparse.Namespace, config: SyncConfig, calendar: WorkingCalendar
) -> int:
    window = ActivityWindow.from_expressions(args.start, args.end)
    connectors = _connectors(args)
    if not connectors:
        print("sync needs at least one --events file or --git-repo directory")
        return EXIT_SETUP_ERROR

    engine = create_async_engine(config.database_url)
    try:
        await init_activity_storage(engine)
        writer = ActivityUpsertWriter(
            async_sessionmaker(engine, expire_on_commit=False),
            batch_size=config.batch_size,
        )
        orchestrator = ConnectorOrchestrator(
            connectors, writer, calendar, config=config
        )
        summary = await orchestrator.sync(window)
    finally:
        await engine.dispose()

    print(format_summary(summary))
    return EXIT_OK if summary.succeeded else EXIT_SYNC_FAILED


async def _run_query(args: argparse.Namespace, config: SyncConfig) -> int:
    query = ActivityQuery(
        author=args.author,
        repository=args.repository,
        kind=ActivityKind(args.kind) if args.kind else None,
        start=parse_time_expression(args.start) if args.start else None,
        end=parse_time_expression(args.end) if args.end else None,
        limit=args.limit,
        offset=args.offset,
    )
    engine = create_async_engine(config.database_url)
    try:
        await init_activity_storage(engine)
        repository = ActivityRepository(async_sessionmaker(engine))
        if args.count_only:
            print(await repository.count(query))
            return EXIT_OK
        records = await repository.find(query)
    finally:
        await engine.dispose()

    print(format_json(records) if args.format == "json" else format_table(records))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the ``tallyman`` command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when every source failed or the sink
        rejected the batch, 2 on setup errors.

    """
    args = _build_parser().parse_args(argv)
    configure_logging()
    try:
        calendar = WorkingCalendar.from_env()
        config = SyncConfig.from_env()
        if args.database_url:
            config = dataclasses.replace(config, database_url=args.database_url)
        if args.command == "sync":
            return asyncio.run(_run_sync(args, config, calendar))
        return asyncio.run(_run_query(args, config))
    except (
        CalendarConfigError,
        SyncConfigError,
        TimeExpressionError,
        InvalidWindowError,
        NegativePaginationError,
        TimezoneAwareRequiredError,
    ) as exc:
        print(f"configuration error: {exc}")
        return EXIT_SETUP_ERROR
    except (SQLAlchemyError, OSError) as exc:
        log_exception(logger, "activity store is unavailable", exc)
        print(f"activity store is unavailable: {exc}")
        return EXIT_SETUP_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
