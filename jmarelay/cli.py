"""CLI entry point for the JMA XML relay.

Commands:
    jmarelay watch   - watch directories and relay moved-in bulletins
    jmarelay relay   - relay the given files once
    jmarelay status  - outcome counts from the audit log
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click

from jmarelay.config import (
    AUDIT_LOG_PATH,
    ENDPOINT,
    HTTP_TIMEOUT,
    RETRY_CEILING,
    WATCH_DIRS,
)

logger = logging.getLogger("jmarelay")


@click.group()
@click.version_option(package_name="jmarelay")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """jmarelay - relay JMA seismic XML bulletins to an HTTP sink as JSON."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
    )


def _validate_watch_dirs(directories: tuple[str, ...]) -> None:
    """Fail fast if any watched directory is missing or unreadable."""
    if not directories:
        click.echo("Error: at least one --directory is required.", err=True)
        sys.exit(1)
    for directory in directories:
        if not Path(directory).is_dir():
            click.echo(f"Error: Directory does not exist: {directory}", err=True)
            sys.exit(1)
        if not os.access(directory, os.R_OK | os.X_OK):
            click.echo(f"Error: Directory is not accessible: {directory}", err=True)
            sys.exit(1)


# ------------------------------------------------------------------
# jmarelay watch
# ------------------------------------------------------------------


@cli.command()
@click.option(
    "--directory",
    "-d",
    "directories",
    multiple=True,
    default=tuple(WATCH_DIRS),
    show_default=True,
    help="Directory to watch (repeatable).",
)
@click.option("--endpoint", "-e", default=ENDPOINT, show_default=True, help="HTTP sink endpoint.")
def watch(directories: tuple[str, ...], endpoint: str) -> None:
    """Watch directories and relay every moved-in bulletin."""
    _validate_watch_dirs(directories)

    from jmarelay.errors import WatchError

    try:
        asyncio.run(_watch_async(directories, endpoint))
    except WatchError as exc:
        logger.critical("Watch failed: %s", exc)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("Stopped.")


async def _watch_async(directories: tuple[str, ...], endpoint: str) -> None:
    from functools import partial

    from jmarelay.convert.adapter import RecordConverter
    from jmarelay.integrations.sink import SinkPublisher
    from jmarelay.relay.audit import RelayAuditLog
    from jmarelay.relay.dispatcher import EventDispatcher
    from jmarelay.relay.pipeline import process_file
    from jmarelay.relay.watcher import watch_directories

    audit_log = RelayAuditLog(AUDIT_LOG_PATH)
    converter = RecordConverter()

    async with SinkPublisher(endpoint, timeout=HTTP_TIMEOUT, retry_ceiling=RETRY_CEILING) as publisher:
        dispatcher = EventDispatcher(
            partial(process_file, converter=converter, publisher=publisher, audit_log=audit_log)
        )
        click.echo(f"Watching {', '.join(directories)} (Ctrl+C to stop)…")
        click.echo(f"  Endpoint: {endpoint}")
        await watch_directories([Path(d) for d in directories], dispatcher)


# ------------------------------------------------------------------
# jmarelay relay
# ------------------------------------------------------------------


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--endpoint", "-e", default=ENDPOINT, show_default=True, help="HTTP sink endpoint.")
def relay(files: tuple[Path, ...], endpoint: str) -> None:
    """Relay the given bulletin files once, concurrently."""
    asyncio.run(_relay_async(files, endpoint))


async def _relay_async(files: tuple[Path, ...], endpoint: str) -> None:
    from datetime import UTC, datetime
    from functools import partial

    from jmarelay.convert.adapter import RecordConverter
    from jmarelay.integrations.sink import SinkPublisher
    from jmarelay.relay.audit import RelayAuditLog
    from jmarelay.relay.dispatcher import EventDispatcher
    from jmarelay.relay.pipeline import process_file
    from jmarelay.schemas.relay import FileEvent, RelayEvent, RelayStatus

    audit_log = RelayAuditLog(AUDIT_LOG_PATH)
    converter = RecordConverter()
    results: dict[Path, RelayEvent] = {}

    async with SinkPublisher(endpoint, timeout=HTTP_TIMEOUT, retry_ceiling=RETRY_CEILING) as publisher:
        unit = partial(process_file, converter=converter, publisher=publisher, audit_log=audit_log)

        async def relay_one(event: FileEvent) -> None:
            results[event.path] = await unit(event)

        dispatcher = EventDispatcher(relay_one)
        paths = [f.absolute() for f in files]
        for path in paths:
            dispatcher.dispatch(FileEvent(path=path, detected_at=datetime.now(UTC)))
        await dispatcher.drain()

    for path in paths:
        r = results.get(path)
        if r is None:
            click.echo(f"  {path.name}: {RelayStatus.ERROR.value}")
            continue
        line = f"  {r.file_name}: {r.status.value}"
        if r.error_message:
            line += f" ({r.error_message})"
        click.echo(line)

    published = sum(1 for r in results.values() if r.status == RelayStatus.PUBLISHED)
    click.echo(f"Done. Files: {len(paths)}, Published: {published}, Failed: {len(paths) - published}")


# ------------------------------------------------------------------
# jmarelay status
# ------------------------------------------------------------------


@cli.command()
@click.option("--hours", default=24, show_default=True, help="Lookback period in hours.")
def status(hours: int) -> None:
    """Show relay outcome counts for the recent period."""
    from datetime import UTC, datetime, timedelta

    from jmarelay.relay.audit import RelayAuditLog

    audit_log = RelayAuditLog(AUDIT_LOG_PATH)
    counts = audit_log.summarize(since=datetime.now(UTC) - timedelta(hours=hours))

    click.echo(f"Relay Status ({hours}h)")
    for s, n in counts.items():
        click.echo(f"  {s.value + ':':<20}{n}")
