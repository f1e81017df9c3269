"""Filesystem watcher feeding moved-in files to the dispatcher.

Uses the ``watchdog`` library (inotify on Linux). Only files *moved into*
a watched directory count as arrivals: bulletin writers deposit a file by
renaming it into place, so a create/write event may still refer to a
partially written file.

The Observer runs in a background thread and only enqueues events onto
the asyncio loop; a single coordinating coroutine hands each one to the
dispatcher.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from watchdog.events import FileMovedEvent, FileSystemEventHandler
from watchdog.observers.api import BaseObserver

from jmarelay.errors import WatchError
from jmarelay.relay.dispatcher import EventDispatcher
from jmarelay.schemas.relay import FileEvent

logger = logging.getLogger(__name__)

# How often the coordinating loop checks that the observer is still alive
HEALTH_CHECK_SECONDS = 1.0


class MovedIntoHandler(FileSystemEventHandler):
    """Turns "moved into directory" notifications into FileEvents.

    With full inotify events, a file renamed in from an unwatched location
    arrives as a move with an empty source path, and a file renamed out
    arrives with an empty destination; only the destination side matters.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory or not event.dest_path:
            return
        file_event = FileEvent(path=Path(event.dest_path).absolute(), detected_at=datetime.now(UTC))
        self._loop.call_soon_threadsafe(self._queue.put_nowait, file_event)


def default_observer() -> BaseObserver:
    """An inotify observer reporting unmatched moves as move events."""
    from watchdog.observers.inotify import InotifyObserver

    return InotifyObserver(generate_full_events=True)


def _observer_healthy(observer: BaseObserver) -> bool:
    return observer.is_alive() and all(emitter.is_alive() for emitter in observer.emitters)


async def watch_directories(
    dirs: Sequence[Path],
    dispatcher: EventDispatcher,
    *,
    observer_factory: Callable[[], BaseObserver] = default_observer,
) -> None:
    """Watch ``dirs`` for moved-in files and dispatch each one.

    Runs until cancelled.

    Raises:
        WatchError: If a watch cannot be registered or the observer dies.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[FileEvent] = asyncio.Queue()
    handler = MovedIntoHandler(loop=loop, queue=queue)

    observer = observer_factory()
    try:
        observer.start()
        for directory in dirs:
            logger.info("Watch %s", directory)
            try:
                observer.schedule(handler, str(directory), recursive=False, event_filter=[FileMovedEvent])
            except OSError as exc:
                raise WatchError(f"Cannot watch {directory}: {exc}") from exc

        while True:
            try:
                file_event = await asyncio.wait_for(queue.get(), timeout=HEALTH_CHECK_SECONDS)
            except TimeoutError:
                file_event = None
            if file_event is not None:
                logger.info("File detected: %s", file_event.path)
                dispatcher.dispatch(file_event)
            if not _observer_healthy(observer):
                raise WatchError("Filesystem observer stopped unexpectedly")
    finally:
        observer.stop()
        if observer.is_alive():
            observer.join()
        logger.info("Watcher stopped.")
