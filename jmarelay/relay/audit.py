"""Append-only JSONL record of relay outcomes.

One line per file that reached a terminal outcome. The log is a record,
not a queue: nothing is ever replayed from it. Units run concurrently, so
appends are serialised and performed off the event loop.
"""

import asyncio
import logging
import threading
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from jmarelay.schemas.relay import RelayEvent, RelayStatus

logger = logging.getLogger(__name__)


class RelayAuditLog:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: RelayEvent) -> None:
        line = event.model_dump_json() + "\n"
        with self._lock, self._path.open("a", encoding="utf-8") as f:
            f.write(line)

    async def record(self, event: RelayEvent) -> None:
        """Append ``event`` from a worker thread so the loop never blocks on disk."""
        await asyncio.to_thread(self.append, event)
        logger.debug("Audit: %s status=%s", event.file_name, event.status)

    def _events(self) -> Iterator[RelayEvent]:
        if not self._path.exists():
            return
        with self._path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield RelayEvent.model_validate_json(line)
                except ValidationError:
                    # A crash mid-write leaves a truncated last line
                    logger.warning("Skipping unreadable audit line %d in %s", lineno, self._path)

    def summarize(self, *, since: datetime | None = None) -> dict[RelayStatus, int]:
        """Count outcomes per status, every status present (zero if unseen).

        Args:
            since: Only count outcomes recorded after this time.
        """
        counts = dict.fromkeys(RelayStatus, 0)
        for event in self._events():
            if since is not None and event.timestamp <= since:
                continue
            counts[event.status] += 1
        return counts
