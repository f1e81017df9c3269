"""Per-file relay unit: read, classify, convert, publish.

Each step runs strictly in order. A failure at any step is logged with the
offending path and ends the unit; nothing is retried at this level.
"""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from jmarelay.convert.adapter import Converter
from jmarelay.errors import ConversionError, PublishError
from jmarelay.integrations.sink import SinkPublisher
from jmarelay.relay.audit import RelayAuditLog
from jmarelay.relay.classifier import classify
from jmarelay.schemas.relay import Classification, FileEvent, RelayEvent, RelayStatus

logger = logging.getLogger(__name__)


def _outcome(
    path: Path,
    classification: Classification,
    status: RelayStatus,
    *,
    endpoint_url: str = "",
    payload_size: int = 0,
    error: str = "",
) -> RelayEvent:
    return RelayEvent(
        timestamp=datetime.now(UTC),
        source_path=str(path),
        file_name=path.name,
        classification=classification,
        status=status,
        endpoint_url=endpoint_url,
        payload_size_bytes=payload_size,
        error_message=error,
    )


async def _relay(
    path: Path,
    classification: Classification,
    converter: Converter,
    publisher: SinkPublisher,
) -> RelayEvent:
    try:
        raw = await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        logger.error("ReadFile error for %s: %s", path, exc)
        return _outcome(path, classification, RelayStatus.READ_ERROR, error=str(exc))

    if classification == Classification.UNRECOGNIZED:
        logger.warning("No classification matches %s, skipping", path.name)
        return _outcome(path, classification, RelayStatus.UNRECOGNIZED, error="no match")

    try:
        payload = converter.convert(classification, raw, filename=path.name)
    except ConversionError as exc:
        logger.error("Convert error for %s: %s", path, exc)
        return _outcome(path, classification, RelayStatus.CONVERSION_ERROR, error=str(exc))

    url = publisher.url_for(classification)
    try:
        await publisher.publish(payload, classification)
    except PublishError as exc:
        logger.error("Delivery of %s failed: %s", path, exc)
        return _outcome(
            path,
            classification,
            RelayStatus.DELIVERY_FAILED,
            endpoint_url=url,
            payload_size=len(payload),
            error=str(exc),
        )

    return _outcome(
        path, classification, RelayStatus.PUBLISHED, endpoint_url=url, payload_size=len(payload)
    )


async def process_file(
    event: FileEvent,
    *,
    converter: Converter,
    publisher: SinkPublisher,
    audit_log: RelayAuditLog | None = None,
) -> RelayEvent:
    """Relay a single file to the sink.

    Never raises for a failure of this file: anything unexpected is logged
    and reported with status ``error``.

    Args:
        event: The file to relay.
        converter: Turns raw bulletin bytes into a payload.
        publisher: Delivers the payload.
        audit_log: If given, the terminal outcome is appended to it.

    Returns:
        The RelayEvent recording what happened.
    """
    path = event.path
    classification = classify(path.name)
    logger.info("Process file: %s", path)

    try:
        relay_event = await _relay(path, classification, converter, publisher)
    except Exception as exc:
        logger.exception("Failed to relay %s: %s", path.name, exc)
        relay_event = _outcome(
            path, classification, RelayStatus.ERROR, error=f"{type(exc).__name__}: {exc}"
        )

    if audit_log is not None:
        try:
            await audit_log.record(relay_event)
        except OSError:
            logger.exception("Could not write audit record for %s", path)

    return relay_event
