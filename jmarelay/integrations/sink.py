"""Async publisher delivering JSON payloads to the HTTP sink.

The sink is normally a Fluent Bit ``http`` input, which routes records by
the request path used as the tag (``jma.earthquake``, ``jma.tsunami``,
``jma.eew``).
"""

import logging

import httpx

from jmarelay.errors import DeliveryError, PublishError
from jmarelay.relay.retry import RETRY_CEILING, retry_with_backoff
from jmarelay.schemas.relay import Classification

logger = logging.getLogger(__name__)

ROUTE_PREFIX = "jma."
DEFAULT_TIMEOUT = 5.0


def build_url(endpoint: str, classification: Classification) -> str:
    """Concatenate the endpoint and the per-classification route.

    Raises:
        ValueError: For ``Classification.UNRECOGNIZED``, which has no route.
    """
    if classification == Classification.UNRECOGNIZED:
        raise ValueError("Unrecognized bulletins have no sink route")
    return f"{endpoint}{ROUTE_PREFIX}{classification.value}"


class SinkPublisher:
    """Publishes payloads to the sink with retry and backoff.

    One instance (and its connection pool) is shared by every in-flight
    file.

    Usage::

        async with SinkPublisher("http://fluentbit:9880/") as publisher:
            await publisher.publish(payload, Classification.QUAKE)
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retry_ceiling: float = RETRY_CEILING,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_options: dict | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._retry_ceiling = retry_ceiling
        self._retry_options = retry_options or {}
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def __aenter__(self) -> "SinkPublisher":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def url_for(self, classification: Classification) -> str:
        return build_url(self._endpoint, classification)

    async def publish(self, payload: bytes, classification: Classification) -> None:
        """POST one payload, retrying transient failures.

        Request construction happens once, outside the retry loop; a failure
        there is a caller bug and propagates immediately.

        Raises:
            ValueError: If ``classification`` has no route.
            PublishError: If delivery still fails when the retry ceiling is hit.
        """
        url = self.url_for(classification)
        request = self._client.build_request(
            "POST",
            url,
            content=payload,
            headers={"Content-Type": "application/json"},
        )
        logger.info("Publish JSON type %s to %s (%d bytes)", classification.value, url, len(payload))
        logger.debug("Publish body: %s", payload.decode("utf-8", errors="replace"))

        async def _attempt() -> None:
            try:
                response = await self._client.send(request)
            except httpx.HTTPError as exc:
                logger.warning("Publish error occurred: %s", exc)
                raise DeliveryError(f"{type(exc).__name__}: {exc}") from exc
            await response.aclose()
            if response.status_code > 299:
                logger.warning("Publish response error: HTTP %d returned", response.status_code)
                raise DeliveryError(f"invalid response status code: {response.status_code}")

        try:
            await retry_with_backoff(
                _attempt,
                retry_on=(DeliveryError,),
                ceiling=self._retry_ceiling,
                **self._retry_options,
            )
        except DeliveryError as exc:
            logger.error("Publish permanently failed: %s", exc)
            raise PublishError(str(exc)) from exc

        logger.info("Publish succeeded: %s", url)
