"""Fire-and-forget HTTP POST transport.

``post`` returns immediately with an asyncio task that resolves to a
``PostOutcome``; the task never raises.  Callers attach a single
continuation with ``add_done_callback``.  There is no retry and no
buffering: a failed send is dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Set

import httpx
import structlog

from telemetry_relay.config import RelaySettings
from telemetry_relay.exceptions import TransportFailure

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PostOutcome:
    """Result of one POST: a status code, or an error."""

    url: str
    status_code: Optional[int] = None
    error: Optional[TransportFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HttpTransport:
    """Sends POST requests on a shared ``httpx.AsyncClient``."""

    def __init__(self, settings: RelaySettings) -> None:
        self._timeout = settings.http_timeout_seconds
        self._dry_run = settings.dry_run
        self._client: httpx.AsyncClient | None = None
        self._pending: Set[asyncio.Task[PostOutcome]] = set()

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        if not self._dry_run and self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

    async def close(self) -> None:
        """Wait for in-flight posts, then close the client."""
        await self.drain()
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending)

    @property
    def pending(self) -> int:
        return len(self._pending)

    # -- public API ---------------------------------------------------------

    def post(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        content: Optional[str] = None,
        json: Optional[Any] = None,
    ) -> "asyncio.Task[PostOutcome]":
        """Schedule a POST to *url* and return its task.

        Raises ``TransportFailure`` synchronously when the transport has
        not been started.
        """
        if not self._dry_run and self._client is None:
            raise TransportFailure(
                "HttpTransport.start() must be called before sending", url=url
            )
        task = asyncio.get_running_loop().create_task(
            self._send(url, params=params, content=content, json=json)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    # -- internal -----------------------------------------------------------

    async def _send(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, str]],
        content: Optional[str],
        json: Optional[Any],
    ) -> PostOutcome:
        if self._dry_run:
            logger.info("dry_run_post", url=url, params=dict(params or {}), json=json)
            return PostOutcome(url=url)

        if self._client is None:
            return PostOutcome(
                url=url, error=TransportFailure("Transport closed", url=url)
            )
        try:
            response = await self._client.post(
                url, params=params, content=content, json=json
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("post_network_error", url=url, error=str(exc))
            return PostOutcome(
                url=url, error=TransportFailure(f"Request failed: {exc}", url=url)
            )

        if not response.is_success:
            logger.warning(
                "post_unexpected_status",
                url=url,
                status=response.status_code,
                body=response.text[:500],
            )
            return PostOutcome(
                url=url,
                status_code=response.status_code,
                error=TransportFailure(
                    f"Unexpected status code [{response.status_code}]",
                    status_code=response.status_code,
                    url=url,
                ),
            )

        logger.info("post_completed", url=url, status=response.status_code)
        return PostOutcome(url=url, status_code=response.status_code)
