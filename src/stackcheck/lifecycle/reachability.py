"""Reachability polling for deployed stacks.

Ingress, DNS and TLS settle some time after the deploy wait returns, so the
endpoint is probed repeatedly with a fixed delay until it answers or the
attempt budget runs out.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import httpx

from ..errors import Unreachable
from ..shared import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 150
DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_TIMEOUT_SECONDS = 5.0


def is_success(status_code: int) -> bool:
    """Default acceptance check: any 2xx status."""
    return 200 <= status_code < 300


@dataclass
class ProbeResult:
    """Result of a successful probe."""

    endpoint: str
    body: str
    attempts: int
    status_code: int
    elapsed_seconds: float = 0.0


class ReachabilityPoller:
    """Poll an HTTP endpoint until it serves content."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        accept: Callable[[int], bool] = is_success,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize poller.

        Args:
            max_attempts: Maximum number of GET requests.
            interval_seconds: Seconds between attempts.
            timeout_seconds: Timeout for each HTTP request.
            accept: Predicate on the status code deciding success.
            transport: Optional httpx transport (tests use MockTransport).
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.accept = accept
        self.transport = transport

    async def probe(
        self,
        endpoint: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ProbeResult:
        """GET ``endpoint`` until an accepted response arrives.

        Exactly ``max_attempts`` requests are made before giving up.

        Args:
            endpoint: URL to fetch.
            on_attempt: Optional callback called with (attempt, max_attempts,
                error) after each failed attempt.

        Returns:
            ProbeResult with the body of the accepted response.

        Raises:
            Unreachable: If no attempt was accepted.
        """
        start = datetime.now()
        last_error: str | None = None

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await client.get(endpoint)
                    if self.accept(response.status_code):
                        elapsed = (datetime.now() - start).total_seconds()
                        logger.info(
                            "endpoint reachable",
                            endpoint=endpoint,
                            attempts=attempt,
                            elapsed_seconds=round(elapsed, 2),
                        )
                        return ProbeResult(
                            endpoint=endpoint,
                            body=response.text,
                            attempts=attempt,
                            status_code=response.status_code,
                            elapsed_seconds=elapsed,
                        )
                    last_error = f"HTTP {response.status_code}"
                except httpx.ConnectError:
                    last_error = "Connection refused"
                except httpx.TimeoutException:
                    last_error = "Request timeout"
                except httpx.HTTPError as e:
                    last_error = str(e) or type(e).__name__

                logger.debug(
                    "endpoint not ready, retrying",
                    endpoint=endpoint,
                    attempt=attempt,
                    error=last_error,
                )
                if on_attempt:
                    on_attempt(attempt, self.max_attempts, last_error)

                if attempt < self.max_attempts:
                    await asyncio.sleep(self.interval_seconds)

        raise Unreachable(endpoint=endpoint, attempts=self.max_attempts, last_error=last_error)

    def probe_sync(
        self,
        endpoint: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ProbeResult:
        """Synchronous wrapper for probe."""
        return asyncio.run(self.probe(endpoint, on_attempt))
