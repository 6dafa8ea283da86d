from __future__ import annotations

"""Retry policy for outbound provider requests."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from voicerelay.config.settings import RetrySettings
from voicerelay.services.logging import get_logger
from voicerelay.services.metrics import metrics


DEFAULT_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 1
    backoff_seconds: float = 1.5
    retry_statuses: frozenset[int] = DEFAULT_RETRY_STATUSES
    retry_transport_errors: bool = True

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(attempts=max(1, settings.attempts), backoff_seconds=settings.backoff_seconds)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the zero-based `attempt` failed."""
        return self.backoff_seconds ** attempt


NO_RETRY = RetryPolicy()


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    policy: RetryPolicy = NO_RETRY,
    step: str,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, repeating on retryable statuses and transport errors.

    The final response is returned whatever its status; the final transport
    error is re-raised.
    """
    logger = get_logger(step=step)
    for attempt in range(policy.attempts):
        last = attempt == policy.attempts - 1
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            if last or not policy.retry_transport_errors:
                raise
            logger.warning("provider_retry", attempt=attempt + 1, reason=type(exc).__name__)
        else:
            if last or resp.status_code not in policy.retry_statuses:
                return resp
            logger.warning("provider_retry", attempt=attempt + 1, status=resp.status_code)
        metrics.inc("provider_retries_total", labels={"step": step})
        await sleep(policy.delay(attempt))
    raise RuntimeError("retry loop exited without a result")
