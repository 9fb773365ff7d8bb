"""Caller-side retry for room-provisioning adapter calls.

Provisioning effects wrap create_space / create_room / attach_child in
retry_with_backoff. The privileged action gateway never retries: one
gateway call is one authorization decision and one audit record, however
many times the adapter is attempted inside its effect.

Attempts = 1 + RetryPolicy.max_retries. The default schedule waits 200ms
then 400ms between attempts.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from src.shared.errors import AdapterFailureError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Validation, not-found and authorization errors are never transient.
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    AdapterFailureError,
    ConnectionError,
    TimeoutError,
)


class RetryExhaustedError(AdapterFailureError):
    """Every attempt failed with a transient error.

    Keeps the adapter name of the last failure so the HTTP layer still maps
    it to adapter_failure / 502.
    """

    def __init__(self, attempts: int, last_error: Exception) -> None:
        adapter = last_error.adapter if isinstance(last_error, AdapterFailureError) else "external"
        super().__init__(adapter, f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 0.2
    multiplier: float = 2.0
    max_delay: float = 2.0

    @property
    def attempts(self) -> int:
        return 1 + max(self.max_retries, 0)

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (0-indexed)."""
        return min(self.base_delay * self.multiplier**attempt, self.max_delay)


async def retry_with_backoff(  # noqa: UP047
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    retriable_exceptions: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
    operation: str = "adapter call",
) -> T:
    """Await fn(), retrying transient failures per `policy`.

    Raises:
        RetryExhaustedError: When the last allowed attempt also failed.
        Exception: Anything not in `retriable_exceptions`, on first sight.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await fn()
        except retriable_exceptions as exc:
            if attempt + 1 >= policy.attempts:
                logger.warning(
                    "%s failed on final attempt %d/%d: %s",
                    operation,
                    attempt + 1,
                    policy.attempts,
                    exc,
                )
                raise RetryExhaustedError(attempts=policy.attempts, last_error=exc) from exc
            delay = policy.delay_for_attempt(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                operation,
                attempt + 1,
                policy.attempts,
                delay,
                exc,
            )
            await asyncio.sleep(delay)
            attempt += 1
