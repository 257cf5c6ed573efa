"""
Retry policy and deadline for extraction strategies.

retry_with_backoff runs an async strategy up to max_attempts times, sleeping
attempt * base_delay between tries, and re-raises the last error. A Deadline
shared by every attempt makes sure the backoff never outlives the overall budget.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from resume_intake.core.errors import ErrorCode, ParserError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deadline:
    """Absolute expiry on the monotonic clock."""

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        self.expires_at = time.monotonic() + timeout_ms / 1000.0

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, stage: str = "") -> None:
        if self.expired:
            raise timeout_error(self.timeout_ms, stage)


def timeout_error(timeout_ms: float, stage: str = "") -> ParserError:
    where = f" during {stage}" if stage else ""
    return ParserError(
        ErrorCode.TIMEOUT_EXCEEDED,
        f"Processing exceeded {int(timeout_ms)}ms{where}",
        context={"timeout_ms": timeout_ms, "stage": stage},
    )


async def retry_with_backoff(
    strategy: Callable[[int], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay: float,
    deadline: Optional[Deadline] = None,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> Tuple[T, int]:
    """
    Run strategy(attempt) until it succeeds or attempts run out.

    Args:
        strategy: async callable receiving the 1-based attempt number
        max_attempts: total tries (retry_attempts + 1)
        base_delay: seconds; the wait after attempt n is n * base_delay
        deadline: optional overall budget checked before each attempt and each sleep
        should_retry: predicate; returning False re-raises immediately
        on_retry: called with (attempt, error) before sleeping

    Returns:
        (result, attempts_used)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        if deadline is not None:
            deadline.check("retry")
        try:
            result = await strategy(attempt)
            return result, attempt
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if isinstance(e, ParserError) and e.code == ErrorCode.TIMEOUT_EXCEEDED:
                raise
            if should_retry is not None and not should_retry(e):
                raise
            if attempt >= max_attempts:
                break

            delay = attempt * base_delay
            if deadline is not None and delay >= deadline.remaining():
                logger.debug("Backoff of %.3fs would exceed the deadline; giving up after attempt %d", delay, attempt)
                raise timeout_error(deadline.timeout_ms, "retry backoff") from e
            if on_retry is not None:
                on_retry(attempt, e)
            logger.debug("Attempt %d/%d failed (%s); retrying in %.3fs", attempt, max_attempts, e, delay)
            await asyncio.sleep(delay)

    assert last_error is not None
    raise last_error


async def run_with_deadline(awaitable: Awaitable[T], timeout_ms: float, stage: str = "") -> T:
    """Race awaitable against timeout_ms; expiry cancels it and raises TIMEOUT_EXCEEDED."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError as e:
        raise timeout_error(timeout_ms, stage) from e
