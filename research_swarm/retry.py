"""Generic async retry combinator with pluggable backoff."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from research_swarm.logging import get_logger

log = get_logger("research_swarm.retry")

T = TypeVar("T")

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def exponential_backoff(base_seconds: float = 1.0, factor: float = 2.0) -> Backoff:
    """Delay after failed attempt ``n`` (counted from 0): ``base * factor**n``."""

    def delay(attempt: int) -> float:
        return base_seconds * factor**attempt

    return delay


@dataclass
class RetryResult(Generic[T]):
    """Outcome of :func:`retry`: either ``value`` or the last error, plus the attempt count."""

    attempts: int
    value: T | None = None
    error: BaseException | None = None
    errors: list[BaseException] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int,
    backoff: Backoff,
    *,
    sleep: Sleep = asyncio.sleep,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> RetryResult[T]:
    """Call ``fn`` up to ``max_attempts`` times, strictly one after another.

    Failures matching ``retry_on`` are recorded and followed by ``backoff(attempt)``
    seconds of sleep, except after the last attempt. Exhaustion is reported through
    the returned :class:`RetryResult` instead of raising. Cancellation propagates.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    errors: list[BaseException] = []
    for attempt in range(max_attempts):
        try:
            value = await fn()
        except retry_on as e:
            errors.append(e)
            if attempt + 1 < max_attempts:
                delay = backoff(attempt)
                log.debug("retry.backoff", attempt=attempt + 1, delay_s=delay, error=str(e))
                await sleep(delay)
            continue
        return RetryResult(attempts=attempt + 1, value=value, errors=errors)

    return RetryResult(attempts=max_attempts, error=errors[-1], errors=errors)
