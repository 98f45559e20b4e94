from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, TypeVar

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    With the defaults an operation is attempted 3 times, waiting 1000ms after
    the first failure and 2000ms after the second.
    """

    max_attempts: int = 3
    initial_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delays_ms(self) -> List[float]:
        """Delays applied between consecutive attempts (len == max_attempts - 1)."""
        out: List[float] = []
        delay = float(self.initial_delay_ms)
        for _ in range(self.max_attempts - 1):
            out.append(delay)
            delay *= self.backoff_multiplier
        return out


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation_name: str = "operation",
    logger: logging.Logger | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Run `operation` under `policy`, returning its first successful result.

    The sleep between attempts only suspends the calling task, so events for
    other pairs keep flowing while this one backs off.

    Raises:
        The last exception raised by `operation` once all attempts fail.
    """
    log = logger or logging.getLogger("retry")
    delays = policy.delays_ms()
    last_exc: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_exc = exc
            log.warning(
                "%s failed on attempt %s/%s: %s",
                operation_name,
                attempt,
                policy.max_attempts,
                exc,
            )
            if attempt < policy.max_attempts:
                await sleep(delays[attempt - 1] / 1000.0)

    log.error("%s failed after %s attempts. Last error: %s", operation_name, policy.max_attempts, last_exc)
    if last_exc is None:
        raise RuntimeError(f"{operation_name} was never attempted")
    raise last_exc
