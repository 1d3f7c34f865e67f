"""Bounded retry with multiplicative backoff.

Errors are classified as retryable by matching their text against regex
patterns, since git reports failures only as unstructured stderr.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from githarvest.config.schema import ProcessConfig

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    initial_delay: float = 0.5
    backoff_factor: float = 1.5
    retryable_patterns: Tuple[str, ...] = ()
    _compiled: Tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        compiled = tuple(re.compile(p, re.IGNORECASE) for p in self.retryable_patterns)
        object.__setattr__(self, "_compiled", compiled)

    @classmethod
    def from_config(cls, cfg: ProcessConfig) -> "RetryPolicy":
        return cls(
            max_retries=cfg.max_retries,
            initial_delay=cfg.initial_delay,
            backoff_factor=cfg.backoff_factor,
            retryable_patterns=tuple(cfg.retryable_patterns),
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number *attempt* (1-based)."""
        return self.initial_delay * self.backoff_factor ** (attempt - 1)

    def is_retryable(self, error: BaseException) -> bool:
        # No patterns configured means every failure is retried.
        if not self._compiled:
            return True
        text = str(error)
        return any(p.search(text) for p in self._compiled)


NO_RETRY = RetryPolicy(max_retries=0)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run *operation*, retrying retryable failures up to ``policy.max_retries`` times.

    The last error is re-raised once retries are exhausted or the error is
    not retryable.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt > policy.max_retries or not policy.is_retryable(exc):
                raise
            if on_retry is not None:
                on_retry(exc, attempt)
            await sleep(policy.delay_for(attempt))
            attempt += 1

