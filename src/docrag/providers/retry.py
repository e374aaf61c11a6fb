"""Retry policy for throttled provider calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docrag.errors import InvalidConfiguration, ProviderUnavailable, RateLimited

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RetryPolicy:
    """Exponential backoff applied to `RateLimited` only."""

    max_attempts: int = 5
    initial_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise InvalidConfiguration("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise InvalidConfiguration("Retry delays must not be negative")


def _wait_for(policy: RetryPolicy) -> Callable[[RetryCallState], float]:
    backoff = wait_exponential(multiplier=policy.initial_delay, max=policy.max_delay)

    def wait(state: RetryCallState) -> float:
        delay = backoff(state)
        exc = state.outcome.exception() if state.outcome else None
        if isinstance(exc, RateLimited) and exc.retry_after is not None:
            delay = max(delay, min(exc.retry_after, policy.max_delay))
        return delay

    return wait


def _log_retry(state: RetryCallState) -> None:
    LOGGER.warning(
        "Provider throttled, retry %s after %.2fs",
        state.attempt_number,
        state.next_action.sleep if state.next_action else 0.0,
    )


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` retrying on `RateLimited`.

    Other failures propagate on the first attempt. When every attempt is
    throttled the last `RateLimited` is chained under a `ProviderUnavailable`.
    """
    policy = policy or RetryPolicy()
    retrying = Retrying(
        retry=retry_if_exception_type(RateLimited),
        stop=stop_after_attempt(policy.max_attempts),
        wait=_wait_for(policy),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=False,
    )
    try:
        return retrying(fn)
    except RetryError as exc:
        last = exc.last_attempt.exception()
        raise ProviderUnavailable(
            f"Still rate limited after {policy.max_attempts} attempts"
        ) from last
