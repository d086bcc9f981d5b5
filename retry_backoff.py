"""
Bounded retries with exponential backoff around an unreliable call.
"""
import logging
import time
from typing import Any, Callable, Iterator, Tuple, Type

logger = logging.getLogger(__name__)


class CallExhaustedError(Exception):
    """Every attempt failed; `last_error` is the final underlying failure"""

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(f"call failed after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts


def iter_backoff_delays(initial_delay: float, max_retries: int) -> Iterator[float]:
    """Yields the wait before each retry: initial, 2x, 4x, ..."""
    delay = initial_delay
    for _ in range(max_retries):
        yield delay
        delay *= 2


def call_with_backoff(
    call: Callable[[Any], Any],
    payload: Any,
    max_retries: int = 2,
    initial_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> Any:
    """Runs `call(payload)`, retrying up to `max_retries` times.

    The payload is forwarded as-is and the first successful result is returned
    as-is. Exceptions outside `retry_on` are not retried. When the budget is
    spent, raises CallExhaustedError chained from the last failure.
    """
    delays = iter_backoff_delays(initial_delay, max(0, max_retries))
    attempts = 0
    while True:
        attempts += 1
        try:
            return call(payload)
        except retry_on as e:
            delay = next(delays, None)
            if delay is None:
                logger.error("%s failed after %d attempt(s): %s", description, attempts, e)
                raise CallExhaustedError(e, attempts) from e
            logger.warning(
                "Retrying %s in %.2fs (attempt %d failed): %s",
                description, delay, attempts, e,
            )
            sleep(delay)
