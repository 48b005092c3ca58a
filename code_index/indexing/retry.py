"""
Retry with exponential backoff and jitter for write-path network calls.
"""

import random
import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar
import logging

from ..config import RETRY_MAX_ATTEMPTS, RETRY_BASE_DELAY, RETRY_MAX_DELAY, RETRY_JITTER
from ..exceptions import TransportError

T = TypeVar('T')

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a failing operation is retried"""
    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay: float = RETRY_BASE_DELAY
    max_delay: float = RETRY_MAX_DELAY
    jitter: float = RETRY_JITTER

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("Retry delays and jitter must not be negative")

    def delay_for(self, attempt: int, rng: random.Random = None) -> float:
        """Wait before retrying after the given (1-based) failed attempt"""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        spread = delay * self.jitter
        if spread:
            delay += (rng or random).uniform(0, spread)
        return delay


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0, max_delay=0, jitter=0)


def retry_call(operation: Callable[[], T], policy: RetryPolicy,
               retryable: Tuple[Type[BaseException], ...] = (TransportError,),
               describe: str = "operation",
               sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Run ``operation`` until it succeeds or the policy gives up.

    Only exceptions listed in ``retryable`` trigger another attempt; anything
    else propagates immediately. When the attempts are exhausted the last
    retryable exception is raised.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except retryable as e:
            if attempt >= policy.max_attempts:
                logger.error(f"{describe} failed after {attempt} attempts: {e}")
                raise
            wait_time = policy.delay_for(attempt)
            logger.warning(
                f"{describe} failed ({e}), retry {attempt}/{policy.max_attempts - 1} "
                f"in {wait_time:.2f}s"
            )
            sleep(wait_time)
            attempt += 1
