"""
Retry policy for submission strategies.

A RetryPolicy bundles the attempt budget, the backoff schedule and the
retryable-error predicate; retry_with_policy runs an operation under it.
Strategies pick a policy instead of nesting their own try/except loops.
"""

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from property_oracle.core.errors import ApiError, NetworkError, NonceError, RetryExhaustedError
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

NONCE_ERROR_MARKERS = (
    "nonce too low",
    "nonce too high",
    "nonce has already been used",
    "replacement transaction underpriced",
    "nonce",
)
NONCE_EXTRA_DELAY = 3.0


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes:
        max_attempts: Total attempts, including the first
        backoff: Seconds to wait after failed attempt ``attempt`` (0-based)
        is_retryable: Whether an error may be retried at all
    """

    max_attempts: int
    backoff: Callable[[int, Exception], float]
    is_retryable: Callable[[Exception], bool]

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


def is_nonce_error(error: BaseException) -> bool:
    """
    True when an error reports a nonce conflict.

    Examples:
        >>> is_nonce_error(ValueError("replacement transaction underpriced"))
        True
        >>> is_nonce_error(ValueError("execution reverted"))
        False
    """
    if isinstance(error, NonceError):
        return True
    message = str(error).lower()
    return any(marker in message for marker in NONCE_ERROR_MARKERS)


def retry_with_policy(
    operation: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> T:
    """
    Run operation until it succeeds, fails non-retryably, or the budget runs out.

    Args:
        operation: Zero-argument callable
        policy: Retry policy
        sleep: Sleep function (tests pass a recorder)
        on_retry: Called with (attempt, error, delay) before each wait

    Returns:
        The operation's result

    Raises:
        The original error when it is not retryable
        RetryExhaustedError: When every attempt failed with a retryable error
    """
    last_error: Exception | None = None
    for attempt in range(policy.max_attempts):
        try:
            return operation()
        except Exception as e:
            last_error = e
            if not policy.is_retryable(e):
                raise

            logger.warning(f"Attempt {attempt + 1}/{policy.max_attempts} failed: {e}")
            if attempt < policy.max_attempts - 1:
                delay = policy.backoff(attempt, e)
                if on_retry is not None:
                    on_retry(attempt, e, delay)
                logger.info(f"Retrying in {delay:.1f}s...")
                sleep(delay)

    raise RetryExhaustedError(policy.max_attempts, last_error) from last_error


def _exponential(base_delay: float, multiplier: float) -> Callable[[int, Exception], float]:
    def backoff(attempt: int, error: Exception) -> float:
        delay = base_delay * multiplier ** attempt
        if is_nonce_error(error):
            delay += NONCE_EXTRA_DELAY
        return delay

    return backoff


def api_retry_policy(max_attempts: int = 7, base_delay: float = 1.0) -> RetryPolicy:
    """
    Policy for the centralized API.

    Error responses are final unless they mention a nonce; transport
    failures and malformed responses are retried.
    """

    def is_retryable(error: Exception) -> bool:
        if isinstance(error, ApiError):
            return error.is_retryable or is_nonce_error(error)
        if isinstance(error, NetworkError):
            return error.is_retryable
        return True

    return RetryPolicy(max_attempts=max_attempts, backoff=_exponential(base_delay, 2.0), is_retryable=is_retryable)


def direct_retry_policy(max_retries: int = 3, retry_delay: float = 1.0, multiplier: float = 2.0) -> RetryPolicy:
    """
    Policy for direct signed submission: max_retries retries after the
    first attempt. Nonce conflicts and transport failures are retried;
    reverts and invalid transactions are not.
    """

    def is_retryable(error: Exception) -> bool:
        if is_nonce_error(error):
            return True
        if isinstance(error, NetworkError):
            return error.is_retryable
        return isinstance(error, (OSError, ConnectionError, TimeoutError))

    return RetryPolicy(
        max_attempts=max_retries + 1,
        backoff=_exponential(retry_delay, multiplier),
        is_retryable=is_retryable,
    )
