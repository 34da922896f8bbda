"""
Unit tests for retry policies.
"""

import pytest

from property_oracle.core.errors import ApiError, NetworkError, RetryExhaustedError, TransactionError
from property_oracle.submission.retry import (
    NONCE_EXTRA_DELAY,
    RetryPolicy,
    api_retry_policy,
    direct_retry_policy,
    is_nonce_error,
    retry_with_policy,
)


class Flaky:
    """Callable failing with the given errors before succeeding"""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.mark.unit
class TestIsNonceError:
    """Tests for nonce error detection"""

    @pytest.mark.parametrize("message", [
        "nonce too low",
        "Nonce too high",
        "nonce has already been used",
        "replacement transaction underpriced: nonce 5",
        "invalid nonce",
    ])
    def test_nonce_messages(self, message):
        assert is_nonce_error(ValueError(message)) is True

    def test_other_messages(self):
        assert is_nonce_error(ValueError("execution reverted: not an oracle")) is False


@pytest.mark.unit
class TestRetryWithPolicy:
    """Tests for retry_with_policy"""

    def test_success_first_try(self, no_sleep):
        op = Flaky([])
        assert retry_with_policy(op, direct_retry_policy(), sleep=no_sleep.append) == "ok"
        assert op.calls == 1
        assert no_sleep == []

    def test_non_retryable_propagates_immediately(self, no_sleep):
        op = Flaky([TransactionError("execution reverted")])
        with pytest.raises(TransactionError):
            retry_with_policy(op, direct_retry_policy(), sleep=no_sleep.append)
        assert op.calls == 1

    def test_exhaustion_wraps_last_error(self, no_sleep):
        errors = [ConnectionError(f"down {i}") for i in range(4)]
        with pytest.raises(RetryExhaustedError) as exc_info:
            retry_with_policy(Flaky(errors), direct_retry_policy(max_retries=3), sleep=no_sleep.append)
        assert exc_info.value.attempts == 4
        assert "down 3" in str(exc_info.value.last_error)
        assert len(no_sleep) == 3

    def test_on_retry_called_before_each_wait(self, no_sleep):
        seen = []
        op = Flaky([ConnectionError("a"), ConnectionError("b")])
        retry_with_policy(
            op,
            direct_retry_policy(),
            sleep=no_sleep.append,
            on_retry=lambda attempt, error, delay: seen.append((attempt, str(error), delay)),
        )
        assert seen == [(0, "a", 1.0), (1, "b", 2.0)]

    def test_policy_requires_an_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0, backoff=lambda a, e: 0, is_retryable=lambda e: True)


@pytest.mark.unit
class TestDirectRetryPolicy:
    """Tests for direct submission backoff"""

    def test_exponential_backoff(self, no_sleep):
        op = Flaky([TimeoutError("t")] * 3)
        retry_with_policy(op, direct_retry_policy(retry_delay=1.0, multiplier=2.0), sleep=no_sleep.append)
        assert no_sleep == [1.0, 2.0, 4.0]

    def test_nonce_errors_retried_with_extra_delay(self, no_sleep):
        op = Flaky([ValueError("nonce too low"), ValueError("nonce too low")])
        retry_with_policy(op, direct_retry_policy(retry_delay=1.0), sleep=no_sleep.append)
        assert op.calls == 3
        assert no_sleep == [1.0 + NONCE_EXTRA_DELAY, 2.0 + NONCE_EXTRA_DELAY]

    def test_value_errors_without_nonce_not_retried(self, no_sleep):
        op = Flaky([ValueError("insufficient funds for gas")])
        with pytest.raises(ValueError):
            retry_with_policy(op, direct_retry_policy(), sleep=no_sleep.append)
        assert op.calls == 1


@pytest.mark.unit
class TestApiRetryPolicy:
    """Tests for API submission backoff"""

    def test_seven_attempts(self, no_sleep):
        op = Flaky([NetworkError("reset")] * 7)
        with pytest.raises(RetryExhaustedError) as exc_info:
            retry_with_policy(op, api_retry_policy(), sleep=no_sleep.append)
        assert exc_info.value.attempts == 7
        assert no_sleep == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0]

    def test_api_error_not_retried(self, no_sleep):
        op = Flaky([ApiError("API request failed with status 401: unauthorized", status_code=401)])
        with pytest.raises(ApiError):
            retry_with_policy(op, api_retry_policy(), sleep=no_sleep.append)
        assert op.calls == 1

    def test_nonce_api_error_retried_with_extra_delay(self, no_sleep):
        op = Flaky([ApiError("API request failed with status 400: nonce too low", status_code=400)])
        assert retry_with_policy(op, api_retry_policy(), sleep=no_sleep.append) == "ok"
        assert no_sleep == [1.0 + NONCE_EXTRA_DELAY]

    def test_unexpected_errors_retried(self, no_sleep):
        op = Flaky([RuntimeError("boom")])
        assert retry_with_policy(op, api_retry_policy(), sleep=no_sleep.append) == "ok"

    def test_non_retryable_network_error(self, no_sleep):
        op = Flaky([NetworkError("bad url", is_retryable=False)])
        with pytest.raises(NetworkError):
            retry_with_policy(op, api_retry_policy(), sleep=no_sleep.append)
