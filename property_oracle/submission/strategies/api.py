"""
Centralized API submission.

Each batch is built as an unsigned transaction and handed to the oracle
service, which signs and broadcasts it and answers with the transaction
hash.
"""

import httpx

from property_oracle.core.errors import ApiError, NetworkError, RetryExhaustedError
from property_oracle.core.models import Batch, BatchSubmissionResult
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import increment_counter, submission_retries_total
from property_oracle.submission.retry import RetryPolicy, api_retry_policy, is_nonce_error, retry_with_policy
from property_oracle.utils.validation import ZERO_ADDRESS, normalize_https_url

from .base import TransactionSubmitter
from .tx_builder import UnsignedTransactionBuilder


logger = get_logger(__name__)

SUBMIT_PATH = "/oracles/submit-data"


class CentralizedApiSubmitter(TransactionSubmitter):
    """Submit batches through the oracle HTTP API."""

    name = "api"

    def __init__(
        self,
        domain: str,
        api_key: str,
        oracle_key_id: str,
        builder: UnsignedTransactionBuilder,
        from_address: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep=None,
    ):
        """
        Initialize API submitter.

        Args:
            domain: API base URL or bare domain (upgraded to https)
            api_key: Value of the x-api-key header
            oracle_key_id: Key the service signs with
            builder: Unsigned transaction builder
            from_address: Sender recorded in the unsigned transactions
            timeout: HTTP timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
            retry_policy: Retry budget (defaults to api_retry_policy())
            sleep: Sleep function for backoff
        """
        self.base_url = normalize_https_url(domain, "domain")
        self.api_key = api_key
        self.oracle_key_id = oracle_key_id
        self.builder = builder
        self.retry_policy = retry_policy or api_retry_policy()
        self._sleep = sleep
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

        if from_address:
            self.from_address = from_address
        else:
            logger.warning(f"No from address configured for API submission, using {ZERO_ADDRESS}")
            self.from_address = ZERO_ADDRESS
        self._nonce = 0

    @property
    def url(self) -> str:
        return f"{self.base_url}{SUBMIT_PATH}"

    def prepare(self) -> None:
        self._nonce = self.builder.starting_nonce(self.from_address)

    def finalize(self) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client and not self.client.is_closed:
            self.client.close()

    def submit_batch(self, batch: Batch) -> BatchSubmissionResult:
        transaction = self.builder.build(batch.items, self.from_address, self._nonce)
        body = {"oracle_key_id": self.oracle_key_id, "unsigned_transaction": [transaction]}

        kwargs = {"on_retry": self._on_retry}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        try:
            payload = retry_with_policy(lambda: self._post(body), self.retry_policy, **kwargs)
        except RetryExhaustedError as e:
            raise NetworkError(
                f"Failed to submit batch {batch.index + 1} after {e.attempts} attempts: {e.last_error}",
                is_retryable=False,
            ) from e

        self._nonce += 1
        tx_hash = payload["transaction_hash"]
        logger.info(f"Batch {batch.index + 1} submitted successfully. Transaction hash: {tx_hash}")
        return BatchSubmissionResult(
            batch_index=batch.index,
            transaction_hash=tx_hash,
            items_submitted=batch.size,
            items=batch.items,
            strategy=self.name,
        )

    def _post(self, body: dict) -> dict:
        try:
            response = self.client.post(
                self.url,
                json=body,
                headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"API request failed: {e}") from e

        if not response.is_success:
            raise ApiError(
                f"API request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError(f"API response is not JSON: {e}", status_code=response.status_code) from e

        if not isinstance(payload, dict) or not payload.get("transaction_hash"):
            raise ApiError("API response missing transaction_hash", status_code=response.status_code)
        return payload

    def _on_retry(self, attempt: int, error: Exception, delay: float) -> None:
        error_class = "nonce" if is_nonce_error(error) else "transient"
        increment_counter(submission_retries_total, strategy=self.name, error_class=error_class)
