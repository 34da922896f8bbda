"""
Direct signed submission.

Signs submitBatchData transactions locally and broadcasts them through
the RPC node. The nonce is tracked locally from the node's pending count
and re-synced whenever the node reports a nonce conflict.
"""

from typing import Any

from property_oracle.chain.contract import SubmitContractClient
from property_oracle.chain.gas import GasPricePolicy, with_gas_buffer
from property_oracle.core.models import Batch, BatchSubmissionResult
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import increment_counter, submission_retries_total
from property_oracle.submission.retry import RetryPolicy, direct_retry_policy, is_nonce_error, retry_with_policy

from .base import TransactionSubmitter


logger = get_logger(__name__)


class DirectSignedSubmitter(TransactionSubmitter):
    """
    Submit batches as locally signed transactions.

    The result is returned as soon as the node accepts the transaction;
    block number and gas used are filled in later by status polling.
    """

    name = "direct"

    def __init__(
        self,
        client: SubmitContractClient,
        signer: Any,
        gas_policy: GasPricePolicy | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep=None,
    ):
        """
        Initialize direct submitter.

        Args:
            client: Contract client bound to an RPC node
            signer: eth_account LocalAccount (anything with .address and .sign_transaction)
            gas_policy: Fee selection
            retry_policy: Retry budget (defaults to direct_retry_policy())
            sleep: Sleep function for backoff (tests pass a recorder)
        """
        self.client = client
        self.signer = signer
        self.gas_policy = gas_policy or GasPricePolicy()
        self.retry_policy = retry_policy or direct_retry_policy()
        self._sleep = sleep
        self._nonce: int | None = None

    @property
    def address(self) -> str:
        return self.signer.address

    def prepare(self) -> None:
        self.synchronize_nonce()

    def synchronize_nonce(self) -> None:
        """Reset the local nonce to the node's pending count."""
        try:
            self._nonce = self.client.pending_nonce(self.address)
            logger.info(f"Synchronized nonce with blockchain: {self._nonce}")
        except Exception as e:
            # Next attempt fetches it again
            logger.error(f"Failed to synchronize nonce: {e}")
            self._nonce = None

    def submit_batch(self, batch: Batch) -> BatchSubmissionResult:
        data = self.client.encode_submit_batch(batch.items)

        kwargs = {"on_retry": self._on_retry}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        tx_hash = retry_with_policy(lambda: self._send(data), self.retry_policy, **kwargs)

        logger.info(f"Batch {batch.index} accepted: {tx_hash}")
        return BatchSubmissionResult(
            batch_index=batch.index,
            transaction_hash=tx_hash,
            items_submitted=batch.size,
            items=batch.items,
            strategy=self.name,
        )

    def _send(self, data: str) -> str:
        if self._nonce is None:
            self._nonce = self.client.pending_nonce(self.address)
            logger.info(f"Initial nonce set to: {self._nonce}")
        nonce = self._nonce

        estimate = self.client.estimate_gas(self.address, data)
        logger.info(f"Estimated gas for batch: {estimate}")

        transaction = {
            "to": self.client.contract_address,
            "data": data,
            "value": 0,
            "gas": with_gas_buffer(estimate),
            "nonce": nonce,
            "chainId": self.client.chain_id,
        }
        fees = self.gas_policy.fee_fields(self.client.fee_data)
        if "maxFeePerGas" in fees:
            transaction["type"] = 2
        transaction.update(fees)

        logger.debug(f"Sending transaction with nonce {nonce}")
        signed = self.signer.sign_transaction(transaction)
        tx_hash = self.client.send_raw_transaction(signed.raw_transaction)

        # Nonce is consumed only once the node accepted the transaction
        self._nonce = nonce + 1
        return tx_hash

    def _on_retry(self, attempt: int, error: Exception, delay: float) -> None:
        if is_nonce_error(error):
            increment_counter(submission_retries_total, strategy=self.name, error_class="nonce")
            logger.warning("Nonce error detected, synchronizing with blockchain state")
            self.synchronize_nonce()
        else:
            increment_counter(submission_retries_total, strategy=self.name, error_class="transient")
