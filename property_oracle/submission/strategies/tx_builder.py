"""
Unsigned transaction builder.

Produces EIP-1474 transaction objects (all quantities 0x-hex) for the
submitBatchData call. Shared by the API strategy, which hands them to the
oracle service for signing, and the unsigned export strategy.
"""

from typing import Any

from property_oracle.chain.contract import SubmitContractClient, encode_submit_batch_data
from property_oracle.chain.gas import GasPricePolicy, with_gas_buffer
from property_oracle.core.models import DataItem
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

DEFAULT_CHAIN_ID = 137
FALLBACK_GAS_LIMIT = 500_000


def to_hex_quantity(value: int) -> str:
    """
    Examples:
        >>> to_hex_quantity(0)
        '0x0'
        >>> to_hex_quantity(600000)
        '0x927c0'
    """
    return hex(int(value))


class UnsignedTransactionBuilder:
    """
    Builds unsigned submitBatchData transactions.

    The provider client is optional: without it gas falls back to a fixed
    limit, fees to the fallback EIP-1559 values, and nonces to the
    configured starting nonce.
    """

    def __init__(
        self,
        contract_address: str,
        gas_policy: GasPricePolicy | None = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        client: SubmitContractClient | None = None,
    ):
        self.contract_address = contract_address
        self.gas_policy = gas_policy or GasPricePolicy()
        self.chain_id = chain_id
        self.client = client

    def estimate_gas(self, items: list[DataItem], from_address: str) -> int:
        """Gas limit for a batch: provider estimate plus 20%, else the fallback."""
        if self.client is None:
            return FALLBACK_GAS_LIMIT
        try:
            estimate = self.client.estimate_gas(from_address, encode_submit_batch_data(items))
        except Exception as e:
            logger.warning(f"Gas estimation failed, using fallback {FALLBACK_GAS_LIMIT}: {e}")
            return FALLBACK_GAS_LIMIT
        return with_gas_buffer(estimate)

    def starting_nonce(self, from_address: str, default: int = 0) -> int:
        """Pending nonce of from_address, or default when the provider is unreachable."""
        if self.client is None:
            return default
        try:
            nonce = self.client.pending_nonce(from_address)
        except Exception as e:
            logger.warning(f"Failed to get nonce from provider, using default {default}: {e}")
            return default
        logger.info(f"Starting nonce from provider: {nonce}")
        return nonce

    def fee_fields(self) -> dict[str, int]:
        fee_data = self.client.fee_data if self.client is not None else None
        try:
            return self.gas_policy.fee_fields(fee_data)
        except Exception as e:
            logger.warning(f"Failed to fetch fee data from provider, using fallback: {e}")
            return self.gas_policy.fee_fields(None)

    def build(self, items: list[DataItem], from_address: str, nonce: int, gas: int | None = None) -> dict[str, Any]:
        """
        Build one EIP-1474 transaction object.

        Args:
            items: Batch items, in order
            from_address: Sender address
            nonce: Transaction nonce
            gas: Gas limit (estimated when omitted)

        Returns:
            Transaction dict with hex quantities and a "type" of 0x0 or 0x2
        """
        gas_limit = gas if gas is not None else self.estimate_gas(items, from_address)
        transaction: dict[str, Any] = {
            "from": from_address,
            "to": self.contract_address,
            "gas": to_hex_quantity(gas_limit),
            "value": "0x0",
            "data": encode_submit_batch_data(items),
            "nonce": to_hex_quantity(nonce),
        }

        fees = self.fee_fields()
        if "gasPrice" in fees:
            transaction["type"] = "0x0"
            transaction["gasPrice"] = to_hex_quantity(fees["gasPrice"])
        else:
            transaction["type"] = "0x2"
            transaction["maxFeePerGas"] = to_hex_quantity(fees["maxFeePerGas"])
            transaction["maxPriorityFeePerGas"] = to_hex_quantity(fees["maxPriorityFeePerGas"])
        return transaction
