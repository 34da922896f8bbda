"""
Consensus state reads.

The eligibility gate depends on the ChainStateReader protocol only; the
web3-backed implementation below talks to the submit contract's view
functions and converts between CIDs and bytes32 hashes.
"""

from typing import Any, Protocol

from web3 import Web3

from property_oracle.chain.contract import SUBMIT_CONTRACT_ABI, build_web3, to_bytes32
from property_oracle.core.errors import ChainReadError
from property_oracle.ipld.cid import bytes32_hex_to_cid
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import chain_reads_total, increment_counter


logger = get_logger(__name__)


class ChainStateReader(Protocol):
    """Read-only view of consensus state."""

    def get_current_data_cid(self, property_cid: str, data_group_cid: str) -> str | None:
        ...

    def has_user_submitted_data(
        self, property_cid: str, data_group_cid: str, data_cid: str, address: str
    ) -> bool:
        ...

    def get_participants(self, property_cid: str, data_group_cid: str, data_cid: str) -> list[str]:
        ...


class Web3ChainStateReader:
    """
    ChainStateReader backed by the submit contract's view functions.

    Any RPC failure (transport, decode, revert) is raised as ChainReadError;
    the caller decides whether that is fatal.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        contract_address: str | None = None,
        timeout: float = 10.0,
        contract: Any = None,
    ):
        """
        Initialize chain state reader.

        Args:
            rpc_url: JSON-RPC endpoint
            contract_address: Address of the submit contract
            timeout: HTTP timeout for each call, in seconds
            contract: Pre-built contract object (tests inject a fake here)
        """
        if contract is None:
            if not rpc_url or not contract_address:
                raise ValueError("rpc_url and contract_address are required when no contract is given")
            web3 = build_web3(rpc_url, timeout)
            contract = web3.eth.contract(
                address=Web3.to_checksum_address(contract_address), abi=SUBMIT_CONTRACT_ABI
            )
        self.contract = contract

    def get_current_data_cid(self, property_cid: str, data_group_cid: str) -> str | None:
        """
        Current consensus value for a (property, data group) pair.

        Returns:
            CID of the agreed data, or None when no consensus exists yet
        """
        value = self._call(
            "getCurrentFieldDataHash",
            to_bytes32(property_cid),
            to_bytes32(data_group_cid),
        )
        return bytes32_hex_to_cid(value)

    def has_user_submitted_data(
        self, property_cid: str, data_group_cid: str, data_cid: str, address: str
    ) -> bool:
        return bool(
            self._call(
                "hasUserSubmittedDataHash",
                to_bytes32(property_cid),
                to_bytes32(data_group_cid),
                to_bytes32(data_cid),
                Web3.to_checksum_address(address),
            )
        )

    def get_participants(self, property_cid: str, data_group_cid: str, data_cid: str) -> list[str]:
        return list(
            self._call(
                "getParticipantsForConsensusDataHash",
                to_bytes32(property_cid),
                to_bytes32(data_group_cid),
                to_bytes32(data_cid),
            )
        )

    def _call(self, function_name: str, *args: Any) -> Any:
        try:
            result = getattr(self.contract.functions, function_name)(*args).call()
        except Exception as e:
            increment_counter(chain_reads_total, operation=function_name, outcome="error")
            logger.debug(f"{function_name} failed: {e}")
            raise ChainReadError(function_name, e) from e

        increment_counter(chain_reads_total, operation=function_name, outcome="success")
        return result
