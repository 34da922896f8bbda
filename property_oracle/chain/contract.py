"""
Submit contract bindings.

ABI fragments of the consensus contract plus a thin web3.py client for
the write path (calldata encoding, gas, nonce, broadcast).
"""

from typing import Any

from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from property_oracle.core.models import DataItem
from property_oracle.ipld.cid import cid_to_bytes32_hex


SUBMIT_BATCH_DATA_SIGNATURE = "submitBatchData((bytes32,bytes32,bytes32)[])"

_DATA_ITEM_COMPONENTS = [
    {"internalType": "bytes32", "name": "propertyHash", "type": "bytes32"},
    {"internalType": "bytes32", "name": "dataGroupHash", "type": "bytes32"},
    {"internalType": "bytes32", "name": "dataHash", "type": "bytes32"},
]

SUBMIT_CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {
                "components": _DATA_ITEM_COMPONENTS,
                "internalType": "struct IPropertyDataConsensus.DataItem[]",
                "name": "items",
                "type": "tuple[]",
            }
        ],
        "name": "submitBatchData",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes32", "name": "propertyHash", "type": "bytes32"},
            {"internalType": "bytes32", "name": "dataGroupHash", "type": "bytes32"},
        ],
        "name": "getCurrentFieldDataHash",
        "outputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes32", "name": "propertyHash", "type": "bytes32"},
            {"internalType": "bytes32", "name": "dataGroupHash", "type": "bytes32"},
            {"internalType": "bytes32", "name": "dataHash", "type": "bytes32"},
        ],
        "name": "getParticipantsForConsensusDataHash",
        "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes32", "name": "propertyHash", "type": "bytes32"},
            {"internalType": "bytes32", "name": "dataGroupHash", "type": "bytes32"},
            {"internalType": "bytes32", "name": "dataHash", "type": "bytes32"},
            {"internalType": "address", "name": "submitter", "type": "address"},
        ],
        "name": "hasUserSubmittedDataHash",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def to_bytes32(cid: str) -> bytes:
    """sha2-256 digest of a CID as raw bytes32."""
    return bytes.fromhex(cid_to_bytes32_hex(cid)[2:])


def encode_submit_batch_data(items: list[DataItem]) -> str:
    """
    ABI-encode a submitBatchData call.

    Args:
        items: DataItems in batch order

    Returns:
        0x-prefixed calldata
    """
    if not items:
        raise ValueError("Cannot encode an empty batch")
    tuples = [
        (to_bytes32(item.property_cid), to_bytes32(item.data_group_cid), to_bytes32(item.data_cid))
        for item in items
    ]
    selector = function_signature_to_4byte_selector(SUBMIT_BATCH_DATA_SIGNATURE)
    return "0x" + (selector + abi_encode(["(bytes32,bytes32,bytes32)[]"], [tuples])).hex()


def build_web3(rpc_url: str, timeout: float) -> Web3:
    """Web3 instance over HTTP with an explicit request timeout."""
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


class SubmitContractClient:
    """
    Write-path access to the submit contract through a web3 provider.

    Every call goes through the provider's HTTP timeout; nothing here
    blocks without bound.
    """

    def __init__(self, web3: Web3, contract_address: str):
        """
        Initialize contract client.

        Args:
            web3: Connected Web3 instance
            contract_address: Address of the submit contract
        """
        self.web3 = web3
        self.contract_address = Web3.to_checksum_address(contract_address)
        self._chain_id: int | None = None

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.web3.eth.chain_id
        return self._chain_id

    def encode_submit_batch(self, items: list[DataItem]) -> str:
        return encode_submit_batch_data(items)

    def estimate_gas(self, from_address: str, data: str) -> int:
        return self.web3.eth.estimate_gas(
            {"from": Web3.to_checksum_address(from_address), "to": self.contract_address, "data": data}
        )

    def pending_nonce(self, address: str) -> int:
        return self.web3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")

    def gas_price(self) -> int:
        return self.web3.eth.gas_price

    def fee_data(self) -> tuple[int, int]:
        """
        EIP-1559 fee suggestion from the provider.

        Returns:
            (max_fee_per_gas, max_priority_fee_per_gas) in wei
        """
        priority = self.web3.eth.max_priority_fee
        base_fee = self.web3.eth.get_block("latest").get("baseFeePerGas", 0)
        return 2 * base_fee + priority, priority

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        return Web3.to_hex(self.web3.eth.send_raw_transaction(raw_transaction))
