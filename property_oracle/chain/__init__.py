"""
Chain access: contract bindings, consensus reads, eligibility and wallets.
"""

from .cache import ConsensusCache
from .consensus import ChainStateReader, Web3ChainStateReader
from .contract import SUBMIT_CONTRACT_ABI, SubmitContractClient, encode_submit_batch_data
from .eligibility import EligibilityGate
from .gas import GasPricePolicy
from .wallet import derive_address, load_wallet

__all__ = [
    "ConsensusCache",
    "ChainStateReader",
    "Web3ChainStateReader",
    "SUBMIT_CONTRACT_ABI",
    "SubmitContractClient",
    "encode_submit_batch_data",
    "EligibilityGate",
    "GasPricePolicy",
    "derive_address",
    "load_wallet",
]
