"""
Submission strategies.

- direct: sign locally and broadcast through the RPC node
- api: hand unsigned transactions to the oracle HTTP API
- unsigned_export: write unsigned transactions to JSON (dry-run)
"""

from .api import CentralizedApiSubmitter
from .base import TransactionSubmitter
from .direct import DirectSignedSubmitter
from .export import UnsignedExportSubmitter
from .tx_builder import UnsignedTransactionBuilder

__all__ = [
    "TransactionSubmitter",
    "DirectSignedSubmitter",
    "CentralizedApiSubmitter",
    "UnsignedExportSubmitter",
    "UnsignedTransactionBuilder",
]
