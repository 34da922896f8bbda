"""
Output writers: artifacts, manifests, reports and the transaction ledger.
"""

from .artifact_writer import ArtifactWriter
from .ledger_writer import LEDGER_HEADER, TransactionLedger
from .manifest_writer import MANIFEST_HEADER, HashManifestWriter
from .report_writer import CsvReporter

__all__ = [
    "ArtifactWriter",
    "HashManifestWriter",
    "CsvReporter",
    "TransactionLedger",
    "LEDGER_HEADER",
    "MANIFEST_HEADER",
]
