"""
Unsigned export (dry-run).

Nothing is broadcast: every batch becomes an unsigned EIP-1474
transaction and the whole list is written as one JSON array when the run
finishes, ready to be signed elsewhere.
"""

import json
from pathlib import Path

from property_oracle.core.errors import ConfigurationError
from property_oracle.core.models import Batch, BatchSubmissionResult
from property_oracle.observability.logger import get_logger
from property_oracle.utils.validation import ValidationError, validate_address

from .base import TransactionSubmitter
from .tx_builder import UnsignedTransactionBuilder


logger = get_logger(__name__)


class UnsignedExportSubmitter(TransactionSubmitter):
    """Collect unsigned transactions and write them to a JSON file."""

    name = "unsigned_export"

    def __init__(
        self,
        builder: UnsignedTransactionBuilder,
        from_address: str | None,
        output_path: str | Path,
        starting_nonce: int = 0,
    ):
        if not from_address:
            raise ConfigurationError(
                "Unsigned export needs a sender: pass a from address or configure a key/keystore"
            )
        try:
            self.from_address = validate_address(from_address, "from_address")
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.builder = builder
        self.output_path = Path(output_path)
        self.starting_nonce = starting_nonce
        self.transactions: list[dict] = []
        self._nonce = starting_nonce

    def prepare(self) -> None:
        self.transactions = []
        self._nonce = self.builder.starting_nonce(self.from_address, default=self.starting_nonce)

    def submit_batch(self, batch: Batch) -> BatchSubmissionResult:
        logger.info(f"Generating unsigned transaction for batch {batch.index + 1} ({batch.size} items)")
        transaction = self.builder.build(batch.items, self.from_address, self._nonce)
        self.transactions.append(transaction)
        self._nonce += 1
        return BatchSubmissionResult(
            batch_index=batch.index,
            items_submitted=batch.size,
            items=batch.items,
            strategy=self.name,
        )

    def finalize(self) -> None:
        self.write()

    def write(self) -> Path:
        """Write the collected transactions as a JSON array."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, "w", encoding="utf-8") as f:
            json.dump(self.transactions, f, indent=2)
        logger.info(f"Unsigned transactions JSON written to: {self.output_path} ({len(self.transactions)} transactions)")
        return self.output_path
