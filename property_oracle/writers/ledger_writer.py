"""
Append-only transaction ledger.

One CSV row per submitted batch, written as soon as the batch is
accepted. Status updates rewrite the whole file; rows are never edited
in place.
"""

import csv
import os
import tempfile
import threading
from pathlib import Path

from property_oracle.core.errors import ManifestError
from property_oracle.core.models import BatchSubmissionResult, TransactionRecord
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

LEDGER_HEADER = ["transactionHash", "batchIndex", "itemCount", "timestamp", "status"]


class TransactionLedger:
    """
    CSV ledger of submitted transactions.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record(self, result: BatchSubmissionResult) -> TransactionRecord | None:
        """
        Append a pending row for a submitted batch.

        Results without a transaction hash (unsigned export) are not recorded.

        Returns:
            The written record, or None when nothing was written
        """
        if not result.transaction_hash:
            return None
        record = TransactionRecord.from_result(result)
        self.append(record)
        return record

    def append(self, record: TransactionRecord) -> None:
        with self._lock:
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if is_new:
                    writer.writerow(LEDGER_HEADER)
                writer.writerow(self._to_row(record))
                f.flush()
        logger.debug(f"Ledger: batch {record.batch_index} -> {record.transaction_hash} ({record.status})")

    def read(self) -> list[TransactionRecord]:
        """
        Read all ledger rows.

        Raises:
            ManifestError: If the ledger is unreadable or malformed
        """
        if not self.path.exists():
            return []
        records = []
        try:
            with open(self.path, newline="", encoding="utf-8") as f:
                for row_number, row in enumerate(csv.DictReader(f), start=1):
                    try:
                        records.append(
                            TransactionRecord(
                                transaction_hash=row["transactionHash"],
                                batch_index=int(row["batchIndex"]),
                                item_count=int(row["itemCount"]),
                                timestamp=row["timestamp"],
                                status=row["status"],
                            )
                        )
                    except (KeyError, TypeError, ValueError) as e:
                        raise ManifestError(f"Invalid ledger row in {self.path}: {e}", row_number=row_number) from e
        except OSError as e:
            raise ManifestError(f"Cannot read ledger {self.path}: {e}") from e
        return records

    def rewrite(self, records: list[TransactionRecord]) -> None:
        """Replace the ledger with the given records atomically."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".ledger-", suffix=".csv", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                    writer = csv.writer(f)
                    writer.writerow(LEDGER_HEADER)
                    for record in records:
                        writer.writerow(self._to_row(record))
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

    @staticmethod
    def _to_row(record: TransactionRecord) -> list:
        return [record.transaction_hash, record.batch_index, record.item_count, record.timestamp, record.status]
