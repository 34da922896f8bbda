"""
Durable CSV error and warning reports.

Every excluded document, skipped item and failed batch is written here
with a human-readable reason, so nothing fails silently.
"""

import csv
import threading
from pathlib import Path

from property_oracle.core.models import utc_now_iso


ERROR_HEADER = [
    "property_cid",
    "data_group_cid",
    "file_path",
    "error_path",
    "error_message",
    "currentValue",
    "timestamp",
]
WARNING_HEADER = ["property_cid", "data_group_cid", "file_path", "reason", "timestamp"]


class CsvReporter:
    """
    Appends error and warning rows to two CSV files.

    Files are created with their header on first use; rows are flushed
    as they are written.
    """

    def __init__(self, error_csv_path: str | Path, warning_csv_path: str | Path):
        """
        Initialize CSV reporter.

        Args:
            error_csv_path: Path of the error report
            warning_csv_path: Path of the warning report
        """
        self.error_csv_path = Path(error_csv_path)
        self.warning_csv_path = Path(warning_csv_path)
        self.error_count = 0
        self.warning_count = 0
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Truncate both reports and write their headers."""
        for path, header in ((self.error_csv_path, ERROR_HEADER), (self.warning_csv_path, WARNING_HEADER)):
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(header)
        self.error_count = 0
        self.warning_count = 0

    def log_error(
        self,
        property_cid: str,
        data_group_cid: str,
        file_path: str,
        error_message: str,
        error_path: str = "",
        current_value: str = "",
    ) -> None:
        """Append one row to the error report."""
        self._append(
            self.error_csv_path,
            ERROR_HEADER,
            [property_cid, data_group_cid, file_path, error_path, error_message, current_value, utc_now_iso()],
        )
        self.error_count += 1

    def log_warning(self, property_cid: str, data_group_cid: str, file_path: str, reason: str) -> None:
        """Append one row to the warning report."""
        self._append(
            self.warning_csv_path,
            WARNING_HEADER,
            [property_cid, data_group_cid, file_path, reason, utc_now_iso()],
        )
        self.warning_count += 1

    def _append(self, path: Path, header: list[str], row: list[str]) -> None:
        with self._lock:
            is_new = not path.exists() or path.stat().st_size == 0
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if is_new:
                    writer.writerow(header)
                writer.writerow(row)
                f.flush()
