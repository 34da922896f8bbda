"""
Manifest CSV reader for the submission pipeline.

Each data row of the manifest becomes one DataItem candidate.
"""

import csv
from pathlib import Path

from property_oracle.core.errors import ManifestError
from property_oracle.core.models import DataItem
from property_oracle.utils.validation import ValidationError, validate_cid


REQUIRED_COLUMNS = ("propertyCid", "dataGroupCid", "dataCid")
TIMESTAMP_COLUMNS = ("uploadedAt", "processedAt")


class ManifestReader:
    """
    Reads `propertyCid,dataGroupCid,dataCid,filePath,uploadedAt` manifests.

    Blank lines are skipped. Any malformed row makes the whole manifest
    unreadable, because transaction indices must map back to rows exactly.
    """

    def __init__(self, encoding: str = "utf-8-sig"):
        self.encoding = encoding

    def read(self, file_path: str | Path) -> list[DataItem]:
        """
        Read a manifest into DataItems, preserving row order.

        Args:
            file_path: Path to the CSV manifest

        Returns:
            DataItems in manifest order, each carrying its 1-based row number

        Raises:
            ManifestError: If the file is missing or not UTF-8, lacks required
                columns, or contains an invalid CID
        """
        path = Path(file_path)
        try:
            with open(path, newline="", encoding=self.encoding) as f:
                reader = csv.DictReader(f)
                header = [h.strip() for h in (reader.fieldnames or [])]
                missing = [col for col in REQUIRED_COLUMNS if col not in header]
                if missing:
                    raise ManifestError(f"{path} is missing required columns: {', '.join(missing)}")
                reader.fieldnames = header

                items = []
                for row_number, row in enumerate(reader, start=1):
                    if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                        continue
                    items.append(self._to_item(row, row_number))
        except OSError as e:
            raise ManifestError(f"Cannot read manifest {path}: {e}") from e
        except csv.Error as e:
            raise ManifestError(f"Malformed CSV in {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ManifestError(f"Manifest {path} is not valid {self.encoding}: {e}") from e

        return items

    @staticmethod
    def _to_item(row: dict[str, str], row_number: int) -> DataItem:
        try:
            cids = {col: validate_cid(row.get(col) or "", field_name=col) for col in REQUIRED_COLUMNS}
        except ValidationError as e:
            raise ManifestError(str(e), row_number=row_number) from e

        uploaded_at = next((row[col].strip() for col in TIMESTAMP_COLUMNS if (row.get(col) or "").strip()), None)
        return DataItem(
            property_cid=cids["propertyCid"],
            data_group_cid=cids["dataGroupCid"],
            data_cid=cids["dataCid"],
            file_path=(row.get("filePath") or "").strip() or None,
            uploaded_at=uploaded_at,
            row_number=row_number,
        )
