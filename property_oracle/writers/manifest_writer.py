"""
Hash manifest CSV writer.

Writes one row per emitted data group document; the output is the
input manifest of the submission pipeline.
"""

import csv
from pathlib import Path

from property_oracle.core.models import HashedDocument


MANIFEST_HEADER = ["propertyCid", "dataGroupCid", "dataCid", "filePath", "uploadedAt", "processedAt"]


class HashManifestWriter:
    """
    Writes HashedDocument rows to CSV.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def write(self, documents: list[HashedDocument]) -> int:
        """
        Write the manifest, replacing any previous file.

        Returns:
            Number of rows written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(MANIFEST_HEADER)
            for doc in documents:
                writer.writerow([doc.property_cid, doc.data_group_cid, doc.data_cid, doc.file_path, "", doc.processed_at])
        return len(documents)
