"""
Artifact packaging for hashed documents.

Artifacts are laid out as `<propertyCid>/<cid>.json` (binary leaves keep
their file suffix) inside either a directory or a ZIP archive.
"""

import zipfile
from pathlib import Path, PurePosixPath

from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)


class ArtifactWriter:
    """
    Writes CID-named artifacts into a directory or a ZIP archive.

    Use as a context manager so the archive is closed on exit:

        with ArtifactWriter("out.zip") as writer:
            writer.write(property_cid, f"{cid}.json", content)
    """

    def __init__(self, destination: str | Path, archive: bool | None = None):
        """
        Initialize artifact writer.

        Args:
            destination: Output directory or .zip path
            archive: Force ZIP output; defaults to True when destination ends in .zip
        """
        self.destination = Path(destination)
        self.archive = archive if archive is not None else self.destination.suffix.lower() == ".zip"
        self._zip: zipfile.ZipFile | None = None
        self._written: set[str] = set()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def open(self) -> None:
        if self.archive:
            self.destination.parent.mkdir(parents=True, exist_ok=True)
            self._zip = zipfile.ZipFile(self.destination, "w", compression=zipfile.ZIP_DEFLATED)
        else:
            self.destination.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    @property
    def written(self) -> int:
        return len(self._written)

    def write(self, property_cid: str, name: str, content: bytes) -> str:
        """
        Write one artifact. Identical names are written once.

        Returns:
            Relative artifact path, e.g. "bafkrei.../bagu....json"
        """
        relative = str(PurePosixPath(property_cid) / name)
        if relative in self._written:
            return relative

        if self.archive:
            if self._zip is None:
                raise RuntimeError("ArtifactWriter is not open")
            self._zip.writestr(relative, content)
        else:
            target = self.destination / property_cid / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        self._written.add(relative)
        logger.debug(f"Wrote artifact {relative}")
        return relative
