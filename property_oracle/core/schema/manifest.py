"""
Schema manifest: maps data group labels to their schema CIDs.

The manifest is an explicitly constructed object with a load-once
lifecycle. Build one per run and pass it to the components that need it.
"""

import json
import threading
from pathlib import Path
from typing import Any

import httpx

from property_oracle.core.errors import SchemaLoadError
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

DEFAULT_SCHEMA_MANIFEST_URL = "https://lexicon.elephant.xyz/json-schemas/schema-manifest.json"
DATA_GROUP_TYPE = "dataGroup"
SEED_LABEL = "Seed"


class SchemaManifest:
    """
    Label -> {ipfsCid, type} lookup.

    Expected manifest format:
    ```json
    {
      "Seed": {"ipfsCid": "bafkrei...", "type": "dataGroup"},
      "County": {"ipfsCid": "bafkrei...", "type": "dataGroup"},
      "address": {"ipfsCid": "bafkrei...", "type": "class"}
    }
    ```
    """

    def __init__(
        self,
        entries: dict[str, dict[str, Any]] | None = None,
        url: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        """
        Initialize schema manifest.

        Args:
            entries: Already-loaded manifest entries
            url: Where to fetch the manifest on first load (when entries is None)
            timeout: HTTP timeout in seconds
            client: Optional httpx client (tests inject a MockTransport client)
        """
        if entries is None and url is None:
            raise ValueError("SchemaManifest needs either entries or a url")
        self.url = url
        self.timeout = timeout
        self._client = client
        self._entries = entries
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: str | Path) -> "SchemaManifest":
        """Load a manifest from a local JSON file."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"Cannot read schema manifest {path}: {e}") from e
        if not isinstance(entries, dict):
            raise SchemaLoadError(f"Schema manifest {path} must be a JSON object")
        return cls(entries=entries)

    @classmethod
    def from_url(cls, url: str = DEFAULT_SCHEMA_MANIFEST_URL, timeout: float = 30.0) -> "SchemaManifest":
        return cls(url=url, timeout=timeout)

    def load(self) -> "SchemaManifest":
        """Fetch the manifest if it has not been loaded yet. Safe to call repeatedly."""
        with self._lock:
            if self._entries is None:
                self._entries = self._fetch()
        return self

    @property
    def entries(self) -> dict[str, dict[str, Any]]:
        if self._entries is None:
            self.load()
        return self._entries

    def data_group_cid(self, label: str) -> str | None:
        """
        Get the schema CID of a data group label.

        Returns:
            The CID, or None if the label is unknown or not a data group
        """
        item = self.entries.get(label)
        if not item or item.get("type") != DATA_GROUP_TYPE:
            return None
        return item.get("ipfsCid")

    def data_group_labels(self) -> list[str]:
        return [label for label, item in self.entries.items() if item.get("type") == DATA_GROUP_TYPE]

    @staticmethod
    def is_data_group_root(document: Any) -> bool:
        """True when a document has exactly the keys "label" and "relationships"."""
        return (
            isinstance(document, dict)
            and set(document) == {"label", "relationships"}
            and isinstance(document["label"], str)
            and isinstance(document["relationships"], dict)
        )

    def _fetch(self) -> dict[str, dict[str, Any]]:
        logger.info(f"Fetching schema manifest from {self.url}")
        try:
            if self._client is not None:
                response = self._client.get(self.url, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(self.url)
            response.raise_for_status()
            entries = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SchemaLoadError(f"Failed to load schema manifest from {self.url}: {e}") from e

        if not isinstance(entries, dict):
            raise SchemaLoadError(f"Schema manifest at {self.url} must be a JSON object")
        data_groups = sum(1 for item in entries.values() if item.get("type") == DATA_GROUP_TYPE)
        logger.info(f"Loaded schema manifest with {len(entries)} entries ({data_groups} dataGroups)")
        return entries
