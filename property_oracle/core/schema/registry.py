"""
Schema registry: load-once cache of JSON schemas keyed by schema CID.

Schemas come from a local directory (<cid>.json) or an IPFS gateway.
"""

import json
import threading
from pathlib import Path
from typing import Any, Callable

import httpx

from property_oracle.core.errors import SchemaLoadError
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

DEFAULT_IPFS_GATEWAY = "https://gateway.pinata.cloud/ipfs"

SchemaLoader = Callable[[str], dict[str, Any]]


def directory_loader(directory: str | Path) -> SchemaLoader:
    """Loader reading <schema_id>.json files from a directory."""
    directory = Path(directory)

    def load(schema_id: str) -> dict[str, Any]:
        path = directory / f"{schema_id}.json"
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise SchemaLoadError(f"Schema {schema_id} not found in {directory}") from None
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"Cannot read schema {path}: {e}") from e

    return load


def gateway_loader(
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    timeout: float = 30.0,
    client: httpx.Client | None = None,
) -> SchemaLoader:
    """Loader fetching schemas by CID from an IPFS HTTP gateway."""
    base = gateway_url.rstrip("/")

    def load(schema_id: str) -> dict[str, Any]:
        url = f"{base}/{schema_id}"
        try:
            if client is not None:
                response = client.get(url, timeout=timeout)
            else:
                with httpx.Client(timeout=timeout) as http:
                    response = http.get(url)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SchemaLoadError(f"Failed to fetch schema {schema_id} from {base}: {e}") from e

    return load


class SchemaRegistry:
    """
    Caches schemas so each schema CID is loaded at most once per registry.
    """

    def __init__(self, loader: SchemaLoader):
        """
        Initialize schema registry.

        Args:
            loader: Callable returning the schema document for a schema CID
        """
        self.loader = loader
        self._schemas: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_directory(cls, directory: str | Path) -> "SchemaRegistry":
        return cls(directory_loader(directory))

    @classmethod
    def from_gateway(cls, gateway_url: str = DEFAULT_IPFS_GATEWAY, timeout: float = 30.0) -> "SchemaRegistry":
        return cls(gateway_loader(gateway_url, timeout))

    def get(self, schema_id: str) -> dict[str, Any]:
        """
        Get a schema, loading it on first use.

        Raises:
            SchemaLoadError: If the schema cannot be loaded
        """
        with self._lock:
            schema = self._schemas.get(schema_id)
            if schema is None:
                logger.debug(f"Loading schema {schema_id}")
                schema = self.loader(schema_id)
                if not isinstance(schema, dict):
                    raise SchemaLoadError(f"Schema {schema_id} is not a JSON object")
                self._schemas[schema_id] = schema
        return schema

    def __contains__(self, schema_id: str) -> bool:
        return schema_id in self._schemas
