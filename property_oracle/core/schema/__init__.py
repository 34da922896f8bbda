"""
Schema manifest, schema registry and document validation.
"""

from .manifest import DEFAULT_SCHEMA_MANIFEST_URL, SEED_LABEL, SchemaManifest
from .registry import SchemaRegistry, directory_loader, gateway_loader
from .validator import AcceptAllValidator, DocumentValidator, JsonSchemaValidator

__all__ = [
    "SchemaManifest",
    "SchemaRegistry",
    "DocumentValidator",
    "JsonSchemaValidator",
    "AcceptAllValidator",
    "directory_loader",
    "gateway_loader",
    "DEFAULT_SCHEMA_MANIFEST_URL",
    "SEED_LABEL",
]
