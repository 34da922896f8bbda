"""
Document validation against data group JSON schemas.

Validators return a DocumentValidationResult instead of raising, so the
hashing pipeline can record a failure and carry on with sibling documents.
"""

import threading
from typing import Any, Protocol

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError

from property_oracle.core.errors import SchemaLoadError
from property_oracle.core.models import DocumentValidationResult
from property_oracle.ipld.cid import is_cid
from property_oracle.observability.logger import get_logger

from .registry import SchemaRegistry


logger = get_logger(__name__)


class DocumentValidator(Protocol):
    """Anything that can validate a document against a schema id."""

    def validate(self, document: Any, schema_id: str) -> DocumentValidationResult:
        ...


class AcceptAllValidator:
    """Validator used when schema validation is switched off."""

    def validate(self, document: Any, schema_id: str) -> DocumentValidationResult:
        return DocumentValidationResult.ok()


def _build_format_checker() -> FormatChecker:
    checker = FormatChecker()

    @checker.checks("cid")
    def check_cid(value: Any) -> bool:
        return not isinstance(value, str) or is_cid(value)

    return checker


class JsonSchemaValidator:
    """
    Draft 7 JSON Schema validator backed by a SchemaRegistry.

    Compiled validators are cached per schema id.
    """

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry
        self.format_checker = _build_format_checker()
        self._compiled: dict[str, Draft7Validator] = {}
        self._lock = threading.Lock()

    def validate(self, document: Any, schema_id: str) -> DocumentValidationResult:
        """
        Validate a document.

        Args:
            document: Resolved JSON document
            schema_id: CID of the data group schema

        Returns:
            DocumentValidationResult with one error per violation, sorted by path
        """
        try:
            validator = self._validator_for(schema_id)
        except SchemaLoadError as e:
            logger.error(f"Cannot validate against schema {schema_id}: {e}")
            return DocumentValidationResult(valid=False, errors=[{"path": "", "message": str(e)}])

        errors = sorted(validator.iter_errors(document), key=lambda e: list(map(str, e.absolute_path)))
        if not errors:
            return DocumentValidationResult.ok()

        return DocumentValidationResult(
            valid=False,
            errors=[
                {
                    "path": "/" + "/".join(str(part) for part in error.absolute_path),
                    "message": error.message,
                }
                for error in errors
            ],
        )

    def _validator_for(self, schema_id: str) -> Draft7Validator:
        with self._lock:
            validator = self._compiled.get(schema_id)
            if validator is None:
                schema = self.registry.get(schema_id)
                try:
                    Draft7Validator.check_schema(schema)
                except SchemaError as e:
                    raise SchemaLoadError(f"Schema {schema_id} is invalid: {e.message}") from e
                validator = Draft7Validator(schema, format_checker=self.format_checker)
                self._compiled[schema_id] = validator
        return validator
