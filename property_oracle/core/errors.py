"""
Typed error taxonomy for the property oracle.

Lower-level components raise these errors; the submission pipeline is the
only layer that decides whether an error is per-item recoverable or fatal
for the whole run.

Categories:
- Structural: cyclic links, unresolvable link targets, undeclared schema types
- Validation: schema mismatch of a single document
- Chain-read: RPC failure while reading consensus state
- Submission: API errors, broadcast rejections, nonce conflicts
- Configuration: missing signing material or sender address
"""

from typing import Any, Sequence


class PropertyOracleError(Exception):
    """Base class for all property oracle errors."""

    is_retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =======================
# STRUCTURAL ERRORS
# =======================

class StructuralError(PropertyOracleError):
    """A document or link graph cannot be turned into a DAG."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)
        self.message = message


class CanonicalizationError(StructuralError):
    """A value has no canonical JSON representation."""


class CyclicLinkError(StructuralError):
    """A link points back to a document still being resolved."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Cyclic link detected: " + " -> ".join(self.cycle),
            path=self.cycle[0] if self.cycle else None,
        )


class UnresolvableLinkError(StructuralError):
    """A link target does not exist or cannot be read."""

    def __init__(self, target: str, referenced_from: str | None = None):
        self.target = target
        self.referenced_from = referenced_from
        super().__init__(f"Link target not found: {target}", path=referenced_from)


class UndeclaredSchemaError(StructuralError):
    """A data group label is not declared in the schema manifest."""

    def __init__(self, label: str, path: str | None = None):
        self.label = label
        super().__init__(f"Data group label '{label}' is not declared in the schema manifest", path=path)


class PropertyIdentityError(StructuralError):
    """The property CID could not be determined."""


class InvalidCidError(PropertyOracleError):
    """A string is not a valid CID."""

    def __init__(self, value: Any, reason: str = "not a valid CID"):
        self.value = value
        super().__init__(f"Invalid CID {value!r}: {reason}")


# =======================
# SCHEMA ERRORS
# =======================

class SchemaLoadError(PropertyOracleError):
    """A schema manifest or schema document could not be loaded."""


# =======================
# INPUT ERRORS
# =======================

class ManifestError(PropertyOracleError):
    """The input manifest CSV is unreadable or malformed."""

    def __init__(self, message: str, row_number: int | None = None):
        self.row_number = row_number
        super().__init__(f"Row {row_number}: {message}" if row_number else message)


class ConfigurationError(PropertyOracleError):
    """Configuration is incomplete or contradictory."""


# =======================
# CHAIN ERRORS
# =======================

class ChainReadError(PropertyOracleError):
    """Reading consensus state from the chain failed."""

    is_retryable = True

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Chain read '{operation}' failed{detail}")


# =======================
# SUBMISSION ERRORS
# =======================

class SubmissionError(PropertyOracleError):
    """Base class for transaction submission failures."""


class ApiError(SubmissionError):
    """The oracle API answered with an error status or an invalid payload."""

    def __init__(self, message: str, status_code: int | None = None, is_retryable: bool = False):
        self.status_code = status_code
        self.is_retryable = is_retryable
        super().__init__(message)


class NetworkError(SubmissionError):
    """A transport-level failure talking to the API or RPC node."""

    def __init__(self, message: str, is_retryable: bool = True):
        self.is_retryable = is_retryable
        super().__init__(message)


class NonceError(SubmissionError):
    """The node rejected a transaction because of its nonce."""

    is_retryable = True


class TransactionError(SubmissionError):
    """A transaction was rejected or reverted."""

    def __init__(self, message: str, transaction_hash: str | None = None, reason: str | None = None):
        self.transaction_hash = transaction_hash
        self.reason = reason
        super().__init__(message)


class RetryExhaustedError(SubmissionError):
    """An operation kept failing until its retry budget ran out."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Giving up after {attempts} attempts: {last_error}")


class SubmissionCancelled(SubmissionError):
    """The run was cancelled between batches."""

    def __init__(self, next_batch_index: int):
        self.next_batch_index = next_batch_index
        super().__init__(f"Submission cancelled before batch {next_batch_index}")


class BatchSubmissionError(SubmissionError):
    """A batch failed and the remaining batches were not attempted."""

    def __init__(self, batch_index: int, cause: Exception, completed: list | None = None):
        self.batch_index = batch_index
        self.cause = cause
        self.completed = completed or []
        super().__init__(f"Batch {batch_index} failed: {cause}")
