"""
Core data models for the property oracle.

All models use Pydantic for runtime validation and type safety.
"""

from .batch import Batch
from .data_item import DataItem
from .eligibility import EligibilityResult, SkippedItem, SkipReason
from .hashing import DocumentFailure, HashedDocument, HashRunResult
from .submission_run import SubmissionRunResult
from .transaction_record import BatchSubmissionResult, TransactionRecord, TransactionStatus, utc_now_iso
from .validation_result import DocumentValidationResult

__all__ = [
    "DataItem",
    "Batch",
    "BatchSubmissionResult",
    "TransactionRecord",
    "TransactionStatus",
    "EligibilityResult",
    "SkippedItem",
    "SkipReason",
    "DocumentValidationResult",
    "HashedDocument",
    "DocumentFailure",
    "HashRunResult",
    "SubmissionRunResult",
    "utc_now_iso",
]
