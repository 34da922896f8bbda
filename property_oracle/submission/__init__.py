"""
Submission: batching, retry policy, strategies, status polling and orchestration.
"""

from .batching import DEFAULT_BATCH_SIZE, group_into_batches
from .pipeline import SubmissionPipeline
from .retry import RetryPolicy, api_retry_policy, direct_retry_policy, is_nonce_error, retry_with_policy
from .status import TransactionStatusChecker, TransactionStatusReport

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "group_into_batches",
    "SubmissionPipeline",
    "RetryPolicy",
    "api_retry_policy",
    "direct_retry_policy",
    "is_nonce_error",
    "retry_with_policy",
    "TransactionStatusChecker",
    "TransactionStatusReport",
]
