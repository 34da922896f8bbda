"""
Utility helpers.
"""

from .validation import (
    ValidationError,
    normalize_https_url,
    validate_address,
    validate_batch_size,
    validate_cid,
    validate_private_key,
)

__all__ = [
    "ValidationError",
    "normalize_https_url",
    "validate_address",
    "validate_batch_size",
    "validate_cid",
    "validate_private_key",
]
