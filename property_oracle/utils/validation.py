"""
Input validation utilities for the property oracle.

Provides reusable validation functions for command inputs like wallet
addresses, CIDs, API endpoints and batch sizes so bad configuration is
rejected before any network activity.
"""

import re

from property_oracle.core.errors import PropertyOracleError
from property_oracle.ipld.cid import is_cid


ETH_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
PRIVATE_KEY_PATTERN = re.compile(r"^(0x)?[a-fA-F0-9]{64}$")
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ValidationError(PropertyOracleError, ValueError):
    """Raised when input validation fails."""
    pass


def validate_address(address: str, field_name: str = "address") -> str:
    """
    Validate an Ethereum address.

    Args:
        address: Address to validate
        field_name: Name of the field (for error messages)

    Returns:
        The address, stripped of whitespace

    Raises:
        ValidationError: If the address is not 0x followed by 40 hex characters

    Examples:
        >>> validate_address("0x1234567890123456789012345678901234567890")
        '0x1234567890123456789012345678901234567890'
        >>> validate_address("0x123")  # doctest: +SKIP
        ValidationError: address must match ^0x[a-fA-F0-9]{40}$
    """
    if not address or not isinstance(address, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    address = address.strip()
    if not ETH_ADDRESS_PATTERN.match(address):
        raise ValidationError(f"{field_name} must match ^0x[a-fA-F0-9]{{40}}$, got {address!r}")

    return address


def validate_private_key(private_key: str, field_name: str = "private_key") -> str:
    """
    Validate a raw secp256k1 private key.

    Returns:
        The key with a 0x prefix

    Raises:
        ValidationError: If the key is not 32 bytes of hex
    """
    if not private_key or not isinstance(private_key, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    private_key = private_key.strip()
    if not PRIVATE_KEY_PATTERN.match(private_key):
        raise ValidationError(f"{field_name} must be 64 hex characters (optionally 0x-prefixed)")

    return private_key if private_key.startswith("0x") else f"0x{private_key}"


def validate_cid(cid: str, field_name: str = "cid") -> str:
    """
    Validate a CID string.

    A leading "." (seen in some manifests) is stripped.

    Examples:
        >>> validate_cid(".bafkreigh2akiscaildcqabsyg3dfr6chu3fgpregiymsck7e7aqa4s52zy")
        'bafkreigh2akiscaildcqabsyg3dfr6chu3fgpregiymsck7e7aqa4s52zy'
    """
    if not cid or not isinstance(cid, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    cid = cid.strip()
    if cid.startswith("."):
        cid = cid[1:]
    if not is_cid(cid):
        raise ValidationError(f"{field_name} is not a valid CID: {cid!r}")

    return cid


def normalize_https_url(url: str, field_name: str = "url") -> str:
    """
    Normalize an API base URL to HTTPS.

    http:// is upgraded to https://, a bare domain gets https:// prefixed,
    and trailing slashes are removed.

    Examples:
        >>> normalize_https_url("oracle.example.com/")
        'https://oracle.example.com'
        >>> normalize_https_url("http://oracle.example.com")
        'https://oracle.example.com'
    """
    if not url or not isinstance(url, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    url = url.strip()
    if url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    elif not url.startswith("https://"):
        if "://" in url:
            raise ValidationError(f"{field_name} must use http or https, got {url!r}")
        url = f"https://{url}"

    url = url.rstrip("/")
    if url == "https:/" or url == "https:":
        raise ValidationError(f"{field_name} has no host")

    return url


def validate_batch_size(batch_size: int, field_name: str = "batch_size", max_size: int = 1000) -> int:
    """
    Validate a transaction batch size.

    Raises:
        ValidationError: If batch size is not an integer in [1, max_size]
    """
    if not isinstance(batch_size, int) or isinstance(batch_size, bool):
        raise ValidationError(f"{field_name} must be an integer, got {type(batch_size).__name__}")

    if batch_size < 1:
        raise ValidationError(f"{field_name} must be a positive integer, got {batch_size}")

    if batch_size > max_size:
        raise ValidationError(f"{field_name} exceeds maximum of {max_size}")

    return batch_size
