"""
Signing material.

A wallet is loaded from either a raw private key or an encrypted JSON
keystore plus password. Only the derived address ever reaches logs.
"""

import json
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount

from property_oracle.core.errors import ConfigurationError
from property_oracle.observability.logger import get_logger
from property_oracle.utils.validation import ValidationError, validate_private_key


logger = get_logger(__name__)


def load_wallet(
    private_key: str | None = None,
    keystore_path: str | Path | None = None,
    keystore_password: str | None = None,
) -> LocalAccount:
    """
    Load a signing account.

    Args:
        private_key: Raw hex private key
        keystore_path: Path to an encrypted JSON keystore
        keystore_password: Password for the keystore

    Returns:
        eth_account LocalAccount

    Raises:
        ConfigurationError: If neither or both sources are given, or the
            material cannot be decrypted
    """
    if private_key and keystore_path:
        raise ConfigurationError("Provide either a private key or a keystore, not both")

    if private_key:
        try:
            account = Account.from_key(validate_private_key(private_key))
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid private key: {e}") from e
        logger.info(f"Loaded signing key for {account.address}")
        return account

    if keystore_path:
        if not keystore_password:
            raise ConfigurationError("Keystore password is required when using a keystore")
        path = Path(keystore_path)
        try:
            keystore = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read keystore {path}: {e}") from e
        try:
            key = Account.decrypt(keystore, keystore_password)
        except ValueError as e:
            raise ConfigurationError(f"Failed to decrypt keystore {path}: {e}") from e
        account = Account.from_key(key)
        logger.info(f"Loaded keystore {path.name} for {account.address}")
        return account

    raise ConfigurationError("No signing material: set a private key or a keystore path and password")


def derive_address(
    private_key: str | None = None,
    keystore_path: str | Path | None = None,
    keystore_password: str | None = None,
) -> str | None:
    """Address of the configured signing material, or None when there is none."""
    if not private_key and not keystore_path:
        return None
    return load_wallet(private_key, keystore_path, keystore_password).address
