"""
Configuration for the hashing and submission commands.

Values are layered, later layers winning:
1. Model defaults
2. YAML file
3. Environment variables (a .env file is loaded first)
4. Explicit overrides (command-line flags)
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from property_oracle.chain.gas import AUTO, GasPricePolicy, parse_gas_setting
from property_oracle.core.errors import ConfigurationError
from property_oracle.core.schema.manifest import DEFAULT_SCHEMA_MANIFEST_URL
from property_oracle.core.schema.registry import DEFAULT_IPFS_GATEWAY
from property_oracle.ipld.cid import DAG_JSON, RAW
from property_oracle.observability.logger import get_logger
from property_oracle.utils.validation import ETH_ADDRESS_PATTERN, ZERO_ADDRESS


logger = get_logger(__name__)

DEFAULT_RPC_URL = "https://polygon-rpc.com"
DEFAULT_SUBMIT_CONTRACT_ADDRESS = ZERO_ADDRESS
DEFAULT_UNSIGNED_EXPORT_PATH = Path("./unsigned_transactions.json")

SubmitMode = Literal["direct", "api", "unsigned_export"]

ENV_MAPPING = {
    "RPC_URL": "rpc_url",
    "SUBMIT_CONTRACT_ADDRESS": "contract_address",
    "ELEPHANT_PRIVATE_KEY": "private_key",
    "KEYSTORE_PATH": "keystore_path",
    "KEYSTORE_PASSWORD": "keystore_password",
    "ELEPHANT_DOMAIN": "domain",
    "ELEPHANT_API_KEY": "api_key",
    "ELEPHANT_ORACLE_KEY_ID": "oracle_key_id",
    "TRANSACTION_BATCH_SIZE": "batch_size",
    "GAS_PRICE": "gas_price",
}


class GasPriceSetting(BaseModel):
    """
    Fee settings in gwei; each may be "auto".

    Attributes:
        gas_price: Legacy gas price, or "auto" for provider fee data
        max_fee: EIP-1559 maxFeePerGas
        max_priority_fee: EIP-1559 maxPriorityFeePerGas
    """

    gas_price: float | str | None = AUTO
    max_fee: float | str | None = None
    max_priority_fee: float | str | None = None

    @field_validator("gas_price", "max_fee", "max_priority_fee", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return parse_gas_setting(v)

    @field_validator("gas_price")
    @classmethod
    def gas_price_required(cls, v: Any) -> Any:
        return AUTO if v is None else v

    def to_policy(self) -> GasPricePolicy:
        return GasPricePolicy(gas_price=self.gas_price, max_fee=self.max_fee, max_priority_fee=self.max_priority_fee)


class HashConfig(BaseModel):
    """Settings for the hashing command."""

    input_path: Path
    output_path: Path
    output_csv: Path
    property_cid: str | None = None
    schema_manifest_url: str = DEFAULT_SCHEMA_MANIFEST_URL
    schema_manifest_file: Path | None = None
    schema_dir: Path | None = None
    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    validate_documents: bool = True
    document_codec: Literal["dag-json", "raw"] = DAG_JSON
    sort_link_arrays: bool = True
    max_workers: int = Field(default=1, ge=1)
    http_timeout: float = Field(default=30.0, gt=0)
    error_csv: Path = Path("./submit_errors.csv")
    warning_csv: Path = Path("./submit_warnings.csv")

    @property
    def archive_output(self) -> bool:
        return self.output_path.suffix.lower() == ".zip"

    @field_validator("document_codec")
    @classmethod
    def known_codec(cls, v: str) -> str:
        if v not in (DAG_JSON, RAW):
            raise ValueError(f"document_codec must be {DAG_JSON} or {RAW}")
        return v


class SubmitConfig(BaseModel):
    """
    Settings for the submission command.

    Strategy selection:
    - api: domain, api_key and oracle_key_id all set
    - unsigned_export: dry_run (export path defaults to ./unsigned_transactions.json)
    - direct: everything else; needs a private key or keystore
    """

    rpc_url: str = DEFAULT_RPC_URL
    contract_address: str = DEFAULT_SUBMIT_CONTRACT_ADDRESS
    chain_id: int = Field(default=137, ge=1)

    private_key: str | None = None
    keystore_path: Path | None = None
    keystore_password: str | None = None
    from_address: str | None = None

    domain: str | None = None
    api_key: str | None = None
    oracle_key_id: str | None = None

    dry_run: bool = False
    unsigned_transactions_json: Path | None = None
    starting_nonce: int = Field(default=0, ge=0)

    batch_size: int = Field(default=200, ge=1, le=1000)
    check_eligibility: bool = True
    max_concurrent_chain_queries: int = Field(default=20, ge=1)
    chain_query_timeout: float = Field(default=10.0, gt=0)
    http_timeout: float = Field(default=30.0, gt=0)

    gas: GasPriceSetting = Field(default_factory=GasPriceSetting)

    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1)
    api_max_attempts: int = Field(default=7, ge=1)
    api_retry_delay: float = Field(default=1.0, ge=0)

    error_csv: Path = Path("./submit_errors.csv")
    warning_csv: Path = Path("./submit_warnings.csv")
    transaction_ledger: Path = Path("./transaction-status.csv")

    @field_validator("contract_address", "from_address")
    @classmethod
    def valid_address(cls, v: str | None) -> str | None:
        if v is not None and not ETH_ADDRESS_PATTERN.match(v):
            raise ValueError(f"must match ^0x[a-fA-F0-9]{{40}}$, got {v!r}")
        return v

    @model_validator(mode="after")
    def check_strategy(self) -> "SubmitConfig":
        api_fields = [self.domain, self.api_key, self.oracle_key_id]
        if any(api_fields) and not all(api_fields):
            raise ValueError("API mode requires domain, api_key and oracle_key_id together")
        if self.unsigned_transactions_json is not None and not self.dry_run:
            raise ValueError("unsigned transaction export requires dry_run")
        if self.keystore_path is not None and self.private_key:
            raise ValueError("use either private_key or keystore_path, not both")
        if self.keystore_path is not None and not self.keystore_password:
            raise ValueError("keystore_password is required with keystore_path")
        if self.mode == "direct" and not self.dry_run and not self.has_signing_material:
            raise ValueError("direct submission requires private_key or keystore_path")
        return self

    @property
    def use_api(self) -> bool:
        return bool(self.domain and self.api_key and self.oracle_key_id)

    @property
    def has_signing_material(self) -> bool:
        return bool(self.private_key or self.keystore_path)

    @property
    def export_path(self) -> Path:
        return self.unsigned_transactions_json or DEFAULT_UNSIGNED_EXPORT_PATH

    @property
    def mode(self) -> SubmitMode:
        if self.dry_run:
            return "unsigned_export"
        if self.use_api:
            return "api"
        return "direct"


def _read_yaml(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _read_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_name, field_name in ENV_MAPPING.items():
        value = os.getenv(env_name)
        if value:
            values[field_name] = value
    return values


def _merge_gas(values: dict[str, Any]) -> dict[str, Any]:
    """Fold flat gas keys (gas_price, max_fee, max_priority_fee) into the gas section."""
    gas = dict(values.get("gas") or {})
    for key in ("gas_price", "max_fee", "max_priority_fee"):
        if key in values:
            gas[key] = values.pop(key)
    if gas:
        values["gas"] = gas
    return values


def load_submit_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
    **overrides: Any,
) -> SubmitConfig:
    """
    Build a SubmitConfig from YAML, environment and overrides.

    Args:
        yaml_path: Optional YAML file
        env_file: Optional .env file (defaults to ./.env when present)
        **overrides: Field values that win over everything else; None values are ignored

    Returns:
        Validated SubmitConfig

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    load_dotenv(env_file)

    values: dict[str, Any] = {}
    if yaml_path is not None:
        values.update(_merge_gas(_read_yaml(yaml_path)))

    env_values = _merge_gas(_read_env())
    if "gas" in env_values and "gas" in values:
        values["gas"] = {**values["gas"], **env_values.pop("gas")}
    values.update(env_values)

    explicit = _merge_gas({k: v for k, v in overrides.items() if v is not None})
    if "gas" in explicit and "gas" in values:
        values["gas"] = {**values["gas"], **explicit.pop("gas")}
    values.update(explicit)

    try:
        config = SubmitConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid submit configuration: {e}") from e

    logger.info(f"Submit configuration loaded (mode={config.mode}, batch_size={config.batch_size})")
    return config


def load_hash_config(yaml_path: str | Path | None = None, **overrides: Any) -> HashConfig:
    """
    Build a HashConfig from an optional YAML file and overrides.

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    values: dict[str, Any] = {}
    if yaml_path is not None:
        values.update(_read_yaml(yaml_path))
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return HashConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid hash configuration: {e}") from e
