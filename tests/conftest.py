"""
Pytest configuration and fixtures for property-oracle tests

This module provides shared fixtures and fakes for unit, integration, and
E2E tests. Nothing here talks to a real RPC node, IPFS gateway or API.
"""
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from property_oracle.core.errors import ChainReadError
from property_oracle.core.models import DataItem
from property_oracle.core.schema import SchemaManifest
from property_oracle.ipld.cid import compute_cid


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that exercise several components together"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# CID FIXTURES
# =======================

def make_cid(seed: str) -> str:
    """Deterministic raw CID for test data."""
    return compute_cid(seed.encode("utf-8"))


def make_item(index: int, row_number: int | None = None) -> DataItem:
    return DataItem(
        property_cid=make_cid(f"property-{index}"),
        data_group_cid=make_cid(f"group-{index}"),
        data_cid=make_cid(f"data-{index}"),
        row_number=row_number,
    )


@pytest.fixture
def cid_factory() -> Callable[[str], str]:
    return make_cid


@pytest.fixture
def data_items() -> list[DataItem]:
    """Five distinct DataItems in manifest order"""
    return [make_item(i, row_number=i + 1) for i in range(5)]


# =======================
# SCHEMA FIXTURES
# =======================

SEED_SCHEMA_CID = make_cid("schema-seed")
COUNTY_SCHEMA_CID = make_cid("schema-county")


@pytest.fixture
def schema_manifest() -> SchemaManifest:
    """Manifest declaring the Seed and County data groups"""
    return SchemaManifest(
        entries={
            "Seed": {"ipfsCid": SEED_SCHEMA_CID, "type": "dataGroup"},
            "County": {"ipfsCid": COUNTY_SCHEMA_CID, "type": "dataGroup"},
            "address": {"ipfsCid": make_cid("schema-address"), "type": "class"},
        }
    )


def write_json(path: Path, value: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def property_dir(tmp_path) -> Path:
    """
    One property with a seed and a County data group

    County links an address (shared with the seed) and a list of two
    files, one of which links a photo through ipfs_url.
    """
    root = tmp_path / "input" / "52434205310037080"
    write_json(root / "address.json", {"street_name": "Main", "street_number": "100", "city_name": "Miami"})
    write_json(root / "seed.json", {
        "label": "Seed",
        "relationships": {
            "address_has_parcel": {"from": {"/": "./address.json"}, "to": None},
        },
    })
    write_json(root / "file_1.json", {"name": "deed", "ipfs_url": "./photo.png"})
    write_json(root / "file_2.json", {"name": "survey", "document_type": "pdf"})
    (root / "photo.png").write_bytes(b"\x89PNG\r\n\x1a\nfake-image-bytes")
    write_json(root / "county.json", {
        "label": "County",
        "relationships": {
            "property_has_address": {"/": "./address.json"},
            "property_has_file": [{"/": "./file_2.json"}, {"/": "./file_1.json"}],
            "property_has_fact_sheet": {"/": "./fact_sheet.json"},
        },
    })
    return root


# =======================
# CHAIN FAKES
# =======================

class FakeChainStateReader:
    """In-memory ChainStateReader with call counting and injectable failures."""

    def __init__(
        self,
        current: dict[tuple[str, str], str] | None = None,
        submitted: set[tuple[str, str, str, str]] | None = None,
        failing_keys: set[tuple[str, str]] | None = None,
    ):
        self.current = current or {}
        self.submitted = submitted or set()
        self.failing_keys = failing_keys or set()
        self.current_calls: list[tuple[str, str]] = []
        self.submitted_calls: list[tuple[str, str, str, str]] = []

    def get_current_data_cid(self, property_cid: str, data_group_cid: str) -> str | None:
        key = (property_cid, data_group_cid)
        self.current_calls.append(key)
        if key in self.failing_keys:
            raise ChainReadError("getCurrentFieldDataHash", ConnectionError("connection refused"))
        return self.current.get(key)

    def has_user_submitted_data(self, property_cid, data_group_cid, data_cid, address) -> bool:
        key = (property_cid, data_group_cid, data_cid, address.lower())
        self.submitted_calls.append(key)
        return key in self.submitted

    def get_participants(self, property_cid, data_group_cid, data_cid) -> list[str]:
        return sorted({k[3] for k in self.submitted if k[:3] == (property_cid, data_group_cid, data_cid)})


class FakeContractClient:
    """SubmitContractClient stand-in recording sent transactions."""

    contract_address = "0x" + "ab" * 20
    chain_id = 137

    def __init__(self, nonce: int = 0, gas_estimate: int = 100_000, send_errors: list[Exception] | None = None):
        self.nonce = nonce
        self.gas_estimate = gas_estimate
        self.send_errors = list(send_errors or [])
        self.sent: list[bytes] = []
        self.nonce_queries = 0

    def encode_submit_batch(self, items):
        from property_oracle.chain.contract import encode_submit_batch_data
        return encode_submit_batch_data(items)

    def estimate_gas(self, from_address: str, data: str) -> int:
        return self.gas_estimate

    def pending_nonce(self, address: str) -> int:
        self.nonce_queries += 1
        return self.nonce

    def gas_price(self) -> int:
        return 30 * 10**9

    def fee_data(self) -> tuple[int, int]:
        return 60 * 10**9, 3 * 10**9

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        if self.send_errors:
            raise self.send_errors.pop(0)
        self.sent.append(raw_transaction)
        self.nonce += 1
        return "0x" + f"{len(self.sent):064x}"


class FakeSigner:
    """Signer returning the transaction dict as raw bytes so tests can inspect it."""

    address = "0x" + "12" * 20

    def __init__(self):
        self.signed: list[dict] = []

    def sign_transaction(self, transaction: dict):
        self.signed.append(dict(transaction))

        class Signed:
            raw_transaction = json.dumps(transaction, sort_keys=True).encode("utf-8")

        return Signed()


@pytest.fixture
def fake_reader() -> FakeChainStateReader:
    return FakeChainStateReader()


@pytest.fixture
def fake_client() -> FakeContractClient:
    return FakeContractClient()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def no_sleep() -> list[float]:
    """Recorder passed wherever a sleep function is accepted"""
    return []


# =======================
# ENVIRONMENT FIXTURES
# =======================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration variables so tests do not depend on the host environment"""
    for name in (
        "RPC_URL",
        "SUBMIT_CONTRACT_ADDRESS",
        "ELEPHANT_PRIVATE_KEY",
        "KEYSTORE_PATH",
        "KEYSTORE_PASSWORD",
        "ELEPHANT_DOMAIN",
        "ELEPHANT_API_KEY",
        "ELEPHANT_ORACLE_KEY_ID",
        "TRANSACTION_BATCH_SIZE",
        "GAS_PRICE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
