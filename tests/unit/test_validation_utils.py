"""
Unit tests for input validation utilities
"""

import pytest

from conftest import make_cid
from property_oracle.core.errors import PropertyOracleError
from property_oracle.utils.validation import (
    ValidationError,
    normalize_https_url,
    validate_address,
    validate_batch_size,
    validate_cid,
    validate_private_key,
)


@pytest.mark.unit
class TestValidateAddress:
    """Tests for validate_address"""

    def test_valid(self):
        address = "0x" + "aB" * 20
        assert validate_address(f"  {address} ") == address

    @pytest.mark.parametrize("value", ["", None, "0x123", "12" * 20, "0x" + "zz" * 20, "0x" + "ab" * 21])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_address(value)

    def test_field_name_in_message(self):
        with pytest.raises(ValidationError, match="from_address"):
            validate_address("0x1", "from_address")


@pytest.mark.unit
class TestValidatePrivateKey:
    """Tests for validate_private_key"""

    def test_prefix_added(self):
        assert validate_private_key("ab" * 32) == "0x" + "ab" * 32

    def test_prefixed_kept(self):
        assert validate_private_key("0x" + "ab" * 32) == "0x" + "ab" * 32

    @pytest.mark.parametrize("value", ["", "0x1234", "zz" * 32])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_private_key(value)


@pytest.mark.unit
class TestValidateCid:
    """Tests for validate_cid"""

    def test_leading_dot_stripped(self):
        cid = make_cid("a")
        assert validate_cid(f".{cid}") == cid

    @pytest.mark.parametrize("value", ["", "not-a-cid", "bafkrei", "Qm123"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_cid(value)


@pytest.mark.unit
class TestNormalizeHttpsUrl:
    """Tests for normalize_https_url"""

    @pytest.mark.parametrize("value,expected", [
        ("oracle.example.com", "https://oracle.example.com"),
        ("oracle.example.com/", "https://oracle.example.com"),
        ("http://oracle.example.com", "https://oracle.example.com"),
        ("https://oracle.example.com/api/", "https://oracle.example.com/api"),
    ])
    def test_normalized(self, value, expected):
        assert normalize_https_url(value) == expected

    @pytest.mark.parametrize("value", ["", "ftp://oracle.example.com", "https://"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            normalize_https_url(value)


@pytest.mark.unit
class TestValidateBatchSize:
    """Tests for validate_batch_size"""

    @pytest.mark.parametrize("value", [1, 200, 1000])
    def test_valid(self, value):
        assert validate_batch_size(value) == value

    @pytest.mark.parametrize("value", [0, -1, 1001, "10", 2.5, True])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_batch_size(value)

    def test_is_value_error(self):
        with pytest.raises(ValueError, match="batch_size"):
            validate_batch_size(0)

    def test_is_oracle_error(self):
        with pytest.raises(PropertyOracleError, match="batch_size"):
            validate_batch_size(0)
