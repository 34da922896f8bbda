"""
Unit tests for schema manifest, registry and validator
"""

import json

import httpx
import pytest

from conftest import COUNTY_SCHEMA_CID, SEED_SCHEMA_CID, make_cid, write_json
from property_oracle.core.errors import SchemaLoadError
from property_oracle.core.schema import (
    AcceptAllValidator,
    JsonSchemaValidator,
    SchemaManifest,
    SchemaRegistry,
    directory_loader,
    gateway_loader,
)


LINK_SCHEMA = {
    "type": "object",
    "properties": {"/": {"type": "string", "format": "cid"}},
    "required": ["/"],
}

COUNTY_SCHEMA = {
    "type": "object",
    "required": ["label", "relationships"],
    "properties": {
        "label": {"const": "County"},
        "relationships": {
            "type": "object",
            "required": ["property_has_address"],
            "properties": {"property_has_address": LINK_SCHEMA},
        },
    },
}


@pytest.fixture
def schema_dir(tmp_path):
    write_json(tmp_path / "schemas" / f"{COUNTY_SCHEMA_CID}.json", COUNTY_SCHEMA)
    write_json(tmp_path / "schemas" / "broken.json", {"type": 12})
    return tmp_path / "schemas"


@pytest.mark.unit
class TestSchemaManifest:
    """Tests for SchemaManifest"""

    def test_data_group_lookup(self, schema_manifest):
        assert schema_manifest.data_group_cid("Seed") == SEED_SCHEMA_CID
        assert schema_manifest.data_group_cid("address") is None
        assert schema_manifest.data_group_cid("Unknown") is None
        assert schema_manifest.data_group_labels() == ["Seed", "County"]

    @pytest.mark.parametrize("document,expected", [
        ({"label": "County", "relationships": {}}, True),
        ({"label": "County", "relationships": {}, "extra": 1}, False),
        ({"label": 3, "relationships": {}}, False),
        ({"street": "Main"}, False),
        ([], False),
    ])
    def test_is_data_group_root(self, document, expected):
        assert SchemaManifest.is_data_group_root(document) is expected

    def test_loaded_once_over_http(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"County": {"ipfsCid": COUNTY_SCHEMA_CID, "type": "dataGroup"}})

        manifest = SchemaManifest(
            url="https://lexicon.example.com/schema-manifest.json",
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        manifest.load()
        manifest.load()

        assert manifest.data_group_cid("County") == COUNTY_SCHEMA_CID
        assert len(requests) == 1

    def test_http_error(self):
        manifest = SchemaManifest(
            url="https://lexicon.example.com/schema-manifest.json",
            client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(503))),
        )
        with pytest.raises(SchemaLoadError):
            manifest.load()

    def test_from_file(self, tmp_path):
        path = write_json(tmp_path / "manifest.json", {"Seed": {"ipfsCid": SEED_SCHEMA_CID, "type": "dataGroup"}})
        assert SchemaManifest.from_file(path).data_group_cid("Seed") == SEED_SCHEMA_CID

    def test_from_file_not_object(self, tmp_path):
        path = write_json(tmp_path / "manifest.json", [1, 2])
        with pytest.raises(SchemaLoadError):
            SchemaManifest.from_file(path)

    def test_needs_source(self):
        with pytest.raises(ValueError):
            SchemaManifest()


@pytest.mark.unit
class TestSchemaRegistry:
    """Tests for SchemaRegistry and its loaders"""

    def test_loads_once(self):
        calls = []

        def loader(schema_id):
            calls.append(schema_id)
            return {"type": "object"}

        registry = SchemaRegistry(loader)
        registry.get("a")
        registry.get("a")
        assert calls == ["a"]
        assert "a" in registry

    def test_directory_loader_missing(self, tmp_path):
        with pytest.raises(SchemaLoadError, match="not found"):
            directory_loader(tmp_path)("bafkreimissing")

    def test_gateway_loader(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=json.dumps(COUNTY_SCHEMA).encode())

        client = httpx.Client(transport=httpx.MockTransport(handler))
        schema = gateway_loader("https://gateway.example.com/ipfs/", client=client)(COUNTY_SCHEMA_CID)

        assert schema == COUNTY_SCHEMA
        assert seen == [f"https://gateway.example.com/ipfs/{COUNTY_SCHEMA_CID}"]

    def test_non_object_schema(self):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry(lambda schema_id: ["not", "a", "schema"]).get("x")


@pytest.mark.unit
class TestJsonSchemaValidator:
    """Tests for JsonSchemaValidator"""

    @pytest.fixture
    def validator(self, schema_dir):
        return JsonSchemaValidator(SchemaRegistry.from_directory(schema_dir))

    def test_valid_document(self, validator):
        document = {"label": "County", "relationships": {"property_has_address": {"/": make_cid("address")}}}
        result = validator.validate(document, COUNTY_SCHEMA_CID)
        assert result.valid
        assert result.errors == []

    def test_missing_relationship(self, validator):
        result = validator.validate({"label": "County", "relationships": {}}, COUNTY_SCHEMA_CID)
        assert not result.valid
        assert result.errors[0]["path"] == "/relationships"
        assert "property_has_address" in result.errors[0]["message"]

    def test_unresolved_link_fails_cid_format(self, validator):
        document = {"label": "County", "relationships": {"property_has_address": {"/": "./address.json"}}}
        result = validator.validate(document, COUNTY_SCHEMA_CID)
        assert not result.valid
        assert result.errors[0]["path"] == "/relationships/property_has_address//"

    def test_errors_sorted_by_path(self, validator):
        result = validator.validate({"label": "Seed", "relationships": {}}, COUNTY_SCHEMA_CID)
        paths = [e["path"] for e in result.errors]
        assert paths == sorted(paths)
        assert len(paths) == 2

    def test_missing_schema_is_a_failure(self, validator):
        result = validator.validate({}, "bafkreimissing")
        assert not result.valid
        assert "not found" in result.errors[0]["message"]

    def test_invalid_schema_is_a_failure(self, validator):
        result = validator.validate({}, "broken")
        assert not result.valid
        assert "invalid" in result.errors[0]["message"]

    def test_accept_all(self):
        assert AcceptAllValidator().validate({"anything": 1}, "x").valid
