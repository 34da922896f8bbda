"""
Unit tests for canonical JSON serialization.

Includes property-based testing with hypothesis for determinism.
"""

import json
import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from property_oracle.core.errors import CanonicalizationError
from property_oracle.ipld.canonicalizer import IpldCanonicalizer, JsonCanonicalizer, canonicalize, format_number


json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(2**53), max_value=2**53),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(max_size=20),
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=5),
        st.dictionaries(st.text(max_size=10), children, max_size=5),
    ),
    max_leaves=25,
)


def _reverse_keys(value):
    if isinstance(value, dict):
        return {k: _reverse_keys(value[k]) for k in reversed(list(value))}
    if isinstance(value, list):
        return [_reverse_keys(v) for v in value]
    return value


@pytest.mark.unit
class TestJsonCanonicalizer:
    """Tests for JsonCanonicalizer"""

    def test_sorts_keys_and_removes_whitespace(self):
        assert canonicalize({"b": 1, "a": {"d": [1, 2], "c": None}}) == b'{"a":{"c":null,"d":[1,2]},"b":1}'

    def test_keys_sorted_by_utf16_code_units(self):
        """U+1F600 is a surrogate pair (D83D...) and sorts before U+FB01"""
        text = JsonCanonicalizer().canonicalize_text({"ﬁ": 1, "\U0001F600": 2})
        assert text.index("\U0001F600") < text.index("ﬁ")

    def test_non_ascii_emitted_as_utf8(self):
        assert canonicalize({"city": "Medellín"}) == '{"city":"Medellín"}'.encode("utf-8")

    def test_control_characters_escaped(self):
        assert canonicalize("a\nb") == b'"a\\nb"'

    def test_booleans_not_treated_as_numbers(self):
        assert canonicalize([True, False, 1, 0]) == b"[true,false,1,0]"

    @pytest.mark.parametrize("value, expected", [
        (1.0, "1"),
        (-2.5, "-2.5"),
        (0.1, "0.1"),
        (-0.0, "0"),
        (100.0, "100"),
        (1e21, "1e+21"),
        (1e20, "100000000000000000000"),
        (0.000001, "0.000001"),
        (1e-7, "1e-7"),
        (123456.789, "123456.789"),
        (5e-324, "5e-324"),
    ])
    def test_number_formatting(self, value, expected):
        assert format_number(value) == expected

    def test_integer_and_exponent_spellings_agree(self):
        assert canonicalize(json.loads("1000000000000000000000")) == canonicalize(json.loads("1e21")) == b"1e+21"
        assert canonicalize(2**53) == b"9007199254740992"

    @given(st.integers(min_value=-(10**30), max_value=10**30))
    def test_int_serializes_like_equal_float(self, value):
        assert canonicalize(value) == canonicalize(float(value))

    def test_integer_beyond_double_range_rejected(self):
        with pytest.raises(CanonicalizationError):
            canonicalize({"area": 10**400})

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_numbers_rejected(self, value):
        with pytest.raises(CanonicalizationError):
            canonicalize({"price": value})

    def test_non_string_keys_rejected(self):
        with pytest.raises(CanonicalizationError) as exc_info:
            canonicalize({1: "a"})
        assert "string keys" in str(exc_info.value)

    def test_unsupported_type_rejected(self):
        with pytest.raises(CanonicalizationError):
            canonicalize({"tags": {"a", "b"}})

    def test_cyclic_reference_rejected(self):
        value: dict = {"name": "loop"}
        value["self"] = value
        with pytest.raises(CanonicalizationError) as exc_info:
            canonicalize(value)
        assert "Cyclic" in str(exc_info.value)

    def test_shared_subtree_is_not_a_cycle(self):
        shared = {"x": 1}
        assert canonicalize({"a": shared, "b": shared}) == b'{"a":{"x":1},"b":{"x":1}}'

    @given(json_values)
    def test_deterministic_under_key_reordering(self, value):
        """Semantically equal values serialize to identical bytes"""
        assert canonicalize(value) == canonicalize(_reverse_keys(value))

    @given(json_values)
    def test_output_is_valid_json_with_same_meaning(self, value):
        assert json.loads(canonicalize(value).decode("utf-8")) == value

    @given(json_values)
    def test_canonical_form_is_a_fixed_point(self, value):
        once = canonicalize(value)
        assert canonicalize(json.loads(once)) == once


@pytest.mark.unit
class TestIpldCanonicalizer:
    """Tests for link-array ordering"""

    def test_link_arrays_sorted_by_cid(self):
        c = IpldCanonicalizer()
        forward = c.canonicalize({"files": [{"/": "bafyb"}, {"/": "bafya"}]})
        backward = c.canonicalize({"files": [{"/": "bafya"}, {"/": "bafyb"}]})
        assert forward == backward == b'{"files":[{"/":"bafya"},{"/":"bafyb"}]}'

    def test_non_links_keep_order_after_links(self):
        text = IpldCanonicalizer().canonicalize_text(["z", {"/": "bafyb"}, "a", {"/": "bafya"}])
        assert text == '[{"/":"bafya"},{"/":"bafyb"},"z","a"]'

    def test_plain_arrays_keep_order(self):
        assert IpldCanonicalizer().canonicalize([3, 1, 2]) == b"[3,1,2]"

    def test_sorting_can_be_disabled(self):
        text = IpldCanonicalizer(sort_link_arrays=False).canonicalize_text([{"/": "bafyb"}, {"/": "bafya"}])
        assert text == '[{"/":"bafyb"},{"/":"bafya"}]'

    @given(st.lists(st.text(alphabet="abcdefghijklmnopqrstuvwxyz234567", min_size=1, max_size=8), max_size=8))
    def test_link_array_permutations_hash_identically(self, targets):
        c = IpldCanonicalizer()
        links = [{"/": t} for t in targets]
        assert c.canonicalize(links) == c.canonicalize(list(reversed(links)))
