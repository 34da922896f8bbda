"""
Unit tests for the batch builder.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import make_item
from property_oracle.submission.batching import group_into_batches


@pytest.mark.unit
class TestGroupIntoBatches:
    """Tests for group_into_batches"""

    def test_exact_split(self, data_items):
        batches = group_into_batches(data_items[:4], 2)
        assert [b.index for b in batches] == [0, 1]
        assert [b.size for b in batches] == [2, 2]

    def test_remainder_in_last_batch(self, data_items):
        batches = group_into_batches(data_items, 2)
        assert [b.size for b in batches] == [2, 2, 1]

    def test_empty_input(self):
        assert group_into_batches([], 200) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_batch_size(self, data_items, size):
        with pytest.raises(ValueError):
            group_into_batches(data_items, size)

    @given(st.integers(min_value=0, max_value=40), st.integers(min_value=1, max_value=12))
    def test_concatenation_preserves_order(self, count, size):
        items = [make_item(i) for i in range(count)]
        batches = group_into_batches(items, size)

        assert [item for batch in batches for item in batch.items] == items
        assert all(batch.size <= size for batch in batches)
        assert [batch.index for batch in batches] == list(range(len(batches)))
