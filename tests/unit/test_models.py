"""
Unit tests for core data models
"""

import pytest
from pydantic import ValidationError

from conftest import make_cid, make_item
from property_oracle.core.models import (
    Batch,
    BatchSubmissionResult,
    DataItem,
    DocumentValidationResult,
    SubmissionRunResult,
    TransactionRecord,
)


@pytest.mark.unit
class TestDataItem:
    """Tests for DataItem model"""

    def test_leading_dot_and_whitespace_stripped(self):
        cid = make_cid("x")
        item = DataItem(property_cid=f" .{cid} ", data_group_cid=cid, data_cid=cid)
        assert item.property_cid == cid

    def test_empty_cid_rejected(self):
        with pytest.raises(ValidationError):
            DataItem(property_cid=".", data_group_cid=make_cid("g"), data_cid=make_cid("d"))

    def test_frozen(self):
        item = make_item(0)
        with pytest.raises(ValidationError):
            item.data_cid = make_cid("other")

    def test_consensus_key(self):
        item = make_item(3)
        assert item.consensus_key == (item.property_cid, item.data_group_cid)

    def test_hashable(self):
        assert len({make_item(0), make_item(0), make_item(1)}) == 2


@pytest.mark.unit
class TestBatch:
    """Tests for Batch model"""

    def test_empty_batch_rejected(self):
        with pytest.raises(ValidationError):
            Batch(index=0, items=[])

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            Batch(index=-1, items=[make_item(0)])

    def test_size(self):
        assert Batch(index=2, items=[make_item(0), make_item(1)]).size == 2


@pytest.mark.unit
class TestTransactionRecord:
    """Tests for TransactionRecord model"""

    def test_from_result(self):
        result = BatchSubmissionResult(batch_index=4, transaction_hash="0xabc", items_submitted=7)
        record = TransactionRecord.from_result(result)
        assert record.transaction_hash == "0xabc"
        assert record.batch_index == 4
        assert record.item_count == 7
        assert record.status == "pending"
        assert record.timestamp

    def test_from_result_without_hash(self):
        result = BatchSubmissionResult(batch_index=0, items_submitted=1, strategy="unsigned_export")
        with pytest.raises(ValueError):
            TransactionRecord.from_result(result)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            TransactionRecord(transaction_hash="0xabc", batch_index=0, item_count=1, status="dropped")


@pytest.mark.unit
class TestDocumentValidationResult:
    """Tests for DocumentValidationResult model"""

    def test_ok(self):
        result = DocumentValidationResult.ok()
        assert result.valid
        assert result.errors == []

    def test_valid_with_errors_rejected(self):
        with pytest.raises(ValidationError):
            DocumentValidationResult(valid=True, errors=[{"path": "/a", "message": "bad"}])


@pytest.mark.unit
def test_run_result_counts_items():
    result = SubmissionRunResult(
        state="completed",
        results=[
            BatchSubmissionResult(batch_index=0, transaction_hash="0x1", items_submitted=200),
            BatchSubmissionResult(batch_index=1, transaction_hash="0x2", items_submitted=13),
        ],
    )
    assert result.items_submitted == 213
    assert result.completed
