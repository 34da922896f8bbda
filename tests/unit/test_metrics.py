"""
Unit tests for Prometheus metrics

Counters live on a module-level registry shared by the whole test session,
so every assertion compares against a value read before the action.
"""

import pytest

from conftest import COUNTY_SCHEMA_CID, FakeChainStateReader, FakeContractClient
from property_oracle.chain.eligibility import EligibilityGate
from property_oracle.core.models import DocumentValidationResult
from property_oracle.hashing.pipeline import HashingPipeline
from property_oracle.observability.metrics import (
    REGISTRY,
    batches_submitted_total,
    documents_hashed_total,
    generate_metrics,
    get_counter_value,
    items_skipped_total,
    items_submitted_total,
    submission_retries_total,
)
from property_oracle.submission.batching import group_into_batches
from property_oracle.submission.strategies import DirectSignedSubmitter


ACTING = "0x" + "12" * 20


class CountyRejectingValidator:
    def validate(self, document, schema_id):
        if schema_id == COUNTY_SCHEMA_CID:
            return DocumentValidationResult(valid=False, errors=[{"path": "", "message": "rejected"}])
        return DocumentValidationResult.ok()


@pytest.mark.unit
class TestMetrics:
    """Tests for metric updates made by the pipelines"""

    def test_exposition_names(self):
        text = generate_metrics().decode("utf-8")
        for name in (
            "oracle_documents_hashed_total",
            "oracle_items_skipped_total",
            "oracle_batches_submitted_total",
            "oracle_batch_submission_duration_seconds",
        ):
            assert name in text

    def test_eligibility_skip_counted(self, data_items):
        item = data_items[0]
        reader = FakeChainStateReader(current={item.consensus_key: item.data_cid})
        before = get_counter_value(items_skipped_total, reason="already_on_chain")

        EligibilityGate(reader).filter_eligible(data_items, ACTING)

        assert get_counter_value(items_skipped_total, reason="already_on_chain") == before + 1

    def test_batch_submission_counted(self, data_items, fake_signer, no_sleep):
        batches_before = get_counter_value(batches_submitted_total, strategy="direct", status="success")
        items_before = get_counter_value(items_submitted_total, strategy="direct")
        retries_before = get_counter_value(submission_retries_total, strategy="direct", error_class="nonce")
        timed_before = REGISTRY.get_sample_value(
            "oracle_batch_submission_duration_seconds_count", {"strategy": "direct"}
        ) or 0.0

        client = FakeContractClient(send_errors=[ValueError("nonce too low")])
        DirectSignedSubmitter(client, fake_signer, sleep=no_sleep.append).submit_batches(
            group_into_batches(data_items, 2)
        )

        assert get_counter_value(batches_submitted_total, strategy="direct", status="success") == batches_before + 3
        assert get_counter_value(items_submitted_total, strategy="direct") == items_before + len(data_items)
        assert get_counter_value(submission_retries_total, strategy="direct", error_class="nonce") == retries_before + 1
        assert REGISTRY.get_sample_value(
            "oracle_batch_submission_duration_seconds_count", {"strategy": "direct"}
        ) == timed_before + 3

    def test_hashing_outcomes_counted(self, schema_manifest, property_dir, tmp_path):
        emitted_before = get_counter_value(documents_hashed_total, status="emitted")
        failed_before = get_counter_value(documents_hashed_total, status="validation_failed")

        result = HashingPipeline(schema_manifest, validator=CountyRejectingValidator()).run(
            property_dir, tmp_path / "out", tmp_path / "manifest.csv"
        )

        assert get_counter_value(documents_hashed_total, status="emitted") == emitted_before + len(result.documents)
        assert get_counter_value(documents_hashed_total, status="validation_failed") == failed_before + 1

    def test_unused_label_reads_zero(self):
        assert get_counter_value(items_skipped_total, reason="never_used") == 0.0
