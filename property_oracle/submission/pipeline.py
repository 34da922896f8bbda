"""
Submission pipeline orchestration.

Coordinates the flow: load manifest -> eligibility filter -> build batches
-> submit -> record results -> finalize

This is the only layer that decides whether an error concerns one item
(report it and carry on) or the whole run (abort).
"""

import threading
from pathlib import Path

from property_oracle.chain.eligibility import EligibilityGate
from property_oracle.core.errors import BatchSubmissionError, PropertyOracleError, SubmissionCancelled
from property_oracle.core.models import BatchSubmissionResult, DataItem, SubmissionRunResult
from property_oracle.observability.logger import get_logger
from property_oracle.readers.manifest_reader import ManifestReader
from property_oracle.submission.batching import DEFAULT_BATCH_SIZE, group_into_batches
from property_oracle.submission.strategies.base import TransactionSubmitter
from property_oracle.utils.validation import validate_batch_size
from property_oracle.writers.ledger_writer import TransactionLedger
from property_oracle.writers.report_writer import CsvReporter


logger = get_logger(__name__)


class SubmissionPipeline:
    """
    Orchestrates one submission run.

    Flow:
    1. Read the manifest CSV into DataItems
    2. Filter against consensus state (when a gate is configured)
    3. Group eligible items into batches
    4. Submit batches through the strategy, one at a time
    5. Append each accepted batch to the ledger as it happens
    6. Summarize the run
    """

    def __init__(
        self,
        submitter: TransactionSubmitter,
        batch_size: int = DEFAULT_BATCH_SIZE,
        gate: EligibilityGate | None = None,
        acting_address: str | None = None,
        ledger: TransactionLedger | None = None,
        reporter: CsvReporter | None = None,
        reader: ManifestReader | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize submission pipeline.

        Args:
            submitter: Strategy that gets batches on chain
            batch_size: Maximum items per batch
            gate: Eligibility gate, None to submit every manifest row
            acting_address: Address checked for prior submissions
            ledger: Transaction ledger, None to skip ledger writes
            reporter: Error/warning CSV reporter
            reader: Manifest reader
            cancel_event: Set to stop before the next batch
        """
        self.submitter = submitter
        self.batch_size = validate_batch_size(batch_size)
        self.gate = gate
        self.acting_address = acting_address
        self.ledger = ledger
        self.reporter = reporter
        self.reader = reader or ManifestReader()
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Request cancellation; the in-flight batch is allowed to finish."""
        self.cancel_event.set()

    def run(self, manifest_path: str | Path) -> SubmissionRunResult:
        """
        Run the pipeline end to end.

        Args:
            manifest_path: CSV with propertyCid,dataGroupCid,dataCid columns

        Returns:
            Run summary; state is "completed" or "aborted"
        """
        result = SubmissionRunResult(mode=self.submitter.name)
        logger.info(f"Starting submission run for {manifest_path} (mode={self.submitter.name})")

        # Step 1: Load manifest
        result.state = "load_manifest"
        try:
            items = self.reader.read(manifest_path)
        except PropertyOracleError as e:
            return self._abort(result, f"Cannot load manifest: {e}")
        result.total_rows = len(items)
        logger.info(f"Loaded {len(items)} items from manifest")

        # Step 2: Eligibility filter (optional)
        eligible = items
        if self.gate is not None:
            result.state = "eligibility_filter"
            eligible = self._filter(items, result)
        result.eligible_items = len(eligible)

        # Step 3: Build batches
        result.state = "build_batches"
        batches = group_into_batches(eligible, self.batch_size)
        result.batches_planned = len(batches)
        logger.info(f"Built {len(batches)} batches of up to {self.batch_size} items")

        # Step 4: Submit; results are recorded as each batch is accepted
        result.state = "submit"
        if not batches:
            logger.info("No eligible items to submit")
            self.submitter.finalize()
        else:
            try:
                self.submitter.submit_batches(
                    batches,
                    on_result=lambda r: self._record(r, result),
                    should_cancel=self.cancel_event.is_set,
                )
            except BatchSubmissionError as e:
                result.failed_batch_index = e.batch_index
                self._report_failed_batch(batches[e.batch_index].items, e)
                return self._abort(result, str(e))
            except SubmissionCancelled as e:
                return self._abort(result, str(e))
            except PropertyOracleError as e:
                return self._abort(result, f"Submission failed: {e}")

        # Step 5: Record results (ledger rows were appended per batch)
        result.state = "record_results"
        if self.ledger is not None:
            logger.info(f"Transaction ledger: {self.ledger.path}")

        # Step 6: Finalize
        result.state = "finalize"
        logger.info(
            f"Submission run complete: {result.items_submitted} items in {len(result.results)} batches, "
            f"{len(result.skipped)} skipped"
        )
        result.state = "completed"
        return result

    def _filter(self, items: list[DataItem], result: SubmissionRunResult) -> list[DataItem]:
        self.gate.prepopulate(items)
        eligibility = self.gate.filter_eligible(items, self.acting_address)
        result.skipped = eligibility.skipped

        if self.reporter is not None:
            for skipped in eligibility.skipped:
                item = skipped.item
                self.reporter.log_warning(item.property_cid, item.data_group_cid, item.file_path or "", skipped.message)
            for item, message in self.gate.warnings:
                self.reporter.log_warning(item.property_cid, item.data_group_cid, item.file_path or "", message)

        return eligibility.eligible

    def _record(self, batch_result: BatchSubmissionResult, result: SubmissionRunResult) -> None:
        result.results.append(batch_result)
        if self.ledger is not None:
            self.ledger.record(batch_result)

    def _report_failed_batch(self, items: list[DataItem], error: BatchSubmissionError) -> None:
        if self.reporter is None:
            return
        for item in items:
            self.reporter.log_error(
                item.property_cid,
                item.data_group_cid,
                item.file_path or "",
                f"Batch {error.batch_index} submission failed: {error.cause}",
            )

    @staticmethod
    def _abort(result: SubmissionRunResult, reason: str) -> SubmissionRunResult:
        logger.error(f"Submission run aborted: {reason}")
        result.state = "aborted"
        result.aborted_reason = reason
        return result
