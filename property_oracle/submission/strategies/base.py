"""
Base transaction submitter.

Strategies implement submit_batch for one batch; the base class owns the
run-level contract shared by all of them: batches go out strictly in
order, one at a time, each result is handed to the caller as soon as it
exists, and the first failure stops the run.
"""

from abc import ABC, abstractmethod
from typing import Callable

from property_oracle.core.errors import BatchSubmissionError, SubmissionCancelled
from property_oracle.core.models import Batch, BatchSubmissionResult
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import (
    batch_submission_duration_seconds,
    batches_submitted_total,
    increment_counter,
    items_submitted_total,
    track_duration,
)


logger = get_logger(__name__)

ResultCallback = Callable[[BatchSubmissionResult], None]
CancelCheck = Callable[[], bool]


class TransactionSubmitter(ABC):
    """Abstract strategy for getting batches on chain."""

    name: str = "base"

    def prepare(self) -> None:
        """Hook run once before the first batch (nonce sync, connectivity)."""

    @abstractmethod
    def submit_batch(self, batch: Batch) -> BatchSubmissionResult:
        """Submit one batch and return as soon as it is accepted."""

    def finalize(self) -> None:
        """Hook run once after the last batch, successful or not."""

    def close(self) -> None:
        """Release held resources; safe to call more than once."""

    def submit_batches(
        self,
        batches: list[Batch],
        on_result: ResultCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> list[BatchSubmissionResult]:
        """
        Submit batches sequentially with fail-fast semantics.

        Args:
            batches: Batches in index order
            on_result: Called with each result before the next batch starts
            should_cancel: Checked before every batch

        Returns:
            One result per batch, in order

        Raises:
            SubmissionCancelled: If should_cancel returned True
            BatchSubmissionError: If a batch failed; later batches are not attempted
        """
        results: list[BatchSubmissionResult] = []
        if not batches:
            return results

        self.prepare()
        try:
            for batch in batches:
                if should_cancel is not None and should_cancel():
                    logger.warning(f"Cancellation requested, stopping before batch {batch.index}")
                    raise SubmissionCancelled(batch.index)

                logger.info(f"Submitting batch {batch.index + 1}/{len(batches)} ({batch.size} items) via {self.name}")
                try:
                    with track_duration(batch_submission_duration_seconds, strategy=self.name):
                        result = self.submit_batch(batch)
                except Exception as e:
                    increment_counter(batches_submitted_total, strategy=self.name, status="failure")
                    logger.error(f"Batch {batch.index} failed: {e}")
                    raise BatchSubmissionError(batch.index, e, completed=list(results)) from e

                increment_counter(batches_submitted_total, strategy=self.name, status="success")
                increment_counter(items_submitted_total, value=batch.size, strategy=self.name)
                results.append(result)
                if on_result is not None:
                    on_result(result)
        finally:
            self.finalize()

        return results
