"""
SubmissionRunResult model: terminal summary of one submission run.
"""

from typing import Literal

from pydantic import BaseModel, Field

from .eligibility import SkippedItem
from .transaction_record import BatchSubmissionResult


RunState = Literal[
    "load_manifest",
    "eligibility_filter",
    "build_batches",
    "submit",
    "record_results",
    "finalize",
    "completed",
    "aborted",
]


class SubmissionRunResult(BaseModel):
    """
    Summary of a submission run.

    Attributes:
        state: Terminal state, "completed" or "aborted"
        mode: Submission strategy used
        total_rows: Rows read from the manifest
        eligible_items: Items that passed the eligibility gate
        skipped: Items skipped by the gate
        batches_planned: Number of batches built
        results: Per-batch results, in batch order
        aborted_reason: Why the run stopped early
        failed_batch_index: Batch that failed under fail-fast policy
    """

    state: RunState = "load_manifest"
    mode: str = "direct"
    total_rows: int = 0
    eligible_items: int = 0
    skipped: list[SkippedItem] = Field(default_factory=list)
    batches_planned: int = 0
    results: list[BatchSubmissionResult] = Field(default_factory=list)
    aborted_reason: str | None = None
    failed_batch_index: int | None = None

    @property
    def items_submitted(self) -> int:
        return sum(r.items_submitted for r in self.results)

    @property
    def completed(self) -> bool:
        return self.state == "completed"
