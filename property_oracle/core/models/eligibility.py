"""
Eligibility models: which DataItems are worth submitting and why others are not.
"""

from enum import Enum

from pydantic import BaseModel, Field

from .data_item import DataItem


class SkipReason(str, Enum):
    """Why an item was not submitted."""

    ALREADY_ON_CHAIN = "already_on_chain"
    ALREADY_SUBMITTED = "already_submitted"


class SkippedItem(BaseModel):
    """A DataItem left out of the submission, with a human-readable reason."""

    item: DataItem
    reason: SkipReason
    message: str


class EligibilityResult(BaseModel):
    """
    Outcome of the eligibility gate.

    Attributes:
        eligible: Items to submit, in manifest order
        skipped: Items left out, in manifest order
        chain_read_failures: Items treated as eligible because a chain read failed
    """

    eligible: list[DataItem] = Field(default_factory=list)
    skipped: list[SkippedItem] = Field(default_factory=list)
    chain_read_failures: int = 0
