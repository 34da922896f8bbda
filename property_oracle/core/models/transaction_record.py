"""
Transaction models: per-batch submission results and durable ledger rows.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from .data_item import DataItem


TransactionStatus = Literal["pending", "success", "failed"]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class BatchSubmissionResult(BaseModel):
    """
    Outcome of submitting one batch, delivered as soon as the node (or API)
    accepts it.

    Attributes:
        batch_index: Index of the batch in the run
        transaction_hash: Hash returned by the node/API (None for unsigned export)
        block_number: Block the transaction landed in, when known
        gas_used: Gas consumed, when known
        items_submitted: Number of DataItems in the batch
        items: The DataItems that were submitted
        strategy: Name of the strategy that produced the result
    """

    batch_index: int = Field(..., ge=0)
    transaction_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    items_submitted: int = Field(..., ge=0)
    items: list[DataItem] = Field(default_factory=list)
    strategy: str = "direct"


class TransactionRecord(BaseModel):
    """
    One row of the transaction ledger.

    Created with status "pending" at submission time; a separate status
    polling pass rewrites the ledger with the final status.

    Attributes:
        transaction_hash: Submitted transaction hash
        batch_index: Index of the batch this transaction carried
        item_count: Number of DataItems in the batch
        timestamp: ISO-8601 time the row was written
        status: pending, success or failed
    """

    transaction_hash: str = Field(..., min_length=1)
    batch_index: int = Field(..., ge=0)
    item_count: int = Field(..., ge=0)
    timestamp: str = Field(default_factory=utc_now_iso)
    status: TransactionStatus = "pending"

    @classmethod
    def from_result(cls, result: BatchSubmissionResult) -> "TransactionRecord":
        if not result.transaction_hash:
            raise ValueError(f"Batch {result.batch_index} has no transaction hash")
        return cls(
            transaction_hash=result.transaction_hash,
            batch_index=result.batch_index,
            item_count=result.items_submitted,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_hash": "0x5c504ed432cb51138bcf09aa5e8a410dd4a1e204ef84bfed1be16dfba1b22060",
                "batch_index": 0,
                "item_count": 200,
                "timestamp": "2025-06-01T12:00:00+00:00",
                "status": "pending"
            }
        }
