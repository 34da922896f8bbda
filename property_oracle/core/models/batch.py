"""
Batch model: an ordered, size-bounded group of DataItems (ephemeral).
"""

from pydantic import BaseModel, Field

from .data_item import DataItem


class Batch(BaseModel):
    """
    DataItems submitted together in one transaction.

    Item order is the manifest order, so ``index`` maps a transaction
    back to a contiguous range of manifest rows.

    Attributes:
        index: 0-based position of the batch in the run
        items: DataItems in manifest order
    """

    index: int = Field(..., ge=0)
    items: list[DataItem] = Field(..., min_length=1)

    @property
    def size(self) -> int:
        return len(self.items)
