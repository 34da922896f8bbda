"""
Batch builder: order-preserving chunking of eligible items.
"""

from property_oracle.core.models import Batch, DataItem


DEFAULT_BATCH_SIZE = 200


def group_into_batches(items: list[DataItem], max_batch_size: int = DEFAULT_BATCH_SIZE) -> list[Batch]:
    """
    Split items into consecutive batches of at most max_batch_size.

    Concatenating the batches in index order reproduces the input order.

    Args:
        items: Eligible items in manifest order
        max_batch_size: Upper bound on items per batch

    Returns:
        Batches indexed from 0 (empty list for no items)

    Raises:
        ValueError: If max_batch_size < 1
    """
    if max_batch_size < 1:
        raise ValueError(f"max_batch_size must be >= 1, got {max_batch_size}")

    return [
        Batch(index=index, items=items[start:start + max_batch_size])
        for index, start in enumerate(range(0, len(items), max_batch_size))
    ]
