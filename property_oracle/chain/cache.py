"""
Per-run cache of consensus reads.

Each key is loaded by exactly one caller; concurrent callers for the same
key wait on that caller's future. Failed loads are evicted so a later
caller can try again.
"""

import threading
from concurrent.futures import Future
from typing import Any, Callable, Hashable


class ConsensusCache:
    """
    Single-writer memo for chain reads.

    Keys are (propertyCid, dataGroupCid) for current-value reads and
    (propertyCid, dataGroupCid, dataCid, address) for submission checks.
    Never persisted; create one per run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[Hashable, Future] = {}

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, loading it once if absent.

        Args:
            key: Cache key
            loader: Zero-argument callable producing the value

        Raises:
            Whatever the loader raised, for the loading caller and every waiter
        """
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[key] = future

        if not owner:
            return future.result()

        try:
            value = loader()
        except Exception as e:
            with self._lock:
                self._entries.pop(key, None)
            future.set_exception(e)
            raise

        future.set_result(value)
        return value

    def current_data_cid(self, property_cid: str, data_group_cid: str, loader: Callable[[], Any]) -> Any:
        return self.get_or_load(("current", property_cid, data_group_cid), loader)

    def user_submitted(
        self, property_cid: str, data_group_cid: str, data_cid: str, address: str, loader: Callable[[], Any]
    ) -> Any:
        return self.get_or_load(("submitted", property_cid, data_group_cid, data_cid, address.lower()), loader)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            future = self._entries.get(key)
        return future is not None and future.done() and future.exception() is None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._entries.values() if f.done() and f.exception() is None)
