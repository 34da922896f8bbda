"""
Eligibility gate.

Filters manifest items against consensus state so the run does not pay
gas for values already agreed on chain or already submitted by the acting
address. Chain reads are fail-open: a read error makes the item eligible
and is surfaced as a warning.
"""

from concurrent.futures import ThreadPoolExecutor

from property_oracle.chain.cache import ConsensusCache
from property_oracle.chain.consensus import ChainStateReader
from property_oracle.core.errors import ChainReadError
from property_oracle.core.models import DataItem, EligibilityResult, SkippedItem, SkipReason
from property_oracle.ipld.cid import same_content
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import increment_counter, items_skipped_total


logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENT_QUERIES = 20


class EligibilityGate:
    """
    Decides which DataItems still need submitting.

    Rules, in order:
    1. Current consensus value equals dataCid -> skip (already_on_chain)
    2. Acting address already submitted dataCid -> skip (already_submitted)
    3. Otherwise eligible
    """

    def __init__(
        self,
        reader: ChainStateReader,
        cache: ConsensusCache | None = None,
        max_workers: int = DEFAULT_MAX_CONCURRENT_QUERIES,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.reader = reader
        self.cache = cache or ConsensusCache()
        self.max_workers = max_workers
        self.warnings: list[tuple[DataItem, str]] = []

    def prepopulate(self, items: list[DataItem]) -> int:
        """
        Load current consensus values for all unique (property, data group) pairs.

        Read errors are not raised here; filter_eligible sees them again and
        treats the affected items as eligible.

        Returns:
            Number of unique keys that loaded successfully
        """
        keys = list(dict.fromkeys(item.consensus_key for item in items))
        if not keys:
            return 0

        logger.info(f"Prepopulating consensus cache for {len(keys)} property/dataGroup pairs")

        def load(key: tuple[str, str]) -> bool:
            try:
                self._current(*key)
            except ChainReadError as e:
                logger.debug(f"Prepopulate read failed for {key}: {e}")
                return False
            return True

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(keys))) as executor:
            loaded = sum(executor.map(load, keys))

        logger.info(f"Consensus cache prepopulated: {loaded}/{len(keys)} keys loaded")
        return loaded

    def filter_eligible(self, items: list[DataItem], acting_address: str | None = None) -> EligibilityResult:
        """
        Partition items into eligible and skipped, preserving manifest order.

        Args:
            items: Manifest items
            acting_address: Address that will submit (None skips the
                already-submitted check)

        Returns:
            EligibilityResult
        """
        result = EligibilityResult()
        self.warnings = []

        for item in items:
            skipped = self._check(item, acting_address, result)
            if skipped is None:
                result.eligible.append(item)
            else:
                result.skipped.append(skipped)
                increment_counter(items_skipped_total, reason=skipped.reason.value)

        logger.info(
            f"Eligibility: {len(result.eligible)} eligible, {len(result.skipped)} skipped, "
            f"{result.chain_read_failures} chain read failures"
        )
        return result

    def _check(self, item: DataItem, acting_address: str | None, result: EligibilityResult) -> SkippedItem | None:
        try:
            current = self._current(item.property_cid, item.data_group_cid)
            if current is not None and same_content(current, item.data_cid):
                return SkippedItem(
                    item=item,
                    reason=SkipReason.ALREADY_ON_CHAIN,
                    message=(
                        f"Data CID {item.data_cid} already exists on chain for property "
                        f"{item.property_cid}, dataGroup {item.data_group_cid}"
                    ),
                )

            if acting_address and self._submitted(item, acting_address):
                return SkippedItem(
                    item=item,
                    reason=SkipReason.ALREADY_SUBMITTED,
                    message=(
                        f"User has already submitted data CID {item.data_cid} for property "
                        f"{item.property_cid}, dataGroup {item.data_group_cid}"
                    ),
                )
        except ChainReadError as e:
            result.chain_read_failures += 1
            message = f"Chain read failed, submitting anyway: {e}"
            self.warnings.append((item, message))
            logger.warning(f"{item.describe()}: {message}")

        return None

    def _current(self, property_cid: str, data_group_cid: str) -> str | None:
        return self.cache.current_data_cid(
            property_cid,
            data_group_cid,
            lambda: self.reader.get_current_data_cid(property_cid, data_group_cid),
        )

    def _submitted(self, item: DataItem, address: str) -> bool:
        return self.cache.user_submitted(
            item.property_cid,
            item.data_group_cid,
            item.data_cid,
            address,
            lambda: self.reader.has_user_submitted_data(
                item.property_cid, item.data_group_cid, item.data_cid, address
            ),
        )
