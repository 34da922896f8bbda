"""
Transaction status polling.

Receipts are polled until the transaction is mined or the wait budget
runs out. The ledger is then rewritten with final statuses.
"""

import time
from dataclasses import dataclass
from typing import Callable

from web3.exceptions import TransactionNotFound

from property_oracle.core.models import TransactionRecord, TransactionStatus
from property_oracle.observability.logger import get_logger
from property_oracle.writers.ledger_writer import TransactionLedger


logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_WAIT = 15 * 60.0


@dataclass
class TransactionStatusReport:
    """Observed state of one transaction."""

    transaction_hash: str
    status: TransactionStatus
    block_number: int | None = None
    gas_used: int | None = None
    error: str | None = None


class TransactionStatusChecker:
    """Polls receipts through web3 (or anything exposing eth.get_transaction_receipt)."""

    def __init__(
        self,
        web3,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: float = DEFAULT_MAX_WAIT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.web3 = web3
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep
        self._clock = clock

    def wait_for(self, transaction_hash: str, max_wait: float | None = None) -> TransactionStatusReport:
        """
        Wait for a transaction to be mined.

        Returns:
            Report with status success or failed, or pending on timeout
        """
        budget = self.max_wait if max_wait is None else max_wait
        deadline = self._clock() + budget
        logger.info(f"Waiting for transaction {transaction_hash} to be confirmed...")

        while True:
            try:
                receipt = self.web3.eth.get_transaction_receipt(transaction_hash)
            except TransactionNotFound:
                receipt = None
            except Exception as e:
                logger.warning(f"Error checking transaction status: {e}")
                receipt = None

            if receipt is not None:
                succeeded = receipt["status"] == 1
                report = TransactionStatusReport(
                    transaction_hash=transaction_hash,
                    status="success" if succeeded else "failed",
                    block_number=receipt["blockNumber"],
                    gas_used=receipt["gasUsed"],
                    error=None if succeeded else "Transaction reverted by EVM",
                )
                logger.info(
                    f"Transaction {transaction_hash} confirmed in block {report.block_number} "
                    f"with status: {report.status}"
                )
                return report

            if self._clock() + self.poll_interval > deadline:
                break
            self._sleep(self.poll_interval)

        logger.error(f"Transaction {transaction_hash} confirmation timeout after {budget:.0f}s")
        return TransactionStatusReport(
            transaction_hash=transaction_hash,
            status="pending",
            error=f"Transaction confirmation timeout after {budget:.0f}s",
        )

    def check_ledger(self, ledger: TransactionLedger, max_wait: float | None = None) -> list[TransactionStatusReport]:
        """
        Poll every pending ledger row and rewrite the ledger with the outcomes.

        Returns:
            Reports for the rows that were pending
        """
        records = ledger.read()
        pending = [r for r in records if r.status == "pending"]
        logger.info(f"Checking {len(pending)} pending transactions out of {len(records)}")

        reports: dict[str, TransactionStatusReport] = {}
        for record in pending:
            reports[record.transaction_hash] = self.wait_for(record.transaction_hash, max_wait)

        updated: list[TransactionRecord] = []
        for record in records:
            report = reports.get(record.transaction_hash)
            if report is not None and report.status != record.status:
                record = record.model_copy(update={"status": report.status})
            updated.append(record)

        ledger.rewrite(updated)
        return list(reports.values())
