"""
Command-line interface for submitting hashed data to the oracle contract.

Usage:
    python -m property_oracle.cli.submit_cli submit <manifest.csv> [options]
    python -m property_oracle.cli.submit_cli check-status <ledger.csv> [options]
    python -m property_oracle.cli.submit_cli check-gas-price [--rpc-url URL]
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

from property_oracle.chain.cache import ConsensusCache
from property_oracle.chain.consensus import Web3ChainStateReader
from property_oracle.chain.contract import SubmitContractClient, build_web3
from property_oracle.chain.eligibility import EligibilityGate
from property_oracle.chain.gas import read_gas_prices, wei_to_gwei
from property_oracle.chain.wallet import derive_address, load_wallet
from property_oracle.config.settings import SubmitConfig, load_submit_config
from property_oracle.core.errors import ConfigurationError, PropertyOracleError
from property_oracle.core.models import SubmissionRunResult
from property_oracle.observability.logger import get_logger
from property_oracle.observability.metrics import start_metrics_server
from property_oracle.submission.pipeline import SubmissionPipeline
from property_oracle.submission.retry import api_retry_policy, direct_retry_policy
from property_oracle.submission.status import TransactionStatusChecker
from property_oracle.submission.strategies import (
    CentralizedApiSubmitter,
    DirectSignedSubmitter,
    TransactionSubmitter,
    UnsignedExportSubmitter,
    UnsignedTransactionBuilder,
)
from property_oracle.writers.ledger_writer import TransactionLedger
from property_oracle.writers.report_writer import CsvReporter


logger = get_logger(__name__)


def build_submitter(config: SubmitConfig, client: SubmitContractClient) -> tuple[TransactionSubmitter, str | None]:
    """
    Choose and construct the submission strategy.

    Args:
        config: Submit configuration
        client: Contract client bound to the RPC node

    Returns:
        (submitter, acting_address); acting_address is None when unknown

    Raises:
        ConfigurationError: If the chosen strategy lacks what it needs
    """
    gas_policy = config.gas.to_policy()

    if config.mode == "direct":
        wallet = load_wallet(config.private_key, config.keystore_path, config.keystore_password)
        submitter = DirectSignedSubmitter(
            client=client,
            signer=wallet,
            gas_policy=gas_policy,
            retry_policy=direct_retry_policy(
                max_retries=config.max_retries,
                retry_delay=config.retry_delay,
                multiplier=config.retry_backoff_multiplier,
            ),
        )
        return submitter, wallet.address

    builder = UnsignedTransactionBuilder(
        contract_address=client.contract_address,
        gas_policy=gas_policy,
        chain_id=config.chain_id,
        client=client,
    )
    from_address = config.from_address or derive_address(
        config.private_key, config.keystore_path, config.keystore_password
    )

    if config.mode == "unsigned_export":
        submitter = UnsignedExportSubmitter(
            builder=builder,
            from_address=from_address,
            output_path=config.export_path,
            starting_nonce=config.starting_nonce,
        )
        return submitter, from_address

    submitter = CentralizedApiSubmitter(
        domain=config.domain,
        api_key=config.api_key,
        oracle_key_id=config.oracle_key_id,
        builder=builder,
        from_address=from_address,
        timeout=config.http_timeout,
        retry_policy=api_retry_policy(max_attempts=config.api_max_attempts, base_delay=config.api_retry_delay),
    )
    return submitter, from_address


def run_submission(
    config: SubmitConfig,
    submitter: TransactionSubmitter,
    acting_address: str | None,
    manifest_path: Path,
    metrics_port: int | None = None,
) -> SubmissionRunResult:
    """Wire the gate, reports and ledger around a submitter and run the pipeline."""
    gate = None
    if config.check_eligibility:
        reader = Web3ChainStateReader(config.rpc_url, config.contract_address, timeout=config.chain_query_timeout)
        gate = EligibilityGate(reader, ConsensusCache(), max_workers=config.max_concurrent_chain_queries)

    if metrics_port:
        start_metrics_server(metrics_port)
        logger.info(f"Serving Prometheus metrics on port {metrics_port}")

    reporter = CsvReporter(config.error_csv, config.warning_csv)
    reporter.initialize()

    cancel_event = threading.Event()
    pipeline = SubmissionPipeline(
        submitter=submitter,
        batch_size=config.batch_size,
        gate=gate,
        acting_address=acting_address,
        ledger=TransactionLedger(config.transaction_ledger) if config.mode != "unsigned_export" else None,
        reporter=reporter,
        cancel_event=cancel_event,
    )

    def handle_interrupt(signum, frame):
        logger.warning("Interrupt received, stopping after the current batch")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        return pipeline.run(manifest_path)
    finally:
        signal.signal(signal.SIGINT, previous_handler)


def submit_command(args) -> int:
    """
    Execute the submit command.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    manifest_path = Path(args.input)
    if not manifest_path.exists():
        logger.error(f"Manifest not found: {args.input}")
        return 1

    try:
        config = load_submit_config(
            args.config,
            rpc_url=args.rpc_url,
            contract_address=args.contract_address,
            private_key=args.private_key,
            keystore_path=args.keystore,
            keystore_password=args.keystore_password,
            from_address=args.from_address,
            domain=args.domain,
            api_key=args.api_key,
            oracle_key_id=args.oracle_key_id,
            dry_run=True if args.dry_run else None,
            unsigned_transactions_json=args.unsigned_transactions_json,
            batch_size=args.batch_size,
            check_eligibility=False if args.skip_eligibility else None,
            max_concurrent_chain_queries=args.max_concurrent_queries,
            gas_price=args.gas_price,
            max_fee=args.max_fee,
            max_priority_fee=args.max_priority_fee,
            error_csv=args.error_csv,
            warning_csv=args.warning_csv,
            transaction_ledger=args.ledger,
        )

        web3 = build_web3(config.rpc_url, config.http_timeout)
        client = SubmitContractClient(web3, config.contract_address)
        submitter, acting_address = build_submitter(config, client)
    except PropertyOracleError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        result = run_submission(config, submitter, acting_address, manifest_path, args.metrics_port)
    finally:
        submitter.close()

    logger.info("=" * 60)
    logger.info("SUBMISSION COMPLETE" if result.completed else "SUBMISSION ABORTED")
    logger.info("=" * 60)
    logger.info(f"Mode: {result.mode}")
    logger.info(f"Manifest rows: {result.total_rows}")
    logger.info(f"Eligible items: {result.eligible_items}")
    logger.info(f"Skipped items: {len(result.skipped)}")
    logger.info(f"Batches: {len(result.results)}/{result.batches_planned}")
    logger.info(f"Items submitted: {result.items_submitted}")
    if result.aborted_reason:
        logger.info(f"Aborted: {result.aborted_reason}")
    if config.mode == "unsigned_export":
        logger.info(f"Unsigned transactions: {config.export_path}")
    else:
        logger.info(f"Transaction ledger: {config.transaction_ledger}")
    logger.info("=" * 60)

    return 0 if result.completed else 1


def check_status_command(args) -> int:
    """
    Execute the check-status command: poll pending ledger rows and rewrite the ledger.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    ledger_path = Path(args.ledger)
    if not ledger_path.exists():
        logger.error(f"Ledger not found: {args.ledger}")
        return 1

    try:
        config = load_submit_config(args.config, rpc_url=args.rpc_url, dry_run=True)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    checker = TransactionStatusChecker(
        build_web3(config.rpc_url, config.chain_query_timeout),
        poll_interval=args.poll_interval,
        max_wait=args.max_wait,
    )
    try:
        reports = checker.check_ledger(TransactionLedger(ledger_path))
    except PropertyOracleError as e:
        logger.error(f"Status check failed: {e}")
        return 1

    counts = {"success": 0, "failed": 0, "pending": 0}
    for report in reports:
        counts[report.status] += 1
    logger.info(
        f"Status check complete: {counts['success']} success, {counts['failed']} failed, "
        f"{counts['pending']} still pending"
    )
    return 0 if counts["failed"] == 0 else 2


def check_gas_price_command(args) -> int:
    """
    Execute the check-gas-price command: print the node's current fees in gwei.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    try:
        config = load_submit_config(args.config, rpc_url=args.rpc_url, dry_run=True)
        snapshot = read_gas_prices(build_web3(config.rpc_url, config.chain_query_timeout).eth)
    except PropertyOracleError as e:
        logger.error(f"Gas price check failed: {e}")
        return 1

    if snapshot.block_number is not None:
        print(f"Block number: {snapshot.block_number}")
    print("Legacy (type 0) transaction:")
    print(f"  gasPrice: {wei_to_gwei(snapshot.gas_price):g} gwei")
    if snapshot.base_fee is None:
        print("EIP-1559 (type 2) transaction: not supported by this node")
        return 0
    print("EIP-1559 (type 2) transaction:")
    print(f"  maxFeePerGas: {wei_to_gwei(snapshot.max_fee):g} gwei")
    print(f"  maxPriorityFeePerGas: {wei_to_gwei(snapshot.max_priority_fee):g} gwei")
    print(f"  baseFeePerGas: {wei_to_gwei(snapshot.base_fee):g} gwei")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Submit hashed property data to the oracle contract",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign and submit directly
  property-oracle-submit submit upload-results.csv --private-key $ELEPHANT_PRIVATE_KEY

  # Submit through the oracle API
  property-oracle-submit submit upload-results.csv --domain oracle.example.com \\
      --api-key $ELEPHANT_API_KEY --oracle-key-id $ELEPHANT_ORACLE_KEY_ID --from-address 0x...

  # Dry run: write unsigned transactions to JSON
  property-oracle-submit submit upload-results.csv --dry-run \\
      --unsigned-transactions-json unsigned.json --from-address 0x...

  # Poll pending transactions in the ledger
  property-oracle-submit check-status transaction-status.csv

  # Show current legacy and EIP-1559 fees
  property-oracle-submit check-gas-price --rpc-url https://polygon-rpc.com
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Submit command
    submit_parser = subparsers.add_parser("submit", help="Submit a manifest CSV")
    submit_parser.add_argument("input", help="Manifest CSV (propertyCid,dataGroupCid,dataCid)")
    submit_parser.add_argument("--config", help="YAML configuration file")
    submit_parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: https://polygon-rpc.com)")
    submit_parser.add_argument("--contract-address", help="Submit contract address")
    submit_parser.add_argument("--private-key", help="Signing key (prefer ELEPHANT_PRIVATE_KEY)")
    submit_parser.add_argument("--keystore", help="Encrypted JSON keystore")
    submit_parser.add_argument("--keystore-password", help="Keystore password (prefer KEYSTORE_PASSWORD)")
    submit_parser.add_argument("--from-address", help="Sender address for unsigned transactions")
    submit_parser.add_argument("--domain", help="Oracle API domain")
    submit_parser.add_argument("--api-key", help="Oracle API key")
    submit_parser.add_argument("--oracle-key-id", help="Oracle key id")
    submit_parser.add_argument("--dry-run", action="store_true", help="Do not broadcast; export unsigned transactions")
    submit_parser.add_argument("--unsigned-transactions-json", help="Unsigned transaction export path")
    submit_parser.add_argument("--batch-size", type=int, help="Items per transaction (default: 200)")
    submit_parser.add_argument("--skip-eligibility", action="store_true", help="Submit without consensus checks")
    submit_parser.add_argument("--max-concurrent-queries", type=int, help="Parallel chain reads (default: 20)")
    submit_parser.add_argument("--gas-price", help="Gas price in gwei or 'auto' (default: auto)")
    submit_parser.add_argument("--max-fee", help="EIP-1559 max fee in gwei or 'auto'")
    submit_parser.add_argument("--max-priority-fee", help="EIP-1559 priority fee in gwei or 'auto'")
    submit_parser.add_argument("--error-csv", help="Error report path (default: ./submit_errors.csv)")
    submit_parser.add_argument("--warning-csv", help="Warning report path (default: ./submit_warnings.csv)")
    submit_parser.add_argument("--ledger", help="Transaction ledger path (default: ./transaction-status.csv)")
    submit_parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port while running")

    # Check-status command
    status_parser = subparsers.add_parser("check-status", help="Poll pending transactions in a ledger")
    status_parser.add_argument("ledger", help="Transaction ledger CSV")
    status_parser.add_argument("--config", help="YAML configuration file")
    status_parser.add_argument("--rpc-url", help="JSON-RPC endpoint")
    status_parser.add_argument("--poll-interval", type=float, default=2.0, help="Seconds between receipt polls")
    status_parser.add_argument("--max-wait", type=float, default=900.0, help="Seconds to wait per transaction")

    # Check-gas-price command
    gas_parser = subparsers.add_parser("check-gas-price", help="Show current legacy and EIP-1559 fees")
    gas_parser.add_argument("--config", help="YAML configuration file")
    gas_parser.add_argument("--rpc-url", help="JSON-RPC endpoint")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "submit":
        return submit_command(args)
    elif args.command == "check-status":
        return check_status_command(args)
    elif args.command == "check-gas-price":
        return check_gas_price_command(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
