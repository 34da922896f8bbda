"""
Command-line interface for hashing property document sets.

Usage:
    python -m property_oracle.cli.hash_cli hash <input> --output <dir|zip> --output-csv <csv> [options]
    python -m property_oracle.cli.hash_cli cid-to-hex <cid> [--validate] [--quiet]
    python -m property_oracle.cli.hash_cli hex-to-cid <hex> [--validate] [--quiet]
"""

import argparse
import sys
from pathlib import Path

from property_oracle.config.settings import HashConfig, load_hash_config
from property_oracle.core.errors import InvalidCidError, PropertyOracleError
from property_oracle.core.schema import JsonSchemaValidator, SchemaManifest, SchemaRegistry
from property_oracle.hashing.pipeline import HashingPipeline
from property_oracle.ipld.cid import CODECS, RAW, bytes32_hex_to_cid, cid_to_bytes32_hex, parse_cid
from property_oracle.observability.logger import get_logger
from property_oracle.writers.report_writer import CsvReporter


logger = get_logger(__name__)


def build_pipeline(config: HashConfig) -> HashingPipeline:
    """
    Wire a hashing pipeline from configuration.

    Args:
        config: Hash configuration

    Returns:
        HashingPipeline with the schema manifest loaded
    """
    if config.schema_manifest_file is not None:
        manifest = SchemaManifest.from_file(config.schema_manifest_file)
    else:
        manifest = SchemaManifest.from_url(config.schema_manifest_url, timeout=config.http_timeout)
    manifest.load()

    validator = None
    if config.validate_documents:
        if config.schema_dir is not None:
            registry = SchemaRegistry.from_directory(config.schema_dir)
        else:
            registry = SchemaRegistry.from_gateway(config.ipfs_gateway, timeout=config.http_timeout)
        validator = JsonSchemaValidator(registry)
    else:
        logger.warning("Schema validation disabled")

    reporter = CsvReporter(config.error_csv, config.warning_csv)
    reporter.initialize()

    return HashingPipeline(
        schema_manifest=manifest,
        validator=validator,
        reporter=reporter,
        document_codec=config.document_codec,
        sort_link_arrays=config.sort_link_arrays,
        max_workers=config.max_workers,
    )


def hash_command(args) -> int:
    """
    Execute the hash command.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input not found: {args.input}")
        return 1

    try:
        config = load_hash_config(
            args.config,
            input_path=input_path,
            output_path=args.output,
            output_csv=args.output_csv,
            property_cid=args.property_cid,
            schema_manifest_url=args.schema_manifest_url,
            schema_manifest_file=args.schema_manifest_file,
            schema_dir=args.schema_dir,
            ipfs_gateway=args.ipfs_gateway,
            validate_documents=False if args.no_validate else None,
            document_codec=args.codec,
            max_workers=args.max_workers,
            error_csv=args.error_csv,
            warning_csv=args.warning_csv,
        )
        pipeline = build_pipeline(config)
        result = pipeline.run(
            config.input_path,
            config.output_path,
            config.output_csv,
            property_cid=config.property_cid,
        )
    except PropertyOracleError as e:
        logger.error(f"Hashing failed: {e}")
        return 1

    logger.info("=" * 60)
    logger.info("HASHING COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Properties processed: {result.properties_processed}")
    logger.info(f"Properties failed: {result.properties_failed}")
    logger.info(f"Documents emitted: {len(result.documents)}")
    logger.info(f"Documents excluded: {len(result.failures)}")
    logger.info(f"Artifacts written: {result.artifacts_written}")
    logger.info(f"Manifest: {config.output_csv}")
    if result.failures:
        logger.info(f"Error report: {config.error_csv}")
    logger.info("=" * 60)

    return 0 if not result.failures else 2


def cid_to_hex_command(args) -> int:
    """Print the bytes32 digest the contract stores for a CID."""
    try:
        parsed = parse_cid(args.cid)
        if args.validate:
            if parsed.version != 1:
                raise InvalidCidError(args.cid, f"expected CID v1, got CID v{parsed.version}")
            if not args.quiet:
                print(f"Valid CID (v{parsed.version}, {parsed.codec})")
        hex_hash = cid_to_bytes32_hex(args.cid)
    except InvalidCidError as e:
        logger.error(f"cid-to-hex failed: {e}")
        return 1

    print(hex_hash if args.quiet else f"Hex: {hex_hash}")
    return 0


def hex_to_cid_command(args) -> int:
    """Print the CIDv1 rebuilt from a bytes32 digest."""
    try:
        cid = bytes32_hex_to_cid(args.hex, codec=args.codec)
    except InvalidCidError as e:
        logger.error(f"hex-to-cid failed: {e}")
        return 1
    if cid is None:
        logger.error("hex-to-cid failed: an all-zero hash stands for no value and has no CID")
        return 1

    if args.validate and not args.quiet:
        print("Valid bytes32 hex")
    print(cid if args.quiet else f"CID: {cid}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Content-address property document sets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hash a directory of property directories into a zip archive
  property-oracle-hash hash data/ --output out.zip --output-csv upload-results.csv

  # Hash a single property whose files carry no seed
  property-oracle-hash hash data/52434205310037080 --output out/ \\
      --output-csv upload-results.csv --property-cid bafkrei...

  # Use local schemas instead of the IPFS gateway
  property-oracle-hash hash data.zip --output out.zip --output-csv results.csv \\
      --schema-manifest-file schemas/manifest.json --schema-dir schemas/

  # Look up the bytes32 hash the contract stores for a CID, and back
  property-oracle-hash cid-to-hex bafkrei... --quiet
  property-oracle-hash hex-to-cid 0x1234...
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    hash_parser = subparsers.add_parser("hash", help="Hash property directories")
    hash_parser.add_argument("input", help="Property directory, directory of properties, or .zip")
    hash_parser.add_argument("--output", required=True, help="Output directory, or .zip path for an archive")
    hash_parser.add_argument("--output-csv", required=True, help="Manifest CSV to write")
    hash_parser.add_argument("--config", help="YAML configuration file")
    hash_parser.add_argument("--property-cid", help="Property CID to use when no seed file is present")
    hash_parser.add_argument("--schema-manifest-url", help="Schema manifest URL")
    hash_parser.add_argument("--schema-manifest-file", help="Local schema manifest JSON")
    hash_parser.add_argument("--schema-dir", help="Directory of <schemaCid>.json schema files")
    hash_parser.add_argument("--ipfs-gateway", help="IPFS gateway for schema downloads")
    hash_parser.add_argument("--no-validate", action="store_true", help="Skip schema validation")
    hash_parser.add_argument(
        "--codec",
        choices=["dag-json", "raw"],
        help="Codec for document CIDs (default: dag-json)"
    )
    hash_parser.add_argument("--max-workers", type=int, help="Properties hashed in parallel (default: 1)")
    hash_parser.add_argument("--error-csv", help="Error report path (default: ./submit_errors.csv)")
    hash_parser.add_argument("--warning-csv", help="Warning report path (default: ./submit_warnings.csv)")

    # Conversion between CIDs and the bytes32 hashes the contract stores
    to_hex_parser = subparsers.add_parser("cid-to-hex", help="Convert a CID to its bytes32 hex hash")
    to_hex_parser.add_argument("cid", help="CID string")
    to_hex_parser.add_argument("-v", "--validate", action="store_true", help="Require a CIDv1 and report its codec")
    to_hex_parser.add_argument("-q", "--quiet", action="store_true", help="Print only the hex hash")

    to_cid_parser = subparsers.add_parser("hex-to-cid", help="Convert a bytes32 hex hash to a CIDv1")
    to_cid_parser.add_argument("hex", help="32-byte hex hash, with or without 0x")
    to_cid_parser.add_argument("-v", "--validate", action="store_true", help="Report that the hex is well formed")
    to_cid_parser.add_argument("-q", "--quiet", action="store_true", help="Print only the CID")
    to_cid_parser.add_argument("--codec", choices=sorted(CODECS), default=RAW, help="CID codec (default: raw)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "hash":
        return hash_command(args)
    elif args.command == "cid-to-hex":
        return cid_to_hex_command(args)
    elif args.command == "hex-to-cid":
        return hex_to_cid_command(args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
