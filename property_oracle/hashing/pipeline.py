"""
Hashing pipeline orchestration.

Coordinates the flow per property: scan → resolve → validate → assign
property identity → package artifacts → write manifest
"""

import json
import tempfile
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from property_oracle.core.errors import PropertyIdentityError, StructuralError
from property_oracle.core.models import DocumentFailure, HashedDocument, HashRunResult
from property_oracle.core.schema import AcceptAllValidator, DocumentValidator, SchemaManifest
from property_oracle.hashing.scanner import DataGroupFile, PropertyScanner
from property_oracle.ipld.canonicalizer import IpldCanonicalizer
from property_oracle.ipld.cid import DAG_JSON
from property_oracle.ipld.dag_builder import LinkResolver, ResolvedNode
from property_oracle.ipld.links import DEFAULT_EXCLUDED_SUFFIXES
from property_oracle.observability.logger import get_logger, log_operation
from property_oracle.observability.metrics import (
    documents_hashed_total,
    increment_counter,
    property_hash_duration_seconds,
    validation_failures_total,
)
from property_oracle.writers import ArtifactWriter, CsvReporter, HashManifestWriter


logger = get_logger(__name__)

SEED_PLACEHOLDER_PREFIX = "SEED_PENDING:"


def seed_placeholder(property_dir: Path) -> str:
    """Marker used as propertyCid until the seed document has been resolved."""
    return f"{SEED_PLACEHOLDER_PREFIX}{property_dir.name}"


@dataclass
class PropertyOutcome:
    """Everything hashing one property produced, before anything is written."""

    property_dir: Path
    property_cid: str | None = None
    documents: list[HashedDocument] = field(default_factory=list)
    failures: list[DocumentFailure] = field(default_factory=list)
    artifacts: list[ResolvedNode] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.property_cid is not None


class HashingPipeline:
    """
    Orchestrates content addressing of property document sets.

    Flow per property:
    1. Scan the directory for data group root files
    2. Resolve each root file's link graph into CIDs (seed included)
    3. Validate every resolved data group document against its schema
    4. Replace the seed placeholder with the seed's CID
    5. Package every reachable node as a CID-named artifact
    6. Emit one manifest row per validated data group document

    A failing document is reported and left out; its siblings continue.
    If the seed fails, the whole property is left out.
    """

    def __init__(
        self,
        schema_manifest: SchemaManifest,
        validator: DocumentValidator | None = None,
        reporter: CsvReporter | None = None,
        document_codec: str = DAG_JSON,
        excluded_suffixes: tuple[str, ...] = DEFAULT_EXCLUDED_SUFFIXES,
        sort_link_arrays: bool = True,
        max_workers: int = 1,
    ):
        """
        Initialize hashing pipeline.

        Args:
            schema_manifest: Loaded schema manifest (label -> schema CID)
            validator: Document validator; accepts everything when None
            reporter: Error report writer for excluded documents
            document_codec: Codec for document CIDs
            excluded_suffixes: Relationship suffixes that are not traversed
            sort_link_arrays: Sort link arrays by CID before hashing
            max_workers: Properties resolved in parallel (one resolver each)
        """
        self.schema_manifest = schema_manifest
        self.scanner = PropertyScanner(schema_manifest)
        self.validator = validator or AcceptAllValidator()
        self.reporter = reporter
        self.document_codec = document_codec
        self.excluded_suffixes = excluded_suffixes
        self.sort_link_arrays = sort_link_arrays
        self.max_workers = max(1, max_workers)

    def run(
        self,
        input_path: str | Path,
        output_path: str | Path,
        output_csv: str | Path,
        property_cid: str | None = None,
    ) -> HashRunResult:
        """
        Hash every property found under input_path.

        Args:
            input_path: Property directory, directory of property directories, or .zip of either
            output_path: Output directory, or .zip path for an archive
            output_csv: Path of the manifest CSV to write
            property_cid: Property CID to use when a property has no seed

        Returns:
            HashRunResult with manifest rows, failures and counts
        """
        input_path = Path(input_path)
        logger.info(f"Starting hashing run for input: {input_path}")

        with tempfile.TemporaryDirectory(prefix="property-oracle-") as scratch:
            root = self._extract(input_path, Path(scratch)) if input_path.suffix.lower() == ".zip" else input_path
            property_dirs = self.find_property_dirs(root)
            logger.info(f"Found {len(property_dirs)} property directories")

            # Step 1: Resolve and validate (no output written yet)
            if self.max_workers > 1 and len(property_dirs) > 1:
                with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    outcomes = list(pool.map(lambda d: self.process_property(d, property_cid), property_dirs))
            else:
                outcomes = [self.process_property(d, property_cid) for d in property_dirs]

            # Step 2: Package artifacts and collect manifest rows
            result = HashRunResult()
            with ArtifactWriter(output_path) as writer:
                for outcome in outcomes:
                    self._record_failures(outcome.failures)
                    result.failures.extend(outcome.failures)
                    if not outcome.succeeded:
                        result.properties_failed += 1
                        continue
                    result.properties_processed += 1
                    for node in outcome.artifacts:
                        writer.write(outcome.property_cid, artifact_name(node), node.content)
                    result.documents.extend(outcome.documents)
                result.artifacts_written = writer.written

        # Step 3: Write manifest
        HashManifestWriter(output_csv).write(result.documents)

        logger.info(
            f"Hashing complete: {len(result.documents)} documents, {len(result.failures)} failures, "
            f"{result.properties_processed} properties ({result.properties_failed} failed)"
        )
        return result

    def process_property(self, property_dir: str | Path, property_cid: str | None = None) -> PropertyOutcome:
        """
        Resolve, validate and identify one property without writing anything.

        Args:
            property_dir: Directory of the property
            property_cid: Property CID to use when there is no seed

        Returns:
            PropertyOutcome; property_cid is None when the property failed
        """
        property_dir = Path(property_dir)
        outcome = PropertyOutcome(property_dir=property_dir)

        start = time.monotonic()
        try:
            with log_operation("Hashing property", logger=logger, property_dir=property_dir.name):
                self._process(outcome, property_cid)
        except OSError as e:
            logger.error(f"I/O error while hashing {property_dir.name}: {e}")
            outcome.property_cid = None
            outcome.documents = []
            outcome.artifacts = []
            outcome.failures.append(
                self._failure(seed_placeholder(property_dir), None, property_dir, e, kind="structural")
            )
            increment_counter(documents_hashed_total, status="structural_error")
        finally:
            property_hash_duration_seconds.observe(time.monotonic() - start)
        return outcome

    @staticmethod
    def find_property_dirs(root: Path) -> list[Path]:
        """A directory with JSON files is one property; otherwise each subdirectory is."""
        if not root.is_dir():
            raise FileNotFoundError(f"Input directory not found: {root}")
        if any(root.glob("*.json")):
            return [root]
        return sorted(p for p in root.iterdir() if p.is_dir() and not p.name.startswith((".", "__")))

    # =======================
    # INTERNALS
    # =======================

    def _process(self, outcome: PropertyOutcome, property_cid: str | None) -> None:
        property_dir = outcome.property_dir
        placeholder = seed_placeholder(property_dir)
        resolver = LinkResolver(
            canonicalizer=IpldCanonicalizer(sort_link_arrays=self.sort_link_arrays),
            document_codec=self.document_codec,
            excluded_suffixes=self.excluded_suffixes,
        )

        try:
            file_set = self.scanner.scan(property_dir)
        except PropertyIdentityError as e:
            outcome.failures.append(self._failure(placeholder, None, property_dir, e, kind="structural"))
            return

        for error in [*file_set.unreadable, *file_set.undeclared]:
            outcome.failures.append(self._failure(placeholder, None, Path(error.path), error, kind="structural"))
            increment_counter(documents_hashed_total, status="structural_error")

        seed_cid: str | None = None
        seed_failed = False
        emitted: list[ResolvedNode] = []

        for group in file_set.data_groups:
            node = self._resolve_and_validate(resolver, group, placeholder, outcome)
            if node is None:
                seed_failed = seed_failed or group.is_seed
                continue
            if group.is_seed:
                seed_cid = node.cid
            emitted.append(node)
            outcome.documents.append(
                HashedDocument(
                    property_cid=placeholder,
                    data_group_cid=group.data_group_cid,
                    data_cid=node.cid,
                    file_path=artifact_name(node),
                    source_path=str(group.path),
                )
            )

        # Step: property identity
        if seed_failed:
            logger.error(f"Seed of {property_dir.name} failed; skipping the property's other documents")
            self._drop_documents(outcome, placeholder, "Seed processing failed")
            return
        if file_set.seed is None and file_set.unreadable:
            # An unreadable file may be the seed, so no identity is trustworthy
            names = ", ".join(Path(error.path).name for error in file_set.unreadable)
            error = PropertyIdentityError(
                f"Seed data group cannot be identified; unreadable files: {names}", path=str(property_dir)
            )
            logger.error(str(error))
            outcome.failures.append(self._failure(placeholder, None, property_dir, error, kind="structural"))
            self._drop_documents(outcome, placeholder, str(error))
            return
        resolved_cid = seed_cid or property_cid
        if resolved_cid is None:
            error = PropertyIdentityError(
                "No seed data group and no property CID provided", path=str(property_dir)
            )
            outcome.failures.append(self._failure(placeholder, None, property_dir, error, kind="structural"))
            self._drop_documents(outcome, placeholder, str(error))
            return

        # Step: rewrite pass replacing the placeholder everywhere it was used
        outcome.property_cid = resolved_cid
        outcome.documents = [
            doc.model_copy(
                update={
                    "property_cid": resolved_cid,
                    "file_path": f"{resolved_cid}/{doc.file_path}",
                }
            )
            for doc in outcome.documents
        ]
        outcome.failures = [
            failure.model_copy(update={"property_cid": resolved_cid})
            if failure.property_cid == placeholder else failure
            for failure in outcome.failures
        ]
        outcome.artifacts = reachable_nodes(emitted, resolver.nodes())
        increment_counter(documents_hashed_total, len(outcome.documents), status="emitted")

    def _resolve_and_validate(
        self,
        resolver: LinkResolver,
        group: DataGroupFile,
        placeholder: str,
        outcome: PropertyOutcome,
    ) -> ResolvedNode | None:
        try:
            node = resolver.resolve_node(group.path)
        except (StructuralError, OSError) as e:
            logger.error(f"Cannot resolve {group.path.name}: {e}")
            outcome.failures.append(self._failure(placeholder, group.data_group_cid, group.path, e, kind="structural"))
            increment_counter(documents_hashed_total, status="structural_error")
            return None

        result = self.validator.validate(node.document, group.data_group_cid)
        if not result.valid:
            logger.warning(f"{group.path.name} failed validation for {group.label}: {len(result.errors)} errors")
            for error in result.errors:
                outcome.failures.append(
                    DocumentFailure(
                        property_cid=placeholder,
                        data_group_cid=group.data_group_cid,
                        file_path=str(group.path),
                        error_path=error.get("path", ""),
                        error_message=error.get("message", ""),
                        current_value=_value_at(node.document, error.get("path", "")),
                        kind="validation",
                    )
                )
            increment_counter(documents_hashed_total, status="validation_failed")
            increment_counter(validation_failures_total, data_group=group.label)
            return None

        return node

    @staticmethod
    def _drop_documents(outcome: PropertyOutcome, placeholder: str, reason: str) -> None:
        for doc in outcome.documents:
            outcome.failures.append(
                DocumentFailure(
                    property_cid=placeholder,
                    data_group_cid=doc.data_group_cid,
                    file_path=doc.source_path,
                    error_message=reason,
                    kind="structural",
                )
            )
        outcome.documents = []

    @staticmethod
    def _failure(
        property_cid: str,
        data_group_cid: str | None,
        path: Path,
        error: Exception,
        kind: str,
    ) -> DocumentFailure:
        return DocumentFailure(
            property_cid=property_cid,
            data_group_cid=data_group_cid or "",
            file_path=str(path),
            error_message=str(error),
            kind=kind,
        )

    def _record_failures(self, failures: list[DocumentFailure]) -> None:
        if self.reporter is None:
            return
        for failure in failures:
            self.reporter.log_error(
                property_cid=failure.property_cid,
                data_group_cid=failure.data_group_cid,
                file_path=failure.file_path,
                error_message=failure.error_message,
                error_path=failure.error_path,
                current_value=failure.current_value,
            )

    @staticmethod
    def _extract(archive: Path, scratch: Path) -> Path:
        if not archive.is_file():
            raise FileNotFoundError(f"Input archive not found: {archive}")
        target = scratch / "input"
        root = target.resolve()
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                member_path = (target / member).resolve()
                if not member_path.is_relative_to(root):
                    raise StructuralError(f"Archive member escapes extraction root: {member}", path=str(archive))
            zf.extractall(target)
        return target


def artifact_name(node: ResolvedNode) -> str:
    """CID-based file name of a node inside its property folder."""
    if node.document is None:
        return f"{node.cid}{node.path.suffix.lower()}"
    return f"{node.cid}.json"


def reachable_nodes(roots: list[ResolvedNode], all_nodes: list[ResolvedNode]) -> list[ResolvedNode]:
    """
    Nodes reachable from the emitted roots through resolved links.

    Returned in resolution order (children before parents), without duplicates.
    """
    by_cid = {node.cid: node for node in all_nodes}
    seen: set[str] = set()
    stack = [root.cid for root in roots]
    while stack:
        cid = stack.pop()
        if cid in seen or cid not in by_cid:
            continue
        seen.add(cid)
        stack.extend(_linked_cids(by_cid[cid].document))
    return [node for cid, node in by_cid.items() if cid in seen]


def _linked_cids(value: Any) -> list[str]:
    found: list[str] = []
    if isinstance(value, dict):
        if len(value) == 1 and isinstance(value.get("/"), str):
            return [value["/"]]
        for child in value.values():
            found.extend(_linked_cids(child))
    elif isinstance(value, list):
        for child in value:
            found.extend(_linked_cids(child))
    elif isinstance(value, str) and value.startswith("ipfs://"):
        found.append(value[len("ipfs://"):])
    return found


def _value_at(document: Any, pointer: str) -> str:
    """Render the value at a "/a/b/0" path for error reports; empty when absent."""
    current = document
    for part in [p for p in pointer.split("/") if p]:
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return ""
    if current is document:
        return ""
    return current if isinstance(current, str) else json.dumps(current, ensure_ascii=False)
