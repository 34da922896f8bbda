"""
Link resolution and DAG assembly.

Walks a document's link fields depth-first, resolves every referenced
document before its parent (post-order), replaces each relative path with
the child's CID, then canonicalizes and hashes the parent. Results are
memoized per absolute path for the lifetime of one resolver, so shared
(diamond) references are hashed once.

A resolver is single-threaded; hash properties in parallel with one
resolver each.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from property_oracle.core.errors import CyclicLinkError, StructuralError, UnresolvableLinkError
from property_oracle.ipld.canonicalizer import IpldCanonicalizer, JsonCanonicalizer
from property_oracle.ipld.cid import DAG_JSON, RAW, compute_cid, is_cid
from property_oracle.ipld.links import (
    DEFAULT_EXCLUDED_SUFFIXES,
    LinkArray,
    RelationshipEdge,
    SingleLink,
    classify,
    is_excluded_relationship,
)
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

IPFS_URL_FIELD = "ipfs_url"


@dataclass(frozen=True)
class ResolvedNode:
    """
    A document (or binary leaf) with its links replaced by CIDs.

    Attributes:
        path: Absolute source path
        cid: CID of the canonical bytes
        codec: Codec used for the CID
        content: Canonical bytes (JSON) or raw file bytes (binary leaf)
        document: Resolved JSON value, None for binary leaves
    """

    path: Path
    cid: str
    codec: str
    content: bytes
    document: Any = None


class LinkResolver:
    """
    Resolves link graphs rooted at a document into CIDs.

    Flow per document:
    1. Load the file (JSON documents are parsed, anything else is a raw leaf)
    2. Resolve every link target first, depth-first
    3. Substitute child CIDs into the link fields
    4. Canonicalize and compute the document's own CID
    """

    def __init__(
        self,
        canonicalizer: JsonCanonicalizer | None = None,
        document_codec: str = DAG_JSON,
        excluded_suffixes: tuple[str, ...] = DEFAULT_EXCLUDED_SUFFIXES,
        rewrite_ipfs_urls: bool = True,
    ):
        """
        Initialize link resolver.

        Args:
            canonicalizer: Serializer for resolved documents (IPLD-aware by default)
            document_codec: Codec for JSON documents ("dag-json" or "raw")
            excluded_suffixes: Relationship name suffixes that are not traversed
            rewrite_ipfs_urls: Replace local "ipfs_url" file paths with ipfs:// CIDs
        """
        self.canonicalizer = canonicalizer or IpldCanonicalizer()
        self.document_codec = document_codec
        self.excluded_suffixes = excluded_suffixes
        self.rewrite_ipfs_urls = rewrite_ipfs_urls

        self._nodes: dict[Path, ResolvedNode] = {}
        self._stack: list[Path] = []

    def resolve(self, root_path: str | Path) -> str:
        """
        Resolve a document and everything it links to.

        Args:
            root_path: Path to the root document

        Returns:
            CID of the root document

        Raises:
            CyclicLinkError: If a link leads back to a document being resolved
            UnresolvableLinkError: If a link target does not exist
            StructuralError: If a document is not valid JSON or not canonicalizable
        """
        return self.resolve_node(root_path).cid

    def resolve_node(self, path: str | Path, referenced_from: str | None = None) -> ResolvedNode:
        """Resolve one path, returning the memoized node when available."""
        abs_path = _normalize(Path(path).expanduser().absolute())

        cached = self._nodes.get(abs_path)
        if cached is not None:
            return cached

        if abs_path in self._stack:
            start = self._stack.index(abs_path)
            raise CyclicLinkError([str(p) for p in self._stack[start:]] + [str(abs_path)])

        if not abs_path.is_file():
            raise UnresolvableLinkError(str(path), referenced_from)

        self._stack.append(abs_path)
        try:
            node = self._build(abs_path)
        finally:
            self._stack.pop()

        self._nodes[abs_path] = node
        logger.debug(f"Resolved {abs_path.name} -> {node.cid}")
        return node

    def nodes(self) -> list[ResolvedNode]:
        """All nodes resolved so far, children before parents."""
        return list(self._nodes.values())

    def get(self, path: str | Path) -> ResolvedNode | None:
        return self._nodes.get(_normalize(Path(path).absolute()))

    # =======================
    # INTERNALS
    # =======================

    def _build(self, path: Path) -> ResolvedNode:
        if path.suffix.lower() != ".json":
            content = path.read_bytes()
            return ResolvedNode(path=path, cid=compute_cid(content, RAW), codec=RAW, content=content)

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StructuralError(f"Invalid JSON document: {e}", path=str(path)) from e

        resolved = self._substitute(document, path)
        content = self.canonicalizer.canonicalize(resolved)
        return ResolvedNode(
            path=path,
            cid=compute_cid(content, self.document_codec),
            codec=self.document_codec,
            content=content,
            document=resolved,
        )

    def _substitute(self, value: Any, source: Path) -> Any:
        shape = classify(value)
        if isinstance(shape, SingleLink):
            return self._link(shape, source)
        if isinstance(shape, LinkArray):
            return [self._link(link, source) for link in shape.links]
        if isinstance(shape, RelationshipEdge):
            return {
                "from": self._link(shape.from_link, source) if shape.from_link else None,
                "to": self._link(shape.to_link, source) if shape.to_link else None,
            }

        if isinstance(value, dict):
            out = {}
            for key, child in value.items():
                if is_excluded_relationship(key, self.excluded_suffixes):
                    out[key] = child
                elif key == IPFS_URL_FIELD and self.rewrite_ipfs_urls and self._is_local_file(child, source):
                    node = self.resolve_node(source.parent / child, referenced_from=str(source))
                    out[key] = f"ipfs://{node.cid}"
                else:
                    out[key] = self._substitute(child, source)
            return out
        if isinstance(value, list):
            return [self._substitute(item, source) for item in value]
        return value

    def _link(self, link: SingleLink, source: Path) -> dict[str, str]:
        target = link.target
        if is_cid(target):
            return {"/": target.lstrip(".")}
        target_path = Path(target)
        if not target_path.is_absolute():
            target_path = source.parent / target_path
        return {"/": self.resolve_node(target_path, referenced_from=str(source)).cid}

    @staticmethod
    def _is_local_file(value: Any, source: Path) -> bool:
        if not isinstance(value, str) or not value or "://" in value:
            return False
        return (source.parent / value).is_file()


def _normalize(path: Path) -> Path:
    """Collapse "." and ".." segments without touching the filesystem."""
    parts: list[str] = []
    for part in path.parts:
        if part == ".":
            continue
        if part == ".." and len(parts) > 1:
            parts.pop()
            continue
        parts.append(part)
    return Path(*parts)
