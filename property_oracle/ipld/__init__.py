"""
Content addressing: canonical JSON, CIDs, link shapes and DAG resolution.
"""

from .canonicalizer import IpldCanonicalizer, JsonCanonicalizer, canonicalize, format_number
from .cid import (
    DAG_JSON,
    RAW,
    ParsedCid,
    bytes32_hex_to_cid,
    cid_to_bytes32_hex,
    compute_cid,
    is_cid,
    parse_cid,
    same_content,
)
from .dag_builder import LinkResolver, ResolvedNode
from .links import LinkArray, RelationshipEdge, SingleLink, classify, is_excluded_relationship

__all__ = [
    "JsonCanonicalizer",
    "IpldCanonicalizer",
    "canonicalize",
    "format_number",
    "compute_cid",
    "parse_cid",
    "is_cid",
    "same_content",
    "cid_to_bytes32_hex",
    "bytes32_hex_to_cid",
    "ParsedCid",
    "RAW",
    "DAG_JSON",
    "SingleLink",
    "LinkArray",
    "RelationshipEdge",
    "classify",
    "is_excluded_relationship",
    "LinkResolver",
    "ResolvedNode",
]
