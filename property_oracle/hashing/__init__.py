"""
Hashing pipeline: turns property document sets into CID-named artifacts and a manifest.
"""

from .pipeline import SEED_PLACEHOLDER_PREFIX, HashingPipeline, PropertyOutcome, seed_placeholder
from .scanner import DataGroupFile, PropertyFileSet, PropertyScanner

__all__ = [
    "HashingPipeline",
    "PropertyOutcome",
    "PropertyScanner",
    "PropertyFileSet",
    "DataGroupFile",
    "seed_placeholder",
    "SEED_PLACEHOLDER_PREFIX",
]
