"""
Input readers.
"""

from .manifest_reader import ManifestReader

__all__ = [
    "ManifestReader",
]
