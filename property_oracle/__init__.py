"""
property-oracle: content-address property records and submit them to an
on-chain consensus oracle.
"""

__version__ = "0.1.0"
