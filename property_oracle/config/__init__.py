"""
Configuration models and loaders.
"""

from .settings import GasPriceSetting, HashConfig, SubmitConfig, load_hash_config, load_submit_config

__all__ = [
    "GasPriceSetting",
    "HashConfig",
    "SubmitConfig",
    "load_hash_config",
    "load_submit_config",
]
