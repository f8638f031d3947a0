"""
Configuration management for packed-merkle hosts.

Handles loading and validation of configuration files.
"""

from packed_merkle.config.settings import (
    LoggingConfig,
    MerkleConfig,
    PackedMerkleConfig,
    ReconciliationConfig,
    configure_logging,
    create_hasher,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "LoggingConfig",
    "MerkleConfig",
    "PackedMerkleConfig",
    "ReconciliationConfig",
    "configure_logging",
    "create_hasher",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]
