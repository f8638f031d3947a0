"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Configuration management for packed-merkle hosts.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from packed_merkle.exceptions import InvalidConfigurationError, UnsupportedHashAlgorithmError
from packed_merkle.logging_config import get_logger, setup_logging
from packed_merkle.merkle.digest import DEFAULT_HASH_ALGORITHM, Hasher

logger = get_logger(__name__)


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Args:
        value: Configuration value (string, dict, list, or other)

    Returns:
        Value with environment variables expanded

    Examples:
        "${MERKLE_HASH}" -> value of MERKLE_HASH env var
        "${MERKLE_HASH:sha256}" -> value of MERKLE_HASH or "sha256" if not set
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


def _to_bool(value: Any) -> bool:
    """Interpret YAML booleans and the strings env expansion produces."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0", ""):
            return False
    raise InvalidConfigurationError(f"Expected a boolean, got {value!r}")


@dataclass
class MerkleConfig:
    """Tree configuration."""

    hash_algorithm: str = DEFAULT_HASH_ALGORITHM  # Any fixed-width hashlib algorithm


@dataclass
class ReconciliationConfig:
    """Replica reconciliation configuration."""

    max_path_length: int = 64  # Longest inclusion path a replica will accept


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""  # Empty means stderr
    json_format: bool = True


@dataclass
class PackedMerkleConfig:
    """Main packed-merkle configuration."""

    merkle: MerkleConfig = field(default_factory=MerkleConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    return os.path.expanduser("~/.packed_merkle/config.yaml")


def get_default_config() -> PackedMerkleConfig:
    """
    Get default configuration with sensible defaults.

    Returns:
        PackedMerkleConfig: Default configuration object
    """
    return PackedMerkleConfig(
        merkle=MerkleConfig(hash_algorithm=DEFAULT_HASH_ALGORITHM),
        reconciliation=ReconciliationConfig(max_path_length=64),
        logging=LoggingConfig(level="INFO", file="", json_format=True),
    )


def load_config(config_path: Optional[str] = None) -> PackedMerkleConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        PackedMerkleConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(str(config_path))

    if not os.path.exists(config_path):
        logger.info("config_not_found", path=config_path)
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug("config_loaded", path=config_path)
    except yaml.YAMLError as e:
        logger.error("config_parse_failed", path=config_path, error=str(e))
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        ) from e
    except OSError as e:
        logger.error("config_read_failed", path=config_path, error=str(e))
        raise InvalidConfigurationError(
            f"Failed to read configuration file '{config_path}': {e}"
        ) from e

    if config_data is None:
        logger.info("config_empty", path=config_path)
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Configuration file '{config_path}' must contain a mapping at the top level"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _validate_config(config)
    except InvalidConfigurationError as e:
        logger.error("config_invalid", path=config_path, error=str(e))
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info("config_validated", path=config_path)
    return config


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(f"'{name}' section must be a mapping")
    return section


def _build_config_from_dict(config_data: Dict[str, Any]) -> PackedMerkleConfig:
    """
    Build PackedMerkleConfig from dictionary loaded from YAML.

    Merges user configuration with defaults. Every section is optional.

    Args:
        config_data: Dictionary loaded from YAML file

    Returns:
        PackedMerkleConfig: Configuration object

    Raises:
        InvalidConfigurationError: If a value has the wrong type
    """
    default_config = get_default_config()

    merkle_data = _section(config_data, 'merkle')
    merkle = MerkleConfig(
        hash_algorithm=str(
            merkle_data.get('hash_algorithm', default_config.merkle.hash_algorithm)
        ),
    )

    reconciliation_data = _section(config_data, 'reconciliation')
    try:
        max_path_length = int(reconciliation_data.get(
            'max_path_length', default_config.reconciliation.max_path_length
        ))
    except (ValueError, TypeError) as e:
        raise InvalidConfigurationError(
            "reconciliation max_path_length must be an integer"
        ) from e
    reconciliation = ReconciliationConfig(max_path_length=max_path_length)

    logging_data = _section(config_data, 'logging')
    logging = LoggingConfig(
        level=str(logging_data.get('level', default_config.logging.level)),
        file=os.path.expanduser(
            logging_data.get('file', default_config.logging.file) or ""
        ),
        json_format=_to_bool(
            logging_data.get('json_format', default_config.logging.json_format)
        ),
    )

    return PackedMerkleConfig(
        merkle=merkle,
        reconciliation=reconciliation,
        logging=logging,
    )


def _validate_config(config: PackedMerkleConfig) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    try:
        Hasher(config.merkle.hash_algorithm)
    except UnsupportedHashAlgorithmError as e:
        raise InvalidConfigurationError(str(e)) from e

    if config.reconciliation.max_path_length < 0:
        raise InvalidConfigurationError(
            f"max_path_length must be non-negative, "
            f"got {config.reconciliation.max_path_length}"
        )

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.logging.level.upper() not in valid_log_levels:
        raise InvalidConfigurationError(
            f"logging level must be one of {valid_log_levels}, "
            f"got '{config.logging.level}'"
        )


def create_hasher(config: Optional[PackedMerkleConfig] = None) -> Hasher:
    """
    Build the hasher named by the configuration.

    Args:
        config: Loaded configuration (defaults if None)

    Returns:
        Hasher to pass to tree constructors
    """
    if config is None:
        config = get_default_config()
    return Hasher(config.merkle.hash_algorithm)


def configure_logging(config: Optional[PackedMerkleConfig] = None) -> None:
    """Apply the logging section of the configuration."""
    if config is None:
        config = get_default_config()
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(
        level=config.logging.level,
        log_file=log_file,
        json_format=config.logging.json_format,
    )
