"""
Pytest configuration and shared fixtures for packed-merkle tests.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest
import structlog

from packed_merkle.merkle.tree import PackedMerkleTree


def make_payloads(count: int, prefix: str = "tx") -> List[bytes]:
    """
    Generate distinct payloads tx1, tx2, ... for building trees.

    Args:
        count: Number of payloads.
        prefix: Prefix for every payload.

    Returns:
        List of UTF-8 encoded payloads.
    """
    return [f"{prefix}{i}".encode() for i in range(1, count + 1)]


def create_test_config_content(**overrides) -> str:
    """
    Generate test configuration YAML content.

    Args:
        **overrides: Values substituted into the template (hash_algorithm,
            max_path_length, level, json_format).

    Returns:
        YAML configuration content as string.
    """
    values = {
        "hash_algorithm": "sha256",
        "max_path_length": 64,
        "level": "DEBUG",
        "json_format": "false",
    }
    values.update(overrides)
    return f"""
merkle:
  hash_algorithm: {values['hash_algorithm']}

reconciliation:
  max_path_length: {values['max_path_length']}

logging:
  level: {values['level']}
  json_format: {values['json_format']}
"""


def _route_structlog_to_stdlib() -> None:
    """Send structlog events through the stdlib root logger (WARNING and up by default)."""
    structlog.configure(
        processors=[structlog.stdlib.add_log_level, structlog.processors.JSONRenderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


_route_structlog_to_stdlib()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """
    Drop handlers installed by setup_logging once a test finishes.

    Handlers may point at temp files or CliRunner streams that no longer exist.
    """
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(logging.WARNING)
    _route_structlog_to_stdlib()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory that is cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config_path(temp_dir: Path) -> Path:
    """
    Create a sample configuration file for testing.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Path to sample config file.
    """
    config_path = temp_dir / "config.yaml"
    config_path.write_text(create_test_config_content())
    return config_path


@pytest.fixture
def seven_leaf_tree() -> PackedMerkleTree:
    """Tree built from tx1..tx7."""
    return PackedMerkleTree.from_leaves(make_payloads(7))


# Hypothesis settings for property-based tests
from hypothesis import settings, Verbosity

# Register custom profile for packed-merkle tests
settings.register_profile("packed-merkle", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("packed-merkle-ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("packed-merkle-dev", max_examples=10, verbosity=Verbosity.verbose)

# Load profile from environment or use default
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "packed-merkle"))
