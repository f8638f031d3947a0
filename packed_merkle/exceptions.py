"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Exception hierarchy for packed-merkle.

All custom exceptions inherit from PackedMerkleError base class. Ordinary
outcomes (absent digest, duplicate push, proof that does not fold to the
root) are reported through return values, not exceptions.
"""

from typing import Optional


class PackedMerkleError(Exception):
    """Base exception for all packed-merkle errors."""
    pass


# Tree Errors
class TreeError(PackedMerkleError):
    """Base exception for tree-related errors."""
    pass


class IncompleteTreeError(TreeError):
    """Raised when a mutation needs digests a reserved replica has not received yet."""
    pass


class InvalidTreeShapeError(TreeError):
    """Raised when a tree cannot be reserved with the given root or leaf count."""
    pass


# Reconciliation Errors
class ReconciliationError(PackedMerkleError):
    """Base exception for replica reconciliation errors."""
    pass


class StructuralInconsistencyError(ReconciliationError):
    """
    Raised when a verified bundle disagrees with a digest the replica already holds.

    Both digests authenticate against the same root, so this means a hash
    collision or a faulty peer. It is never resolved by overwriting.
    """

    def __init__(
        self,
        position: int,
        expected: bytes,
        received: bytes,
        message: Optional[str] = None,
    ):
        self.position = position
        self.expected = expected
        self.received = received
        if message is None:
            message = (
                f"Slot {position} holds {expected.hex()} but bundle carries {received.hex()}"
            )
        super().__init__(message)


# Configuration Errors
class ConfigurationError(PackedMerkleError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass


class UnsupportedHashAlgorithmError(ConfigurationError):
    """Raised when a hash algorithm name is not available in hashlib."""
    pass
