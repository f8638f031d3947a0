"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Digest primitives for the packed Merkle tree.

Leaves and internal nodes are both double-hashed:
- leaf_hash(data) = H(H(data))
- node_hash(a, b) = H(H(a + b))

Double hashing keeps a leaf's raw bytes from being confused with the
concatenation of two child digests.
"""

import hashlib
from typing import Union

from packed_merkle.exceptions import UnsupportedHashAlgorithmError

Key = bytes
Payload = Union[bytes, str]

DEFAULT_HASH_ALGORITHM = "sha256"


def to_bytes(data: Payload) -> bytes:
    """Encode str payloads as UTF-8; pass bytes through unchanged."""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class Hasher:
    """
    Fixed-width hash function H and the leaf/node digests derived from it.

    Any fixed-output algorithm known to hashlib can be used. Trees built with
    different hashers never agree on a root, so bundles only move between
    replicas that share one.

    Example:
        >>> hasher = Hasher("sha256")
        >>> len(hasher.leaf_hash(b"tx1"))
        32
    """

    def __init__(self, algorithm: str = DEFAULT_HASH_ALGORITHM):
        """
        Select the underlying hashlib algorithm.

        Args:
            algorithm: hashlib algorithm name (e.g. "sha256", "sha3_256", "blake2b")

        Raises:
            UnsupportedHashAlgorithmError: If hashlib does not provide a
                fixed-width algorithm with that name
        """
        algorithm = algorithm.lower()
        try:
            probe = hashlib.new(algorithm)
        except (ValueError, TypeError) as e:
            raise UnsupportedHashAlgorithmError(
                f"Unsupported hash algorithm '{algorithm}': {e}"
            ) from e

        # shake_* digests are variable length
        if probe.digest_size == 0:
            raise UnsupportedHashAlgorithmError(
                f"Hash algorithm '{algorithm}' does not have a fixed digest size"
            )

        self.algorithm = algorithm
        self.digest_size = probe.digest_size

    def hash(self, data: bytes) -> Key:
        """Single application of H."""
        return hashlib.new(self.algorithm, data).digest()

    def leaf_hash(self, data: Payload) -> Key:
        """Digest identifying a leaf payload: H(H(data))."""
        return self.hash(self.hash(to_bytes(data)))

    def node_hash(self, a: Key, b: Key) -> Key:
        """
        Digest of an internal node: H(H(a + b)).

        Raises:
            ValueError: If either operand is not a digest of this hasher's width
        """
        if len(a) != self.digest_size or len(b) != self.digest_size:
            raise ValueError(
                f"node_hash expects {self.digest_size}-byte digests, "
                f"got {len(a)} and {len(b)}"
            )
        return self.hash(self.hash(a + b))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Hasher) and other.algorithm == self.algorithm

    def __hash__(self) -> int:
        return hash(self.algorithm)

    def __repr__(self) -> str:
        return f"Hasher({self.algorithm!r})"


DEFAULT_HASHER = Hasher()


def leaf_hash(data: Payload) -> Key:
    """Leaf digest under the default SHA-256 hasher."""
    return DEFAULT_HASHER.leaf_hash(data)


def node_hash(a: Key, b: Key) -> Key:
    """Node digest under the default SHA-256 hasher."""
    return DEFAULT_HASHER.node_hash(a, b)
