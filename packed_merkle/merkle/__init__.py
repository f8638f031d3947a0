"""
Packed Merkle tree with single-leaf push/delete and replica reconciliation.

This module provides tree construction, inclusion proofs, whole-tree
verification and the bundle protocol used to fill reserved replicas.
"""

from packed_merkle.merkle.digest import DEFAULT_HASHER, Hasher, Key, leaf_hash, node_hash
from packed_merkle.merkle.proof import Path, PathNode, Side, fold_path, leaf_position
from packed_merkle.merkle.bundle import (
    DataBundle,
    ReconciliationResult,
    insert_bundle,
    query_bundle,
    reconcile,
    transfer,
)
from packed_merkle.merkle.snapshot import TreeSnapshot
from packed_merkle.merkle.tree import PackedMerkleTree
from packed_merkle.merkle.verifier import TreeVerifier, VerificationResult, VerificationSummary

__all__ = [
    "DEFAULT_HASHER",
    "Hasher",
    "Key",
    "leaf_hash",
    "node_hash",
    "Path",
    "PathNode",
    "Side",
    "fold_path",
    "leaf_position",
    "DataBundle",
    "ReconciliationResult",
    "insert_bundle",
    "query_bundle",
    "reconcile",
    "transfer",
    "TreeSnapshot",
    "PackedMerkleTree",
    "TreeVerifier",
    "VerificationResult",
    "VerificationSummary",
]
