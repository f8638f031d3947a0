"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Packed Merkle - Dynamic array-packed Merkle tree

Packed Merkle provides a content-addressed Merkle tree with O(log n) push and
delete, inclusion proofs, whole-tree verification and a bundle protocol for
filling replicas that know only a root digest.
"""

from packed_merkle._version import __version__
from packed_merkle.merkle import (
    DataBundle,
    Hasher,
    PackedMerkleTree,
    PathNode,
    Side,
    reconcile,
    transfer,
)

__all__ = [
    "__version__",
    "DataBundle",
    "Hasher",
    "PackedMerkleTree",
    "PathNode",
    "Side",
    "reconcile",
    "transfer",
]
