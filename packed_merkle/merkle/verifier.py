"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Tree verifier for packed Merkle tree integrity checks.

This module implements:
- Structure verification: Recompute every internal node from its children
- Leaf verification: Re-derive and fold the path of every locally held leaf
"""

from dataclasses import dataclass, field
from typing import List, Optional

from packed_merkle.logging_config import get_logger, log_tree_verification
from packed_merkle.merkle.tree import PackedMerkleTree

logger = get_logger(__name__)


@dataclass
class VerificationResult:
    """
    Result of verifying a tree's internal structure.

    Attributes:
        verified: True if every resolved internal node matches its children
        total: Node count of the verified tree
        leaves: Leaf count of the verified tree
        root: Root digest at verification time
        mismatched_positions: Internal positions that failed recomputation
        unresolved_slots: Number of slots still waiting on a bundle
        error_message: Error message if verification failed
    """
    verified: bool
    total: int
    leaves: int
    root: Optional[bytes]
    mismatched_positions: List[int] = field(default_factory=list)
    unresolved_slots: int = 0
    error_message: Optional[str] = None


@dataclass
class VerificationSummary:
    """
    Summary of verifying every locally held leaf.

    Attributes:
        total_leaves: Number of leaves with a locally known payload
        verified_leaves: Number of leaves whose path folds to the root
        failed_leaves: Number of leaves that failed
        failed_digests: Digests of the failed leaves
    """
    total_leaves: int
    verified_leaves: int
    failed_leaves: int
    failed_digests: List[bytes]


class TreeVerifier:
    """
    Verify the integrity of a packed Merkle tree.

    Example:
        >>> tree = PackedMerkleTree.from_leaves([b"a", b"b", b"c"])
        >>> verifier = TreeVerifier()
        >>> verifier.verify_structure(tree).verified
        True
        >>> verifier.verify_leaves(tree).failed_leaves
        0
    """

    def verify_structure(self, tree: PackedMerkleTree) -> VerificationResult:
        """
        Recompute every internal node and compare it with the stored digest.

        Args:
            tree: Tree to verify

        Returns:
            VerificationResult with the positions that failed
        """
        snapshot = tree.snapshot()
        mismatched = tree.mismatched_positions()
        verified = not mismatched

        error_message = None
        if not verified:
            error_message = (
                f"{len(mismatched)} internal node(s) disagree with their children: "
                f"{mismatched[:10]}"
            )

        log_tree_verification(
            logger,
            verified,
            snapshot.leaves,
            snapshot.total,
            failure_reason=error_message,
            unresolved_slots=snapshot.unresolved_slots,
        )

        return VerificationResult(
            verified=verified,
            total=snapshot.total,
            leaves=snapshot.leaves,
            root=snapshot.root,
            mismatched_positions=mismatched,
            unresolved_slots=snapshot.unresolved_slots,
            error_message=error_message,
        )

    def verify_leaves(self, tree: PackedMerkleTree) -> VerificationSummary:
        """
        Check that every leaf whose payload the tree holds is provably included.

        A leaf fails if its digest does not match its payload, if its path
        cannot be derived, or if the path does not fold to the root.
        """
        failed: List[bytes] = []
        held = tree.data

        for key, payload in held.items():
            if tree.hasher.leaf_hash(payload) != key:
                failed.append(key)
                continue
            path = tree.path(key)
            if path is None or not tree.verify_path(key, path):
                failed.append(key)

        summary = VerificationSummary(
            total_leaves=len(held),
            verified_leaves=len(held) - len(failed),
            failed_leaves=len(failed),
            failed_digests=failed,
        )

        logger.info(
            "leaf_verification_complete",
            total_leaves=summary.total_leaves,
            verified_leaves=summary.verified_leaves,
            failed_leaves=summary.failed_leaves,
        )

        return summary
