"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Replica reconciliation for packed Merkle trees.

A replica reserved from a root digest and a leaf count holds no data. It
fills in one leaf at a time from DataBundles (an inclusion path plus the
payload it authenticates) obtained from any peer with the same root. Every
bundle is checked against the replica's own root before anything is
written, so no peer has to be trusted.

Example:
    >>> source = PackedMerkleTree.from_leaves([b"a", b"b", b"c"])
    >>> replica = PackedMerkleTree.reserve(source.root, source.leaves)
    >>> transfer(source, replica, 1)
    True
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from packed_merkle.logging_config import get_logger
from packed_merkle.merkle.digest import DEFAULT_HASHER, Hasher, Key
from packed_merkle.merkle.proof import Path, PathNode, Side

if TYPE_CHECKING:
    from packed_merkle.merkle.tree import PackedMerkleTree

logger = get_logger(__name__)


@dataclass(frozen=True)
class DataBundle:
    """
    Everything a replica needs to verify and absorb a single leaf.

    Attributes:
        path: Inclusion path from the leaf to the root
        payload: Leaf payload; its leaf digest is what the path authenticates
    """
    path: Path
    payload: bytes

    def leaf_digest(self, hasher: Hasher = DEFAULT_HASHER) -> Key:
        return hasher.leaf_hash(self.payload)

    def to_dict(self) -> Dict[str, Any]:
        """Hex-encoded form for hosts that frame bundles as JSON."""
        return {
            "path": [
                {"side": node.side.value, "digest": node.digest.hex()}
                for node in self.path
            ],
            "payload": self.payload.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataBundle":
        """
        Rebuild a bundle from to_dict() output.

        Raises:
            ValueError: If a side tag or hex string is malformed
        """
        try:
            path = [
                PathNode(side=Side(node["side"]), digest=bytes.fromhex(node["digest"]))
                for node in data["path"]
            ]
            payload = bytes.fromhex(data["payload"])
        except KeyError as e:
            raise ValueError(f"Bundle is missing field {e}") from e
        return cls(path=path, payload=payload)


@dataclass
class ReconciliationResult:
    """
    Outcome of filling a replica from a set of peers.

    Attributes:
        transferred: Ordinals absorbed during this run
        missing_ordinals: Ordinals no source could supply
    """
    transferred: List[int] = field(default_factory=list)
    missing_ordinals: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing_ordinals


def query_bundle(source: "PackedMerkleTree", ordinal: int) -> Optional[DataBundle]:
    """
    Build the bundle for the leaf at the given ordinal of the source.

    Returns:
        DataBundle, or None if the source does not hold that leaf's payload
    """
    return source.query_bundle(ordinal)


def insert_bundle(
    target: "PackedMerkleTree",
    bundle: DataBundle,
    max_path_length: Optional[int] = None,
) -> bool:
    """
    Verify a bundle against the target's root and absorb it.

    Returns:
        True if the bundle was absorbed, False if it did not verify

    Raises:
        StructuralInconsistencyError: If the verified bundle contradicts a
            digest the target already holds
    """
    return target.insert_bundle(bundle, max_path_length=max_path_length)


def transfer(
    source: "PackedMerkleTree",
    target: "PackedMerkleTree",
    ordinal: int,
    max_path_length: Optional[int] = None,
) -> bool:
    """
    Move one leaf from source to target.

    Returns:
        False if the source lacks the leaf or the target rejects the proof
    """
    bundle = source.query_bundle(ordinal)
    if bundle is None:
        logger.debug("bundle_unavailable", ordinal=ordinal)
        return False
    return target.insert_bundle(bundle, max_path_length=max_path_length)


def reconcile(
    target: "PackedMerkleTree",
    sources: Sequence["PackedMerkleTree"],
    max_path_length: Optional[int] = None,
) -> ReconciliationResult:
    """
    Fill every leaf the target lacks from the first source able to supply it.

    Sources are tried in order for each ordinal. Bundles that fail
    verification are skipped and the next source is tried; a structural
    inconsistency aborts the run.

    Args:
        target: Replica to fill
        sources: Peers claiming the same root
        max_path_length: Optional upper bound on accepted path length

    Returns:
        ReconciliationResult listing absorbed and still-missing ordinals
    """
    result = ReconciliationResult()

    for ordinal in range(target.leaves):
        key = target.ith_leaf(ordinal)
        if key is not None and target.payload(key) is not None:
            continue

        for source in sources:
            if transfer(source, target, ordinal, max_path_length=max_path_length):
                result.transferred.append(ordinal)
                break
        else:
            result.missing_ordinals.append(ordinal)

    logger.info(
        "reconciliation_complete",
        transferred=len(result.transferred),
        missing=len(result.missing_ordinals),
        sources=len(sources),
    )
    return result
