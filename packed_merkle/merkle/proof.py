"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Inclusion paths for the packed Merkle tree.

A node stored at index i of the packed array satisfies

    tree[i] == node_hash(tree[2i + 2], tree[2i + 1])

i.e. the right child is concatenated before the left child. A path records,
for each step from a leaf up to the root, the sibling digest and the side it
occupies in that concatenation:

- odd index (left child): the sibling at i + 1 comes first, tagged LEFT
- even index (right child): the sibling at i - 1 comes second, tagged RIGHT
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from packed_merkle.merkle.digest import Hasher, Key


class Side(str, Enum):
    """Position of the sibling digest when it is folded with the accumulator."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class PathNode:
    """
    One step of an inclusion path.

    Attributes:
        side: Where the sibling goes in the concatenation
        digest: Sibling digest
    """
    side: Side
    digest: Key


Path = List[PathNode]


def parent(i: int) -> int:
    return (i - 1) // 2


def left(i: int) -> int:
    return 2 * i + 1


def right(i: int) -> int:
    return 2 * i + 2


def sibling_side(i: int) -> Side:
    """Side tag for the sibling of the node at index i (i > 0)."""
    return Side.LEFT if i % 2 == 1 else Side.RIGHT


def sibling(i: int) -> int:
    """Array index of the sibling of the node at index i (i > 0)."""
    return i + 1 if i % 2 == 1 else i - 1


def fold_step(hasher: Hasher, acc: Key, node: PathNode) -> Key:
    """Combine the accumulator with one sibling, honouring its side."""
    if node.side == Side.LEFT:
        return hasher.node_hash(node.digest, acc)
    return hasher.node_hash(acc, node.digest)


def fold_path(hasher: Hasher, target: Key, path: Iterable[PathNode]) -> Key:
    """
    Fold a path from the leaf up and return the root it implies.

    Args:
        hasher: Hasher the tree was built with
        target: Leaf digest the path starts from
        path: Steps from the leaf to the root

    Returns:
        Candidate root digest
    """
    acc = target
    for node in path:
        acc = fold_step(hasher, acc, node)
    return acc


def leaf_position(path: Iterable[PathNode]) -> int:
    """
    Recover the array index a path authenticates.

    The side tags fix, level by level, whether the node on the path is a left
    or a right child, so walking the path from the root downward replays the
    index arithmetic.
    """
    index = 0
    for node in reversed(list(path)):
        index = left(index) if node.side == Side.LEFT else right(index)
    return index


def path_nodes(tree: List[Optional[Key]], index: int) -> Optional[Path]:
    """
    Collect the sibling digests from index up to the root.

    Returns None if any sibling slot on the way is unresolved.
    """
    result: Path = []
    while index > 0:
        digest = tree[sibling(index)]
        if digest is None:
            return None
        result.append(PathNode(side=sibling_side(index), digest=digest))
        index = parent(index)
    return result
