"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Dynamic array-packed Merkle tree.

The tree lives in a single list laid out as an implicit binary tree:
tree[0] is the root, the parent of i is (i - 1) // 2 and its children are
2i + 1 (left) and 2i + 2 (right). For a tree with k leaves:

- total == 0 or total == 2k - 1
- the leaves occupy exactly the trailing slots [total - k, total)
- tree[i] == node_hash(tree[2i + 2], tree[2i + 1]) for every internal i

Pushing appends a pair of slots at the tail and deleting removes the two
trailing slots, so the array stays packed without ever being rebuilt. Both
cost O(log n) hashes.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from packed_merkle.exceptions import (
    IncompleteTreeError,
    InvalidTreeShapeError,
    StructuralInconsistencyError,
)
from packed_merkle.logging_config import (
    get_logger,
    log_bundle_transfer,
    log_tree_mutation,
)
from packed_merkle.merkle.bundle import DataBundle
from packed_merkle.merkle.digest import DEFAULT_HASHER, Hasher, Key, Payload, to_bytes
from packed_merkle.merkle.proof import (
    Path,
    PathNode,
    fold_path,
    fold_step,
    leaf_position,
    left,
    parent,
    path_nodes,
    right,
    sibling,
    sibling_side,
)
from packed_merkle.merkle.snapshot import TreeSnapshot

logger = get_logger(__name__)


class PackedMerkleTree:
    """
    Content-addressed Merkle tree supporting single-leaf push and delete.

    Alongside the packed digest array the tree keeps a position index
    (leaf digest -> array index) and a data store (leaf digest -> payload).
    All three change together under push, delete and insert_bundle.

    A tree created with reserve() knows only its root and leaf count. Its
    other slots are unresolved (None) until bundles fill them in.

    Example:
        >>> tree = PackedMerkleTree.from_leaves([b"tx1", b"tx2", b"tx3"])
        >>> key = tree.hasher.leaf_hash(b"tx2")
        >>> tree.verify_path(key, tree.path(key))
        True
        >>> tree.delete(key)
        True
        >>> tree.leaves, tree.total
        (2, 3)
    """

    def __init__(self, hasher: Optional[Hasher] = None):
        """Create an empty tree. Prefer the empty()/from_leaves()/reserve() constructors."""
        self._hasher = hasher or DEFAULT_HASHER
        self._tree: List[Optional[Key]] = []
        self._index: Dict[Key, int] = {}
        self._data: Dict[Key, bytes] = {}
        self._leaves = 0
        self._unresolved = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls, hasher: Optional[Hasher] = None) -> "PackedMerkleTree":
        return cls(hasher)

    @classmethod
    def from_leaves(
        cls,
        payloads: Iterable[Payload],
        hasher: Optional[Hasher] = None,
    ) -> "PackedMerkleTree":
        """
        Build a tree from a batch of payloads in O(n).

        Payloads with equal digests are the same leaf; later duplicates are
        dropped. Leaf ordinal order follows first-occurrence input order.

        Args:
            payloads: Leaf payloads (bytes, or str encoded as UTF-8)
            hasher: Hasher to use (default SHA-256)

        Returns:
            PackedMerkleTree holding every unique payload
        """
        tree = cls(hasher)
        hasher = tree._hasher

        data: Dict[Key, bytes] = {}
        for payload in payloads:
            raw = to_bytes(payload)
            data.setdefault(hasher.leaf_hash(raw), raw)

        leaves = len(data)
        total = 2 * leaves - 1 if leaves > 0 else 0
        slots: List[Optional[Key]] = [None] * total
        index: Dict[Key, int] = {}

        # The first child to reach an empty parent slot parks its digest
        # there; the second one resolves the slot with node_hash. Slots are
        # visited in descending order so the right child always arrives first.
        def merge_into_parent(i: int, child: Key) -> None:
            p = parent(i)
            pending = slots[p]
            slots[p] = child if pending is None else hasher.node_hash(pending, child)

        i = total
        for key in reversed(list(data)):
            i -= 1
            slots[i] = key
            index[key] = i
            if i > 0:
                merge_into_parent(i, key)

        while i > 1:
            i -= 1
            merge_into_parent(i, slots[i])

        tree._tree = slots
        tree._index = index
        tree._data = data
        tree._leaves = leaves

        logger.debug("tree_built", leaves=leaves, total=total)
        return tree

    @classmethod
    def reserve(
        cls,
        root: Key,
        leaf_count: int,
        hasher: Optional[Hasher] = None,
    ) -> "PackedMerkleTree":
        """
        Create a placeholder replica known only by its root and leaf count.

        Every slot except the root starts unresolved. Bundles obtained from
        peers holding the same root fill the slots in.

        Raises:
            InvalidTreeShapeError: If leaf_count < 1 or root is not a digest
                of the hasher's width
        """
        tree = cls(hasher)

        if leaf_count < 1:
            raise InvalidTreeShapeError(
                f"A reserved tree needs at least one leaf, got {leaf_count}"
            )
        if not isinstance(root, bytes) or len(root) != tree._hasher.digest_size:
            raise InvalidTreeShapeError(
                f"Root must be a {tree._hasher.digest_size}-byte digest"
            )

        total = 2 * leaf_count - 1
        tree._tree = [None] * total
        tree._tree[0] = root
        tree._leaves = leaf_count
        tree._unresolved = total - 1

        # A single-leaf tree's root is its leaf
        if leaf_count == 1:
            tree._index[root] = 0

        logger.info("tree_reserved", root=root.hex(), leaves=leaf_count, total=total)
        return tree

    # ------------------------------------------------------------------
    # Read-only inspection
    # ------------------------------------------------------------------

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    @property
    def leaves(self) -> int:
        return self._leaves

    @property
    def total(self) -> int:
        return len(self._tree)

    @property
    def root(self) -> Optional[Key]:
        """Root digest, or None for an empty tree."""
        return self._tree[0] if self._tree else None

    @property
    def tree(self) -> Tuple[Optional[Key], ...]:
        """Copy of the packed digest array; None marks an unresolved slot."""
        return tuple(self._tree)

    @property
    def data(self) -> Dict[Key, bytes]:
        """Copy of the digest -> payload map for locally held leaves."""
        return dict(self._data)

    @property
    def is_complete(self) -> bool:
        """True when no slot is waiting on a bundle."""
        return self._unresolved == 0

    def payload(self, key: Key) -> Optional[bytes]:
        return self._data.get(key)

    def ith_leaf(self, ordinal: int) -> Optional[Key]:
        """
        Digest of the leaf at the given ordinal within the leaf range.

        Returns None if the ordinal is out of range or the slot is unresolved.
        """
        if ordinal < 0 or ordinal >= self._leaves:
            return None
        return self._tree[self.total - self._leaves + ordinal]

    def __len__(self) -> int:
        return self._leaves

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __repr__(self) -> str:
        root = self.root.hex() if self.root is not None else None
        return f"PackedMerkleTree(leaves={self._leaves}, total={self.total}, root={root})"

    def snapshot(self) -> TreeSnapshot:
        return TreeSnapshot(
            total=self.total,
            leaves=self._leaves,
            root=self.root,
            digests=tuple(self._tree),
            algorithm=self._hasher.algorithm,
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def push(self, payload: Payload) -> bool:
        """
        Append a leaf.

        The node that used to be the first leaf becomes the parent of a new
        pair: the old leaf moves to the tail slot and the new leaf follows it.

        Returns:
            False if a leaf with the same digest is already present
        """
        self._require_complete("push")

        raw = to_bytes(payload)
        key = self._hasher.leaf_hash(raw)

        if key in self._index:
            return False

        lim = self.total
        if lim == 0:
            self._tree.append(key)
            self._index[key] = 0
        else:
            p = parent(lim)
            old = self._tree[p]

            self._tree.append(old)
            self._tree.append(key)

            self._index[old] = lim
            self._index[key] = lim + 1

            self._propagate(p, self._hasher.node_hash(key, old))

        self._data[key] = raw
        self._leaves += 1

        log_tree_mutation(logger, "push", key, self._leaves, self.total)
        return True

    def delete(self, key: Key) -> bool:
        """
        Remove a leaf.

        The two trailing slots are popped and used to patch the hole, then
        ancestors are recomputed up to the root.

        Returns:
            False if no leaf has that digest
        """
        i = self._index.get(key)
        if i is None:
            return False

        self._require_complete("delete")

        n = self.total
        k = self._leaves

        if i == 0:
            self._tree.pop()
            self._leaves = 0
        else:
            p = parent(i)
            neighbour = self._tree[sibling(i)]
            farthest = self._tree.pop()
            second_farthest = self._tree.pop()

            if k % 2 == 1 and i == n - k:
                # First leaf of an odd tree: its sibling is the parent of the
                # trailing pair, which drops into the vacated pair of slots.
                self._tree[i] = farthest
                self._tree[i - 1] = second_farthest

                self._index[farthest] = i
                self._index[second_farthest] = i - 1

                self._propagate(p, neighbour)
            elif i >= n - 2:
                # The deleted leaf was part of the trailing pair; its sibling
                # takes over their parent slot.
                assert {key, neighbour} == {farthest, second_farthest}

                self._index[neighbour] = p

                self._propagate(p, neighbour)
            else:
                q = parent(n - 1)
                farthest_parent = self._tree[q]

                self._tree[right(p)] = farthest
                self._tree[left(p)] = second_farthest
                self._tree[p] = farthest_parent

                self._index[farthest] = right(p)
                self._index[second_farthest] = left(p)
                self._index[neighbour] = q

                self._propagate(q, neighbour)
                self._propagate(p, farthest_parent)

            self._leaves -= 1

        del self._index[key]
        self._data.pop(key, None)

        log_tree_mutation(logger, "delete", key, self._leaves, self.total)
        return True

    def _propagate(self, start: int, value: Key) -> None:
        """Write value at start and recompute every ancestor up to the root."""
        i = start
        while i > 0:
            self._tree[i] = value
            node = PathNode(side=sibling_side(i), digest=self._tree[sibling(i)])
            value = fold_step(self._hasher, value, node)
            i = parent(i)
        self._tree[0] = value

    def _require_complete(self, operation: str) -> None:
        if self._unresolved:
            raise IncompleteTreeError(
                f"Cannot {operation} on a replica with {self._unresolved} unresolved slots"
            )

    # ------------------------------------------------------------------
    # Verification and proofs
    # ------------------------------------------------------------------

    def verify_tree(self) -> bool:
        """
        Recompute every internal node from its children.

        Triples involving an unresolved slot are skipped.

        Returns:
            True if every resolved internal node matches its children
        """
        return not self.mismatched_positions()

    def mismatched_positions(self) -> List[int]:
        """Internal positions whose stored digest disagrees with their children."""
        mismatched = []
        total = self.total
        for i in range(total):
            l, r = left(i), right(i)
            if r >= total:
                break
            node, left_child, right_child = self._tree[i], self._tree[l], self._tree[r]
            if node is None or left_child is None or right_child is None:
                continue
            if node != self._hasher.node_hash(right_child, left_child):
                mismatched.append(i)
        return mismatched

    def path(self, key: Key) -> Optional[Path]:
        """
        Inclusion path for a leaf, from the leaf up to the root.

        Returns:
            List of PathNode, or None if the digest is not a known leaf
        """
        i = self._index.get(key)
        if i is None:
            return None
        return path_nodes(self._tree, i)

    def verify_path(self, target: Key, path: Path) -> bool:
        """Check that folding path over target reproduces the current root."""
        root = self.root
        if root is None:
            return False
        try:
            return fold_path(self._hasher, target, path) == root
        except ValueError:
            # Malformed sibling digest
            return False

    # ------------------------------------------------------------------
    # Replica reconciliation
    # ------------------------------------------------------------------

    def query_bundle(self, ordinal: int) -> Optional[DataBundle]:
        """
        Bundle for the leaf at the given ordinal.

        Returns:
            DataBundle, or None if this tree does not hold the leaf's payload
            and full path
        """
        key = self.ith_leaf(ordinal)
        if key is None:
            return None

        payload = self._data.get(key)
        if payload is None:
            return None

        path = self.path(key)
        if path is None:
            return None

        return DataBundle(path=path, payload=payload)

    def insert_bundle(
        self,
        bundle: DataBundle,
        max_path_length: Optional[int] = None,
    ) -> bool:
        """
        Verify a bundle against this tree's root and absorb it.

        The leaf slot, every sibling slot on the path and every ancestor on
        the path are checked against what the tree already holds before
        anything is written. Unresolved slots are filled in.

        Args:
            bundle: Path and payload received from a peer
            max_path_length: Optional upper bound on accepted path length

        Returns:
            True if absorbed; False if the bundle does not authenticate a
            leaf slot of this tree (the tree is left unmodified)

        Raises:
            StructuralInconsistencyError: If the bundle verifies but
                contradicts a digest this tree already holds (the tree is
                left unmodified)
        """
        if self.root is None:
            log_bundle_transfer(logger, None, None, False, failure_reason="empty_tree")
            return False

        if max_path_length is not None and len(bundle.path) > max_path_length:
            log_bundle_transfer(
                logger, None, None, False,
                failure_reason="path_too_long",
                path_length=len(bundle.path),
            )
            return False

        payload = to_bytes(bundle.payload)
        key = self._hasher.leaf_hash(payload)

        if not self.verify_path(key, bundle.path):
            log_bundle_transfer(logger, key, None, False, failure_reason="proof_mismatch")
            return False

        position = leaf_position(bundle.path)
        first_leaf = self.total - self._leaves
        if position < first_leaf or position >= self.total:
            log_bundle_transfer(
                logger, key, position, False, failure_reason="not_a_leaf_slot"
            )
            return False

        assignments = [(position, key)]
        acc = key
        i = position
        for node in bundle.path:
            assignments.append((sibling(i), node.digest))
            acc = fold_step(self._hasher, acc, node)
            i = parent(i)
            assignments.append((i, acc))

        for slot, digest in assignments:
            held = self._tree[slot]
            if held is not None and held != digest:
                self._refuse_inconsistent(StructuralInconsistencyError(slot, held, digest))
            if slot >= first_leaf:
                indexed = self._index.get(digest)
                if indexed is not None and indexed != slot:
                    self._refuse_inconsistent(StructuralInconsistencyError(
                        slot, digest, digest,
                        message=f"Leaf {digest.hex()} is held at slot {indexed}, "
                                f"bundle places it at slot {slot}",
                    ))

        for slot, digest in assignments:
            if self._tree[slot] is None:
                self._tree[slot] = digest
                self._unresolved -= 1
            if slot >= first_leaf:
                self._index[digest] = slot

        self._data[key] = payload

        log_bundle_transfer(logger, key, position, True)
        return True

    def _refuse_inconsistent(self, error: StructuralInconsistencyError) -> None:
        logger.error(
            "structural_inconsistency",
            position=error.position,
            expected=error.expected.hex(),
            received=error.received.hex(),
        )
        raise error
