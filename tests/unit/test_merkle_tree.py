"""
Unit tests for the packed Merkle tree.

Tests cover:
- Tree construction from payloads
- Push and delete
- Path generation and verification
- Whole-tree verification
- Edge cases (empty tree, single leaf, duplicates, absent digests)
"""

import pytest

from packed_merkle.exceptions import IncompleteTreeError, InvalidTreeShapeError
from packed_merkle.merkle.digest import Hasher, leaf_hash, node_hash
from packed_merkle.merkle.proof import PathNode, Side
from packed_merkle.merkle.tree import PackedMerkleTree


def make_payloads(count: int) -> list:
    return [f"tx{i}".encode() for i in range(1, count + 1)]


class TestTreeConstruction:
    """Test building trees from payloads."""

    def test_empty_tree(self):
        """Test an empty tree has no root and no nodes."""
        tree = PackedMerkleTree.empty()

        assert tree.leaves == 0
        assert tree.total == 0
        assert tree.root is None
        assert tree.verify_tree()
        assert len(tree) == 0

    def test_from_no_payloads(self):
        tree = PackedMerkleTree.from_leaves([])
        assert tree.total == 0
        assert tree.root is None

    def test_single_leaf(self):
        """Test single-leaf tree: the root is the leaf digest."""
        tree = PackedMerkleTree.from_leaves([b"only"])

        assert tree.leaves == 1
        assert tree.total == 1
        assert tree.root == leaf_hash(b"only")

    def test_two_leaves(self):
        """Test the root of two leaves is node_hash(right, left)."""
        tree = PackedMerkleTree.from_leaves([b"a", b"b"])

        assert tree.total == 3
        assert tree.tree[1] == leaf_hash(b"a")
        assert tree.tree[2] == leaf_hash(b"b")
        assert tree.root == node_hash(leaf_hash(b"b"), leaf_hash(b"a"))

    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 7, 8, 16, 33, 100])
    def test_shape(self, count):
        """Test total == 2 * leaves - 1 and leaves sit in the trailing slots."""
        payloads = make_payloads(count)
        tree = PackedMerkleTree.from_leaves(payloads)

        assert tree.leaves == count
        assert tree.total == 2 * count - 1
        leaf_slots = tree.tree[tree.total - count:]
        assert set(leaf_slots) == {leaf_hash(p) for p in payloads}
        assert tree.verify_tree()

    def test_ordinal_order_follows_input_order(self):
        payloads = make_payloads(9)
        tree = PackedMerkleTree.from_leaves(payloads)

        for ordinal, payload in enumerate(payloads):
            assert tree.ith_leaf(ordinal) == leaf_hash(payload)

    def test_duplicates_are_collapsed(self):
        """Test payloads with equal digests count once; first occurrence wins."""
        tree = PackedMerkleTree.from_leaves([b"a", b"b", b"a", b"c", b"b"])

        assert tree.leaves == 3
        assert tree.total == 5
        assert [tree.ith_leaf(i) for i in range(3)] == [
            leaf_hash(b"a"), leaf_hash(b"b"), leaf_hash(b"c")
        ]

    def test_str_payloads(self):
        assert (
            PackedMerkleTree.from_leaves(["tx1", "tx2"]).root
            == PackedMerkleTree.from_leaves([b"tx1", b"tx2"]).root
        )

    def test_deterministic_root(self):
        payloads = make_payloads(12)
        assert (
            PackedMerkleTree.from_leaves(payloads).root
            == PackedMerkleTree.from_leaves(payloads).root
        )

    def test_different_payloads_different_root(self):
        tree1 = PackedMerkleTree.from_leaves([b"leaf1", b"leaf2", b"leaf3"])
        tree2 = PackedMerkleTree.from_leaves([b"leaf1", b"leaf2", b"leaf4"])
        assert tree1.root != tree2.root

    def test_custom_hasher(self):
        hasher = Hasher("sha512")
        tree = PackedMerkleTree.from_leaves(make_payloads(5), hasher=hasher)

        assert tree.hasher == hasher
        assert len(tree.root) == 64
        assert tree.verify_tree()

    def test_data_and_tree_are_copies(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(3))

        tree.data.clear()
        assert len(tree.data) == 3
        assert isinstance(tree.tree, tuple)

    def test_repr(self):
        tree = PackedMerkleTree.from_leaves([b"a"])
        assert "leaves=1" in repr(tree)
        assert tree.root.hex() in repr(tree)


class TestPush:
    """Test appending leaves."""

    def test_push_into_empty_tree(self):
        tree = PackedMerkleTree.empty()

        assert tree.push(b"first")
        assert tree.root == leaf_hash(b"first")
        assert tree.total == 1

    def test_push_second_leaf_matches_batch_build(self):
        tree = PackedMerkleTree.empty()
        tree.push(b"a")
        tree.push(b"b")

        assert tree.root == PackedMerkleTree.from_leaves([b"a", b"b"]).root

    def test_push_relocates_first_leaf(self):
        """The first leaf moves to the tail and becomes a sibling of the new leaf."""
        tree = PackedMerkleTree.from_leaves(make_payloads(3))
        first = tree.ith_leaf(0)
        first_slot = tree.total - tree.leaves

        tree.push(b"new")

        assert tree.tree[tree.total - 2] == first
        assert tree.tree[tree.total - 1] == leaf_hash(b"new")
        assert tree.tree[first_slot] == node_hash(leaf_hash(b"new"), first)

    def test_push_keeps_shape_and_consistency(self):
        tree = PackedMerkleTree.empty()
        for count, payload in enumerate(make_payloads(40), start=1):
            assert tree.push(payload)
            assert tree.leaves == count
            assert tree.total == 2 * count - 1
            assert tree.verify_tree()

    def test_duplicate_push_is_noop(self):
        """Test pushing the same payload twice changes nothing the second time."""
        tree = PackedMerkleTree.from_leaves(make_payloads(5))
        assert tree.push(b"extra")
        before = tree.snapshot()

        assert not tree.push(b"extra")
        assert tree.tree == before.digests
        assert tree.leaves == before.leaves

    def test_push_str(self):
        tree = PackedMerkleTree.empty()
        tree.push("tx1")
        assert tree.payload(leaf_hash(b"tx1")) == b"tx1"

    def test_pushed_leaves_are_provable(self):
        tree = PackedMerkleTree.empty()
        payloads = make_payloads(13)
        for payload in payloads:
            tree.push(payload)

        for payload in payloads:
            key = leaf_hash(payload)
            assert tree.verify_path(key, tree.path(key))


class TestDelete:
    """Test removing leaves."""

    def test_delete_absent_digest(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        before = tree.root

        assert not tree.delete(leaf_hash(b"absent"))
        assert tree.root == before
        assert tree.leaves == 4

    def test_delete_from_empty_tree(self):
        assert not PackedMerkleTree.empty().delete(leaf_hash(b"x"))

    def test_delete_last_leaf_empties_tree(self):
        tree = PackedMerkleTree.from_leaves([b"only"])

        assert tree.delete(leaf_hash(b"only"))
        assert tree.total == 0
        assert tree.leaves == 0
        assert tree.root is None
        assert tree.data == {}

    def test_delete_from_two_leaves(self):
        tree = PackedMerkleTree.from_leaves([b"a", b"b"])

        assert tree.delete(leaf_hash(b"a"))
        assert tree.root == leaf_hash(b"b")
        assert tree.total == 1
        assert tree.path(leaf_hash(b"b")) == []

    def test_delete_removes_data_and_path(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(6))
        key = leaf_hash(b"tx4")

        tree.delete(key)

        assert key not in tree
        assert tree.payload(key) is None
        assert tree.path(key) is None

    def test_push_then_delete_restores_root(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(11))
        root, leaves = tree.root, tree.leaves

        tree.push(b"transient")
        tree.delete(leaf_hash(b"transient"))

        assert tree.root == root
        assert tree.leaves == leaves

    def test_delete_twice(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(5))
        key = leaf_hash(b"tx2")

        assert tree.delete(key)
        assert not tree.delete(key)
        assert tree.leaves == 4


class TestSevenTransactions:
    """Scenario built from tx1..tx7."""

    def test_shape(self, seven_leaf_tree):
        assert seven_leaf_tree.leaves == 7
        assert seven_leaf_tree.total == 13
        assert seven_leaf_tree.verify_tree()

    def test_path_of_tx3(self, seven_leaf_tree):
        key = leaf_hash(b"tx3")
        path = seven_leaf_tree.path(key)

        # tx3 is ordinal 2, slot 8: 8 -> 3 -> 1 -> 0
        assert len(path) == 3
        assert seven_leaf_tree.verify_path(key, path)

    def test_delete_tx3(self, seven_leaf_tree):
        assert seven_leaf_tree.delete(leaf_hash(b"tx3"))
        assert seven_leaf_tree.leaves == 6
        assert seven_leaf_tree.total == 11
        assert seven_leaf_tree.verify_tree()

    def test_delete_all_one_by_one(self, seven_leaf_tree):
        for payload in make_payloads(7):
            assert seven_leaf_tree.delete(leaf_hash(payload))
            assert seven_leaf_tree.verify_tree()
            for key in seven_leaf_tree.data:
                assert seven_leaf_tree.verify_path(key, seven_leaf_tree.path(key))

        assert seven_leaf_tree.total == 0
        assert seven_leaf_tree.leaves == 0


class TestPaths:
    """Test path generation and verification."""

    @pytest.mark.parametrize("count", [1, 2, 3, 6, 7, 8, 9, 31, 64])
    def test_every_leaf_provable(self, count):
        payloads = make_payloads(count)
        tree = PackedMerkleTree.from_leaves(payloads)

        for payload in payloads:
            key = leaf_hash(payload)
            assert tree.verify_path(key, tree.path(key))

    def test_path_absent(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        assert tree.path(leaf_hash(b"absent")) is None
        assert PackedMerkleTree.empty().path(leaf_hash(b"absent")) is None

    def test_path_length_is_logarithmic_after_build(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(8))
        for ordinal in range(8):
            assert len(tree.path(tree.ith_leaf(ordinal))) == 3

    def test_verify_path_wrong_leaf(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        path = tree.path(leaf_hash(b"tx1"))
        assert not tree.verify_path(leaf_hash(b"wrong"), path)

    def test_verify_path_tampered_sibling(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        key = leaf_hash(b"tx1")
        path = tree.path(key)
        tampered = [PathNode(side=path[0].side, digest=b"0" * 32)] + path[1:]
        assert not tree.verify_path(key, tampered)

    def test_verify_path_flipped_side(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        key = leaf_hash(b"tx1")
        path = tree.path(key)
        flipped_side = Side.RIGHT if path[0].side == Side.LEFT else Side.LEFT
        flipped = [PathNode(side=flipped_side, digest=path[0].digest)] + path[1:]
        assert not tree.verify_path(key, flipped)

    def test_verify_path_malformed_digest(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(4))
        key = leaf_hash(b"tx1")
        assert not tree.verify_path(key, [PathNode(side=Side.LEFT, digest=b"short")])

    def test_verify_path_on_empty_tree(self):
        assert not PackedMerkleTree.empty().verify_path(leaf_hash(b"x"), [])


class TestVerifyTree:
    """Test whole-tree verification."""

    def test_detects_tampered_internal_node(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(6))
        tree._tree[2] = b"0" * 32

        assert not tree.verify_tree()
        assert 2 in tree.mismatched_positions()

    def test_detects_tampered_leaf(self):
        tree = PackedMerkleTree.from_leaves(make_payloads(6))
        tree._tree[-1] = leaf_hash(b"forged")

        assert not tree.verify_tree()


class TestReserve:
    """Test placeholder replicas."""

    def test_reserve_shape(self):
        source = PackedMerkleTree.from_leaves(make_payloads(5))
        replica = PackedMerkleTree.reserve(source.root, source.leaves)

        assert replica.root == source.root
        assert replica.leaves == 5
        assert replica.total == 9
        assert replica.tree[1:] == (None,) * 8
        assert not replica.is_complete
        assert replica.verify_tree()
        assert replica.data == {}

    def test_reserve_single_leaf_is_complete(self):
        root = leaf_hash(b"only")
        replica = PackedMerkleTree.reserve(root, 1)

        assert replica.is_complete
        assert replica.ith_leaf(0) == root
        assert replica.path(root) == []

    @pytest.mark.parametrize("count", [0, -1])
    def test_reserve_rejects_bad_leaf_count(self, count):
        with pytest.raises(InvalidTreeShapeError):
            PackedMerkleTree.reserve(leaf_hash(b"x"), count)

    def test_reserve_rejects_bad_root(self):
        with pytest.raises(InvalidTreeShapeError):
            PackedMerkleTree.reserve(b"short", 3)

    def test_push_on_incomplete_replica_raises(self):
        source = PackedMerkleTree.from_leaves(make_payloads(3))
        replica = PackedMerkleTree.reserve(source.root, source.leaves)

        with pytest.raises(IncompleteTreeError):
            replica.push(b"new")

    def test_delete_absent_on_incomplete_replica(self):
        source = PackedMerkleTree.from_leaves(make_payloads(3))
        replica = PackedMerkleTree.reserve(source.root, source.leaves)

        assert not replica.delete(leaf_hash(b"absent"))

    def test_ith_leaf_unresolved(self):
        source = PackedMerkleTree.from_leaves(make_payloads(3))
        replica = PackedMerkleTree.reserve(source.root, source.leaves)

        assert replica.ith_leaf(0) is None
        assert replica.ith_leaf(3) is None
        assert replica.ith_leaf(-1) is None
