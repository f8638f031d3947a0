"""
Unit tests for inclusion path helpers.
"""

import pytest

from packed_merkle.merkle.digest import DEFAULT_HASHER, leaf_hash, node_hash
from packed_merkle.merkle.proof import (
    PathNode,
    Side,
    fold_path,
    leaf_position,
    left,
    parent,
    path_nodes,
    right,
    sibling,
    sibling_side,
)


class TestIndexArithmetic:
    """Test the implicit binary tree layout."""

    def test_children_and_parent(self):
        for i in range(50):
            assert parent(left(i)) == i
            assert parent(right(i)) == i

    def test_sibling(self):
        assert sibling(1) == 2
        assert sibling(2) == 1
        assert sibling(7) == 8
        assert sibling(8) == 7

    def test_sibling_side(self):
        """Left children get a LEFT-tagged sibling, right children a RIGHT-tagged one."""
        assert sibling_side(1) == Side.LEFT
        assert sibling_side(2) == Side.RIGHT
        assert sibling_side(11) == Side.LEFT
        assert sibling_side(12) == Side.RIGHT


class TestFoldPath:
    """Test folding a path back to a root."""

    def test_empty_path_returns_target(self):
        target = leaf_hash(b"only")
        assert fold_path(DEFAULT_HASHER, target, []) == target

    def test_left_sibling_goes_first(self):
        acc = leaf_hash(b"acc")
        sib = leaf_hash(b"sib")
        path = [PathNode(side=Side.LEFT, digest=sib)]
        assert fold_path(DEFAULT_HASHER, acc, path) == node_hash(sib, acc)

    def test_right_sibling_goes_second(self):
        acc = leaf_hash(b"acc")
        sib = leaf_hash(b"sib")
        path = [PathNode(side=Side.RIGHT, digest=sib)]
        assert fold_path(DEFAULT_HASHER, acc, path) == node_hash(acc, sib)

    def test_fold_matches_reversed_child_order(self):
        """A left child folded with its sibling reproduces node_hash(right, left)."""
        l_digest = leaf_hash(b"left")
        r_digest = leaf_hash(b"right")
        tree = [node_hash(r_digest, l_digest), l_digest, r_digest]

        assert fold_path(DEFAULT_HASHER, l_digest, path_nodes(tree, 1)) == tree[0]
        assert fold_path(DEFAULT_HASHER, r_digest, path_nodes(tree, 2)) == tree[0]


class TestLeafPosition:
    """Test recovering array positions from side tags."""

    def test_empty_path_is_root(self):
        assert leaf_position([]) == 0

    @pytest.mark.parametrize("index", range(1, 40))
    def test_position_round_trip(self, index):
        digest = leaf_hash(b"x")
        tree = [digest] * (index + 2)
        assert leaf_position(path_nodes(tree, index)) == index

    def test_path_nodes_stops_at_unresolved_sibling(self):
        digest = leaf_hash(b"x")
        tree = [digest, digest, None, digest, digest]
        assert path_nodes(tree, 3) is None
        assert path_nodes(tree, 2) is not None
