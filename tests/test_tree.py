from config import NONEXIST
from tree import DependencyTree


def test_heads_and_lookup():
  tree = DependencyTree([2, 0, 2])
  assert tree.n == 3
  assert tree.get_head(1) == 2
  assert tree.get_head(2) == 0
  assert tree.get_head(0) == NONEXIST
  assert tree.get_head(4) == NONEXIST
  assert tree.root() == 2


def test_empty_tree_has_unset_heads():
  tree = DependencyTree.empty(4)
  assert tree.heads[1:] == [NONEXIST] * 4
  assert not tree.is_tree()


def test_set_and_copy_are_independent():
  tree = DependencyTree.empty(2)
  tree.set(1, 2)
  tree.set(2, 0)
  clone = tree.copy()
  clone.set(1, 0)
  assert tree.get_head(1) == 2
  assert clone.get_head(1) == 0


def test_is_tree():
  assert DependencyTree([2, 0, 2]).is_tree()
  # cycle between 1 and 2
  assert not DependencyTree([2, 1, 0]).is_tree()
  # head out of range
  assert not DependencyTree([5, 0]).is_tree()
  # two tokens under ROOT
  assert not DependencyTree([0, 0]).is_tree()


def test_is_single_root():
  assert DependencyTree([2, 0, 2]).is_single_root()
  assert not DependencyTree([0, 0, 2]).is_single_root()
  assert not DependencyTree([2, 1]).is_single_root()


def test_crossing_arcs_are_not_projective():
  # 2 -> 0 and 3 -> 1 cross over tokens 0..3
  tree = DependencyTree([2, 0, 1])
  assert tree.is_tree()
  assert not tree.is_projective()


def test_nested_arcs_are_projective():
  # 2 -> 1 nested inside 3 -> 0
  tree = DependencyTree([3, 1, 0])
  assert tree.is_projective()


def test_non_tree_is_not_projective():
  assert not DependencyTree([2, 1, 0]).is_projective()
