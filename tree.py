from typing import Iterable, List, Optional

from config import ARC_LABEL, NONEXIST


class DependencyTree:
  """
  mutable head array over tokens 1..n; index 0 is ROOT and never has a head.

  well-formedness is checked on demand (is_tree, is_single_root,
  is_projective), never enforced while the tree is being built.
  """

  def __init__(
    self, heads: Optional[Iterable[int]] = None, labels: Optional[Iterable[str]] = None
  ):
    self.heads: List[int] = [NONEXIST]
    self.labels: List[str] = [ARC_LABEL]
    if heads is not None:
      heads = list(heads)
      labels = list(labels) if labels is not None else [ARC_LABEL] * len(heads)
      if len(labels) != len(heads):
        raise ValueError("heads and labels must have the same length")
      for h, label in zip(heads, labels):
        self.add(h, label)

  @classmethod
  def empty(cls, n: int) -> "DependencyTree":
    """tree over n tokens with every head unset."""
    return cls([NONEXIST] * n)

  @property
  def n(self) -> int:
    return len(self.heads) - 1

  def add(self, head: int, label: str = ARC_LABEL) -> None:
    self.heads.append(head)
    self.labels.append(label)

  def set(self, k: int, head: int, label: str = ARC_LABEL) -> None:
    if k <= 0 or k > self.n:
      raise IndexError(f"token {k} outside 1..{self.n}")
    self.heads[k] = head
    self.labels[k] = label

  def get_head(self, k: int) -> int:
    return self.heads[k] if 0 < k <= self.n else NONEXIST

  def get_label(self, k: int) -> Optional[str]:
    return self.labels[k] if 0 < k <= self.n else None

  def root(self) -> int:
    """first token attached to ROOT, or 0 if there is none."""
    for k in range(1, self.n + 1):
      if self.heads[k] == 0:
        return k
    return 0

  def copy(self) -> "DependencyTree":
    return DependencyTree(self.heads[1:], self.labels[1:])

  def is_single_root(self) -> bool:
    return sum(1 for k in range(1, self.n + 1) if self.heads[k] == 0) == 1

  def is_tree(self) -> bool:
    """every head in range, no cycles, exactly one token under ROOT."""
    n = self.n
    for k in range(1, n + 1):
      if self.heads[k] < 0 or self.heads[k] > n:
        return False
    if not self.is_single_root():
      return False

    # visited[k] = the start token whose walk last passed through k
    visited = [NONEXIST] * (n + 1)
    for i in range(1, n + 1):
      k = i
      while k > 0:
        if 0 <= visited[k] < i:
          break
        if visited[k] == i:
          return False
        visited[k] = i
        k = self.heads[k]
    return True

  def is_projective(self) -> bool:
    """no two arcs cross when the tokens are drawn on a line."""
    if not self.is_tree():
      return False
    arcs = [
      (min(k, self.heads[k]), max(k, self.heads[k])) for k in range(1, self.n + 1)
    ]
    for a, (l1, r1) in enumerate(arcs):
      for l2, r2 in arcs[a + 1 :]:
        if l1 < l2 < r1 < r2 or l2 < l1 < r2 < r1:
          return False
    return True

  def __eq__(self, other) -> bool:
    if not isinstance(other, DependencyTree):
      return NotImplemented
    return self.heads == other.heads and self.labels == other.labels

  def __repr__(self) -> str:
    return f"DependencyTree(heads={self.heads[1:]})"
