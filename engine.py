from typing import List, Sequence

from config import ARC_LABEL, IOB, IOBES, NONEXIST, NULL, OUTSIDE, ROOT_LABEL
from schema import (
  LEFT_ARC,
  LEFT_ARC_ACTION,
  RIGHT_ARC,
  RIGHT_ARC_ACTION,
  SHIFT,
  Action,
  Sentence,
  shift,
  split_tag,
)
from tree import DependencyTree


class TransitionError(RuntimeError):
  """an action was applied to a configuration that cannot take it."""


class Configuration:
  """
  mutable parser state for one sentence: stack, buffer, partial tree and
  partial label sequence. the last stack element is the top.
  """

  def __init__(self, sentence: Sentence):
    self.sentence = sentence
    self.stack: List[int] = []
    self.buffer: List[int] = []
    self.tree = DependencyTree.empty(sentence.n)
    self.labels: List[str] = [NULL] * (sentence.n + 1)

  def copy(self) -> "Configuration":
    c = Configuration(self.sentence)
    c.stack = list(self.stack)
    c.buffer = list(self.buffer)
    c.tree = self.tree.copy()
    c.labels = list(self.labels)
    return c

  # -- moves ---------------------------------------------------------------

  def shift(self, label: str) -> bool:
    k = self.get_buffer(0)
    if k == NONEXIST:
      return False
    self.buffer.pop(0)
    self.stack.append(k)
    self.labels[k] = label
    return True

  def left_arc(self, label: str = ARC_LABEL) -> bool:
    """s0 becomes the head of s1; s1 leaves the stack."""
    if len(self.stack) < 2:
      return False
    s0, s1 = self.stack[-1], self.stack[-2]
    self.tree.set(s1, s0, label)
    del self.stack[-2]
    return True

  def right_arc(self, label: str = ARC_LABEL) -> bool:
    """s1 becomes the head of s0; s0 leaves the stack."""
    if len(self.stack) < 2:
      return False
    s0, s1 = self.stack[-1], self.stack[-2]
    self.tree.set(s0, s1, label)
    self.stack.pop()
    return True

  # -- lookups -------------------------------------------------------------

  def get_stack(self, k: int) -> int:
    """sentence index of the k-th stack item from the top, or NONEXIST."""
    n_stack = len(self.stack)
    return self.stack[n_stack - 1 - k] if 0 <= k < n_stack else NONEXIST

  def get_buffer(self, k: int) -> int:
    return self.buffer[k] if 0 <= k < len(self.buffer) else NONEXIST

  def _in_sentence(self, k: int) -> bool:
    return 0 <= k <= self.sentence.n

  def get_word(self, k: int) -> str:
    return self.sentence.words[k] if self._in_sentence(k) else NULL

  def get_pos(self, k: int) -> str:
    return self.sentence.pos[k] if self._in_sentence(k) else NULL

  def get_label(self, k: int) -> str:
    return self.labels[k] if self._in_sentence(k) else NULL

  def get_head(self, k: int) -> int:
    return self.tree.get_head(k)

  def left_child(self, k: int, cnt: int = 1) -> int:
    """cnt-th leftmost dependent of k attached so far."""
    if not self._in_sentence(k):
      return NONEXIST
    c = 0
    for i in range(1, k):
      if self.tree.get_head(i) == k:
        c += 1
        if c == cnt:
          return i
    return NONEXIST

  def right_child(self, k: int, cnt: int = 1) -> int:
    """cnt-th rightmost dependent of k attached so far."""
    if not self._in_sentence(k):
      return NONEXIST
    c = 0
    for i in range(self.tree.n, k, -1):
      if self.tree.get_head(i) == k:
        c += 1
        if c == cnt:
          return i
    return NONEXIST

  def left_valency(self, k: int) -> int:
    if not self._in_sentence(k):
      return NONEXIST
    return sum(1 for i in range(1, k) if self.tree.get_head(i) == k)

  def right_valency(self, k: int) -> int:
    if not self._in_sentence(k):
      return NONEXIST
    return sum(1 for i in range(k + 1, self.tree.n + 1) if self.tree.get_head(i) == k)

  def has_other_child(self, k: int, gold_tree: DependencyTree) -> bool:
    """k still has a gold dependent that is not attached to it yet."""
    for i in range(1, self.tree.n + 1):
      if gold_tree.get_head(i) == k and self.tree.get_head(i) != k:
        return True
    return False

  def __str__(self) -> str:
    stack = ",".join(str(k) for k in self.stack)
    buffer = ",".join(str(k) for k in self.buffer)
    ners = ",".join(self.get_label(k) for k in self.stack)
    return f"[S] {stack} [B] {buffer} [NE] {ners}"


class ArcStandardNER:
  """
  arc-standard transition system that assigns an entity tag to every token
  as it is shifted and builds a single-rooted projective tree.

  transitions are enumerated arcs first, then one shift per entity tag; this
  order is also the tie-break order when scores are equal.
  """

  def __init__(self, labels: Sequence[str], scheme: str = IOBES, single_root: bool = True):
    if scheme not in (IOBES, IOB):
      raise ValueError(f"unknown tagging scheme: {scheme}")
    if OUTSIDE not in labels:
      raise ValueError("label alphabet must contain the outside tag 'O'")
    self.labels = list(labels)
    self.scheme = scheme
    self.single_root = single_root
    self.transitions: List[Action] = [LEFT_ARC_ACTION, RIGHT_ARC_ACTION]
    self.transitions += [shift(label) for label in self.labels]

  @property
  def num_transitions(self) -> int:
    return len(self.transitions)

  def initial_configuration(self, sentence: Sentence) -> Configuration:
    c = Configuration(sentence)
    c.stack.append(0)
    c.buffer.extend(range(1, sentence.n + 1))
    c.labels[0] = ROOT_LABEL
    return c

  def is_terminal(self, c: Configuration) -> bool:
    return not c.buffer and len(c.stack) == 1

  def can_apply(self, c: Configuration, action: Action) -> bool:
    n_stack = len(c.stack)
    n_buffer = len(c.buffer)

    if action.kind == LEFT_ARC:
      return n_stack > 2
    if action.kind == RIGHT_ARC:
      if not self.single_root:
        return n_stack >= 2
      return n_stack > 2 or (n_stack == 2 and n_buffer == 0)
    if action.kind == SHIFT:
      if n_buffer == 0:
        return False
      b0 = c.get_buffer(0)
      return self.can_follow(c.get_label(b0 - 1), action.label, last=n_buffer == 1)
    return False

  def can_follow(self, previous: str, tag: str, last: bool = False) -> bool:
    """whether `tag` may be assigned right after `previous` under the scheme."""
    prev_prefix, prev_type = split_tag(previous)
    prefix, entity_type = split_tag(tag)
    in_span = prev_prefix in ("B", "I")

    if self.scheme == IOB:
      if prefix == "I":
        return in_span and entity_type == prev_type
      return prefix in ("B", OUTSIDE)

    if prefix in ("I", "E"):
      if not in_span or entity_type != prev_type:
        return False
      return prefix == "E" or not last
    if prefix in ("B", "S", OUTSIDE):
      if in_span:
        return False
      return prefix != "B" or not last
    return False

  def apply(self, c: Configuration, action: Action) -> None:
    if not self.can_apply(c, action):
      raise TransitionError(f"cannot apply {action} to {c}")
    if action.kind == SHIFT:
      c.shift(action.label)
    elif action.kind == LEFT_ARC:
      c.left_arc(ARC_LABEL)
    else:
      c.right_arc(ARC_LABEL)

  def legal_actions(self, c: Configuration) -> List[Action]:
    return [t for t in self.transitions if self.can_apply(c, t)]
