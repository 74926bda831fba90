from typing import List, NamedTuple, Optional, Sequence, Tuple

from config import ROOT_POS, ROOT_WORD
from tree import DependencyTree

# action kinds
SHIFT = 0
LEFT_ARC = 1
RIGHT_ARC = 2


class Sentence(NamedTuple):
  """a single sentence; position 0 is the synthetic ROOT token."""

  words: Tuple[str, ...]
  pos: Tuple[str, ...]

  @classmethod
  def from_tokens(cls, words: Sequence[str], pos: Sequence[str]) -> "Sentence":
    if len(words) != len(pos):
      raise ValueError(f"got {len(words)} words but {len(pos)} POS tags")
    return cls((ROOT_WORD,) + tuple(words), (ROOT_POS,) + tuple(pos))

  @property
  def n(self) -> int:
    """number of real tokens (ROOT excluded)."""
    return len(self.words) - 1


class Action(NamedTuple):
  """one parser move: Shift(label), LeftArc or RightArc."""

  kind: int
  label: Optional[str] = None

  def __str__(self) -> str:
    if self.kind == SHIFT:
      return f"S({self.label})"
    return "L" if self.kind == LEFT_ARC else "R"


def shift(label: str) -> Action:
  return Action(SHIFT, label)


LEFT_ARC_ACTION = Action(LEFT_ARC)
RIGHT_ARC_ACTION = Action(RIGHT_ARC)


class Instance(NamedTuple):
  """a loaded corpus example: sentence plus gold labels and tree."""

  sentence: Sentence
  labels: Tuple[str, ...]  # n + 1 NER tags, root slot included
  tree: DependencyTree


class JointPair(NamedTuple):
  """a (label sequence, tree) structure, predicted or gold."""

  labels: Tuple[str, ...]
  tree: DependencyTree


class TrainingExample(NamedTuple):
  """gold action sequence produced by the oracle for one instance."""

  instance: Instance
  actions: List[Action]


def split_tag(tag: str) -> Tuple[str, Optional[str]]:
  """'B-PER' -> ('B', 'PER'); 'O' -> ('O', None)."""
  if len(tag) < 3 or tag[1] != "-":
    return tag[:1], None
  return tag[0], tag[2:]
