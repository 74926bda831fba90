import pytest

from config import IOB, IOBES
from engine import ArcStandardNER
from schema import Instance, Sentence
from tree import DependencyTree


def _make_instance(words, pos, labels, heads):
  """labels and heads cover the real tokens only; ROOT is prepended."""
  return Instance(
    sentence=Sentence.from_tokens(words, pos),
    labels=("O",) + tuple(labels),
    tree=DependencyTree(heads),
  )


@pytest.fixture
def make_instance():
  return _make_instance


@pytest.fixture
def john():
  return _make_instance(
    ["John", "lives", "here"], ["NNP", "VBZ", "RB"], ["B-PER", "O", "O"], [2, 0, 2]
  )


@pytest.fixture
def obama():
  return _make_instance(
    ["Barack", "Obama", "visited", "New", "York", "City", "."],
    ["NNP", "NNP", "VBD", "NNP", "NNP", "NNP", "."],
    ["B-PER", "E-PER", "O", "B-LOC", "I-LOC", "E-LOC", "O"],
    [2, 3, 0, 6, 6, 3, 3],
  )


@pytest.fixture
def non_projective(make_instance):
  return make_instance(["a", "b", "c"], ["DT", "NN", "NN"], ["O", "O", "O"], [2, 0, 1])


@pytest.fixture
def iob_system():
  return ArcStandardNER(["O", "B-PER", "I-PER"], scheme=IOB)


@pytest.fixture
def iobes_system():
  labels = ["O"] + [f"{p}-{t}" for t in ("LOC", "PER") for p in ("B", "I", "E", "S")]
  return ArcStandardNER(labels, scheme=IOBES)
