from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from config import NONEXIST, NULL, UNKNOWN_FEATURE
from engine import Configuration
from schema import Action


class FeatureVocab:
  """
  string -> id table shared by every feature of a run.
  open (growing) during training; once frozen, unseen strings map to
  UNKNOWN_FEATURE instead of getting a new id.
  """

  def __init__(self, feature2id: Optional[Dict[str, int]] = None, frozen: bool = False):
    self.feature2id: Dict[str, int] = dict(feature2id or {})
    self.frozen = frozen

  def __len__(self) -> int:
    return len(self.feature2id)

  def __contains__(self, feature: str) -> bool:
    return feature in self.feature2id

  def lookup(self, feature: str) -> int:
    fid = self.feature2id.get(feature)
    if fid is not None:
      return fid
    if self.frozen:
      return UNKNOWN_FEATURE
    fid = len(self.feature2id)
    self.feature2id[feature] = fid
    return fid

  def freeze(self) -> None:
    self.frozen = True

  @contextmanager
  def closed(self) -> Iterator["FeatureVocab"]:
    """temporarily stop the table from growing (e.g. for dev evaluation)."""
    previous = self.frozen
    self.frozen = True
    try:
      yield self
    finally:
      self.frozen = previous


def word_shape(word: str) -> str:
  """collapse characters to X/x/d, squeezing repeated classes: 'McDonald2' -> 'XxXxd'."""
  out = []
  for ch in word:
    if ch.isupper():
      cur = "X"
    elif ch.islower():
      cur = "x"
    elif ch.isdigit():
      cur = "d"
    else:
      cur = ch
    if not out or out[-1] != cur:
      out.append(cur)
  return "".join(out)


def _distance_bin(d: int) -> str:
  if d <= 0:
    return "none"
  if d <= 4:
    return str(d)
  return "5-9" if d < 10 else "10+"


class FeatureExtractor:
  """
  maps (configuration, candidate action) to feature ids.

  the action-independent part (`templates`) can be computed once per
  configuration and reused for every candidate; each template string is then
  conjoined with the action, so the same template yields a different id per
  action.
  """

  def __init__(self, vocab: FeatureVocab):
    self.vocab = vocab

  def templates(self, c: Configuration) -> List[str]:
    s0, s1, s2 = c.get_stack(0), c.get_stack(1), c.get_stack(2)
    b0, b1, b2 = c.get_buffer(0), c.get_buffer(1), c.get_buffer(2)

    w = c.get_word
    p = c.get_pos
    lab = c.get_label

    feats = [
      "bias",
      # unigrams
      f"s0w={w(s0)}",
      f"s0p={p(s0)}",
      f"s0wp={w(s0)}/{p(s0)}",
      f"s1w={w(s1)}",
      f"s1p={p(s1)}",
      f"s1wp={w(s1)}/{p(s1)}",
      f"s2p={p(s2)}",
      f"b0w={w(b0)}",
      f"b0p={p(b0)}",
      f"b0wp={w(b0)}/{p(b0)}",
      f"b1w={w(b1)}",
      f"b1p={p(b1)}",
      f"b2p={p(b2)}",
      # bigrams and trigrams
      f"s0w+s1w={w(s0)}/{w(s1)}",
      f"s0p+s1p={p(s0)}/{p(s1)}",
      f"s0p+b0p={p(s0)}/{p(b0)}",
      f"s0w+b0w={w(s0)}/{w(b0)}",
      f"b0p+b1p={p(b0)}/{p(b1)}",
      f"b0w+b1w={w(b0)}/{w(b1)}",
      f"s1p+s0p+b0p={p(s1)}/{p(s0)}/{p(b0)}",
      f"s2p+s1p+s0p={p(s2)}/{p(s1)}/{p(s0)}",
      f"b0p+b1p+b2p={p(b0)}/{p(b1)}/{p(b2)}",
      # entity labels already assigned
      f"s0l={lab(s0)}",
      f"s1l={lab(s1)}",
      f"s2l={lab(s2)}",
      f"s1l+s0l={lab(s1)}/{lab(s0)}",
      f"s0l+b0w={lab(s0)}/{w(b0)}",
    ]

    # previously labeled token: the one right before the buffer front
    prev = b0 - 1 if b0 != NONEXIST else NONEXIST
    feats.append(f"pl={lab(prev)}")
    feats.append(f"pl+b0p={lab(prev)}/{p(b0)}")
    feats.append(f"pl+b0w={lab(prev)}/{w(b0)}")
    feats.append(f"pw+b0w={w(prev)}/{w(b0)}")

    # tree structure around the two topmost stack items
    for name, k in (("s0", s0), ("s1", s1)):
      lc1, rc1 = c.left_child(k), c.right_child(k)
      lc2, rc2 = c.left_child(k, 2), c.right_child(k, 2)
      llc, rrc = c.left_child(lc1), c.right_child(rc1)
      feats.extend(
        [
          f"{name}lc1p={p(lc1)}",
          f"{name}rc1p={p(rc1)}",
          f"{name}lc1w={w(lc1)}",
          f"{name}rc1w={w(rc1)}",
          f"{name}lc2p={p(lc2)}",
          f"{name}rc2p={p(rc2)}",
          f"{name}llcp={p(llc)}",
          f"{name}rrcp={p(rrc)}",
          f"{name}lc1l={lab(lc1)}",
          f"{name}rc1l={lab(rc1)}",
        ]
      )
      feats.append(f"{name}vl={c.left_valency(k)}/{p(k)}")
      feats.append(f"{name}vr={c.right_valency(k)}/{p(k)}")

    dist = s0 - s1 if s0 != NONEXIST and s1 != NONEXIST else 0
    feats.append(f"d01={_distance_bin(dist)}")
    feats.append(f"d01+s0p+s1p={_distance_bin(dist)}/{p(s0)}/{p(s1)}")

    # surface form of the next token to be labeled
    word = w(b0)
    if word != NULL:
      lower = word.lower()
      feats.append(f"b0lw={lower}")
      feats.append(f"b0shape={word_shape(word)}")
      feats.append(f"b0cap={word[:1].isupper()}")
      feats.append(f"b0digit={any(ch.isdigit() for ch in word)}")
      for k in range(1, 4):
        if len(word) >= k:
          feats.append(f"b0pre{k}={lower[:k]}")
          feats.append(f"b0suf{k}={lower[-k:]}")
    return feats

  def __call__(
    self, c: Configuration, action: Action, templates: Optional[List[str]] = None
  ) -> List[int]:
    """feature ids for taking `action` in `c`; duplicates collapse."""
    if templates is None:
      templates = self.templates(c)
    suffix = f"|{action}"
    ids = (self.vocab.lookup(t + suffix) for t in templates)
    return list(dict.fromkeys(ids))
