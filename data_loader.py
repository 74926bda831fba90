import os
import logging
from typing import Dict, List, Sequence

from dotenv import load_dotenv

from config import ARC_LABEL, OUTSIDE, ROOT_LABEL
from schema import Instance, JointPair, Sentence
from tree import DependencyTree

load_dotenv()

logger = logging.getLogger(__name__)

# CoNLL-X columns plus the entity tag in the 11th column
WORD_COL = 1
POS_COL = 4
HEAD_COL = 6
DEPREL_COL = 7
ENTITY_COL = 10


class CorpusFormatError(ValueError):
  """a corpus line could not be interpreted."""


def encode_iobes(labels: Sequence[str]) -> List[str]:
  """B not followed by I becomes S; I not followed by I becomes E."""
  out = list(labels)
  for i, tag in enumerate(labels):
    follows = i + 1 < len(labels) and labels[i + 1].startswith("I")
    if tag.startswith("B") and not follows:
      out[i] = "S" + tag[1:]
    elif tag.startswith("I") and not follows:
      out[i] = "E" + tag[1:]
  return out


def decode_iobes(labels: Sequence[str]) -> List[str]:
  """inverse of encode_iobes: S -> B, E -> I."""
  out = []
  for tag in labels:
    if tag.startswith("S"):
      tag = "B" + tag[1:]
    elif tag.startswith("E"):
      tag = "I" + tag[1:]
    out.append(tag)
  return out


def load_conll_data(file_name: str, iobes: bool = True) -> List[Instance]:
  """
  reads sentences with gold heads and entity tags.
  - splits on any whitespace (tabs OR spaces)
  - flushes last sentence even if file doesn't end with a blank line
  - skips multiword tokens like 1-2
  - index 0 of every returned structure is ROOT
  """
  data_path = os.getenv("DATA_PATH", "./data")
  full_path = os.path.join(data_path, file_name)

  instances: List[Instance] = []
  word: List[str] = []
  pos: List[str] = []
  head: List[int] = []
  deprel: List[str] = []
  entity: List[str] = []

  def flush():
    nonlocal word, pos, head, deprel, entity
    if word:
      labels = [ROOT_LABEL] + entity
      if iobes:
        labels = encode_iobes(labels)
      instances.append(
        Instance(
          sentence=Sentence.from_tokens(word, pos),
          labels=tuple(labels),
          tree=DependencyTree(head, deprel),
        )
      )
      word, pos, head, deprel, entity = [], [], [], [], []

  with open(full_path, "r", encoding="utf-8") as f:
    for line_no, line in enumerate(f, start=1):
      line = line.strip()
      if not line:
        flush()
        continue

      sp = line.split()
      if len(sp) <= ENTITY_COL:
        flush()
        continue

      if "-" in sp[0]:
        continue

      try:
        h = int(sp[HEAD_COL])
      except ValueError:
        raise CorpusFormatError(
          f"{full_path}:{line_no}: head is not an integer: {sp[HEAD_COL]!r}"
        ) from None

      word.append(sp[WORD_COL])
      pos.append(sp[POS_COL])
      head.append(h)
      deprel.append(sp[DEPREL_COL] if sp[DEPREL_COL] != "_" else ARC_LABEL)
      entity.append(sp[ENTITY_COL])

  flush()
  logger.info("loaded %d sentences from %s", len(instances), full_path)
  return instances


def write_conll_data(
  path: str, sentences: Sequence[Sentence], predictions: Sequence[JointPair]
) -> None:
  """writes predictions in the layout load_conll_data reads back."""
  if len(sentences) != len(predictions):
    raise ValueError(f"got {len(sentences)} sentences and {len(predictions)} predictions")
  directory = os.path.dirname(path)
  if directory:
    os.makedirs(directory, exist_ok=True)

  with open(path, "w", encoding="utf-8") as f:
    for sent, pred in zip(sentences, predictions):
      labels = decode_iobes(pred.labels)
      for j in range(1, sent.n + 1):
        cols = [
          str(j),
          sent.words[j],
          "_",
          sent.pos[j],
          sent.pos[j],
          "_",
          str(pred.tree.get_head(j)),
          pred.tree.get_label(j) or ARC_LABEL,
          "_",
          "_",
          labels[j],
        ]
        f.write("\t".join(cols) + "\n")
      f.write("\n")
  logger.info("%d sentences written to %s", len(sentences), path)


def tree_stats(instances: Sequence[Instance]) -> Dict[str, int]:
  """counts of illegal, multi-rooted and non-projective gold trees."""
  stats = {"trees": len(instances), "non_tree": 0, "multi_root": 0, "non_projective": 0}
  for inst in instances:
    tree = inst.tree
    if not tree.is_single_root():
      stats["multi_root"] += 1
    if not tree.is_tree():
      stats["non_tree"] += 1
    elif not tree.is_projective():
      stats["non_projective"] += 1
  return stats


def log_tree_stats(name: str, instances: Sequence[Instance]) -> Dict[str, int]:
  stats = tree_stats(instances)
  n = max(stats["trees"], 1)
  n_entities = sum(
    1 for inst in instances for tag in inst.labels[1:] if tag[:1] in ("B", "S")
  )
  n_outside = sum(1 for inst in instances for tag in inst.labels[1:] if tag == OUTSIDE)
  logger.info("%s: %d sentences, %d entities, %d O tokens", name, stats["trees"], n_entities, n_outside)
  logger.info(
    "%d tree(s) are illegal (%.2f%%)", stats["non_tree"], stats["non_tree"] * 100.0 / n
  )
  logger.info(
    "%d tree(s) have multiple or no roots (%.2f%%)",
    stats["multi_root"],
    stats["multi_root"] * 100.0 / n,
  )
  logger.info(
    "%d tree(s) are legal but not projective (%.2f%%)",
    stats["non_projective"],
    stats["non_projective"] * 100.0 / n,
  )
  return stats
