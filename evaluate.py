import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Sequence, Tuple

from config import OUTSIDE, PUNCT_TAGS
from schema import JointPair, Sentence, split_tag
from tree import DependencyTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Span:
  """an entity segment (or a single O token) with the heads its tokens attach to outside it."""

  start: int
  end: int
  label: str
  heads: FrozenSet[int] = field(default=frozenset(), compare=False)

  @property
  def key(self) -> Tuple[int, int, str]:
    return self.start, self.end, self.label


def _make_span(start: int, end: int, label: str, tree: DependencyTree) -> Span:
  heads = frozenset(
    tree.get_head(i) for i in range(start, end + 1) if not start <= tree.get_head(i) <= end
  )
  return Span(start, end, label, heads)


def to_spans(labels: Sequence[str], tree: DependencyTree) -> List[Span]:
  """
  segments tokens 1..n into entity spans and unit O spans.

  S/E tags are read as B/I. an I/E tag that does not continue the open span
  (none open, or another type) starts a new one. a span still open at the end
  of the sentence is closed at the last token.
  """
  spans: List[Span] = []
  start = -1
  label = None

  for idx in range(1, len(labels)):
    prefix, entity_type = split_tag(labels[idx])
    if prefix in ("B", "S"):
      if start != -1:
        spans.append(_make_span(start, idx - 1, label, tree))
      start, label = idx, entity_type
    elif prefix in ("I", "E"):
      if start == -1 or entity_type != label:
        if start != -1:
          spans.append(_make_span(start, idx - 1, label, tree))
        start, label = idx, entity_type
    else:
      if start != -1:
        spans.append(_make_span(start, idx - 1, label, tree))
      start, label = -1, None
      spans.append(Span(idx, idx, OUTSIDE, frozenset({tree.get_head(idx)})))

  if start != -1:
    spans.append(_make_span(start, len(labels) - 1, label, tree))
  return spans


def _excluded(span: Span, sentence: Sentence) -> bool:
  if span.start != span.end:
    return False
  return span.start == 0 or sentence.pos[span.start] in PUNCT_TAGS


def _check_lengths(sentences, predictions, golds) -> None:
  if not len(sentences) == len(predictions) == len(golds):
    raise ValueError(
      f"got {len(sentences)} sentences, {len(predictions)} predictions and {len(golds)} gold structures"
    )


def _ratio(num: float, den: float) -> float:
  return num / den if den else 0.0


def score_attachment(
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> Tuple[float, float, float]:
  """
  unit attachment precision / recall / F1 (percent).

  for every predicted span whose (start, end, label) matches a gold span, the
  overlap of the two head sets counts as true positives.
  """
  _check_lengths(sentences, predictions, golds)
  tp = tp_fp = tp_fn = 0

  for sent, pred, gold in zip(sentences, predictions, golds):
    pred_spans = to_spans(pred.labels, pred.tree)
    gold_map: Dict[Tuple[int, int, str], Span] = {
      s.key: s for s in to_spans(gold.labels, gold.tree)
    }

    for span in pred_spans:
      if _excluded(span, sent):
        continue
      match = gold_map.get(span.key)
      if match is not None:
        tp += len(span.heads & match.heads)
      tp_fp += len(span.heads)

    for span in gold_map.values():
      if not _excluded(span, sent):
        tp_fn += len(span.heads)

  precision = _ratio(tp, tp_fp) * 100
  recall = _ratio(tp, tp_fn) * 100
  fmeasure = _ratio(2.0 * tp, tp_fp + tp_fn) * 100
  logger.info("[unit attachment] TP: %d, TP+FP: %d, TP+FN: %d", tp, tp_fp, tp_fn)
  logger.info(
    "precision: %.2f%%, recall: %.2f%%, F-measure: %.2f%%", precision, recall, fmeasure
  )
  return precision, recall, fmeasure


def calculate_uas(
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> float:
  """unlabeled attachment score over non-punctuation tokens (fraction)."""
  _check_lengths(sentences, predictions, golds)
  correct = total = 0
  for sent, pred, gold in zip(sentences, predictions, golds):
    for i in range(1, sent.n + 1):
      if sent.pos[i] in PUNCT_TAGS:
        continue
      if pred.tree.get_head(i) == gold.tree.get_head(i):
        correct += 1
      total += 1
  return _ratio(correct, total)


def tag_accuracy(
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> float:
  """fraction of real tokens whose entity tag is predicted exactly."""
  _check_lengths(sentences, predictions, golds)
  correct = total = 0
  for sent, pred, gold in zip(sentences, predictions, golds):
    for i in range(1, sent.n + 1):
      correct += pred.labels[i] == gold.labels[i]
      total += 1
  return _ratio(correct, total)


def entity_prf(
  predictions: Sequence[JointPair], golds: Sequence[JointPair]
) -> Tuple[float, float, float]:
  """exact-match precision / recall / F1 (percent) of labelled entity spans."""
  if len(predictions) != len(golds):
    raise ValueError(f"got {len(predictions)} predictions and {len(golds)} gold structures")
  tp = n_pred = n_gold = 0
  for pred, gold in zip(predictions, golds):
    pred_keys = {s.key for s in to_spans(pred.labels, pred.tree) if s.label != OUTSIDE}
    gold_keys = {s.key for s in to_spans(gold.labels, gold.tree) if s.label != OUTSIDE}
    tp += len(pred_keys & gold_keys)
    n_pred += len(pred_keys)
    n_gold += len(gold_keys)
  return (
    _ratio(tp, n_pred) * 100,
    _ratio(tp, n_gold) * 100,
    _ratio(2.0 * tp, n_pred + n_gold) * 100,
  )


def evaluate(
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> Dict[str, float]:
  """all metrics for one data set, in percent."""
  _, _, comb = score_attachment(sentences, predictions, golds)
  uas = calculate_uas(sentences, predictions, golds) * 100
  acc = tag_accuracy(sentences, predictions, golds) * 100
  _, _, ner_f1 = entity_prf(predictions, golds)
  logger.info("UAS: %.2f | tag acc: %.2f | NER F1: %.2f | comb: %.2f", uas, acc, ner_f1, comb)
  return {"comb": comb, "uas": uas, "acc": acc, "ner_f1": ner_f1}


def to_iob(tag: str) -> str:
  """rewrites IOBES single/end tags as begin/inside for IOB-only scorers."""
  if tag.startswith("S"):
    return "B" + tag[1:]
  if tag.startswith("E"):
    return "I" + tag[1:]
  return tag


def conll_eval_lines(
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> Iterator[str]:
  """`word pos gold pred` per real token, blank line after each sentence."""
  _check_lengths(sentences, predictions, golds)
  for sent, pred, gold in zip(sentences, predictions, golds):
    for i in range(1, sent.n + 1):
      yield f"{sent.words[i]} {sent.pos[i]} {to_iob(gold.labels[i])} {to_iob(pred.labels[i])}"
    yield ""


def write_conll_eval(
  path: str,
  sentences: Sequence[Sentence],
  predictions: Sequence[JointPair],
  golds: Sequence[JointPair],
) -> None:
  with open(path, "w", encoding="utf-8") as f:
    for line in conll_eval_lines(sentences, predictions, golds):
      f.write(line + "\n")
  logger.info("conlleval input written to %s", path)
