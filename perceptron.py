import logging
from typing import Iterable, Optional

import numpy as np

from config import UNKNOWN_FEATURE

logger = logging.getLogger(__name__)


def _as_ids(features: Iterable[int]) -> np.ndarray:
  ids = np.fromiter(features, dtype=np.int64)
  return ids[ids != UNKNOWN_FEATURE]


class StructuredPerceptron:
  """
  averaged perceptron over sparse binary features.

  weights, the running sum used for averaging and the averaged weights are
  dense arrays indexed by feature id; they grow as the feature vocabulary
  grows during training.
  """

  def __init__(self, num_features: int = 0, weights: Optional[np.ndarray] = None):
    if weights is not None:
      self.weights = np.asarray(weights, dtype=np.float64).copy()
    else:
      self.weights = np.zeros(num_features, dtype=np.float64)
    self.totals = np.zeros_like(self.weights)
    self.avg_weights: Optional[np.ndarray] = None
    self.count = 0
    self.averaged = False

  @property
  def num_features(self) -> int:
    return self.weights.shape[0]

  def _grow(self, size: int) -> None:
    if size <= self.weights.shape[0]:
      return
    new_size = max(size, 2 * self.weights.shape[0])
    extra = new_size - self.weights.shape[0]
    self.weights = np.concatenate([self.weights, np.zeros(extra)])
    self.totals = np.concatenate([self.totals, np.zeros(extra)])

  def score(self, features: Iterable[int], use_averaged: bool = False) -> float:
    """sum of weights over the features; unknown or unseen ids contribute 0."""
    ids = _as_ids(features)
    table = self.avg_weights if use_averaged and self.averaged else self.weights
    ids = ids[ids < table.shape[0]]
    return float(table[ids].sum())

  def update(self, gold_features: Iterable[int], predicted_features: Iterable[int]) -> None:
    """+1 for every gold feature, -1 for every predicted one (multisets accumulate)."""
    gold = _as_ids(gold_features)
    pred = _as_ids(predicted_features)
    top = max(gold.max(initial=-1), pred.max(initial=-1))
    self._grow(int(top) + 1)
    np.add.at(self.weights, gold, 1.0)
    np.add.at(self.weights, pred, -1.0)

  def increment_average(self) -> None:
    """accumulate the current weights; called once per transition taken."""
    self.totals += self.weights
    self.count += 1

  def finalize(self) -> None:
    """average the accumulated weights; later averaged scoring uses them."""
    if self.count == 0:
      self.avg_weights = self.weights.copy()
    else:
      self.avg_weights = self.totals / self.count
    self.averaged = True
    logger.debug(
      "averaged %d weights over %d steps", self.weights.shape[0], self.count
    )

  def get_weights(self) -> np.ndarray:
    if self.averaged:
      return self.avg_weights
    return self.weights
