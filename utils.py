import os
import pickle
import logging
from typing import List, Tuple

import numpy as np

from features import FeatureVocab
from perceptron import StructuredPerceptron

logger = logging.getLogger(__name__)

WEIGHTS_FILE = "model.weights"
VOCAB_FILE = "model.vocab"


def _ensure_dir(path: str) -> None:
  directory = os.path.dirname(path)
  if directory:
    os.makedirs(directory, exist_ok=True)


def save_weights(perceptron: StructuredPerceptron, path: str, num_features: int) -> None:
  """saves the (averaged, if finalized) weight vector in feature-id order."""
  _ensure_dir(path)
  weights = perceptron.get_weights()[:num_features]
  if weights.shape[0] < num_features:
    weights = np.concatenate([weights, np.zeros(num_features - weights.shape[0])])
  with open(path, "wb") as f:
    pickle.dump({"num_features": num_features, "weights": weights.tolist()}, f)
  logger.info("%d weights saved to %s", num_features, path)


def load_weights(path: str) -> StructuredPerceptron:
  """loads a weight vector; the returned perceptron scores with it directly."""
  with open(path, "rb") as f:
    payload = pickle.load(f)
  weights = np.asarray(payload["weights"], dtype=np.float64)
  if weights.shape[0] != payload["num_features"]:
    raise ValueError(
      f"weight file {path} has {weights.shape[0]} values for {payload['num_features']} features"
    )
  logger.info("%d weights loaded from %s", weights.shape[0], path)
  return StructuredPerceptron(weights=weights)


def save_vocab(vocab: FeatureVocab, labels: List[str], scheme: str, path: str) -> None:
  _ensure_dir(path)
  with open(path, "wb") as f:
    pickle.dump({"features": vocab.feature2id, "labels": list(labels), "scheme": scheme}, f)
  logger.info("feature vocabulary (%d entries) saved to %s", len(vocab), path)


def load_vocab(path: str) -> Tuple[FeatureVocab, List[str], str]:
  """loads a vocabulary; it comes back frozen for inference."""
  with open(path, "rb") as f:
    payload = pickle.load(f)
  vocab = FeatureVocab(payload["features"], frozen=True)
  logger.info("feature vocabulary (%d entries) loaded from %s", len(vocab), path)
  return vocab, payload["labels"], payload["scheme"]


def save_model(
  model_dir: str,
  perceptron: StructuredPerceptron,
  vocab: FeatureVocab,
  labels: List[str],
  scheme: str,
) -> None:
  save_weights(perceptron, os.path.join(model_dir, WEIGHTS_FILE), len(vocab))
  save_vocab(vocab, labels, scheme, os.path.join(model_dir, VOCAB_FILE))


def load_model(model_dir: str) -> Tuple[StructuredPerceptron, FeatureVocab, List[str], str]:
  perceptron = load_weights(os.path.join(model_dir, WEIGHTS_FILE))
  vocab, labels, scheme = load_vocab(os.path.join(model_dir, VOCAB_FILE))
  return perceptron, vocab, labels, scheme
