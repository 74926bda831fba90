import os
import time
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from config import IOBES, OUTSIDE, RunConfig, create_config
from data_loader import load_conll_data, log_tree_stats, write_conll_data
from engine import ArcStandardNER
from evaluate import evaluate, write_conll_eval
from features import FeatureExtractor, FeatureVocab
from inference import best_legal_action, predict_all
from oracle import OracleError, gold_actions
from perceptron import StructuredPerceptron
from schema import Instance, JointPair, TrainingExample, split_tag
from utils import load_model, save_model

logger = logging.getLogger(__name__)


def build_label_alphabet(instances: Sequence[Instance], scheme: str = IOBES) -> List[str]:
  """
  sorted entity tags seen in training, 'O' first. every entity type gets its
  full set of prefixes so a well-formed continuation always exists.
  """
  types = set()
  for inst in instances:
    for tag in inst.labels[1:]:
      _, entity_type = split_tag(tag)
      if entity_type is not None:
        types.add(entity_type)
  prefixes = ("B", "I", "E", "S") if scheme == IOBES else ("B", "I")
  return [OUTSIDE] + [f"{p}-{t}" for t in sorted(types) for p in prefixes]


def generate_examples(
  instances: Sequence[Instance], system: ArcStandardNER
) -> Tuple[List[TrainingExample], int]:
  """
  gold action sequences for every usable training sentence.
  sentences whose tree the system cannot build are skipped and counted.
  """
  examples: List[TrainingExample] = []
  skipped = 0
  for inst in instances:
    tree = inst.tree
    if not tree.is_projective() or (system.single_root and not tree.is_single_root()):
      skipped += 1
      continue
    try:
      actions = gold_actions(system, inst)
    except OracleError as e:
      logger.info("skipping sentence %s: %s", " ".join(inst.sentence.words[1:]), e)
      skipped += 1
      continue
    examples.append(TrainingExample(inst, actions))

  logger.info(
    "generated %d training examples, skipped %d sentence(s)", len(examples), skipped
  )
  return examples, skipped


def train_sentence(
  example: TrainingExample,
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
) -> bool:
  """
  early-update training on one sentence.
  stops at the first step where the best legal action differs from gold and
  updates there. returns True when the whole gold sequence was predicted.
  """
  c = system.initial_configuration(example.instance.sentence)
  for gold in example.actions:
    templates = extractor.templates(c)
    predicted, pred_features = best_legal_action(
      c, system, extractor, perceptron, use_averaged=False, templates=templates
    )
    if predicted != gold:
      gold_features = extractor(c, gold, templates)
      perceptron.update(gold_features, pred_features)
      perceptron.increment_average()
      return False
    system.apply(c, gold)
    perceptron.increment_average()
  return True


def train_epoch(
  examples: Sequence[TrainingExample],
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
  rng: Optional[np.random.Generator] = None,
) -> float:
  """one pass over the examples (shuffled if an rng is given); returns sentence accuracy."""
  order = rng.permutation(len(examples)) if rng is not None else range(len(examples))
  correct = 0
  for idx in order:
    if train_sentence(examples[idx], system, extractor, perceptron):
      correct += 1
  return correct / len(examples) if examples else 0.0


def train(
  examples: Sequence[TrainingExample],
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
  config: RunConfig,
  rng: np.random.Generator,
  dev: Optional[Sequence[Instance]] = None,
  model_dir: Optional[str] = None,
) -> Dict[str, List[float]]:
  """
  runs config.max_iter epochs of early-update training, then averages the
  weights. with a dev set, the averaged model is scored every
  config.eval_every epochs and once more after the last epoch; the best one
  is saved to model_dir.
  """
  metrics = defaultdict(list)
  best_comb = float("-inf")
  start_time = time.time()

  for epoch in range(1, config.max_iter + 1):
    acc = train_epoch(
      examples, system, extractor, perceptron, rng if config.shuffle else None
    )
    metrics["train_acc"].append(acc)
    logger.info(
      "epoch %d | train sentence accuracy: %.2f%% | features: %d | elapsed %.1fs",
      epoch,
      acc * 100.0,
      len(extractor.vocab),
      time.time() - start_time,
    )

    if dev and epoch % config.eval_every == 0:
      perceptron.finalize()
      result = evaluate_instances(dev, system, extractor, perceptron)
      metrics["dev_comb"].append(result["comb"])
      metrics["dev_uas"].append(result["uas"])
      if result["comb"] > best_comb:
        best_comb = result["comb"]
        logger.info("  -> new best dev comb: %.2f", best_comb)
        if model_dir is not None:
          save_model(model_dir, perceptron, extractor.vocab, system.labels, system.scheme)

  perceptron.finalize()
  if dev and config.max_iter % config.eval_every != 0:
    result = evaluate_instances(dev, system, extractor, perceptron)
    metrics["dev_comb"].append(result["comb"])
    metrics["dev_uas"].append(result["uas"])
    if result["comb"] > best_comb:
      best_comb = result["comb"]
      logger.info("  -> final model is the best on dev: %.2f", best_comb)
      if model_dir is not None:
        save_model(model_dir, perceptron, extractor.vocab, system.labels, system.scheme)

  # nothing was checkpointed on dev: keep the final averaged model
  if model_dir is not None and best_comb == float("-inf"):
    save_model(model_dir, perceptron, extractor.vocab, system.labels, system.scheme)
  return metrics


def evaluate_instances(
  instances: Sequence[Instance],
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
) -> Dict[str, float]:
  sentences = [inst.sentence for inst in instances]
  predictions = predict_all(sentences, system, extractor, perceptron)
  golds = [JointPair(inst.labels, inst.tree) for inst in instances]
  return evaluate(sentences, predictions, golds)


def main():
  logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )

  config = create_config()
  os.environ.setdefault("DATA_PATH", config.data_path)
  logger.info("loading data from %s...", config.data_path)
  use_iobes = config.scheme == IOBES

  train_set = load_conll_data(config.train_file, iobes=use_iobes)
  dev_set = load_conll_data(config.dev_file, iobes=use_iobes)
  test_set = load_conll_data(config.test_file, iobes=use_iobes)
  log_tree_stats("train", train_set)
  log_tree_stats("dev", dev_set)
  log_tree_stats("test", test_set)

  labels = build_label_alphabet(train_set, config.scheme)
  system = ArcStandardNER(labels, scheme=config.scheme, single_root=config.single_root)
  logger.info("#transitions: %d | labels: %s", system.num_transitions, labels)

  examples, _ = generate_examples(train_set, system)
  vocab = FeatureVocab()
  extractor = FeatureExtractor(vocab)
  perceptron = StructuredPerceptron()
  rng = np.random.default_rng(config.seed)

  model_dir = os.path.join(config.output_dir, "model")
  metrics = train(
    examples, system, extractor, perceptron, config, rng, dev=dev_set, model_dir=model_dir
  )

  logger.info("restoring best model for final testing...")
  perceptron, vocab, labels, scheme = load_model(model_dir)
  system = ArcStandardNER(labels, scheme=scheme, single_root=config.single_root)
  extractor = FeatureExtractor(vocab)

  sentences = [inst.sentence for inst in test_set]
  predictions = predict_all(sentences, system, extractor, perceptron)
  golds = [JointPair(inst.labels, inst.tree) for inst in test_set]
  result = evaluate(sentences, predictions, golds)

  write_conll_data(os.path.join(config.output_dir, "test.pred.conll"), sentences, predictions)
  write_conll_eval(
    os.path.join(config.output_dir, "test.eval.txt"), sentences, predictions, golds
  )

  logger.info("")
  logger.info("=" * 60)
  logger.info("training summary:")
  if metrics["dev_comb"]:
    logger.info("  best dev comb: %.2f", max(metrics["dev_comb"]))
  logger.info("  test comb: %.2f", result["comb"])
  logger.info("  test UAS: %.2f", result["uas"])
  logger.info("  test NER F1: %.2f", result["ner_f1"])
  logger.info("  total epochs: %d", len(metrics["train_acc"]))
  logger.info("=" * 60)


if __name__ == "__main__":
  main()
