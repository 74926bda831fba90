from typing import List, Optional, Sequence, Tuple

from engine import ArcStandardNER, Configuration, TransitionError
from features import FeatureExtractor
from perceptron import StructuredPerceptron
from schema import Action, JointPair, Sentence


class NoLegalActionError(RuntimeError):
  """no transition can be applied although the configuration is not terminal."""


def best_legal_action(
  c: Configuration,
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
  use_averaged: bool = False,
  templates: Optional[List[str]] = None,
) -> Tuple[Action, List[int]]:
  """
  greedy selection of the best legal action and its features.
  ties go to the action enumerated first by the transition system.
  """
  if templates is None:
    templates = extractor.templates(c)

  best_action = None
  best_features: List[int] = []
  best_score = float("-inf")
  for action in system.transitions:
    if not system.can_apply(c, action):
      continue
    features = extractor(c, action, templates)
    score = perceptron.score(features, use_averaged)
    if best_action is None or score > best_score:
      best_action, best_features, best_score = action, features, score

  if best_action is None:
    raise NoLegalActionError(f"no legal action in configuration {c}")
  return best_action, best_features


def predict(
  sentence: Sentence,
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
) -> JointPair:
  """greedily parses one sentence; the feature vocabulary is not grown."""
  c = system.initial_configuration(sentence)
  # every token is shifted once and attached once
  max_steps = 2 * sentence.n
  steps = 0

  with extractor.vocab.closed():
    while not system.is_terminal(c):
      if steps >= max_steps:
        raise TransitionError(f"parse did not terminate after {max_steps} steps")
      action, _ = best_legal_action(c, system, extractor, perceptron, use_averaged=True)
      system.apply(c, action)
      steps += 1

  return JointPair(tuple(c.labels), c.tree)


def predict_all(
  sentences: Sequence[Sentence],
  system: ArcStandardNER,
  extractor: FeatureExtractor,
  perceptron: StructuredPerceptron,
) -> List[JointPair]:
  return [predict(sent, system, extractor, perceptron) for sent in sentences]
