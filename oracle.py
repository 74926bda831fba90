import logging
from typing import List, Sequence

from engine import ArcStandardNER, Configuration
from schema import LEFT_ARC_ACTION, RIGHT_ARC_ACTION, Action, Instance, shift
from tree import DependencyTree

logger = logging.getLogger(__name__)


class OracleError(ValueError):
  """the gold structure cannot be produced by the transition system."""


def _fail(message: str) -> OracleError:
  logger.debug("gold replay failed: %s", message)
  return OracleError(message)


def get_oracle(
  c: Configuration, gold_tree: DependencyTree, gold_labels: Sequence[str]
) -> Action:
  """
  static oracle for the joint system.
  LEFT-ARC when s0 is the gold head of s1 (s1 not ROOT); RIGHT-ARC when s1 is
  the gold head of s0 and s0 has collected all its gold dependents; otherwise
  SHIFT with the gold tag of the buffer front.
  """
  w1 = c.get_stack(1)
  w2 = c.get_stack(0)

  if w1 > 0 and gold_tree.get_head(w1) == w2:
    return LEFT_ARC_ACTION
  if w1 >= 0 and gold_tree.get_head(w2) == w1 and not c.has_other_child(w2, gold_tree):
    return RIGHT_ARC_ACTION
  return shift(gold_labels[c.get_buffer(0)])


def gold_actions(system: ArcStandardNER, instance: Instance) -> List[Action]:
  """
  replays the oracle from the initial configuration to the terminal one.
  raises OracleError when the replay takes an illegal step or does not
  reproduce the gold tree and labels.
  """
  c = system.initial_configuration(instance.sentence)
  actions: List[Action] = []
  # every token is shifted once and attached once
  max_steps = 2 * instance.sentence.n

  while not system.is_terminal(c):
    if len(actions) >= max_steps:
      raise _fail(f"oracle did not terminate after {max_steps} steps")
    action = get_oracle(c, instance.tree, instance.labels)
    if not system.can_apply(c, action):
      raise _fail(f"oracle proposed illegal action {action} at {c}")
    system.apply(c, action)
    actions.append(action)

  if c.tree.heads != instance.tree.heads:
    raise _fail(f"oracle reached {c.tree.heads[1:]}, gold is {instance.tree.heads[1:]}")
  if tuple(c.labels) != tuple(instance.labels):
    raise _fail(f"oracle reached labels {c.labels}, gold is {list(instance.labels)}")
  return actions


# NOTE: optional exploration helpers; the training loop only uses the static oracle.


def can_reach(c: Configuration, gold_tree: DependencyTree) -> bool:
  """
  whether the gold tree is still reachable from configuration c.

  every arc built so far must be gold. the stack (read from the top) and the
  buffer tokens that still have to meet something outside the buffer form two
  lists; g[i][j] holds the token that heads the subtree spanning the first i
  left items and first j right items, or -1 when no such subtree exists.
  """
  n = c.sentence.n
  for i in range(1, n + 1):
    head = c.get_head(i)
    if head != -1 and head != gold_tree.get_head(i):
      return False

  in_buffer = [False] * (n + 1)
  dep_in_list = [False] * (n + 1)
  for x in c.buffer:
    in_buffer[x] = True

  n_left = len(c.stack)
  left = [0] * (n_left + 1)
  for i, x in enumerate(c.stack):
    left[n_left - i] = x
    if x > 0:
      dep_in_list[gold_tree.get_head(x)] = True

  right = [left[1]]
  for x in c.buffer:
    head = gold_tree.get_head(x)
    if not in_buffer[head] or dep_in_list[x]:
      right.append(x)
      dep_in_list[head] = True
  right.insert(0, 0)  # 1-based like `left`
  n_right = len(right) - 1

  g = [[-1] * (n_right + 1) for _ in range(n_left + 1)]
  g[1][1] = left[1]
  for i in range(1, n_left + 1):
    for j in range(1, n_right + 1):
      x = g[i][j]
      if x == -1:
        continue
      if j < n_right and gold_tree.get_head(right[j + 1]) == x:
        g[i][j + 1] = x
      if j < n_right and gold_tree.get_head(x) == right[j + 1]:
        g[i][j + 1] = right[j + 1]
      if i < n_left and gold_tree.get_head(left[i + 1]) == x:
        g[i + 1][j] = x
      if i < n_left and gold_tree.get_head(x) == left[i + 1]:
        g[i + 1][j] = left[i + 1]
  return g[n_left][n_right] != -1


def is_oracle(
  system: ArcStandardNER, c: Configuration, action: Action, gold_tree: DependencyTree
) -> bool:
  """whether taking `action` keeps the gold tree reachable."""
  if not system.can_apply(c, action):
    return False
  ct = c.copy()
  system.apply(ct, action)
  return can_reach(ct, gold_tree)
