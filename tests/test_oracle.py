import logging

import pytest

from oracle import OracleError, can_reach, get_oracle, gold_actions, is_oracle
from schema import LEFT_ARC_ACTION, RIGHT_ARC_ACTION, shift


def test_gold_actions_for_simple_sentence(iob_system, john):
  assert gold_actions(iob_system, john) == [
    shift("B-PER"),
    shift("O"),
    LEFT_ARC_ACTION,
    shift("O"),
    RIGHT_ARC_ACTION,
    RIGHT_ARC_ACTION,
  ]


def test_oracle_replay_reproduces_gold(iobes_system, obama):
  c = iobes_system.initial_configuration(obama.sentence)
  while not iobes_system.is_terminal(c):
    action = get_oracle(c, obama.tree, obama.labels)
    assert iobes_system.can_apply(c, action)
    iobes_system.apply(c, action)
  assert c.tree.heads == obama.tree.heads
  assert tuple(c.labels) == obama.labels


def test_oracle_waits_for_pending_dependents(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  for action in (shift("B-PER"), shift("O"), LEFT_ARC_ACTION):
    iob_system.apply(c, action)
  # "lives" hangs off ROOT but "here" is still in the buffer
  assert get_oracle(c, john.tree, john.labels) == shift("O")


def test_non_projective_tree_cannot_be_replayed(iob_system, non_projective):
  with pytest.raises(OracleError):
    gold_actions(iob_system, non_projective)


def test_can_reach_from_initial_configuration(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert can_reach(c, john.tree)


def test_is_oracle_separates_gold_and_wrong_arcs(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  iob_system.apply(c, shift("B-PER"))
  iob_system.apply(c, shift("O"))
  assert is_oracle(iob_system, c, LEFT_ARC_ACTION, john.tree)
  assert not is_oracle(iob_system, c, RIGHT_ARC_ACTION, john.tree)
  # illegal actions are never oracle actions
  assert not is_oracle(iob_system, c, shift("I-PER"), john.tree)
  # the configuration itself is untouched
  assert c.stack == [0, 1, 2]


def test_can_reach_after_each_gold_step(iobes_system, obama):
  c = iobes_system.initial_configuration(obama.sentence)
  for action in gold_actions(iobes_system, obama):
    iobes_system.apply(c, action)
    assert can_reach(c, obama.tree)


def test_failed_replay_is_logged(iob_system, non_projective, caplog):
  caplog.set_level(logging.DEBUG, logger="oracle")
  with pytest.raises(OracleError):
    gold_actions(iob_system, non_projective)
  assert "gold replay failed" in caplog.text
