import pytest

from config import IOB, NONEXIST, NULL
from engine import ArcStandardNER, TransitionError
from oracle import gold_actions
from schema import LEFT_ARC_ACTION, RIGHT_ARC_ACTION, SHIFT, Sentence, shift


def test_initial_configuration(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert c.stack == [0]
  assert c.buffer == [1, 2, 3]
  assert c.tree.heads[1:] == [NONEXIST] * 3
  assert c.labels == ["O", NULL, NULL, NULL]
  assert not iob_system.is_terminal(c)


def test_transition_enumeration_puts_arcs_first(iob_system):
  assert iob_system.transitions[:2] == [LEFT_ARC_ACTION, RIGHT_ARC_ACTION]
  assert iob_system.transitions[2:] == [shift("O"), shift("B-PER"), shift("I-PER")]
  assert iob_system.num_transitions == 5


def test_label_alphabet_needs_outside_tag():
  with pytest.raises(ValueError):
    ArcStandardNER(["B-PER", "I-PER"])


def test_shift_and_arcs_mutate_configuration(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert c.shift("B-PER")
  assert c.shift("O")
  assert c.stack == [0, 1, 2]
  assert c.labels[1:3] == ["B-PER", "O"]

  assert c.left_arc()
  assert c.stack == [0, 2]
  assert c.get_head(1) == 2
  assert c.left_child(2) == 1
  assert c.left_valency(2) == 1
  assert c.right_child(2) == NONEXIST

  assert c.shift("O")
  assert c.right_arc()
  assert c.stack == [0, 2]
  assert c.get_head(3) == 2
  assert c.right_child(2) == 3
  assert c.right_valency(2) == 1


def test_failed_moves_do_not_mutate(iob_system, make_instance):
  inst = make_instance(["x"], ["NN"], ["O"], [0])
  c = iob_system.initial_configuration(inst.sentence)
  assert not c.left_arc()
  assert not c.right_arc()
  assert c.shift("O")
  assert not c.shift("O")
  assert c.stack == [0, 1]
  assert c.buffer == []


def test_out_of_range_lookups_return_sentinels(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert c.get_stack(0) == 0
  assert c.get_stack(3) == NONEXIST
  assert c.get_buffer(2) == 3
  assert c.get_buffer(3) == NONEXIST
  assert c.get_word(NONEXIST) == NULL
  assert c.get_pos(10) == NULL
  assert c.get_label(NONEXIST) == NULL
  assert c.get_word(0) == "ROOT"
  assert c.left_child(NONEXIST) == NONEXIST


def test_arc_legality(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert not iob_system.can_apply(c, LEFT_ARC_ACTION)
  assert not iob_system.can_apply(c, RIGHT_ARC_ACTION)

  iob_system.apply(c, shift("B-PER"))
  # only ROOT and one word: ROOT may not become a dependent, and the single
  # root attachment has to wait for the buffer to empty
  assert not iob_system.can_apply(c, LEFT_ARC_ACTION)
  assert not iob_system.can_apply(c, RIGHT_ARC_ACTION)

  iob_system.apply(c, shift("O"))
  assert iob_system.can_apply(c, LEFT_ARC_ACTION)
  assert iob_system.can_apply(c, RIGHT_ARC_ACTION)


def test_root_attachment_only_with_empty_buffer(iob_system, make_instance):
  inst = make_instance(["x"], ["NN"], ["O"], [0])
  c = iob_system.initial_configuration(inst.sentence)
  iob_system.apply(c, shift("O"))
  assert iob_system.can_apply(c, RIGHT_ARC_ACTION)
  iob_system.apply(c, RIGHT_ARC_ACTION)
  assert iob_system.is_terminal(c)
  assert c.get_head(1) == 0


def test_without_single_root_policy_root_attachment_is_free(john):
  system = ArcStandardNER(["O", "B-PER", "I-PER"], scheme=IOB, single_root=False)
  c = system.initial_configuration(john.sentence)
  system.apply(c, shift("B-PER"))
  assert system.can_apply(c, RIGHT_ARC_ACTION)
  assert not system.can_apply(c, LEFT_ARC_ACTION)


def test_iob_continuation(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  assert not iob_system.can_apply(c, shift("I-PER"))
  assert iob_system.can_apply(c, shift("B-PER"))
  iob_system.apply(c, shift("B-PER"))
  assert iob_system.can_apply(c, shift("I-PER"))
  assert iob_system.can_apply(c, shift("O"))
  assert iob_system.can_apply(c, shift("B-PER"))
  assert not iob_system.can_follow("B-LOC", "I-PER")


def test_iobes_continuation(iobes_system, john):
  c = iobes_system.initial_configuration(john.sentence)
  assert iobes_system.can_apply(c, shift("B-PER"))
  assert iobes_system.can_apply(c, shift("S-PER"))
  assert not iobes_system.can_apply(c, shift("I-PER"))
  assert not iobes_system.can_apply(c, shift("E-PER"))

  iobes_system.apply(c, shift("B-PER"))
  assert iobes_system.can_apply(c, shift("I-PER"))
  assert iobes_system.can_apply(c, shift("E-PER"))
  assert not iobes_system.can_apply(c, shift("E-LOC"))
  assert not iobes_system.can_apply(c, shift("O"))
  assert not iobes_system.can_apply(c, shift("B-LOC"))
  assert not iobes_system.can_apply(c, shift("S-PER"))

  iobes_system.apply(c, shift("E-PER"))
  assert iobes_system.can_apply(c, shift("O"))
  assert iobes_system.can_apply(c, shift("S-LOC"))
  assert not iobes_system.can_apply(c, shift("I-PER"))


def test_iobes_span_must_close_on_last_token(iobes_system, make_instance):
  inst = make_instance(["a", "b"], ["NN", "NN"], ["O", "O"], [0, 1])
  c = iobes_system.initial_configuration(inst.sentence)
  iobes_system.apply(c, shift("O"))
  # one token left: a span opened here could never be closed
  assert not iobes_system.can_apply(c, shift("B-PER"))
  assert iobes_system.can_apply(c, shift("S-PER"))

  c = iobes_system.initial_configuration(inst.sentence)
  iobes_system.apply(c, shift("B-PER"))
  assert not iobes_system.can_apply(c, shift("I-PER"))
  assert iobes_system.can_apply(c, shift("E-PER"))


def test_illegal_apply_fails_fast(iob_system, john):
  c = iob_system.initial_configuration(john.sentence)
  with pytest.raises(TransitionError):
    iob_system.apply(c, LEFT_ARC_ACTION)
  with pytest.raises(TransitionError):
    iob_system.apply(c, shift("I-PER"))
  assert c.stack == [0]
  assert c.buffer == [1, 2, 3]


def test_every_token_is_in_exactly_one_place(iobes_system, obama):
  c = iobes_system.initial_configuration(obama.sentence)
  n = obama.sentence.n
  for action in gold_actions(iobes_system, obama):
    iobes_system.apply(c, action)
    reduced = [k for k in range(1, n + 1) if c.get_head(k) != NONEXIST]
    seen = c.stack + c.buffer + reduced
    assert len(seen) == n + 1
    assert sorted(seen) == list(range(n + 1))


def test_transition_count(iobes_system, obama):
  n = obama.sentence.n
  actions = gold_actions(iobes_system, obama)
  shifts = [a for a in actions if a.kind == SHIFT]
  arcs = [a for a in actions if a.kind != SHIFT]
  # n shifts, n - 1 arcs between words and one attachment to ROOT
  assert len(shifts) == n
  assert len(arcs) == n
  assert len(actions) == 2 * n


def test_legal_actions_of_terminal_configuration_is_empty(iob_system):
  sentence = Sentence.from_tokens(["x"], ["NN"])
  c = iob_system.initial_configuration(sentence)
  iob_system.apply(c, shift("O"))
  iob_system.apply(c, RIGHT_ARC_ACTION)
  assert iob_system.legal_actions(c) == []
