"""
Tests for the runtime data model: values, tuples and environments
"""

import pytest
from error_handling import (
  RPALArityMismatch,
  RPALIndexOutOfBounds,
  RPALNotATuple,
  RPALRuntimeError,
  RPALTypeError
)
from control import ControlUnit
from runtime import (
  augment,
  create_child,
  env_bind,
  env_bind_positional,
  env_depth,
  env_lookup_value,
  make_boolean,
  make_closure,
  make_dummy,
  make_integer,
  make_recursive_closure,
  make_runtime_env,
  make_string,
  make_tuple,
  pop_value,
  tuple_is_null,
  tuple_order,
  tuple_select,
  value_to_text
)


class TestEnvironment:
  """Parent-linked lexical scopes"""

  def test_root_has_no_parent_and_no_bindings(self):
    root = make_runtime_env()
    assert root['parent'] is None
    assert root['bindings'] == {}
    assert env_lookup_value(root, "x") is None

  def test_lookup_walks_parent_chain(self):
    root = make_runtime_env()
    outer = create_child(root)
    env_bind(outer, "x", make_integer(1))
    inner = create_child(outer)
    assert env_lookup_value(inner, "x")['value'] == 1
    assert env_depth(inner) == 2

  def test_nearest_binding_shadows(self):
    outer = create_child(make_runtime_env())
    env_bind(outer, "x", make_integer(1))
    inner = create_child(outer)
    env_bind(inner, "x", make_integer(2))
    assert env_lookup_value(inner, "x")['value'] == 2
    assert env_lookup_value(outer, "x")['value'] == 1

  def test_children_share_one_parent(self):
    parent = create_child(make_runtime_env())
    env_bind(parent, "shared", make_string("s"))
    left = create_child(parent)
    right = create_child(parent)
    assert left['parent'] is right['parent']
    assert env_lookup_value(left, "shared") is env_lookup_value(right, "shared")

  def test_bind_positional_is_one_based(self):
    env = create_child(make_runtime_env())
    env_bind_positional(env, ["a", "b"], make_tuple([make_integer(10), make_integer(20)]))
    assert env_lookup_value(env, "a")['value'] == 10
    assert env_lookup_value(env, "b")['value'] == 20

  @pytest.mark.parametrize("size", [1, 3])
  def test_bind_positional_requires_exact_count(self, size):
    env = create_child(make_runtime_env())
    tup = make_tuple([make_integer(i) for i in range(size)])
    with pytest.raises(RPALArityMismatch):
      env_bind_positional(env, ["a", "b"], tup)

  def test_bind_positional_rejects_non_tuple(self):
    env = create_child(make_runtime_env())
    with pytest.raises(RPALTypeError):
      env_bind_positional(env, ["a", "b"], make_integer(1))


class TestTuples:
  """Selection, order, null and augmentation"""

  def test_select_is_one_based(self):
    tup = make_tuple([make_integer(1), make_integer(2), make_integer(3)])
    assert tuple_select(tup, 1)['value'] == 1
    assert tuple_select(tup, 3)['value'] == 3

  @pytest.mark.parametrize("index", [0, -1, 4])
  def test_select_out_of_bounds(self, index):
    tup = make_tuple([make_integer(1), make_integer(2), make_integer(3)])
    with pytest.raises(RPALIndexOutOfBounds):
      tuple_select(tup, index)

  def test_order_and_null_of_empty_tuple(self):
    empty = make_tuple()
    assert tuple_order(empty)['value'] == 0
    assert tuple_is_null(empty)['value'] is True
    assert tuple_is_null(make_tuple([make_dummy()]))['value'] is False

  def test_augment_mutates_in_place(self):
    tup = make_tuple([make_integer(1)])
    alias = tup
    result = augment(tup, make_integer(2))
    assert result is tup
    assert [e['value'] for e in alias['value']] == [1, 2]

  def test_augment_appends_tuple_as_single_element(self):
    tup = make_tuple()
    inner = make_tuple([make_integer(1), make_integer(2)])
    augment(tup, inner)
    assert len(tup['value']) == 1
    assert tup['value'][0] is inner

  def test_augment_non_tuple(self):
    with pytest.raises(RPALNotATuple):
      augment(make_integer(1), make_integer(2))

  def test_make_tuple_copies_element_list(self):
    elements = [make_integer(1)]
    tup = make_tuple(elements)
    elements.append(make_integer(2))
    assert len(tup['value']) == 1


class TestValueText:
  """Textual rendering used by Print and error messages"""

  def test_scalars(self):
    assert value_to_text(make_integer(-42)) == "-42"
    assert value_to_text(make_string("hi")) == "hi"
    assert value_to_text(make_boolean(True)) == "true"
    assert value_to_text(make_boolean(False)) == "false"
    assert value_to_text(make_dummy()) == "dummy"

  def test_tuples(self):
    assert value_to_text(make_tuple()) == "nil"
    nested = make_tuple([make_integer(1), make_tuple([make_string("a"), make_boolean(True)])])
    assert value_to_text(nested) == "(1, (a, true))"

  def test_self_reference_is_elided(self):
    tup = make_tuple([make_integer(1)])
    augment(tup, tup)
    assert value_to_text(tup) == "(1, (...))"

  def test_shared_tuple_is_not_a_cycle(self):
    shared = make_tuple([make_integer(1)])
    outer = make_tuple([shared, shared])
    assert value_to_text(outer) == "((1), (1))"

  def test_deep_nesting(self):
    tup = make_tuple()
    for _ in range(5000):
      tup = make_tuple([tup])
    assert value_to_text(tup) == "(" * 5000 + "nil" + ")" * 5000

  def test_closures(self):
    unit = ControlUnit(3, ("x", "y"), ())
    closure = make_closure(unit, make_runtime_env())
    assert value_to_text(closure) == "[lambda closure: x, y: 3]"
    assert value_to_text(make_recursive_closure(closure)) == "[eta closure: x, y: 3]"


class TestValueStack:

  def test_underflow(self):
    with pytest.raises(RPALRuntimeError):
      pop_value([])
