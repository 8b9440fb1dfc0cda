"""
Tests for the CSE machine rules on hand-built control programs
"""

import pytest
from error_handling import (
  RPALArithmeticError,
  RPALDissimilarTypes,
  RPALPrecheckError,
  RPALTypeError,
  RPALUndeclaredIdentifier,
  RPALUnknownOperator,
  RPALUnsupportedComparison,
  RPALUnsupportedOperands
)
from control import (
  ControlProgram,
  ControlUnit,
  make_beta,
  make_binary_op,
  make_delta,
  make_gamma,
  make_identifier,
  make_literal,
  make_tau,
  make_unary_op
)
from interpreter import (
  compare_equality,
  create_debug_machine,
  evaluate_program,
  make_execution_context,
  eval_program
)
from runtime import make_boolean, make_integer, make_string, make_tuple


def program(*tokens, standardized=True):
  """Root unit whose body is tokens; the last token runs first"""
  return ControlProgram(ControlUnit(0, (), tuple(tokens)), standardized=standardized)


def integer(n, line=0):
  return make_literal("Integer", n, line)


def string(s, line=0):
  return make_literal("String", s, line)


def print_of(*tokens):
  return program(make_gamma(), make_identifier("Print"), *tokens)


class TestOperators:

  @pytest.mark.parametrize("op,left,right,expected", [
      ("+", 3, 4, "7"),
      ("-", 10, 3, "7"),
      ("*", 6, 7, "42"),
      ("/", 7, 2, "3"),
      ("/", -7, 2, "-3"),
      ("**", 2, 10, "1024"),
      ("**", 2, -1, "0"),
      ("ls", 1, 2, "true"),
      ("ge", 1, 2, "false"),
      ("eq", 5, 5, "true"),
      ("ne", 5, 5, "false"),
  ])
  def test_integer_operators(self, machine, op, left, right, expected):
    tokens = [make_binary_op(op), integer(left), integer(right)]
    assert machine.evaluate(print_of(*tokens)) == expected

  def test_large_integers_do_not_overflow(self, machine):
    tokens = [make_binary_op("**"), integer(2), integer(100)]
    assert machine.evaluate(print_of(*tokens)) == str(2 ** 100)

  def test_division_by_zero(self, machine):
    with pytest.raises(RPALArithmeticError):
      machine.evaluate(print_of(make_binary_op("/"), integer(1), integer(0)))

  def test_zero_to_negative_power(self, machine):
    with pytest.raises(RPALArithmeticError):
      machine.evaluate(print_of(make_binary_op("**"), integer(0), integer(-1)))

  def test_arithmetic_on_strings(self, machine):
    with pytest.raises(RPALTypeError):
      machine.evaluate(print_of(make_binary_op("+"), string("a"), integer(1)))

  def test_logical_operators(self, machine):
    tokens = [make_binary_op("or"), make_literal("Boolean", False), make_literal("Boolean", True)]
    assert machine.evaluate(print_of(*tokens)) == "true"
    tokens = [make_binary_op("&"), make_literal("Boolean", True), make_literal("Boolean", False)]
    assert machine.evaluate(print_of(*tokens)) == "false"

  def test_logical_operator_on_integers(self, machine):
    with pytest.raises(RPALUnsupportedOperands):
      machine.evaluate(print_of(make_binary_op("or"), integer(1), integer(0)))

  def test_unary_operators(self, machine):
    assert machine.evaluate(print_of(make_unary_op("neg"), integer(5))) == "-5"
    tokens = [make_unary_op("not"), make_literal("Boolean", True)]
    assert machine.evaluate(print_of(*tokens)) == "false"

  def test_neg_on_string(self, machine):
    with pytest.raises(RPALTypeError) as exc_info:
      machine.evaluate(print_of(make_unary_op("neg"), string("5")))
    assert exc_info.value.message.startswith("neg: expected an integer")

  def test_neg_operator_and_builtin_agree(self, machine):
    builtin = [make_gamma(), make_identifier("neg"), integer(5)]
    assert machine.evaluate(print_of(*builtin)) == "-5"
    with pytest.raises(RPALTypeError):
      machine.evaluate(print_of(make_gamma(), make_identifier("neg"), string("5")))

  def test_not_on_integer(self, machine):
    with pytest.raises(RPALTypeError):
      machine.evaluate(print_of(make_unary_op("not"), integer(1)))


class TestEquality:

  def test_strings(self):
    assert compare_equality("eq", make_string("a"), make_string("a"))['value'] is True
    assert compare_equality("ne", make_string("a"), make_string("b"))['value'] is True

  def test_truth_values(self):
    result = compare_equality("eq", make_boolean(False), make_boolean(False))
    assert result['value'] is True

  def test_truth_value_against_integer(self):
    with pytest.raises(RPALDissimilarTypes):
      compare_equality("eq", make_boolean(True), make_integer(1))

  def test_different_kinds(self):
    with pytest.raises(RPALDissimilarTypes):
      compare_equality("eq", make_string("1"), make_integer(1))

  def test_tuples_are_not_comparable(self):
    with pytest.raises(RPALUnsupportedComparison):
      compare_equality("eq", make_tuple(), make_tuple())


class TestApplication:

  def test_closure_keeps_shared_unit(self, machine):
    unit = ControlUnit(1, ("x",), (make_identifier("x"),))
    value = machine.evaluate_value(program(make_delta(unit)))
    assert value['type'] == "Closure"
    assert value['value'] is unit

  def test_identity_application(self, machine):
    unit = ControlUnit(1, ("x",), (make_identifier("x"),))
    tokens = [make_gamma(), make_identifier("Print"), make_gamma(), make_delta(unit), integer(9)]
    assert machine.evaluate(program(*tokens)) == "9"

  def test_unit_body_is_not_consumed(self, machine):
    unit = ControlUnit(1, ("x",), (make_binary_op("+"), make_identifier("x"), integer(1)))
    machine.evaluate(program(make_gamma(), make_delta(unit), integer(1)))
    assert len(unit.body) == 3

  def test_tuple_selection(self, machine):
    body = (make_gamma(), make_identifier("Print"), make_gamma(),
            make_tau(2), integer(10), integer(20), integer(2))
    assert machine.evaluate(program(*body)) == "20"

  def test_tuple_selection_with_string(self, machine):
    body = (make_gamma(), make_tau(1), integer(1), string("1"))
    with pytest.raises(RPALTypeError):
      machine.evaluate(program(*body))

  def test_integer_is_not_an_operator(self, machine):
    with pytest.raises(RPALUnknownOperator):
      machine.evaluate(program(make_gamma(), integer(1), integer(2)))

  def test_string_naming_a_builtin_is_not_an_operator(self, machine):
    with pytest.raises(RPALUnknownOperator):
      machine.evaluate(program(make_gamma(), string("Print"), integer(2)))

  def test_partially_applied_conc(self, machine):
    with pytest.raises(RPALTypeError):
      machine.evaluate(program(make_gamma(), make_identifier("Conc"), string("a")))

  def test_environment_binding_wins_over_builtin(self, machine):
    unit = ControlUnit(1, ("Stem",), (make_identifier("Stem"),))
    tokens = [make_gamma(), make_identifier("Print"), make_gamma(), make_delta(unit), integer(3)]
    assert machine.evaluate(program(*tokens)) == "3"

  def test_undeclared_identifier(self, machine):
    with pytest.raises(RPALUndeclaredIdentifier) as exc_info:
      machine.evaluate(program(make_identifier("missing", 4)))
    assert exc_info.value.line == 4


class TestConditional:

  def test_branch_selection(self, machine):
    beta = make_beta([string("yes")], [string("no")])
    tokens = [make_gamma(), make_identifier("Print"), beta, make_literal("Boolean", False)]
    assert machine.evaluate(program(*tokens)) == "no"

  def test_condition_must_be_truth_value(self, machine):
    beta = make_beta([integer(1)], [integer(2)])
    with pytest.raises(RPALTypeError):
      machine.evaluate(program(beta, integer(0)))


class TestDriver:

  def test_unstandardized_program_is_rejected(self):
    with pytest.raises(RPALPrecheckError):
      eval_program(program(integer(1), standardized=False))

  def test_no_print_means_no_output(self):
    context = eval_program(program(integer(1)))
    assert context['output'] is None
    assert context['final_value']['value'] == 1

  def test_evaluate_program(self):
    assert evaluate_program(print_of(string("hi"))) == "hi"

  def test_errors_take_the_line_of_the_failing_token(self, machine):
    with pytest.raises(RPALArithmeticError) as exc_info:
      machine.evaluate(print_of(make_binary_op("/", 3), integer(10, 4), integer(0, 5)))
    assert exc_info.value.line == 3
    assert str(exc_info.value).startswith("Error :3: ArithmeticError")

  def test_report_on_success(self, machine):
    report = machine.evaluate_with_report(print_of(integer(1)))
    assert report == {'output': "1", 'error': None}

  def test_report_on_failure(self, machine):
    report = machine.evaluate_with_report(program(make_identifier("nope", 2)))
    assert report['output'] is None
    assert report['error']['kind'] == "UndeclaredIdentifier"
    assert report['error']['line'] == 2

  def test_context_is_fresh_per_run(self, machine):
    machine.evaluate(print_of(integer(1)))
    assert machine.evaluate(program(integer(2))) is None
    assert make_execution_context()['print_count'] == 0

  def test_debug_machine_traces(self, capsys):
    create_debug_machine().evaluate(print_of(integer(1)))
    out = capsys.readouterr().out
    assert "Dispatching:" in out
    assert "Print recorded: '1'" in out
