"""
Utilities module for the RPAL CSE machine
Contains common helper functions shared by the dispatcher and the stdlib
"""

from typing import Any, Callable, Dict, Optional
import operator

from error_handling import (
  RPALArithmeticError,
  RPALRuntimeError,
  RPALTypeError,
  RPALUnsupportedOperands
)
from runtime import (
  BOOLEAN,
  INTEGER,
  make_boolean,
  make_integer,
  value_to_text
)


# ==================== TEXT UTILITIES ====================

def quote_operands(*values: Dict) -> str:
  """
  Render operands for error messages

  Args:
    *values: Runtime values

  Returns:
    Comma separated, double-quoted textual values

  Examples:
    quote_operands(make_integer(1), make_string("a")) -> '"1", "a"'
  """
  return ", ".join(f"\"{value_to_text(v)}\"" for v in values)


def unescape_print_text(text: str) -> str:
  """Turn the two-character sequences \\t and \\n into tab and newline"""
  return text.replace("\\t", "\t").replace("\\n", "\n")


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  func_name: str,
  expected: str,
  actual: Dict
) -> RPALTypeError:
  """
  Generate type mismatch error for a built-in or unary operator

  Args:
    func_name: Function or operator name
    expected: Expected kind, with article (e.g. "a string")
    actual: Actual value dict

  Returns:
    RPALTypeError with formatted message
  """
  return RPALTypeError(
    f"{func_name}: expected {expected}; was given {quote_operands(actual)}"
  )


def operation_error(
  op: str,
  left: Dict,
  right: Dict,
  error_class: Callable[..., RPALRuntimeError] = RPALUnsupportedOperands
) -> RPALRuntimeError:
  """
  Generate error for a binary operation on unsuitable operands

  Args:
    op: Operator name
    left: First popped operand
    right: Second popped operand
    error_class: Exception class to build

  Returns:
    Exception instance with formatted message
  """
  return error_class(f"Don't know how to {op} {quote_operands(left, right)}")


# ==================== VALIDATION UTILITIES ====================

def require_kind(func_name: str, value: Dict, type_name: str, expected: str) -> Any:
  """
  Check a single operand kind and return its payload

  Args:
    func_name: Name for error messages
    value: Operand value
    type_name: Required tag
    expected: Human description of the tag

  Returns:
    value['value']

  Raises:
    RPALTypeError if the tag does not match
  """
  if value.get('type') != type_name:
    raise type_mismatch_error(func_name, expected, value)
  return value['value']


def is_truth_value(value: Dict) -> bool:
  return value.get('type') == BOOLEAN


def negate(value: Dict) -> Dict:
  """Unary minus, shared by the neg operator and the neg built-in"""
  n = require_kind("neg", value, INTEGER, "an integer")
  return make_integer(-n)


# ==================== INTEGER OPERATIONS ====================

def int_divide(x: int, y: int) -> int:
  """Integer division truncating toward zero"""
  if y == 0:
    raise RPALArithmeticError("Division by zero")
  quotient = abs(x) // abs(y)
  return quotient if (x < 0) == (y < 0) else -quotient


def int_power(x: int, y: int) -> int:
  """Exponentiation truncated to an integer"""
  if y >= 0:
    return x ** y
  if x == 0:
    raise RPALArithmeticError("Zero cannot be raised to a negative power")
  return int(x ** y)


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[int, int], int],
  op_name: str
) -> Callable[[Dict, Dict], Dict]:
  """
  Factory for binary integer arithmetic

  Args:
    op: Python function on two ints (e.g., operator.add)
    op_name: Name for error messages

  Returns:
    Function (rand1, rand2) -> Integer value

  Examples:
    rpal_add = binary_arithmetic_op(operator.add, "+")
    rpal_add(make_integer(1), make_integer(2)) -> {'value': 3, 'type': 'Integer'}
  """
  def arithmetic(x: Dict, y: Dict) -> Dict:
    if x['type'] != INTEGER or y['type'] != INTEGER:
      raise RPALTypeError(f"{op_name}: expected two integers; was given {quote_operands(x, y)}")
    return make_integer(op(x['value'], y['value']))

  return arithmetic


def binary_comparison_op(
  op: Callable[[int, int], bool],
  op_name: str
) -> Callable[[Dict, Dict], Dict]:
  """
  Factory for integer relational operators

  Args:
    op: Python comparison (e.g., operator.lt)
    op_name: Name for error messages

  Returns:
    Function (rand1, rand2) -> Boolean value
  """
  def comparison(x: Dict, y: Dict) -> Dict:
    if x['type'] != INTEGER or y['type'] != INTEGER:
      raise RPALTypeError(f"{op_name}: expected two integers; was given {quote_operands(x, y)}")
    return make_boolean(op(x['value'], y['value']))

  return comparison


def binary_logical_op(
  op: Callable[[bool, bool], bool],
  op_name: str
) -> Callable[[Dict, Dict], Dict]:
  """
  Factory for boolean connectives; both operands are always evaluated

  Args:
    op: Python function on two bools
    op_name: Name for error messages

  Returns:
    Function (rand1, rand2) -> Boolean value
  """
  def logical(x: Dict, y: Dict) -> Dict:
    if not (is_truth_value(x) and is_truth_value(y)):
      raise operation_error(op_name, x, y)
    return make_boolean(op(x['value'], y['value']))

  return logical


INTEGER_OPERATORS: Dict[str, Callable[[Dict, Dict], Dict]] = {
    '+': binary_arithmetic_op(operator.add, "+"),
    '-': binary_arithmetic_op(operator.sub, "-"),
    '*': binary_arithmetic_op(operator.mul, "*"),
    '/': binary_arithmetic_op(int_divide, "/"),
    '**': binary_arithmetic_op(int_power, "**"),
    'ls': binary_comparison_op(operator.lt, "ls"),
    'le': binary_comparison_op(operator.le, "le"),
    'gr': binary_comparison_op(operator.gt, "gr"),
    'ge': binary_comparison_op(operator.ge, "ge"),
}

LOGICAL_OPERATORS: Dict[str, Callable[[Dict, Dict], Dict]] = {
    'or': binary_logical_op(operator.or_, "or"),
    '&': binary_logical_op(operator.and_, "&"),
}


def describe_kind(type_name: Optional[str]) -> str:
  """Article plus lower-case kind, for messages"""
  descriptions = {
      'Integer': "an integer",
      'String': "a string",
      'Boolean': "a truth value",
      'Tuple': "a tuple",
      'Closure': "a function",
  }
  return descriptions.get(type_name, f"a {type_name}")
