"""
RPAL control structures
Immutable control tokens, lambda templates (deltas) and the flattening of a
standardized tree into them
"""

from typing import Any, Dict, List, Tuple
from dataclasses import dataclass, field

from parsing import TreeNode
from error_handling import RPALPrecheckError
from runtime import (
  INTEGER,
  STRING,
  BOOLEAN,
  DUMMY,
  make_value
)


# Token kinds
IDENTIFIER = "IDENTIFIER"
LITERAL = "LITERAL"
DELTA = "DELTA"
BINARY_OP = "BINARY_OP"
UNARY_OP = "UNARY_OP"
TAU = "TAU"
BETA = "BETA"
GAMMA = "GAMMA"
YSTAR = "YSTAR"


# Tree labels for binary operators, mapped to the name the dispatcher uses
BINARY_OPERATORS: Dict[str, str] = {
    '+': '+', '-': '-', '*': '*', '/': '/', '**': '**',
    'ls': 'ls', 'le': 'le', 'gr': 'gr', 'ge': 'ge',
    '<': 'ls', '<=': 'le', '>': 'gr', '>=': 'ge',
    'eq': 'eq', 'ne': 'ne',
    'or': 'or', '&': '&',
    'aug': 'aug',
}

UNARY_OPERATORS: Dict[str, str] = {
    'not': 'not',
    'neg': 'neg',
}

# Forms the standardizer removes; seeing one means the tree was not standardized
UNSTANDARDIZED_FORMS = {
    'let', 'where', 'within', 'function_form', 'fcn_form',
    'and', 'rec', '=', '@',
}


@dataclass(frozen=True)
class ControlToken:
  """One entry of a control structure"""
  type: str
  value: Any = None
  line: int = 0

  def __str__(self) -> str:
    if self.type == DELTA:
      return f"<D{self.value.index}>"
    if self.type == BETA:
      return "beta"
    if self.type == GAMMA:
      return "gamma"
    if self.type == YSTAR:
      return "Y*"
    if self.type == TAU:
      return f"tau[{self.value}]"
    if self.type == LITERAL:
      return f"<{self.value[0]}:{self.value[1]}>"
    return str(self.value)


@dataclass(frozen=True)
class ControlUnit:
  """A lambda template: its body and bound-variable pattern never change"""
  index: int
  bound_vars: Tuple[str, ...]
  body: Tuple[ControlToken, ...] = field(default_factory=tuple)

  @property
  def arity(self) -> int:
    return len(self.bound_vars)


@dataclass(frozen=True)
class ControlProgram:
  """Input to the machine driver"""
  root: ControlUnit
  standardized: bool = True
  unit_count: int = 1


# ============================================================================
# TOKEN CONSTRUCTORS
# ============================================================================

def make_identifier(name: str, line: int = 0) -> ControlToken:
  return ControlToken(IDENTIFIER, name, line)


def make_literal(type_name: str, value: Any, line: int = 0) -> ControlToken:
  return ControlToken(LITERAL, (type_name, value), line)


def make_binary_op(op: str, line: int = 0) -> ControlToken:
  return ControlToken(BINARY_OP, BINARY_OPERATORS[op], line)


def make_unary_op(op: str, line: int = 0) -> ControlToken:
  return ControlToken(UNARY_OP, UNARY_OPERATORS[op], line)


def make_tau(arity: int, line: int = 0) -> ControlToken:
  return ControlToken(TAU, arity, line)


def make_beta(then_body: List[ControlToken], else_body: List[ControlToken],
              line: int = 0) -> ControlToken:
  return ControlToken(BETA, (tuple(then_body), tuple(else_body)), line)


def make_gamma(line: int = 0) -> ControlToken:
  return ControlToken(GAMMA, None, line)


def make_ystar(line: int = 0) -> ControlToken:
  return ControlToken(YSTAR, "Y*", line)


def make_delta(unit: ControlUnit, line: int = 0) -> ControlToken:
  return ControlToken(DELTA, unit, line)


def literal_to_value(token: ControlToken) -> Dict:
  """Fresh runtime value for a literal token"""
  type_name, value = token.value
  return make_value(value, type_name)


# ============================================================================
# FLATTENING
# ============================================================================

class ControlStructureBuilder:
  """Walks a standardized tree and numbers deltas in creation order"""

  def __init__(self):
    self.next_index = 0

  def build(self, tree: TreeNode) -> ControlProgram:
    root_index = self._allocate()
    body = self.flatten(tree)
    root = ControlUnit(root_index, (), tuple(body))
    return ControlProgram(root, standardized=True, unit_count=self.next_index)

  def _allocate(self) -> int:
    index = self.next_index
    self.next_index += 1
    return index

  def flatten(self, node: TreeNode) -> List[ControlToken]:
    """Control tokens for one subtree; the last token is evaluated first"""
    node_type = node.type
    line = node.line

    if node_type == 'lambda':
      return [make_delta(self._build_lambda(node), line)]

    if node_type == '->':
      self._expect_children(node, 3)
      cond, then_branch, else_branch = node.children
      beta = make_beta(self.flatten(then_branch), self.flatten(else_branch), line)
      return [beta] + self.flatten(cond)

    if node_type == 'gamma':
      self._expect_children(node, 2)
      rator, rand = node.children
      return [make_gamma(line)] + self.flatten(rator) + self.flatten(rand)

    if node_type in BINARY_OPERATORS:
      self._expect_children(node, 2)
      left, right = node.children
      return [make_binary_op(node_type, line)] + self.flatten(left) + self.flatten(right)

    if node_type in UNARY_OPERATORS:
      self._expect_children(node, 1)
      return [make_unary_op(node_type, line)] + self.flatten(node.children[0])

    if node_type == 'tau':
      tokens = [make_tau(len(node.children), line)]
      for child in node.children:
        tokens.extend(self.flatten(child))
      return tokens

    return [self._flatten_leaf(node)]

  def _flatten_leaf(self, node: TreeNode) -> ControlToken:
    node_type = node.type
    line = node.line

    if node_type == 'ID':
      return make_identifier(node.value, line)
    elif node_type == 'INT':
      return make_literal(INTEGER, node.value, line)
    elif node_type == 'STR':
      return make_literal(STRING, node.value, line)
    elif node_type == 'true':
      return make_literal(BOOLEAN, True, line)
    elif node_type == 'false':
      return make_literal(BOOLEAN, False, line)
    elif node_type == 'dummy':
      return make_literal(DUMMY, None, line)
    elif node_type == 'nil':
      return make_tau(0, line)
    elif node_type == 'Y*':
      return make_ystar(line)

    if node_type in UNSTANDARDIZED_FORMS:
      raise RPALPrecheckError(f"Tree has not been standardized: found '{node_type}'", line)
    raise RPALPrecheckError(f"Unknown node '{node_type}' in standardized tree", line)

  def _build_lambda(self, node: TreeNode) -> ControlUnit:
    self._expect_children(node, 2)
    params, body = node.children
    index = self._allocate()
    return ControlUnit(index, self._bound_vars(params), tuple(self.flatten(body)))

  def _bound_vars(self, params: TreeNode) -> Tuple[str, ...]:
    if params.type == 'ID':
      return (params.value,)
    if params.type == '()':
      return ('()',)
    if params.type == ',':
      names = []
      for child in params.children:
        if child.type != 'ID':
          raise RPALPrecheckError(f"Expected an identifier in bound variable list, found '{child.type}'",
                                  child.line)
        names.append(child.value)
      return tuple(names)
    raise RPALPrecheckError(f"Invalid lambda bound variable '{params.type}'", params.line)

  def _expect_children(self, node: TreeNode, count: int) -> None:
    if len(node.children) != count:
      raise RPALPrecheckError(
          f"'{node.type}' node expects {count} children, got {len(node.children)}", node.line)


def build_control_program(tree: TreeNode) -> ControlProgram:
  """Flatten a standardized tree into its root control unit"""
  return ControlStructureBuilder().build(tree)


def collect_units(unit: ControlUnit) -> List[ControlUnit]:
  """All units reachable from unit, ordered by index"""
  found: Dict[int, ControlUnit] = {}

  def visit(tokens):
    for token in tokens:
      if token.type == DELTA and token.value.index not in found:
        found[token.value.index] = token.value
        visit(token.value.body)
      elif token.type == BETA:
        visit(token.value[0])
        visit(token.value[1])

  found[unit.index] = unit
  visit(unit.body)
  return [found[i] for i in sorted(found)]


def pretty_print_control(unit: ControlUnit) -> str:
  """One line per delta: `delta <n> [vars]: tokens`"""
  lines = []
  for u in collect_units(unit):
    header = f"delta {u.index}"
    if u.bound_vars:
      header += f" [{', '.join(u.bound_vars)}]"
    lines.append(f"{header}: {' '.join(_render_tokens(u.body))}")
  return '\n'.join(lines)


def _render_tokens(tokens) -> List[str]:
  rendered = []
  for token in tokens:
    if token.type == BETA:
      then_body, else_body = token.value
      rendered.append(f"beta({' '.join(_render_tokens(then_body))} | {' '.join(_render_tokens(else_body))})")
    else:
      rendered.append(str(token))
  return rendered
