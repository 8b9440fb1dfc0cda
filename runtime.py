"""
RPAL runtime data model
Tagged value dictionaries, growable tuples and parent-linked environments
"""

from typing import Any, Dict, List, Optional

from error_handling import (
  RPALRuntimeError,
  RPALArityMismatch,
  RPALIndexOutOfBounds,
  RPALNotATuple,
  RPALTypeError
)


# ============================================================================
# VALUE CONSTRUCTORS (Tagged Dictionaries)
# ============================================================================

INTEGER = "Integer"
STRING = "String"
BOOLEAN = "Boolean"
DUMMY = "Dummy"
TUPLE = "Tuple"
CLOSURE = "Closure"
RECURSIVE_CLOSURE = "RecursiveClosure"
BUILTIN = "Builtin"
FIXED_POINT = "FixedPoint"


def make_value(value: Any, type_name: str) -> Dict:
  """Create a runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_integer(n: int) -> Dict:
  return make_value(n, INTEGER)


def make_string(s: str) -> Dict:
  return make_value(s, STRING)


def make_boolean(b: bool) -> Dict:
  return make_value(bool(b), BOOLEAN)


def make_dummy() -> Dict:
  return make_value(None, DUMMY)


def make_tuple(elements: Optional[List[Dict]] = None) -> Dict:
  """Create a tuple value; the element list is owned by the tuple"""
  return make_value(list(elements) if elements else [], TUPLE)


def make_closure(unit: Any, env: Dict) -> Dict:
  """Pair a control unit with the environment in effect when it was reached"""
  return {
      'type': CLOSURE,
      'value': unit,
      'env': env
  }


def make_recursive_closure(closure: Dict) -> Dict:
  """Wrap a closure for one step of fixed-point unrolling"""
  return {
      'type': RECURSIVE_CLOSURE,
      'value': closure
  }


def make_builtin_placeholder(name: str) -> Dict:
  """Self-denoting operator pushed for an unbound built-in name"""
  return make_value(name, BUILTIN)


def make_fixed_point() -> Dict:
  return make_value("Y*", FIXED_POINT)


def is_type(value: Dict, type_name: str) -> bool:
  return value.get('type') == type_name


# ============================================================================
# TUPLE OPERATIONS
# ============================================================================

def require_tuple(value: Dict, message: Optional[str] = None) -> List[Dict]:
  if not is_type(value, TUPLE):
    raise RPALNotATuple(message or f"Expected a tuple; was given \"{value_to_text(value)}\"")
  return value['value']


def tuple_select(tup: Dict, n: int) -> Dict:
  """Select the n-th element, counting from 1"""
  elements = require_tuple(tup)
  if n < 1 or n > len(elements):
    raise RPALIndexOutOfBounds(
        f"Tuple selection index {n} out of bounds for tuple of order {len(elements)}")
  return elements[n - 1]


def tuple_order(tup: Dict) -> Dict:
  return make_integer(len(require_tuple(tup)))


def tuple_is_null(tup: Dict) -> Dict:
  return make_boolean(len(require_tuple(tup)) == 0)


def augment(t1: Dict, t2: Dict) -> Dict:
  """Append t2 to t1 in place and return t1 itself

  Every other reference to t1 sees the new element. A tuple operand is
  appended as a single element.
  """
  elements = require_tuple(t1, f"Cannot augment a non-tuple \"{value_to_text(t1)}\"")
  elements.append(t2)
  return t1


# ============================================================================
# TEXTUAL RENDERING
# ============================================================================

def value_to_text(value: Dict) -> str:
  """Render a value the way Print and error messages show it

  Tuples are walked with an explicit stack so nesting depth is not bounded
  by the interpreter's recursion limit. A tuple reached again while it is
  still being rendered (possible after `t aug t`) prints as "(...)".
  """
  pieces: List[str] = []
  open_tuples = set()
  stack: List[Any] = [value]

  while stack:
    item = stack.pop()
    if isinstance(item, str):
      pieces.append(item)
    elif isinstance(item, int):
      open_tuples.discard(item)
    elif item.get('type') == TUPLE and item['value']:
      if id(item) in open_tuples:
        pieces.append("(...)")
        continue
      open_tuples.add(id(item))
      elements = item['value']
      stack.append(id(item))
      stack.append(")")
      for i in range(len(elements) - 1, -1, -1):
        stack.append(elements[i])
        if i:
          stack.append(", ")
      stack.append("(")
    else:
      pieces.append(_scalar_text(item))

  return "".join(pieces)


def _scalar_text(value: Dict) -> str:
  value_type = value.get('type')

  if value_type == INTEGER:
    return str(value['value'])
  elif value_type == STRING:
    return value['value']
  elif value_type == BOOLEAN:
    return "true" if value['value'] else "false"
  elif value_type == DUMMY:
    return "dummy"
  elif value_type == TUPLE:
    return "nil"
  elif value_type == CLOSURE:
    unit = value['value']
    return f"[lambda closure: {', '.join(unit.bound_vars)}: {unit.index}]"
  elif value_type == RECURSIVE_CLOSURE:
    unit = value['value']['value']
    return f"[eta closure: {', '.join(unit.bound_vars)}: {unit.index}]"
  elif value_type in (BUILTIN, FIXED_POINT):
    return value['value']
  return f"<{value_type}>"


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def make_runtime_env(parent: Optional[Dict] = None) -> Dict:
  """Create an environment; the root has no parent and no bindings"""
  return {
      'parent': parent,
      'bindings': {}
  }


def create_child(parent: Dict) -> Dict:
  return make_runtime_env(parent)


def env_bind(env: Dict, name: str, value: Dict) -> None:
  """Install a single binding during activation"""
  env['bindings'][name] = value


def env_bind_positional(env: Dict, names: List[str], tup: Dict) -> None:
  """Destructure a tuple onto names, 1-based, with an exact count"""
  if not is_type(tup, TUPLE):
    raise RPALTypeError(f"Expected a tuple; was given \"{value_to_text(tup)}\"")
  elements = tup['value']
  if len(elements) != len(names):
    raise RPALArityMismatch(
        f"Cannot bind {len(names)} names ({', '.join(names)}) to a tuple of order {len(elements)}")
  for name, value in zip(names, elements):
    env_bind(env, name, value)


def env_lookup_value(env: Optional[Dict], name: str) -> Optional[Dict]:
  """Look up a value in the environment chain"""
  while env is not None:
    if name in env['bindings']:
      return env['bindings'][name]
    env = env['parent']
  return None


def env_depth(env: Dict) -> int:
  depth = 0
  while env['parent'] is not None:
    env = env['parent']
    depth += 1
  return depth


def pop_value(value_stack: List[Dict]) -> Dict:
  if not value_stack:
    raise RPALRuntimeError("Value stack underflow")
  return value_stack.pop()
