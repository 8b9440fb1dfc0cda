"""
RPAL Standard Library
Built-in functions reached through the apply rule
Each built-in takes its operand value(s) and the execution context
"""

from typing import Dict, Callable, List

from error_handling import RPALTypeError, RPALUnknownOperator
from runtime import (
  BOOLEAN,
  CLOSURE,
  DUMMY,
  INTEGER,
  STRING,
  TUPLE,
  make_boolean,
  make_dummy,
  make_string,
  tuple_is_null,
  tuple_order,
  value_to_text
)
from utilities import (
  describe_kind,
  negate,
  quote_operands,
  require_kind,
  unescape_print_text
)


# ============================================================================
# TYPE PREDICATES
# ============================================================================

def type_predicate(type_name: str) -> Callable[[Dict, Dict], Dict]:
  """Build an Is<kind> predicate"""
  def predicate(rand: Dict, context: Dict) -> Dict:
    return make_boolean(rand.get('type') == type_name)
  return predicate


rpal_isinteger = type_predicate(INTEGER)
rpal_isstring = type_predicate(STRING)
rpal_isdummy = type_predicate(DUMMY)
rpal_istuple = type_predicate(TUPLE)
rpal_istruthvalue = type_predicate(BOOLEAN)
# A RecursiveClosure is callable but is not reported as a function
rpal_isfunction = type_predicate(CLOSURE)


# ============================================================================
# STRING FUNCTIONS
# ============================================================================

def rpal_stem(rand: Dict, context: Dict) -> Dict:
  """First character of a string, or '' for the empty string"""
  text = require_kind("Stem", rand, STRING, describe_kind(STRING))
  return make_string(text[:1])


def rpal_stern(rand: Dict, context: Dict) -> Dict:
  """All but the first character of a string"""
  text = require_kind("Stern", rand, STRING, describe_kind(STRING))
  return make_string(text[1:])


def rpal_conc(rand1: Dict, rand2: Dict, context: Dict) -> Dict:
  """Concatenate in pop order"""
  if rand1.get('type') != STRING or rand2.get('type') != STRING:
    raise RPALTypeError(f"Conc: expected two strings; was given {quote_operands(rand1, rand2)}")
  return make_string(rand1['value'] + rand2['value'])


def rpal_itos(rand: Dict, context: Dict) -> Dict:
  """Integer to its decimal string"""
  n = require_kind("ItoS", rand, INTEGER, describe_kind(INTEGER))
  return make_string(str(n))


# ============================================================================
# TUPLE FUNCTIONS
# ============================================================================

def rpal_order(rand: Dict, context: Dict) -> Dict:
  """Number of elements in a tuple"""
  require_kind("Order", rand, TUPLE, describe_kind(TUPLE))
  return tuple_order(rand)


def rpal_null(rand: Dict, context: Dict) -> Dict:
  """True for the empty tuple"""
  require_kind("Null", rand, TUPLE, describe_kind(TUPLE))
  return tuple_is_null(rand)


# ============================================================================
# ARITHMETIC
# ============================================================================

def rpal_neg(rand: Dict, context: Dict) -> Dict:
  return negate(rand)


# ============================================================================
# OUTPUT
# ============================================================================

def rpal_print(rand: Dict, context: Dict) -> Dict:
  """Record the value as the program's output; the last call wins"""
  text = unescape_print_text(value_to_text(rand))
  context['output'] = text
  context['print_count'] = context.get('print_count', 0) + 1
  if context.get('debug'):
    print(f"Print recorded: {text!r}")
  return make_dummy()


# ============================================================================
# BUILT-IN FUNCTION REGISTRY
# ============================================================================

def make_builtin_function(name: str, func: Callable, arity: int = 1, type_signature: str = "") -> Dict:
  """Create a built-in function entry"""
  return {
      'type': 'builtin_function',
      'name': name,
      'func': func,
      'arity': arity,
      'type_signature': type_signature
  }


BUILTIN_FUNCTIONS: Dict[str, Dict] = {
    # Type predicates
    "Isinteger": make_builtin_function("Isinteger", rpal_isinteger, 1, "a -> Bool"),
    "Isstring": make_builtin_function("Isstring", rpal_isstring, 1, "a -> Bool"),
    "Isdummy": make_builtin_function("Isdummy", rpal_isdummy, 1, "a -> Bool"),
    "Istuple": make_builtin_function("Istuple", rpal_istuple, 1, "a -> Bool"),
    "Istruthvalue": make_builtin_function("Istruthvalue", rpal_istruthvalue, 1, "a -> Bool"),
    "Isfunction": make_builtin_function("Isfunction", rpal_isfunction, 1, "a -> Bool"),

    # String functions
    "Stem": make_builtin_function("Stem", rpal_stem, 1, "String -> String"),
    "Stern": make_builtin_function("Stern", rpal_stern, 1, "String -> String"),
    "Conc": make_builtin_function("Conc", rpal_conc, 2, "String -> String -> String"),
    "conc": make_builtin_function("conc", rpal_conc, 2, "String -> String -> String"),
    "ItoS": make_builtin_function("ItoS", rpal_itos, 1, "Integer -> String"),

    # Tuple functions
    "Order": make_builtin_function("Order", rpal_order, 1, "Tuple -> Integer"),
    "Null": make_builtin_function("Null", rpal_null, 1, "Tuple -> Bool"),

    # Arithmetic
    "neg": make_builtin_function("neg", rpal_neg, 1, "Integer -> Integer"),

    # Output
    "Print": make_builtin_function("Print", rpal_print, 1, "a -> Dummy"),
    "print": make_builtin_function("print", rpal_print, 1, "a -> Dummy"),
}


def is_builtin_name(name: str) -> bool:
  return name in BUILTIN_FUNCTIONS


def get_builtin_function(name: str) -> Dict:
  """Get a built-in function by name"""
  if name in BUILTIN_FUNCTIONS:
    return BUILTIN_FUNCTIONS[name]
  else:
    raise RPALUnknownOperator(f"Don't know how to evaluate \"{name}\"")


def list_builtin_functions() -> List[str]:
  """List all available built-in functions"""
  return list(BUILTIN_FUNCTIONS.keys())
