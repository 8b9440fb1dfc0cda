"""
RPAL CSE Machine
Control/Stack/Environment evaluation of flattened control structures
Activations run on an explicit frame stack; Print output is recorded in the
execution context rather than written to stdout
"""

from typing import Any, Dict, List, Optional

from control import (
  BETA,
  BINARY_OP,
  DELTA,
  GAMMA,
  IDENTIFIER,
  LITERAL,
  TAU,
  UNARY_OP,
  YSTAR,
  ControlProgram,
  ControlToken,
  ControlUnit,
  build_control_program,
  literal_to_value
)
from error_handling import (
  RPALDissimilarTypes,
  RPALPrecheckError,
  RPALRuntimeError,
  RPALTypeError,
  RPALUndeclaredIdentifier,
  RPALUnknownOperator,
  RPALUnsupportedComparison
)
from parsing import TreeNode, create_tree_reader
from runtime import (
  BOOLEAN,
  BUILTIN,
  CLOSURE,
  FIXED_POINT,
  INTEGER,
  RECURSIVE_CLOSURE,
  STRING,
  TUPLE,
  augment,
  create_child,
  env_bind,
  env_bind_positional,
  env_depth,
  env_lookup_value,
  make_boolean,
  make_builtin_placeholder,
  make_closure,
  make_fixed_point,
  make_recursive_closure,
  make_runtime_env,
  make_tuple,
  pop_value,
  tuple_select,
  value_to_text
)
from stdlib import get_builtin_function, is_builtin_name
from utilities import (
  INTEGER_OPERATORS,
  LOGICAL_OPERATORS,
  is_truth_value,
  negate,
  operation_error,
  quote_operands,
  type_mismatch_error
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_execution_context(debug: bool = False) -> Dict:
  """Per-run state shared with built-ins"""
  return {
      'debug': debug,
      'output': None,
      'print_count': 0,
      'final_value': None
  }


def make_frame(unit: ControlUnit, env: Dict) -> Dict:
  """One activation; the control stack is a copy so the unit body stays intact"""
  return {
      'unit': unit,
      'env': env,
      'control': list(unit.body)
  }


# ============================================================================
# OPERATORS (Rules 6 and 7)
# ============================================================================

def compare_equality(op: str, rand1: Dict, rand2: Dict) -> Dict:
  """eq / ne on truth values, strings or integers"""
  if is_truth_value(rand1) or is_truth_value(rand2):
    if not (is_truth_value(rand1) and is_truth_value(rand2)):
      raise RPALDissimilarTypes(f"Cannot compare dissimilar types; was given {quote_operands(rand1, rand2)}")
  elif rand1['type'] != rand2['type']:
    raise RPALDissimilarTypes(f"Cannot compare dissimilar types; was given {quote_operands(rand1, rand2)}")
  elif rand1['type'] not in (STRING, INTEGER):
    raise operation_error(op, rand1, rand2, RPALUnsupportedComparison)

  equal = rand1['value'] == rand2['value']
  return make_boolean(equal if op == 'eq' else not equal)


def apply_binary_operation(op: str, value_stack: List[Dict]) -> None:
  rand1 = pop_value(value_stack)
  rand2 = pop_value(value_stack)

  if op in INTEGER_OPERATORS:
    result = INTEGER_OPERATORS[op](rand1, rand2)
  elif op in ('eq', 'ne'):
    result = compare_equality(op, rand1, rand2)
  elif op in LOGICAL_OPERATORS:
    result = LOGICAL_OPERATORS[op](rand1, rand2)
  elif op == 'aug':
    result = augment(rand1, rand2)
  else:
    raise RPALUnknownOperator(f"Unknown binary operator \"{op}\"")

  value_stack.append(result)


def apply_unary_operation(op: str, value_stack: List[Dict]) -> None:
  rand = pop_value(value_stack)

  if op == 'not':
    if not is_truth_value(rand):
      raise type_mismatch_error("not", "a truth value", rand)
    value_stack.append(make_boolean(not rand['value']))
  elif op == 'neg':
    value_stack.append(negate(rand))
  else:
    raise RPALUnknownOperator(f"Unknown unary operator \"{op}\"")


# ============================================================================
# RULES 1, 8, 9
# ============================================================================

def handle_identifier(name: str, env: Dict, value_stack: List[Dict]) -> None:
  value = env_lookup_value(env, name)
  if value is not None:
    value_stack.append(value)
  elif is_builtin_name(name):
    value_stack.append(make_builtin_placeholder(name))
  else:
    raise RPALUndeclaredIdentifier(f"Undeclared identifier \"{name}\"")


def create_tuple(arity: int, value_stack: List[Dict]) -> None:
  """The first value popped becomes element 1"""
  elements = [pop_value(value_stack) for _ in range(arity)]
  value_stack.append(make_tuple(elements))


def handle_beta(token: ControlToken, control: List[ControlToken], value_stack: List[Dict]) -> None:
  condition = pop_value(value_stack)
  if condition['type'] != BOOLEAN:
    raise RPALTypeError(f"Expecting a truth value; found {quote_operands(condition)}")

  then_body, else_body = token.value
  control.extend(then_body if condition['value'] else else_body)


# ============================================================================
# APPLICATION (Rules 3, 4, 10, 11, 12, 13)
# ============================================================================

def activate_closure(closure: Dict, rand: Dict, frames: List[Dict], debug: bool = False) -> None:
  """Bind the operand in a child of the captured environment and push a frame"""
  unit = closure['value']
  env = create_child(closure['env'])

  if unit.arity == 1:
    env_bind(env, unit.bound_vars[0], rand)
  elif unit.arity > 1:
    env_bind_positional(env, list(unit.bound_vars), rand)

  if debug:
    print(f"Activating delta {unit.index} [{', '.join(unit.bound_vars)}] at env depth {env_depth(env)}")

  frames.append(make_frame(unit, env))


def apply_builtin(rator: Dict, rand: Dict, frame: Dict, value_stack: List[Dict], context: Dict) -> None:
  if rator['type'] != BUILTIN:
    raise RPALUnknownOperator(f"Don't know how to evaluate \"{value_to_text(rator)}\"")

  builtin = get_builtin_function(rator['value'])
  if builtin['arity'] == 2:
    # Applied as two chained gammas; consume the second one here
    control = frame['control']
    if not control or control[-1].type != GAMMA:
      raise RPALTypeError(f"{builtin['name']} expects two arguments")
    control.pop()
    rand2 = pop_value(value_stack)
    result = builtin['func'](rand, rand2, context)
  else:
    result = builtin['func'](rand, context)

  value_stack.append(result)


def apply_gamma(token: ControlToken, frame: Dict, frames: List[Dict],
                value_stack: List[Dict], context: Dict) -> None:
  rator = pop_value(value_stack)
  rand = pop_value(value_stack)
  rator_type = rator['type']

  if rator_type == CLOSURE:
    activate_closure(rator, rand, frames, context['debug'])
  elif rator_type == FIXED_POINT:
    if rand['type'] != CLOSURE:
      raise type_mismatch_error("Y*", "a function", rand)
    value_stack.append(make_recursive_closure(rand))
  elif rator_type == RECURSIVE_CLOSURE:
    # Unroll one level: apply the inner closure to the eta, then the result to rand
    value_stack.append(rand)
    value_stack.append(rator)
    value_stack.append(rator['value'])
    frame['control'].append(token)
    frame['control'].append(token)
  elif rator_type == TUPLE:
    if rand['type'] != INTEGER:
      raise RPALTypeError(f"Non-integer tuple selection with {quote_operands(rand)}")
    value_stack.append(tuple_select(rator, rand['value']))
  else:
    apply_builtin(rator, rand, frame, value_stack, context)


# ============================================================================
# DISPATCH
# ============================================================================

def dispatch_token(token: ControlToken, frame: Dict, frames: List[Dict],
                   value_stack: List[Dict], context: Dict) -> None:
  """Execute the rule for one control token"""
  token_type = token.type

  if token_type == BINARY_OP:
    apply_binary_operation(token.value, value_stack)
  elif token_type == UNARY_OP:
    apply_unary_operation(token.value, value_stack)
  elif token_type == IDENTIFIER:
    handle_identifier(token.value, frame['env'], value_stack)
  elif token_type == TAU:
    create_tuple(token.value, value_stack)
  elif token_type == BETA:
    handle_beta(token, frame['control'], value_stack)
  elif token_type == DELTA:
    value_stack.append(make_closure(token.value, frame['env']))
  elif token_type == GAMMA:
    apply_gamma(token, frame, frames, value_stack, context)
  elif token_type == YSTAR:
    value_stack.append(make_fixed_point())
  elif token_type == LITERAL:
    value_stack.append(literal_to_value(token))
  else:
    raise RPALRuntimeError(f"Unknown control token \"{token}\"")


def run_machine(unit: ControlUnit, env: Dict, context: Dict) -> List[Dict]:
  """Run unit under env until every activation has drained its control stack"""
  debug = context['debug']
  value_stack: List[Dict] = []
  frames = [make_frame(unit, env)]

  while frames:
    frame = frames[-1]
    control = frame['control']
    if not control:
      frames.pop()
      if debug:
        print(f"Finished delta {frame['unit'].index}")
      continue

    token = control.pop()
    if debug:
      print(f"Dispatching: {token} (delta {frame['unit'].index}, values {len(value_stack)})")

    try:
      dispatch_token(token, frame, frames, value_stack, context)
    except RPALRuntimeError as e:
      if e.line is None:
        e.line = token.line
      raise

  return value_stack


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(program: ControlProgram, context: Optional[Dict] = None) -> Dict:
  """
  Evaluate a control program under a fresh primitive environment.
  Returns the execution context holding the recorded output.
  """
  if context is None:
    context = make_execution_context()

  if not program.standardized:
    raise RPALPrecheckError("Control program has NOT been standardized")

  root_env = make_runtime_env()
  value_stack = run_machine(program.root, root_env, context)
  context['final_value'] = value_stack[-1] if value_stack else None
  return context


def evaluate_program(program: ControlProgram, debug: bool = False) -> Optional[str]:
  """Output of the last Print, or None if nothing was printed"""
  return eval_program(program, make_execution_context(debug))['output']


class CSEMachine:
  """Driver over reader, flattener and dispatcher"""

  def __init__(self, debug: bool = False):
    self.debug = debug
    self.reader = create_tree_reader(debug)
    self.last_context: Optional[Dict] = None

  def evaluate(self, program: ControlProgram) -> Optional[str]:
    """Run a control program and return its output"""
    self.last_context = make_execution_context(self.debug)
    return eval_program(program, self.last_context)['output']

  def evaluate_value(self, program: ControlProgram) -> Optional[Dict]:
    """Run a control program and return the value left on the stack"""
    self.last_context = make_execution_context(self.debug)
    return eval_program(program, self.last_context)['final_value']

  def evaluate_tree(self, tree: TreeNode) -> Optional[str]:
    return self.evaluate(build_control_program(tree))

  def run_standardized_tree(self, text: str) -> Optional[str]:
    """Read a standardized tree dump, flatten it and evaluate it"""
    return self.evaluate_tree(self.reader.read_string(text))

  def evaluate_with_report(self, program: ControlProgram) -> Dict[str, Any]:
    """Run a program and report either its output or its first error"""
    try:
      return {'output': self.evaluate(program), 'error': None}
    except RPALRuntimeError as e:
      return {'output': None, 'error': e.to_dict()}


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_machine(debug: bool = False) -> CSEMachine:
  """Create a CSE machine"""
  return CSEMachine(debug=debug)


def create_debug_machine() -> CSEMachine:
  """Create a CSE machine that traces every dispatched token"""
  return CSEMachine(debug=True)


def run_standardized_tree(text: str, debug: bool = False) -> Optional[str]:
  """Evaluate a standardized tree dump and return the Print output"""
  return create_machine(debug).run_standardized_tree(text)
