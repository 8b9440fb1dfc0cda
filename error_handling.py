"""
Error handling for the RPAL CSE machine with detailed error messages
Error data is built as plain dictionaries; exception classes wrap them
"""

from typing import List, Optional, Dict
from pyparsing import ParseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = f"Parse error at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    return error_msg


def make_runtime_error(kind: str, message: str, line: Optional[int] = None) -> Dict:
    """Create an immutable runtime error structure"""
    return {
        'kind': kind,
        'message': message,
        'line': line
    }


def format_runtime_error(error: Dict) -> str:
    """Format runtime error as string, in the `Error :<line>: <message>` shape"""
    if error['line'] is None:
        return f"Error : {error['kind']}: {error['message']}"
    return f"Error :{error['line']}: {error['kind']}: {error['message']}"


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * max(col_num - 1, 0)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseException) -> List[str]:
    """Extract expected tokens from exception"""
    msg = str(exc)
    expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(|$)", msg)
    if expected_match:
        return [expected_match.group(1)]
    return ["a standardized tree node"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if 0 < line_num <= len(lines):
        error_line = lines[line_num - 1]
        start = max(0, col_num - 1)
        got_text = error_line[start:start + 12].strip()
        if got_text:
            return f"'{got_text}'"
        return "end of line"
    return "unknown"


def enhance_parse_exception_dict(exc: ParseException, source_text: str, line_num: Optional[int] = None) -> Dict:
    """Convert pyparsing exception to an enhanced error dict

    The tree reader parses one dump line at a time, so the caller passes
    the dump line number; pyparsing's own line number is then always 1.
    """
    if line_num is None:
        line_num = exc.lineno
        col_num = exc.column
    else:
        # The reader parses the stripped line; shift back to the source column
        source_line = source_text.split('\n')[line_num - 1]
        col_num = exc.column + len(source_line) - len(source_line.lstrip())

    return make_parse_error(
        message=str(exc),
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=extract_expected(exc),
        got=extract_got(source_text, line_num, col_num),
        context=get_context_lines(source_text, line_num, col_num)
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class RPALParseError(Exception):
    """Malformed standardized-tree dump"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context
        )
        return format_parse_error(error_dict)


class RPALRuntimeError(Exception):
    """Base class for every failure raised while evaluating a program"""
    kind = "RuntimeError"

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(message)

    def to_dict(self) -> Dict:
        return make_runtime_error(self.kind, self.message, self.line)

    def __str__(self) -> str:
        return format_runtime_error(self.to_dict())


class RPALUndeclaredIdentifier(RPALRuntimeError):
    kind = "UndeclaredIdentifier"


class RPALTypeError(RPALRuntimeError):
    kind = "TypeError"


class RPALDissimilarTypes(RPALRuntimeError):
    kind = "DissimilarTypes"


class RPALUnsupportedOperands(RPALRuntimeError):
    kind = "UnsupportedOperands"


class RPALUnsupportedComparison(RPALUnsupportedOperands):
    kind = "UnsupportedComparison"


class RPALArithmeticError(RPALRuntimeError):
    kind = "ArithmeticError"


class RPALNotATuple(RPALRuntimeError):
    kind = "NotATuple"


class RPALIndexOutOfBounds(RPALRuntimeError):
    kind = "IndexOutOfBounds"


class RPALArityMismatch(RPALRuntimeError):
    kind = "ArityMismatch"


class RPALUnknownOperator(RPALRuntimeError):
    kind = "UnknownOperator"


class RPALPrecheckError(RPALRuntimeError):
    """Input has not been standardized"""
    kind = "PrecheckError"


class RPALErrorHandler:
    """Wraps pyparsing failures for one dump text"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def enhance_parse_exception(self, exc: ParseException, line_num: Optional[int] = None) -> RPALParseError:
        """Convert pyparsing exception to an enhanced RPAL parse error"""
        error_dict = enhance_parse_exception_dict(exc, self.source_text, line_num)
        return RPALParseError(
            message=error_dict['message'],
            location=error_dict['location'],
            line=error_dict['line'],
            column=error_dict['column'],
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context']
        )
