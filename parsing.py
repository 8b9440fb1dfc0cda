"""
Standardized tree reader
Reads the dotted-indent dump of a standardized RPAL tree (one node per line,
depth given by leading dots) into TreeNode objects
"""

from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

# Import pyparsing with error handling
try:
    from pyparsing import (
        Literal, Regex, ParseException, ParserElement, MatchFirst, Optional as PyParsingOptional
    )
    # Enable packrat parsing for performance
    ParserElement.enablePackrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import RPALErrorHandler, RPALParseError


@dataclass(frozen=True)
class TreeNode:
    """Standardized tree node; `line` is the node's line in the dump"""
    type: str
    value: Any = None
    children: List['TreeNode'] = field(default_factory=list)
    line: int = 0

    def __str__(self) -> str:
        label = self.type if self.value is None else f"{self.type}:{self.value}"
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{label}([{children_str}])"
        return label


class StandardizedTreeGrammar:
    """Grammar for a single dump line using pyparsing"""

    # Leaves written as <name> with no payload
    BRACKETED_LEAVES = ['true', 'false', 'nil', 'dummy', 'Y*', '()']

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the line grammar: dots, then one node label"""
        depth = PyParsingOptional(Regex(r'\.+'), default='').setParseAction(
            lambda t: len(t[0])
        )

        identifier = Regex(r'<ID:(?P<name>[^>]+)>').setParseAction(
            lambda t: ("ID", t['name'])
        )
        integer = Regex(r'<INT:(?P<digits>-?\d+)>').setParseAction(
            lambda t: ("INT", int(t['digits']))
        )
        # Greedy so that quotes and '>' inside the text survive
        string = Regex(r"<STR:'(?P<text>.*)'>").setParseAction(
            lambda t: ("STR", t['text'])
        )
        bracketed = MatchFirst([
            Literal(f"<{name}>").setParseAction(self._leaf_action(name))
            for name in self.BRACKETED_LEAVES
        ])
        bare_empty = Literal("()").setParseAction(self._leaf_action("()"))

        # Longest symbols first so '->' and '**' win over '-' and '*'
        operator = Regex(
            r'->|\*\*|<=|>=|Y\*|[A-Za-z_][A-Za-z_0-9]*|[-+*/<>&@=,]'
        ).setParseAction(lambda t: (t[0], None))

        label = identifier | integer | string | bracketed | bare_empty | operator

        self.depth = depth
        self.label = label
        self.line = depth + label

    @staticmethod
    def _leaf_action(name: str):
        return lambda t: (name, None)

    def parse_line(self, text: str) -> Tuple[int, Tuple[str, Any]]:
        """Parse one dump line into (depth, (type, value))"""
        result = self.line.parseString(text, parseAll=True)
        return result[0], result[1]


class StandardizedTreeReader:
    """Builds a TreeNode hierarchy from a whole dump"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = StandardizedTreeGrammar(debug)

    def read_file(self, filepath: str) -> TreeNode:
        """Read a standardized tree dump from a file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise RPALParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise RPALParseError(f"Cannot decode file {filepath}: {e}")
        return self.read_string(content, filepath)

    def read_string(self, text: str, filename: str = "<input>") -> TreeNode:
        """Read a standardized tree from its dump text"""
        error_handler = RPALErrorHandler(text, filename)
        stack: List[Tuple[int, TreeNode]] = []
        root: Optional[TreeNode] = None

        for line_num, raw_line in enumerate(text.split('\n'), 1):
            line = raw_line.strip()
            if not line:
                continue

            try:
                depth, (node_type, value) = self.grammar.parse_line(line)
            except ParseException as e:
                raise error_handler.enhance_parse_exception(e, line_num) from e

            node = TreeNode(node_type, value, [], line_num)
            if self.debug:
                print(f"Read line {line_num}: depth={depth} node={node.type} value={node.value!r}")

            if root is None:
                if depth != 0:
                    raise RPALParseError(f"Root node must have depth 0, got {depth}", line=line_num)
                root = node
                stack.append((0, node))
                continue

            if depth == 0:
                raise RPALParseError("Tree dump has more than one root", line=line_num)

            while stack and stack[-1][0] >= depth:
                stack.pop()
            parent_depth, parent = stack[-1]
            if depth != parent_depth + 1:
                raise RPALParseError(
                    f"Node at depth {depth} has no parent at depth {depth - 1}", line=line_num)

            parent.children.append(node)
            stack.append((depth, node))

        if root is None:
            raise RPALParseError("Empty tree dump")
        return root


# Factory functions for creating readers
def create_tree_reader(debug: bool = False) -> StandardizedTreeReader:
    """Create a standardized tree reader"""
    return StandardizedTreeReader(debug=debug)


def create_debug_tree_reader() -> StandardizedTreeReader:
    """Create a standardized tree reader with debug enabled"""
    return StandardizedTreeReader(debug=True)


# Utility functions for working with trees
def find_nodes_by_type(tree: TreeNode, node_type: str) -> List[TreeNode]:
    """Find all nodes of a specific type in a tree"""
    result = []

    def search(node: TreeNode):
        if node.type == node_type:
            result.append(node)
        for child in node.children:
            search(child)

    search(tree)
    return result


def format_node_label(node: TreeNode) -> str:
    if node.type == 'ID':
        return f"<ID:{node.value}>"
    if node.type == 'INT':
        return f"<INT:{node.value}>"
    if node.type == 'STR':
        return f"<STR:'{node.value}'>"
    if node.type in StandardizedTreeGrammar.BRACKETED_LEAVES:
        return f"<{node.type}>"
    return node.type


def pretty_print_tree(tree: TreeNode, depth: int = 0) -> str:
    """Render a tree in dump form"""
    result = "." * depth + format_node_label(tree) + "\n"
    for child in tree.children:
        result += pretty_print_tree(child, depth + 1)
    return result


def tree_to_dict(tree: TreeNode) -> Dict[str, Any]:
    """Convert a tree to dictionary representation"""
    return {
        "type": tree.type,
        "value": tree.value,
        "line": tree.line,
        "children": [tree_to_dict(child) for child in tree.children]
    }
