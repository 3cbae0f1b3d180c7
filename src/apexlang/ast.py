"""
Abstract Syntax Tree (AST) node definitions for apexlang.

The AST represents the structure of a parsed program, which the
interpreter evaluates and the visualizer renders.

Every node carries the span it was parsed from and exposes a small read
contract used by tree walkers:
- kind: the node class name
- children(): child nodes in source order
- accept(visitor): visitor dispatch to visit_<ClassName>
"""

from dataclasses import dataclass, field, fields
from typing import Optional, List, Union, Any, Iterator
from abc import ABC
from .tokens import SourceSpan
from .runtime.values import Value, format_value


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def children(self) -> List["AstNode"]:
        """Child nodes in source order."""
        return list(_iter_child_nodes(self))


def _iter_child_nodes(node: AstNode) -> Iterator[AstNode]:
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, AstNode):
                    yield item


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal Integer, String or Boolean value."""
    value: Value


@dataclass
class Identifier(Expression):
    """A reference to a bound name."""
    name: str


@dataclass
class UnaryOp(Expression):
    """A prefix operation (e.g., -n, !flag)."""
    operator: str  # '-', '+' or '!'
    operand: Expression


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: str  # operator text, e.g. '+', '<=', '&&'
    right: Expression


@dataclass
class TupleLiteral(Expression):
    """A tuple constructor: (), (a,), (a, b, ...)."""
    elements: List[Expression] = field(default_factory=list)


@dataclass
class IndexAccess(Expression):
    """Tuple index access (e.g., pair[0])."""
    object: Expression
    index: Expression


@dataclass
class QualifiedName(Expression):
    """A native function path, module::symbol. Only valid as a call target."""
    module: str
    symbol: str

    @property
    def path(self) -> str:
        return f"{self.module}::{self.symbol}"


@dataclass
class Call(Expression):
    """A call of a native function (e.g., os::cwd(), emit("x"))."""
    callee: Union[QualifiedName, Identifier]
    arguments: List[Expression] = field(default_factory=list)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Binding(Statement):
    """Bind a name in the innermost scope (e.g., let x = 1;)."""
    name: str
    value: Expression


@dataclass
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


@dataclass
class Block(Statement):
    """A braced sequence of statements with its own scope."""
    statements: List[Statement] = field(default_factory=list)


@dataclass
class UseStatement(Statement):
    """Bring a native function into scope under a bare name.

    Syntax:
        use module::symbol;
        use module::symbol as alias;
    """
    module: str
    symbol: str
    alias: Optional[str] = None

    @property
    def bound_name(self) -> str:
        return self.alias if self.alias is not None else self.symbol


@dataclass
class Program(AstNode):
    """A complete parsed source unit."""
    statements: List[Statement] = field(default_factory=list)


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented lines."""

    def __init__(self, indent: int = 0, lines: Optional[List[str]] = None):
        self.indent = indent
        self.lines = lines if lines is not None else []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def generic_visit(self, node: AstNode) -> List[str]:
        self._emit(f"{node.__class__.__name__}")
        for f in fields(node):
            if f.name == "span":
                continue
            value = getattr(node, f.name)
            if isinstance(value, AstNode):
                self._emit(f"  {f.name}:")
                PrintVisitor(self.indent + 2, self.lines).generic_visit(value)
            elif isinstance(value, list):
                self._emit(f"  {f.name}: [")
                for item in value:
                    PrintVisitor(self.indent + 2, self.lines).generic_visit(item)
                self._emit("  ]")
            elif isinstance(value, Value):
                self._emit(f"  {f.name}: {format_value(value)}")
            else:
                self._emit(f"  {f.name}: {value!r}")
        return self.lines


def format_ast(node: AstNode) -> str:
    """Render an AST node as an indented tree."""
    return "\n".join(PrintVisitor().generic_visit(node))


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
