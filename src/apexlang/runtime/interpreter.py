"""
Tree-walking interpreter for apexlang.

Evaluates AST nodes to Values. Native calls are dispatched through a
NativeRegistry; every failure surfaces as an ApexError.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .values import (
    Value, ValueKind, UNIT,
    int_val, bool_val, tuple_val, values_equal, format_integer,
)
from .context import Environment
from .natives import NativeCallable, NativeRegistry, get_default_registry

from ..ast import (
    AstNode, Program,
    Statement, Binding, ExpressionStatement, Block, UseStatement,
    Expression, Literal, Identifier, BinaryOp, UnaryOp, TupleLiteral,
    IndexAccess, QualifiedName, Call,
)
from ..config import ApexConfig
from ..errors import (
    ApexError,
    error_invalid_callee,
    error_undefined_identifier,
    error_operand_mismatch,
    error_division_by_zero,
    error_index_out_of_range,
    error_not_callable,
    error_not_a_value,
    error_unknown_module,
    error_unknown_symbol,
    error_depth_exceeded,
)
from ..tokens import SourceSpan

logger = logging.getLogger(__name__)

ARITHMETIC_OPERATORS = {"+", "-", "*", "/", "%"}
ORDERING_OPERATORS = {"<", "<=", ">", ">="}
EQUALITY_OPERATORS = {"==", "!="}
LOGICAL_OPERATORS = {"&&", "||"}


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    value: Optional[Value] = None
    error: Optional[ApexError] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error)


class Interpreter:
    """
    Tree-walking interpreter for apexlang.

    Evaluates AST nodes by dispatching to type-specific methods. An
    interpreter can be reused; every program run gets a fresh Environment.
    """

    def __init__(self, registry: Optional[NativeRegistry] = None,
                 config: Optional[ApexConfig] = None):
        """
        Initialize the interpreter.

        Args:
            registry: Native modules available to programs (default: the
                process-wide standard registry)
            config: Interpreter settings (default: ApexConfig())
        """
        self.registry = registry if registry is not None else get_default_registry()
        self.config = config if config is not None else ApexConfig()
        self._depth = 0
        self._source_lines: List[str] = []

    # =========================================================================
    # Entry points
    # =========================================================================

    def evaluate_program(self, program: Program, source: Optional[str] = None) -> Value:
        """
        Run a program against a fresh environment.

        Returns:
            The value of the final statement, or () for an empty program
        """
        self._source_lines = source.splitlines() if source else []
        env = Environment()
        logger.debug("evaluating program with %d statement(s)", len(program.statements))
        result = self._run(lambda: self._execute_statements(program.statements, env), program)
        logger.debug("program finished with %s", result)
        return result

    def evaluate_expression(self, expr: Expression,
                            environment: Optional[Environment] = None,
                            source: Optional[str] = None) -> Value:
        """Evaluate a single expression, for embedding hosts."""
        self._source_lines = source.splitlines() if source else []
        env = environment if environment is not None else Environment()
        return self._run(lambda: self._evaluate(expr, env), expr)

    def _run(self, thunk, node: AstNode) -> Value:
        self._depth = 0
        try:
            return thunk()
        except RecursionError:
            raise error_depth_exceeded(self.config.max_depth, node.span) from None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        if span is None:
            return None
        line = span.start.line
        if 1 <= line <= len(self._source_lines):
            return self._source_lines[line - 1]
        return None

    def _enter(self, node: AstNode) -> None:
        self._depth += 1
        if self._depth > self.config.max_depth:
            raise error_depth_exceeded(self.config.max_depth, node.span,
                                       self._source_line(node.span))

    def _leave(self) -> None:
        self._depth -= 1

    def _resolve_native(self, module: str, symbol: str, node: AstNode) -> NativeCallable:
        """Find `module::symbol` in the registry or raise a DispatchError."""
        if self.registry.get_module(module) is None:
            raise error_unknown_module(module, symbol, node.span, self._source_line(node.span))
        callable_ = self.registry.get_callable(module, symbol)
        if callable_ is None:
            raise error_unknown_symbol(module, symbol, node.span, self._source_line(node.span))
        return callable_

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statements(self, statements: List[Statement], env: Environment) -> Value:
        result = UNIT
        for stmt in statements:
            result = self._execute_statement(stmt, env)
        return result

    def _execute_statement(self, stmt: Statement, env: Environment) -> Value:
        """Execute a statement and return its value."""
        if isinstance(stmt, ExpressionStatement):
            return self._evaluate(stmt.expression, env)
        elif isinstance(stmt, Binding):
            return self._execute_binding(stmt, env)
        elif isinstance(stmt, Block):
            return self._execute_block(stmt, env)
        elif isinstance(stmt, UseStatement):
            return self._execute_use(stmt, env)
        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_binding(self, stmt: Binding, env: Environment) -> Value:
        value = self._evaluate(stmt.value, env)
        env.set_variable(stmt.name, value)
        return UNIT

    def _execute_block(self, block: Block, env: Environment) -> Value:
        self._enter(block)
        try:
            with env.new_scope():
                return self._execute_statements(block.statements, env)
        finally:
            self._leave()

    def _execute_use(self, stmt: UseStatement, env: Environment) -> Value:
        callable_ = self._resolve_native(stmt.module, stmt.symbol, stmt)
        env.set_alias(stmt.bound_name, callable_)
        return UNIT

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, env: Environment) -> Value:
        """Evaluate an expression to a value."""
        self._enter(expr)
        try:
            if isinstance(expr, Literal):
                return expr.value
            elif isinstance(expr, Identifier):
                return self._eval_identifier(expr, env)
            elif isinstance(expr, BinaryOp):
                return self._eval_binary_op(expr, env)
            elif isinstance(expr, UnaryOp):
                return self._eval_unary_op(expr, env)
            elif isinstance(expr, TupleLiteral):
                return tuple_val([self._evaluate(e, env) for e in expr.elements])
            elif isinstance(expr, IndexAccess):
                return self._eval_index_access(expr, env)
            elif isinstance(expr, Call):
                return self._eval_call(expr, env)
            elif isinstance(expr, QualifiedName):
                raise error_invalid_callee(expr.span, self._source_line(expr.span))
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")
        finally:
            self._leave()

    def _eval_identifier(self, ident: Identifier, env: Environment) -> Value:
        found = env.lookup(ident.name)
        if found is None:
            raise error_undefined_identifier(ident.name, ident.span, self._source_line(ident.span))
        if isinstance(found, NativeCallable):
            raise error_not_a_value(ident.name, found.name, ident.span,
                                    self._source_line(ident.span))
        return found

    def _mismatch(self, op: str, expected: str, actual: str, node: AstNode):
        return error_operand_mismatch(op, expected, actual, node.span,
                                      self._source_line(node.span))

    def _eval_binary_op(self, op: BinaryOp, env: Environment) -> Value:
        # Walk the left spine so `a + b + ... + z` folds in a loop instead of
        # nesting one evaluation level per operator.
        spine = [op]
        while isinstance(spine[-1].left, BinaryOp):
            spine.append(spine[-1].left)
        result = self._evaluate(spine[-1].left, env)
        for node in reversed(spine):
            result = self._apply_binary(node, result, env)
        return result

    def _apply_binary(self, op: BinaryOp, left: Value, env: Environment) -> Value:
        """Combine an evaluated left operand with `op`'s right operand."""
        operator = op.operator

        # Short-circuit evaluation for logical operators
        if operator in LOGICAL_OPERATORS:
            if left.kind != ValueKind.BOOLEAN:
                raise self._mismatch(operator, "Boolean operands", left.kind_name, op)
            if operator == "&&" and not left.data:
                return left
            if operator == "||" and left.data:
                return left
            right = self._evaluate(op.right, env)
            if right.kind != ValueKind.BOOLEAN:
                raise self._mismatch(operator, "Boolean operands", right.kind_name, op)
            return right

        right = self._evaluate(op.right, env)

        if operator in EQUALITY_OPERATORS:
            equal = values_equal(left, right)
            return bool_val(equal if operator == "==" else not equal)

        if operator in ORDERING_OPERATORS:
            if left.kind != right.kind or left.kind not in (ValueKind.INTEGER, ValueKind.STRING):
                raise self._mismatch(
                    operator, "two Integers or two Strings",
                    f"{left.kind_name} and {right.kind_name}", op
                )
            a, b = left.data, right.data
            if operator == "<":
                return bool_val(a < b)
            elif operator == "<=":
                return bool_val(a <= b)
            elif operator == ">":
                return bool_val(a > b)
            return bool_val(a >= b)

        if operator in ARITHMETIC_OPERATORS:
            if left.kind != ValueKind.INTEGER or right.kind != ValueKind.INTEGER:
                raise self._mismatch(
                    operator, "Integer operands", f"{left.kind_name} and {right.kind_name}", op
                )
            a, b = left.data, right.data
            if operator == "+":
                return int_val(a + b)
            elif operator == "-":
                return int_val(a - b)
            elif operator == "*":
                return int_val(a * b)
            if b == 0:
                raise error_division_by_zero(operator, op.span, self._source_line(op.span))
            quotient = truncated_div(a, b)
            if operator == "/":
                return int_val(quotient)
            return int_val(a - b * quotient)

        raise TypeError(f"Unknown binary operator: {operator}")

    def _eval_unary_op(self, op: UnaryOp, env: Environment) -> Value:
        operand = self._evaluate(op.operand, env)

        if op.operator == "!":
            if operand.kind != ValueKind.BOOLEAN:
                raise self._mismatch("!", "a Boolean operand", operand.kind_name, op)
            return bool_val(not operand.data)

        if operand.kind != ValueKind.INTEGER:
            raise self._mismatch(op.operator, "an Integer operand", operand.kind_name, op)
        if op.operator == "-":
            return int_val(-operand.data)
        return operand

    def _eval_index_access(self, access: IndexAccess, env: Environment) -> Value:
        obj = self._evaluate(access.object, env)
        index = self._evaluate(access.index, env)

        if obj.kind != ValueKind.TUPLE:
            raise self._mismatch("[]", "a Tuple to index", obj.kind_name, access)
        if index.kind != ValueKind.INTEGER:
            raise self._mismatch("[]", "an Integer index", index.kind_name, access)
        i = index.data
        if i < 0 or i >= len(obj.data):
            raise error_index_out_of_range(format_integer(i), len(obj.data), access.span,
                                           self._source_line(access.span))
        return obj.data[i]

    def _eval_call(self, call: Call, env: Environment) -> Value:
        # Resolve the callee before any argument is evaluated
        callee = call.callee
        if isinstance(callee, QualifiedName):
            native = self._resolve_native(callee.module, callee.symbol, callee)
        elif isinstance(callee, Identifier):
            found = env.lookup(callee.name)
            if found is None:
                raise error_undefined_identifier(callee.name, callee.span,
                                                 self._source_line(callee.span))
            if not isinstance(found, NativeCallable):
                raise error_not_callable(callee.name, found.kind_name, callee.span,
                                         self._source_line(callee.span))
            native = found
        else:
            raise error_invalid_callee(callee.span, self._source_line(callee.span))

        args = [self._evaluate(arg, env) for arg in call.arguments]
        return native.invoke(args)


def truncated_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def evaluate_source(source: str, registry: Optional[NativeRegistry] = None,
                    config: Optional[ApexConfig] = None,
                    filename: Optional[str] = None) -> Value:
    """
    Lex, parse and evaluate source text in one call.

        from apexlang import evaluate_source

        value = evaluate_source('let x = 2; x * 21')   # Value(Integer, 42)

    Args:
        source: Program text
        registry: Native modules (default: the process-wide standard registry)
        config: Interpreter settings
        filename: Optional filename for error messages

    Returns:
        The program's final value

    Raises:
        ApexError: The first lexer, parser or evaluation error
    """
    from ..parser import parse_source

    program = parse_source(source, filename)
    return Interpreter(registry, config).evaluate_program(program, source)


def run_source(source: str, registry: Optional[NativeRegistry] = None,
               config: Optional[ApexConfig] = None,
               filename: Optional[str] = None) -> ExecutionResult:
    """
    Like evaluate_source(), but report failure in the result object.

        result = run_source('os::cwd()')
        if result.success:
            print(result.value)
        else:
            print(result.error_message)
    """
    try:
        value = evaluate_source(source, registry, config, filename)
    except ApexError as e:
        return ExecutionResult(success=False, error=e)
    return ExecutionResult(success=True, value=value)
