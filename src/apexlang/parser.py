"""
Recursive descent parser for apexlang.

Converts a token stream into an Abstract Syntax Tree (AST). Statements are
parsed by recursive descent, expressions by precedence climbing. The first
unexpected token aborts the parse; there is no error recovery.
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, describe_token
from .lexer import tokenize
from .ast import (
    # Expressions
    Expression, Literal, Identifier, BinaryOp, UnaryOp, TupleLiteral,
    IndexAccess, QualifiedName, Call,
    # Statements
    Statement, Binding, ExpressionStatement, Block, UseStatement,
    Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_callee,
    error_nesting_too_deep,
)
from .runtime.values import int_val, string_val, bool_val


class Parser:
    """
    Recursive descent parser for apexlang.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  ||
                 &&
                 == != < <= > >=
                 + -
                 * / %
        Highest: unary (- + !)
                 postfix call and index
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 3,
        TokenType.GT: 3,
        TokenType.LE: 3,
        TokenType.GE: 3,
        TokenType.PLUS: 4,
        TokenType.MINUS: 4,
        TokenType.STAR: 5,
        TokenType.SLASH: 5,
        TokenType.PERCENT: 5,
    }

    UNARY_OPERATORS = (TokenType.MINUS, TokenType.PLUS, TokenType.NOT)

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token stream must end with an EOF token")
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source, for error excerpts
        self.pos = 0
        self._lines: Optional[List[str]] = None

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, token: Token) -> Optional[str]:
        if self.source is None:
            return None
        if self._lines is None:
            self._lines = self.source.splitlines()
        line = token.span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, describe_token(token), token.span,
                                     self._source_line(token))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to current position."""
        # Get the previous token's end position
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    def _expect_terminator(self) -> None:
        """A statement ends with ';', or directly before '}' or end of input."""
        if self._match(TokenType.SEMICOLON):
            return
        if self._check_any(TokenType.RBRACE, TokenType.EOF):
            return
        self._error("';'")

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression."""
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator

            # All binary operators are left-associative
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.lexeme,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (-, +, !)."""
        if self._check_any(*self.UNARY_OPERATORS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.lexeme,
                operand=operand
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse postfix expressions (calls, indexing)."""
        expr = self._parse_primary_expr()

        while True:
            if self._check(TokenType.LPAREN):
                expr = self._parse_call(expr)
            elif self._check(TokenType.LBRACKET):
                self._advance()  # consume '['
                index = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                expr = IndexAccess(
                    span=SourceSpan(expr.span.start, self.tokens[self.pos - 1].span.end),
                    object=expr,
                    index=index
                )
            else:
                break

        return expr

    def _parse_call(self, callee: Expression) -> Call:
        """Parse call arguments for a name or module::symbol callee."""
        if not isinstance(callee, (Identifier, QualifiedName)):
            token = self._current()
            raise error_invalid_callee(
                SourceSpan(callee.span.start, token.span.end),
                self._source_line(token)
            )
        args = self._parse_arguments()
        return Call(
            span=SourceSpan(callee.span.start, self.tokens[self.pos - 1].span.end),
            callee=callee,
            arguments=args
        )

    def _parse_arguments(self) -> List[Expression]:
        """Parse a parenthesised, comma separated argument list."""
        self._consume(TokenType.LPAREN, "'('")

        args = []
        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())

            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                args.append(self._parse_expression())

        self._consume(TokenType.RPAREN, "')' or ','")
        return args

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, names, paths, parentheses)."""
        token = self._current()

        # Literals
        if token.type == TokenType.INT_LITERAL:
            self._advance()
            return Literal(span=token.span, value=int_val(token.value))

        if token.type == TokenType.STRING_LITERAL:
            self._advance()
            return Literal(span=token.span, value=string_val(token.value))

        if token.type == TokenType.BOOL_LITERAL:
            self._advance()
            return Literal(span=token.span, value=bool_val(token.value))

        # Identifiers and module::symbol paths
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.DOUBLE_COLON):
                symbol = self._consume(TokenType.IDENTIFIER, "symbol name after '::'")
                if not self._check(TokenType.LPAREN):
                    self._error(f"'(' to call '{token.value}::{symbol.value}'")
                return QualifiedName(
                    span=self._span_from(token),
                    module=token.value,
                    symbol=symbol.value
                )
            return Identifier(span=token.span, name=token.value)

        # Grouping or tuple
        if token.type == TokenType.LPAREN:
            return self._parse_grouped_or_tuple()

        self._error("expression")

    def _parse_grouped_or_tuple(self) -> Expression:
        """Parse (), (e), (e,) and (e1, e2, ...)."""
        start = self._advance()  # consume '('

        if self._match(TokenType.RPAREN):
            return TupleLiteral(span=self._span_from(start), elements=[])

        first = self._parse_expression()
        if self._match(TokenType.RPAREN):
            # Plain grouping, no tuple
            return first

        self._consume(TokenType.COMMA, "',' or ')'")
        elements = [first]
        while not self._check(TokenType.RPAREN):
            elements.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "',' or ')'")
        return TupleLiteral(span=self._span_from(start), elements=elements)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        if self._check(TokenType.LBRACE):
            return self._parse_block()

        if self._check(TokenType.USE):
            return self._parse_use_statement()

        if self._check(TokenType.LET):
            return self._parse_binding()

        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_binding()

        start = self._current()
        expr = self._parse_expression()
        self._expect_terminator()
        return ExpressionStatement(span=self._span_from(start), expression=expr)

    def _parse_binding(self) -> Binding:
        """Parse [let] name = expr."""
        start = self._current()
        self._match(TokenType.LET)
        name = self._consume(TokenType.IDENTIFIER, "variable name")
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        self._expect_terminator()
        return Binding(span=self._span_from(start), name=name.value, value=value)

    def _parse_use_statement(self) -> UseStatement:
        """Parse use module::symbol [as alias]."""
        start = self._advance()  # consume 'use'
        module = self._consume(TokenType.IDENTIFIER, "module name")
        self._consume(TokenType.DOUBLE_COLON, "'::'")
        symbol = self._consume(TokenType.IDENTIFIER, "symbol name")
        alias = None
        if self._match(TokenType.AS):
            alias = self._consume(TokenType.IDENTIFIER, "alias name").value
        self._expect_terminator()
        return UseStatement(
            span=self._span_from(start),
            module=module.value,
            symbol=symbol.value,
            alias=alias
        )

    def _parse_block(self) -> Block:
        """Parse { statement* } with an optional trailing ';'."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = self._parse_statements(TokenType.RBRACE)
        self._consume(TokenType.RBRACE, "'}'")
        block = Block(span=self._span_from(start), statements=statements)
        self._match(TokenType.SEMICOLON)
        return block

    def _parse_statements(self, terminator: TokenType) -> List[Statement]:
        statements = []
        while not self._check(terminator) and not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue  # stray ';'
            statements.append(self._parse_statement())
        return statements

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        try:
            statements = self._parse_statements(TokenType.EOF)
        except RecursionError:
            raise error_nesting_too_deep(self._current().span) from None
        self._consume(TokenType.EOF, "end of input")
        return Program(span=self._span_from(start), statements=statements)


def parse(tokens: List[Token], filename: Optional[str] = None,
          source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for error excerpts

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()


def parse_source(source: str, filename: Optional[str] = None) -> Program:
    """Tokenize and parse source text in one step."""
    return parse(tokenize(source, filename), filename, source)
