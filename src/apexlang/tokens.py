"""
Token types for the apexlang lexer.

Error code ranges used across the package:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Name resolution errors
- E3xx: Evaluation errors
- E4xx: Native dispatch errors
- E5xx: Resource errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenCategory(Enum):
    """Coarse token classification."""
    NUMBER = "number"
    STRING = "string"
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    EOF = "end-of-input"


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42, 0xff, 0b1010, 1_000
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    LET = auto()                # let
    USE = auto()                # use
    AS = auto()                 # as

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    NOT = auto()                # !

    # --- Assignment / paths ---
    ASSIGN = auto()             # =
    DOUBLE_COLON = auto()       # ::

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;

    # --- Special ---
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Decoded payload (int, str, bool) or the operator text
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def category(self) -> TokenCategory:
        return TOKEN_CATEGORIES[self.type]

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.BOOL_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "use": TokenType.USE,
    "as": TokenType.AS,
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
}


OPERATOR_TYPES = {
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
    TokenType.PERCENT, TokenType.LT, TokenType.GT, TokenType.LE,
    TokenType.GE, TokenType.EQ, TokenType.NE, TokenType.AND, TokenType.OR,
    TokenType.NOT, TokenType.ASSIGN, TokenType.DOUBLE_COLON,
}

PUNCTUATION_TYPES = {
    TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE, TokenType.RBRACE,
    TokenType.LBRACKET, TokenType.RBRACKET, TokenType.COMMA,
    TokenType.SEMICOLON,
}


def _categorize(token_type: TokenType) -> TokenCategory:
    if token_type == TokenType.INT_LITERAL:
        return TokenCategory.NUMBER
    if token_type == TokenType.STRING_LITERAL:
        return TokenCategory.STRING
    if token_type == TokenType.IDENTIFIER:
        return TokenCategory.IDENTIFIER
    if token_type == TokenType.EOF:
        return TokenCategory.EOF
    if token_type in OPERATOR_TYPES:
        return TokenCategory.OPERATOR
    if token_type in PUNCTUATION_TYPES:
        return TokenCategory.PUNCTUATION
    return TokenCategory.KEYWORD


TOKEN_CATEGORIES: dict[TokenType, TokenCategory] = {
    token_type: _categorize(token_type) for token_type in TokenType
}


# Source text for operator/punctuation tokens, used in diagnostics
TOKEN_TEXT: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.NOT: "!",
    TokenType.ASSIGN: "=",
    TokenType.DOUBLE_COLON: "::",
    TokenType.LPAREN: "(",
    TokenType.RPAREN: ")",
    TokenType.LBRACE: "{",
    TokenType.RBRACE: "}",
    TokenType.LBRACKET: "[",
    TokenType.RBRACKET: "]",
    TokenType.COMMA: ",",
    TokenType.SEMICOLON: ";",
}


def describe_token(token: Token) -> str:
    """Human-readable description of a token for error messages."""
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type in TOKEN_TEXT:
        return f"'{TOKEN_TEXT[token.type]}'"
    if token.type == TokenType.IDENTIFIER:
        return f"identifier '{token.lexeme}'"
    if token.category == TokenCategory.KEYWORD and token.type != TokenType.BOOL_LITERAL:
        return f"keyword '{token.lexeme}'"
    return f"'{token.lexeme}'"
