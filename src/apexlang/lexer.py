"""
Lexer for apexlang.

Converts source text into a stream of tokens for the parser.
Supports:
- Single-line comments (//)
- Multi-line comments (/* */), nestable
- String literals with escape sequences
- Arbitrary-precision integer literals (decimal, hex, binary)
- Keywords, identifiers and longest-match operators
"""

import string
from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_invalid_hex_literal,
    error_invalid_binary_literal,
)


HEX_DIGITS = set(string.hexdigits)
DECIMAL_DIGITS = set(string.digits)

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '\\': '\\',
    '"': '"',
    "'": "'",
}

TWO_CHAR_OPERATORS = {
    '::': TokenType.DOUBLE_COLON,
    '==': TokenType.EQ,
    '!=': TokenType.NE,
    '<=': TokenType.LE,
    '>=': TokenType.GE,
    '&&': TokenType.AND,
    '||': TokenType.OR,
}

SINGLE_CHAR_TOKENS = {
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
    '<': TokenType.LT,
    '>': TokenType.GT,
    '!': TokenType.NOT,
    '=': TokenType.ASSIGN,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
}


_DIGIT_CHUNK = 1000


def parse_decimal(digits: str) -> int:
    """Convert a string of decimal digits to an int of any length.

    int() refuses very long digit strings on interpreters that cap
    int/str conversion, so long literals are assembled chunk by chunk.
    """
    if len(digits) <= _DIGIT_CHUNK:
        return int(digits, 10)
    value = 0
    for i in range(0, len(digits), _DIGIT_CHUNK):
        chunk = digits[i:i + _DIGIT_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk, 10)
    return value


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == '_')


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == '_')


class Lexer:
    """
    Tokenizer for apexlang source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)

    The first malformed construct raises a LexerError; there is no recovery.
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a single-line comment (// to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_multiline_comment(self) -> None:
        """Skip /* ... */ comment."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_multiline_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Decode an escape sequence after the backslash."""
        esc_start = self._location()
        if self._is_at_end() or self._peek() == '\n':
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        if ch in ESCAPE_CHARS:
            return ESCAPE_CHARS[ch]

        if ch == 'x':
            # Hex escape: \xHH
            hex_chars = ''
            while len(hex_chars) < 2 and self._peek() in HEX_DIGITS and not self._is_at_end():
                hex_chars += self._advance()
            if len(hex_chars) != 2:
                raise error_invalid_escape_sequence(
                    f"x{hex_chars}", self._span(esc_start),
                    self.get_source_line(esc_start.line)
                )
            return chr(int(hex_chars, 16))

        if ch == 'u':
            # Unicode escape: \u{H..H}
            if self._peek() != '{':
                raise error_invalid_escape_sequence(
                    "u", self._span(esc_start), self.get_source_line(esc_start.line)
                )
            self._advance()
            hex_chars = ''
            while self._peek() in HEX_DIGITS and not self._is_at_end():
                hex_chars += self._advance()
            code_point = int(hex_chars, 16) if 1 <= len(hex_chars) <= 6 else -1
            # surrogates are not scalar values
            if self._peek() != '}' or not 0 <= code_point <= 0x10FFFF or 0xD800 <= code_point <= 0xDFFF:
                raise error_invalid_escape_sequence(
                    f"u{{{hex_chars}", self._span(esc_start),
                    self.get_source_line(esc_start.line)
                )
            self._advance()  # consume '}'
            return chr(code_point)

        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _consume_malformed_tail(self) -> None:
        """Swallow the rest of a bad literal so the error shows all of it."""
        while _is_ident_char(self._peek()) or (self._peek() == '.' and self._peek(1).isdigit()):
            self._advance()

    def _scan_number(self) -> Token:
        """Scan an integer literal."""
        start = self._location()

        if self._peek() == '0' and self._peek(1) in 'xX':
            return self._scan_prefixed_number(start, 16, HEX_DIGITS, error_invalid_hex_literal)
        if self._peek() == '0' and self._peek(1) in 'bB':
            return self._scan_prefixed_number(start, 2, set('01'), error_invalid_binary_literal)

        while self._peek() in DECIMAL_DIGITS or self._peek() == '_':
            self._advance()

        if _is_ident_char(self._peek()) or (self._peek() == '.' and self._peek(1).isdigit()):
            self._consume_malformed_tail()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        if lexeme.endswith('_') or '__' in lexeme:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        value = parse_decimal(lexeme.replace('_', ''))
        return self._make_token(TokenType.INT_LITERAL, value, start, lexeme)

    def _scan_prefixed_number(self, start: SourceLocation, base: int, digits: set,
                              make_error) -> Token:
        """Scan a 0x / 0b integer literal."""
        self._advance()  # consume '0'
        self._advance()  # consume 'x' or 'b'

        while self._peek() in digits or self._peek() == '_':
            if self._is_at_end():
                break
            self._advance()

        if _is_ident_char(self._peek()):
            self._consume_malformed_tail()
            lexeme = self.source[start.offset:self.pos]
            raise make_error(lexeme, self._span(start), self.get_source_line(start.line))

        lexeme = self.source[start.offset:self.pos]
        body = lexeme[2:]
        clean = body.replace('_', '')
        if not clean or body.startswith('_') or body.endswith('_') or '__' in body:
            raise make_error(lexeme, self._span(start), self.get_source_line(start.line))
        return self._make_token(TokenType.INT_LITERAL, int(clean, base), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self._location()

        while _is_ident_char(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == 'true'
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()

        if ch.isascii() and ch.isdigit():
            return self._scan_number()

        if _is_ident_start(ch):
            return self._scan_identifier_or_keyword()

        # Longest match first
        pair = ch + self._peek(1)
        if pair in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._make_token(TWO_CHAR_OPERATORS[pair], pair, start)

        if ch in SINGLE_CHAR_TOKENS:
            self._advance()
            return self._make_token(SINGLE_CHAR_TOKENS[ch], ch, start)

        self._advance()
        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with a single EOF token

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
