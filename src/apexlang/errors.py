"""
Exceptions and diagnostics for apexlang.

Every failure raised by the lexer, parser, interpreter or a native function
is an ApexError carrying a Diagnostic. Subclasses mark the failure kind and
expose structured fields so embedding hosts can branch on them.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Name resolution errors
- E3xx: Evaluation errors
- E4xx: Native dispatch and argument errors
- E5xx: Resource errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity = ErrorSeverity.ERROR
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class ApexError(Exception):
    """Base exception for every apexlang failure."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def message(self) -> str:
        return self.diagnostic.message

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ApexError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ApexError):
    """Error during parsing (E1xx)."""

    def __init__(self, diagnostic: Diagnostic, expected: Optional[str] = None,
                 found: Optional[str] = None):
        super().__init__(diagnostic)
        self.expected = expected
        self.found = found


class NameResolutionError(ApexError):
    """Identifier not bound in any enclosing scope (E2xx)."""

    def __init__(self, diagnostic: Diagnostic, name: str):
        super().__init__(diagnostic)
        self.name = name


class EvaluationError(ApexError):
    """Operator or value misuse at runtime (E3xx)."""

    def __init__(self, diagnostic: Diagnostic, operator: Optional[str] = None,
                 expected: Optional[str] = None, actual: Optional[str] = None):
        super().__init__(diagnostic)
        self.operator = operator
        self.expected = expected
        self.actual = actual


class DispatchError(ApexError):
    """Native call could not be dispatched (E4xx)."""

    def __init__(self, diagnostic: Diagnostic, module: Optional[str] = None,
                 symbol: Optional[str] = None):
        super().__init__(diagnostic)
        self.module = module
        self.symbol = symbol


class ArgumentError(DispatchError):
    """Native function received the wrong argument count or kind (E403/E404)."""

    def __init__(self, diagnostic: Diagnostic, function: str, index: Optional[int] = None,
                 expected: Optional[str] = None, actual: Optional[str] = None):
        module, _, symbol = function.partition("::")
        super().__init__(diagnostic, module=module or None, symbol=symbol or None)
        self.function = function
        self.index = index
        self.expected = expected
        self.actual = actual


class ResourceError(ApexError):
    """Host-side failure surfaced to interpreted code (E5xx)."""

    def __init__(self, diagnostic: Diagnostic, resource: Optional[str] = None):
        super().__init__(diagnostic)
        self.resource = resource


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with '\"' on the same line"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated multi-line comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated multi-line comment (expected closing */)",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\0, \\\\, \\\", \\', \\x##, \\u{#...}"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        span=span,
        source_line=source_line,
        hints=["integer literals contain only digits, optionally separated by '_'"],
    )
    return LexerError(diag)


def error_invalid_hex_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E007: Invalid hexadecimal literal."""
    diag = Diagnostic(
        code="E007",
        message=f"invalid hexadecimal literal '{text}'",
        span=span,
        source_line=source_line,
        hints=["hex literals must contain at least one hex digit: 0x1, 0xFF, etc."],
    )
    return LexerError(diag)


def error_invalid_binary_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E008: Invalid binary literal."""
    diag = Diagnostic(
        code="E008",
        message=f"invalid binary literal '{text}'",
        span=span,
        source_line=source_line,
        hints=["binary literals must contain only 0 and 1: 0b101, 0b1111, etc."],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag, expected=expected, found=found)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        span=span,
    )
    return ParserError(diag, expected=expected, found="end of input")


def error_invalid_callee(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Call target is not a name."""
    diag = Diagnostic(
        code="E104",
        message="only 'module::symbol' or a plain name can be called",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag, expected="callable name")


def error_nesting_too_deep(span: SourceSpan) -> ParserError:
    """E105: Source nests deeper than the parser can follow."""
    diag = Diagnostic(
        code="E105",
        message="expression nesting is too deep to parse",
        span=span,
    )
    return ParserError(diag)


# --- Name resolution error codes ---

def error_undefined_identifier(name: str, span: SourceSpan = None,
                               source_line: str = None) -> NameResolutionError:
    """E201: Undefined identifier."""
    diag = Diagnostic(
        code="E201",
        message=f"undefined identifier '{name}'",
        span=span,
        source_line=source_line,
    )
    return NameResolutionError(diag, name=name)


# --- Evaluation error codes ---

def error_operand_mismatch(operator: str, expected: str, actual: str,
                           span: SourceSpan = None, source_line: str = None) -> EvaluationError:
    """E301: Operator applied to the wrong value kinds."""
    diag = Diagnostic(
        code="E301",
        message=f"operator '{operator}' expects {expected}, found {actual}",
        span=span,
        source_line=source_line,
    )
    return EvaluationError(diag, operator=operator, expected=expected, actual=actual)


def error_division_by_zero(operator: str, span: SourceSpan = None,
                           source_line: str = None) -> EvaluationError:
    """E302: Division or modulo by zero."""
    what = "modulo" if operator == "%" else "division"
    diag = Diagnostic(
        code="E302",
        message=f"{what} by zero",
        span=span,
        source_line=source_line,
    )
    return EvaluationError(diag, operator=operator)


def _abbreviate_digits(text: str, keep: int = 12) -> str:
    """Shorten a long decimal string to its ends and a digit count."""
    digits = text.lstrip("-")
    if len(digits) <= 2 * keep:
        return text
    sign = text[:len(text) - len(digits)]
    return f"{sign}{digits[:keep]}...{digits[-keep:]} ({len(digits)} digits)"


def error_index_out_of_range(index: str, length: int, span: SourceSpan = None,
                             source_line: str = None) -> EvaluationError:
    """E303: Tuple index out of range.

    `index` is the decimal text of the index; huge values are abbreviated.
    """
    shown = _abbreviate_digits(index)
    diag = Diagnostic(
        code="E303",
        message=f"tuple index {shown} out of range for tuple of length {length}",
        span=span,
        source_line=source_line,
    )
    return EvaluationError(diag, operator="[]", expected=f"0..{length - 1}" if length else "nothing",
                           actual=shown)


def error_not_callable(name: str, actual: str, span: SourceSpan = None,
                       source_line: str = None) -> EvaluationError:
    """E304: Bare call target is bound to a value."""
    diag = Diagnostic(
        code="E304",
        message=f"'{name}' is bound to a {actual} value and is not callable",
        span=span,
        source_line=source_line,
        hints=[f"bring a native function into scope with 'use module::symbol as {name};'"],
    )
    return EvaluationError(diag, operator="call", expected="native function", actual=actual)


def error_not_a_value(name: str, function: str, span: SourceSpan = None,
                      source_line: str = None) -> EvaluationError:
    """E305: A native function alias used where a value is needed."""
    diag = Diagnostic(
        code="E305",
        message=f"'{name}' names the native function {function} and cannot be used as a value",
        span=span,
        source_line=source_line,
        hints=[f"call it instead: {name}(...)"],
    )
    return EvaluationError(diag, expected="value", actual="native function")


# --- Dispatch error codes ---

def error_unknown_module(module: str, symbol: str, span: SourceSpan = None,
                         source_line: str = None) -> DispatchError:
    """E401: No native module with that name."""
    diag = Diagnostic(
        code="E401",
        message=f"unknown native module '{module}' (calling '{module}::{symbol}')",
        span=span,
        source_line=source_line,
    )
    return DispatchError(diag, module=module, symbol=symbol)


def error_unknown_symbol(module: str, symbol: str, span: SourceSpan = None,
                         source_line: str = None) -> DispatchError:
    """E402: Module exists but does not export the symbol."""
    diag = Diagnostic(
        code="E402",
        message=f"native module '{module}' has no symbol '{symbol}'",
        span=span,
        source_line=source_line,
    )
    return DispatchError(diag, module=module, symbol=symbol)


def error_wrong_arity(function: str, expected: int, actual: int) -> ArgumentError:
    """E403: Wrong number of arguments, or a required argument is missing."""
    plural = "" if expected == 1 else "s"
    diag = Diagnostic(
        code="E403",
        message=f"{function} expects {expected} argument{plural}, received {actual}",
    )
    return ArgumentError(diag, function=function, index=None,
                         expected=str(expected), actual=str(actual))


def error_missing_argument(function: str, index: int, expected: str) -> ArgumentError:
    """E403: No argument at the requested position."""
    diag = Diagnostic(
        code="E403",
        message=f"{function} expects {expected} argument at position {index + 1}, but none was given",
    )
    return ArgumentError(diag, function=function, index=index,
                         expected=expected, actual="nothing")


def error_wrong_argument_kind(function: str, index: int, expected: str,
                              actual: str) -> ArgumentError:
    """E404: Argument has the wrong value kind."""
    diag = Diagnostic(
        code="E404",
        message=f"{function} expects {expected} argument at position {index + 1}, found {actual}",
    )
    return ArgumentError(diag, function=function, index=index,
                         expected=expected, actual=actual)


# --- Resource error codes ---

def error_native_failure(function: str, detail: str) -> ResourceError:
    """E501: Native function failed on the host side."""
    diag = Diagnostic(
        code="E501",
        message=f"{function} failed: {detail}",
    )
    return ResourceError(diag, resource=function)


def error_lock_poisoned(resource: str) -> ResourceError:
    """E502: Shared registry lock is poisoned by an earlier failure."""
    diag = Diagnostic(
        code="E502",
        message=f"{resource} lock poisoned",
        hints=["an earlier operation failed while holding the lock; the registry state is unreliable"],
    )
    return ResourceError(diag, resource=resource)


def error_depth_exceeded(limit: int, span: SourceSpan = None,
                         source_line: str = None) -> ResourceError:
    """E503: Evaluation nested deeper than the configured limit."""
    diag = Diagnostic(
        code="E503",
        message=f"evaluation depth limit of {limit} exceeded",
        span=span,
        source_line=source_line,
    )
    return ResourceError(diag, resource="evaluation depth")
