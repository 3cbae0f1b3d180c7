"""
Runtime values for the apexlang interpreter.

A Value is one of a closed set of kinds: arbitrary-precision Integer,
String, Boolean, or Tuple of Values. Values are immutable and compare
structurally; a Value never equals a Value of another kind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Tuple


class ValueKind(Enum):
    """The runtime variants of Value."""
    INTEGER = "Integer"
    STRING = "String"
    BOOLEAN = "Boolean"
    TUPLE = "Tuple"


_PYTHON_TYPES = {
    ValueKind.INTEGER: int,
    ValueKind.STRING: str,
    ValueKind.BOOLEAN: bool,
    ValueKind.TUPLE: tuple,
}


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    `data` holds the Python payload: int for Integer, str for String,
    bool for Boolean and a tuple of Value for Tuple.
    """
    kind: ValueKind
    data: Any

    def __post_init__(self):
        expected = _PYTHON_TYPES[self.kind]
        # bool is an int subclass; keep Integer payloads free of it
        if type(self.data) is not expected:
            raise TypeError(
                f"{self.kind.value} value requires {expected.__name__}, got {type(self.data).__name__}"
            )
        if self.kind == ValueKind.TUPLE and not all(isinstance(v, Value) for v in self.data):
            raise TypeError("Tuple value elements must be Values")

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {format_value(self)})"

    def __str__(self) -> str:
        return format_value(self)

    @property
    def kind_name(self) -> str:
        return self.kind.value

    def __len__(self) -> int:
        if self.kind != ValueKind.TUPLE:
            raise TypeError(f"{self.kind.value} value has no length")
        return len(self.data)


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an Integer value."""
    return Value(ValueKind.INTEGER, int(n))


def string_val(s: str) -> Value:
    """Create a String value."""
    return Value(ValueKind.STRING, str(s))


def bool_val(b: bool) -> Value:
    """Create a Boolean value."""
    return Value(ValueKind.BOOLEAN, bool(b))


def tuple_val(items: Iterable[Value]) -> Value:
    """Create a Tuple value from Values."""
    return Value(ValueKind.TUPLE, tuple(items))


UNIT = tuple_val(())
TRUE = bool_val(True)
FALSE = bool_val(False)


def values_equal(left: Value, right: Value) -> bool:
    """Structural equality; values of different kinds are never equal."""
    return left == right


def unwrap_value(v: Value) -> Any:
    """Convert a Value into plain Python data (tuples recursively)."""
    if v.kind == ValueKind.TUPLE:
        return tuple(unwrap_value(item) for item in v.data)
    return v.data


def wrap_value(data: Any) -> Value:
    """Convert plain Python data into a Value."""
    if isinstance(data, Value):
        return data
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        return int_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (tuple, list)):
        return tuple_val(wrap_value(item) for item in data)
    raise TypeError(f"cannot convert {type(data).__name__} to an apexlang value")


_DIGIT_CHUNK = 1000


def format_integer(n: int) -> str:
    """Decimal text for an int of any size.

    str() refuses very large ints on interpreters that cap int/str
    conversion, so fall back to converting in fixed-size chunks.
    """
    try:
        return str(n)
    except ValueError:
        pass
    sign = "-" if n < 0 else ""
    n = abs(n)
    base = 10 ** _DIGIT_CHUNK
    chunks = []
    while n:
        n, rem = divmod(n, base)
        chunks.append(rem)
    head = str(chunks[-1])
    tail = "".join(str(c).zfill(_DIGIT_CHUNK) for c in reversed(chunks[:-1]))
    return sign + head + tail


def _escape(text: str) -> str:
    out = []
    for ch in text:
        if ch == '\\':
            out.append('\\\\')
        elif ch == '"':
            out.append('\\"')
        elif ch == '\n':
            out.append('\\n')
        elif ch == '\t':
            out.append('\\t')
        elif ch == '\r':
            out.append('\\r')
        elif ch == '\0':
            out.append('\\0')
        elif not ch.isprintable():
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return ''.join(out)


def format_value(v: Value) -> str:
    """Render a value the way it would be written in source."""
    if v.kind == ValueKind.BOOLEAN:
        return "true" if v.data else "false"
    if v.kind == ValueKind.INTEGER:
        return format_integer(v.data)
    if v.kind == ValueKind.STRING:
        return f'"{_escape(v.data)}"'
    items: Tuple[Value, ...] = v.data
    if len(items) == 1:
        return f"({format_value(items[0])},)"
    return "(" + ", ".join(format_value(item) for item in items) + ")"
