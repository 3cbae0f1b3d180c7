"""
Native function registry for the apexlang interpreter.

Interpreted code reaches host capabilities through `module::symbol(...)`
calls. A NativeRegistry maps module names to symbol tables of
NativeCallable entries; the interpreter resolves the path, evaluates the
arguments and invokes the callable with a tuple of Values.

Native implementations validate their own arguments with the expect_*
helpers below, which raise ArgumentError with the function, position,
expected kind and actual kind.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .values import Value, ValueKind
from ..errors import (
    ApexError,
    error_wrong_arity,
    error_missing_argument,
    error_wrong_argument_kind,
    error_native_failure,
)

logger = logging.getLogger(__name__)

NativeFunction = Callable[[Sequence[Value]], Value]


@dataclass(frozen=True)
class NativeCallable:
    """
    A host function callable from interpreted code.

    `function` may be any Python callable taking a sequence of Values:
    a plain function, a closure or a bound method.
    """
    name: str
    function: NativeFunction
    doc: str = ""

    def invoke(self, args: Sequence[Value]) -> Value:
        """
        Call the native function.

        ApexErrors raised by the implementation propagate unchanged. Any
        other exception is reported as a ResourceError chained to the
        original.
        """
        logger.debug("invoke %s with %d argument(s)", self.name, len(args))
        try:
            result = self.function(tuple(args))
        except ApexError:
            raise
        except Exception as e:
            logger.warning("native function %s raised %s: %s", self.name, type(e).__name__, e)
            raise error_native_failure(self.name, f"{type(e).__name__}: {e}") from e
        if not isinstance(result, Value):
            raise error_native_failure(
                self.name, f"returned {type(result).__name__} instead of a value"
            )
        return result


class NativeRegistry:
    """
    Registry of native modules.

    Modules are registered by name and replaced wholesale on
    re-registration; symbol tables are never merged.
    """

    def __init__(self):
        self._modules: Dict[str, Dict[str, NativeCallable]] = {}

    def register_module(self, name: str, symbols: Mapping[str, NativeCallable]) -> None:
        """Register (or replace) a module's symbol table."""
        table = dict(symbols)
        for symbol, entry in table.items():
            if not isinstance(entry, NativeCallable):
                raise TypeError(f"{name}::{symbol} must be a NativeCallable")
        if name in self._modules:
            logger.debug("replacing native module %r", name)
        self._modules[name] = table
        logger.debug("registered native module %r (%d symbols)", name, len(table))

    def get_module(self, name: str) -> Optional[Mapping[str, NativeCallable]]:
        """Look up a module's symbol table by name."""
        return self._modules.get(name)

    def get_callable(self, module: str, symbol: str) -> Optional[NativeCallable]:
        """Look up `module::symbol`, or None if either part is missing."""
        table = self._modules.get(module)
        if table is None:
            return None
        return table.get(symbol)

    def has_module(self, name: str) -> bool:
        return name in self._modules

    def modules(self) -> List[str]:
        """Registered module names, sorted."""
        return sorted(self._modules)

    def symbols(self) -> List[str]:
        """Every registered `module::symbol` path, sorted."""
        return [
            f"{module}::{symbol}"
            for module in self.modules()
            for symbol in sorted(self._modules[module])
        ]

    @classmethod
    def with_standard_library(cls, signals=None, modules: Optional[Sequence[str]] = None) -> "NativeRegistry":
        """
        Build a registry with the standard native modules installed.

        Args:
            signals: SignalTable backing the `signal` module; a fresh one
                is created when omitted
            modules: Names of the standard modules to install (default: all)

        Raises:
            ValueError: If `modules` names an unknown standard module
        """
        from ..stdlib import register_standard_library
        registry = cls()
        register_standard_library(registry, signals=signals, modules=modules)
        return registry


# Global singleton registry
_registry: Optional[NativeRegistry] = None
_registry_lock = threading.Lock()


def get_default_registry() -> NativeRegistry:
    """Get the process-wide registry with the standard library installed.

    The registry, and the SignalTable behind its `signal` module, is built
    exactly once even when first requested from several threads.
    """
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = NativeRegistry.with_standard_library()
    return _registry


# --- Argument helpers ---

_KIND_NAMES = {
    ValueKind.INTEGER: "an integer",
    ValueKind.STRING: "a string",
    ValueKind.BOOLEAN: "a boolean",
    ValueKind.TUPLE: "a tuple",
}


def expect_arity(args: Sequence[Value], count: int, name: str) -> None:
    """Raise ArgumentError unless exactly `count` arguments were passed."""
    if len(args) != count:
        raise error_wrong_arity(name, count, len(args))


def _expect_kind(args: Sequence[Value], index: int, name: str, kind: ValueKind) -> Value:
    expected = _KIND_NAMES[kind]
    if index >= len(args):
        raise error_missing_argument(name, index, expected)
    value = args[index]
    if value.kind != kind:
        raise error_wrong_argument_kind(name, index, expected, value.kind_name)
    return value


def expect_string_arg(args: Sequence[Value], index: int, name: str) -> str:
    """Return the String argument at `index` as a Python str."""
    return _expect_kind(args, index, name, ValueKind.STRING).data


def expect_int_arg(args: Sequence[Value], index: int, name: str) -> int:
    """Return the Integer argument at `index` as a Python int."""
    return _expect_kind(args, index, name, ValueKind.INTEGER).data


def expect_bool_arg(args: Sequence[Value], index: int, name: str) -> bool:
    """Return the Boolean argument at `index` as a Python bool."""
    return _expect_kind(args, index, name, ValueKind.BOOLEAN).data


def expect_tuple_arg(args: Sequence[Value], index: int, name: str) -> tuple:
    """Return the Tuple argument at `index` as a Python tuple of Values."""
    return _expect_kind(args, index, name, ValueKind.TUPLE).data
