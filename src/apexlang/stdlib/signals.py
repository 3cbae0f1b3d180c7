"""
The `signal` native module: a registry of named counters.

    signal::register(name) -> Boolean, true iff the name was new; resets to 0
    signal::emit(name)     -> Integer, the incremented count
    signal::count(name)    -> Integer, current count or 0 if unknown
    signal::tracked()      -> Integer, number of distinct names
    signal::reset(name)    -> Boolean, true iff the name existed; zeroes it

Counters live in a SignalTable. Each registry built by
NativeRegistry.with_standard_library() gets its own table unless one is
passed in, so independent interpreters do not see each other's counts.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Sequence

from ..errors import error_lock_poisoned
from ..runtime.natives import NativeCallable, NativeRegistry, expect_arity, expect_string_arg
from ..runtime.values import Value, int_val, bool_val

logger = logging.getLogger(__name__)

MODULE_NAME = "signal"
RESOURCE_NAME = "Signal registry"


class SignalTable:
    """
    Named counters guarded by a single lock.

    An exception raised while the lock is held leaves the table poisoned:
    every later access raises ResourceError (E502) until clear_poison()
    is called.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def clear_poison(self) -> None:
        """Make the table usable again after a failure."""
        with self._lock:
            self._poisoned = False

    @contextmanager
    def _locked(self) -> Iterator[Dict[str, int]]:
        with self._lock:
            if self._poisoned:
                raise error_lock_poisoned(RESOURCE_NAME)
            try:
                yield self._counts
            except BaseException:
                self._poisoned = True
                logger.warning("%s poisoned by a failure while locked", RESOURCE_NAME)
                raise

    def register(self, name: str) -> bool:
        """Start (or restart) a counter at 0; True iff the name was new."""
        with self._locked() as counts:
            is_new = name not in counts
            counts[name] = 0
            return is_new

    def emit(self, name: str) -> int:
        with self._locked() as counts:
            counts[name] = counts.get(name, 0) + 1
            return counts[name]

    def count(self, name: str) -> int:
        with self._locked() as counts:
            return counts.get(name, 0)

    def tracked(self) -> int:
        with self._locked() as counts:
            return len(counts)

    def reset(self, name: str) -> bool:
        """Zero a counter; True iff it existed."""
        with self._locked() as counts:
            if name not in counts:
                return False
            counts[name] = 0
            return True

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current counters."""
        with self._locked() as counts:
            return dict(counts)


def build_module(table: SignalTable) -> Dict[str, NativeCallable]:
    """Symbol table for the `signal` module, bound to `table`."""

    def _register(args: Sequence[Value]) -> Value:
        expect_arity(args, 1, "signal::register")
        return bool_val(table.register(expect_string_arg(args, 0, "signal::register")))

    def _emit(args: Sequence[Value]) -> Value:
        expect_arity(args, 1, "signal::emit")
        return int_val(table.emit(expect_string_arg(args, 0, "signal::emit")))

    def _count(args: Sequence[Value]) -> Value:
        expect_arity(args, 1, "signal::count")
        return int_val(table.count(expect_string_arg(args, 0, "signal::count")))

    def _tracked(args: Sequence[Value]) -> Value:
        expect_arity(args, 0, "signal::tracked")
        return int_val(table.tracked())

    def _reset(args: Sequence[Value]) -> Value:
        expect_arity(args, 1, "signal::reset")
        return bool_val(table.reset(expect_string_arg(args, 0, "signal::reset")))

    functions = {
        "register": _register,
        "emit": _emit,
        "count": _count,
        "tracked": _tracked,
        "reset": _reset,
    }
    return {
        symbol: NativeCallable(f"{MODULE_NAME}::{symbol}", function)
        for symbol, function in functions.items()
    }


def register(registry: NativeRegistry, table: SignalTable) -> None:
    registry.register_module(MODULE_NAME, build_module(table))
