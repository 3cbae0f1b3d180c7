"""
Tests for the native function registry and argument helpers.
"""

import threading

import pytest

from apexlang import (
    NativeRegistry, NativeCallable, SignalTable, ArgumentError, DispatchError,
    ResourceError, get_default_registry, STANDARD_MODULES,
    expect_arity, expect_string_arg, expect_int_arg, expect_bool_arg, expect_tuple_arg,
)
from apexlang.runtime import natives, int_val, string_val, bool_val, tuple_val, UNIT


def constant(name, value):
    return NativeCallable(name, lambda args: value)


class TestRegistry:
    """Test module registration and lookup."""

    def test_register_and_lookup(self):
        """Registered symbols can be looked up by module and symbol."""
        registry = NativeRegistry()
        answer = constant("math::answer", int_val(42))
        registry.register_module("math", {"answer": answer})
        assert registry.has_module("math")
        assert registry.get_callable("math", "answer") is answer
        assert registry.get_module("math") == {"answer": answer}

    def test_missing_lookups(self):
        """Missing modules and symbols return None."""
        registry = NativeRegistry()
        registry.register_module("math", {})
        assert registry.get_module("nope") is None
        assert registry.get_callable("nope", "x") is None
        assert registry.get_callable("math", "x") is None
        assert not registry.has_module("nope")

    def test_reregistration_replaces(self):
        """Re-registering a module replaces its table rather than merging."""
        registry = NativeRegistry()
        registry.register_module("m", {"a": constant("m::a", UNIT)})
        registry.register_module("m", {"b": constant("m::b", UNIT)})
        assert registry.get_callable("m", "a") is None
        assert registry.get_callable("m", "b") is not None

    def test_registered_table_is_copied(self):
        """Mutating the caller's dict after registration has no effect."""
        registry = NativeRegistry()
        table = {"a": constant("m::a", UNIT)}
        registry.register_module("m", table)
        table["b"] = constant("m::b", UNIT)
        assert registry.get_callable("m", "b") is None

    def test_entries_must_be_native_callables(self):
        """Plain functions are rejected."""
        registry = NativeRegistry()
        with pytest.raises(TypeError):
            registry.register_module("m", {"f": lambda args: UNIT})

    def test_listing(self):
        """modules() and symbols() are sorted."""
        registry = NativeRegistry()
        registry.register_module("zeta", {"b": constant("zeta::b", UNIT), "a": constant("zeta::a", UNIT)})
        registry.register_module("alpha", {"x": constant("alpha::x", UNIT)})
        assert registry.modules() == ["alpha", "zeta"]
        assert registry.symbols() == ["alpha::x", "zeta::a", "zeta::b"]


class TestStandardLibraryRegistry:
    """Test building registries with the standard modules."""

    def test_all_modules(self):
        """Both standard modules are installed by default."""
        registry = NativeRegistry.with_standard_library()
        assert registry.modules() == sorted(STANDARD_MODULES)
        assert "os::cwd" in registry.symbols()
        assert "signal::emit" in registry.symbols()

    def test_subset(self):
        """A subset of modules can be selected."""
        registry = NativeRegistry.with_standard_library(modules=["os"])
        assert registry.modules() == ["os"]

    def test_unknown_module(self):
        """Unknown standard module names are rejected."""
        with pytest.raises(ValueError) as exc_info:
            NativeRegistry.with_standard_library(modules=["os", "net"])
        assert "net" in str(exc_info.value)

    def test_shared_signal_table(self):
        """A caller-supplied SignalTable backs the signal module."""
        table = SignalTable()
        registry = NativeRegistry.with_standard_library(signals=table)
        registry.get_callable("signal", "emit").invoke([string_val("x")])
        assert table.count("x") == 1

    def test_independent_tables(self):
        """Registries built separately do not share counters."""
        first = NativeRegistry.with_standard_library()
        second = NativeRegistry.with_standard_library()
        first.get_callable("signal", "emit").invoke([string_val("x")])
        count = second.get_callable("signal", "count").invoke([string_val("x")])
        assert count == int_val(0)

    def test_default_registry_singleton(self):
        """get_default_registry() returns the same instance every time."""
        assert get_default_registry() is get_default_registry()
        assert get_default_registry().has_module("os")

    def test_default_registry_built_once_across_threads(self, monkeypatch):
        """Concurrent first requests share one registry and one signal table."""
        monkeypatch.setattr(natives, "_registry", None)
        barrier = threading.Barrier(8)
        results = []

        def fetch():
            barrier.wait()
            results.append(get_default_registry())

        threads = [threading.Thread(target=fetch) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1
        results[0].get_callable("signal", "emit").invoke([string_val("shared")])
        count = get_default_registry().get_callable("signal", "count").invoke([string_val("shared")])
        assert count == int_val(1)


class TestNativeCallable:
    """Test invoking native functions."""

    def test_invoke_passes_tuple(self):
        """Arguments arrive as a tuple of Values."""
        seen = []

        def record(args):
            seen.append(args)
            return UNIT

        NativeCallable("t::record", record).invoke([int_val(1), bool_val(True)])
        assert seen == [(int_val(1), bool_val(True))]

    def test_closure_state(self):
        """Closures can carry state across calls."""
        counter = {"n": 0}

        def bump(args):
            counter["n"] += 1
            return int_val(counter["n"])

        native = NativeCallable("t::bump", bump)
        native.invoke([])
        assert native.invoke([]) == int_val(2)

    def test_apex_errors_propagate(self):
        """ApexErrors from the implementation pass through unchanged."""
        def strict(args):
            expect_arity(args, 1, "t::strict")
            return UNIT

        with pytest.raises(ArgumentError) as exc_info:
            NativeCallable("t::strict", strict).invoke([])
        assert exc_info.value.code == "E403"

    def test_host_exception_wrapped(self):
        """Other exceptions become E501 chained to the original."""
        def broken(args):
            raise ValueError("bad input")

        with pytest.raises(ResourceError) as exc_info:
            NativeCallable("t::broken", broken).invoke([])
        err = exc_info.value
        assert err.code == "E501"
        assert err.resource == "t::broken"
        assert "bad input" in err.message
        assert isinstance(err.__cause__, ValueError)

    def test_non_value_result(self):
        """Returning something other than a Value is E501."""
        with pytest.raises(ResourceError) as exc_info:
            NativeCallable("t::raw", lambda args: "text").invoke([])
        assert "str" in exc_info.value.message


class TestArgumentHelpers:
    """Test the expect_* helpers used by native implementations."""

    def test_arity(self):
        """expect_arity reports expected and actual counts."""
        expect_arity([UNIT], 1, "t::f")
        with pytest.raises(ArgumentError) as exc_info:
            expect_arity([UNIT, UNIT], 1, "t::f")
        err = exc_info.value
        assert err.code == "E403"
        assert (err.expected, err.actual) == ("1", "2")
        assert (err.module, err.symbol) == ("t", "f")

    def test_extractors(self):
        """Each helper returns the Python payload."""
        args = (string_val("s"), int_val(10 ** 40), bool_val(False), tuple_val([UNIT]))
        assert expect_string_arg(args, 0, "t::f") == "s"
        assert expect_int_arg(args, 1, "t::f") == 10 ** 40
        assert expect_bool_arg(args, 2, "t::f") is False
        assert expect_tuple_arg(args, 3, "t::f") == (UNIT,)

    def test_wrong_kind(self):
        """A mismatched kind is E404 with position and kinds."""
        with pytest.raises(ArgumentError) as exc_info:
            expect_string_arg([int_val(1)], 0, "os::env_var")
        err = exc_info.value
        assert err.code == "E404"
        assert err.index == 0
        assert err.expected == "a string"
        assert err.actual == "Integer"
        assert "position 1" in err.message

    def test_missing_argument(self):
        """A missing positional argument is E403."""
        with pytest.raises(ArgumentError) as exc_info:
            expect_int_arg([], 0, "t::f")
        assert exc_info.value.code == "E403"
        assert exc_info.value.actual == "nothing"

    def test_argument_error_is_dispatch_error(self):
        """Argument errors are a kind of dispatch error."""
        with pytest.raises(DispatchError):
            expect_bool_arg([string_val("x")], 0, "t::f")
