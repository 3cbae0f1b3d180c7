"""
Tests for the apexlang runtime (values, environment, interpreter).
"""

import logging

import pytest

from apexlang import (
    ApexConfig, ApexError, EvaluationError, NameResolutionError,
    DispatchError, ResourceError, ParserError, LexerError,
    NativeRegistry, NativeCallable, SignalTable,
    Interpreter, ExecutionResult, evaluate_source, run_source, parse_source,
)
from apexlang.runtime import (
    Value, ValueKind, UNIT, TRUE, FALSE,
    int_val, string_val, bool_val, tuple_val,
    values_equal, wrap_value, unwrap_value, format_value,
    Environment, Scope, create_environment,
)


@pytest.fixture
def registry():
    return NativeRegistry.with_standard_library(signals=SignalTable())


def run(source, registry, config=None):
    return evaluate_source(source, registry=registry, config=config)


# --- Value Tests ---

class TestValues:
    """Test runtime values."""

    def test_constructors(self):
        """Constructors tag values with their kind."""
        assert int_val(42).kind == ValueKind.INTEGER
        assert string_val("s").kind == ValueKind.STRING
        assert bool_val(True).kind == ValueKind.BOOLEAN
        assert tuple_val([int_val(1)]).kind == ValueKind.TUPLE
        assert UNIT == tuple_val([])

    def test_bool_is_not_integer(self):
        """true never equals 1."""
        assert TRUE != int_val(1)
        assert FALSE != int_val(0)
        assert not values_equal(TRUE, int_val(1))

    def test_payload_type_checked(self):
        """Payloads must match the kind."""
        with pytest.raises(TypeError):
            Value(ValueKind.INTEGER, True)
        with pytest.raises(TypeError):
            Value(ValueKind.TUPLE, (1, 2))

    def test_structural_equality(self):
        """Tuples compare element-wise."""
        a = tuple_val([int_val(1), string_val("x")])
        b = tuple_val([int_val(1), string_val("x")])
        assert a == b
        assert hash(a) == hash(b)

    def test_format_value(self):
        """Values render as source-like text."""
        assert format_value(int_val(-42)) == "-42"
        assert format_value(string_val('say "hi"\n')) == '"say \\"hi\\"\\n"'
        assert format_value(TRUE) == "true"
        assert format_value(UNIT) == "()"
        assert format_value(tuple_val([int_val(1)])) == "(1,)"
        assert format_value(tuple_val([int_val(1), FALSE])) == "(1, false)"

    def test_format_huge_integer(self):
        """Integers beyond the int/str conversion limit still render."""
        text = format_value(int_val(10 ** 5000))
        assert len(text) == 5001
        assert text[0] == "1" and set(text[1:]) == {"0"}

    def test_wrap_and_unwrap(self):
        """Plain Python data converts both ways."""
        value = wrap_value((1, "a", (True,)))
        assert value == tuple_val([int_val(1), string_val("a"), tuple_val([TRUE])])
        assert unwrap_value(value) == (1, "a", (True,))

    def test_wrap_rejects_floats(self):
        """There is no float kind."""
        with pytest.raises(TypeError):
            wrap_value(1.5)


# --- Environment Tests ---

class TestEnvironment:
    """Test scope management."""

    def test_lookup_walks_outward(self):
        """Inner scopes see outer bindings."""
        env = create_environment({"x": int_val(1)})
        with env.new_scope():
            assert env.get_variable("x") == int_val(1)

    def test_shadowing_leaves_outer_intact(self):
        """Binding in an inner scope does not touch the outer one."""
        env = Environment()
        env.set_variable("x", int_val(1))
        with env.new_scope():
            env.set_variable("x", int_val(2))
            assert env.get_variable("x") == int_val(2)
        assert env.get_variable("x") == int_val(1)

    def test_scope_popped_on_error(self):
        """The scope is popped when an error propagates."""
        env = Environment()
        with pytest.raises(RuntimeError):
            with env.new_scope():
                env.set_variable("tmp", int_val(1))
                raise RuntimeError("boom")
        assert env.depth == 0
        assert env.lookup("tmp") is None

    def test_scope_depth(self):
        """Scope depth counts enclosing scopes."""
        scope = Scope(parent=Scope(parent=Scope()))
        assert scope.depth == 2


# --- Interpreter Tests ---

class TestEvaluation:
    """Test program evaluation."""

    def test_empty_program(self, registry):
        """An empty program evaluates to ()."""
        assert run("", registry) == UNIT

    def test_final_statement_value(self, registry):
        """The program value is the final statement's value."""
        assert run("1; 2; 3", registry) == int_val(3)

    def test_binding_value_is_unit(self, registry):
        """A trailing binding yields ()."""
        assert run("let x = 5;", registry) == UNIT

    def test_bindings(self, registry):
        """Bindings are visible to later statements."""
        assert run("let x = 6; let y = 7; x * y", registry) == int_val(42)

    def test_rebinding(self, registry):
        """Rebinding in the same scope replaces the value."""
        assert run("x = 1; x = x + 1; x", registry) == int_val(2)

    def test_big_integer_exact(self, registry):
        """Integers never overflow."""
        assert run("99999999999999999999 + 1", registry) == int_val(100000000000000000000)

    def test_big_integer_multiply(self, registry):
        """Products stay exact."""
        result = run("let a = 0xFFFFFFFFFFFFFFFF; a * a", registry)
        assert result == int_val(0xFFFFFFFFFFFFFFFF ** 2)

    def test_idempotent(self, registry):
        """Evaluating the same source twice gives the same value."""
        source = "let t = (1, \"two\", true); (t[2], t[0] + 41)"
        assert run(source, registry) == run(source, registry)

    def test_interpreter_reusable(self, registry):
        """Each run gets a fresh environment."""
        interpreter = Interpreter(registry)
        interpreter.evaluate_program(parse_source("let leaked = 1;"))
        with pytest.raises(NameResolutionError):
            interpreter.evaluate_program(parse_source("leaked"))

    def test_evaluate_expression(self, registry):
        """Single expressions can be evaluated against a host environment."""
        env = create_environment({"n": int_val(20)})
        expr = parse_source("n * 2 + 2").statements[0].expression
        assert Interpreter(registry).evaluate_expression(expr, env) == int_val(42)

    def test_evaluate_expression_drops_previous_source(self, registry):
        """Errors from an embedded expression never quote an earlier program."""
        interpreter = Interpreter(registry)
        program_source = "let a = 1;\nlet b = a + 1;"
        interpreter.evaluate_program(parse_source(program_source), program_source)
        expr = parse_source("1 +\nmissing").statements[0].expression
        with pytest.raises(NameResolutionError) as exc_info:
            interpreter.evaluate_expression(expr, create_environment())
        assert "let b" not in str(exc_info.value)

    def test_evaluate_expression_with_source(self, registry):
        """Passing the expression's source gives a caret excerpt."""
        source = "1 +\nmissing"
        expr = parse_source(source).statements[0].expression
        with pytest.raises(NameResolutionError) as exc_info:
            Interpreter(registry).evaluate_expression(expr, source=source)
        assert "  2 | missing" in str(exc_info.value)


class TestScoping:
    """Test block scoping."""

    def test_block_value(self, registry):
        """A block's value is its final statement's value."""
        assert run("{ let a = 2; a * 3 }", registry) == int_val(6)

    def test_empty_block(self, registry):
        """An empty block yields ()."""
        assert run("{}", registry) == UNIT

    def test_shadowing(self, registry):
        """Inner bindings shadow without mutating the outer scope."""
        source = "let x = 1; { let x = 2; x }; x"
        assert run(source, registry) == int_val(1)

    def test_inner_sees_outer(self, registry):
        """Blocks see enclosing bindings."""
        assert run("let x = 10; { x + 1 }", registry) == int_val(11)

    def test_inner_binding_not_visible_outside(self, registry):
        """Bindings made in a block vanish with it."""
        with pytest.raises(NameResolutionError) as exc_info:
            run("{ let inner = 1; }; inner", registry)
        assert exc_info.value.code == "E201"
        assert exc_info.value.name == "inner"

    def test_undefined_identifier(self, registry):
        """Unknown names are E201 with a location."""
        with pytest.raises(NameResolutionError) as exc_info:
            run("let a = 1;\na + missing", registry)
        err = exc_info.value
        assert err.span.start.line == 2
        assert "missing" in err.message
        assert "a + missing" in str(err)


class TestArithmetic:
    """Test integer arithmetic."""

    @pytest.mark.parametrize("source,expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 - 4 - 3", 3),
        ("-5 + +2", -3),
        ("7 / 2", 3),
        ("-7 / 2", -3),
        ("7 / -2", -3),
        ("7 % 3", 1),
        ("-7 % 3", -1),
        ("7 % -3", 1),
        ("--4", 4),
    ])
    def test_operators(self, registry, source, expected):
        """Arithmetic follows truncating division."""
        assert run(source, registry) == int_val(expected)

    @pytest.mark.parametrize("a,b", [(7, 2), (-7, 2), (7, -2), (-7, -2), (10 ** 30 + 7, 13)])
    def test_division_identity(self, registry, a, b):
        """a == (a / b) * b + a % b."""
        source = f"let a = {a}; let b = {b}; (a / b) * b + a % b == a"
        assert run(source, registry) == TRUE

    @pytest.mark.parametrize("source", ["1 / 0", "1 % 0"])
    def test_division_by_zero(self, registry, source):
        """Division and modulo by zero are errors."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E302"

    @pytest.mark.parametrize("source", ['1 + "a"', '"a" + "b"', "true * 2", "-false", "(1,) - 1"])
    def test_non_integer_operands(self, registry, source):
        """Arithmetic needs Integers; there is no coercion."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E301"


class TestComparison:
    """Test equality, ordering and logic."""

    @pytest.mark.parametrize("source,expected", [
        ("1 == 1", True),
        ("1 != 2", True),
        ('"a" == "a"', True),
        ("(1, (2,)) == (1, (2,))", True),
        ("(1, 2) == (2, 1)", False),
        ("1 < 2", True),
        ("2 <= 2", True),
        ("3 > 4", False),
        ('"abc" < "abd"', True),
        ('"b" >= "a"', True),
    ])
    def test_comparisons(self, registry, source, expected):
        """Comparisons produce Booleans."""
        assert run(source, registry) == bool_val(expected)

    @pytest.mark.parametrize("source,expected", [
        ("1 == true", False),
        ('1 == "1"', False),
        ("() == false", False),
        ('1 != "1"', True),
        ("(1, true) == (1, 1)", False),
    ])
    def test_cross_kind_equality(self, registry, source, expected):
        """Values of different kinds are never equal, and comparing them is not an error."""
        assert run(source, registry) == bool_val(expected)

    @pytest.mark.parametrize("source", ['1 < "2"', "true < false", "(1,) < (2,)"])
    def test_ordering_kinds(self, registry, source):
        """Ordering needs two Integers or two Strings."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E301"

    @pytest.mark.parametrize("source,expected", [
        ("true && false", False),
        ("true || false", True),
        ("!true", False),
        ("1 < 2 && 2 < 3", True),
        ("false || !false", True),
    ])
    def test_logic(self, registry, source, expected):
        """Logical operators work on Booleans."""
        assert run(source, registry) == bool_val(expected)

    def test_short_circuit(self, registry):
        """&& and || skip the right operand when the left decides."""
        source = '''
            false && signal::emit("and") == 1;
            true || signal::emit("or") == 1;
            (signal::count("and"), signal::count("or"))
        '''
        assert run(source, registry) == tuple_val([int_val(0), int_val(0)])

    @pytest.mark.parametrize("source", ["1 && true", "false || 0", "!1"])
    def test_logic_needs_booleans(self, registry, source):
        """There is no truthiness."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E301"


class TestTuples:
    """Test tuple construction and indexing."""

    def test_paren_forms(self, registry):
        """(1) is grouping, (1,) and (1, 2) are tuples."""
        assert run("(1)", registry) == int_val(1)
        assert run("(1,)", registry) == tuple_val([int_val(1)])
        assert run("(1, 2)", registry) == tuple_val([int_val(1), int_val(2)])
        assert run("()", registry) == UNIT

    def test_index(self, registry):
        """Tuples are indexed from zero."""
        assert run('let t = (10, "b", (true,)); t[2][0]', registry) == TRUE

    @pytest.mark.parametrize("source", ["(1, 2)[2]", "(1, 2)[-1]", "()[0]"])
    def test_index_out_of_range(self, registry, source):
        """Out-of-range indices are errors."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E303"

    def test_huge_index_out_of_range(self, registry):
        """An index too large to print in full is still a clean E303."""
        source = "(1, 2)[1" + "0" * 5000 + "]"
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        err = exc_info.value
        assert err.code == "E303"
        assert "(5001 digits)" in err.message
        assert err.actual.startswith("100000000000...")

    def test_huge_index_reported_by_run_source(self, registry):
        """run_source captures the huge-index error instead of raising."""
        result = run_source("(1,)[-" + "9" * 5000 + "]", registry=registry)
        assert not result.success
        assert result.error.code == "E303"
        assert "-999999999999..." in result.error_message

    @pytest.mark.parametrize("source", ['"abc"[0]', '(1, 2)["0"]', "(1, 2)[true]"])
    def test_index_kinds(self, registry, source):
        """Only Tuples can be indexed, and only by Integers."""
        with pytest.raises(EvaluationError) as exc_info:
            run(source, registry)
        assert exc_info.value.code == "E301"

    def test_elements_evaluated_left_to_right(self, registry):
        """Tuple elements are evaluated in source order."""
        source = '(signal::emit("n"), signal::emit("n"), signal::emit("n"))'
        assert run(source, registry) == tuple_val([int_val(1), int_val(2), int_val(3)])

    def test_arguments_evaluated_left_to_right(self, registry):
        """Call arguments are evaluated in source order."""
        registry.register_module("host", {
            "pack": NativeCallable("host::pack", lambda args: tuple_val(args)),
        })
        source = 'host::pack(signal::emit("a"), signal::emit("a"), signal::count("a"))'
        assert run(source, registry) == tuple_val([int_val(1), int_val(2), int_val(2)])


class TestCalls:
    """Test native dispatch from interpreted code."""

    def test_qualified_call(self, registry):
        """module::symbol(args) invokes the native function."""
        assert run('signal::register("a"); signal::emit("a")', registry) == int_val(1)

    def test_unknown_module(self, registry):
        """Unknown modules name both the module and the symbol."""
        with pytest.raises(DispatchError) as exc_info:
            run("nope::thing()", registry)
        err = exc_info.value
        assert err.code == "E401"
        assert (err.module, err.symbol) == ("nope", "thing")

    def test_unknown_symbol(self, registry):
        """Unknown symbols name both parts."""
        with pytest.raises(DispatchError) as exc_info:
            run("os::does_not_exist()", registry)
        err = exc_info.value
        assert err.code == "E402"
        assert "os" in err.message and "does_not_exist" in err.message
        assert (err.module, err.symbol) == ("os", "does_not_exist")

    def test_callee_resolved_before_arguments(self, registry):
        """An unknown callee fails before any argument runs."""
        with pytest.raises(DispatchError):
            run('os::does_not_exist(signal::emit("side"))', registry)
        assert run('signal::count("side")', registry) == int_val(0)

    def test_use_alias(self, registry):
        """use binds a bare name to a native function."""
        source = 'use signal::emit as fire; fire("x"); fire("x")'
        assert run(source, registry) == int_val(2)

    def test_use_without_alias(self, registry):
        """Without 'as' the symbol name is bound."""
        assert run('use signal::count; count("never")', registry) == int_val(0)

    def test_use_is_block_scoped(self, registry):
        """Aliases follow block scoping."""
        with pytest.raises(NameResolutionError):
            run('{ use signal::emit as fire; }; fire("x")', registry)

    def test_use_validates_target(self, registry):
        """use fails immediately for unknown targets."""
        with pytest.raises(DispatchError) as exc_info:
            run("use os::nothing;", registry)
        assert exc_info.value.code == "E402"

    def test_call_value_binding(self, registry):
        """Calling a name bound to a value is an error."""
        with pytest.raises(EvaluationError) as exc_info:
            run("let f = 1; f()", registry)
        assert exc_info.value.code == "E304"

    def test_call_unbound_name(self, registry):
        """Calling an unbound bare name is E201."""
        with pytest.raises(NameResolutionError):
            run("ghost()", registry)

    def test_alias_as_value(self, registry):
        """An alias is not a value."""
        with pytest.raises(EvaluationError) as exc_info:
            run("use os::pid; pid", registry)
        assert exc_info.value.code == "E305"

    def test_native_exception_wrapped(self, caplog):
        """Host exceptions become ResourceErrors chained to the cause."""
        def explode(args):
            raise KeyError("boom")

        registry = NativeRegistry()
        registry.register_module("host", {"explode": NativeCallable("host::explode", explode)})
        with caplog.at_level(logging.WARNING, logger="apexlang"):
            with pytest.raises(ResourceError) as exc_info:
                run("host::explode()", registry)
        assert exc_info.value.code == "E501"
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert "host::explode" in caplog.text

    def test_native_must_return_value(self):
        """Natives returning plain Python data are rejected."""
        registry = NativeRegistry()
        registry.register_module("host", {"raw": NativeCallable("host::raw", lambda args: 42)})
        with pytest.raises(ResourceError) as exc_info:
            run("host::raw()", registry)
        assert exc_info.value.code == "E501"

    def test_bound_method_native(self):
        """Any Python callable can back a native function."""
        class Counter:
            def __init__(self):
                self.calls = 0

            def bump(self, args):
                self.calls += 1
                return int_val(self.calls)

        counter = Counter()
        registry = NativeRegistry()
        registry.register_module("c", {"bump": NativeCallable("c::bump", counter.bump)})
        assert run("c::bump(); c::bump()", registry) == int_val(2)
        assert counter.calls == 2


def nested_sum(terms):
    """`1 + (1 + (... + 1))` with `terms` ones, nested to the right."""
    return "1 + (" * (terms - 1) + "1" + ")" * (terms - 1)


class TestDepthGuard:
    """Test the evaluation depth limit."""

    def test_depth_exceeded(self, registry):
        """Deep nesting beyond max_depth is a ResourceError."""
        with pytest.raises(ResourceError) as exc_info:
            run(nested_sum(60), registry, ApexConfig(max_depth=20))
        assert exc_info.value.code == "E503"

    def test_depth_within_limit(self, registry):
        """Programs under the limit run normally."""
        assert run(nested_sum(60), registry, ApexConfig(max_depth=200)) == int_val(60)

    def test_nested_blocks_count(self, registry):
        """Blocks count toward the depth limit."""
        source = "{" * 30 + "1" + "}" * 30
        with pytest.raises(ResourceError):
            run(source, registry, ApexConfig(max_depth=10))

    def test_flat_sum_is_not_nesting(self, registry):
        """A long left-associative chain evaluates under the default limit."""
        assert run(" + ".join(["1"] * 1000), registry) == int_val(1000)

    def test_flat_chain_with_small_limit(self, registry):
        """Operator chains count as one level however long they are."""
        source = " - ".join(["1000"] + ["1"] * 300)
        assert run(source, registry, ApexConfig(max_depth=5)) == int_val(700)

    def test_flat_logical_chain(self, registry):
        """Short-circuiting still applies inside long chains."""
        source = " && ".join(["true"] * 500) + ' && false && signal::emit("x") == 1'
        assert run(source, registry) == FALSE
        assert run('signal::count("x")', registry) == int_val(0)

    def test_mixed_precedence_chain(self, registry):
        """Folding the chain keeps precedence and associativity."""
        assert run("2 * 3 + 4 * 5 - 10 / 3 % 2 - 1", registry) == int_val(24)


class TestRunSource:
    """Test the result-object entry point."""

    def test_success(self, registry):
        """Successful runs carry the value."""
        result = run_source("1 + 1", registry=registry)
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.value == int_val(2)
        assert result.error is None

    @pytest.mark.parametrize("source,error_type", [
        ('"open', LexerError),
        ("let = 1", ParserError),
        ("x", NameResolutionError),
        ("1 / 0", EvaluationError),
    ])
    def test_failure(self, registry, source, error_type):
        """Failures from every stage are captured."""
        result = run_source(source, registry=registry)
        assert not result.success
        assert isinstance(result.error, error_type)
        assert isinstance(result.error, ApexError)
        assert result.error_message == str(result.error)

    def test_default_registry(self):
        """Without a registry the process-wide standard one is used."""
        assert evaluate_source("os::pointer_width() > 0") == TRUE
