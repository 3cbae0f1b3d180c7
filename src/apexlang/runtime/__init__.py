"""
apexlang runtime - tree-walking interpreter and native function bridge.

This module provides:
- Value: Immutable runtime values (Integer, String, Boolean, Tuple)
- Environment: Lexical scope management
- NativeRegistry: module::symbol dispatch to host functions
- Interpreter: Evaluates parsed programs
"""

from .values import (
    Value,
    ValueKind,
    UNIT,
    TRUE,
    FALSE,
    int_val,
    string_val,
    bool_val,
    tuple_val,
    values_equal,
    wrap_value,
    unwrap_value,
    format_value,
)

from .natives import (
    NativeCallable,
    NativeRegistry,
    get_default_registry,
    expect_arity,
    expect_string_arg,
    expect_int_arg,
    expect_bool_arg,
    expect_tuple_arg,
)

from .context import (
    Scope,
    Environment,
    create_environment,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    evaluate_source,
    run_source,
)

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'UNIT',
    'TRUE',
    'FALSE',
    'int_val',
    'string_val',
    'bool_val',
    'tuple_val',
    'values_equal',
    'wrap_value',
    'unwrap_value',
    'format_value',

    # Natives
    'NativeCallable',
    'NativeRegistry',
    'get_default_registry',
    'expect_arity',
    'expect_string_arg',
    'expect_int_arg',
    'expect_bool_arg',
    'expect_tuple_arg',

    # Context
    'Scope',
    'Environment',
    'create_environment',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'evaluate_source',
    'run_source',
]
