"""
apexlang - a small interpreted language with a native function bridge.

This module provides:
- Lexer: Tokenizes source code
- Parser: Builds an AST from tokens
- Interpreter: Evaluates programs to Values with arbitrary-precision integers
- NativeRegistry: Dispatches `module::symbol(...)` calls to host functions
- Visualizer: Renders syntax trees as Graphviz DOT

Usage:
    from apexlang import evaluate_source, NativeRegistry

    registry = NativeRegistry.with_standard_library()
    value = evaluate_source('''
        signal::register("ready");
        signal::emit("ready");
        (signal::count("ready"), os::pointer_width())
    ''', registry=registry)
    print(value)   # (1, 64)
"""

import logging

# runtime is imported first: the AST module depends on runtime.values
from .runtime import (
    Value,
    ValueKind,
    UNIT,
    int_val,
    string_val,
    bool_val,
    tuple_val,
    format_value,
    NativeCallable,
    NativeRegistry,
    get_default_registry,
    expect_arity,
    expect_string_arg,
    expect_int_arg,
    expect_bool_arg,
    expect_tuple_arg,
    Environment,
    Interpreter,
    ExecutionResult,
    evaluate_source,
    run_source,
)

from .tokens import (
    Token,
    TokenType,
    TokenCategory,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    AstNode,
    AstVisitor,
    Program,
    print_ast,
    format_ast,
)

from .errors import (
    Diagnostic,
    ErrorSeverity,
    ApexError,
    LexerError,
    ParserError,
    NameResolutionError,
    EvaluationError,
    DispatchError,
    ArgumentError,
    ResourceError,
)

from .config import (
    ApexConfig,
    ConfigError,
    load_config,
    config_from_env,
)

from .stdlib import (
    STANDARD_MODULES,
    SignalTable,
)

from .visualize import (
    program_to_dot,
    visualize_source,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'UNIT',
    'int_val',
    'string_val',
    'bool_val',
    'tuple_val',
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
    'STANDARD_MODULES',
    'SignalTable',

    # Interpreter
    'Environment',
    'Interpreter',
    'ExecutionResult',
    'evaluate_source',
    'run_source',

    # Tokens / lexer / parser
    'Token',
    'TokenType',
    'TokenCategory',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    'parse_source',

    # AST
    'AstNode',
    'AstVisitor',
    'Program',
    'print_ast',
    'format_ast',

    # Errors
    'Diagnostic',
    'ErrorSeverity',
    'ApexError',
    'LexerError',
    'ParserError',
    'NameResolutionError',
    'EvaluationError',
    'DispatchError',
    'ArgumentError',
    'ResourceError',

    # Config
    'ApexConfig',
    'ConfigError',
    'load_config',
    'config_from_env',

    # Visualizer
    'program_to_dot',
    'visualize_source',
]
