#!/usr/bin/env python3
"""
CLI for the apexlang interpreter.

Usage:
    python -m apexlang run FILE
    python -m apexlang eval SOURCE
    python -m apexlang tokens FILE
    python -m apexlang ast FILE
    python -m apexlang dot FILE
    python -m apexlang modules

Examples:
    # Evaluate a program and print its final value
    python -m apexlang run program.apex

    # Evaluate inline source
    python -m apexlang eval 'let x = 99999999999999999999; x + 1'

    # Render the syntax tree with Graphviz
    python -m apexlang dot program.apex | dot -Tpng -o ast.png

Global options:
    --config PATH   YAML settings (default: $APEXLANG_CONFIG if set)
    -v, --verbose   debug logging on stderr
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ApexConfig, ConfigError, load_config, config_from_env
from .errors import ApexError


def read_source(path_str: str) -> str:
    """Read a source file, raising FileNotFoundError with a clear message."""
    source_path = Path(path_str)
    if not source_path.exists():
        raise FileNotFoundError(f"File not found: {source_path}")
    return source_path.read_text(encoding="utf-8")


def _evaluate(source: str, filename: str, config: ApexConfig) -> int:
    from .runtime import Interpreter, format_value
    from .parser import parse_source

    program = parse_source(source, filename)
    interpreter = Interpreter(config.build_registry(), config)
    print(format_value(interpreter.evaluate_program(program, source)))
    return 0


def cmd_run(args, config: ApexConfig) -> int:
    """Run a source file and print its final value."""
    return _evaluate(read_source(args.file), args.file, config)


def cmd_eval(args, config: ApexConfig) -> int:
    """Evaluate inline source and print its final value."""
    return _evaluate(args.source, "<eval>", config)


def cmd_tokens(args, config: ApexConfig) -> int:
    """Print the token stream of a source file."""
    from .lexer import tokenize

    for token in tokenize(read_source(args.file), args.file):
        loc = token.span.start
        print(f"{loc.line}:{loc.column}\t{token.type.name}\t{token.lexeme!r}")
    return 0


def cmd_ast(args, config: ApexConfig) -> int:
    """Print the syntax tree of a source file."""
    from .ast import format_ast
    from .parser import parse_source

    print(format_ast(parse_source(read_source(args.file), args.file)))
    return 0


def cmd_dot(args, config: ApexConfig) -> int:
    """Print the syntax tree of a source file as a DOT graph."""
    from .visualize import visualize_source

    sys.stdout.write(visualize_source(read_source(args.file), args.file))
    return 0


def cmd_modules(args, config: ApexConfig) -> int:
    """List the native functions available to programs."""
    for path in config.build_registry().symbols():
        print(path)
    return 0


COMMANDS = {
    'run': cmd_run,
    'eval': cmd_eval,
    'tokens': cmd_tokens,
    'ast': cmd_ast,
    'dot': cmd_dot,
    'modules': cmd_modules,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m apexlang',
        description='apexlang interpreter',
    )
    parser.add_argument('--config', metavar='PATH',
                        help='YAML configuration file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    run_parser = subparsers.add_parser('run', help='Run a source file')
    run_parser.add_argument('file', help='apexlang source file')

    eval_parser = subparsers.add_parser('eval', help='Evaluate inline source')
    eval_parser.add_argument('source', help='apexlang source text')

    tokens_parser = subparsers.add_parser('tokens', help='Dump the token stream')
    tokens_parser.add_argument('file', help='apexlang source file')

    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree')
    ast_parser.add_argument('file', help='apexlang source file')

    dot_parser = subparsers.add_parser('dot', help='Print the syntax tree as Graphviz DOT')
    dot_parser.add_argument('file', help='apexlang source file')

    subparsers.add_parser('modules', help='List native functions')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else config_from_env()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return COMMANDS[args.action](args, config)
    except ApexError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
