"""
The `os` native module: process and environment introspection.

    os::cwd()            -> String, absolute working directory
    os::temp_dir()       -> String, absolute temporary directory
    os::env_var(name)    -> (Boolean found, String value)
    os::pointer_width()  -> Integer, pointer size in bits
    os::pid()            -> Integer, current process id
    os::args()           -> Tuple of Strings, the host's argv
"""

import os
import struct
import sys
import tempfile
from typing import Dict, Sequence

from ..errors import error_native_failure
from ..runtime.natives import NativeCallable, NativeRegistry, expect_arity, expect_string_arg
from ..runtime.values import Value, int_val, string_val, bool_val, tuple_val

MODULE_NAME = "os"


def cwd(args: Sequence[Value]) -> Value:
    expect_arity(args, 0, "os::cwd")
    try:
        path = os.getcwd()
    except OSError as e:
        raise error_native_failure("os::cwd", f"failed to fetch current directory: {e}") from e
    return string_val(path)


def temp_dir(args: Sequence[Value]) -> Value:
    expect_arity(args, 0, "os::temp_dir")
    return string_val(os.path.abspath(tempfile.gettempdir()))


def env_var(args: Sequence[Value]) -> Value:
    """A missing variable is reported through the flag, not as an error."""
    expect_arity(args, 1, "os::env_var")
    name = expect_string_arg(args, 0, "os::env_var")
    value = os.environ.get(name)
    if value is None:
        return tuple_val((bool_val(False), string_val("")))
    return tuple_val((bool_val(True), string_val(value)))


def pointer_width(args: Sequence[Value]) -> Value:
    expect_arity(args, 0, "os::pointer_width")
    return int_val(struct.calcsize("P") * 8)


def pid(args: Sequence[Value]) -> Value:
    expect_arity(args, 0, "os::pid")
    return int_val(os.getpid())


def argv(args: Sequence[Value]) -> Value:
    expect_arity(args, 0, "os::args")
    return tuple_val(string_val(arg) for arg in sys.argv)


_FUNCTIONS = {
    "cwd": cwd,
    "temp_dir": temp_dir,
    "env_var": env_var,
    "pointer_width": pointer_width,
    "pid": pid,
    "args": argv,
}


def build_module() -> Dict[str, NativeCallable]:
    """Symbol table for the `os` module."""
    return {
        symbol: NativeCallable(f"{MODULE_NAME}::{symbol}", function, (function.__doc__ or "").strip())
        for symbol, function in _FUNCTIONS.items()
    }


def register(registry: NativeRegistry) -> None:
    registry.register_module(MODULE_NAME, build_module())
