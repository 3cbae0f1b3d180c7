"""
Execution environment for the apexlang interpreter.

Manages the lexical scope chain. Each scope holds value bindings and the
native function aliases brought in by `use` statements.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union
from contextlib import contextmanager

from .values import Value
from .natives import NativeCallable

logger = logging.getLogger(__name__)

Binding = Union[Value, NativeCallable]


@dataclass
class Scope:
    """
    A single scope containing name bindings.

    Scopes form a chain via the `parent` field for lexical scoping.
    """
    variables: Dict[str, Binding] = field(default_factory=dict)
    parent: Optional["Scope"] = None

    def get(self, name: str) -> Optional[Binding]:
        """Look up a name in this scope or parent scopes."""
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def set(self, name: str, value: Binding) -> None:
        """Bind a name in this scope (shadowing parent if exists)."""
        self.variables[name] = value

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth


@dataclass
class Environment:
    """
    The scope chain for one interpreter run.

    Bindings always go to the innermost scope, so a nested block can shadow
    a name without touching the outer binding.
    """
    current_scope: Scope = field(default_factory=Scope)

    def lookup(self, name: str) -> Optional[Binding]:
        """Look up a name in the current scope chain."""
        return self.current_scope.get(name)

    def get_variable(self, name: str) -> Optional[Value]:
        """Look up a value binding, ignoring native aliases."""
        found = self.current_scope.get(name)
        return found if isinstance(found, Value) else None

    def set_variable(self, name: str, value: Value) -> None:
        """Define a variable in the current scope."""
        self.current_scope.set(name, value)

    def set_alias(self, name: str, callable_: NativeCallable) -> None:
        """Bind a bare name to a native function in the current scope."""
        self.current_scope.set(name, callable_)

    @property
    def depth(self) -> int:
        """Number of scopes above the global one."""
        return self.current_scope.depth

    @contextmanager
    def new_scope(self):
        """
        Context manager to create a new nested scope.

        Usage:
            with env.new_scope():
                # bindings made here are local to this scope
                env.set_variable("x", int_val(1))

        The scope is popped on normal exit and when an error propagates.
        """
        old_scope = self.current_scope
        self.current_scope = Scope(parent=old_scope)
        logger.debug("push scope (depth %d)", self.current_scope.depth)
        try:
            yield self.current_scope
        finally:
            self.current_scope = old_scope
            logger.debug("pop scope (depth %d)", old_scope.depth)


def create_environment(bindings: Optional[Dict[str, Value]] = None) -> Environment:
    """
    Create a fresh environment, optionally pre-populated.

    Args:
        bindings: Values to bind in the global scope

    Returns:
        A new Environment with a single global scope
    """
    env = Environment()
    for name, value in (bindings or {}).items():
        env.set_variable(name, value)
    return env
