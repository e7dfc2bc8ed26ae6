"""Compile-time and run-time environments.

Both environments are a stack of scopes. Lookups search from the innermost
scope outwards; declarations always go into the innermost scope. A fresh
environment starts with a single global scope.

Example:
    >>> env = ExecutionEnvironment.from_mapping({"x": 2})
    >>> with env.scope():
    ...     env.declare("x", Constant(5))
    ...     env.lookup("x")
    Constant(value=5)
    >>> env.lookup("x")
    Constant(value=2)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Generic, Iterator, Mapping, TypeVar

from deriva.core.errors import (
    AlreadyDeclaredVariableError,
    ScopeError,
    UndeclaredVariableError,
)

if TYPE_CHECKING:
    from deriva.core.expressions import Value
    from deriva.core.types import Type

T = TypeVar("T")


class _ScopedEnvironment(Generic[T]):
    """Stack of name -> binding scopes."""

    __slots__ = ("_scopes",)

    def __init__(self) -> None:
        self._scopes: list[dict[str, T]] = [{}]

    @property
    def depth(self) -> int:
        """Number of active scopes (the global scope counts)."""
        return len(self._scopes)

    def push_scope(self) -> None:
        self._scopes.append({})

    def pop_scope(self) -> None:
        if len(self._scopes) == 1:
            raise ScopeError()
        self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[_ScopedEnvironment[T]]:
        """Push a scope for the duration of a ``with`` block."""
        self.push_scope()
        try:
            yield self
        finally:
            self.pop_scope()

    def lookup(self, name: str) -> T:
        """Return the innermost binding for name.

        Raises:
            UndeclaredVariableError: If no active scope binds name.
        """
        for bindings in reversed(self._scopes):
            if name in bindings:
                return bindings[name]
        raise UndeclaredVariableError(name, len(self._scopes))

    def declare(self, name: str, binding: T) -> None:
        """Bind name in the innermost scope.

        Raises:
            AlreadyDeclaredVariableError: If the innermost scope already binds name.
        """
        current = self._scopes[-1]
        if name in current:
            raise AlreadyDeclaredVariableError(name)
        current[name] = binding

    def is_declared(self, name: str) -> bool:
        return any(name in bindings for bindings in self._scopes)

    def names(self) -> set[str]:
        """All names visible from the innermost scope."""
        visible: set[str] = set()
        for bindings in self._scopes:
            visible.update(bindings)
        return visible

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_declared(name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(depth={self.depth}, names={sorted(self.names())})"


class CompileEnvironment(_ScopedEnvironment["Type"]):
    """Maps identifiers to their declared types."""

    __slots__ = ()

    @classmethod
    def from_mapping(cls, types: Mapping[str, Type]) -> CompileEnvironment:
        env = cls()
        for name, declared in types.items():
            env.declare(name, declared)
        return env


class ExecutionEnvironment(_ScopedEnvironment["Value"]):
    """Maps identifiers to run-time values."""

    __slots__ = ()

    @classmethod
    def from_mapping(cls, values: Mapping[str, Value | int | bool]) -> ExecutionEnvironment:
        """Build an environment with one global scope.

        Plain ``int`` and ``bool`` values are wrapped in Constant and
        BooleanConstant respectively.
        """
        from deriva.core.expressions import as_value

        env = cls()
        for name, value in values.items():
            env.declare(name, as_value(value))
        return env
