"""Exception hierarchy for deriva.

Every error derives from DerivaError and, where it makes sense, from the
closest builtin exception so callers can catch with either.
"""

from __future__ import annotations

from typing import Any


class DerivaError(Exception):
    """Base class for all deriva errors."""


def _with_suggestion(message: str, suggestion: str | None) -> str:
    if suggestion:
        return f"{message}. Try: {suggestion}"
    return message


# =============================================================================
# Environment Errors
# =============================================================================


class EnvironmentLookupError(DerivaError):
    """Base class for errors raised by compile/execution environments.

    Best-effort reduction swallows exactly this family of errors.
    """


class UndeclaredVariableError(EnvironmentLookupError, KeyError):
    """Raised when a name is not bound in any active scope.

    Args:
        name: The identifier that was looked up.
        scopes: Number of scopes that were searched.
    """

    def __init__(self, name: str, scopes: int | None = None) -> None:
        self.name = name
        self.scopes = scopes
        message = f"Undeclared variable '{name}'"
        if scopes is not None:
            message += f" (searched {scopes} scope{'s' if scopes != 1 else ''})"
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return self.message


class AlreadyDeclaredVariableError(EnvironmentLookupError, ValueError):
    """Raised when a name is declared twice in the same scope."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            _with_suggestion(
                f"Variable '{name}' is already declared in the current scope",
                "push a new scope before shadowing it",
            )
        )


class ScopeError(DerivaError, RuntimeError):
    """Raised when the scope stack discipline is broken."""

    def __init__(self, message: str = "Cannot pop the global scope") -> None:
        super().__init__(message)


# =============================================================================
# Expression Errors
# =============================================================================


class UnsupportedDerivativeError(DerivaError, TypeError):
    """Raised when differentiating a node outside the arithmetic fragment.

    This is fatal: it is never recovered from inside the library.

    Args:
        node: The expression that could not be differentiated.
        variable: Name of the differentiation variable.
    """

    def __init__(self, node: Any, variable: str | None = None) -> None:
        self.node = node
        self.variable = variable
        kind = type(node).__name__
        message = f"Derivative is not defined for {kind} node '{node}'"
        if variable is not None:
            message += f" with respect to '{variable}'"
        super().__init__(
            _with_suggestion(
                message,
                "restrict the function to constants, variables, +, -, unary - and *",
            )
        )


class InvalidOperationError(DerivaError, TypeError):
    """Raised when an operation receives a value of the wrong kind.

    Args:
        operation: Name of the operation (e.g. "addition").
        operand: The offending value.
        reason: Optional explanation.
    """

    def __init__(self, operation: str, operand: Any, reason: str | None = None) -> None:
        self.operation = operation
        self.operand = operand
        message = (
            f"Invalid operation: {operation} cannot use "
            f"{type(operand).__name__} value '{operand}'"
        )
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ArityError(DerivaError, TypeError):
    """Raised when a function is applied to the wrong number of arguments."""

    def __init__(self, function: Any, expected: int, got: int) -> None:
        self.function = function
        self.expected = expected
        self.got = got
        super().__init__(
            f"Function '{function}' expects {expected} argument"
            f"{'s' if expected != 1 else ''}, got {got}"
        )


class IntegerOverflowError(DerivaError, OverflowError):
    """Raised when an integer result leaves the supported range.

    Args:
        value: The out-of-range value.
        lower: Smallest representable value.
        upper: Largest representable value.
    """

    def __init__(self, value: int, lower: int, upper: int) -> None:
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Integer {value} is outside the 32-bit range [{lower}, {upper}]"
        )
