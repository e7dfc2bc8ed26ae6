"""Explicit result of a best-effort reduction step.

Reduction never raises for environment errors. Instead each step returns a
Reduction that is either ``ok`` (carrying the reduced expression) or failed
(carrying the environment error). ``Expression.reduce_to_normal_form`` turns a
failure into the original, unreduced node; composite nodes reduce each child
that way, so one failing leaf never undoes the folding of its siblings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from deriva.core.errors import EnvironmentLookupError

if TYPE_CHECKING:
    from deriva.core.expressions import Expression


@dataclass(frozen=True)
class Reduction:
    """Outcome of reducing one expression."""

    expression: Expression | None = None
    error: EnvironmentLookupError | None = None

    @classmethod
    def ok(cls, expression: Expression) -> Reduction:
        return cls(expression=expression)

    @classmethod
    def failed(cls, error: EnvironmentLookupError) -> Reduction:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, fallback: Expression) -> Expression:
        if self.error is not None:
            return fallback
        assert self.expression is not None
        return self.expression


def attempt(step: Callable[[], Expression]) -> Reduction:
    """Run step, capturing environment errors as a failed Reduction.

    Any other exception propagates.
    """
    try:
        return Reduction.ok(step())
    except EnvironmentLookupError as exc:
        return Reduction.failed(exc)
