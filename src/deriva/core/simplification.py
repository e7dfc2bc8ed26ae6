"""Bottom-up algebraic simplification.

``simplify`` rewrites an expression into a reduced, canonical form. Children
are simplified first; then the rules for the parent node fire in order:

Add:
    0 + e -> e,  e + 0 -> e
    a + b -> (a+b)                          constant folding
    c1*x + c2*x -> (c1+c2)*x                like terms, either operand order
    x + x -> 2*x

Sub:
    e - 0 -> e,  0 - e -> -e
    a - b -> (a-b)
    c1*x - c2*x -> (c1-c2)*x

Negate:
    -(c) -> (-c)   (so -0 -> 0)
    -(-e) -> e

Multiply:
    0*e -> 0,  e*0 -> 0,  1*e -> e,  e*1 -> e
    a * b -> (a*b)
    a * (b*e) -> (a*b)*e                    nested coefficients, either side

A combined coefficient of 0 collapses to 0 and of 1 to the bare term.

Known limitation: like terms only merge when they are the two direct
operands of one node, so ``(2*x + 1) + 3*x`` is left as is.
"""

from __future__ import annotations

import logging

from deriva.core.expressions import (
    Add,
    Application,
    Constant,
    Expression,
    Multiply,
    Negate,
    Sub,
    Variable,
)

logger = logging.getLogger(__name__)


def simplify(expr: Expression) -> Expression:
    """Simplify expr.

    The result is stable: ``simplify(simplify(e)) == simplify(e)``.

    Raises:
        IntegerOverflowError: If constant folding leaves the 32-bit range.

    Example:
        >>> x = Variable("x")
        >>> str(simplify(1 * x + x * 1))
        '2 * x'
    """
    result = _simplify(expr)
    logger.debug("simplify(%s) = %s", expr, result)
    return result


def _simplify(expr: Expression) -> Expression:
    match expr:
        case Add(left, right):
            return _simplify_add(_simplify(left), _simplify(right))
        case Sub(left, right):
            return _simplify_sub(_simplify(left), _simplify(right))
        case Negate(operand):
            return _simplify_negate(_simplify(operand))
        case Multiply(left, right):
            return _simplify_multiply(_simplify(left), _simplify(right))
        case Application(function, arguments):
            return Application(
                _simplify(function), tuple(_simplify(a) for a in arguments)
            )
        case _:
            return expr


def _simplify_add(left: Expression, right: Expression) -> Expression:
    match left, right:
        case Constant(0), _:
            return right
        case _, Constant(0):
            return left
        case Constant(a), Constant(b):
            return Constant(a + b)

    combined = _combine_like_terms(left, right, sign=1)
    if combined is not None:
        return combined
    return Add(left, right)


def _simplify_sub(left: Expression, right: Expression) -> Expression:
    match left, right:
        case _, Constant(0):
            return left
        case Constant(0), _:
            return _simplify_negate(right)
        case Constant(a), Constant(b):
            return Constant(a - b)

    combined = _combine_like_terms(left, right, sign=-1)
    if combined is not None:
        return combined
    return Sub(left, right)


def _simplify_negate(operand: Expression) -> Expression:
    match operand:
        case Constant(c):
            return Constant(-c)
        case Negate(inner):
            return _simplify(inner)
        case _:
            return Negate(operand)


def _simplify_multiply(left: Expression, right: Expression) -> Expression:
    match left, right:
        case (Constant(0), _) | (_, Constant(0)):
            return Constant(0)
        case Constant(1), _:
            return right
        case _, Constant(1):
            return left
        case Constant(a), Constant(b):
            return Constant(a * b)

    if isinstance(left, Constant):
        nested = _split_coefficient(right)
        if nested is not None:
            return _scaled(left.value * nested[0], nested[1])
    if isinstance(right, Constant):
        nested = _split_coefficient(left)
        if nested is not None:
            return _scaled(right.value * nested[0], nested[1])
    return Multiply(left, right)


def _combine_like_terms(
    left: Expression, right: Expression, sign: int
) -> Expression | None:
    """Merge ``c1*x (+|-) c2*x``; None when the operands are not like terms."""
    lhs = _split_term(left)
    rhs = _split_term(right)
    if lhs is None or rhs is None:
        return None
    (a, x), (b, y) = lhs, rhs
    if x != y:
        return None
    return _scaled(a + sign * b, x)


def _split_term(expr: Expression) -> tuple[int, Variable] | None:
    """Split ``c*x``, ``x*c`` or a bare ``x`` into (c, x)."""
    match expr:
        case Variable():
            return 1, expr
        case Multiply(Constant(c), Variable() as var) | Multiply(
            Variable() as var, Constant(c)
        ):
            return c, var
    return None


def _split_coefficient(expr: Expression) -> tuple[int, Expression] | None:
    """Split ``c*e`` or ``e*c`` into (c, e)."""
    match expr:
        case Multiply(Constant(c), term) | Multiply(term, Constant(c)):
            return c, term
    return None


def _scaled(coefficient: int, term: Expression) -> Expression:
    if coefficient == 0:
        return Constant(0)
    if coefficient == 1:
        return term
    return Multiply(Constant(coefficient), term)
