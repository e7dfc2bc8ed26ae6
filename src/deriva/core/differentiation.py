"""Symbolic differentiation over the arithmetic fragment.

``derive`` maps an expression and a variable name to a new expression for
the derivative. It is a pure structural recursion: it never touches an
environment and never simplifies its output (see ``simplify``).

Supported nodes and their rules:

    c        -> 0
    x        -> 1 if x is the variable, else 0
    u + v    -> u' + v'
    u - v    -> u' - v'
    -u       -> -u'
    u * v    -> u' * v + u * v'      (product rule)

Anything else raises UnsupportedDerivativeError.
"""

from __future__ import annotations

import logging

from deriva.core.errors import UnsupportedDerivativeError
from deriva.core.expressions import (
    Add,
    Constant,
    Expression,
    Multiply,
    Negate,
    Sub,
    Variable,
)

logger = logging.getLogger(__name__)


def derive(expr: Expression, var: str | Variable) -> Expression:
    """Differentiate expr with respect to var.

    Args:
        expr: Expression in the arithmetic fragment.
        var: Variable name (or Variable) to differentiate by.

    Returns:
        The raw, unsimplified derivative.

    Raises:
        UnsupportedDerivativeError: If expr contains a node outside the fragment.

    Example:
        >>> x = Variable("x")
        >>> str(derive(x * x, "x"))
        '1 * x + x * 1'
    """
    var_name = var.name if isinstance(var, Variable) else var
    result = _derive(expr, var_name)
    logger.debug("d/d%s (%s) = %s", var_name, expr, result)
    return result


def _derive(expr: Expression, var_name: str) -> Expression:
    match expr:
        case Constant():
            return Constant(0)
        case Variable(name=name):
            return Constant(1) if name == var_name else Constant(0)
        case Add(left, right):
            return Add(_derive(left, var_name), _derive(right, var_name))
        case Sub(left, right):
            return Sub(_derive(left, var_name), _derive(right, var_name))
        case Negate(operand):
            return Negate(_derive(operand, var_name))
        case Multiply(left, right):
            return Add(
                Multiply(_derive(left, var_name), right),
                Multiply(left, _derive(right, var_name)),
            )
        case _:
            raise UnsupportedDerivativeError(expr, var_name)
