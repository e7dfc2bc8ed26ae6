"""Derivative and gradient expression nodes.

These nodes compose the differentiation and simplification engines with
ordinary evaluation:

    Derivative(f, x).evaluate(env) == simplify(derive(f, "x")).evaluate(env)

A Gradient evaluates one Derivative per variable and collects the results
into a Vector, preserving the order of the variables.

Example:
    >>> x = Variable("x")
    >>> env = ExecutionEnvironment.from_mapping({"x": 2})
    >>> Derivative(x * x + 3, x).evaluate(env)
    Constant(value=4)
    >>> Gradient(x * x + 3, (x,)).evaluate(env)
    Vector(elements=(Constant(value=4),))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from deriva.core.differentiation import derive
from deriva.core.expressions import Expression, FunctionValue, Variable, Vector
from deriva.core.reduction import Reduction, attempt
from deriva.core.simplification import simplify
from deriva.core.types import INTEGER, FunctionType, VectorType

if TYPE_CHECKING:
    from deriva.core.environments import CompileEnvironment, ExecutionEnvironment
    from deriva.core.expressions import Value
    from deriva.core.types import Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Derivative(Expression):
    """The derivative of a function with respect to one variable.

    ``function`` may be an arithmetic expression, a FunctionValue, or a
    Variable bound to a FunctionValue in the execution environment. In the
    last two cases the function's body is differentiated.

    Args:
        function: The function to differentiate.
        variable: The variable to differentiate by.
    """

    function: Expression
    variable: Variable

    def _body(self, env: ExecutionEnvironment | None) -> Expression:
        function = self.function
        if (
            isinstance(function, Variable)
            and env is not None
            and env.is_declared(function.name)
        ):
            bound = env.lookup(function.name)
            if isinstance(bound, FunctionValue):
                function = bound
        if isinstance(function, FunctionValue):
            return function.body
        return function

    def symbolic(self, env: ExecutionEnvironment | None = None) -> Expression:
        """Return the simplified derivative tree without evaluating it.

        A Variable function is only resolved to a bound FunctionValue when env
        is given and declares it. Without env the name is differentiated as an
        ordinary variable, so ``Derivative(Variable("f"), x).symbolic()`` is 0
        even if ``f`` names a function elsewhere.

        Raises:
            UnsupportedDerivativeError: If the body leaves the arithmetic fragment.
        """
        body = self._body(env)
        result = simplify(derive(body, self.variable.name))
        logger.debug("derivative of %s by %s: %s", body, self.variable, result)
        return result

    def as_function(self, env: ExecutionEnvironment | None = None) -> FunctionValue:
        """Return the derivative as a one-parameter function of the variable."""
        return FunctionValue((self.variable,), self.symbolic(env))

    def evaluate(self, env: ExecutionEnvironment) -> Value:
        return self.symbolic(env).evaluate(env)

    def type_check(self, env: CompileEnvironment) -> bool:
        """Well typed iff the function is, and it produces an integer."""
        if not self.function.type_check(env):
            return False
        function_type = self.function.infer_type(env)
        if isinstance(function_type, FunctionType):
            return function_type.codomain == INTEGER
        return function_type == INTEGER

    def infer_type(self, env: CompileEnvironment) -> Type:
        return FunctionType((INTEGER,), INTEGER)

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return attempt(lambda: self.evaluate(env))

    def get_variables(self) -> set[Variable]:
        return self.function.get_variables()

    def __str__(self) -> str:
        return f"derive({self.function} by {self.variable})"


@dataclass(frozen=True, slots=True)
class Gradient(Expression):
    """The ordered vector of partial derivatives of a function.

    Args:
        function: The function to differentiate.
        variables: Variables to differentiate by, in coordinate order.
    """

    function: Expression
    variables: tuple[Variable, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", tuple(self.variables))

    def partials(self) -> tuple[Derivative, ...]:
        """One Derivative node per variable, in order."""
        return tuple(Derivative(self.function, var) for var in self.variables)

    def evaluate(self, env: ExecutionEnvironment) -> Vector:
        return Vector(tuple(partial.evaluate(env) for partial in self.partials()))

    def type_check(self, env: CompileEnvironment) -> bool:
        if not self.function.type_check(env):
            return False
        return isinstance(self.function.infer_type(env), VectorType)

    def infer_type(self, env: CompileEnvironment) -> Type:
        return VectorType()

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        # Gradients are not reduced further
        return Reduction.ok(self)

    def get_variables(self) -> set[Variable]:
        return self.function.get_variables()

    def __str__(self) -> str:
        names = ", ".join(var.name for var in self.variables)
        return f"gradient({self.function} by [{names}])"
