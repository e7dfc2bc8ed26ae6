"""Expression nodes for the integer arithmetic fragment.

Every node is an immutable dataclass implementing the same contract:

- ``evaluate(env)``: compute a Value against an ExecutionEnvironment.
- ``type_check(env)``: True iff every sub-expression is well typed.
- ``infer_type(env)``: the static type of the node.
- ``reduce_to_normal_form(env)``: best-effort partial evaluation that never
  fails on environment errors.

Values (Constant, BooleanConstant, FunctionValue, Vector) are themselves
expressions that evaluate and reduce to themselves.

Example:
    >>> x = Variable("x")
    >>> expr = x * x + 3
    >>> str(expr)
    'x * x + 3'
    >>> expr.evaluate(ExecutionEnvironment.from_mapping({"x": 2}))
    Constant(value=7)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Iterator, Union

import numpy as np

from deriva.core.errors import (
    ArityError,
    IntegerOverflowError,
    InvalidOperationError,
)
from deriva.core.reduction import Reduction, attempt
from deriva.core.types import BOOLEAN, INTEGER, FunctionType, VectorType

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from deriva.core.environments import CompileEnvironment, ExecutionEnvironment
    from deriva.core.types import Type

logger = logging.getLogger(__name__)

_INT32 = np.iinfo(np.int32)
INT_MIN = int(_INT32.min)
INT_MAX = int(_INT32.max)

# Rendering precedence
_PREC_SUM = 1
_PREC_PRODUCT = 2
_PREC_UNARY = 3
_PREC_ATOM = 4


def check_int(value: int) -> int:
    """Return value if it fits in a signed 32-bit integer.

    Raises:
        IntegerOverflowError: If value is out of range.
    """
    if value < INT_MIN or value > INT_MAX:
        raise IntegerOverflowError(value, INT_MIN, INT_MAX)
    return value


class Expression(ABC):
    """Base class for all expression nodes."""

    __slots__ = ()

    precedence: ClassVar[int] = _PREC_ATOM

    @abstractmethod
    def evaluate(self, env: ExecutionEnvironment) -> Value:
        """Evaluate the expression to a value.

        Raises:
            UndeclaredVariableError: If a referenced name is unbound.
        """

    @abstractmethod
    def type_check(self, env: CompileEnvironment) -> bool:
        """Return True if the expression is well typed."""

    @abstractmethod
    def infer_type(self, env: CompileEnvironment) -> Type:
        """Return the static type of the expression."""

    @abstractmethod
    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        """One reduction step; environment errors come back as a failed Reduction."""

    @abstractmethod
    def get_variables(self) -> set[Variable]:
        """Return all free variables this expression depends on."""

    def reduce_to_normal_form(self, env: ExecutionEnvironment) -> Expression:
        """Partially evaluate constant sub-trees, leaving free variables symbolic.

        Never raises for environment errors. A node whose own step fails (an
        unbound variable, or a call whose body needs one) comes back
        unchanged, and its siblings are still folded.
        """
        result = self._reduce(env)
        if not result.is_ok:
            logger.debug("Reduction of '%s' fell back to itself: %s", self, result.error)
        return result.unwrap_or(self)

    # Operator sugar: build nodes, never evaluate
    def __add__(self, other: Expression | int) -> Add:
        return Add(self, _ensure_expr(other))

    def __radd__(self, other: Expression | int) -> Add:
        return Add(_ensure_expr(other), self)

    def __sub__(self, other: Expression | int) -> Sub:
        return Sub(self, _ensure_expr(other))

    def __rsub__(self, other: Expression | int) -> Sub:
        return Sub(_ensure_expr(other), self)

    def __mul__(self, other: Expression | int) -> Multiply:
        return Multiply(self, _ensure_expr(other))

    def __rmul__(self, other: Expression | int) -> Multiply:
        return Multiply(_ensure_expr(other), self)

    def __neg__(self) -> Negate:
        return Negate(self)


def _ensure_expr(value: Expression | int | bool) -> Expression:
    if isinstance(value, Expression):
        return value
    return as_value(value)


def as_value(value: Value | int | bool) -> Value:
    """Coerce a Python scalar into a Value node."""
    if isinstance(value, (Constant, BooleanConstant, FunctionValue, Vector)):
        return value
    if isinstance(value, (bool, np.bool_)):
        return BooleanConstant(bool(value))
    if isinstance(value, (int, np.integer)):
        return Constant(int(value))
    raise InvalidOperationError("value conversion", value, "expected an int, bool or value node")


def _integer_operand(value: Value, operation: str) -> int:
    if not isinstance(value, Constant):
        raise InvalidOperationError(operation, value, "operand must be an integer")
    return value.value


def _render(child: Expression, parent_precedence: int, strict: bool = False) -> str:
    text = str(child)
    if child.precedence < parent_precedence or (
        strict and child.precedence == parent_precedence
    ):
        return f"({text})"
    return text


# =============================================================================
# Values
# =============================================================================


@dataclass(frozen=True, slots=True)
class Constant(Expression):
    """A 32-bit integer literal."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, (bool, np.bool_)) or not isinstance(
            self.value, (int, np.integer)
        ):
            raise InvalidOperationError("integer constant", self.value)
        object.__setattr__(self, "value", check_int(int(self.value)))

    def evaluate(self, env: ExecutionEnvironment) -> Constant:
        return self

    def type_check(self, env: CompileEnvironment) -> bool:
        return True

    def infer_type(self, env: CompileEnvironment) -> Type:
        return INTEGER

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return Reduction.ok(self)

    def get_variables(self) -> set[Variable]:
        return set()

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class BooleanConstant(Expression):
    """A boolean literal. Outside the differentiable fragment."""

    value: bool

    def evaluate(self, env: ExecutionEnvironment) -> BooleanConstant:
        return self

    def type_check(self, env: CompileEnvironment) -> bool:
        return True

    def infer_type(self, env: CompileEnvironment) -> Type:
        return BOOLEAN

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return Reduction.ok(self)

    def get_variables(self) -> set[Variable]:
        return set()

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True, slots=True)
class FunctionValue(Expression):
    """A user function: formal parameters plus a body.

    Parameters are integer typed. The body is evaluated in a fresh scope
    pushed onto the caller's environment.
    """

    parameters: tuple[Variable, ...]
    body: Expression

    precedence: ClassVar[int] = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def evaluate(self, env: ExecutionEnvironment) -> FunctionValue:
        return self

    def type_check(self, env: CompileEnvironment) -> bool:
        with env.scope():
            for param in self.parameters:
                env.declare(param.name, INTEGER)
            return self.body.type_check(env)

    def infer_type(self, env: CompileEnvironment) -> Type:
        with env.scope():
            for param in self.parameters:
                env.declare(param.name, INTEGER)
            codomain = self.body.infer_type(env)
        return FunctionType(tuple(INTEGER for _ in self.parameters), codomain)

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return Reduction.ok(self)

    def get_variables(self) -> set[Variable]:
        return self.body.get_variables() - set(self.parameters)

    def __str__(self) -> str:
        params = ", ".join(p.name for p in self.parameters)
        return f"fn {params} -> {self.body}"


@dataclass(frozen=True, slots=True)
class Vector(Expression):
    """An ordered aggregate of values. Order is significant."""

    elements: tuple[Value, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.elements)

    def __getitem__(self, index: int) -> Value:
        return self.elements[index]

    def evaluate(self, env: ExecutionEnvironment) -> Vector:
        return self

    def type_check(self, env: CompileEnvironment) -> bool:
        """Well typed iff all elements are, and all share one type."""
        if not all(element.type_check(env) for element in self.elements):
            return False
        types = {element.infer_type(env) for element in self.elements}
        return len(types) <= 1

    def infer_type(self, env: CompileEnvironment) -> Type:
        return VectorType()

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return Reduction.ok(self)

    def get_variables(self) -> set[Variable]:
        result: set[Variable] = set()
        for element in self.elements:
            result.update(element.get_variables())
        return result

    def to_array(self) -> NDArray[np.int32]:
        """Return the elements as a numpy integer array.

        Raises:
            InvalidOperationError: If an element is not an integer.
        """
        return np.array(
            [_integer_operand(e, "vector conversion") for e in self.elements],
            dtype=np.int32,
        )

    def __str__(self) -> str:
        return "[" + ", ".join(str(e) for e in self.elements) + "]"


# =============================================================================
# Identifiers
# =============================================================================


@dataclass(frozen=True, slots=True)
class Variable(Expression):
    """A named identifier. Two variables are equal iff their names are."""

    name: str

    def evaluate(self, env: ExecutionEnvironment) -> Value:
        return env.lookup(self.name)

    def type_check(self, env: CompileEnvironment) -> bool:
        env.lookup(self.name)
        return True

    def infer_type(self, env: CompileEnvironment) -> Type:
        return env.lookup(self.name)

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        return attempt(lambda: env.lookup(self.name))

    def get_variables(self) -> set[Variable]:
        return {self}

    def __str__(self) -> str:
        return self.name


# =============================================================================
# Arithmetic
# =============================================================================


class BinaryOp(Expression):
    """Shared contract for the binary integer operators."""

    __slots__ = ()

    symbol: ClassVar[str]
    operation: ClassVar[str]

    left: Expression
    right: Expression

    @staticmethod
    @abstractmethod
    def apply(a: int, b: int) -> int:
        """Combine two integers."""

    def evaluate(self, env: ExecutionEnvironment) -> Constant:
        a = _integer_operand(self.left.evaluate(env), self.operation)
        b = _integer_operand(self.right.evaluate(env), self.operation)
        return Constant(self.apply(a, b))

    def type_check(self, env: CompileEnvironment) -> bool:
        # Both operands are checked even when the left one fails
        left_ok = self.left.type_check(env)
        right_ok = self.right.type_check(env)
        return left_ok and right_ok

    def infer_type(self, env: CompileEnvironment) -> Type:
        return self.left.infer_type(env)

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        lhs = self.left.reduce_to_normal_form(env)
        rhs = self.right.reduce_to_normal_form(env)
        if isinstance(lhs, Constant) and isinstance(rhs, Constant):
            return Reduction.ok(Constant(self.apply(lhs.value, rhs.value)))
        return Reduction.ok(type(self)(lhs, rhs))

    def get_variables(self) -> set[Variable]:
        return self.left.get_variables() | self.right.get_variables()

    def __str__(self) -> str:
        left = _render(self.left, self.precedence)
        right = _render(self.right, self.precedence, strict=True)
        return f"{left} {self.symbol} {right}"


@dataclass(frozen=True, slots=True)
class Add(BinaryOp):
    left: Expression
    right: Expression

    symbol: ClassVar[str] = "+"
    operation: ClassVar[str] = "addition"
    precedence: ClassVar[int] = _PREC_SUM

    @staticmethod
    def apply(a: int, b: int) -> int:
        return a + b


@dataclass(frozen=True, slots=True)
class Sub(BinaryOp):
    left: Expression
    right: Expression

    symbol: ClassVar[str] = "-"
    operation: ClassVar[str] = "subtraction"
    precedence: ClassVar[int] = _PREC_SUM

    @staticmethod
    def apply(a: int, b: int) -> int:
        return a - b


@dataclass(frozen=True, slots=True)
class Multiply(BinaryOp):
    left: Expression
    right: Expression

    symbol: ClassVar[str] = "*"
    operation: ClassVar[str] = "multiplication"
    precedence: ClassVar[int] = _PREC_PRODUCT

    @staticmethod
    def apply(a: int, b: int) -> int:
        return a * b


@dataclass(frozen=True, slots=True)
class Negate(Expression):
    """Unary minus."""

    operand: Expression

    precedence: ClassVar[int] = _PREC_UNARY

    def evaluate(self, env: ExecutionEnvironment) -> Constant:
        return Constant(-_integer_operand(self.operand.evaluate(env), "negation"))

    def type_check(self, env: CompileEnvironment) -> bool:
        return self.operand.type_check(env)

    def infer_type(self, env: CompileEnvironment) -> Type:
        return self.operand.infer_type(env)

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        operand = self.operand.reduce_to_normal_form(env)
        if isinstance(operand, Constant):
            return Reduction.ok(Constant(-operand.value))
        return Reduction.ok(Negate(operand))

    def get_variables(self) -> set[Variable]:
        return self.operand.get_variables()

    def __str__(self) -> str:
        operand = self.operand
        if isinstance(operand, Negate) or (
            isinstance(operand, Constant) and operand.value < 0
        ):
            return f"-({operand})"
        return "-" + _render(operand, self.precedence)


# =============================================================================
# Function application
# =============================================================================


@dataclass(frozen=True, slots=True)
class Application(Expression):
    """Apply a user function to arguments: ``f(a, b)``."""

    function: Expression
    arguments: tuple[Expression, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))

    def _callee(self, env: ExecutionEnvironment) -> FunctionValue:
        callee = self.function.evaluate(env)
        if not isinstance(callee, FunctionValue):
            raise InvalidOperationError("application", callee, "not a function")
        if callee.arity != len(self.arguments):
            raise ArityError(self.function, callee.arity, len(self.arguments))
        return callee

    def evaluate(self, env: ExecutionEnvironment) -> Value:
        callee = self._callee(env)
        values = [argument.evaluate(env) for argument in self.arguments]
        with env.scope():
            for param, value in zip(callee.parameters, values):
                env.declare(param.name, value)
            return callee.body.evaluate(env)

    def type_check(self, env: CompileEnvironment) -> bool:
        if not self.function.type_check(env):
            return False
        if not all(argument.type_check(env) for argument in self.arguments):
            return False
        signature = self.function.infer_type(env)
        if not isinstance(signature, FunctionType):
            return False
        if signature.arity != len(self.arguments):
            return False
        return all(
            argument.infer_type(env) == expected
            for argument, expected in zip(self.arguments, signature.domain)
        )

    def infer_type(self, env: CompileEnvironment) -> Type:
        signature = self.function.infer_type(env)
        if not isinstance(signature, FunctionType):
            raise InvalidOperationError("application", self.function, "not a function")
        return signature.codomain

    def _reduce(self, env: ExecutionEnvironment) -> Reduction:
        function = self.function.reduce_to_normal_form(env)
        arguments = tuple(a.reduce_to_normal_form(env) for a in self.arguments)
        rebuilt = Application(function, arguments)
        if isinstance(rebuilt.function, FunctionValue) and all(
            isinstance(a, Constant) for a in arguments
        ):
            return attempt(lambda: rebuilt.evaluate(env))
        return Reduction.ok(rebuilt)

    def get_variables(self) -> set[Variable]:
        result = set(self.function.get_variables())
        for argument in self.arguments:
            result.update(argument.get_variables())
        return result

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.arguments)
        return f"{_render(self.function, _PREC_ATOM)}({args})"


Value = Union[Constant, BooleanConstant, FunctionValue, Vector]


def variables(*names: str) -> tuple[Variable, ...]:
    """Create several variables at once.

    Example:
        >>> x, y = variables("x", "y")
    """
    return tuple(Variable(name) for name in names)

