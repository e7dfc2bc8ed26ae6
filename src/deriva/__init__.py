"""Deriva: symbolic differentiation for integer arithmetic expressions."""

from deriva.core.expressions import (
    Expression,
    Constant,
    BooleanConstant,
    Variable,
    Add,
    Sub,
    Negate,
    Multiply,
    FunctionValue,
    Vector,
    Application,
    variables,
)
from deriva.core.types import FunctionType, VectorType, INTEGER, BOOLEAN
from deriva.core.environments import CompileEnvironment, ExecutionEnvironment
from deriva.core.differentiation import derive
from deriva.core.simplification import simplify
from deriva.core.calculus import Derivative, Gradient
from deriva.core.errors import (
    DerivaError,
    UndeclaredVariableError,
    AlreadyDeclaredVariableError,
    UnsupportedDerivativeError,
    IntegerOverflowError,
)

__version__ = "1.0.0"

__all__ = [
    # Core
    "Expression",
    "Constant",
    "BooleanConstant",
    "Variable",
    "Add",
    "Sub",
    "Negate",
    "Multiply",
    "FunctionValue",
    "Vector",
    "Application",
    "variables",
    # Types
    "FunctionType",
    "VectorType",
    "INTEGER",
    "BOOLEAN",
    # Environments
    "CompileEnvironment",
    "ExecutionEnvironment",
    # Engines
    "derive",
    "simplify",
    "Derivative",
    "Gradient",
    # Errors
    "DerivaError",
    "UndeclaredVariableError",
    "AlreadyDeclaredVariableError",
    "UnsupportedDerivativeError",
    "IntegerOverflowError",
]
