"""Core expression system for deriva."""

from deriva.core.expressions import (
    Expression,
    Constant,
    BooleanConstant,
    Variable,
    Add,
    Sub,
    Negate,
    Multiply,
    BinaryOp,
    FunctionValue,
    Vector,
    Application,
    Value,
    as_value,
    variables,
    INT_MIN,
    INT_MAX,
)
from deriva.core.types import (
    PrimitiveType,
    FunctionType,
    VectorType,
    INTEGER,
    BOOLEAN,
)
from deriva.core.environments import (
    CompileEnvironment,
    ExecutionEnvironment,
)
from deriva.core.reduction import Reduction
from deriva.core.differentiation import derive
from deriva.core.simplification import simplify
from deriva.core.calculus import Derivative, Gradient

__all__ = [
    # Expressions
    "Expression",
    "Constant",
    "BooleanConstant",
    "Variable",
    "Add",
    "Sub",
    "Negate",
    "Multiply",
    "BinaryOp",
    "FunctionValue",
    "Vector",
    "Application",
    "Value",
    "as_value",
    "variables",
    "INT_MIN",
    "INT_MAX",
    # Types
    "PrimitiveType",
    "FunctionType",
    "VectorType",
    "INTEGER",
    "BOOLEAN",
    # Environments
    "CompileEnvironment",
    "ExecutionEnvironment",
    "Reduction",
    # Engines
    "derive",
    "simplify",
    # Calculus nodes
    "Derivative",
    "Gradient",
]
