"""Type descriptors used by the type checker."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class PrimitiveType(Enum):
    """Built-in scalar types."""

    INTEGER = "int"
    BOOLEAN = "bool"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FunctionType:
    """Signature of a user function: ``(domain...) -> codomain``."""

    domain: tuple[Type, ...]
    codomain: Type

    @property
    def arity(self) -> int:
        return len(self.domain)

    def __str__(self) -> str:
        params = ", ".join(str(t) for t in self.domain)
        return f"({params}) -> {self.codomain}"


@dataclass(frozen=True)
class VectorType:
    """Type of an ordered aggregate of values (e.g. a gradient)."""

    def __str__(self) -> str:
        return "vector"


Type = Union[PrimitiveType, FunctionType, VectorType]

INTEGER = PrimitiveType.INTEGER
BOOLEAN = PrimitiveType.BOOLEAN
