from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from cluster_personas.io.schema import TableColumn


@dataclass(frozen=True)
class ColumnEquals:
    """Selects every row whose ``column`` equals ``value``."""

    column: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        value = self.value.isoformat() if isinstance(self.value, date) else self.value
        return {"kind": "equals", "column": self.column, "value": value}


@dataclass(frozen=True)
class AnyOf:
    """Union of several selections."""

    operands: tuple[Any, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "or", "operands": [token_to_dict(operand) for operand in self.operands]}


def equals_token(column: TableColumn, value: Any) -> ColumnEquals:
    return ColumnEquals(column=column.name, value=value)


def union_tokens(left: Any, right: Any) -> AnyOf:
    operands: list[Any] = []
    for token in (left, right):
        if isinstance(token, AnyOf):
            operands.extend(token.operands)
        else:
            operands.append(token)
    return AnyOf(tuple(operands))


def token_to_dict(token: Any) -> Any:
    to_dict = getattr(token, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return token


@dataclass(frozen=True)
class TokenAlgebra:
    """How selection tokens are built for a group and combined into a union.

    Hosts with their own selection representation supply their own pair of
    callables; ``combine`` must be associative.
    """

    make: Callable[[TableColumn, Any], Any] = equals_token
    combine: Callable[[Any, Any], Any] = union_tokens


DEFAULT_TOKEN_ALGEBRA = TokenAlgebra()
