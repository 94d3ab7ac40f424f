"""isect Type Presentation Service.

Read-only views of type expressions for introspection tooling: member
enumeration, a re-parseable string form and a reflection-style description.
Member order follows the declaration but carries no meaning; consumers must
not rely on it.
"""

from __future__ import annotations

from typing import Any

from isect.names import NameResolver
from isect.parser import parse_type_annotation
from isect.types import (
    TypeExpr, NamedType, NullableType, UnionType, IntersectionType, CompositeType,
)


def members(expr: TypeExpr) -> tuple[TypeExpr, ...]:
    """Immediate members of an intersection or union type."""
    if not isinstance(expr, CompositeType):
        raise ValueError(f"Type {render(expr)} has no members; check the variant first")
    return expr.members


def render(expr: TypeExpr) -> str:
    """Source form without leading namespace separators: ``A&B``, ``?Foo\\Bar``."""
    return str(expr)


def kind_of(expr: TypeExpr) -> str:
    if isinstance(expr, IntersectionType):
        return "intersection"
    if isinstance(expr, UnionType):
        return "union"
    if isinstance(expr, NullableType):
        return "nullable"
    return "named"


def describe(expr: TypeExpr) -> dict[str, Any]:
    """Reflection-style description used by the JSON output."""
    d: dict[str, Any] = {
        "kind": kind_of(expr),
        "name": render(expr),
        "allows_null": expr.allows_null,
    }
    if isinstance(expr, NamedType):
        d["builtin"] = expr.is_builtin
    elif isinstance(expr, NullableType):
        d["type"] = describe(expr.inner)
    else:
        d["types"] = [describe(m) for m in members(expr)]
    return d


def parse_type(text: str, resolver: NameResolver | None = None) -> TypeExpr:
    """Parse a type string (as produced by ``render``) into a TypeExpr."""
    return (resolver or NameResolver()).resolve(parse_type_annotation(text))
