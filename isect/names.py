"""Name resolution for type annotations.

Turns source annotations into TypeExpr values with fully qualified names,
following the current namespace and its ``use`` imports. Builtin type names
are never qualified. Runtime aliases (class_alias) are not resolved here; the
oracle sees them at query time.
"""

from __future__ import annotations

from typing import Optional

from isect.ast_nodes import TypeAnnotation
from isect.types import (
    TypeExpr, NamedType, NullableType, UnionType, IntersectionType,
    BUILTIN_TYPE_NAMES,
)


class NameResolver:
    """Scoped resolver: one namespace plus its imports."""

    def __init__(self, namespace: str = "", uses: Optional[dict[str, str]] = None):
        self.namespace = namespace.strip("\\")
        self._uses: dict[str, str] = {}
        for alias, target in (uses or {}).items():
            self.add_use(target, alias)

    def add_use(self, name: str, alias: str) -> None:
        self._uses[alias.lower()] = name.lstrip("\\")

    def enter_namespace(self, name: str) -> None:
        self.namespace = name.strip("\\")
        self._uses.clear()

    def qualify(self, name: str) -> str:
        """Fully qualified name of a class declared in the current namespace."""
        if self.namespace:
            return f"{self.namespace}\\{name}"
        return name

    def resolve_class_name(self, name: str) -> str:
        if name.startswith("\\"):
            return name[1:]
        if "\\" not in name and name.lower() in BUILTIN_TYPE_NAMES:
            return name.lower()
        head, sep, rest = name.partition("\\")
        imported = self._uses.get(head.lower())
        if imported is not None:
            return f"{imported}{sep}{rest}" if sep else imported
        return self.qualify(name)

    def resolve(self, ann: TypeAnnotation) -> TypeExpr:
        if ann.kind == "named":
            return NamedType(self.resolve_class_name(ann.name))
        if ann.kind == "nullable":
            return NullableType(self.resolve(ann.members[0]))
        members = tuple(self.resolve(m) for m in ann.members)
        if ann.kind == "intersection":
            return IntersectionType(members)
        return UnionType(members)


def bind_relative(expr: TypeExpr, declaring: str, parent: Optional[str]) -> TypeExpr:
    """Replace self/static/parent by the classes they denote in ``declaring``.

    Used only once a declaration has passed validation, when comparing
    signatures across an inheritance edge.
    """
    if isinstance(expr, NamedType):
        if expr.key in ("self", "static"):
            return NamedType(declaring)
        if expr.key == "parent" and parent:
            return NamedType(parent)
        return expr
    if isinstance(expr, NullableType):
        return NullableType(bind_relative(expr.inner, declaring, parent))
    if isinstance(expr, (UnionType, IntersectionType)):
        return type(expr)(tuple(bind_relative(m, declaring, parent) for m in expr.members))
    return expr
