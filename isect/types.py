"""isect Type Expression Model.

Named types, nullable wrappers, unions and intersections.
Expressions are immutable values; illegal shapes are representable so that
the validator can report them, nothing here rejects input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


# ---------------------------------------------------------------------------
# Builtin names
# ---------------------------------------------------------------------------

PSEUDO_TYPES: frozenset[str] = frozenset({
    "mixed", "iterable", "self", "static", "parent",
})

SCALAR_TYPES: frozenset[str] = frozenset({
    "int", "float", "string", "bool", "array", "object",
    "void", "never", "null", "false", "true",
})

CALLABLE = "callable"

BUILTIN_TYPE_NAMES: frozenset[str] = PSEUDO_TYPES | SCALAR_TYPES | {CALLABLE}


def identity_key(name: str) -> str:
    """Canonical identity of a resolved name: case-insensitive, no leading separator."""
    return name.lstrip("\\").lower()


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeExpr:
    """Base type expression."""

    def canonical(self) -> TypeExpr:
        return self

    def walk(self) -> Iterator[TypeExpr]:
        yield self

    def named_members(self) -> tuple[NamedType, ...]:
        return tuple(t for t in self.walk() if isinstance(t, NamedType))

    @property
    def allows_null(self) -> bool:
        return False


@dataclass(frozen=True)
class NamedType(TypeExpr):
    name: str = ""

    @property
    def key(self) -> str:
        return identity_key(self.name)

    @property
    def is_builtin(self) -> bool:
        return self.key in BUILTIN_TYPE_NAMES

    @property
    def allows_null(self) -> bool:
        return self.key in ("null", "mixed")

    def __str__(self) -> str:
        return self.name.lstrip("\\")


@dataclass(frozen=True)
class NullableType(TypeExpr):
    inner: TypeExpr = NamedType("mixed")

    def canonical(self) -> TypeExpr:
        return NullableType(self.inner.canonical())

    def walk(self) -> Iterator[TypeExpr]:
        yield self
        yield from self.inner.walk()

    @property
    def allows_null(self) -> bool:
        return True

    def __str__(self) -> str:
        if isinstance(self.inner, (UnionType, IntersectionType)):
            return f"?({self.inner})"
        return f"?{self.inner}"


@dataclass(frozen=True)
class CompositeType(TypeExpr):
    members: tuple[TypeExpr, ...] = ()

    separator = ""

    def canonical(self) -> TypeExpr:
        ordered = sorted((m.canonical() for m in self.members), key=_sort_key)
        return type(self)(tuple(ordered))

    def walk(self) -> Iterator[TypeExpr]:
        yield self
        for m in self.members:
            yield from m.walk()

    def __str__(self) -> str:
        parts = []
        for m in self.members:
            text = str(m)
            if isinstance(m, CompositeType) or (
                isinstance(m, NullableType) and isinstance(self, IntersectionType)
            ):
                text = f"({text})"
            parts.append(text)
        return self.separator.join(parts)


@dataclass(frozen=True)
class UnionType(CompositeType):
    separator = "|"

    @property
    def allows_null(self) -> bool:
        return any(m.allows_null for m in self.members)


@dataclass(frozen=True)
class IntersectionType(CompositeType):
    separator = "&"


def _sort_key(t: TypeExpr) -> tuple[int, str]:
    if isinstance(t, NamedType):
        return (0, t.key)
    if isinstance(t, NullableType):
        return (1, str(t.canonical()).lower())
    return (2, str(t).lower())


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

MIXED = NamedType("mixed")
NULL = NamedType("null")


def named(name: str) -> NamedType:
    return NamedType(name)


def nullable(inner: TypeExpr) -> TypeExpr:
    """Wrap in a nullable; nullability does not nest."""
    if isinstance(inner, NullableType):
        return inner
    return NullableType(inner)


def union(*members: TypeExpr | str) -> UnionType:
    return UnionType(tuple(_coerce(m) for m in members))


def intersection(*members: TypeExpr | str) -> IntersectionType:
    return IntersectionType(tuple(_coerce(m) for m in members))


def _coerce(m: TypeExpr | str) -> TypeExpr:
    return NamedType(m) if isinstance(m, str) else m


def is_top(t: TypeExpr) -> bool:
    return isinstance(t, NamedType) and t.key == "mixed"


def is_null(t: TypeExpr) -> bool:
    return isinstance(t, NamedType) and t.key == "null"
