"""isect Declaration Validator.

Structural checks run exactly once per declared type, before the declaring
symbol becomes visible to inheritance linking. Nothing here loads classes:
``A&B`` with ``B extends A``, or two names that a runtime alias later maps to
the same class, are accepted. Only redundancy visible in the expression shape
is rejected.
"""

from __future__ import annotations

from typing import Optional

from isect.types import (
    TypeExpr, NamedType, NullableType, UnionType, IntersectionType,
    CompositeType, PSEUDO_TYPES, SCALAR_TYPES, CALLABLE,
)
from isect.errors import (
    IsectError, SourceLocation, Severity, CompileError,
    DuplicateMember, DisallowedPseudoType, DisallowedScalar, InvalidNesting,
)


class DeclarationValidator:
    """Collects every structural error in one type expression."""

    def __init__(self, symbol: str, location: Optional[SourceLocation] = None,
                 callable_lint: bool = True):
        self.symbol = symbol
        self.location = location
        self.callable_lint = callable_lint
        self.errors: list[IsectError] = []
        self._text = ""

    def validate(self, expr: TypeExpr) -> list[IsectError]:
        self.errors = []
        self._text = str(expr)
        self._check(expr, parent=None)
        return self.errors

    def _nesting(self, reason: str) -> None:
        self.errors.append(InvalidNesting(self.symbol, self._text, reason, self.location))

    def _check(self, expr: TypeExpr, parent: Optional[TypeExpr]) -> None:
        if isinstance(expr, NullableType):
            if isinstance(parent, CompositeType):
                self._nesting(f"Nullable type {expr} cannot be a member of a {_kind(parent)} type")
            if isinstance(expr.inner, CompositeType):
                self._nesting(f"{_kind(expr.inner).capitalize()} type {expr.inner} cannot be marked nullable")
            elif isinstance(expr.inner, NullableType):
                self._nesting("Nullable types cannot be nested")
            self._check(expr.inner, parent=expr)
            return

        if isinstance(expr, CompositeType):
            if isinstance(parent, CompositeType):
                self._nesting(f"{_kind(expr).capitalize()} type {expr} cannot be nested"
                              f" inside a {_kind(parent)} type")
            self._check_duplicates(expr)
            for member in expr.members:
                if isinstance(expr, IntersectionType) and isinstance(member, NamedType):
                    self._check_intersection_member(member)
                self._check(member, parent=expr)

    def _check_duplicates(self, expr: CompositeType) -> None:
        seen: set[str] = set()
        reported: set[str] = set()
        for member in expr.members:
            if not isinstance(member, NamedType):
                continue
            if member.key in seen and member.key not in reported:
                reported.add(member.key)
                self.errors.append(DuplicateMember(
                    self.symbol, self._text, str(member), self.location,
                ))
            seen.add(member.key)

    def _check_intersection_member(self, member: NamedType) -> None:
        key = member.key
        if key in PSEUDO_TYPES:
            self.errors.append(DisallowedPseudoType(
                self.symbol, self._text, str(member), self.location,
            ))
        elif key == CALLABLE:
            if self.callable_lint:
                self.errors.append(DisallowedScalar(
                    self.symbol, self._text, str(member), self.location,
                    severity=Severity.WARNING,
                ))
        elif key in SCALAR_TYPES:
            self.errors.append(DisallowedScalar(
                self.symbol, self._text, str(member), self.location,
            ))


def _kind(expr: TypeExpr) -> str:
    if isinstance(expr, IntersectionType):
        return "intersection"
    if isinstance(expr, UnionType):
        return "union"
    return "nullable"


def validate_type(expr: TypeExpr, symbol: str = "<anonymous>",
                  location: Optional[SourceLocation] = None,
                  callable_lint: bool = True) -> list[IsectError]:
    """Return the structural errors (and lint warnings) of a declared type."""
    return DeclarationValidator(symbol, location, callable_lint).validate(expr)


def validate_or_raise(expr: TypeExpr, symbol: str = "<anonymous>",
                      location: Optional[SourceLocation] = None,
                      callable_lint: bool = True) -> list[IsectError]:
    """Raise CompileError on any error; return the remaining warnings."""
    diagnostics = validate_type(expr, symbol, location, callable_lint)
    errors = [d for d in diagnostics if d.is_error]
    if errors:
        raise CompileError(errors)
    return diagnostics
