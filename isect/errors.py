"""Structured error objects for the isect type checker.

Every diagnostic is machine-readable: a kind, the declaring symbol and the
offending type expression(s) travel in ``details`` so that tooling never has
to scrape a message string.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    SYNTAX_ERROR = "syntax_error"
    NAME_ERROR = "name_error"
    DUPLICATE_MEMBER = "duplicate_member"
    DISALLOWED_PSEUDO_TYPE = "disallowed_pseudo_type"
    DISALLOWED_SCALAR = "disallowed_scalar"
    INVALID_NESTING = "invalid_nesting"
    VARIANCE_VIOLATION = "variance_violation"
    UNRESOLVABLE_TYPE = "unresolvable_type"
    INTERNAL_ERROR = "internal_error"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"error": 2, "warning": 1, "info": 0}[self.value]


@dataclass
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class IsectError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.ERROR

    @property
    def symbol(self) -> Optional[str]:
        return self.details.get("symbol")

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def syntax_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> IsectError:
    return IsectError(
        kind=ErrorKind.SYNTAX_ERROR,
        message=message,
        location=location,
    )


def name_error(
    name: str,
    location: Optional[SourceLocation] = None,
    symbol: Optional[str] = None,
) -> IsectError:
    details: dict[str, Any] = {"name": name}
    if symbol:
        details["symbol"] = symbol
    return IsectError(
        kind=ErrorKind.NAME_ERROR,
        message=f"Undefined name '{name}'",
        location=location,
        details=details,
    )


def internal_error(
    message: str,
    location: Optional[SourceLocation] = None,
    details: Optional[dict] = None,
) -> IsectError:
    return IsectError(
        kind=ErrorKind.INTERNAL_ERROR,
        message=message,
        location=location,
        details=details or {},
    )


def _declaration_details(symbol: str, type_expr: str, **extra: Any) -> dict[str, Any]:
    details: dict[str, Any] = {"symbol": symbol, "type": type_expr}
    details.update({k: v for k, v in extra.items() if v is not None})
    return details


class DuplicateMember(IsectError):
    """The same resolved name appears twice in one composite type."""

    def __init__(self, symbol: str, type_expr: str, member: str,
                 location: Optional[SourceLocation] = None):
        super().__init__(
            kind=ErrorKind.DUPLICATE_MEMBER,
            message=f"Duplicate type {member} is redundant"
                    f" (in type {type_expr} of {symbol})",
            location=location,
            details=_declaration_details(symbol, type_expr, member=member),
        )


class DisallowedPseudoType(IsectError):
    """mixed, iterable, self, static or parent used as an intersection member."""

    def __init__(self, symbol: str, type_expr: str, member: str,
                 location: Optional[SourceLocation] = None):
        super().__init__(
            kind=ErrorKind.DISALLOWED_PSEUDO_TYPE,
            message=f"Type {member} cannot be part of an intersection type"
                    f" (in type {type_expr} of {symbol})",
            location=location,
            details=_declaration_details(symbol, type_expr, member=member),
        )


class DisallowedScalar(IsectError):
    """A scalar or other non-class builtin used as an intersection member.

    ``callable`` is reported through this class too, with warning severity.
    """

    def __init__(self, symbol: str, type_expr: str, member: str,
                 location: Optional[SourceLocation] = None,
                 severity: Severity = Severity.ERROR):
        if severity is Severity.ERROR:
            message = (f"Type {member} cannot be part of an intersection type"
                       f" (in type {type_expr} of {symbol})")
        else:
            message = (f"Type {member} in intersection type {type_expr} of {symbol}"
                       f" is only satisfiable by callable objects")
        super().__init__(
            kind=ErrorKind.DISALLOWED_SCALAR,
            message=message,
            location=location,
            details=_declaration_details(symbol, type_expr, member=member),
            severity=severity,
        )


class InvalidNesting(IsectError):
    """Unions and intersections mixed without support for composite types."""

    def __init__(self, symbol: str, type_expr: str, reason: str,
                 location: Optional[SourceLocation] = None):
        super().__init__(
            kind=ErrorKind.INVALID_NESTING,
            message=f"{reason} (in type {type_expr} of {symbol})",
            location=location,
            details=_declaration_details(symbol, type_expr, reason=reason),
        )


class VarianceViolation(IsectError):
    """An overriding declaration is not substitutable for the one it overrides."""

    def __init__(self, symbol: str, role: str, base_type: str, derived_type: str,
                 message: str, location: Optional[SourceLocation] = None,
                 base_symbol: Optional[str] = None,
                 constraint: Optional[str] = None,
                 pattern: Optional[str] = None):
        super().__init__(
            kind=ErrorKind.VARIANCE_VIOLATION,
            message=message,
            location=location,
            details=_declaration_details(
                symbol, derived_type,
                role=role,
                base_type=base_type,
                derived_type=derived_type,
                base_symbol=base_symbol,
                constraint=constraint,
                pattern=pattern,
            ),
        )


class UnresolvableType(Exception):
    """Raised by a class relation oracle when a name cannot be loaded."""

    def __init__(self, identifier: str, reason: str = "not found"):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Class \"{identifier}\" could not be resolved: {reason}")

    def to_error(self, symbol: Optional[str] = None,
                 location: Optional[SourceLocation] = None) -> IsectError:
        details: dict[str, Any] = {"identifier": self.identifier, "reason": self.reason}
        if symbol:
            details["symbol"] = symbol
        return IsectError(
            kind=ErrorKind.UNRESOLVABLE_TYPE,
            message=str(self),
            location=location,
            details=details,
        )


class CompileError(Exception):
    """Exception wrapping one or more IsectErrors."""

    def __init__(self, errors: list[IsectError] | IsectError):
        if isinstance(errors, IsectError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)
