"""isect Declaration Validator Tests — VAL-001 through VAL-006.

Structural checks only: nothing here consults a class hierarchy.
"""

import pytest

from isect.errors import CompileError, ErrorKind, Severity
from isect.types import NullableType, intersection, named, union
from isect.validator import validate_or_raise, validate_type


def kinds(diagnostics):
    return [d.kind for d in diagnostics]


class TestVAL001:
    """VAL-001: Valid declarations produce no diagnostics."""

    @pytest.mark.parametrize("expr", [
        named("Foo"),
        NullableType(named("Foo")),
        intersection("A", "B"),
        intersection("A", "B", "C"),
        union("A", "B", "null"),
        union("int", "string"),
    ])
    def test_valid(self, expr):
        assert validate_type(expr) == []

    def test_related_members_are_accepted(self):
        # B extends A is only known to the oracle; the shape is fine
        assert validate_type(intersection("A", "B")) == []


class TestVAL002:
    """VAL-002: Duplicate members."""

    def test_duplicate_in_intersection(self):
        diags = validate_type(intersection("A", "A"), symbol="C::f()")
        assert kinds(diags) == [ErrorKind.DUPLICATE_MEMBER]
        assert diags[0].message == "Duplicate type A is redundant (in type A&A of C::f())"
        assert diags[0].details == {"symbol": "C::f()", "type": "A&A", "member": "A"}

    def test_duplicate_is_case_insensitive(self):
        assert kinds(validate_type(intersection("Foo", "\\FOO"))) == [ErrorKind.DUPLICATE_MEMBER]

    def test_reported_once_per_name(self):
        assert len(validate_type(intersection("A", "B", "A", "A"))) == 1

    def test_duplicate_in_union(self):
        assert kinds(validate_type(union("A", "B", "a"))) == [ErrorKind.DUPLICATE_MEMBER]


class TestVAL003:
    """VAL-003: Pseudo types cannot be intersection members."""

    @pytest.mark.parametrize("pseudo", ["mixed", "iterable", "self", "static", "parent"])
    def test_pseudo(self, pseudo):
        diags = validate_type(intersection("A", pseudo))
        assert kinds(diags) == [ErrorKind.DISALLOWED_PSEUDO_TYPE]
        assert diags[0].details["member"] == pseudo

    def test_pseudo_types_are_fine_outside_intersections(self):
        assert validate_type(named("mixed")) == []
        assert validate_type(union("iterable", "null")) == []


class TestVAL004:
    """VAL-004: Scalars cannot be intersection members; callable is linted."""

    @pytest.mark.parametrize("scalar", ["int", "string", "array", "object", "null", "false", "void"])
    def test_scalar(self, scalar):
        diags = validate_type(intersection("A", scalar))
        assert kinds(diags) == [ErrorKind.DISALLOWED_SCALAR]
        assert diags[0].severity is Severity.ERROR

    def test_callable_is_a_warning(self):
        diags = validate_type(intersection("A", "callable"))
        assert kinds(diags) == [ErrorKind.DISALLOWED_SCALAR]
        assert diags[0].severity is Severity.WARNING
        assert not diags[0].is_error

    def test_callable_lint_can_be_disabled(self):
        assert validate_type(intersection("A", "callable"), callable_lint=False) == []


class TestVAL005:
    """VAL-005: Nesting rules."""

    def test_nullable_intersection(self):
        assert kinds(validate_type(NullableType(intersection("A", "B")))) == [ErrorKind.INVALID_NESTING]

    def test_nullable_union(self):
        assert kinds(validate_type(NullableType(union("A", "B")))) == [ErrorKind.INVALID_NESTING]

    def test_intersection_inside_union(self):
        diags = validate_type(union(intersection("A", "B"), "C"))
        assert kinds(diags) == [ErrorKind.INVALID_NESTING]
        assert "cannot be nested inside a union type" in diags[0].message

    def test_union_inside_intersection(self):
        assert kinds(validate_type(intersection(union("A", "B"), "C"))) == [ErrorKind.INVALID_NESTING]

    def test_nullable_member(self):
        diags = validate_type(intersection(NullableType(named("A")), "B"))
        assert kinds(diags) == [ErrorKind.INVALID_NESTING]

    def test_nested_nullable(self):
        assert kinds(validate_type(NullableType(NullableType(named("A"))))) == [ErrorKind.INVALID_NESTING]


class TestVAL006:
    """VAL-006: Every error is collected; validate_or_raise raises them together."""

    def test_all_errors_collected(self):
        diags = validate_type(intersection("A", "A", "int", "mixed"))
        assert sorted(k.value for k in kinds(diags)) == [
            "disallowed_pseudo_type", "disallowed_scalar", "duplicate_member",
        ]

    def test_validate_or_raise(self):
        with pytest.raises(CompileError) as exc:
            validate_or_raise(intersection("A", "A", "int"))
        assert len(exc.value.errors) == 2

    def test_validate_or_raise_returns_warnings(self):
        warnings = validate_or_raise(intersection("A", "callable"))
        assert [w.severity for w in warnings] == [Severity.WARNING]

    def test_location_is_attached(self):
        from isect.errors import SourceLocation

        loc = SourceLocation(3, 7, "a.php")
        diags = validate_type(intersection("A", "A"), location=loc)
        assert diags[0].to_dict()["location"] == {"file": "a.php", "line": 3, "column": 7}
