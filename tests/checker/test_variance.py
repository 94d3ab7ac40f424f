"""isect Variance Checker Tests — VAR-001 through VAR-007.

Return types are covariant, parameter types contravariant, property types
invariant. Hierarchy: interfaces X, Y; class A; class B extends A;
classes C and D implement X and Y.
"""

import pytest

from isect.errors import ErrorKind
from isect.oracle import ClassInfo, HierarchyOracle
from isect.presentation import parse_type
from isect.variance import (
    DeclarationSite, MemberRef, MethodSignature, ParamSignature, SlotKind, Variance,
    check_method_override, check_override,
)


@pytest.fixture
def oracle():
    return HierarchyOracle([
        ClassInfo("X", kind="interface"),
        ClassInfo("Y", kind="interface"),
        ClassInfo("A"),
        ClassInfo("B", parent="A"),
        ClassInfo("C", interfaces=("X", "Y")),
        ClassInfo("D", interfaces=("X", "Y")),
    ])


def site(slot, text, cls):
    kind = "property" if slot is SlotKind.PROPERTY else "method"
    member = "$p" if kind == "property" else "m"
    ref = MemberRef(cls, member, kind, parameter="$x" if slot is SlotKind.PARAMETER else None,
                    position=0 if slot is SlotKind.PARAMETER else None)
    return DeclarationSite(slot, parse_type(text) if text else None, ref)


def override(slot, base, derived, oracle):
    return check_override(site(slot, base, "P"), site(slot, derived, "Q"), oracle)


class TestVAR001:
    """VAR-001: Covariant return types: adding a constraint is allowed."""

    def test_adding_constraint(self, oracle):
        assert override(SlotKind.RETURN, "X", "X&Y", oracle).ok

    def test_removing_constraint(self, oracle):
        result = override(SlotKind.RETURN, "X&Y", "X", oracle)
        assert not result.ok
        v = result.violation
        assert v.kind == ErrorKind.VARIANCE_VIOLATION
        assert v.details["pattern"] == "removed_constraint"
        assert v.details["constraint"] == "Y"
        assert v.message == ("Declaration of Q::m() must be compatible with P::m():"
                             " removing return constraint Y is forbidden")

    def test_reordering_is_allowed(self, oracle):
        assert override(SlotKind.RETURN, "X&Y", "Y&X", oracle).ok

    def test_adding_alternative(self, oracle):
        v = override(SlotKind.RETURN, "A", "A|X", oracle).violation
        assert v.details["pattern"] == "added_alternative"
        assert v.details["constraint"] == "X"

    def test_removing_the_return_type(self, oracle):
        v = override(SlotKind.RETURN, "X", None, oracle).violation
        assert v.details["pattern"] == "removed_type"
        assert v.details["derived_type"] == "(none)"

    def test_nullable_return_blames_null(self, oracle):
        v = override(SlotKind.RETURN, "X&Y", "?C", oracle).violation
        assert "pattern" not in v.details
        assert v.message.endswith("return type ?C is not a subtype of X&Y")


class TestVAR002:
    """VAR-002: Contravariant parameter types: removing a constraint is allowed."""

    def test_removing_constraint(self, oracle):
        assert override(SlotKind.PARAMETER, "X&Y", "X", oracle).ok

    def test_adding_constraint(self, oracle):
        result = override(SlotKind.PARAMETER, "X", "X&Y", oracle)
        v = result.violation
        assert v.details["pattern"] == "added_constraint"
        assert v.details["role"] == "parameter"
        assert v.message == ("Declaration of Q::m() parameter #1 ($x) must be compatible with"
                             " P::m() parameter #1 ($x): adding parameter constraint Y is forbidden")

    def test_removing_alternative(self, oracle):
        v = override(SlotKind.PARAMETER, "A|X", "A", oracle).violation
        assert v.details["pattern"] == "removed_alternative"

    def test_untyped_parameter_accepts_anything(self, oracle):
        assert override(SlotKind.PARAMETER, "X&Y", None, oracle).ok

    def test_adding_a_parameter_type(self, oracle):
        v = override(SlotKind.PARAMETER, None, "X", oracle).violation
        assert v.details["pattern"] == "added_type"


class TestVAR003:
    """VAR-003: Invariant property types."""

    def test_equivalent_by_absorption(self, oracle):
        assert override(SlotKind.PROPERTY, "A&B", "B", oracle).ok

    def test_reordered(self, oracle):
        assert override(SlotKind.PROPERTY, "A&B", "B&A", oracle).ok

    def test_parent_only(self, oracle):
        result = override(SlotKind.PROPERTY, "A&B", "A", oracle)
        assert not result.ok
        assert result.violation.details["pattern"] == "removed_constraint"
        assert str(result.derived.member) == "Q::$p"

    def test_narrower_property(self, oracle):
        result = override(SlotKind.PROPERTY, "X", "X&Y", oracle)
        assert result.violation.details["pattern"] == "added_constraint"
        assert len(result.judgments) == 2


class TestVAR004:
    """VAR-004: Concrete classes satisfy intersection returns."""

    def test_class_implementing_both(self, oracle):
        assert override(SlotKind.RETURN, "X&Y", "C", oracle).ok

    def test_union_of_implementers(self, oracle):
        assert override(SlotKind.RETURN, "X&Y", "C|D", oracle).ok

    def test_union_with_an_outsider(self, oracle):
        assert not override(SlotKind.RETURN, "X&Y", "C|A", oracle).ok


class TestVAR005:
    """VAR-005: Slot kinds and member references."""

    def test_variance_per_slot(self):
        assert SlotKind.RETURN.variance is Variance.COVARIANT
        assert SlotKind.PARAMETER.variance is Variance.CONTRAVARIANT
        assert SlotKind.PROPERTY.variance is Variance.INVARIANT

    def test_slot_mismatch(self, oracle):
        with pytest.raises(ValueError):
            check_override(site(SlotKind.RETURN, "X", "P"), site(SlotKind.PARAMETER, "X", "Q"), oracle)

    def test_member_ref_rendering(self):
        assert str(MemberRef("C", "m")) == "C::m()"
        assert str(MemberRef("C", "$p", "property")) == "C::$p"
        assert str(MemberRef("C", "m", parameter="$x", position=1)) == "C::m() parameter #2 ($x)"


def method(cls, params, ret=None, by_ref_return=False):
    return MethodSignature(
        member=MemberRef(cls, "m"),
        params=tuple(params),
        return_type=parse_type(ret) if ret else None,
        by_ref_return=by_ref_return,
    )


def param(name, text=None, **kw):
    return ParamSignature(name, parse_type(text) if text else None, **kw)


class TestVAR006:
    """VAR-006: Whole-method comparison."""

    def test_compatible(self, oracle):
        base = method("P", [param("$a", "X&Y")], "X")
        derived = method("Q", [param("$a", "X"), param("$b", "A", optional=True)], "X&Y")
        out = check_method_override(base, derived, oracle)
        assert out.ok
        assert len(out.judgments) == 2

    def test_every_violation_is_reported(self, oracle):
        base = method("P", [param("$a", "X&Y")], "X&Y")
        derived = method("Q", [param("$a", "X&Y&A")], "X")
        out = check_method_override(base, derived, oracle)
        assert [v.details["role"] for v in out.violations] == ["parameter", "return"]

    def test_extra_required_parameter(self, oracle):
        out = check_method_override(method("P", [param("$a")]),
                                    method("Q", [param("$a"), param("$b")]), oracle)
        assert not out.ok
        assert "requires 2 argument(s)" in out.violations[0].message

    def test_missing_parameter(self, oracle):
        out = check_method_override(method("P", [param("$a"), param("$b")]),
                                    method("Q", [param("$a")]), oracle)
        assert "parameter $b is missing" in out.violations[0].message

    def test_variadic_absorbs_parameters(self, oracle):
        base = method("P", [param("$a", "X&Y"), param("$b", "C")])
        derived = method("Q", [param("$xs", "X", variadic=True)])
        assert check_method_override(base, derived, oracle).ok

    def test_variadic_too_narrow(self, oracle):
        base = method("P", [param("$a", "A")])
        derived = method("Q", [param("$xs", "X", variadic=True)])
        out = check_method_override(base, derived, oracle)
        assert out.violations[0].details["role"] == "parameter"


class TestVAR007:
    """VAR-007: Reference and variadic modes must be kept."""

    def test_by_ref_parameter(self, oracle):
        out = check_method_override(method("P", [param("$x", "A", by_ref=True)]),
                                    method("Q", [param("$x", "A")]), oracle)
        assert out.violations[0].details["role"] == "signature"
        assert "must be passed by reference" in out.violations[0].message

    def test_variadic_parameter(self, oracle):
        out = check_method_override(method("P", [param("$xs", "A", variadic=True)]),
                                    method("Q", [param("$xs", "A", optional=True)]), oracle)
        assert "must accept variadic arguments" in out.violations[0].message

    def test_extra_parameters_take_base_variadics(self, oracle):
        base = method("P", [param("$xs", "A", variadic=True)])
        derived = method("Q", [param("$x", "A", optional=True), param("$ys", "B", variadic=True)])
        out = check_method_override(base, derived, oracle)
        assert [v.details["role"] for v in out.violations] == ["parameter"]
        assert "$ys" in out.violations[0].message

    def test_by_ref_return(self, oracle):
        out = check_method_override(method("P", [], "A", by_ref_return=True),
                                    method("Q", [], "A"), oracle)
        assert "must return by reference" in out.violations[0].message
