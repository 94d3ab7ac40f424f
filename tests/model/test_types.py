"""isect Type Model Tests — TYPE-001 through TYPE-006.

Type expressions are immutable values; every shape is representable so the
validator can report it.
"""

import dataclasses

import pytest

from isect.types import (
    NamedType, NullableType, UnionType, IntersectionType,
    MIXED, NULL, named, nullable, union, intersection, identity_key,
    is_top, is_null,
)


class TestTYPE001:
    """TYPE-001: Rendering round-trips the source form."""

    def test_intersection_renders_with_ampersand(self):
        assert str(intersection("A", "B")) == "A&B"

    def test_union_renders_with_pipe(self):
        assert str(union("A", "B", "null")) == "A|B|null"

    def test_leading_separator_is_stripped(self):
        assert str(named("\\Foo\\Bar")) == "Foo\\Bar"
        assert str(intersection("\\Foo\\Bar", "\\Baz")) == "Foo\\Bar&Baz"

    def test_nullable_named(self):
        assert str(nullable(named("Foo"))) == "?Foo"

    def test_nested_composites_are_parenthesised(self):
        assert str(union(intersection("A", "B"), "C")) == "(A&B)|C"
        assert str(NullableType(union("A", "B"))) == "?(A|B)"
        assert str(intersection(NullableType(named("A")), "B")) == "(?A)&B"


class TestTYPE002:
    """TYPE-002: Identity keys are case-insensitive and separator-free."""

    def test_identity_key(self):
        assert identity_key("\\Foo\\Bar") == "foo\\bar"
        assert identity_key("FOO") == identity_key("foo")

    def test_named_key(self):
        assert named("\\App\\Model").key == "app\\model"

    def test_builtins(self):
        assert named("Int").is_builtin
        assert named("callable").is_builtin
        assert not named("Foo").is_builtin


class TestTYPE003:
    """TYPE-003: Canonical form ignores member order."""

    def test_intersection_order(self):
        assert intersection("B", "A").canonical() == intersection("A", "B").canonical()

    def test_order_is_case_insensitive(self):
        assert intersection("b", "A").canonical() == intersection("A", "b")

    def test_union_of_intersections(self):
        left = union(intersection("B", "A"), "C").canonical()
        right = union("C", intersection("A", "B")).canonical()
        assert left == right

    def test_declared_order_is_kept(self):
        t = intersection("B", "A")
        assert [str(m) for m in t.members] == ["B", "A"]


class TestTYPE004:
    """TYPE-004: Null acceptance."""

    def test_named(self):
        assert MIXED.allows_null
        assert NULL.allows_null
        assert not named("Foo").allows_null

    def test_nullable(self):
        assert nullable(named("Foo")).allows_null

    def test_union_with_null(self):
        assert union("Foo", "null").allows_null
        assert not union("Foo", "Bar").allows_null

    def test_intersection_never_allows_null(self):
        assert not intersection("A", "B").allows_null


class TestTYPE005:
    """TYPE-005: Constructors."""

    def test_nullable_does_not_nest(self):
        inner = nullable(named("A"))
        assert nullable(inner) is inner

    def test_strings_are_coerced(self):
        assert intersection("A", named("B")) == IntersectionType((NamedType("A"), NamedType("B")))
        assert union("A") == UnionType((NamedType("A"),))

    def test_top_and_null(self):
        assert is_top(named("MIXED"))
        assert is_null(named("null"))
        assert not is_top(union("mixed", "A"))


class TestTYPE006:
    """TYPE-006: Expressions are immutable and hashable."""

    def test_frozen(self):
        t = intersection("A", "B")
        with pytest.raises(dataclasses.FrozenInstanceError):
            t.members = ()

    def test_hashable(self):
        seen = {intersection("A", "B"), intersection("A", "B"), named("A")}
        assert len(seen) == 2

    def test_named_members_walks_the_tree(self):
        t = union(intersection("A", "B"), "C")
        assert [m.name for m in t.named_members()] == ["A", "B", "C"]
