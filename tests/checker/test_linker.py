"""isect Linker Tests — LINK-001 through LINK-010.

End-to-end: parse declaration source, validate every declared type, link
every class against the members it overrides or implements.
"""

from isect.config import IsectConfig
from isect.errors import ErrorKind
from isect.linker import check_source, link
from isect.oracle import HierarchyOracle, UnresolvedPolicy
from isect.parser import parse


HEADER = """
interface X {}
interface Y {}
class C implements X, Y {}
class D implements X, Y {}
class Z implements X {}
"""


def kinds(result):
    return [d.kind for d in result.diagnostics]


class TestLINK001:
    """LINK-001: Compatible overrides link cleanly."""

    def test_intersection_factory(self):
        result = check_source(HEADER + """
            interface Factory {
                public function make(): X&Y;
                public function take(X&Y $v): void;
            }
            class Impl implements Factory {
                public function make(): C {}
                public function take(X $v): void {}
            }
        """)
        assert result.ok, [str(d) for d in result.diagnostics]
        assert result.rejected == []
        assert "impl" in result.classes
        assert result.to_dict()["classes"] == ["C", "D", "Factory", "Impl", "X", "Y", "Z"]

    def test_union_of_implementers(self):
        result = check_source(HEADER + """
            abstract class Base { abstract public function pick(): X&Y; }
            class Impl extends Base { public function pick(): C|D {} }
        """)
        assert result.ok

    def test_reordered_members(self):
        result = check_source(HEADER + """
            interface I { public function f(X&Y $v): Y&X; }
            class Impl implements I { public function f(Y&X $v): X&Y {} }
        """)
        assert result.ok


class TestLINK002:
    """LINK-002: Variance violations reject the overriding class."""

    def test_removing_return_constraint(self):
        result = check_source(HEADER + """
            interface Factory { public function make(): X&Y; }
            class Impl implements Factory { public function make(): X {} }
        """)
        assert not result.ok
        assert result.rejected == ["Impl"]
        assert "impl" not in result.classes
        err = result.errors[0]
        assert err.kind == ErrorKind.VARIANCE_VIOLATION
        assert err.message == ("Declaration of Impl::make() must be compatible with"
                               " Factory::make(): removing return constraint Y is forbidden")
        assert err.location.line == 9

    def test_adding_parameter_constraint(self):
        result = check_source(HEADER + """
            class Base { public function take(X $v) {} }
            class Impl extends Base { public function take(X&Y $v) {} }
        """)
        assert result.rejected == ["Impl"]
        assert result.errors[0].details["pattern"] == "added_constraint"

    def test_class_missing_an_interface(self):
        result = check_source(HEADER + """
            interface Factory { public function make(): X&Y; }
            class Impl implements Factory { public function make(): Z {} }
        """)
        assert result.errors[0].details["constraint"] == "Y"

    def test_inherited_implementation_is_checked(self):
        result = check_source(HEADER + """
            interface I { public function get(): X&Y; }
            class Base { public function get(): X {} }
            class Child extends Base implements I {}
        """)
        assert result.rejected == ["Child"]
        assert "Base" in result.to_dict()["classes"]


class TestLINK003:
    """LINK-003: Property types are invariant."""

    SOURCE = """
        class A {}
        class B extends A {}
        class P { public A&B $p; }
        class Q extends P { public B $p; }
        class R extends P { public A $p; }
        class S extends P { public B&A $p; }
    """

    def test_invariance(self):
        result = check_source(self.SOURCE)
        assert result.rejected == ["R"]
        assert {"q", "s"} <= set(result.classes)
        assert result.errors[0].details["role"] == "property"

    def test_promoted_constructor_property(self):
        result = check_source(HEADER + """
            class P { public function __construct(public X&Y $dep) {} }
            class Q extends P { public X $dep; }
        """)
        assert result.rejected == ["Q"]


class TestLINK004:
    """LINK-004: Invalid declarations are rejected before any oracle query."""

    def test_duplicate_member(self):
        oracle = HierarchyOracle()
        result = link(parse("class C { public function f(A&A $x) {} }"), oracle=oracle)
        assert kinds(result) == [ErrorKind.DUPLICATE_MEMBER]
        assert result.rejected == ["C"]
        assert oracle.queries == 0
        assert not oracle.knows("C")

    def test_pseudo_types(self):
        result = check_source("""
            class C {
                public function f(): A&mixed {}
                public function g(A&iterable $x) {}
            }
        """)
        assert kinds(result) == [ErrorKind.DISALLOWED_PSEUDO_TYPE] * 2

    def test_scalar(self):
        result = check_source("class C { public int&A $p; }")
        assert kinds(result) == [ErrorKind.DISALLOWED_SCALAR]

    def test_nesting(self):
        result = check_source("class C { public function f(): (A&B)|C {} }")
        assert kinds(result) == [ErrorKind.INVALID_NESTING]

    def test_diagnostic_names_the_symbol(self):
        result = check_source("class C { public function f(A&A $x) {} }")
        assert result.errors[0].symbol == "C::f() parameter #1 ($x)"


class TestLINK005:
    """LINK-005: Callable lint."""

    SOURCE = "class C { public function f(): Closure&callable {} }"

    def test_warning(self):
        result = check_source(self.SOURCE)
        assert result.ok
        assert [w.kind for w in result.warnings] == [ErrorKind.DISALLOWED_SCALAR]

    def test_severity_threshold(self):
        result = check_source(self.SOURCE, config=IsectConfig(severity="error"))
        assert result.diagnostics == []

    def test_disabled(self):
        result = check_source(self.SOURCE, config=IsectConfig(callable_lint=False))
        assert result.diagnostics == []


class TestLINK006:
    """LINK-006: Unresolvable names under strict and permissive policies."""

    SOURCE = HEADER + """
        interface Base { public function f(): X; }
        class Impl implements Base { public function f(): Unknown&X {} }
    """

    def test_strict(self):
        result = check_source(self.SOURCE)
        assert result.rejected == ["Impl"]
        err = result.errors[0]
        assert err.kind == ErrorKind.UNRESOLVABLE_TYPE
        assert err.details["identifier"] == "Unknown"

    def test_permissive(self):
        config = IsectConfig(unresolved_policy=UnresolvedPolicy.PERMISSIVE)
        result = check_source(self.SOURCE, config=config)
        assert result.ok
        assert [w.kind for w in result.warnings] == [ErrorKind.UNRESOLVABLE_TYPE]
        assert result.warnings[0].details["identifier"] == "Unknown"

    def test_unknown_supertype_is_always_an_error(self):
        config = IsectConfig(unresolved_policy=UnresolvedPolicy.PERMISSIVE)
        result = check_source("class C implements Missing {}", config=config)
        assert result.rejected == ["C"]
        assert kinds(result) == [ErrorKind.UNRESOLVABLE_TYPE]


class TestLINK007:
    """LINK-007: Namespaces and runtime aliases."""

    def test_alias_in_namespace(self):
        result = check_source(r"""
            namespace App;
            interface X {}
            interface Y {}
            class C implements X, Y {}
            class_alias('App\C', 'Legacy');
            interface Repo { public function find(): X&Y; }
            class Impl implements Repo { public function find(): \Legacy {} }
        """)
        assert result.ok, [str(d) for d in result.diagnostics]
        assert "app\\impl" in result.classes

    def test_use_import(self):
        result = check_source(r"""
            namespace Lib;
            interface X {}
            interface Y {}
            namespace App;
            use Lib\X;
            use Lib\Y as Why;
            class C implements X, Why {}
            interface Repo { public function find(): X&Why; }
            class Impl implements Repo { public function find(): C {} }
        """)
        assert result.ok, [str(d) for d in result.diagnostics]


class TestLINK008:
    """LINK-008: self, static and parent are bound per declaring class."""

    def test_static_return(self):
        result = check_source("""
            interface I { public function with(): static; }
            class C implements I { public function with(): static {} }
        """)
        assert result.ok

    def test_parent_return(self):
        result = check_source("""
            class A { public function up(): self {} }
            class B extends A { public function up(): parent {} }
            class E extends B { public function up(): self {} }
        """)
        assert result.ok


class TestLINK009:
    """LINK-009: Class-level errors."""

    def test_duplicate_class(self):
        result = check_source("class C {} class c {}")
        assert kinds(result) == [ErrorKind.NAME_ERROR]

    def test_extending_an_interface(self):
        result = check_source("interface I {} class C extends I {}")
        assert kinds(result) == [ErrorKind.NAME_ERROR]
        assert result.rejected == ["C"]

    def test_syntax_error(self):
        result = check_source("class {")
        assert kinds(result) == [ErrorKind.SYNTAX_ERROR]
        assert not result.ok

    def test_private_and_constructors_are_not_compared(self):
        result = check_source(HEADER + """
            class P {
                private function f(): X&Y {}
                public function __construct(X&Y $a) {}
            }
            class Q extends P {
                public function f(): X {}
                public function __construct(int $a, $b) {}
            }
        """)
        assert result.ok


class TestLINK010:
    """LINK-010: SMT cross-check and JSON report."""

    def test_cross_check_agrees(self):
        result = check_source(HEADER + """
            interface Factory { public function make(): X&Y; }
            class Impl implements Factory { public function make(): C|D {} }
            class Bad implements Factory { public function make(): X {} }
        """, config=IsectConfig(smt_cross_check=True))
        assert kinds(result) == [ErrorKind.VARIANCE_VIOLATION]

    def test_report(self):
        result = check_source(HEADER + """
            interface Factory { public function make(): X&Y; }
            class Impl implements Factory { public function make(): X {} }
        """, filename="impl.php")
        report = result.to_dict()
        assert report["verified"] is False
        assert report["rejected"] == ["Impl"]
        assert report["errors"][0]["kind"] == "variance_violation"
        assert report["errors"][0]["location"]["file"] == "impl.php"
        assert report["warnings"] == []
