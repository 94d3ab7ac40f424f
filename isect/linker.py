"""isect Linker — declaration validation plus inheritance linking.

Phase 1 (structural): resolve every annotation and validate it. A class with
an invalid declaration is never registered.
Phase 2: register the surviving classes and runtime aliases with the oracle.
Phase 3 (semantic): compare every method and property against the members it
overrides or implements, using the variance checker. A class with a
violation fails to link.

Semantic results are recomputed on every run; nothing learned from the
oracle is kept as a permanent rejection, since aliases registered later can
change what a name means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from isect.ast_nodes import (
    Program, ClassDecl, MethodDecl, NamespaceDecl, UseDecl, AliasDecl,
    TypeAnnotation,
)
from isect.config import IsectConfig
from isect.errors import (
    IsectError, ErrorKind, SourceLocation, CompileError, UnresolvableType,
    Severity, internal_error,
)
from isect.names import NameResolver, bind_relative
from isect.oracle import (
    ClassInfo, HierarchyOracle, PermissiveOracle, with_policy,
)
from isect.parser import parse
from isect.subtyping import SubtypeJudgment
from isect.types import TypeExpr, identity_key
from isect.validator import validate_type
from isect.variance import (
    DeclarationSite, MemberRef, MethodSignature, ParamSignature, SlotKind,
    check_method_override, check_override,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Linked symbols
# ---------------------------------------------------------------------------

@dataclass
class LinkedProperty:
    site: DeclarationSite
    private: bool = False


@dataclass
class LinkedMethod:
    signature: MethodSignature
    private: bool = False
    abstract: bool = False


@dataclass
class LinkedClass:
    info: ClassInfo
    decl: ClassDecl
    methods: dict[str, LinkedMethod] = field(default_factory=dict)
    properties: dict[str, LinkedProperty] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def key(self) -> str:
        return self.info.key


@dataclass
class LinkResult:
    classes: dict[str, LinkedClass] = field(default_factory=dict)
    diagnostics: list[IsectError] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    oracle: Optional[HierarchyOracle] = None

    @property
    def errors(self) -> list[IsectError]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[IsectError]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "verified": self.ok,
            "classes": sorted(c.name for c in self.classes.values()),
            "rejected": list(self.rejected),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


# ---------------------------------------------------------------------------
# Linker
# ---------------------------------------------------------------------------

class Linker:
    """Validates and links the classes of one program."""

    def __init__(self, config: Optional[IsectConfig] = None,
                 oracle: Optional[HierarchyOracle] = None):
        self.config = config or IsectConfig()
        self.oracle = oracle if oracle is not None else HierarchyOracle()
        self.result = LinkResult(oracle=self.oracle)
        self._pending: list[LinkedClass] = []
        self._failed: set[str] = set()

    def link(self, program: Program) -> LinkResult:
        logger.debug("linking %s", program.filename)
        self._declare(program)
        for cls in self._pending:
            self.oracle.declare(cls.info)
        for cls in self._pending:
            self._link_class(cls)
            if cls.key in self._failed:
                self.result.rejected.append(cls.name)
            else:
                self.result.classes[cls.key] = cls
        logger.info("linked %d class(es), %d rejected, %d diagnostic(s)",
                    len(self.result.classes), len(self.result.rejected),
                    len(self.result.diagnostics))
        return self.result

    def _report(self, diag: IsectError) -> None:
        if diag.severity is Severity.ERROR or self.config.reports(diag.severity.value):
            self.result.diagnostics.append(diag)

    # -------------------------------------------------------------------
    # Phase 1 + 2: resolve, validate, register
    # -------------------------------------------------------------------

    def _declare(self, program: Program) -> None:
        resolver = NameResolver()
        seen: set[str] = set()
        for decl in program.declarations:
            if isinstance(decl, NamespaceDecl):
                resolver.enter_namespace(decl.name)
            elif isinstance(decl, UseDecl):
                resolver.add_use(decl.name, decl.alias)
            elif isinstance(decl, AliasDecl):
                self.oracle.alias(decl.alias.lstrip("\\"), decl.original.lstrip("\\"))
            elif isinstance(decl, ClassDecl):
                name = resolver.qualify(decl.name)
                if identity_key(name) in seen:
                    self._report(IsectError(
                        kind=ErrorKind.NAME_ERROR,
                        message=f"Cannot declare {decl.kind} {name}, because the name is already in use",
                        location=decl.location,
                        details={"symbol": name},
                    ))
                    continue
                seen.add(identity_key(name))
                linked = self._build_class(decl, name, resolver)
                if linked is not None:
                    self._pending.append(linked)
                else:
                    self.result.rejected.append(name)

    def _build_class(self, decl: ClassDecl, name: str,
                     resolver: NameResolver) -> Optional[LinkedClass]:
        parent = resolver.resolve_class_name(decl.parent) if decl.parent else None
        interfaces = tuple(resolver.resolve_class_name(i) for i in decl.interfaces)
        info = ClassInfo(name=name, kind=decl.kind, parent=parent,
                         interfaces=interfaces, location=decl.location)
        cls = LinkedClass(info=info, decl=decl)
        valid = True

        for prop in decl.properties:
            ref = MemberRef(name, prop.name, "property", location=prop.location)
            ptype, ok = self._resolve_slot(prop.type_annotation, resolver, ref)
            if not ok:
                valid = False
                continue
            cls.properties[prop.name] = LinkedProperty(
                site=DeclarationSite(SlotKind.PROPERTY, ptype, ref),
                private=prop.is_private,
            )

        for method in decl.methods:
            linked = self._build_method(method, name, resolver)
            if linked is None:
                valid = False
                continue
            cls.methods[method.name.lower()] = linked
            if method.name.lower() == "__construct":
                for i, p in enumerate(method.params):
                    if p.is_promoted:
                        ref = MemberRef(name, p.name, "property", location=p.location)
                        cls.properties[p.name] = LinkedProperty(
                            site=DeclarationSite(SlotKind.PROPERTY,
                                                 linked.signature.params[i].type, ref),
                            private="private" in p.modifiers,
                        )

        return cls if valid else None

    def _build_method(self, method: MethodDecl, class_name: str,
                      resolver: NameResolver) -> Optional[LinkedMethod]:
        ref = MemberRef(class_name, method.name, "method", location=method.location)
        valid = True
        params: list[ParamSignature] = []
        for i, p in enumerate(method.params):
            pref = MemberRef(class_name, method.name, "method", parameter=p.name,
                             position=i, location=p.location)
            ptype, ok = self._resolve_slot(p.type_annotation, resolver, pref)
            valid = valid and ok
            params.append(ParamSignature(name=p.name, type=ptype, by_ref=p.by_ref,
                                         variadic=p.variadic, optional=p.is_optional))
        rtype, ok = self._resolve_slot(method.return_type, resolver, ref)
        if not (ok and valid):
            return None
        return LinkedMethod(
            signature=MethodSignature(member=ref, params=tuple(params),
                                      return_type=rtype,
                                      by_ref_return=method.by_ref_return),
            private=method.is_private,
            abstract="abstract" in method.modifiers,
        )

    def _resolve_slot(self, ann: Optional[TypeAnnotation], resolver: NameResolver,
                      ref: MemberRef) -> tuple[Optional[TypeExpr], bool]:
        """The resolved type of a slot (None when untyped) and whether it is valid."""
        if ann is None:
            return None, True
        expr = resolver.resolve(ann)
        diagnostics = validate_type(expr, symbol=str(ref),
                                    location=ann.location or ref.location,
                                    callable_lint=self.config.callable_lint)
        for d in diagnostics:
            self._report(d)
        return expr, not any(d.is_error for d in diagnostics)

    # -------------------------------------------------------------------
    # Phase 3: inheritance linking
    # -------------------------------------------------------------------

    def _fail(self, cls: LinkedClass, diag: IsectError) -> None:
        self._report(diag)
        if diag.is_error:
            self._failed.add(cls.key)

    def _ancestors(self, cls: LinkedClass) -> Iterator[ClassInfo]:
        """Every class and interface above ``cls``, nearest first, each once."""
        seen = {cls.key}
        queue = list(cls.info.supertypes)
        while queue:
            name = queue.pop(0)
            info = self.oracle.lookup(name)
            if info.key in seen:
                continue
            seen.add(info.key)
            yield info
            queue.extend(info.supertypes)

    def _linked(self, info: ClassInfo) -> Optional[LinkedClass]:
        for cls in self._pending:
            if cls.key == info.key:
                return cls
        return None

    def _link_class(self, cls: LinkedClass) -> None:
        logger.debug("linking class %s", cls.name)
        oracle = with_policy(self.oracle, self.config.unresolved_policy)
        try:
            self._check_supertype_kinds(cls)
            ancestors = list(self._ancestors(cls))
            self._check_members(cls, ancestors, oracle)
        except UnresolvableType as exc:
            self._fail(cls, exc.to_error(symbol=cls.name, location=cls.decl.location))
            return
        if isinstance(oracle, PermissiveOracle):
            for exc in oracle.unresolved:
                self._report(IsectError(
                    kind=ErrorKind.UNRESOLVABLE_TYPE,
                    message=f"{exc} (treated as not a subtype)",
                    location=cls.decl.location,
                    details={"symbol": cls.name, "identifier": exc.identifier},
                    severity=Severity.WARNING,
                ))

    def _check_supertype_kinds(self, cls: LinkedClass) -> None:
        info = cls.info
        if info.parent:
            parent = self.oracle.lookup(info.parent)
            if parent.kind != "class":
                self._fail(cls, _kind_error(
                    f"Class {info.name} cannot extend interface {parent.name}",
                    info.name, cls.decl.location))
        for iface in info.interfaces:
            target = self.oracle.lookup(iface)
            if target.kind != "interface":
                verb = "extend" if info.kind == "interface" else "implement"
                self._fail(cls, _kind_error(
                    f"{info.name} cannot {verb} {target.name} - it is not an interface",
                    info.name, cls.decl.location))

    def _check_members(self, cls: LinkedClass, ancestors: list[ClassInfo], oracle) -> None:
        bases = [(a, self._linked(a)) for a in ancestors]

        for key, method in cls.methods.items():
            if method.private:
                continue
            for info, base_cls in bases:
                if base_cls is None or key not in base_cls.methods:
                    continue
                base = base_cls.methods[key]
                if base.private:
                    continue
                if key == "__construct" and not (base_cls.info.kind == "interface" or base.abstract):
                    continue
                self._compare_methods(cls, base.signature, method.signature, oracle)

        for name, prop in cls.properties.items():
            if prop.private:
                continue
            for info, base_cls in bases:
                if base_cls is None or name not in base_cls.properties:
                    continue
                base_prop = base_cls.properties[name]
                if base_prop.private:
                    continue
                self._compare_sites(cls, base_prop.site, prop.site, oracle)

        # methods inherited from a parent class must satisfy this class's interfaces
        if cls.info.kind == "class":
            for info, base_cls in bases:
                if base_cls is None or info.kind != "interface":
                    continue
                for key, iface_method in base_cls.methods.items():
                    if key in cls.methods:
                        continue
                    impl = self._inherited_implementation(cls, key)
                    if impl is not None:
                        self._compare_methods(cls, iface_method.signature, impl.signature, oracle)

    def _inherited_implementation(self, cls: LinkedClass, key: str) -> Optional[LinkedMethod]:
        parent = cls.info.parent
        while parent:
            info = self.oracle.lookup(parent)
            linked = self._linked(info)
            if linked is None:
                return None
            if key in linked.methods:
                return linked.methods[key]
            parent = info.parent
        return None

    def _bound(self, sig: MethodSignature) -> MethodSignature:
        owner = self.oracle.lookup(sig.member.class_name)
        params = tuple(
            ParamSignature(p.name, _bind(p.type, owner), p.by_ref, p.variadic, p.optional)
            for p in sig.params
        )
        return MethodSignature(sig.member, params, _bind(sig.return_type, owner),
                               sig.by_ref_return)

    def _compare_methods(self, cls: LinkedClass, base: MethodSignature,
                         derived: MethodSignature, oracle) -> None:
        outcome = check_method_override(self._bound(base), self._bound(derived), oracle)
        for violation in outcome.violations:
            self._fail(cls, violation)
        self._cross_check(cls, outcome.judgments)

    def _compare_sites(self, cls: LinkedClass, base: DeclarationSite,
                       derived: DeclarationSite, oracle) -> None:
        base_owner = self.oracle.lookup(base.member.class_name)
        derived_owner = self.oracle.lookup(derived.member.class_name)
        result = check_override(
            DeclarationSite(base.slot, _bind(base.type, base_owner), base.member),
            DeclarationSite(derived.slot, _bind(derived.type, derived_owner), derived.member),
            oracle,
        )
        if result.violation is not None:
            self._fail(cls, result.violation)
        self._cross_check(cls, result.judgments)

    def _cross_check(self, cls: LinkedClass, judgments: list[SubtypeJudgment]) -> None:
        if not self.config.smt_cross_check:
            return
        from isect.smt import entails

        checker = PermissiveOracle(self.oracle)
        for j in judgments:
            verdict = entails(j.sub, j.sup, checker)
            if verdict != j.holds:
                logger.warning("smt disagrees on %s <: %s (engine %s, smt %s)",
                               j.sub, j.sup, j.holds, verdict)
                self._fail(cls, internal_error(
                    f"Subtyping engine and SMT encoding disagree on {j.sub} <: {j.sup}",
                    location=cls.decl.location,
                    details={"symbol": cls.name, "sub": str(j.sub), "sup": str(j.sup),
                             "engine": j.holds, "smt": verdict},
                ))


def _bind(expr: Optional[TypeExpr], owner: ClassInfo) -> Optional[TypeExpr]:
    if expr is None:
        return None
    return bind_relative(expr, owner.name, owner.parent)


def _kind_error(message: str, symbol: str,
                location: Optional[SourceLocation]) -> IsectError:
    return IsectError(
        kind=ErrorKind.NAME_ERROR,
        message=message,
        location=location,
        details={"symbol": symbol},
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def link(program: Program, config: Optional[IsectConfig] = None,
         oracle: Optional[HierarchyOracle] = None) -> LinkResult:
    """Validate and link every class declared in ``program``."""
    return Linker(config, oracle).link(program)


def check_source(source: str, filename: str = "<stdin>",
                 config: Optional[IsectConfig] = None,
                 oracle: Optional[HierarchyOracle] = None) -> LinkResult:
    """Parse and link declaration source; syntax errors become diagnostics."""
    try:
        program = parse(source, filename=filename)
    except CompileError as e:
        return LinkResult(diagnostics=list(e.errors), oracle=oracle)
    return link(program, config, oracle)
