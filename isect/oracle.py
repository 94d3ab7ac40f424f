"""Class relation oracles.

The subtyping engine only ever asks one question of the outside world: is
named class or interface X a nominal subtype of Y? ``HierarchyOracle`` answers
it from registered declarations, runtime aliases and an optional lazy loader.
Loading a class may run arbitrary code (including further subtype checks), so
re-entrant queries are expected and handled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from isect.errors import SourceLocation, UnresolvableType
from isect.types import identity_key, SCALAR_TYPES, PSEUDO_TYPES, CALLABLE

logger = logging.getLogger(__name__)


@runtime_checkable
class ClassRelationOracle(Protocol):
    def is_subtype(self, sub: str, sup: str) -> bool:
        """Nominal subtyping between two resolved names.

        Raises UnresolvableType when either name cannot be loaded.
        """
        ...


@dataclass(frozen=True)
class ClassInfo:
    name: str
    kind: str = "class"  # "class" | "interface"
    parent: Optional[str] = None
    interfaces: tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    @property
    def key(self) -> str:
        return identity_key(self.name)

    @property
    def supertypes(self) -> tuple[str, ...]:
        if self.parent:
            return (self.parent,) + self.interfaces
        return self.interfaces


BUILTIN_CLASSES: tuple[ClassInfo, ...] = (
    ClassInfo("Traversable", kind="interface"),
    ClassInfo("Iterator", kind="interface", interfaces=("Traversable",)),
    ClassInfo("IteratorAggregate", kind="interface", interfaces=("Traversable",)),
    ClassInfo("Countable", kind="interface"),
    ClassInfo("ArrayAccess", kind="interface"),
    ClassInfo("Stringable", kind="interface"),
    ClassInfo("Closure", kind="class"),
)

Loader = Callable[[str], Optional[ClassInfo]]


class HierarchyOracle:
    """Answers nominal subtype queries over a registry of declarations."""

    def __init__(self, classes: Optional[list[ClassInfo]] = None,
                 loader: Optional[Loader] = None,
                 builtins: bool = True):
        self._classes: dict[str, ClassInfo] = {}
        self._aliases: dict[str, str] = {}
        self._ancestors: dict[str, frozenset[str]] = {}
        self._loading: set[str] = set()
        self.loader = loader
        self.queries = 0
        if builtins:
            for info in BUILTIN_CLASSES:
                self.declare(info)
        for info in classes or []:
            self.declare(info)

    # -------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------

    def declare(self, info: ClassInfo) -> None:
        self._classes[info.key] = info
        self._ancestors.clear()

    def alias(self, alias: str, target: str) -> None:
        self._aliases[identity_key(alias)] = identity_key(target)
        self._ancestors.clear()

    def knows(self, name: str) -> bool:
        return self._canonical(name) in self._classes

    def lookup(self, name: str) -> ClassInfo:
        """Return the declaration behind ``name``, loading it if needed."""
        key = self._canonical(name)
        info = self._classes.get(key)
        if info is not None:
            return info
        if self.loader is None:
            raise UnresolvableType(name.lstrip("\\"))
        if key in self._loading:
            raise UnresolvableType(name.lstrip("\\"), "circular class loading")
        self._loading.add(key)
        try:
            logger.debug("loading class %s", name)
            loaded = self.loader(name.lstrip("\\"))
        finally:
            self._loading.discard(key)
        if loaded is None:
            raise UnresolvableType(name.lstrip("\\"))
        self.declare(loaded)
        if loaded.key != key:
            self.alias(name, loaded.name)
        return loaded

    def _canonical(self, name: str) -> str:
        key = identity_key(name)
        seen = {key}
        while key in self._aliases:
            key = self._aliases[key]
            if key in seen:
                raise UnresolvableType(name.lstrip("\\"), "circular class alias")
            seen.add(key)
        return key

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------

    def ancestors(self, name: str) -> frozenset[str]:
        """Identity keys of ``name`` and every class/interface above it."""
        key = self.lookup(name).key
        cached = self._ancestors.get(key)
        if cached is not None:
            return cached
        result: set[str] = set()
        self._collect(key, result, [])
        frozen = frozenset(result)
        self._ancestors[key] = frozen
        return frozen

    def _collect(self, key: str, result: set[str], path: list[str]) -> None:
        if key in path:
            raise UnresolvableType(self._classes[key].name, "circular inheritance")
        if key in result:
            return
        result.add(key)
        path.append(key)
        for sup in self._classes[key].supertypes:
            self._collect(self.lookup(sup).key, result, path)
        path.pop()

    def is_subtype(self, sub: str, sup: str) -> bool:
        self.queries += 1
        sub_key = identity_key(sub)
        sup_key = identity_key(sup)
        if sub_key == sup_key:
            return True
        if _is_builtin(sub_key):
            # scalars and pseudo types relate only reflexively
            return sup_key == "mixed"
        if sup_key in ("mixed", "object"):
            self.lookup(sub)
            return True
        if sup_key == "iterable":
            return "traversable" in self.ancestors(sub)
        if sup_key == CALLABLE:
            return "closure" in self.ancestors(sub)
        if _is_builtin(sup_key):
            self.lookup(sub)
            return False
        target = self.lookup(sup).key
        return target in self.ancestors(sub)


def _is_builtin(key: str) -> bool:
    return key in SCALAR_TYPES or key in PSEUDO_TYPES or key == CALLABLE


class CallableOracle:
    """Adapt a plain ``(sub, sup) -> bool`` function to the oracle protocol."""

    def __init__(self, fn: Callable[[str, str], bool]):
        self._fn = fn

    def is_subtype(self, sub: str, sup: str) -> bool:
        return self._fn(sub, sup)


class UnresolvedPolicy(Enum):
    STRICT = "strict"          # UnresolvableType aborts the check
    PERMISSIVE = "permissive"  # an unresolvable pair is "not a subtype"


class PermissiveOracle:
    """Wrap an oracle so unresolvable names answer False instead of raising.

    Every name that failed to resolve is remembered in ``unresolved`` so the
    caller can still report it.
    """

    def __init__(self, inner: ClassRelationOracle):
        self.inner = inner
        self.unresolved: list[UnresolvableType] = []

    def is_subtype(self, sub: str, sup: str) -> bool:
        try:
            return self.inner.is_subtype(sub, sup)
        except UnresolvableType as exc:
            logger.warning("treating %s <: %s as false: %s", sub, sup, exc)
            self.unresolved.append(exc)
            return False


def with_policy(oracle: ClassRelationOracle,
                policy: UnresolvedPolicy) -> ClassRelationOracle:
    if policy is UnresolvedPolicy.PERMISSIVE:
        return PermissiveOracle(oracle)
    return oracle
