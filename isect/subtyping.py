"""isect Subtyping Engine.

Decides A <: B for type expressions by structural recursion, asking the class
relation oracle only for pairs of named types.

Rules:

  1. Named(X) <: Named(Y)          iff oracle(X, Y)   (X <: X without asking)
  2. A <: B1|...|Bn                iff A <: Bi for some i
  3. A1|...|An <: B                iff Ai <: B for every i
  4. A <: B1&...&Bn                iff A <: Bi for every i
  5. A1&...&An <: B                iff Ai <: B for some i
  6. ?A <: ?B iff A <: B;  A <: ?B iff A <: B;  ?A <: B only if B accepts null

Together 4 and 5 make A1&...&Am <: B1&...&Bn hold exactly when every Bj is
implied by some Ai: the source members must cover the target members, in any
order. Hence A&B and B&A are mutual subtypes, and B <: A&B when B extends A.

The universally quantified rules (3 and 4) are tried before the existential
ones (2 and 5); the opposite order would reject A|B <: A|B.

The engine keeps no state between or during calls. The oracle may load
classes, which may in turn call back into the engine; that is safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from isect.oracle import ClassRelationOracle
from isect.types import (
    TypeExpr, NamedType, NullableType, UnionType, IntersectionType,
    NULL, is_top, is_null,
)

OracleLike = Union[ClassRelationOracle, Callable[[str, str], bool]]


@dataclass(frozen=True)
class SubtypeJudgment:
    """Outcome of one subtype check.

    On failure ``counterexample`` is the intersection member or union arm
    that caused the rejection: an unmatched target member for rule 4, a
    failing source arm for rule 3, ``null`` for a nullable source, otherwise
    the side that could not be satisfied.
    """
    holds: bool
    sub: TypeExpr
    sup: TypeExpr
    counterexample: Optional[TypeExpr] = None

    def __bool__(self) -> bool:
        return self.holds


def oracle_query(resolve: OracleLike) -> Callable[[str, str], bool]:
    method = getattr(resolve, "is_subtype", None)
    if callable(method):
        return method
    if callable(resolve):
        return resolve
    raise TypeError(f"Not a class relation oracle: {resolve!r}")


def check_subtype(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> SubtypeJudgment:
    """Decide ``a <: b``. UnresolvableType from the oracle propagates."""
    return _judge(a, b, oracle_query(resolve))


def is_subtype(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> bool:
    return _judge(a, b, oracle_query(resolve)).holds


def is_equivalent(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> bool:
    """Mutual subtyping: the two expressions denote the same type."""
    ask = oracle_query(resolve)
    return _judge(a, b, ask).holds and _judge(b, a, ask).holds


def _judge(a: TypeExpr, b: TypeExpr, ask: Callable[[str, str], bool]) -> SubtypeJudgment:
    ok = SubtypeJudgment(True, a, b)

    def fail(culprit: TypeExpr) -> SubtypeJudgment:
        return SubtypeJudgment(False, a, b, culprit)

    if a == b or a.canonical() == b.canonical():
        return ok

    # rule 3
    if isinstance(a, UnionType):
        for arm in a.members:
            if not _judge(arm, b, ask).holds:
                return fail(arm)
        return ok

    # rule 4
    if isinstance(b, IntersectionType):
        if (isinstance(a, NullableType) or is_null(a)) and not b.allows_null:
            return fail(NULL)
        for member in b.members:
            if not _judge(a, member, ask).holds:
                return fail(member)
        return ok

    if is_top(b):
        return ok

    # rule 6
    if isinstance(a, NullableType):
        if not b.allows_null:
            return fail(NULL)
        inner = _judge(a.inner, b, ask)
        return ok if inner.holds else fail(inner.counterexample or a.inner)
    if is_null(a):
        return ok if b.allows_null else fail(a)
    if isinstance(b, NullableType):
        inner = _judge(a, b.inner, ask)
        return ok if inner.holds else fail(inner.counterexample or b.inner)

    # rule 2
    if isinstance(b, UnionType):
        for arm in b.members:
            if _judge(a, arm, ask).holds:
                return ok
        return fail(a)

    # rule 5
    if isinstance(a, IntersectionType):
        for member in a.members:
            if _judge(member, b, ask).holds:
                return ok
        return fail(b)

    # rule 1
    if isinstance(a, NamedType) and isinstance(b, NamedType):
        if a.key == b.key:
            return ok
        if is_top(a) or is_null(b):
            return fail(b)
        return ok if ask(a.name.lstrip("\\"), b.name.lstrip("\\")) else fail(b)

    return fail(b)
