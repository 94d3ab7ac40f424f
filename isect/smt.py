"""SMT cross-check for the subtyping engine.

An independent decision procedure built on z3. Each named type becomes a
Boolean ("the value is an instance of X"); the finite universe of names in a
query is closed under the oracle's answers as implication axioms; ``null``
excludes every class; intersections are conjunctions, unions disjunctions and
``mixed`` is true. Then

    a <: b   iff   axioms  =>  (a => b)   is valid.

For every shape the validator accepts this agrees with the structural rules
of ``isect.subtyping``, which makes it a useful oracle for property tests and
for the linker's optional cross-check.
"""

from __future__ import annotations

import logging
from typing import Callable

import z3

from isect.subtyping import OracleLike, oracle_query
from isect.types import (
    TypeExpr, NamedType, NullableType, UnionType, IntersectionType,
    is_top, is_null,
)

logger = logging.getLogger(__name__)


class SmtEncoder:
    """Encodes type expressions over one oracle as z3 formulas."""

    def __init__(self, resolve: OracleLike):
        self._ask: Callable[[str, str], bool] = oracle_query(resolve)
        self._vars: dict[str, z3.BoolRef] = {}
        self._names: dict[str, str] = {}
        self.null = z3.Bool("__null__")

    def _var(self, t: NamedType) -> z3.BoolRef:
        if t.key not in self._vars:
            self._vars[t.key] = z3.Bool(t.key)
            self._names[t.key] = t.name.lstrip("\\")
        return self._vars[t.key]

    def encode(self, expr: TypeExpr) -> z3.BoolRef:
        if isinstance(expr, NamedType):
            if is_top(expr):
                return z3.BoolVal(True)
            if is_null(expr):
                return self.null
            return self._var(expr)
        if isinstance(expr, NullableType):
            return z3.Or(self.null, self.encode(expr.inner))
        if isinstance(expr, IntersectionType):
            return z3.And(*[self.encode(m) for m in expr.members])
        if isinstance(expr, UnionType):
            return z3.Or(*[self.encode(m) for m in expr.members])
        raise TypeError(f"Cannot encode {expr!r}")

    def axioms(self) -> list[z3.BoolRef]:
        """Oracle facts over every name encoded so far."""
        facts: list[z3.BoolRef] = []
        keys = sorted(self._vars)
        for x in keys:
            facts.append(z3.Implies(self.null, z3.Not(self._vars[x])))
            for y in keys:
                if x != y and self._ask(self._names[x], self._names[y]):
                    facts.append(z3.Implies(self._vars[x], self._vars[y]))
        return facts

    def model_names(self, model: z3.ModelRef) -> list[str]:
        return sorted(self._names[k] for k, v in self._vars.items()
                      if z3.is_true(model.eval(v, model_completion=True)))


def _solve(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> tuple[z3.CheckSatResult, SmtEncoder, z3.Solver]:
    enc = SmtEncoder(resolve)
    lhs = enc.encode(a)
    rhs = enc.encode(b)
    solver = z3.Solver()
    solver.add(*enc.axioms())
    solver.add(lhs)
    solver.add(z3.Not(rhs))
    result = solver.check()
    logger.debug("smt %s <: %s -> %s", a, b, result)
    return result, enc, solver


def entails(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> bool:
    """Decide ``a <: b`` by validity checking. UnresolvableType propagates."""
    result, _, _ = _solve(a, b, resolve)
    if result == z3.unknown:
        raise RuntimeError(f"z3 could not decide {a} <: {b}")
    return result == z3.unsat


def witness(a: TypeExpr, b: TypeExpr, resolve: OracleLike) -> list[str] | None:
    """Names a value could be an instance of while in ``a`` but not ``b``.

    None when ``a <: b`` holds.
    """
    result, enc, solver = _solve(a, b, resolve)
    if result != z3.sat:
        return None
    return enc.model_names(solver.model())
