"""isect Variance Checker.

Compares an overriding declaration against the one it overrides:

    return types    covariant       derived <: base
    parameters      contravariant   base <: derived
    properties      invariant       both

Adding an intersection member to a return type narrows it and is allowed;
removing one is forbidden. For parameters it is the other way round.
Which of the two happened is read off the failing direction and the
counterexample of the subtype judgment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from isect.errors import SourceLocation, VarianceViolation
from isect.subtyping import OracleLike, SubtypeJudgment, check_subtype
from isect.types import TypeExpr, UnionType, IntersectionType, MIXED


class Variance(Enum):
    COVARIANT = "covariant"
    CONTRAVARIANT = "contravariant"
    INVARIANT = "invariant"


class SlotKind(Enum):
    RETURN = "return"
    PARAMETER = "parameter"
    PROPERTY = "property"

    @property
    def variance(self) -> Variance:
        return _ROLE_VARIANCE[self]


_ROLE_VARIANCE = {
    SlotKind.RETURN: Variance.COVARIANT,
    SlotKind.PARAMETER: Variance.CONTRAVARIANT,
    SlotKind.PROPERTY: Variance.INVARIANT,
}


@dataclass(frozen=True)
class MemberRef:
    """Back-reference from a declaration site to the member declaring it."""
    class_name: str
    member: str
    kind: str = "method"  # "method" | "property"
    parameter: Optional[str] = None
    position: Optional[int] = None
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        if self.kind == "property":
            return f"{self.class_name}::{self.member}"
        text = f"{self.class_name}::{self.member}()"
        if self.parameter is not None:
            text += f" parameter #{(self.position or 0) + 1} ({self.parameter})"
        return text


@dataclass(frozen=True)
class DeclarationSite:
    slot: SlotKind
    type: Optional[TypeExpr]
    member: MemberRef

    @property
    def variance(self) -> Variance:
        return self.slot.variance

    @property
    def effective_type(self) -> TypeExpr:
        """The declared type; an undeclared slot accepts anything."""
        return self.type if self.type is not None else MIXED

    def describe_type(self) -> str:
        return str(self.type) if self.type is not None else "(none)"


@dataclass
class ConformanceResult:
    base: DeclarationSite
    derived: DeclarationSite
    judgments: list[SubtypeJudgment] = field(default_factory=list)
    violation: Optional[VarianceViolation] = None

    @property
    def ok(self) -> bool:
        return self.violation is None

    def __bool__(self) -> bool:
        return self.ok


def check_override(base: DeclarationSite, derived: DeclarationSite,
                   resolve: OracleLike) -> ConformanceResult:
    """Check that ``derived`` may replace ``base`` under its slot's variance."""
    if base.slot is not derived.slot:
        raise ValueError(f"Cannot compare a {base.slot.value} slot with a {derived.slot.value} slot")

    result = ConformanceResult(base=base, derived=derived)
    b, d = base.effective_type, derived.effective_type
    variance = base.variance

    if variance in (Variance.COVARIANT, Variance.INVARIANT):
        down = check_subtype(d, b, resolve)
        result.judgments.append(down)
        if not down.holds:
            result.violation = _violation(base, derived, down, narrowing=True)
            return result

    if variance in (Variance.CONTRAVARIANT, Variance.INVARIANT):
        up = check_subtype(b, d, resolve)
        result.judgments.append(up)
        if not up.holds:
            result.violation = _violation(base, derived, up, narrowing=False)

    return result


def _violation(base: DeclarationSite, derived: DeclarationSite,
               judgment: SubtypeJudgment, narrowing: bool) -> VarianceViolation:
    """Build the diagnostic for a failed direction.

    ``narrowing`` is True when ``derived <: base`` failed: the derived type
    accepts something the base promised to exclude.
    """
    slot = base.slot.value
    culprit = judgment.counterexample
    culprit_text = str(culprit) if culprit is not None else None
    pattern: Optional[str] = None

    if narrowing:
        if derived.type is None:
            pattern = "removed_type"
            detail = f"removing the {slot} type {base.describe_type()} is forbidden"
        elif isinstance(base.type, IntersectionType) and culprit in base.type.members:
            pattern = "removed_constraint"
            detail = f"removing {slot} constraint {culprit_text} is forbidden"
        elif isinstance(derived.type, UnionType) and culprit in derived.type.members:
            pattern = "added_alternative"
            detail = f"adding {slot} alternative {culprit_text} is forbidden"
        else:
            detail = (f"{slot} type {derived.describe_type()} is not a subtype of"
                      f" {base.describe_type()}")
    else:
        if base.type is None:
            pattern = "added_type"
            detail = f"adding the {slot} type {derived.describe_type()} is forbidden"
        elif isinstance(derived.type, IntersectionType) and culprit in derived.type.members:
            pattern = "added_constraint"
            detail = f"adding {slot} constraint {culprit_text} is forbidden"
        elif isinstance(base.type, UnionType) and culprit in base.type.members:
            pattern = "removed_alternative"
            detail = f"removing {slot} alternative {culprit_text} is forbidden"
        else:
            detail = (f"{slot} type {derived.describe_type()} is not a supertype of"
                      f" {base.describe_type()}")

    message = (f"Declaration of {derived.member} must be compatible with"
               f" {base.member}: {detail}")
    return VarianceViolation(
        symbol=str(derived.member),
        role=slot,
        base_type=base.describe_type(),
        derived_type=derived.describe_type(),
        message=message,
        location=derived.member.location,
        base_symbol=str(base.member),
        constraint=culprit_text,
        pattern=pattern,
    )


# ---------------------------------------------------------------------------
# Whole-method comparison
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParamSignature:
    name: str
    type: Optional[TypeExpr] = None
    by_ref: bool = False
    variadic: bool = False
    optional: bool = False


@dataclass(frozen=True)
class MethodSignature:
    member: MemberRef
    params: tuple[ParamSignature, ...] = ()
    return_type: Optional[TypeExpr] = None
    by_ref_return: bool = False

    def param_site(self, index: int) -> DeclarationSite:
        p = self.params[index]
        ref = MemberRef(self.member.class_name, self.member.member, "method",
                        parameter=p.name, position=index,
                        location=self.member.location)
        return DeclarationSite(SlotKind.PARAMETER, p.type, ref)

    def return_site(self) -> DeclarationSite:
        return DeclarationSite(SlotKind.RETURN, self.return_type, self.member)

    @property
    def required_count(self) -> int:
        return sum(1 for p in self.params if not p.optional and not p.variadic)


def _signature_violation(base: MethodSignature, derived: MethodSignature,
                         detail: str) -> VarianceViolation:
    return VarianceViolation(
        symbol=str(derived.member),
        role="signature",
        base_type="",
        derived_type="",
        message=(f"Declaration of {derived.member} must be compatible with"
                 f" {base.member}: {detail}"),
        location=derived.member.location,
        base_symbol=str(base.member),
    )


@dataclass
class MethodConformance:
    """Every slot comparison made for one method override."""
    base: MethodSignature
    derived: MethodSignature
    results: list[ConformanceResult] = field(default_factory=list)
    violations: list[VarianceViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def judgments(self) -> list[SubtypeJudgment]:
        return [j for r in self.results for j in r.judgments]

    def _record(self, result: ConformanceResult) -> None:
        self.results.append(result)
        if result.violation is not None:
            self.violations.append(result.violation)


def check_method_override(base: MethodSignature, derived: MethodSignature,
                          resolve: OracleLike) -> MethodConformance:
    """Compare parameters positionally and the return type of two methods."""
    out = MethodConformance(base=base, derived=derived)

    if derived.required_count > base.required_count:
        out.violations.append(_signature_violation(
            base, derived,
            f"it requires {derived.required_count} argument(s) where"
            f" {base.required_count} may be passed",
        ))

    base_variadic = bool(base.params) and base.params[-1].variadic
    derived_variadic = bool(derived.params) and derived.params[-1].variadic
    if base_variadic and not derived_variadic:
        out.violations.append(_signature_violation(
            base, derived, "it must accept variadic arguments",
        ))

    for i, bp in enumerate(base.params):
        if i < len(derived.params):
            dp_index = i
        elif derived_variadic:
            dp_index = len(derived.params) - 1
        else:
            out.violations.append(_signature_violation(
                base, derived, f"parameter {bp.name} is missing",
            ))
            continue
        dp = derived.params[dp_index]
        if bp.by_ref != dp.by_ref:
            mode = "by reference" if bp.by_ref else "by value"
            out.violations.append(_signature_violation(
                base, derived, f"parameter {dp.name} must be passed {mode}",
            ))
        out._record(check_override(base.param_site(i), derived.param_site(dp_index), resolve))

    if base_variadic:
        # extra parameters also receive the base's variadic arguments
        for j in range(len(base.params), len(derived.params)):
            out._record(check_override(base.param_site(len(base.params) - 1),
                                       derived.param_site(j), resolve))

    if base.by_ref_return and not derived.by_ref_return:
        out.violations.append(_signature_violation(
            base, derived, "the method must return by reference",
        ))

    out._record(check_override(base.return_site(), derived.return_site(), resolve))
    return out
