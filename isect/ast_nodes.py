"""isect AST Node definitions.

Top-level constructs: namespace, use, class_alias, class, interface.
Class members: typed properties and method signatures.
Method bodies and default values are not represented.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from isect.errors import SourceLocation


# ---------------------------------------------------------------------------
# Type Annotations (in source)
# ---------------------------------------------------------------------------

@dataclass
class TypeAnnotation:
    """A type as written, before name resolution.

    kind is one of "named", "nullable", "union", "intersection".
    """
    kind: str
    name: str = ""
    members: list[TypeAnnotation] = field(default_factory=list)
    location: Optional[SourceLocation] = None
    grouped: bool = False

    def __str__(self) -> str:
        if self.kind == "named":
            return self.name
        if self.kind == "nullable":
            return f"?{self.members[0]}"
        sep = "&" if self.kind == "intersection" else "|"
        parts = []
        for m in self.members:
            text = str(m)
            if m.kind in ("union", "intersection"):
                text = f"({text})"
            parts.append(text)
        return sep.join(parts)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@dataclass
class Parameter:
    name: str
    type_annotation: Optional[TypeAnnotation] = None
    by_ref: bool = False
    variadic: bool = False
    has_default: bool = False
    modifiers: list[str] = field(default_factory=list)
    location: Optional[SourceLocation] = None

    @property
    def is_promoted(self) -> bool:
        return bool(self.modifiers)

    @property
    def is_optional(self) -> bool:
        return self.has_default or self.variadic


@dataclass
class MethodDecl:
    name: str
    params: list[Parameter] = field(default_factory=list)
    return_type: Optional[TypeAnnotation] = None
    modifiers: list[str] = field(default_factory=list)
    by_ref_return: bool = False
    location: Optional[SourceLocation] = None

    @property
    def is_private(self) -> bool:
        return "private" in self.modifiers

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers


@dataclass
class PropertyDecl:
    name: str
    type_annotation: Optional[TypeAnnotation] = None
    modifiers: list[str] = field(default_factory=list)
    has_default: bool = False
    location: Optional[SourceLocation] = None

    @property
    def is_private(self) -> bool:
        return "private" in self.modifiers


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass
class Declaration:
    location: Optional[SourceLocation] = None


@dataclass
class NamespaceDecl(Declaration):
    name: str = ""


@dataclass
class UseDecl(Declaration):
    name: str = ""
    alias: str = ""


@dataclass
class AliasDecl(Declaration):
    """class_alias('Original', 'Alias');"""
    original: str = ""
    alias: str = ""


@dataclass
class ClassDecl(Declaration):
    name: str = ""
    kind: str = "class"  # "class" | "interface"
    parent: Optional[str] = None
    interfaces: list[str] = field(default_factory=list)
    modifiers: list[str] = field(default_factory=list)
    methods: list[MethodDecl] = field(default_factory=list)
    properties: list[PropertyDecl] = field(default_factory=list)

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"


@dataclass
class Program:
    declarations: list[Declaration] = field(default_factory=list)
    filename: str = "<stdin>"

    @property
    def classes(self) -> list[ClassDecl]:
        return [d for d in self.declarations if isinstance(d, ClassDecl)]
