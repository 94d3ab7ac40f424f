"""isect Parser — LL(1) recursive-descent parser.

Parses a disambiguated token stream into declarations. The two meanings of
``&`` arrive as distinct terminals (AMP_BYREF, AMP_INTERSECTION), so no
production needs more than one token of lookahead.

Type grammar:

    type         := '?' composite | composite
    composite    := intersection ('|' intersection)*
    intersection := atom (AMP_INTERSECTION atom)*
    atom         := '(' composite ')' | '?' atom | NAME

``&`` binds tighter than ``|`` so that mixed forms such as ``A&B|C`` still
produce a tree the validator can reject with a precise diagnostic.
"""

from __future__ import annotations

from typing import Optional

from isect.lexer import Token, TokenType
from isect.disambiguate import tokenize_disambiguated
from isect.ast_nodes import (
    Program, Declaration, NamespaceDecl, UseDecl, AliasDecl, ClassDecl,
    MethodDecl, PropertyDecl, Parameter, TypeAnnotation,
)
from isect.errors import SourceLocation, syntax_error, CompileError


_MEMBER_MODIFIERS = {
    TokenType.PUBLIC, TokenType.PROTECTED, TokenType.PRIVATE,
    TokenType.STATIC, TokenType.ABSTRACT, TokenType.FINAL, TokenType.READONLY,
}

_CLASS_MODIFIERS = {TokenType.ABSTRACT, TokenType.FINAL, TokenType.READONLY}

_PARAM_MODIFIERS = {
    TokenType.PUBLIC, TokenType.PROTECTED, TokenType.PRIVATE, TokenType.READONLY,
}

_AMPERSANDS = {TokenType.AMP_BYREF, TokenType.AMP_INTERSECTION}

_OPENERS = {TokenType.LPAREN: TokenType.RPAREN,
            TokenType.LBRACKET: TokenType.RBRACKET,
            TokenType.LBRACE: TokenType.RBRACE}


class Parser:
    """LL(1) recursive-descent parser for class and interface declarations."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>"):
        self.tokens = tokens
        self.pos = 0
        self.filename = filename

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self) -> TokenType:
        return self._current().type

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, tt: TokenType) -> Token:
        tok = self._current()
        if tok.type != tt:
            raise CompileError(syntax_error(
                f"Expected {tt.name}, got {tok.type.name} ('{tok.value}')",
                tok.location,
            ))
        return self._advance()

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        return None

    def _expect_name(self) -> Token:
        """An identifier, or a keyword used in a name position (method names)."""
        tok = self._current()
        if tok.type == TokenType.IDENT or tok.type.name.lower() == tok.value.lower():
            return self._advance()
        raise CompileError(syntax_error(
            f"Expected a name, got {tok.type.name} ('{tok.value}')",
            tok.location,
        ))

    def _skip_balanced(self) -> None:
        """Skip one bracketed group starting at the current opener."""
        opener = self._advance()
        stack = [_OPENERS[opener.type]]
        while stack:
            tok = self._current()
            if tok.type == TokenType.EOF:
                raise CompileError(syntax_error(
                    f"Unclosed '{opener.value}'", opener.location,
                ))
            if tok.type in _OPENERS:
                stack.append(_OPENERS[tok.type])
            elif tok.type == stack[-1]:
                stack.pop()
            elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
                raise CompileError(syntax_error(
                    f"Unexpected '{tok.value}'", tok.location,
                ))
            self._advance()

    def _skip_until(self, *stops: TokenType) -> None:
        """Skip an expression up to (not including) a stop token at depth 0."""
        while self._peek() not in stops:
            if self._peek() == TokenType.EOF:
                raise CompileError(syntax_error("Unexpected end of input", self._loc()))
            if self._peek() in _OPENERS:
                self._skip_balanced()
            else:
                self._advance()

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse(self) -> Program:
        decls: list[Declaration] = []
        while self._peek() != TokenType.EOF:
            decls.extend(self._parse_declaration())
        return Program(declarations=decls, filename=self.filename)

    def _parse_declaration(self) -> list[Declaration]:
        tt = self._peek()
        if tt == TokenType.NAMESPACE:
            return self._parse_namespace()
        if tt == TokenType.USE:
            return self._parse_use()
        if tt == TokenType.IDENT and self._current().value.lstrip("\\").lower() == "class_alias":
            return [self._parse_class_alias()]
        if tt in (TokenType.CLASS, TokenType.INTERFACE) or tt in _CLASS_MODIFIERS:
            return [self._parse_class_like()]
        if tt == TokenType.SEMICOLON:
            self._advance()
            return []
        raise CompileError(syntax_error(
            f"Expected 'namespace', 'use', 'class' or 'interface', got '{self._current().value}'",
            self._loc(),
        ))

    def _parse_namespace(self) -> list[Declaration]:
        loc = self._loc()
        self._expect(TokenType.NAMESPACE)
        name = ""
        if self._peek() == TokenType.IDENT:
            name = self._advance().value.lstrip("\\")
        if self._match(TokenType.SEMICOLON):
            return [NamespaceDecl(name=name, location=loc)]
        self._expect(TokenType.LBRACE)
        decls: list[Declaration] = [NamespaceDecl(name=name, location=loc)]
        while self._peek() != TokenType.RBRACE:
            if self._peek() == TokenType.EOF:
                raise CompileError(syntax_error("Unclosed namespace block", loc))
            decls.extend(self._parse_declaration())
        self._expect(TokenType.RBRACE)
        decls.append(NamespaceDecl(name="", location=self._loc()))
        return decls

    def _parse_use(self) -> list[Declaration]:
        self._expect(TokenType.USE)
        uses: list[Declaration] = []
        while True:
            loc = self._loc()
            name = self._expect(TokenType.IDENT).value.lstrip("\\")
            alias = name.rsplit("\\", 1)[-1]
            if self._match(TokenType.AS):
                alias = self._expect(TokenType.IDENT).value
            uses.append(UseDecl(name=name, alias=alias, location=loc))
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.SEMICOLON)
        return uses

    def _parse_class_alias(self) -> AliasDecl:
        loc = self._loc()
        self._advance()
        self._expect(TokenType.LPAREN)
        original = self._expect(TokenType.STRING_LIT).value
        self._expect(TokenType.COMMA)
        alias = self._expect(TokenType.STRING_LIT).value
        # optional autoload flag
        if self._match(TokenType.COMMA):
            self._skip_until(TokenType.RPAREN)
        self._expect(TokenType.RPAREN)
        self._expect(TokenType.SEMICOLON)
        return AliasDecl(original=original, alias=alias, location=loc)

    # -------------------------------------------------------------------
    # class / interface
    # -------------------------------------------------------------------

    def _parse_class_like(self) -> ClassDecl:
        loc = self._loc()
        modifiers: list[str] = []
        while self._peek() in _CLASS_MODIFIERS:
            modifiers.append(self._advance().value.lower())
        if self._match(TokenType.INTERFACE):
            if modifiers:
                raise CompileError(syntax_error(
                    f"Interfaces cannot be declared '{modifiers[0]}'", loc,
                ))
            name = self._expect(TokenType.IDENT).value
            extends: list[str] = []
            if self._match(TokenType.EXTENDS):
                extends = self._parse_name_list()
            decl = ClassDecl(name=name, kind="interface", interfaces=extends,
                             location=loc)
        else:
            self._expect(TokenType.CLASS)
            name = self._expect(TokenType.IDENT).value
            parent: Optional[str] = None
            implements: list[str] = []
            if self._match(TokenType.EXTENDS):
                parent = self._expect(TokenType.IDENT).value
            if self._match(TokenType.IMPLEMENTS):
                implements = self._parse_name_list()
            decl = ClassDecl(name=name, kind="class", parent=parent,
                             interfaces=implements, modifiers=modifiers,
                             location=loc)
        self._parse_class_body(decl)
        return decl

    def _parse_name_list(self) -> list[str]:
        names = [self._expect(TokenType.IDENT).value]
        while self._match(TokenType.COMMA):
            names.append(self._expect(TokenType.IDENT).value)
        return names

    def _parse_class_body(self, decl: ClassDecl) -> None:
        self._expect(TokenType.LBRACE)
        while self._peek() != TokenType.RBRACE:
            if self._peek() == TokenType.EOF:
                raise CompileError(syntax_error(
                    f"Unclosed body of '{decl.name}'", decl.location,
                ))
            self._parse_member(decl)
        self._expect(TokenType.RBRACE)

    def _parse_member(self, decl: ClassDecl) -> None:
        loc = self._loc()
        if self._peek() in (TokenType.USE, TokenType.CONST):
            # trait imports and constants carry no declared types we check
            self._skip_until(TokenType.SEMICOLON)
            self._advance()
            return
        modifiers: list[str] = []
        while self._peek() in _MEMBER_MODIFIERS or (
            self._peek() == TokenType.IDENT and self._current().value.lower() == "var"
        ):
            modifiers.append(self._advance().value.lower())
        if self._peek() == TokenType.CONST:
            self._skip_until(TokenType.SEMICOLON)
            self._advance()
            return
        if self._match(TokenType.FUNCTION):
            decl.methods.append(self._parse_method(modifiers, loc))
            return
        if not modifiers:
            raise CompileError(syntax_error(
                f"Expected a member declaration, got '{self._current().value}'", loc,
            ))
        decl.properties.extend(self._parse_properties(modifiers, loc))

    def _parse_method(self, modifiers: list[str], loc: SourceLocation) -> MethodDecl:
        # In 'function &name' the '&' is followed by a name, never a variable,
        # so it arrives as AMP_INTERSECTION; here it can only mean by-ref return.
        by_ref = self._peek() in _AMPERSANDS
        if by_ref:
            self._advance()
        name = self._expect_name().value
        self._expect(TokenType.LPAREN)
        params = self._parse_param_list()
        self._expect(TokenType.RPAREN)
        return_type: Optional[TypeAnnotation] = None
        if self._match(TokenType.COLON):
            return_type = self._parse_type()
        if self._peek() == TokenType.LBRACE:
            self._skip_balanced()
        else:
            self._expect(TokenType.SEMICOLON)
        return MethodDecl(name=name, params=params, return_type=return_type,
                          modifiers=modifiers, by_ref_return=by_ref, location=loc)

    def _parse_properties(self, modifiers: list[str],
                          loc: SourceLocation) -> list[PropertyDecl]:
        type_ann: Optional[TypeAnnotation] = None
        if self._peek() != TokenType.VARIABLE:
            type_ann = self._parse_type()
        props: list[PropertyDecl] = []
        while True:
            var = self._expect(TokenType.VARIABLE)
            has_default = False
            if self._match(TokenType.ASSIGN):
                has_default = True
                self._skip_until(TokenType.COMMA, TokenType.SEMICOLON)
            props.append(PropertyDecl(name=var.value, type_annotation=type_ann,
                                      modifiers=list(modifiers),
                                      has_default=has_default,
                                      location=var.location if props else loc))
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.SEMICOLON)
        return props

    # -------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------

    def _parse_param_list(self) -> list[Parameter]:
        params: list[Parameter] = []
        while self._peek() != TokenType.RPAREN:
            params.append(self._parse_param())
            if not self._match(TokenType.COMMA):
                break
        return params

    def _parse_param(self) -> Parameter:
        loc = self._loc()
        modifiers: list[str] = []
        while self._peek() in _PARAM_MODIFIERS:
            modifiers.append(self._advance().value.lower())
        type_ann: Optional[TypeAnnotation] = None
        if self._peek() not in (TokenType.VARIABLE, TokenType.AMP_BYREF, TokenType.ELLIPSIS):
            type_ann = self._parse_type()
        by_ref = self._match(TokenType.AMP_BYREF) is not None
        variadic = self._match(TokenType.ELLIPSIS) is not None
        var = self._expect(TokenType.VARIABLE)
        has_default = False
        if self._match(TokenType.ASSIGN):
            has_default = True
            self._skip_until(TokenType.COMMA, TokenType.RPAREN)
        return Parameter(name=var.value, type_annotation=type_ann, by_ref=by_ref,
                         variadic=variadic, has_default=has_default,
                         modifiers=modifiers, location=loc)

    # -------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------

    def parse_type(self) -> TypeAnnotation:
        """Parse a complete type and require end of input."""
        ann = self._parse_type()
        if self._peek() != TokenType.EOF:
            tok = self._current()
            raise CompileError(syntax_error(
                f"Unexpected '{tok.value}' after type", tok.location,
            ))
        return ann

    def _parse_type(self) -> TypeAnnotation:
        loc = self._loc()
        if self._match(TokenType.QUESTION):
            inner = self._parse_composite()
            return TypeAnnotation(kind="nullable", members=[inner], location=loc)
        return self._parse_composite()

    def _parse_composite(self) -> TypeAnnotation:
        loc = self._loc()
        first = self._parse_intersection()
        if self._peek() != TokenType.PIPE:
            return first
        members = [first]
        while self._match(TokenType.PIPE):
            members.append(self._parse_intersection())
        return TypeAnnotation(kind="union", members=members, location=loc)

    def _parse_intersection(self) -> TypeAnnotation:
        loc = self._loc()
        first = self._parse_atom()
        if self._peek() != TokenType.AMP_INTERSECTION:
            return first
        members = [first]
        while self._match(TokenType.AMP_INTERSECTION):
            members.append(self._parse_atom())
        return TypeAnnotation(kind="intersection", members=members, location=loc)

    def _parse_atom(self) -> TypeAnnotation:
        loc = self._loc()
        if self._match(TokenType.LPAREN):
            inner = self._parse_composite()
            self._expect(TokenType.RPAREN)
            inner.grouped = True
            return inner
        if self._match(TokenType.QUESTION):
            inner = self._parse_atom()
            return TypeAnnotation(kind="nullable", members=[inner], location=loc)
        tok = self._current()
        if tok.type in (TokenType.IDENT, TokenType.STATIC):
            self._advance()
            return TypeAnnotation(kind="named", name=tok.value, location=loc)
        raise CompileError(syntax_error(
            f"Expected a type, got {tok.type.name} ('{tok.value}')", loc,
        ))


def parse(source: str, filename: str = "<stdin>") -> Program:
    """Convenience function to parse declaration source."""
    tokens = tokenize_disambiguated(source, filename)
    return Parser(tokens, filename).parse()


def parse_type_annotation(text: str, filename: str = "<type>") -> TypeAnnotation:
    """Parse a standalone type such as ``A&B`` or ``?Foo``."""
    tokens = tokenize_disambiguated(text, filename)
    return Parser(tokens, filename).parse_type()
