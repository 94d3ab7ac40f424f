"""isect Lexer — Tokenizer with line/column tracking.

Produces a stream of tokens from PHP-like declaration source.
A single ``&`` is emitted as AMPERSAND; the disambiguator retags it before
the parser sees it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional

from isect.errors import SourceLocation, syntax_error, CompileError


class TokenType(Enum):
    # Keywords
    NAMESPACE = auto()
    USE = auto()
    AS = auto()
    CLASS = auto()
    INTERFACE = auto()
    ABSTRACT = auto()
    FINAL = auto()
    EXTENDS = auto()
    IMPLEMENTS = auto()
    FUNCTION = auto()
    PUBLIC = auto()
    PROTECTED = auto()
    PRIVATE = auto()
    STATIC = auto()
    READONLY = auto()
    CONST = auto()

    # Literals
    INT_LIT = auto()
    FLOAT_LIT = auto()
    STRING_LIT = auto()

    # Names
    IDENT = auto()
    VARIABLE = auto()

    # Type operators
    AMPERSAND = auto()
    AMP_BYREF = auto()
    AMP_INTERSECTION = auto()
    PIPE = auto()
    QUESTION = auto()
    ELLIPSIS = auto()

    # Other operators
    AND = auto()
    OR = auto()
    ASSIGN = auto()
    DOUBLE_COLON = auto()
    OPERATOR = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COLON = auto()
    COMMA = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "namespace": TokenType.NAMESPACE,
    "use": TokenType.USE,
    "as": TokenType.AS,
    "class": TokenType.CLASS,
    "interface": TokenType.INTERFACE,
    "abstract": TokenType.ABSTRACT,
    "final": TokenType.FINAL,
    "extends": TokenType.EXTENDS,
    "implements": TokenType.IMPLEMENTS,
    "function": TokenType.FUNCTION,
    "public": TokenType.PUBLIC,
    "protected": TokenType.PROTECTED,
    "private": TokenType.PRIVATE,
    "static": TokenType.STATIC,
    "readonly": TokenType.READONLY,
    "const": TokenType.CONST,
}

# Longest match first.
_OPERATORS: tuple[str, ...] = (
    "===", "!==", "<=>", "**=", "??=", "...", "?->",
    "==", "!=", "<>", "<=", ">=", "->", "=>", "++", "--", "+=", "-=", "*=",
    "/=", ".=", "%=", "|=", "^=", "<<", ">>", "??", "**", "::", "&&", "||",
    "+", "-", "*", "/", "%", ".", "<", ">", "!", "~", "^", "@", "=",
    "&", "|", "?",
)

_SIMPLE: dict[str, TokenType] = {
    "...": TokenType.ELLIPSIS,
    "::": TokenType.DOUBLE_COLON,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "&": TokenType.AMPERSAND,
    "|": TokenType.PIPE,
    "?": TokenType.QUESTION,
    "=": TokenType.ASSIGN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
}


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation

    def retag(self, tt: TokenType) -> Token:
        return replace(self, type=tt)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


def _is_name_start(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalpha() or ch == "_")


def _is_name_char(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalnum() or ch == "_")


class Lexer:
    """Tokenizer for declaration source."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _peek_ahead(self, offset: int = 1) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in (" ", "\t", "\r", "\n"):
                self._advance()
            elif ch == "#" or (ch == "/" and self._peek_ahead() == "/"):
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self._advance()
            elif ch == "/" and self._peek_ahead() == "*":
                loc = self._loc()
                self._advance()
                self._advance()
                while True:
                    if self.pos >= len(self.source):
                        raise CompileError(syntax_error("Unterminated comment", loc))
                    if self.source[self.pos] == "*" and self._peek_ahead() == "/":
                        self._advance()
                        self._advance()
                        break
                    self._advance()
            elif self.source.startswith("<?php", self.pos):
                for _ in range(5):
                    self._advance()
            elif self.source.startswith("?>", self.pos):
                self._advance()
                self._advance()
            else:
                break

    def _read_string(self) -> Token:
        loc = self._loc()
        quote = self._advance()
        value = ""
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == quote:
                return Token(TokenType.STRING_LIT, value, loc)
            if ch == "\\" and self.pos < len(self.source):
                next_ch = self._advance()
                if quote == '"':
                    escape_map = {"n": "\n", "t": "\t", "\\": "\\", '"': '"', "$": "$"}
                    value += escape_map.get(next_ch, "\\" + next_ch)
                elif next_ch in ("'", "\\"):
                    value += next_ch
                else:
                    value += "\\" + next_ch
            else:
                value += ch
        raise CompileError(syntax_error("Unterminated string literal", loc))

    def _read_number(self) -> Token:
        loc = self._loc()
        value = ""
        is_float = False
        while self.pos < len(self.source) and (self.source[self.pos].isdigit()
                                               or self.source[self.pos] in "._"):
            if self.source[self.pos] == ".":
                if is_float:
                    break
                nxt = self._peek_ahead()
                if nxt is not None and nxt.isdigit():
                    is_float = True
                else:
                    break
            value += self._advance()
        token_type = TokenType.FLOAT_LIT if is_float else TokenType.INT_LIT
        return Token(token_type, value, loc)

    def _read_name(self) -> Token:
        """Read a possibly namespaced name: Foo, Foo\\Bar, \\Foo\\Bar."""
        loc = self._loc()
        value = ""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if _is_name_char(ch):
                value += self._advance()
            elif ch == "\\" and _is_name_start(self._peek_ahead()):
                value += self._advance()
            else:
                break
        if not value or value.endswith("\\"):
            raise CompileError(syntax_error(f"Malformed name '{value}'", loc))
        if "\\" not in value:
            token_type = KEYWORDS.get(value.lower(), TokenType.IDENT)
            return Token(token_type, value, loc)
        return Token(TokenType.IDENT, value, loc)

    def _read_variable(self) -> Token:
        loc = self._loc()
        self._advance()  # $
        if not _is_name_start(self._peek()):
            raise CompileError(syntax_error("Expected variable name after '$'", loc))
        value = "$"
        while _is_name_char(self._peek()):
            value += self._advance()
        return Token(TokenType.VARIABLE, value, loc)

    def _read_operator(self) -> Token:
        loc = self._loc()
        for op in _OPERATORS:
            if self.source.startswith(op, self.pos):
                for _ in op:
                    self._advance()
                return Token(_SIMPLE.get(op, TokenType.OPERATOR), op, loc)
        ch = self._advance()
        if ch in _SIMPLE:
            return Token(_SIMPLE[ch], ch, loc)
        raise CompileError(syntax_error(f"Unexpected character '{ch}'", loc))

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < len(self.source):
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self._peek()

            if ch in ('"', "'"):
                tokens.append(self._read_string())
            elif ch.isdigit():
                tokens.append(self._read_number())
            elif _is_name_start(ch) or (ch == "\\" and _is_name_start(self._peek_ahead())):
                tokens.append(self._read_name())
            elif ch == "$":
                tokens.append(self._read_variable())
            else:
                tokens.append(self._read_operator())

        tokens.append(Token(TokenType.EOF, "", self._loc()))
        return tokens


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize declaration source."""
    return Lexer(source, filename).tokenize()
