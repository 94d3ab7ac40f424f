"""isect Token Disambiguator.

A single ``&`` means two different things in a parameter list:

    function f(A&B $x)       // intersection separator
    function f(A &$x)        // by-reference marker
    function f(A &...$xs)    // by-reference variadic

The grammar cannot tell them apart with one token of lookahead at the point
the ``&`` is shifted, so the token stream is retagged first: an ``&``
directly followed by a variable, or by ``...`` and then a variable, becomes
AMP_BYREF; every other ``&`` becomes AMP_INTERSECTION. The parser only ever
sees the two distinct terminals.
"""

from __future__ import annotations

import logging

from isect.lexer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)


def classify_ampersand(tokens: list[Token], index: int) -> TokenType:
    """Classify the ``&`` at ``tokens[index]`` using the tokens after it."""
    nxt = tokens[index + 1] if index + 1 < len(tokens) else None
    if nxt is None:
        return TokenType.AMP_INTERSECTION
    if nxt.type == TokenType.VARIABLE:
        return TokenType.AMP_BYREF
    if nxt.type == TokenType.ELLIPSIS:
        after = tokens[index + 2] if index + 2 < len(tokens) else None
        if after is not None and after.type == TokenType.VARIABLE:
            return TokenType.AMP_BYREF
    return TokenType.AMP_INTERSECTION


def disambiguate(tokens: list[Token]) -> list[Token]:
    """Return a copy of ``tokens`` with every AMPERSAND retagged."""
    out: list[Token] = []
    for i, tok in enumerate(tokens):
        if tok.type == TokenType.AMPERSAND:
            tt = classify_ampersand(tokens, i)
            logger.debug("'&' at %s classified as %s", tok.location, tt.name)
            out.append(tok.retag(tt))
        else:
            out.append(tok)
    return out


def tokenize_disambiguated(source: str, filename: str = "<stdin>") -> list[Token]:
    return disambiguate(tokenize(source, filename))
