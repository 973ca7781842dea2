"""prompt_toolkit lexer for live Lox syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as LoxScanner
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "boolean": "ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "type": "bold ansiblue",
}

_KEYWORDS = {
    TT.AND, TT.BREAK, TT.CLASS, TT.ELSE, TT.FOR, TT.FUN, TT.IF, TT.OR,
    TT.PRINT, TT.RETURN, TT.SUPER, TT.THIS, TT.VAR, TT.WHILE,
}

_OPERATORS = {
    TT.MINUS, TT.PLUS, TT.SLASH, TT.STAR, TT.MOD, TT.NEG, TT.NEQ,
    TT.ASSIGN, TT.EQ, TT.GT, TT.GTE, TT.LT, TT.LTE, TT.QMARK, TT.COLON,
}

_PUNCTUATION = {
    TT.LPAR, TT.RPAR, TT.LBRACE, TT.RBRACE, TT.LSQB, TT.RSQB,
    TT.COMMA, TT.DOT, TT.SEMI,
}


def _token_group(tokens: list[Tok], idx: int) -> str:
    tok = tokens[idx]
    t = tok.type

    if t in _KEYWORDS:
        return "keyword"
    if t in (TT.TRUE, TT.FALSE):
        return "boolean"
    if t == TT.NIL:
        return "constant"
    if t == TT.NUMBER:
        return "number"
    if t == TT.STRING:
        return "string"
    if t in _OPERATORS:
        return "operator"
    if t in _PUNCTUATION:
        return "punctuation"

    if t == TT.IDENT and idx > 0:
        prev = tokens[idx - 1].type
        # `fun name`, and method names at the start of a class member
        if prev == TT.FUN:
            return "function"
        if prev in (TT.CLASS, TT.LT):
            return "type"

    return "identifier"


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments.

    Scan errors (an unterminated string on this line, say) are collected by the
    scanner and simply leave the rest of the line unstyled.
    """
    if not text:
        return [("", "")]

    tokens = LoxScanner(text).tokenize()
    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF or not tok.lexeme:
            continue

        idx = text.find(tok.lexeme, pos)
        if idx < 0:
            continue

        # Unstyled gap before token (whitespace, comments).
        if idx > pos:
            result.append(("", text[pos:idx]))

        style = GROUP_STYLE.get(_token_group(tokens, i), "")
        result.append((style, tok.lexeme))
        pos = idx + len(tok.lexeme)

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class LoxLexer(Lexer):
    """prompt_toolkit Lexer that highlights Lox source using the RD scanner."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
