"""
Token Types for the Lox front end

Shared between lexer and parser to avoid circular dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types"""

    # Single-character punctuation
    LPAR = auto()
    RPAR = auto()
    LBRACE = auto()
    RBRACE = auto()
    LSQB = auto()
    RSQB = auto()
    COMMA = auto()
    DOT = auto()
    SEMI = auto()
    QMARK = auto()
    COLON = auto()

    # Arithmetic
    MINUS = auto()
    PLUS = auto()
    SLASH = auto()
    STAR = auto()
    MOD = auto()

    # One or two character operators
    NEG = auto()  # !
    NEQ = auto()  # !=
    ASSIGN = auto()  # =
    EQ = auto()  # ==
    GT = auto()
    GTE = auto()
    LT = auto()
    LTE = auto()

    # Literals
    IDENT = auto()
    STRING = auto()
    NUMBER = auto()

    # Keywords
    AND = auto()
    BREAK = auto()
    CLASS = auto()
    ELSE = auto()
    FALSE = auto()
    FUN = auto()
    FOR = auto()
    IF = auto()
    NIL = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()
    SUPER = auto()
    THIS = auto()
    TRUE = auto()
    VAR = auto()
    WHILE = auto()

    # Special
    EOF = auto()


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    lexeme: str
    literal: Any = None
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.lexeme!r}, {self.line}:{self.column})"
