"""
Lexer for Lox

Tokenizes Lox source code into a stream of tokens.

Features:
- Single-pass tokenization
- Maximal munch for two-character operators
- Position tracking (line, column)
- Line (//) and block (/* */) comments
- Errors are reported to a Diagnostics collector and scanning continues
"""

from typing import List, Optional

from .diagnostics import Diagnostics
from .token_types import TT, Tok

DIGITS = frozenset("0123456789")

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """Lox lexer. Never raises on bad input; every lexical error is collected."""

    KEYWORDS = {
        'and': TT.AND,
        'break': TT.BREAK,
        'class': TT.CLASS,
        'else': TT.ELSE,
        'false': TT.FALSE,
        'for': TT.FOR,
        'fun': TT.FUN,
        'if': TT.IF,
        'nil': TT.NIL,
        'or': TT.OR,
        'print': TT.PRINT,
        'return': TT.RETURN,
        'super': TT.SUPER,
        'this': TT.THIS,
        'true': TT.TRUE,
        'var': TT.VAR,
        'while': TT.WHILE,
    }

    # Longest matches first so prefixes resolve correctly
    OPERATORS = [
        # Two-character operators
        ('!=', TT.NEQ),
        ('==', TT.EQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),

        # Single-character operators
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        (',', TT.COMMA),
        ('.', TT.DOT),
        ('-', TT.MINUS),
        ('+', TT.PLUS),
        (';', TT.SEMI),
        ('/', TT.SLASH),
        ('*', TT.STAR),
        ('%', TT.MOD),
        ('?', TT.QMARK),
        (':', TT.COLON),
        ('!', TT.NEG),
        ('=', TT.ASSIGN),
        ('<', TT.LT),
        ('>', TT.GT),
    ]

    def __init__(self, source: str, diagnostics: Optional[Diagnostics] = None):
        self.source = source
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []

        # Start of the token being scanned
        self.start = 0
        self.start_line = 1
        self.start_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list ending in EOF"""
        while self.pos < len(self.source):
            self.start = self.pos
            self.start_line = self.line
            self.start_column = self.column
            self.scan_token()

        self.start = self.pos
        self.start_line = self.line
        self.start_column = self.column
        self.emit(TT.EOF)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        ch = self.peek()

        if ch in (' ', '\t', '\r'):
            self.advance()
            return

        if ch == '\n':
            self.scan_newline()
            return

        # Comments
        if ch == '/' and self.peek(1) == '/':
            self.skip_line_comment()
            return

        if ch == '/' and self.peek(1) == '*':
            self.skip_block_comment()
            return

        # String literals
        if ch == '"':
            self.scan_string()
            return

        # Numbers
        if ch in DIGITS:
            self.scan_number()
            return

        # Identifiers and keywords
        if ch.isalpha() or ch == '_':
            self.scan_identifier()
            return

        # Operators and punctuation
        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_newline(self):
        self.advance()
        self.line += 1
        self.column = 1

    def scan_string(self):
        """Scan string literal: "..." (no escape processing, may span lines)"""
        self.advance()  # Opening quote

        while self.pos < len(self.source) and self.peek() != '"':
            if self.peek() == '\n':
                self.scan_newline()
            else:
                self.advance()

        if self.pos >= len(self.source):
            self.diagnostics.error(self.line, "Unterminated string.")
            return

        self.advance()  # Closing quote
        value = self.source[self.start + 1:self.pos - 1]
        self.emit(TT.STRING, value)

    def scan_number(self):
        """Scan number literal: digits with an optional fractional part"""
        while self.peek() in DIGITS:
            self.advance()

        # A trailing '.' without digits is left for the DOT token
        if self.peek() == '.' and self.peek(1) in DIGITS:
            self.advance()
            while self.peek() in DIGITS:
                self.advance()

        text = self.source[self.start:self.pos]
        self.emit(TT.NUMBER, float(text))

    def scan_identifier(self):
        """Scan identifier or keyword"""
        while self.peek().isalnum() or self.peek() == '_':
            self.advance()

        text = self.source[self.start:self.pos]
        self.emit(self.KEYWORDS.get(text, TT.IDENT))

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type)
                return

        self.advance()
        self.diagnostics.error(self.line, "Unexpected character.")

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        result = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return result

    def skip_line_comment(self):
        while self.peek() not in ('\n', '\0'):
            self.advance()

    def skip_block_comment(self):
        start_line = self.line
        self.advance(2)  # /*

        while self.pos < len(self.source):
            if self.peek() == '*' and self.peek(1) == '/':
                self.advance(2)
                return

            if self.peek() == '\n':
                self.scan_newline()
            else:
                self.advance()

        self.diagnostics.error(start_line, "Unterminated block comment.")

    def emit(self, token_type: TT, literal=None):
        """Emit a token spanning start..pos"""
        tok = Tok(
            type=token_type,
            lexeme=self.source[self.start:self.pos],
            literal=literal,
            line=self.start_line,
            column=self.start_column,
        )
        self.tokens.append(tok)

# ============================================================================
# Convenience
# ============================================================================

def tokenize(source: str, diagnostics: Optional[Diagnostics] = None) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source, diagnostics)
    return lexer.tokenize()
