"""Static diagnostics collector.

Scanner, parser and resolver report into one ``Diagnostics`` instance instead of
process-wide flags; the runner inspects it once before execution begins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union

from lark import Token

from .token_types import TT, Tok


@dataclass(frozen=True)
class Diagnostic:
    line: int
    where: str
    message: str
    severity: str = "Error"

    def __str__(self) -> str:
        return f"[line {self.line}] {self.severity}{self.where}: {self.message}"


def _where(token: Union[Tok, Token]) -> str:
    if isinstance(token, Tok):
        kind, lexeme = token.type.name, token.lexeme
    else:
        kind, lexeme = str(token.type), str(token.value)

    if kind == TT.EOF.name:
        return " at end"

    return f" at '{lexeme}'"


@dataclass
class Diagnostics:
    """Collects errors and warnings; ``had_error`` is sticky."""

    entries: List[Diagnostic] = field(default_factory=list)

    @property
    def had_error(self) -> bool:
        return any(d.severity == "Error" for d in self.entries)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.severity == "Error"]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.severity == "Warning"]

    def error(self, line: int, message: str) -> None:
        self._add(Diagnostic(line, "", message))

    def error_at(self, token: Union[Tok, Token], message: str) -> None:
        self._add(Diagnostic(token.line, _where(token), message))

    def warn_at(self, token: Union[Tok, Token], message: str) -> None:
        self._add(Diagnostic(token.line, _where(token), message, severity="Warning"))

    def _add(self, diag: Diagnostic) -> None:
        self.entries.append(diag)
