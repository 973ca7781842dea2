from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from lark import Tree

from lox_ref.diagnostics import Diagnostics
from lox_ref.evaluator import Interpreter
from lox_ref.lexer_rd import Lexer, tokenize
from lox_ref.parser_rd import ParseError, Parser, parse_source
from lox_ref.resolver import Resolver
from lox_ref.runner import LoxSession, LoxStaticError, run as run_program
from lox_ref.runtime import (
    LoxArityError,
    LoxBool,
    LoxClass,
    LoxFn,
    LoxInstance,
    LoxList,
    LoxNameError,
    LoxNil,
    LoxNumber,
    LoxRuntimeError,
    LoxString,
    LoxTypeError,
    LoxZeroDivisionError,
    StdlibFunction,
)

RuntimeExpectation = Optional[Tuple[str, object]]

KEYWORDS = Lexer.KEYWORDS


@dataclass(frozen=True)
class FrontEnd:
    """Everything the front end produced for one source string."""

    statements: List[Tree]
    locals: Dict[int, int]
    diagnostics: Diagnostics


@dataclass(frozen=True)
class SessionResult:
    """Exit code plus captured output of one LoxSession run."""

    code: int
    out: str
    err: str


def front_end(source: str) -> FrontEnd:
    """Scan, parse and (when parsing succeeded) resolve *source*."""
    diagnostics = Diagnostics()
    statements = parse_source(source, diagnostics)
    table: Dict[int, int] = {}

    if not diagnostics.had_error:
        table = Resolver(diagnostics).resolve(statements)

    return FrontEnd(statements, table, diagnostics)


def error_messages(source: str) -> List[str]:
    return [str(d) for d in front_end(source).diagnostics.errors]


def warning_messages(source: str) -> List[str]:
    return [str(d) for d in front_end(source).diagnostics.warnings]


def parse_expr(source: str) -> Tree:
    """Parse *source* as one expression; fails the test on any diagnostic."""
    diagnostics = Diagnostics()
    expr = Parser(tokenize(source, diagnostics), diagnostics).parse_expression()
    assert not diagnostics.entries, [str(d) for d in diagnostics.entries]
    return expr


def run_session(source: str, prelude: bool = True) -> SessionResult:
    out, err = io.StringIO(), io.StringIO()
    code = LoxSession(out=out, err=err, prelude=prelude).run(source)
    return SessionResult(code, out.getvalue(), err.getvalue())


def output_of(source: str) -> List[str]:
    """Printed lines of a program that must run cleanly."""
    result = run_session(source)
    assert result.code == 0, result.err
    return result.out.splitlines()


def verify_result(value: object, kind: str, expected: object) -> None:
    """Assert runtime result shape/value."""
    match kind:
        case "string":
            assert isinstance(
                value, LoxString
            ), f"expected LoxString, got {type(value).__name__}"
            assert (
                value.value == expected
            ), f"expected {expected!r}, got {value.value!r}"
            return
        case "number":
            assert isinstance(
                value, LoxNumber
            ), f"expected number, got {type(value).__name__}"
            assert (
                abs(value.value - float(expected)) <= 1e-9
            ), f"expected {expected}, got {value.value}"
            return
        case "bool":
            assert isinstance(
                value, LoxBool
            ), f"expected bool, got {type(value).__name__}"
            assert bool(value.value) == bool(
                expected
            ), f"expected {expected}, got {value.value}"
            return
        case "nil":
            assert isinstance(
                value, LoxNil
            ), f"expected LoxNil, got {type(value).__name__}"
            return
        case "list":
            assert isinstance(
                value, LoxList
            ), f"expected LoxList, got {type(value).__name__}"
            actual_items = [
                item.value if hasattr(item, "value") else item for item in value.items
            ]
            assert (
                actual_items == expected
            ), f"expected {expected!r}, got {actual_items!r}"
            return
        case "repr":
            assert repr(value) == expected, f"expected {expected!r}, got {value!r}"
            return
        case _:
            raise AssertionError(f"unknown expectation kind {kind}")


def run_runtime_case(
    source: str,
    expectation: RuntimeExpectation,
    expected_exc: Optional[type],
) -> None:
    """Execute one runtime scenario with optional expected exception."""
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            run_program(source)
        return

    result = run_program(source)
    if expectation is not None:
        verify_result(result, expectation[0], expectation[1])
