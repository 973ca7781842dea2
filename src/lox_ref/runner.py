from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from lark import Tree

from .diagnostics import Diagnostics
from .evaluator import Interpreter
from .lexer_rd import tokenize
from .parser_rd import Parser
from .resolver import Resolver
from .runtime import LoxRuntimeError, LoxValue
from .utils import debug_py_trace_enabled, prelude_disabled, raise_recursion_limit

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_STATIC = 65
EXIT_NOINPUT = 66
EXIT_RUNTIME = 70

PRELUDE_PATH = Path(__file__).resolve().parent / "prelude.lox"

USAGE = "Usage: lox [--no-prelude] [--dump-ast] [script]"

class LoxStaticError(Exception):
    """Scanning, parsing or resolution failed; carries every diagnostic."""

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        super().__init__("\n".join(str(d) for d in diagnostics.errors))

def parse_program(source: str, diagnostics: Diagnostics) -> List[Tree]:
    tokens = tokenize(source, diagnostics)
    return Parser(tokens, diagnostics).parse()

def compile_program(source: str, diagnostics: Diagnostics) -> Tuple[List[Tree], Dict[int, int]]:
    """
    Front end: scan, parse, resolve.
    - every stage reports into *diagnostics*
    - resolution is skipped when scanning or parsing failed, so the resolver
      never sees placeholder nodes
    """
    statements = parse_program(source, diagnostics)

    if diagnostics.had_error:
        return statements, {}

    table = Resolver(diagnostics).resolve(statements)
    return statements, table

def load_prelude_source() -> str:
    return PRELUDE_PATH.read_text(encoding="utf-8")

def run(source: str, interp: Optional[Interpreter]=None, *, prelude: bool=True) -> LoxValue:
    """
    Run *source* and return the value of its last top-level expression statement.
    - static errors raise LoxStaticError instead of being printed
    - runtime errors propagate as LoxRuntimeError
    - warnings are kept on neither path; use LoxSession to see them
    """
    if interp is None:
        interp = Interpreter()

    if prelude:
        run(load_prelude_source(), interp, prelude=False)

    diagnostics = Diagnostics()
    statements, table = compile_program(source, diagnostics)

    if diagnostics.had_error:
        raise LoxStaticError(diagnostics)

    interp.resolve(table)
    return interp.execute(statements)

class LoxSession:
    """One interpreter plus error reporting; backs the CLI and the REPL."""

    def __init__(self, out: Optional[TextIO]=None, err: Optional[TextIO]=None, prelude: bool=True):
        self.interp = Interpreter(out)
        self.err = err
        self.prelude = prelude

        if prelude:
            self.load_prelude()

    @property
    def stderr(self) -> TextIO:
        return self.err if self.err is not None else sys.stderr

    def load_prelude(self) -> None:
        run(load_prelude_source(), self.interp, prelude=False)

    # ---------------- Reporting ----------------

    def report_diagnostics(self, diagnostics: Diagnostics) -> None:
        for diag in diagnostics.entries:
            print(diag, file=self.stderr)

    def report_runtime_error(self, err: LoxRuntimeError) -> None:
        print(err.report(), file=self.stderr)

        if debug_py_trace_enabled():
            print("\nPython traceback:", file=self.stderr)
            print("".join(traceback.format_tb(err.__traceback__)), file=self.stderr, end="")

    # ---------------- Entry points ----------------

    def run(self, source: str) -> int:
        """Run a whole program and return the process exit code."""
        diagnostics = Diagnostics()
        statements, table = compile_program(source, diagnostics)
        self.report_diagnostics(diagnostics)

        if diagnostics.had_error:
            return EXIT_STATIC

        self.interp.resolve(table)

        if not self.interp.interpret(statements, self.report_runtime_error):
            return EXIT_RUNTIME

        return EXIT_OK

    def run_file(self, path: str) -> int:
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            print(f"Could not read {path}: {exc.strerror or exc}", file=self.stderr)
            return EXIT_NOINPUT

        return self.run(source)

    def dump_ast(self, source: str) -> int:
        """Print the resolved tree of *source* without running it."""
        diagnostics = Diagnostics()
        statements, _table = compile_program(source, diagnostics)
        self.report_diagnostics(diagnostics)

        if diagnostics.had_error:
            return EXIT_STATIC

        for stmt in statements:
            print(stmt.pretty(), file=self.interp.stdout, end="")

        return EXIT_OK

    def repl_eval(self, source: str) -> Optional[LoxValue]:
        """
        Evaluate one interactive input.
        - the prelude is reloaded first
        - input that parses as a single bare expression is evaluated and its
          value returned
        - anything else runs as statements and None is returned
        - errors are reported; the session stays usable
        """
        if self.prelude:
            self.load_prelude()

        diagnostics = Diagnostics()
        tokens = tokenize(source, diagnostics)

        if not diagnostics.had_error:
            expr = Parser(tokens, Diagnostics()).parse_repl_expression()
            if expr is not None:
                return self._eval_expression(expr, diagnostics)

        statements = Parser(tokens, diagnostics).parse()
        if not diagnostics.had_error:
            self.interp.resolve(Resolver(diagnostics).resolve(statements))

        self.report_diagnostics(diagnostics)
        if not diagnostics.had_error:
            self.interp.interpret(statements, self.report_runtime_error)

        return None

    def _eval_expression(self, expr: Tree, diagnostics: Diagnostics) -> Optional[LoxValue]:
        table = Resolver(diagnostics).resolve_expression(expr)
        self.report_diagnostics(diagnostics)

        if diagnostics.had_error:
            return None

        self.interp.resolve(table)

        try:
            return self.interp.evaluate(expr)
        except LoxRuntimeError as err:
            self.report_runtime_error(err)
            return None

def _usage_error(message: Optional[str]=None) -> int:
    if message:
        print(message, file=sys.stderr)
    print(USAGE, file=sys.stderr)
    return EXIT_USAGE

def main(argv: Optional[List[str]]=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    use_prelude = not prelude_disabled()
    dump = False
    script: Optional[str] = None

    for token in args:
        if token == "--no-prelude":
            use_prelude = False
            continue

        if token == "--dump-ast":
            dump = True
            continue

        if token in ("-h", "--help"):
            print(USAGE)
            return EXIT_OK

        if token.startswith("-"):
            return _usage_error(f"Unknown option: {token}")

        if script is None:
            script = token
        else:
            return _usage_error(f"Unexpected argument: {token}")

    raise_recursion_limit()

    if script is None:
        if dump:
            return _usage_error("--dump-ast requires a script")

        from .repl import repl
        repl(prelude=use_prelude)
        return EXIT_OK

    session = LoxSession(prelude=use_prelude)

    if dump:
        try:
            source = Path(script).read_text(encoding="utf-8")
        except OSError as exc:
            print(f"Could not read {script}: {exc.strerror or exc}", file=sys.stderr)
            return EXIT_NOINPUT
        return session.dump_ast(source)

    return session.run_file(script)

if __name__ == "__main__":
    sys.exit(main())
