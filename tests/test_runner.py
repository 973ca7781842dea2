from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import List

import pytest

from tests.support.harness import LoxFn, LoxNumber, LoxSession, run_session
from lox_ref import repl as repl_mod
from lox_ref.repl_highlight import GROUP_STYLE, _highlight_line
from lox_ref.runner import EXIT_NOINPUT, EXIT_OK, EXIT_RUNTIME, EXIT_STATIC, EXIT_USAGE, USAGE, main


@pytest.fixture(autouse=True)
def _recursion_limits(monkeypatch: pytest.MonkeyPatch) -> List[int]:
    """main() raises the interpreter recursion limit; record it instead."""
    requested: List[int] = []
    monkeypatch.setattr(sys, "setrecursionlimit", requested.append)
    return requested


def _script(tmp_path: Path, source: str) -> str:
    path = tmp_path / "script.lox"
    path.write_text(source, encoding="utf-8")
    return str(path)


def test_main_runs_script(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main([_script(tmp_path, 'print "hi"; print map(fun (x) { return -x; }, [1]);')])

    assert code == EXIT_OK
    assert capsys.readouterr().out == "hi\n[-1]\n"


def test_main_static_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([_script(tmp_path, "print ;")]) == EXIT_STATIC
    assert "Expect expression." in capsys.readouterr().err


def test_main_runtime_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([_script(tmp_path, "print -nil;")]) == EXIT_RUNTIME
    assert "[line 1]" in capsys.readouterr().err


def test_main_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(tmp_path / "absent.lox")]) == EXIT_NOINPUT
    assert "Could not read" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        pytest.param(["--bogus"], id="unknown-option"),
        pytest.param(["a.lox", "b.lox"], id="two-scripts"),
        pytest.param(["--dump-ast"], id="dump-without-script"),
    ],
)
def test_main_usage_errors(argv: List[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main(argv) == EXIT_USAGE
    assert USAGE in capsys.readouterr().err


def test_main_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-h"]) == EXIT_OK
    assert capsys.readouterr().out.strip() == USAGE


def test_main_raises_recursion_limit(tmp_path: Path, _recursion_limits: List[int], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOX_RECURSION_LIMIT", "123456")
    main([_script(tmp_path, "1;")])

    assert _recursion_limits
    assert set(_recursion_limits) == {123456}


def test_main_rejects_bad_recursion_limit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOX_RECURSION_LIMIT", "lots")

    with pytest.raises(SystemExit):
        main([_script(tmp_path, "1;")])


def test_main_no_prelude_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--no-prelude", _script(tmp_path, "print map;")]) == EXIT_RUNTIME
    assert "Undefined variable 'map'." in capsys.readouterr().err


def test_main_no_prelude_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOX_NO_PRELUDE", "yes")

    assert main([_script(tmp_path, "print reverse;")]) == EXIT_RUNTIME


def test_main_dump_ast(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--dump-ast", _script(tmp_path, "print 1 + 2;")]) == EXIT_OK

    out = capsys.readouterr().out
    assert out.startswith("print_stmt")
    assert "binary" in out


def test_dump_ast_does_not_execute() -> None:
    out = io.StringIO()
    session = LoxSession(out=out, err=io.StringIO())

    assert session.dump_ast('print "side effect";') == EXIT_OK
    assert "print_stmt" in out.getvalue()
    assert "side effect" not in out.getvalue().splitlines()


def _session() -> LoxSession:
    return LoxSession(out=io.StringIO(), err=io.StringIO())


def test_repl_eval_returns_bare_expression_value() -> None:
    value = _session().repl_eval("1 + 2")

    assert isinstance(value, LoxNumber) and value.value == 3


def test_repl_eval_statements_return_none() -> None:
    session = _session()

    assert session.repl_eval("var a = 4;") is None
    assert session.repl_eval("a * 2").value == 8


def test_repl_eval_statement_output() -> None:
    session = _session()
    session.repl_eval('print "shown";')

    assert session.interp.stdout.getvalue() == "shown\n"


def test_repl_eval_reports_errors_and_survives() -> None:
    session = _session()

    assert session.repl_eval("1 / 0") is None
    assert session.repl_eval("print ;") is None

    err = session.stderr.getvalue()
    assert "Division by zero." in err
    assert "Expect expression." in err
    assert session.repl_eval("2").value == 2


def test_repl_eval_reloads_prelude() -> None:
    session = _session()
    session.repl_eval("map = nil;")

    assert isinstance(session.repl_eval("map"), LoxFn)


def test_repl_eval_without_prelude() -> None:
    session = LoxSession(out=io.StringIO(), err=io.StringIO(), prelude=False)

    assert session.repl_eval("map") is None
    assert "Undefined variable 'map'." in session.stderr.getvalue()


def test_open_depth() -> None:
    assert repl_mod._open_depth("fun f() {") == 1
    assert repl_mod._open_depth("print [1, (2") == 2
    assert repl_mod._open_depth("}}") == 0
    assert repl_mod._open_depth('print "{";') == 0
    assert repl_mod._compute_indent("class A { m() {") == "    "


def test_normalize_strips_invisible_characters() -> None:
    assert repl_mod._normalize("pr\u200bint 1;\r") == "print 1;"


def test_slash_commands(capsys: pytest.CaptureFixture[str]) -> None:
    box = [LoxSession(prelude=False)]
    original = box[0]

    assert repl_mod._handle_slash("print 1;", box) is False

    assert repl_mod._handle_slash("/py-traceback on", box) is True
    assert "Python traceback: on" in capsys.readouterr().out

    assert repl_mod._handle_slash("/py-traceback", box) is True
    assert "Python traceback: off" in capsys.readouterr().out

    assert repl_mod._handle_slash("/reset", box) is True
    assert box[0] is not original
    assert box[0].prelude is False

    assert repl_mod._handle_slash("/nope", box) is True
    assert "Unknown command: /nope" in capsys.readouterr().err


def test_highlight_keeps_text_and_styles_keywords() -> None:
    line = 'var x = "hi"; // note'
    fragments = _highlight_line(line)

    assert "".join(text for _style, text in fragments) == line
    assert fragments[0] == (GROUP_STYLE["keyword"], "var")
    assert (GROUP_STYLE["string"], '"hi"') in fragments


def test_highlight_survives_scan_errors() -> None:
    line = 'print "open'
    fragments = _highlight_line(line)

    assert "".join(text for _style, text in fragments) == line


def test_interpreter_never_lowers_recursion_limit(_recursion_limits: List[int], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOX_RECURSION_LIMIT", "10")
    LoxSession(out=io.StringIO(), err=io.StringIO(), prelude=False)

    assert _recursion_limits == []


def test_repeated_runs_print_the_same_output() -> None:
    source = """
    class Node { init(v) { this.v = v; } }
    var xs = map(fun (i) { return Node(i).v * 2; }, [3, 1, 2]);
    print xs;
    print foldl(fun (a, b) { return a + b; }, 0, xs);
    print filter(fun (x) { return x > 2; }, reverse(xs));
    """
    first = run_session(source)
    second = run_session(source)

    assert first.code == second.code == 0
    assert first.out == second.out == "[6, 2, 4]\n12\n[4, 6]\n"
