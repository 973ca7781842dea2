from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    LoxArityError,
    LoxRuntimeError,
    LoxTypeError,
    output_of,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param("fun add(a, b) { return a + b; } add(1, 2);", ("number", 3), None, id="call-with-args"),
    pytest.param("fun f() {} f();", ("nil", None), None, id="no-return-yields-nil"),
    pytest.param("fun f() { return; } f();", ("nil", None), None, id="bare-return-yields-nil"),
    pytest.param("fun f(a) { return a; } f();", None, LoxArityError, id="too-few-args"),
    pytest.param("fun f(a) { return a; } f(1, 2);", None, LoxArityError, id="too-many-args"),
    pytest.param('"text"();', None, LoxTypeError, id="call-string"),
    pytest.param("nil();", None, LoxTypeError, id="call-nil"),
    pytest.param(
        "fun fib(n) { return n < 2 ? n : fib(n - 1) + fib(n - 2); } fib(10);",
        ("number", 55),
        None,
        id="recursion",
    ),
    pytest.param("var sq = fun (x) { return x * x; }; sq(4);", ("number", 16), None, id="lambda-call"),
    pytest.param("(fun (x) { return x + 1; })(1);", ("number", 2), None, id="lambda-immediate"),
    pytest.param(
        "fun twice(f, x) { return f(f(x)); } twice(fun (n) { return n * 3; }, 2);",
        ("number", 18),
        None,
        id="higher-order",
    ),
    pytest.param(
        "fun adder(n) { return fun (x) { return x + n; }; } adder(10)(5);",
        ("number", 15),
        None,
        id="lambda-closes-over-parameter",
    ),
    pytest.param("fun f() { while (true) { return 3; } } f();", ("number", 3), None, id="return-from-loop"),
    pytest.param(
        "fun f() { for (var i = 0; ; i = i + 1) { if (i == 4) return i; } } f();",
        ("number", 4),
        None,
        id="return-from-for",
    ),
    pytest.param("fun f() {} f;", ("repr", "<fn f>"), None, id="function-repr"),
    pytest.param("fun () {};", ("repr", "<lambda>"), None, id="lambda-repr"),
    pytest.param("clock;", ("repr", "<native fn>"), None, id="native-repr"),
    pytest.param("fun f() { return f(); } f();", None, LoxRuntimeError, id="unbounded-recursion"),
    pytest.param(
        "fun id(x) { return x; } var g = id; g(id)(7);",
        ("number", 7),
        None,
        id="functions-are-values",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_functions(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_arguments_evaluate_left_to_right() -> None:
    source = dedent(
        """\
        fun show(x) { print x; return x; }
        fun three(a, b, c) { return a + b + c; }
        print three(show(1), show(2), show(3));
        """
    )
    assert output_of(source) == ["1", "2", "3", "6"]


def test_arity_error_message() -> None:
    with pytest.raises(LoxArityError, match=r"Expected 2 arguments but got 1\."):
        run_runtime_case("fun f(a, b) {} f(1);", None, None)


def test_print_functions() -> None:
    source = "fun f() {} print f; print fun (a) {}; print clock;"
    assert output_of(source) == ["<fn f>", "<lambda>", "<native fn>"]


def test_deep_recursion_through_run() -> None:
    source = "fun depth(n) { if (n == 0) return 0; return 1 + depth(n - 1); } depth(500);"
    run_runtime_case(source, ("number", 500), None)


def test_prelude_map_over_long_list() -> None:
    items = ", ".join(str(i) for i in range(300))
    source = f"length(map(fun (x) {{ return x + 1; }}, [{items}]));"
    run_runtime_case(source, ("number", 300), None)
