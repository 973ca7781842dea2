from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    LoxArityError,
    LoxNameError,
    LoxTypeError,
    output_of,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param(
        "class P {} var p = P(); p.x = 3; p.x;",
        ("number", 3),
        None,
        id="field-set-get",
    ),
    pytest.param(
        "class P {} var p = P(); (p.x = 4) + 1;",
        ("number", 5),
        None,
        id="set-yields-value",
    ),
    pytest.param(
        "class P { init(x) { this.x = x; } } P(7).x;",
        ("number", 7),
        None,
        id="init-binds-this",
    ),
    pytest.param(
        "class P { init() { this.v = 1; return; } } var p = P(); p.init().v;",
        ("number", 1),
        None,
        id="init-returns-instance",
    ),
    pytest.param(
        "class P { init(a, b) {} } P(1);",
        None,
        LoxArityError,
        id="class-arity-from-init",
    ),
    pytest.param("class P {} P(1);", None, LoxArityError, id="class-without-init-takes-none"),
    pytest.param("class P {} P().missing;", None, LoxNameError, id="undefined-property"),
    pytest.param("var n = 1; n.x;", None, LoxTypeError, id="get-on-number"),
    pytest.param("var s = \"s\"; s.x = 1;", None, LoxTypeError, id="set-on-string"),
    pytest.param("var NotClass = 1; class B < NotClass {}", None, LoxTypeError, id="superclass-must-be-class"),
    pytest.param(
        dedent(
            """\
            class A { m() { return "A"; } }
            class B < A {}
            B().m();
            """
        ),
        ("string", "A"),
        None,
        id="inherited-method",
    ),
    pytest.param(
        dedent(
            """\
            class A { m() { return "A"; } }
            class B < A { m() { return "B" + super.m(); } }
            B().m();
            """
        ),
        ("string", "BA"),
        None,
        id="super-call",
    ),
    pytest.param(
        dedent(
            """\
            class A { method() { return "A method"; } }
            class B < A { method() { return "B method"; } test() { return super.method(); } }
            class C < B {}
            C().test();
            """
        ),
        ("string", "A method"),
        None,
        id="super-is-lexical",
    ),
    pytest.param(
        "class A {} class B < A { m() { return super.nope(); } } B().m();",
        None,
        LoxNameError,
        id="super-missing-method",
    ),
    pytest.param(
        "class R { init(w, h) { this.w = w; this.h = h; } area { return this.w * this.h; } } R(3, 4).area;",
        ("number", 12),
        None,
        id="getter",
    ),
    pytest.param(
        "class M { class square(n) { return n * n; } } M.square(3);",
        ("number", 9),
        None,
        id="static-method",
    ),
    pytest.param(
        "class A { class make() { return \"made\"; } } class B < A {} B.make();",
        ("string", "made"),
        None,
        id="static-inherited",
    ),
    pytest.param(
        "class A { class me() { return this; } } A.me() == A;",
        ("bool", True),
        None,
        id="static-this-is-class",
    ),
    pytest.param(
        dedent(
            """\
            class A { class name() { return "A"; } }
            class B < A { class name() { return "B" + super.name(); } }
            B.name();
            """
        ),
        ("string", "BA"),
        None,
        id="static-super",
    ),
    pytest.param(
        "class A { class init() { return 1; } } A.init();",
        ("number", 1),
        None,
        id="static-init-is-not-an-initializer",
    ),
    pytest.param(
        "class A { class s() {} } A().s();",
        None,
        LoxNameError,
        id="static-not-on-instance",
    ),
    pytest.param(
        "class A { m() {} } A.m();",
        None,
        LoxNameError,
        id="instance-method-not-on-class",
    ),
    pytest.param(
        "class A { init() { this.n = 2; } get() { return this.n; } } var g = A().get; g();",
        ("number", 2),
        None,
        id="bound-method-keeps-this",
    ),
    pytest.param(
        "class A { m() { return 1; } } var a = A(); a.m = fun () { return 2; }; a.m();",
        ("number", 2),
        None,
        id="field-shadows-method",
    ),
    pytest.param("class A { m() {} } A().m;", ("repr", "<fn m>"), None, id="method-repr"),
    pytest.param("class A {} A;", ("repr", "A"), None, id="class-repr"),
    pytest.param("class A {} A();", ("repr", "A instance"), None, id="instance-repr"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_objects(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_methods_close_over_instance_state() -> None:
    source = dedent(
        """\
        class Counter {
          init() { this.n = 0; }
          inc() { this.n = this.n + 1; return this; }
        }
        var c = Counter();
        c.inc().inc().inc();
        print c.n;
        """
    )
    assert output_of(source) == ["3"]


def test_instances_do_not_share_fields() -> None:
    source = dedent(
        """\
        class Box { init(v) { this.v = v; } }
        var a = Box(1);
        var b = Box(2);
        print a.v;
        print b.v;
        """
    )
    assert output_of(source) == ["1", "2"]


def test_undefined_property_message() -> None:
    with pytest.raises(LoxNameError, match=r"Undefined property 'nope'\."):
        run_runtime_case("class A {} A().nope;", None, None)
