from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    CompileError,
    Environment,
    KtlInt,
    KtlNil,
    KtlString,
    new_root_environment,
    run_program,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param("x = 1\n{ x = x + 1 }\nx", ("int", 2), None, id="blocks-share-scope"),
    pytest.param("{ y = 5 }\ny", ("int", 5), None, id="block-binding-visible-after"),
    pytest.param("y", ("nil", None), None, id="unbound-is-nil"),
    pytest.param("a = b = 3\na + b", ("int", 6), None, id="chained-assign"),
    pytest.param("x = 1; x = 2; x", ("int", 2), None, id="reassign"),
    pytest.param(
        dedent(
            """\
            x = 1
            f = fn() {
                x = 2
                x
            }
            f()
            """
        ),
        ("int", 2),
        None,
        id="assign-in-function-is-local",
    ),
    pytest.param(
        dedent(
            """\
            x = 1
            f = fn() {
                x = 2
            }
            f()
            x
            """
        ),
        ("int", 1),
        None,
        id="function-does-not-write-caller",
    ),
    pytest.param(
        dedent(
            """\
            x = 1
            get = fn() { x }
            x = 5
            get()
            """
        ),
        ("int", 5),
        None,
        id="closure-sees-later-writes",
    ),
    pytest.param(
        dedent(
            """\
            x = 1
            f = fn(x) { x }
            f(9)
            """
        ),
        ("int", 9),
        None,
        id="param-shadows-outer",
    ),
    pytest.param("1 = 2", None, CompileError, id="assign-to-literal"),
    pytest.param("f(1) = 2", None, CompileError, id="assign-to-call"),
    pytest.param("true = 1", None, CompileError, id="assign-to-keyword-literal"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_scoping(source, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_closures_from_one_scope_share_it() -> None:
    source = dedent(
        """\
        make = fn() {
            n = 10
            get = fn() { n }
            bump = fn(v) { v }
            get, bump
        }
        pair = make()
        """
    )
    env = new_root_environment()
    run_program(source, env)

    pair = env.get("pair")
    get_fn, bump_fn = pair.items

    assert get_fn.env is bump_fn.env
    assert get_fn.env.get("n") == KtlInt(10)


def test_environment_persists_between_runs(env: Environment) -> None:
    run_program("greeting = 'hi'", env)
    assert run_program("greeting + '!'", env) == KtlString("hi!")


def test_environment_lookup_walks_parents() -> None:
    root = new_root_environment()
    root.set("a", KtlInt(1))
    leaf = root.child().child().child()

    assert leaf.get("a") == KtlInt(1)
    assert leaf.get("missing") == KtlNil()


def test_environment_set_stays_local() -> None:
    root = new_root_environment()
    root.set("a", KtlInt(1))
    child = root.child()
    child.set("a", KtlInt(2))

    assert child.get("a") == KtlInt(2)
    assert root.get("a") == KtlInt(1)


def test_deep_environment_chain_does_not_recurse() -> None:
    env = new_root_environment()
    env.set("top", KtlInt(1))
    for _ in range(20000):
        env = env.child()

    assert env.get("top") == KtlInt(1)


@pytest.mark.parametrize(
    "one_line, separated, expected",
    [
        pytest.param("x = 1 { x = x + 1 } x", "x = 1; { x = x + 1 }; x", 2, id="block"),
        pytest.param("f = fn(a, b) { a + b } f(2,3)", "f = fn(a, b) { a + b }; f(2,3)", 5, id="call"),
    ],
)
def test_statements_sharing_a_line_need_semicolons(parser_warnings, one_line: str, separated: str, expected: int) -> None:
    assert run_program(one_line) == KtlNil()
    assert "did not reduce to a single expression" in parser_warnings.text

    assert run_program(separated) == KtlInt(expected)
