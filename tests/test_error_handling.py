from __future__ import annotations

import pytest

from kettle_ref.evaluator import compile
from kettle_ref.token_types import TT
from kettle_ref.tree import Node
from tests.support.harness import (
    CompileError,
    KettleArityError,
    KettleError,
    KettleRuntimeError,
    KettleTypeError,
    LexError,
    ParseError,
    run,
)


@pytest.mark.parametrize(
    "exc_type, parent",
    [
        pytest.param(LexError, KettleError, id="lex"),
        pytest.param(ParseError, KettleError, id="parse"),
        pytest.param(CompileError, KettleError, id="compile"),
        pytest.param(KettleRuntimeError, KettleError, id="runtime"),
        pytest.param(KettleTypeError, KettleRuntimeError, id="type"),
        pytest.param(KettleArityError, KettleRuntimeError, id="arity"),
    ],
)
def test_error_hierarchy(exc_type: type, parent: type) -> None:
    assert issubclass(exc_type, parent)


def test_type_error_names_both_types_and_position() -> None:
    with pytest.raises(KettleTypeError) as exc_info:
        run('x = 1\ny = x + "a"', "prog.ktl")

    err = exc_info.value
    assert "int, string" in err.message
    assert "'+'" in err.message
    assert (err.source, err.line, err.column) == ("prog.ktl", 2, 7)
    assert str(err).startswith("prog.ktl:2:7: ")


def test_arity_error_reports_counts() -> None:
    with pytest.raises(KettleArityError) as exc_info:
        run("f = fn(a, b) { a }\nf(1)")

    assert "received 1 arguments for 2 parameters" in exc_info.value.message
    assert exc_info.value.line == 2


def test_non_function_call_reports_value() -> None:
    with pytest.raises(KettleTypeError) as exc_info:
        run("x = 3\nx(1)")

    assert "cannot invoke non-function: int 3" in exc_info.value.message


def test_runtime_error_inside_function_points_at_body() -> None:
    source = "f = fn(a) {\n    a / 0\n}\nf(1)"

    with pytest.raises(KettleRuntimeError) as exc_info:
        run(source)

    assert (exc_info.value.line, exc_info.value.column) == (2, 7)
    assert "integer zero" in exc_info.value.message


def test_lex_error_propagates_from_run() -> None:
    with pytest.raises(LexError) as exc_info:
        run("x = 1\ny = 2.3.4")

    assert exc_info.value.line == 2


def test_syntax_errors_do_not_raise(parser_warnings) -> None:
    result = run("x = 1\n+\nx")

    assert repr(result) == "(true, 1)"
    assert "misplaced operator" in parser_warnings.text


def test_unknown_node_kind_is_compile_error() -> None:
    node = Node(TT.PIPE, ">>", [Node(TT.IDENT, "a", resolved=True), Node(TT.IDENT, "b", resolved=True)], resolved=True)

    with pytest.raises(CompileError) as exc_info:
        compile(node)

    assert "PIPE" in exc_info.value.message


def test_malformed_function_node_is_compile_error() -> None:
    params = Node(TT.LPAR, "(", [], resolved=True)
    node = Node(TT.FUNCTION, "fn", [params], resolved=True, line=3, column=4)

    with pytest.raises(CompileError) as exc_info:
        compile(node)

    assert (exc_info.value.line, exc_info.value.column) == (3, 4)


def test_compile_errors_happen_before_running(env) -> None:
    with pytest.raises(CompileError):
        run("x = 1\n'\\q'", env=env)

    assert env.bindings == {}


def test_error_without_position_renders_message_only() -> None:
    assert str(KettleError("boom")) == "boom"
    assert str(KettleError("boom", 1, 2)) == "line 1:2: boom"


def test_long_expression_is_reported_not_crashed() -> None:
    source = "x = " + " + ".join(["1"] * 3000)

    with pytest.raises(KettleError) as exc_info:
        run(source)

    assert "nested too deeply" in exc_info.value.message


def test_deeply_nested_brackets_are_parse_errors() -> None:
    source = "(" * 3000 + "1" + ")" * 3000

    with pytest.raises(ParseError) as exc_info:
        run(source)

    assert exc_info.value.message == "brackets nested too deeply"


def test_multi_statement_paren_group_is_compile_error() -> None:
    with pytest.raises(CompileError) as exc_info:
        run("(1\n2)")

    assert (exc_info.value.line, exc_info.value.column) == (2, 1)
