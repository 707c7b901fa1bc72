from __future__ import annotations

from textwrap import dedent

import pytest

from kettle_ref.parser import parse
from kettle_ref.token_types import TT
from tests.support.harness import LexError, ParseError, parse_program, parse_sexprs

PRECEDENCE_CASES = [
    pytest.param("1 + 2 * 3", "(+ 1 (* 2 3))", id="mul-binds-tighter"),
    pytest.param("1 * 2 + 3", "(+ (* 1 2) 3)", id="mul-first-left"),
    pytest.param("1 - 2 - 3", "(- (- 1 2) 3)", id="minus-left-assoc"),
    pytest.param("8 / 4 % 3", "(% (/ 8 4) 3)", id="mul-tier-left-assoc"),
    pytest.param("(1 + 2) * 3", "(* (+ 1 2) 3)", id="parens-group"),
    pytest.param("((x))", "x", id="nested-parens"),
    pytest.param("a < b == c", "(== (< a b) c)", id="comparison-tier-left"),
    pytest.param("a + 1 < b * 2", "(< (+ a 1) (* b 2))", id="arith-under-compare"),
    pytest.param("a && b || c", "(|| (&& a b) c)", id="logic-tier-left"),
    pytest.param("a < b && c", "(&& (< a b) c)", id="compare-under-logic"),
    pytest.param("a = b = 1", "(= a (= b 1))", id="assign-right-assoc"),
    pytest.param("a := 1", "(:= a 1)", id="colon-assign"),
    pytest.param("x = 1 + 2", "(= x (+ 1 2))", id="assign-lowest"),
    pytest.param("1, 2, 3", "(, 1 2 3)", id="comma-collapses"),
    pytest.param("x = 1, 2", "(= x (, 1 2))", id="comma-above-assign"),
    pytest.param("!a && b", "(&& (! a) b)", id="not-prefix"),
    pytest.param("-x * 2", "(* (- x) 2)", id="neg-prefix"),
    pytest.param("a - -1", "(- a (- 1))", id="neg-after-binary"),
    pytest.param("!!a", "(! (! a))", id="double-not"),
    pytest.param("return 1 + 2", "(return (+ 1 2))", id="return-operand"),
    pytest.param("return 1, 2", "(return (, 1 2))", id="return-tuple"),
    pytest.param("return", "return", id="return-bare"),
    pytest.param("break", "break", id="break-leaf"),
    pytest.param("continue", "continue", id="continue-leaf"),
    pytest.param("x += 1", "(= x (+ x 1))", id="compound-plus"),
    pytest.param("x %= y * 2", "(= x (% x (* y 2)))", id="compound-mod"),
    pytest.param("a = b -= 1", "(= a (= b (- b 1)))", id="compound-nested"),
]


@pytest.mark.parametrize("source, expected", PRECEDENCE_CASES)
def test_precedence(source: str, expected: str) -> None:
    assert parse_sexprs(source) == [expected]


def test_compound_assign_matches_explicit_form() -> None:
    compound, _ = parse_program("x += 1")
    explicit, _ = parse_program("x = (x + 1)")

    assert compound == explicit


def test_compound_assign_target_is_copied() -> None:
    tree, _ = parse_program("x *= 2")
    assign = tree.children[0]
    target, operation = assign.children

    assert assign.kind is TT.ASSIGN
    assert operation.kind is TT.STAR
    assert operation.children[0] == target
    assert operation.children[0] is not target


def test_function_literal_shape() -> None:
    tree, errors = parse_program("f = fn(a, b) { a + b }")
    assert errors == []

    fn = tree.children[0].children[1]
    params, body = fn.children

    assert fn.kind is TT.FUNCTION
    assert params.kind is TT.LPAR
    assert [p.text for p in params.children[0].children] == ["a", "b"]
    assert body.kind is TT.LBRACE
    assert [stmt.sexpr() for stmt in body.children] == ["(+ a b)"]


def test_calls_chain_left_to_right() -> None:
    tree, _ = parse_program("f(1)(2)")
    outer = tree.children[0]
    inner, args = outer.children

    assert outer.kind is TT.APPLY
    assert inner.kind is TT.APPLY
    assert inner.children[0].text == "f"
    assert args.children[0].text == "2"


def test_call_binds_tighter_than_operators() -> None:
    tree, _ = parse_program("1 + f(2) * 3")
    plus = tree.children[0]

    assert plus.kind is TT.PLUS
    assert plus.children[1].kind is TT.STAR
    assert plus.children[1].children[0].kind is TT.APPLY


def test_tuple_group_keeps_parens() -> None:
    tree, _ = parse_program("(1, 2)")
    group = tree.children[0]

    assert group.kind is TT.LPAR
    assert group.children[0].kind is TT.COMMA


def test_empty_group() -> None:
    tree, errors = parse_program("()")

    assert errors == []
    assert tree.children[0].kind is TT.LPAR
    assert tree.children[0].children == []


def test_statements_split_on_breaks_and_semicolons() -> None:
    source = dedent(
        """\
        x = 1
        y = 2; z = 3
        x + y
        """
    )
    assert parse_sexprs(source) == ["(= x 1)", "(= y 2)", "(= z 3)", "(+ x y)"]


def test_operator_line_continuation() -> None:
    assert parse_sexprs("x = 1 +\n  2") == ["(= x (+ 1 2))"]


def test_multiline_block() -> None:
    source = dedent(
        """\
        f = fn(a) {
            b = a * 2
            b + 1
        }
        """
    )
    tree, errors = parse_program(source)
    body = tree.children[0].children[1].children[1]

    assert errors == []
    assert [stmt.sexpr() for stmt in body.children] == ["(= b (* a 2))", "(+ b 1)"]


def test_comments_are_dropped() -> None:
    source = "# header\nx = 1 // trailing\n// only comment\ny"
    assert parse_sexprs(source) == ["(= x 1)", "y"]


def test_nodes_carry_positions() -> None:
    tree, _ = parse_program("x = 1\n  y + 2")
    assign, plus = tree.children

    assert (assign.line, assign.column) == (1, 3)
    assert (plus.line, plus.column) == (2, 5)
    assert plus.children[0].source == "<test>"
    assert (tree.line, tree.column) == (1, 1)


def test_lark_tree_interface() -> None:
    tree, _ = parse_program("a + b * 2")
    labels = [node.data for node in tree.iter_subtrees_topdown()]

    assert labels == ["LBRACE", "PLUS", "IDENT", "STAR", "IDENT", "NUMBER"]


RECOVERY_CASES = [
    pytest.param("x = 1\n* 2\ny = 3", ["(= x 1)", "(= y 3)"], "misplaced operator", id="leading-operator"),
    pytest.param("a b\nc", ["c"], "did not reduce", id="adjacent-operands"),
    pytest.param("x = )\ny", ["y"], "misplaced operator", id="stray-close"),
    pytest.param("x =\n", [], "misplaced operator", id="missing-operand"),
    pytest.param("(1 +)\nz", ["(", "z"], "misplaced operator", id="nested-bad-statement"),
    pytest.param("f = fn { 1 }\nok", ["ok"], "misplaced operator", id="fn-without-params"),
    pytest.param("1 . 2\nok", ["ok"], "misplaced operator", id="unsupported-dot"),
]


@pytest.mark.parametrize("source, kept, message", RECOVERY_CASES)
def test_recovery_drops_bad_statements(source: str, kept: list, message: str, parser_warnings) -> None:
    tree, errors = parse_program(source)

    assert [stmt.sexpr() for stmt in tree.children] == kept
    assert len(errors) == 1
    assert isinstance(errors[0], ParseError)
    assert message in errors[0].message
    assert message in parser_warnings.text


@pytest.mark.parametrize(
    "source, what, column",
    [
        pytest.param("(1 + 2", "open paren without close", 1, id="unclosed-paren"),
        pytest.param("{ x = 1", "open brace without close", 1, id="unclosed-brace"),
        pytest.param("f(1, (2)", "open paren without close", 2, id="unclosed-nested"),
    ],
)
def test_unclosed_brackets_are_reported_and_closed(source: str, what: str, column: int) -> None:
    tree, errors = parse_program(source)

    assert len(tree.children) == 1
    assert len(errors) == 1
    assert errors[0].message.startswith(what)
    assert (errors[0].line, errors[0].column) == (1, column)


def test_error_positions_point_at_offender() -> None:
    _, errors = parse_program("x = 1\ny = 2 *\n")

    assert len(errors) == 1
    assert (errors[0].line, errors[0].column) == (2, 7)
    assert str(errors[0]).startswith("<test>:2:7:")


def test_lex_error_aborts_parse() -> None:
    with pytest.raises(LexError):
        parse("<test>", "x = 'open")


def test_parse_accepts_stream() -> None:
    import io

    tree = parse("<test>", io.StringIO("a = 1\nb = a"))
    assert [stmt.sexpr() for stmt in tree.children] == ["(= a 1)", "(= b a)"]
