"""
Tree builder for Kettle

There is no grammar here. The token stream passes through a chain of
stages, and each statement is reduced in place by repeated left-to-right
folding over a fixed operator table:

1. drop comments, turn tokens into nodes
2. build every (...) and {...} region recursively into one group node
3. split on statement separators
4. per statement: function literals, calls, grouping parens, prefix
   operators, then the binary tiers (highest first):

       * / %
       + -
       < > <= >= == !=
       && ||
       ,            (nested groups collapse into one)
       = += -= *= /= %=   (right to left)

   then ``return``
5. rewrite ``x op= y`` as ``x = (x op y)``
6. keep statements that reduced to one resolved node; report and drop the rest
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from lark import Visitor

from .lexer import Reader, raise_on_error, tokenize
from .pipeline import Stage, per_item, pipeline
from .token_types import COMMENT_TYPES, COMPOUND_ASSIGN, STRING_TYPES, TT, Tok
from .tree import Node
from .types import ParseError

logger = logging.getLogger("kettle.parser")

Statement = List[Node]
Reduction = Callable[[Statement], Statement]

KEYWORDS = {
    'fn': TT.FUNCTION,
    'return': TT.RETURN,
    'break': TT.BREAK,
    'continue': TT.CONTINUE,
}

RESOLVED_KINDS = frozenset({TT.IDENT, TT.NUMBER, TT.BREAK, TT.CONTINUE}) | STRING_TYPES

CLOSERS = {
    TT.LPAR: TT.RPAR,
    TT.LBRACE: TT.RBRACE,
}

CALLEE_KINDS = frozenset({TT.IDENT, TT.APPLY, TT.FUNCTION, TT.LPAR})

PREFIX_OPERATORS = {
    TT.NOT: TT.NOT,
    TT.MINUS: TT.NEG,
}

BINARY_TIERS = (
    frozenset({TT.STAR, TT.SLASH, TT.MOD}),
    frozenset({TT.PLUS, TT.MINUS}),
    frozenset({TT.LT, TT.GT, TT.LTE, TT.GTE, TT.EQ, TT.NEQ}),
    frozenset({TT.AND, TT.OR}),
    frozenset({TT.COMMA}),
)

ASSIGN_OPERATORS = frozenset({TT.ASSIGN}) | frozenset(COMPOUND_ASSIGN)


# ============================================================================
# Token stages
# ============================================================================

def drop_comments(tokens: Iterable[Tok]) -> Iterator[Tok]:
    for tok in tokens:
        if tok.type not in COMMENT_TYPES:
            yield tok


def nodify(tokens: Iterable[Tok]) -> Iterator[Node]:
    for tok in tokens:
        kind = tok.type
        if kind is TT.IDENT:
            kind = KEYWORDS.get(tok.value, TT.IDENT)

        yield Node.from_tok(tok, kind=kind, resolved=kind in RESOLVED_KINDS)


def split_statements(nodes: Iterable[Node]) -> Iterator[Statement]:
    stmt: Statement = []

    for node in nodes:
        if not node.resolved and node.kind in (TT.SEPARATOR, TT.EOF):
            if stmt:
                yield stmt
                stmt = []
            continue

        stmt.append(node)

    if stmt:
        yield stmt


# ============================================================================
# Statement reductions
# ============================================================================

def is_group(node: Node, kind: TT) -> bool:
    return node.resolved and node.kind is kind


def fold_functions(stmt: Statement) -> Statement:
    """[fn (params) {body}] => FUNCTION(params, body)"""
    out: Statement = []
    i = 0

    while i < len(stmt):
        node = stmt[i]

        if node.kind is TT.FUNCTION and not node.resolved and i + 1 < len(stmt) and is_group(stmt[i + 1], TT.LPAR):
            parts = [stmt[i + 1]]
            i += 2

            if i < len(stmt) and is_group(stmt[i], TT.LBRACE):
                parts.append(stmt[i])
                i += 1

            out.append(node.derive(TT.FUNCTION, node.text, parts))
            continue

        out.append(node)
        i += 1

    return out


def fold_applications(stmt: Statement) -> Statement:
    """[f (args)] => APPLY(f, args); chains left to right, so f(a)(b) nests"""
    out: Statement = []

    for node in stmt:
        if out and is_group(node, TT.LPAR) and out[-1].resolved and out[-1].kind in CALLEE_KINDS:
            callee = out.pop()
            out.append(callee.derive(TT.APPLY, "call", [callee, node]))
            continue

        out.append(node)

    return out


def unwrap_groups(stmt: Statement) -> Statement:
    """(expr) => expr. Empty groups, multi-statement groups and tuples keep their parens."""
    out: Statement = []

    for node in stmt:
        if is_group(node, TT.LPAR) and len(node.children) == 1 and node.children[0].kind is not TT.COMMA:
            out.append(node.children[0])
            continue

        out.append(node)

    return out


def fold_prefix(stmt: Statement) -> Statement:
    """[! x] => NOT(x), [- x] => NEG(x) where the operator cannot be binary"""
    stmt = list(stmt)
    i = len(stmt) - 2

    while i >= 0:
        node = stmt[i]
        kind = PREFIX_OPERATORS.get(node.kind)

        if kind is not None and not node.resolved and stmt[i + 1].resolved and (i == 0 or not stmt[i - 1].resolved):
            stmt[i:i + 2] = [node.derive(kind, node.text, [stmt[i + 1]])]

        i -= 1

    return stmt


def _foldable(stmt: Statement, i: int, operators: frozenset) -> bool:
    op = stmt[i + 1]
    return (not op.resolved and op.kind in operators
            and stmt[i].resolved and stmt[i + 2].resolved)


def _fold_at(stmt: Statement, i: int) -> Statement:
    op = stmt[i + 1]
    operation = op.derive(op.kind, op.text, [stmt[i], stmt[i + 2]])
    return stmt[:i] + [operation] + stmt[i + 3:]


def binary_ops(operators: frozenset) -> Reduction:
    """[... x * y ...] => [... *(x, y) ...], leftmost first, rescanning after each fold"""

    def fold(stmt: Statement) -> Statement:
        while True:
            for i in range(len(stmt) - 2):
                if _foldable(stmt, i, operators):
                    stmt = _fold_at(stmt, i)
                    break
            else:
                return stmt

    fold.__name__ = "binary_ops_" + "_".join(sorted(op.name.lower() for op in operators))
    return fold


def binary_ops_right_to_left(operators: frozenset) -> Reduction:
    """Like binary_ops but takes the rightmost operator first: a = b = c => a = (b = c)"""

    def fold(stmt: Statement) -> Statement:
        while True:
            for i in range(len(stmt) - 3, -1, -1):
                if _foldable(stmt, i, operators):
                    stmt = _fold_at(stmt, i)
                    break
            else:
                return stmt

    fold.__name__ = "binary_ops_rtl_" + "_".join(sorted(op.name.lower() for op in operators))
    return fold


def collapse(kind: TT) -> Reduction:
    """[, [, a b] c] => [, a b c]"""

    def flatten(node: Node) -> Node:
        while node.kind is kind and node.resolved and node.children and node.children[0].kind is kind:
            head = node.children[0]
            node = head.derive(kind, head.text, head.children + node.children[1:])
        return node

    def fold(stmt: Statement) -> Statement:
        return [flatten(node) for node in stmt]

    fold.__name__ = f"collapse_{kind.name.lower()}"
    return fold


def fold_return(stmt: Statement) -> Statement:
    """[return x] => RETURN(x); a bare trailing return takes no operand"""
    stmt = list(stmt)

    for i in range(len(stmt) - 1, -1, -1):
        node = stmt[i]
        if node.kind is not TT.RETURN or node.resolved:
            continue

        if i + 1 < len(stmt) and stmt[i + 1].resolved:
            stmt[i:i + 2] = [node.derive(TT.RETURN, node.text, [stmt[i + 1]])]
        elif i + 1 == len(stmt):
            stmt[i] = node.derive(TT.RETURN, node.text, [])

    return stmt


def _desugar(node: Node) -> Node:
    op_kind = COMPOUND_ASSIGN.get(node.kind)
    if op_kind is None or not node.resolved or len(node.children) != 2:
        return node

    target, value = node.children
    operation = node.derive(op_kind, node.text[:-1], [target.clone(), value])

    return node.derive(TT.ASSIGN, "=", [target, operation])


def desugar_compound(stmt: Statement) -> Statement:
    """[x += y] => [x = (x + y)], anywhere in the statement"""
    for root in stmt:
        # reversed pre-order visits every child before its parent
        for node in reversed(list(root.walk())):
            node.children = [_desugar(child) for child in node.children]

    return [_desugar(node) for node in stmt]


STATEMENT_REDUCTIONS: Sequence[Reduction] = (
    fold_functions,
    fold_applications,
    unwrap_groups,
    fold_prefix,
    *(binary_ops(tier) for tier in BINARY_TIERS),
    collapse(TT.COMMA),
    binary_ops_right_to_left(ASSIGN_OPERATORS),
    fold_return,
    desugar_compound,
)


class _UnresolvedFinder(Visitor):
    def __init__(self) -> None:
        self.found: List[Node] = []

    def __default__(self, tree: Node) -> None:
        if not tree.resolved:
            self.found.append(tree)


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """
    Builds the syntax tree for one source.

    Statements that fail to reduce are logged, recorded in ``errors`` and
    dropped; building continues with the next statement.
    """

    def __init__(self, source_name: str, reader: Reader, concurrent: bool=False):
        self.name = source_name
        self.reader = reader
        self.concurrent = concurrent
        self.errors: List[ParseError] = []

    def parse(self) -> Node:
        root = Node(TT.LBRACE, "{", resolved=True, line=1, column=1, source=self.name)
        stages: List[Stage] = [raise_on_error, drop_comments, nodify]

        try:
            return self._build(root, tokenize(self.name, self.reader), stages, concurrent=self.concurrent)
        except RecursionError:
            raise ParseError("brackets nested too deeply", root.line, root.column, self.name) from None

    def _build(self, wrap: Node, items: Iterable, head: Sequence[Stage]=(), concurrent: bool=False) -> Node:
        stages: List[Stage] = [*head, self.group_brackets, split_statements]
        stages.extend(per_item(reduction) for reduction in STATEMENT_REDUCTIONS)
        stages.append(per_item(self.check_resolved))

        stmts = [stmt for stmt in pipeline(items, *stages, concurrent=concurrent) if stmt is not None]

        return wrap.derive(wrap.kind, wrap.text, stmts, resolved=True)

    def group_brackets(self, nodes: Iterable[Node]) -> Iterator[Node]:
        it = iter(nodes)

        for node in it:
            close = CLOSERS.get(node.kind)
            if close is None or node.resolved:
                yield node
                continue

            depth = 1
            inner: List[Node] = []
            closed = False

            for sub in it:
                if sub.kind is node.kind:
                    depth += 1
                elif sub.kind is close:
                    depth -= 1
                    if depth == 0:
                        closed = True
                        break
                elif sub.kind is TT.EOF:
                    break

                inner.append(sub)

            if not closed:
                what = "paren" if node.kind is TT.LPAR else "brace"
                self.report(node, f"open {what} without close {node.text!r}")

            yield self._build(node, inner)

    def check_resolved(self, stmt: Statement) -> Optional[Node]:
        loose = [node for node in stmt if not node.resolved]

        if loose:
            self.report(loose[0], f"misplaced operator or missing operand {loose[0].text!r}")
            return None

        if len(stmt) != 1:
            shown = " ".join(node.sexpr() for node in stmt)
            self.report(stmt[0], f"statement did not reduce to a single expression: {shown}")
            return None

        finder = _UnresolvedFinder()
        finder.visit(stmt[0])

        if finder.found:
            first = min(finder.found, key=lambda n: (n.line, n.column))
            self.report(first, f"misplaced operator or missing operand {first.text!r}")
            return None

        return stmt[0]

    def report(self, node: Node, message: str) -> None:
        err = ParseError(message, node.line, node.column, node.source)
        self.errors.append(err)
        logger.warning("%s", err)


def parse(source_name: str, reader: Reader, *, concurrent: bool=False) -> Node:
    """Parse a whole source into its root block node."""
    return Parser(source_name, reader, concurrent=concurrent).parse()
