"""
Closure compiler for Kettle trees.

Each node is compiled exactly once into a Python closure taking an
``Environment``; running a program is calling the root closure. The node
kind to compile function table is fixed at import time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

from .eval.bind import compile_assign
from .eval.blocks import compile_block, compile_group, compile_tuple
from .eval.common import error_at
from .eval.control import compile_jump, compile_return
from .eval.expr import BINARY_OPS, compile_and, compile_binary, compile_neg, compile_not, compile_or
from .eval.fn import compile_apply, compile_function
from .eval.literals import compile_ident, compile_number, compile_string
from .token_types import STRING_TYPES, TT
from .tree import Node
from .types import Code, CompileError, Environment, KettleRuntimeError, KtlValue

logger = logging.getLogger("kettle.evaluator")

Compiler = Callable[[Node, Callable[[Node], Code]], Code]

def compile_node(node: Node) -> Code:
    compiler = _COMPILERS.get(node.kind)

    if compiler is None:
        raise error_at(CompileError, node, f"cannot compile {node.kind.name} {node.text!r}")

    return compiler(node, compile_node)

_COMPILERS: Mapping[TT, Compiler] = MappingProxyType({
    TT.LBRACE: compile_block,
    TT.LPAR: compile_group,
    TT.COMMA: compile_tuple,
    TT.IDENT: lambda n, _: compile_ident(n),
    TT.NUMBER: lambda n, _: compile_number(n),
    **{kind: (lambda n, _: compile_string(n)) for kind in STRING_TYPES},
    TT.ASSIGN: compile_assign,
    **{kind: compile_binary for kind in BINARY_OPS},
    TT.AND: compile_and,
    TT.OR: compile_or,
    TT.NOT: compile_not,
    TT.NEG: compile_neg,
    TT.FUNCTION: compile_function,
    TT.APPLY: compile_apply,
    TT.RETURN: compile_return,
    TT.BREAK: compile_jump,
    TT.CONTINUE: compile_jump,
})

@dataclass(frozen=True)
class Closure:
    """A compiled program: call it (or ``invoke`` it) with an environment."""
    node: Node = field(repr=False)
    code: Code = field(repr=False)

    def invoke(self, env: Environment) -> KtlValue:
        try:
            return self.code(env)
        except RecursionError:
            raise error_at(KettleRuntimeError, self.node, "maximum recursion depth exceeded") from None

    def __call__(self, env: Environment) -> KtlValue:
        return self.invoke(env)

def compile(node: Node) -> Closure:
    try:
        code = compile_node(node)
    except RecursionError:
        raise error_at(CompileError, node, "expression nested too deeply to compile") from None

    logger.debug("compiled %s at %s", node.kind.name, node.where())
    return Closure(node, code)
