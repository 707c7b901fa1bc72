from __future__ import annotations

from ..token_types import TT
from ..tree import Node
from ..types import Code, CompileError, Environment, KtlValue, is_flow
from .common import CompileFunc, error_at, expect_children
from .literals import KEYWORD_LITERALS

def assignment_target(node: Node) -> str:
    if node.kind is not TT.IDENT:
        raise error_at(CompileError, node, f"assignment target must be an identifier, found {node.sexpr()}")

    if node.text in KEYWORD_LITERALS:
        raise error_at(CompileError, node, f"cannot assign to {node.text}")

    return node.text

def compile_assign(node: Node, compile_node: CompileFunc) -> Code:
    target_node, value_node = expect_children(node, 2, "assignment")
    name = assignment_target(target_node)
    value = compile_node(value_node)

    def assign(env: Environment) -> KtlValue:
        val = value(env)
        if is_flow(val):
            return val
        return env.set(name, val)

    return assign
