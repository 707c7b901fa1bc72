from __future__ import annotations

from typing import List

from ..tree import Node
from ..types import Code, CompileError, Environment, KtlBool, KtlNil, KtlTuple, KtlValue, is_flow
from .common import CompileFunc, error_at

def compile_block(node: Node, compile_node: CompileFunc) -> Code:
    """
    ``{ a; b; c }`` runs each statement in the same environment. A flow
    signal stops the block and is handed back as is; otherwise the result is
    the tuple ``(true, last value)``.
    """
    statements = [compile_node(child) for child in node.children]

    def block(env: Environment) -> KtlValue:
        last: KtlValue = KtlNil()

        for stmt in statements:
            last = stmt(env)
            if is_flow(last):
                return last

        return KtlTuple([KtlBool(True), last])

    return block

def compile_tuple(node: Node, compile_node: CompileFunc) -> Code:
    items = [compile_node(child) for child in node.children]

    def build(env: Environment) -> KtlValue:
        values: List[KtlValue] = []

        for item in items:
            val = item(env)
            if is_flow(val):
                return val
            values.append(val)

        return KtlTuple(values)

    return build

def compile_group(node: Node, compile_node: CompileFunc) -> Code:
    # a surviving paren group is empty or wraps one expression, usually a comma group
    if not node.children:
        return lambda env: KtlTuple([])

    if len(node.children) > 1:
        raise error_at(CompileError, node.children[1], "parenthesised group must hold a single expression")

    return compile_node(node.children[0])
