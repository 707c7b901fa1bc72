from __future__ import annotations

from ..token_types import TT
from ..tree import Node
from ..types import Code, CompileError, Environment, FlowKind, FlowSignal, KtlNil, KtlValue, is_flow
from .common import CompileFunc, error_at, fixed

def compile_return(node: Node, compile_node: CompileFunc) -> Code:
    match node.children:
        case []:
            return fixed(FlowSignal(FlowKind.RETURN, KtlNil()))
        case [operand]:
            payload = compile_node(operand)
        case _:
            raise error_at(CompileError, node, "return takes at most one operand")

    def ret(env: Environment) -> KtlValue:
        val = payload(env)
        if is_flow(val):
            return val
        return FlowSignal(FlowKind.RETURN, val)

    return ret

_FIXED_SIGNALS = {
    TT.BREAK: FlowKind.BREAK,
    TT.CONTINUE: FlowKind.CONTINUE,
}

def compile_jump(node: Node, compile_node: CompileFunc) -> Code:
    return fixed(FlowSignal(_FIXED_SIGNALS[node.kind]))
