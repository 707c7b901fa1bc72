from __future__ import annotations

import logging
from typing import List, Optional

from ..token_types import TT
from ..tree import Node
from ..types import (
    Code,
    CompileError,
    Environment,
    FlowKind,
    FlowSignal,
    KettleArityError,
    KettleRuntimeError,
    KettleTypeError,
    KtlFn,
    KtlTuple,
    KtlValue,
    is_flow,
    type_name,
)
from .common import CompileFunc, error_at, group_entries

logger = logging.getLogger("kettle.eval.fn")

MAX_DEPTH_MESSAGE = "maximum call depth exceeded"

def extract_param_names(params_node: Node) -> List[str]:
    if params_node.kind is not TT.LPAR:
        raise error_at(CompileError, params_node, "malformed function: parameter list must be parenthesised")

    names: List[str] = []

    for p in group_entries(params_node, "parameter list"):
        if p.kind is not TT.IDENT:
            raise error_at(CompileError, p, f"parameters must be identifiers, found {p.sexpr()}")
        if p.text in names:
            raise error_at(CompileError, p, f"duplicate parameter {p.text!r}")
        names.append(p.text)

    return names

def compile_function(node: Node, compile_node: CompileFunc) -> Code:
    if len(node.children) != 2:
        raise error_at(CompileError, node, "malformed function: requires a parameter list and a body")

    params_node, body = node.children
    params = extract_param_names(params_node)

    if body.kind is not TT.LBRACE:
        raise error_at(CompileError, body, "malformed function: body must be a block")

    code = compile_node(body)

    def make_fn(env: Environment) -> KtlValue:
        return KtlFn(params=params, body=body, code=code, env=env)

    return make_fn

def call_fn(fn: KtlFn, args: List[KtlValue], node: Optional[Node]=None) -> KtlValue:
    """
    Run ``fn`` with ``args`` bound in a fresh child of its defining scope.

    A return signal ends here and its payload becomes the result. Break and
    continue pass through to the caller. A body that finishes normally gives
    the value of its last statement.
    """
    if len(args) != len(fn.params):
        message = f"failed to apply function: received {len(args)} arguments for {len(fn.params)} parameters"
        if node is None:
            raise KettleArityError(message)
        raise error_at(KettleArityError, node, message)

    env = fn.env.child()
    for name, val in zip(fn.params, args):
        env.set(name, val)

    try:
        result = fn.code(env)
    except RecursionError:
        if node is None:
            raise KettleRuntimeError(MAX_DEPTH_MESSAGE) from None
        raise error_at(KettleRuntimeError, node, MAX_DEPTH_MESSAGE) from None

    match result:
        case FlowSignal(kind=FlowKind.RETURN, payload=payload):
            return payload
        case FlowSignal():
            logger.debug("%s escaped a function call", result)
            return result
        case KtlTuple(items=[_, last]):
            return last

    return result

def compile_apply(node: Node, compile_node: CompileFunc) -> Code:
    if len(node.children) != 2:
        raise error_at(CompileError, node, "malformed call: requires a callee and an argument list")

    callee_node, args_node = node.children
    callee = compile_node(callee_node)
    arg_codes = [compile_node(arg) for arg in group_entries(args_node, "argument list")]

    def apply(env: Environment) -> KtlValue:
        fn = callee(env)
        if is_flow(fn):
            return fn

        if not isinstance(fn, KtlFn):
            raise error_at(KettleTypeError, node, f"cannot invoke non-function: {type_name(fn)} {fn!r}")

        args: List[KtlValue] = []
        for arg in arg_codes:
            val = arg(env)
            if is_flow(val):
                return val
            args.append(val)

        return call_fn(fn, args, node)

    return apply
