from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from ..token_types import TT
from ..tree import Node
from ..types import (
    Code,
    Environment,
    KettleRuntimeError,
    KettleTypeError,
    KtlBool,
    KtlFloat,
    KtlInt,
    KtlString,
    KtlValue,
    is_flow,
    type_name,
)
from .common import CompileFunc, error_at, expect_children
from .helpers import is_truthy, wrap_int

@dataclass(frozen=True)
class BinaryOp:
    """Per-operand-type implementations of one binary operator; None means unsupported."""
    symbol: str
    int_op: Optional[Callable[[int, int], KtlValue]] = None
    float_op: Optional[Callable[[float, float], KtlValue]] = None
    string_op: Optional[Callable[[str, str], KtlValue]] = None

def _int_div(a: int, b: int) -> int:
    # truncate toward zero
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q

def _int_mod(a: int, b: int) -> int:
    return a - b * _int_div(a, b)

def _float_div(a: float, b: float) -> float:
    if b != 0:
        return a / b
    if a == 0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)

def _arith(fn: Callable[[int, int], int]) -> Callable[[int, int], KtlValue]:
    return lambda a, b: KtlInt(wrap_int(fn(a, b)))

def _compare(fn: Callable[[object, object], bool]) -> BinaryOp:
    return BinaryOp(
        symbol="",
        int_op=lambda a, b: KtlBool(fn(a, b)),
        float_op=lambda a, b: KtlBool(fn(a, b)),
        string_op=lambda a, b: KtlBool(fn(a, b)),
    )

def _named(symbol: str, op: BinaryOp) -> BinaryOp:
    return BinaryOp(symbol, op.int_op, op.float_op, op.string_op)

BINARY_OPS: Mapping[TT, BinaryOp] = MappingProxyType({
    TT.PLUS: BinaryOp(
        "+",
        int_op=_arith(lambda a, b: a + b),
        float_op=lambda a, b: KtlFloat(a + b),
        string_op=lambda a, b: KtlString(a + b),
    ),
    TT.MINUS: BinaryOp(
        "-",
        int_op=_arith(lambda a, b: a - b),
        float_op=lambda a, b: KtlFloat(a - b),
    ),
    TT.STAR: BinaryOp(
        "*",
        int_op=_arith(lambda a, b: a * b),
        float_op=lambda a, b: KtlFloat(a * b),
    ),
    TT.SLASH: BinaryOp(
        "/",
        int_op=_arith(_int_div),
        float_op=lambda a, b: KtlFloat(_float_div(a, b)),
    ),
    TT.MOD: BinaryOp(
        "%",
        int_op=_arith(_int_mod),
    ),
    TT.EQ: _named("==", _compare(lambda a, b: a == b)),
    TT.NEQ: _named("!=", _compare(lambda a, b: a != b)),
    TT.LT: _named("<", _compare(lambda a, b: a < b)),
    TT.GT: _named(">", _compare(lambda a, b: a > b)),
    TT.LTE: _named("<=", _compare(lambda a, b: a <= b)),
    TT.GTE: _named(">=", _compare(lambda a, b: a >= b)),
})

def apply_binary(op: BinaryOp, node: Node, lhs: KtlValue, rhs: KtlValue) -> KtlValue:
    match (lhs, rhs):
        case (KtlInt(value=a), KtlInt(value=b)) if op.int_op is not None:
            try:
                return op.int_op(a, b)
            except ZeroDivisionError:
                verb = "divide" if op.symbol == "/" else "take modulo"
                raise error_at(KettleRuntimeError, node, f"cannot {verb} by integer zero") from None
        case (KtlInt() | KtlFloat(), KtlInt() | KtlFloat()) if op.float_op is not None:
            return op.float_op(float(lhs.value), float(rhs.value))
        case (KtlString(value=a), KtlString(value=b)) if op.string_op is not None:
            return op.string_op(a, b)

    raise error_at(
        KettleTypeError,
        node,
        f"cannot apply operator {op.symbol!r} to argument types {type_name(lhs)}, {type_name(rhs)}",
    )

def compile_binary(node: Node, compile_node: CompileFunc) -> Code:
    op = BINARY_OPS[node.kind]
    left_node, right_node = expect_children(node, 2, f"operator {op.symbol!r}")
    left = compile_node(left_node)
    right = compile_node(right_node)

    def binary(env: Environment) -> KtlValue:
        lhs = left(env)
        if is_flow(lhs):
            return lhs

        rhs = right(env)
        if is_flow(rhs):
            return rhs

        return apply_binary(op, node, lhs, rhs)

    return binary

def compile_and(node: Node, compile_node: CompileFunc) -> Code:
    left_node, right_node = expect_children(node, 2, "operator '&&'")
    left = compile_node(left_node)
    right = compile_node(right_node)

    def logical_and(env: Environment) -> KtlValue:
        lhs = left(env)
        if is_flow(lhs) or not is_truthy(lhs):
            return lhs
        return right(env)

    return logical_and

def compile_or(node: Node, compile_node: CompileFunc) -> Code:
    left_node, right_node = expect_children(node, 2, "operator '||'")
    left = compile_node(left_node)
    right = compile_node(right_node)

    def logical_or(env: Environment) -> KtlValue:
        lhs = left(env)
        if is_flow(lhs) or is_truthy(lhs):
            return lhs
        return right(env)

    return logical_or

def compile_not(node: Node, compile_node: CompileFunc) -> Code:
    (operand_node,) = expect_children(node, 1, "operator '!'")
    operand = compile_node(operand_node)

    def logical_not(env: Environment) -> KtlValue:
        val = operand(env)
        if is_flow(val):
            return val
        return KtlBool(not is_truthy(val))

    return logical_not

def compile_neg(node: Node, compile_node: CompileFunc) -> Code:
    (operand_node,) = expect_children(node, 1, "operator '-'")
    operand = compile_node(operand_node)

    def negate(env: Environment) -> KtlValue:
        val = operand(env)

        match val:
            case KtlInt(value=v):
                return KtlInt(wrap_int(-v))
            case KtlFloat(value=v):
                return KtlFloat(-v)
            case _ if is_flow(val):
                return val

        raise error_at(KettleTypeError, node, f"cannot negate {type_name(val)}")

    return negate
