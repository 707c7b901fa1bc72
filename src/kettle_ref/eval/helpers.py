from __future__ import annotations

from ..types import KtlBool, KtlTuple, KtlValue

INT_BITS = 64
_INT_SPAN = 1 << INT_BITS
_INT_MIN = -(1 << (INT_BITS - 1))
INT_MAX = (1 << (INT_BITS - 1)) - 1

def is_truthy(val: KtlValue) -> bool:
    # nil, 0 and "" are truthy; a tuple goes by its first element
    match val:
        case KtlBool(value=b):
            return b
        case KtlTuple(items=[]):
            return False
        case KtlTuple(items=[first, *_]):
            return is_truthy(first)
        case _:
            return True

def wrap_int(value: int) -> int:
    """Two's complement wraparound to a signed 64-bit integer."""
    return (value - _INT_MIN) % _INT_SPAN + _INT_MIN

def fits_int(value: int) -> bool:
    return _INT_MIN <= value <= INT_MAX
