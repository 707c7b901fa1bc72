from __future__ import annotations

from typing import Callable, List, Type, TypeVar

from ..token_types import TT
from ..tree import Node
from ..types import Code, CompileError, Environment, KettleError, KtlValue

E = TypeVar("E", bound=KettleError)

CompileFunc = Callable[[Node], Code]

def error_at(cls: Type[E], node: Node, message: str) -> E:
    return cls(message, node.line, node.column, node.source)

def fixed(value: KtlValue) -> Code:
    """Code that ignores its environment and yields ``value``."""

    def code(env: Environment) -> KtlValue:
        return value

    return code

def expect_children(node: Node, count: int, what: str) -> List[Node]:
    if len(node.children) != count:
        raise error_at(CompileError, node, f"malformed {what}: expected {count} operands, found {len(node.children)}")

    return list(node.children)

def group_entries(group: Node, what: str) -> List[Node]:
    """
    Entries of a parenthesised list: ``()`` has none, ``(a, b)`` holds one
    comma node whose children are the entries, ``(a)`` holds the entry itself.
    """
    if group.kind is not TT.LPAR:
        return [group]

    match group.children:
        case []:
            return []
        case [single] if single.kind is TT.COMMA:
            return list(single.children)
        case [single]:
            return [single]

    raise error_at(CompileError, group, f"{what} must be a single comma-separated list")
