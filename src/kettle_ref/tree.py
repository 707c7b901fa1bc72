"""Syntax tree nodes produced by the tree builder.

Nodes are lark ``Tree`` subclasses so lark visitors can walk them: ``data``
holds the kind name and ``children`` the child nodes. Every node, leaf or
not, also carries its own kind, source text and a ``resolved`` marker that
the tree builder uses while it reduces a statement.
"""
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from lark import Tree
from lark.tree import Meta

from .token_types import TT, Tok


class Node(Tree):
    def __init__(self, kind: TT, text: str, children: Optional[Iterable[Node]]=None,
                 resolved: bool=False, line: int=0, column: int=0, source: str="<input>"):
        meta = Meta()
        meta.line = line
        meta.column = column
        meta.empty = False
        super().__init__(kind.name, list(children or []), meta)
        self.kind = kind
        self.text = text
        self.resolved = resolved
        self.source = source

    @classmethod
    def from_tok(cls, tok: Tok, kind: Optional[TT]=None, resolved: bool=False) -> Node:
        return cls(kind or tok.type, tok.value, resolved=resolved,
                   line=tok.line, column=tok.column, source=tok.source)

    @property
    def line(self) -> int:
        return self.meta.line

    @property
    def column(self) -> int:
        return self.meta.column

    def derive(self, kind: TT, text: str, children: Iterable[Node], resolved: bool=True) -> Node:
        """New node at this node's source position."""
        return Node(kind, text, children, resolved=resolved,
                    line=self.line, column=self.column, source=self.source)

    def clone(self) -> Node:
        return self.derive(self.kind, self.text, [c.clone() for c in self.children], self.resolved)

    def where(self) -> str:
        return f"{self.source}:{self.line}:{self.column}"

    def walk(self) -> Iterator[Node]:
        """Pre-order walk over this node and its descendants."""
        stack: List[Node] = [self]

        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def sexpr(self) -> str:
        """Compact form: ``(+ 1 (* 2 3))``."""
        if not self.children:
            return self.text

        return "(" + " ".join([self.text] + [c.sexpr() for c in self.children]) + ")"

    def _pretty_label(self) -> str:
        return f"{self.kind.name}<{self.text}>"

    def __str__(self) -> str:
        label = f"{self.kind.name}<{self.text}>"
        if not self.children:
            return label

        return "(" + " ".join([label] + [str(c) for c in self.children]) + ")"

    def __repr__(self) -> str:
        return f"Node({self.kind.name}, {self.text!r}, resolved={self.resolved}, children={self.children!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return False

        return (self.kind is other.kind
                and self.text == other.text
                and self.resolved == other.resolved
                and self.children == other.children)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return hash((self.kind, self.text, tuple(self.children)))
