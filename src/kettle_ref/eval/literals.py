from __future__ import annotations

import re

from ..token_types import TT
from ..tree import Node
from ..types import Code, CompileError, Environment, KtlBool, KtlFloat, KtlInt, KtlNil, KtlString, KtlValue
from .common import error_at, fixed
from .helpers import fits_int

KEYWORD_LITERALS = {
    'true': KtlBool(True),
    'false': KtlBool(False),
    'nil': KtlNil(),
}

_SIMPLE_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
    '0': '\0',
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'v': '\v',
}

_ESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|.)", re.DOTALL)

def compile_ident(node: Node) -> Code:
    literal = KEYWORD_LITERALS.get(node.text)
    if literal is not None:
        return fixed(literal)

    name = node.text

    def lookup(env: Environment) -> KtlValue:
        return env.get(name)

    return lookup

def parse_number(node: Node) -> KtlValue:
    text = node.text

    if '.' not in text:
        value = int(text)
        if fits_int(value):
            return KtlInt(value)

    try:
        return KtlFloat(float(text))
    except ValueError:
        raise error_at(CompileError, node, f"malformed number {text!r}") from None

def compile_number(node: Node) -> Code:
    return fixed(parse_number(node))

def unescape(body: str, node: Node) -> str:
    def replace(m: re.Match) -> str:
        esc = m.group(1)

        if len(esc) > 1:
            try:
                return chr(int(esc[1:], 16))
            except (ValueError, OverflowError):
                raise error_at(CompileError, node, f"invalid escape \\{esc} in string literal") from None

        if esc in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[esc]

        raise error_at(CompileError, node, f"invalid escape \\{esc} in string literal")

    return _ESCAPE_RE.sub(replace, body)

def compile_string(node: Node) -> Code:
    body = node.text[1:-1]

    if node.kind is not TT.BT_STRING:
        body = unescape(body, node)

    return fixed(KtlString(body))
