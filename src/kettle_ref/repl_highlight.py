"""prompt_toolkit lexer for live Kettle syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .eval.literals import KEYWORD_LITERALS
from .lexer import tokenize
from .parser import KEYWORDS
from .token_types import TT

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

_TT_GROUP = {
    TT.NUMBER: "number",
    TT.DQ_STRING: "string",
    TT.SQ_STRING: "string",
    TT.BT_STRING: "string",
    TT.HASH_COMMENT: "comment",
    TT.SLASH_COMMENT: "comment",
    TT.IDENT: "identifier",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.COMMA: "punctuation",
    TT.DOT: "punctuation",
    TT.SEPARATOR: "punctuation",
}

_SKIP = {TT.EOF, TT.ERROR}


def _group(tok_type: TT, text: str) -> str:
    if tok_type is TT.IDENT:
        if text in KEYWORDS:
            return "keyword"
        if text in KEYWORD_LITERALS:
            return "constant"
    return _TT_GROUP.get(tok_type, "operator")


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    result: StyleAndTextTuples = []
    pos = 0

    for tok in tokenize("<repl>", text):
        if tok.type is TT.ERROR:
            # the rest of the line could not be scanned
            rest = text[pos:]
            bad = rest.lstrip()
            if len(bad) < len(rest):
                result.append(("", rest[:len(rest) - len(bad)]))
            result.append((GROUP_STYLE["error"], bad))
            pos = len(text)
            break

        if tok.type in _SKIP or not tok.value or tok.value.isspace():
            continue

        idx = text.find(tok.value, pos)
        if idx < 0:
            continue

        if idx > pos:
            result.append(("", text[pos:idx]))

        result.append((GROUP_STYLE[_group(tok.type, tok.value)], tok.value))
        pos = idx + len(tok.value)

    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class KettleLexer(Lexer):
    """prompt_toolkit Lexer that highlights Kettle source line by line."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
