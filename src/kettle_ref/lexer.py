"""
Lexer for Kettle

Turns a character stream into a lazy stream of tokens.

Features:
- Single pass, one state method per scanner, two runes of pushback
- Line breaks become statement separators only after a token that can end
  a statement (identifier, literal, closing paren or brace)
- Position tracking (line, column) with tab stops
- Lexical errors become a single ERROR token followed by EOF
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Iterable, Iterator, List, Optional, TextIO, Union

from .token_types import COMMENT_TYPES, STATEMENT_ENDERS, TT, Tok
from .types import LexError

logger = logging.getLogger("kettle.lexer")

TAB_WIDTH = 4

# Empty string marks end of input; membership tests below use sets so it
# never matches by accident.
EOF = ''

WHITESPACE = frozenset({' ', '\t', '\n', '\r', '\v', '\f'})
SEPARATING_BREAKS = frozenset({'\n', '\r', '\v', '\f'})
LINE_BREAKS = frozenset({'\n', '\r'})
DIGITS = frozenset('0123456789')

SINGLE_RUNE_OPERATORS = {
    ';': TT.SEPARATOR,
    ',': TT.COMMA,
    '+': TT.PLUS,
    '-': TT.MINUS,
    '*': TT.STAR,
    '/': TT.SLASH,
    '%': TT.MOD,
    '<': TT.LT,
    '>': TT.GT,
    '!': TT.NOT,
    '.': TT.DOT,
    '=': TT.ASSIGN,
    '(': TT.LPAR,
    ')': TT.RPAR,
    '{': TT.LBRACE,
    '}': TT.RBRACE,
}

DOUBLE_RUNE_OPERATORS = {
    '>>': TT.PIPE,
    '>=': TT.GTE,
    '!=': TT.NEQ,
    '==': TT.EQ,
    ':=': TT.ASSIGN,
    '+=': TT.PLUSEQ,
    '-=': TT.MINUSEQ,
    '*=': TT.STAREQ,
    '/=': TT.SLASHEQ,
    '%=': TT.MODEQ,
    '<=': TT.LTE,
    '||': TT.OR,
    '&&': TT.AND,
}

_READ_SIZE = 4096

Reader = Union[str, TextIO]
State = Optional[Callable[[], 'State']]


def _runes(reader: Reader) -> Iterator[str]:
    if isinstance(reader, str):
        yield from reader
        return

    while True:
        chunk = reader.read(_READ_SIZE)
        if not chunk:
            return
        yield from chunk


def is_letter(ch: str) -> bool:
    return ch == '_' or ch.isalpha()


def is_digit(ch: str) -> bool:
    return ch in DIGITS


class Lexer:
    """
    Kettle lexer.

    Each scanner is a method that consumes runes into ``self.current`` and
    returns the next state (or None to stop). Emitted tokens queue up in
    ``self.pending`` and are handed out between state transitions.
    """

    def __init__(self, source_name: str, reader: Reader):
        self.name = source_name
        self.input = _runes(reader)
        self.pushback: List[str] = []
        self.current: List[str] = []
        self.pending: Deque[Tok] = deque()

        self.line = 1
        self.column = 1
        self.last_rune = EOF
        self.last_type: Optional[TT] = None

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokens(self) -> Iterator[Tok]:
        state: State = self.clean_slate

        while state is not None:
            state = state()
            while self.pending:
                yield self.pending.popleft()

        self.current.clear()
        self.emit(TT.EOF)
        yield self.pending.popleft()

    # ========================================================================
    # Rune access
    # ========================================================================

    def next(self) -> str:
        if self.pushback:
            return self.pushback.pop()
        return next(self.input, EOF)

    def backup(self, r: str) -> None:
        self.pushback.append(r)

    def peek(self) -> str:
        r = self.next()
        self.backup(r)
        return r

    def collect(self, r: str) -> None:
        self.current.append(r)

    def advance_pos(self, text: Iterable[str]) -> None:
        for r in text:
            if r == '\t':
                self.column = ((self.column - 1) // TAB_WIDTH + 1) * TAB_WIDTH + 1
            elif r == '\n' and self.last_rune == '\r':
                pass  # second half of \r\n, already counted
            elif r in LINE_BREAKS:
                self.line += 1
                self.column = 1
            else:
                self.column += 1

            self.last_rune = r

    def emit(self, token_type: TT) -> None:
        text = ''.join(self.current)
        tok = Tok(token_type, text, self.line, self.column, self.name)

        self.advance_pos(text)
        self.current.clear()

        if token_type not in COMMENT_TYPES:
            self.last_type = token_type

        self.pending.append(tok)

    def fail(self, message: str) -> State:
        tok = Tok(TT.ERROR, message, self.line, self.column, self.name)
        logger.debug("%s:%d:%d %s", self.name, tok.line, tok.column, message)

        self.current.clear()
        self.last_type = TT.ERROR
        self.pending.append(tok)

        return None

    # ========================================================================
    # States
    # ========================================================================

    def clean_slate(self) -> State:
        r = self.next()

        if r == EOF:
            return None

        if r in WHITESPACE:
            self.backup(r)
            return self.whitespace

        self.collect(r)

        match r:
            case '#':
                return self.hash_comment
            case '"':
                return self.double_quote_string
            case "'":
                return self.single_quote_string
            case '`':
                return self.backtick_string

        if is_digit(r):
            return self.number

        p = self.peek()

        if r == '/' and p == '/':
            return self.slash_comment

        op = DOUBLE_RUNE_OPERATORS.get(r + p)
        if op is not None:
            self.collect(self.next())
            self.emit(op)
            return self.clean_slate

        op = SINGLE_RUNE_OPERATORS.get(r)
        if op is not None:
            self.emit(op)
            return self.clean_slate

        if is_letter(r):
            return self.word

        return self.fail(f"unrecognized rune {r!r}")

    def whitespace(self) -> State:
        while True:
            r = self.next()

            if r not in WHITESPACE:
                self.backup(r)
                return self.clean_slate

            if r in SEPARATING_BREAKS and self.last_type in STATEMENT_ENDERS:
                self.collect(r)
                self.emit(TT.SEPARATOR)
                continue

            self.advance_pos(r)

    def word(self) -> State:
        while True:
            r = self.next()

            if r != EOF and (is_letter(r) or r.isdigit()):
                self.collect(r)
                continue

            self.backup(r)
            self.emit(TT.IDENT)
            return self.clean_slate

    def number(self) -> State:
        got_point = False

        while True:
            r = self.next()

            if is_digit(r):
                self.collect(r)
                continue

            if r == '.':
                if got_point:
                    return self.fail("malformed number: second decimal point")
                got_point = True
                self.collect(r)
                continue

            if r != EOF and is_letter(r):
                return self.fail(f"malformed number: unexpected {r!r}")

            self.backup(r)
            self.emit(TT.NUMBER)
            return self.clean_slate

    def hash_comment(self) -> State:
        return self._line_comment(TT.HASH_COMMENT)

    def slash_comment(self) -> State:
        self.collect(self.next())  # second '/'
        return self._line_comment(TT.SLASH_COMMENT)

    def _line_comment(self, token_type: TT) -> State:
        # the line break stays in the stream so it can still end a statement
        while True:
            r = self.next()

            if r == EOF or r in SEPARATING_BREAKS:
                self.backup(r)
                self.emit(token_type)
                return self.clean_slate

            self.collect(r)

    def double_quote_string(self) -> State:
        return self._quoted('"', TT.DQ_STRING, "double quote", escapes=True, multiline=False)

    def single_quote_string(self) -> State:
        return self._quoted("'", TT.SQ_STRING, "single quote", escapes=True, multiline=False)

    def backtick_string(self) -> State:
        return self._quoted('`', TT.BT_STRING, "backtick", escapes=False, multiline=True)

    def _quoted(self, quote: str, token_type: TT, what: str, escapes: bool, multiline: bool) -> State:
        while True:
            r = self.next()

            if r == EOF or (not multiline and r in LINE_BREAKS):
                return self.fail(f"unclosed {what} string")

            self.collect(r)

            if escapes and r == '\\':
                escaped = self.next()
                if escaped == EOF:
                    return self.fail(f"unclosed {what} string")
                self.collect(escaped)
                continue

            if r == quote:
                self.emit(token_type)
                return self.clean_slate


def tokenize(source_name: str, reader: Reader) -> Iterator[Tok]:
    """Lazily tokenize ``reader``; the stream always ends with one EOF token."""
    return Lexer(source_name, reader).tokens()


def tokenize_all(source_name: str, reader: Reader) -> List[Tok]:
    return list(tokenize(source_name, reader))


def raise_on_error(tokens: Iterable[Tok]) -> Iterator[Tok]:
    """Pass tokens through, turning an ERROR token into a LexError."""
    for tok in tokens:
        if tok.type is TT.ERROR:
            raise LexError(tok.value, tok.line, tok.column, tok.source)
        yield tok
