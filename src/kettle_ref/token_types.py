"""
Token Types for Kettle

Shared between lexer, tree builder and evaluator to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - the lexer kinds plus the node kinds the tree builder synthesises"""

    # Stream control
    EOF = auto()
    ERROR = auto()
    SEPARATOR = auto()

    # Identifiers and literals
    IDENT = auto()
    NUMBER = auto()
    DQ_STRING = auto()  # "..."
    SQ_STRING = auto()  # '...'
    BT_STRING = auto()  # `...`

    # Comments
    HASH_COMMENT = auto()
    SLASH_COMMENT = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAR = auto()
    RPAR = auto()

    # Prefix
    NOT = auto()  # !

    # Infix
    COMMA = auto()
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    MOD = auto()
    LT = auto()
    GT = auto()
    DOT = auto()
    PIPE = auto()  # >>
    GTE = auto()
    NEQ = auto()
    EQ = auto()
    LTE = auto()
    OR = auto()
    AND = auto()

    # Assignment
    ASSIGN = auto()
    PLUSEQ = auto()
    MINUSEQ = auto()
    STAREQ = auto()
    SLASHEQ = auto()
    MODEQ = auto()

    # Synthesised by the tree builder
    FUNCTION = auto()
    APPLY = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    NEG = auto()  # unary minus


STRING_TYPES = frozenset({TT.DQ_STRING, TT.SQ_STRING, TT.BT_STRING})
COMMENT_TYPES = frozenset({TT.HASH_COMMENT, TT.SLASH_COMMENT})

# Tokens after which a line break terminates the statement.
STATEMENT_ENDERS = frozenset({TT.IDENT, TT.NUMBER, TT.RPAR, TT.RBRACE}) | STRING_TYPES

# Compound assignment -> the binary operator it applies
COMPOUND_ASSIGN = {
    TT.PLUSEQ: TT.PLUS,
    TT.MINUSEQ: TT.MINUS,
    TT.STAREQ: TT.STAR,
    TT.SLASHEQ: TT.SLASH,
    TT.MODEQ: TT.MOD,
}


@dataclass(frozen=True)
class Tok:
    """Token with position info"""

    type: TT
    value: str
    line: int = 0
    column: int = 0
    source: str = "<input>"

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
