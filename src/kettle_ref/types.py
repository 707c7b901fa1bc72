from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional
from typing_extensions import TypeAlias, TypeGuard

if TYPE_CHECKING:
    from .tree import Node

# ---------- Value Model ----------

@dataclass
class KtlNil:
    def __repr__(self) -> str:
        return "nil"

@dataclass
class KtlBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass
class KtlInt:
    value: int
    def __repr__(self) -> str:
        return str(self.value)

@dataclass
class KtlFloat:
    value: float
    def __repr__(self) -> str:
        return repr(self.value)

@dataclass
class KtlString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass
class KtlTuple:
    items: List['KtlValue']
    def __repr__(self) -> str:
        return "(" + ", ".join(repr(x) for x in self.items) + ")"

Code = Callable[['Environment'], 'KtlValue']

@dataclass(eq=False)
class KtlFn:
    params: List[str]
    body: 'Node'           # AST node, kept for diagnostics
    code: Code             # body compiled once at function-literal compile time
    env: 'Environment'     # defining scope, shared
    def __repr__(self) -> str:
        param_desc = ", ".join(self.params) if self.params else "nullary"
        return f"<fn params={param_desc}>"

class FlowKind(Enum):
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"

@dataclass
class FlowSignal:
    """Produced by return/break/continue. Not an error: consumers inspect and propagate it."""
    kind: FlowKind
    payload: 'KtlValue' = field(default_factory=KtlNil)
    def __repr__(self) -> str:
        if isinstance(self.payload, KtlNil):
            return f"<{self.kind.value}>"
        return f"<{self.kind.value} {self.payload!r}>"

KtlValue: TypeAlias = (
    KtlNil
    | KtlBool
    | KtlInt
    | KtlFloat
    | KtlString
    | KtlTuple
    | KtlFn
    | FlowSignal
)

def is_flow(value: KtlValue, kind: Optional[FlowKind]=None) -> TypeGuard[FlowSignal]:
    if not isinstance(value, FlowSignal):
        return False
    return kind is None or value.kind is kind

def type_name(value: KtlValue) -> str:
    match value:
        case KtlNil():
            return "nil"
        case KtlBool():
            return "bool"
        case KtlInt():
            return "int"
        case KtlFloat():
            return "float"
        case KtlString():
            return "string"
        case KtlTuple():
            return "tuple"
        case KtlFn():
            return "function"
        case FlowSignal(kind=kind):
            return kind.value
    return type(value).__name__

# ---------- Environment ----------

class Environment:
    def __init__(self, parent: Optional['Environment']=None):
        self.parent = parent
        self.bindings: Dict[str, KtlValue] = {}

    def get(self, name: str) -> KtlValue:
        env: Optional[Environment] = self

        while env is not None:
            if name in env.bindings:
                return env.bindings[name]
            env = env.parent

        return KtlNil()

    def set(self, name: str, val: KtlValue) -> KtlValue:
        # always the current scope, even when an ancestor already binds the name
        self.bindings[name] = val
        return val

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def __repr__(self) -> str:
        depth = 0
        env = self.parent

        while env is not None:
            depth += 1
            env = env.parent

        return f"<env depth={depth} names={sorted(self.bindings)}>"

def new_root_environment() -> Environment:
    return Environment(parent=None)

# ---------- Exceptions ----------

class KettleError(Exception):
    """Base for every error kettle reports; carries an optional source position."""

    def __init__(self, message: str, line: Optional[int]=None, column: Optional[int]=None, source: Optional[str]=None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.source = source

    def __str__(self) -> str:
        if self.line is None:
            return self.message

        where = f"{self.source}:{self.line}" if self.source else f"line {self.line}"
        if self.column is not None:
            where = f"{where}:{self.column}"

        return f"{where}: {self.message}"

class LexError(KettleError):
    """Lexical analysis error"""

class ParseError(KettleError):
    """Statement that did not reduce to a single expression"""

class CompileError(KettleError):
    """Malformed tree handed to the compiler"""

class KettleRuntimeError(KettleError):
    pass

class KettleTypeError(KettleRuntimeError):
    pass

class KettleArityError(KettleRuntimeError):
    pass
