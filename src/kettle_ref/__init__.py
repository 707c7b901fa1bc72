"""Kettle: a small expression language with a closure-compiling evaluator."""

import logging

from .evaluator import Closure, compile
from .lexer import tokenize
from .parser import parse
from .runner import run
from .types import new_root_environment

logging.getLogger("kettle").addHandler(logging.NullHandler())

__all__ = [
    "Closure",
    "compile",
    "new_root_environment",
    "parse",
    "run",
    "tokenize",
]
