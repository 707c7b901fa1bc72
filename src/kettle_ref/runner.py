from __future__ import annotations

import logging
import os
import sys
import traceback
from pathlib import Path
from typing import List, Optional, TextIO

from .evaluator import compile
from .lexer import Reader, tokenize
from .parser import Parser
from .token_types import TT
from .tree import Node
from .types import Environment, KettleError, KtlValue, LexError, new_root_environment

logger = logging.getLogger("kettle.runner")

USAGE = "usage: kettle [--tokens | --tree] [--threaded] [FILE | -]"

# each kettle call costs several Python frames
RECURSION_LIMIT = 10000

def debug_py_trace_enabled() -> bool:
    return os.environ.get("KETTLE_DEBUG_PY_TRACE", "") not in ("", "0")

def configure_logging() -> None:
    level_name = os.environ.get("KETTLE_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(level_name)

    if not isinstance(level, int):
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

def parse_source(source: Reader, name: str="<input>", concurrent: bool=False) -> Node:
    return Parser(name, source, concurrent=concurrent).parse()

def run(source: Reader, name: str="<input>", env: Optional[Environment]=None, concurrent: bool=False) -> KtlValue:
    """
    Parse, compile and run ``source``.

    Returns the root block's value: ``(true, last)`` or the flow signal that
    stopped it. A lexical, compile or runtime error is raised as is.
    """
    if env is None:
        env = new_root_environment()

    tree = parse_source(source, name, concurrent=concurrent)
    return compile(tree).invoke(env)

def dump_tokens(source: Reader, name: str, out: TextIO) -> None:
    for tok in tokenize(name, source):
        if tok.type is TT.ERROR:
            raise LexError(tok.value, tok.line, tok.column, tok.source)

        print(f"{tok.source}:{tok.line}:{tok.column} {tok.type.name} {tok.value!r}", file=out)

def dump_tree(source: Reader, name: str, out: TextIO, concurrent: bool=False) -> None:
    tree = parse_source(source, name, concurrent=concurrent)

    for stmt in tree.children:
        print(stmt.sexpr(), file=out)

def _open_source(arg: Optional[str]) -> tuple[Reader, str]:
    """
    Resolve a CLI argument into a reader and a source name.
    - None or "-" => stdin.
    - Otherwise a path that must exist.
    """
    if arg is None or arg == "-":
        return sys.stdin, "<stdin>"

    path = Path(arg)
    if not path.is_file():
        raise KettleError(f"no such file: {arg}")

    try:
        return path.read_text(encoding="utf-8"), arg
    except (OSError, UnicodeDecodeError) as exc:
        raise KettleError(f"cannot read {arg}: {exc}") from exc

def _report(exc: BaseException) -> None:
    print(f"error: {exc}", file=sys.stderr)

    if debug_py_trace_enabled():
        print("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), file=sys.stderr, end="")

def main(argv: Optional[List[str]]=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    mode = "run"
    concurrent = False
    arg = None

    configure_logging()

    for token in args:
        if token in ("-h", "--help"):
            print(USAGE)
            return 0

        if token == "--tokens":
            mode = "tokens"
            continue

        if token == "--tree":
            mode = "tree"
            continue

        if token == "--threaded":
            concurrent = True
            continue

        if arg is None:
            arg = token
        else:
            print(f"error: unexpected argument: {token}\n{USAGE}", file=sys.stderr)
            return 2

    if arg is None and mode == "run" and sys.stdin.isatty():
        from .repl import repl

        repl()
        return 0

    try:
        source, name = _open_source(arg)

        if mode == "tokens":
            dump_tokens(source, name, sys.stdout)
        elif mode == "tree":
            dump_tree(source, name, sys.stdout, concurrent=concurrent)
        else:
            run(source, name, concurrent=concurrent)
    except KettleError as exc:
        _report(exc)
        return 1
    except RecursionError:
        # sexpr of a very deep tree
        _report(KettleError("maximum recursion depth exceeded"))
        return 1

    return 0

def main_entry() -> None:
    if sys.getrecursionlimit() < RECURSION_LIMIT:
        sys.setrecursionlimit(RECURSION_LIMIT)

    sys.exit(main())

if __name__ == "__main__":
    main_entry()
