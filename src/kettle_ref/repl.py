"""Interactive REPL for Kettle, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .lexer import tokenize
from .repl_highlight import KettleLexer
from .runner import debug_py_trace_enabled, run
from .token_types import COMMENT_TYPES, TT
from .types import Environment, FlowSignal, KettleError, KtlNil, KtlTuple, KtlValue, new_root_environment

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
}

_DEPTH_OPEN = {TT.LPAR, TT.LBRACE}
_DEPTH_CLOSE = {TT.RPAR, TT.RBRACE}


def is_complete(text: str) -> bool:
    """
    True once *text* can be run: every bracket is closed and the input would
    end in a statement separator if the user pressed enter now.
    """
    depth = 0
    last_sig = None

    for tok in tokenize("<repl>", text + "\n"):
        t = tok.type
        if t is TT.ERROR:
            # let the runner report it
            return True
        if t in COMMENT_TYPES or t is TT.EOF:
            continue
        if t in _DEPTH_OPEN:
            depth += 1
        elif t in _DEPTH_CLOSE:
            depth = max(depth - 1, 0)
        last_sig = t

    return depth == 0 and last_sig is TT.SEPARATOR


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, env_box: list[Environment]) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ["KETTLE_DEBUG_PY_TRACE"] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop("KETTLE_DEBUG_PY_TRACE", None)
        elif arg == "":
            if debug_py_trace_enabled():
                os.environ.pop("KETTLE_DEBUG_PY_TRACE", None)
            else:
                os.environ["KETTLE_DEBUG_PY_TRACE"] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    if cmd == "/reset":
        env_box[0] = new_root_environment()
        print("Environment reset.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    return _INVISIBLE_RE.sub("", text)


def shown_result(result: KtlValue) -> KtlValue | None:
    """What the REPL echoes for a run: the last statement's value, or the stray flow signal."""
    match result:
        case KtlTuple(items=[_, KtlNil()]):
            return None
        case KtlTuple(items=[_, last]):
            return last
        case FlowSignal():
            return result

    return None


def eval_and_print(text: str, env: Environment) -> None:
    try:
        result = run(text, "<repl>", env)
    except KettleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if debug_py_trace_enabled():
            print("\nPython traceback:", file=sys.stderr)
            print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
        return

    shown = shown_result(result)
    if shown is not None:
        print(repr(shown))


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    # Use a mutable box so /reset can swap the environment.
    env_box: list[Environment] = [new_root_environment()]

    bindings = KeyBindings()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        if text.lstrip().startswith("/") or not text.strip() or is_complete(text):
            buf.validate_and_handle()
            return

        buf.insert_text("\n")

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=KettleLexer(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("kettle repl. Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, env_box):
            continue

        eval_and_print(text, env_box[0])
