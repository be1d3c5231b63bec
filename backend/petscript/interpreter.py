"""PetScript interpreter facade.

This module ties the lexer, parser and executor together for hosts that just
want to run a piece of source text:

- parse first, then run: a syntax error is reported before any command runs
- runtime caps (pacing delay, while-loop iterations) are tunable per run
- every message sent to the output sink is collected so the caller gets a
  single result dict back, in the same shape the API returns

Result shape::

    {
        "output": "joined messages\\n",
        "messages": [{"channel": "info", "message": "..."}],
        "warnings": ["messages sent on the error channel"],
        "errors": None or {"code", "message", "line", "column", "hint"?, "context"?},
    }
"""

import asyncio
import re
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ScriptError
from .executor import Executor
from .lexer import tokenize
from .nodes import Program
from .parser import Parser

_BLOCK_START = re.compile(r"^(repeat\s*\(|if\s+|for\s+|while\s+)", re.IGNORECASE)


def parse_script(source: str, strict: bool = True) -> Program:
    """Parse `source` into a Program, raising ScriptSyntaxError on failure."""
    return Parser(tokenize(source, strict=strict)).parse()


def is_multiline_script(source: str) -> bool:
    """Return True when `source` needs the block parser.

    That is the case for anything spanning several lines or starting with a
    block keyword. A lone `feed()` style call can be handled by a host's
    simpler one-line command path.
    """
    trimmed = source.strip()
    return "\n" in trimmed or bool(_BLOCK_START.match(trimmed))


class Interpreter:
    """Top-level PetScript runner.

    Tunable attributes (defaults set in __init__):
    - execution_delay_ms: pause after each paced statement
    - max_iterations: cap on `while` iterations, exceeding it aborts the run
    - strict_indentation: reject dedents to a level that was never opened
    """

    def __init__(self):
        self.execution_delay_ms = 200
        self.max_iterations = 100
        self.strict_indentation = True
        # the executor of the run in progress, so a host can stop() it
        self.current: Optional[Executor] = None

    def _apply_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "execution_delay_ms": float(settings.get("execution_delay_ms", self.execution_delay_ms)),
            "max_iterations": int(settings.get("max_iterations", self.max_iterations)),
            "strict_indentation": bool(settings.get("strict_indentation", self.strict_indentation)),
        }

    def stop(self):
        """Ask the run in progress to stop after its current statement."""
        if self.current is not None:
            self.current.stop()

    async def run_async(
        self,
        code: str,
        commands: Mapping[str, Callable[..., Any]],
        settings: Optional[Dict[str, Any]] = None,
        output: Optional[Callable[..., None]] = None,
        cancel_event: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """Parse and execute `code` against `commands`.

        Recoverable problems end up in `messages`/`warnings`; a syntax error,
        an iteration-limit overrun or a failing condition/argument call ends
        the run and is returned under `errors`. `output`, when given, receives
        every message as it is produced as well.
        """
        opts = self._apply_settings(settings or {})
        messages: List[Dict[str, str]] = []

        def sink(message: str, channel: Optional[str] = None):
            messages.append({"channel": channel or "info", "message": message})
            if output is not None:
                output(message, channel)

        error: Optional[Dict[str, Any]] = None
        try:
            program = parse_script(code, strict=opts["strict_indentation"])
            self.current = Executor(
                commands,
                sink,
                execution_delay_ms=opts["execution_delay_ms"],
                max_iterations=opts["max_iterations"],
                cancel_event=cancel_event,
            )
            await self.current.execute(program)
        except ScriptError as e:
            sink(f"{e.label}: {e}", "error")
            error = e.to_dict(code)
        finally:
            self.current = None

        return {
            "output": "\n".join(m["message"] for m in messages) + ("\n" if messages else ""),
            "messages": messages,
            "warnings": [m["message"] for m in messages if m["channel"] == "error"],
            "errors": error,
        }

    def run(
        self,
        code: str,
        commands: Mapping[str, Callable[..., Any]],
        settings: Optional[Dict[str, Any]] = None,
        output: Optional[Callable[..., None]] = None,
    ) -> Dict[str, Any]:
        """Blocking wrapper around `run_async` for callers without an event loop."""
        start = time.time()
        result = asyncio.run(self.run_async(code, commands, settings=settings, output=output))
        result["duration_ms"] = int((time.time() - start) * 1000)
        return result
