"""FastAPI application entrypoints for PetScript.

This module exposes HTTP endpoints used by the frontend and tests. Handlers
stay small: each `/run` request builds a fresh `Interpreter` and a fresh
`ScriptedHost` so no state leaks between requests. Server-side caps are
enforced so clients cannot raise the safety limits.
"""

import os
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from ..petscript.errors import ScriptSyntaxError
from ..petscript.host import ScriptedHost
from ..petscript.interpreter import Interpreter, parse_script
from ..petscript.lexer import tokenize
from ..petscript.nodes import iter_calls, program_to_dict

app = FastAPI(title="PetScript API", version="0.1")

# Pacing only matters for a live UI; over HTTP the trace is returned at once.
SERVER_DELAY_MS = float(os.environ.get("PETSCRIPT_EXECUTION_DELAY_MS", "0"))
MAX_CALLS = int(os.environ.get("PETSCRIPT_MAX_CALLS", "10000"))


def _cap_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Enforce server-side safe caps for runtime tunables.

    The ceiling comes from a fresh `Interpreter()`'s defaults (and the server
    pacing delay); client values are applied up to those ceilings.

    Returns a dict suitable for passing directly into `Interpreter.run_async`.
    """
    defaults = Interpreter()
    safe = {
        "execution_delay_ms": SERVER_DELAY_MS,
        "max_iterations": defaults.max_iterations,
        "strict_indentation": defaults.strict_indentation,
    }
    if not settings:
        return safe
    caps = {}
    caps["execution_delay_ms"] = max(0.0, min(float(settings.get("execution_delay_ms", safe["execution_delay_ms"])), safe["execution_delay_ms"]))
    caps["max_iterations"] = max(0, min(int(settings.get("max_iterations", safe["max_iterations"])), safe["max_iterations"]))
    # strictness is not safety-critical
    caps["strict_indentation"] = bool(settings.get("strict_indentation", safe["strict_indentation"]))
    return caps


class RunRequest(BaseModel):
    """Pydantic model for the `/run` request body.

    Fields:
        code: PetScript source text.
        commands: command name -> canned return value, or a list of values
            returned one per call (the last one repeats).
        settings: optional runtime tunables; capped server-side.
    """
    code: str
    commands: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None


class SourceRequest(BaseModel):
    code: str
    strict_indentation: bool = True


@app.post("/run")
async def run_code(req: RunRequest):
    """Handle a script execution request.

    Any unexpected exception becomes a SERVER_ERROR payload so callers always
    receive the same JSON shape.
    """
    start = time.time()
    host = ScriptedHost(req.commands or {}, max_calls=MAX_CALLS)
    try:
        capped = _cap_settings(req.settings or {})
        it = Interpreter()
        result = await it.run_async(
            req.code,
            host.command_table(),
            settings=capped,
            cancel_event=host,
        )
    except Exception as e:
        return {
            "output": "",
            "messages": [],
            "warnings": [],
            "calls": host.calls,
            "duration_ms": int((time.time() - start) * 1000),
            "errors": {"code": "SERVER_ERROR", "message": str(e)},
        }
    if host.limit_hit:
        result["warnings"].append(f"Call limit reached ({host.max_calls}); run stopped")
    result["calls"] = host.calls
    result["duration_ms"] = int((time.time() - start) * 1000)
    return result


@app.post("/parse")
async def parse_code(req: SourceRequest):
    """Return the AST of `code` and the command names it calls."""
    try:
        program = parse_script(req.code, strict=req.strict_indentation)
    except ScriptSyntaxError as e:
        return {"ast": None, "commands": [], "errors": e.to_dict(req.code)}
    names = []
    for call in iter_calls(program.body):
        if call.name not in names:
            names.append(call.name)
    return {"ast": program_to_dict(program), "commands": names, "errors": None}


@app.post("/tokens")
async def tokenize_code(req: SourceRequest):
    try:
        tokens = tokenize(req.code, strict=req.strict_indentation)
    except ScriptSyntaxError as e:
        return {"tokens": [], "errors": e.to_dict(req.code)}
    return {"tokens": [t.to_dict() for t in tokens], "errors": None}


def serve(host: str = "127.0.0.1", port: int = 8000, log_level: str = "info"):
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    serve(
        host=os.environ.get("PETSCRIPT_HOST", "127.0.0.1"),
        port=int(os.environ.get("PETSCRIPT_PORT", "8000")),
        log_level=os.environ.get("PETSCRIPT_LOG_LEVEL", "info"),
    )
