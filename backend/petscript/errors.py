"""Error taxonomy for the PetScript engine.

Inside the engine every failure is a Python exception derived from
`ScriptError`. The `Interpreter.run` boundary turns them into the structured
error dicts the API returns (see `ScriptError.to_dict`).
"""

from typing import Any, Dict, Optional


class ScriptError(Exception):
    """Base class for all script failures.

    Attributes:
        line: optional 1-based source line of the failure
        column: optional 1-based column of the failure
        hint: optional short suggestion shown to the learner
    """

    code = "RUNTIME_ERROR"

    def __init__(self, message: str, *, line: Optional[int] = None, column: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.hint = hint

    @property
    def label(self) -> str:
        return type(self).__name__.replace("Script", "")

    def to_dict(self, source: Optional[str] = None) -> Dict[str, Any]:
        err: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "line": self.line if self.line is not None else 1,
            "column": self.column if self.column is not None else 1,
        }
        if source is not None and self.line is not None:
            lines = source.splitlines()
            if 0 < self.line <= len(lines):
                err["context"] = {"line_text": lines[self.line - 1]}
        if self.hint:
            err["hint"] = self.hint
        return err


class ScriptSyntaxError(ScriptError):
    """Raised by the parser (and the strict lexer) when an expected token is absent.

    `kind` is the name of the offending token's type, e.g. "NEWLINE".
    """

    code = "SYNTAX_ERROR"

    def __init__(self, message: str, *, kind: Optional[str] = None, line: Optional[int] = None, column: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(message, line=line, column=column, hint=hint)
        self.kind = kind

    def __str__(self) -> str:
        if self.kind is None:
            return self.message
        return f"{self.message} at line {self.line}, col {self.column}. Got {self.kind}"


class ScriptIndentationError(ScriptSyntaxError):
    """A dedent landed on an indentation level that was never opened."""


class ScriptNameError(ScriptError):
    code = "NAME_ERROR"


class ScriptRuntimeError(ScriptError):
    """A host command failed while being evaluated as a condition or argument."""


class IterationLimitError(ScriptError):
    code = "ITERATION_LIMIT"
