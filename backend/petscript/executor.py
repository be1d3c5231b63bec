"""Tree-walking executor for PetScript programs.

The executor never owns host state. It is handed a command table (name ->
callable) and an output sink at construction time, and drives the program
through them:

- statement-position calls may return an awaitable; it is awaited, which is
  where the host gets to run animations or wait for input
- after every statement inside a sequence, loop or branch body the executor
  sleeps for `execution_delay_ms` so the learner can follow along
- calls in condition/argument position run synchronously and their failures
  propagate to the caller of `execute`
- `stop()` (or a set `cancel_event`) is checked before every statement and
  every loop iteration; once set, execution unwinds quietly

Recoverable failures (unknown command, command raising at statement
position) are reported through the output sink and execution continues.
Only `IterationLimitError` and failures of condition/argument calls reach
the caller.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from .errors import IterationLimitError, ScriptNameError, ScriptRuntimeError
from .nodes import Call, For, Identifier, If, NumberLiteral, Program, Repeat, Sequence, StringLiteral, While

OutputSink = Callable[..., None]

_TRUE_NAMES = ("True", "true")
_FALSE_NAMES = ("False", "false")


def _discard_output(message: str, channel: Optional[str] = None) -> None:
    return None


class Executor:
    """Run parsed programs against a host command table.

    Args:
        commands: mapping of command name to callable; values may be plain
            callables or coroutine functions
        output: sink called as `output(message, channel)`
        execution_delay_ms: pause after each paced statement
        max_iterations: upper bound on `while` loop iterations
        cancel_event: optional `asyncio.Event`-like object; a set event stops
            execution just like `stop()`
    """

    def __init__(
        self,
        commands: Mapping[str, Callable[..., Any]],
        output: Optional[OutputSink] = None,
        *,
        execution_delay_ms: float = 200,
        max_iterations: int = 100,
        cancel_event: Optional[Any] = None,
    ):
        self.commands = commands
        self.output = output or _discard_output
        self.execution_delay_ms = execution_delay_ms
        self.max_iterations = max_iterations
        self.cancel_event = cancel_event
        self._stopped = False
        self._handlers: Dict[type, Callable[[Any], Any]] = {
            Call: self._execute_call,
            Sequence: self._execute_sequence,
            Repeat: self._execute_repeat,
            For: self._execute_for,
            While: self._execute_while,
            If: self._execute_if,
        }

    # --- Cancellation -----------------------------------------------------
    def stop(self):
        self._stopped = True

    def reset(self):
        self._stopped = False

    @property
    def stopped(self) -> bool:
        if self._stopped:
            return True
        return bool(self.cancel_event is not None and self.cancel_event.is_set())

    async def _pause(self):
        if self.execution_delay_ms > 0:
            await asyncio.sleep(self.execution_delay_ms / 1000.0)

    # --- Entry point ------------------------------------------------------
    async def execute(self, program: Program):
        """Execute every top-level statement of `program` in order."""
        self.reset()
        for stmt in program.body:
            if self.stopped:
                break
            await self.execute_statement(stmt)

    async def execute_statement(self, node):
        if self.stopped:
            return None
        handler = self._handlers.get(type(node))
        if handler is None:
            raise TypeError(f"Unknown node type: {type(node).__name__}")
        return await handler(node)

    async def _run_body(self, body: Iterable):
        for stmt in body:
            if self.stopped:
                break
            await self.execute_statement(stmt)
            await self._pause()

    # --- Statements -------------------------------------------------------
    async def _execute_call(self, node: Call):
        command = self.commands.get(node.name)
        if command is None:
            self.output(f"NameError: '{node.name}' is not defined", "error")
            self.output("Type help() to see available commands", "system")
            return None
        # argument failures are not recoverable here: they propagate
        args = [self.evaluate(arg) for arg in node.arguments]
        try:
            result = command(*args)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            self.output(f"Error: {e}", "error")
            return None

    async def _execute_sequence(self, node: Sequence):
        await self._run_body(node.statements)

    async def _execute_repeat(self, node: Repeat):
        self.output(f"Repeating {node.count} times...", "info")
        for _ in range(node.count):
            if self.stopped:
                break
            await self._run_body(node.body)

    async def _execute_for(self, node: For):
        self.output(f"Looping {node.count} times...", "info")
        for _ in range(node.count):
            if self.stopped:
                break
            await self._run_body(node.body)

    async def _execute_while(self, node: While):
        iterations = 0
        while not self.stopped:
            if not self.evaluate(node.condition):
                break
            if iterations >= self.max_iterations:
                raise IterationLimitError(
                    f"Loop exceeded maximum iterations ({self.max_iterations})",
                    line=node.line,
                    hint="Make sure the loop condition eventually becomes false.",
                )
            iterations += 1
            await self._run_body(node.body)

    async def _execute_if(self, node: If):
        if self.evaluate(node.condition):
            self.output("Condition is true, executing block", "info")
            await self._run_body(node.body)
            return
        for clause in node.elif_clauses:
            if self.stopped:
                return
            if self.evaluate(clause.condition):
                self.output("Condition is true, executing block", "info")
                await self._run_body(clause.body)
                return
        self.output("Condition is false, skipping block", "info")
        if node.else_body is not None:
            await self._run_body(node.else_body)

    # --- Expressions ------------------------------------------------------
    def evaluate(self, expr) -> Any:
        """Synchronously evaluate an argument or condition expression."""
        if isinstance(expr, (NumberLiteral, StringLiteral)):
            return expr.value
        if isinstance(expr, Identifier):
            if expr.name in _TRUE_NAMES:
                return True
            if expr.name in _FALSE_NAMES:
                return False
            return expr.name
        if isinstance(expr, Call):
            return self.call_sync(expr)
        raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def call_sync(self, node: Call) -> Any:
        command = self.commands.get(node.name)
        if command is None:
            raise ScriptNameError(
                f"'{node.name}' is not defined",
                line=node.line,
                hint="Type help() to see available commands",
            )
        args = [self.evaluate(arg) for arg in node.arguments]
        try:
            result = command(*args)
        except Exception as e:
            raise ScriptRuntimeError(f"{node.name}() failed: {e}", line=node.line) from e
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise ScriptRuntimeError(
                f"{node.name}() cannot be used as a condition or argument: it does not return a value immediately",
                line=node.line,
            )
        return result
