"""Scripted command table used by the HTTP surface and tests.

The real game owns its command table (pet actions, puzzle moves, ...). Over
HTTP the server does not have that state, so `ScriptedHost` stands in for it:
each command is declared with the value(s) it should return, and every
invocation is recorded so the client can replay the trace on its side.

    host = ScriptedHost({"move_right": None, "can_move_right": [True, True, False]})

A list is consumed one value per call; once exhausted its last value repeats.
Once `max_calls` calls are recorded, further calls are refused and
`limit_hit` is set, which stops the executor before its next statement.
"""

from typing import Any, Callable, Dict, List, Optional


class ScriptedHost:
    def __init__(self, responses: Optional[Dict[str, Any]] = None, *, max_calls: int = 10000):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.max_calls = max_calls
        self.calls: List[Dict[str, Any]] = []
        self._positions: Dict[str, int] = {}
        self.limit_hit = False

    def _next_value(self, name: str) -> Any:
        value = self.responses[name]
        if not isinstance(value, list):
            return value
        if not value:
            return None
        idx = self._positions.get(name, 0)
        self._positions[name] = idx + 1
        return value[min(idx, len(value) - 1)]

    def invoke(self, name: str, *args: Any) -> Any:
        if len(self.calls) >= self.max_calls:
            # refused calls are not recorded and return None
            self.limit_hit = True
            return None
        self.calls.append({"name": name, "args": list(args)})
        return self._next_value(name)

    def command_table(self) -> Dict[str, Callable[..., Any]]:
        table: Dict[str, Callable[..., Any]] = {}
        for name in self.responses:
            # bind name per iteration
            table[name] = lambda *args, _name=name: self.invoke(_name, *args)
        return table

    def is_set(self) -> bool:
        # lets the host double as the executor's cancel_event
        return self.limit_hit

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c["name"] == name)
