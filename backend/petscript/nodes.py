"""AST node types produced by the parser.

The node set is closed: statements are `Call`, `Sequence`, `Repeat`, `For`,
`While` and `If`; expressions are `NumberLiteral`, `StringLiteral`,
`Identifier` and `Call`. Nodes are plain frozen dataclasses so two parses of
the same source compare equal.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class Identifier:
    # also carries the boolean literals True/False
    name: str


@dataclass(frozen=True)
class Call:
    name: str
    arguments: Tuple["Expr", ...] = ()
    line: int = 1


Expr = Union[NumberLiteral, StringLiteral, Identifier, Call]


@dataclass(frozen=True)
class Sequence:
    """Comma-chained statements written on one logical line."""

    statements: Tuple["Statement", ...]


@dataclass(frozen=True)
class Repeat:
    count: int
    body: Tuple["Statement", ...]
    line: int = 1


@dataclass(frozen=True)
class For:
    # the loop variable is recorded but never bound to a value
    variable: str
    count: int
    body: Tuple["Statement", ...]
    line: int = 1


@dataclass(frozen=True)
class While:
    condition: Expr
    body: Tuple["Statement", ...]
    line: int = 1


@dataclass(frozen=True)
class ElifClause:
    condition: Expr
    body: Tuple["Statement", ...]


@dataclass(frozen=True)
class If:
    condition: Expr
    body: Tuple["Statement", ...]
    elif_clauses: Tuple[ElifClause, ...] = ()
    else_body: Optional[Tuple["Statement", ...]] = None
    line: int = 1


Statement = Union[Call, Sequence, Repeat, For, While, If]


@dataclass(frozen=True)
class Program:
    body: Tuple[Statement, ...] = field(default_factory=tuple)


def to_dict(node: Any) -> Any:
    """Serialize a node (or a tuple of nodes) into JSON-ready dicts.

    Each node dict carries a "type" tag with the node class name.
    """
    if isinstance(node, tuple):
        return [to_dict(n) for n in node]
    if node is None or isinstance(node, (str, int, float, bool)):
        return node
    out: Dict[str, Any] = {"type": type(node).__name__}
    for f in fields(node):
        out[f.name] = to_dict(getattr(node, f.name))
    return out


def program_to_dict(program: Program) -> Dict[str, Any]:
    return to_dict(program)


def iter_calls(statements: Tuple[Statement, ...]) -> List[Call]:
    """Return every Call reachable from `statements`, in source order.

    Conditions and nested argument calls are included. Hosts use this to
    check a script against their command table before running it.
    """
    found: List[Call] = []

    def visit_expr(expr: Expr):
        if isinstance(expr, Call):
            found.append(expr)
            for arg in expr.arguments:
                visit_expr(arg)

    def visit(stmts):
        for stmt in stmts:
            if isinstance(stmt, Call):
                visit_expr(stmt)
            elif isinstance(stmt, Sequence):
                visit(stmt.statements)
            elif isinstance(stmt, (Repeat, For)):
                visit(stmt.body)
            elif isinstance(stmt, While):
                visit_expr(stmt.condition)
                visit(stmt.body)
            elif isinstance(stmt, If):
                visit_expr(stmt.condition)
                visit(stmt.body)
                for clause in stmt.elif_clauses:
                    visit_expr(clause.condition)
                    visit(clause.body)
                if stmt.else_body is not None:
                    visit(stmt.else_body)

    visit(statements)
    return found
