"""Recursive-descent parser for PetScript.

Consumes the token list produced by the lexer and builds a `Program`.
Blocks are delimited by INDENT/DEDENT tokens, so every construct that opens
a block (`repeat`, `for`, `while`, `if`, `elif`, `else`) requires a colon,
a line break and an INDENT before its body.

Grammar (informal):

    program   := statement*
    statement := repeat | for | while | if | call (',' call)*
    call      := NAME '(' [arg (',' arg)*] ')'
    arg       := NUMBER | STRING | NAME | call
    repeat    := 'repeat' '(' NUMBER ')' ':' block
    for       := 'for' NAME 'in' 'range' '(' NUMBER ')' ':' block
    while     := 'while' condition ':' block
    if        := 'if' condition ':' block ('elif' condition ':' block)* ['else' ':' block]
    condition := NAME ['(' args ')']

Unknown tokens at statement level are skipped, so one stray character does
not abort the whole parse.
"""

import math
from typing import List, Optional, Tuple

from .errors import ScriptSyntaxError
from .lexer import Token, TokenType
from .nodes import (
    Call,
    ElifClause,
    Expr,
    For,
    Identifier,
    If,
    NumberLiteral,
    Program,
    Repeat,
    Sequence,
    Statement,
    StringLiteral,
    While,
)

# statements allowed after a comma on the same logical line
_CHAINABLE = (TokenType.IDENTIFIER, TokenType.REPEAT, TokenType.IF)

# nested calls plus nested blocks; deeper input is rejected before Python's
# own recursion limit is reached
MAX_NESTING = 100


class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    # --- Cursor helpers ---------------------------------------------------
    def peek(self, offset: int = 0) -> Token:
        p = self.pos + offset
        if p < len(self.tokens):
            return self.tokens[p]
        last = self.tokens[-1] if self.tokens else None
        return Token(TokenType.EOF, None, last.line if last else 1, last.column if last else 1)

    def advance(self) -> Token:
        tok = self.peek()
        self.pos += 1
        return tok

    def check(self, kind: TokenType) -> bool:
        return self.peek().kind == kind

    def expect(self, kind: TokenType, message: str, hint: Optional[str] = None) -> Token:
        tok = self.peek()
        if tok.kind != kind:
            raise ScriptSyntaxError(message, kind=tok.kind.value, line=tok.line, column=tok.column, hint=hint)
        return self.advance()

    def skip_newlines(self):
        while self.check(TokenType.NEWLINE):
            self.advance()

    def _enter(self, tok: Token):
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ScriptSyntaxError(
                "Too deeply nested",
                kind=tok.kind.value,
                line=tok.line,
                column=tok.column,
                hint=f"Keep calls and blocks at most {MAX_NESTING} levels deep.",
            )

    def _count(self, tok: Token) -> int:
        if not math.isfinite(tok.value):
            raise ScriptSyntaxError(
                "Count is too large",
                kind=tok.kind.value,
                line=tok.line,
                column=tok.column,
                hint="Use a smaller number.",
            )
        return int(tok.value)

    # --- Program / statements ---------------------------------------------
    def parse(self) -> Program:
        statements: List[Statement] = []
        self.skip_newlines()
        while not self.check(TokenType.EOF):
            if self.check(TokenType.DEDENT):
                # stray dedent left over from a skipped INDENT
                self.advance()
                continue
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self.skip_newlines()
        return Program(tuple(statements))

    def parse_statement(self) -> Optional[Statement]:
        tok = self.peek()
        kind = tok.kind
        if kind == TokenType.REPEAT:
            return self.parse_repeat()
        if kind == TokenType.FOR:
            return self.parse_for()
        if kind == TokenType.WHILE:
            return self.parse_while()
        if kind == TokenType.IF:
            return self.parse_if()
        if kind == TokenType.IDENTIFIER:
            return self.parse_call_or_sequence()
        if kind in (TokenType.ELIF, TokenType.ELSE):
            word = tok.value.lower()
            raise ScriptSyntaxError(
                f"'{word}' without matching 'if'",
                kind=kind.value,
                line=tok.line,
                column=tok.column,
                hint=f"Place '{word}' right after the indented block of an 'if'.",
            )
        if kind not in (TokenType.EOF, TokenType.NEWLINE, TokenType.DEDENT):
            self.advance()
        return None

    def parse_call_or_sequence(self) -> Statement:
        statements: List[Statement] = [self.parse_call()]
        while self.check(TokenType.COMMA):
            self.advance()
            self.skip_newlines()
            kind = self.peek().kind
            if kind not in _CHAINABLE:
                continue
            if kind == TokenType.IDENTIFIER:
                statements.append(self.parse_call())
            elif kind == TokenType.REPEAT:
                statements.append(self.parse_repeat())
            else:
                statements.append(self.parse_if())
        if len(statements) == 1:
            return statements[0]
        return Sequence(tuple(statements))

    def parse_call(self) -> Call:
        name_tok = self.expect(TokenType.IDENTIFIER, "Expected function name")
        self._enter(name_tok)
        self.expect(
            TokenType.LPAREN,
            'Expected "(" after function name',
            hint=f"Commands are called with parentheses, e.g. {name_tok.value}()",
        )
        args: List[Expr] = []
        if not self.check(TokenType.RPAREN):
            args.append(self.parse_argument())
            while self.check(TokenType.COMMA):
                self.advance()
                args.append(self.parse_argument())
        self.expect(TokenType.RPAREN, 'Expected ")"', hint="Close the argument list with ')'.")
        self.depth -= 1
        return Call(name_tok.value, tuple(args), name_tok.line)

    def parse_argument(self) -> Expr:
        tok = self.peek()
        if tok.kind == TokenType.NUMBER:
            self.advance()
            return NumberLiteral(tok.value)
        if tok.kind == TokenType.STRING:
            self.advance()
            return StringLiteral(tok.value)
        if tok.kind == TokenType.IDENTIFIER:
            # NAME '(' is a nested call, a bare NAME is a flag/boolean
            if self.peek(1).kind == TokenType.LPAREN:
                return self.parse_call()
            self.advance()
            return Identifier(tok.value)
        raise ScriptSyntaxError(f"Unexpected token {tok.kind.value}", kind=tok.kind.value, line=tok.line, column=tok.column)

    def parse_condition(self, keyword: str) -> Expr:
        tok = self.peek()
        if tok.kind != TokenType.IDENTIFIER:
            raise ScriptSyntaxError(
                "Expected condition",
                kind=tok.kind.value,
                line=tok.line,
                column=tok.column,
                hint=f"Write: {keyword} some_check():",
            )
        if self.peek(1).kind == TokenType.LPAREN:
            return self.parse_call()
        self.advance()
        return Identifier(tok.value)

    # --- Blocks -----------------------------------------------------------
    def parse_block(self, construct: str, line: int) -> Tuple[Statement, ...]:
        """Parse the indented body that follows `construct`'s colon.

        Expects NEWLINE* INDENT, then statements up to and including the
        matching DEDENT (or EOF).
        """
        self.skip_newlines()
        if not self.check(TokenType.INDENT):
            tok = self.peek()
            raise ScriptSyntaxError(
                f"Expected indented block after {construct}",
                kind=tok.kind.value,
                line=line,
                column=tok.column,
                hint=f"Indent the lines that belong to this {construct}.",
            )
        self._enter(self.advance())
        statements: List[Statement] = []
        self.skip_newlines()
        while not self.check(TokenType.DEDENT) and not self.check(TokenType.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self.skip_newlines()
        if self.check(TokenType.DEDENT):
            self.advance()
        self.depth -= 1
        if not statements:
            tok = self.peek()
            raise ScriptSyntaxError(
                f"Expected at least one statement in block after {construct}",
                kind=tok.kind.value,
                line=line,
                column=tok.column,
            )
        return tuple(statements)

    def parse_repeat(self) -> Repeat:
        tok = self.advance()
        self.expect(TokenType.LPAREN, 'Expected "(" after repeat', hint="Write: repeat(3):")
        count_tok = self.expect(TokenType.NUMBER, "Expected number in repeat", hint="The repeat count must be a number, e.g. repeat(3):")
        self.expect(TokenType.RPAREN, 'Expected ")"')
        self.expect(TokenType.COLON, 'Expected ":" after repeat(n)', hint="Write: repeat(3):")
        body = self.parse_block("repeat", tok.line)
        return Repeat(self._count(count_tok), body, tok.line)

    def parse_for(self) -> For:
        tok = self.advance()
        var_tok = self.expect(TokenType.IDENTIFIER, 'Expected variable name after "for"', hint="Write: for i in range(3):")
        self.expect(TokenType.IN, 'Expected "in" after loop variable', hint="Write: for i in range(3):")
        self.expect(TokenType.RANGE, 'Expected "range" after "in"', hint="Write: for i in range(3):")
        self.expect(TokenType.LPAREN, 'Expected "(" after "range"')
        count_tok = self.expect(TokenType.NUMBER, "Expected number in range()", hint="The range bound must be a number, e.g. range(3)")
        self.expect(TokenType.RPAREN, 'Expected ")" after range argument')
        self.expect(TokenType.COLON, 'Expected ":" after for statement')
        body = self.parse_block("for loop", tok.line)
        return For(var_tok.value, self._count(count_tok), body, tok.line)

    def parse_while(self) -> While:
        tok = self.advance()
        condition = self.parse_condition("while")
        self.expect(TokenType.COLON, 'Expected ":" after while condition')
        body = self.parse_block("while loop", tok.line)
        return While(condition, body, tok.line)

    def parse_if(self) -> If:
        tok = self.advance()
        condition = self.parse_condition("if")
        self.expect(TokenType.COLON, 'Expected ":" after if condition')
        body = self.parse_block("if", tok.line)

        elif_clauses: List[ElifClause] = []
        else_body: Optional[Tuple[Statement, ...]] = None
        self.skip_newlines()
        while self.check(TokenType.ELIF):
            elif_tok = self.advance()
            elif_condition = self.parse_condition("elif")
            self.expect(TokenType.COLON, 'Expected ":" after elif condition')
            elif_clauses.append(ElifClause(elif_condition, self.parse_block("elif", elif_tok.line)))
            self.skip_newlines()
        if self.check(TokenType.ELSE):
            else_tok = self.advance()
            self.expect(TokenType.COLON, 'Expected ":" after else')
            else_body = self.parse_block("else", else_tok.line)
        return If(condition, body, tuple(elif_clauses), else_body, tok.line)


def parse(tokens: List[Token]) -> Program:
    return Parser(tokens).parse()
