"""Lexer for PetScript.

Turns source text into a flat list of `Token`s. Block structure is not
written with braces or `end` keywords: it is inferred from leading whitespace,
and the lexer synthesizes INDENT/DEDENT tokens from it so the parser only
ever looks at tokens.

Indentation rules:
  - a space counts 1 column, a tab counts 4
  - blank lines and comment-only lines are skipped entirely
  - a deeper line pushes a level and emits INDENT
  - a shallower line pops levels, one DEDENT each, until the top is <= the line

Anything the lexer does not recognize is skipped rather than reported.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from .errors import ScriptIndentationError

TAB_WIDTH = 4


class TokenType(Enum):
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    STRING = "STRING"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    COLON = "COLON"
    COMMA = "COMMA"
    NEWLINE = "NEWLINE"
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    EOF = "EOF"
    # keywords
    REPEAT = "REPEAT"
    FOR = "FOR"
    IN = "IN"
    RANGE = "RANGE"
    WHILE = "WHILE"
    IF = "IF"
    ELIF = "ELIF"
    ELSE = "ELSE"


KEYWORDS = {
    "repeat": TokenType.REPEAT,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "range": TokenType.RANGE,
    "while": TokenType.WHILE,
    "if": TokenType.IF,
    "elif": TokenType.ELIF,
    "else": TokenType.ELSE,
}

SINGLE_CHAR_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
}

ESCAPES = {"n": "\n", "t": "\t", "\\": "\\"}


@dataclass(frozen=True)
class Token:
    kind: TokenType
    value: Any = None
    line: int = 1
    column: int = 1

    def to_dict(self):
        return {"kind": self.kind.value, "value": self.value, "line": self.line, "column": self.column}


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_alpha(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


class Lexer:
    """Single-pass scanner over `source`.

    Args:
        source: script text
        strict: when True a dedent must land exactly on a previously opened
            indentation level, otherwise `ScriptIndentationError` is raised.
            When False the lexer silently accepts the mismatch.
    """

    def __init__(self, source: str, strict: bool = True):
        self.source = source
        self.strict = strict
        self.pos = 0
        self.line = 1
        self.column = 1
        self.indent_stack: List[int] = [0]
        self.tokens: List[Token] = []
        self.at_line_start = True

    def peek(self, offset: int = 0) -> str:
        p = self.pos + offset
        if p >= len(self.source):
            return ""
        return self.source[p]

    def advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _emit(self, kind: TokenType, value: Any = None, line: Optional[int] = None, column: Optional[int] = None):
        self.tokens.append(Token(kind, value, self.line if line is None else line, self.column if column is None else column))

    def _skip_comment(self):
        while self.peek() and self.peek() != "\n":
            self.advance()

    def _measure_indent(self) -> int:
        indent = 0
        while self.peek() in (" ", "\t"):
            indent += 1 if self.peek() == " " else TAB_WIDTH
            self.advance()
        return indent

    def _handle_line_start(self) -> bool:
        """Process indentation for a new logical line.

        Returns False when the line was blank or comment-only (already consumed)
        or when input is exhausted, True when tokens on this line follow.
        """
        indent = self._measure_indent()
        ch = self.peek()
        if ch in ("\n", "#") or (ch == "\r" and self.peek(1) == "\n"):
            self._skip_comment()
            if self.peek() == "\n":
                self.advance()
            return False
        if not ch:
            return False

        current = self.indent_stack[-1]
        if indent > current:
            self.indent_stack.append(indent)
            self._emit(TokenType.INDENT, column=1)
        elif indent < current:
            while len(self.indent_stack) > 1 and self.indent_stack[-1] > indent:
                self.indent_stack.pop()
                self._emit(TokenType.DEDENT, column=1)
            if self.strict and self.indent_stack[-1] != indent:
                raise ScriptIndentationError(
                    f"Indentation error at line {self.line}: inconsistent indentation",
                    line=self.line,
                    column=indent + 1,
                    hint="Indent nested lines by the same amount as their siblings.",
                )
        self.at_line_start = False
        return True

    def _read_string(self, quote: str) -> Token:
        line, column = self.line, self.column
        self.advance()  # opening quote
        chars: List[str] = []
        while self.peek() and self.peek() not in (quote, "\n"):
            if self.peek() == "\\":
                self.advance()
                esc = self.peek()
                if not esc or esc == "\n":
                    break
                chars.append(quote if esc == quote else ESCAPES.get(esc, esc))
                self.advance()
            else:
                chars.append(self.advance())
        if self.peek() == quote:
            self.advance()
        return Token(TokenType.STRING, "".join(chars), line, column)

    def _read_number(self) -> Token:
        line, column = self.line, self.column
        start = self.pos
        if self.peek() == "-":
            self.advance()
        while _is_digit(self.peek()):
            self.advance()
        if self.peek() == "." and _is_digit(self.peek(1)):
            self.advance()
            while _is_digit(self.peek()):
                self.advance()
        return Token(TokenType.NUMBER, float(self.source[start:self.pos]), line, column)

    def _read_identifier(self) -> Token:
        line, column = self.line, self.column
        start = self.pos
        while _is_alpha(self.peek()) or _is_digit(self.peek()):
            self.advance()
        text = self.source[start:self.pos]
        # keywords match case-insensitively but keep the original spelling
        kind = KEYWORDS.get(text.lower(), TokenType.IDENTIFIER)
        return Token(kind, text, line, column)

    def tokenize(self) -> List[Token]:
        while self.pos < len(self.source):
            if self.at_line_start:
                if not self._handle_line_start():
                    continue

            ch = self.peek()
            if ch in (" ", "\t"):
                self.advance()
                continue
            if ch == "\n":
                self._emit(TokenType.NEWLINE)
                self.advance()
                self.at_line_start = True
                continue
            if ch == "#":
                self._skip_comment()
                continue
            if ch in SINGLE_CHAR_TOKENS:
                self._emit(SINGLE_CHAR_TOKENS[ch])
                self.advance()
                continue
            if ch in ('"', "'"):
                self.tokens.append(self._read_string(ch))
                continue
            if _is_digit(ch) or (ch == "-" and _is_digit(self.peek(1))):
                self.tokens.append(self._read_number())
                continue
            if _is_alpha(ch):
                self.tokens.append(self._read_identifier())
                continue
            # unrecognized byte
            self.advance()

        while len(self.indent_stack) > 1:
            self.indent_stack.pop()
            self._emit(TokenType.DEDENT)
        self._emit(TokenType.EOF)
        return self.tokens


def tokenize(source: str, strict: bool = True) -> List[Token]:
    """Lex `source` into tokens ending with EOF."""
    return Lexer(source, strict=strict).tokenize()
