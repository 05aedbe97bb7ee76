"""Tokenizer for TypeScript declaration files: .d.ts source -> tokens with leading comments."""

from dataclasses import dataclass
from typing import Any, Optional

from dtsbind.errors import ParseError


class TokenKind:
    # Literals
    IDENT = "IDENT"
    STRING = "STRING"
    NUMBER = "NUMBER"
    # Punctuation / structure
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    LT = "LT"
    GT = "GT"
    COMMA = "COMMA"
    SEMI = "SEMI"
    COLON = "COLON"
    QUESTION = "QUESTION"
    DOT = "DOT"
    ELLIPSIS = "ELLIPSIS"
    PIPE = "PIPE"
    AMP = "AMP"
    EQ = "EQ"
    ARROW = "ARROW"
    BANG = "BANG"
    MINUS = "MINUS"
    PLUS = "PLUS"
    STAR = "STAR"
    AT = "AT"
    EOF = "EOF"


_PUNCT = {
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "<": TokenKind.LT,
    ">": TokenKind.GT,
    ",": TokenKind.COMMA,
    ";": TokenKind.SEMI,
    ":": TokenKind.COLON,
    "?": TokenKind.QUESTION,
    "|": TokenKind.PIPE,
    "&": TokenKind.AMP,
    "!": TokenKind.BANG,
    "-": TokenKind.MINUS,
    "+": TokenKind.PLUS,
    "*": TokenKind.STAR,
    "@": TokenKind.AT,
}


@dataclass
class Token:
    kind: str
    value: Any
    line: int
    column: int
    offset: int = 0
    leading_comment: Optional[str] = None  # comment text between the previous token and this one

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, L{self.line}:{self.column})"


def _is_ident_start(c: str) -> bool:
    return c.isalpha() or c in "_$"


def _is_ident_part(c: str) -> bool:
    return c.isalnum() or c in "_$"


def tokenize(source: str, path: Optional[str] = None) -> list[Token]:
    """Produce a list of tokens from declaration source.

    Comments are not tokens. Comments between two tokens are attached
    (joined by newlines) to the following token as ``leading_comment`` so
    callers can look up JSDoc tags such as ``@deprecated``. A comment that
    starts on the line of the previous token belongs to that token and is
    not attached.
    """
    tokens: list[Token] = []
    pending_comments: list[str] = []
    i = 0
    line_no = 1
    col = 0
    last_line = 0  # line on which the previous token ends

    def advance(n: int = 1) -> None:
        nonlocal i, col, line_no
        for _ in range(n):
            if i >= len(source):
                return
            if source[i] == "\n":
                line_no += 1
                col = 0
            else:
                col += 1
            i += 1

    def peek(ahead: int = 0) -> str:
        j = i + ahead
        return source[j] if j < len(source) else ""

    def emit(kind: str, value: Any, line: int, column: int, offset: int) -> None:
        nonlocal last_line
        comment = "\n".join(pending_comments) if pending_comments else None
        pending_comments.clear()
        tokens.append(Token(kind, value, line, column, offset, comment))
        last_line = line_no

    def note_comment(text: str, line: int) -> None:
        # A comment on the same line as the previous token trails that token.
        if tokens and line == last_line:
            return
        pending_comments.append(text)

    while i < len(source):
        c = source[i]

        if c in " \t\r\n\ufeff":
            advance()
            continue

        start_line, start_col, start = line_no, col, i

        # Line comment
        if c == "/" and peek(1) == "/":
            while i < len(source) and source[i] != "\n":
                advance()
            note_comment(source[start:i], start_line)
            continue

        # Block comment (JSDoc included)
        if c == "/" and peek(1) == "*":
            end = source.find("*/", i + 2)
            if end < 0:
                raise ParseError("Unterminated block comment", start_line, start_col, path)
            advance(end + 2 - i)
            note_comment(source[start:i], start_line)
            continue

        # String literal '...' / "..." / `...`
        if c in "'\"`":
            quote = c
            advance()
            chars: list[str] = []
            while i < len(source) and source[i] != quote:
                if source[i] == "\\" and i + 1 < len(source):
                    chars.append(source[i + 1])
                    advance(2)
                    continue
                if source[i] == "\n" and quote != "`":
                    raise ParseError("Unterminated string literal", start_line, start_col, path)
                chars.append(source[i])
                advance()
            if i >= len(source):
                raise ParseError("Unterminated string literal", start_line, start_col, path)
            advance()  # closing quote
            emit(TokenKind.STRING, "".join(chars), start_line, start_col, start)
            continue

        # Number (decimal, hex, exponent, bigint suffix)
        if c.isdigit() or (c == "." and peek(1).isdigit()):
            while i < len(source) and (source[i].isalnum() or source[i] in "._"):
                if source[i] in "eE" and peek(1) in "+-":
                    advance()
                advance()
            emit(TokenKind.NUMBER, source[start:i], start_line, start_col, start)
            continue

        # Identifier / keyword (keywords are contextual in declarations)
        if _is_ident_start(c) or (c == "#" and _is_ident_start(peek(1))):
            advance()
            while i < len(source) and _is_ident_part(source[i]):
                advance()
            emit(TokenKind.IDENT, source[start:i], start_line, start_col, start)
            continue

        if c == "." and peek(1) == "." and peek(2) == ".":
            advance(3)
            emit(TokenKind.ELLIPSIS, "...", start_line, start_col, start)
            continue
        if c == ".":
            advance()
            emit(TokenKind.DOT, ".", start_line, start_col, start)
            continue
        if c == "=" and peek(1) == ">":
            advance(2)
            emit(TokenKind.ARROW, "=>", start_line, start_col, start)
            continue
        if c == "=":
            advance()
            emit(TokenKind.EQ, "=", start_line, start_col, start)
            continue
        if c in _PUNCT:
            advance()
            emit(_PUNCT[c], c, start_line, start_col, start)
            continue

        raise ParseError(f"Unexpected character: {c!r}", start_line, start_col, path)

    emit(TokenKind.EOF, None, line_no, col, i)
    return tokens
