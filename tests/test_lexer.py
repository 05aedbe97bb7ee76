"""Tests for the declaration lexer."""

import pytest
from dtsbind.errors import ParseError
from dtsbind.lexer import tokenize, TokenKind


def test_tokenize_simple():
    tokens = tokenize("export class Foo { bar(): void; }")
    kinds = [t.kind for t in tokens]
    assert kinds[:3] == [TokenKind.IDENT, TokenKind.IDENT, TokenKind.IDENT]
    assert TokenKind.LBRACE in kinds and TokenKind.RBRACE in kinds
    assert TokenKind.LPAREN in kinds and TokenKind.COLON in kinds
    assert kinds[-1] == TokenKind.EOF


def test_tokenize_strings_and_arrow():
    tokens = tokenize("import { A } from './A'; (x: number) => void")
    assert any(t.kind == TokenKind.STRING and t.value == "./A" for t in tokens)
    assert any(t.kind == TokenKind.ARROW for t in tokens)


def test_tokenize_ellipsis_vs_dot():
    tokens = tokenize("...rest a.b")
    assert tokens[0].kind == TokenKind.ELLIPSIS
    assert [t.kind for t in tokens[1:5]] == [TokenKind.IDENT, TokenKind.IDENT, TokenKind.DOT, TokenKind.IDENT]


def test_comments_attach_to_next_token():
    tokens = tokenize("/** @deprecated */\nfoo(): void;\n// note\nbar(): void;")
    foo = tokens[0]
    assert foo.value == "foo"
    assert "@deprecated" in foo.leading_comment
    bar = next(t for t in tokens if t.value == "bar")
    assert bar.leading_comment == "// note"
    assert tokens[1].leading_comment is None


def test_trailing_comment_is_not_attached_to_next_line():
    tokens = tokenize("a(): void; // @deprecated use b\nb(): void; /** doc */\nc(): void;")
    b = next(t for t in tokens if t.value == "b")
    assert b.leading_comment is None
    c = next(t for t in tokens if t.value == "c")
    assert c.leading_comment is None


def test_comment_on_first_line_is_attached():
    tokens = tokenize("/** top */ export class A {}")
    assert tokens[0].leading_comment == "/** top */"


def test_positions():
    tokens = tokenize("a\n  b")
    assert (tokens[0].line, tokens[0].column) == (1, 0)
    assert (tokens[1].line, tokens[1].column) == (2, 2)
    assert tokens[1].offset == 4


def test_numbers_and_private_names():
    tokens = tokenize("#secret 1.5e-3 0xff")
    assert tokens[0].kind == TokenKind.IDENT and tokens[0].value == "#secret"
    assert tokens[1].kind == TokenKind.NUMBER and tokens[1].value == "1.5e-3"
    assert tokens[2].kind == TokenKind.NUMBER and tokens[2].value == "0xff"


def test_unterminated_string():
    with pytest.raises(ParseError) as exc:
        tokenize('import "oops')
    assert "Unterminated" in exc.value.message


def test_unterminated_comment():
    with pytest.raises(ParseError):
        tokenize("/* never closed")


def test_unexpected_character():
    with pytest.raises(ParseError) as exc:
        tokenize("class A { ~ }", path="a.d.ts")
    assert exc.value.line == 1 and exc.value.column == 10
    assert str(exc.value).startswith("a.d.ts:1:10:")
