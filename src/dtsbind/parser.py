"""Recursive-descent parser: tokens -> declaration AST. One production per grammar rule."""

from pathlib import Path
from typing import Any, Optional

from dtsbind.ast_nodes import (
    ClassDecl,
    Constructor,
    ImportDecl,
    IndexSignature,
    Member,
    Method,
    MethodKind,
    Module,
    Param,
    Property,
    SourceLoc,
    TsArrayType,
    TsFunctionType,
    TsIntersectionType,
    TsKeywordType,
    TsOpaqueType,
    TsThisType,
    TsType,
    TsTypeRef,
    TsUnionType,
)
from dtsbind.errors import ParseError
from dtsbind.lexer import Token, TokenKind, tokenize

KEYWORD_TYPES = {
    "any", "bigint", "boolean", "never", "null", "number", "object",
    "string", "symbol", "undefined", "unknown", "void",
}

MEMBER_MODIFIERS = {
    "public", "private", "protected", "static", "readonly",
    "abstract", "declare", "override", "accessor",
}

PARAM_MODIFIERS = {"public", "private", "protected", "readonly", "override"}

# Statements whose body ends with "}" and no semicolon.
BLOCK_STATEMENTS = {"interface", "namespace", "module", "enum", "global", "function"}

# Words that begin a new top-level declaration; a statement without ";" ends before one on a new line.
STATEMENT_STARTS = {"export", "declare", "class", "import", "abstract"}

_NAME_START = (TokenKind.IDENT, TokenKind.STRING, TokenKind.NUMBER, TokenKind.LBRACKET)
_OPENERS = {TokenKind.LPAREN: TokenKind.RPAREN, TokenKind.LBRACKET: TokenKind.RBRACKET, TokenKind.LBRACE: TokenKind.RBRACE}


class Parser:
    def __init__(self, tokens: list[Token], path: Optional[str] = None):
        self.tokens = tokens
        self.path = path
        self.pos = 0
        self.comments: dict[int, str] = {}

    def peek(self, ahead: int = 0) -> Token:
        idx = self.pos + ahead
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def advance(self) -> Token:
        t = self.peek()
        if self.pos < len(self.tokens):
            self.pos += 1
        return t

    def at(self, kind: str, value: Any = None, ahead: int = 0) -> bool:
        t = self.peek(ahead)
        if t.kind != kind:
            return False
        if value is not None and t.value != value:
            return False
        return True

    def expect(self, kind: str, value: Any = None) -> Token:
        t = self.advance()
        if t.kind != kind:
            raise ParseError(
                f"Expected {kind}" + (f" {value!r}" if value else "") + f", got {t.kind} {t.value!r}",
                t.line, t.column, self.path,
            )
        if value is not None and t.value != value:
            raise ParseError(f"Expected {value!r}, got {t.value!r}", t.line, t.column, self.path)
        return t

    def loc(self, token: Token) -> SourceLoc:
        return SourceLoc(line=token.line, column=token.column, path=self.path, offset=token.offset)

    def error(self, message: str, token: Optional[Token] = None) -> ParseError:
        t = token or self.peek()
        return ParseError(message, t.line, t.column, self.path)

    def _note_comment(self, token: Token) -> None:
        if token.leading_comment:
            self.comments[token.offset] = token.leading_comment

    # --- Module level ---

    def parse_module(self) -> Module:
        imports: list[ImportDecl] = []
        classes: list[ClassDecl] = []
        while not self.at(TokenKind.EOF):
            if self.at(TokenKind.SEMI):
                self.advance()
                continue
            if self.at(TokenKind.IDENT, "import") and not self.at(TokenKind.LPAREN, ahead=1):
                decl = self.parse_import()
                if decl is not None:
                    imports.append(decl)
                continue
            cls = self.parse_declaration()
            if cls is not None:
                classes.append(cls)
        return Module(imports=imports, classes=classes, comments=self.comments, path=self.path)

    def parse_import(self) -> Optional[ImportDecl]:
        start = self.advance()  # import
        type_only = False
        if self.at(TokenKind.IDENT, "type") and not self.at(TokenKind.IDENT, "from", ahead=1) \
                and not self.at(TokenKind.COMMA, ahead=1):
            self.advance()
            type_only = True

        # import "side-effect";
        if self.at(TokenKind.STRING):
            source = self.advance().value
            self._skip_semicolon()
            return ImportDecl(source=source, names=[], type_only=type_only, loc=self.loc(start))

        # import X = require("y");
        if self.at(TokenKind.IDENT) and self.at(TokenKind.EQ, ahead=1):
            self._skip_statement()
            return None

        names: list[str] = []
        if self.at(TokenKind.IDENT):
            names.append(self.advance().value)
            if self.at(TokenKind.COMMA):
                self.advance()
        if self.at(TokenKind.STAR):
            self.advance()
            self.expect(TokenKind.IDENT, "as")
            names.append(self.expect(TokenKind.IDENT).value)
        if self.at(TokenKind.LBRACE):
            self.advance()
            while not self.at(TokenKind.RBRACE):
                if self.at(TokenKind.IDENT, "type") and self.at(TokenKind.IDENT, ahead=1) \
                        and not self.at(TokenKind.IDENT, "as", ahead=1):
                    self.advance()
                imported = self.advance()
                if imported.kind not in (TokenKind.IDENT, TokenKind.STRING):
                    raise self.error(f"Expected import name, got {imported.kind} {imported.value!r}", imported)
                local = imported.value
                if self.at(TokenKind.IDENT, "as"):
                    self.advance()
                    local = self.expect(TokenKind.IDENT).value
                names.append(local)
                if not self.at(TokenKind.RBRACE):
                    self.expect(TokenKind.COMMA)
            self.expect(TokenKind.RBRACE)
        self.expect(TokenKind.IDENT, "from")
        source = self.expect(TokenKind.STRING).value
        self._skip_semicolon()
        return ImportDecl(source=source, names=names, type_only=type_only, loc=self.loc(start))

    def parse_declaration(self) -> Optional[ClassDecl]:
        """Parse one top-level statement. Returns a ClassDecl for classes, None otherwise."""
        start = self.peek()
        exported = False
        is_abstract = False
        while True:
            if self.at(TokenKind.IDENT, "export"):
                nxt = self.peek(1)
                if nxt.kind in (TokenKind.LBRACE, TokenKind.STAR, TokenKind.EQ) or nxt.value in ("as", "import"):
                    self._skip_statement()
                    return None
                exported = True
            elif self.at(TokenKind.IDENT, "abstract"):
                is_abstract = True
            elif not (self.at(TokenKind.IDENT, "declare") or self.at(TokenKind.IDENT, "default")):
                break
            self.advance()

        if self.at(TokenKind.IDENT, "class"):
            return self.parse_class(start, exported, is_abstract)
        self._skip_statement()
        return None

    def parse_class(self, start: Token, exported: bool, is_abstract: bool) -> ClassDecl:
        self._note_comment(start)
        self.expect(TokenKind.IDENT, "class")
        name = self.expect(TokenKind.IDENT).value
        type_params = self.parse_type_params()
        super_class = None
        if self.at(TokenKind.IDENT, "extends"):
            self.advance()
            super_class = self._parse_dotted_name()
            if self.at(TokenKind.LT):
                self.parse_type_args()
        if self.at(TokenKind.IDENT, "implements"):
            self.advance()
            self.parse_type()
            while self.at(TokenKind.COMMA):
                self.advance()
                self.parse_type()
        self.expect(TokenKind.LBRACE)
        members: list[Member] = []
        while not self.at(TokenKind.RBRACE):
            if self.at(TokenKind.EOF):
                raise self.error(f"Unterminated class body for {name!r}")
            member = self.parse_member()
            if member is not None:
                members.append(member)
        self.expect(TokenKind.RBRACE)
        return ClassDecl(
            name=name,
            members=members,
            super_class=super_class,
            type_params=type_params,
            exported=exported,
            is_abstract=is_abstract,
            loc=self.loc(start),
        )

    # --- Class members ---

    def parse_member(self) -> Optional[Member]:
        if self.at(TokenKind.SEMI) or self.at(TokenKind.COMMA):
            self.advance()
            return None
        start = self.peek()
        self._note_comment(start)

        is_static = False
        readonly = False
        accessibility = None
        while self.peek().value in MEMBER_MODIFIERS and self.at(TokenKind.IDENT) and self._name_follows():
            mod = self.advance().value
            if mod == "static":
                is_static = True
            elif mod == "readonly":
                readonly = True
            elif mod in ("public", "private", "protected"):
                accessibility = mod

        kind = MethodKind.METHOD
        if self.peek().value in ("get", "set") and self.at(TokenKind.IDENT) and self._name_follows():
            kind = MethodKind.GETTER if self.advance().value == "get" else MethodKind.SETTER

        if self.at(TokenKind.IDENT, "constructor") and self.at(TokenKind.LPAREN, ahead=1):
            self.advance()
            params = self.parse_params()
            self._skip_semicolon()
            return Constructor(params=params, accessibility=accessibility, loc=self.loc(start))

        # [key: string]: T;
        if self.at(TokenKind.LBRACKET) and self.at(TokenKind.IDENT, ahead=1) and self.at(TokenKind.COLON, ahead=2):
            self._skip_group()
            if self.at(TokenKind.COLON):
                self.advance()
                self.parse_type()
            self._skip_semicolon()
            return IndexSignature(loc=self.loc(start))

        name = self._parse_member_name()
        optional = False
        if self.at(TokenKind.QUESTION):
            self.advance()
            optional = True
        elif self.at(TokenKind.BANG):
            self.advance()

        if self.at(TokenKind.LPAREN) or self.at(TokenKind.LT):
            type_params = self.parse_type_params()
            params = self.parse_params()
            return_type = None
            if self.at(TokenKind.COLON):
                self.advance()
                return_type = self.parse_type()
            self._skip_semicolon()
            return Method(
                name=name,
                params=params,
                return_type=return_type,
                kind=kind,
                is_static=is_static,
                optional=optional,
                type_params=type_params,
                accessibility=accessibility,
                loc=self.loc(start),
            )

        type_ann = None
        if self.at(TokenKind.COLON):
            self.advance()
            type_ann = self.parse_type()
        if self.at(TokenKind.EQ):
            self._skip_initializer()
        self._skip_semicolon()
        return Property(
            name=name,
            type_ann=type_ann,
            is_static=is_static,
            optional=optional,
            readonly=readonly,
            loc=self.loc(start),
        )

    def _name_follows(self) -> bool:
        """True when the token after the current one can start a member name."""
        return self.peek(1).kind in _NAME_START

    def _parse_member_name(self) -> Optional[str]:
        t = self.peek()
        if t.kind in (TokenKind.IDENT, TokenKind.STRING, TokenKind.NUMBER):
            self.advance()
            return str(t.value)
        if t.kind == TokenKind.LBRACKET:
            self._skip_group()
            return None
        raise self.error(f"Expected member name, got {t.kind} {t.value!r}")

    def parse_params(self) -> list[Param]:
        self.expect(TokenKind.LPAREN)
        params: list[Param] = []
        while not self.at(TokenKind.RPAREN):
            params.append(self.parse_param())
            if not self.at(TokenKind.RPAREN):
                self.expect(TokenKind.COMMA)
        self.expect(TokenKind.RPAREN)
        return params

    def parse_param(self) -> Param:
        start = self.peek()
        while self.at(TokenKind.IDENT) and start.value in PARAM_MODIFIERS and \
                self.peek(1).kind in (TokenKind.IDENT, TokenKind.LBRACE, TokenKind.LBRACKET):
            self.advance()
            start = self.peek()
        rest = False
        if self.at(TokenKind.ELLIPSIS):
            self.advance()
            rest = True
        name = None
        if self.at(TokenKind.IDENT):
            name = self.advance().value
        elif self.at(TokenKind.LBRACE) or self.at(TokenKind.LBRACKET):
            self._skip_group()
        else:
            t = self.peek()
            raise self.error(f"Expected parameter, got {t.kind} {t.value!r}")
        optional = False
        if self.at(TokenKind.QUESTION):
            self.advance()
            optional = True
        type_ann = None
        if self.at(TokenKind.COLON):
            self.advance()
            type_ann = self.parse_type()
        if self.at(TokenKind.EQ):
            self._skip_initializer()
            optional = True
        return Param(name=name, type_ann=type_ann, optional=optional, rest=rest, loc=self.loc(start))

    def parse_type_params(self) -> list[str]:
        if not self.at(TokenKind.LT):
            return []
        self.advance()
        names: list[str] = []
        while not self.at(TokenKind.GT):
            while self.peek().value in ("const", "in", "out") and self.at(TokenKind.IDENT, ahead=1):
                self.advance()
            names.append(self.expect(TokenKind.IDENT).value)
            if self.at(TokenKind.IDENT, "extends"):
                self.advance()
                self.parse_type()
            if self.at(TokenKind.EQ):
                self.advance()
                self.parse_type()
            if not self.at(TokenKind.GT):
                self.expect(TokenKind.COMMA)
        self.expect(TokenKind.GT)
        return names

    # --- Types ---

    def parse_type(self) -> TsType:
        start = self.peek()
        t = self.parse_union()
        if self.at(TokenKind.IDENT, "extends"):
            # Conditional type: T extends U ? X : Y
            self.advance()
            self.parse_union()
            self.expect(TokenKind.QUESTION)
            self.parse_type()
            self.expect(TokenKind.COLON)
            self.parse_type()
            return TsOpaqueType(kind="conditional", loc=self.loc(start))
        return t

    def parse_union(self) -> TsType:
        start = self.peek()
        if self.at(TokenKind.PIPE):
            self.advance()
        types = [self.parse_intersection()]
        while self.at(TokenKind.PIPE):
            self.advance()
            types.append(self.parse_intersection())
        if len(types) == 1:
            return types[0]
        return TsUnionType(types=types, loc=self.loc(start))

    def parse_intersection(self) -> TsType:
        start = self.peek()
        if self.at(TokenKind.AMP):
            self.advance()
        types = [self.parse_postfix()]
        while self.at(TokenKind.AMP):
            self.advance()
            types.append(self.parse_postfix())
        if len(types) == 1:
            return types[0]
        return TsIntersectionType(types=types, loc=self.loc(start))

    def parse_postfix(self) -> TsType:
        start = self.peek()
        t = self.parse_primary()
        while self.at(TokenKind.LBRACKET):
            if self.at(TokenKind.RBRACKET, ahead=1):
                self.advance()
                self.advance()
                t = TsArrayType(element=t, loc=self.loc(start))
            else:
                self._skip_group()
                t = TsOpaqueType(kind="indexed-access", loc=self.loc(start))
        return t

    def parse_primary(self) -> TsType:
        t = self.peek()
        loc = self.loc(t)

        if self.at(TokenKind.LPAREN):
            if self._is_function_type_start():
                return self.parse_function_type()
            self.advance()
            inner = self.parse_type()
            self.expect(TokenKind.RPAREN)
            return inner
        if self.at(TokenKind.LT):
            return self.parse_function_type()
        if self.at(TokenKind.LBRACE):
            self._skip_group()
            return TsOpaqueType(kind="type-literal", loc=loc)
        if self.at(TokenKind.LBRACKET):
            self._skip_group()
            return TsOpaqueType(kind="tuple", loc=loc)
        if self.at(TokenKind.STRING) or self.at(TokenKind.NUMBER):
            self.advance()
            return TsOpaqueType(kind="literal", text=str(t.value), loc=loc)
        if self.at(TokenKind.MINUS) and self.at(TokenKind.NUMBER, ahead=1):
            self.advance()
            num = self.advance()
            return TsOpaqueType(kind="literal", text=f"-{num.value}", loc=loc)

        if not self.at(TokenKind.IDENT):
            raise self.error(f"Expected type, got {t.kind} {t.value!r}")

        word = t.value
        nxt = self.peek(1)
        if word == "abstract" and nxt.value == "new":
            self.advance()
            word, nxt = "new", self.peek(1)
        if word == "new" and nxt.kind in (TokenKind.LPAREN, TokenKind.LT):
            self.advance()
            self.parse_function_type()
            return TsOpaqueType(kind="constructor", loc=loc)
        if word == "typeof" and nxt.kind == TokenKind.IDENT:
            self.advance()
            name = self._parse_dotted_name()
            if self.at(TokenKind.LT):
                self.parse_type_args()
            return TsOpaqueType(kind="typeof", text=name, loc=loc)
        if word in ("keyof", "unique", "readonly") and nxt.kind not in _TYPE_FOLLOW:
            self.advance()
            self.parse_postfix()
            return TsOpaqueType(kind="type-operator", text=word, loc=loc)
        if word == "infer" and nxt.kind == TokenKind.IDENT:
            self.advance()
            self.advance()
            return TsOpaqueType(kind="infer", loc=loc)
        if word == "asserts" and nxt.kind == TokenKind.IDENT:
            self.advance()
            self._parse_predicate_tail()
            return TsOpaqueType(kind="type-predicate", loc=loc)
        if nxt.kind == TokenKind.IDENT and nxt.value == "is":
            self.advance()
            self._parse_predicate_tail()
            return TsOpaqueType(kind="type-predicate", loc=loc)
        if word == "this":
            self.advance()
            return TsThisType(loc=loc)
        if word in KEYWORD_TYPES:
            self.advance()
            return TsKeywordType(name=word, loc=loc)
        if word in ("true", "false"):
            self.advance()
            return TsOpaqueType(kind="literal", text=word, loc=loc)

        name = self._parse_dotted_name()
        type_args: list[TsType] = []
        if self.at(TokenKind.LT):
            type_args = self.parse_type_args()
        return TsTypeRef(name=name, type_args=type_args, loc=loc)

    def parse_function_type(self) -> TsFunctionType:
        start = self.peek()
        type_params = self.parse_type_params()
        params = self.parse_params()
        self.expect(TokenKind.ARROW)
        return_type = self.parse_type()
        return TsFunctionType(params=params, return_type=return_type, type_params=type_params, loc=self.loc(start))

    def parse_type_args(self) -> list[TsType]:
        self.expect(TokenKind.LT)
        args = [self.parse_type()]
        while self.at(TokenKind.COMMA):
            self.advance()
            args.append(self.parse_type())
        self.expect(TokenKind.GT)
        return args

    def _parse_predicate_tail(self) -> None:
        # "x is T" / "asserts x" / "asserts x is T"; the subject token is current
        self.advance()
        if self.at(TokenKind.IDENT, "is"):
            self.advance()
            self.parse_type()

    def _parse_dotted_name(self) -> str:
        parts = [self.expect(TokenKind.IDENT).value]
        while self.at(TokenKind.DOT) and self.at(TokenKind.IDENT, ahead=1):
            self.advance()
            parts.append(self.advance().value)
        return ".".join(parts)

    def _is_function_type_start(self) -> bool:
        """At "(": scan to the matching ")" and check for "=>" after it."""
        depth = 0
        idx = self.pos
        while idx < len(self.tokens):
            kind = self.tokens[idx].kind
            if kind in _OPENERS:
                depth += 1
            elif kind in _OPENERS.values():
                depth -= 1
                if depth == 0:
                    return idx + 1 < len(self.tokens) and self.tokens[idx + 1].kind == TokenKind.ARROW
            elif kind == TokenKind.EOF:
                return False
            idx += 1
        return False

    # --- Skipping ---

    def _skip_group(self) -> None:
        """Consume a balanced (...), [...] or {...} group starting at the current token."""
        open_t = self.advance()
        if open_t.kind not in _OPENERS:
            raise self.error(f"Expected group, got {open_t.kind} {open_t.value!r}", open_t)
        stack = [_OPENERS[open_t.kind]]
        while stack:
            t = self.advance()
            if t.kind == TokenKind.EOF:
                raise self.error("Unbalanced brackets", open_t)
            if t.kind in _OPENERS:
                stack.append(_OPENERS[t.kind])
            elif t.kind in _OPENERS.values():
                if t.kind != stack[-1]:
                    raise self.error(f"Mismatched {t.value!r}", t)
                stack.pop()

    def _skip_statement(self) -> None:
        """Skip one top-level statement we do not bind (interface, type, enum, function, ...).

        The statement ends at a top-level ";", after the body of a block
        statement, or before a token on a new line that starts a declaration.
        """
        header: set[str] = set()
        in_header = True
        first = True
        while not self.at(TokenKind.EOF):
            t = self.peek()
            if not first and t.value in STATEMENT_STARTS and t.kind == TokenKind.IDENT \
                    and t.line > self.tokens[self.pos - 1].line:
                return
            first = False
            if self.at(TokenKind.SEMI):
                self.advance()
                return
            if t.kind in _OPENERS:
                is_brace = self.at(TokenKind.LBRACE)
                self._skip_group()
                if is_brace:
                    if in_header and header & BLOCK_STATEMENTS:
                        return
                    in_header = False
                continue
            self.advance()
            if t.kind in (TokenKind.EQ, TokenKind.COLON):
                in_header = False
            elif in_header and t.kind == TokenKind.IDENT:
                header.add(t.value)

    def _skip_initializer(self) -> None:
        self.expect(TokenKind.EQ)
        while not (self.at(TokenKind.SEMI) or self.at(TokenKind.COMMA) or self.at(TokenKind.RPAREN)
                   or self.at(TokenKind.RBRACE) or self.at(TokenKind.EOF)):
            if self.peek().kind in _OPENERS:
                self._skip_group()
            else:
                self.advance()

    def _skip_semicolon(self) -> None:
        if self.at(TokenKind.SEMI) or self.at(TokenKind.COMMA):
            self.advance()


# Tokens that cannot start a type; a type operator word followed by one is a plain name.
_TYPE_FOLLOW = (
    TokenKind.COMMA, TokenKind.SEMI, TokenKind.RPAREN, TokenKind.GT, TokenKind.RBRACKET,
    TokenKind.RBRACE, TokenKind.PIPE, TokenKind.AMP, TokenKind.EQ, TokenKind.EOF,
    TokenKind.LBRACKET, TokenKind.DOT, TokenKind.LT, TokenKind.QUESTION, TokenKind.COLON,
)


def parse(source: str, path: Optional[str] = None) -> Module:
    """Parse declaration source into a Module AST."""
    tokens = tokenize(source, path)
    parser = Parser(tokens, path)
    return parser.parse_module()


def parse_file(path: Path) -> Module:
    return parse(Path(path).read_text(encoding="utf-8"), path=str(path))


def parse_type(source: str, path: Optional[str] = None) -> TsType:
    """Parse a single type expression, e.g. ``"Vector3 | null"``."""
    parser = Parser(tokenize(source, path), path)
    t = parser.parse_type()
    parser.expect(TokenKind.EOF)
    return t
