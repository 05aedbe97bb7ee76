"""Member translator: constructors and methods -> FunctionDesc.

Naming, receiver injection and the nullable-return collapse live here; the
per-type work is delegated to the type resolver.
"""

import re
from typing import Optional

from dtsbind.ast_nodes import Constructor, Method, Param, SourceLoc, TsThisType, TsType
from dtsbind.errors import MalformedParameter, UnsupportedMember
from dtsbind.ir import (
    AnyType,
    Attributes,
    ClassType,
    FunctionDesc,
    FunctionType,
    NullType,
    ParamDesc,
    StringType,
    ThisType,
    TypeDesc,
    UndefinedType,
    UnionType,
    VoidType,
)
from dtsbind.type_resolver import resolve_type

RECEIVER = "this"
CONSTRUCTOR_NAME = "new"

RUST_KEYWORDS = {
    "as", "async", "await", "box", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "final", "fn", "for", "if", "impl", "in",
    "let", "loop", "macro", "match", "mod", "move", "mut", "override", "priv",
    "pub", "ref", "return", "self", "static", "struct", "super", "trait", "true",
    "try", "type", "typeof", "unsafe", "unsized", "use", "virtual", "where",
    "while", "yield",
}

# Passed as &T in parameter position; everything else goes by value.
_BY_REFERENCE = (ClassType, ThisType, StringType, AnyType, FunctionType)


def to_snake_case(name: str) -> str:
    """getWorldPosition -> get_world_position, toJSON -> to_json, type -> type_."""
    s = re.sub(r"[^0-9A-Za-z_]", "_", name)
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", s)
    s = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s)
    s = s.lower()
    if s[:1].isdigit():
        s = "_" + s
    if s in RUST_KEYWORDS:
        s += "_"
    return s


def collapse_optional(desc: TypeDesc) -> tuple[TypeDesc, bool]:
    """``X | null`` and ``X | undefined`` become (X, optional).

    Only the ``[X, Null]`` / ``[X, Undefined]`` member order is recognised;
    ``null | X`` is returned unchanged.
    """
    if isinstance(desc, UnionType) and len(desc.members) == 2 \
            and isinstance(desc.members[1], (NullType, UndefinedType)):
        return desc.members[0], True
    return desc, False


def passed_by_reference(desc: TypeDesc) -> bool:
    return isinstance(desc, _BY_REFERENCE)


def translate_function(
    name: str,
    attributes: Attributes,
    parameters: list[Param],
    return_type: Optional[TsType],
    is_method: bool,
    generics: frozenset[str] = frozenset(),
) -> FunctionDesc:
    """Translate one signature. Raises MalformedParameter / UnresolvedType."""
    attrs: Attributes = list(attributes)
    rust_name = to_snake_case(name)
    if rust_name != name:
        attrs.append(("js_name", name))

    params: list[tuple[str, ParamDesc]] = []
    if is_method:
        params.append((RECEIVER, ParamDesc(ThisType(), by_reference=True, optional=False)))
    for index, param in enumerate(parameters):
        if param.name is None:
            raise _malformed(f"parameter {index + 1} of {name!r} is not a simple identifier", param.loc)
        if param.name == "this":
            continue  # TypeScript `this:` pseudo-parameter
        if param.type_ann is None:
            raise _malformed(f"parameter {param.name!r} of {name!r} has no type annotation", param.loc)
        if param.rest:
            if index != len(parameters) - 1:
                raise _malformed(f"rest parameter {param.name!r} of {name!r} is not last", param.loc)
            attrs.append(("variadic", None))
        desc, optional = collapse_optional(resolve_type(param.type_ann, generics))
        params.append((
            to_snake_case(param.name),
            ParamDesc(desc, by_reference=passed_by_reference(desc), optional=optional or param.optional),
        ))

    return FunctionDesc(
        name=rust_name,
        parameters=params,
        returns=_translate_return(return_type, generics),
        attributes=attrs,
    )


def _translate_return(return_type: Optional[TsType], generics: frozenset[str]) -> Optional[ParamDesc]:
    if return_type is None:
        # No annotation: TypeScript's implicit any
        return ParamDesc(AnyType())
    desc = resolve_type(return_type, generics)
    if isinstance(desc, VoidType):
        return None
    desc, optional = collapse_optional(desc)
    return ParamDesc(desc, by_reference=False, optional=optional)


def translate_constructor(ctor: Constructor, generics: frozenset[str] = frozenset()) -> FunctionDesc:
    return translate_function(
        CONSTRUCTOR_NAME,
        [("constructor", None)],
        ctor.params,
        TsThisType(loc=ctor.loc),
        is_method=False,
        generics=generics,
    )


def translate_method(method: Method, generics: frozenset[str] = frozenset()) -> FunctionDesc:
    if method.name is None:
        loc = method.loc
        raise UnsupportedMember(
            "computed member names are not supported",
            line=loc.line if loc else None,
            column=loc.column if loc else None,
            path=loc.path if loc else None,
            member="<computed>",
        )
    if method.type_params:
        generics = generics | frozenset(method.type_params)
    return translate_function(
        method.name,
        [("method", None)],
        method.params,
        method.return_type,
        is_method=True,
        generics=generics,
    )


def _malformed(message: str, loc: Optional[SourceLoc]) -> MalformedParameter:
    if loc is None:
        return MalformedParameter(message)
    return MalformedParameter(message, line=loc.line, column=loc.column, path=loc.path)
