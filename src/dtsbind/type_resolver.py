"""Type resolver: declared TypeScript type node -> portable TypeDesc."""

from typing import Optional

from dtsbind.ast_nodes import (
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
from dtsbind.errors import UnresolvedType
from dtsbind.ir import (
    AnyType,
    ArrayType,
    BooleanType,
    ClassType,
    FunctionType,
    NullType,
    NumberType,
    StringType,
    ThisType,
    TypeDesc,
    UndefinedType,
    Unimplemented,
    UnionType,
    VoidType,
)

KEYWORDS: dict[str, TypeDesc] = {
    "number": NumberType(),
    "boolean": BooleanType(),
    "string": StringType(),
    "any": AnyType(),
    "void": VoidType(),
    "undefined": UndefinedType(),
    "null": NullType(),
}

# Structural generics that are the same thing as T[] for binding purposes.
ARRAY_LIKE = {"ArrayLike"}


def resolve_type(node: TsType, generics: frozenset[str] = frozenset()) -> TypeDesc:
    """Resolve one declared type node.

    Unsupported shapes come back as ``Unimplemented`` so callers can decide
    whether that is fatal. ``generics`` holds the type parameter names in
    scope; references to them are unsupported as well.
    Raises UnresolvedType for malformed function types.
    """
    if isinstance(node, TsKeywordType):
        if node.name in KEYWORDS:
            return KEYWORDS[node.name]
        return Unimplemented(f"keyword type {node.name!r}")
    if isinstance(node, TsThisType):
        return ThisType()
    if isinstance(node, TsArrayType):
        return ArrayType(resolve_type(node.element, generics))
    if isinstance(node, TsTypeRef):
        return _resolve_ref(node, generics)
    if isinstance(node, TsUnionType):
        return UnionType(tuple(resolve_type(t, generics) for t in node.types))
    if isinstance(node, TsFunctionType):
        return _resolve_function(node, generics)
    if isinstance(node, TsIntersectionType):
        return Unimplemented("intersection type")
    if isinstance(node, TsOpaqueType):
        return Unimplemented(f"{node.kind} type")
    return Unimplemented(f"{type(node).__name__}")


def _resolve_ref(node: TsTypeRef, generics: frozenset[str]) -> TypeDesc:
    if node.name in ARRAY_LIKE and len(node.type_args) == 1:
        return ArrayType(resolve_type(node.type_args[0], generics))
    if node.name in generics:
        return Unimplemented(f"type parameter {node.name!r}")
    if node.type_args:
        return Unimplemented(f"generic type {node.name}<...>")
    if node.is_qualified:
        return Unimplemented(f"qualified type name {node.name!r}")
    return ClassType(node.name)


def _resolve_function(node: TsFunctionType, generics: frozenset[str]) -> TypeDesc:
    if node.type_params:
        generics = generics | frozenset(node.type_params)
    params: list[tuple[str, TypeDesc]] = []
    for param in node.params:
        if param.name is None:
            raise _error("function type parameter has no identifier", param.loc or node.loc)
        if param.type_ann is None:
            raise _error(f"function type parameter {param.name!r} has no type annotation", param.loc or node.loc)
        if param.name == "this":
            continue
        params.append((param.name, resolve_type(param.type_ann, generics)))
    if node.return_type is None:
        raise _error("function type has no return annotation", node.loc)
    returns: Optional[TypeDesc] = resolve_type(node.return_type, generics)
    if isinstance(returns, VoidType):
        returns = None
    return FunctionType(params=tuple(params), returns=returns)


def _error(message: str, loc: Optional[SourceLoc]) -> UnresolvedType:
    if loc is None:
        return UnresolvedType(message)
    return UnresolvedType(message, line=loc.line, column=loc.column, path=loc.path)
