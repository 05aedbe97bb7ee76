"""Tests for type resolution (declared type node -> TypeDesc)."""

import pytest

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
    UndefinedType,
    Unimplemented,
    UnionType,
    VoidType,
    first_unimplemented,
)
from dtsbind.parser import parse_type
from dtsbind.type_resolver import resolve_type


def resolve(text, generics=frozenset()):
    return resolve_type(parse_type(text), generics)


@pytest.mark.parametrize("text,expected", [
    ("number", NumberType()),
    ("boolean", BooleanType()),
    ("string", StringType()),
    ("any", AnyType()),
    ("void", VoidType()),
    ("undefined", UndefinedType()),
    ("null", NullType()),
    ("this", ThisType()),
    ("Vector3", ClassType("Vector3")),
])
def test_primitives_and_classes(text, expected):
    assert resolve(text) == expected


def test_array_like_normalizes_to_array():
    assert resolve("ArrayLike<number>") == resolve("number[]") == ArrayType(NumberType())
    assert resolve("ArrayLike<Vector3>") == ArrayType(ClassType("Vector3"))


def test_union_keeps_member_order():
    assert resolve("Vector3 | null") == UnionType((ClassType("Vector3"), NullType()))
    assert resolve("null | Vector3") == UnionType((NullType(), ClassType("Vector3")))


def test_function_type():
    desc = resolve("(object: Object3D, index: number) => void")
    assert desc == FunctionType(params=(("object", ClassType("Object3D")), ("index", NumberType())), returns=None)
    assert resolve("() => boolean") == FunctionType(returns=BooleanType())


def test_function_type_drops_this_param():
    desc = resolve("(this: Foo, x: number) => void")
    assert desc.params == (("x", NumberType()),)


def test_function_type_param_without_annotation():
    with pytest.raises(UnresolvedType):
        resolve("(x) => void")


@pytest.mark.parametrize("text", [
    "Map<string, number>",
    "Array<number>",
    "THREE.Vector3",
    "{ a: number }",
    "[number, number]",
    "'left' | 'right'",
    "A & B",
    "unknown",
    "never",
    "keyof Foo",
    "typeof Foo",
])
def test_unsupported_shapes_are_unimplemented(text):
    assert first_unimplemented(resolve(text)) is not None


def test_type_parameters_are_unimplemented():
    desc = resolve("T", generics=frozenset({"T"}))
    assert isinstance(desc, Unimplemented)
    assert "T" in desc.reason
    assert resolve("T") == ClassType("T")


def test_nested_unimplemented_is_found():
    desc = resolve("(cb: (x: unknown) => void) => void")
    found = first_unimplemented(desc)
    assert isinstance(found, Unimplemented) and "unknown" in found.reason
