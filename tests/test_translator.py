"""Tests for member translation (naming, receiver, collapse, passing mode)."""

import pytest

from dtsbind.errors import MalformedParameter, UnsupportedMember
from dtsbind.ir import (
    AnyType,
    ArrayType,
    ClassType,
    FunctionDesc,
    NullType,
    NumberType,
    ParamDesc,
    StringType,
    ThisType,
    UndefinedType,
    UnionType,
)
from dtsbind.parser import parse
from dtsbind.translator import (
    collapse_optional,
    passed_by_reference,
    to_snake_case,
    translate_constructor,
    translate_method,
)


def members(body: str):
    return parse(f"export class Foo {{ {body} }}").classes[0].members


def method(signature: str) -> FunctionDesc:
    return translate_method(members(signature)[0])


@pytest.mark.parametrize("name,expected", [
    ("getValue", "get_value"),
    ("getWorldPosition", "get_world_position"),
    ("toJSON", "to_json"),
    ("applyMatrix4", "apply_matrix4"),
    ("HTMLElement", "html_element"),
    ("add", "add"),
    ("type", "type_"),
    ("where", "where_"),
])
def test_to_snake_case(name, expected):
    assert to_snake_case(name) == expected


def test_receiver_is_injected_first():
    desc = method("distanceTo(v: Vector3): number;")
    assert desc.parameters[0] == ("this", ParamDesc(ThisType(), by_reference=True, optional=False))
    assert desc.parameters[1] == ("v", ParamDesc(ClassType("Vector3"), by_reference=True))
    assert desc.attributes == [("method", None), ("js_name", "distanceTo")]


def test_js_name_only_when_spelling_changes():
    assert method("add(x: number): void;").attributes == [("method", None)]


def test_nullable_return_collapses():
    assert method("getValue(): number | null;").returns == ParamDesc(NumberType(), optional=True)
    assert method("find(): Foo | undefined;").returns == ParamDesc(ClassType("Foo"), optional=True)


def test_reversed_nullable_is_not_collapsed():
    # Only the trailing null/undefined form is recognised.
    returns = method("maybe(): null | Foo;").returns
    assert returns.type == UnionType((NullType(), ClassType("Foo")))
    assert not returns.optional


def test_collapse_optional_only_two_member_unions():
    three = UnionType((NumberType(), StringType(), NullType()))
    assert collapse_optional(three) == (three, False)
    assert collapse_optional(UnionType((StringType(), UndefinedType()))) == (StringType(), True)


def test_void_return_is_erased():
    assert method("clear(): void;").returns is None


def test_missing_return_annotation_is_any():
    assert method("mystery();").returns == ParamDesc(AnyType())


def test_returns_are_never_by_reference():
    assert method("clone(): this;").returns == ParamDesc(ThisType())
    assert method("name(): string;").returns == ParamDesc(StringType())


def test_optional_and_nullable_params():
    desc = method("f(a?: number, b: Foo | null, c?: string): void;")
    _, a, b, c = desc.parameters
    assert a == ("a", ParamDesc(NumberType(), by_reference=False, optional=True))
    assert b == ("b", ParamDesc(ClassType("Foo"), by_reference=True, optional=True))
    assert c == ("c", ParamDesc(StringType(), by_reference=True, optional=True))


def test_passing_mode():
    assert passed_by_reference(ClassType("A"))
    assert passed_by_reference(StringType())
    assert passed_by_reference(AnyType())
    assert not passed_by_reference(NumberType())
    assert not passed_by_reference(ArrayType(NumberType()))


def test_rest_param_is_variadic():
    desc = method("add(...objects: Object3D[]): this;")
    assert ("variadic", None) in desc.attributes
    assert desc.parameters[1] == ("objects", ParamDesc(ArrayType(ClassType("Object3D"))))


def test_this_pseudo_param_is_dropped():
    desc = method("bind(this: Foo, x: number): void;")
    assert [name for name, _ in desc.parameters] == ["this", "x"]


def test_param_names_are_snake_cased():
    desc = method("f(maxDistance: number, type: string): void;")
    assert [name for name, _ in desc.parameters] == ["this", "max_distance", "type_"]


def test_constructor():
    desc = translate_constructor(members("constructor(x?: number, name?: string);")[0])
    assert desc.name == "new"
    assert desc.attributes == [("constructor", None)]
    assert desc.returns == ParamDesc(ThisType())
    assert [name for name, _ in desc.parameters] == ["x", "name"]


def test_missing_annotation_is_malformed():
    with pytest.raises(MalformedParameter) as exc:
        method("f(x): void;")
    assert "'x'" in exc.value.message


def test_destructured_param_is_malformed():
    with pytest.raises(MalformedParameter):
        method("f({ a }: Opts): void;")


def test_method_type_params_are_unimplemented():
    desc = method("get<T>(key: string): T;")
    assert desc.find_unimplemented() is not None


def test_computed_name_is_unsupported():
    with pytest.raises(UnsupportedMember) as exc:
        method("[Symbol.iterator](): any;")
    assert exc.value.member == "<computed>"
