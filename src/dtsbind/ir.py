"""IR (Intermediate Representation) definitions. AST lowers to a JSON-serializable binding IR.

``TypeDesc`` is a closed union of frozen dataclasses, so descriptors compare
structurally: ``ArrayType(NumberType()) == ArrayType(NumberType())``.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Ordered (key, value) annotation bag, e.g. [("method", None), ("js_name", "getValue")]
Attributes = list[tuple[str, Optional[str]]]


class TypeDesc:
    """Base for resolved type descriptors."""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": type(self).__name__}


@dataclass(frozen=True)
class AnyType(TypeDesc):
    pass


@dataclass(frozen=True)
class BooleanType(TypeDesc):
    pass


@dataclass(frozen=True)
class NullType(TypeDesc):
    pass


@dataclass(frozen=True)
class NumberType(TypeDesc):
    pass


@dataclass(frozen=True)
class StringType(TypeDesc):
    pass


@dataclass(frozen=True)
class VoidType(TypeDesc):
    pass


@dataclass(frozen=True)
class UndefinedType(TypeDesc):
    pass


@dataclass(frozen=True)
class ThisType(TypeDesc):
    """The enclosing class; bound to a concrete name only at render time."""
    pass


@dataclass(frozen=True)
class ArrayType(TypeDesc):
    element: TypeDesc

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "ArrayType", "element": self.element.to_dict()}


@dataclass(frozen=True)
class ClassType(TypeDesc):
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "ClassType", "name": self.name}


@dataclass(frozen=True)
class FunctionType(TypeDesc):
    params: tuple[tuple[str, TypeDesc], ...] = ()
    returns: Optional[TypeDesc] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "FunctionType",
            "params": [{"name": n, "type": t.to_dict()} for n, t in self.params],
            "returns": self.returns.to_dict() if self.returns else None,
        }


@dataclass(frozen=True)
class UnionType(TypeDesc):
    members: tuple[TypeDesc, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "UnionType", "members": [m.to_dict() for m in self.members]}


@dataclass(frozen=True)
class Unimplemented(TypeDesc):
    """Type shape the resolver does not support yet; must never be rendered."""
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "Unimplemented", "reason": self.reason}


def first_unimplemented(desc: Optional[TypeDesc]) -> Optional[Unimplemented]:
    """Depth-first search for the first Unimplemented node (for diagnostics)."""
    if desc is None:
        return None
    if isinstance(desc, Unimplemented):
        return desc
    children: list[Optional[TypeDesc]] = []
    if isinstance(desc, ArrayType):
        children = [desc.element]
    elif isinstance(desc, UnionType):
        children = list(desc.members)
    elif isinstance(desc, FunctionType):
        children = [t for _, t in desc.params] + [desc.returns]
    for child in children:
        found = first_unimplemented(child)
        if found is not None:
            return found
    return None


@dataclass(frozen=True)
class ParamDesc:
    type: TypeDesc
    by_reference: bool = False
    optional: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.to_dict(), "by_reference": self.by_reference, "optional": self.optional}


@dataclass
class FunctionDesc:
    name: str
    parameters: list[tuple[str, ParamDesc]] = field(default_factory=list)
    returns: Optional[ParamDesc] = None
    attributes: Attributes = field(default_factory=list)

    def has_attribute(self, key: str) -> bool:
        return any(k == key for k, _ in self.attributes)

    def find_unimplemented(self) -> Optional[Unimplemented]:
        for _, param in self.parameters:
            found = first_unimplemented(param.type)
            if found is not None:
                return found
        return first_unimplemented(self.returns.type) if self.returns else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "attributes": [[k, v] for k, v in self.attributes],
            "parameters": [{"name": n, **p.to_dict()} for n, p in self.parameters],
            "returns": self.returns.to_dict() if self.returns else None,
        }


@dataclass
class ClassDesc:
    name: str
    attributes: Attributes = field(default_factory=list)
    methods: list[FunctionDesc] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "attributes": [[k, v] for k, v in self.attributes],
            "methods": [m.to_dict() for m in self.methods],
        }


@dataclass
class ModuleDesc:
    name: str  # module identifier, e.g. "core/Object3D"
    class_desc: ClassDesc
    attributes: Attributes = field(default_factory=list)
    imports: dict[str, list[str]] = field(default_factory=dict)  # rust path -> symbols

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "attributes": [[k, v] for k, v in self.attributes],
            "imports": {path: list(symbols) for path, symbols in self.imports.items()},
            "class": self.class_desc.to_dict(),
        }
