"""AST node definitions for TypeScript declaration files. Only declared shapes, no bodies."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class MethodKind(Enum):
    METHOD = "method"
    GETTER = "getter"
    SETTER = "setter"


@dataclass
class SourceLoc:
    line: int
    column: int
    path: Optional[str] = None
    offset: int = 0


# --- Types ---

class TsType:
    """Base for type nodes; no fields so subclasses control field order."""
    pass


@dataclass
class TsKeywordType(TsType):
    """number, boolean, string, any, void, undefined, null, object, never, ..."""
    name: str
    loc: Optional[SourceLoc] = None


@dataclass
class TsThisType(TsType):
    loc: Optional[SourceLoc] = None


@dataclass
class TsTypeRef(TsType):
    name: str  # dotted for qualified names, e.g. "THREE.Vector3"
    type_args: list[TsType] = field(default_factory=list)
    loc: Optional[SourceLoc] = None

    @property
    def is_qualified(self) -> bool:
        return "." in self.name


@dataclass
class TsArrayType(TsType):
    element: TsType
    loc: Optional[SourceLoc] = None


@dataclass
class TsUnionType(TsType):
    types: list[TsType]
    loc: Optional[SourceLoc] = None


@dataclass
class TsIntersectionType(TsType):
    types: list[TsType]
    loc: Optional[SourceLoc] = None


@dataclass
class TsFunctionType(TsType):
    params: list["Param"]
    return_type: Optional[TsType]
    type_params: list[str] = field(default_factory=list)
    loc: Optional[SourceLoc] = None


@dataclass
class TsOpaqueType(TsType):
    """Shapes kept only for diagnostics: literal, tuple, type-literal, typeof, keyof, ..."""
    kind: str
    text: str = ""
    loc: Optional[SourceLoc] = None


# --- Class members ---

@dataclass
class Param:
    name: Optional[str]  # None for destructuring patterns
    type_ann: Optional[TsType]
    optional: bool = False
    rest: bool = False
    loc: Optional[SourceLoc] = None


class Member:
    """Base for class members; subclasses are dataclasses with loc last."""


@dataclass
class Constructor(Member):
    params: list[Param]
    accessibility: Optional[str] = None  # public / protected / private
    loc: Optional[SourceLoc] = None


@dataclass
class Method(Member):
    name: Optional[str]  # None for computed keys such as [Symbol.iterator]
    params: list[Param]
    return_type: Optional[TsType]
    kind: MethodKind = MethodKind.METHOD
    is_static: bool = False
    optional: bool = False
    type_params: list[str] = field(default_factory=list)
    accessibility: Optional[str] = None
    loc: Optional[SourceLoc] = None


@dataclass
class Property(Member):
    name: Optional[str]
    type_ann: Optional[TsType]
    is_static: bool = False
    optional: bool = False
    readonly: bool = False
    loc: Optional[SourceLoc] = None


@dataclass
class IndexSignature(Member):
    loc: Optional[SourceLoc] = None


# --- Top level ---

@dataclass
class ImportDecl:
    source: str
    names: list[str]  # locally bound names
    type_only: bool = False
    loc: Optional[SourceLoc] = None


@dataclass
class ClassDecl:
    name: str
    members: list[Member]
    super_class: Optional[str] = None
    type_params: list[str] = field(default_factory=list)
    exported: bool = False
    is_abstract: bool = False
    loc: Optional[SourceLoc] = None


# --- Module ---

@dataclass
class Module:
    imports: list[ImportDecl]
    classes: list[ClassDecl]
    comments: dict[int, str] = field(default_factory=dict)  # token offset -> leading comment
    path: Optional[str] = None

    def leading_comment(self, loc: Optional[SourceLoc]) -> Optional[str]:
        """Comment text immediately preceding the declaration at ``loc``."""
        if loc is None:
            return None
        return self.comments.get(loc.offset)

    def exported_classes(self) -> list[ClassDecl]:
        return [c for c in self.classes if c.exported]
