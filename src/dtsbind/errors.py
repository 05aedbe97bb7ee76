"""Structured errors for dtsbind (parse, translation, render, config)."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class BindgenError(Exception):
    """Base for all dtsbind errors."""
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    path: Optional[str] = None
    context: Optional[str] = None  # e.g. "core/Object3D::Object3D.add"

    def __str__(self) -> str:
        loc = ""
        if self.path:
            loc = f"{self.path}:"
        if self.line is not None:
            loc += f"{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
            loc += ":"
        if loc:
            loc += " "
        if self.context:
            loc += f"[{self.context}] "
        return f"{loc}{self.message}"


class ParseError(BindgenError):
    """Declaration source did not match the grammar or tokenization failed."""
    pass


class ConfigError(BindgenError):
    """Settings or override file is missing or malformed."""
    pass


class UnresolvedType(BindgenError):
    """A declared type shape the resolver does not support."""
    pass


class MalformedParameter(BindgenError):
    """Parameter without a simple identifier or without a type annotation."""
    pass


@dataclass
class UnsupportedMember(BindgenError):
    """Getter, setter, static or computed member found while assembling a class."""
    member: Optional[str] = None  # declared name, "<computed>" for computed keys


class MissingClassContext(BindgenError):
    """A class-bound descriptor was rendered with no enclosing class."""
    pass


class RenderableInvariantViolation(BindgenError):
    """An IR-only type (union, null, void, undefined, unimplemented) reached the emitter."""
    pass
