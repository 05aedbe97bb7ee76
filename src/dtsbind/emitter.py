"""Emitter: binding IR -> wasm-bindgen Rust declarations.

``ThisType`` is bound to the enclosing class name here, at render time, so
descriptors supplied by the override policy never need to know which class
they will be attached to.
"""

import json
import re
from typing import Optional

from dtsbind.errors import MissingClassContext, RenderableInvariantViolation
from dtsbind.ir import (
    AnyType,
    ArrayType,
    Attributes,
    BooleanType,
    ClassDesc,
    ClassType,
    FunctionDesc,
    FunctionType,
    ModuleDesc,
    NullType,
    NumberType,
    ParamDesc,
    StringType,
    ThisType,
    TypeDesc,
    UndefinedType,
    Unimplemented,
    UnionType,
    VoidType,
)

PRELUDE = "use wasm_bindgen::prelude::*;"

# Attributes that bind a function to a class receiver / return type.
CLASS_BOUND_ATTRIBUTES = ("method", "constructor")

# Attributes whose value may be written as an identifier or a string literal.
QUOTABLE_ATTRIBUTES = ("js_name", "js_class")

RUST_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_NOT_RENDERABLE = (UnionType, NullType, VoidType, UndefinedType, Unimplemented)


class CodeWriter:
    """Line buffer with indentation support."""

    def __init__(self, indent_str: str = "    "):
        self._lines: list[str] = []
        self._indent = 0
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        if text:
            self._lines.append(self._indent_str * self._indent + text)
        else:
            self._lines.append("")

    def indent(self) -> None:
        self._indent += 1

    def dedent(self) -> None:
        if self._indent > 0:
            self._indent -= 1

    def output(self) -> str:
        return "\n".join(self._lines) + "\n"


class Emitter:
    def render(self, module: ModuleDesc) -> str:
        """Render one module: imports, prelude and its extern block."""
        return self.render_file([module])

    def render_file(self, modules: list[ModuleDesc]) -> str:
        """Render several modules produced from the same source file.

        Imports are taken from the first module (they are per file).
        """
        out = CodeWriter()
        imports = modules[0].imports if modules else {}
        for statement in self.render_imports(imports):
            out.line(statement)
        out.line(PRELUDE)
        for module in modules:
            out.line()
            self._write_module(out, module)
        return out.output()

    def render_imports(self, imports: dict[str, list[str]]) -> list[str]:
        statements = []
        for path, symbols in imports.items():
            symbols = sorted(set(symbols))
            if not symbols:
                continue
            if len(symbols) == 1:
                statements.append(f"use {path}::{symbols[0]};")
            else:
                statements.append(f"use {path}::{{{', '.join(symbols)}}};")
        return sorted(statements)

    def render_attributes(self, attributes: Attributes) -> str:
        if not attributes:
            return "#[wasm_bindgen]"
        parts = [
            key if value is None else f"{key} = {self.render_attribute_value(key, value)}"
            for key, value in attributes
        ]
        return f"#[wasm_bindgen({', '.join(parts)})]"

    def render_attribute_value(self, key: str, value: str) -> str:
        """Names that are not Rust identifiers are passed as string literals."""
        if key in QUOTABLE_ATTRIBUTES and not RUST_IDENT.match(value):
            return json.dumps(value, ensure_ascii=False)
        if key == "extends" and not RUST_IDENT.match(value):
            raise RenderableInvariantViolation(f"superclass {value!r} is not a Rust type name", context=key)
        return value

    def render_function(self, function: FunctionDesc, class_name: Optional[str] = None) -> str:
        """Render one ``pub fn`` line (without its attribute line)."""
        if class_name is None:
            for key in CLASS_BOUND_ATTRIBUTES:
                if function.has_attribute(key):
                    raise MissingClassContext(
                        f"{key} {function.name!r} rendered without an enclosing class",
                        context=function.name,
                    )
        args = ", ".join(
            f"{name}: {self.render_param(param, class_name, function.name)}"
            for name, param in function.parameters
        )
        text = f"pub fn {function.name}({args})"
        if function.returns is not None:
            text += f" -> {self.render_param(function.returns, class_name, function.name)}"
        return text + ";"

    def render_param(self, param: ParamDesc, class_name: Optional[str], where: str = "") -> str:
        # str only works as a plain borrowed slice
        borrowed_str = param.by_reference and not param.optional
        rust = self.render_type(param.type, class_name, where, borrowed_str=borrowed_str)
        shape = (param.by_reference, param.optional)
        if shape == (False, False):
            return rust
        if shape == (False, True):
            return f"Option<{rust}>"
        if shape == (True, False):
            return f"&{rust}"
        if shape == (True, True):
            return f"&Option<{rust}>"
        raise RenderableInvariantViolation(f"invalid parameter shape {shape!r}", context=where)

    def render_type(
        self,
        desc: TypeDesc,
        class_name: Optional[str],
        where: str = "",
        borrowed_str: bool = False,
    ) -> str:
        if isinstance(desc, _NOT_RENDERABLE):
            detail = f" ({desc.reason})" if isinstance(desc, Unimplemented) and desc.reason else ""
            raise RenderableInvariantViolation(
                f"{type(desc).__name__}{detail} cannot be rendered; it must be eliminated during translation",
                context=where or None,
            )
        if isinstance(desc, ThisType):
            if class_name is None:
                raise MissingClassContext("'this' type rendered without an enclosing class", context=where or None)
            return class_name
        if isinstance(desc, AnyType):
            return "JsValue"
        if isinstance(desc, BooleanType):
            return "bool"
        if isinstance(desc, NumberType):
            return "f64"
        if isinstance(desc, StringType):
            return "str" if borrowed_str else "String"
        if isinstance(desc, ClassType):
            return desc.name
        if isinstance(desc, ArrayType):
            return f"Box<[{self.render_type(desc.element, class_name, where)}]>"
        if isinstance(desc, FunctionType):
            args = ", ".join(self.render_type(t, class_name, where) for _, t in desc.params)
            ret = f" -> {self.render_type(desc.returns, class_name, where)}" if desc.returns is not None else ""
            return f"Closure<dyn FnMut({args}){ret}>"
        raise RenderableInvariantViolation(f"unknown type descriptor {desc!r}", context=where or None)

    def _write_class(self, out: CodeWriter, class_desc: ClassDesc) -> None:
        out.line(self.render_attributes(class_desc.attributes))
        out.line(f"pub type {class_desc.name};")
        for function in class_desc.methods:
            out.line(self.render_attributes(function.attributes))
            out.line(self.render_function(function, class_desc.name))

    def _write_module(self, out: CodeWriter, module: ModuleDesc) -> None:
        out.line(self.render_attributes(module.attributes))
        out.line('extern "C" {')
        out.indent()
        self._write_class(out, module.class_desc)
        out.dedent()
        out.line("}")
