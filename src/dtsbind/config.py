"""Settings and override files (YAML). Validated with pydantic, then turned into engine values."""

from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dtsbind.errors import BindgenError, ConfigError
from dtsbind.ir import Attributes, FunctionDesc, ParamDesc, TypeDesc, first_unimplemented
from dtsbind.overrides import ClassOverride, Mode, ModuleOverride, OverridePolicy
from dtsbind.parser import parse_type
from dtsbind.type_resolver import resolve_type

DEFAULT_CONFIG_NAME = "dtsbind.yaml"


class Settings(BaseModel):
    """Run settings. CLI options take precedence over values from ``dtsbind.yaml``."""
    model_config = ConfigDict(extra="forbid")

    js_module_prefix: str = ""
    overrides: Optional[Path] = None
    fail_fast: bool = False
    unimplemented: Literal["warn", "error"] = "warn"
    jobs: int = Field(default=1, ge=1)


# --- Override file schema ---

class ParamSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: str  # TypeScript type expression, e.g. "Object3D", "this", "number[]"
    by_reference: bool = False
    optional: bool = False


class ReturnSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    by_reference: bool = False
    optional: bool = False


class FunctionSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    attributes: list[Union[str, dict[str, Optional[str]]]] = Field(default_factory=list)
    parameters: list[ParamSpec] = Field(default_factory=list)
    returns: Optional[ReturnSpec] = None


class ClassSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: Literal["skip", "override"] = "override"
    methods: dict[str, list[FunctionSpec]] = Field(default_factory=dict)


class ModuleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: Literal["skip", "override"] = "override"
    classes: dict[str, ClassSpec] = Field(default_factory=dict)


class OverrideFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    modules: dict[str, ModuleSpec] = Field(default_factory=dict)


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"file not found: {path}", path=str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ConfigError(
            f"invalid YAML: {getattr(e, 'problem', None) or e}",
            line=mark.line + 1 if mark else None,
            column=mark.column if mark else None,
            path=str(path),
        ) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", path=str(path))
    return data


def _validation_error(e: ValidationError, path: Path) -> ConfigError:
    first = e.errors()[0]
    where = ".".join(str(p) for p in first["loc"])
    return ConfigError(f"{where}: {first['msg']}", path=str(path))


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load ``dtsbind.yaml``; a missing default file yields default settings."""
    if path is None:
        path = Path(DEFAULT_CONFIG_NAME)
        if not path.exists():
            return Settings()
    data = _read_yaml(path)
    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise _validation_error(e, path) from e
    if settings.overrides is not None and not settings.overrides.is_absolute():
        settings = settings.model_copy(update={"overrides": path.parent / settings.overrides})
    return settings


def load_overrides(path: Path) -> OverridePolicy:
    data = _read_yaml(path)
    try:
        spec = OverrideFile.model_validate(data)
    except ValidationError as e:
        raise _validation_error(e, path) from e
    return build_policy(spec, source=str(path))


def build_policy(spec: OverrideFile, source: Optional[str] = None) -> OverridePolicy:
    modules: dict[str, ModuleOverride] = {}
    for module_id, module_spec in spec.modules.items():
        classes: dict[str, ClassOverride] = {}
        for class_name, class_spec in module_spec.classes.items():
            methods: dict[str, tuple[FunctionDesc, ...]] = {}
            for member, functions in class_spec.methods.items():
                where = f"{module_id}::{class_name}.{member}"
                methods[member] = tuple(_build_function(f, where, source) for f in functions)
            classes[class_name] = ClassOverride(mode=Mode(class_spec.mode), methods=methods)
        modules[module_id] = ModuleOverride(mode=Mode(module_spec.mode), classes=classes)
    return OverridePolicy(modules=modules)


def _build_function(spec: FunctionSpec, where: str, source: Optional[str]) -> FunctionDesc:
    attributes: Attributes = []
    for attr in spec.attributes:
        if isinstance(attr, str):
            attributes.append((attr, None))
            continue
        if len(attr) != 1:
            raise ConfigError(f"attribute mappings must have exactly one key, got {list(attr)}", path=source, context=where)
        (key, value), = attr.items()
        attributes.append((key, None if value is None else str(value)))
    parameters = [
        (p.name, ParamDesc(_resolve(p.type, where, source), by_reference=p.by_reference, optional=p.optional))
        for p in spec.parameters
    ]
    returns = None
    if spec.returns is not None:
        returns = ParamDesc(
            _resolve(spec.returns.type, where, source),
            by_reference=spec.returns.by_reference,
            optional=spec.returns.optional,
        )
    return FunctionDesc(name=spec.name, parameters=parameters, returns=returns, attributes=attributes)


def _resolve(type_text: str, where: str, source: Optional[str]) -> TypeDesc:
    try:
        desc = resolve_type(parse_type(type_text))
    except BindgenError as e:
        raise ConfigError(f"invalid type {type_text!r}: {e.message}", path=source, context=where) from e
    unimplemented = first_unimplemented(desc)
    if unimplemented is not None:
        raise ConfigError(f"unsupported type {type_text!r}: {unimplemented.reason}", path=source, context=where)
    return desc
