"""Lower a parsed declaration module to binding IR (one ModuleDesc per exported class)."""

import copy
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from dtsbind.ast_nodes import ClassDecl, Constructor, IndexSignature, Member, Method, MethodKind, Module, Property
from dtsbind.errors import MalformedParameter, UnresolvedType, UnsupportedMember
from dtsbind.ir import Attributes, ClassDesc, FunctionDesc, ModuleDesc
from dtsbind.overrides import EMPTY_POLICY, OverridePolicy
from dtsbind.translator import translate_constructor, translate_method

logger = logging.getLogger(__name__)

DEPRECATED_TAG = "@deprecated"
DOC_COMMENT_START = "/**"


@dataclass
class LowerOptions:
    fail_fast: bool = False
    unimplemented: str = "warn"  # "warn": omit the member, "error": raise UnresolvedType


@dataclass
class MemberFailure:
    module: str
    class_name: str
    member: str
    message: str

    def __str__(self) -> str:
        return f"{self.module}::{self.class_name}.{self.member}: {self.message}"


@dataclass
class Lowered:
    modules: list[ModuleDesc] = field(default_factory=list)
    failures: list[MemberFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # "Class.member: reason"


def lower(
    module: Module,
    module_id: str,
    policy: OverridePolicy = EMPTY_POLICY,
    js_module: Optional[str] = None,
    options: Optional[LowerOptions] = None,
) -> Lowered:
    """Produce binding IR from a parsed module.

    Member-level translation errors are collected in ``Lowered.failures``
    unless ``options.fail_fast`` is set. A getter, setter, static or
    computed member drops its whole class (recorded as a failure too).
    """
    options = options or LowerOptions()
    result = Lowered()
    if policy.skips_module(module_id):
        logger.debug("%s: skipped by override policy", module_id)
        return result

    imports = group_imports(module)
    attributes: Attributes = [("module", f'"{js_module}"')] if js_module else []
    for decl in module.exported_classes():
        if policy.skips_class(module_id, decl.name):
            logger.debug("%s::%s: skipped by override policy", module_id, decl.name)
            continue
        try:
            class_desc = lower_class(decl, module, module_id, policy, options, result)
        except UnsupportedMember as e:
            # Fatal to this class only; sibling classes are still bound.
            if options.fail_fast:
                raise
            logger.warning("%s; class not bound", e)
            result.failures.append(MemberFailure(module_id, decl.name, e.member or "<computed>", e.message))
            continue
        result.modules.append(ModuleDesc(
            name=module_id,
            class_desc=class_desc,
            attributes=list(attributes),
            imports={path: list(symbols) for path, symbols in imports.items()},
        ))
    return result


def lower_class(
    decl: ClassDecl,
    module: Module,
    module_id: str,
    policy: OverridePolicy,
    options: LowerOptions,
    result: Lowered,
) -> ClassDesc:
    attributes: Attributes = []
    if decl.super_class:
        # THREE.Object3D -> Object3D
        super_class = decl.super_class.rsplit(".", 1)[-1]
        if super_class != decl.super_class:
            logger.debug("%s::%s: extends %s bound as %s", module_id, decl.name, decl.super_class, super_class)
        attributes.append(("extends", super_class))
    generics = frozenset(decl.type_params)
    methods: list[FunctionDesc] = []
    replaced: set[str] = set()
    has_constructor = False

    for member in decl.members:
        if isinstance(member, (Property, IndexSignature)):
            logger.debug("%s::%s: ignoring %s", module_id, decl.name, type(member).__name__.lower())
            continue
        key = _member_key(member)
        label = key or "<computed>"
        if is_deprecated(module, member):
            result.skipped.append(f"{decl.name}.{label}: deprecated")
            continue

        if key is not None:
            replacement = policy.method_overrides(module_id, decl.name, key)
            if replacement is not None:
                # Every generated descriptor for this name is replaced, once.
                if key not in replaced:
                    replaced.add(key)
                    methods.extend(copy.deepcopy(list(replacement)))
                continue

        if isinstance(member, Constructor):
            if has_constructor:
                logger.info("%s::%s: only the first constructor signature is bound", module_id, decl.name)
                continue
            has_constructor = True
        else:
            _check_supported(member, decl, module_id)

        desc = _translate_member(member, decl, module_id, label, generics, options, result)
        if desc is not None:
            methods.append(desc)

    _warn_duplicates(module_id, decl.name, methods)
    return ClassDesc(name=decl.name, attributes=attributes, methods=methods)


def is_deprecated(module: Module, member: Member) -> bool:
    """True when the doc comment right before ``member`` carries @deprecated."""
    comment = module.leading_comment(getattr(member, "loc", None))
    if comment is None:
        return False
    start = comment.rfind(DOC_COMMENT_START)
    if start < 0:
        return False
    doc = comment[start:]
    end = doc.find("*/")
    return DEPRECATED_TAG in (doc if end < 0 else doc[:end])


def _member_key(member: Member) -> Optional[str]:
    if isinstance(member, Constructor):
        return "constructor"
    if isinstance(member, Method):
        return member.name
    return None


def _check_supported(member: Method, decl: ClassDecl, module_id: str) -> None:
    reason = None
    if member.name is None:
        reason = "computed member names are not supported"
    elif member.kind is MethodKind.GETTER:
        reason = f"getter {member.name!r} is not supported"
    elif member.kind is MethodKind.SETTER:
        reason = f"setter {member.name!r} is not supported"
    elif member.is_static:
        reason = f"static method {member.name!r} is not supported"
    if reason is None:
        return
    loc = member.loc
    raise UnsupportedMember(
        reason,
        line=loc.line if loc else None,
        column=loc.column if loc else None,
        path=loc.path if loc else None,
        context=f"{module_id}::{decl.name}.{member.name or '<computed>'}",
        member=member.name or "<computed>",
    )


def _translate_member(
    member: Member,
    decl: ClassDecl,
    module_id: str,
    label: str,
    generics: frozenset[str],
    options: LowerOptions,
    result: Lowered,
) -> Optional[FunctionDesc]:
    context = f"{module_id}::{decl.name}.{label}"
    try:
        if isinstance(member, Constructor):
            desc = translate_constructor(member, generics)
        else:
            desc = translate_method(member, generics)
        unimplemented = desc.find_unimplemented()
        if unimplemented is not None:
            if options.unimplemented == "error":
                loc = getattr(member, "loc", None)
                raise UnresolvedType(
                    f"unsupported {unimplemented.reason}",
                    line=loc.line if loc else None,
                    column=loc.column if loc else None,
                    path=loc.path if loc else None,
                )
            logger.warning("%s: omitted, unsupported %s", context, unimplemented.reason)
            result.skipped.append(f"{decl.name}.{label}: unsupported {unimplemented.reason}")
            return None
        return desc
    except (MalformedParameter, UnresolvedType) as e:
        e.context = context
        if options.fail_fast:
            raise
        logger.warning("%s", e)
        result.failures.append(MemberFailure(module_id, decl.name, label, e.message))
        return None


def _warn_duplicates(module_id: str, class_name: str, methods: list[FunctionDesc]) -> None:
    counts = Counter(m.name for m in methods)
    for name, count in counts.items():
        if count > 1:
            logger.warning(
                "%s::%s: duplicate binding name %r (%d declarations); add a method override to rename them",
                module_id, class_name, name, count,
            )


# --- Imports ---

def rust_module_path(source: str) -> str:
    """'../math/Vector3' -> 'super::math::Vector3', './Foo.js' -> 'self::Foo'."""
    source = re.sub(r"(\.d)?\.[cm]?[jt]s$", "", source)
    parts = []
    for part in source.split("/"):
        if part == ".":
            parts.append("self")
        elif part == "..":
            parts.append("super")
        elif part:
            parts.append(part)
    return "::".join(parts).replace("self::super", "super")


def group_imports(module: Module) -> dict[str, list[str]]:
    """Group imported symbols by the Rust module path they come from."""
    grouped: dict[str, list[str]] = {}
    for decl in module.imports:
        if not decl.names:
            continue
        if len(decl.names) != 1:
            logger.warning(
                "%s: import from %r binds %d symbols",
                module.path or "<source>", decl.source, len(decl.names),
            )
        path = rust_module_path(decl.source)
        parent, _, last = path.rpartition("::")
        for symbol in decl.names:
            target = parent if (last == symbol and parent) else path
            symbols = grouped.setdefault(target, [])
            if symbol not in symbols:
                symbols.append(symbol)
    return grouped
