"""Override policy: hierarchical skip/replace rules keyed by module, class and member name.

The policy is an immutable value built once per run (see ``config.load_overrides``)
and passed explicitly to the assembler and the pipeline. Lookups go top-down:
a skipped module makes its class entries moot, a skipped class makes its
method entries moot.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dtsbind.ir import FunctionDesc


class Mode(Enum):
    SKIP = "skip"
    OVERRIDE = "override"


@dataclass(frozen=True)
class ClassOverride:
    mode: Mode = Mode.OVERRIDE
    # member name as declared (JS spelling, "constructor" for constructors) -> replacements
    methods: dict[str, tuple[FunctionDesc, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class ModuleOverride:
    mode: Mode = Mode.OVERRIDE
    classes: dict[str, ClassOverride] = field(default_factory=dict)


@dataclass(frozen=True)
class OverridePolicy:
    modules: dict[str, ModuleOverride] = field(default_factory=dict)

    def skips_module(self, module_id: str) -> bool:
        entry = self.modules.get(module_id)
        return entry is not None and entry.mode is Mode.SKIP

    def skips_class(self, module_id: str, class_name: str) -> bool:
        if self.skips_module(module_id):
            return True
        entry = self._class(module_id, class_name)
        return entry is not None and entry.mode is Mode.SKIP

    def method_overrides(self, module_id: str, class_name: str, member: str) -> Optional[tuple[FunctionDesc, ...]]:
        """Replacement descriptors for ``member``, or None when it is generated normally.

        An empty tuple means the member is removed.
        """
        if self.skips_class(module_id, class_name):
            return None
        entry = self._class(module_id, class_name)
        if entry is None:
            return None
        return entry.methods.get(member)

    def _class(self, module_id: str, class_name: str) -> Optional[ClassOverride]:
        module = self.modules.get(module_id)
        if module is None:
            return None
        return module.classes.get(class_name)


EMPTY_POLICY = OverridePolicy()
