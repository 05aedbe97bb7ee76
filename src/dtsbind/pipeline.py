"""Per-file pipeline (parse -> lower -> render) and the directory build.

Files are independent units: the override policy is read-only and each
module writes its own output file, so ``build`` can fan files out to a
process pool.
"""

import logging
import posixpath
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dtsbind.config import Settings
from dtsbind.emitter import Emitter
from dtsbind.errors import BindgenError
from dtsbind.lowering import Lowered, LowerOptions, lower
from dtsbind.overrides import EMPTY_POLICY, OverridePolicy
from dtsbind.parser import parse

logger = logging.getLogger(__name__)

DTS_SUFFIX = ".d.ts"


@dataclass
class FileResult:
    """Outcome for one declaration file. Only plain data, so it crosses process boundaries."""
    source: str
    module_id: str
    text: Optional[str] = None
    output: Optional[str] = None
    skipped: bool = False
    failures: list[str] = field(default_factory=list)  # member-level failures
    omitted: list[str] = field(default_factory=list)  # deprecated / unsupported members left out
    error: Optional[str] = None  # file-level failure

    @property
    def ok(self) -> bool:
        return self.error is None


def module_id_for(path: Path, root: Path) -> str:
    """root/core/Object3D.d.ts -> "core/Object3D"."""
    rel = Path(path).relative_to(root).as_posix()
    if rel.endswith(DTS_SUFFIX):
        return rel[: -len(DTS_SUFFIX)]
    return posixpath.splitext(rel)[0]


def js_module_for(module_id: str, prefix: str = "") -> str:
    name = f"{module_id}.js"
    return posixpath.join(prefix, name) if prefix else name


def discover(root: Path) -> list[Path]:
    """All declaration files under ``root``, in a stable order."""
    return sorted(p for p in Path(root).rglob(f"*{DTS_SUFFIX}") if p.is_file())


def compile_source(
    source: str,
    module_id: str,
    policy: OverridePolicy = EMPTY_POLICY,
    js_module: Optional[str] = None,
    options: Optional[LowerOptions] = None,
    path: Optional[str] = None,
) -> tuple[Optional[str], Lowered]:
    """Parse, lower and render one source. Returns (text or None when nothing is bound, lowering result)."""
    if policy.skips_module(module_id):
        return None, Lowered()
    module = parse(source, path=path)
    lowered = lower(module, module_id, policy, js_module=js_module, options=options)
    if not lowered.modules:
        return None, lowered
    return Emitter().render_file(lowered.modules), lowered


def process_file(
    path: Path,
    root: Path,
    out_dir: Optional[Path],
    settings: Settings,
    policy: OverridePolicy = EMPTY_POLICY,
) -> FileResult:
    module_id = module_id_for(path, root)
    result = FileResult(source=str(path), module_id=module_id)
    if policy.skips_module(module_id):
        logger.debug("%s: skipped by override policy", module_id)
        result.skipped = True
        return result

    options = LowerOptions(fail_fast=settings.fail_fast, unimplemented=settings.unimplemented)
    try:
        text, lowered = compile_source(
            Path(path).read_text(encoding="utf-8"),
            module_id,
            policy,
            js_module=js_module_for(module_id, settings.js_module_prefix),
            options=options,
            path=str(path),
        )
    except (BindgenError, OSError) as e:
        logger.error("%s", e)
        result.error = str(e)
        return result

    result.failures = [str(f) for f in lowered.failures]
    result.omitted = list(lowered.skipped)
    if text is None:
        logger.debug("%s: no exported classes to bind", module_id)
        result.skipped = True
        return result
    result.text = text
    if out_dir is not None:
        target = Path(out_dir) / f"{module_id}.rs"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        result.output = str(target)
    return result


def build(
    root: Path,
    out_dir: Optional[Path],
    settings: Settings,
    policy: OverridePolicy = EMPTY_POLICY,
) -> list[FileResult]:
    """Process every declaration file under ``root``. Results are sorted by module id."""
    paths = discover(root)
    results: list[FileResult] = []
    if settings.jobs <= 1 or len(paths) <= 1:
        for path in paths:
            result = process_file(path, root, out_dir, settings, policy)
            results.append(result)
            if settings.fail_fast and not result.ok:
                break
    else:
        with ProcessPoolExecutor(max_workers=settings.jobs) as executor:
            futures = [executor.submit(process_file, path, root, out_dir, settings, policy) for path in paths]
            for future in as_completed(futures):
                result = future.result()
                results.append(result)
                if settings.fail_fast and not result.ok:
                    for pending in futures:
                        pending.cancel()
                    break
    return sorted(results, key=lambda r: r.module_id)
