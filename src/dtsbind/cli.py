"""CLI entry point: parse, lower, emit, build, check-overrides."""

import json
from pathlib import Path
from typing import Optional

import typer

from dtsbind import __version__
from dtsbind.ast_nodes import Constructor, Method
from dtsbind.config import Settings, load_overrides, load_settings
from dtsbind.errors import BindgenError
from dtsbind.log import setup_logging
from dtsbind.lowering import LowerOptions, lower
from dtsbind.overrides import EMPTY_POLICY, OverridePolicy
from dtsbind.parser import parse
from dtsbind.pipeline import build, compile_source, js_module_for

app = typer.Typer(
    name="dtsbind",
    help="Generate wasm-bindgen Rust declarations from TypeScript .d.ts classes.",
)


def _load_source(path: Path) -> str:
    if not path.exists():
        typer.echo(f"Error: file not found: {path}", err=True)
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _fail(e: BindgenError):
    typer.echo(str(e), err=True)
    raise typer.Exit(1)


def _parse_and_catch(path: Path):
    source = _load_source(path)
    try:
        return parse(source, path=str(path))
    except BindgenError as e:
        _fail(e)


def _policy(path: Optional[Path]) -> OverridePolicy:
    if path is None:
        return EMPTY_POLICY
    try:
        return load_overrides(path)
    except BindgenError as e:
        _fail(e)


def _settings(config: Optional[Path], **cli) -> Settings:
    """Settings from the config file, with explicit CLI options layered on top."""
    try:
        settings = load_settings(config)
    except BindgenError as e:
        _fail(e)
    update = {key: value for key, value in cli.items() if value is not None}
    return settings.model_copy(update=update) if update else settings


def _module_id(file: Path, module_id: Optional[str]) -> str:
    if module_id:
        return module_id
    name = file.name
    return name[: -len(".d.ts")] if name.endswith(".d.ts") else file.stem


@app.command("parse")
def parse_cmd(file: Path = typer.Argument(..., help=".d.ts file")):
    """Parse file and print the classes found (debug)."""
    module = _parse_and_catch(file)
    typer.echo(f"Parsed {len(module.classes)} classes, {len(module.imports)} imports.")
    for decl in module.classes:
        header = decl.name + (f" extends {decl.super_class}" if decl.super_class else "")
        if not decl.exported:
            header += " (not exported)"
        typer.echo(f"  {header}")
        for member in decl.members:
            if isinstance(member, Constructor):
                typer.echo("    constructor")
            elif isinstance(member, Method):
                typer.echo(f"    {member.kind.value} {member.name or '<computed>'}")
            else:
                typer.echo(f"    {type(member).__name__}")


@app.command("lower")
def lower_cmd(
    file: Path = typer.Argument(..., help=".d.ts file"),
    overrides: Optional[Path] = typer.Option(None, "--overrides", help="Override policy YAML"),
    module_id: Optional[str] = typer.Option(None, "--module-id", help="Module id used for override lookup"),
    js_module: Optional[str] = typer.Option(None, "--js-module", help="JS module path for the module attribute"),
):
    """Emit binding IR JSON to stdout."""
    module = _parse_and_catch(file)
    policy = _policy(overrides)
    mid = _module_id(file, module_id)
    try:
        lowered = lower(module, mid, policy, js_module=js_module or js_module_for(mid))
    except BindgenError as e:
        _fail(e)
    typer.echo(json.dumps({
        "modules": [m.to_dict() for m in lowered.modules],
        "failures": [str(f) for f in lowered.failures],
        "skipped": lowered.skipped,
    }, indent=2))


@app.command("emit")
def emit_cmd(
    file: Path = typer.Argument(..., help=".d.ts file"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write Rust here instead of stdout"),
    overrides: Optional[Path] = typer.Option(None, "--overrides", help="Override policy YAML"),
    module_id: Optional[str] = typer.Option(None, "--module-id", help="Module id used for override lookup"),
    js_module: Optional[str] = typer.Option(None, "--js-module", help="JS module path for the module attribute"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop at the first member that cannot be translated"),
):
    """Translate one file and print the Rust bindings."""
    source = _load_source(file)
    policy = _policy(overrides)
    mid = _module_id(file, module_id)
    try:
        text, lowered = compile_source(
            source,
            mid,
            policy,
            js_module=js_module or js_module_for(mid),
            options=LowerOptions(fail_fast=fail_fast),
            path=str(file),
        )
    except BindgenError as e:
        _fail(e)
    for failure in lowered.failures:
        typer.echo(f"warning: {failure}", err=True)
    if text is None:
        typer.echo(f"Nothing to bind in {file}", err=True)
        raise typer.Exit(1)
    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.echo(f"Wrote {output}")


@app.command("build")
def build_cmd(
    src: Path = typer.Argument(..., help="Directory of .d.ts files"),
    out: Path = typer.Argument(..., help="Output directory for .rs files"),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings YAML (default: ./dtsbind.yaml if present)"),
    overrides: Optional[Path] = typer.Option(None, "--overrides", help="Override policy YAML"),
    jobs: Optional[int] = typer.Option(None, "-j", "--jobs", min=1, help="Worker processes"),
    fail_fast: Optional[bool] = typer.Option(None, "--fail-fast/--keep-going", help="Stop at the first failure"),
    js_prefix: Optional[str] = typer.Option(None, "--js-prefix", help="Prefix for module attribute paths"),
):
    """Translate every .d.ts file under SRC into OUT, mirroring the directory layout."""
    if not src.is_dir():
        typer.echo(f"Error: not a directory: {src}", err=True)
        raise typer.Exit(1)
    settings = _settings(config, overrides=overrides, jobs=jobs, fail_fast=fail_fast, js_module_prefix=js_prefix)
    policy = _policy(settings.overrides)
    results = build(src, out, settings, policy)

    written = skipped = failed = 0
    for result in results:
        if not result.ok:
            failed += 1
            typer.echo(result.error, err=True)
            continue
        for failure in result.failures:
            typer.echo(f"warning: {failure}", err=True)
        if result.skipped:
            skipped += 1
        else:
            written += 1
    typer.echo(f"Wrote {written} files, skipped {skipped}, failed {failed}.")
    if failed:
        raise typer.Exit(1)


@app.command("check-overrides")
def check_overrides_cmd(file: Path = typer.Argument(..., help="Override policy YAML")):
    """Validate an override file."""
    policy = _policy(file)
    count = sum(
        len(class_override.methods)
        for module_override in policy.modules.values()
        for class_override in module_override.classes.values()
    )
    typer.echo(f"OK ({len(policy.modules)} modules, {count} method overrides)")


def _version(value: bool):
    if value:
        typer.echo(f"dtsbind {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    version: bool = typer.Option(False, "--version", callback=_version, is_eager=True, help="Show version"),
):
    """dtsbind: TypeScript declaration files to wasm-bindgen bindings."""
    setup_logging(verbose)


if __name__ == "__main__":
    app()
