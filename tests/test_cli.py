"""CLI tests using typer.testing.CliRunner."""

import json

import pytest
from typer.testing import CliRunner

from dtsbind import __version__
from dtsbind.cli import app

runner = CliRunner()


def test_parse_success(example_file):
    result = runner.invoke(app, ["parse", str(example_file)])
    assert result.exit_code == 0
    assert "Parsed" in result.output


def test_parse_lists_members(fixtures_dir):
    result = runner.invoke(app, ["parse", str(fixtures_dir / "core" / "Foo.d.ts")])
    assert result.exit_code == 0
    assert "Foo extends Bar" in result.output
    assert "constructor" in result.output
    assert "method getValue" in result.output


def test_parse_missing_file():
    result = runner.invoke(app, ["parse", "nonexistent.d.ts"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_parse_error_exits_1(tmp_path):
    bad = tmp_path / "bad.d.ts"
    bad.write_text("export class A { f(: number): void; }")
    result = runner.invoke(app, ["parse", str(bad)])
    assert result.exit_code == 1
    assert "bad.d.ts:1:" in result.output


def test_lower_emits_json(fixtures_dir):
    result = runner.invoke(app, ["lower", str(fixtures_dir / "core" / "Foo.d.ts"), "--module-id", "core/Foo"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    (module,) = data["modules"]
    assert module["name"] == "core/Foo"
    assert module["attributes"] == [["module", '"core/Foo.js"']]
    assert module["class"]["methods"][1]["name"] == "get_value"
    assert data["skipped"] == ["Foo.value: deprecated"]


def test_emit_to_stdout(fixtures_dir):
    result = runner.invoke(app, ["emit", str(fixtures_dir / "core" / "Foo.d.ts"), "--js-module", "three/Foo.js"])
    assert result.exit_code == 0
    assert '#[wasm_bindgen(module = "three/Foo.js")]' in result.stdout
    assert "pub fn get_value(this: &Foo) -> Option<f64>;" in result.stdout


def test_emit_to_file_with_overrides(fixtures_dir, overrides_file, tmp_path):
    out = tmp_path / "rs" / "Foo.rs"
    result = runner.invoke(app, [
        "emit", str(fixtures_dir / "core" / "Foo.d.ts"),
        "-o", str(out),
        "--overrides", str(overrides_file),
        "--module-id", "core/Foo",
    ])
    assert result.exit_code == 0
    assert "Wrote" in result.output
    assert "pub fn get_value_or(this: &Foo, fallback: f64) -> f64;" in out.read_text()


def test_emit_unsupported_member_fails(tmp_path):
    src = tmp_path / "A.d.ts"
    src.write_text("export class A { static create(): A; }")
    result = runner.invoke(app, ["emit", str(src)])
    assert result.exit_code == 1
    assert "static method 'create'" in result.output


def test_emit_nothing_to_bind(tmp_path):
    src = tmp_path / "I.d.ts"
    src.write_text("export interface I { a: number; }")
    result = runner.invoke(app, ["emit", str(src)])
    assert result.exit_code == 1
    assert "Nothing to bind" in result.output


def test_build(fixtures_dir, tmp_path):
    out = tmp_path / "out"
    result = runner.invoke(app, ["build", str(fixtures_dir), str(out), "--js-prefix", "three/src"])
    assert result.exit_code == 0
    assert "Wrote 3 files, skipped 0, failed 0." in result.output
    assert (out / "core" / "Foo.rs").exists()
    assert "three/src/math/Vector3.js" in (out / "math" / "Vector3.rs").read_text()


def test_build_uses_config_file(fixtures_dir, overrides_file, tmp_path):
    config = tmp_path / "dtsbind.yaml"
    config.write_text(f"overrides: {overrides_file}\njobs: 2\n")
    out = tmp_path / "out"
    result = runner.invoke(app, ["build", str(fixtures_dir), str(out), "--config", str(config)])
    assert result.exit_code == 0
    assert "Wrote 2 files, skipped 1, failed 0." in result.output
    assert not (out / "math" / "Vector3.rs").exists()


def test_build_reports_failures(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "A.d.ts").write_text("export class A { f(): void;")
    result = runner.invoke(app, ["build", str(src), str(tmp_path / "out")])
    assert result.exit_code == 1
    assert "failed 1" in result.output


def test_build_missing_source_dir(tmp_path):
    result = runner.invoke(app, ["build", str(tmp_path / "nope"), str(tmp_path / "out")])
    assert result.exit_code == 1
    assert "not a directory" in result.output


def test_check_overrides(overrides_file):
    result = runner.invoke(app, ["check-overrides", str(overrides_file)])
    assert result.exit_code == 0
    assert "OK (3 modules, 3 method overrides)" in result.output


def test_check_overrides_invalid(tmp_path):
    bad = tmp_path / "o.yaml"
    bad.write_text("modules:\n  a:\n    mode: remove\n")
    result = runner.invoke(app, ["check-overrides", str(bad)])
    assert result.exit_code == 1
    assert "o.yaml" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.parametrize("flag", ["-v", "--verbose"])
def test_verbose_flag(flag, fixtures_dir):
    result = runner.invoke(app, [flag, "parse", str(fixtures_dir / "core" / "Foo.d.ts")])
    assert result.exit_code == 0
