"""Tests for settings and override files."""

import pytest

from dtsbind.config import Settings, load_overrides, load_settings
from dtsbind.errors import ConfigError
from dtsbind.ir import ClassType, NumberType, ParamDesc, ThisType
from dtsbind.overrides import EMPTY_POLICY


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_load_fixture_overrides(overrides_file):
    policy = load_overrides(overrides_file)
    (get_value_or,) = policy.method_overrides("core/Foo", "Foo", "getValue")
    assert get_value_or.name == "get_value_or"
    assert get_value_or.attributes == [("method", None), ("js_name", "getValueOr")]
    assert get_value_or.parameters == [
        ("this", ParamDesc(ThisType(), by_reference=True)),
        ("fallback", ParamDesc(NumberType())),
    ]
    assert get_value_or.returns == ParamDesc(NumberType())
    assert policy.method_overrides("core/Foo", "Foo", "push") == ()
    assert policy.method_overrides("core/Foo", "Foo", "rename") is None
    (add,) = policy.method_overrides("core/Object3D", "Object3D", "add")
    assert add.parameters[1] == ("object", ParamDesc(ClassType("Object3D"), by_reference=True))
    assert policy.skips_module("math/Vector3")
    assert not policy.skips_module("core/Foo")


def test_skip_hierarchy(tmp_path):
    path = write(tmp_path, "o.yaml", """
modules:
  a:
    classes:
      A: {mode: skip, methods: {f: []}}
  b:
    mode: skip
    classes:
      B: {methods: {f: []}}
""")
    policy = load_overrides(path)
    assert policy.skips_class("a", "A")
    assert not policy.skips_class("a", "Other")
    assert policy.method_overrides("a", "A", "f") is None
    assert policy.skips_class("b", "B")
    assert policy.method_overrides("b", "B", "f") is None


def test_empty_override_file(tmp_path):
    assert load_overrides(write(tmp_path, "o.yaml", "")).modules == {}
    assert EMPTY_POLICY.method_overrides("a", "A", "f") is None


def test_unknown_key_is_rejected(tmp_path):
    path = write(tmp_path, "o.yaml", "modules:\n  a:\n    moed: skip\n")
    with pytest.raises(ConfigError) as exc:
        load_overrides(path)
    assert "moed" in exc.value.message
    assert exc.value.path == str(path)


def test_bad_mode_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_overrides(write(tmp_path, "o.yaml", "modules:\n  a:\n    mode: remove\n"))


def test_unsupported_override_type(tmp_path):
    path = write(tmp_path, "o.yaml", """
modules:
  a:
    classes:
      A:
        methods:
          f:
            - name: f
              parameters: [{name: m, type: "Map<string, number>"}]
""")
    with pytest.raises(ConfigError) as exc:
        load_overrides(path)
    assert exc.value.context == "a::A.f"


def test_unparseable_override_type(tmp_path):
    path = write(tmp_path, "o.yaml", """
modules:
  a:
    classes:
      A:
        methods:
          f:
            - {name: f, returns: {type: "number number"}}
""")
    with pytest.raises(ConfigError) as exc:
        load_overrides(path)
    assert "invalid type" in exc.value.message


def test_attribute_mapping_needs_one_key(tmp_path):
    path = write(tmp_path, "o.yaml", """
modules:
  a:
    classes:
      A:
        methods:
          f:
            - {name: f, attributes: [{js_name: f, extends: B}]}
""")
    with pytest.raises(ConfigError):
        load_overrides(path)


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_overrides(write(tmp_path, "o.yaml", "modules: [unclosed\n"))
    assert exc.value.line is not None


def test_top_level_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError):
        load_overrides(write(tmp_path, "o.yaml", "- a\n- b\n"))


def test_missing_override_file(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_overrides(tmp_path / "missing.yaml")
    assert "not found" in exc.value.message


def test_settings_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = load_settings()
    assert settings == Settings()
    assert settings.jobs == 1 and settings.unimplemented == "warn"


def test_settings_file(tmp_path):
    path = write(tmp_path, "dtsbind.yaml", """
js_module_prefix: three/src
overrides: overrides.yaml
fail_fast: true
unimplemented: error
jobs: 4
""")
    settings = load_settings(path)
    assert settings.js_module_prefix == "three/src"
    assert settings.overrides == tmp_path / "overrides.yaml"
    assert settings.fail_fast and settings.unimplemented == "error" and settings.jobs == 4


@pytest.mark.parametrize("text", ["jobs: 0\n", "unimplemented: maybe\n", "colour: red\n"])
def test_invalid_settings(tmp_path, text):
    with pytest.raises(ConfigError):
        load_settings(write(tmp_path, "dtsbind.yaml", text))


def test_explicit_missing_settings_file(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "nope.yaml")
