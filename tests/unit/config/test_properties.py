from __future__ import annotations

from pathlib import Path

import pytest

from serversetup.core.config.properties import (
    PROPERTIES_FILE_ENV,
    SystemProperties,
    environment_properties,
    flatten_properties,
    load_properties_file,
    load_system_properties,
    parse_property_assignments,
)
from serversetup.core.exceptions import ConfigurationError


def test_values_are_stored_as_strings() -> None:
    props = SystemProperties({"a": 1, "b": True, "c": None, "d": 2.5})

    assert dict(props) == {"a": "1", "b": "true", "d": "2.5"}


def test_get_bool_accepts_common_spellings() -> None:
    props = SystemProperties({"a": "TRUE", "b": "yes", "c": "on", "d": "1", "e": "false", "f": " "})

    assert all(props.get_bool(k) for k in "abcd")
    assert not props.get_bool("e")
    assert props.get_bool("f", default=True)
    assert not props.get_bool("missing")


def test_get_float_rejects_garbage() -> None:
    props = SystemProperties({"t": "soon"})

    with pytest.raises(ConfigurationError, match="Property t must be a number"):
        props.get_float("t", 1.0)
    assert props.get_float("missing", 3) == 3.0


def test_prefixed_values_follow_key_order() -> None:
    props = SystemProperties(
        {
            "server.ready.path.2": "/b",
            "server.ready.path.10": "/c",
            "server.ready.path.1": "/a",
            "server.other": "x",
        }
    )

    # Plain string ordering: "1" < "10" < "2".
    assert props.prefixed_values("server.ready.path") == ["/a", "/c", "/b"]


def test_with_overrides_returns_new_mapping() -> None:
    base = SystemProperties({"a": "1"})
    merged = base.with_overrides({"a": "2", "b": "3"})

    assert base["a"] == "1"
    assert merged.as_dict() == {"a": "2", "b": "3"}


def test_flatten_nested_mappings() -> None:
    flat = flatten_properties({"server": {"ready": {"path": {"1": "/a", "2": "/b"}}}, "keepJarRunning": True})

    assert flat == {"server.ready.path.1": "/a", "server.ready.path.2": "/b", "keepJarRunning": True}


def test_load_properties_file_validates_and_flattens(tmp_path: Path) -> None:
    path = tmp_path / "props.yaml"
    path.write_text("test:\n  server:\n    url: http://h:1\nbundle.install.timeout.seconds: 5\n", encoding="utf-8")

    assert load_properties_file(path) == {"test.server.url": "http://h:1", "bundle.install.timeout.seconds": 5}


def test_load_properties_file_rejects_lists(tmp_path: Path) -> None:
    path = tmp_path / "props.yaml"
    path.write_text("server.ready.path:\n  - /a\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="not a mapping of scalar values"):
        load_properties_file(path)


def test_load_properties_file_reports_missing_and_invalid(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_properties_file(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("a: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_properties_file(bad)


def test_environment_properties_keep_dotted_and_known_names() -> None:
    env = {"PATH": "/bin", "test.server.url": "http://h", "keepJarRunning": "true"}

    assert environment_properties(env) == {"test.server.url": "http://h", "keepJarRunning": "true"}


def test_parse_property_assignments() -> None:
    assert parse_property_assignments(["a=1", "b=x=y", "c="]) == {"a": "1", "b": "x=y", "c": ""}
    with pytest.raises(ConfigurationError):
        parse_property_assignments(["novalue"])


def test_layering_order(tmp_path: Path) -> None:
    env_file = tmp_path / "env.yaml"
    env_file.write_text("a: env-file\nb: env-file\nc: env-file\nd: env-file\n", encoding="utf-8")
    explicit = tmp_path / "explicit.yaml"
    explicit.write_text("b: explicit\nc: explicit\nd: explicit\n", encoding="utf-8")
    environ = {PROPERTIES_FILE_ENV: str(env_file), "c.x": "ignored", "d": "not-a-property"}

    props = load_system_properties(
        [explicit],
        environ={**environ, "c": "environment"},
        overrides={"d": "override"},
    )

    assert props["a"] == "env-file"
    assert props["b"] == "explicit"
    # "c" has no dot, so the environment does not override it.
    assert props["c"] == "explicit"
    assert props["c.x"] == "ignored"
    assert props["d"] == "override"
