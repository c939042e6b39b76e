from __future__ import annotations

import pytest

from markdown_maker.core import config as core_config


def test_load_toml_reads_tables(tmp_path):
    path = tmp_path / "maker.toml"
    path.write_text('[output]\nbuild = "out"\n', encoding="utf-8")

    assert core_config.load_toml(path) == {"output": {"build": "out"}}


def test_load_toml_reports_missing_and_invalid(tmp_path):
    with pytest.raises(core_config.TomlConfigError, match="not found"):
        core_config.load_toml(tmp_path / "missing.toml")

    broken = tmp_path / "broken.toml"
    broken.write_text("[output\n", encoding="utf-8")
    with pytest.raises(core_config.TomlConfigError, match="broken.toml"):
        core_config.load_toml(broken)


def test_merge_defaults_nested():
    base = {"output": {"build": "build", "export": "export"}, "flag": False}

    core_config.merge_defaults(base, {"output": {"build": "b"}, "flag": True})

    assert base == {"output": {"build": "b", "export": "export"}, "flag": True}


def test_merge_defaults_rejects_unknown_and_shape():
    base = {"output": {"build": "build"}}

    with pytest.raises(core_config.TomlConfigError, match="output.extra"):
        core_config.merge_defaults(base, {"output": {"extra": 1}})
    with pytest.raises(core_config.TomlConfigError, match="Expected table"):
        core_config.merge_defaults(base, {"output": "flat"})
