from __future__ import annotations

from pathlib import Path

import pytest

from markdown_maker import settings


def test_defaults_without_config_file(tmp_path):
    config = settings.load_config(env={}, cwd=tmp_path)

    assert config.build_dir == (tmp_path / "build").resolve()
    assert config.export_dir == (tmp_path / "export").resolve()
    assert config.format_paths == ()
    assert config.log_level == "INFO"
    assert config.log_dir is None
    assert config.config_path is None
    assert config.roots.build == config.build_dir


def test_config_file_paths_resolve_from_its_folder(workspace):
    workspace.config(["book"], ["guide"], build="out/b", log_dir="logs")
    elsewhere = workspace.root / "elsewhere"
    elsewhere.mkdir()

    config = settings.load_config(
        config_path=workspace.root / "maker.toml", env={}, cwd=elsewhere
    )

    root = workspace.root.resolve()
    assert config.build_dir == root / "out" / "b"
    assert config.format_paths == (root / "formats/book/format.py",)
    assert config.project_paths == (root / "projects/guide/project.py",)
    assert config.log_dir == root / "logs"
    assert config.config_path == root / "maker.toml"


def test_precedence_cli_over_env_over_file(workspace):
    workspace.config(build="from-file", export="exports")
    env = {
        "MAKER_BUILD_DIR": "from-env",
        "MAKER_LOG_LEVEL": "debug",
    }

    config = settings.load_config(env=env, cwd=workspace.root)
    assert config.build_dir.name == "from-env"
    assert config.log_level == "DEBUG"

    config = settings.load_config(
        env=env,
        cwd=workspace.root,
        overrides=settings.ConfigOverrides(
            build_dir=Path("from-cli"), log_level="warning"
        ),
    )
    assert config.build_dir.name == "from-cli"
    assert config.log_level == "WARNING"
    assert config.export_dir.name == "exports"


def test_cli_paths_resolve_from_working_directory(workspace):
    workspace.write("conf/maker.toml", '[output]\nbuild = "file-build"\n')
    cwd = workspace.root / "shell"
    cwd.mkdir()

    config = settings.load_config(
        config_path=workspace.root / "conf" / "maker.toml",
        env={},
        cwd=cwd,
        overrides=settings.ConfigOverrides(
            export_dir=Path("out"), log_dir=Path("logs")
        ),
    )

    root = workspace.root.resolve()
    assert config.build_dir == root / "conf" / "file-build"
    assert config.export_dir == root / "shell" / "out"
    assert config.log_dir == root / "shell" / "logs"


def test_env_can_point_at_config(workspace):
    workspace.write("conf/custom.toml", '[output]\nbuild = "custom"\n')

    config = settings.load_config(
        env={"MAKER_CONFIG": "conf/custom.toml"}, cwd=workspace.root
    )

    assert config.build_dir == (workspace.root / "conf" / "custom").resolve()


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(settings.MakerConfigError, match="not found"):
        settings.load_config(
            config_path=tmp_path / "nope.toml", env={}, cwd=tmp_path
        )


@pytest.mark.parametrize(
    ("body", "fragment"),
    [
        ('[output]\nbuild = "same"\nexport = "same"\n', "must be different"),
        ("[output]\nbuild = 3\n", "output.build must be a string"),
        ("[resources]\nformats = \"one\"\n", "must be a list"),
        ('[unknown]\nkey = "x"\n', "Unknown configuration key"),
    ],
)
def test_invalid_config_values(workspace, body, fragment):
    workspace.write("maker.toml", body)

    with pytest.raises(settings.MakerConfigError, match=fragment):
        settings.load_config(env={}, cwd=workspace.root)
