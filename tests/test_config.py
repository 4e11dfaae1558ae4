"""
Tests for configuration loading — config.yml parsing, validation, overrides.
"""

import textwrap
from pathlib import Path

import pytest

from toolwarden.core.config.loader import (
    ConfigError,
    OrchestratorConfig,
    find_config_file,
    load_config,
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    """No user config or overrides leak in from the real environment."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in (
        "TOOLWARDEN_CONFIG",
        "TOOLWARDEN_ROOT",
        "TOOLWARDEN_CACHE_DIR",
        "TOOLWARDEN_DOWNLOAD_DIR",
        "TOOLWARDEN_REGISTRY_MIRROR",
        "TOOLWARDEN_NATIVE_CHANNEL",
    ):
        monkeypatch.delenv(var, raising=False)


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content))
    return path


class TestDefaults:
    def test_no_file_gives_defaults(self, tmp_path: Path):
        config = load_config()
        home = tmp_path / "home" / ".toolwarden"
        assert config.root == home / "tools"
        assert config.cache_dir == home / "npm-cache"
        assert config.native_channel == "latest"
        assert config.registry_mirror == ""
        assert config.lock_wait_timeout == 60.0

    def test_lock_dir_under_root(self, tmp_path: Path):
        config = OrchestratorConfig(root=tmp_path / "r")
        assert config.lock_dir == tmp_path / "r" / ".locks"

    def test_find_config_file_none(self):
        assert find_config_file() is None


class TestLoadFile:
    def test_flat_file(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", """\
            root: /opt/tools
            registry_mirror: https://registry.npmmirror.com
            lock_wait_timeout: 5
        """)
        config = load_config(path)
        assert config.root == Path("/opt/tools")
        assert config.registry_mirror == "https://registry.npmmirror.com"
        assert config.lock_wait_timeout == 5

    def test_wrapped_file(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", """\
            toolwarden:
              native_channel: stable
        """)
        assert load_config(path).native_channel == "stable"

    def test_empty_file(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "")
        assert load_config(path).native_channel == "latest"

    def test_home_relative_paths(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "root: ~/my-tools\n")
        assert load_config(path).root == tmp_path / "home" / "my-tools"

    def test_env_var_points_at_file(self, monkeypatch, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "native_channel: '2.0.14'\n")
        monkeypatch.setenv("TOOLWARDEN_CONFIG", str(path))
        assert find_config_file() == path
        assert load_config().native_channel == "2.0.14"

    def test_default_location(self, tmp_path: Path):
        home = tmp_path / "home" / ".toolwarden"
        home.mkdir(parents=True)
        _write(home / "config.yml", "registry_mirror: https://mirror.test\n")
        assert load_config().registry_mirror == "https://mirror.test"


class TestErrors:
    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "root: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_bad_type(self, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "lock_wait_timeout: soon\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)


class TestEnvOverrides:
    def test_env_beats_file(self, monkeypatch, tmp_path: Path):
        path = _write(tmp_path / "c.yml", "root: /from/file\nnative_channel: stable\n")
        monkeypatch.setenv("TOOLWARDEN_ROOT", str(tmp_path / "env-root"))
        monkeypatch.setenv("TOOLWARDEN_NATIVE_CHANNEL", "latest")
        config = load_config(path)
        assert config.root == tmp_path / "env-root"
        assert config.native_channel == "latest"

    def test_empty_env_ignored(self, monkeypatch):
        monkeypatch.setenv("TOOLWARDEN_REGISTRY_MIRROR", "")
        assert load_config().registry_mirror == ""
