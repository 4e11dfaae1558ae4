"""
Tests for CLI commands — global options, config check, and the tools group.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from toolwarden.core.services.tool_install.data.catalog import binary_aliases, catalog_names
from toolwarden.core.services.tool_install.execution.locks import LockCoordinator
from toolwarden.core.services.tool_install.orchestration.orchestrator import ToolOrchestrator
from toolwarden.main import cli

from tests.conftest import LINUX, FakeRunner, fail, posix_only, write_launcher


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    for var in ("TOOLWARDEN_CONFIG", "TOOLWARDEN_ROOT", "TOOLWARDEN_NATIVE_CHANNEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path: Path, tool_root: Path) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(textwrap.dedent(f"""\
        root: {tool_root}
        cache_dir: {tmp_path / "npm-cache"}
        download_dir: {tmp_path / "downloads"}
        settle_delay: 0
        lock_wait_timeout: 0
    """))
    return path


@pytest.fixture
def fake_orchestrator(monkeypatch):
    """Make ``from_config`` build an orchestrator around a FakeRunner."""
    def install(runner):
        original = ToolOrchestrator.from_config.__func__

        def from_config(cls, path=None, **kwargs):
            orch = original(cls, path, runner=runner, host=LINUX, sleep=lambda s: None, **kwargs)
            return orch

        monkeypatch.setattr(ToolOrchestrator, "from_config", classmethod(from_config))
        return runner

    return install


def _invoke(*args: str):
    return CliRunner().invoke(cli, list(args))


class TestCLIGlobal:
    def test_help(self):
        result = _invoke("--help")
        assert result.exit_code == 0
        assert "Toolwarden" in result.output
        assert "tools" in result.output

    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestConfigCheck:
    def test_valid(self, config_file: Path, tool_root: Path):
        result = _invoke("--config", str(config_file), "config", "check", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert data["config"]["root"] == str(tool_root)

    def test_missing_explicit_file(self, tmp_path: Path):
        result = _invoke("--config", str(tmp_path / "nope.yml"), "config", "check")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("lock_wait_timeout: soon\n")
        result = _invoke("--config", str(path), "config", "check", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["valid"] is False


@posix_only
class TestToolsQueries:
    def test_status_json(self, config_file: Path, tool_root: Path):
        write_launcher(tool_root / "bin" / "gemini", "0.9.1")
        result = _invoke("--config", str(config_file), "tools", "status", "--json")
        assert result.exit_code == 0
        data = {s["name"]: s for s in json.loads(result.stdout)}
        assert set(data) == set(catalog_names())
        assert data["gemini"]["installed"] is True
        assert data["gemini"]["version"] == "0.9.1"
        assert data["codex"]["installed"] is False

    def test_status_single(self, config_file: Path):
        result = _invoke("--config", str(config_file), "tools", "status", "codex")
        assert result.exit_code == 0
        assert "codex" in result.output
        assert "not installed" in result.output

    def test_paths_json(self, config_file: Path, tool_root: Path):
        result = _invoke("--config", str(config_file), "tools", "paths", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["root"] == str(tool_root)
        assert data["locks"] == str(tool_root / ".locks")

    def test_bad_config_exits(self, tmp_path: Path):
        result = _invoke("--config", str(tmp_path / "nope.yml"), "tools", "status")
        assert result.exit_code == 1


@posix_only
class TestToolsActions:
    def test_install_unknown(self, config_file: Path):
        result = _invoke("--config", str(config_file), "tools", "install", "vim")
        assert result.exit_code == 1
        assert "Unknown tool" in result.output

    def test_install(self, config_file: Path, tool_root: Path, fake_orchestrator):
        fake_orchestrator(FakeRunner(
            on_install=lambda a: write_launcher(tool_root / "bin" / "codex", "2.1.0"),
        ))
        result = _invoke("--config", str(config_file), "tools", "install", "codex")
        assert result.exit_code == 0
        assert "codex 2.1.0" in result.output

    def test_update_not_installed(self, config_file: Path, fake_orchestrator):
        fake_orchestrator(FakeRunner())
        result = _invoke("--config", str(config_file), "tools", "update", "codex")
        assert result.exit_code == 1

    def test_native_busy(self, config_file: Path, tool_root: Path):
        LockCoordinator(tool_root / ".locks").try_lock("claude")
        result = _invoke("--config", str(config_file), "tools", "native", "--version", "stable")
        assert result.exit_code == 1
        assert "being installed" in result.output

    def test_reconcile_all_current(self, config_file: Path, tool_root: Path, fake_orchestrator):
        for name in catalog_names():
            write_launcher(tool_root / "bin" / binary_aliases(name, LINUX)[0])
        runner = fake_orchestrator(FakeRunner(latest="1.0.0"))

        result = _invoke("--config", str(config_file), "tools", "reconcile", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert {o["phase"] for o in data["outcomes"]} == {"up_to_date"}
        assert runner.commands("install") == []

    def test_reconcile_failure_exit_code(self, config_file: Path, tool_root: Path, fake_orchestrator):
        for name in catalog_names():
            if name != "gemini":
                write_launcher(tool_root / "bin" / binary_aliases(name, LINUX)[0])
        fake_orchestrator(FakeRunner(
            [fail("npm ERR! 404 Not Found"), fail("npm ERR! 404 Not Found")],
            latest="1.0.0",
        ))

        result = _invoke("--config", str(config_file), "tools", "reconcile")
        assert result.exit_code == 1
        assert "gemini" in result.output
        assert "1 tool(s) failed" in result.output
