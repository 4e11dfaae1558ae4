"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path
from typing import Callable

import pytest

from toolwarden.core.config.loader import OrchestratorConfig
from toolwarden.core.services.tool_install.data.catalog import HostPlatform
from toolwarden.core.services.tool_install.execution.subprocess_runner import CommandResult

LINUX = HostPlatform(os="linux", arch="x64")
WINDOWS = HostPlatform(os="windows", arch="x64")

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="runs /bin/sh launchers")


def write_launcher(path: Path, version_output: str = "1.0.0") -> Path:
    """Create an executable launcher that prints ``version_output``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\necho '{version_output}'\n")
    path.chmod(0o755)
    return path


def ok(output: str = "") -> CommandResult:
    return CommandResult(ok=True, output=output)


def fail(output: str, returncode: int = 1) -> CommandResult:
    return CommandResult(
        ok=False, returncode=returncode, output=output,
        error=f"Command failed (exit {returncode})",
    )


class FakeRunner:
    """Scripted stand-in for npm.

    ``install`` invocations consume ``install_results`` in order (success
    once the list is empty) and call ``on_install(args)`` after each
    successful one. ``view`` answers with ``latest`` (failure if None).
    Every invocation is recorded in ``calls``.
    """

    def __init__(
        self,
        install_results: list[CommandResult] | None = None,
        *,
        latest: str | None = None,
        on_install: Callable[[list[str]], None] | None = None,
        install_delay: Callable[[], None] | None = None,
    ) -> None:
        self.install_results = list(install_results or [])
        self.latest = latest
        self.on_install = on_install
        self.install_delay = install_delay
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def run(self, args: list[str], env: dict[str, str] | None = None) -> CommandResult:
        with self._lock:
            self.calls.append(list(args))
        if args[0] == "view":
            return ok(f"{self.latest}\n") if self.latest else fail("npm ERR! 404 Not Found")
        if args[0] == "cache":
            return ok()
        if args[0] == "install":
            if self.install_delay is not None:
                self.install_delay()
            with self._lock:
                result = self.install_results.pop(0) if self.install_results else ok()
            if result.ok and self.on_install is not None:
                self.on_install(args)
            return result
        return fail(f"unexpected npm command: {args}")

    def commands(self, verb: str) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == verb]


class NoSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def no_sleep() -> NoSleep:
    return NoSleep()


@pytest.fixture
def tool_root(tmp_path: Path) -> Path:
    """Empty private installation root."""
    root = tmp_path / "tools"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, tool_root: Path) -> OrchestratorConfig:
    """Config with every path under ``tmp_path`` and no waiting."""
    return OrchestratorConfig(
        root=tool_root,
        cache_dir=tmp_path / "npm-cache",
        download_dir=tmp_path / "downloads",
        native_dist_url="https://dist.example.test/releases",
        settle_delay=0,
        lock_wait_timeout=3,
        lock_poll_interval=1,
    )


@pytest.fixture(autouse=True)
def _restore_path(monkeypatch):
    """Installs prepend the root to ``PATH``; undo that after each test."""
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))
