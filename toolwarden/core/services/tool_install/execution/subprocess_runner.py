"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for package-manager
operations. Logging, timeouts, and output capture are centralised here.

The package manager sits behind the narrow ``PackageManagerRunner``
interface (``run(args, env) -> CommandResult``) so installers can be
driven by a fake in tests without spawning a process.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Keep the tail; npm prints the actual error last.
_OUTPUT_TAIL = 8000


@dataclass
class CommandResult:
    """Outcome of one external command.

    ``output`` is stdout and stderr combined, like a terminal shows it.
    """

    ok: bool
    returncode: int = 0
    output: str = ""
    error: str = ""
    elapsed_ms: int = 0


class PackageManagerRunner(Protocol):
    """Boundary to the external package manager."""

    def run(self, args: list[str], env: dict[str, str] | None = None) -> CommandResult: ...


def _hidden_window_flags() -> int:
    """Keep console windows from flashing up on Windows."""
    if sys.platform == "win32":
        return getattr(subprocess, "CREATE_NO_WINDOW", 0)
    return 0


def build_env(path_prefix: Path | str | None = None, extra: dict[str, str] | None = None) -> dict[str, str]:
    """Copy of ``os.environ`` with ``path_prefix`` prepended to PATH."""
    env = os.environ.copy()
    if path_prefix:
        # Windows env keys are case-insensitive; reuse the existing spelling
        path_key = next((k for k in env if k.upper() == "PATH"), "PATH")
        current = env.get(path_key, "")
        env[path_key] = f"{path_prefix}{os.pathsep}{current}" if current else str(path_prefix)
    if extra:
        for key, value in extra.items():
            env[key] = os.path.expandvars(value)
    return env


def _run_subprocess(
    cmd: list[str],
    *,
    timeout: int = 120,
    env: dict[str, str] | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command, capturing combined output.

    Args:
        cmd: Command list for ``subprocess.run()``.
        timeout: Seconds before ``TimeoutExpired``.
        env: Full environment (defaults to the current one).
        cwd: Working directory for the command.

    Returns:
        ``CommandResult``; never raises for command failures.
    """
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=env,
            cwd=cwd,
            creationflags=_hidden_window_flags(),
        )
    except subprocess.TimeoutExpired as e:
        output = e.output if isinstance(e.output, str) else ""
        return CommandResult(
            ok=False,
            returncode=-1,
            output=output[-_OUTPUT_TAIL:],
            error=f"Command timed out ({timeout}s)",
        )
    except OSError as e:
        logger.warning("Cannot execute %s: %s", cmd[0] if cmd else "?", e)
        return CommandResult(ok=False, returncode=-1, error=str(e))

    elapsed_ms = int((time.monotonic() - start) * 1000)
    output = (result.stdout or "")[-_OUTPUT_TAIL:]

    if result.returncode == 0:
        return CommandResult(ok=True, returncode=0, output=output, elapsed_ms=elapsed_ms)

    return CommandResult(
        ok=False,
        returncode=result.returncode,
        output=output,
        error=f"Command failed (exit {result.returncode})",
        elapsed_ms=elapsed_ms,
    )


class NpmRunner:
    """Runs a resolved ``npm`` executable.

    Args:
        npm_path: Absolute path to npm (``npm.cmd`` on Windows).
        timeout: Per-invocation timeout in seconds.
    """

    def __init__(self, npm_path: str | Path, *, timeout: int = 600) -> None:
        self.npm_path = str(npm_path)
        self.timeout = timeout

    def run(self, args: list[str], env: dict[str, str] | None = None) -> CommandResult:
        cmd = [self.npm_path, *args]
        logger.debug("Running: %s", " ".join(cmd))
        return _run_subprocess(cmd, timeout=self.timeout, env=env)

    def __repr__(self) -> str:
        return f"<NpmRunner {self.npm_path!r}>"


def prepend_process_path(directory: Path | str) -> bool:
    """Put ``directory`` at the front of this process's ``PATH``.

    Child processes spawned afterwards find freshly installed launchers.
    Case-insensitive duplicate check, since Windows paths are.

    Returns:
        True if ``PATH`` changed.
    """
    directory = str(directory)
    if not os.path.isdir(directory):
        return False
    current = os.environ.get("PATH", "")
    parts = [p for p in current.split(os.pathsep) if p]
    if any(os.path.normcase(p) == os.path.normcase(directory) for p in parts):
        return False
    os.environ["PATH"] = os.pathsep.join([directory, *parts])
    logger.debug("PATH extended with %s", directory)
    return True
