"""
L4 Execution — Filesystem removal with bounded retries.

Windows keeps files of a just-exited process (or an antivirus scan)
locked for a moment; removals here retry on ``OSError`` according to a
named ``RetryPolicy`` instead of failing on the first attempt.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
import time
from pathlib import Path

from toolwarden.core.reliability.retry_policy import RetryPolicy, Sleep

logger = logging.getLogger(__name__)


def _clear_readonly(func, path, _exc) -> None:
    """``rmtree`` error hook: drop the read-only bit and retry once."""
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD)
    func(path)


def force_remove_tree(path: Path) -> None:
    """Remove a directory tree, clearing read-only bits as needed.

    Raises:
        OSError: If something in the tree cannot be removed.
    """
    if not path.exists() and not path.is_symlink():
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_clear_readonly)
    else:
        shutil.rmtree(path, onerror=_clear_readonly)


def remove_tree(path: Path, policy: RetryPolicy, *, sleep: Sleep = time.sleep) -> bool:
    """Best-effort tree removal under ``policy``.

    Returns:
        True when the path is gone, False when every attempt failed
        (the failure is logged, not raised).
    """
    try:
        policy.call(lambda: force_remove_tree(path), sleep=sleep)
    except OSError as e:
        logger.warning(
            "Could not fully remove %s after %d attempts: %s",
            path, policy.max_attempts, e,
        )
        return False
    return True


def remove_file(path: Path, policy: RetryPolicy, *, sleep: Sleep = time.sleep) -> None:
    """Remove one file under ``policy``; missing files are fine.

    Raises:
        OSError: When the file is still present after the last attempt.
    """
    policy.call(lambda: path.unlink(missing_ok=True), sleep=sleep)


def discard(path: Path) -> None:
    """Delete a scratch file, ignoring absence and logging other errors."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)
