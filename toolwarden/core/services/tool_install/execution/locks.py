"""
L4 Execution — Per-tool advisory install locks.

One lock per tool name, held only while an install or update is in
flight. The lock is a process-local flag backed by a marker file
``<lock_dir>/<name>.lock`` created with ``O_CREAT | O_EXCL`` so that a
second orchestrator process on the same root honours it too.

Markers are advisory: only orchestrator actors look at them. A marker
older than ``stale_after`` seconds is treated as left behind by a
crashed process and taken over.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path

from toolwarden.core.reliability.retry_policy import Sleep

logger = logging.getLogger(__name__)


class LockCoordinator:
    """Grants at most one in-flight operation per tool name.

    Args:
        lock_dir: Directory for marker files (created on demand).
        stale_after: Age in seconds after which a marker is abandoned.
            ``0`` disables staleness.
    """

    def __init__(self, lock_dir: Path, *, stale_after: float = 1800.0) -> None:
        self.lock_dir = Path(lock_dir)
        self.stale_after = stale_after
        self._mutex = threading.Lock()
        self._held: set[str] = set()

    def _marker(self, name: str) -> Path:
        return self.lock_dir / f"{name}.lock"

    def _is_stale(self, marker: Path) -> bool:
        try:
            return self._stale_stat(marker) is not None
        except FileNotFoundError:
            return True

    def _stale_stat(self, marker: Path) -> os.stat_result | None:
        """The marker's stat if it is abandoned, else None."""
        if self.stale_after <= 0:
            return None
        st = marker.stat()
        return st if time.time() - st.st_mtime > self.stale_after else None

    def _claim_stale(self, marker: Path, seen: os.stat_result) -> bool:
        """Move the abandoned marker ``seen`` out of the way.

        The rename is atomic, so of several actors that judged the same
        marker stale only one moves it. If the file moved turns out not
        to be ``seen`` (another actor already replaced it with a live
        marker), it is put back and the claim fails.
        """
        tomb = marker.with_name(f"{marker.name}.{os.getpid()}-{threading.get_ident()}.stale")
        try:
            os.replace(marker, tomb)
        except FileNotFoundError:
            return True  # moved by someone else; O_EXCL decides who wins
        moved = tomb.stat()
        if (moved.st_ino, moved.st_mtime_ns) != (seen.st_ino, seen.st_mtime_ns):
            try:
                os.link(tomb, marker)
            except FileExistsError:
                logger.warning("Live install lock %s was displaced during takeover", marker)
            tomb.unlink(missing_ok=True)
            return False
        tomb.unlink(missing_ok=True)
        logger.warning("Took over stale install lock %s", marker)
        return True

    def _create_marker(self, name: str) -> bool:
        marker = self._marker(name)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                try:
                    seen = self._stale_stat(marker)
                except FileNotFoundError:
                    continue
                if seen is None or not self._claim_stale(marker, seen):
                    return False
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"pid": os.getpid(), "ts": time.time()}, f)
            return True
        return False

    # ── Public API ──────────────────────────────────────────────

    def try_lock(self, name: str) -> bool:
        """Acquire ``name``'s lock without blocking.

        Returns:
            True if this caller now holds the lock.
        """
        with self._mutex:
            if name in self._held:
                return False
            try:
                acquired = self._create_marker(name)
            except OSError as e:
                logger.warning("Cannot create lock marker for '%s': %s", name, e)
                return False
            if acquired:
                self._held.add(name)
                logger.debug("Lock acquired: %s", name)
            return acquired

    def unlock(self, name: str) -> None:
        """Release ``name``'s lock. Releasing a free lock is a no-op."""
        with self._mutex:
            if name not in self._held:
                return
            self._held.discard(name)
            try:
                self._marker(name).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Cannot remove lock marker for '%s': %s", name, e)
            logger.debug("Lock released: %s", name)

    def is_locked(self, name: str) -> bool:
        """Whether anyone (this process or another) holds ``name``."""
        with self._mutex:
            if name in self._held:
                return True
        marker = self._marker(name)
        return marker.exists() and not self._is_stale(marker)

    def held(self) -> list[str]:
        """Names locked by this process."""
        with self._mutex:
            return sorted(self._held)

    def wait_until_released(
        self,
        name: str,
        *,
        timeout: float = 60.0,
        interval: float = 1.0,
        sleep: Sleep = time.sleep,
    ) -> bool:
        """Poll until ``name`` is free or ``timeout`` seconds have passed.

        Returns:
            True if the lock was observed free, False on timeout.
        """
        waited = 0.0
        while self.is_locked(name):
            if waited >= timeout:
                return False
            sleep(interval)
            waited += interval
        return True
