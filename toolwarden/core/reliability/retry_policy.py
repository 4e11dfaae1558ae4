"""
Retry policies — bounded retries with an enumerated backoff schedule.

Every retry loop in the installers goes through a named ``RetryPolicy``
so the attempt count and the exact delays are part of the contract.
Tests pass a recording ``sleep`` to simulate exhaustion without waiting.

Schedules:
    PREINSTALL_REMOVE   3 attempts, 1s between         (stale package dir)
    INSTALL_RECOVERY    2 attempts, no delay            (one retry after cleanup)
    UPDATE_LOCK         3 attempts, 2s then 4s          (progressive backoff)
    NATIVE_REPLACE      3 attempts, 1s between          (locked old binary)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], None]


@dataclass(frozen=True)
class RetryPolicy:
    """A fixed retry schedule.

    Args:
        name: Identifier used in log lines.
        delays: Seconds to wait before attempt 2, 3, ... The number of
            attempts is ``len(delays) + 1``.
    """

    name: str
    delays: tuple[float, ...] = ()

    @property
    def max_attempts(self) -> int:
        return len(self.delays) + 1

    def attempts(self, sleep: Sleep = time.sleep) -> Iterator[int]:
        """Yield attempt numbers (1-based), sleeping between them.

        Callers ``break`` on success; falling off the end means the
        policy is exhausted.
        """
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.delays[attempt - 2]
                logger.debug(
                    "Retry '%s': attempt %d/%d after %.1fs",
                    self.name, attempt, self.max_attempts, delay,
                )
                if delay > 0:
                    sleep(delay)
            yield attempt

    def call(
        self,
        fn: Callable[[], T],
        *,
        retry_on: tuple[type[BaseException], ...] = (OSError,),
        sleep: Sleep = time.sleep,
    ) -> T:
        """Run ``fn`` until it returns, re-raising the last error when exhausted."""
        last_exc: BaseException | None = None
        for attempt in self.attempts(sleep):
            try:
                return fn()
            except retry_on as exc:
                last_exc = exc
                if attempt < self.max_attempts:
                    logger.info(
                        "Retry '%s': attempt %d/%d failed: %s",
                        self.name, attempt, self.max_attempts, exc,
                    )
        logger.warning(
            "Retry '%s' exhausted after %d attempts", self.name, self.max_attempts,
        )
        assert last_exc is not None
        raise last_exc


PREINSTALL_REMOVE = RetryPolicy("preinstall-remove", delays=(1.0, 1.0))
INSTALL_RECOVERY = RetryPolicy("install-recovery", delays=(0.0,))
UPDATE_LOCK = RetryPolicy("update-lock", delays=(2.0, 4.0))
NATIVE_REPLACE = RetryPolicy("native-replace", delays=(1.0, 1.0))

# ENOTEMPTY: wait for the locking process to let go before forced removal.
NOT_EMPTY_SETTLE_S = 2.0
