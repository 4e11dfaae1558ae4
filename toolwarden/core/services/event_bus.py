"""
EventBus — thread-safe, in-process progress sink with bounded replay.

The orchestrator reports phase boundaries here (``tool-checking``,
``tool-installing`` ... ``tools-install-done``). The presentation layer
attaches in one of two ways:

- **Observers** — objects with ``on_progress(event)``, passed to the
  constructor or added with ``add_observer()``. Called synchronously on
  the publishing thread, outside the lock.
- **Streams** — ``stream()`` yields events from a private queue, for
  consumers living on another thread.

Thread safety model
───────────────────
- ``_lock`` protects ``_seq``, ``_buffer``, ``_queues``, ``_latest``.
- Each stream gets its own ``queue.Queue``; the publisher pushes into
  all of them under the lock and drops any that are full.
- An observer that raises is logged and skipped; it never breaks the
  install that published the event.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from typing import Any, Generator, Iterable, Iterator, Protocol

from toolwarden.core.models.event import TOOLS_DONE, ProgressEvent

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1


class ProgressObserver(Protocol):
    """Anything that wants progress events pushed to it."""

    def on_progress(self, event: ProgressEvent) -> None: ...


class EventBus:
    """Thread-safe progress sink with bounded replay buffer.

    Parameters
    ----------
    observers : iterable of ProgressObserver
        Observers registered at construction.
    buffer_size : int
        Maximum number of events kept for ``events_since()``.
    stream_queue_size : int
        Maximum backlog per ``stream()`` consumer.
    """

    def __init__(
        self,
        observers: Iterable[ProgressObserver] = (),
        *,
        buffer_size: int = 500,
        stream_queue_size: int = 200,
    ) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._buffer: deque[ProgressEvent] = deque(maxlen=buffer_size)
        self._observers: list[ProgressObserver] = list(observers)
        self._queues: list[queue.Queue[ProgressEvent]] = []
        self._stream_queue_size = stream_queue_size
        self._latest: dict[str, ProgressEvent] = {}  # tool → latest event

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Current sequence number (monotonically increasing)."""
        with self._lock:
            return self._seq

    # ── Observers ───────────────────────────────────────────────

    def add_observer(self, observer: ProgressObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    # ── Publishing ──────────────────────────────────────────────

    def publish(
        self,
        event_type: str,
        *,
        key: str = "",
        error: str = "",
        data: dict[str, Any] | None = None,
    ) -> ProgressEvent:
        """Broadcast an event to observers and streams.

        Parameters
        ----------
        event_type : str
            One of the ``tool-*`` / ``tools-install-done`` signals.
        key : str
            Tool name. Empty for pass-level events.
        error : str
            Failure message for ``tool-failed``.
        data : dict | None
            Optional payload (versions, paths).

        Returns
        -------
        ProgressEvent
            The event with ``seq`` assigned.
        """
        with self._lock:
            self._seq += 1
            event = ProgressEvent(
                v=_SCHEMA_VERSION,
                ts=time.time(),
                seq=self._seq,
                type=event_type,
                key=key,
                error=error,
                data=data or {},
            )
            self._buffer.append(event)
            if key:
                self._latest[key] = event

            dead: list[queue.Queue[ProgressEvent]] = []
            for q in self._queues:
                try:
                    q.put_nowait(event)
                except queue.Full:
                    dead.append(q)
            for q in dead:
                self._queues.remove(q)
                logger.info("Dropped unresponsive event stream (queue full)")

            observers = list(self._observers)

        # Notify outside the lock (observers may publish or block)
        for observer in observers:
            try:
                observer.on_progress(event)
            except Exception:
                logger.exception("Progress observer %r failed on %s", observer, event_type)

        extra = f" error={error[:80]}" if error else ""
        logger.debug("event %s key=%s%s", event_type, key or "-", extra)
        return event

    # ── Reading ─────────────────────────────────────────────────

    def events_since(self, seq: int = 0) -> list[ProgressEvent]:
        """Buffered events with ``seq`` greater than ``seq``."""
        with self._lock:
            return [e for e in self._buffer if e.seq > seq]

    def snapshot(self) -> dict[str, ProgressEvent]:
        """Latest event per tool name."""
        with self._lock:
            return dict(self._latest)

    def stream(
        self,
        *,
        since: int | None = None,
        timeout: float | None = None,
        until: str | None = TOOLS_DONE,
    ) -> Iterator[ProgressEvent]:
        """Subscribe now; iterate to receive events.  Blocks between events.

        The subscription is registered before this returns, so nothing
        published after the call is missed even if iteration starts later.

        Parameters
        ----------
        since : int | None
            Replay buffered events newer than this sequence first.
            ``None`` means live events only.
        timeout : float | None
            Stop when no event arrives for this many seconds.
        until : str | None
            Stop after yielding an event of this type.
        """
        q: queue.Queue[ProgressEvent] = queue.Queue(maxsize=self._stream_queue_size)
        with self._lock:
            backlog = [e for e in self._buffer if e.seq > since] if since is not None else []
            self._queues.append(q)
        return self._drain(q, backlog, timeout, until)

    def _drain(
        self,
        q: queue.Queue[ProgressEvent],
        backlog: list[ProgressEvent],
        timeout: float | None,
        until: str | None,
    ) -> Generator[ProgressEvent, None, None]:
        try:
            for event in backlog:
                yield event
                if until and event.type == until:
                    return
            while True:
                try:
                    event = q.get(timeout=timeout)
                except queue.Empty:
                    return
                if backlog and event.seq <= backlog[-1].seq:
                    continue
                yield event
                if until and event.type == until:
                    return
        finally:
            with self._lock:
                if q in self._queues:
                    self._queues.remove(q)
