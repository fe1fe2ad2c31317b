from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from threading import Condition, Lock
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class _Mailbox:
    """Pending items for one consumer. At most one drain runs at a time."""

    def __init__(self, address: str, handler: Handler, ordered: bool, max_pending: int) -> None:
        self.address = address
        self.handler = handler
        self.ordered = ordered
        self.max_pending = max_pending
        self.items: deque[Any] = deque()
        self.draining = False
        self.lock = Lock()


class EventBus:
    """Named work queues delivered on a bounded thread pool.

    Ordered consumers see their items one at a time in publish order; a slow
    handler holds back the rest of its queue but never other queues.
    Unordered consumers get each item as its own pool task.
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 1000) -> None:
        self.max_pending = max(1, int(max_pending))
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="rsr-bus")
        self._lock = Lock()
        self._consumers: dict[str, list[_Mailbox]] = {}
        self._idle = Condition()
        self._in_flight = 0
        self._closed = False
        self.dropped = 0

    def consumer(self, address: str, handler: Handler, ordered: bool = True) -> None:
        with self._lock:
            self._consumers.setdefault(address, []).append(_Mailbox(address, handler, ordered, self.max_pending))

    def has_consumer(self, address: str) -> bool:
        with self._lock:
            return bool(self._consumers.get(address))

    def publish(self, address: str, payload: Any = None) -> int:
        """Deliver payload to every consumer of address. Returns deliveries accepted."""
        # shutdown() sets _closed under this lock; every submit happens before it is released.
        with self._lock:
            if self._closed:
                return 0
            mailboxes = list(self._consumers.get(address, []))
            if not mailboxes:
                logger.debug("no consumer for %s", address)
                return 0

            accepted = 0
            for mb in mailboxes:
                if not mb.ordered:
                    self._begin()
                    self._pool.submit(self._run_one, mb, payload)
                    accepted += 1
                    continue
                with mb.lock:
                    if len(mb.items) >= mb.max_pending:
                        self.dropped += 1
                        logger.warning("queue %s full (%d pending), dropping item", address, len(mb.items))
                        continue
                    self._begin()
                    mb.items.append(payload)
                    accepted += 1
                    if mb.draining:
                        continue
                    mb.draining = True
                self._pool.submit(self._drain, mb)
            return accepted

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every accepted item has been handled."""
        with self._idle:
            return self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._pool.shutdown(wait=wait)

    def _drain(self, mb: _Mailbox) -> None:
        while True:
            with mb.lock:
                if not mb.items:
                    mb.draining = False
                    return
                payload = mb.items.popleft()
            self._run_one(mb, payload)

    def _run_one(self, mb: _Mailbox, payload: Any) -> None:
        try:
            mb.handler(payload)
        except Exception:
            logger.exception("handler for %s failed", mb.address)
        finally:
            self._end()

    def _begin(self) -> None:
        with self._idle:
            self._in_flight += 1

    def _end(self) -> None:
        with self._idle:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.notify_all()
