from __future__ import annotations

import copy
from collections import deque
from threading import Lock
from typing import Any, Deque, Iterable, Mapping

from .errors import QueueExhaustedError
from .stream_events import ScriptedExchange


class StreamServerState:
    """Scripted exchange queue plus the log of inbound create-response bodies.

    Both live behind one lock. The lock is held only for a pop or an append,
    never while a response is being streamed.
    """

    def __init__(self, exchanges: Iterable[ScriptedExchange] = ()) -> None:
        self._lock = Lock()
        self._queue: Deque[ScriptedExchange] = deque(exchanges)
        self._requests: list[dict[str, Any]] = []

    def pop_next_exchange(self) -> ScriptedExchange:
        with self._lock:
            if not self._queue:
                raise QueueExhaustedError("no queued SSE responses")
            return self._queue.popleft()

    def record_request(self, payload: Mapping[str, Any]) -> None:
        snapshot = copy.deepcopy(dict(payload))
        with self._lock:
            self._requests.append(snapshot)

    def requests(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._requests)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)
