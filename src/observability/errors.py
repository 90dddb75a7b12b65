"""Ring buffer of recent tool failures surfaced via admin APIs."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Any, Deque, Dict, List

from observability.context import get_log_context, get_request_id


class GatewayError(Exception):
    """Base class for failures reported to callers with a ``kind`` tag."""

    kind = "gateway_error"


class ErrorRecorder:
    def __init__(self, max_entries: int = 200) -> None:
        self._buffer: Deque[Dict[str, Any]] = deque(maxlen=max_entries)
        self._lock = Lock()

    def record(
        self,
        *,
        event: str,
        message: str,
        error_type: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "timestamp": int(time.time()),
            "event": event,
            "message": message,
            "request_id": get_request_id(),
        }
        entry.update(get_log_context())
        if error_type:
            entry["error_type"] = error_type
        if details:
            entry["details"] = details
        with self._lock:
            self._buffer.appendleft(entry)

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._buffer)

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()


error_recorder = ErrorRecorder()


__all__ = ["error_recorder", "ErrorRecorder", "GatewayError"]
