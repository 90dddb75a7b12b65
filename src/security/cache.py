"""Concurrency-safe cache of exchanged downstream tokens."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

from security.context import fingerprint
from security.models import DownstreamToken


class TokenCache:
    """Stores downstream tokens keyed by a hash of the caller credential.

    A token is only served while more than ``refresh_margin`` seconds remain
    before it expires; otherwise the entry is dropped and the caller has to
    exchange again.
    """

    def __init__(
        self,
        refresh_margin: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._entries: Dict[Tuple[str, str], DownstreamToken] = {}
        self._lock = asyncio.Lock()

    async def get(self, credential: str, scope: str) -> Optional[DownstreamToken]:
        key = (fingerprint(credential), scope)
        async with self._lock:
            token = self._entries.get(key)
            if token is None:
                return None
            if token.expires_at - self._clock() <= self._refresh_margin:
                del self._entries[key]
                return None
            return token

    async def put(self, credential: str, token: DownstreamToken) -> None:
        key = (fingerprint(credential), token.scope)
        async with self._lock:
            self._entries[key] = token
            self._purge_expired()

    def __len__(self) -> int:
        return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        for key, token in list(self._entries.items()):
            if token.expires_at <= now:
                self._entries.pop(key, None)
