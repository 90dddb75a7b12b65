"""Binding of the inbound caller credential to the current execution context."""

from __future__ import annotations

import contextvars
import hashlib
from contextlib import contextmanager
from typing import Iterator, Optional


_caller_credential_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "caller_credential", default=None
)


def get_caller_credential() -> Optional[str]:
    return _caller_credential_var.get()


@contextmanager
def caller_credential(token: Optional[str]) -> Iterator[None]:
    """Bind ``token`` as the caller credential for the duration of the block."""

    reset_token = _caller_credential_var.set(token)
    try:
        yield
    finally:
        _caller_credential_var.reset(reset_token)


def parse_bearer(header: Optional[str]) -> Optional[str]:
    """Extract the credential from an ``Authorization: Bearer`` header value."""

    if not header:
        return None
    scheme, _, value = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    value = value.strip()
    return value or None


def fingerprint(token: str) -> str:
    """Short, non-reversible identifier safe to put in logs and cache keys."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()
