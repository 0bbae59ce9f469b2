"""Request correlation IDs carried in a ContextVar."""

from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Incoming IDs end up in logs and response headers
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_correlation_id: ContextVar[str] = ContextVar("staybook_correlation_id", default="")


def get_correlation_id() -> str:
    return _correlation_id.get()


def correlation_id_from_headers(headers: Mapping[str, str]) -> str:
    """Reuse the caller's correlation ID when it is well-formed, else mint one."""
    incoming = headers.get(CORRELATION_ID_HEADER, "")
    if incoming and _SAFE_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind cid for the duration of the block, restoring the previous value."""
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
