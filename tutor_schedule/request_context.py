from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


# Label of the route being served; engine calls outside a request report 'background'.
current_endpoint: ContextVar[str] = ContextVar('current_endpoint', default='background')


@contextmanager
def endpoint_scope(label: str) -> Iterator[str]:
    token = current_endpoint.set(label)
    try:
        yield label
    finally:
        current_endpoint.reset(token)
