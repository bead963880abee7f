"""
Correlation ids for log lines.

Work the bridge starts on its own (an MQTT message, a refresh pass, a state
reply from a bulb, process start-up) runs in a scope whose id names where it
came from, e.g. `mqtt-4f1c2a9be03d`. Scopes live in a contextvar, so
concurrent tasks keep separate ids.
"""

from __future__ import annotations

import contextvars
import functools
import uuid
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

__all__ = [
    "correlated",
    "correlation_scope",
    "ensure_correlation_id",
    "get_correlation_id",
    "log_tag",
    "new_correlation_id",
    "set_correlation_id",
]

_current: contextvars.ContextVar[str | None] = contextvars.ContextVar("lifx_correlation_id", default=None)


def new_correlation_id(origin: str = "task") -> str:
    return f"{origin}-{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> str | None:
    return _current.get()


def set_correlation_id(correlation_id: str | None) -> contextvars.Token[str | None]:
    return _current.set(correlation_id)


def log_tag() -> str:
    """Id shown in human-readable log lines, `-` outside any scope."""
    return _current.get() or "-"


@contextmanager
def correlation_scope(origin: str = "task", correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under its own correlation id.

    A fresh `<origin>-<hex>` id is used unless one is given. The enclosing id
    comes back when the block exits, even on error.

    Example:
        with correlation_scope("refresh"):
            await bridge.refresh_all()
    """
    token = _current.set(correlation_id or new_correlation_id(origin))
    try:
        yield _current.get() or ""
    finally:
        _current.reset(token)


def correlated[**P, R](origin: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorate a coroutine function so each call gets its own scope."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with correlation_scope(origin):
                return await func(*args, **kwargs)

        return wrapper

    return decorator


def ensure_correlation_id(origin: str = "task") -> str:
    """Return the current id, starting one for entry points that have none."""
    current = _current.get()
    if current is None:
        current = new_correlation_id(origin)
        _ = _current.set(current)
    return current
