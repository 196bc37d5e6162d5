"""The user on whose behalf tools act, held in a context variable."""

import contextvars
from contextlib import contextmanager
from typing import Iterator

from dispute_engine.config import settings


_acting_user: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "acting_user", default=None
)


def get_current_user_id() -> str:
    """Acting user of the current context, else the configured default.

    Raises:
        RuntimeError: Neither is available
    """
    user_id = _acting_user.get() or settings.default_user_id
    if not user_id:
        raise RuntimeError("No acting user; call set_current_user_id() first")
    return user_id


def set_current_user_id(user_id: str) -> contextvars.Token:
    return _acting_user.set(user_id)


def reset_current_user_id(token: contextvars.Token) -> None:
    _acting_user.reset(token)


@contextmanager
def acting_as(user_id: str) -> Iterator[str]:
    """Run a block as ``user_id``, restoring the previous user afterwards."""
    token = set_current_user_id(user_id)
    try:
        yield user_id
    finally:
        reset_current_user_id(token)
