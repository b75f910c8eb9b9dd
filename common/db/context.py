"""
Session binding for the current task.

``transaction()`` binds its session here, so every repository call made inside
it reuses that session however deep the call chain goes. ``readonly`` marks a
whole call chain as read-only; sessions opened under it never commit.

    @readonly
    async def compute_invoice(account_id: int):
        ...
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Iterator, Optional, ParamSpec, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class BoundSession:
    session: AsyncSession
    readonly: bool


_bound_session: ContextVar[Optional[BoundSession]] = ContextVar(
    "db_bound_session", default=None
)
_force_readonly: ContextVar[bool] = ContextVar("db_force_readonly", default=False)


def is_readonly_forced() -> bool:
    return _force_readonly.get()


def current_session(readonly: bool = False) -> Optional[AsyncSession]:
    """
    The session of the enclosing transaction, if it can serve this caller.

    A write transaction serves readers too (they see its uncommitted rows); a
    readonly transaction never serves a writer.
    """
    bound = _bound_session.get()
    if bound is None:
        return None
    if bound.readonly and not (readonly or is_readonly_forced()):
        return None
    return bound.session


@contextmanager
def bind_session(session: AsyncSession, readonly: bool = False) -> Iterator[AsyncSession]:
    token = _bound_session.set(BoundSession(session=session, readonly=readonly))
    try:
        yield session
    finally:
        _bound_session.reset(token)


P = ParamSpec("P")
T = TypeVar("T")


def readonly(func: Callable[P, T]) -> Callable[P, T]:
    """Run the decorated coroutine with every session it opens forced readonly."""

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        token = _force_readonly.set(True)
        try:
            return await func(*args, **kwargs)
        finally:
            _force_readonly.reset(token)

    return wrapper
