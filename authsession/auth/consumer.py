"""
Consumer Interface
==================
The surface the rest of the application uses to read the session and
trigger actions. Consumers never mutate the session; they only see
snapshots and call ``login`` / ``logout`` / ``refresh``.

A controller is bound to the current context with ``session_scope`` (or
``provide_session``, which also starts and disposes it). Scopes nest and
are task-local. ``use_session()`` outside any scope raises ``ScopeError``.

Usage::

    async with provide_session(controller, landing_url):
        session = use_session()
        await session.wait_until_settled()
        if session.is_authenticated:
            print(session.user.label)
"""

from __future__ import annotations

import asyncio
import contextvars
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Callable, Iterator, Optional

from .errors import ScopeError
from .models import Session, UserProfile
from .session_controller import SessionController, SessionListener

_ACTIVE_CONTROLLER: contextvars.ContextVar[Optional[SessionController]] = (
    contextvars.ContextVar("authsession_active_controller", default=None)
)


class SessionHandle:
    """Read-only view of a controller plus its action callables.

    Only ``use_session()`` is scope-checked. A handle kept after its scope
    exits stays bound to the same controller; once that controller is
    disposed, reads return the last snapshot and ``refresh()`` raises
    ``RuntimeError``.
    """

    def __init__(self, controller: SessionController):
        self._controller = controller

    @property
    def snapshot(self) -> Session:
        return self._controller.session

    @property
    def is_authenticated(self) -> bool:
        return self._controller.session.is_authenticated

    @property
    def user(self) -> Optional[UserProfile]:
        return self._controller.session.user

    @property
    def loading(self) -> bool:
        return self._controller.session.loading

    async def login(self) -> None:
        await self._controller.login()

    async def logout(self) -> bool:
        return await self._controller.logout()

    def refresh(self) -> asyncio.Task:
        return self._controller.refresh()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self._controller.subscribe(listener)

    async def wait_until_settled(self) -> Session:
        return await self._controller.wait_until_settled()


@contextmanager
def session_scope(controller: SessionController) -> Iterator[SessionHandle]:
    """Bind *controller* as the active one for the enclosed block."""
    token = _ACTIVE_CONTROLLER.set(controller)
    try:
        yield SessionHandle(controller)
    finally:
        _ACTIVE_CONTROLLER.reset(token)


@asynccontextmanager
async def provide_session(
    controller: SessionController, current_url: str = ""
) -> AsyncIterator[SessionHandle]:
    """Start *controller*, bind it, and dispose it on exit."""
    dispose = await controller.start(current_url)
    try:
        with session_scope(controller) as handle:
            yield handle
    finally:
        dispose()


def use_session() -> SessionHandle:
    """Return a handle to the innermost active controller.

    Raises:
        ScopeError: when called outside ``session_scope`` / ``provide_session``.
    """
    controller = _ACTIVE_CONTROLLER.get()
    if controller is None:
        raise ScopeError("use_session() must be used within a session scope")
    return SessionHandle(controller)
