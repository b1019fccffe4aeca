"""
Shared fakes for session-controller tests.

The controller only needs ``fetch`` / ``confirm_logout`` from its fetcher
and an awaitable sleep, so both are replaced by scripted in-memory
versions here. Coroutines are driven with ``asyncio.run`` inside plain
test functions.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from authsession.auth.credential_store import CredentialStore
from authsession.auth.models import LoggedOut, Session
from authsession.auth.navigator import LoggingNavigator
from authsession.auth.session_controller import SessionController
from authsession.run_config import SessionConfig


class FakeFetcher:
    """Scripted status fetcher.

    ``results[i]`` answers the i-th call (an exception instance is raised
    instead). Calls beyond the script answer ``LoggedOut``. A gate
    registered for call i makes that call wait until the event is set.
    """

    def __init__(self, results=(), logout_ok=True):
        self.results = list(results)
        self.logout_ok = logout_ok
        self.calls: List[Optional[str]] = []
        self.logout_calls: List[Optional[str]] = []
        self.gates: Dict[int, asyncio.Event] = {}

    async def fetch(self, token=None):
        index = len(self.calls)
        self.calls.append(token)
        gate = self.gates.get(index)
        if gate is not None:
            await gate.wait()
        result = self.results[index] if index < len(self.results) else LoggedOut()
        if isinstance(result, BaseException):
            raise result
        return result

    async def confirm_logout(self, token=None):
        self.logout_calls.append(token)
        if isinstance(self.logout_ok, BaseException):
            raise self.logout_ok
        return self.logout_ok


class RecordingSleep:
    """Records requested delays and only yields to the loop."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class BlockingSleep(RecordingSleep):
    """Never returns; the awaiting task must be cancelled."""

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.Event().wait()


class GatedSleep(RecordingSleep):
    """Waits until ``release()`` is called, then every pending sleep returns."""

    def __init__(self):
        super().__init__()
        self._gate: Optional[asyncio.Event] = None

    def _event(self) -> asyncio.Event:
        if self._gate is None:
            self._gate = asyncio.Event()
        return self._gate

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await self._event().wait()

    def release(self) -> None:
        self._event().set()


@dataclass
class Harness:
    controller: SessionController
    config: SessionConfig
    fetcher: FakeFetcher
    store: CredentialStore
    navigator: LoggingNavigator
    sleep: RecordingSleep
    welcomes: list = field(default_factory=list)
    seen: List[Session] = field(default_factory=list)


@pytest.fixture
def make_harness():
    """Factory: ``make_harness(results, token=..., mode=..., **config_overrides)``."""

    def _make(
        results=(),
        *,
        token: Optional[str] = None,
        mode: str = "bearer",
        logout_ok=True,
        sleep: Optional[RecordingSleep] = None,
        **overrides,
    ) -> Harness:
        config = SessionConfig(
            api_base_url="http://api.test",
            credential_mode=mode,
            **overrides,
        )
        store = CredentialStore()
        if token:
            store.set_token(token)
        fetcher = FakeFetcher(results, logout_ok=logout_ok)
        navigator = LoggingNavigator()
        sleep = sleep or RecordingSleep()
        welcomes: list = []
        controller = SessionController(
            config,
            store=store,
            fetcher=fetcher,
            navigator=navigator,
            on_welcome=welcomes.append,
            sleep=sleep,
        )
        harness = Harness(controller, config, fetcher, store, navigator, sleep, welcomes)

        def _check(session: Session) -> None:
            assert session.user is None or session.is_authenticated
            harness.seen.append(session)

        controller.subscribe(_check)
        return harness

    return _make


@pytest.fixture
def blocking_sleep() -> BlockingSleep:
    return BlockingSleep()


@pytest.fixture
def gated_sleep() -> GatedSleep:
    return GatedSleep()
