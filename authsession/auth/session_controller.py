"""
Session Controller
==================
The session lifecycle state machine.

    INIT ──start()──► DETERMINING ──► AUTHENTICATED
                          ▲   │
                          │   └─────► UNAUTHENTICATED
                          └── refresh() from either terminal state

Responsibilities:
    1. Classify the landing URL (redirect markers) exactly once on start
    2. Persist a redirected bearer token / schedule the settling delay
    3. Run determination cycles against the ``StatusFetcher`` with a
       bounded retry budget for transient failures
    4. Emit the welcome side effect at most once per tab session
    5. Expose ``login()`` / ``logout()`` / ``refresh()`` and a read-only
       ``Session`` snapshot with change notifications

Ordering:
    Every determination cycle carries a generation number. A result, or a
    wake-up after a settle/backoff delay, belonging to a superseded
    generation is discarded, so a late response can never overwrite state
    produced by a newer cycle, a logout or a login redirect. In-flight
    HTTP calls are not aborted, only ignored.

Usage::

    controller = SessionController(SessionConfig.from_env())
    dispose = await controller.start(landing_url)
    await controller.wait_until_settled()
    print(controller.session)
    dispose()
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Awaitable, Callable, List, Optional, Set

from ..monitor import SessionMonitor
from ..utils import RetryHandler
from .credential_store import CredentialStore
from .models import (
    AuthFailure,
    LoggedIn,
    LoggedOut,
    ProtocolFailure,
    Session,
    SessionState,
    SuccessMarker,
    TokenMarker,
    TransientFailure,
    UserProfile,
)
from .navigator import LoggingNavigator, Navigator
from .redirect import classify
from .status_fetcher import StatusFetcher

logger = logging.getLogger(__name__)


WelcomeSink = Callable[[UserProfile], None]
SessionListener = Callable[[Session], None]
SleepFunc = Callable[[float], Awaitable[None]]


def log_welcome(user: UserProfile) -> None:
    """Default welcome sink."""
    logger.info(f"[SESSION] Welcome, {user.label}!")


class SessionController:
    """Owns the ``Session`` and every transition applied to it."""

    def __init__(
        self,
        config,
        *,
        store: Optional[CredentialStore] = None,
        fetcher: Optional[StatusFetcher] = None,
        navigator: Optional[Navigator] = None,
        on_welcome: Optional[WelcomeSink] = None,
        monitor: Optional[SessionMonitor] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """
        Args:
            config:     ``SessionConfig`` (base address, delays, retry budget).
            store:      Token + welcome-flag storage. File-backed by default.
            fetcher:    Status query implementation.
            navigator:  Environment adapter for navigation / URL replacement.
            on_welcome: Notification sink called with the user on first login.
            monitor:    Lifecycle counters.
            sleep:      Awaitable delay (``asyncio.sleep``); injectable for tests.
        """
        self.config = config
        self.store = store if store is not None else CredentialStore.from_config(config)
        self.fetcher = fetcher if fetcher is not None else StatusFetcher(config)
        self.navigator = navigator if navigator is not None else LoggingNavigator()
        self.on_welcome = on_welcome or log_welcome
        self.monitor = monitor or SessionMonitor()
        self._sleep = sleep or asyncio.sleep
        self._retry = RetryHandler(
            max_retries=config.max_retries,
            base_delay=config.retry_backoff_s,
            max_delay=config.retry_max_delay_s,
            exponential_base=config.retry_backoff_factor,
            jitter=config.retry_jitter,
        )

        self._session = Session.initial()
        self._state = SessionState.INIT
        self._generation = 0
        self._started = False
        self._disposed = False
        self._cycle_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[SessionListener] = []

    # ── Read-only state ───────────────────────────────────────────

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with every new ``Session``. Returns an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start(self, current_url: str = "") -> Callable[[], None]:
        """Classify *current_url* and kick off the first determination.

        Must be called exactly once, from a running event loop. Returns
        the disposer (``dispose``), which halts pending retry timers.
        """
        if self._started:
            raise RuntimeError("SessionController.start() may only be called once")
        if self._disposed:
            raise RuntimeError("SessionController has been disposed")
        self._started = True

        outcome, cleaned_url = classify(current_url)
        if cleaned_url != current_url:
            try:
                await self.navigator.replace_url(cleaned_url)
            except Exception as exc:
                logger.error(f"[SESSION] Could not strip redirect markers from URL: {exc}")

        if isinstance(outcome, TokenMarker):
            if self.config.uses_bearer:
                self.store.set_token(outcome.token)
                logger.info("[SESSION] Token received via redirect — verifying")
                self._begin_cycle(marker_token=outcome.token)
            else:
                logger.warning("[SESSION] Token marker ignored in cookie mode")
                self._begin_cycle()
        elif isinstance(outcome, SuccessMarker):
            logger.info(
                f"[SESSION] Returned from OAuth — verifying in {self.config.settle_delay_s}s"
            )
            self._begin_cycle(
                settle_delay=self.config.settle_delay_s,
                after_success_marker=True,
            )
        elif self.config.uses_bearer and not self.store.get_token():
            logger.info("[SESSION] No stored token — unauthenticated (no status call)")
            self._transition(Session.unauthenticated(), SessionState.UNAUTHENTICATED)
        else:
            self._begin_cycle()

        return self.dispose

    def dispose(self) -> None:
        """Cancel pending cycles and ignore any late results. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        logger.debug(f"[SESSION] Disposed ({len(pending)} pending cycle(s) cancelled)")

    async def wait_until_settled(self) -> Session:
        """Await the latest determination cycle, following newer ones."""
        while self._cycle_task is not None and not self._cycle_task.done():
            await asyncio.wait({self._cycle_task})
        return self._session

    # ── Actions ───────────────────────────────────────────────────

    def refresh(self) -> asyncio.Task:
        """Re-validate the session (no redirect re-classification)."""
        if not self._started:
            raise RuntimeError("SessionController.refresh() called before start()")
        if self._disposed:
            raise RuntimeError("SessionController has been disposed")
        logger.info("[SESSION] Manual refresh requested")
        return self._begin_cycle()

    async def login(self) -> None:
        """Clear the welcome flag and navigate to the login entry point."""
        self.store.clear_welcome_flag()
        self._supersede("login redirect")
        logger.info("[SESSION] Redirecting to login entry point")
        try:
            await self.navigator.navigate(self.config.login_url)
        except Exception as exc:
            logger.error(f"[SESSION] Login navigation failed: {exc}")
            # Navigation did not leave the page; determine again
            if self._started and not self._disposed:
                self._begin_cycle()

    async def logout(self) -> bool:
        """Drop all local credentials, then confirm upstream on a best-effort basis.

        The session is unauthenticated as soon as this is called; the
        remote confirmation only decides where to navigate afterwards.

        Returns:
            True if the remote service confirmed the logout.
        """
        token = self.store.get_token()
        self.store.clear_token()
        self.store.clear_welcome_flag()
        self._supersede("logout")
        self._transition(Session.unauthenticated(), SessionState.UNAUTHENTICATED)

        try:
            confirmed = await self.fetcher.confirm_logout(
                token if self.config.uses_bearer else None
            )
        except Exception as exc:
            logger.error(f"[SESSION] Logout confirmation error: {exc}")
            confirmed = False

        if confirmed:
            target = self.config.post_logout_destination
        else:
            # Let the server clear its own cookie via a full navigation
            target = self.config.logout_url
        try:
            await self.navigator.navigate(target)
        except Exception as exc:
            logger.error(f"[SESSION] Post-logout navigation failed: {exc}")
        return confirmed

    # ── Determination ─────────────────────────────────────────────

    def _begin_cycle(
        self,
        *,
        settle_delay: float = 0.0,
        after_success_marker: bool = False,
        marker_token: Optional[str] = None,
    ) -> asyncio.Task:
        self._generation += 1
        generation = self._generation
        self.monitor.record_cycle()

        current = self._session
        self._transition(
            Session(current.is_authenticated, current.user, loading=True),
            SessionState.DETERMINING,
        )

        task = asyncio.get_running_loop().create_task(
            self._determine(generation, settle_delay, after_success_marker, marker_token)
        )
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._on_cycle_done, generation))
        self._cycle_task = task
        return task

    def _is_stale(self, generation: int) -> bool:
        return self._disposed or generation != self._generation

    async def _determine(
        self,
        generation: int,
        settle_delay: float,
        after_success_marker: bool,
        marker_token: Optional[str],
    ) -> None:
        if settle_delay > 0:
            await self._sleep(settle_delay)

        attempt = 0
        while True:
            if self._is_stale(generation):
                logger.debug(f"[SESSION] Cycle {generation} superseded before fetch")
                self.monitor.record_discarded()
                return

            token = self.store.get_token() if self.config.uses_bearer else None
            self.monitor.record_status_call()
            logger.info(
                f"[SESSION] Fetching auth status (cycle {generation}, attempt {attempt + 1})"
            )
            result = await self.fetcher.fetch(token)

            if self._is_stale(generation):
                logger.debug(f"[SESSION] Discarding stale result from cycle {generation}")
                self.monitor.record_discarded()
                return

            if isinstance(result, LoggedIn):
                self._apply_logged_in(result.user)
                return

            if isinstance(result, AuthFailure):
                logger.warning(
                    f"[SESSION] Credential rejected (HTTP {result.status_code}) — purging token"
                )
                self.store.clear_token()
                self._transition(Session.unauthenticated(), SessionState.UNAUTHENTICATED)
                return

            if isinstance(result, ProtocolFailure):
                logger.error(f"[SESSION] Malformed status response: {result.reason}")
                self._apply_logged_out(marker_token)
                return

            retryable = isinstance(result, TransientFailure) or (
                after_success_marker and isinstance(result, LoggedOut)
            )
            if retryable and self._retry.can_retry(attempt):
                delay = self._retry.calculate_delay(attempt)
                attempt += 1
                self.monitor.record_retry()
                if isinstance(result, TransientFailure):
                    logger.warning(
                        f"[SESSION] Transient failure ({result.reason}) — "
                        f"retry {attempt}/{self._retry.max_retries} in {delay:.1f}s"
                    )
                else:
                    logger.info(
                        f"[SESSION] Auth expected but not found — "
                        f"retry {attempt}/{self._retry.max_retries} in {delay:.1f}s"
                    )
                await self._sleep(delay)
                continue

            if isinstance(result, TransientFailure):
                logger.warning("[SESSION] Retry budget exhausted — treating as logged out")
            self._apply_logged_out(marker_token)
            return

    def _apply_logged_in(self, user: UserProfile) -> None:
        if not self.store.get_welcome_flag():
            self.store.set_welcome_flag()
            self.monitor.record_welcome()
            try:
                self.on_welcome(user)
            except Exception as exc:
                logger.error(f"[SESSION] Welcome notification failed: {exc}")
        self._transition(Session.authenticated(user), SessionState.AUTHENTICATED)

    def _apply_logged_out(self, marker_token: Optional[str]) -> None:
        if marker_token is not None and self.store.get_token() == marker_token:
            logger.info("[SESSION] Redirect token not accepted — discarding it")
            self.store.clear_token()
        self._transition(Session.unauthenticated(), SessionState.UNAUTHENTICATED)

    def _on_cycle_done(self, generation: int, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(f"[SESSION] Determination cycle {generation} crashed: {exc!r}")
        if not self._is_stale(generation):
            self._transition(Session.unauthenticated(), SessionState.UNAUTHENTICATED)

    def _supersede(self, reason: str) -> None:
        self._generation += 1
        logger.debug(f"[SESSION] In-flight cycles superseded by {reason}")

    # ── State publication ─────────────────────────────────────────

    def _transition(self, session: Session, state: SessionState) -> None:
        self._session = session
        self._state = state
        self.monitor.record_transition(state.value)
        logger.debug(
            f"[SESSION] → {state.value} (authenticated={session.is_authenticated}, "
            f"loading={session.loading})"
        )
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as exc:
                logger.error(f"[SESSION] Session listener failed: {exc}")
