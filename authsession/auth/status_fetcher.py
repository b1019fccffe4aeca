"""
Status Fetcher
==============
Asks the remote service "who, if anyone, is authenticated right now".

Exactly one outbound ``GET /api/auth/status`` per ``fetch()``. The
request descriptor is built per call — nothing relies on shared session
default headers — and carries the bearer token when one is given. In
cookie mode the session cookie travels implicitly in the
``requests.Session`` cookie jar.

Outcome classification (the basis of the retry policy):

    =========================================  ======================
    Transport timeout / connection error       ``TransientFailure``
    HTTP 401 / 403                             ``AuthFailure``
    HTTP 408 / 429 / 5xx                       ``TransientFailure``
    Any other non-2xx                          ``ProtocolFailure``
    2xx, malformed body                        ``ProtocolFailure``
    2xx, ``loggedIn: false``                   ``LoggedOut``
    2xx, ``loggedIn: true`` + valid user       ``LoggedIn(user)``
    =========================================  ======================

Nothing raised by ``requests`` escapes this module.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from ..instrumentation import install_debug_hooks, log_request
from ..utils import RetryHandler
from .models import (
    AuthFailure,
    LoggedIn,
    LoggedOut,
    ProtocolFailure,
    StatusResult,
    TransientFailure,
    UserProfile,
)

logger = logging.getLogger(__name__)


AUTH_FAILURE_STATUS_CODES = {401, 403}


@dataclass(frozen=True)
class StatusRequest:
    """Explicit per-call request descriptor."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = 15.0


class StatusFetcher:
    """Performs and classifies the authoritative status query."""

    def __init__(
        self,
        config,
        session: Optional[requests.Session] = None,
        retry_handler: Optional[RetryHandler] = None,
    ):
        """
        Args:
            config:        ``SessionConfig`` with endpoint + timeout settings.
            session:       Transport. A fresh ``requests.Session`` by default;
                           pass one pre-loaded with cookies for cookie mode.
            retry_handler: Only consulted for which status codes are transient.
        """
        self.config = config
        self.session = session if session is not None else requests.Session()
        self._retry = retry_handler or RetryHandler()
        if config.debug_http:
            install_debug_hooks(self.session)

    # ── Request construction ──────────────────────────────────────

    def build_request(self, token: Optional[str] = None, url: Optional[str] = None) -> StatusRequest:
        headers = {
            "Accept": "application/json",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return StatusRequest(
            method="GET",
            url=url or self.config.status_url,
            headers=headers,
            timeout=self.config.request_timeout_s,
        )

    def _send(self, req: StatusRequest) -> requests.Response:
        log_request(req.method, req.url, req.headers, req.timeout)
        return self.session.request(
            req.method, req.url, headers=dict(req.headers), timeout=req.timeout
        )

    # ── Status ────────────────────────────────────────────────────

    def fetch_sync(self, token: Optional[str] = None) -> StatusResult:
        """Blocking status query + classification."""
        req = self.build_request(token)
        try:
            response = self._send(req)
        except requests.Timeout as exc:
            logger.warning(f"[STATUS] Status call timed out: {exc}")
            return TransientFailure(reason=f"timeout: {exc}")
        except requests.ConnectionError as exc:
            logger.warning(f"[STATUS] Connection failed: {exc}")
            return TransientFailure(reason=f"connection: {exc}")
        except requests.RequestException as exc:
            logger.warning(f"[STATUS] Request error: {exc}")
            return TransientFailure(reason=str(exc))

        return self.classify_response(response)

    async def fetch(self, token: Optional[str] = None) -> StatusResult:
        """Run ``fetch_sync`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.fetch_sync, token)

    def classify_response(self, response: requests.Response) -> StatusResult:
        status = response.status_code

        if status in AUTH_FAILURE_STATUS_CODES:
            logger.info(f"[STATUS] Credential rejected (HTTP {status})")
            return AuthFailure(status_code=status)

        if self._retry.is_retryable_status(status):
            logger.warning(f"[STATUS] Transient upstream error (HTTP {status})")
            return TransientFailure(reason=f"HTTP {status}")

        if not 200 <= status < 300:
            logger.error(f"[STATUS] Unexpected status code HTTP {status}")
            return ProtocolFailure(reason=f"HTTP {status}")

        try:
            body = response.json()
        except ValueError as exc:
            logger.error(f"[STATUS] Response body is not JSON: {exc}")
            return ProtocolFailure(reason="body is not JSON")

        if not isinstance(body, dict):
            logger.error("[STATUS] Response body is not a JSON object")
            return ProtocolFailure(reason="body is not an object")

        logged_in = body.get("loggedIn")
        if not isinstance(logged_in, bool):
            logger.error(f"[STATUS] Missing or non-boolean loggedIn: {logged_in!r}")
            return ProtocolFailure(reason="loggedIn missing")

        if not logged_in:
            logger.info("[STATUS] Server reports not logged in")
            return LoggedOut()

        user_data = body.get("user")
        user = UserProfile.from_payload(user_data) if isinstance(user_data, dict) else None
        if user is None:
            logger.error("[STATUS] loggedIn=true without a usable user record")
            return ProtocolFailure(reason="user missing")

        logger.info(f"[STATUS] Logged in as {user.username}")
        return LoggedIn(user=user)

    # ── Logout confirmation ───────────────────────────────────────

    def confirm_logout_sync(self, token: Optional[str] = None) -> bool:
        """Best-effort ``GET /api/auth/logout``. Never raises for transport errors."""
        req = self.build_request(token, url=self.config.logout_url)
        try:
            response = self._send(req)
        except requests.RequestException as exc:
            logger.warning(f"[STATUS] Logout confirmation failed: {exc}")
            return False
        if not 200 <= response.status_code < 300:
            logger.warning(
                f"[STATUS] Logout confirmation returned HTTP {response.status_code}"
            )
            return False
        return True

    async def confirm_logout(self, token: Optional[str] = None) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.confirm_logout_sync, token)

    def close(self) -> None:
        self.session.close()
