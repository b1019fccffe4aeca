"""
Unified Session Configuration
=============================
Single source of truth for ALL session-manager defaults and endpoints.

Every module (CLI, status fetcher, session controller, browser login)
reads from this object. CLI flags and environment variables populate it;
nothing else holds the remote base address.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .utils import join_url

logger = logging.getLogger(__name__)


CREDENTIAL_MODES = ("cookie", "bearer")


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "api_base_url": "http://localhost:5000",
    "status_path": "/api/auth/status",
    "login_path": "/api/auth/github",
    "logout_path": "/api/auth/logout",
    "post_logout_url": "",            # empty = api_base_url root
    "credential_mode": "bearer",      # "cookie" | "bearer"
    "state_file": "auth_state.json",
    "token_key": "authToken",
    "welcome_key": "hasWelcomed",
    "request_timeout_s": 15.0,
    "settle_delay_s": 1.0,            # wait after auth=success before first status call
    "retry_backoff_s": 2.0,
    "max_retries": 2,
    "retry_backoff_factor": 1.0,      # 1.0 = fixed backoff
    "retry_max_delay_s": 30.0,
    "retry_jitter": False,
    "browser_login_timeout_s": 300.0,
    "debug_http": False,
}

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class SessionConfig:
    """
    Unified configuration consumed by every session subsystem.

    Populate via:
      - ``SessionConfig()``                  → all defaults
      - ``SessionConfig(max_retries=0)``     → override one value
      - ``SessionConfig.from_env()``         → from AUTH_* environment variables
      - ``SessionConfig.from_cli_args(ns)``  → from argparse Namespace
    """

    # ---- Remote service ----
    api_base_url: str = _DEFAULTS["api_base_url"]
    status_path: str = _DEFAULTS["status_path"]
    login_path: str = _DEFAULTS["login_path"]
    logout_path: str = _DEFAULTS["logout_path"]
    post_logout_url: str = _DEFAULTS["post_logout_url"]

    # ---- Credential handling ----
    credential_mode: str = _DEFAULTS["credential_mode"]
    state_file: str = _DEFAULTS["state_file"]
    token_key: str = _DEFAULTS["token_key"]
    welcome_key: str = _DEFAULTS["welcome_key"]

    # ---- Timing / retry ----
    request_timeout_s: float = _DEFAULTS["request_timeout_s"]
    settle_delay_s: float = _DEFAULTS["settle_delay_s"]
    retry_backoff_s: float = _DEFAULTS["retry_backoff_s"]
    max_retries: int = _DEFAULTS["max_retries"]
    retry_backoff_factor: float = _DEFAULTS["retry_backoff_factor"]
    retry_max_delay_s: float = _DEFAULTS["retry_max_delay_s"]
    retry_jitter: bool = _DEFAULTS["retry_jitter"]
    browser_login_timeout_s: float = _DEFAULTS["browser_login_timeout_s"]

    # ---- Diagnostics ----
    debug_http: bool = _DEFAULTS["debug_http"]

    def __post_init__(self) -> None:
        self.credential_mode = (self.credential_mode or "").strip().lower()
        if self.credential_mode not in CREDENTIAL_MODES:
            raise ValueError(
                f"credential_mode must be one of {CREDENTIAL_MODES}, "
                f"got {self.credential_mode!r}"
            )
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_backoff_factor < 1.0:
            raise ValueError("retry_backoff_factor must be >= 1.0")
        self.api_base_url = self.api_base_url.rstrip("/")

    # -----------------------------------------------------------------------
    # Derived endpoints
    # -----------------------------------------------------------------------
    @property
    def uses_bearer(self) -> bool:
        return self.credential_mode == "bearer"

    @property
    def status_url(self) -> str:
        return join_url(self.api_base_url, self.status_path)

    @property
    def login_url(self) -> str:
        return join_url(self.api_base_url, self.login_path)

    @property
    def logout_url(self) -> str:
        return join_url(self.api_base_url, self.logout_path)

    @property
    def post_logout_destination(self) -> str:
        return self.post_logout_url or self.api_base_url + "/"

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "SessionConfig":
        """Build config from ``AUTH_*`` environment variables.

        Unset or blank variables fall back to the canonical defaults.
        """
        env = os.environ if environ is None else environ

        def _get(name: str) -> str:
            return (env.get(name, "") or "").strip()

        kwargs = {}
        if _get("AUTH_API_BASE_URL"):
            kwargs["api_base_url"] = _get("AUTH_API_BASE_URL")
        if _get("AUTH_CREDENTIAL_MODE"):
            kwargs["credential_mode"] = _get("AUTH_CREDENTIAL_MODE")
        if _get("AUTH_STATE_FILE"):
            kwargs["state_file"] = _get("AUTH_STATE_FILE")
        if _get("AUTH_POST_LOGOUT_URL"):
            kwargs["post_logout_url"] = _get("AUTH_POST_LOGOUT_URL")
        if _get("AUTH_REQUEST_TIMEOUT"):
            kwargs["request_timeout_s"] = float(_get("AUTH_REQUEST_TIMEOUT"))
        if _get("AUTH_SETTLE_DELAY"):
            kwargs["settle_delay_s"] = float(_get("AUTH_SETTLE_DELAY"))
        if _get("AUTH_RETRY_BACKOFF"):
            kwargs["retry_backoff_s"] = float(_get("AUTH_RETRY_BACKOFF"))
        if _get("AUTH_MAX_RETRIES"):
            kwargs["max_retries"] = int(_get("AUTH_MAX_RETRIES"))
        if _get("AUTH_RETRY_BACKOFF_FACTOR"):
            kwargs["retry_backoff_factor"] = float(_get("AUTH_RETRY_BACKOFF_FACTOR"))
        if _get("AUTH_RETRY_MAX_DELAY"):
            kwargs["retry_max_delay_s"] = float(_get("AUTH_RETRY_MAX_DELAY"))
        if _get("AUTH_RETRY_JITTER"):
            kwargs["retry_jitter"] = _get("AUTH_RETRY_JITTER").lower() in _TRUE_VALUES
        if _get("AUTH_DEBUG_HTTP"):
            kwargs["debug_http"] = _get("AUTH_DEBUG_HTTP").lower() in _TRUE_VALUES
        return cls(**kwargs)

    @classmethod
    def from_cli_args(cls, args, base: Optional["SessionConfig"] = None) -> "SessionConfig":
        """Build config from an argparse Namespace (``__main__.py``).

        Flags that were not given keep the value from *base* (usually
        ``from_env()``), so the precedence is flags → env → defaults.
        """
        cfg = base or cls()
        return cls(
            api_base_url=getattr(args, "base_url", None) or cfg.api_base_url,
            status_path=cfg.status_path,
            login_path=cfg.login_path,
            logout_path=cfg.logout_path,
            post_logout_url=getattr(args, "post_logout_url", None) or cfg.post_logout_url,
            credential_mode=getattr(args, "mode", None) or cfg.credential_mode,
            state_file=getattr(args, "state_file", None) or cfg.state_file,
            token_key=cfg.token_key,
            welcome_key=cfg.welcome_key,
            request_timeout_s=cfg.request_timeout_s,
            settle_delay_s=cfg.settle_delay_s,
            retry_backoff_s=cfg.retry_backoff_s,
            max_retries=cfg.max_retries,
            retry_backoff_factor=cfg.retry_backoff_factor,
            retry_max_delay_s=cfg.retry_max_delay_s,
            retry_jitter=cfg.retry_jitter,
            browser_login_timeout_s=cfg.browser_login_timeout_s,
            debug_http=getattr(args, "debug_http", False) or cfg.debug_http,
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("SESSION CONFIG")
        logger.info("=" * 60)
        logger.info(f"  API Base:         {self.api_base_url}")
        logger.info(f"  Credential Mode:  {self.credential_mode}")
        logger.info(f"  Status Endpoint:  {self.status_path}")
        logger.info(f"  Login Entry:      {self.login_path}")
        logger.info(f"  Post-Logout:      {self.post_logout_destination}")
        if self.uses_bearer:
            logger.info(f"  Token State:      {self.state_file}")
        logger.info(f"  Timeout:          {self.request_timeout_s}s per status call")
        logger.info(f"  Retries:          {self.max_retries} (backoff {self.retry_backoff_s}s)")
        if self.retry_backoff_factor != 1.0 or self.retry_jitter:
            logger.info(
                f"  Backoff Growth:   x{self.retry_backoff_factor} "
                f"(cap {self.retry_max_delay_s}s, jitter={self.retry_jitter})"
            )
        logger.info(f"  Settle Delay:     {self.settle_delay_s}s after auth=success")
        if self.debug_http:
            logger.info(f"  HTTP Debug:       Enabled")
        logger.info("=" * 60)
