"""
HTTP Debug Instrumentation
==========================
Request/response logging for the auth transport.

Installed on a ``requests.Session`` as a response hook, so every call
made through that session (status checks, logout confirmation) is logged
at DEBUG with method, URL, status code and elapsed time. Header values
that carry credentials are redacted; bodies are never logged.
"""

from __future__ import annotations

import logging

import requests

from .utils import redact_headers

logger = logging.getLogger(__name__)

_HOOK_MARKER = "_authsession_debug_hook"


def log_request(method: str, url: str, headers=None, timeout=None) -> None:
    """Log an outbound request descriptor (headers redacted)."""
    logger.debug(
        f"[HTTP] → {method} {url} timeout={timeout} "
        f"headers={redact_headers(headers)}"
    )


def _log_response(response: requests.Response, *args, **kwargs) -> requests.Response:
    request = response.request
    elapsed_ms = response.elapsed.total_seconds() * 1000 if response.elapsed else 0.0
    logger.debug(
        f"[HTTP] ← {request.method if request else '?'} {response.url} "
        f"status={response.status_code} ({elapsed_ms:.0f} ms)"
    )
    return response


setattr(_log_response, _HOOK_MARKER, True)


def install_debug_hooks(session: requests.Session) -> requests.Session:
    """Attach the response logger to *session* (idempotent)."""
    hooks = session.hooks.setdefault("response", [])
    if not any(getattr(h, _HOOK_MARKER, False) for h in hooks):
        hooks.append(_log_response)
        logger.debug("[HTTP] Debug hooks installed")
    return session
