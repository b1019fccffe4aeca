"""
Redirect Interpreter
====================
Recognises OAuth-completion markers on the URL the user lands on after
the remote service redirects back.

Markers:
    - ``token=<value>``  → ``TokenMarker`` (bearer deployments)
    - ``auth=success``   → ``SuccessMarker`` (cookie deployments)

``classify`` is pure: it returns the outcome together with the URL that
should replace the visible one. Applying the replacement (history API,
Playwright page, ...) is the caller's job, see ``navigator.py``.
"""

from __future__ import annotations

import logging
from typing import Tuple

from ..utils import query_params, remove_query_params
from .models import NoMarker, RedirectOutcome, SuccessMarker, TokenMarker

logger = logging.getLogger(__name__)


TOKEN_PARAM = "token"
AUTH_PARAM = "auth"
AUTH_SUCCESS_VALUE = "success"


def _is_marker(key: str, value: str) -> bool:
    if key == TOKEN_PARAM:
        return True
    return key == AUTH_PARAM and value == AUTH_SUCCESS_VALUE


def strip_markers(url: str) -> str:
    """Return *url* without redirect markers (other parameters kept)."""
    return remove_query_params(url, _is_marker)


def classify(url: str) -> Tuple[RedirectOutcome, str]:
    """Classify *url* and compute its marker-free replacement.

    A non-empty ``token`` wins over ``auth=success`` when both are present.
    Running ``classify`` on its own cleaned output always yields
    ``NoMarker`` and the same URL.

    Returns:
        ``(outcome, cleaned_url)``
    """
    params = query_params(url)
    cleaned = strip_markers(url)

    token = params.get(TOKEN_PARAM, "")
    if token:
        logger.info("[REDIRECT] Token marker found on landing URL")
        return TokenMarker(token=token), cleaned

    if params.get(AUTH_PARAM) == AUTH_SUCCESS_VALUE:
        logger.info("[REDIRECT] auth=success marker found on landing URL")
        return SuccessMarker(), cleaned

    if cleaned != url:
        logger.debug("[REDIRECT] Empty token parameter stripped")
    return NoMarker(), cleaned
