"""
Session Module
==============
Client-side authentication session lifecycle.

Architecture:
    - ``SessionController`` — state machine (start / refresh / login / logout)
    - ``StatusFetcher``     — the single authoritative status query
    - ``CredentialStore``   — durable token + tab-scoped welcome flag
    - ``classify``          — redirect-marker interpreter (pure)
    - ``Navigator``         — environment adapter for navigation side effects
    - ``use_session``       — consumer accessor (raises ``ScopeError`` unscoped)

Usage::

    from authsession.auth import SessionController, provide_session, use_session

    controller = SessionController(SessionConfig.from_env())
    async with provide_session(controller, landing_url):
        session = use_session()
        await session.wait_until_settled()
"""

from .consumer import SessionHandle, provide_session, session_scope, use_session
from .credential_store import CredentialStore, JsonFileStorage, KeyValueStorage, MemoryStorage
from .errors import ScopeError, SessionError
from .models import (
    AuthFailure,
    LoggedIn,
    LoggedOut,
    NoMarker,
    ProtocolFailure,
    Session,
    SessionState,
    SuccessMarker,
    TokenMarker,
    TransientFailure,
    UserProfile,
)
from .navigator import LoggingNavigator, Navigator, PlaywrightNavigator
from .redirect import classify, strip_markers
from .session_controller import SessionController, log_welcome
from .status_fetcher import StatusFetcher, StatusRequest

__all__ = [
    # Controller + consumer
    "SessionController",
    "SessionHandle",
    "provide_session",
    "session_scope",
    "use_session",
    "log_welcome",
    # Collaborators
    "StatusFetcher",
    "StatusRequest",
    "CredentialStore",
    "KeyValueStorage",
    "MemoryStorage",
    "JsonFileStorage",
    "Navigator",
    "LoggingNavigator",
    "PlaywrightNavigator",
    "classify",
    "strip_markers",
    # Model
    "Session",
    "SessionState",
    "UserProfile",
    "LoggedIn",
    "LoggedOut",
    "TransientFailure",
    "AuthFailure",
    "ProtocolFailure",
    "NoMarker",
    "SuccessMarker",
    "TokenMarker",
    # Errors
    "SessionError",
    "ScopeError",
]
