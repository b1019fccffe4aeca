"""
Session Data Model
==================
Immutable value types shared by the session subsystem.

    - ``Session``        — snapshot handed to consumers
    - ``UserProfile``    — opaque remote user record (display only)
    - ``SessionState``   — controller state machine position
    - Status results     — ``LoggedIn``, ``LoggedOut``, ``TransientFailure``,
                           ``AuthFailure``, ``ProtocolFailure``
    - Redirect outcomes  — ``NoMarker``, ``SuccessMarker``, ``TokenMarker``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


# ---------------------------------------------------------------------------
# User / session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UserProfile:
    """Remote-supplied user record. Never interpreted beyond display."""

    username: str
    display_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def label(self) -> str:
        return self.display_name or self.username

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> Optional["UserProfile"]:
        """Build from the ``user`` object of a status response.

        Returns None if the record has no usable ``username``.
        """
        username = data.get("username")
        if not isinstance(username, str) or not username:
            return None
        display_name = data.get("displayName")
        extra = {k: v for k, v in data.items() if k not in ("username", "displayName")}
        return cls(
            username=username,
            display_name=str(display_name) if display_name else None,
            extra=extra,
        )


@dataclass(frozen=True)
class Session:
    """Read-only session snapshot.

    ``user`` is only ever set together with ``is_authenticated``.
    """

    is_authenticated: bool = False
    user: Optional[UserProfile] = None
    loading: bool = True

    def __post_init__(self) -> None:
        if self.user is not None and not self.is_authenticated:
            raise ValueError("Session.user requires is_authenticated=True")

    @classmethod
    def initial(cls) -> "Session":
        return cls(is_authenticated=False, user=None, loading=True)

    @classmethod
    def unauthenticated(cls) -> "Session":
        return cls(is_authenticated=False, user=None, loading=False)

    @classmethod
    def authenticated(cls, user: UserProfile) -> "Session":
        return cls(is_authenticated=True, user=user, loading=False)


class SessionState(str, Enum):
    INIT = "init"
    DETERMINING = "determining"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


# ---------------------------------------------------------------------------
# Status fetch results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LoggedIn:
    user: UserProfile


@dataclass(frozen=True)
class LoggedOut:
    pass


@dataclass(frozen=True)
class TransientFailure:
    """Network-level failure (timeout, connection reset, 5xx) — retryable."""
    reason: str = ""


@dataclass(frozen=True)
class AuthFailure:
    """The server rejected the credential (401/403) — never retried."""
    status_code: int = 401


@dataclass(frozen=True)
class ProtocolFailure:
    """Malformed or unexpected response — treated as logged out."""
    reason: str = ""


StatusResult = Union[LoggedIn, LoggedOut, TransientFailure, AuthFailure, ProtocolFailure]


# ---------------------------------------------------------------------------
# Redirect outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoMarker:
    pass


@dataclass(frozen=True)
class SuccessMarker:
    """``auth=success`` — cookie issued upstream, confirm after settling."""


@dataclass(frozen=True)
class TokenMarker:
    """``token=<value>`` — bearer token handed back by the redirect."""
    token: str

    def __repr__(self) -> str:
        return "TokenMarker(token=<redacted>)"


RedirectOutcome = Union[NoMarker, SuccessMarker, TokenMarker]
