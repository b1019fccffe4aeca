"""Exceptions raised by the session subsystem."""


class SessionError(Exception):
    """Base class for session-manager errors."""


class ScopeError(SessionError):
    """A consumer accessor was used outside any active session scope."""
