"""
Auth Session Package
A client-side session manager for services that authenticate via OAuth
redirect (session cookie or bearer token).

CLI Usage:
    python -m authsession [landing_url] [options]

    Options:
        --login         Sign in through a headed browser window
        --logout        Clear local credentials and log out upstream
        --refresh       Re-validate the stored session
        --base-url      Remote service base address
        --mode          Credential mode: cookie | bearer
        --state-file    Durable token file (default: auth_state.json)
        --debug-http    Log every HTTP request/response
"""

from .auth import (
    CredentialStore,
    ScopeError,
    Session,
    SessionController,
    SessionState,
    StatusFetcher,
    UserProfile,
    classify,
    provide_session,
    session_scope,
    use_session,
)
from .monitor import SessionMetrics, SessionMonitor
from .run_config import SessionConfig
from .utils import RetryHandler

__all__ = [
    'SessionConfig',
    'SessionController',
    'SessionState',
    'Session',
    'UserProfile',
    'StatusFetcher',
    'CredentialStore',
    'classify',
    'provide_session',
    'session_scope',
    'use_session',
    'ScopeError',
    'SessionMonitor',
    'SessionMetrics',
    'RetryHandler',
]

__version__ = '1.0.0'
