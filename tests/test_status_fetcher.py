"""
Tests for status-call construction and outcome classification.

The transport is a ``MagicMock`` standing in for ``requests.Session``;
no network traffic is generated.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from authsession.auth.models import (
    AuthFailure,
    LoggedIn,
    LoggedOut,
    ProtocolFailure,
    TransientFailure,
    UserProfile,
)
from authsession.auth.status_fetcher import StatusFetcher
from authsession.run_config import SessionConfig


def _response(status=200, body=None, json_error=False):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    if json_error:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = body
    return resp


def _fetcher(response=None, exc=None, **overrides):
    session = MagicMock()
    if exc is not None:
        session.request.side_effect = exc
    else:
        session.request.return_value = response
    config = SessionConfig(api_base_url="http://api.test", **overrides)
    return StatusFetcher(config, session=session), session


class TestRequestDescriptor:

    def test_bearer_header_and_cache_busting(self):
        fetcher, _ = _fetcher()
        req = fetcher.build_request("abc")
        assert req.method == "GET"
        assert req.url == "http://api.test/api/auth/status"
        assert req.headers["Authorization"] == "Bearer abc"
        assert req.headers["Cache-Control"] == "no-cache"
        assert req.headers["Pragma"] == "no-cache"
        assert req.timeout == 15.0

    def test_no_authorization_without_token(self):
        fetcher, _ = _fetcher()
        assert "Authorization" not in fetcher.build_request(None).headers

    def test_single_call_with_descriptor(self):
        fetcher, session = _fetcher(_response(200, {"loggedIn": False}), request_timeout_s=5)
        fetcher.fetch_sync("tok")
        session.request.assert_called_once()
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://api.test/api/auth/status")
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Authorization"] == "Bearer tok"


class TestClassification:

    def test_logged_in(self):
        body = {"loggedIn": True, "user": {"username": "alice", "displayName": "Alice", "id": 7}}
        fetcher, _ = _fetcher(_response(200, body))
        result = fetcher.fetch_sync("t")
        assert result == LoggedIn(UserProfile("alice", "Alice"))
        assert result.user.extra == {"id": 7}
        assert result.user.label == "Alice"

    def test_logged_out(self):
        fetcher, _ = _fetcher(_response(200, {"loggedIn": False}))
        assert fetcher.fetch_sync() == LoggedOut()

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure(self, status):
        fetcher, _ = _fetcher(_response(status))
        assert fetcher.fetch_sync("t") == AuthFailure(status)

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_transient_status_codes(self, status):
        fetcher, _ = _fetcher(_response(status))
        assert isinstance(fetcher.fetch_sync("t"), TransientFailure)

    def test_other_client_error_is_protocol_failure(self):
        fetcher, _ = _fetcher(_response(404))
        assert isinstance(fetcher.fetch_sync("t"), ProtocolFailure)

    @pytest.mark.parametrize("exc", [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
        requests.TooManyRedirects("loop"),
    ])
    def test_transport_errors_are_transient(self, exc):
        fetcher, _ = _fetcher(exc=exc)
        assert isinstance(fetcher.fetch_sync("t"), TransientFailure)

    @pytest.mark.parametrize("response", [
        _response(200, json_error=True),
        _response(200, ["not", "an", "object"]),
        _response(200, {"user": {"username": "x"}}),
        _response(200, {"loggedIn": "yes"}),
        _response(200, {"loggedIn": True}),
        _response(200, {"loggedIn": True, "user": {"displayName": "No Name"}}),
    ])
    def test_malformed_bodies_are_protocol_failures(self, response):
        fetcher, _ = _fetcher(response)
        assert isinstance(fetcher.fetch_sync("t"), ProtocolFailure)

    def test_async_fetch_runs_in_executor(self):
        body = {"loggedIn": True, "user": {"username": "bob"}}
        fetcher, session = _fetcher(_response(200, body))
        result = asyncio.run(fetcher.fetch("t"))
        assert result == LoggedIn(UserProfile("bob"))
        session.request.assert_called_once()


class TestLogoutConfirmation:

    def test_success(self):
        fetcher, session = _fetcher(_response(200))
        assert fetcher.confirm_logout_sync("t") is True
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://api.test/api/auth/logout")
        assert kwargs["headers"]["Authorization"] == "Bearer t"

    def test_server_error(self):
        fetcher, _ = _fetcher(_response(500))
        assert fetcher.confirm_logout_sync() is False

    def test_transport_error(self):
        fetcher, _ = _fetcher(exc=requests.ConnectionError("down"))
        assert asyncio.run(fetcher.confirm_logout()) is False


def test_debug_hooks_installed_once():
    session = requests.Session()
    cfg = SessionConfig(debug_http=True)
    StatusFetcher(cfg, session=session)
    StatusFetcher(cfg, session=session)
    assert len(session.hooks["response"]) == 1
