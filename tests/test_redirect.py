"""
Tests for redirect-marker classification and stripping.
"""

import pytest

from authsession.auth.models import NoMarker, SuccessMarker, TokenMarker
from authsession.auth.redirect import classify, strip_markers


class TestClassify:

    def test_token_marker(self):
        outcome, cleaned = classify("http://app.test/home?token=abc123")
        assert outcome == TokenMarker("abc123")
        assert cleaned == "http://app.test/home"

    def test_success_marker(self):
        outcome, cleaned = classify("http://app.test/?auth=success")
        assert outcome == SuccessMarker()
        assert cleaned == "http://app.test/"

    def test_no_marker_leaves_url_untouched(self):
        url = "http://app.test/repos?page=2#top"
        outcome, cleaned = classify(url)
        assert outcome == NoMarker()
        assert cleaned == url

    def test_token_wins_over_success_and_both_stripped(self):
        outcome, cleaned = classify("http://app.test/?auth=success&token=t0k")
        assert outcome == TokenMarker("t0k")
        assert cleaned == "http://app.test/"

    def test_other_params_and_fragment_preserved(self):
        outcome, cleaned = classify("http://app.test/p?x=1&token=t&y=2#frag")
        assert isinstance(outcome, TokenMarker)
        assert cleaned == "http://app.test/p?x=1&y=2#frag"

    def test_other_params_kept_verbatim(self):
        outcome, cleaned = classify("http://app.test/p?next=/repos&flag&q=a%20b&auth=success")
        assert outcome == SuccessMarker()
        assert cleaned == "http://app.test/p?next=/repos&flag&q=a%20b"

    def test_encoded_marker_key_is_recognised(self):
        outcome, cleaned = classify("http://app.test/?x=%2F&%74oken=abc")
        assert outcome == TokenMarker("abc")
        assert cleaned == "http://app.test/?x=%2F"

    def test_auth_with_other_value_is_not_a_marker(self):
        url = "http://app.test/?auth=failure"
        outcome, cleaned = classify(url)
        assert outcome == NoMarker()
        assert cleaned == url

    def test_empty_token_is_stripped_but_ignored(self):
        outcome, cleaned = classify("http://app.test/?token=")
        assert outcome == NoMarker()
        assert cleaned == "http://app.test/"

    @pytest.mark.parametrize("url", [
        "http://app.test/?token=abc123",
        "http://app.test/dash?auth=success&tab=1",
        "http://app.test/?auth=success&token=x#y",
    ])
    def test_stripping_is_idempotent(self, url):
        _, cleaned = classify(url)
        for _ in range(2):
            outcome, again = classify(cleaned)
            assert outcome == NoMarker()
            assert again == cleaned

    def test_token_repr_is_redacted(self):
        assert "secret" not in repr(TokenMarker("secret"))


def test_strip_markers_matches_classify():
    url = "http://app.test/a?token=1&q=search&auth=success"
    assert strip_markers(url) == classify(url)[1] == "http://app.test/a?q=search"
