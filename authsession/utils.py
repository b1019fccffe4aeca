"""
Utility Functions
Retry policy, URL query manipulation, and header redaction helpers.
"""

import logging
import random
from typing import Dict, Mapping, Optional
from urllib.parse import parse_qsl, unquote_plus, urlparse, urlunparse

logger = logging.getLogger(__name__)


# Header names whose values must never reach a log line
SENSITIVE_HEADERS = {'authorization', 'cookie', 'set-cookie', 'proxy-authorization'}


class RetryHandler:
    """
    Bounded retry policy for status determination.

    Unlike a general-purpose retry loop this class never sleeps or calls
    anything itself; the session controller asks it whether another
    attempt is allowed and how long to wait, and owns the actual waiting
    so superseded cycles can be abandoned between attempts.
    """

    # HTTP status codes that indicate a transient upstream condition
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        exponential_base: float = 1.0,
        jitter: bool = False
    ):
        """
        Initialize the retry handler.

        Args:
            max_retries: Maximum number of retry attempts after the first call
            base_delay: Delay before the first retry in seconds
            max_delay: Upper bound for any single delay
            exponential_base: Growth factor per attempt (1.0 = fixed backoff)
            jitter: Add random jitter (±25%) to each delay
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay before retry number ``attempt + 1``.

        Args:
            attempt: Retries already performed (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)

    def can_retry(self, attempt: int) -> bool:
        """True while the attempt budget is not exhausted."""
        return attempt < self.max_retries

    def is_retryable_status(self, status_code: int) -> bool:
        """True for status codes that should be classified as transient."""
        return status_code in self.RETRYABLE_STATUS_CODES or 500 <= status_code < 600


def join_url(base: str, path: str) -> str:
    """Join an absolute base address and an absolute path without doubling slashes."""
    if not path:
        return base
    if path.startswith(('http://', 'https://')):
        return path
    return base.rstrip('/') + '/' + path.lstrip('/')


def remove_query_params(url: str, should_remove) -> str:
    """
    Drop query parameters for which ``should_remove(key, value)`` is True.

    Remaining parameters are kept byte-for-byte in their original order
    (encoding, blank values and bare keys included); path and fragment are
    untouched. If nothing is removed the URL is returned unchanged.

    Args:
        url: URL to clean
        should_remove: Predicate over (key, value)

    Returns:
        The cleaned URL
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url

    segments = [s for s in parsed.query.split('&') if s]
    kept = []
    for segment in segments:
        key, _, value = segment.partition('=')
        if not should_remove(unquote_plus(key), unquote_plus(value)):
            kept.append(segment)
    if len(kept) == len(segments):
        return url

    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        '&'.join(kept),
        parsed.fragment
    ))


def query_params(url: str) -> Dict[str, str]:
    """Return the first value of each query parameter (blank values kept)."""
    params: Dict[str, str] = {}
    for key, value in parse_qsl(urlparse(url).query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def redact_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Copy *headers* with sensitive values replaced by ``<redacted>``."""
    if not headers:
        return {}
    return {
        k: ('<redacted>' if k.lower() in SENSITIVE_HEADERS else v)
        for k, v in headers.items()
    }
