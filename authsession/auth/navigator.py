"""
Navigator
=========
The session controller never touches the environment directly. Full-page
navigations (login entry point, post-logout destination) and non-navigating
URL replacement (stripping redirect markers) go through a ``Navigator``.

Implementations:
    - ``LoggingNavigator``    — headless / CLI use; records and logs targets
    - ``PlaywrightNavigator`` — drives a Playwright ``Page`` in a real browser
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from playwright.async_api import Page

logger = logging.getLogger(__name__)


_REPLACE_STATE_JS = "url => window.history.replaceState({}, document.title, url)"


class Navigator(ABC):
    """Environment adapter for navigation side effects."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Leave the current page for *url* (full navigation)."""
        ...

    @abstractmethod
    async def replace_url(self, url: str) -> None:
        """Replace the visible URL without navigating."""
        ...


class LoggingNavigator(Navigator):
    """Records every navigation instead of performing it.

    ``history`` holds ``(kind, url)`` pairs, kind being ``"navigate"`` or
    ``"replace"``; ``current_url`` follows both.
    """

    def __init__(self, current_url: str = ""):
        self.current_url = current_url
        self.history: List[Tuple[str, str]] = []

    async def navigate(self, url: str) -> None:
        logger.info(f"[NAV] Navigate → {url}")
        self.history.append(("navigate", url))
        self.current_url = url

    async def replace_url(self, url: str) -> None:
        logger.debug(f"[NAV] Replace URL → {url}")
        self.history.append(("replace", url))
        self.current_url = url

    @property
    def last_navigation(self) -> Optional[str]:
        for kind, url in reversed(self.history):
            if kind == "navigate":
                return url
        return None


class PlaywrightNavigator(Navigator):
    """Navigator backed by a live Playwright page."""

    def __init__(self, page: Page, *, timeout_ms: int = 30_000):
        self.page = page
        self.timeout_ms = timeout_ms

    async def navigate(self, url: str) -> None:
        logger.info(f"[NAV] Browser navigating → {url[:100]}")
        await self.page.goto(url, wait_until="load", timeout=self.timeout_ms)

    async def replace_url(self, url: str) -> None:
        await self.page.evaluate(_REPLACE_STATE_JS, url)
        logger.debug(f"[NAV] Browser URL replaced → {url[:100]}")
