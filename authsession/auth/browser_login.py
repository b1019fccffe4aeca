"""
Browser Login
=============
Launches a headed (visible) browser so the user can complete the remote
OAuth flow, including MFA / consent screens that cannot be automated.

Workflow:
    1. Launch headed Chromium
    2. ``SessionController.login()`` navigates it to the login entry point
    3. The user signs in with the provider
    4. ``wait_for_redirect`` blocks until the browser lands on a URL that
       carries a redirect marker (``token=`` or ``auth=success``)
    5. Browser cookies are copied into the ``requests`` transport (cookie
       mode) and the controller is started with the landing URL

Usage::

    async with launch_login_browser() as page:
        controller = SessionController(config, navigator=PlaywrightNavigator(page))
        await controller.login()
        landing_url = await wait_for_redirect(page, timeout_s=300)
        load_browser_cookies(await page.context.cookies(), fetcher.session)
        await controller.start(landing_url)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

import requests
from playwright.async_api import Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .models import NoMarker
from .redirect import classify

logger = logging.getLogger(__name__)


_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


def _has_redirect_marker(url: str) -> bool:
    outcome, _ = classify(url)
    return not isinstance(outcome, NoMarker)


@asynccontextmanager
async def launch_login_browser(
    *,
    headless: bool = False,
    viewport_width: int = 1280,
    viewport_height: int = 900,
) -> AsyncIterator[Page]:
    """Yield a fresh page in a headed Chromium; everything is closed on exit."""
    pw = await async_playwright().start()
    browser = None
    context = None
    try:
        browser = await pw.chromium.launch(
            headless=headless,
            args=['--no-sandbox', '--disable-dev-shm-usage'],
        )
        context = await browser.new_context(
            viewport={"width": viewport_width, "height": viewport_height},
            locale="en-US",
            user_agent=_USER_AGENT,
        )
        page = await context.new_page()
        logger.info("[BROWSER] Login browser ready")
        yield page
    finally:
        if context:
            try:
                await context.close()
            except Exception as exc:
                logger.debug(f"[BROWSER] Context close error: {exc}")
        if browser:
            try:
                await browser.close()
            except Exception as exc:
                logger.debug(f"[BROWSER] Browser close error: {exc}")
        await pw.stop()


async def wait_for_redirect(page: Page, timeout_s: float = 300.0) -> Optional[str]:
    """Wait until *page* lands on a URL carrying a redirect marker.

    Returns:
        The landing URL, or None if the user did not finish in time.
    """
    print("\n" + "=" * 60)
    print("  Complete the sign-in in the browser window.")
    print(f"  Waiting up to {timeout_s / 60:.0f} minutes for the redirect back...")
    print("=" * 60 + "\n")

    if _has_redirect_marker(page.url):
        return page.url
    try:
        await page.wait_for_url(_has_redirect_marker, timeout=timeout_s * 1000)
    except PlaywrightTimeout:
        logger.warning(f"[BROWSER] No redirect marker within {timeout_s:.0f}s")
        return None
    logger.info("[BROWSER] Redirect back from the auth provider detected")
    return page.url


def load_browser_cookies(cookies: List[Dict], session: requests.Session) -> int:
    """Copy Playwright cookies into a ``requests`` cookie jar.

    Cookie values are never logged.

    Returns:
        Number of cookies copied.
    """
    count = 0
    for cookie in cookies:
        name = cookie.get("name")
        if not name:
            continue
        session.cookies.set(
            name,
            cookie.get("value", ""),
            domain=cookie.get("domain") or "",
            path=cookie.get("path") or "/",
            secure=bool(cookie.get("secure", False)),
        )
        count += 1
    domains = sorted({c.get("domain", "") for c in cookies if c.get("name")})
    logger.info(f"[BROWSER] Loaded {count} cookie(s) for {', '.join(domains[:5]) or 'no domains'}")
    return count
