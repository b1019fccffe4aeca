#!/usr/bin/env python3
"""
Auth Session CLI
================
Resolves the current session against the remote service and prints it.

    python -m authsession                                  # stored credentials
    python -m authsession "http://app.local/?token=abc"    # landing URL with redirect marker
    python -m authsession --login                          # headed browser sign-in
    python -m authsession --logout

All configuration flows through ``SessionConfig``: flags override
``AUTH_*`` environment variables (a ``.env`` file is loaded first),
which override the canonical defaults.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .auth.browser_login import launch_login_browser, load_browser_cookies, wait_for_redirect
from .auth.credential_store import CredentialStore
from .auth.models import Session
from .auth.navigator import LoggingNavigator, PlaywrightNavigator
from .auth.session_controller import SessionController
from .auth.status_fetcher import StatusFetcher
from .run_config import SessionConfig

logger = logging.getLogger(__name__)


def _load_env() -> None:
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )


def print_session(session: Session, controller: SessionController) -> None:
    """Print session summary."""
    print("\n" + "=" * 50)
    print("SESSION")
    print("=" * 50)
    print(f"  State:          {controller.state.value}")
    print(f"  Authenticated:  {session.is_authenticated}")
    if session.user:
        print(f"  User:           {session.user.label} ({session.user.username})")
    metrics = controller.monitor.snapshot()
    print(f"  Status calls:   {metrics.status_calls}")
    if metrics.retries:
        print(f"  Retries:        {metrics.retries}")
    print("=" * 50)
    controller.monitor.log_summary()


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------

async def _run_status(cfg: SessionConfig, url: str, refresh: bool) -> Session:
    controller = SessionController(
        cfg,
        store=CredentialStore.from_config(cfg),
        fetcher=StatusFetcher(cfg),
        navigator=LoggingNavigator(url),
    )
    dispose = await controller.start(url)
    try:
        session = await controller.wait_until_settled()
        if refresh:
            controller.refresh()
            session = await controller.wait_until_settled()
        print_session(session, controller)
        return session
    finally:
        dispose()


async def _run_logout(cfg: SessionConfig) -> Session:
    controller = SessionController(cfg, navigator=LoggingNavigator())
    confirmed = await controller.logout()
    print(f"\n  Logged out locally. Remote confirmation: {'ok' if confirmed else 'failed'}")
    print(f"  Next page: {controller.navigator.last_navigation}")
    return controller.session


async def _run_browser_login(cfg: SessionConfig) -> Session:
    fetcher = StatusFetcher(cfg)
    async with launch_login_browser() as page:
        controller = SessionController(
            cfg,
            fetcher=fetcher,
            navigator=PlaywrightNavigator(page),
        )
        await controller.login()
        landing_url = await wait_for_redirect(page, timeout_s=cfg.browser_login_timeout_s)
        if landing_url is None:
            print("\n  Sign-in did not complete — session unchanged.")
            return controller.session

        if not cfg.uses_bearer:
            load_browser_cookies(await page.context.cookies(), fetcher.session)

        dispose = await controller.start(landing_url)
        try:
            session = await controller.wait_until_settled()
            print_session(session, controller)
            return session
        finally:
            dispose()


# ---------------------------------------------------------------------------
# Flag-driven entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m authsession',
        description='Resolve, refresh or end an authenticated session against a remote service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m authsession                                   # Use stored token / cookie
  python -m authsession "http://localhost:3000/?token=x"  # Consume a redirect marker
  python -m authsession --login                           # Browser sign-in
  python -m authsession --logout --base-url https://api.example.com
        """
    )
    parser.add_argument('url', nargs='?', default='', help='Landing URL (may carry auth=success / token=...)')

    action = parser.add_mutually_exclusive_group()
    action.add_argument('--login', action='store_true', help='Sign in through a headed browser window')
    action.add_argument('--logout', action='store_true', help='Clear local credentials and log out upstream')
    action.add_argument('--refresh', action='store_true', help='Re-validate after the initial determination')

    conn = parser.add_argument_group('Connection')
    conn.add_argument('--base-url', type=str, metavar='URL', help='Remote service base address (AUTH_API_BASE_URL)')
    conn.add_argument('--mode', choices=['cookie', 'bearer'], help='Credential mode (AUTH_CREDENTIAL_MODE)')
    conn.add_argument('--state-file', type=str, metavar='PATH', help='Durable token file (AUTH_STATE_FILE)')
    conn.add_argument('--post-logout-url', type=str, metavar='URL', help='Where to go after logout')

    diag = parser.add_argument_group('Diagnostics')
    diag.add_argument('--debug-http', action='store_true', help='Log every HTTP request/response')
    diag.add_argument('-v', '--verbose', action='store_true', help='DEBUG logging')
    return parser


def run_cli_with_args(argv=None) -> int:
    """Parse argv, build SessionConfig, run. Returns the process exit code."""
    _load_env()
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cfg = SessionConfig.from_cli_args(args, base=SessionConfig.from_env())
    except ValueError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2
    cfg.log_summary()

    if args.login:
        session = asyncio.run(_run_browser_login(cfg))
    elif args.logout:
        asyncio.run(_run_logout(cfg))
        return 0
    else:
        session = asyncio.run(_run_status(cfg, args.url, args.refresh))

    return 0 if session.is_authenticated else 1


if __name__ == '__main__':
    sys.exit(run_cli_with_args())
