"""Shared browser utilities and the persistent browser session manager."""

import contextvars
import os
import re
import subprocess
import sys
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from playwright.async_api import async_playwright

from .config import GeminiConfig, is_debug_logging_enabled
from .exceptions import BrowserLaunchError, BrowserNotConnectedError, ProfileLockedError

# Track if we've already checked/installed Chromium this session
_chromium_installed = False

# Context variable for current operation (e.g., "connect", "generate")
_log_context: contextvars.ContextVar[str | None] = contextvars.ContextVar("log_context", default=None)


@contextmanager
def log_context(name: str):
    """Set logging context for a block of code. All logs will include this context."""
    token = _log_context.set(name)
    try:
        yield
    finally:
        _log_context.reset(token)


def log(msg, symbol="▸"):
    """Log with timestamp, context, and symbol."""
    ts = datetime.now().strftime("%H:%M:%S")
    ctx = _log_context.get()
    ctx_str = f" {ctx}:" if ctx else ""
    print(f"[geminikit {ts}]{ctx_str} {symbol} {msg}")


def debug_log(msg, symbol="⌘"):
    """Log only when GEMINIKIT_DEBUG=1 is set."""
    if is_debug_logging_enabled():
        log(msg, symbol)


def ensure_chromium_installed():
    """Install Playwright Chromium if not already installed."""
    global _chromium_installed
    if _chromium_installed:
        return

    # Get install location from dry-run
    result = subprocess.run(
        [sys.executable, "-m", "playwright", "install", "chromium", "--dry-run"],
        capture_output=True,
        text=True,
    )

    match = re.search(r"Install location:\s+(\S+)", result.stdout)
    if match and os.path.isdir(match.group(1)):
        _chromium_installed = True
        return

    log("Installing Playwright Chromium (first run)...", "◈")
    try:
        subprocess.run([sys.executable, "-m", "playwright", "install", "chromium"], check=True)
        log("Chromium installed successfully", "✓")
    except (OSError, subprocess.CalledProcessError) as e:
        log(f"Failed to install Chromium: {e}", "✕")
        raise BrowserLaunchError(f"Failed to install Playwright Chromium: {e}") from e

    _chromium_installed = True


def check_browser_health() -> tuple[bool, str | None]:
    """Check if Chromium can launch headless. Returns (ready, error)."""
    try:
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True)
            browser.close()
        return True, None
    except Exception as e:
        error_str = str(e)
        if "install-deps" in error_str:
            return False, "Missing system dependencies. Run: sudo playwright install-deps"
        return False, error_str.split("\n")[0]


# Stealth script to remove webdriver flag (minimal to avoid triggering more challenges)
STEALTH_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
"""

# Fragments of Chromium launch errors caused by another process owning the profile
PROFILE_LOCK_MARKERS = ("singletonlock", "processsingleton", "profile appears to be in use")


class GeminiBrowser:
    """Owns one persistent Chromium context and its single active page.

    The profile directory keeps cookies and local storage between runs, so a
    login done once in a visible window is reused by later headless runs.
    Only one process may use a profile directory at a time; Chromium enforces
    this with a lock file and launching against a locked profile fails with
    ProfileLockedError.

        async with GeminiBrowser(config) as browser:
            await browser.page.goto("https://gemini.google.com/app")
    """

    def __init__(self, config: GeminiConfig | None = None, playwright_factory=async_playwright):
        self.config = config or GeminiConfig()
        self._playwright_factory = playwright_factory
        self.playwright: Any = None
        self.context: Any = None
        self._page: Any = None
        self.console_messages: list[dict] = []
        self.network_errors: list[dict] = []

    @property
    def connected(self) -> bool:
        return self.context is not None

    @property
    def page(self):
        if self._page is None:
            raise BrowserNotConnectedError()
        return self._page

    async def connect(self, headless: bool = True):
        """Launch the persistent context and open exactly one fresh page."""
        from .debug import cleanup_old_dumps
        from .session import ensure_profile_dir

        if self.connected:
            await self.disconnect()

        profile_dir = ensure_profile_dir(self.config.profile_dir)
        cleanup_old_dumps(self.config.debug_dir)
        ensure_chromium_installed()

        vp = self.config.viewport
        mode = "headless" if headless else "visible"
        log(f"Starting browser ({mode}, {vp['width']}x{vp['height']})...", "◈")
        debug_log(f"Profile: {profile_dir}")

        self.playwright = await self._playwright_factory().start()
        try:
            self.context = await self.playwright.chromium.launch_persistent_context(
                str(profile_dir),
                headless=headless,
                viewport=vp,
                args=self.config.launch_args,
            )
        except Exception as e:
            await self._stop_playwright()
            reason = str(e).split("\n")[0]
            if any(marker in str(e).lower() for marker in PROFILE_LOCK_MARKERS):
                raise ProfileLockedError(str(profile_dir), reason) from e
            raise BrowserLaunchError(reason) from e

        # Tabs restored from a previous crashed run must not interfere
        stale = list(self.context.pages)
        for page in stale:
            await page.close()
        if stale:
            debug_log(f"Closed {len(stale)} stale tab(s)")

        self._page = await self.context.new_page()
        await self._page.add_init_script(STEALTH_SCRIPT)
        self._capture_page_errors(self._page)

        if self.config.trace:
            await self.context.tracing.start(screenshots=True, snapshots=True, sources=True)

    def _capture_page_errors(self, page):
        self.console_messages = []
        self.network_errors = []

        def on_console(msg):
            if msg.type in ["error", "warning"]:
                self.console_messages.append({"type": msg.type, "text": msg.text})

        def on_response(response):
            if response.status >= 400:
                self.network_errors.append(
                    {"url": response.url, "status": response.status, "method": response.request.method}
                )

        page.on("console", on_console)
        page.on("response", on_response)

    async def disconnect(self):
        """Close the context if open. Safe to call repeatedly."""
        if self.context:
            if self.config.trace:
                try:
                    self.config.debug_dir.mkdir(parents=True, exist_ok=True)
                    trace_path = self.config.debug_dir / f"trace_{datetime.now().strftime('%Y%m%d_%H%M%S')}.zip"
                    await self.context.tracing.stop(path=str(trace_path))
                    log(f"Trace saved: {trace_path}", "◆")
                    log(f"View: npx playwright show-trace {trace_path}", "◆")
                except Exception as e:
                    log(f"Warning: Failed to save trace: {e}", "⚠")

            try:
                await self.context.close()
            except Exception as e:
                log(f"Warning: Failed to close context: {e}", "⚠")
            self.context = None
            self._page = None

        await self._stop_playwright()

    async def _stop_playwright(self):
        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                debug_log(f"Playwright stop failed: {e}")
            self.playwright = None

    async def __aenter__(self) -> "GeminiBrowser":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
