import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path

from ..core.browser import debug_log, log
from ..core.config import DEFAULT_TIMEOUT_MS, Timings
from ..core.detection import LocatorStrategy, first_match
from ..core.exceptions import (
    DownloadError,
    GenerationError,
    GenerationTimeoutError,
    LoginTimeoutError,
    RefusalError,
)
from ..core.state import DriverState, StateMachine

BODY_TEXT_SCRIPT = "() => document.body ? (document.body.textContent || '') : ''"


@dataclass
class ServiceConfig:
    service_name: str
    app_url: str
    app_host: str  # URL fragment of the app itself
    auth_host: str  # URL fragment of the sign-in pages
    consent_host: str  # URL fragment of the cookie consent interstitial
    chat_input: list[LocatorStrategy]  # any of these present = logged in
    prompt_input: list[LocatorStrategy]  # editable element to type into
    consent_accept: list[LocatorStrategy]
    overlay_dismiss: list[LocatorStrategy]
    generated_image: list[LocatorStrategy]
    download_button: list[LocatorStrategy]  # first entry is the preferred control
    refusal_phrases: list[str] = field(default_factory=list)
    prompt_template: str = "{prompt}"
    aspect_ratio_template: str = " (aspect ratio: {aspect_ratio})"


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    output_path: str | Path
    aspect_ratio: str | None = None
    timeout: int = DEFAULT_TIMEOUT_MS  # milliseconds


class PageDriver:
    """Drives one page through consent, login, prompt, generation and download.

    Each step is a separate coroutine so callers (and tests) can run them in
    isolation; `open_app()` and `generate()` chain them in the usual order.
    Progress is tracked in `self.machine`.
    """

    def __init__(self, page, service: ServiceConfig, timings: Timings | None = None):
        self.page = page
        self.service = service
        self.timings = timings or Timings()
        self.machine = StateMachine()

    @property
    def state(self) -> DriverState:
        return self.machine.state

    # --- Session bootstrap ---

    async def open_app(self):
        """Navigate to the app and make sure we end up logged in."""
        if self.state != DriverState.UNAUTHENTICATED:
            self.machine.reset()

        await self.navigate()
        if self.service.consent_host in self.page.url:
            self.machine.advance(DriverState.AWAITING_CONSENT)
            await self.handle_consent()
        await self.ensure_logged_in()

    async def navigate(self):
        log(f"Navigating to {self.service.service_name.title()}...", "→")
        await self.page.goto(
            self.service.app_url,
            wait_until="domcontentloaded",
            timeout=self.timings.navigation_timeout * 1000,
        )
        # SPA with no reliable network-idle signal
        await asyncio.sleep(self.timings.navigation_settle)

    async def handle_consent(self) -> bool:
        """Accept the cookie consent interstitial if it is showing."""
        if self.service.consent_host not in self.page.url:
            return False

        log("Handling cookie consent...", "◌")
        try:
            match = await first_match(
                self.page, self.service.consent_accept, visible=True, timeout=self.timings.consent_timeout
            )
            if match:
                await match[1].click()
                await asyncio.sleep(self.timings.consent_settle)
                log("Cookie consent accepted", "✓")
                return True
        except Exception as e:
            log(f"Could not handle cookie consent: {e}", "⚠")
        return False

    async def is_logged_in(self) -> bool:
        try:
            if self.service.auth_host in self.page.url:
                return False
            return await first_match(self.page, self.service.chat_input) is not None
        except Exception as e:
            debug_log(f"Login check failed: {e}")
            return False

    async def ensure_logged_in(self):
        if await self.is_logged_in():
            log(f"Already logged in to {self.service.service_name.title()}", "●")
            self.machine.advance(DriverState.READY)
            return

        self.machine.advance(DriverState.AWAITING_LOGIN)
        log("Not logged in. Please log in to Google in the browser window.", "⚠")
        log("Session will be saved for future headless use.", "○")
        await self.wait_for_login()

    async def wait_for_login(self) -> int:
        """Poll until the chat input shows up. Returns the attempt that succeeded."""
        attempts = self.timings.login_max_attempts
        interval = self.timings.login_poll_interval

        for attempt in range(1, attempts + 1):
            await asyncio.sleep(interval)
            try:
                if self.service.app_host in self.page.url and await self.is_logged_in():
                    log("Login detected!", "●")
                    self.machine.advance(DriverState.READY)
                    return attempt
            except Exception as e:
                # Page may be mid-navigation between Google sign-in steps
                debug_log(f"Login poll {attempt} failed: {e}")

        self.machine.advance(DriverState.TIMED_OUT)
        raise LoginTimeoutError(attempts, interval)

    # --- Generation ---

    async def generate(self, request: GenerationRequest) -> Path:
        """Run one prompt on a fresh chat and download the resulting image."""
        if not self.machine.authenticated:
            # Never reached READY (e.g. an earlier login wait timed out)
            await self.open_app()
        self.machine.begin_request()
        await self.navigate()
        await self.handle_consent()
        await self.submit_prompt(request)
        await self.wait_for_image(request.timeout)
        return await self.download(request.output_path)

    def build_prompt(self, prompt: str, aspect_ratio: str | None = None) -> str:
        text = self.service.prompt_template.format(prompt=prompt)
        if aspect_ratio:
            text += self.service.aspect_ratio_template.format(aspect_ratio=aspect_ratio)
        return text

    async def dismiss_overlays(self):
        """Close disclosure dialogs that would swallow the first click."""
        try:
            match = await first_match(
                self.page, self.service.overlay_dismiss, visible=True, timeout=self.timings.overlay_timeout
            )
            if match:
                debug_log(f"Dismissing overlay via {match[0]!r}")
                await match[1].click()
                await asyncio.sleep(self.timings.overlay_settle)
        except Exception as e:
            debug_log(f"Overlay dismissal failed: {e}")

    async def submit_prompt(self, request: GenerationRequest):
        text = self.build_prompt(request.prompt, request.aspect_ratio)
        prompt_preview = request.prompt[:60] + "..." if len(request.prompt) > 60 else request.prompt
        log(f'Typing prompt: "{prompt_preview}"', "✎")

        self.machine.advance(DriverState.SUBMITTING)
        await self.dismiss_overlays()

        match = await first_match(self.page, self.service.prompt_input, visible=True, timeout=self.timings.input_timeout)
        if not match:
            raise GenerationError("Could not find the chat input")
        prompt_input = match[1]

        await prompt_input.click()
        await prompt_input.fill(text)
        await asyncio.sleep(self.timings.input_settle)
        # Enter is locale-independent; the send button label is not
        await self.page.keyboard.press("Enter")

        self.machine.advance(DriverState.AWAITING_IMAGE)
        log("Waiting for image generation...", "◌")

    def normalize_text(self, text: str) -> str:
        return text

    async def check_refusal(self) -> str | None:
        """Return the refusal phrase found in the page text, if any."""
        try:
            text = self.normalize_text(await self.page.evaluate(BODY_TEXT_SCRIPT) or "")
        except Exception as e:
            debug_log(f"Refusal check failed: {e}")
            return None
        for phrase in self.service.refusal_phrases:
            if phrase in text:
                return phrase
        return None

    async def image_ready(self) -> bool:
        return await first_match(self.page, self.service.generated_image, visible=True) is not None

    async def wait_for_image(self, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        """Poll until an image renders. A refusal wins over an image in the same poll."""
        start = time.monotonic()
        last_report = 0.0

        while time.monotonic() - start < timeout_ms / 1000:
            await asyncio.sleep(self.timings.generation_poll_interval)
            elapsed = time.monotonic() - start

            phrase = await self.check_refusal()
            if phrase:
                log("Gemini refused the prompt", "✕")
                self.machine.advance(DriverState.REFUSED)
                raise RefusalError(phrase)

            if await self.image_ready():
                log("Image detected!", "✓")
                self.machine.advance(DriverState.DOWNLOADING)
                return

            if elapsed - last_report >= 30:
                log(f"Still generating... ({int(elapsed)}s)", "◌")
                last_report = elapsed

        self.machine.advance(DriverState.TIMED_OUT)
        raise GenerationTimeoutError(timeout_ms)

    # --- Download ---

    async def download(self, output_path: str | Path) -> Path:
        """Download the original-size image to `output_path`. Returns the absolute path."""
        abs_path = Path(output_path).expanduser().resolve()
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        log("Downloading original resolution...", "↓")

        # Let the preferred button appear and stabilize; fallbacks are tried on click
        preferred = self.service.download_button[0]
        if await preferred.find(self.page, visible=True, timeout=self.timings.download_button_timeout) is None:
            debug_log(f"{preferred!r} not visible, relying on fallbacks")
        await asyncio.sleep(self.timings.download_settle)

        attempts = self.timings.download_attempts
        download = None
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                async with self.page.expect_download(timeout=self.timings.download_event_timeout * 1000) as info:
                    await self._click_download()
                download = await info.value
                break
            except Exception as e:
                # The first click is sometimes ignored by the page
                last_error = e
                debug_log(f"Download attempt {attempt} failed: {e}")
                if attempt < attempts:
                    log("Retrying download...", "⟳")
                    await asyncio.sleep(self.timings.download_retry_pause)

        if download is None:
            self.machine.advance(DriverState.TIMED_OUT)
            if isinstance(last_error, DownloadError):
                raise last_error
            raise DownloadError(
                "Download button did not trigger a file download", {"attempts": attempts}
            ) from last_error

        await download.save_as(str(abs_path))
        failure = await download.failure()
        if failure:
            raise DownloadError(f"Download failed: {failure}", {"path": str(abs_path)})

        self.machine.advance(DriverState.DONE)
        return abs_path

    async def _click_download(self):
        for index, strategy in enumerate(self.service.download_button):
            timeout = self.timings.primary_download_timeout if index == 0 else self.timings.fallback_download_timeout
            locator = await strategy.find(self.page, visible=True, timeout=timeout)
            if locator is not None:
                debug_log(f"Clicking download via {strategy!r}")
                await locator.click()
                return
        raise DownloadError("Could not find download button")
