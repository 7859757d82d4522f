"""Public client: one logged-in browser session, any number of generations."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from .core.browser import GeminiBrowser, log, log_context
from .core.config import DEFAULT_TIMEOUT_MS, GeminiConfig
from .core.debug import dump_debug_info
from .core.utils import log_saved_image, read_image_dimensions
from .core.watermark import SubprocessWatermarkRemover, WatermarkRemover, remove_watermark
from .providers.base import GenerationRequest
from .providers.gemini import GeminiDriver


@dataclass(frozen=True)
class GenerationResult:
    image_path: str
    width: int
    height: int


class GeminiClient:
    """Stateful Gemini image client.

        async with GeminiClient() as client:
            first = await client.generate_image("a red circle", "red.png")
            second = await client.generate_image("a blue square", "blue.png")

    Each client owns one browser profile. Running two clients against the same
    profile directory at the same time is not supported; give concurrent
    clients distinct `profile_dir` values.
    """

    def __init__(
        self,
        config: GeminiConfig | None = None,
        watermark_remover: WatermarkRemover | None = None,
        browser: GeminiBrowser | None = None,
    ):
        self.config = config or GeminiConfig()
        self.browser = browser or GeminiBrowser(self.config)
        if watermark_remover is None and self.config.remove_watermark:
            watermark_remover = SubprocessWatermarkRemover(
                self.config.watermark_tool_dir, timeout=self.config.timings.watermark_timeout
            )
        self.watermark_remover = watermark_remover
        self.driver: GeminiDriver | None = None

    async def connect(self, headless: bool = True):
        """Launch the browser, open Gemini and wait until logged in."""
        with log_context("connect"):
            await self.browser.connect(headless=headless)
            self.driver = GeminiDriver(self.browser.page, self.config.timings)
            if headless:
                log("Running headless; if login is needed, connect with headless=False", "○")
            try:
                await self.driver.open_app()
            except Exception as e:
                await self._dump(e)
                raise

    async def disconnect(self):
        self.driver = None
        await self.browser.disconnect()

    async def generate_image(
        self,
        prompt: str,
        output_path: str | Path,
        aspect_ratio: str | None = None,
        timeout: int | None = None,
    ) -> GenerationResult:
        """Generate one image and save it to `output_path`."""
        page = self.browser.page  # raises BrowserNotConnectedError before connect()
        if self.driver is None:
            # Browser was connected directly, not through connect()
            self.driver = GeminiDriver(page, self.config.timings)
            await self.driver.open_app()

        request = GenerationRequest(
            prompt=prompt,
            output_path=output_path,
            aspect_ratio=aspect_ratio,
            timeout=DEFAULT_TIMEOUT_MS if timeout is None else timeout,
        )

        with log_context("generate"):
            try:
                image_path = await self.driver.generate(request)
            except asyncio.CancelledError:
                log("Interrupted", "✕")
                raise
            except Exception as e:
                log(f"Error: {str(e).splitlines()[0] if str(e) else type(e).__name__}", "✕")
                await self._dump(e)
                raise

            # Best effort: never fails the generation
            await remove_watermark(image_path, self.watermark_remover)

            dimensions = read_image_dimensions(image_path)
            log_saved_image(image_path, dimensions, label=str(output_path))

        return GenerationResult(image_path=str(image_path), width=dimensions.width, height=dimensions.height)

    async def _dump(self, error: Exception):
        if not self.config.debug_dumps or not self.browser.connected:
            return
        try:
            await dump_debug_info(
                self.browser.page,
                error,
                self.config.debug_dir,
                console_messages=self.browser.console_messages,
                network_errors=self.browser.network_errors,
            )
        except Exception as dump_error:
            log(f"Debug dump failed: {dump_error}", "⚠")

    async def __aenter__(self) -> "GeminiClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False


async def generate_image(
    prompt: str,
    output_path: str | Path,
    headless: bool = True,
    timeout: int = DEFAULT_TIMEOUT_MS,
    aspect_ratio: str | None = None,
    config: GeminiConfig | None = None,
) -> GenerationResult:
    """Generate an image with Gemini - manages browser lifecycle automatically.

    The first run should use headless=False to log in to Google manually;
    later runs reuse the saved session headlessly.
    """
    client = GeminiClient(config)
    try:
        await client.connect(headless=headless)
        return await client.generate_image(prompt, output_path, aspect_ratio=aspect_ratio, timeout=timeout)
    finally:
        await client.disconnect()
