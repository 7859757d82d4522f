"""Fake Playwright objects and image builders shared by the test suite.

No test launches a real browser: pages, locators, downloads and the
Playwright entry point are replaced by the small fakes below.
"""

import struct
import zlib
from pathlib import Path

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from geminikit.core.config import Timings

GEMINI_URL = "https://gemini.google.com/app"
CHAT_INPUT = 'div[contenteditable="true"]'
GENERATED_IMAGE = "img.image.loaded"
DOWNLOAD_BUTTON = '[data-test-id="download-generated-image-button"]'
OVERLAY_BUTTONS = "human-review-disclosure button"

INSTANT = Timings(
    navigation_timeout=1,
    navigation_settle=0,
    consent_timeout=0,
    consent_settle=0,
    overlay_timeout=0,
    overlay_settle=0,
    input_timeout=0,
    input_settle=0,
    login_poll_interval=0,
    generation_poll_interval=0,
    download_button_timeout=0,
    download_settle=0,
    primary_download_timeout=0,
    fallback_download_timeout=0,
    download_event_timeout=1,
    download_retry_pause=0,
    watermark_timeout=5,
)


# --- Image bytes ---


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


def make_png(width: int, height: int) -> bytes:
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    idat = zlib.compress(b"\x00" * 64)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", ihdr)
        + _png_chunk(b"tEXt", b"Comment\x00" + b"x" * 40)
        + _png_chunk(b"IDAT", idat)
        + _png_chunk(b"IEND", b"")
    )


def make_jpeg(width: int, height: int, progressive: bool = False) -> bytes:
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    marker = b"\xff\xc2" if progressive else b"\xff\xc0"
    sof = marker + struct.pack(">HBHHB", 17, 8, height, width, 3) + b"\x01\x11\x00\x02\x11\x01\x03\x11\x01"
    return b"\xff\xd8" + app0 + sof + b"\x00" * 64 + b"\xff\xd9"


# --- Fake Playwright page ---


class FakeLocator:
    def __init__(self, page, key: str, present: bool = False, visible: bool = False, on_click=None):
        self.page = page
        self.key = key
        self.present = present
        self.visible = visible
        self.on_click = on_click
        self.clicks = 0
        self.value = None

    @property
    def first(self):
        return self

    @property
    def last(self):
        return self

    async def count(self) -> int:
        return 1 if self.present or self.visible else 0

    async def is_visible(self) -> bool:
        return self.visible

    async def wait_for(self, state: str = "visible", timeout: float | None = None):
        if not self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.key}")

    async def click(self):
        self.clicks += 1
        if self.on_click:
            self.on_click()

    async def fill(self, text: str):
        self.value = text


class FakeKeyboard:
    def __init__(self, page):
        self.page = page
        self.pressed: list[str] = []

    async def press(self, key: str):
        self.pressed.append(key)
        if key == "Enter" and self.page.on_submit:
            self.page.on_submit()


class FakeDownload:
    def __init__(self, data: bytes | None = None, failure: str | None = None):
        self.data = data if data is not None else make_png(1024, 768)
        self._failure = failure
        self.saved_to: str | None = None

    async def save_as(self, path: str):
        Path(path).write_bytes(self.data)
        self.saved_to = path

    async def failure(self):
        return self._failure


class FakeDownloadWaiter:
    """Mimics `async with page.expect_download() as info` semantics."""

    def __init__(self, page, timeout):
        self.page = page
        self.timeout = timeout
        self._download = None

    async def __aenter__(self):
        self.page.pending_download = None
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type:
            return False
        if self.page.pending_download is None:
            raise PlaywrightTimeoutError(f"Timeout {self.timeout}ms exceeded while waiting for event \"download\"")
        self._download = self.page.pending_download
        return False

    async def _resolve(self):
        return self._download

    @property
    def value(self):
        return self._resolve()


class FakePage:
    def __init__(self, url: str = GEMINI_URL):
        self.url = url
        self.elements: dict[str, FakeLocator] = {}
        self.body_text = ""
        self.keyboard = FakeKeyboard(self)
        self.on_submit = None
        self.gotos: list[str] = []
        self.init_scripts: list[str] = []
        self.download_queue: list = []
        self.pending_download = None
        self.closed = False
        self.evaluate_calls = 0

    def element(self, key: str, **kwargs) -> FakeLocator:
        loc = FakeLocator(self, key, **kwargs)
        self.elements[key] = loc
        return loc

    def locator(self, selector: str) -> FakeLocator:
        return self.elements.get(selector) or FakeLocator(self, selector)

    def get_by_role(self, role: str, name=None) -> FakeLocator:
        key = f"role={role}:{name.pattern if name is not None else ''}"
        return self.elements.get(key) or FakeLocator(self, key)

    def trigger_download(self):
        self.pending_download = self.download_queue.pop(0) if self.download_queue else None

    def expect_download(self, timeout=None):
        return FakeDownloadWaiter(self, timeout)

    async def goto(self, url: str, **kwargs):
        self.gotos.append(url)

    async def evaluate(self, script: str):
        self.evaluate_calls += 1
        text = self.body_text
        if callable(text):
            text = text()
        if isinstance(text, Exception):
            raise text
        return text

    async def screenshot(self, path: str, full_page: bool = False):
        Path(path).write_bytes(make_png(1280, 800))

    async def title(self) -> str:
        return "Gemini"

    async def add_init_script(self, script: str):
        self.init_scripts.append(script)

    def on(self, event: str, handler):
        pass

    async def close(self):
        self.closed = True


def make_gemini_page(download: FakeDownload | None = None) -> FakePage:
    """A logged-in Gemini page that renders an image after Enter is pressed."""
    page = FakePage()
    page.element(CHAT_INPUT, present=True, visible=True)
    image = page.element(GENERATED_IMAGE)
    page.element(DOWNLOAD_BUTTON, present=True, visible=True, on_click=page.trigger_download)
    page.download_queue = [download or FakeDownload()]

    def render_image():
        image.visible = True

    page.on_submit = render_image
    return page


# --- Fake Playwright entry point ---


class FakeTracing:
    async def start(self, **kwargs):
        pass

    async def stop(self, path=None):
        pass


class FakeContext:
    def __init__(self, stale_pages: int = 0, page_factory=FakePage):
        self.pages = [FakePage("about:blank") for _ in range(stale_pages)]
        self.stale = list(self.pages)
        self.page_factory = page_factory
        self.closed = False
        self.close_calls = 0
        self.tracing = FakeTracing()

    async def new_page(self):
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True
        self.close_calls += 1


class FakeChromium:
    def __init__(self, context=None, error: Exception | None = None):
        self.context = context
        self.error = error
        self.launches: list[tuple] = []

    async def launch_persistent_context(self, user_data_dir, **kwargs):
        self.launches.append((user_data_dir, kwargs))
        if self.error:
            raise self.error
        return self.context


class FakePlaywright:
    def __init__(self, chromium: FakeChromium):
        self.chromium = chromium
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightFactory:
    """Stands in for async_playwright: factory().start() -> FakePlaywright."""

    def __init__(self, context=None, error: Exception | None = None):
        self.playwright = FakePlaywright(FakeChromium(context, error))

    def __call__(self):
        return self

    async def start(self):
        return self.playwright


