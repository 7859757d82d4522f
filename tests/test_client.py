"""End-to-end tests for GeminiClient against a fake browser."""

import json
from pathlib import Path

import pytest
from helpers import FakeContext, FakeDownload, FakePage, FakePlaywrightFactory, make_gemini_page, make_png

import geminikit.client
from geminikit import GeminiClient, GenerationResult, generate_image
from geminikit.core.browser import GeminiBrowser
from geminikit.core.exceptions import (
    AuthenticationError,
    BrowserError,
    GenerationTimeoutError,
    LoginTimeoutError,
    get_error_guidance,
)
from geminikit.core.watermark import CleanResult, WatermarkRemover


class BrokenRemover(WatermarkRemover):
    async def clean(self, path: Path) -> CleanResult:
        raise RuntimeError("inpainting model crashed")


def gemini_browser(config, page_factory=make_gemini_page) -> GeminiBrowser:
    context = FakeContext(page_factory=page_factory)
    return GeminiBrowser(config, playwright_factory=FakePlaywrightFactory(context))


@pytest.mark.asyncio
async def test_generate_before_connect_raises(config, tmp_path):
    client = GeminiClient(config, browser=gemini_browser(config))
    with pytest.raises(BrowserError):
        await client.generate_image("a cat", tmp_path / "cat.png")


@pytest.mark.asyncio
async def test_generate_image(config, tmp_path):
    out = tmp_path / "out" / "circle.png"
    async with GeminiClient(config, browser=gemini_browser(config)) as client:
        result = await client.generate_image("a red circle on white background", out)

    assert isinstance(result, GenerationResult)
    assert result.image_path == str(out.resolve())
    assert (result.width, result.height) == (1024, 768)
    assert Path(result.image_path).read_bytes() == make_png(1024, 768)


@pytest.mark.asyncio
async def test_watermark_failure_does_not_fail_generation(config, tmp_path):
    out = tmp_path / "circle.png"
    client = GeminiClient(config, watermark_remover=BrokenRemover(), browser=gemini_browser(config))
    await client.connect()
    try:
        result = await client.generate_image("a red circle", out)
    finally:
        await client.disconnect()

    assert out.read_bytes() == make_png(1024, 768)
    assert result.width == 1024


@pytest.mark.asyncio
async def test_two_generations_share_one_session(config, tmp_path):
    def page_factory():
        page = make_gemini_page()
        page.download_queue.append(FakeDownload(make_png(512, 512)))
        return page

    browser = gemini_browser(config, page_factory)
    async with GeminiClient(config, browser=browser) as client:
        first = await client.generate_image("a red circle", tmp_path / "one.png")
        second = await client.generate_image("a blue square", tmp_path / "two.png", aspect_ratio="1:1")

    assert (first.width, first.height) == (1024, 768)
    assert (second.width, second.height) == (512, 512)
    launches = browser._playwright_factory.playwright.chromium.launches
    assert len(launches) == 1


@pytest.mark.asyncio
async def test_failed_generation_writes_debug_dump(config, tmp_path):
    config.debug_dumps = True
    async with GeminiClient(config, browser=gemini_browser(config, lambda: make_stuck_page())) as client:
        with pytest.raises(GenerationTimeoutError):
            await client.generate_image("a red circle", tmp_path / "x.png", timeout=20)

    dumps = list(config.debug_dir.glob("*/*.json"))
    info = [json.loads(p.read_text()) for p in dumps if not p.name.endswith(".dom.json")]
    assert len(info) == 1
    assert info[0]["error_type"] == "GenerationTimeoutError"
    assert list(config.debug_dir.glob("*/*.png"))


def make_stuck_page() -> FakePage:
    page = make_gemini_page()
    page.on_submit = None  # image never renders
    return page


@pytest.mark.asyncio
async def test_module_level_generate_disconnects_on_failure(config, tmp_path, monkeypatch):
    logged_out = FakePage()  # no chat input anywhere
    context = FakeContext(page_factory=lambda: logged_out)
    factory = FakePlaywrightFactory(context)
    monkeypatch.setattr(
        geminikit.client, "GeminiBrowser", lambda cfg: GeminiBrowser(cfg, playwright_factory=factory)
    )

    with pytest.raises(LoginTimeoutError):
        await generate_image("a red circle", tmp_path / "x.png", config=config)

    assert context.closed
    assert factory.playwright.stopped


@pytest.mark.asyncio
async def test_module_level_generate(config, tmp_path, monkeypatch):
    monkeypatch.setattr(geminikit.client, "GeminiBrowser", lambda cfg: gemini_browser(cfg))
    result = await generate_image("a red circle on white background", tmp_path / "c.png", config=config)
    assert result.width > 0 and result.height > 0


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(config):
    client = GeminiClient(config, browser=gemini_browser(config))
    await client.disconnect()
    await client.connect()
    await client.disconnect()
    await client.disconnect()
    assert not client.browser.connected


@pytest.mark.asyncio
async def test_generate_after_failed_login_is_auth_error(config, tmp_path):
    client = GeminiClient(config, browser=gemini_browser(config, FakePage))
    with pytest.raises(LoginTimeoutError):
        await client.connect()

    try:
        with pytest.raises(AuthenticationError) as exc:
            await client.generate_image("a red circle", tmp_path / "x.png")
    finally:
        await client.disconnect()
    assert "Recovery steps:" in get_error_guidance(exc.value)
    assert "headless=False" in get_error_guidance(exc.value)
