"""Shared pytest fixtures for the geminikit test suite.

Non-fixture helpers (fake pages, downloads, image builders) are in helpers.py.
"""

import sys
from pathlib import Path

import pytest

# Make the package and helpers.py importable without installing
sys.path.insert(0, str(Path(__file__).parent))
sys.path.insert(0, str(Path(__file__).parent.parent))

from geminikit.core.config import GeminiConfig  # noqa: E402
from helpers import INSTANT, FakePage, make_gemini_page  # noqa: E402


@pytest.fixture(autouse=True)
def no_browser_install(monkeypatch):
    """Never shell out to `playwright install` from tests."""
    monkeypatch.setattr("geminikit.core.browser.ensure_chromium_installed", lambda: None)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings file at tmp_path and clear GEMINIKIT_* env vars."""
    import geminikit.core.config as config_module

    for name in list(config_module.ENV_OVERRIDES) + ["GEMINIKIT_DEBUG"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "SETTINGS_PATH", tmp_path / "settings.json")
    config_module.reload()
    yield tmp_path / "settings.json"
    config_module.reload()


@pytest.fixture
def config(tmp_path: Path) -> GeminiConfig:
    return GeminiConfig(
        profile_dir=tmp_path / "profile",
        watermark_tool_dir=tmp_path / "WatermarkRemover-AI",
        remove_watermark=False,
        debug_dir=tmp_path / "debug",
        debug_dumps=False,
        timings=INSTANT,
    )


@pytest.fixture
def gemini_page() -> FakePage:
    return make_gemini_page()
