"""geminikit - Browser automation for Google Gemini image generation.

Uses Playwright with a persistent browser profile. The first run opens a
visible browser for Google login; later runs reuse the session headlessly.

    import asyncio
    from geminikit import generate_image

    # First run: headless=False to log in
    result = asyncio.run(generate_image("a neon-lit city at night", "out.png", headless=False))

    # After login, headless works
    result = asyncio.run(generate_image("a red circle on white background", "circle.png"))
"""

from .client import GeminiClient, GenerationResult, generate_image
from .core.browser import GeminiBrowser
from .core.config import GeminiConfig, Timings, load_config
from .core.exceptions import (
    AuthenticationError,
    BrowserError,
    GeminiError,
    GenerationError,
    get_error_guidance,
    is_gemini_error,
)
from .core.utils import ImageDimensions, read_image_dimensions
from .core.watermark import CleanResult, SubprocessWatermarkRemover, WatermarkRemover

__version__ = "0.1.0"

__all__ = [
    "generate_image",
    "GeminiClient",
    "GenerationResult",
    "GeminiBrowser",
    "GeminiConfig",
    "Timings",
    "load_config",
    "GeminiError",
    "AuthenticationError",
    "GenerationError",
    "BrowserError",
    "is_gemini_error",
    "get_error_guidance",
    "ImageDimensions",
    "read_image_dimensions",
    "WatermarkRemover",
    "SubprocessWatermarkRemover",
    "CleanResult",
]
