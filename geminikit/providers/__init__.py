"""Page interaction drivers."""

from .base import GenerationRequest, PageDriver, ServiceConfig
from .gemini import GEMINI_SERVICE, GeminiDriver

__all__ = [
    "GenerationRequest",
    "PageDriver",
    "ServiceConfig",
    "GEMINI_SERVICE",
    "GeminiDriver",
]
