"""geminikit core - Shared infrastructure."""

from .browser import GeminiBrowser, debug_log, log, log_context
from .config import GeminiConfig, Timings, load_config
from .detection import CssStrategy, LastMatchStrategy, LocatorStrategy, RoleStrategy, first_match
from .exceptions import (
    AuthenticationError,
    BrowserError,
    GeminiError,
    GenerationError,
    get_error_guidance,
    is_gemini_error,
)
from .session import clear_profile_lock, delete_profile, ensure_profile_dir
from .state import DriverState, StateMachine
from .utils import ImageDimensions, read_image_dimensions
from .watermark import CleanResult, SubprocessWatermarkRemover, WatermarkRemover, remove_watermark

__all__ = [
    # browser
    "GeminiBrowser",
    "log",
    "debug_log",
    "log_context",
    # config
    "GeminiConfig",
    "Timings",
    "load_config",
    # detection
    "LocatorStrategy",
    "CssStrategy",
    "LastMatchStrategy",
    "RoleStrategy",
    "first_match",
    # exceptions
    "GeminiError",
    "AuthenticationError",
    "GenerationError",
    "BrowserError",
    "is_gemini_error",
    "get_error_guidance",
    # session
    "ensure_profile_dir",
    "clear_profile_lock",
    "delete_profile",
    # state
    "DriverState",
    "StateMachine",
    # utils
    "ImageDimensions",
    "read_image_dimensions",
    # watermark
    "WatermarkRemover",
    "SubprocessWatermarkRemover",
    "CleanResult",
    "remove_watermark",
]
