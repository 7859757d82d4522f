"""Configuration loader for geminikit.

Defaults live in the dataclasses below. A JSON settings file can override them,
environment variables override the file, and explicit keyword overrides win over
everything.
"""

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

HOME_DIR = Path.home() / ".geminikit"
SETTINGS_PATH = HOME_DIR / "settings.json"

APP_URL = "https://gemini.google.com/app"
DEFAULT_TIMEOUT_MS = 120000

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
DEFAULT_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
]


def _env_bool(name: str) -> bool | None:
    """Read a boolean env var. None when unset."""
    value = os.getenv(name)
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")


def is_debug_logging_enabled() -> bool:
    """Check if GEMINIKIT_DEBUG env var is set."""
    return bool(_env_bool("GEMINIKIT_DEBUG"))


# Must be > 0: Playwright reads a 0 ms timeout as "wait forever", attempts bound retry loops
POSITIVE_TIMINGS = (
    "navigation_timeout",
    "download_event_timeout",
    "login_max_attempts",
    "download_attempts",
)


@dataclass(frozen=True)
class Timings:
    """Every delay, poll interval and timeout the page driver uses (seconds)."""

    navigation_timeout: float = 60.0
    navigation_settle: float = 3.0
    consent_timeout: float = 3.0
    consent_settle: float = 2.0
    overlay_timeout: float = 2.0
    overlay_settle: float = 0.5
    input_timeout: float = 10.0
    input_settle: float = 0.5
    login_poll_interval: float = 5.0
    login_max_attempts: int = 60
    generation_poll_interval: float = 3.0
    download_button_timeout: float = 15.0
    download_settle: float = 1.0
    primary_download_timeout: float = 5.0
    fallback_download_timeout: float = 3.0
    download_event_timeout: float = 30.0
    download_attempts: int = 2
    download_retry_pause: float = 2.0
    watermark_timeout: float = 120.0

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ValueError(f"Timings.{f.name} must not be negative")
        for name in POSITIVE_TIMINGS:
            if getattr(self, name) <= 0:
                raise ValueError(f"Timings.{name} must be positive")


@dataclass
class GeminiConfig:
    profile_dir: Path = HOME_DIR / "browser-profile"
    watermark_tool_dir: Path = Path.home() / "code" / "WatermarkRemover-AI"
    remove_watermark: bool = True
    debug_dir: Path = HOME_DIR / "debug_dumps"
    debug_dumps: bool = True
    trace: bool = False
    app_url: str = APP_URL
    viewport: dict = field(default_factory=lambda: dict(DEFAULT_VIEWPORT))
    launch_args: list = field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    timings: Timings = field(default_factory=Timings)

    def __post_init__(self):
        self.profile_dir = Path(self.profile_dir).expanduser()
        self.watermark_tool_dir = Path(self.watermark_tool_dir).expanduser()
        self.debug_dir = Path(self.debug_dir).expanduser()
        if isinstance(self.timings, dict):
            self.timings = Timings(**self.timings)


# Env var name -> (config field, converter)
ENV_OVERRIDES = {
    "GEMINIKIT_PROFILE_DIR": ("profile_dir", Path),
    "GEMINIKIT_WATERMARK_DIR": ("watermark_tool_dir", Path),
    "GEMINIKIT_DEBUG_DIR": ("debug_dir", Path),
    "GEMINIKIT_REMOVE_WATERMARK": ("remove_watermark", None),
    "GEMINIKIT_DEBUG_DUMPS": ("debug_dumps", None),
    "GEMINIKIT_TRACE": ("trace", None),
}

_settings: dict | None = None


def load_settings(path: Path | None = None) -> dict:
    """Load settings from file. The default file is cached after the first read."""
    global _settings
    if path is None and _settings is not None:
        return _settings
    try:
        with open(path or SETTINGS_PATH) as f:
            settings = json.load(f)
    except FileNotFoundError:
        settings = {}
    if path is None:
        _settings = settings
    return settings or {}


def get_setting(key: str, default=None):
    """Get a setting value from the default settings file."""
    return load_settings().get(key, default)


def _env_overrides() -> dict:
    overrides: dict = {}
    for env_name, (key, convert) in ENV_OVERRIDES.items():
        if convert is None:
            value = _env_bool(env_name)
            if value is not None:
                overrides[key] = value
        elif os.getenv(env_name):
            overrides[key] = convert(os.environ[env_name])
    return overrides


def load_config(settings_path: Path | None = None, **overrides) -> GeminiConfig:
    """Build a GeminiConfig from defaults, settings file, env vars and overrides."""
    known = {f.name for f in fields(GeminiConfig)}
    values = {k: v for k, v in load_settings(settings_path).items() if k in known}
    values.update(_env_overrides())
    values.update({k: v for k, v in overrides.items() if v is not None})

    timings = values.pop("timings", None)
    config = GeminiConfig(**values)
    if isinstance(timings, dict):
        config.timings = replace(config.timings, **timings)
    elif isinstance(timings, Timings):
        config.timings = timings
    return config


def reload():
    """Force reload of the cached settings file."""
    global _settings
    _settings = None
