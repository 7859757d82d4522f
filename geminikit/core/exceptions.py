"""Custom exceptions for geminikit and the recovery guidance shown to users."""

import os

DEFAULT_PROFILE_HINT = os.path.join("~", ".geminikit", "browser-profile")


class GeminiError(Exception):
    """Base exception for all geminikit errors."""

    code = "GEMINI_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class AuthenticationError(GeminiError):
    """Raised when a logged-in Gemini session could not be established."""

    code = "AUTH_ERROR"

    def __init__(self, message: str = "Not logged in to Google/Gemini", details: dict | None = None):
        super().__init__(message, details)


class LoginTimeoutError(AuthenticationError):
    """Raised when the user did not finish logging in within the polling window."""

    def __init__(self, attempts: int, interval: float):
        minutes = attempts * interval / 60
        super().__init__(
            f"Login timeout after {minutes:g} minutes.",
            {"attempts": attempts, "interval": interval},
        )


class GenerationError(GeminiError):
    """Raised when Gemini does not produce a downloadable image."""

    code = "GENERATION_ERROR"

    def __init__(self, message: str = "Image generation failed", details: dict | None = None):
        super().__init__(message, details)


class RefusalError(GenerationError):
    """Raised when Gemini declines the prompt."""

    def __init__(self, phrase: str):
        super().__init__(
            "Gemini refused to generate this image. Try a different prompt.",
            {"phrase": phrase},
        )


class GenerationTimeoutError(GenerationError):
    """Raised when no generated image appears before the deadline."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Image generation timed out after {timeout_ms / 1000:g}s", {"timeout_ms": timeout_ms})


class DownloadError(GenerationError):
    """Raised when the generated image could not be downloaded."""

    pass


class BrowserError(GeminiError):
    """Base exception for browser-related errors."""

    code = "BROWSER_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(f"Browser error: {message}", details)


class BrowserNotConnectedError(BrowserError):
    """Raised when the page is used before connect()."""

    def __init__(self):
        super().__init__("Not connected - call connect() first")


class BrowserLaunchError(BrowserError):
    """Raised when the persistent context fails to launch."""

    def __init__(self, reason: str = "Unknown error"):
        super().__init__(f"Failed to launch browser: {reason}", {"reason": reason})


class ProfileLockedError(BrowserError):
    """Raised when another browser process holds the profile lock."""

    def __init__(self, profile_dir: str, reason: str = ""):
        super().__init__(
            f"Profile {profile_dir} is locked by another browser instance",
            {"profile_dir": profile_dir, "reason": reason},
        )


class StateTransitionError(BrowserError):
    """Raised when the page driver is asked to move to a state it cannot reach."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move from {current} to {target}", {"current": current, "target": target})


def is_gemini_error(error: object) -> bool:
    return isinstance(error, GeminiError)


def get_error_guidance(error: object, profile_dir: str | None = None) -> str:
    """Turn an error into multi-line recovery instructions for the user."""
    if not is_gemini_error(error):
        return "An unexpected error occurred. Please try again."

    profile = profile_dir or DEFAULT_PROFILE_HINT
    lock_file = os.path.join(profile, "SingletonLock")

    if error.code == AuthenticationError.code:
        return f"""{error.message}

Recovery steps:
1. Clear browser profile: rm -rf {profile}
2. Run with headless=False to open browser for login
3. Log in to Google manually
4. Session will be saved for future headless use"""

    if error.code == GenerationError.code:
        return f"""{error.message}

Recovery steps:
1. Check if Gemini is available at gemini.google.com
2. Try a different prompt (some content may be blocked)
3. Verify your Google account has access to Gemini"""

    if error.code == BrowserError.code:
        return f"""{error.message}

Recovery steps:
1. Kill any stuck browser processes
2. Remove browser lock: rm -f {lock_file}
3. Try again"""

    return error.message
