"""Gemini provider - image generation through gemini.google.com."""

from ..core.config import APP_URL, Timings
from ..core.detection import CssStrategy, LastMatchStrategy, RoleStrategy
from .base import PageDriver, ServiceConfig

REFUSAL_PHRASES = [
    "I can't generate",
    "I'm not able to generate",
    "I cannot generate",
]

GEMINI_SERVICE = ServiceConfig(
    service_name="gemini",
    app_url=APP_URL,
    app_host="gemini.google.com",
    auth_host="accounts.google.com",
    consent_host="consent.google.com",
    # Markup differs between rollouts; any of these means the chat UI loaded
    chat_input=[
        CssStrategy("rich-textarea"),
        CssStrategy('div[contenteditable="true"]'),
        CssStrategy(".ql-editor"),
        CssStrategy("textarea"),
    ],
    prompt_input=[
        CssStrategy("rich-textarea .ql-editor[contenteditable='true']"),
        CssStrategy('div[contenteditable="true"]'),
        CssStrategy("textarea"),
    ],
    consent_accept=[RoleStrategy("button", r"accept all")],
    # Last button closes the dialog; the first ("Manage activity") opens a new tab
    overlay_dismiss=[LastMatchStrategy("human-review-disclosure button")],
    generated_image=[CssStrategy("img.image.loaded")],
    download_button=[
        CssStrategy('[data-test-id="download-generated-image-button"]'),
        RoleStrategy("button", r"download"),
    ],
    refusal_phrases=REFUSAL_PHRASES,
    prompt_template="Generate an image: {prompt}",
    aspect_ratio_template=" (aspect ratio: {aspect_ratio})",
)


class GeminiDriver(PageDriver):
    def __init__(self, page, timings: Timings | None = None, service: ServiceConfig = GEMINI_SERVICE):
        super().__init__(page, service, timings)

    def normalize_text(self, text: str) -> str:
        # Responses use typographic apostrophes ("I can’t generate")
        return text.replace("’", "'")
