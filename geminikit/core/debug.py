"""Debug utilities - dumps screenshots and page info on failure."""

import json
import shutil
import time
from datetime import datetime
from pathlib import Path

SELECTORS_TO_CHECK = {
    "login_indicators": 'a[href*="ServiceLogin"], a[href*="accounts.google.com"], button:has-text("Sign in")',
    "input_fields": "rich-textarea, textarea, [contenteditable]",
    "generated_images": "img.image.loaded",
    "download_buttons": '[data-test-id="download-generated-image-button"]',
}


async def dump_debug_info(
    page,
    error: Exception,
    debug_dir: Path,
    service: str = "gemini",
    console_messages: list | None = None,
    network_errors: list | None = None,
):
    """Dump screenshot and page info on failure.

    Args:
        page: Playwright page object
        error: The exception that occurred
        debug_dir: Root folder for dumps (a dated subfolder is created)
        service: Prefix for the dump file names
        console_messages: Console errors/warnings collected by the browser
        network_errors: Failed responses collected by the browser

    Returns:
        Dict with screenshot and json paths, or None when there is no page.
    """
    from .browser import log

    if page is None:
        return None

    now = datetime.now()
    date_dir = Path(debug_dir) / now.strftime("%Y-%m-%d")
    date_dir.mkdir(parents=True, exist_ok=True)

    base_name = f"{service}_{now.strftime('%H%M%S')}"
    screenshot_path = date_dir / f"{base_name}.png"
    dom_path = date_dir / f"{base_name}.dom.json"
    json_path = date_dir / f"{base_name}.json"

    debug_info: dict = {
        "timestamp": now.isoformat(),
        "service": service,
        "error": str(error),
        "error_type": type(error).__name__,
    }

    try:
        await page.screenshot(path=str(screenshot_path), full_page=True)
        debug_info["screenshot"] = screenshot_path.name

        # Capture minimal DOM structure (no inline content to avoid huge dumps)
        try:
            dom_structure = await page.evaluate("""() => {
                const elements = [];
                document.querySelectorAll('img, button, textarea, [contenteditable], [data-test-id]').forEach(el => {
                    elements.push({
                        tag: el.tagName.toLowerCase(),
                        id: el.id || null,
                        class: typeof el.className === 'string' ? el.className : null,
                        testId: el.getAttribute('data-test-id'),
                        label: el.getAttribute('aria-label'),
                    });
                });
                return elements.slice(0, 80);
            }""")
            with open(dom_path, "w", encoding="utf-8") as f:
                json.dump(dom_structure, f, indent=2)
            debug_info["dom_snapshot"] = dom_path.name
        except Exception as e:
            debug_info["dom_snapshot"] = f"(failed: {e})"

        debug_info["url"] = page.url
        debug_info["title"] = await page.title()

        try:
            debug_info["visible_text"] = await page.evaluate(
                "() => document.body ? (document.body.innerText || '').substring(0, 2000) : ''"
            )
        except Exception:
            debug_info["visible_text"] = "(failed to capture)"

        try:
            cookies = await page.context.cookies()
            debug_info["cookies"] = [{"name": c["name"], "domain": c["domain"]} for c in cookies[:20]]
        except Exception:
            debug_info["cookies"] = []

        debug_info["console_errors"] = (console_messages or [])[-50:]
        debug_info["network_errors"] = (network_errors or [])[-20:]

        selector_status = {}
        for name, sel in SELECTORS_TO_CHECK.items():
            try:
                selector_status[name] = {"selector": sel, "count": await page.locator(sel).count()}
            except Exception as e:
                selector_status[name] = {"selector": sel, "error": str(e)}
        debug_info["selectors"] = selector_status
        debug_info["detected_issues"] = _detect_issues(debug_info)

    except Exception as e:
        debug_info["dump_error"] = str(e)

    try:
        with open(json_path, "w") as f:
            json.dump(debug_info, f, indent=2, default=str)
    except OSError as e:
        log(f"Failed to save debug JSON: {e}", "⚠")

    log(f"Debug dump saved to: {date_dir}", "◆")
    log(f"  {json_path.name} - error details and detected issues", "◆")
    log(f"  {screenshot_path.name} - page state at failure", "◆")

    return {"screenshot": str(screenshot_path), "json": str(json_path)}


def _detect_issues(debug_info: dict) -> list[str]:
    issues = []
    selectors = debug_info.get("selectors", {})
    url = debug_info.get("url", "") or ""
    text = (debug_info.get("visible_text", "") or "").lower()

    if "accounts.google.com" in url:
        issues.append("Login required (on Google sign-in page)")
    if "consent.google.com" in url:
        issues.append("Cookie consent page not dismissed")
    if selectors.get("input_fields", {}).get("count", 0) == 0:
        issues.append("No chat input found")
    if "captcha" in text or "unusual traffic" in text:
        issues.append("CAPTCHA detected")

    errors = sum(1 for msg in debug_info.get("console_errors", []) if msg.get("type") == "error")
    if errors:
        issues.append(f"{errors} console error(s) detected")
    if debug_info.get("network_errors"):
        issues.append(f"{len(debug_info['network_errors'])} failed network request(s)")
    return issues


def cleanup_old_dumps(debug_dir: Path, max_age_days: int = 7):
    """Clean up old debug dump folders."""
    debug_dir = Path(debug_dir)
    if not debug_dir.exists():
        return

    cutoff_time = time.time() - (max_age_days * 24 * 60 * 60)
    for date_dir in debug_dir.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            if date_dir.stat().st_mtime < cutoff_time:
                shutil.rmtree(date_dir)
        except OSError:
            pass
