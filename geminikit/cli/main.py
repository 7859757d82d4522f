#!/usr/bin/env python3
"""geminikit CLI - Generate Gemini images from the command line.

Usage:
    geminikit login                          - Open a visible browser and log in to Google
    geminikit generate <prompt> -o <path>    - Generate an image
    geminikit reset                          - Delete the saved browser profile
    geminikit unlock                         - Remove stale profile lock files
    geminikit doctor                         - Check that Chromium can launch
"""

import argparse
import asyncio
import sys

from ..client import GeminiClient, generate_image
from ..core.browser import check_browser_health, ensure_chromium_installed, log
from ..core.config import DEFAULT_TIMEOUT_MS, load_config
from ..core.exceptions import get_error_guidance, is_gemini_error
from ..core.session import clear_profile_lock, delete_profile, profile_lock_files


def _config_from_args(args):
    overrides = {"profile_dir": getattr(args, "profile", None)}
    if getattr(args, "no_watermark_removal", False):
        overrides["remove_watermark"] = False
    return load_config(**overrides)


async def cmd_generate(args):
    """Generate a single image."""
    config = _config_from_args(args)
    result = await generate_image(
        args.prompt,
        args.output,
        headless=not args.headful,
        timeout=args.timeout,
        aspect_ratio=args.aspect_ratio,
        config=config,
    )
    log(f"Image: {result.image_path} ({result.width}x{result.height})", "★")


async def cmd_login(args):
    """Open a visible browser so the user can log in; the profile keeps the session."""
    client = GeminiClient(_config_from_args(args))
    try:
        await client.connect(headless=False)
        log("Login OK - session saved to profile", "★")
    finally:
        await client.disconnect()


def cmd_reset(args):
    config = _config_from_args(args)
    result = delete_profile(config.profile_dir)
    if result["errors"]:
        sys.exit(1)


def cmd_unlock(args):
    config = _config_from_args(args)
    if not profile_lock_files(config.profile_dir):
        log(f"No lock files in {config.profile_dir}", "○")
        return
    log("Make sure no browser is still using this profile", "⚠")
    clear_profile_lock(config.profile_dir)


def cmd_doctor(args):
    ensure_chromium_installed()
    ready, error = check_browser_health()
    if ready:
        log("Browser ready", "●")
    else:
        log(f"Browser not ready: {error}", "▲")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geminikit",
        description="geminikit - Browser automation for Gemini image generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  geminikit login
  geminikit generate "a red circle on white background" -o circle.png
  geminikit generate "mountain lake at dawn" -o lake.png -a 16:9 --timeout 180000
  geminikit unlock
""",
    )
    parser.add_argument("-p", "--profile", metavar="DIR", help="Browser profile directory")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser("generate", help="Generate an image")
    generate_parser.add_argument("prompt", help="Image prompt")
    generate_parser.add_argument("-o", "--output", required=True, help="Output file path")
    generate_parser.add_argument("-a", "--aspect-ratio", help="Aspect ratio hint, e.g. 16:9")
    generate_parser.add_argument(
        "-t", "--timeout", type=int, default=DEFAULT_TIMEOUT_MS, help="Generation timeout in ms (default: 120000)"
    )
    generate_parser.add_argument("--headful", action="store_true", help="Show the browser window")
    generate_parser.add_argument("--no-watermark-removal", action="store_true", help="Keep the downloaded file as is")

    subparsers.add_parser("login", help="Log in to Google in a visible browser")
    subparsers.add_parser("reset", help="Delete the browser profile (logs out)")
    subparsers.add_parser("unlock", help="Remove stale profile lock files after a crash")
    subparsers.add_parser("doctor", help="Check that Chromium can launch")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "generate":
            asyncio.run(cmd_generate(args))
        elif args.command == "login":
            asyncio.run(cmd_login(args))
        elif args.command == "reset":
            cmd_reset(args)
        elif args.command == "unlock":
            cmd_unlock(args)
        elif args.command == "doctor":
            cmd_doctor(args)
        else:
            parser.print_help()
            sys.exit(1)
    except KeyboardInterrupt:
        log("Interrupted", "✕")
        sys.exit(130)
    except Exception as e:
        if not is_gemini_error(e):
            raise
        print(get_error_guidance(e, str(_config_from_args(args).profile_dir)), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
