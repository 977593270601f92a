# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Link preview CLI.

Usage:
    linkcard URL [--detailed] [--video] [--theme-color] [--dominant-color]
                 [--format json|text] [--output FILE]
    linkcard --html FILE --base-url URL [...]

Exit codes: 0 success, 2 no valid URL in the input, 1 any other fatal error.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from contextlib import suppress
from pathlib import Path

from . import PreviewResult, logging_config
from ._progress import preview_status
from .browser_session import BrowserConfig
from .config import ResolutionOptions
from .errors import InvalidUrlError
from .preview import get_preview, get_preview_from_html
from .serializer import to_json, to_text

EXIT_ERROR = 1
EXIT_INVALID_URL = 2

_TRUTHY = ("1", "true", "yes")
_FALSY = ("0", "false", "no")

_EPILOG = """\
examples:
  %(prog)s https://github.com                      Core fields as JSON
  %(prog)s "see bharatsharma.me" --detailed        URL found in free text
  %(prog)s https://github.com --theme-color --dominant-color
  %(prog)s --html page.html --base-url https://example.com --format text

environment:
  LINKCARD_TIMEOUT_MS, LINKCARD_USER_AGENT, LINKCARD_HEADLESS,
  LINKCARD_EXECUTABLE_PATH, LINKCARD_LOG_JSON
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkcard",
        description="Resolve link preview metadata (title, description, image, ...) for a URL.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", nargs="?", metavar="URL", help="URL, bare host, or text containing a URL")

    fields = parser.add_argument_group("fields")
    fields.add_argument("--detailed", action="store_true", help="Also resolve icon, type, video and theme color")
    fields.add_argument("--video", action="store_true", help="Also resolve a video URL")
    fields.add_argument("--theme-color", action="store_true", help="Also resolve the theme color")
    fields.add_argument(
        "--dominant-color",
        action="store_true",
        help="Fall back to the screenshot's dominant color when no theme-color meta exists",
    )

    out = parser.add_argument_group("output")
    out.add_argument("--format", choices=["json", "text"], default="json", help="Output format (default: json)")
    out.add_argument("-o", "--output", type=str, metavar="FILE", help="Write to FILE instead of stdout")

    browser = parser.add_argument_group("browser")
    browser.add_argument("--timeout", type=int, metavar="MS", default=None, help="Navigation timeout (default: 30000)")
    browser.add_argument("--user-agent", type=str, metavar="UA", default=None, help="Browser user agent")
    browser.add_argument("--executable-path", type=str, metavar="PATH", default=None, help="Chromium executable")
    browser.add_argument(
        "--browser-arg",
        action="append",
        default=[],
        metavar="ARG",
        help="Extra Chromium argument. Repeatable.",
    )
    browser.add_argument("--headful", action="store_true", help="Show the browser window")

    offline = parser.add_argument_group("offline")
    offline.add_argument("--html", type=str, metavar="FILE", help="Resolve from a saved HTML file (no browser)")
    offline.add_argument("--base-url", type=str, metavar="URL", help="URL the HTML file was served from")

    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and tracebacks")
    parser.add_argument("--log-json", action="store_true", help="Log as JSON lines")
    return parser


def apply_env_overrides(args: argparse.Namespace) -> argparse.Namespace:
    """Fill unset options from LINKCARD_* environment variables (flags win)."""
    env_timeout = os.environ.get("LINKCARD_TIMEOUT_MS", "").strip()
    if env_timeout and args.timeout is None:
        with suppress(ValueError):
            args.timeout = int(env_timeout)

    env_ua = os.environ.get("LINKCARD_USER_AGENT", "").strip()
    if env_ua and not args.user_agent:
        args.user_agent = env_ua

    env_headless = os.environ.get("LINKCARD_HEADLESS", "").strip().lower()
    args.headful = args.headful or env_headless in _FALSY

    env_exe = os.environ.get("LINKCARD_EXECUTABLE_PATH", "").strip()
    if env_exe and not args.executable_path:
        args.executable_path = env_exe

    env_log_json = os.environ.get("LINKCARD_LOG_JSON", "").strip().lower()
    args.log_json = args.log_json or env_log_json in _TRUTHY
    return args


def browser_config_from_args(args: argparse.Namespace) -> BrowserConfig:
    config = BrowserConfig(
        headless=not args.headful,
        executable_path=args.executable_path,
        args=tuple(args.browser_arg),
    )
    if args.timeout is not None:
        config.timeout_ms = args.timeout
    if args.user_agent:
        config.user_agent = args.user_agent
    return config


def options_from_args(args: argparse.Namespace) -> ResolutionOptions:
    return ResolutionOptions(
        detailed_preview=args.detailed,
        get_video=args.video,
        get_theme_color=args.theme_color,
        dominant_theme_color=args.dominant_color,
    )


async def _resolve(args: argparse.Namespace) -> PreviewResult:
    options = options_from_args(args)
    if args.html:
        html = Path(args.html).read_text(encoding="utf-8", errors="replace")
        return await get_preview_from_html(html, args.base_url or args.url or "", options)
    return await get_preview(args.url, options, browser_config=browser_config_from_args(args))


def render(result: PreviewResult, fmt: str) -> str:
    return to_text(result) if fmt == "text" else to_json(result)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = apply_env_overrides(parser.parse_args(argv))

    if not args.url and not args.html:
        parser.error("a URL (or --html FILE --base-url URL) is required")
    if args.html and not (args.base_url or args.url):
        parser.error("--html requires --base-url")

    logging_config.configure(json_output=args.log_json, level="DEBUG" if args.verbose else "WARNING")

    target = args.html or args.url
    try:
        with preview_status(target, options_from_args(args), enabled=not args.verbose):
            result = asyncio.run(_resolve(args))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except InvalidUrlError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_INVALID_URL)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(EXIT_ERROR)

    text = render(result, args.format)
    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
        print(f"Saved to {path}", file=sys.stderr)
    else:
        print(text)


if __name__ == "__main__":
    main()
