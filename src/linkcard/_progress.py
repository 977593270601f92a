# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Status line shown by ``linkcard`` while a preview resolves.

The line names the target and the fields being resolved, e.g.
``Resolving example.com: title, description, image, domain_name, video``.
It goes to stderr so JSON on stdout stays clean; ``rich`` (the ``cli``
extra) animates it, otherwise it is printed once.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Generator

from . import CORE_FIELDS
from .config import ResolutionOptions

try:
    from rich.console import Console

    _HAS_RICH = True
except ImportError:
    _HAS_RICH = False


def requested_fields(options: ResolutionOptions) -> list[str]:
    """Field names *options* asks for, in report order."""
    fields = list(CORE_FIELDS)
    for name, wanted in (
        ("icon", options.wants_icon),
        ("type", options.wants_type),
        ("video", options.wants_video),
        ("theme_color", options.wants_theme_color),
    ):
        if wanted:
            fields.append(name)
    return fields


def status_message(target: str, options: ResolutionOptions) -> str:
    return f"Resolving {target}: {', '.join(requested_fields(options))}"


@contextlib.contextmanager
def preview_status(target: str, options: ResolutionOptions, *, enabled: bool = True) -> Generator[None, None, None]:
    """Show the resolving status on stderr for the duration of the block.

    Silent when disabled (``--verbose`` logs share stderr) or when stderr
    is not a TTY.
    """
    if not enabled or not sys.stderr.isatty():
        yield
        return

    msg = status_message(target, options)
    if _HAS_RICH:
        with Console(stderr=True).status(msg):
            yield
    else:
        print(msg, file=sys.stderr)
        yield
