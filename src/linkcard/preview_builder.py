# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Preview orchestrator: runs the field resolvers and assembles a PreviewResult.

Phases:
- core: title, description, image, domain_name (always attempted)
- detail: icon + type (detailed), video (detailed or video), theme_color
  (detailed or theme color; dominant-color fallback only on its own flag)

Fields are independent, so they run concurrently. Each field is wrapped in
a FieldOutcome: an exception or timeout inside one field nulls that field
only. A failure to read the page URL itself is fatal and propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from . import CORE_FIELDS, PreviewResult
from .color import resolve_theme_color
from .config import DEFAULT_CONFIG, ExtractionConfig, ResolutionOptions
from .document import DocumentQuery
from .media import MediaProbe
from .resolvers import (
    page_domain,
    resolve_description,
    resolve_domain_name,
    resolve_icon,
    resolve_image,
    resolve_title,
    resolve_type,
    resolve_video,
)

logger = logging.getLogger(__name__)

FieldResolver = Callable[[], Awaitable[str | None]]


@dataclass(frozen=True, slots=True)
class FieldOutcome:
    """Result of one field's resolution: a value, a null, or a logged error."""

    name: str
    value: str | None
    error: str | None = None
    elapsed_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None


async def _resolve_field_safe(name: str, resolver: FieldResolver, timeout_s: float) -> FieldOutcome:
    """Run one field's chain with error isolation; never raises (cancellation excepted)."""
    start = time.monotonic()
    try:
        async with asyncio.timeout(timeout_s):
            value = await resolver()
    except TimeoutError:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning("Field %s timed out after %.0fms", name, elapsed)
        return FieldOutcome(name=name, value=None, error="timeout", elapsed_ms=elapsed)
    except Exception as e:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning("Field %s failed (%s): %s", name, type(e).__name__, e, exc_info=True)
        return FieldOutcome(name=name, value=None, error=f"{type(e).__name__}: {e}", elapsed_ms=elapsed)
    elapsed = (time.monotonic() - start) * 1000
    return FieldOutcome(name=name, value=value, elapsed_ms=elapsed)


def plan_fields(
    document: DocumentQuery,
    options: ResolutionOptions,
    probe: MediaProbe,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> dict[str, FieldResolver]:
    """Map of field name → resolver for the requested detail level (insertion order = report order)."""
    plan: dict[str, FieldResolver] = {
        "title": lambda: resolve_title(document, config),
        "description": lambda: resolve_description(document, config),
        "image": lambda: resolve_image(document, probe, config),
        "domain_name": lambda: resolve_domain_name(document, config),
    }
    if options.wants_icon:
        plan["icon"] = lambda: resolve_icon(document, probe, config)
    if options.wants_type:
        plan["type"] = lambda: resolve_type(document, config)
    if options.wants_video:
        plan["video"] = lambda: resolve_video(document, probe, config)
    if options.wants_theme_color:
        plan["theme_color"] = lambda: resolve_theme_color(document, options.dominant_theme_color, config)
    return plan


async def build_preview(
    document: DocumentQuery,
    options: ResolutionOptions | None = None,
    probe: MediaProbe | None = None,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> PreviewResult:
    """Resolve every requested field of *document* exactly once.

    Args:
        document: loaded page (live or offline)
        options: requested detail level (core fields only when None)
        probe: network probe for media candidates (a private one is created when None)
        config: attribute names, thresholds, timeouts

    Returns:
        PreviewResult; fields that were not requested are absent from ``attempted``.
    """
    options = options or ResolutionOptions()
    start = time.monotonic()
    page_url = await document.page_url()

    own_probe = probe is None
    probe = probe or MediaProbe(config=config)
    try:
        plan = plan_fields(document, options, probe, config)
        outcomes = await asyncio.gather(
            *(_resolve_field_safe(name, resolver, config.field_timeout_s) for name, resolver in plan.items())
        )
    finally:
        if own_probe:
            await probe.aclose()

    values = {o.name: o.value for o in outcomes}
    field_errors = {o.name: o.error for o in outcomes if o.error is not None}

    domain_name = values.get("domain_name") or page_domain(page_url)

    elapsed_ms = (time.monotonic() - start) * 1000
    result = PreviewResult(
        url=page_url,
        domain_name=domain_name,
        title=values.get("title"),
        description=values.get("description"),
        image=values.get("image"),
        icon=values.get("icon"),
        type=values.get("type"),
        video=values.get("video"),
        theme_color=values.get("theme_color"),
        attempted=frozenset(plan) | frozenset(CORE_FIELDS),
        field_errors=field_errors,
        generation_ms=elapsed_ms,
    )

    logger.info(
        "Preview built: url=%s fields=%d resolved=%d failed=%d %.0fms",
        page_url,
        len(plan),
        sum(1 for o in outcomes if o.value is not None),
        len(field_errors),
        elapsed_ms,
    )
    for o in outcomes:
        logger.debug("  %s: %.1fms %s", o.name, o.elapsed_ms, "error" if o.failed else "ok")
    return result
