# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PreviewResult serialization: dict/JSON for programs, text for terminals.

Core fields are always present (possibly null). Detail fields appear only
when they were attempted, so "not requested" and "requested but absent"
stay distinguishable after serialization.
"""

from __future__ import annotations

import json
from typing import Any

from . import CORE_FIELDS, DETAIL_FIELDS, PreviewResult


def to_dict(result: PreviewResult, include_meta: bool = False) -> dict[str, Any]:
    """Serialize a PreviewResult to a plain dict."""
    data: dict[str, Any] = {name: getattr(result, name) for name in CORE_FIELDS}
    data.update({name: getattr(result, name) for name in DETAIL_FIELDS if result.is_attempted(name)})
    if result.field_errors:
        data["field_errors"] = dict(result.field_errors)
    if include_meta:
        data["meta"] = {
            "url": result.url,
            "generation_ms": round(result.generation_ms, 1),
        }
    return data


def to_json(result: PreviewResult, indent: int = 2, include_meta: bool = False) -> str:
    """Serialize a PreviewResult to a JSON string."""
    return json.dumps(to_dict(result, include_meta=include_meta), ensure_ascii=False, indent=indent)


def to_text(result: PreviewResult) -> str:
    """Aligned ``field: value`` lines, ``-`` for null values."""
    data = to_dict(result)
    errors = data.pop("field_errors", {})
    width = max(len(name) for name in data)
    lines = [f"{name.ljust(width)}  {value if value is not None else '-'}" for name, value in data.items()]
    for name, error in errors.items():
        lines.append(f"! {name}: {error}")
    return "\n".join(lines)
