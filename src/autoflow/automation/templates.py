"""Template rendering for node configs.

Placeholders use ``{{ dotted.path }}`` syntax and are resolved against the
context's template data.  Numeric path segments index into lists.

Rendering rules:
    - missing path → empty string
    - strings are inserted as-is
    - ``None`` → empty string
    - booleans → ``true`` / ``false``
    - everything else → ``json.dumps`` (numbers stay bare, mappings and
      lists become JSON)

A string that is exactly one placeholder can be resolved to its raw value
with :func:`resolve_value`; the webhook runner uses that for JSON bodies.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_MISSING = object()


def normalize_path(path: str) -> str:
    """Strip surrounding braces and whitespace: ``"{{ a.b }}"`` → ``"a.b"``."""
    return path.strip().strip("{}").strip()


def _lookup(data: Any, path: str) -> Any:
    current = data
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdigit():
                return _MISSING
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def get_value_by_path(data: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path, optionally wrapped in ``{{ }}``; missing → None."""
    path = normalize_path(path)
    if not path:
        return None
    value = _lookup(data, path)
    return None if value is _MISSING else value


def _stringify(value: Any) -> str:
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, default=str, ensure_ascii=False)


def render_string(template: str, data: Mapping[str, Any]) -> str:
    """Replace every ``{{ path }}`` in ``template``."""
    return _PLACEHOLDER.sub(lambda m: _stringify(_lookup(data, m.group(1))), template)


def resolve_value(template: str, data: Mapping[str, Any]) -> Any:
    """Like :func:`render_string` but a lone placeholder keeps its raw type."""
    match = _PLACEHOLDER.fullmatch(template.strip())
    if match:
        value = _lookup(data, match.group(1))
        return None if value is _MISSING else value
    return render_string(template, data)


def render_structure(value: Any, data: Mapping[str, Any]) -> Any:
    """Render strings nested anywhere inside mappings and lists."""
    if isinstance(value, str):
        return resolve_value(value, data)
    if isinstance(value, Mapping):
        return {k: render_structure(v, data) for k, v in value.items()}
    if isinstance(value, list):
        return [render_structure(v, data) for v in value]
    return value


__all__ = [
    "normalize_path",
    "get_value_by_path",
    "render_string",
    "resolve_value",
    "render_structure",
]
