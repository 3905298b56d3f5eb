"""
Condition template interpolation.

Condition templates hold ``{{path}}`` placeholders that are filled per
request, either from the principal (policy conditions) or from the
operation arguments (requirement conditions):

    interpolate({"id": "{{id}}"}, {"id": "u1"})
    # {"id": "u1"}

    interpolate({"q": "{{ user.first }} {{user.last}}"}, {"user": {...}})
    # {"q": "John Doe"}

A placeholder whose path cannot be resolved is left exactly as written,
braces included, so the condition can no longer match real data.
"""

import re
from enum import Enum
from typing import Any, Mapping, Sequence

PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")

_MISSING = object()

_SCALARS = (str, bytes, int, float, bool)


def interpolate(template: Mapping[str, Any] | None, values: Any) -> dict[str, Any]:
    """
    Resolve every placeholder in ``template`` against ``values``.

    Returns a new dict. The template (often shared configuration) is
    never modified.
    """
    if not template:
        return {}
    return {key: _resolve(item, values) for key, item in template.items()}


def _resolve(item: Any, values: Any) -> Any:
    if isinstance(item, Mapping):
        return {key: _resolve(value, values) for key, value in item.items()}
    if isinstance(item, (list, tuple)):
        return [_resolve(value, values) for value in item]
    if isinstance(item, str):
        return replace_placeholders(item, values)
    return item


def replace_placeholders(text: str, values: Any) -> str:
    """Substitute each ``{{path}}`` in ``text``, leaving unresolved ones intact."""

    def substitute(match: re.Match) -> str:
        found = lookup(values, match.group(1).strip())
        if found is _MISSING:
            return match.group(0)
        return render(found)

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def lookup(values: Any, path: str, default: Any = _MISSING) -> Any:
    """
    Walk a dot-separated ``path`` into ``values``.

    Each segment is tried as a mapping key, then as an integer index into a
    sequence, then as a public attribute of an object. Scalars have no
    attributes here, so ``{{name.upper}}`` stays unresolved.
    """
    if not path:
        return default

    current = values
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return default
        elif (
            not segment.startswith("_")
            and not isinstance(current, _SCALARS)
            and hasattr(current, segment)
        ):
            current = getattr(current, segment)
        else:
            return default
    return current


def render(value: Any) -> str:
    """
    Render a resolved value the way it travels in JSON-ish text.

    Sequences are joined with commas (``["A", "B"]`` -> ``"A,B"``).
    """
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return ",".join(render(item) for item in items)
    return str(value)


def find_placeholders(template: Any) -> list[str]:
    """List every placeholder path used anywhere in ``template``."""
    if isinstance(template, Mapping):
        return [path for item in template.values() for path in find_placeholders(item)]
    if isinstance(template, (list, tuple)):
        return [path for item in template for path in find_placeholders(item)]
    if isinstance(template, str):
        return [match.strip() for match in PLACEHOLDER_PATTERN.findall(template)]
    return []
