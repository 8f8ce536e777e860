"""Pull a JSON document out of free-form model text."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) the models like to add."""
    return _FENCE_RE.sub("", text).strip()


def extract_json(text: str) -> dict | list | None:
    """Return the first JSON object/array found in *text*, or ``None``.

    Tries the whole (fence-stripped) text first, then scans for the first
    ``{``/``[`` whose balanced span parses.
    """
    if not text or not text.strip():
        return None

    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, ValueError):
        pass

    for start, ch in enumerate(cleaned):
        if ch not in "{[":
            continue
        end = _balanced_end(cleaned, start)
        if end is None:
            continue
        try:
            return json.loads(cleaned[start : end + 1])
        except (json.JSONDecodeError, ValueError):
            continue

    logger.debug("No JSON document found in %d chars of model text", len(text))
    return None


def _balanced_end(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at *start*, ignoring string contents."""
    closer = {"{": "}", "[": "]"}
    stack = [closer[text[start]]]
    in_string = False
    escape = False

    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in closer:
            stack.append(closer[ch])
        elif ch in "}]":
            if ch != stack.pop():
                return None
            if not stack:
                return i

    return None
