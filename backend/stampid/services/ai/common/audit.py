"""AI audit: one structured log line per vision run.

Nothing is persisted: the entry goes to the ``stampid.ai.audit`` logger with
prompt/response hashes. Raw texts are only included when
``AI_DEBUG_STORE_RAW=true``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from stampid.core.config import get_settings

from .providers.base import VisionResponse

logger = logging.getLogger("stampid.ai.audit")

SCOPE_ACTIONS: dict[str, str] = {
    "identify": "AI_STAMP_IDENTIFIED",
}


def build_ai_run_entry(
    *,
    scope: str,
    response: VisionResponse,
    prompt_text: str,
    parsed_output: dict[str, Any] | None,
    latency_ms: float = 0.0,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    settings = get_settings()

    entry: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": response.provider,
        "model": response.model,
        "latency_ms": round(latency_ms, 2),
        "prompt_hash": hashlib.sha256(prompt_text.encode()).hexdigest(),
        "response_hash": hashlib.sha256(response.content.encode()).hexdigest(),
        "parsed": parsed_output is not None,
    }

    if settings.ai_debug_store_raw:
        entry["prompt_raw"] = prompt_text
        entry["response_raw"] = response.content

    if extra_meta:
        entry.update(extra_meta)

    return entry


def log_ai_run(**kwargs: Any) -> dict[str, Any]:
    """Build and emit an AI-run entry; returns it for callers/tests."""
    entry = build_ai_run_entry(**kwargs)
    logger.info("AI_RUN %s", json.dumps(entry, sort_keys=True, default=str))
    return entry
