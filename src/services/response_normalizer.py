"""Normalisation of raw provider completions into recommendation dicts.

Providers are asked for a bare JSON array of ``{title, author, reason}``
objects but often wrap it in a Markdown code fence, sometimes with a
sentence of preamble.  This module strips those quirks and returns an
explicit :class:`NormalizedResponse`; scoring code never sees raw text.

Anything that is not a JSON array (an object, a string, prose) is a
failure.  Array items that are not objects or that lack a title are
dropped; an array with no usable item is also a failure.
"""

from __future__ import annotations

import json
import re
from typing import Any

from src.models.recommendation import NormalizedResponse

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _load_json(text: str) -> Any:
    """Parse *text* directly, then fall back to the first fenced block."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _JSON_FENCE_RE.search(text)
    if match is None:
        raise ValueError("Response is neither JSON nor a fenced JSON block")
    return json.loads(match.group(1).strip())


def _clean_item(item: Any) -> dict[str, Any] | None:
    if not isinstance(item, dict):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return None

    cleaned = dict(item)
    cleaned["title"] = title.strip()
    author = item.get("author")
    cleaned["author"] = author.strip() if isinstance(author, str) else ""
    reason = item.get("reason")
    cleaned["reason"] = reason.strip() if isinstance(reason, str) else ""
    return cleaned


def normalize_provider_response(content: str | None) -> NormalizedResponse:
    """Turn a provider completion into a list of recommendation dicts.

    Parameters
    ----------
    content:
        The raw completion text.

    Returns
    -------
    NormalizedResponse
        ``ok=True`` with the usable items in provider order, or
        ``ok=False`` with an ``error`` describing why the body was
        rejected.
    """
    if content is None or not content.strip():
        return NormalizedResponse(ok=False, error="Empty response body")

    try:
        parsed = _load_json(content.strip())
    except ValueError as exc:
        return NormalizedResponse(ok=False, error=f"Unparseable response: {exc}")

    if not isinstance(parsed, list):
        return NormalizedResponse(
            ok=False,
            error=f"Expected a JSON array, got {type(parsed).__name__}",
        )

    items = [cleaned for cleaned in (_clean_item(item) for item in parsed) if cleaned]
    if not items:
        return NormalizedResponse(ok=False, error="Response array contains no usable items")
    return NormalizedResponse(ok=True, items=items)
