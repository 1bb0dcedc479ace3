from __future__ import annotations

import json
from typing import Any, Optional

MAX_FALLBACK_CHARS = 2000


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return None


def extract_assistant_text(body: Any) -> str:
    """Pull the display text out of a generation response.

    Shapes are tried in a fixed order: plain string, ``answer``, ``result``,
    ``choices[0].message.content`` then ``choices[0].text``, top-level
    ``message.content``. Anything else is stringified and truncated.
    """
    # Empty containers still go through the stringify fallback.
    if not body and not isinstance(body, (dict, list)):
        return ""
    if isinstance(body, str):
        return body
    answer = _get(body, "answer")
    if isinstance(answer, str) and answer:
        return answer
    result = _get(body, "result")
    if isinstance(result, str) and result:
        return result
    choices = _get(body, "choices")
    if isinstance(choices, list) and choices:
        choice = choices[0]
        content = _get(_get(choice, "message"), "content")
        if content:
            return str(content)
        text = _get(choice, "text")
        if text:
            return str(text)
    content = _get(_get(body, "message"), "content")
    if content:
        return str(content)
    try:
        return json.dumps(body, ensure_ascii=False, separators=(",", ":"))[:MAX_FALLBACK_CHARS]
    except (TypeError, ValueError):
        return str(body)[:MAX_FALLBACK_CHARS]


def error_text(body: Any, status: Optional[int]) -> str:
    """Message for a rejected request: the structured ``error`` when present."""
    error = _get(body, "error")
    if error:
        if isinstance(error, str):
            return error
        return json.dumps(error, ensure_ascii=False, separators=(",", ":"))
    return f"Worker error: status {status}"
