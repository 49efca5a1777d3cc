"""Response error extraction for load test observability.

Turns Souk Sales API error bodies into one-line messages for Locust failure
reports. Two body shapes exist:

- FastAPI request validation (422): {"detail": [{"loc": [...], "msg": "..."}]}
- Domain failures (400, 404, 409, 503): {"error": "msg"} or {"error": {"field": ["msg"]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

_MAX_DETAIL = 300


def _field_errors(error: dict) -> str:
    parts = []
    for field, messages in error.items():
        if isinstance(messages, list):
            messages = "; ".join(str(message) for message in messages)
        parts.append(f"{field}: {messages}")
    return " | ".join(parts)


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:_MAX_DETAIL] or "(empty response body)"

    if isinstance(body, dict) and isinstance(body.get("detail"), list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if isinstance(body, dict) and "error" in body:
        error = body["error"]
        return _field_errors(error) if isinstance(error, dict) else str(error)

    return str(body)[:_MAX_DETAIL]
