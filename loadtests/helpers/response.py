"""Response error extraction for load test observability.

Turns checkout API error bodies into one-line messages for Locust failures:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "..."}]}
- HTTPException (401/403): {"detail": "msg"}
- Domain errors (400/404/500/502): {"error": "msg"} or {"error": {"field": ["msg", ...]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from locust.clients import ResponseContextManager


def _join(messages) -> str:
    if isinstance(messages, list):
        return ", ".join(str(m) for m in messages)
    return str(messages)


def extract_error_detail(response: ResponseContextManager) -> str:
    """Extract a compact, human-readable message from an API error response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        parts = []
        for err in detail:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)
    if isinstance(detail, str):
        return detail

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return " | ".join(f"{field}: {_join(msgs)}" for field, msgs in error.items())
    if error is not None:
        return str(error)

    return str(body)[:300]
