from __future__ import annotations

from typing import Any, Dict, List

from .base import EndpointSpec


def build_detail_body(spec: EndpointSpec, record_id: int) -> Dict[str, Any]:
    return {
        "filters": [
            {
                "key": spec.filter_key or "@TAXID",
                "label": spec.filter_label or "TAXID",
                "values": [str(record_id)],
            }
        ]
    }


def coerce_entries(payload: Any) -> List[Dict[str, Any]]:
    """Return the entries of a detail reply.

    Detail datasets answer with a JSON array, or an object wrapping one under
    ``Data``. Any other shape (an error object served with status 200, say)
    raises ``ValueError``.
    """
    if isinstance(payload, dict) and isinstance(payload.get("Data"), list):
        payload = payload["Data"]
    if not isinstance(payload, list):
        raise ValueError(f"unexpected detail payload: {str(payload)[:200]}")
    return [entry for entry in payload if isinstance(entry, dict)]
