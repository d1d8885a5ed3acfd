from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

from .base import EndpointSpec

SEARCH_NAME_PLACEHOLDER = "SEARCH_FILTER_VALUE"


def build_listing_params(spec: EndpointSpec, letter: str, page: int, page_size: int) -> Dict[str, Any]:
    filters = {
        "filters": [
            {"key": "@SearchName", "label": "Search Name", "values": [SEARCH_NAME_PLACEHOLDER]},
            {
                "key": spec.filter_key or "@LastNameFirstLetter",
                "label": spec.filter_label or "Last Name First Letter",
                "values": [letter],
            },
        ]
    }
    return {
        "aggregate": "",
        "filter": "",
        "group": "",
        "page": page,
        "pageSize": page_size,
        "platformFilters": json.dumps(filters, separators=(",", ":")),
        "sort": "",
    }


def parse_listing_page(payload: Any) -> Tuple[int, List[Dict[str, Any]]]:
    """Return ``(total, rows)`` from one listing page.

    Raises ValueError when the page has no usable total.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected listing payload type {type(payload).__name__}")
    total = payload.get("Total")
    if isinstance(total, bool) or total is None:
        raise ValueError(f"listing page has no Total: {total!r}")
    total = int(total)
    if total < 0:
        raise ValueError(f"negative listing Total {total}")
    rows = payload.get("Data") or []
    if not isinstance(rows, list):
        raise ValueError("listing Data is not a list")
    return total, [row for row in rows if isinstance(row, dict)]
