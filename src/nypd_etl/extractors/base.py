from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class EndpointSpec:
    name: str
    path: str
    filter_key: Optional[str] = None
    filter_label: Optional[str] = None


def build_extractor(spec: Dict[str, Any]) -> EndpointSpec:
    return EndpointSpec(
        name=spec["name"],
        path=spec["path"],
        filter_key=spec.get("filter_key"),
        filter_label=spec.get("filter_label"),
    )
