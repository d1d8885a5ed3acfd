from typing import Dict

from .base import EndpointSpec, build_extractor

ENDPOINT_NAMES = [
    "listing",
    "profile",
    "rank_history",
]


def build_registry(config_endpoints: Dict) -> Dict[str, EndpointSpec]:
    registry = {}
    for name in ENDPOINT_NAMES:
        spec = dict(config_endpoints[name])
        spec["name"] = name
        registry[name] = build_extractor(spec)
    return registry
