from __future__ import annotations

import os
import string
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from .normalize import PROFILE_FIELDS, RANK_HISTORY_FIELDS, Attribute, field_table

REQUIRED_ENDPOINTS = ("listing", "profile", "rank_history")


@dataclass
class Config:
    raw: Dict[str, Any]

    @property
    def region(self) -> str:
        return self.raw.get("region", "us-east-1")

    @property
    def api(self) -> Dict[str, Any]:
        return self.raw["api"]

    @property
    def listing(self) -> Dict[str, Any]:
        return self.raw.get("listing", {})

    @property
    def page_size(self) -> int:
        return int(self.listing.get("page_size", 100))

    @property
    def partitions(self) -> List[str]:
        letters = self.listing.get("partitions") or string.ascii_uppercase
        return [letter.upper() for letter in letters]

    @property
    def sample(self) -> Dict[str, Any]:
        return self.raw.get("sample", {})

    @property
    def sample_mode(self) -> bool:
        return bool(self.sample.get("enabled", False))

    @property
    def sample_rows(self) -> int:
        return int(self.sample.get("rows", 10))

    @property
    def endpoints(self) -> Dict[str, Any]:
        return self.raw["endpoints"]

    @property
    def fields(self) -> Dict[str, Any]:
        return self.raw.get("fields") or {}

    @property
    def profile_fields(self) -> Dict[str, Attribute]:
        return field_table(self.fields.get("profile"), PROFILE_FIELDS)

    @property
    def history_fields(self) -> Dict[str, Attribute]:
        return field_table(self.fields.get("rank_history"), RANK_HISTORY_FIELDS)

    @property
    def output(self) -> Dict[str, Any]:
        return self.raw.get("output", {})

    def with_overrides(
        self,
        sample_mode: Optional[bool] = None,
        destination: Optional[str] = None,
        partitions: Optional[List[str]] = None,
    ) -> "Config":
        raw = dict(self.raw)
        if sample_mode is not None:
            raw["sample"] = {**self.sample, "enabled": sample_mode}
        if destination is not None:
            raw["output"] = {**self.output, "destination": destination}
        if partitions is not None:
            raw["listing"] = {**self.listing, "partitions": partitions}
        return Config(raw)


def validate_config(cfg: Config) -> None:
    if int(cfg.api.get("max_concurrency", 0)) < 1:
        raise ValueError("api.max_concurrency must be >= 1")
    if cfg.page_size < 1:
        raise ValueError("listing.page_size must be >= 1")
    missing = [name for name in REQUIRED_ENDPOINTS if name not in cfg.endpoints]
    if missing:
        raise ValueError(f"missing endpoint definitions: {missing}")
    defaults = {"profile": PROFILE_FIELDS, "rank_history": RANK_HISTORY_FIELDS}
    unknown = sorted(set(cfg.fields) - set(defaults))
    if unknown:
        raise ValueError(f"unknown field tables: {unknown}")
    for report, default in defaults.items():
        field_table(cfg.fields.get(report), default)


def load_config(path: str = "config.yaml") -> Config:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    cfg = Config(raw)
    validate_config(cfg)
    return cfg


def get_api_token() -> Optional[str]:
    return os.getenv("NYPD_OIP_TOKEN") or None
