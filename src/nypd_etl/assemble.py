from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from .api_client import ApiClient
from .diagnostics import RECORD, RunContext
from .errors import DetailLookupError
from .extractors.base import EndpointSpec
from .extractors.detail import build_detail_body, coerce_entries
from .models import Officer
from .normalize import Attribute, normalize_officer

UNKNOWN_DISPLAY_NAME = "<unknown>"


async def fetch_detail(api: ApiClient, spec: EndpointSpec, record_id: int) -> List[Dict[str, Any]]:
    """Look up one record in a detail dataset and return its raw entries."""
    payload = await api.post_json(spec.path, build_detail_body(spec, record_id))
    return coerce_entries(payload)


def row_id(row: Dict[str, Any]) -> int:
    value = row.get("RowValue")
    if value is None:
        raise ValueError("row has no RowValue")
    return int(str(value).strip())


def row_display_name(row: Dict[str, Any]) -> str:
    for column in row.get("Columns") or []:
        value = column.get("Value") if isinstance(column, dict) else None
        if isinstance(value, str) and "," in value:
            return value.strip()
    label = row.get("Label")
    if isinstance(label, str) and label.strip():
        return label.strip()
    return UNKNOWN_DISPLAY_NAME


class RecordAssembler:
    def __init__(
        self,
        api: ApiClient,
        ctx: RunContext,
        profile_spec: EndpointSpec,
        history_spec: EndpointSpec,
        profile_fields: Optional[Dict[str, Attribute]] = None,
        history_fields: Optional[Dict[str, Attribute]] = None,
    ) -> None:
        self.api = api
        self.ctx = ctx
        self.profile_spec = profile_spec
        self.history_spec = history_spec
        self.profile_fields = profile_fields
        self.history_fields = history_fields

    async def assemble_all(self, rows: List[Dict[str, Any]]) -> List[Optional[Officer]]:
        return list(await asyncio.gather(*(self.assemble(row) for row in rows)))

    async def assemble(self, row: Dict[str, Any]) -> Optional[Officer]:
        """Build one officer from a listing row, or ``None`` if it must be dropped."""
        display_name = row_display_name(row)
        try:
            record_id = row_id(row)
        except ValueError as exc:
            self._drop(row.get("RowValue"), display_name, exc)
            return None
        try:
            profiles, history = await asyncio.gather(
                fetch_detail(self.api, self.profile_spec, record_id),
                fetch_detail(self.api, self.history_spec, record_id),
            )
            if len(profiles) != 1:
                raise DetailLookupError(f"expected exactly one profile entry, got {len(profiles)}")
            officer = normalize_officer(
                record_id,
                profiles[0],
                history,
                self.ctx.sink,
                profile_fields=self.profile_fields,
                history_fields=self.history_fields,
            )
        except Exception as exc:
            self._drop(record_id, display_name, exc)
            return None
        self.ctx.bump("records_built")
        return officer

    def _drop(self, key: Any, display_name: str, exc: Exception) -> None:
        self.ctx.bump("records_dropped")
        self.ctx.sink.record(RECORD, key, f"{display_name}: {exc!r}")
