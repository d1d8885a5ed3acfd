from __future__ import annotations

import asyncio
import math
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .api_client import ApiClient
from .diagnostics import PAGE, PARTITION, RunContext
from .extractors.base import EndpointSpec
from .extractors.listing import build_listing_params, parse_listing_page
from .logging_utils import log_json

Rows = List[Dict[str, Any]]
PageHandler = Callable[[Rows], Awaitable[List[Any]]]


def page_count(total: int, page_size: int) -> int:
    """Pages needed for ``total`` rows. Page 1 is always fetched."""
    return max(1, math.ceil(total / page_size))


class ListingPaginator:
    def __init__(self, api: ApiClient, ctx: RunContext, spec: EndpointSpec, page_size: int = 100) -> None:
        self.api = api
        self.ctx = ctx
        self.spec = spec
        self.page_size = page_size

    async def fetch_partition(self, letter: str, handle: Optional[PageHandler] = None) -> List[Any]:
        """Return every listing row for one last-name letter, in page order.

        With ``handle``, each page's rows are passed to it as soon as that page
        arrives and its results are returned instead of the rows. A failed first
        page means the partition yields nothing; a failed later page contributes
        nothing.
        """
        handle = handle or _rows
        try:
            total, first_rows = parse_listing_page(await self._fetch_page(letter, 1))
        except Exception as exc:
            self.ctx.sink.record(PARTITION, letter, f"page 1: {exc!r}")
            return []
        pages = page_count(total, self.page_size)
        log_json(self.ctx.logger, "partition_listed", partition=letter, total=total, pages=pages)
        if self.ctx.sample_mode:
            return list(await handle(self._truncate(first_rows)))
        per_page = await asyncio.gather(
            handle(first_rows),
            *(self._fetch_and_handle(letter, page, handle) for page in range(2, pages + 1)),
        )
        out: List[Any] = []
        for results in per_page:
            out.extend(results)
        return out

    async def _fetch_and_handle(self, letter: str, page: int, handle: PageHandler) -> List[Any]:
        try:
            _, rows = parse_listing_page(await self._fetch_page(letter, page))
        except Exception as exc:
            self.ctx.sink.record(PAGE, f"{letter}:{page}", repr(exc))
            return []
        return await handle(rows)

    async def _fetch_page(self, letter: str, page: int) -> Any:
        params = build_listing_params(self.spec, letter, page, self.page_size)
        self.ctx.bump("pages_requested")
        return await self.api.get_json(self.spec.path, params=params)

    def _truncate(self, rows: Rows) -> Rows:
        return rows[: self.ctx.sample_rows]


async def _rows(rows: Rows) -> Rows:
    return rows
