from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .aggregate import flatten_results, write_document, write_records
from .api_client import ApiClient, ApiConfig, ConcurrencyLimiter
from .assemble import RecordAssembler
from .config import Config, get_api_token
from .diagnostics import ErrorSink, RunContext
from .extractors import build_registry
from .logging_utils import log_json
from .models import Officer
from .paginate import ListingPaginator


class Orchestrator:
    def __init__(self, config: Config, logger, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self.logger = logger
        api_cfg = ApiConfig(**config.api)
        self.ctx = RunContext(
            limiter=ConcurrencyLimiter(api_cfg.max_concurrency),
            sink=ErrorSink(logger),
            logger=logger,
            sample_mode=config.sample_mode,
            sample_rows=config.sample_rows,
        )
        self.api = ApiClient(api_cfg, self.ctx.limiter, token=get_api_token(), transport=transport)
        self.api.set_logger(self.logger)
        self.registry = build_registry(config.endpoints)
        self.paginator = ListingPaginator(self.api, self.ctx, self.registry["listing"], config.page_size)
        self.assembler = RecordAssembler(
            self.api,
            self.ctx,
            self.registry["profile"],
            self.registry["rank_history"],
            profile_fields=config.profile_fields,
            history_fields=config.history_fields,
        )
        self._summary: Dict[str, Any] = {"started_at": datetime.utcnow().isoformat()}

    async def close(self) -> None:
        await self.api.close()

    async def run(self) -> List[Officer]:
        """Scrape every partition and return the surviving officers.

        Only a credential failure escapes; everything else is recorded in the
        run's error sink.
        """
        await self.api.authenticate()
        partitions = self.config.partitions
        log_json(self.logger, "run_start", partitions=len(partitions), sample_mode=self.ctx.sample_mode)
        tree = await asyncio.gather(*(self._run_partition(letter) for letter in partitions))
        records = flatten_results(tree, self.ctx.sink)
        self._summary.update(
            {
                "finished_at": datetime.utcnow().isoformat(),
                "records": len(records),
                "requests": self.api.request_count,
                "peak_concurrency": self.ctx.limiter.peak,
                "errors": self.ctx.sink.counts(),
                "stats": dict(self.ctx.stats),
            }
        )
        log_json(self.logger, "run_summary", **self._summary)
        return records

    async def run_and_write(self, destination: Optional[str] = None) -> int:
        destination = destination or self.config.output.get("destination", "officers.json")
        records = await self.run()
        written = write_records(records, destination, self.config.region)
        log_json(self.logger, "output_written", destination=destination, records=written)
        diagnostics = self.config.output.get("diagnostics")
        if diagnostics:
            write_document(self.diagnostics_report(), diagnostics, self.config.region)
        return written

    def diagnostics_report(self) -> Dict[str, Any]:
        return {"summary": self._summary, "events": self.ctx.sink.to_payload()}

    async def _run_partition(self, letter: str) -> List[Optional[Officer]]:
        log_json(self.logger, "partition_start", partition=letter)
        records = await self.paginator.fetch_partition(letter, self.assembler.assemble_all)
        kept = sum(1 for r in records if r is not None)
        log_json(self.logger, "partition_done", partition=letter, rows=len(records), records=kept)
        return records
