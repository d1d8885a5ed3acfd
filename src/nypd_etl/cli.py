from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import load_config
from .errors import EtlError
from .logging_utils import log_json, setup_logging
from .orchestrate import Orchestrator


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="nypd_etl", description="Scrape the NYPD Online officer roster.")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Scrape all partitions and write one JSON array")
    run.add_argument("--config", default="config.yaml")
    run.add_argument("--output", help="Local path or s3://bucket/key (overrides output.destination)")
    run.add_argument("--sample", action="store_true", help="First page and first rows of each partition only")
    run.add_argument("--letters", help="Restrict to these last-name letters, e.g. ABC")
    run.add_argument("--log-level", default="INFO")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logger = setup_logging(args.log_level)
    cfg = load_config(args.config).with_overrides(
        sample_mode=True if args.sample else None,
        destination=args.output,
        partitions=_parse_letters(args.letters),
    )
    orchestrator = Orchestrator(cfg, logger)

    async def _run() -> int:
        try:
            return await orchestrator.run_and_write()
        finally:
            await orchestrator.close()

    try:
        asyncio.run(_run())
    except EtlError as exc:
        log_json(logger, "fatal", level=logging.ERROR, error=str(exc))
        sys.exit(1)


def _parse_letters(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    letters = [ch.upper() for ch in raw if ch.isalpha()]
    return letters or None


if __name__ == "__main__":
    main()
