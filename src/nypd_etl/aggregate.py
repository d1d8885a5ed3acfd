from __future__ import annotations

import json
import os
from typing import Any, Iterable, List, Optional, Set

from .diagnostics import RECORD, ErrorSink
from .errors import OutputWriteError
from .models import Officer
from .s3_io import S3IO, is_s3_uri, parse_s3_uri


def flatten_results(
    tree: Iterable[Iterable[Optional[Officer]]],
    sink: Optional[ErrorSink] = None,
) -> List[Officer]:
    """Flatten per-partition results into one list.

    Drop markers (``None``) are discarded. A repeated id keeps its first
    occurrence so ids stay unique in the output.
    """
    seen: Set[int] = set()
    out: List[Officer] = []
    for records in tree:
        for record in records:
            if record is None:
                continue
            if record.id in seen:
                if sink is not None:
                    sink.record(RECORD, record.id, "duplicate id across listing pages")
                continue
            seen.add(record.id)
            out.append(record)
    return out


def write_document(payload: Any, destination: str, region: str = "us-east-1") -> None:
    """Write ``payload`` as JSON to a local path or an ``s3://`` uri."""
    try:
        if is_s3_uri(destination):
            path = parse_s3_uri(destination)
            S3IO(path.bucket, region).put_json(path.key, payload)
            return
        parent = os.path.dirname(destination)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(destination, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
            f.write("\n")
    except Exception as exc:
        raise OutputWriteError(f"failed to write {destination}: {exc}") from exc


def write_records(records: Iterable[Officer], destination: str, region: str = "us-east-1") -> int:
    payload = [record.to_dict() for record in records]
    write_document(payload, destination, region)
    return len(payload)
