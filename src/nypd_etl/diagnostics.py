from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .api_client import ConcurrencyLimiter
from .logging_utils import log_json

PARTITION = "partition"
PAGE = "page"
RECORD = "record"
FIELD = "field"


@dataclass(frozen=True)
class ErrorEvent:
    scope: str
    key: str
    cause: str


class ErrorSink:
    """Ordered collection of isolated failures, reported at the end of a run."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._events: List[ErrorEvent] = []
        self._logger = logger or logging.getLogger(__name__)

    def record(self, scope: str, key: Any, cause: Any, level: int = logging.WARNING) -> ErrorEvent:
        event = ErrorEvent(scope=scope, key=str(key), cause=str(cause))
        self._events.append(event)
        log_json(self._logger, f"{scope}_error", level=level, key=event.key, cause=event.cause)
        return event

    @property
    def events(self) -> List[ErrorEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def counts(self) -> Dict[str, int]:
        return dict(Counter(e.scope for e in self._events))

    def for_scope(self, scope: str) -> List[ErrorEvent]:
        return [e for e in self._events if e.scope == scope]

    def to_payload(self) -> List[Dict[str, str]]:
        return [asdict(e) for e in self._events]


@dataclass
class RunContext:
    """State shared by every task of a run."""

    limiter: ConcurrencyLimiter
    sink: ErrorSink
    logger: logging.Logger
    sample_mode: bool = False
    sample_rows: int = 10
    stats: Dict[str, int] = field(default_factory=dict)

    def bump(self, name: str, amount: int = 1) -> None:
        self.stats[name] = self.stats.get(name, 0) + amount
