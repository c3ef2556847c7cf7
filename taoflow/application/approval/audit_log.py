"""Audit sink protocol and in-memory audit log."""

import json
import logging
from collections import deque
from datetime import datetime
from typing import Protocol

from taoflow.domain.models.approval import AuditEntry, AuditOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000


class AuditSink(Protocol):
    """Receives every approval decision exactly once."""

    def record(self, entry: AuditEntry) -> None:
        ...


class InMemoryAuditLog:
    """Bounded audit trail; oldest entries are dropped first."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)

    def record(self, entry: AuditEntry) -> None:
        self._entries.append(entry)
        logger.debug(
            f"Approval logged: {entry.request_id or entry.action.type} - {entry.outcome.value}"
        )

    def entries(self) -> list[AuditEntry]:
        return list(self._entries)

    def by_outcome(self, *outcomes: AuditOutcome) -> list[AuditEntry]:
        return [e for e in self._entries if e.outcome in outcomes]

    def by_time_range(self, start: datetime, end: datetime) -> list[AuditEntry]:
        return [e for e in self._entries if start <= e.timestamp <= end]

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Audit log cleared")

    def export_json(self) -> str:
        return json.dumps([e.model_dump(mode="json") for e in self._entries], indent=2)
