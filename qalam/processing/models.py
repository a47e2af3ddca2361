"""Result types for processor runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

NO_PENDING_EVENTS = "no_pending_events"


@dataclass(frozen=True)
class FailedEvent:
    """One entry in BatchResult.failed."""

    id: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "reason": self.reason}


@dataclass
class BatchResult:
    """Summary of one processor invocation.

    Attributes:
        processed: Events that reached ``completed``
        failed: Events that ended ``failed``, with their reasons, in batch order
        skipped: Events skipped by a preference gate
        total: Size of the fetched batch
        message: ``no_pending_events`` for an empty batch, otherwise None
        run_id: Correlation id shared with the run's log records
        started_at: UTC start of the run
        finished_at: UTC end of the run
    """

    processed: int = 0
    failed: List[FailedEvent] = field(default_factory=list)
    skipped: int = 0
    total: int = 0
    message: Optional[str] = None
    run_id: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def is_empty(self) -> bool:
        return self.message == NO_PENDING_EVENTS

    @property
    def had_failures(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary (counts and failure reasons only)."""
        data: Dict[str, Any] = {
            "processed": self.processed,
            "failed": [entry.to_dict() for entry in self.failed],
            "skipped": self.skipped,
            "total": self.total,
        }
        if self.message is not None:
            data["message"] = self.message
        return data
