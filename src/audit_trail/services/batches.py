"""Correlation of bulk operations into batches."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from threading import Lock
from uuid import uuid4

from audit_trail.domain.errors import BatchError, BatchErrorCode
from audit_trail.domain.models import BatchSummary
from audit_trail.domain.taxonomy import RowOutcome

_logger = logging.getLogger(__name__)

FINISHED_BATCH_MEMORY = 1024


def new_batch_id() -> str:
    """Return a time-ordered, process-wide unique batch token."""
    millis = time.time_ns() // 1_000_000
    return f"batch_{millis:012x}_{uuid4().hex}"


@dataclass
class _BatchCounters:
    actor_id: int | None
    succeeded: int = 0
    failed: int = 0


@dataclass
class BatchCorrelator:
    """Issues batch ids and counts row outcomes per batch.

    Counters are the only state shared between concurrent callers of the
    same batch; every read and write goes through one lock. Counters are
    dropped on finish; only the most recent ``finished_capacity`` batch ids
    are remembered so late rows are reported as already finished.
    """

    finished_capacity: int = FINISHED_BATCH_MEMORY
    _active: dict[str, _BatchCounters] = field(default_factory=dict)
    _finished: OrderedDict[str, None] = field(default_factory=OrderedDict)
    _lock: Lock = field(default_factory=Lock)

    def begin_batch(self, actor_id: int | None = None) -> str:
        """Start a batch and return its id."""
        batch_id = new_batch_id()
        with self._lock:
            self._active[batch_id] = _BatchCounters(actor_id=actor_id)
        _logger.info("Batch started: batch_id=%s actor_id=%s", batch_id, actor_id)
        return batch_id

    def record_row(self, batch_id: str, outcome: RowOutcome) -> None:
        """Count one processed row."""
        with self._lock:
            counters = self._counters(batch_id)
            if RowOutcome(outcome) is RowOutcome.SUCCESS:
                counters.succeeded += 1
            else:
                counters.failed += 1

    def finish_batch(self, batch_id: str) -> BatchSummary:
        """Close a batch and return its totals."""
        with self._lock:
            counters = self._counters(batch_id)
            del self._active[batch_id]
            self._finished[batch_id] = None
            while len(self._finished) > self.finished_capacity:
                self._finished.popitem(last=False)
        summary = BatchSummary(
            batch_id=batch_id,
            attempted=counters.succeeded + counters.failed,
            succeeded=counters.succeeded,
            failed=counters.failed,
        )
        _logger.info(
            "Batch finished: batch_id=%s attempted=%s succeeded=%s failed=%s",
            batch_id,
            summary.attempted,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def actor_for(self, batch_id: str) -> int | None:
        """Return the actor that started an active batch."""
        with self._lock:
            return self._counters(batch_id).actor_id

    def active_batches(self) -> int:
        with self._lock:
            return len(self._active)

    def _counters(self, batch_id: str) -> _BatchCounters:
        counters = self._active.get(batch_id)
        if counters is not None:
            return counters
        if batch_id in self._finished:
            raise BatchError(BatchErrorCode.ALREADY_FINISHED, batch_id)
        raise BatchError(BatchErrorCode.UNKNOWN_BATCH, batch_id)
