"""Single write path for the audit log streams."""

import json
import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from threading import BoundedSemaphore, Event
from typing import Protocol

from audit_trail.domain.models import (
    AuditLogEntry,
    ChangeRecord,
    DataAccessRecord,
    SecurityEvent,
)

_logger = logging.getLogger(__name__)


class AuditLogRepository(Protocol):
    """Append-only persistence interface for the audit log streams."""

    def append_entry(self, entry: AuditLogEntry, changes: list[ChangeRecord]) -> int:
        """Write an entry and its change records together; return the entry id."""

    def append_access(self, record: DataAccessRecord) -> int:
        """Write a data access record and return its id."""

    def append_security_event(self, event: SecurityEvent) -> int:
        """Write a security event and return its id."""


@dataclass(frozen=True)
class Recorded:
    """The record was durably appended."""

    record_id: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Degraded:
    """The record was not persisted; the caller should carry on."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


RecordResult = Recorded | Degraded


@dataclass
class Recorder:
    """Appends audit records without ever failing the caller's operation.

    Each append runs on a worker thread and is abandoned after
    ``timeout_seconds``. An abandoned append that has not started yet is
    dropped, so a timeout behaves like a store failure; one already inside
    the store cannot be recalled. At most ``max_pending`` appends may be
    outstanding, further calls degrade immediately. Failures and timeouts
    are written to the module logger together with the lost payload and
    reported as ``Degraded``.
    """

    repository: AuditLogRepository
    timeout_seconds: float = 2.0
    enabled: bool = True
    max_workers: int = 4
    max_pending: int = 8
    _executor: ThreadPoolExecutor = field(init=False, repr=False)
    _slots: BoundedSemaphore = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="audit-recorder"
        )
        self._slots = BoundedSemaphore(max(self.max_pending, 1))

    def record(self, entry: AuditLogEntry, changes: list[ChangeRecord]) -> RecordResult:
        """Append an entry with its change records as one unit."""
        return self._append(
            "entry",
            lambda: self.repository.append_entry(entry, changes),
            {"entry": asdict(entry), "changes": [asdict(c) for c in changes]},
        )

    def record_access(self, record: DataAccessRecord) -> RecordResult:
        """Append a data access record."""
        return self._append(
            "data access",
            lambda: self.repository.append_access(record),
            asdict(record),
        )

    def record_security_event(self, event: SecurityEvent) -> RecordResult:
        """Append a security event."""
        return self._append(
            "security event",
            lambda: self.repository.append_security_event(event),
            asdict(event),
        )

    def close(self, wait: bool = False) -> None:
        """Stop accepting writes; queued appends are dropped."""
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def _append(
        self, kind: str, call: Callable[[], int], payload: dict[str, object]
    ) -> RecordResult:
        if not self.enabled:
            return Degraded(reason="disabled")
        if not self._slots.acquire(blocking=False):
            reason = "backlog full"
            _log_lost(kind, reason, payload)
            return Degraded(reason=reason)
        abandoned = Event()
        try:
            future = self._submit(call, abandoned)
            record_id = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            abandoned.set()
            future.cancel()
            reason = f"timed out after {self.timeout_seconds:.3f}s"
        except Exception as exc:  # noqa: BLE001
            reason = str(exc) or type(exc).__name__
        else:
            return Recorded(record_id=record_id)
        _log_lost(kind, reason, payload)
        return Degraded(reason=reason)

    def _submit(self, call: Callable[[], int], abandoned: Event) -> Future:
        try:
            future = self._executor.submit(_unless_abandoned, call, abandoned)
        except RuntimeError:
            self._slots.release()
            raise
        future.add_done_callback(lambda _: self._slots.release())
        return future


def _unless_abandoned(call: Callable[[], int], abandoned: Event) -> int | None:
    if abandoned.is_set():
        return None
    return call()


def _log_lost(kind: str, reason: str, payload: dict[str, object]) -> None:
    _logger.warning(
        "Audit %s not persisted (%s): %s",
        kind,
        reason,
        json.dumps(payload, default=str),
    )
