"""Read-only queries over the audit log streams."""

import re
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from typing import Protocol

from audit_trail.domain.errors import QueryError, QueryErrorCode
from audit_trail.domain.models import (
    AuditLogEntry,
    AuditQuery,
    ChangeRecord,
    DataAccessRecord,
    EntityHistoryItem,
    SecurityEvent,
)

DEFAULT_LIMIT = 50

_RELATIVE_RANGE = re.compile(r"^\s*(\d+)\s*([hdw])\s*$")
_RANGE_UNITS = {"h": "hours", "d": "days", "w": "weeks"}

# Filter fields each stream can answer. A filter on any other field matches
# nothing in that stream.
_AUDIT_LOG_FILTERS = frozenset(
    {
        "entity_type",
        "entity_id",
        "actor_id",
        "action",
        "category",
        "severity",
        "batch_id",
    }
)
_CHANGE_HISTORY_FILTERS = frozenset(
    {"entity_type", "entity_id", "actor_id", "action", "batch_id"}
)
_DATA_ACCESS_FILTERS = frozenset({"entity_type", "entity_id", "actor_id", "action"})
_SECURITY_EVENT_FILTERS = frozenset({"actor_id", "action", "severity"})
_ALWAYS = frozenset({"date_from", "date_to", "limit", "offset"})


class AuditQueryRepository(Protocol):
    """Read interface over the audit log streams.

    Implementations return rows newest-first by timestamp, ties broken by id
    descending, after applying ``offset`` and ``limit``.
    """

    def list_audit_entries(self, query: AuditQuery) -> list[AuditLogEntry]:
        """Return audit log entries matching the query."""

    def list_change_records(self, query: AuditQuery) -> list[ChangeRecord]:
        """Return change records matching the query."""

    def list_change_records_for_entries(
        self, entry_ids: list[int]
    ) -> list[ChangeRecord]:
        """Return all change records belonging to the given entries."""

    def list_data_access(self, query: AuditQuery) -> list[DataAccessRecord]:
        """Return data access records matching the query."""

    def list_security_events(self, query: AuditQuery) -> list[SecurityEvent]:
        """Return security events matching the query."""


@dataclass
class QueryService:
    """Filtered, paginated reads over the four log streams."""

    repository: AuditQueryRepository
    max_limit: int = 500

    def query_audit_log(self, query: AuditQuery) -> list[AuditLogEntry]:
        """Return audit log entries, newest first."""
        resolved = self._resolve(query, _AUDIT_LOG_FILTERS)
        if resolved is None:
            return []
        return self.repository.list_audit_entries(resolved)

    def query_change_history(self, query: AuditQuery) -> list[ChangeRecord]:
        """Return field-level change records, newest first."""
        resolved = self._resolve(query, _CHANGE_HISTORY_FILTERS)
        if resolved is None:
            return []
        return self.repository.list_change_records(resolved)

    def query_data_access(self, query: AuditQuery) -> list[DataAccessRecord]:
        """Return data access records, newest first.

        ``action`` filters on the access type (list, detail, export, search).
        """
        resolved = self._resolve(query, _DATA_ACCESS_FILTERS)
        if resolved is None:
            return []
        return self.repository.list_data_access(resolved)

    def query_security_events(self, query: AuditQuery) -> list[SecurityEvent]:
        """Return security events, newest first.

        ``action`` filters on the security event type.
        """
        resolved = self._resolve(query, _SECURITY_EVENT_FILTERS)
        if resolved is None:
            return []
        return self.repository.list_security_events(resolved)

    def entity_history(
        self, entity_type: str, entity_id: int, limit: int = DEFAULT_LIMIT
    ) -> list[EntityHistoryItem]:
        """Return an entity's audit entries with their change records."""
        entries = self.query_audit_log(
            AuditQuery(entity_type=entity_type, entity_id=entity_id, limit=limit)
        )
        entry_ids = [entry.id for entry in entries if entry.id is not None]
        changes_by_entry: dict[int, list[ChangeRecord]] = {}
        if entry_ids:
            for change in self.repository.list_change_records_for_entries(entry_ids):
                if change.entry_id is not None:
                    changes_by_entry.setdefault(change.entry_id, []).append(change)
        return [
            EntityHistoryItem(entry=entry, changes=changes_by_entry.get(entry.id, []))
            for entry in entries
        ]

    def _resolve(
        self, query: AuditQuery, supported: frozenset[str]
    ) -> AuditQuery | None:
        if (
            query.date_from is not None
            and query.date_to is not None
            and query.date_from > query.date_to
        ):
            raise QueryError(
                QueryErrorCode.INVALID_RANGE,
                f"Invalid date range: {query.date_from.isoformat()} is after "
                f"{query.date_to.isoformat()}",
            )
        for item in fields(query):
            if item.name in supported or item.name in _ALWAYS:
                continue
            if getattr(query, item.name) is not None:
                return None
        limit = query.limit if query.limit > 0 else DEFAULT_LIMIT
        return replace(
            query, limit=min(limit, self.max_limit), offset=max(query.offset, 0)
        )


def parse_relative_range(value: str, now: datetime) -> tuple[datetime, datetime]:
    """Parse shorthand such as ``30d``, ``12h`` or ``2w`` into a date range."""
    match = _RELATIVE_RANGE.match(value)
    if match is None:
        raise QueryError(
            QueryErrorCode.INVALID_RANGE, f"Unrecognized date range: {value!r}"
        )
    amount = int(match.group(1))
    delta = timedelta(**{_RANGE_UNITS[match.group(2)]: amount})
    return now - delta, now
