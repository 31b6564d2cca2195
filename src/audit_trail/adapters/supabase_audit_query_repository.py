"""Supabase queries over the audit log streams."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from audit_trail.domain.models import (
    AuditLogEntry,
    AuditQuery,
    ChangeRecord,
    DataAccessRecord,
    SecurityEvent,
)
from audit_trail.domain.taxonomy import (
    AccessType,
    AuditAction,
    Category,
    SecurityEventType,
    Severity,
)
from audit_trail.services.queries import AuditQueryRepository

_AUDIT_LOG_COLUMNS = {
    "entity_type": "entity_type",
    "entity_id": "entity_id",
    "actor_id": "user_id",
    "action": "action",
    "category": "category",
    "severity": "severity",
    "batch_id": "batch_id",
}
_CHANGE_HISTORY_COLUMNS = {
    "entity_type": "entity_type",
    "entity_id": "entity_id",
    "actor_id": "user_id",
    "action": "action",
    "batch_id": "batch_id",
}
_DATA_ACCESS_COLUMNS = {
    "entity_type": "entity_type",
    "entity_id": "entity_id",
    "actor_id": "user_id",
    "action": "access_type",
}
_SECURITY_EVENT_COLUMNS = {
    "actor_id": "user_id",
    "action": "event_type",
    "severity": "severity",
}


@dataclass
class SupabaseAuditQueryRepository(AuditQueryRepository):
    """Supabase implementation of the audit read side."""

    client: Client

    def list_audit_entries(self, query: AuditQuery) -> list[AuditLogEntry]:
        """Return audit log entries newest first."""
        response = self._select("audit_logs", query, _AUDIT_LOG_COLUMNS).execute()
        return [_parse_entry(row) for row in response.data or []]

    def list_change_records(self, query: AuditQuery) -> list[ChangeRecord]:
        """Return change records newest first."""
        response = self._select(
            "change_history", query, _CHANGE_HISTORY_COLUMNS
        ).execute()
        return [_parse_change(row) for row in response.data or []]

    def list_change_records_for_entries(
        self, entry_ids: list[int]
    ) -> list[ChangeRecord]:
        """Return all change records belonging to the given entries."""
        response = (
            self.client.table("change_history")
            .select("*")
            .in_("entry_id", entry_ids)
            .order("id", desc=False)
            .execute()
        )
        return [_parse_change(row) for row in response.data or []]

    def list_data_access(self, query: AuditQuery) -> list[DataAccessRecord]:
        """Return data access records newest first."""
        response = self._select(
            "data_access_logs", query, _DATA_ACCESS_COLUMNS
        ).execute()
        return [_parse_access(row) for row in response.data or []]

    def list_security_events(self, query: AuditQuery) -> list[SecurityEvent]:
        """Return security events newest first."""
        response = self._select(
            "security_events", query, _SECURITY_EVENT_COLUMNS
        ).execute()
        return [_parse_security_event(row) for row in response.data or []]

    def _select(self, table: str, query: AuditQuery, columns: dict[str, str]):
        builder = self.client.table(table).select("*")
        for attribute, column in columns.items():
            value = getattr(query, attribute)
            if value is not None:
                builder = builder.eq(column, str(value))
        if query.date_from is not None:
            builder = builder.gte("timestamp", query.date_from.isoformat())
        if query.date_to is not None:
            builder = builder.lte("timestamp", query.date_to.isoformat())
        return (
            builder.order("timestamp", desc=True)
            .order("id", desc=True)
            .range(query.offset, query.offset + query.limit - 1)
        )


def _parse_entry(row: dict[str, object]) -> AuditLogEntry:
    return AuditLogEntry(
        id=int(row["id"]),
        actor_id=_optional_int(row.get("user_id")),
        action=AuditAction(str(row["action"])),
        entity_type=str(row["entity_type"]),
        entity_id=_optional_int(row.get("entity_id")),
        entity_name=row.get("entity_name"),
        description=str(row.get("description") or ""),
        severity=Severity(str(row.get("severity") or Severity.INFO)),
        category=Category(str(row["category"])),
        timestamp=_parse_timestamp(row["timestamp"]),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        session_id=row.get("session_id"),
        batch_id=row.get("batch_id"),
        metadata=row.get("metadata"),
    )


def _parse_change(row: dict[str, object]) -> ChangeRecord:
    return ChangeRecord(
        id=int(row["id"]),
        entry_id=_optional_int(row.get("entry_id")),
        entity_type=str(row["entity_type"]),
        entity_id=_optional_int(row.get("entity_id")),
        entity_name=row.get("entity_name"),
        actor_id=_optional_int(row.get("user_id")),
        action=AuditAction(str(row["action"])),
        field_name=row.get("field_name"),
        old_value=row.get("old_value"),
        new_value=row.get("new_value"),
        change_reason=row.get("change_reason"),
        automatic_change=bool(row.get("automatic_change", False)),
        batch_id=row.get("batch_id"),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        timestamp=_parse_timestamp(row["timestamp"]),
    )


def _parse_access(row: dict[str, object]) -> DataAccessRecord:
    return DataAccessRecord(
        id=int(row["id"]),
        actor_id=_optional_int(row.get("user_id")),
        entity_type=str(row["entity_type"]),
        entity_id=_optional_int(row.get("entity_id")),
        access_type=AccessType(str(row["access_type"])),
        access_method=str(row.get("access_method") or "api"),
        data_scope=str(row.get("data_scope") or ""),
        filters=row.get("filters"),
        result_count=int(row.get("result_count") or 0),
        sensitive_data=bool(row.get("sensitive_data", False)),
        purpose=row.get("purpose"),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        timestamp=_parse_timestamp(row["timestamp"]),
    )


def _parse_security_event(row: dict[str, object]) -> SecurityEvent:
    return SecurityEvent(
        id=int(row["id"]),
        actor_id=_optional_int(row.get("user_id")),
        event_type=SecurityEventType(str(row["event_type"])),
        severity=Severity(str(row["severity"])),
        description=str(row.get("description") or ""),
        source=str(row.get("source") or "web"),
        success=bool(row.get("success", False)),
        failure_reason=row.get("failure_reason"),
        risk_score=_optional_int(row.get("risk_score")),
        blocked=bool(row.get("blocked", False)),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        metadata=row.get("metadata"),
        timestamp=_parse_timestamp(row["timestamp"]),
    )


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
