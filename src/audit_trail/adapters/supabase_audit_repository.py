"""Supabase repository for appending audit records."""

from dataclasses import dataclass

from supabase import Client

from audit_trail.domain.errors import StoreError
from audit_trail.domain.models import (
    AuditLogEntry,
    ChangeRecord,
    DataAccessRecord,
    SecurityEvent,
)
from audit_trail.services.recorder import AuditLogRepository


@dataclass
class SupabaseAuditRepository(AuditLogRepository):
    """Supabase-backed append path for the four audit streams.

    Entries and their change records go through the ``record_audit_entry``
    database function so both are written in one transaction.
    """

    client: Client

    def append_entry(self, entry: AuditLogEntry, changes: list[ChangeRecord]) -> int:
        """Write an entry with its change records and return the entry id."""
        response = self.client.rpc(
            "record_audit_entry",
            {
                "entry": _entry_payload(entry),
                "changes": [_change_payload(change) for change in changes],
            },
        ).execute()
        return _returned_id(response.data, "audit entry")

    def append_access(self, record: DataAccessRecord) -> int:
        """Insert a data access row."""
        response = (
            self.client.table("data_access_logs")
            .insert(
                {
                    "user_id": record.actor_id,
                    "entity_type": record.entity_type,
                    "entity_id": record.entity_id,
                    "access_type": record.access_type.value,
                    "access_method": record.access_method,
                    "data_scope": record.data_scope,
                    "filters": record.filters,
                    "result_count": record.result_count,
                    "sensitive_data": record.sensitive_data,
                    "purpose": record.purpose,
                    "ip_address": record.ip_address,
                    "user_agent": record.user_agent,
                    "timestamp": record.timestamp.isoformat(),
                }
            )
            .execute()
        )
        return _returned_id(response.data, "data access record")

    def append_security_event(self, event: SecurityEvent) -> int:
        """Insert a security event row."""
        response = (
            self.client.table("security_events")
            .insert(
                {
                    "user_id": event.actor_id,
                    "event_type": event.event_type.value,
                    "severity": event.severity.value,
                    "description": event.description,
                    "source": event.source,
                    "success": event.success,
                    "failure_reason": event.failure_reason,
                    "risk_score": event.risk_score,
                    "blocked": event.blocked,
                    "ip_address": event.ip_address,
                    "user_agent": event.user_agent,
                    "metadata": event.metadata,
                    "timestamp": event.timestamp.isoformat(),
                }
            )
            .execute()
        )
        return _returned_id(response.data, "security event")


def _entry_payload(entry: AuditLogEntry) -> dict[str, object]:
    return {
        "user_id": entry.actor_id,
        "session_id": entry.session_id,
        "action": entry.action.value,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "entity_name": entry.entity_name,
        "description": entry.description,
        "severity": entry.severity.value,
        "category": entry.category.value,
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "batch_id": entry.batch_id,
        "metadata": entry.metadata,
        "timestamp": entry.timestamp.isoformat(),
    }


def _change_payload(change: ChangeRecord) -> dict[str, object]:
    return {
        "entity_type": change.entity_type,
        "entity_id": change.entity_id,
        "entity_name": change.entity_name,
        "user_id": change.actor_id,
        "action": change.action.value,
        "field_name": change.field_name,
        "old_value": change.old_value,
        "new_value": change.new_value,
        "change_reason": change.change_reason,
        "automatic_change": change.automatic_change,
        "batch_id": change.batch_id,
        "ip_address": change.ip_address,
        "user_agent": change.user_agent,
        "timestamp": change.timestamp.isoformat(),
    }


def _returned_id(data: object, label: str) -> int:
    if isinstance(data, int):
        return data
    if isinstance(data, list) and data:
        first = data[0]
        if isinstance(first, dict) and first.get("id") is not None:
            return int(first["id"])
        if isinstance(first, int):
            return first
    raise StoreError(f"Failed to create {label}")
