"""Domain models for the audit log streams."""

from dataclasses import dataclass, field
from datetime import datetime

from audit_trail.domain.taxonomy import (
    AccessType,
    AuditAction,
    Category,
    SecurityEventType,
    Severity,
)


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, and from where."""

    actor_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None


SYSTEM_ACTOR = ActorContext()


@dataclass(frozen=True)
class FieldChange:
    """One field that differs between two entity states."""

    field_name: str
    old_value: object
    new_value: object
    whole_replacement: bool = False


@dataclass(frozen=True)
class AuditLogEntry:
    """One discrete action against an entity or the system."""

    actor_id: int | None
    action: AuditAction
    entity_type: str
    entity_id: int | None
    entity_name: str | None
    description: str
    severity: Severity
    category: Category
    timestamp: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None
    batch_id: str | None = None
    metadata: dict[str, object] | None = None
    id: int | None = None


@dataclass(frozen=True)
class ChangeRecord:
    """A single field-level before/after pair belonging to one entry."""

    entity_type: str
    entity_id: int | None
    action: AuditAction
    field_name: str | None
    old_value: str | None
    new_value: str | None
    timestamp: datetime
    entry_id: int | None = None
    entity_name: str | None = None
    actor_id: int | None = None
    batch_id: str | None = None
    change_reason: str | None = None
    automatic_change: bool = False
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class DataAccessRecord:
    """A sensitive read: list, detail view, search or export."""

    actor_id: int | None
    entity_type: str
    access_type: AccessType
    data_scope: str
    result_count: int
    timestamp: datetime
    entity_id: int | None = None
    access_method: str = "api"
    filters: dict[str, object] | None = None
    sensitive_data: bool = False
    purpose: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class SecurityEvent:
    """An authentication or authorization relevant occurrence."""

    actor_id: int | None
    event_type: SecurityEventType
    severity: Severity
    description: str
    timestamp: datetime
    source: str = "web"
    success: bool = False
    failure_reason: str | None = None
    risk_score: int | None = None
    blocked: bool = False
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, object] | None = None
    id: int | None = None


@dataclass(frozen=True)
class BatchSummary:
    """Totals for one finished bulk operation."""

    batch_id: str
    attempted: int
    succeeded: int
    failed: int

    def describe(self) -> str:
        return (
            f"Bulk import {self.batch_id}: {self.attempted} processed, "
            f"{self.succeeded} succeeded, {self.failed} failed"
        )


@dataclass(frozen=True)
class AuditQuery:
    """Filter over one of the audit log streams."""

    entity_type: str | None = None
    entity_id: int | None = None
    actor_id: int | None = None
    action: str | None = None
    category: Category | None = None
    severity: Severity | None = None
    batch_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class EntityHistoryItem:
    """An audit entry together with its change records."""

    entry: AuditLogEntry
    changes: list[ChangeRecord] = field(default_factory=list)
