"""Normalization of raw notifications into audit log entries."""

from dataclasses import dataclass
from datetime import UTC, datetime

from audit_trail.domain.errors import ValidationError
from audit_trail.domain.models import SYSTEM_ACTOR, ActorContext, AuditLogEntry
from audit_trail.domain.taxonomy import (
    CATEGORY_BY_ACTION,
    DEFAULT_SEVERITY,
    SECURITY_SEVERITY,
    AuditAction,
    Category,
    Severity,
)


@dataclass(frozen=True)
class RawEvent:
    """A mutation, access or security notification as handed in by a caller."""

    action: AuditAction | str | None
    entity_type: str | None
    entity_id: int | None = None
    entity_name: str | None = None
    description: str | None = None
    actor: ActorContext = SYSTEM_ACTOR
    severity: Severity | None = None
    category: Category | None = None
    security_relevant: bool = False
    batch_id: str | None = None
    metadata: dict[str, object] | None = None
    timestamp: datetime | None = None


_PAST_TENSE = {
    AuditAction.CREATE: "Created",
    AuditAction.UPDATE: "Updated",
    AuditAction.DELETE: "Deleted",
    AuditAction.IMPORT: "Imported",
    AuditAction.EXPORT: "Exported",
}


def normalize(raw: RawEvent) -> AuditLogEntry:
    """Convert a raw event into a canonical audit log entry."""
    action = _parse_action(raw.action)
    if not raw.entity_type:
        raise ValidationError("entity_type")
    severity = raw.severity or default_severity(action, raw.security_relevant)
    category = raw.category or CATEGORY_BY_ACTION[action]
    return AuditLogEntry(
        actor_id=raw.actor.actor_id,
        action=action,
        entity_type=raw.entity_type,
        entity_id=raw.entity_id,
        entity_name=raw.entity_name,
        description=raw.description or _default_description(action, raw),
        severity=severity,
        category=category,
        timestamp=raw.timestamp or datetime.now(tz=UTC),
        ip_address=raw.actor.ip_address,
        user_agent=raw.actor.user_agent,
        session_id=raw.actor.session_id,
        batch_id=raw.batch_id,
        metadata=raw.metadata,
    )


def default_severity(action: AuditAction, security_relevant: bool) -> Severity:
    """Return the fixed severity for an action."""
    if security_relevant:
        return SECURITY_SEVERITY.get(action, Severity.WARNING)
    return DEFAULT_SEVERITY.get(action, Severity.INFO)


def _parse_action(value: AuditAction | str | None) -> AuditAction:
    if value is None or value == "":
        raise ValidationError("action")
    if isinstance(value, AuditAction):
        return value
    try:
        return AuditAction(value)
    except ValueError as exc:
        raise ValidationError("action", f"Unknown audit action: {value}") from exc


def _default_description(action: AuditAction, raw: RawEvent) -> str:
    label = raw.entity_name or (
        f"#{raw.entity_id}" if raw.entity_id is not None else None
    )
    verb = _PAST_TENSE.get(action) or action.value.replace("_", " ").capitalize()
    if label:
        return f"{verb} {raw.entity_type} {label}"
    return f"{verb} {raw.entity_type}"
