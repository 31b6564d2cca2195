"""Audit logging service."""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from audit_trail.domain.models import (
    ActorContext,
    AuditLogEntry,
    AuditQuery,
    BatchSummary,
    ChangeRecord,
    DataAccessRecord,
    EntityHistoryItem,
    FieldChange,
    SecurityEvent,
)
from audit_trail.domain.taxonomy import (
    SECURITY_EVENT_SEVERITY,
    AccessType,
    AuditAction,
    Category,
    RowOutcome,
    SecurityEventType,
    Severity,
)
from audit_trail.services.batches import BatchCorrelator
from audit_trail.services.diff import EntitySchemaRegistry, diff_states, serialize_value
from audit_trail.services.hooks import PendingMutation
from audit_trail.services.normalizer import RawEvent, normalize
from audit_trail.services.queries import QueryService
from audit_trail.services.recorder import Recorder, RecordResult

BULK_IMPORT_ENTITY = "bulk_import"


@dataclass
class AuditService:
    """Entry point the rest of the application uses to record and read audits.

    One instance is built per process by the dependency container and passed
    to every component that emits audit events.
    """

    recorder: Recorder
    batches: BatchCorrelator
    queries: QueryService
    schemas: EntitySchemaRegistry

    def log_create(  # noqa: PLR0913
        self,
        actor: ActorContext,
        entity_type: str,
        entity_id: int | None,
        new_state: Mapping[str, object],
        *,
        entity_name: str | None = None,
        batch_id: str | None = None,
        change_reason: str | None = None,
        automatic_change: bool = False,
    ) -> RecordResult:
        """Record the creation of an entity."""
        return self._log_mutation(
            AuditAction.CREATE,
            actor,
            entity_type,
            entity_id,
            None,
            new_state,
            entity_name=entity_name,
            batch_id=batch_id,
            change_reason=change_reason,
            automatic_change=automatic_change,
        )

    def log_update(  # noqa: PLR0913
        self,
        actor: ActorContext,
        entity_type: str,
        entity_id: int | None,
        old_state: Mapping[str, object],
        new_state: Mapping[str, object],
        *,
        entity_name: str | None = None,
        batch_id: str | None = None,
        change_reason: str | None = None,
        automatic_change: bool = False,
    ) -> RecordResult:
        """Record a modification with one change record per changed field.

        Pass ``automatic_change=True`` for edits made by the system rather
        than by the acting user, such as scheduled recalculations.
        """
        return self._log_mutation(
            AuditAction.UPDATE,
            actor,
            entity_type,
            entity_id,
            old_state,
            new_state,
            entity_name=entity_name,
            batch_id=batch_id,
            change_reason=change_reason,
            automatic_change=automatic_change,
        )

    def log_delete(  # noqa: PLR0913
        self,
        actor: ActorContext,
        entity_type: str,
        entity_id: int | None,
        old_state: Mapping[str, object],
        *,
        entity_name: str | None = None,
        batch_id: str | None = None,
        change_reason: str | None = None,
        automatic_change: bool = False,
    ) -> RecordResult:
        """Record the deletion of an entity."""
        return self._log_mutation(
            AuditAction.DELETE,
            actor,
            entity_type,
            entity_id,
            old_state,
            None,
            entity_name=entity_name,
            batch_id=batch_id,
            change_reason=change_reason,
            automatic_change=automatic_change,
        )

    def log_access(  # noqa: PLR0913
        self,
        actor: ActorContext,
        entity_type: str,
        access_type: AccessType,
        scope: str,
        result_count: int,
        *,
        entity_id: int | None = None,
        filters: dict[str, object] | None = None,
        sensitive_data: bool = False,
        purpose: str | None = None,
        access_method: str = "api",
    ) -> RecordResult:
        """Record a sensitive read; ``result_count`` is the rows returned."""
        record = DataAccessRecord(
            actor_id=actor.actor_id,
            entity_type=entity_type,
            access_type=AccessType(access_type),
            data_scope=scope,
            result_count=result_count,
            timestamp=datetime.now(tz=UTC),
            entity_id=entity_id,
            access_method=access_method,
            filters=filters,
            sensitive_data=sensitive_data,
            purpose=purpose,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
        return self.recorder.record_access(record)

    def log_security_event(  # noqa: PLR0913
        self,
        actor: ActorContext,
        event_type: SecurityEventType,
        severity: Severity | None = None,
        description: str | None = None,
        *,
        success: bool = False,
        failure_reason: str | None = None,
        risk_score: int | None = None,
        blocked: bool = False,
        source: str = "web",
        metadata: dict[str, object] | None = None,
    ) -> RecordResult:
        """Record an authentication or authorization occurrence."""
        resolved_type = SecurityEventType(event_type)
        event = SecurityEvent(
            actor_id=actor.actor_id,
            event_type=resolved_type,
            severity=severity or SECURITY_EVENT_SEVERITY[resolved_type],
            description=description or resolved_type.value.replace("_", " "),
            timestamp=datetime.now(tz=UTC),
            source=source,
            success=success,
            failure_reason=failure_reason,
            risk_score=risk_score,
            blocked=blocked,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            metadata=metadata,
        )
        return self.recorder.record_security_event(event)

    def log_event(self, raw: RawEvent) -> RecordResult:
        """Record an entry with no field-level detail (logins, schema changes)."""
        return self.recorder.record(normalize(raw), [])

    def begin_bulk_batch(self, actor: ActorContext) -> str:
        """Start correlating the rows of one bulk operation."""
        return self.batches.begin_batch(actor.actor_id)

    def record_batch_row(self, batch_id: str, outcome: RowOutcome) -> None:
        """Count a row outcome that was not logged through log_create/log_update."""
        self.batches.record_row(batch_id, outcome)

    def finish_bulk_batch(
        self,
        batch_id: str,
        actor: ActorContext | None = None,
        entity_type: str = BULK_IMPORT_ENTITY,
    ) -> BatchSummary:
        """Close a batch and record its one terminal import entry."""
        resolved_actor = actor or ActorContext(
            actor_id=self.batches.actor_for(batch_id)
        )
        summary = self.batches.finish_batch(batch_id)
        self.log_event(
            RawEvent(
                action=AuditAction.IMPORT,
                entity_type=entity_type,
                description=summary.describe(),
                actor=resolved_actor,
                severity=Severity.WARNING if summary.failed else Severity.INFO,
                category=Category.DATA,
                batch_id=batch_id,
                metadata={
                    "attempted": summary.attempted,
                    "succeeded": summary.succeeded,
                    "failed": summary.failed,
                },
            )
        )
        return summary

    @contextmanager
    def mutation(  # noqa: PLR0913
        self,
        actor: ActorContext,
        entity_type: str,
        entity_id: int | None = None,
        *,
        before: Mapping[str, object] | None = None,
        entity_name: str | None = None,
        batch_id: str | None = None,
    ) -> Iterator[PendingMutation]:
        """Emit one audit event after the wrapped mutation succeeds.

        Nothing is recorded if the block raises; the exception propagates.
        """
        pending = PendingMutation(
            actor=actor,
            entity_type=entity_type,
            entity_id=entity_id,
            before=before,
            entity_name=entity_name,
            batch_id=batch_id,
        )
        yield pending
        pending.result = self._log_mutation(
            pending.action,
            pending.actor,
            pending.entity_type,
            pending.entity_id,
            pending.before,
            pending.after,
            entity_name=pending.entity_name,
            batch_id=pending.batch_id,
            change_reason=pending.change_reason,
            automatic_change=pending.automatic_change,
        )

    def query_audit_log(self, query: AuditQuery) -> list[AuditLogEntry]:
        return self.queries.query_audit_log(query)

    def query_change_history(self, query: AuditQuery) -> list[ChangeRecord]:
        return self.queries.query_change_history(query)

    def query_data_access(self, query: AuditQuery) -> list[DataAccessRecord]:
        return self.queries.query_data_access(query)

    def query_security_events(self, query: AuditQuery) -> list[SecurityEvent]:
        return self.queries.query_security_events(query)

    def entity_history(
        self, entity_type: str, entity_id: int, limit: int = 50
    ) -> list[EntityHistoryItem]:
        return self.queries.entity_history(entity_type, entity_id, limit)

    def _log_mutation(  # noqa: PLR0913
        self,
        action: AuditAction,
        actor: ActorContext,
        entity_type: str,
        entity_id: int | None,
        old_state: Mapping[str, object] | None,
        new_state: Mapping[str, object] | None,
        *,
        entity_name: str | None,
        batch_id: str | None,
        change_reason: str | None,
        automatic_change: bool,
    ) -> RecordResult:
        changes = diff_states(
            old_state,
            new_state,
            fields=self.schemas.fields_for(entity_type),
            ignore=self.schemas.ignored_for(entity_type),
        )
        name = entity_name or self._entity_name(entity_type, new_state or old_state)
        entry = normalize(
            RawEvent(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                entity_name=name,
                description=_describe_update(entity_type, name, entity_id, changes)
                if action is AuditAction.UPDATE
                else None,
                actor=actor,
                batch_id=batch_id,
            )
        )
        if batch_id is not None:
            self.batches.record_row(batch_id, RowOutcome.SUCCESS)
        records = [
            ChangeRecord(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                field_name=change.field_name,
                old_value=serialize_value(change.old_value),
                new_value=serialize_value(change.new_value),
                timestamp=entry.timestamp,
                entity_name=name,
                actor_id=actor.actor_id,
                batch_id=batch_id,
                change_reason=change_reason,
                automatic_change=automatic_change,
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
            )
            for change in changes
        ]
        return self.recorder.record(entry, records)

    def _entity_name(
        self, entity_type: str, state: Mapping[str, object] | None
    ) -> str | None:
        schema = self.schemas.get(entity_type)
        if schema is None or schema.name_field is None or state is None:
            return None
        value = state.get(schema.name_field)
        return str(value) if value is not None else None


def _describe_update(
    entity_type: str,
    name: str | None,
    entity_id: int | None,
    changes: list[FieldChange],
) -> str:
    label = name or (f"#{entity_id}" if entity_id is not None else "")
    subject = f"Updated {entity_type} {label}".rstrip()
    if not changes:
        return f"{subject}: no field changes"
    return f"{subject}: {', '.join(change.field_name for change in changes)}"
