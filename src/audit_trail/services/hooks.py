"""Post-commit hook for business mutations."""

from collections.abc import Mapping
from dataclasses import dataclass

from audit_trail.domain.errors import ValidationError
from audit_trail.domain.models import ActorContext
from audit_trail.domain.taxonomy import AuditAction
from audit_trail.services.recorder import RecordResult


@dataclass
class PendingMutation:
    """A business mutation awaiting its single audit event.

    The caller fills ``after`` (and ``entity_id`` for creations) once the
    primary write has succeeded. A missing ``before`` means creation and a
    missing ``after`` means deletion.
    """

    actor: ActorContext
    entity_type: str
    entity_id: int | None = None
    before: Mapping[str, object] | None = None
    after: Mapping[str, object] | None = None
    entity_name: str | None = None
    batch_id: str | None = None
    change_reason: str | None = None
    automatic_change: bool = False
    deleted: bool = False
    result: RecordResult | None = None

    def mark_deleted(self) -> None:
        self.deleted = True
        self.after = None

    @property
    def action(self) -> AuditAction:
        if self.before is None and self.after is None:
            raise ValidationError(
                "after", "Mutation finished without a before or after state"
            )
        if self.before is None:
            return AuditAction.CREATE
        if self.after is None or self.deleted:
            return AuditAction.DELETE
        return AuditAction.UPDATE
