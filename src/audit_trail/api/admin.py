"""Administrative audit reporting endpoints with simple token auth."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder

from audit_trail.domain.models import AuditQuery
from audit_trail.domain.taxonomy import Category, Severity  # noqa: TC001
from audit_trail.services.audit import AuditService  # noqa: TC001
from audit_trail.services.queries import DEFAULT_LIMIT, parse_relative_range

if TYPE_CHECKING:
    from audit_trail.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


def _audit_service(request: Request) -> AuditService:
    container: AppContainer = request.app.state.container
    return container.audit_service


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def audit_query(  # noqa: PLR0913
    entity_type: str | None = None,
    entity_id: int | None = None,
    actor_id: int | None = None,
    action: str | None = None,
    category: Category | None = None,
    severity: Severity | None = None,
    batch_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    date_range: str | None = Query(default=None, description="e.g. 30d, 12h, 2w"),
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> AuditQuery:
    """Build an audit query from request parameters."""
    if date_range:
        date_from, date_to = parse_relative_range(date_range, datetime.now(tz=UTC))
    return AuditQuery(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        category=category,
        severity=severity,
        batch_id=batch_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/audit/logs", dependencies=[Depends(require_admin)])
async def audit_logs(
    query: AuditQuery = Depends(audit_query),
    audit_service: AuditService = Depends(_audit_service),
) -> dict[str, object]:
    """Return audit log entries, newest first."""
    return {"logs": jsonable_encoder(audit_service.query_audit_log(query))}


@router.get("/audit/change-history", dependencies=[Depends(require_admin)])
async def change_history(
    query: AuditQuery = Depends(audit_query),
    audit_service: AuditService = Depends(_audit_service),
) -> dict[str, object]:
    """Return field-level change records, newest first."""
    return {"changes": jsonable_encoder(audit_service.query_change_history(query))}


@router.get("/audit/data-access", dependencies=[Depends(require_admin)])
async def data_access(
    query: AuditQuery = Depends(audit_query),
    audit_service: AuditService = Depends(_audit_service),
) -> dict[str, object]:
    """Return data access records, newest first."""
    return {"access": jsonable_encoder(audit_service.query_data_access(query))}


@router.get("/audit/security-events", dependencies=[Depends(require_admin)])
async def security_events(
    query: AuditQuery = Depends(audit_query),
    audit_service: AuditService = Depends(_audit_service),
) -> dict[str, object]:
    """Return security events, newest first."""
    return {"events": jsonable_encoder(audit_service.query_security_events(query))}


@router.get(
    "/audit/entities/{entity_type}/{entity_id}/history",
    dependencies=[Depends(require_admin)],
)
async def entity_history(
    entity_type: str,
    entity_id: int,
    limit: int = DEFAULT_LIMIT,
    audit_service: AuditService = Depends(_audit_service),
) -> dict[str, object]:
    """Return an entity's audit entries with their field changes."""
    return {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "history": jsonable_encoder(
            audit_service.entity_history(entity_type, entity_id, limit)
        ),
    }
