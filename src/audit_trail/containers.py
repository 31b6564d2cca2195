"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from audit_trail.adapters.supabase_audit_query_repository import (
    SupabaseAuditQueryRepository,
)
from audit_trail.adapters.supabase_audit_repository import SupabaseAuditRepository
from audit_trail.config import Settings, parse_ignored_fields
from audit_trail.services.audit import AuditService
from audit_trail.services.batches import BatchCorrelator
from audit_trail.services.diff import EntitySchemaRegistry
from audit_trail.services.queries import AuditQueryRepository, QueryService
from audit_trail.services.recorder import AuditLogRepository, Recorder


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    audit_service: AuditService
    close_resources: Callable[[], Awaitable[None]]


def build_audit_service(
    settings: Settings,
    log_repository: AuditLogRepository,
    query_repository: AuditQueryRepository,
) -> AuditService:
    """Assemble the audit service from its repositories."""
    recorder = Recorder(
        repository=log_repository,
        timeout_seconds=settings.audit_write_timeout_seconds,
        enabled=settings.audit_logging_enabled,
        max_workers=settings.audit_write_workers,
        max_pending=settings.audit_write_max_pending,
    )
    return AuditService(
        recorder=recorder,
        batches=BatchCorrelator(),
        queries=QueryService(
            repository=query_repository,
            max_limit=settings.max_query_limit,
        ),
        schemas=EntitySchemaRegistry(
            default_ignored=parse_ignored_fields(settings.audit_ignored_fields)
        ),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    audit_service = build_audit_service(
        resolved_settings,
        SupabaseAuditRepository(supabase_client),
        SupabaseAuditQueryRepository(supabase_client),
    )

    async def close_resources() -> None:
        audit_service.recorder.close()

    return AppContainer(
        settings=resolved_settings,
        audit_service=audit_service,
        close_resources=close_resources,
    )
