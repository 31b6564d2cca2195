"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from audit_trail.adapters.supabase_audit_query_repository import (
    SupabaseAuditQueryRepository,
)
from audit_trail.adapters.supabase_audit_repository import SupabaseAuditRepository
from audit_trail.domain.errors import StoreError
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

MOMENT = datetime(2024, 4, 2, 9, 30, tzinfo=UTC)


@dataclass
class FakeResponse:
    data: object


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[object]] = field(
        default_factory=lambda: {"select": [], "insert": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_order: list[tuple[str, bool]] = field(default_factory=list)
    last_range: tuple[int, int] | None = None

    def queue(self, action: str, data: object) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        self.last_order = []
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def in_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("in", column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def lte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lte", column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order.append((column, desc))
        return self

    def range(self, start: int, end: int) -> "FakeTable":
        self.last_range = (start, end)
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeRpc:
    data: object

    def execute(self) -> FakeResponse:
        return FakeResponse(data=self.data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    rpc_result: object = 41

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append((name, params))
        return FakeRpc(self.rpc_result)


def _entry() -> AuditLogEntry:
    return AuditLogEntry(
        actor_id=3,
        action=AuditAction.UPDATE,
        entity_type="client",
        entity_id=8,
        entity_name="Acme",
        description="Updated client Acme: industry",
        severity=Severity.INFO,
        category=Category.DATA,
        timestamp=MOMENT,
        batch_id="batch_1",
    )


def _change() -> ChangeRecord:
    return ChangeRecord(
        entity_type="client",
        entity_id=8,
        action=AuditAction.UPDATE,
        field_name="industry",
        old_value="Technology",
        new_value="Finance",
        timestamp=MOMENT,
        actor_id=3,
    )


def test_append_entry_uses_single_transaction_function() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseAuditRepository(client)

    entry_id = repository.append_entry(_entry(), [_change()])

    assert entry_id == 41
    name, params = client.rpc_calls[0]
    assert name == "record_audit_entry"
    assert params["entry"]["user_id"] == 3
    assert params["entry"]["action"] == "update"
    assert params["entry"]["timestamp"] == MOMENT.isoformat()
    assert params["changes"][0]["field_name"] == "industry"
    assert params["changes"][0]["old_value"] == "Technology"


def test_append_entry_fails_without_id() -> None:
    client = FakeSupabaseClient(rpc_result=None)
    repository = SupabaseAuditRepository(client)

    with pytest.raises(StoreError):
        repository.append_entry(_entry(), [])


def test_append_access_and_security_event() -> None:
    client = FakeSupabaseClient()
    client.table("data_access_logs").queue("insert", [{"id": 5}])
    client.table("security_events").queue("insert", [{"id": 6}])
    repository = SupabaseAuditRepository(client)

    access_id = repository.append_access(
        DataAccessRecord(
            actor_id=3,
            entity_type="client",
            access_type=AccessType.LIST,
            data_scope="all clients",
            result_count=50,
            timestamp=MOMENT,
        )
    )
    event_id = repository.append_security_event(
        SecurityEvent(
            actor_id=3,
            event_type=SecurityEventType.LOGIN_FAILURE,
            severity=Severity.WARNING,
            description="login failure",
            timestamp=MOMENT,
        )
    )

    assert access_id == 5
    assert event_id == 6
    access_payload = client.tables["data_access_logs"].last_payload
    assert access_payload["access_type"] == "list"
    assert access_payload["result_count"] == 50
    event_payload = client.tables["security_events"].last_payload
    assert event_payload["event_type"] == "login_failure"


def test_list_audit_entries_applies_filters_and_order() -> None:
    client = FakeSupabaseClient()
    audit_table = client.table("audit_logs")
    audit_table.queue(
        "select",
        [
            {
                "id": 9,
                "user_id": 3,
                "action": "update",
                "entity_type": "client",
                "entity_id": 8,
                "entity_name": "Acme",
                "description": "Updated client Acme: industry",
                "severity": "info",
                "category": "data",
                "batch_id": None,
                "timestamp": "2024-04-02T09:30:00+00:00",
            }
        ],
    )
    repository = SupabaseAuditQueryRepository(client)

    entries = repository.list_audit_entries(
        AuditQuery(
            entity_type="client",
            actor_id=3,
            date_from=MOMENT,
            limit=10,
            offset=20,
        )
    )

    assert entries[0].id == 9
    assert entries[0].action is AuditAction.UPDATE
    assert entries[0].timestamp == MOMENT
    assert ("eq", "entity_type", "client") in audit_table.last_filters
    assert ("eq", "user_id", "3") in audit_table.last_filters
    assert ("gte", "timestamp", MOMENT.isoformat()) in audit_table.last_filters
    assert audit_table.last_order == [("timestamp", True), ("id", True)]
    assert audit_table.last_range == (20, 29)


def test_list_security_events_maps_action_to_event_type() -> None:
    client = FakeSupabaseClient()
    events_table = client.table("security_events")
    events_table.queue(
        "select",
        [
            {
                "id": 2,
                "user_id": None,
                "event_type": "permission_denied",
                "severity": "warning",
                "description": "permission denied",
                "blocked": True,
                "timestamp": "2024-04-02T09:30:00+00:00",
            }
        ],
    )
    repository = SupabaseAuditQueryRepository(client)

    events = repository.list_security_events(AuditQuery(action="permission_denied"))

    assert events[0].event_type is SecurityEventType.PERMISSION_DENIED
    assert events[0].blocked is True
    assert events[0].actor_id is None
    assert ("eq", "event_type", "permission_denied") in events_table.last_filters


def test_list_change_records_for_entries() -> None:
    client = FakeSupabaseClient()
    changes_table = client.table("change_history")
    changes_table.queue(
        "select",
        [
            {
                "id": 11,
                "entry_id": 9,
                "entity_type": "client",
                "entity_id": 8,
                "user_id": 3,
                "action": "update",
                "field_name": "industry",
                "old_value": "Technology",
                "new_value": "Finance",
                "timestamp": "2024-04-02T09:30:00+00:00",
            }
        ],
    )
    repository = SupabaseAuditQueryRepository(client)

    changes = repository.list_change_records_for_entries([9])

    assert changes[0].entry_id == 9
    assert changes[0].new_value == "Finance"
    assert ("in", "entry_id", [9]) in changes_table.last_filters
