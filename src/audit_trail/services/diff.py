"""Field-level diffing of entity states."""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from audit_trail.domain.errors import DiffTypeMismatchError
from audit_trail.domain.models import FieldChange

_logger = logging.getLogger(__name__)

_NUMERIC = (int, float)


@dataclass(frozen=True)
class EntitySchema:
    """Comparable fields of one entity type, in display order."""

    entity_type: str
    fields: tuple[str, ...]
    ignored: frozenset[str] = frozenset()
    name_field: str | None = None


@dataclass
class EntitySchemaRegistry:
    """Registry of entity schemas used to drive diffs."""

    default_ignored: frozenset[str] = frozenset()
    _schemas: dict[str, EntitySchema] = field(default_factory=dict)

    def register(
        self,
        entity_type: str,
        fields: Sequence[str],
        ignored: Iterable[str] = (),
        name_field: str | None = None,
    ) -> EntitySchema:
        """Register the comparable fields for an entity type."""
        schema = EntitySchema(
            entity_type=entity_type,
            fields=tuple(fields),
            ignored=frozenset(ignored),
            name_field=name_field,
        )
        self._schemas[entity_type] = schema
        return schema

    def get(self, entity_type: str) -> EntitySchema | None:
        return self._schemas.get(entity_type)

    def fields_for(self, entity_type: str) -> tuple[str, ...] | None:
        schema = self._schemas.get(entity_type)
        return schema.fields if schema else None

    def ignored_for(self, entity_type: str) -> frozenset[str]:
        schema = self._schemas.get(entity_type)
        if schema is None:
            return self.default_ignored
        return self.default_ignored | schema.ignored


def diff_states(
    old: Mapping[str, object] | None,
    new: Mapping[str, object] | None,
    *,
    fields: Sequence[str] | None = None,
    ignore: Iterable[str] = (),
) -> list[FieldChange]:
    """Return the fields whose values differ between two states.

    A missing state (creation or deletion) or a missing key is treated as
    ``None``. Values are compared by value, so a re-serialized but unchanged
    nested structure produces no change. Fields whose types are incompatible
    are reported as whole-field replacements instead of failing.
    """
    before = old or {}
    after = new or {}
    ignored = frozenset(ignore)
    names = list(fields) if fields is not None else _union_keys(before, after)
    changes: list[FieldChange] = []
    for name in names:
        if name in ignored:
            continue
        old_value = before.get(name)
        new_value = after.get(name)
        try:
            change = compare_field(name, old_value, new_value)
        except DiffTypeMismatchError as exc:
            _logger.debug("Recording whole-field replacement: %s", exc)
            change = FieldChange(
                field_name=name,
                old_value=old_value,
                new_value=new_value,
                whole_replacement=True,
            )
        if change is not None:
            changes.append(change)
    return changes


def compare_field(
    name: str, old_value: object, new_value: object
) -> FieldChange | None:
    """Compare one field, raising DiffTypeMismatchError on incompatible types."""
    if old_value is None or new_value is None:
        if old_value is None and new_value is None:
            return None
        return FieldChange(field_name=name, old_value=old_value, new_value=new_value)
    if not _comparable(old_value, new_value):
        raise DiffTypeMismatchError(name, old_value, new_value)
    if _normalize(old_value) == _normalize(new_value):
        return None
    return FieldChange(field_name=name, old_value=old_value, new_value=new_value)


def serialize_value(value: object) -> str | None:
    """Render a field value as stored change-record text."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, datetime | date):
        return value.isoformat()
    return json.dumps(value, sort_keys=True, default=str)


def _comparable(old_value: object, new_value: object) -> bool:
    if isinstance(old_value, bool) or isinstance(new_value, bool):
        return isinstance(old_value, bool) and isinstance(new_value, bool)
    if isinstance(old_value, _NUMERIC) and isinstance(new_value, _NUMERIC):
        return True
    if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
        return True
    if isinstance(old_value, list | tuple) and isinstance(new_value, list | tuple):
        return True
    if isinstance(old_value, str) and isinstance(new_value, str):
        return True
    return type(old_value) is type(new_value)


def _union_keys(
    before: Mapping[str, object], after: Mapping[str, object]
) -> list[str]:
    names = list(before)
    seen = set(names)
    for name in after:
        if name not in seen:
            names.append(name)
            seen.add(name)
    return names


def _normalize(value: object) -> object:
    if isinstance(value, Mapping):
        return {key: _normalize(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_normalize(item) for item in value]
    return value
