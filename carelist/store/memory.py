"""In-process list store.

Applies the same schema rules a SharePoint list enforces so that dry runs
and tests fail where the remote store would.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from carelist.errors import StoreError, ValidationError
from carelist.store.base import FieldSpec, FieldType, Reference, StoredRecord, lookup_id_field

logger = logging.getLogger(__name__)

TITLE_FIELD = FieldSpec.scalar("Title")


@dataclass
class _MemoryList:
    name: str
    fields: dict[str, FieldSpec] = field(default_factory=lambda: {TITLE_FIELD.name: TITLE_FIELD})
    items: dict[str, dict[str, Any]] = field(default_factory=dict)


def _plain(value: Any) -> Any:
    """Unwrap enum members to their stored value."""
    if isinstance(value, Enum):
        return value.value
    return value


class InMemoryListStore:
    """Dictionary-backed implementation of ``ListStore``."""

    def __init__(self) -> None:
        self._lists: dict[str, _MemoryList] = {}
        self._next_id = 1

    def _get(self, name: str) -> _MemoryList:
        try:
            return self._lists[name]
        except KeyError:
            raise StoreError(f"List {name!r} does not exist") from None

    def collection_exists(self, name: str) -> bool:
        return name in self._lists

    def create_collection(self, name: str) -> None:
        if name in self._lists:
            raise StoreError(f"List {name!r} already exists")
        self._lists[name] = _MemoryList(name=name)

    def delete_collection(self, name: str) -> None:
        self._get(name)
        del self._lists[name]

    def field_names(self, name: str) -> list[str]:
        """Column names of a list in the order they were added."""
        return list(self._get(name).fields)

    def add_field(self, name: str, spec: FieldSpec) -> None:
        target_list = self._get(name)
        if spec.name in target_list.fields:
            raise StoreError(f"Field {spec.name!r} already exists on {name!r}")

        if spec.field_type == FieldType.COMPUTED:
            missing = [dep for dep in spec.depends_on if dep not in target_list.fields]
            if missing:
                raise StoreError(f"Computed field {spec.name!r} references undefined fields {missing}")
        elif spec.field_type == FieldType.REFERENCE:
            if spec.target not in self._lists:
                raise StoreError(f"Reference field {spec.name!r} targets missing list {spec.target!r}")
            if spec.target_field not in self._lists[spec.target].fields:
                raise StoreError(
                    f"Reference field {spec.name!r} targets missing field {spec.target!r}.{spec.target_field}"
                )

        target_list.fields[spec.name] = spec

    def _check_value(self, list_name: str, spec: FieldSpec, value: Any) -> Any:
        if spec.field_type == FieldType.COMPUTED:
            raise ValidationError(f"{list_name}.{spec.name} is computed and cannot be set")
        if spec.field_type == FieldType.REFERENCE:
            if not isinstance(value, Reference):
                raise ValidationError(f"{list_name}.{spec.name} expects a Reference, got {value!r}")
            target = self._lists.get(spec.target)
            if target is None or value.storage_id not in target.items:
                raise ValidationError(
                    f"{list_name}.{spec.name} references missing {spec.target} record {value.storage_id!r}"
                )
            return value
        value = _plain(value)
        if spec.field_type == FieldType.CHOICE and value not in spec.choices:
            raise ValidationError(f"{list_name}.{spec.name}: {value!r} is not one of {list(spec.choices)}")
        return value

    def create_record(self, name: str, fields: Mapping[str, Any]) -> str:
        target_list = self._get(name)

        unknown = [key for key in fields if key not in target_list.fields]
        if unknown:
            raise ValidationError(f"Unknown fields for {name}: {unknown}")

        values = {}
        for key, value in fields.items():
            if value is None:
                continue
            values[key] = self._check_value(name, target_list.fields[key], value)

        for spec in target_list.fields.values():
            if spec.required and values.get(spec.name) in (None, ""):
                raise ValidationError(f"{name}.{spec.name} is required")
            if spec.unique and spec.name in values:
                for item in target_list.items.values():
                    if item.get(spec.name) == values[spec.name]:
                        raise ValidationError(f"{name}.{spec.name} must be unique; {values[spec.name]!r} exists")

        for spec in target_list.fields.values():
            if spec.field_type == FieldType.COMPUTED:
                values[spec.name] = spec.derive(values)

        storage_id = str(self._next_id)
        self._next_id += 1
        target_list.items[storage_id] = values
        logger.debug(f"Created {name} record {storage_id}")
        return storage_id

    def _read_fields(self, target_list: _MemoryList, values: dict[str, Any]) -> dict[str, Any]:
        fields = {}
        for key, value in values.items():
            spec = target_list.fields.get(key)
            if spec is not None and spec.field_type == FieldType.REFERENCE:
                target = self._lists.get(spec.target)
                item = target.items.get(value.storage_id) if target else None
                fields[key] = item.get(spec.target_field) if item else None
                fields[lookup_id_field(key)] = value.storage_id
            else:
                fields[key] = value
        return fields

    def list_records(self, name: str) -> list[StoredRecord]:
        target_list = self._get(name)
        return [
            StoredRecord(storage_id=storage_id, fields=self._read_fields(target_list, values))
            for storage_id, values in target_list.items.items()
        ]

    def delete_record(self, name: str, storage_id: str) -> None:
        target_list = self._get(name)
        if storage_id not in target_list.items:
            raise StoreError(f"{name} record {storage_id!r} does not exist")
        del target_list.items[storage_id]
