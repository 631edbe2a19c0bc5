"""List store boundary shared by the in-memory and Microsoft Graph stores.

A store holds named lists. Each list has an ordered set of fields described
by ``FieldSpec`` and a sequence of records keyed by an opaque storage id.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Protocol


class FieldType(str, Enum):
    """Column kinds understood by every store."""

    TEXT = "text"
    NOTE = "note"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    COMPUTED = "computed"
    REFERENCE = "reference"


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one list column."""

    name: str
    field_type: FieldType
    required: bool = False
    unique: bool = False
    indexed: bool = False
    choices: tuple[str, ...] = ()
    # Computed columns
    formula: str | None = None
    depends_on: tuple[str, ...] = ()
    derive: Callable[[Mapping[str, Any]], Any] | None = field(default=None, compare=False)
    # Reference columns
    target: str | None = None
    target_field: str | None = None

    @classmethod
    def scalar(
        cls,
        name: str,
        field_type: FieldType = FieldType.TEXT,
        required: bool = False,
        unique: bool = False,
        indexed: bool = False,
    ) -> "FieldSpec":
        return cls(name=name, field_type=field_type, required=required, unique=unique, indexed=indexed)

    @classmethod
    def choice(cls, name: str, enum_cls: type[Enum], required: bool = False) -> "FieldSpec":
        return cls(
            name=name,
            field_type=FieldType.CHOICE,
            required=required,
            choices=tuple(member.value for member in enum_cls),
        )

    @classmethod
    def computed(
        cls,
        name: str,
        formula: str,
        depends_on: tuple[str, ...],
        derive: Callable[[Mapping[str, Any]], Any],
    ) -> "FieldSpec":
        """A read-only column whose value is derived from ``depends_on``.

        ``formula`` is what the remote store evaluates; ``derive`` is the same
        derivation in Python, used by stores that evaluate locally.
        """
        return cls(
            name=name,
            field_type=FieldType.COMPUTED,
            formula=formula,
            depends_on=depends_on,
            derive=derive,
        )

    @classmethod
    def reference(cls, name: str, target: str, target_field: str, required: bool = False) -> "FieldSpec":
        """A lookup column displaying ``target_field`` of a record in list ``target``."""
        return cls(
            name=name,
            field_type=FieldType.REFERENCE,
            required=required,
            target=target,
            target_field=target_field,
        )


@dataclass(frozen=True)
class Reference:
    """Value for a reference column: the storage id of the target record."""

    storage_id: str


@dataclass
class StoredRecord:
    """A persisted record as read back from a store."""

    storage_id: str
    fields: dict[str, Any]


def lookup_id_field(name: str) -> str:
    """Name under which a reference column exposes the target's storage id."""
    return f"{name}LookupId"


class ListStore(Protocol):
    """Synchronous list store. Every call is attempted exactly once."""

    def collection_exists(self, name: str) -> bool: ...

    def create_collection(self, name: str) -> None: ...

    def delete_collection(self, name: str) -> None: ...

    def add_field(self, name: str, spec: FieldSpec) -> None: ...

    def create_record(self, name: str, fields: Mapping[str, Any]) -> str: ...

    def list_records(self, name: str) -> list[StoredRecord]: ...

    def delete_record(self, name: str, storage_id: str) -> None: ...
