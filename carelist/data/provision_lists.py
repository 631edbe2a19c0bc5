"""List provisioning for the care-journey sample lists.

Each list is recreated from scratch on every run: an existing list is
deleted together with its data and a new one is built with the declared
columns. Lists are provisioned in dependency order because reference
columns can only be bound to lists that already exist.
"""

import logging

from carelist.errors import SetupFailure, StoreError
from carelist.store.base import FieldSpec, FieldType, ListStore

from .schema import (
    BUSINESS_ID_FIELDS,
    DEPENDENCY_ORDER,
    DISPLAY_FIELDS,
    ActivityDuration,
    ActivityPriority,
    ActivityType,
    AppointmentStatus,
    Department,
    EntityKind,
    Gender,
    PatientStatus,
    ServiceType,
    Specialization,
    derive_activity_title,
    derive_doctor_display_name,
    derive_full_name,
)

logger = logging.getLogger(__name__)


def _business_id(kind: EntityKind) -> FieldSpec:
    return FieldSpec.scalar(BUSINESS_ID_FIELDS[kind], required=True, unique=True, indexed=True)


def _reference(name: str, target: EntityKind, required: bool = True) -> FieldSpec:
    return FieldSpec.reference(name, target.value, DISPLAY_FIELDS[target], required=required)


# =============================================================================
# List Definitions
# =============================================================================

LIST_FIELDS: dict[EntityKind, list[FieldSpec]] = {
    EntityKind.PATIENT: [
        _business_id(EntityKind.PATIENT),
        FieldSpec.scalar("FirstName", required=True),
        FieldSpec.scalar("LastName", required=True),
        FieldSpec.scalar("DateOfBirth", FieldType.DATE),
        FieldSpec.choice("Gender", Gender),
        FieldSpec.scalar("ContactNumber"),
        FieldSpec.scalar("Email"),
        FieldSpec.scalar("Address", FieldType.NOTE),
        FieldSpec.scalar("MedicalHistory", FieldType.NOTE),
        FieldSpec.choice("Status", PatientStatus),
        FieldSpec.computed(
            "FullName",
            '[FirstName]&" "&[LastName]',
            depends_on=("FirstName", "LastName"),
            derive=derive_full_name,
        ),
    ],
    EntityKind.DOCTOR: [
        _business_id(EntityKind.DOCTOR),
        FieldSpec.scalar("FirstName", required=True),
        FieldSpec.scalar("LastName", required=True),
        FieldSpec.choice("Specialization", Specialization),
        FieldSpec.scalar("Email"),
        FieldSpec.choice("Department", Department),
        FieldSpec.computed(
            "FullName",
            '"Dr. "&[FirstName]&" "&[LastName]',
            depends_on=("FirstName", "LastName"),
            derive=derive_doctor_display_name,
        ),
    ],
    EntityKind.APPOINTMENT: [
        _business_id(EntityKind.APPOINTMENT),
        FieldSpec.scalar("StartTime", FieldType.DATETIME, required=True),
        FieldSpec.scalar("EndTime", FieldType.DATETIME, required=True),
        FieldSpec.choice("ServiceType", ServiceType),
        FieldSpec.choice("Status", AppointmentStatus),
        FieldSpec.scalar("IsUrgent", FieldType.BOOLEAN),
        FieldSpec.scalar("Notes", FieldType.NOTE),
        _reference("Patient", EntityKind.PATIENT),
        _reference("Doctor", EntityKind.DOCTOR),
    ],
    EntityKind.ACTIVITY: [
        _business_id(EntityKind.ACTIVITY),
        FieldSpec.scalar("ActivityDateTime", FieldType.DATETIME, required=True),
        FieldSpec.choice("ActivityType", ActivityType),
        FieldSpec.scalar("Notes", FieldType.NOTE),
        FieldSpec.choice("Duration", ActivityDuration),
        FieldSpec.choice("Priority", ActivityPriority),
        FieldSpec.computed(
            "ActivityTitle",
            '[ActivityType]&" - "&[Priority]',
            depends_on=("ActivityType", "Priority"),
            derive=derive_activity_title,
        ),
        _reference("Patient", EntityKind.PATIENT),
        _reference("Doctor", EntityKind.DOCTOR, required=False),
        _reference("Appointment", EntityKind.APPOINTMENT),
    ],
}


def _field_stage(kind: EntityKind, spec: FieldSpec) -> int:
    if spec.name == BUSINESS_ID_FIELDS[kind]:
        return 0
    if spec.field_type == FieldType.COMPUTED:
        return 2
    if spec.field_type == FieldType.REFERENCE:
        return 3
    return 1


def ordered_fields(kind: EntityKind) -> list[FieldSpec]:
    """Fields of ``kind`` in creation order.

    Business identifier first, then plain columns, then computed columns
    (which need their inputs to exist), then reference columns.
    """
    return sorted(LIST_FIELDS[kind], key=lambda spec: _field_stage(kind, spec))


# =============================================================================
# Provisioning
# =============================================================================


def provision_list(store: ListStore, kind: EntityKind) -> None:
    """Create ``kind``'s list, destroying any existing list of the same name.

    Raises:
        SetupFailure: if any store operation fails
    """
    name = kind.value
    try:
        if store.collection_exists(name):
            logger.warning(f"  {name} already exists; deleting it and all of its records")
            store.delete_collection(name)

        store.create_collection(name)
        for spec in ordered_fields(kind):
            store.add_field(name, spec)
    except StoreError as e:
        raise SetupFailure(f"Provisioning {name} failed: {e}") from e

    logger.info(f"  Created list {name} with {len(LIST_FIELDS[kind])} fields")


def provision_all_lists(store: ListStore) -> None:
    """Provision every list in dependency order."""
    logger.info("Provisioning lists...")
    for kind in DEPENDENCY_ORDER:
        provision_list(store, kind)


def verify_lists(store: ListStore) -> None:
    """Check that every list exists when auto-provisioning is disabled.

    Raises:
        SetupFailure: if a list is missing or the store cannot be queried
    """
    try:
        missing = [kind.value for kind in DEPENDENCY_ORDER if not store.collection_exists(kind.value)]
    except StoreError as e:
        raise SetupFailure(f"Could not check lists: {e}") from e
    if missing:
        raise SetupFailure(
            f"Missing lists: {', '.join(missing)}. Run without --no-create-lists to create them."
        )
