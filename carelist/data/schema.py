"""Data schema definitions for the care-journey sample lists.

This module defines the four list kinds, their closed choice sets, the
business identifier format for each kind, and dataclasses for synthesized
records. Computed display values (full names, activity titles) are exposed
as read-only properties so they can never drift from their source fields.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from carelist.errors import ResolutionError
from carelist.store.base import ListStore, Reference

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """The four lists, declared in dependency order."""

    PATIENT = "Patients"
    DOCTOR = "Doctors"
    APPOINTMENT = "Appointments"
    ACTIVITY = "Activities"


# Provisioning and generation order (referenced lists first)
DEPENDENCY_ORDER = [
    EntityKind.PATIENT,
    EntityKind.DOCTOR,
    EntityKind.APPOINTMENT,
    EntityKind.ACTIVITY,
]

# Deletion order (referrers first)
CLEAR_ORDER = list(reversed(DEPENDENCY_ORDER))

# (prefix, zero-padded digit count)
BUSINESS_ID_FORMATS = {
    EntityKind.PATIENT: ("MRN", 5),
    EntityKind.DOCTOR: ("DOC", 4),
    EntityKind.APPOINTMENT: ("APP", 6),
    EntityKind.ACTIVITY: ("ACT", 6),
}

BUSINESS_ID_FIELDS = {
    EntityKind.PATIENT: "PatientID",
    EntityKind.DOCTOR: "DoctorID",
    EntityKind.APPOINTMENT: "AppointmentID",
    EntityKind.ACTIVITY: "ActivityID",
}

# Field each list shows when another list references it
DISPLAY_FIELDS = {
    EntityKind.PATIENT: "FullName",
    EntityKind.DOCTOR: "FullName",
    EntityKind.APPOINTMENT: "AppointmentID",
    EntityKind.ACTIVITY: "ActivityTitle",
}

DOCTOR_NAME_PREFIX = "Dr."


def format_business_id(kind: EntityKind, sequence: int) -> str:
    """Format a 1-based sequence number as the business identifier for ``kind``.

    Numbers wider than the padding simply widen the identifier.

    >>> format_business_id(EntityKind.PATIENT, 42)
    'MRN00042'
    """
    if sequence < 1:
        raise ValueError(f"Sequence numbers start at 1, got {sequence}")
    prefix, width = BUSINESS_ID_FORMATS[kind]
    return f"{prefix}{sequence:0{width}d}"


# =============================================================================
# Choice sets
# =============================================================================


class Gender(str, Enum):
    """Patient gender options."""

    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class PatientStatus(str, Enum):
    """Where the patient is in their care journey."""

    NEW = "New"
    IN_TREATMENT = "In Treatment"
    AWAITING_FOLLOW_UP = "Awaiting Follow-up"
    HIGH_PRIORITY = "High Priority"
    DISCHARGED = "Discharged"


class Specialization(str, Enum):
    """Doctor specializations."""

    GENERAL_PRACTICE = "General Practice"
    CARDIOLOGY = "Cardiology"
    DERMATOLOGY = "Dermatology"
    NEUROLOGY = "Neurology"
    ORTHOPEDICS = "Orthopedics"
    PEDIATRICS = "Pediatrics"
    PSYCHIATRY = "Psychiatry"
    ONCOLOGY = "Oncology"
    ENDOCRINOLOGY = "Endocrinology"
    GASTROENTEROLOGY = "Gastroenterology"


class Department(str, Enum):
    """Hospital departments."""

    OUTPATIENT = "Outpatient Clinic"
    EMERGENCY = "Emergency"
    SURGERY = "Surgery"
    INTERNAL_MEDICINE = "Internal Medicine"
    DIAGNOSTICS = "Diagnostics"
    REHABILITATION = "Rehabilitation"


class ServiceType(str, Enum):
    """Appointment service types."""

    CONSULTATION = "Consultation"
    FOLLOW_UP = "Follow-up"
    ANNUAL_CHECKUP = "Annual Check-up"
    LAB_WORK = "Lab Work"
    IMAGING = "Imaging"
    VACCINATION = "Vaccination"
    PROCEDURE = "Procedure"
    THERAPY_SESSION = "Therapy Session"
    TELEHEALTH = "Telehealth Visit"
    SPECIALIST_REFERRAL = "Specialist Referral"


class AppointmentStatus(str, Enum):
    """Appointment status values."""

    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    RESCHEDULED = "Rescheduled"
    COMPLETED = "Completed"
    NO_SHOW = "No Show"
    CANCELLED = "Cancelled"


PAST_APPOINTMENT_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.CANCELLED,
)

FUTURE_APPOINTMENT_STATUSES = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.RESCHEDULED,
)


class ActivityType(str, Enum):
    """Care-journey activity types."""

    PHONE_CALL = "Phone Call"
    EMAIL = "Email"
    CHECK_IN = "Check-in"
    MEDICATION_REVIEW = "Medication Review"
    LAB_RESULTS_REVIEW = "Lab Results Review"
    CARE_PLAN_UPDATE = "Care Plan Update"
    REFERRAL = "Referral"
    PATIENT_EDUCATION = "Patient Education"


class ActivityPriority(str, Enum):
    """Activity priority levels."""

    NORMAL = "Normal"
    HIGH = "High"
    LOW = "Low"
    URGENT = "Urgent"


class ActivityDuration(str, Enum):
    """Activity durations in minutes."""

    MINUTES_15 = "15"
    MINUTES_30 = "30"
    MINUTES_45 = "45"
    MINUTES_60 = "60"

    @property
    def minutes(self) -> int:
        return int(self.value)


# =============================================================================
# Computed display values
# =============================================================================


def full_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name}"


def doctor_display_name(first_name: str, last_name: str) -> str:
    return f"{DOCTOR_NAME_PREFIX} {first_name} {last_name}"


def activity_title(activity_type: str, priority: str) -> str:
    return f"{activity_type} - {priority}"


def _text(fields: Mapping[str, Any], name: str) -> str:
    value = fields.get(name)
    if isinstance(value, Enum):
        value = value.value
    return "" if value is None else str(value)


def derive_full_name(fields: Mapping[str, Any]) -> str:
    return full_name(_text(fields, "FirstName"), _text(fields, "LastName"))


def derive_doctor_display_name(fields: Mapping[str, Any]) -> str:
    return doctor_display_name(_text(fields, "FirstName"), _text(fields, "LastName"))


def derive_activity_title(fields: Mapping[str, Any]) -> str:
    return activity_title(_text(fields, "ActivityType"), _text(fields, "Priority"))


# =============================================================================
# Resolved identifier map
# =============================================================================


@dataclass(frozen=True)
class ResolvedKind:
    """Persisted records of one kind as read back from the store."""

    business_ids: tuple[str, ...]
    storage_ids: Mapping[str, str]
    display_values: Mapping[str, str]


class ResolvedIdentifiers:
    """Map of kind -> business ID -> storage ID built from persisted records.

    Instances are immutable; ``refreshed`` returns a new map with additional
    kinds re-read from the store.
    """

    def __init__(self, kinds: Optional[Mapping[EntityKind, ResolvedKind]] = None):
        self._kinds = dict(kinds or {})

    @classmethod
    def from_store(cls, store: ListStore, kinds: Iterable[EntityKind]) -> "ResolvedIdentifiers":
        """Read every record of ``kinds`` and index them by business identifier."""
        return cls().refreshed(store, kinds)

    def refreshed(self, store: ListStore, kinds: Iterable[EntityKind]) -> "ResolvedIdentifiers":
        resolved = dict(self._kinds)
        for kind in kinds:
            id_field = BUSINESS_ID_FIELDS[kind]
            display_field = DISPLAY_FIELDS[kind]
            business_ids: list[str] = []
            storage_ids: dict[str, str] = {}
            display_values: dict[str, str] = {}

            for record in store.list_records(kind.value):
                business_id = record.fields.get(id_field)
                if not business_id:
                    logger.warning(f"  {kind.value} record {record.storage_id} has no {id_field}; skipped")
                    continue
                if business_id in storage_ids:
                    logger.warning(
                        f"  Duplicate {id_field} {business_id} (storage ids "
                        f"{storage_ids[business_id]}, {record.storage_id}); keeping the first"
                    )
                    continue
                business_ids.append(business_id)
                storage_ids[business_id] = record.storage_id
                display_values[business_id] = record.fields.get(display_field) or business_id

            resolved[kind] = ResolvedKind(
                business_ids=tuple(business_ids),
                storage_ids=storage_ids,
                display_values=display_values,
            )
            logger.info(f"  Resolved {len(business_ids):,} persisted {kind.value} records")
        return ResolvedIdentifiers(resolved)

    def business_ids(self, kind: EntityKind) -> tuple[str, ...]:
        """Persisted business identifiers of ``kind`` in store order."""
        resolved = self._kinds.get(kind)
        return resolved.business_ids if resolved else ()

    def resolve(self, kind: EntityKind, business_id: str) -> str:
        """Storage identifier for ``business_id``.

        Raises:
            ResolutionError: if no such record was persisted
        """
        resolved = self._kinds.get(kind)
        if resolved is None or business_id not in resolved.storage_ids:
            raise ResolutionError(kind.value, business_id)
        return resolved.storage_ids[business_id]

    def reference(self, kind: EntityKind, business_id: str) -> Reference:
        return Reference(self.resolve(kind, business_id))

    def display_value(self, kind: EntityKind, business_id: str) -> str:
        resolved = self._kinds.get(kind)
        if resolved is None:
            return business_id
        return resolved.display_values.get(business_id, business_id)

    def __len__(self) -> int:
        return sum(len(resolved.storage_ids) for resolved in self._kinds.values())


# =============================================================================
# Records
# =============================================================================


@dataclass
class Patient:
    """Represents a patient with demographic and care-status attributes."""

    patient_id: str
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    contact_number: str
    email: str
    address: str
    medical_history: str
    status: PatientStatus

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    @property
    def display_title(self) -> str:
        return f"{self.patient_id} {self.full_name}"

    def list_fields(self, resolved: Optional[ResolvedIdentifiers] = None) -> dict[str, Any]:
        return {
            "Title": self.full_name,
            "PatientID": self.patient_id,
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "DateOfBirth": self.date_of_birth,
            "Gender": self.gender,
            "ContactNumber": self.contact_number,
            "Email": self.email,
            "Address": self.address,
            "MedicalHistory": self.medical_history,
            "Status": self.status,
        }


@dataclass
class Doctor:
    """Represents a doctor."""

    doctor_id: str
    first_name: str
    last_name: str
    specialization: Specialization
    email: str
    department: Department

    @property
    def full_name(self) -> str:
        """Display name with the fixed title prefix."""
        return doctor_display_name(self.first_name, self.last_name)

    @property
    def display_title(self) -> str:
        return f"{self.doctor_id} {self.full_name}"

    def list_fields(self, resolved: Optional[ResolvedIdentifiers] = None) -> dict[str, Any]:
        return {
            "Title": self.full_name,
            "DoctorID": self.doctor_id,
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "Specialization": self.specialization,
            "Email": self.email,
            "Department": self.department,
        }


@dataclass
class Appointment:
    """Represents an appointment between a patient and a doctor.

    References hold business identifiers; they are resolved to storage ids
    only when the record is converted to list fields.
    """

    appointment_id: str
    patient_id: str  # FK to Patient
    doctor_id: str  # FK to Doctor
    start_time: datetime
    end_time: datetime
    service_type: ServiceType
    status: AppointmentStatus
    is_urgent: bool
    notes: str

    @property
    def display_title(self) -> str:
        return f"{self.appointment_id} {self.service_type.value}"

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def list_fields(self, resolved: ResolvedIdentifiers) -> dict[str, Any]:
        return {
            "Title": self.display_title,
            "AppointmentID": self.appointment_id,
            "StartTime": self.start_time,
            "EndTime": self.end_time,
            "ServiceType": self.service_type,
            "Status": self.status,
            "IsUrgent": self.is_urgent,
            "Notes": self.notes,
            "Patient": resolved.reference(EntityKind.PATIENT, self.patient_id),
            "Doctor": resolved.reference(EntityKind.DOCTOR, self.doctor_id),
        }


@dataclass
class Activity:
    """Represents a care-journey activity tied to an appointment."""

    activity_id: str
    appointment_id: str  # FK to Appointment
    patient_id: str  # FK to Patient
    doctor_id: Optional[str]  # FK to Doctor
    activity_datetime: datetime
    activity_type: ActivityType
    duration: ActivityDuration
    priority: ActivityPriority
    notes: str

    @property
    def title(self) -> str:
        return activity_title(self.activity_type.value, self.priority.value)

    @property
    def display_title(self) -> str:
        return f"{self.activity_id} {self.title}"

    def list_fields(self, resolved: ResolvedIdentifiers) -> dict[str, Any]:
        fields = {
            "Title": self.display_title,
            "ActivityID": self.activity_id,
            "ActivityDateTime": self.activity_datetime,
            "ActivityType": self.activity_type,
            "Notes": self.notes,
            "Duration": self.duration,
            "Priority": self.priority,
            "Patient": resolved.reference(EntityKind.PATIENT, self.patient_id),
            "Appointment": resolved.reference(EntityKind.APPOINTMENT, self.appointment_id),
        }
        if self.doctor_id is not None:
            fields["Doctor"] = resolved.reference(EntityKind.DOCTOR, self.doctor_id)
        return fields


# Type aliases for data generation
PatientList = list[Patient]
DoctorList = list[Doctor]
AppointmentList = list[Appointment]
ActivityList = list[Activity]
