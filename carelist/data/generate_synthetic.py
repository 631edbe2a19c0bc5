"""Synthetic data generation for the care-journey sample lists.

Generates patients and doctors from fixed name pools, then appointments and
activities that reference records already persisted in the list store.

Default volumes:
- 30 patients
- 10 doctors
- 30 appointments over the next 30 days
- 50 care-journey activities during 2024

Dependent records are assigned round-robin over the persisted lists
(index modulo count), so every patient and doctor is referenced at least
once whenever there are at least as many appointments as patients.
"""

import random
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Sequence, TypeVar

import pandas as pd
from faker import Faker

from carelist.errors import EmptySourceError

from .schema import (
    FUTURE_APPOINTMENT_STATUSES,
    PAST_APPOINTMENT_STATUSES,
    Activity,
    ActivityDuration,
    ActivityPriority,
    ActivityType,
    Appointment,
    AppointmentStatus,
    Department,
    Doctor,
    EntityKind,
    Gender,
    Patient,
    PatientStatus,
    ResolvedIdentifiers,
    ServiceType,
    Specialization,
    format_business_id,
)

T = TypeVar("T")

# Initialize Faker for realistic addresses
fake = Faker()


# =============================================================================
# Configuration Constants
# =============================================================================


@dataclass
class SeedCounts:
    """Number of records generated per list."""

    patients: int = 30
    doctors: int = 10
    appointments: int = 30
    activities: int = 50


FIRST_NAMES = [
    "James", "Mary", "Robert", "Patricia", "John",
    "Jennifer", "Michael", "Linda", "David", "Elizabeth",
    "William", "Barbara", "Richard", "Susan", "Joseph",
    "Jessica", "Thomas", "Sarah", "Daniel", "Karen",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones",
    "Garcia", "Miller", "Davis", "Rodriguez", "Martinez",
    "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
    "Thomas", "Taylor", "Moore", "Jackson", "Martin",
]

MEDICAL_HISTORY = [
    "No significant medical history",
    "Hypertension, managed with medication",
    "Type 2 diabetes, diet controlled",
    "Asthma since childhood",
    "Seasonal allergies",
    "History of migraines",
    "Hypothyroidism",
    "High cholesterol",
    "Previous knee surgery (2019)",
    "Chronic lower back pain",
]

EMAIL_DOMAIN = "example.com"
CLINIC_EMAIL_DOMAIN = "clinic.example.com"

# Business hours for sampled timestamps: start hour in [8, 17)
BUSINESS_HOURS_START = 8
BUSINESS_HOURS_END = 17
QUARTER_HOURS = (0, 15, 30, 45)

PATIENT_MIN_AGE_YEARS = 18
PATIENT_MAX_AGE_YEARS = 50

APPOINTMENT_HORIZON_DAYS = 30
APPOINTMENT_DURATION = timedelta(minutes=45)
URGENT_THRESHOLD = 2  # urgent when a 1-10 draw is <= 2

# Historical window for activity timestamps (end exclusive)
ACTIVITY_WINDOW_START = date(2024, 1, 1)
ACTIVITY_WINDOW_END = date(2025, 1, 1)


# =============================================================================
# Sampling Helpers
# =============================================================================


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def business_hours_datetime(
    start: date | datetime,
    end: date | datetime,
    rng: random.Random | None = None,
) -> datetime:
    """Sample a business-hours timestamp on a day in ``[start, end)``.

    The day offset is drawn from the whole days between the two dates, the
    hour from 08:00-16:00 and the minute from the quarter hours.

    Raises:
        ValueError: if ``end`` is not at least one whole day after ``start``
    """
    rng = rng or random
    start_day = _as_date(start)
    total_days = (_as_date(end) - start_day).days
    if total_days <= 0:
        raise ValueError(f"End date {end} must be at least one day after start date {start}")

    day = start_day + timedelta(days=rng.randrange(total_days))
    hour = rng.randrange(BUSINESS_HOURS_START, BUSINESS_HOURS_END)
    minute = rng.choice(QUARTER_HOURS)
    return datetime.combine(day, time(hour=hour, minute=minute))


def years_before(moment: date | datetime, years: int) -> date:
    """Same calendar day ``years`` earlier (Feb 29 falls back to Feb 28)."""
    day = _as_date(moment)
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def round_robin(items: Sequence[T], index: int, source: str = "source") -> T:
    """Pick ``items[index % len(items)]``.

    Raises:
        EmptySourceError: if ``items`` is empty
    """
    if not items:
        raise EmptySourceError(f"Cannot assign from {source}: no persisted records")
    return items[index % len(items)]


def appointment_status_for(
    start_time: datetime,
    now: datetime,
    rng: random.Random | None = None,
) -> AppointmentStatus:
    """Sample a status consistent with whether the appointment has started."""
    rng = rng or random
    if start_time < now:
        return rng.choice(PAST_APPOINTMENT_STATUSES)
    return rng.choice(FUTURE_APPOINTMENT_STATUSES)


# =============================================================================
# Base Entity Generators
# =============================================================================


def generate_patients(
    count: int = 30,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[Patient]:
    """Generate synthetic patient records aged 18-50."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    fake.seed_instance(rng.getrandbits(32))

    dob_start = years_before(now, PATIENT_MAX_AGE_YEARS)
    dob_end = years_before(now, PATIENT_MIN_AGE_YEARS)

    patients = []
    for sequence in range(1, count + 1):
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)

        patient = Patient(
            patient_id=format_business_id(EntityKind.PATIENT, sequence),
            first_name=first_name,
            last_name=last_name,
            date_of_birth=business_hours_datetime(dob_start, dob_end, rng).date(),
            gender=rng.choice(list(Gender)),
            contact_number=f"555-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}",
            email=f"{first_name}.{last_name}{sequence}@{EMAIL_DOMAIN}".lower(),
            address=fake.address().replace("\n", ", "),
            medical_history=rng.choice(MEDICAL_HISTORY),
            status=rng.choice(list(PatientStatus)),
        )
        patients.append(patient)

    return patients


def generate_doctors(count: int = 10, rng: random.Random | None = None) -> list[Doctor]:
    """Generate synthetic doctor records across specializations."""
    rng = rng or random.Random()
    doctors = []

    for sequence in range(1, count + 1):
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)

        doctor = Doctor(
            doctor_id=format_business_id(EntityKind.DOCTOR, sequence),
            first_name=first_name,
            last_name=last_name,
            specialization=rng.choice(list(Specialization)),
            email=f"{first_name[0]}.{last_name}{sequence}@{CLINIC_EMAIL_DOMAIN}".lower(),
            department=rng.choice(list(Department)),
        )
        doctors.append(doctor)

    return doctors


# =============================================================================
# Dependent Entity Generators
# =============================================================================


def generate_appointments(
    resolved: ResolvedIdentifiers,
    count: int = 30,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[Appointment]:
    """Generate appointments for persisted patients and doctors.

    Patients and doctors are assigned round-robin in store order. Start
    times are spread uniformly over the next 30 days with a fixed 45 minute
    duration; status is drawn from the past or future pool accordingly.

    Raises:
        EmptySourceError: if no patients or no doctors were persisted
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    patient_ids = resolved.business_ids(EntityKind.PATIENT)
    doctor_ids = resolved.business_ids(EntityKind.DOCTOR)
    if count and not patient_ids:
        raise EmptySourceError("Cannot generate appointments: no patients were persisted")
    if count and not doctor_ids:
        raise EmptySourceError("Cannot generate appointments: no doctors were persisted")

    horizon_seconds = APPOINTMENT_HORIZON_DAYS * 24 * 60 * 60
    appointments = []

    for index in range(count):
        patient_id = round_robin(patient_ids, index, EntityKind.PATIENT.value)
        doctor_id = round_robin(doctor_ids, index, EntityKind.DOCTOR.value)

        start_time = (now + timedelta(seconds=rng.randrange(horizon_seconds))).replace(microsecond=0)
        service_type = rng.choice(list(ServiceType))
        is_urgent = rng.randint(1, 10) <= URGENT_THRESHOLD

        notes = (
            f"{service_type.value} with {resolved.display_value(EntityKind.DOCTOR, doctor_id)} "
            f"for {resolved.display_value(EntityKind.PATIENT, patient_id)}."
        )
        if is_urgent:
            notes += " Marked urgent at booking."

        appointment = Appointment(
            appointment_id=format_business_id(EntityKind.APPOINTMENT, index + 1),
            patient_id=patient_id,
            doctor_id=doctor_id,
            start_time=start_time,
            end_time=start_time + APPOINTMENT_DURATION,
            service_type=service_type,
            status=appointment_status_for(start_time, now, rng),
            is_urgent=is_urgent,
            notes=notes,
        )
        appointments.append(appointment)

    return appointments


def generate_activities(
    resolved: ResolvedIdentifiers,
    count: int = 50,
    rng: random.Random | None = None,
    window_start: date = ACTIVITY_WINDOW_START,
    window_end: date = ACTIVITY_WINDOW_END,
) -> list[Activity]:
    """Generate care-journey activities for persisted appointments.

    Appointment, patient and doctor are each picked by their own round-robin
    cursor driven by the same loop index.

    Raises:
        EmptySourceError: if any of the three source lists is empty
    """
    rng = rng or random.Random()

    appointment_ids = resolved.business_ids(EntityKind.APPOINTMENT)
    patient_ids = resolved.business_ids(EntityKind.PATIENT)
    doctor_ids = resolved.business_ids(EntityKind.DOCTOR)
    for kind, ids in (
        (EntityKind.APPOINTMENT, appointment_ids),
        (EntityKind.PATIENT, patient_ids),
        (EntityKind.DOCTOR, doctor_ids),
    ):
        if count and not ids:
            raise EmptySourceError(f"Cannot generate activities: no {kind.value.lower()} were persisted")

    activities = []
    for index in range(count):
        appointment_id = round_robin(appointment_ids, index, EntityKind.APPOINTMENT.value)
        patient_id = round_robin(patient_ids, index, EntityKind.PATIENT.value)
        doctor_id = round_robin(doctor_ids, index, EntityKind.DOCTOR.value)

        activity_type = rng.choice(list(ActivityType))
        priority = rng.choice(list(ActivityPriority))
        duration = rng.choice(list(ActivityDuration))

        notes = (
            f"{activity_type.value} ({duration.minutes} min, {priority.value} priority) "
            f"for {resolved.display_value(EntityKind.PATIENT, patient_id)} "
            f"with {resolved.display_value(EntityKind.DOCTOR, doctor_id)}, "
            f"related to appointment {appointment_id}."
        )

        activity = Activity(
            activity_id=format_business_id(EntityKind.ACTIVITY, index + 1),
            appointment_id=appointment_id,
            patient_id=patient_id,
            doctor_id=doctor_id,
            activity_datetime=business_hours_datetime(window_start, window_end, rng),
            activity_type=activity_type,
            duration=duration,
            priority=priority,
            notes=notes,
        )
        activities.append(activity)

    return activities


# =============================================================================
# Data Export Functions
# =============================================================================


def records_to_dataframe(records: list) -> pd.DataFrame:
    """Convert a list of record dataclasses to a pandas DataFrame."""
    rows = []
    for record in records:
        row = {}
        for key, value in asdict(record).items():
            # Convert enums to their values
            if isinstance(value, Enum):
                value = value.value
            row[key] = value
        if hasattr(record, "full_name"):
            row["full_name"] = record.full_name
        if hasattr(record, "title"):
            row["title"] = record.title
        rows.append(row)
    return pd.DataFrame(rows)


def export_records(output_dir: Path | str, batches: dict[EntityKind, list]) -> dict[str, Path]:
    """Save synthesized batches as one CSV file per list.

    Args:
        output_dir: Directory to save CSV files
        batches: Records keyed by list kind

    Returns:
        Dictionary mapping list names to file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    files = {}
    for kind, records in batches.items():
        path = output_dir / f"{kind.value.lower()}.csv"
        records_to_dataframe(records).to_csv(path, index=False)
        files[kind.value] = path

    return files
