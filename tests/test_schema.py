"""Tests for business identifiers, computed display values and identifier resolution."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from carelist.data.schema import (
    Activity,
    ActivityDuration,
    ActivityPriority,
    ActivityType,
    Appointment,
    AppointmentStatus,
    EntityKind,
    Gender,
    Patient,
    PatientStatus,
    ResolvedIdentifiers,
    ServiceType,
    derive_activity_title,
    derive_doctor_display_name,
    derive_full_name,
    format_business_id,
)
from carelist.errors import ResolutionError
from carelist.store.base import Reference, StoredRecord


class TestBusinessIds:
    """Tests for business identifier formatting."""

    def test_patient_ids(self):
        """Verify MRN identifiers are five digits and injective."""
        ids = [format_business_id(EntityKind.PATIENT, n) for n in range(1, 30001)]
        assert all(i.startswith("MRN") and len(i) == 8 and i[3:].isdigit() for i in ids)
        assert len(set(ids)) == len(ids)

    @pytest.mark.parametrize(
        "kind,sequence,expected",
        [
            (EntityKind.PATIENT, 1, "MRN00001"),
            (EntityKind.DOCTOR, 7, "DOC0007"),
            (EntityKind.APPOINTMENT, 123, "APP000123"),
            (EntityKind.ACTIVITY, 50, "ACT000050"),
            (EntityKind.PATIENT, 99999, "MRN99999"),
        ],
    )
    def test_formats(self, kind, sequence, expected):
        """Verify prefix and padding per kind."""
        assert format_business_id(kind, sequence) == expected

    def test_overflow_widens(self):
        """Verify numbers wider than the padding are not truncated."""
        assert format_business_id(EntityKind.PATIENT, 123456) == "MRN123456"
        assert format_business_id(EntityKind.DOCTOR, 10000) == "DOC10000"

    @pytest.mark.parametrize("sequence", [0, -1])
    def test_rejects_non_positive(self, sequence):
        """Verify sequences start at 1."""
        with pytest.raises(ValueError):
            format_business_id(EntityKind.PATIENT, sequence)


class TestComputedValues:
    """Tests for computed display values."""

    def test_derivations(self):
        """Verify the derivations used by computed list columns."""
        assert derive_full_name({"FirstName": "Mary", "LastName": "Jones"}) == "Mary Jones"
        assert derive_doctor_display_name({"FirstName": "John", "LastName": "Smith"}) == "Dr. John Smith"
        assert (
            derive_activity_title({"ActivityType": ActivityType.EMAIL, "Priority": ActivityPriority.HIGH})
            == "Email - High"
        )

    def test_full_name_not_settable(self):
        """Verify full name is read-only and follows its source fields."""
        patient = Patient(
            patient_id="MRN00001",
            first_name="Mary",
            last_name="Jones",
            date_of_birth=date(1990, 1, 1),
            gender=Gender.FEMALE,
            contact_number="555-123-4567",
            email="mary.jones1@example.com",
            address="1 Main St",
            medical_history="Asthma since childhood",
            status=PatientStatus.NEW,
        )
        with pytest.raises(AttributeError):
            patient.full_name = "Someone Else"
        patient.last_name = "Smith"
        assert patient.full_name == "Mary Smith"
        assert "FullName" not in patient.list_fields()


class TestResolvedIdentifiers:
    """Tests for the resolved identifier map."""

    @pytest.fixture
    def seeded_store(self, provisioned_store):
        for n in (1, 2, 3):
            provisioned_store.create_record(
                "Patients",
                {"PatientID": f"MRN0000{n}", "FirstName": f"First{n}", "LastName": "Last"},
            )
        return provisioned_store

    def test_from_store(self, seeded_store):
        """Verify one entry per persisted business identifier, in store order."""
        resolved = ResolvedIdentifiers.from_store(seeded_store, [EntityKind.PATIENT])
        assert resolved.business_ids(EntityKind.PATIENT) == ("MRN00001", "MRN00002", "MRN00003")
        assert len(resolved) == 3
        storage_ids = {r.storage_id for r in seeded_store.list_records("Patients")}
        assert {resolved.resolve(EntityKind.PATIENT, b) for b in resolved.business_ids(EntityKind.PATIENT)} == storage_ids
        assert resolved.display_value(EntityKind.PATIENT, "MRN00002") == "First2 Last"

    def test_unmapped_identifier(self, seeded_store):
        """Verify resolving an unknown identifier is an error."""
        resolved = ResolvedIdentifiers.from_store(seeded_store, [EntityKind.PATIENT])
        with pytest.raises(ResolutionError) as exc_info:
            resolved.resolve(EntityKind.PATIENT, "MRN99999")
        assert exc_info.value.business_id == "MRN99999"
        with pytest.raises(ResolutionError):
            resolved.resolve(EntityKind.DOCTOR, "DOC0001")

    def test_refreshed_is_new_value(self, seeded_store):
        """Verify refreshing returns a new map and leaves the original unchanged."""
        resolved = ResolvedIdentifiers.from_store(seeded_store, [EntityKind.PATIENT])
        refreshed = resolved.refreshed(seeded_store, [EntityKind.DOCTOR])
        assert refreshed is not resolved
        assert refreshed.business_ids(EntityKind.PATIENT) == resolved.business_ids(EntityKind.PATIENT)
        assert refreshed.business_ids(EntityKind.DOCTOR) == ()

    def test_record_references_resolved(self, seeded_store):
        """Verify dependent records convert business IDs to storage references."""
        doctor_id = seeded_store.create_record(
            "Doctors", {"DoctorID": "DOC0001", "FirstName": "John", "LastName": "Smith"}
        )
        resolved = ResolvedIdentifiers.from_store(seeded_store, [EntityKind.PATIENT, EntityKind.DOCTOR])
        appointment = Appointment(
            appointment_id="APP000001",
            patient_id="MRN00002",
            doctor_id="DOC0001",
            start_time=datetime(2025, 6, 3, 9, 0),
            end_time=datetime(2025, 6, 3, 9, 45),
            service_type=ServiceType.CONSULTATION,
            status=AppointmentStatus.SCHEDULED,
            is_urgent=False,
            notes="",
        )
        fields = appointment.list_fields(resolved)
        assert fields["Patient"] == Reference(resolved.resolve(EntityKind.PATIENT, "MRN00002"))
        assert fields["Doctor"] == Reference(doctor_id)

    def test_missing_reference_raises(self, seeded_store):
        """Verify converting a record with an unpersisted reference fails."""
        resolved = ResolvedIdentifiers.from_store(seeded_store, [EntityKind.PATIENT, EntityKind.DOCTOR])
        activity = Activity(
            activity_id="ACT000001",
            appointment_id="APP000001",
            patient_id="MRN00001",
            doctor_id=None,
            activity_datetime=datetime(2024, 4, 1, 9, 15),
            activity_type=ActivityType.CHECK_IN,
            duration=ActivityDuration.MINUTES_15,
            priority=ActivityPriority.NORMAL,
            notes="",
        )
        with pytest.raises(ResolutionError):
            activity.list_fields(resolved)

    def test_duplicates_and_blank_ids_collapsed(self, caplog):
        """Verify duplicate business IDs keep the first record and blank IDs are skipped."""
        store = MagicMock()
        store.list_records.return_value = [
            StoredRecord("11", {"PatientID": "MRN00001", "FullName": "Mary Jones"}),
            StoredRecord("12", {"PatientID": "MRN00002", "FullName": "John Smith"}),
            StoredRecord("13", {"PatientID": "MRN00001", "FullName": "Mary Jones"}),
            StoredRecord("14", {"FullName": "No Id"}),
        ]
        resolved = ResolvedIdentifiers.from_store(store, [EntityKind.PATIENT])
        store.list_records.assert_called_once_with("Patients")
        assert resolved.business_ids(EntityKind.PATIENT) == ("MRN00001", "MRN00002")
        assert len(resolved) == 2
        assert resolved.resolve(EntityKind.PATIENT, "MRN00001") == "11"
        assert "Duplicate PatientID MRN00001" in caplog.text
        assert "has no PatientID" in caplog.text
