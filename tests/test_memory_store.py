"""Tests for the in-memory list store's schema and record rules."""

import pytest

from carelist.data.schema import Gender, derive_full_name
from carelist.errors import StoreError, ValidationError
from carelist.store.base import FieldSpec, Reference
from carelist.store.memory import InMemoryListStore


@pytest.fixture
def people():
    store = InMemoryListStore()
    store.create_collection("People")
    store.add_field("People", FieldSpec.scalar("Code", required=True, unique=True, indexed=True))
    store.add_field("People", FieldSpec.scalar("FirstName"))
    store.add_field("People", FieldSpec.scalar("LastName"))
    store.add_field("People", FieldSpec.choice("Gender", Gender))
    store.add_field(
        "People",
        FieldSpec.computed("FullName", '[FirstName]&" "&[LastName]', ("FirstName", "LastName"), derive_full_name),
    )
    store.create_collection("Visits")
    store.add_field("Visits", FieldSpec.reference("Person", "People", "FullName", required=True))
    return store


class TestSchemaRules:
    """Tests for list and field creation."""

    def test_duplicate_list(self, people):
        with pytest.raises(StoreError):
            people.create_collection("People")

    def test_computed_before_dependencies(self):
        """Verify computed fields cannot precede their inputs."""
        store = InMemoryListStore()
        store.create_collection("People")
        with pytest.raises(StoreError, match="undefined fields"):
            store.add_field(
                "People",
                FieldSpec.computed("FullName", "", ("FirstName", "LastName"), derive_full_name),
            )

    def test_reference_to_missing_field(self, people):
        with pytest.raises(StoreError, match="missing field"):
            people.add_field("Visits", FieldSpec.reference("Other", "People", "Nickname"))

    def test_delete_missing_list(self, people):
        with pytest.raises(StoreError):
            people.delete_collection("Nope")


class TestRecordRules:
    """Tests for record validation."""

    def test_computed_value(self, people):
        """Verify computed fields are derived at insert."""
        storage_id = people.create_record("People", {"Code": "A", "FirstName": "Mary", "LastName": "Jones"})
        (record,) = people.list_records("People")
        assert record.storage_id == storage_id
        assert record.fields["FullName"] == "Mary Jones"

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"FirstName": "Mary"}, "required"),
            ({"Code": "B", "FullName": "X"}, "computed"),
            ({"Code": "B", "Gender": "Unknown"}, "not one of"),
            ({"Code": "B", "Age": 40}, "Unknown fields"),
            ({"Code": "A"}, "unique"),
        ],
    )
    def test_rejected(self, people, fields, message):
        people.create_record("People", {"Code": "A"})
        with pytest.raises(ValidationError, match=message):
            people.create_record("People", fields)

    def test_enum_choice_accepted(self, people):
        people.create_record("People", {"Code": "A", "Gender": Gender.FEMALE})
        assert people.list_records("People")[0].fields["Gender"] == "Female"

    def test_reference_must_exist(self, people):
        """Verify dangling references are rejected."""
        with pytest.raises(ValidationError, match="missing People record"):
            people.create_record("Visits", {"Person": Reference("999")})
        with pytest.raises(ValidationError, match="expects a Reference"):
            people.create_record("Visits", {"Person": "Mary Jones"})

    def test_reference_read_back(self, people):
        """Verify references read back as display value plus lookup id."""
        person_id = people.create_record("People", {"Code": "A", "FirstName": "Mary", "LastName": "Jones"})
        people.create_record("Visits", {"Person": Reference(person_id)})
        fields = people.list_records("Visits")[0].fields
        assert fields["Person"] == "Mary Jones"
        assert fields["PersonLookupId"] == person_id

    def test_delete_record(self, people):
        storage_id = people.create_record("People", {"Code": "A"})
        people.delete_record("People", storage_id)
        assert people.list_records("People") == []
        with pytest.raises(StoreError):
            people.delete_record("People", storage_id)

    def test_storage_ids_unique_across_lists(self, people):
        person_id = people.create_record("People", {"Code": "A"})
        visit_id = people.create_record("Visits", {"Person": Reference(person_id)})
        assert person_id != visit_id
