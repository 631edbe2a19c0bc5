"""Exception hierarchy for list provisioning and seeding.

Setup problems abort the run, per-record problems are logged and counted
by the ingestion runner, and an empty round-robin source stops generation
of the dependent list.
"""


class CareListError(Exception):
    """Base class for all carelist errors."""


class StoreError(CareListError):
    """A list store operation failed."""


class ValidationError(StoreError):
    """The store rejected a record (required, choice, reference or unique constraint)."""


class SetupFailure(CareListError):
    """The store is unreachable or list provisioning failed."""


class ResolutionError(CareListError):
    """A business identifier has no storage identifier in the resolved map."""

    def __init__(self, kind: str, business_id: str):
        self.kind = kind
        self.business_id = business_id
        super().__init__(f"No {kind} record with business ID {business_id!r} has been persisted")


class EmptySourceError(CareListError):
    """A round-robin source list has no records to assign from."""
