"""List seeding for the care-journey sample data.

Provisions the four SharePoint lists, then generates and creates records in
dependency order. Dependent lists are generated only after their targets
have been persisted and read back, so every reference resolves to a record
that exists in the store.

Usage:
    python -m carelist.data.seed_lists --site-url https://contoso.sharepoint.com/sites/clinic
    python -m carelist.data.seed_lists --clear --no-create-lists
    python -m carelist.data.seed_lists --dry-run --export-dir ./data/synthetic

Environment Variables:
    CARELIST_SITE_URL: SharePoint site URL (used when --site-url is omitted)
"""

import argparse
import logging
import os
import random
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone

from carelist.errors import EmptySourceError, ResolutionError, SetupFailure, StoreError
from carelist.store.base import ListStore
from carelist.store.graph import GraphListStore
from carelist.store.memory import InMemoryListStore

from .generate_synthetic import (
    SeedCounts,
    export_records,
    generate_activities,
    generate_appointments,
    generate_doctors,
    generate_patients,
)
from .provision_lists import provision_all_lists, verify_lists
from .schema import CLEAR_ORDER, EntityKind, ResolvedIdentifiers

# Force unbuffered output for real-time progress
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(line_buffering=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Outcome of creating one batch of records."""

    kind: EntityKind
    attempted: int = 0
    created: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


# =============================================================================
# Store Operations
# =============================================================================


def clear_existing_data(store: ListStore) -> dict[str, int]:
    """Delete every record, referrers before the lists they reference.

    Lists that do not exist yet are skipped.

    Returns:
        Dictionary mapping list names to deleted record counts
    """
    logger.info("Clearing existing data...")
    deleted = {}
    for kind in CLEAR_ORDER:
        name = kind.value
        if not store.collection_exists(name):
            logger.info(f"  {name} does not exist; nothing to clear")
            continue
        records = store.list_records(name)
        for record in records:
            store.delete_record(name, record.storage_id)
        deleted[name] = len(records)
        logger.info(f"  Cleared {len(records):,} records from {name}")
    return deleted


def ingest_records(
    store: ListStore,
    kind: EntityKind,
    records: list,
    resolved: ResolvedIdentifiers | None = None,
) -> IngestionResult:
    """Create each record independently, continuing past per-record failures.

    Args:
        store: Target list store
        kind: List the records belong to
        records: Synthesized records exposing ``list_fields`` and ``display_title``
        resolved: Identifier map for reference fields (dependent lists only)

    Returns:
        IngestionResult with created and failed counts
    """
    result = IngestionResult(kind=kind, attempted=len(records))
    logger.info(f"\nCreating {len(records):,} {kind.value} records...")

    for index, record in enumerate(records, start=1):
        try:
            store.create_record(kind.value, record.list_fields(resolved))
        except (StoreError, ResolutionError) as e:
            logger.error(f"  Failed to create {kind.value} record {index} '{record.display_title}': {e}")
            result.failures.append(record.display_title)
        else:
            result.created += 1
        if index % 10 == 0:
            logger.info(f"    Progress: {index:,}/{result.attempted:,}")

    logger.info(f"  Created {result.created:,}/{result.attempted:,} {kind.value} records")
    return result


# =============================================================================
# Pipeline
# =============================================================================


def seed_lists(
    store: ListStore,
    counts: SeedCounts | None = None,
    clear: bool = False,
    create_lists: bool = True,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> tuple[dict[EntityKind, IngestionResult], dict[EntityKind, list]]:
    """Provision lists and seed them with related synthetic records.

    Args:
        store: Target list store
        counts: Records to generate per list
        clear: Whether to delete existing records before seeding
        create_lists: Whether to (re)create the lists before seeding
        rng: Random source, for reproducible runs
        now: Reference time for birth dates and appointment status

    Returns:
        Tuple of (ingestion results per list, synthesized records per list)

    Raises:
        SetupFailure: if provisioning fails or lists are missing
        EmptySourceError: if a dependent list has nothing to reference
    """
    counts = counts or SeedCounts()
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    if create_lists:
        provision_all_lists(store)
    else:
        verify_lists(store)

    if clear:
        clear_existing_data(store)

    results: dict[EntityKind, IngestionResult] = {}
    batches: dict[EntityKind, list] = {}

    # Phase A: lists without references
    logger.info(f"\nGenerating {counts.patients} patients...")
    batches[EntityKind.PATIENT] = generate_patients(counts.patients, rng=rng, now=now)
    results[EntityKind.PATIENT] = ingest_records(store, EntityKind.PATIENT, batches[EntityKind.PATIENT])

    logger.info(f"\nGenerating {counts.doctors} doctors...")
    batches[EntityKind.DOCTOR] = generate_doctors(counts.doctors, rng=rng)
    results[EntityKind.DOCTOR] = ingest_records(store, EntityKind.DOCTOR, batches[EntityKind.DOCTOR])

    # Phase B: read back storage ids, then generate dependents
    logger.info("\nReading back persisted patients and doctors...")
    resolved = ResolvedIdentifiers.from_store(store, [EntityKind.PATIENT, EntityKind.DOCTOR])

    logger.info(f"\nGenerating {counts.appointments} appointments...")
    batches[EntityKind.APPOINTMENT] = generate_appointments(resolved, counts.appointments, rng=rng, now=now)
    results[EntityKind.APPOINTMENT] = ingest_records(
        store, EntityKind.APPOINTMENT, batches[EntityKind.APPOINTMENT], resolved
    )

    logger.info("\nReading back persisted appointments...")
    resolved = resolved.refreshed(store, [EntityKind.APPOINTMENT])

    logger.info(f"\nGenerating {counts.activities} activities...")
    batches[EntityKind.ACTIVITY] = generate_activities(resolved, counts.activities, rng=rng)
    results[EntityKind.ACTIVITY] = ingest_records(
        store, EntityKind.ACTIVITY, batches[EntityKind.ACTIVITY], resolved
    )

    log_summary(results)
    return results, batches


def log_summary(results: dict[EntityKind, IngestionResult]) -> None:
    logger.info("\n=== Seeding Summary ===")
    for kind, result in results.items():
        line = f"{kind.value + ':':<14}{result.created:,}/{result.attempted:,} created"
        if result.failed:
            line += f" ({result.failed:,} failed)"
        logger.info(line)


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    defaults = SeedCounts()
    parser = argparse.ArgumentParser(description="Create SharePoint lists and seed them with synthetic care data")
    parser.add_argument(
        "--site-url",
        type=str,
        default=os.environ.get("CARELIST_SITE_URL", ""),
        help="SharePoint site URL (e.g., https://contoso.sharepoint.com/sites/clinic)",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete all existing records before seeding",
    )
    parser.add_argument(
        "--no-create-lists",
        action="store_true",
        help="Don't create missing lists; fail if any list is absent",
    )
    parser.add_argument("--patients", type=int, default=defaults.patients, help="Number of patients")
    parser.add_argument("--doctors", type=int, default=defaults.doctors, help="Number of doctors")
    parser.add_argument("--appointments", type=int, default=defaults.appointments, help="Number of appointments")
    parser.add_argument("--activities", type=int, default=defaults.activities, help="Number of activities")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Seed an in-memory store instead of SharePoint",
    )
    parser.add_argument(
        "--export-dir",
        type=str,
        default=None,
        help="Also write the synthesized records to CSV files in this directory",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.dry_run:
        store: ListStore = InMemoryListStore()
        connect = False
        logger.info("Dry run: seeding an in-memory store")
    else:
        if not args.site_url:
            raise ValueError(
                "SharePoint site URL required. Set CARELIST_SITE_URL environment variable or use --site-url argument."
            )
        store = GraphListStore(args.site_url)
        connect = True

    counts = SeedCounts(
        patients=args.patients,
        doctors=args.doctors,
        appointments=args.appointments,
        activities=args.activities,
    )

    try:
        if connect:
            logger.info(f"Connecting to {args.site_url}...")
            store.connect()
        _, batches = seed_lists(
            store,
            counts=counts,
            clear=args.clear,
            create_lists=not args.no_create_lists,
            rng=random.Random(args.seed),
        )
    except (SetupFailure, EmptySourceError, StoreError) as e:
        logger.error(f"\nSeeding aborted: {e}")
        return 1

    if args.export_dir:
        files = export_records(args.export_dir, batches)
        for name, path in files.items():
            logger.info(f"Exported {name} to {path}")

    logger.info("\nSeeding complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
