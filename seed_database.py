#!/usr/bin/env python
"""
Seed database with sample survey batches and governance terms.

This script creates sample records in the database so the lifecycle
endpoints have something to sweep.  Everything goes through
LifecycleService, so the usual overlap and naming rules apply.
"""

import json
import sys
from datetime import date

from cadence.errors import LifecycleError
from cadence.registry_db import DBEntityRegistry
from cadence.service import LifecycleService, configured_prefixes

# (family, name, start, end)
SAMPLE_RECORDS = [
    ("term", "2023-2025 Council", date(2023, 7, 1), date(2025, 6, 30)),
    ("term", "2025-2027 Council", date(2025, 7, 1), date(2027, 6, 30)),
    ("batch", "Q1 Youth Survey", date(2025, 1, 10), date(2025, 3, 31)),
    ("batch", "Q2 Youth Survey", date(2025, 4, 1), date(2025, 6, 30)),
    ("batch", "Q3 Youth Survey", date(2025, 7, 1), date(2025, 9, 30)),
    ("batch", "Q4 Youth Survey", date(2025, 10, 1), date(2025, 12, 31)),
]

# Add additional records from sample_lifecycle.json if available
try:
    with open('sample_lifecycle.json', 'r') as f:
        sample_data = json.load(f)

    for record in sample_data:
        SAMPLE_RECORDS.append((
            record.get('family', 'batch'),
            record['name'],
            date.fromisoformat(record['start_date']),
            date.fromisoformat(record['end_date']),
        ))
except (FileNotFoundError, json.JSONDecodeError):
    # Continue with default sample records
    pass


def seed_database():
    """Add sample records to the database, then run one sweep per family."""
    svc = LifecycleService(DBEntityRegistry(prefixes=configured_prefixes()))

    added = 0
    for family, name, start, end in SAMPLE_RECORDS:
        try:
            ent = svc.create(family, name, start, end)
        except LifecycleError as exc:
            print(f"Skipped: {name} ({exc.kind}: {exc.message})")
            continue
        added += 1
        print(f"Added: {ent.id} {ent.name} ({ent.start_date} .. {ent.end_date})")

    for family in ("term", "batch"):
        result = svc.refresh(family)
        print(f"Swept {family}: {len(result.applied)} applied, {len(result.failed)} rejected")

    print(f"\nAdded {added} records to the database!")
    return added


if __name__ == "__main__":
    # Initialize DB if needed
    from cadence.db import create_all
    print("Ensuring database tables exist...")
    create_all()

    # Seed the database
    print("Seeding database with sample records...")
    seed_database()

    print("\nDone! You can now run the API server with:")
    print("uvicorn api.main:app --reload --port 8001")
    sys.exit(0)
