#!/usr/bin/env python3
"""Seed script for reference formations.

Inserts every formation from ``clubportal.data.formations`` that is not already
present. Ids are derived from the formation name, so running the script against
several databases yields the same ids everywhere and re-running it is a no-op.

Usage:
    cd club-portal-backend
    python -m clubportal.scripts.seed_formations [--dry-run]
"""

import logging
from datetime import datetime, timezone

from clubportal.data.formations import get_reference_formations
from clubportal.models.club import db
from clubportal.models.formation import Formation

logger = logging.getLogger(__name__)


def seed_formations(dry_run: bool = False) -> dict[str, list[str]]:
    """Insert missing reference formations. Must run inside an app context.

    Args:
        dry_run: If True, report what would be created without writing anything
    """
    created = []
    skipped = []

    for entry in get_reference_formations():
        existing = db.session.get(Formation, entry['id'])
        if existing is None:
            existing = Formation.query.filter_by(name=entry['name']).first()
        if existing:
            skipped.append(entry['name'])
            continue

        created.append(entry['name'])
        if dry_run:
            continue

        db.session.add(Formation(
            id=entry['id'],
            name=entry['name'],
            squad_size=entry['squad_size'],
            slots=entry['slots'],
            is_system=True,
            created_at=datetime.now(timezone.utc),
        ))

    if not dry_run and created:
        db.session.commit()
        logger.info("Seeded %d reference formation(s): %s", len(created), ', '.join(created))

    return {'created': created, 'skipped': skipped}


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Seed reference formations')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print what would be done without making changes')
    args = parser.parse_args()

    from clubportal.main import app

    with app.app_context():
        result = seed_formations(dry_run=args.dry_run)

        print("\n=== Reference Formation Seeding ===\n")
        if args.dry_run:
            print("DRY RUN - No changes made\n")
        if result['created']:
            print(f"Created {len(result['created'])} formation(s):")
            for name in result['created']:
                print(f"  + {name}")
        if result['skipped']:
            print(f"\nSkipped {len(result['skipped'])} formation(s) - already exist:")
            for name in result['skipped']:
                print(f"  - {name}")

        print("\nAll formations:")
        for formation in Formation.query.order_by(Formation.squad_size.desc(), Formation.name).all():
            print(f"  [{formation.squad_size}] {formation.name} ({formation.id})")


if __name__ == '__main__':
    main()
