#!/usr/bin/env python3
"""
Create (or reset) a development database filled with demo content.

Usage:
    python scripts/seed_database.py --db data/ptyxes.db
    python scripts/seed_database.py --reset
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ptyxes.config import load_settings
from ptyxes.data.database import DatabaseInterface
from ptyxes.logging_setup import configure_logging
from ptyxes.seed import DEMO_PASSWORD, seed_database


def main():
    settings = load_settings()

    parser = argparse.ArgumentParser(description="Seed a Ptyxes database with demo data")
    parser.add_argument("--db", default=settings.db_path, help="Path to the SQLite database")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    args = parser.parse_args()

    configure_logging(settings.log_level)

    print("=" * 60)
    print("SEEDING DATABASE")
    print("=" * 60)

    with DatabaseInterface(args.db, password_method=settings.password_method) as db:
        if args.reset:
            print(f"\n⚠️  Resetting {args.db}")
            db.reset_hard(args.db)

        if not db.is_database_empty():
            print(f"\n{args.db} already has users. Use --reset to start over.")
            return 1

        counts = seed_database(db)

    print(f"\nDatabase: {args.db}")
    for name, count in counts.items():
        print(f"   {name}: {count}")
    print(f"\nAll demo users share the password '{DEMO_PASSWORD}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
