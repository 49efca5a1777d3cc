"""Souk Sales database management CLI.

Creates and drops the sales schema when a relational provider (sqlite,
postgresql) is configured; the in-memory provider needs neither.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the sales database schema."""
    from sales.domain import sales
    from sales.utils.db import setup_db

    print("Initializing sales domain...")
    sales.init()
    print("Creating sales database schema...")
    providers = setup_db(sales)
    if providers:
        print(f"  schema ready on: {', '.join(providers)}")
    else:
        print("  no relational provider configured, nothing to create.")

    print("Done.")


def drop_database():
    """Drop the sales database schema."""
    from sales.domain import sales
    from sales.utils.db import drop_db

    print("Initializing sales domain...")
    sales.init()
    print("Dropping sales database schema...")
    providers = drop_db(sales)
    if providers:
        print(f"  schema dropped on: {', '.join(providers)}")
    else:
        print("  no relational provider configured, nothing to drop.")

    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Souk Sales database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
