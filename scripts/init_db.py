#!/usr/bin/env python3
"""
MongoDB Database Initialization Script for Tubely.

Creates the indexes on the ``videos`` collection that listing a user's
records relies on. It can be run any number of times; existing indexes are
left as they are.

Usage:
    python scripts/init_db.py [options]

Options:
    --drop          Drop the videos collection first (WARNING: destructive)
    --verbose       Display debug logs
    --yes           Do not ask for confirmation before --drop

Environment Variables:
    MONGODB_URI         MongoDB connection URI (default: mongodb://localhost:27017)
    MONGODB_DB_NAME     Database name (default: tubely)
"""

import argparse
import asyncio
import logging
import sys

from pymongo.errors import PyMongoError

from tubely.config import get_settings
from tubely.core.database import VIDEOS_COLLECTION, DatabaseClient
from tubely.utils.logger import setup_logging


logger = logging.getLogger("tubely.scripts.init_db")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Initialize the Tubely MongoDB database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help=f"Drop the '{VIDEOS_COLLECTION}' collection before creating indexes",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--yes", action="store_true", help="Skip the --drop confirmation prompt")
    return parser.parse_args()


async def initialize(drop: bool) -> bool:
    settings = get_settings()
    client = DatabaseClient(settings)
    if not await client.connect():
        return False

    try:
        if drop:
            await client.get_database().drop_collection(VIDEOS_COLLECTION)
            logger.warning("Dropped collection %s", VIDEOS_COLLECTION)
        await client.create_indexes()
    except PyMongoError:
        logger.exception("Database initialization failed")
        return False
    finally:
        await client.close()

    return True


def main() -> int:
    args = parse_arguments()
    setup_logging(log_level="DEBUG" if args.verbose else "INFO", json_logs=False)

    if args.drop and not args.yes:
        answer = input(f"Drop every record in '{VIDEOS_COLLECTION}'? Type 'yes' to continue: ")
        if answer.strip().lower() != "yes":
            print("Operation cancelled.")
            return 1

    try:
        ok = asyncio.run(initialize(args.drop))
    except KeyboardInterrupt:
        print("\nInitialization interrupted by user.")
        return 130

    if not ok:
        print("\nDatabase initialization failed. See the log above.")
        return 1
    print("\nDatabase initialization complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
