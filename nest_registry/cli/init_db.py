#!/usr/bin/env python3
"""
Database initialization script.
Creates the authors, packages and package_uploads tables. With --reset the
existing tables are dropped first, discarding every author and package.
"""
import argparse
import logging
import sys

from nest_registry.core.database import drop_db, init_db
from nest_registry.utils.logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


def main(argv=None):
    """Initialize database."""
    parser = argparse.ArgumentParser(description="Create the registry tables")
    parser.add_argument("--reset", action="store_true", help="drop existing tables before creating them")
    args = parser.parse_args(argv)

    try:
        if args.reset:
            drop_db()
        init_db()
        logger.info("Database initialization completed successfully!")
        print("\nDatabase initialized successfully!")
        return 0

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        print(f"\nERROR: Database initialization failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
