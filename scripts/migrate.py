#!/usr/bin/env python3
"""
Run schema migrations outside the application.

Usage:
    python scripts/migrate.py              # apply pending migrations
    python scripts/migrate.py status       # list applied versions
    python scripts/migrate.py revert [N]   # undo versions newer than N (default 0)
"""

import asyncio
import logging
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from riham.config import settings
from riham.db import Migrator, MigrationError, MIGRATIONS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

USAGE = "Usage: python scripts/migrate.py [up | status | revert [VERSION]]"


async def main(args):
    command = args[0] if args else "up"
    migrator = Migrator(MIGRATIONS, data_dir=settings.data_dir)
    target = settings.database_url

    if command == "up":
        applied = await migrator.reconcile(target)
        logger.info(f"Applied: {applied or 'nothing, already up to date'}")

    elif command == "status":
        for entry in await migrator.applied(target):
            print(
                f"{entry.version:>6}  {entry.description:<32} "
                f"{entry.installed_on:%Y-%m-%d %H:%M:%S}  {entry.execution_time / 1e6:.1f} ms"
            )

    elif command == "revert":
        try:
            version = int(args[1]) if len(args) > 1 else 0
        except ValueError:
            print(USAGE)
            sys.exit(2)
        reverted = await migrator.revert(target, version)
        logger.info(f"Reverted: {reverted or 'nothing'}")

    else:
        print(USAGE)
        sys.exit(2)


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1:]))
    except MigrationError as e:
        logger.error(str(e))
        sys.exit(1)
