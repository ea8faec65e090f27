"""Offline seeding step for the service catalog.

Replaces every catalog entry (filed complaints included) with the default
services in ``saathi.catalog.SEED_SERVICES``.  Requires ``MONGO_URI``; the
in-memory catalog is seeded automatically at start-up.

Usage:
    uv run python -m saathi.seed
"""

from __future__ import annotations

import logging
import sys

from saathi.catalog import SEED_SERVICES, ServiceRepository
from saathi.config import MONGO_DB, MONGO_URI
from saathi.errors import PersistenceError

logger = logging.getLogger(__name__)


def seed(repository: ServiceRepository) -> int:
    """Reseed *repository* and return the number of services inserted."""
    count = repository.replace_all(SEED_SERVICES)
    logger.info("Seeded %d services", count)
    return count


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not MONGO_URI:
        logger.error("MONGO_URI is not set; nothing to seed")
        return 1

    from saathi.mongo import MongoServiceRepository, connect

    try:
        seed(MongoServiceRepository(connect(MONGO_URI, MONGO_DB)))
    except PersistenceError:
        logger.exception("Error seeding the database")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
