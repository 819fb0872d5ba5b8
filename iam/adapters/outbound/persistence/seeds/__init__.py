# iam/adapters/outbound/persistence/seeds/__init__.py

"""
Seeds that populate the database with the data the system needs to run.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.seeds.permissions import run_permissions_seed

# Configure logger
logger = logging.getLogger(__name__)


async def run_all_seeds(db: AsyncSession) -> None:
    """
    Run every seed script in dependency order.

    Args:
        db: Async database session
    """
    logger.info("Running all seeds")
    await run_permissions_seed(db)
    logger.info("All seeds ran successfully")
