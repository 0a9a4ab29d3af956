"""Database health check functionality."""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


async def get_db_health() -> bool:
    """Check database connectivity by executing SELECT 1."""
    from ..services.db import engine

    def _check() -> bool:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    try:
        # Run blocking DB call in a thread to avoid blocking event loop
        return await asyncio.to_thread(_check)
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False
