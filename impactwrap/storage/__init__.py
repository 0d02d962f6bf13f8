"""
Donor and organization storage.

build_store() picks the SQL store when a database URL is configured and
falls back to the in-memory store otherwise.
"""

from typing import Optional

import structlog

from ..core.db import get_engine, init_schema
from ..core.settings import Settings, settings as get_settings
from .base import DonorStore
from .memory import DEFAULT_ORGANIZATION, MemoryDonorStore
from .sql import SqlDonorStore

logger = structlog.get_logger(__name__)


def build_store(config: Optional[Settings] = None, create_schema: bool = False) -> DonorStore:
    """
    Build the configured store.

    Args:
        config: Settings (defaults to the cached application settings)
        create_schema: Create missing tables when using a database

    Returns:
        A DonorStore implementation
    """
    config = config or get_settings()

    if config.uses_database():
        engine = get_engine(
            config.database_url,
            echo=config.db_echo,
            **({"pool_size": config.db_pool_size} if config.database_url.startswith("postgresql") else {}),
        )
        if create_schema:
            init_schema(engine)
        logger.info("Using SQL donor store")
        return SqlDonorStore(engine)

    if config.is_production():
        logger.warning("No database configured in production; donors will not survive a restart")
    logger.info("Using in-memory donor store", seeded=config.seed_default_organization)
    return MemoryDonorStore(seed=config.seed_default_organization)


__all__ = [
    "DEFAULT_ORGANIZATION",
    "DonorStore",
    "MemoryDonorStore",
    "SqlDonorStore",
    "build_store",
]
