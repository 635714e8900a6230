"""Storage overrides injected into the host PDS at construction time."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from turso_pds.blobstore import LibsqlBlobStore
from turso_pds.config import DatabaseConfig
from turso_pds.database import Database
from turso_pds.db import create_db_client, setup_schema
from turso_pds.dialect import LibsqlDialect

logger = logging.getLogger(__name__)


@dataclass
class StoreOverrides:
    """Metadata database plus per-owner blob store factory, both on libSQL."""

    database: Database
    blobstore: Callable[[str], LibsqlBlobStore]

    async def close(self) -> None:
        await self.database.destroy()


async def create_overrides(config: DatabaseConfig, *, echo: bool = False) -> StoreOverrides:
    """Prepare the blob schema and build the storage overrides for ``config``."""
    client = create_db_client(config)
    try:
        await setup_schema(client)
    finally:
        await client.close()

    logger.info("Storage overrides ready for %s", config.url)
    return StoreOverrides(
        database=Database(LibsqlDialect(config, echo=echo)),
        blobstore=LibsqlBlobStore.creator(config),
    )
