"""libSQL client construction, query execution and schema setup."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import libsql_client
from sqlalchemy.schema import CreateTable

from turso_pds.config import DatabaseConfig
from turso_pds.models import blobs
from turso_pds.sql import CompiledQuery, compile_query

logger = logging.getLogger(__name__)


def create_db_client(config: DatabaseConfig) -> libsql_client.Client:
    """Allocate a client for the configured database.

    The client owns its transport; there is no pool to manage.
    """
    return libsql_client.create_client(config.url, auth_token=config.auth_token)


async def execute(
    client: libsql_client.Client | libsql_client.Transaction,
    query: CompiledQuery,
    *,
    timeout: float | None = None,
) -> Any:
    """Run one statement on a client, or on an open transaction handle.

    Transport errors propagate unchanged. With ``timeout`` set, a call that
    overruns raises ``asyncio.TimeoutError``.
    """
    call = client.execute(query.sql, list(query.parameters))
    if timeout is None:
        return await call
    return await asyncio.wait_for(call, timeout)


async def setup_schema(client: libsql_client.Client) -> None:
    """Create the blobs table if it does not exist. Safe on every start."""
    await execute(client, compile_query(CreateTable(blobs, if_not_exists=True)))
    logger.info("Blob store schema ready")
