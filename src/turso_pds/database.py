"""Query runtime on top of the libSQL driver.

This is what the host server receives as its metadata database: statements
go in as SQLAlchemy constructs, come out as ``QueryResult``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.sql import ClauseElement

from turso_pds.dialect import LibsqlConnection, LibsqlDialect, LibsqlDriver, QueryResult

logger = logging.getLogger(__name__)


class Transaction:
    """Statements executed inside ``Database.transaction()``."""

    def __init__(self, dialect: LibsqlDialect, connection: LibsqlConnection) -> None:
        self._dialect = dialect
        self._connection = connection

    async def execute(self, statement: ClauseElement | str) -> QueryResult:
        return await self._connection.execute_query(self._dialect.compile(statement))


class Database:
    """Executes statements through a lazily created ``LibsqlDriver``.

    Usage:
        db = Database(LibsqlDialect(config))
        async with db.transaction() as tx:
            await tx.execute(insert(...))
        await db.destroy()
    """

    def __init__(self, dialect: LibsqlDialect) -> None:
        self.dialect = dialect
        self._driver: LibsqlDriver | None = None

    async def driver(self) -> LibsqlDriver:
        if self._driver is None:
            driver = self.dialect.create_driver()
            await driver.init()
            self._driver = driver
        return self._driver

    async def execute(self, statement: ClauseElement | str) -> QueryResult:
        driver = await self.driver()
        connection = await driver.acquire_connection()
        try:
            return await connection.execute_query(self.dialect.compile(statement))
        finally:
            await driver.release_connection(connection)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Commit the block's statements together, or roll back on any error.

        If the rollback itself fails, the block's exception is still the one
        raised; the rollback failure is logged.
        """
        driver = await self.driver()
        connection = await driver.acquire_connection()
        try:
            await driver.begin_transaction(connection)
            try:
                yield Transaction(self.dialect, connection)
            except BaseException:
                try:
                    await driver.rollback_transaction(connection)
                except Exception:
                    logger.exception("Rollback failed")
                raise
            await driver.commit_transaction(connection)
        finally:
            await driver.release_connection(connection)

    async def destroy(self) -> None:
        if self._driver is not None:
            await self._driver.destroy()
