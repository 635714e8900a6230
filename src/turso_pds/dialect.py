"""Query driver executing compiled SQLAlchemy statements over libsql_client.

Every libsql_client ``execute`` runs on its own connection or stream, so
the driver keeps no pool: acquiring a connection just wraps the client.
A transaction needs one session from BEGIN to COMMIT, so it is opened
with ``client.transaction()`` and held by the connection until it ends.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import libsql_client
from sqlalchemy.sql import ClauseElement

from turso_pds.config import DatabaseConfig
from turso_pds.db import create_db_client, execute
from turso_pds.errors import TursoPdsError, UnsupportedOperationError
from turso_pds.sql import CompiledQuery, compile_query

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of one statement, decoded from the client's result set."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    insert_id: int | None = None
    num_affected_rows: int = 0


def _decode_result(result: Any) -> QueryResult:
    columns = tuple(getattr(result, "columns", None) or ())
    rows = [dict(zip(columns, tuple(row))) for row in (result.rows or ())]

    # last_insert_rowid is only meaningful after a single-row INSERT
    last_rowid = getattr(result, "last_insert_rowid", None)
    insert_id = int(last_rowid) if last_rowid else None

    affected = getattr(result, "rows_affected", None)
    return QueryResult(
        rows=rows,
        insert_id=insert_id,
        num_affected_rows=max(int(affected), 0) if affected else 0,
    )


class LibsqlConnection:
    """Logical connection over the shared client.

    Outside a transaction every statement goes straight to the client.
    Between ``begin()`` and ``commit()``/``rollback()`` statements go to the
    client's transaction handle, which keeps them on one session.
    """

    def __init__(
        self,
        client: libsql_client.Client,
        *,
        timeout: float | None = None,
        echo: bool = False,
    ) -> None:
        self.client = client
        self._timeout = timeout
        self._echo = echo
        self._transaction: libsql_client.Transaction | None = None

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    async def execute_query(self, query: CompiledQuery) -> QueryResult:
        if self._echo:
            logger.debug("%s %r", query.sql, query.parameters)
        target = self._transaction if self._transaction is not None else self.client
        result = await execute(target, query, timeout=self._timeout)
        return _decode_result(result)

    def begin(self) -> None:
        if self._transaction is not None:
            raise TursoPdsError("A transaction is already open on this connection")
        self._transaction = self.client.transaction()

    async def commit(self) -> None:
        transaction = self._take_transaction()
        try:
            await transaction.commit()
        finally:
            transaction.close()

    async def rollback(self) -> None:
        transaction = self._take_transaction()
        try:
            await transaction.rollback()
        finally:
            transaction.close()

    def _take_transaction(self) -> libsql_client.Transaction:
        transaction, self._transaction = self._transaction, None
        if transaction is None:
            raise TursoPdsError("No transaction is open on this connection")
        return transaction

    def stream_query(
        self, query: CompiledQuery, chunk_size: int | None = None
    ) -> AsyncIterator[QueryResult]:
        """Not available: the transport has no incremental result mode."""
        raise UnsupportedOperationError("LibsqlDialect does not support streaming")


class LibsqlDriver:
    """Driver contract implementation over a single libsql_client client."""

    def __init__(
        self,
        client: libsql_client.Client,
        *,
        timeout: float | None = None,
        echo: bool = False,
    ) -> None:
        self.client = client
        self._timeout = timeout
        self._echo = echo
        self._destroyed = False

    async def init(self) -> None:
        pass

    async def acquire_connection(self) -> LibsqlConnection:
        return LibsqlConnection(self.client, timeout=self._timeout, echo=self._echo)

    async def begin_transaction(self, connection: LibsqlConnection) -> None:
        connection.begin()

    async def commit_transaction(self, connection: LibsqlConnection) -> None:
        await connection.commit()

    async def rollback_transaction(self, connection: LibsqlConnection) -> None:
        await connection.rollback()

    async def release_connection(self, connection: LibsqlConnection) -> None:
        # A transaction left open by its caller is abandoned, not committed
        if connection.in_transaction:
            await connection.rollback()

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        await self.client.close()
        logger.debug("libSQL driver destroyed")


class LibsqlDialect:
    """Pairs the SQLite statement compiler with a libSQL driver."""

    def __init__(self, config: DatabaseConfig, *, echo: bool = False) -> None:
        self.config = config
        self.echo = echo

    def create_driver(self) -> LibsqlDriver:
        return LibsqlDriver(
            create_db_client(self.config),
            timeout=self.config.timeout,
            echo=self.echo,
        )

    def compile(self, statement: ClauseElement | str) -> CompiledQuery:
        return compile_query(statement)
